#!/usr/bin/env python
"""Command-line interface for seed-extensions.

This module provides the CLI entry point that reconciles the
ControllerInstallations of one, several or all seeds of a garden.
"""

import sys

import click
from icecream import ic

from seed_extensions import __version__, console
from seed_extensions.cluster import Cluster
from seed_extensions.config import load_config
from seed_extensions.exceptions import ClusterConnectionError, SeedExtensionsError
from seed_extensions.models import ReconcileResult
from seed_extensions.reconciler import SeedReconciler


def _names(items: list[str]) -> str:
    return ", ".join(items) if items else "-"


def reconcile_seed(reconciler: SeedReconciler, seed_name: str) -> ReconcileResult:
    """Reconcile a single seed and print a summary.

    Args:
        reconciler: The reconciler to use.
        seed_name: Name of the seed.

    Returns:
        The reconcile result.

    """
    result = reconciler.reconcile(seed_name)
    ic(result)

    console.summary_panel(
        f"Seed {seed_name}",
        {
            "Wanted": _names(sorted(result.wanted)),
            "Created": _names(result.created),
            "Patched": _names(result.patched),
            "Unchanged": _names(result.unchanged),
            "Skipped": _names(result.skipped),
            "Deleted": _names(result.deleted),
        },
    )
    return result


def reconcile_seeds(reconciler: SeedReconciler, seed_names: list[str]) -> list[str]:
    """Reconcile several seeds, isolating failures per seed.

    Args:
        reconciler: The reconciler to use.
        seed_names: Names of the seeds.

    Returns:
        Names of the seeds that failed to reconcile.

    Raises:
        ClusterConnectionError: If the garden cluster becomes unreachable.

    """
    failed: list[str] = []

    with console.create_task_progress() as progress:
        task = progress.add_task("Reconciling seeds", total=len(seed_names))
        for seed_name in seed_names:
            try:
                reconcile_seed(reconciler, seed_name)
            except ClusterConnectionError:
                raise
            except SeedExtensionsError as e:
                console.error(str(e), seed=seed_name)
                failed.append(seed_name)
            progress.advance(task)

    return failed


@click.command(help="Reconcile the extension controllers installed on garden seeds")
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
@click.option("--select", required=False, is_flag=True, default=False, help="prompt for context select")
@click.option("--config", "-c", "config_path", required=False, help="path to the configuration file")
@click.option("--seed", "-s", "seeds", required=False, multiple=True, help="seed to reconcile (repeatable)")
@click.option("--all", "all_seeds", required=False, is_flag=True, help="reconcile all seeds")
def cli(
    debug: bool,
    select: bool,
    config_path: str | None,
    seeds: tuple[str, ...],
    all_seeds: bool,
    version: bool,
) -> None:
    """Process CLI arguments and reconcile the requested seeds.

    Args:
        debug: Enable debug output.
        select: Prompt for Kubernetes context selection.
        config_path: Path to the YAML configuration file.
        seeds: Names of the seeds to reconcile.
        all_seeds: Reconcile every seed of the garden.
        version: Print version and exit.

    """
    if not debug:
        ic.disable()

    if version:
        click.echo(__version__)
        return

    try:
        config = load_config(config_path)
        cluster = Cluster(select_context=select, context=config.context)
        reconciler = SeedReconciler(cluster.store, config)

        if all_seeds:
            seed_names = cluster.get_all_seeds()
        elif seeds:
            seed_names = list(seeds)
        else:
            seed_names = [cluster.select_seed()]

        failed = reconcile_seeds(reconciler, seed_names)
    except ClusterConnectionError as e:
        console.error(f"Cluster connection failed: {e}")
        sys.exit(1)
    except SeedExtensionsError as e:
        console.error(str(e))
        sys.exit(1)

    if failed:
        console.error(f"Failed to reconcile {len(failed)} seed(s): {', '.join(failed)}")
        sys.exit(1)


if __name__ == "__main__":
    cli()
