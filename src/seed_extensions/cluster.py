"""Garden cluster connection utilities.

This module provides the Cluster class for selecting the kube context of
the garden cluster, building the GardenStore on top of it and picking
seeds to reconcile.
"""

import click
import questionary
from kubernetes import config
from kubernetes.config.config_exception import ConfigException

from seed_extensions import console
from seed_extensions.exceptions import ClusterConnectionError
from seed_extensions.store import GardenStore
from seed_extensions.styles import POINTER, PROMPT_STYLE, QMARK


class Cluster:
    """Manages the connection to the garden cluster.

    Attributes:
        context: The active Kubernetes context name.
        store: GardenStore bound to that context.

    """

    def __init__(self, *, select_context: bool, context: str | None = None) -> None:
        """Initialize Cluster with context selection.

        Args:
            select_context: If True, prompt user to select a context.
                           Must be passed as a keyword argument.
            context: Context to use when not prompting. If None, the
                     current context of the kubeconfig is used.

        """
        self.context: str = self._set_context(select_context=select_context, context=context)
        try:
            config.load_kube_config(context=self.context)
        except ConfigException as e:
            raise ClusterConnectionError(f"Failed to load context {self.context!r}: {e}") from e
        self.store: GardenStore = GardenStore()

    @staticmethod
    def _set_context(*, select_context: bool, context: str | None) -> str:
        """Set the Kubernetes context to use.

        Returns:
            The selected, configured or current context name.

        Raises:
            ClusterConnectionError: If kubeconfig is invalid or missing.
            click.Abort: If user cancels context selection.

        """
        try:
            contexts, current_context = config.list_kube_config_contexts()
        except ConfigException as e:
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e

        if select_context:
            context_names: list[str] = [ctx["name"] for ctx in contexts]
            selected: str | None = questionary.select(
                "Select garden context to work with",
                choices=context_names,
                style=PROMPT_STYLE,
                pointer=POINTER,
                qmark=QMARK,
            ).ask()
            if selected is None:
                console.warning("Context selection cancelled.")
                raise click.Abort()
            context = selected
        elif context is None:
            context = str(current_context["name"])

        console.action(f"Working with {console.highlight(context)} garden cluster")
        return context

    def get_all_seeds(self) -> list[str]:
        """Get the names of all seeds, sorted.

        Returns:
            List of seed names.

        """
        with console.spinner("Listing seeds..."):
            return sorted(seed.name for seed in self.store.list_seeds())

    def select_seed(self) -> str:
        """Prompt the user to pick a seed.

        Raises:
            click.ClickException: If the garden has no seeds.
            click.Abort: If user cancels the selection.

        """
        seeds = self.get_all_seeds()
        if not seeds:
            raise click.ClickException("No seeds found in the garden cluster")

        seed: str | None = questionary.select(
            "Select seed to reconcile",
            choices=seeds,
            style=PROMPT_STYLE,
            pointer=POINTER,
            qmark=QMARK,
        ).ask()
        if seed is None:
            console.warning("Seed selection cancelled.")
            raise click.Abort()
        return seed

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Cluster(context={self.context!r})"
