"""Seed reconciler facade.

This module provides the SeedReconciler class, the entry point the
controller harness calls once per seed. It reads the live state, computes
the wanted ControllerRegistrations and converges the ControllerInstallations.
"""

import threading

from icecream import ic

from seed_extensions import console, shoots
from seed_extensions.cancellation import check_cancelled
from seed_extensions.config import Config
from seed_extensions.installations import compute_registration_name_to_installation, synchronize_installations
from seed_extensions.models import ReconcileResult
from seed_extensions.registrations import compute_registration_map, compute_wanted_registration_names
from seed_extensions.requirements import compute_required_extensions
from seed_extensions.shoots import ShootRequirementsFunc
from seed_extensions.store import GardenStore


class SeedReconciler:
    """Decides which extension controllers run on a seed and converges them.

    The reconciler keeps no state between invocations; everything is
    recomputed from the store. It never retries on its own: any raised
    error is meant to be retried by the harness with backoff.

    Attributes:
        store: The garden store used for all reads and writes.
        config: The reconciler configuration.
        shoot_requirements: Function computing the extensions of one shoot.

    """

    def __init__(
        self,
        store: GardenStore,
        config: Config,
        shoot_requirements: ShootRequirementsFunc = shoots.compute_required_extensions,
    ) -> None:
        self.store = store
        self.config = config
        self.shoot_requirements = shoot_requirements

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"SeedReconciler(store={self.store!r}, config={self.config!r})"

    def reconcile(self, seed_name: str, stop: threading.Event | None = None) -> ReconcileResult:
        """Reconcile the ControllerInstallations of a seed.

        Args:
            seed_name: Name of the seed to reconcile.
            stop: Optional event the harness sets to cancel the reconcile.

        Returns:
            The outcome of the reconciliation. A seed that no longer exists
            yields an empty result.

        Raises:
            ReconcileError: If the seed cannot reach its desired state.
            StoreError: If reading or writing garden objects fails.
            ReconcileCancelledError: If the stop event was set.

        """
        check_cancelled(stop, seed_name)
        seed = self.store.get_seed(seed_name)
        if seed is None:
            console.info(f"Object {seed_name!r} is gone, stop reconciling")
            return ReconcileResult()

        console.action("Reconciling ControllerInstallations", seed=seed.name)

        registration_list = self.store.list_controller_registrations()
        check_cancelled(stop, seed.name)
        installation_list = self.store.list_controller_installations()
        check_cancelled(stop, seed.name)
        bucket_list = self.store.list_backup_buckets()
        check_cancelled(stop, seed.name)
        entry_list = self.store.list_backup_entries(seed.name)
        check_cancelled(stop, seed.name)
        shoot_list = self.store.list_shoots(seed.name)
        check_cancelled(stop, seed.name)

        registrations = compute_registration_map(registration_list)
        required = compute_required_extensions(
            seed,
            bucket_list,
            entry_list,
            shoot_list,
            registration_list,
            self.config,
            self.shoot_requirements,
            stop,
        )

        wanted = compute_wanted_registration_names(
            required,
            installation_list,
            registrations,
            len(shoot_list),
            seed,
        )
        by_registration = compute_registration_name_to_installation(installation_list, registrations, seed.name)

        result = ReconcileResult(wanted=frozenset(wanted))
        synchronize_installations(self.store, seed, wanted, registrations, by_registration, result, stop)
        ic(result)

        console.success(
            f"Reconciled: {len(result.created)} created, {len(result.patched)} patched, "
            f"{len(result.deleted)} deleted",
            seed=seed.name,
        )
        return result
