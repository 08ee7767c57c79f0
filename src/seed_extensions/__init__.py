"""seed-extensions: decide which extension controllers run on a seed.

This package computes the extensions required on a seed cluster, resolves
them to ControllerRegistrations and converges the ControllerInstallations
that bind those registrations to the seed.

Example usage:
    from seed_extensions import Config, GardenStore, SeedReconciler

    reconciler = SeedReconciler(GardenStore(), Config())
    result = reconciler.reconcile("aws-eu1")
"""

__version__ = "0.1.0"

from seed_extensions.cli import cli
from seed_extensions.config import Config, load_config
from seed_extensions.exceptions import (
    ClusterConnectionError,
    ConfigError,
    ConflictError,
    DeploymentFetchError,
    DuplicateInstallationError,
    InstallationDeletionPendingError,
    MissingExtensionControllerError,
    ObjectNotFoundError,
    ReconcileCancelledError,
    ReconcileError,
    RegistrationNotFoundError,
    SeedExtensionsError,
    SeedSelectorError,
    StoreError,
)
from seed_extensions.models import ExtensionId, ReconcileResult
from seed_extensions.reconciler import SeedReconciler
from seed_extensions.store import GardenStore

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes
    "Config",
    "ExtensionId",
    "GardenStore",
    "ReconcileResult",
    "SeedReconciler",
    "load_config",
    # Exceptions
    "SeedExtensionsError",
    "ClusterConnectionError",
    "ConfigError",
    "StoreError",
    "ObjectNotFoundError",
    "ConflictError",
    "ReconcileError",
    "MissingExtensionControllerError",
    "SeedSelectorError",
    "RegistrationNotFoundError",
    "DuplicateInstallationError",
    "InstallationDeletionPendingError",
    "DeploymentFetchError",
    "ReconcileCancelledError",
]
