"""Custom exceptions for seed-extensions.

This module defines the exception hierarchy used throughout the package
to separate fatal reconcile errors from store and configuration failures.
"""


class SeedExtensionsError(Exception):
    """Base exception for all seed-extensions errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all seed-extensions errors with a single
    except clause if desired.
    """

    pass


class ClusterConnectionError(SeedExtensionsError):
    """Raised when connection to the garden cluster fails.

    This can occur when:
    - The kubeconfig is invalid or missing
    - The cluster is unreachable
    - Authentication fails
    """

    pass


class ConfigError(SeedExtensionsError):
    """Raised when the configuration file cannot be loaded or is invalid."""

    pass


class StoreError(SeedExtensionsError):
    """Raised when a request against the garden API fails.

    Attributes:
        status: The HTTP status returned by the API server, if any.

    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ObjectNotFoundError(StoreError):
    """Raised when a requested object does not exist."""

    pass


class ConflictError(StoreError):
    """Raised when a write was rejected because the object changed concurrently."""

    pass


class ReconcileError(SeedExtensionsError):
    """Base class for errors that abort a reconcile cycle for a seed.

    The harness is expected to retry the whole invocation later.
    """

    pass


class MissingExtensionControllerError(ReconcileError):
    """Raised when no ControllerRegistration can satisfy a required extension.

    Attributes:
        extension: The "Kind/Type" identity that could not be satisfied.
        seed_name: The seed that requires the extension.

    """

    def __init__(self, extension: str, seed_name: str) -> None:
        super().__init__(
            f"need to install an extension controller for {extension!r} on seed {seed_name!r} "
            "but no appropriate ControllerRegistration found"
        )
        self.extension = extension
        self.seed_name = seed_name


class SeedSelectorError(ReconcileError):
    """Raised when the seed selector of a ControllerRegistration is malformed."""

    pass


class RegistrationNotFoundError(ReconcileError):
    """Raised when a ControllerRegistration referenced by name does not exist."""

    pass


class DuplicateInstallationError(ReconcileError):
    """Raised when more than one ControllerInstallation binds the same registration to a seed."""

    pass


class InstallationDeletionPendingError(ReconcileError):
    """Raised when a wanted ControllerInstallation is still being deleted."""

    pass


class DeploymentFetchError(ReconcileError):
    """Raised when the ControllerDeployment referenced by a registration cannot be read."""

    pass


class ReconcileCancelledError(SeedExtensionsError):
    """Raised when a reconcile observes the cancellation signal."""

    pass


class IncompleteDNSConfigError(SeedExtensionsError):
    """Raised when the external domain of a shoot cannot be determined.

    This typically means:
    - The shoot has no DNS domain configured
    - The shoot has no primary DNS provider and no default domain matches
    """

    pass


class InvalidSelectorError(ValueError):
    """Raised when a label selector cannot be evaluated."""

    pass
