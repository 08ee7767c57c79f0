"""Garden API access for seed-extensions.

This module provides the GardenStore class, a thin typed adapter over the
kubernetes ``CustomObjectsApi`` for the garden resources the reconciler
reads and the ControllerInstallations it writes.
"""

from collections.abc import Callable
from typing import Any, TypeVar

from icecream import ic
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError

from seed_extensions.exceptions import ClusterConnectionError, ConflictError, ObjectNotFoundError, StoreError
from seed_extensions.models import (
    BackupBucket,
    BackupEntry,
    ControllerDeployment,
    ControllerInstallation,
    ControllerRegistration,
    Seed,
    Shoot,
)

GROUP = "core.gardener.cloud"
VERSION = "v1beta1"
API_VERSION = f"{GROUP}/{VERSION}"

# Resource plurals
SEEDS = "seeds"
CONTROLLER_REGISTRATIONS = "controllerregistrations"
CONTROLLER_DEPLOYMENTS = "controllerdeployments"
CONTROLLER_INSTALLATIONS = "controllerinstallations"
BACKUP_BUCKETS = "backupbuckets"
BACKUP_ENTRIES = "backupentries"
SHOOTS = "shoots"

# Field selectors served by the garden API server
_SPEC_SEED_NAME = "spec.seedName"
_STATUS_SEED_NAME = "status.seedName"

_T = TypeVar("_T")


def _call(description: str, func: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
    """Invoke an API function and translate its errors.

    Args:
        description: Human readable description of the request for error messages.
        func: The API function to call.
        *args: Positional arguments passed to the function.
        **kwargs: Keyword arguments passed to the function.

    Returns:
        Whatever the API function returns.

    Raises:
        ObjectNotFoundError: If the API answers 404.
        ConflictError: If the API answers 409.
        StoreError: For any other API error.
        ClusterConnectionError: If the API server is unreachable.

    """
    try:
        return func(*args, **kwargs)
    except ApiException as e:
        message = f"Failed to {description}: {e.status} {e.reason}"
        if e.status == 404:
            raise ObjectNotFoundError(message, status=e.status) from e
        if e.status == 409:
            raise ConflictError(message, status=e.status) from e
        raise StoreError(message, status=e.status) from e
    except MaxRetryError as e:
        raise ClusterConnectionError(f"Failed to connect to the garden cluster: {e.reason}") from e


class GardenStore:
    """Reads and writes garden resources through the Kubernetes API.

    All reads go directly to the API server; there is no informer cache, so
    installations and backup entries are always read consistently.

    Attributes:
        api: The CustomObjectsApi used for all requests.

    """

    def __init__(self, api_client: client.ApiClient | None = None) -> None:
        """Initialize the store.

        Args:
            api_client: Configured API client. If None, the default
                configuration loaded by ``kubernetes.config`` is used.

        """
        self.api = client.CustomObjectsApi(api_client)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"GardenStore(api_version={API_VERSION!r})"

    def _get(self, plural: str, name: str) -> dict[str, Any]:
        return _call(
            f"get {plural} {name!r}",
            self.api.get_cluster_custom_object,
            GROUP,
            VERSION,
            plural,
            name,
        )

    def _list(self, plural: str, field_selector: str | None = None) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {}
        if field_selector:
            kwargs["field_selector"] = field_selector
        response = _call(
            f"list {plural}",
            self.api.list_cluster_custom_object,
            GROUP,
            VERSION,
            plural,
            **kwargs,
        )
        items: list[dict[str, Any]] = response.get("items") or []
        ic(plural, field_selector, len(items))
        return items

    def get_seed(self, name: str) -> Seed | None:
        """Get a seed by name.

        Returns:
            The seed, or None if it does not exist.

        """
        try:
            return Seed.from_dict(self._get(SEEDS, name))
        except ObjectNotFoundError:
            return None

    def list_seeds(self) -> list[Seed]:
        """List all seeds."""
        return [Seed.from_dict(obj) for obj in self._list(SEEDS)]

    def list_controller_registrations(self) -> list[ControllerRegistration]:
        """List all ControllerRegistrations."""
        return [ControllerRegistration.from_dict(obj) for obj in self._list(CONTROLLER_REGISTRATIONS)]

    def get_controller_deployment(self, name: str) -> ControllerDeployment:
        """Get a ControllerDeployment by name.

        Raises:
            ObjectNotFoundError: If the deployment does not exist.

        """
        return ControllerDeployment.from_dict(self._get(CONTROLLER_DEPLOYMENTS, name))

    def list_controller_installations(self) -> list[ControllerInstallation]:
        """List all ControllerInstallations."""
        return [ControllerInstallation.from_dict(obj) for obj in self._list(CONTROLLER_INSTALLATIONS)]

    def list_backup_buckets(self) -> list[BackupBucket]:
        """List all BackupBuckets, regardless of their seed."""
        return [BackupBucket.from_dict(obj) for obj in self._list(BACKUP_BUCKETS)]

    def list_backup_entries(self, seed_name: str) -> list[BackupEntry]:
        """List the BackupEntries assigned to a seed."""
        items = self._list(BACKUP_ENTRIES, field_selector=f"{_SPEC_SEED_NAME}={seed_name}")
        return [BackupEntry.from_dict(obj) for obj in items]

    def list_shoots(self, seed_name: str) -> list[Shoot]:
        """List the shoots scheduled to or still running on a seed.

        Shoots are matched by their spec and by their status seed name;
        a shoot appearing in both lists is returned once.
        """
        shoots: dict[str, Shoot] = {}
        for selector in (_SPEC_SEED_NAME, _STATUS_SEED_NAME):
            for obj in self._list(SHOOTS, field_selector=f"{selector}={seed_name}"):
                shoot = Shoot.from_dict(obj)
                shoots.setdefault(shoot.key, shoot)
        return list(shoots.values())

    def get_controller_installation(self, name: str) -> dict[str, Any]:
        """Get the raw ControllerInstallation document.

        Raises:
            ObjectNotFoundError: If the installation does not exist.

        """
        return self._get(CONTROLLER_INSTALLATIONS, name)

    def create_controller_installation(self, body: dict[str, Any]) -> ControllerInstallation:
        """Create a ControllerInstallation.

        Args:
            body: The object to create; may use ``metadata.generateName``.

        Returns:
            The created installation as returned by the API server.

        """
        body = {"apiVersion": API_VERSION, "kind": "ControllerInstallation", **body}
        created = _call(
            "create ControllerInstallation",
            self.api.create_cluster_custom_object,
            GROUP,
            VERSION,
            CONTROLLER_INSTALLATIONS,
            body,
        )
        return ControllerInstallation.from_dict(created)

    def patch_controller_installation(self, name: str, patch: dict[str, Any]) -> ControllerInstallation:
        """Apply a JSON merge patch to a ControllerInstallation.

        Raises:
            ConflictError: If the patch pins a stale resource version.

        """
        patched = _call(
            f"patch ControllerInstallation {name!r}",
            self.api.patch_cluster_custom_object,
            GROUP,
            VERSION,
            CONTROLLER_INSTALLATIONS,
            name,
            patch,
        )
        return ControllerInstallation.from_dict(patched)

    def delete_controller_installation(self, name: str) -> bool:
        """Delete a ControllerInstallation.

        Returns:
            True if a delete was issued, False if the object was already gone.

        """
        try:
            _call(
                f"delete ControllerInstallation {name!r}",
                self.api.delete_cluster_custom_object,
                GROUP,
                VERSION,
                CONTROLLER_INSTALLATIONS,
                name,
            )
        except ObjectNotFoundError:
            return False
        return True
