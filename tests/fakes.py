"""In-memory stand-in for GardenStore used by engine tests."""

import copy
from typing import Any

from seed_extensions.exceptions import ConflictError, ObjectNotFoundError
from seed_extensions.models import (
    BackupBucket,
    BackupEntry,
    ControllerDeployment,
    ControllerInstallation,
    ControllerRegistration,
    Seed,
    Shoot,
)


def apply_merge_patch(target: dict[str, Any], patch: dict[str, Any]) -> None:
    """Apply an RFC 7386 merge patch in place."""
    for key, value in patch.items():
        if value is None:
            target.pop(key, None)
        elif isinstance(value, dict) and isinstance(target.get(key), dict):
            apply_merge_patch(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


def _by_name(objects) -> dict[str, dict]:
    return {obj["metadata"]["name"]: copy.deepcopy(obj) for obj in objects}


class FakeStore:
    """Keeps raw objects in dicts and records every write."""

    def __init__(
        self,
        *,
        seeds=(),
        registrations=(),
        deployments=(),
        installations=(),
        buckets=(),
        entries=(),
        shoots=(),
    ) -> None:
        self.seeds = _by_name(seeds)
        self.registrations = _by_name(registrations)
        self.deployments = _by_name(deployments)
        self.installations = _by_name(installations)
        self.buckets = _by_name(buckets)
        self.entries = [copy.deepcopy(obj) for obj in entries]
        self.shoots = [copy.deepcopy(obj) for obj in shoots]

        self.created: list[dict] = []
        self.patches: list[tuple[str, dict]] = []
        self.deleted: list[str] = []
        self._version = 100
        self._suffix = 0

    @property
    def writes(self) -> int:
        return len(self.created) + len(self.patches) + len(self.deleted)

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def get_seed(self, name: str) -> Seed | None:
        obj = self.seeds.get(name)
        return Seed.from_dict(obj) if obj is not None else None

    def list_seeds(self) -> list[Seed]:
        return [Seed.from_dict(obj) for obj in self.seeds.values()]

    def list_controller_registrations(self) -> list[ControllerRegistration]:
        return [ControllerRegistration.from_dict(obj) for obj in self.registrations.values()]

    def get_controller_deployment(self, name: str) -> ControllerDeployment:
        if name not in self.deployments:
            raise ObjectNotFoundError(f"controllerdeployments {name!r} not found", status=404)
        return ControllerDeployment.from_dict(self.deployments[name])

    def list_controller_installations(self) -> list[ControllerInstallation]:
        return [ControllerInstallation.from_dict(obj) for obj in self.installations.values()]

    def list_backup_buckets(self) -> list[BackupBucket]:
        return [BackupBucket.from_dict(obj) for obj in self.buckets.values()]

    def list_backup_entries(self, seed_name: str) -> list[BackupEntry]:
        return [
            BackupEntry.from_dict(obj) for obj in self.entries if obj["spec"].get("seedName") == seed_name
        ]

    def list_shoots(self, seed_name: str) -> list[Shoot]:
        return [
            Shoot.from_dict(obj)
            for obj in self.shoots
            if seed_name in (obj["spec"].get("seedName"), obj.get("status", {}).get("seedName"))
        ]

    def get_controller_installation(self, name: str) -> dict[str, Any]:
        if name not in self.installations:
            raise ObjectNotFoundError(f"controllerinstallations {name!r} not found", status=404)
        return copy.deepcopy(self.installations[name])

    def create_controller_installation(self, body: dict[str, Any]) -> ControllerInstallation:
        obj = copy.deepcopy(body)
        meta = obj["metadata"]
        if "name" not in meta:
            self._suffix += 1
            meta["name"] = f"{meta['generateName']}{self._suffix:05d}"
        if meta["name"] in self.installations:
            raise ConflictError(f"controllerinstallations {meta['name']!r} already exists", status=409)
        meta["resourceVersion"] = self._next_version()
        self.installations[meta["name"]] = obj
        self.created.append(copy.deepcopy(obj))
        return ControllerInstallation.from_dict(obj)

    def patch_controller_installation(self, name: str, patch: dict[str, Any]) -> ControllerInstallation:
        current = self.installations.get(name)
        if current is None:
            raise ObjectNotFoundError(f"controllerinstallations {name!r} not found", status=404)
        pinned = (patch.get("metadata") or {}).get("resourceVersion")
        if pinned is not None and pinned != current["metadata"]["resourceVersion"]:
            raise ConflictError(f"controllerinstallations {name!r} was modified", status=409)
        apply_merge_patch(current, patch)
        current["metadata"]["resourceVersion"] = self._next_version()
        self.patches.append((name, copy.deepcopy(patch)))
        return ControllerInstallation.from_dict(current)

    def delete_controller_installation(self, name: str) -> bool:
        if name not in self.installations:
            return False
        del self.installations[name]
        self.deleted.append(name)
        return True

    def installations_for(self, registration_name: str) -> list[dict]:
        return [
            obj
            for obj in self.installations.values()
            if obj["spec"]["registrationRef"]["name"] == registration_name
        ]
