"""Convergence of ControllerInstallations for a seed.

This module creates or patches the ControllerInstallations of wanted
registrations and deletes the ones no longer wanted. Every write is
idempotent: patches only carry what changed, and deletes of objects that
are already gone succeed.
"""

import copy
import threading
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from icecream import ic

from seed_extensions import console
from seed_extensions.cancellation import check_cancelled
from seed_extensions.exceptions import (
    DeploymentFetchError,
    DuplicateInstallationError,
    InstallationDeletionPendingError,
    ObjectNotFoundError,
    ReconcileCancelledError,
    RegistrationNotFoundError,
    SeedExtensionsError,
    StoreError,
)
from seed_extensions.hashing import (
    DEPLOYMENT_HASH_LABEL,
    REGISTRATION_SPEC_HASH_LABEL,
    SEED_SPEC_HASH_LABEL,
    short_hash,
)
from seed_extensions.models import (
    ControllerDeployment,
    ControllerInstallation,
    ControllerRegistration,
    ReconcileResult,
    Seed,
)
from seed_extensions.patching import create_merge_patch, set_label
from seed_extensions.store import GardenStore


class InstallationOperation(str, Enum):
    """What happened to a wanted ControllerInstallation."""

    CREATED = "created"
    PATCHED = "patched"
    UNCHANGED = "unchanged"


def compute_registration_name_to_installation(
    installations: Iterable[ControllerInstallation],
    registrations: dict[str, ControllerRegistration],
    seed_name: str,
) -> dict[str, ControllerInstallation]:
    """Map registration names to the existing installation on a seed.

    Raises:
        RegistrationNotFoundError: If an installation references an unknown registration.
        DuplicateInstallationError: If two installations bind the same
            registration to the seed.

    """
    by_registration: dict[str, ControllerInstallation] = {}

    for installation in installations:
        if installation.seed_name != seed_name:
            continue

        name = installation.registration_name
        if name not in registrations:
            raise RegistrationNotFoundError(
                f"ControllerRegistration {name!r} referenced by ControllerInstallation "
                f"{installation.name!r} does not exist"
            )

        if name in by_registration:
            raise DuplicateInstallationError(
                f"ControllerInstallations {by_registration[name].name!r} and {installation.name!r} "
                f"both bind ControllerRegistration {name!r} to seed {seed_name!r}"
            )

        by_registration[name] = installation

    return by_registration


def _reference(name: str, resource_version: str) -> dict[str, str]:
    return {"name": name, "resourceVersion": resource_version}


def _installation_mutator(
    seed: Seed,
    registration: ControllerRegistration,
    deployment: ControllerDeployment | None,
) -> Callable[[dict[str, Any]], None]:
    """Build the function that brings a raw installation into its desired state."""
    spec: dict[str, Any] = {
        "seedRef": _reference(seed.name, seed.resource_version),
        "registrationRef": _reference(registration.name, registration.resource_version),
    }
    if deployment is not None:
        spec["deploymentRef"] = _reference(deployment.name, deployment.resource_version)

    seed_hash = short_hash(seed.spec)
    registration_hash = short_hash(registration.spec)
    deployment_hash = short_hash(deployment.hash_fields()) if deployment is not None else None

    def mutate(obj: dict[str, Any]) -> None:
        set_label(obj, SEED_SPEC_HASH_LABEL, seed_hash)
        set_label(obj, REGISTRATION_SPEC_HASH_LABEL, registration_hash)
        if deployment_hash is not None:
            set_label(obj, DEPLOYMENT_HASH_LABEL, deployment_hash)
        else:
            obj["metadata"]["labels"].pop(DEPLOYMENT_HASH_LABEL, None)
        obj["spec"] = copy.deepcopy(spec)

    return mutate


def _get_and_merge_patch(store: GardenStore, name: str, mutate: Callable[[dict[str, Any]], None]) -> InstallationOperation:
    """Apply a mutation to the latest version of an installation.

    The installation is read again right before patching, and the patch pins
    the resource version it was computed against, so concurrent writers
    cause a conflict instead of being overwritten.
    """
    try:
        current = store.get_controller_installation(name)
    except ObjectNotFoundError:
        obj: dict[str, Any] = {"metadata": {"name": name}}
        mutate(obj)
        store.create_controller_installation(obj)
        return InstallationOperation.CREATED

    desired = copy.deepcopy(current)
    mutate(desired)
    patch = create_merge_patch(current, desired)
    if not patch:
        return InstallationOperation.UNCHANGED

    ic(name, patch)
    patch.setdefault("metadata", {})["resourceVersion"] = current["metadata"]["resourceVersion"]
    store.patch_controller_installation(name, patch)
    return InstallationOperation.PATCHED


def deploy_installation(
    store: GardenStore,
    seed: Seed,
    registration: ControllerRegistration,
    deployment: ControllerDeployment | None,
    existing: ControllerInstallation | None,
) -> InstallationOperation:
    """Create or update the installation of a registration on a seed.

    Args:
        store: The garden store.
        seed: The seed being reconciled.
        registration: The wanted registration.
        deployment: The registration's deployment configuration, if any.
        existing: The installation already binding the registration to the seed, if any.

    Returns:
        The operation that was performed.

    """
    mutate = _installation_mutator(seed, registration, deployment)

    if existing is not None:
        return _get_and_merge_patch(store, existing.name, mutate)

    # The API server appends a random suffix to the generated name.
    body: dict[str, Any] = {"metadata": {"generateName": f"{registration.name}-"}}
    mutate(body)
    store.create_controller_installation(body)
    return InstallationOperation.CREATED


def deploy_needed_installations(
    store: GardenStore,
    seed: Seed,
    wanted: Iterable[str],
    registrations: dict[str, ControllerRegistration],
    by_registration: dict[str, ControllerInstallation],
    result: ReconcileResult,
    stop: threading.Event | None = None,
) -> None:
    """Create or update the installations of all wanted registrations.

    The first failing registration aborts the remaining work.

    Raises:
        DeploymentFetchError: If a referenced ControllerDeployment cannot be read.
        InstallationDeletionPendingError: If the existing installation is still being deleted.

    """
    for name in sorted(wanted):
        check_cancelled(stop, seed.name)
        registration = registrations[name]

        # Operators offboard a controller by deleting its registration while the
        # extensions drain; its installation must not be recreated meanwhile.
        if registration.deleting:
            console.info(f"Do not create or update ControllerInstallation for {name!r} which is in deletion", seed=seed.name)
            result.skipped.append(name)
            continue

        console.action(f"Deploying wanted ControllerInstallation for {console.highlight(name)}", seed=seed.name)

        deployment: ControllerDeployment | None = None
        if registration.deployment_refs:
            # Only one deployment reference is allowed today.
            deployment_name = registration.deployment_refs[0]
            try:
                deployment = store.get_controller_deployment(deployment_name)
            except StoreError as e:
                raise DeploymentFetchError(
                    f"cannot deploy ControllerInstallation for {name!r} because the referenced "
                    f"ControllerDeployment {deployment_name!r} cannot be retrieved: {e}"
                ) from e

        existing = by_registration.get(name)
        if existing is not None and existing.deleting:
            raise InstallationDeletionPendingError(
                f"cannot deploy new ControllerInstallation for {name!r} on seed {seed.name!r} because the "
                f"deletion of the old ControllerInstallation {existing.name!r} is still pending"
            )

        match deploy_installation(store, seed, registration, deployment, existing):
            case InstallationOperation.CREATED:
                result.created.append(name)
            case InstallationOperation.PATCHED:
                result.patched.append(name)
            case InstallationOperation.UNCHANGED:
                result.unchanged.append(name)


def delete_unneeded_installations(
    store: GardenStore,
    seed: Seed,
    wanted: set[str],
    by_registration: dict[str, ControllerInstallation],
    result: ReconcileResult,
    stop: threading.Event | None = None,
) -> None:
    """Delete every installation on the seed whose registration is not wanted."""
    for name, installation in sorted(by_registration.items()):
        if name in wanted:
            continue
        check_cancelled(stop, seed.name)

        if installation.deleting:
            console.step(f"ControllerInstallation {installation.name!r} is already being deleted", seed=seed.name)
            continue

        console.action(f"Deleting unneeded ControllerInstallation {console.highlight(installation.name)}", seed=seed.name)
        if store.delete_controller_installation(installation.name):
            result.deleted.append(installation.name)


def synchronize_installations(
    store: GardenStore,
    seed: Seed,
    wanted: set[str],
    registrations: dict[str, ControllerRegistration],
    by_registration: dict[str, ControllerInstallation],
    result: ReconcileResult,
    stop: threading.Event | None = None,
) -> None:
    """Converge the installations of a seed to the wanted registrations.

    The delete phase runs even when the deploy phase failed; the deploy
    error is raised afterwards.
    """
    deploy_error: SeedExtensionsError | None = None
    try:
        deploy_needed_installations(store, seed, wanted, registrations, by_registration, result, stop)
    except ReconcileCancelledError:
        raise
    except SeedExtensionsError as e:
        deploy_error = e

    try:
        delete_unneeded_installations(store, seed, wanted, by_registration, result, stop)
    except ReconcileCancelledError:
        raise
    except SeedExtensionsError as e:
        if deploy_error is None:
            raise
        console.error(f"Deleting unneeded ControllerInstallations failed: {e}", seed=seed.name)

    if deploy_error is not None:
        raise deploy_error
