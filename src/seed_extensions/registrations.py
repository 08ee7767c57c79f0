"""Resolution of required extensions to ControllerRegistrations.

This module maps the required extensions of a seed to the names of the
ControllerRegistrations that must be installed on it, applies deployment
policies, keeps installations their controllers still need, and filters
the result by seed selector.
"""

from collections.abc import Iterable

from icecream import ic

from seed_extensions.exceptions import (
    InvalidSelectorError,
    MissingExtensionControllerError,
    RegistrationNotFoundError,
    SeedSelectorError,
)
from seed_extensions.models import ControllerInstallation, ControllerRegistration, ExtensionId, Seed
from seed_extensions.selectors import selector_matches


def compute_registration_map(registrations: Iterable[ControllerRegistration]) -> dict[str, ControllerRegistration]:
    """Index ControllerRegistrations by name."""
    return {registration.name: registration for registration in registrations}


def installed_and_required_registration_names(
    installations: Iterable[ControllerInstallation],
    seed_name: str,
) -> set[str]:
    """Return registrations whose installation on the seed is still required.

    An extension controller marks its installation as required while it
    still manages resources, even if nothing requests the extension anymore.
    """
    return {
        installation.registration_name
        for installation in installations
        if installation.seed_name == seed_name and installation.required
    }


def filter_by_seed_selector(
    names: Iterable[str],
    registrations: dict[str, ControllerRegistration],
    seed: Seed,
) -> set[str]:
    """Keep only registrations whose seed selector matches the seed labels.

    Args:
        names: Candidate registration names.
        registrations: Registrations indexed by name.
        seed: The seed being reconciled.

    Returns:
        The names of the matching registrations.

    Raises:
        RegistrationNotFoundError: If a candidate name is unknown.
        SeedSelectorError: If a candidate's seed selector is malformed.

    """
    matching: set[str] = set()

    for name in names:
        registration = registrations.get(name)
        if registration is None:
            raise RegistrationNotFoundError(
                f"ControllerRegistration with name {name!r} wanted on seed {seed.name!r} not found"
            )

        try:
            matches = selector_matches(registration.seed_selector, seed.labels)
        except InvalidSelectorError as e:
            raise SeedSelectorError(
                f"label selector conversion failed for seed selector of ControllerRegistration {name!r} "
                f"on seed {seed.name!r}: {e}"
            ) from e

        if matches:
            matching.add(name)

    return matching


def compute_wanted_registration_names(
    required: Iterable[ExtensionId],
    installations: Iterable[ControllerInstallation],
    registrations: dict[str, ControllerRegistration],
    number_of_shoots: int,
    seed: Seed,
) -> set[str]:
    """Compute the names of the ControllerRegistrations wanted on a seed.

    Args:
        required: The required extension identities of the seed.
        installations: All ControllerInstallations.
        registrations: Registrations indexed by name.
        number_of_shoots: Number of shoots on the seed.
        seed: The seed being reconciled.

    Returns:
        The wanted registration names whose seed selector matches the seed.

    Raises:
        MissingExtensionControllerError: If no registration serves a required extension.
        RegistrationNotFoundError: If a carried over installation references
            an unknown registration.
        SeedSelectorError: If a seed selector is malformed.

    """
    by_extension: dict[ExtensionId, list[str]] = {}
    wanted: set[str] = set()

    for name, registration in registrations.items():
        if registration.deploy_always and not seed.deleting:
            wanted.add(name)

        if registration.deploy_always_except_no_shoots and number_of_shoots > 0:
            wanted.add(name)

        for resource in registration.resources:
            by_extension.setdefault(resource.extension_id, []).append(name)

    for extension_id in sorted(required):
        names = by_extension.get(extension_id)
        if not names:
            raise MissingExtensionControllerError(str(extension_id), seed.name)
        wanted.update(names)

    wanted |= installed_and_required_registration_names(installations, seed.name)
    ic(sorted(wanted))

    return filter_by_seed_selector(sorted(wanted), registrations, seed)
