"""Aggregation of required extensions for a seed.

This module collects the extension kind/type combinations a seed needs
from its backup buckets, backup entries, shoots and its own configuration.
Problems with individual objects are logged and skipped; they never abort
the aggregation.
"""

import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

from icecream import ic

from seed_extensions import console
from seed_extensions.cancellation import check_cancelled
from seed_extensions.config import Config
from seed_extensions.exceptions import IncompleteDNSConfigError, ReconcileCancelledError
from seed_extensions.models import (
    BACKUP_BUCKET_KIND,
    BACKUP_ENTRY_KIND,
    DNS_PROVIDER_KIND,
    DNS_RECORD_KIND,
    BackupBucket,
    BackupEntry,
    ControllerRegistration,
    Domain,
    ExtensionId,
    Seed,
    Shoot,
)
from seed_extensions.shoots import ShootRequirementsFunc, construct_external_domain


def kinds_for_backup_buckets(
    buckets: Iterable[BackupBucket],
    seed_name: str,
) -> tuple[set[ExtensionId], dict[str, BackupBucket]]:
    """Compute the extensions required by the backup buckets of a seed.

    Args:
        buckets: All backup buckets.
        seed_name: The seed being reconciled.

    Returns:
        The required identities, and a name -> bucket lookup over all buckets
        (including those of other seeds, which entries may still reference
        during a migration).

    """
    required: set[ExtensionId] = set()
    by_name: dict[str, BackupBucket] = {}

    for bucket in buckets:
        by_name[bucket.name] = bucket
        if bucket.seed_name != seed_name:
            continue
        required.add(ExtensionId(BACKUP_BUCKET_KIND, bucket.provider_type))

    return required, by_name


def kinds_for_backup_entries(
    entries: Iterable[BackupEntry],
    buckets: dict[str, BackupBucket],
    seed_name: str,
) -> set[ExtensionId]:
    """Compute the extensions required by the backup entries of a seed.

    Entries whose bucket cannot be found are logged and skipped.
    """
    required: set[ExtensionId] = set()

    for entry in entries:
        if entry.seed_name != seed_name:
            continue

        bucket = buckets.get(entry.bucket_name)
        if bucket is None:
            console.error(
                f"Couldn't find BackupBucket {entry.bucket_name!r} for BackupEntry {entry.name!r}",
                seed=seed_name,
            )
            continue

        required.add(ExtensionId(BACKUP_ENTRY_KIND, bucket.provider_type))

    return required


def _requirements_for_shoot(
    shoot: Shoot,
    seed: Seed,
    registrations: list[ControllerRegistration],
    config: Config,
    shoot_requirements: ShootRequirementsFunc,
    stop: threading.Event | None,
) -> set[ExtensionId]:
    check_cancelled(stop, seed.name)

    external_domain: Domain | None = None
    try:
        external_domain = construct_external_domain(shoot, config.default_domains)
    except IncompleteDNSConfigError as e:
        # A shoot deleted before it was ever provisioned has no DNS settings
        if not (shoot.deleting and not shoot.uid):
            console.warning(f"Could not determine external domain for shoot {shoot.key}: {e}", seed=seed.name)

    return shoot_requirements(
        shoot,
        seed,
        registrations,
        config.internal_domain,
        external_domain,
        config.use_dns_records,
    )


def kinds_for_shoots(
    shoots: Iterable[Shoot],
    seed: Seed,
    registrations: list[ControllerRegistration],
    config: Config,
    shoot_requirements: ShootRequirementsFunc,
    stop: threading.Event | None = None,
) -> set[ExtensionId]:
    """Compute the extensions required by the shoots of a seed.

    One task per relevant shoot runs in a thread pool; all tasks are joined
    before any result is merged. A shoot whose computation fails contributes
    nothing and is logged.

    Args:
        shoots: Candidate shoots.
        seed: The seed being reconciled.
        registrations: All ControllerRegistrations.
        config: The reconciler configuration.
        shoot_requirements: The per-shoot requirement function.
        stop: Optional cancellation event.

    Returns:
        The union of the requirements of all shoots on the seed.

    Raises:
        ReconcileCancelledError: If the cancellation event was set.

    """
    relevant = [shoot for shoot in shoots if shoot.is_assigned_to(seed.name)]
    if not relevant:
        return set()

    workers = min(config.max_shoot_workers, len(relevant))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"shoots-{seed.name}") as executor:
        futures = {
            shoot.key: executor.submit(
                _requirements_for_shoot, shoot, seed, registrations, config, shoot_requirements, stop
            )
            for shoot in relevant
        }

    check_cancelled(stop, seed.name)

    required: set[ExtensionId] = set()
    for key, future in futures.items():
        try:
            result = future.result()
        except ReconcileCancelledError:
            raise
        except Exception as e:
            console.warning(f"Could not compute required extensions for shoot {key}: {e}", seed=seed.name)
            continue
        required |= result

    return required


def kinds_for_seed(seed: Seed, *, use_dns_records: bool = True) -> set[ExtensionId]:
    """Compute the extensions required by the seed's own configuration.

    A seed in deletion requires nothing, which lets its installations be
    cleaned up.
    """
    if seed.deleting or not seed.dns_provider_type:
        return set()

    kind = DNS_RECORD_KIND if use_dns_records else DNS_PROVIDER_KIND
    return {ExtensionId(kind, seed.dns_provider_type)}


def compute_required_extensions(
    seed: Seed,
    buckets: Iterable[BackupBucket],
    entries: Iterable[BackupEntry],
    shoots: Iterable[Shoot],
    registrations: list[ControllerRegistration],
    config: Config,
    shoot_requirements: ShootRequirementsFunc,
    stop: threading.Event | None = None,
) -> set[ExtensionId]:
    """Compute every extension the seed requires.

    Returns:
        The union of the requirements of all sources.

    """
    from_buckets, buckets_by_name = kinds_for_backup_buckets(buckets, seed.name)
    from_entries = kinds_for_backup_entries(entries, buckets_by_name, seed.name)
    from_shoots = kinds_for_shoots(shoots, seed, registrations, config, shoot_requirements, stop)
    from_seed = kinds_for_seed(seed, use_dns_records=config.use_dns_records)

    required = from_buckets | from_entries | from_shoots | from_seed
    ic(sorted(str(extension_id) for extension_id in required))
    return required
