"""Extension requirements of individual shoots.

This module derives which extension kind/type combinations a shoot needs
on its seed. The reconciler calls ``compute_required_extensions`` once per
shoot; callers may replace it with their own function of the same shape.
"""

from collections.abc import Iterable
from typing import Protocol

from seed_extensions.exceptions import IncompleteDNSConfigError
from seed_extensions.models import (
    BACKUP_BUCKET_KIND,
    BACKUP_ENTRY_KIND,
    CONTAINER_RUNTIME_KIND,
    CONTROL_PLANE_KIND,
    DNS_PROVIDER_KIND,
    DNS_RECORD_KIND,
    DNS_UNMANAGED,
    EXTENSION_KIND,
    INFRASTRUCTURE_KIND,
    NETWORK_KIND,
    OPERATING_SYSTEM_CONFIG_KIND,
    WORKER_KIND,
    ControllerRegistration,
    Domain,
    ExtensionId,
    Seed,
    Shoot,
)


class ShootRequirementsFunc(Protocol):
    """Signature of a per-shoot requirement function."""

    def __call__(
        self,
        shoot: Shoot,
        seed: Seed,
        registrations: Iterable[ControllerRegistration],
        internal_domain: Domain | None,
        external_domain: Domain | None,
        use_dns_records: bool,
    ) -> set[ExtensionId]: ...


def construct_external_domain(shoot: Shoot, default_domains: Iterable[Domain]) -> Domain:
    """Determine the external domain of a shoot.

    The primary DNS provider of the shoot manages its domain. Without a
    primary provider, the most specific default domain the shoot domain
    belongs to is used.

    Args:
        shoot: The shoot.
        default_domains: The garden's default domains.

    Returns:
        The external domain of the shoot.

    Raises:
        IncompleteDNSConfigError: If the shoot has no domain or no provider
            can be determined for it.

    """
    if not shoot.dns_domain:
        raise IncompleteDNSConfigError(f"shoot {shoot.key} does not specify a DNS domain")

    for provider in shoot.dns_providers:
        if provider.primary and provider.type:
            return Domain(domain=shoot.dns_domain, provider=provider.type)

    candidates = [
        default
        for default in default_domains
        if shoot.dns_domain == default.domain or shoot.dns_domain.endswith(f".{default.domain}")
    ]
    if not candidates:
        raise IncompleteDNSConfigError(
            f"shoot {shoot.key} has no primary DNS provider and domain {shoot.dns_domain!r} "
            "does not belong to a default domain"
        )
    best = max(candidates, key=lambda default: len(default.domain))
    return Domain(domain=shoot.dns_domain, provider=best.provider)


def _dns_id(provider_type: str, use_dns_records: bool) -> ExtensionId:
    return ExtensionId(DNS_RECORD_KIND if use_dns_records else DNS_PROVIDER_KIND, provider_type)


def compute_required_extensions(
    shoot: Shoot,
    seed: Seed,
    registrations: Iterable[ControllerRegistration],
    internal_domain: Domain | None,
    external_domain: Domain | None,
    use_dns_records: bool,
) -> set[ExtensionId]:
    """Compute the extensions a shoot requires on its seed.

    Args:
        shoot: The shoot.
        seed: The seed the shoot runs on.
        registrations: All ControllerRegistrations, used to find globally
            enabled extensions.
        internal_domain: The garden's internal domain, if any.
        external_domain: The shoot's external domain, if it could be determined.
        use_dns_records: Require DNSRecord instead of DNSProvider extensions.

    Returns:
        The set of required extension identities.

    """
    required: set[ExtensionId] = set()

    if seed.backup_provider:
        required.add(ExtensionId(BACKUP_BUCKET_KIND, seed.backup_provider))
        required.add(ExtensionId(BACKUP_ENTRY_KIND, seed.backup_provider))

    # The seed's control plane extension may come with webhooks that configure
    # the exposure of shoot control planes.
    if seed.provider_type:
        required.add(ExtensionId(CONTROL_PLANE_KIND, seed.provider_type))

    if shoot.provider_type:
        required.add(ExtensionId(CONTROL_PLANE_KIND, shoot.provider_type))
        required.add(ExtensionId(INFRASTRUCTURE_KIND, shoot.provider_type))
        required.add(ExtensionId(WORKER_KIND, shoot.provider_type))
    if shoot.networking_type:
        required.add(ExtensionId(NETWORK_KIND, shoot.networking_type))

    disabled: set[ExtensionId] = set()
    for extension in shoot.extensions:
        extension_id = ExtensionId(EXTENSION_KIND, extension.type)
        if extension.disabled:
            disabled.add(extension_id)
        else:
            required.add(extension_id)

    for worker in shoot.workers:
        if worker.machine_image:
            required.add(ExtensionId(OPERATING_SYSTEM_CONFIG_KIND, worker.machine_image))
        for runtime in worker.container_runtimes:
            required.add(ExtensionId(CONTAINER_RUNTIME_KIND, runtime))

    if seed.shoot_dns_enabled:
        for provider in shoot.dns_providers:
            if provider.type and provider.type != DNS_UNMANAGED:
                required.add(_dns_id(provider.type, use_dns_records))
        for domain in (internal_domain, external_domain):
            if domain is not None and domain.provider != DNS_UNMANAGED:
                required.add(_dns_id(domain.provider, use_dns_records))

    for registration in registrations:
        for resource in registration.resources:
            extension_id = resource.extension_id
            if resource.kind == EXTENSION_KIND and resource.globally_enabled and extension_id not in disabled:
                required.add(extension_id)

    return required
