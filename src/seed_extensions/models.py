"""Data models for seed-extensions.

This module provides type-safe, read-only views over the JSON documents
served by the garden API (``core.gardener.cloud/v1beta1``), replacing
loosely-typed dictionaries with proper Python data classes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

# Extension resource kinds
BACKUP_BUCKET_KIND = "BackupBucket"
BACKUP_ENTRY_KIND = "BackupEntry"
CONTAINER_RUNTIME_KIND = "ContainerRuntime"
CONTROL_PLANE_KIND = "ControlPlane"
DNS_PROVIDER_KIND = "DNSProvider"
DNS_RECORD_KIND = "DNSRecord"
EXTENSION_KIND = "Extension"
INFRASTRUCTURE_KIND = "Infrastructure"
NETWORK_KIND = "Network"
OPERATING_SYSTEM_CONFIG_KIND = "OperatingSystemConfig"
WORKER_KIND = "Worker"

# DNS provider type that is never backed by an extension controller
DNS_UNMANAGED = "unmanaged"

# Condition set by extension controllers on installations they still need
CONDITION_REQUIRED = "Required"


class ExtensionId(NamedTuple):
    """Identity of an extension requirement.

    Attributes:
        kind: The extension resource kind (e.g. 'BackupBucket').
        type: The provider type (e.g. 'aws').

    """

    kind: str
    type: str

    def __str__(self) -> str:
        return f"{self.kind}/{self.type}"


class DeploymentPolicy(str, Enum):
    """Deployment policy of a ControllerRegistration.

    Inherits from str to allow direct comparison with API values.
    ``OnDemand`` registrations are never deployed unconditionally, only
    when a required extension asks for them.
    """

    ON_DEMAND = "OnDemand"
    ALWAYS = "Always"
    ALWAYS_EXCEPT_NO_SHOOTS = "AlwaysExceptNoShoots"

    @classmethod
    def _missing_(cls, value: object) -> "DeploymentPolicy":
        return cls.ON_DEMAND


def _metadata(obj: dict[str, Any]) -> dict[str, Any]:
    return obj.get("metadata") or {}


def _spec(obj: dict[str, Any]) -> dict[str, Any]:
    return obj.get("spec") or {}


def _is_deleting(obj: dict[str, Any]) -> bool:
    return _metadata(obj).get("deletionTimestamp") is not None


@dataclass(frozen=True, slots=True)
class Domain:
    """A DNS domain together with the provider type that manages it."""

    domain: str
    provider: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Domain":
        return cls(domain=str(data["domain"]), provider=str(data["provider"]))


@dataclass(frozen=True, slots=True)
class Seed:
    """A seed cluster hosting shoot control planes and extension controllers.

    Attributes:
        name: The seed name.
        resource_version: Resource version observed when reading the seed.
        labels: The seed's metadata labels, used for seed selectors.
        deleting: Whether the seed carries a deletion timestamp.
        provider_type: The infrastructure provider type of the seed.
        backup_provider: Provider type of the seed backup, if configured.
        dns_provider_type: Type of the seed's own DNS provider, if configured.
        shoot_dns_enabled: Whether shoots on this seed may manage DNS.
        spec: The raw spec, used for drift detection hashing.

    """

    name: str
    resource_version: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    deleting: bool = False
    provider_type: str = ""
    backup_provider: str | None = None
    dns_provider_type: str | None = None
    shoot_dns_enabled: bool = True
    spec: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Seed":
        meta = _metadata(obj)
        spec = _spec(obj)
        backup = spec.get("backup") or {}
        dns_provider = (spec.get("dns") or {}).get("provider") or {}
        shoot_dns = ((spec.get("settings") or {}).get("shootDNS")) or {}
        return cls(
            name=meta["name"],
            resource_version=meta.get("resourceVersion", ""),
            labels=dict(meta.get("labels") or {}),
            deleting=_is_deleting(obj),
            provider_type=(spec.get("provider") or {}).get("type", ""),
            backup_provider=backup.get("provider"),
            dns_provider_type=dns_provider.get("type"),
            shoot_dns_enabled=shoot_dns.get("enabled", True),
            spec=spec,
        )


@dataclass(frozen=True, slots=True)
class ControllerResource:
    """An extension kind/type combination a registration can serve."""

    kind: str
    type: str
    globally_enabled: bool = False

    @property
    def extension_id(self) -> ExtensionId:
        return ExtensionId(self.kind, self.type)


@dataclass(frozen=True, slots=True)
class ControllerRegistration:
    """A registered extension controller.

    Attributes:
        name: The registration name.
        resource_version: Resource version observed when reading the object.
        resources: Extension resources this controller can satisfy.
        policy: The deployment policy.
        seed_selector: Raw label selector restricting eligible seeds, if any.
        deployment_refs: Names of referenced ControllerDeployments.
        deleting: Whether the registration carries a deletion timestamp.
        spec: The raw spec, used for drift detection hashing.

    """

    name: str
    resource_version: str = ""
    resources: tuple[ControllerResource, ...] = ()
    policy: DeploymentPolicy = DeploymentPolicy.ON_DEMAND
    seed_selector: dict[str, Any] | None = None
    deployment_refs: tuple[str, ...] = ()
    deleting: bool = False
    spec: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "ControllerRegistration":
        meta = _metadata(obj)
        spec = _spec(obj)
        deployment = spec.get("deployment") or {}
        resources = tuple(
            ControllerResource(
                kind=resource["kind"],
                type=resource["type"],
                globally_enabled=bool(resource.get("globallyEnabled", False)),
            )
            for resource in spec.get("resources") or []
        )
        return cls(
            name=meta["name"],
            resource_version=meta.get("resourceVersion", ""),
            resources=resources,
            policy=DeploymentPolicy(deployment.get("policy") or DeploymentPolicy.ON_DEMAND.value),
            seed_selector=deployment.get("seedSelector"),
            deployment_refs=tuple(ref["name"] for ref in deployment.get("deploymentRefs") or []),
            deleting=_is_deleting(obj),
            spec=spec,
        )

    @property
    def deploy_always(self) -> bool:
        return self.policy is DeploymentPolicy.ALWAYS

    @property
    def deploy_always_except_no_shoots(self) -> bool:
        return self.policy is DeploymentPolicy.ALWAYS_EXCEPT_NO_SHOOTS


@dataclass(frozen=True, slots=True)
class ControllerDeployment:
    """Opaque deployment configuration for an extension controller."""

    name: str
    resource_version: str = ""
    type: str = ""
    provider_config: Any = None

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "ControllerDeployment":
        meta = _metadata(obj)
        return cls(
            name=meta["name"],
            resource_version=meta.get("resourceVersion", ""),
            type=obj.get("type", ""),
            provider_config=obj.get("providerConfig"),
        )

    def hash_fields(self) -> dict[str, Any]:
        """Return the fields relevant for drift detection.

        ControllerDeployments have no ``spec``, so type and provider
        configuration are hashed instead.
        """
        return {"type": self.type, "providerConfig": self.provider_config}


@dataclass(frozen=True, slots=True)
class ControllerInstallation:
    """A binding of one ControllerRegistration to one seed."""

    name: str
    resource_version: str = ""
    seed_name: str = ""
    registration_name: str = ""
    deployment_name: str | None = None
    labels: dict[str, str] = field(default_factory=dict)
    deleting: bool = False
    required: bool = False

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "ControllerInstallation":
        meta = _metadata(obj)
        spec = _spec(obj)
        conditions = (obj.get("status") or {}).get("conditions") or []
        required = any(
            condition.get("type") == CONDITION_REQUIRED and condition.get("status") == "True"
            for condition in conditions
        )
        return cls(
            name=meta["name"],
            resource_version=meta.get("resourceVersion", ""),
            seed_name=(spec.get("seedRef") or {}).get("name", ""),
            registration_name=(spec.get("registrationRef") or {}).get("name", ""),
            deployment_name=(spec.get("deploymentRef") or {}).get("name"),
            labels=dict(meta.get("labels") or {}),
            deleting=_is_deleting(obj),
            required=required,
        )


@dataclass(frozen=True, slots=True)
class BackupBucket:
    """A backup bucket, optionally assigned to a seed."""

    name: str
    provider_type: str
    seed_name: str | None = None

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "BackupBucket":
        spec = _spec(obj)
        return cls(
            name=_metadata(obj)["name"],
            provider_type=(spec.get("provider") or {}).get("type", ""),
            seed_name=spec.get("seedName"),
        )


@dataclass(frozen=True, slots=True)
class BackupEntry:
    """A backup entry stored in a backup bucket."""

    name: str
    bucket_name: str
    namespace: str = ""
    seed_name: str | None = None

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "BackupEntry":
        meta = _metadata(obj)
        spec = _spec(obj)
        return cls(
            name=meta["name"],
            namespace=meta.get("namespace", ""),
            bucket_name=spec.get("bucketName", ""),
            seed_name=spec.get("seedName"),
        )


@dataclass(frozen=True, slots=True)
class Worker:
    """A shoot worker pool, reduced to what decides extension requirements."""

    name: str
    machine_image: str | None = None
    container_runtimes: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ShootExtension:
    """An extension explicitly configured on a shoot."""

    type: str
    disabled: bool = False


@dataclass(frozen=True, slots=True)
class DNSProvider:
    """A DNS provider configured on a shoot."""

    type: str | None
    primary: bool = False


@dataclass(frozen=True, slots=True)
class Shoot:
    """A tenant-managed cluster whose control plane runs on a seed.

    Attributes:
        name: The shoot name.
        namespace: The project namespace of the shoot.
        seed_name: Seed assigned in the spec.
        status_seed_name: Seed recorded in the status (differs during migration).
        uid: The shoot UID recorded in the status; empty until first provisioned.
        deleting: Whether the shoot carries a deletion timestamp.

    """

    name: str
    namespace: str = ""
    seed_name: str | None = None
    status_seed_name: str | None = None
    uid: str = ""
    deleting: bool = False
    provider_type: str = ""
    networking_type: str = ""
    workers: tuple[Worker, ...] = ()
    extensions: tuple[ShootExtension, ...] = ()
    dns_domain: str | None = None
    dns_providers: tuple[DNSProvider, ...] = ()

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Shoot":
        meta = _metadata(obj)
        spec = _spec(obj)
        status = obj.get("status") or {}
        provider = spec.get("provider") or {}
        dns = spec.get("dns") or {}

        workers = []
        for pool in provider.get("workers") or []:
            machine = pool.get("machine") or {}
            image = machine.get("image") or {}
            cri = pool.get("cri") or {}
            workers.append(
                Worker(
                    name=pool.get("name", ""),
                    machine_image=image.get("name"),
                    container_runtimes=tuple(cr["type"] for cr in cri.get("containerRuntimes") or []),
                )
            )

        return cls(
            name=meta["name"],
            namespace=meta.get("namespace", ""),
            seed_name=spec.get("seedName"),
            status_seed_name=status.get("seedName"),
            uid=status.get("uid", ""),
            deleting=_is_deleting(obj),
            provider_type=provider.get("type", ""),
            networking_type=(spec.get("networking") or {}).get("type", ""),
            workers=tuple(workers),
            extensions=tuple(
                ShootExtension(type=ext["type"], disabled=bool(ext.get("disabled", False)))
                for ext in spec.get("extensions") or []
            ),
            dns_domain=dns.get("domain"),
            dns_providers=tuple(
                DNSProvider(type=p.get("type"), primary=bool(p.get("primary", False)))
                for p in dns.get("providers") or []
            ),
        )

    @property
    def key(self) -> str:
        """The namespace/name key of the shoot."""
        return f"{self.namespace}/{self.name}"

    def is_assigned_to(self, seed_name: str) -> bool:
        """Check whether the shoot is scheduled to or still running on a seed."""
        return self.seed_name == seed_name or self.status_seed_name == seed_name


@dataclass(slots=True)
class ReconcileResult:
    """Outcome of a single seed reconciliation.

    Attributes:
        requeue_after: Seconds after which the seed should be reconciled again,
            or None for steady state.
        wanted: Final set of wanted ControllerRegistration names.
        created: Registrations for which an installation was created.
        patched: Registrations whose installation was patched.
        unchanged: Registrations whose installation was already up to date.
        skipped: Wanted registrations skipped because they are being deleted.
        deleted: Names of deleted installations.

    """

    requeue_after: float | None = None
    wanted: frozenset[str] = frozenset()
    created: list[str] = field(default_factory=list)
    patched: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def writes(self) -> int:
        """Number of mutating requests issued during the reconciliation."""
        return len(self.created) + len(self.patched) + len(self.deleted)
