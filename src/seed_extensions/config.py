"""Configuration loading for seed-extensions.

The configuration is read once at process start and passed by reference
into the reconciler, so several independently configured reconcilers can
coexist in one process.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from seed_extensions.exceptions import ConfigError
from seed_extensions.models import Domain

DEFAULT_MAX_SHOOT_WORKERS = 16


@dataclass(frozen=True, slots=True)
class Config:
    """Reconciler configuration.

    Attributes:
        context: Kubernetes context of the garden cluster, or None for the current one.
        use_dns_records: Require DNSRecord extensions instead of DNSProvider ones.
        internal_domain: The garden's internal domain, if any.
        default_domains: Default domains shoots may use for their external domain.
        max_shoot_workers: Upper bound of parallel per-shoot computations.

    """

    context: str | None = None
    use_dns_records: bool = True
    internal_domain: Domain | None = None
    default_domains: tuple[Domain, ...] = field(default_factory=tuple)
    max_shoot_workers: int = DEFAULT_MAX_SHOOT_WORKERS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Build a configuration from a parsed document.

        Args:
            data: The parsed configuration mapping.

        Returns:
            The validated configuration.

        Raises:
            ConfigError: If a field has an invalid value.

        """
        use_dns_records = data.get("useDNSRecords", True)
        if not isinstance(use_dns_records, bool):
            raise ConfigError(f"useDNSRecords must be a boolean, got {use_dns_records!r}")

        try:
            internal = data.get("internalDomain")
            config = cls(
                context=data.get("context"),
                use_dns_records=use_dns_records,
                internal_domain=Domain.from_dict(internal) if internal else None,
                default_domains=tuple(Domain.from_dict(d) for d in data.get("defaultDomains") or []),
                max_shoot_workers=int(data.get("maxShootWorkers", DEFAULT_MAX_SHOOT_WORKERS)),
            )
        except (KeyError, TypeError, ValueError) as err:
            raise ConfigError(f"Invalid configuration: {err!r}") from err

        if config.max_shoot_workers < 1:
            raise ConfigError("maxShootWorkers must be at least 1")
        return config


def load_config(path: str | Path | None) -> Config:
    """Load the configuration from a YAML file.

    Args:
        path: Path to the configuration file. If None, defaults are used.

    Returns:
        The loaded configuration.

    Raises:
        ConfigError: If the file does not exist, is not valid YAML, or
            does not contain a mapping.

    """
    if path is None:
        return Config()

    try:
        with open(path) as stream:
            data = yaml.safe_load(stream)
    except FileNotFoundError as err:
        raise ConfigError(f"Configuration file '{path}' does not exist") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"Configuration file '{path}' contains malformed YAML: {err}") from err

    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file '{path}' does not contain a YAML mapping")
    return Config.from_dict(data)
