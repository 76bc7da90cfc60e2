"""
Pydantic models for service descriptors.
"""

import re
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from emudock.exceptions import ConfigError, ValidationError
from emudock.services.catalog import get_emulator

_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")


class ServiceDescriptor(BaseModel):
    """One emulated service: name, host/container port and enabled flag."""

    model_config = ConfigDict(frozen=True)

    name: str
    port: int = Field(ge=1, le=65535)
    enabled: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v):
        """Names are case-insensitive and stored lower-case."""
        if not isinstance(v, str):
            raise ValueError("service name must be a string")
        name = v.strip().lower()
        if not _NAME_PATTERN.match(name):
            raise ValueError(f"invalid service name {v!r}")
        return name

    @property
    def port_mapping(self) -> str:
        """Compose port mapping for this service (host and container port are equal)."""
        return f"{self.port}:{self.port}"


class DescriptorSet:
    """Immutable, name-keyed collection of service descriptors.

    Duplicate names are rejected here. Duplicate ports are not: they are a
    rendering-time ``ValidationError`` (see :func:`validate_ports`).
    """

    def __init__(self, descriptors: Iterable[ServiceDescriptor]):
        items: dict[str, ServiceDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in items:
                raise ConfigError(f"Service '{descriptor.name}' is defined more than once")
            items[descriptor.name] = descriptor
        self._items = items

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], source: str | None = None) -> "DescriptorSet":
        """Build a descriptor set from ``{name: port}`` or ``{name: {port, enabled}}``.

        A service given without a port takes its catalog default.

        Raises:
            ConfigError: If an entry is malformed
        """
        if not isinstance(mapping, Mapping):
            raise ConfigError(
                f"'services' must be a mapping of name to port, got {type(mapping).__name__}",
                source=source,
            )

        descriptors = []
        for name, entry in mapping.items():
            if isinstance(entry, bool):
                # "auth: false" reads naturally as "auth disabled"
                entry = {"enabled": entry}
            elif isinstance(entry, int):
                entry = {"port": entry}
            elif entry is None:
                entry = {}
            elif not isinstance(entry, Mapping):
                raise ConfigError(
                    f"Service '{name}': expected a port number or a mapping, got {type(entry).__name__}",
                    source=source,
                )

            data = dict(entry)
            if "port" not in data:
                spec = get_emulator(str(name).lower())
                if spec is None:
                    raise ConfigError(
                        f"Service '{name}': 'port' is required for emulators without a known default",
                        source=source,
                    )
                data["port"] = spec.default_port

            unknown = set(data) - {"port", "enabled"}
            if unknown:
                raise ConfigError(
                    f"Service '{name}': unknown field(s) {', '.join(sorted(unknown))}",
                    source=source,
                )

            try:
                descriptors.append(ServiceDescriptor(name=name, **data))
            except PydanticValidationError as exc:
                problems = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc']) or 'name'}: {err['msg']}"
                    for err in exc.errors()
                )
                raise ConfigError(f"Service '{name}': {problems}", source=source) from exc

        try:
            return cls(descriptors)
        except ConfigError as exc:
            raise ConfigError(str(exc), source=source) from exc

    def __iter__(self) -> Iterator[ServiceDescriptor]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __getitem__(self, name: str) -> ServiceDescriptor:
        return self._items[name]

    def __repr__(self) -> str:
        inner = ", ".join(
            f"{d.name}:{d.port}" + ("" if d.enabled else "(disabled)") for d in self
        )
        return f"DescriptorSet({{{inner}}})"

    def enabled(self) -> list[ServiceDescriptor]:
        """Enabled descriptors, ordered by port then name."""
        return sorted((d for d in self if d.enabled), key=lambda d: (d.port, d.name))

    def ports(self) -> list[int]:
        """Enabled ports, ascending."""
        return [d.port for d in self.enabled()]

    def names(self) -> list[str]:
        """Enabled service names, alphabetical."""
        return sorted(d.name for d in self if d.enabled)


class StackDefinition(BaseModel):
    """Everything read from a descriptor file."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    descriptors: DescriptorSet
    project_id: str | None = None


def validate_ports(descriptors: Iterable[ServiceDescriptor]) -> None:
    """Ensure no two enabled services claim the same port.

    Raises:
        ValidationError: For the lowest conflicting port, naming every claimant
    """
    claims: dict[int, list[str]] = {}
    for descriptor in descriptors:
        if descriptor.enabled:
            claims.setdefault(descriptor.port, []).append(descriptor.name)

    for port in sorted(claims):
        if len(claims[port]) > 1:
            raise ValidationError(port, sorted(claims[port]))
