"""Per-operation, per-schema write permissions."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .errors import ConfigurationError
from .models import ParsedStatement, gate_for


@dataclass(frozen=True, slots=True)
class OperationPolicy:
    """Global flag for one gate plus per-schema overrides."""

    allowed: bool = False
    schemas: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "schemas", MappingProxyType(dict(self.schemas)))

    def allows(self, schema: str | None) -> bool:
        if not schema:
            return self.allowed
        return self.schemas.get(schema, self.allowed)


@dataclass(frozen=True, slots=True)
class PermissionTable:
    """Read-only permission lookup consulted before any write executes."""

    insert: OperationPolicy = field(default_factory=OperationPolicy)
    update: OperationPolicy = field(default_factory=OperationPolicy)
    delete: OperationPolicy = field(default_factory=OperationPolicy)
    ddl: OperationPolicy = field(default_factory=OperationPolicy)

    def is_allowed(self, kind: str, schema: str | None) -> bool:
        """Return whether ``kind`` may run against ``schema``.

        Kinds without a gate (reads, ``use``, ``show``...) are always allowed;
        ``create``/``alter``/``drop``/``truncate`` share the ``ddl`` policy.
        """

        gate = gate_for(kind)
        if gate is None:
            return True
        policy: OperationPolicy = getattr(self, gate)
        return policy.allows(schema)

    def denied(self, parsed: ParsedStatement) -> str | None:
        """First gate in ``parsed`` that is not allowed, or ``None``."""

        for gate in parsed.write_gates:
            if not self.is_allowed(gate, parsed.schema):
                return gate
        return None


def parse_schema_permissions(value: str | None) -> dict[str, bool]:
    """Parse ``schema:true,other:false`` into a mapping."""

    permissions: dict[str, bool] = {}
    if not value:
        return permissions
    for pair in value.split(","):
        if not pair.strip():
            continue
        schema, sep, flag = pair.partition(":")
        schema = schema.strip()
        flag = flag.strip().lower()
        if not sep or not schema or flag not in {"true", "false"}:
            raise ConfigurationError(
                f"Invalid schema permission '{pair.strip()}'. Expected 'schema:true' or 'schema:false'."
            )
        permissions[schema] = flag == "true"
    return permissions


__all__ = ["OperationPolicy", "PermissionTable", "parse_schema_permissions"]
