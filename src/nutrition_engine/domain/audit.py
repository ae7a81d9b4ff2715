"""Audit domain models."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class AuditEvent:
    """A tenant-scoped change to a calculation or plan record."""

    tenant_id: UUID
    actor_id: UUID | None
    entity_type: str
    entity_id: UUID
    action: str
    description: str
    old_values: dict[str, object] | None = None
    new_values: dict[str, object] | None = None

    @property
    def changed_fields(self) -> tuple[str, ...]:
        """Return summary keys whose value differs between old and new."""
        old = self.old_values or {}
        new = self.new_values or {}
        keys = list(dict.fromkeys([*old, *new]))
        return tuple(key for key in keys if old.get(key) != new.get(key))
