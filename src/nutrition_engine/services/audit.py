"""Audit trail for calculations and plan assignment changes."""

import logging
from dataclasses import dataclass, replace
from typing import Protocol
from uuid import UUID

from nutrition_engine.domain.audit import AuditEvent

_logger = logging.getLogger(__name__)


class AuditRepository(Protocol):
    """Persistence interface for audit events."""

    def create_event(self, event: AuditEvent) -> None:
        """Store an audit event."""


@dataclass
class AuditService:
    """Builds audit events with a readable description and stores them."""

    repository: AuditRepository

    def record_calculation(  # noqa: PLR0913
        self,
        tenant_id: UUID,
        actor_id: UUID | None,
        entity_type: str,
        menu_id: UUID,
        before: dict[str, object] | None,
        after: dict[str, object],
    ) -> AuditEvent:
        """Record a nutrition or cost recalculation of a menu."""
        event = AuditEvent(
            tenant_id=tenant_id,
            actor_id=actor_id,
            entity_type=entity_type,
            entity_id=menu_id,
            action="CALCULATE" if before is None else "RECALCULATE",
            description="",
            old_values=before,
            new_values=after,
        )
        if before is None:
            description = f"Calculated {entity_type} for menu {menu_id}"
        else:
            changed = ", ".join(event.changed_fields) or "nothing"
            description = (
                f"Recalculated {entity_type} for menu {menu_id}; changed: {changed}"
            )
        return self._store(replace(event, description=description))

    def record_assignment(  # noqa: PLR0913
        self,
        tenant_id: UUID,
        actor_id: UUID | None,
        assignment_id: UUID,
        action: str,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> AuditEvent:
        """Record a create, update or delete of a plan assignment."""
        summary = after or before or {}
        description = (
            f"{action.capitalize()} assignment {summary.get('meal_type', '')} "
            f"on {summary.get('assigned_date', '')}"
        ).strip()
        return self._store(
            AuditEvent(
                tenant_id=tenant_id,
                actor_id=actor_id,
                entity_type="menu_plan_assignment",
                entity_id=assignment_id,
                action=action.upper(),
                description=description,
                old_values=before,
                new_values=after,
            )
        )

    def _store(self, event: AuditEvent) -> AuditEvent:
        self.repository.create_event(event)
        _logger.debug(
            "Audit event: %s %s %s", event.action, event.entity_type, event.entity_id
        )
        return event

