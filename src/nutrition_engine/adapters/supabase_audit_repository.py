"""Supabase repository for audit events."""

from dataclasses import dataclass

from supabase import Client

from nutrition_engine.domain.audit import AuditEvent
from nutrition_engine.services.audit import AuditRepository


@dataclass
class SupabaseAuditRepository(AuditRepository):
    """Writes audit events to the shared audit_logs table."""

    client: Client

    def create_event(self, event: AuditEvent) -> None:
        """Insert an audit log row for the event's tenant."""
        self.client.table("audit_logs").insert(
            {
                "sppg_id": str(event.tenant_id),
                "user_id": str(event.actor_id) if event.actor_id else None,
                "action": event.action,
                "entity_type": event.entity_type,
                "entity_id": str(event.entity_id),
                "description": event.description,
                "old_values": event.old_values,
                "new_values": event.new_values,
            }
        ).execute()
