"""Supabase repository for menu plans and assignments."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from supabase import Client

from nutrition_engine.domain.errors import ConcurrentModificationError
from nutrition_engine.domain.plans import (
    AssignmentDraft,
    MenuPlanRecord,
    PlanAssignment,
    PlanMetrics,
)
from nutrition_engine.services.plans import PlanRepository, utc_day

_PLAN_COLUMNS = (
    "id, sppg_id, plan_name, start_date, end_date, total_days, total_menus, "
    "total_estimated_cost, average_cost_per_day, active_days, version"
)
_ASSIGNMENT_COLUMNS = (
    "id, menu_plan_id, menu_id, assigned_date, meal_type, planned_portions, "
    "estimated_cost, notes"
)


@dataclass
class SupabasePlanRepository(PlanRepository):
    """Supabase implementation for menu plans."""

    client: Client

    def get_plan(self, tenant_id: UUID, plan_id: UUID) -> MenuPlanRecord | None:
        """Return a plan if it belongs to the tenant."""
        response = (
            self.client.table("menu_plans")
            .select(_PLAN_COLUMNS)
            .eq("id", str(plan_id))
            .eq("sppg_id", str(tenant_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_plan(response.data[0])

    def list_assignments(self, plan_id: UUID) -> list[PlanAssignment]:
        """Return all assignments for a plan ordered by date."""
        response = (
            self.client.table("menu_assignments")
            .select(_ASSIGNMENT_COLUMNS)
            .eq("menu_plan_id", str(plan_id))
            .order("assigned_date", desc=False)
            .execute()
        )
        return [_parse_assignment(row) for row in response.data or []]

    def get_assignment(self, assignment_id: UUID) -> PlanAssignment | None:
        """Return an assignment by id."""
        response = (
            self.client.table("menu_assignments")
            .select(_ASSIGNMENT_COLUMNS)
            .eq("id", str(assignment_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_assignment(response.data[0])

    def create_assignment(
        self, plan_id: UUID, draft: AssignmentDraft
    ) -> PlanAssignment:
        """Create an assignment row."""
        response = (
            self.client.table("menu_assignments")
            .insert(
                {
                    "menu_plan_id": str(plan_id),
                    "menu_id": str(draft.menu_id),
                    "assigned_date": draft.assigned_date.isoformat(),
                    "meal_type": draft.meal_type,
                    "planned_portions": draft.planned_portions,
                    "estimated_cost": draft.estimated_cost,
                    "notes": draft.notes,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create menu assignment")
        return _parse_assignment(response.data[0])

    def update_assignment(self, assignment: PlanAssignment) -> PlanAssignment:
        """Overwrite an assignment row."""
        response = (
            self.client.table("menu_assignments")
            .update(_assignment_payload(assignment))
            .eq("id", str(assignment.id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update menu assignment")
        return _parse_assignment(response.data[0])

    def delete_assignment(self, assignment_id: UUID) -> None:
        """Delete an assignment row."""
        self.client.table("menu_assignments").delete().eq(
            "id", str(assignment_id)
        ).execute()

    def restore_assignment(self, assignment: PlanAssignment) -> PlanAssignment:
        """Re-insert a deleted assignment row with its original id."""
        response = (
            self.client.table("menu_assignments")
            .insert(
                {
                    "id": str(assignment.id),
                    "menu_plan_id": str(assignment.plan_id),
                    **_assignment_payload(assignment),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to restore menu assignment")
        return _parse_assignment(response.data[0])

    def update_plan_metrics(
        self, plan_id: UUID, metrics: PlanMetrics, expected_version: int
    ) -> MenuPlanRecord:
        """Store derived metrics if the plan version still matches."""
        response = (
            self.client.table("menu_plans")
            .update(
                {
                    "total_days": metrics.total_days,
                    "total_menus": metrics.total_menus,
                    "total_estimated_cost": metrics.total_estimated_cost,
                    "average_cost_per_day": metrics.average_cost_per_day,
                    "active_days": metrics.active_days,
                    "version": expected_version + 1,
                }
            )
            .eq("id", str(plan_id))
            .eq("version", expected_version)
            .execute()
        )
        if not response.data:
            raise ConcurrentModificationError("menu_plans", plan_id, expected_version)
        return _parse_plan(response.data[0])


def _assignment_payload(assignment: PlanAssignment) -> dict[str, object]:
    return {
        "menu_id": str(assignment.menu_id),
        "assigned_date": utc_day(assignment.assigned_date).isoformat(),
        "meal_type": assignment.meal_type,
        "planned_portions": assignment.planned_portions,
        "estimated_cost": assignment.estimated_cost,
        "notes": assignment.notes,
    }


def _parse_date(value: object) -> date:
    return date.fromisoformat(str(value)[:10])


def _parse_plan(row: dict[str, object]) -> MenuPlanRecord:
    metrics = None
    if row.get("total_days") is not None:
        metrics = PlanMetrics(
            total_days=int(row["total_days"]),
            total_menus=int(row.get("total_menus") or 0),
            total_estimated_cost=float(row.get("total_estimated_cost") or 0.0),
            average_cost_per_day=float(row.get("average_cost_per_day") or 0.0),
            active_days=int(row.get("active_days") or 0),
        )
    return MenuPlanRecord(
        id=UUID(row["id"]),
        tenant_id=UUID(row["sppg_id"]),
        name=str(row.get("plan_name", "")),
        start_date=_parse_date(row["start_date"]),
        end_date=_parse_date(row["end_date"]),
        metrics=metrics,
        version=int(row.get("version") or 0),
    )


def _parse_assignment(row: dict[str, object]) -> PlanAssignment:
    estimated_cost = row.get("estimated_cost")
    return PlanAssignment(
        id=UUID(row["id"]),
        plan_id=UUID(row["menu_plan_id"]),
        menu_id=UUID(row["menu_id"]),
        assigned_date=_parse_date(row["assigned_date"]),
        meal_type=str(row.get("meal_type", "")),
        planned_portions=int(row.get("planned_portions") or 0),
        estimated_cost=float(estimated_cost) if estimated_cost is not None else None,
        notes=row.get("notes"),
    )
