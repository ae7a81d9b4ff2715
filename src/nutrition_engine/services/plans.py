"""Menu plan metrics and assignment management."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import UUID

from nutrition_engine.domain.errors import (
    ConcurrentModificationError,
    InvalidAssignmentError,
    InvalidDateRangeError,
    PlanNotFoundError,
)
from nutrition_engine.domain.inventory import MenuRecord
from nutrition_engine.domain.plans import (
    AssignmentDraft,
    MenuPlanRecord,
    PlanAssignment,
    PlanCoverage,
    PlanMetrics,
    PlanSpan,
)
from nutrition_engine.services.audit import AuditService
from nutrition_engine.services.concurrency import retry_on_conflict
from nutrition_engine.services.menus import MenuRepository, require_menu

_PERCENT = 100.0

_logger = logging.getLogger(__name__)


class PlanRepository(Protocol):
    """Persistence interface for menu plans and their assignments."""

    def get_plan(self, tenant_id: UUID, plan_id: UUID) -> MenuPlanRecord | None:
        """Return a plan if visible to the tenant."""

    def list_assignments(self, plan_id: UUID) -> list[PlanAssignment]:
        """Return all assignments of a plan."""

    def get_assignment(self, assignment_id: UUID) -> PlanAssignment | None:
        """Return an assignment by id."""

    def create_assignment(
        self, plan_id: UUID, draft: AssignmentDraft
    ) -> PlanAssignment:
        """Create an assignment row and return it."""

    def update_assignment(self, assignment: PlanAssignment) -> PlanAssignment:
        """Overwrite an assignment row and return it."""

    def delete_assignment(self, assignment_id: UUID) -> None:
        """Delete an assignment row."""

    def restore_assignment(self, assignment: PlanAssignment) -> PlanAssignment:
        """Re-insert a deleted assignment under its original id."""

    def update_plan_metrics(
        self, plan_id: UUID, metrics: PlanMetrics, expected_version: int
    ) -> MenuPlanRecord:
        """Store derived metrics if the plan version is still expected."""


def utc_day(value: date | datetime) -> date:
    """Return the UTC calendar day of a date or datetime.

    Naive datetimes are read as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(UTC).date()
    return value


def plan_total_days(plan_span: PlanSpan) -> int:
    """Return the inclusive number of calendar days in a span."""
    start = utc_day(plan_span.start)
    end = utc_day(plan_span.end)
    if end < start:
        raise InvalidDateRangeError(start, end)
    return (end - start).days + 1


def recalc_plan_metrics(
    plan_span: PlanSpan, assignments: Sequence[PlanAssignment]
) -> PlanMetrics:
    """Recompute derived plan metrics from the full assignment list.

    The daily average divides by the number of distinct assignment dates,
    not by the span length.
    """
    total_days = plan_total_days(plan_span)
    total_cost = sum(
        (assignment.estimated_cost or 0.0 for assignment in assignments), 0.0
    )
    active_days = len({utc_day(assignment.assigned_date) for assignment in assignments})
    return PlanMetrics(
        total_days=total_days,
        total_menus=len(assignments),
        total_estimated_cost=total_cost,
        average_cost_per_day=total_cost / active_days if active_days else 0.0,
        active_days=active_days,
    )


def compute_plan_coverage(
    plan_span: PlanSpan, assignments: Sequence[PlanAssignment]
) -> PlanCoverage:
    """Return portion totals and the share of span days that have a menu."""
    total_days = plan_total_days(plan_span)
    total_portions = sum(assignment.planned_portions for assignment in assignments)
    total_cost = sum(
        (assignment.estimated_cost or 0.0 for assignment in assignments), 0.0
    )
    days_with_assignments = len(
        {utc_day(assignment.assigned_date) for assignment in assignments}
    )
    return PlanCoverage(
        total_planned_portions=total_portions,
        average_cost_per_portion=total_cost / total_portions if total_portions else 0.0,
        days_with_assignments=days_with_assignments,
        coverage_percentage=days_with_assignments / total_days * _PERCENT,
    )


@dataclass
class MenuPlanService:
    """Service for assignment changes; every change refreshes plan metrics."""

    repository: PlanRepository
    menu_repository: MenuRepository
    audit_service: AuditService
    retry_attempts: int = 2

    def create_assignment(  # noqa: PLR0913
        self,
        tenant_id: UUID,
        plan_id: UUID,
        *,
        menu_id: UUID,
        assigned_date: date | datetime,
        meal_type: str,
        planned_portions: int,
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> tuple[PlanAssignment, MenuPlanRecord]:
        """Create an assignment priced from the menu and refresh metrics.

        The menu's meal type, when set, must match ``meal_type``.
        """
        plan = self._require_plan(tenant_id, plan_id)
        day = utc_day(assigned_date)
        _validate_meal_type(meal_type)
        _validate_portions(planned_portions)
        _validate_within_span(plan, day)
        self._ensure_free_slot(plan_id, day, meal_type, exclude_id=None)
        menu = require_menu(self.menu_repository, tenant_id, menu_id)
        _validate_menu_meal_type(menu, meal_type)
        assignment = self.repository.create_assignment(
            plan_id,
            AssignmentDraft(
                menu_id=menu_id,
                assigned_date=day,
                meal_type=meal_type,
                planned_portions=planned_portions,
                estimated_cost=_estimate_cost(menu, planned_portions),
                notes=notes,
            ),
        )
        updated_plan = self._refresh_or_revert(
            tenant_id,
            plan_id,
            revert=lambda: self.repository.delete_assignment(assignment.id),
        )
        self._audit(tenant_id, actor_id, assignment.id, "create", None, assignment)
        return assignment, updated_plan

    def update_assignment(  # noqa: PLR0913
        self,
        tenant_id: UUID,
        assignment_id: UUID,
        *,
        menu_id: UUID | None = None,
        assigned_date: date | datetime | None = None,
        meal_type: str | None = None,
        planned_portions: int | None = None,
        notes: str | None = None,
        clear_notes: bool = False,
        actor_id: UUID | None = None,
    ) -> tuple[PlanAssignment, MenuPlanRecord]:
        """Apply changes to an assignment, re-price it and refresh metrics.

        Arguments left as None keep their current value; ``clear_notes``
        removes the notes.
        """
        current = self._require_assignment(assignment_id)
        plan = self._require_plan(tenant_id, current.plan_id)
        if clear_notes:
            new_notes = None
        else:
            new_notes = notes if notes is not None else current.notes
        changed = replace(
            current,
            menu_id=menu_id if menu_id is not None else current.menu_id,
            assigned_date=utc_day(
                assigned_date if assigned_date is not None else current.assigned_date
            ),
            meal_type=meal_type if meal_type is not None else current.meal_type,
            planned_portions=(
                planned_portions
                if planned_portions is not None
                else current.planned_portions
            ),
            notes=new_notes,
        )
        _validate_meal_type(changed.meal_type)
        _validate_portions(changed.planned_portions)
        _validate_within_span(plan, changed.assigned_date)
        self._ensure_free_slot(
            plan.id, changed.assigned_date, changed.meal_type, exclude_id=current.id
        )
        menu = require_menu(self.menu_repository, tenant_id, changed.menu_id)
        _validate_menu_meal_type(menu, changed.meal_type)
        saved = self.repository.update_assignment(
            replace(
                changed,
                estimated_cost=_estimate_cost(menu, changed.planned_portions),
            )
        )
        updated_plan = self._refresh_or_revert(
            tenant_id,
            plan.id,
            revert=lambda: self.repository.update_assignment(current),
        )
        self._audit(tenant_id, actor_id, saved.id, "update", current, saved)
        return saved, updated_plan

    def delete_assignment(
        self,
        tenant_id: UUID,
        assignment_id: UUID,
        *,
        actor_id: UUID | None = None,
    ) -> MenuPlanRecord:
        """Delete an assignment and refresh metrics."""
        current = self._require_assignment(assignment_id)
        plan = self._require_plan(tenant_id, current.plan_id)
        self.repository.delete_assignment(assignment_id)
        updated_plan = self._refresh_or_revert(
            tenant_id,
            plan.id,
            revert=lambda: self.repository.restore_assignment(current),
        )
        self._audit(tenant_id, actor_id, current.id, "delete", current, None)
        return updated_plan

    def refresh_metrics(self, tenant_id: UUID, plan_id: UUID) -> MenuPlanRecord:
        """Recompute and store plan metrics, retrying on version conflicts."""
        updated = retry_on_conflict(
            lambda: self._refresh_once(tenant_id, plan_id),
            attempts=self.retry_attempts,
            action=f"plan_metrics:{plan_id}",
        )
        if updated.metrics is not None:
            _logger.info(
                "Plan metrics refreshed: plan_id=%s menus=%s total=%.2f avg_day=%.2f",
                plan_id,
                updated.metrics.total_menus,
                updated.metrics.total_estimated_cost,
                updated.metrics.average_cost_per_day,
            )
        return updated

    def get_coverage(self, tenant_id: UUID, plan_id: UUID) -> PlanCoverage:
        """Return portion and coverage figures for a plan."""
        plan = self._require_plan(tenant_id, plan_id)
        return compute_plan_coverage(
            plan.span, self.repository.list_assignments(plan_id)
        )

    def _refresh_or_revert(
        self, tenant_id: UUID, plan_id: UUID, revert: Callable[[], object]
    ) -> MenuPlanRecord:
        """Refresh metrics; undo the assignment change if that keeps failing."""
        try:
            return self.refresh_metrics(tenant_id, plan_id)
        except ConcurrentModificationError:
            _logger.warning(
                "Plan metrics refresh failed, reverting assignment change: plan_id=%s",
                plan_id,
            )
            revert()
            raise

    def _refresh_once(self, tenant_id: UUID, plan_id: UUID) -> MenuPlanRecord:
        plan = self._require_plan(tenant_id, plan_id)
        metrics = recalc_plan_metrics(
            plan.span, self.repository.list_assignments(plan_id)
        )
        return self.repository.update_plan_metrics(
            plan_id, metrics, expected_version=plan.version
        )

    def _require_plan(self, tenant_id: UUID, plan_id: UUID) -> MenuPlanRecord:
        plan = self.repository.get_plan(tenant_id, plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return plan

    def _require_assignment(self, assignment_id: UUID) -> PlanAssignment:
        assignment = self.repository.get_assignment(assignment_id)
        if assignment is None:
            raise PlanNotFoundError(assignment_id, field="assignment_id")
        return assignment

    def _ensure_free_slot(
        self,
        plan_id: UUID,
        day: date,
        meal_type: str,
        exclude_id: UUID | None,
    ) -> None:
        for existing in self.repository.list_assignments(plan_id):
            if existing.id == exclude_id:
                continue
            if utc_day(existing.assigned_date) == day and existing.meal_type == meal_type:
                raise InvalidAssignmentError(
                    "assigned_date",
                    f"{meal_type} already assigned on {day.isoformat()}",
                )

    def _audit(  # noqa: PLR0913
        self,
        tenant_id: UUID,
        actor_id: UUID | None,
        assignment_id: UUID,
        action: str,
        before: PlanAssignment | None,
        after: PlanAssignment | None,
    ) -> None:
        self.audit_service.record_assignment(
            tenant_id=tenant_id,
            actor_id=actor_id,
            assignment_id=assignment_id,
            action=action,
            before=_assignment_summary(before) if before else None,
            after=_assignment_summary(after) if after else None,
        )


def _validate_meal_type(meal_type: str) -> None:
    if not meal_type.strip():
        raise InvalidAssignmentError("meal_type", "must not be empty")


def _validate_menu_meal_type(menu: MenuRecord, meal_type: str) -> None:
    if menu.meal_type is not None and menu.meal_type != meal_type:
        raise InvalidAssignmentError(
            "meal_type",
            f"menu '{menu.name}' is for {menu.meal_type}, not {meal_type}",
        )


def _validate_portions(planned_portions: int) -> None:
    if planned_portions <= 0:
        raise InvalidAssignmentError(
            "planned_portions", f"must be positive, got {planned_portions}"
        )


def _validate_within_span(plan: MenuPlanRecord, day: date) -> None:
    if day < utc_day(plan.start_date) or day > utc_day(plan.end_date):
        raise InvalidAssignmentError(
            "assigned_date",
            f"{day.isoformat()} is outside {plan.start_date.isoformat()}"
            f" to {plan.end_date.isoformat()}",
        )


def _estimate_cost(menu: MenuRecord, planned_portions: int) -> float:
    return (menu.cost_per_serving or 0.0) * planned_portions


def _assignment_summary(assignment: PlanAssignment) -> dict[str, object]:
    return {
        "menu_id": str(assignment.menu_id),
        "assigned_date": utc_day(assignment.assigned_date).isoformat(),
        "meal_type": assignment.meal_type,
        "planned_portions": assignment.planned_portions,
        "estimated_cost": assignment.estimated_cost,
    }
