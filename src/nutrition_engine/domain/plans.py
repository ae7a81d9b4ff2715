"""Domain models for menu plans."""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID


@dataclass(frozen=True)
class PlanSpan:
    """Inclusive calendar span of a menu plan."""

    start: date | datetime
    end: date | datetime


@dataclass(frozen=True)
class PlanAssignment:
    """A menu assigned to a calendar date within a plan."""

    id: UUID
    plan_id: UUID
    menu_id: UUID
    assigned_date: date | datetime
    meal_type: str
    planned_portions: int
    estimated_cost: float | None
    notes: str | None = None


@dataclass(frozen=True)
class AssignmentDraft:
    """Assignment fields before the row exists."""

    menu_id: UUID
    assigned_date: date
    meal_type: str
    planned_portions: int
    estimated_cost: float
    notes: str | None = None


@dataclass(frozen=True)
class PlanMetrics:
    """Derived rollup metrics for a plan."""

    total_days: int
    total_menus: int
    total_estimated_cost: float
    average_cost_per_day: float
    active_days: int


@dataclass(frozen=True)
class PlanCoverage:
    """Portion and coverage summary for a plan."""

    total_planned_portions: int
    average_cost_per_portion: float
    days_with_assignments: int
    coverage_percentage: float


@dataclass(frozen=True)
class MenuPlanRecord:
    """Tenant-scoped menu plan with its cached metrics."""

    id: UUID
    tenant_id: UUID
    name: str
    start_date: date
    end_date: date
    metrics: PlanMetrics | None
    version: int

    @property
    def span(self) -> PlanSpan:
        """Return the plan's calendar span."""
        return PlanSpan(start=self.start_date, end=self.end_date)
