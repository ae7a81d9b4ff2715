"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from uuid import UUID, uuid4

import pytest

from nutrition_engine.config import Settings
from nutrition_engine.domain.audit import AuditEvent
from nutrition_engine.domain.costs import CostCalculationRecord, CostResult
from nutrition_engine.domain.errors import ConcurrentModificationError
from nutrition_engine.domain.inventory import InventoryItem, MenuIngredient, MenuRecord
from nutrition_engine.domain.nutrition import (
    NutritionCalculationRecord,
    NutritionResult,
    ReferenceRange,
)
from nutrition_engine.domain.plans import (
    AssignmentDraft,
    MenuPlanRecord,
    PlanAssignment,
    PlanMetrics,
)
from nutrition_engine.services.audit import AuditRepository, AuditService
from nutrition_engine.services.compliance import ReferenceRangeRepository
from nutrition_engine.services.costs import (
    CostCalculationRepository,
    CostCalculationService,
)
from nutrition_engine.services.menus import MenuRepository
from nutrition_engine.services.nutrition import (
    NutritionCalculationRepository,
    NutritionCalculationService,
)
from nutrition_engine.services.plans import MenuPlanService, PlanRepository

TENANT_ID = UUID("6f1c2d3e-0000-4000-8000-000000000001")


def make_item(
    name: str,
    unit: str = "kg",
    cost_per_unit: float | None = None,
    **nutrients: float | None,
) -> InventoryItem:
    """Build an inventory item with the given per-unit nutrients."""
    return InventoryItem(
        id=uuid4(),
        name=name,
        unit=unit,
        cost_per_unit=cost_per_unit,
        nutrients=dict(nutrients),
    )


def make_menu(
    ingredients: list[MenuIngredient],
    *,
    batch_size: int | None = 1,
    cost_per_serving: float | None = None,
    meal_type: str | None = "lunch",
    tenant_id: UUID = TENANT_ID,
) -> MenuRecord:
    """Build a menu owned by the test tenant."""
    return MenuRecord(
        id=uuid4(),
        tenant_id=tenant_id,
        name="Nasi Ayam Tahu",
        serving_size=250.0,
        batch_size=batch_size,
        cost_per_serving=cost_per_serving,
        ingredients=ingredients,
        meal_type=meal_type,
    )


@dataclass
class InMemoryMenuRepository(MenuRepository):
    """In-memory menu repository for tests."""

    menus: dict[UUID, MenuRecord] = field(default_factory=dict)

    def add(self, menu: MenuRecord) -> MenuRecord:
        self.menus[menu.id] = menu
        return menu

    def get_menu(self, tenant_id: UUID, menu_id: UUID) -> MenuRecord | None:
        menu = self.menus.get(menu_id)
        if menu is None or menu.tenant_id != tenant_id:
            return None
        return menu


@dataclass
class InMemoryReferenceRangeRepository(ReferenceRangeRepository):
    """In-memory nutrition standards for tests."""

    standards: dict[str, list[ReferenceRange]] = field(default_factory=dict)

    def get_reference_ranges(self, standard_code: str) -> list[ReferenceRange]:
        return list(self.standards.get(standard_code, []))


@dataclass
class InMemoryCalculationRepository(
    NutritionCalculationRepository, CostCalculationRepository
):
    """In-memory calculation store with version checks.

    ``interfering_writes`` simulates other writers landing between a read and
    the next save.
    """

    nutrition: dict[UUID, NutritionCalculationRecord] = field(default_factory=dict)
    costs: dict[UUID, CostCalculationRecord] = field(default_factory=dict)
    interfering_writes: int = 0
    save_calls: int = 0

    def get_nutrition_calculation(self, menu_id: UUID):
        return self.nutrition.get(menu_id)

    def save_nutrition_calculation(
        self,
        menu_id: UUID,
        result: NutritionResult,
        calculated_at: datetime,
        expected_version: int | None,
    ) -> NutritionCalculationRecord:
        self.save_calls += 1
        self._interfere(self.nutrition, menu_id, result, calculated_at)
        current = self.nutrition.get(menu_id)
        self._check_version(current, menu_id, expected_version)
        record = NutritionCalculationRecord(
            menu_id=menu_id,
            result=result,
            calculated_at=calculated_at,
            version=(expected_version or 0) + 1,
        )
        self.nutrition[menu_id] = record
        return record

    def get_cost_calculation(self, menu_id: UUID):
        return self.costs.get(menu_id)

    def save_cost_calculation(
        self,
        menu_id: UUID,
        result: CostResult,
        calculated_at: datetime,
        expected_version: int | None,
    ) -> CostCalculationRecord:
        self.save_calls += 1
        self._interfere(self.costs, menu_id, result, calculated_at)
        current = self.costs.get(menu_id)
        self._check_version(current, menu_id, expected_version)
        record = CostCalculationRecord(
            menu_id=menu_id,
            result=result,
            calculated_at=calculated_at,
            version=(expected_version or 0) + 1,
        )
        self.costs[menu_id] = record
        return record

    def _interfere(self, store, menu_id, result, calculated_at) -> None:  # type: ignore[no-untyped-def]
        if self.interfering_writes <= 0:
            return
        self.interfering_writes -= 1
        current = store.get(menu_id)
        version = current.version + 1 if current else 1
        record_type = (
            NutritionCalculationRecord
            if store is self.nutrition
            else CostCalculationRecord
        )
        store[menu_id] = record_type(
            menu_id=menu_id,
            result=result,
            calculated_at=calculated_at,
            version=version,
        )

    @staticmethod
    def _check_version(current, menu_id: UUID, expected_version: int | None) -> None:  # type: ignore[no-untyped-def]
        current_version = current.version if current else None
        if current_version != expected_version:
            raise ConcurrentModificationError("menu_id", menu_id, expected_version)


@dataclass
class InMemoryPlanRepository(PlanRepository):
    """In-memory plan repository with version checks."""

    plans: dict[UUID, MenuPlanRecord] = field(default_factory=dict)
    assignments: dict[UUID, PlanAssignment] = field(default_factory=dict)
    interfering_writes: int = 0

    def add_plan(
        self, start: date, end: date, tenant_id: UUID = TENANT_ID
    ) -> MenuPlanRecord:
        plan = MenuPlanRecord(
            id=uuid4(),
            tenant_id=tenant_id,
            name="Rencana Menu Minggu 1",
            start_date=start,
            end_date=end,
            metrics=None,
            version=1,
        )
        self.plans[plan.id] = plan
        return plan

    def get_plan(self, tenant_id: UUID, plan_id: UUID) -> MenuPlanRecord | None:
        plan = self.plans.get(plan_id)
        if plan is None or plan.tenant_id != tenant_id:
            return None
        return plan

    def list_assignments(self, plan_id: UUID) -> list[PlanAssignment]:
        return [
            assignment
            for assignment in self.assignments.values()
            if assignment.plan_id == plan_id
        ]

    def get_assignment(self, assignment_id: UUID) -> PlanAssignment | None:
        return self.assignments.get(assignment_id)

    def create_assignment(
        self, plan_id: UUID, draft: AssignmentDraft
    ) -> PlanAssignment:
        assignment = PlanAssignment(
            id=uuid4(),
            plan_id=plan_id,
            menu_id=draft.menu_id,
            assigned_date=draft.assigned_date,
            meal_type=draft.meal_type,
            planned_portions=draft.planned_portions,
            estimated_cost=draft.estimated_cost,
            notes=draft.notes,
        )
        self.assignments[assignment.id] = assignment
        return assignment

    def update_assignment(self, assignment: PlanAssignment) -> PlanAssignment:
        self.assignments[assignment.id] = assignment
        return assignment

    def delete_assignment(self, assignment_id: UUID) -> None:
        self.assignments.pop(assignment_id, None)

    def restore_assignment(self, assignment: PlanAssignment) -> PlanAssignment:
        self.assignments[assignment.id] = assignment
        return assignment

    def update_plan_metrics(
        self, plan_id: UUID, metrics: PlanMetrics, expected_version: int
    ) -> MenuPlanRecord:
        plan = self.plans[plan_id]
        if self.interfering_writes > 0:
            self.interfering_writes -= 1
            plan = replace(plan, version=plan.version + 1)
            self.plans[plan_id] = plan
        if plan.version != expected_version:
            raise ConcurrentModificationError("menu_plans", plan_id, expected_version)
        updated = replace(plan, metrics=metrics, version=plan.version + 1)
        self.plans[plan_id] = updated
        return updated


@dataclass
class InMemoryAuditRepository(AuditRepository):
    """In-memory audit repository for tests."""

    events: list[AuditEvent] = field(default_factory=list)

    def create_event(self, event: AuditEvent) -> None:
        self.events.append(event)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
    )


@pytest.fixture
def menu_repository() -> InMemoryMenuRepository:
    return InMemoryMenuRepository()


@pytest.fixture
def calculation_repository() -> InMemoryCalculationRepository:
    return InMemoryCalculationRepository()


@pytest.fixture
def plan_repository() -> InMemoryPlanRepository:
    return InMemoryPlanRepository()


@pytest.fixture
def audit_repository() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def reference_repository() -> InMemoryReferenceRangeRepository:
    return InMemoryReferenceRangeRepository(
        standards={
            "AKG_SD": [
                ReferenceRange("calories", 500.0, 800.0),
                ReferenceRange("protein", 15.0, 30.0),
                ReferenceRange("fat", 10.0, 25.0),
            ]
        }
    )


@pytest.fixture
def nutrition_service(
    menu_repository: InMemoryMenuRepository,
    reference_repository: InMemoryReferenceRangeRepository,
    calculation_repository: InMemoryCalculationRepository,
    audit_repository: InMemoryAuditRepository,
) -> NutritionCalculationService:
    return NutritionCalculationService(
        menu_repository=menu_repository,
        reference_repository=reference_repository,
        repository=calculation_repository,
        audit_service=AuditService(audit_repository),
        default_standard="AKG_SD",
    )


@pytest.fixture
def cost_service(
    menu_repository: InMemoryMenuRepository,
    calculation_repository: InMemoryCalculationRepository,
    audit_repository: InMemoryAuditRepository,
) -> CostCalculationService:
    return CostCalculationService(
        menu_repository=menu_repository,
        repository=calculation_repository,
        audit_service=AuditService(audit_repository),
    )


@pytest.fixture
def plan_service(
    plan_repository: InMemoryPlanRepository,
    menu_repository: InMemoryMenuRepository,
    audit_repository: InMemoryAuditRepository,
) -> MenuPlanService:
    return MenuPlanService(
        repository=plan_repository,
        menu_repository=menu_repository,
        audit_service=AuditService(audit_repository),
    )
