"""Cost aggregation and the menu cost calculation service."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from nutrition_engine.domain.costs import (
    CostCalculationRecord,
    CostLine,
    CostResult,
    OperationalCostComponents,
    OperationalCostRates,
    OperationalCosts,
)
from nutrition_engine.domain.errors import InvalidBatchSizeError
from nutrition_engine.domain.inventory import NormalizedIngredient
from nutrition_engine.services.audit import AuditService
from nutrition_engine.services.concurrency import retry_on_conflict
from nutrition_engine.services.menus import MenuRepository, require_menu
from nutrition_engine.services.units import normalize_ingredients

SMALL_BATCH_PORTIONS = 50
LARGE_BATCH_PORTIONS = 150
_SMALL_BATCH_HOURS = 1.5
_MEDIUM_BATCH_HOURS = 2.5
_LARGE_BATCH_HOURS = 4.0
_PREPARATION_SHARE = 0.4
_PERCENT = 100.0

_logger = logging.getLogger(__name__)


class CostCalculationRepository(Protocol):
    """Persistence interface for menu cost calculations."""

    def get_cost_calculation(self, menu_id: UUID) -> CostCalculationRecord | None:
        """Return the current cost calculation for a menu."""

    def save_cost_calculation(
        self,
        menu_id: UUID,
        result: CostResult,
        calculated_at: datetime,
        expected_version: int | None,
    ) -> CostCalculationRecord:
        """Replace the menu's calculation if its version is still expected."""


def ingredient_cost_lines(
    ingredients: Sequence[NormalizedIngredient],
) -> tuple[tuple[CostLine, ...], float, tuple[str, ...]]:
    """Price each ingredient and return lines, their sum and unpriced items."""
    lines: list[CostLine] = []
    missing: list[str] = []
    total = 0.0
    for ingredient in ingredients:
        cost_per_unit = ingredient.cost_per_unit
        if cost_per_unit is None:
            missing.append(ingredient.name)
            cost_per_unit = 0.0
        line_cost = ingredient.quantity * cost_per_unit
        total += line_cost
        lines.append(
            CostLine(
                item_id=ingredient.item_id,
                item_name=ingredient.name,
                quantity=ingredient.quantity,
                unit=ingredient.unit,
                cost_per_unit=cost_per_unit,
                line_cost=line_cost,
            )
        )
    return tuple(lines), total, tuple(missing)


def compute_cost(
    ingredients: Sequence[NormalizedIngredient],
    operational_costs: OperationalCosts,
    batch_size: int | None,
) -> CostResult:
    """Combine ingredient and operational costs into a per-batch breakdown.

    Raises:
        InvalidBatchSizeError: ``batch_size`` is missing or not positive.
    """
    _require_batch_size(batch_size)
    lines, ingredient_cost, missing = ingredient_cost_lines(ingredients)
    direct_cost = ingredient_cost + operational_costs.labor + operational_costs.utility
    grand_total = direct_cost + operational_costs.overhead
    return CostResult(
        ingredient_cost=ingredient_cost,
        labor_cost=operational_costs.labor,
        utility_cost=operational_costs.utility,
        overhead_cost=operational_costs.overhead,
        direct_cost=direct_cost,
        indirect_cost=operational_costs.overhead,
        grand_total=grand_total,
        batch_size=batch_size,
        cost_per_portion=grand_total / batch_size,
        breakdown=lines,
        ingredient_cost_ratio=_ratio(ingredient_cost, grand_total),
        labor_cost_ratio=_ratio(operational_costs.labor, grand_total),
        overhead_cost_ratio=_ratio(operational_costs.overhead, grand_total),
        missing_cost_items=missing,
        components=operational_costs.components,
    )


def default_labor_hours(planned_portions: int) -> float:
    """Return total preparation and cooking hours for a batch size."""
    if planned_portions < SMALL_BATCH_PORTIONS:
        return _SMALL_BATCH_HOURS
    if planned_portions > LARGE_BATCH_PORTIONS:
        return _LARGE_BATCH_HOURS
    return _MEDIUM_BATCH_HOURS


def derive_operational_costs(
    rates: OperationalCostRates, ingredient_cost: float, planned_portions: int
) -> OperationalCosts:
    """Derive labor, utility and overhead for a batch from cost rates.

    Overhead covers packaging, equipment, cleaning and a percentage of the
    direct cost (ingredients, labor and utilities).
    """
    _require_batch_size(planned_portions)
    hours = default_labor_hours(planned_portions)
    preparation_hours = (
        rates.preparation_hours
        if rates.preparation_hours is not None
        else hours * _PREPARATION_SHARE
    )
    cooking_hours = (
        rates.cooking_hours
        if rates.cooking_hours is not None
        else hours * (1 - _PREPARATION_SHARE)
    )
    labor = rates.labor_cost_per_hour * (preparation_hours + cooking_hours)
    utility = rates.gas_cost + rates.electricity_cost + rates.water_cost
    packaging = rates.packaging_cost_per_portion * planned_portions
    percentage_overhead = (
        (ingredient_cost + labor + utility) * rates.overhead_percentage / _PERCENT
    )
    components = OperationalCostComponents(
        labor_cost_per_hour=rates.labor_cost_per_hour,
        preparation_hours=preparation_hours,
        cooking_hours=cooking_hours,
        gas_cost=rates.gas_cost,
        electricity_cost=rates.electricity_cost,
        water_cost=rates.water_cost,
        packaging_cost=packaging,
        equipment_cost=rates.equipment_cost,
        cleaning_cost=rates.cleaning_cost,
        overhead_percentage=rates.overhead_percentage,
        percentage_overhead_cost=percentage_overhead,
    )
    indirect = (
        packaging + rates.equipment_cost + rates.cleaning_cost + percentage_overhead
    )
    return OperationalCosts(
        labor=labor, utility=utility, overhead=indirect, components=components
    )


@dataclass
class CostCalculationService:
    """Service that recalculates and persists menu costs."""

    menu_repository: MenuRepository
    repository: CostCalculationRepository
    audit_service: AuditService
    retry_attempts: int = 2

    def calculate(  # noqa: PLR0913
        self,
        tenant_id: UUID,
        menu_id: UUID,
        *,
        operational_costs: OperationalCosts | None = None,
        rates: OperationalCostRates | None = None,
        batch_size: int | None = None,
        actor_id: UUID | None = None,
    ) -> CostCalculationRecord:
        """Recalculate a menu's cost and store a fresh breakdown snapshot.

        Explicit ``operational_costs`` win; otherwise they are derived from
        ``rates`` (or the default rates). ``batch_size`` overrides the menu's.
        """
        previous, record = retry_on_conflict(
            lambda: self._calculate_once(
                tenant_id, menu_id, operational_costs, rates, batch_size
            ),
            attempts=self.retry_attempts,
            action=f"cost:{menu_id}",
        )
        self.audit_service.record_calculation(
            tenant_id=tenant_id,
            actor_id=actor_id,
            entity_type="menu_cost_calculation",
            menu_id=menu_id,
            before=_summary(previous.result) if previous else None,
            after=_summary(record.result),
        )
        if record.result.missing_cost_items:
            _logger.info(
                "Cost data incomplete: menu_id=%s items=%s",
                menu_id,
                list(record.result.missing_cost_items),
            )
        _logger.info(
            "Cost calculated: menu_id=%s grand_total=%.2f per_portion=%.2f version=%s",
            menu_id,
            record.result.grand_total,
            record.result.cost_per_portion,
            record.version,
        )
        return record

    def get_latest(self, menu_id: UUID) -> CostCalculationRecord | None:
        """Return the stored cost calculation for a menu."""
        return self.repository.get_cost_calculation(menu_id)

    def _calculate_once(  # noqa: PLR0913
        self,
        tenant_id: UUID,
        menu_id: UUID,
        operational_costs: OperationalCosts | None,
        rates: OperationalCostRates | None,
        batch_size: int | None,
    ) -> tuple[CostCalculationRecord | None, CostCalculationRecord]:
        menu = require_menu(self.menu_repository, tenant_id, menu_id)
        resolved_batch = batch_size if batch_size is not None else menu.batch_size
        _require_batch_size(resolved_batch)
        ingredients = normalize_ingredients(menu.ingredients)
        if operational_costs is None:
            _, ingredient_cost, _ = ingredient_cost_lines(ingredients)
            operational_costs = derive_operational_costs(
                rates or OperationalCostRates(), ingredient_cost, resolved_batch
            )
        result = compute_cost(ingredients, operational_costs, resolved_batch)
        previous = self.repository.get_cost_calculation(menu_id)
        record = self.repository.save_cost_calculation(
            menu_id,
            result,
            calculated_at=datetime.now(tz=UTC),
            expected_version=previous.version if previous else None,
        )
        return previous, record


def _require_batch_size(batch_size: int | None) -> None:
    if batch_size is None or batch_size <= 0:
        raise InvalidBatchSizeError(batch_size)


def _ratio(part: float, total: float) -> float:
    if total == 0:
        return 0.0
    return part / total * _PERCENT


def _summary(result: CostResult) -> dict[str, object]:
    return {
        "ingredient_cost": result.ingredient_cost,
        "direct_cost": result.direct_cost,
        "indirect_cost": result.indirect_cost,
        "grand_total": result.grand_total,
        "batch_size": result.batch_size,
        "cost_per_portion": result.cost_per_portion,
    }
