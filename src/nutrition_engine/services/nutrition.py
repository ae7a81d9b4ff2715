"""Nutrition aggregation and the menu nutrition calculation service."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from nutrition_engine.domain.inventory import NUTRIENT_FIELDS, NormalizedIngredient
from nutrition_engine.domain.nutrition import (
    IncompleteIngredient,
    NutritionCalculationRecord,
    NutritionResult,
    ReferenceRange,
)
from nutrition_engine.services.audit import AuditService
from nutrition_engine.services.compliance import (
    ReferenceRangeRepository,
    ReferenceRangeTable,
    classify_compliance,
    empty_compliance,
)
from nutrition_engine.services.concurrency import retry_on_conflict
from nutrition_engine.services.menus import MenuRepository, require_menu
from nutrition_engine.services.units import normalize_ingredients

_logger = logging.getLogger(__name__)


class NutritionCalculationRepository(Protocol):
    """Persistence interface for menu nutrition calculations."""

    def get_nutrition_calculation(
        self, menu_id: UUID
    ) -> NutritionCalculationRecord | None:
        """Return the current nutrition calculation for a menu."""

    def save_nutrition_calculation(
        self,
        menu_id: UUID,
        result: NutritionResult,
        calculated_at: datetime,
        expected_version: int | None,
    ) -> NutritionCalculationRecord:
        """Replace the menu's calculation if its version is still expected."""


def nutrient_contributions(ingredient: NormalizedIngredient) -> dict[str, float]:
    """Return one ingredient's contribution to every nutrient total."""
    contributions: dict[str, float] = {}
    for nutrient in NUTRIENT_FIELDS:
        value = ingredient.nutrients.get(nutrient)
        contributions[nutrient] = 0.0 if value is None else ingredient.quantity * value
    return contributions


def aggregate_nutrients(
    ingredients: Sequence[NormalizedIngredient],
) -> tuple[dict[str, float], tuple[IncompleteIngredient, ...]]:
    """Sum nutrient contributions and collect items with missing values.

    An item used on several lines is reported once.
    """
    totals = {nutrient: 0.0 for nutrient in NUTRIENT_FIELDS}
    incomplete: dict[UUID, IncompleteIngredient] = {}
    for ingredient in ingredients:
        for nutrient, amount in nutrient_contributions(ingredient).items():
            totals[nutrient] += amount
        missing = tuple(
            nutrient
            for nutrient in NUTRIENT_FIELDS
            if ingredient.nutrients.get(nutrient) is None
        )
        if missing and ingredient.item_id not in incomplete:
            incomplete[ingredient.item_id] = IncompleteIngredient(
                item_id=ingredient.item_id, name=ingredient.name, missing=missing
            )
    return totals, tuple(incomplete.values())


def compute_nutrition(
    ingredients: Sequence[NormalizedIngredient],
    reference_ranges: ReferenceRangeTable | Mapping[str, ReferenceRange],
    serving_size: float | None = None,
) -> NutritionResult:
    """Compute nutrient totals and compliance for a normalized ingredient list.

    ``serving_size`` is carried into the result for reporting only.
    """
    totals, incomplete = aggregate_nutrients(ingredients)
    if ingredients:
        compliance = classify_compliance(totals, reference_ranges)
    else:
        compliance = empty_compliance()
    return NutritionResult(
        totals=totals,
        compliance=compliance,
        incomplete_items=incomplete,
        serving_size=serving_size,
        ingredient_count=len(ingredients),
    )


@dataclass
class NutritionCalculationService:
    """Service that recalculates and persists menu nutrition."""

    menu_repository: MenuRepository
    reference_repository: ReferenceRangeRepository
    repository: NutritionCalculationRepository
    audit_service: AuditService
    default_standard: str
    retry_attempts: int = 2

    def calculate(
        self,
        tenant_id: UUID,
        menu_id: UUID,
        *,
        standard_code: str | None = None,
        actor_id: UUID | None = None,
    ) -> NutritionCalculationRecord:
        """Recalculate a menu's nutrition and replace the stored calculation."""
        code = standard_code or self.default_standard
        table = ReferenceRangeTable.from_ranges(
            self.reference_repository.get_reference_ranges(code)
        )
        previous, record = retry_on_conflict(
            lambda: self._calculate_once(tenant_id, menu_id, table),
            attempts=self.retry_attempts,
            action=f"nutrition:{menu_id}",
        )
        self.audit_service.record_calculation(
            tenant_id=tenant_id,
            actor_id=actor_id,
            entity_type="menu_nutrition_calculation",
            menu_id=menu_id,
            before=_summary(previous.result) if previous else None,
            after=_summary(record.result),
        )
        if record.result.has_incomplete_data:
            _logger.info(
                "Nutrition data incomplete: menu_id=%s items=%s",
                menu_id,
                sorted(item.name for item in record.result.incomplete_items),
            )
        _logger.info(
            "Nutrition calculated: menu_id=%s standard=%s score=%.2f version=%s",
            menu_id,
            code,
            record.result.compliance.score,
            record.version,
        )
        return record

    def get_latest(self, menu_id: UUID) -> NutritionCalculationRecord | None:
        """Return the stored nutrition calculation for a menu."""
        return self.repository.get_nutrition_calculation(menu_id)

    def _calculate_once(
        self, tenant_id: UUID, menu_id: UUID, table: ReferenceRangeTable
    ) -> tuple[NutritionCalculationRecord | None, NutritionCalculationRecord]:
        menu = require_menu(self.menu_repository, tenant_id, menu_id)
        previous = self.repository.get_nutrition_calculation(menu_id)
        result = compute_nutrition(
            normalize_ingredients(menu.ingredients),
            table,
            serving_size=menu.serving_size,
        )
        record = self.repository.save_nutrition_calculation(
            menu_id,
            result,
            calculated_at=datetime.now(tz=UTC),
            expected_version=previous.version if previous else None,
        )
        return previous, record


def _summary(result: NutritionResult) -> dict[str, object]:
    return {
        "calories": result.totals.get("calories", 0.0),
        "protein": result.totals.get("protein", 0.0),
        "compliance_score": result.compliance.score,
        "deficient": list(result.compliance.deficient),
        "excess": list(result.compliance.excess),
    }
