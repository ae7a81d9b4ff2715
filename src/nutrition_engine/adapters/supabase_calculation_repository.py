"""Supabase repository for menu nutrition and cost calculations."""

from dataclasses import dataclass, fields
from datetime import datetime
from uuid import UUID

from supabase import Client

from nutrition_engine.domain.costs import (
    CostCalculationRecord,
    CostLine,
    CostResult,
    OperationalCostComponents,
)
from nutrition_engine.domain.errors import ConcurrentModificationError
from nutrition_engine.domain.nutrition import (
    ComplianceResult,
    IncompleteIngredient,
    NutritionCalculationRecord,
    NutritionResult,
)
from nutrition_engine.services.costs import CostCalculationRepository
from nutrition_engine.services.nutrition import NutritionCalculationRepository

_NUTRITION_TABLE = "menu_nutrition_calculations"
_COST_TABLE = "menu_cost_calculations"
_COMPONENT_COLUMNS = tuple(field.name for field in fields(OperationalCostComponents))


@dataclass
class SupabaseCalculationRepository(
    NutritionCalculationRepository, CostCalculationRepository
):
    """Supabase implementation with version-checked writes."""

    client: Client

    def get_nutrition_calculation(
        self, menu_id: UUID
    ) -> NutritionCalculationRecord | None:
        """Return the current nutrition calculation for a menu."""
        row = self._get(_NUTRITION_TABLE, menu_id)
        return _parse_nutrition(row) if row else None

    def save_nutrition_calculation(
        self,
        menu_id: UUID,
        result: NutritionResult,
        calculated_at: datetime,
        expected_version: int | None,
    ) -> NutritionCalculationRecord:
        """Replace the nutrition calculation if the version still matches."""
        payload = {
            "totals": result.totals,
            "adequate_nutrients": list(result.compliance.adequate),
            "deficient_nutrients": list(result.compliance.deficient),
            "excess_nutrients": list(result.compliance.excess),
            "unscored_nutrients": list(result.compliance.unscored),
            "compliance_score": result.compliance.score,
            "incomplete_items": [
                {
                    "inventory_item_id": str(item.item_id),
                    "item_name": item.name,
                    "missing": list(item.missing),
                }
                for item in result.incomplete_items
            ],
            "serving_size": result.serving_size,
            "ingredient_count": result.ingredient_count,
            "calculated_at": calculated_at.isoformat(),
        }
        row = self._write(_NUTRITION_TABLE, menu_id, payload, expected_version)
        return _parse_nutrition(row)

    def get_cost_calculation(self, menu_id: UUID) -> CostCalculationRecord | None:
        """Return the current cost calculation for a menu."""
        row = self._get(_COST_TABLE, menu_id)
        return _parse_cost(row) if row else None

    def save_cost_calculation(
        self,
        menu_id: UUID,
        result: CostResult,
        calculated_at: datetime,
        expected_version: int | None,
    ) -> CostCalculationRecord:
        """Replace the cost calculation and its breakdown snapshot."""
        payload = {
            "total_ingredient_cost": result.ingredient_cost,
            "total_labor_cost": result.labor_cost,
            "total_utility_cost": result.utility_cost,
            "overhead_cost": result.overhead_cost,
            "total_direct_cost": result.direct_cost,
            "total_indirect_cost": result.indirect_cost,
            "grand_total_cost": result.grand_total,
            "planned_portions": result.batch_size,
            "cost_per_portion": result.cost_per_portion,
            "ingredient_breakdown": [_line_payload(line) for line in result.breakdown],
            "ingredient_cost_ratio": result.ingredient_cost_ratio,
            "labor_cost_ratio": result.labor_cost_ratio,
            "overhead_cost_ratio": result.overhead_cost_ratio,
            "missing_cost_items": list(result.missing_cost_items),
            **_components_payload(result.components),
            "calculated_at": calculated_at.isoformat(),
        }
        row = self._write(_COST_TABLE, menu_id, payload, expected_version)
        return _parse_cost(row)

    def _get(self, table: str, menu_id: UUID) -> dict[str, object] | None:
        response = (
            self.client.table(table)
            .select("*")
            .eq("menu_id", str(menu_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]

    def _write(
        self,
        table: str,
        menu_id: UUID,
        payload: dict[str, object],
        expected_version: int | None,
    ) -> dict[str, object]:
        if expected_version is None:
            response = (
                self.client.table(table)
                .upsert(
                    {"menu_id": str(menu_id), **payload, "version": 1},
                    on_conflict="menu_id",
                    ignore_duplicates=True,
                )
                .execute()
            )
        else:
            response = (
                self.client.table(table)
                .update({**payload, "version": expected_version + 1})
                .eq("menu_id", str(menu_id))
                .eq("version", expected_version)
                .execute()
            )
        if not response.data:
            raise ConcurrentModificationError(table, menu_id, expected_version)
        return response.data[0]


def _line_payload(line: CostLine) -> dict[str, object]:
    return {
        "inventory_item_id": str(line.item_id) if line.item_id else None,
        "item_name": line.item_name,
        "quantity": line.quantity,
        "unit": line.unit,
        "cost_per_unit": line.cost_per_unit,
        "line_cost": line.line_cost,
    }


def _components_payload(
    components: OperationalCostComponents | None,
) -> dict[str, object]:
    return {
        column: getattr(components, column) if components else None
        for column in _COMPONENT_COLUMNS
    }


def _parse_components(row: dict[str, object]) -> OperationalCostComponents | None:
    if row.get("labor_cost_per_hour") is None:
        return None
    return OperationalCostComponents(
        **{
            column: float(row.get(column) or 0.0) for column in _COMPONENT_COLUMNS
        }
    )


def _parse_line(row: dict[str, object]) -> CostLine:
    item_id = row.get("inventory_item_id")
    return CostLine(
        item_id=UUID(item_id) if item_id else None,
        item_name=str(row.get("item_name", "")),
        quantity=float(row.get("quantity", 0.0)),
        unit=str(row.get("unit", "")),
        cost_per_unit=float(row.get("cost_per_unit", 0.0)),
        line_cost=float(row.get("line_cost", 0.0)),
    )


def _parse_nutrition(row: dict[str, object]) -> NutritionCalculationRecord:
    serving_size = row.get("serving_size")
    result = NutritionResult(
        totals={
            name: float(value) for name, value in (row.get("totals") or {}).items()
        },
        compliance=ComplianceResult(
            adequate=tuple(row.get("adequate_nutrients") or ()),
            deficient=tuple(row.get("deficient_nutrients") or ()),
            excess=tuple(row.get("excess_nutrients") or ()),
            unscored=tuple(row.get("unscored_nutrients") or ()),
            score=float(row.get("compliance_score", 0.0)),
        ),
        incomplete_items=tuple(
            IncompleteIngredient(
                item_id=UUID(item["inventory_item_id"]),
                name=str(item.get("item_name", "")),
                missing=tuple(item.get("missing") or ()),
            )
            for item in row.get("incomplete_items") or []
        ),
        serving_size=float(serving_size) if serving_size is not None else None,
        ingredient_count=int(row.get("ingredient_count", 0)),
    )
    return NutritionCalculationRecord(
        menu_id=UUID(row["menu_id"]),
        result=result,
        calculated_at=datetime.fromisoformat(row["calculated_at"]),
        version=int(row["version"]),
    )


def _parse_cost(row: dict[str, object]) -> CostCalculationRecord:
    result = CostResult(
        ingredient_cost=float(row.get("total_ingredient_cost", 0.0)),
        labor_cost=float(row.get("total_labor_cost", 0.0)),
        utility_cost=float(row.get("total_utility_cost", 0.0)),
        overhead_cost=float(row.get("overhead_cost", 0.0)),
        direct_cost=float(row.get("total_direct_cost") or 0.0),
        indirect_cost=float(row.get("total_indirect_cost") or 0.0),
        grand_total=float(row.get("grand_total_cost", 0.0)),
        batch_size=int(row.get("planned_portions", 1)),
        cost_per_portion=float(row.get("cost_per_portion", 0.0)),
        breakdown=tuple(
            _parse_line(line) for line in row.get("ingredient_breakdown") or []
        ),
        ingredient_cost_ratio=float(row.get("ingredient_cost_ratio", 0.0)),
        labor_cost_ratio=float(row.get("labor_cost_ratio", 0.0)),
        overhead_cost_ratio=float(row.get("overhead_cost_ratio", 0.0)),
        missing_cost_items=tuple(row.get("missing_cost_items") or ()),
        components=_parse_components(row),
    )
    return CostCalculationRecord(
        menu_id=UUID(row["menu_id"]),
        result=result,
        calculated_at=datetime.fromisoformat(row["calculated_at"]),
        version=int(row["version"]),
    )
