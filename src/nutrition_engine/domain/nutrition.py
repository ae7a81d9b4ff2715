"""Nutrition domain models."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class ReferenceRange:
    """Acceptable per-menu intake bounds for one nutrient."""

    nutrient: str
    min_value: float
    max_value: float


@dataclass(frozen=True)
class ComplianceResult:
    """Classification of nutrient totals against reference ranges."""

    adequate: tuple[str, ...]
    deficient: tuple[str, ...]
    excess: tuple[str, ...]
    unscored: tuple[str, ...]
    score: float


@dataclass(frozen=True)
class IncompleteIngredient:
    """Inventory item that lacks values for some nutrients."""

    item_id: UUID
    name: str
    missing: tuple[str, ...]


@dataclass(frozen=True)
class NutritionResult:
    """Totals, compliance and data-quality flags for one menu."""

    totals: dict[str, float]
    compliance: ComplianceResult
    incomplete_items: tuple[IncompleteIngredient, ...] = ()
    serving_size: float | None = None
    ingredient_count: int = 0

    @property
    def has_incomplete_data(self) -> bool:
        """Return True when any ingredient lacked nutrient values."""
        return bool(self.incomplete_items)


@dataclass(frozen=True)
class NutritionCalculationRecord:
    """Persisted nutrition calculation for a menu."""

    menu_id: UUID
    result: NutritionResult
    calculated_at: datetime
    version: int
