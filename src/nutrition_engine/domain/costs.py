"""Cost domain models."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class OperationalCostComponents:
    """Inputs and parts behind derived labor, utility and overhead costs."""

    labor_cost_per_hour: float
    preparation_hours: float
    cooking_hours: float
    gas_cost: float
    electricity_cost: float
    water_cost: float
    packaging_cost: float
    equipment_cost: float
    cleaning_cost: float
    overhead_percentage: float
    percentage_overhead_cost: float


@dataclass(frozen=True)
class OperationalCosts:
    """Per-batch operational costs supplied alongside ingredients.

    ``overhead`` is the whole indirect cost. ``components`` is set when the
    costs were derived from rates.
    """

    labor: float = 0.0
    utility: float = 0.0
    overhead: float = 0.0
    components: OperationalCostComponents | None = None


@dataclass(frozen=True)
class OperationalCostRates:
    """Rates used to derive operational costs for a batch."""

    labor_cost_per_hour: float = 20000.0
    preparation_hours: float | None = None
    cooking_hours: float | None = None
    gas_cost: float = 5000.0
    electricity_cost: float = 1500.0
    water_cost: float = 1000.0
    packaging_cost_per_portion: float = 500.0
    equipment_cost: float = 8000.0
    cleaning_cost: float = 5000.0
    overhead_percentage: float = 15.0


@dataclass(frozen=True)
class CostLine:
    """Frozen cost line for one ingredient at calculation time."""

    item_id: UUID | None
    item_name: str
    quantity: float
    unit: str
    cost_per_unit: float
    line_cost: float


@dataclass(frozen=True)
class CostResult:
    """Cost breakdown for one production batch of a menu."""

    ingredient_cost: float
    labor_cost: float
    utility_cost: float
    overhead_cost: float
    direct_cost: float
    indirect_cost: float
    grand_total: float
    batch_size: int
    cost_per_portion: float
    breakdown: tuple[CostLine, ...]
    ingredient_cost_ratio: float
    labor_cost_ratio: float
    overhead_cost_ratio: float
    missing_cost_items: tuple[str, ...] = ()
    components: OperationalCostComponents | None = None


@dataclass(frozen=True)
class CostCalculationRecord:
    """Persisted cost calculation for a menu."""

    menu_id: UUID
    result: CostResult
    calculated_at: datetime
    version: int
