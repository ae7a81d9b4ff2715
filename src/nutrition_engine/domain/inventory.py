"""Domain models for inventory items and menu ingredients."""

from dataclasses import dataclass, field
from uuid import UUID

NUTRIENT_FIELDS: tuple[str, ...] = (
    "calories",
    "protein",
    "carbohydrates",
    "fat",
    "fiber",
    "vitamin_a",
    "vitamin_b1",
    "vitamin_b2",
    "vitamin_b3",
    "vitamin_b6",
    "vitamin_b12",
    "vitamin_c",
    "vitamin_d",
    "vitamin_e",
    "vitamin_k",
    "folate",
    "calcium",
    "iron",
    "magnesium",
    "phosphorus",
    "potassium",
    "sodium",
    "zinc",
    "selenium",
    "iodine",
)


@dataclass(frozen=True)
class InventoryItem:
    """Master inventory item with per-stocking-unit cost and nutrients."""

    id: UUID
    name: str
    unit: str
    cost_per_unit: float | None
    nutrients: dict[str, float | None] = field(default_factory=dict)


@dataclass(frozen=True)
class MenuIngredient:
    """Ingredient line of a menu, as declared by the menu author."""

    item: InventoryItem
    quantity: float
    unit: str
    id: UUID | None = None


@dataclass(frozen=True)
class NormalizedIngredient:
    """Ingredient whose quantity is expressed in the item's stocking unit."""

    item_id: UUID
    name: str
    quantity: float
    unit: str
    cost_per_unit: float | None
    nutrients: dict[str, float | None]


@dataclass(frozen=True)
class MenuRecord:
    """Tenant-scoped menu with its ingredient list."""

    id: UUID
    tenant_id: UUID
    name: str
    serving_size: float | None
    batch_size: int | None
    cost_per_serving: float | None
    ingredients: list[MenuIngredient]
    meal_type: str | None = None
