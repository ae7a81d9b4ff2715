"""Supabase repository for menus with ingredients."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from nutrition_engine.domain.inventory import (
    NUTRIENT_FIELDS,
    InventoryItem,
    MenuIngredient,
    MenuRecord,
)
from nutrition_engine.services.menus import MenuRepository

_ITEM_COLUMNS = "id, item_name, unit, cost_per_unit, " + ", ".join(NUTRIENT_FIELDS)
_MENU_COLUMNS = (
    "id, sppg_id, menu_name, meal_type, serving_size, batch_size, "
    "cost_per_serving, "
    f"menu_ingredients(id, quantity, unit, inventory_items({_ITEM_COLUMNS}))"
)


@dataclass
class SupabaseMenuRepository(MenuRepository):
    """Supabase-backed menu lookups scoped by tenant."""

    client: Client

    def get_menu(self, tenant_id: UUID, menu_id: UUID) -> MenuRecord | None:
        """Return a menu with its ingredients, if it belongs to the tenant."""
        response = (
            self.client.table("nutrition_menus")
            .select(_MENU_COLUMNS)
            .eq("id", str(menu_id))
            .eq("sppg_id", str(tenant_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_menu(response.data[0])


def _parse_menu(row: dict[str, object]) -> MenuRecord:
    ingredients = [
        _parse_ingredient(ingredient)
        for ingredient in row.get("menu_ingredients") or []
        if ingredient.get("inventory_items")
    ]
    batch_size = row.get("batch_size")
    return MenuRecord(
        id=UUID(row["id"]),
        tenant_id=UUID(row["sppg_id"]),
        name=str(row.get("menu_name", "")),
        serving_size=_optional_float(row.get("serving_size")),
        batch_size=int(batch_size) if batch_size is not None else None,
        cost_per_serving=_optional_float(row.get("cost_per_serving")),
        ingredients=ingredients,
        meal_type=row.get("meal_type"),
    )


def _parse_ingredient(row: dict[str, object]) -> MenuIngredient:
    item_row = row["inventory_items"]
    item = InventoryItem(
        id=UUID(item_row["id"]),
        name=str(item_row.get("item_name", "")),
        unit=str(item_row.get("unit", "")),
        cost_per_unit=_optional_float(item_row.get("cost_per_unit")),
        nutrients={
            nutrient: _optional_float(item_row.get(nutrient))
            for nutrient in NUTRIENT_FIELDS
        },
    )
    return MenuIngredient(
        id=UUID(row["id"]) if row.get("id") else None,
        item=item,
        quantity=float(row.get("quantity", 0.0)),
        unit=str(row.get("unit") or item.unit),
    )


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    return float(value)
