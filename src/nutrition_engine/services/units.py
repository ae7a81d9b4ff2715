"""Unit normalization for ingredient quantities.

Every quantity is converted to the inventory item's stocking unit before any
arithmetic. Units resolve to a dimension and an integer scale relative to the
smallest unit of that dimension, so conversions are a single multiply and
divide by exact integers.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from nutrition_engine.domain.errors import UnitMismatchError
from nutrition_engine.domain.inventory import MenuIngredient, NormalizedIngredient


@dataclass(frozen=True)
class _UnitInfo:
    dimension: str
    scale: int


_MASS_MG = {
    "mg": 1,
    "milligram": 1,
    "g": 1_000,
    "gr": 1_000,
    "gram": 1_000,
    "grams": 1_000,
    "ons": 100_000,
    "kg": 1_000_000,
    "kilo": 1_000_000,
    "kilogram": 1_000_000,
}

_VOLUME_ML = {
    "ml": 1,
    "milliliter": 1,
    "millilitre": 1,
    "l": 1_000,
    "ltr": 1_000,
    "liter": 1_000,
    "litre": 1_000,
}

_COUNT = {
    "pc": 1,
    "pcs": 1,
    "piece": 1,
    "pieces": 1,
    "buah": 1,
    "butir": 1,
    "biji": 1,
}

_UNITS: dict[str, _UnitInfo] = {
    **{name: _UnitInfo("mass", scale) for name, scale in _MASS_MG.items()},
    **{name: _UnitInfo("volume", scale) for name, scale in _VOLUME_ML.items()},
    **{name: _UnitInfo("count", scale) for name, scale in _COUNT.items()},
}


def normalize_quantity(
    quantity: float, unit: str, stocking_unit: str, *, field: str = "unit"
) -> float:
    """Return ``quantity`` expressed in ``stocking_unit``.

    Units outside the known table are accepted only when they match the
    stocking unit exactly (ignoring case and surrounding whitespace).

    Raises:
        UnitMismatchError: the units belong to different dimensions or one of
            them is unknown and they differ.
    """
    source_key = _unit_key(unit)
    target_key = _unit_key(stocking_unit)
    if source_key == target_key:
        return float(quantity)
    source = _UNITS.get(source_key)
    target = _UNITS.get(target_key)
    if source is None or target is None or source.dimension != target.dimension:
        raise UnitMismatchError(field, unit, stocking_unit)
    return quantity * source.scale / target.scale


def normalize_ingredients(
    ingredients: Sequence[MenuIngredient],
) -> list[NormalizedIngredient]:
    """Resolve each ingredient against its item's stocking unit."""
    normalized: list[NormalizedIngredient] = []
    for index, ingredient in enumerate(ingredients):
        item = ingredient.item
        quantity = normalize_quantity(
            ingredient.quantity,
            ingredient.unit,
            item.unit,
            field=f"ingredients[{index}].unit",
        )
        normalized.append(
            NormalizedIngredient(
                item_id=item.id,
                name=item.name,
                quantity=quantity,
                unit=item.unit,
                cost_per_unit=item.cost_per_unit,
                nutrients=dict(item.nutrients),
            )
        )
    return normalized


def _unit_key(unit: str) -> str:
    return unit.strip().lower()
