"""Inventory impact of dish sales.

Turns ``{dish_id: quantity_sold}`` into per-ingredient consumption and
classifies what the consumption leaves behind in stock. Everything here is
pure: inputs are never mutated and the same input always yields the same
output, so the sales form can recompute it on every keystroke.
"""
import logging
from dataclasses import dataclass, replace
from typing import Iterable, Mapping

log = logging.getLogger(__name__)

IN_STOCK = "In Stock"
LOW_STOCK = "Low Stock"
OUT_OF_STOCK = "Out of Stock"
UNTRACKED = "Untracked"


@dataclass(frozen=True)
class RecipeLine:
    ingredient_id: str
    name: str
    unit: str
    quantity: float  # consumed per one dish sold


@dataclass(frozen=True)
class DishRecipe:
    id: str
    name: str
    price: float
    category: str | None = None
    lines: tuple[RecipeLine, ...] = ()


@dataclass(frozen=True)
class InventoryImpactItem:
    ingredient_id: str
    name: str
    quantity_used: float
    unit: str


@dataclass(frozen=True)
class StockLevel:
    current_stock: float
    minimum_stock: float


@dataclass(frozen=True)
class StockAssessment:
    ingredient_id: str
    name: str
    unit: str
    quantity_used: float
    current_stock: float | None
    minimum_stock: float | None
    remaining: float | None
    is_low_stock: bool
    is_out_of_stock: bool
    status: str


def calculate_inventory_impact(
    dish_id: str, quantity: float, dishes: Mapping[str, DishRecipe]
) -> list[InventoryImpactItem]:
    """Ingredient consumption of selling ``quantity`` of one dish.

    Unknown dishes and non-positive quantities contribute nothing.
    """
    if quantity <= 0:
        return []
    dish = dishes.get(dish_id)
    if dish is None:
        return []
    return [
        InventoryImpactItem(
            ingredient_id=line.ingredient_id,
            name=line.name,
            quantity_used=line.quantity * quantity,
            unit=line.unit,
        )
        for line in dish.lines
    ]


def group_by_ingredient(impacts: Iterable[InventoryImpactItem]) -> dict[str, InventoryImpactItem]:
    """Sum ``quantity_used`` per ingredient.

    The first record seen for an ingredient supplies ``name`` and ``unit``;
    later records only add to the total. A later record whose unit differs
    is logged, since the summed figure then mixes units.
    """
    grouped: dict[str, InventoryImpactItem] = {}
    for item in impacts:
        seen = grouped.get(item.ingredient_id)
        if seen is None:
            grouped[item.ingredient_id] = item
            continue
        if seen.unit != item.unit:
            log.warning(
                "ingredient %s carries units %r and %r; keeping %r",
                item.ingredient_id, seen.unit, item.unit, seen.unit,
            )
        grouped[item.ingredient_id] = replace(seen, quantity_used=seen.quantity_used + item.quantity_used)
    return grouped


def aggregate_inventory_impact(
    entries: Mapping[str, float], dishes: Mapping[str, DishRecipe]
) -> dict[str, InventoryImpactItem]:
    """Total consumption per ingredient for a whole batch of sales."""
    return group_by_ingredient(
        item
        for dish_id, qty in entries.items()
        if qty > 0
        for item in calculate_inventory_impact(dish_id, qty, dishes)
    )


def assess_stock(impact: InventoryImpactItem, level: StockLevel | None) -> StockAssessment:
    """Classify the stock left after ``impact``.

    ``remaining == minimum`` is not low; ``remaining <= 0`` is out of stock
    and, whenever the minimum is positive, also low. Ingredients without an
    inventory record are reported as untracked and never alert.
    """
    if level is None:
        return StockAssessment(
            ingredient_id=impact.ingredient_id, name=impact.name, unit=impact.unit,
            quantity_used=impact.quantity_used, current_stock=None, minimum_stock=None,
            remaining=None, is_low_stock=False, is_out_of_stock=False, status=UNTRACKED,
        )

    remaining = max(0.0, level.current_stock - impact.quantity_used)
    is_low = remaining < level.minimum_stock
    is_out = remaining <= 0
    if is_out:
        status = OUT_OF_STOCK
    elif is_low:
        status = LOW_STOCK
    else:
        status = IN_STOCK
    return StockAssessment(
        ingredient_id=impact.ingredient_id, name=impact.name, unit=impact.unit,
        quantity_used=impact.quantity_used, current_stock=level.current_stock,
        minimum_stock=level.minimum_stock, remaining=remaining,
        is_low_stock=is_low, is_out_of_stock=is_out, status=status,
    )


def assess_impacts(
    impacts: Mapping[str, InventoryImpactItem], levels: Mapping[str, StockLevel]
) -> list[StockAssessment]:
    return [assess_stock(item, levels.get(ing_id)) for ing_id, item in impacts.items()]


def status_counts(assessments: Iterable[StockAssessment]) -> dict[str, int]:
    counts = {"outOfStock": 0, "lowStock": 0, "inStock": 0}
    for a in assessments:
        if a.status == OUT_OF_STOCK:
            counts["outOfStock"] += 1
        elif a.status == LOW_STOCK:
            counts["lowStock"] += 1
        elif a.status == IN_STOCK:
            counts["inStock"] += 1
    return counts


def low_stock_alerts(assessments: Iterable[StockAssessment]) -> list[str]:
    return [
        f"{a.name} ({a.remaining:.1f} {a.unit} remaining)"
        for a in assessments
        if a.is_low_stock
    ]
