import logging
from typing import Iterable

from sqlalchemy.orm import Session

from larder.errors import BackendError
from larder.models.core import Dish, Ingredient, StockMove, StockMoveType
from larder.services.inventory_impact import (
    DishRecipe, InventoryImpactItem, RecipeLine, StockLevel,
)
from larder.util.numbers import qty

log = logging.getLogger(__name__)


def _active(q, model):
    return q.filter(model.deleted_at.is_(None))


def dish_recipe(d: Dish) -> DishRecipe:
    lines = []
    for di in d.ingredients:
        ing = di.ingredient
        lines.append(RecipeLine(
            ingredient_id=di.ingredient_id,
            name=ing.name if ing else di.ingredient_id,
            unit=ing.unit if ing else "",
            quantity=float(di.quantity or 0),
        ))
    return DishRecipe(id=d.id, name=d.name, price=float(d.price or 0), category=d.category, lines=tuple(lines))


def load_dish_table(db: Session, profile_id: str) -> dict[str, DishRecipe]:
    """dish id -> recipe, for every non-deleted dish of the profile."""
    rows = _active(db.query(Dish), Dish).filter(Dish.business_profile_id == profile_id).all()
    return {d.id: dish_recipe(d) for d in rows}


def load_stock_levels(db: Session, profile_id: str, ingredient_ids: Iterable[str]) -> dict[str, StockLevel]:
    ids = list(set(ingredient_ids))
    if not ids:
        return {}
    rows = (
        _active(db.query(Ingredient), Ingredient)
          .filter(Ingredient.business_profile_id == profile_id, Ingredient.id.in_(ids))
          .all()
    )
    return {
        i.id: StockLevel(current_stock=float(i.quantity or 0), minimum_stock=float(i.minimum_stock_level or 0))
        for i in rows
    }


def update_ingredients_stock(
    db: Session,
    profile_id: str,
    impacts: Iterable[InventoryImpactItem],
    ref_sale_id: str | None = None,
) -> int:
    """Decrement stock for a batch of impacts and log a SALE move for each.

    Stock never goes below zero. Ingredients outside the profile are skipped.
    Commits once for the whole batch; returns the number of rows touched.
    """
    touched = 0
    try:
        for impact in impacts:
            ing = db.get(Ingredient, impact.ingredient_id)
            if not ing or ing.business_profile_id != profile_id or ing.deleted_at is not None:
                log.warning("stock update skipped unknown ingredient %s", impact.ingredient_id)
                continue
            before = float(ing.quantity or 0)
            after = max(0.0, qty(before - impact.quantity_used))
            ing.quantity = after
            db.add(StockMove(
                ingredient_id=ing.id,
                type=StockMoveType.SALE,
                qty_change=qty(after - before),
                reason=f"Sale {ref_sale_id}" if ref_sale_id else "Sale",
                ref_sale_id=ref_sale_id,
            ))
            touched += 1
        db.commit()
    except Exception as e:
        db.rollback()
        raise BackendError(f"update_ingredients_stock failed: {e}") from e
    return touched


def adjust_stock(db: Session, ing: Ingredient, delta: float, reason: str | None = None) -> Ingredient:
    before = float(ing.quantity or 0)
    ing.quantity = max(0.0, qty(before + delta))
    db.add(StockMove(
        ingredient_id=ing.id,
        type=StockMoveType.ADJUST,
        qty_change=qty(float(ing.quantity) - before),
        reason=reason,
    ))
    db.commit()
    db.refresh(ing)
    return ing


def fetch_low_stock_items(db: Session, profile_id: str) -> list[dict]:
    """Ingredients whose stock is below their reorder level.

    Unlike the per-sale assessment this ignores pending consumption and looks
    at stored stock only.
    """
    rows = (
        _active(db.query(Ingredient), Ingredient)
          .filter(Ingredient.business_profile_id == profile_id, Ingredient.reorder_level.isnot(None))
          .order_by(Ingredient.name.asc())
          .all()
    )
    return [
        {
            "id": i.id,
            "name": i.name,
            "quantity": float(i.quantity or 0),
            "unit": i.unit,
            "reorder_level": float(i.reorder_level),
            "category": i.category,
            "cost": float(i.cost or 0),
        }
        for i in rows
        if float(i.quantity or 0) < float(i.reorder_level)
    ]
