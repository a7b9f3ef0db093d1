"""Date-range reports over recorded sales and the stock-move audit trail.

Ranges are inclusive on both ends and zero-filled per day. Ingredient usage
comes from SALE stock moves, so it reflects what was actually decremented
rather than what the current recipes would imply.
"""
import logging
from collections import defaultdict
from datetime import date, timedelta

from sqlalchemy.orm import Session

from larder.errors import NotFound, ValidationFailed
from larder.models.core import Dish, Ingredient, Sale, StockMove, StockMoveType
from larder.util.numbers import money, qty

log = logging.getLogger(__name__)

MAX_RANGE_DAYS = 366


def range_days(start: date, end: date) -> list[date]:
    if end < start:
        raise ValidationFailed("end date is before start date")
    n = (end - start).days + 1
    if n > MAX_RANGE_DAYS:
        raise ValidationFailed(f"date range is longer than {MAX_RANGE_DAYS} days")
    return [start + timedelta(days=i) for i in range(n)]


def _sales(db: Session, profile_id: str, start: date, end: date, dish_id: str | None = None) -> list[Sale]:
    q = db.query(Sale).filter(
        Sale.business_profile_id == profile_id, Sale.deleted_at.is_(None),
        Sale.date >= start, Sale.date <= end,
    )
    if dish_id:
        q = q.filter(Sale.dish_id == dish_id)
    return q.order_by(Sale.date.asc(), Sale.created_at.asc()).all()


def recipe_unit_cost(d: Dish) -> float:
    """Ingredient cost of one serving at current ingredient prices."""
    return sum(
        float(di.ingredient.cost or 0) * float(di.quantity or 0)
        for di in d.ingredients
        if di.ingredient is not None
    )


def _unit_costs(db: Session, profile_id: str, dish_ids) -> dict[str, float]:
    ids = list(dish_ids)
    if not ids:
        return {}
    # archived and deleted dishes included
    rows = db.query(Dish).filter(Dish.business_profile_id == profile_id, Dish.id.in_(ids)).all()
    return {d.id: recipe_unit_cost(d) for d in rows}


def sales_report(db: Session, profile_id: str, start: date, end: date) -> dict:
    days = range_days(start, end)
    sales = _sales(db, profile_id, start, end)
    unit_cost = _unit_costs(db, profile_id, {s.dish_id for s in sales})

    by_day = {d: {"date": d, "sales": 0.0, "costs": 0.0} for d in days}
    for s in sales:
        row = by_day[s.date]
        row["sales"] += float(s.total_amount or 0)
        row["costs"] += unit_cost.get(s.dish_id, 0.0) * float(s.quantity or 0)

    total_sales = sum(r["sales"] for r in by_day.values())
    total_costs = sum(r["costs"] for r in by_day.values())
    for r in by_day.values():
        r["sales"], r["costs"] = money(r["sales"]), money(r["costs"])

    orders = len(sales)
    gross = total_sales - total_costs
    return {
        "start": start,
        "end": end,
        "days": list(by_day.values()),
        "metrics": {
            "total_sales": money(total_sales),
            "avg_daily_sales": money(total_sales / len(days)),
            "total_orders": orders,
            "avg_order_value": money(total_sales / orders) if orders else 0.0,
            "gross_profit": money(gross),
            "profit_margin": round(gross / total_sales * 100, 1) if total_sales > 0 else 0.0,
        },
    }


def top_dishes(db: Session, profile_id: str, start: date, end: date, limit: int = 5) -> list[dict]:
    """Dishes ranked by revenue; ``share`` is a percentage of the listed dishes' revenue."""
    range_days(start, end)
    grouped: dict[str, dict] = {}
    for s in _sales(db, profile_id, start, end):
        g = grouped.setdefault(s.dish_id, {
            "dish_id": s.dish_id, "name": s.dish_name or "Unknown Dish", "total": 0.0, "quantity": 0.0,
        })
        g["total"] += float(s.total_amount or 0)
        g["quantity"] += float(s.quantity or 0)

    ranked = sorted(grouped.values(), key=lambda g: (-g["total"], g["name"]))[:limit]
    listed = sum(g["total"] for g in ranked)
    for g in ranked:
        g["share"] = round(g["total"] / listed * 100) if listed > 0 else 0
        g["total"] = money(g["total"])
        g["quantity"] = qty(g["quantity"])
    return ranked


def inventory_usage(db: Session, profile_id: str, start: date, end: date) -> list[dict]:
    """Per-ingredient consumption by sale date, most used first."""
    days = range_days(start, end)
    rows = (
        db.query(StockMove.ingredient_id, Ingredient.name, Ingredient.unit, Ingredient.category,
                 Sale.date, StockMove.qty_change)
          .join(Ingredient, Ingredient.id == StockMove.ingredient_id)
          .join(Sale, Sale.id == StockMove.ref_sale_id)
          .filter(
              StockMove.type == StockMoveType.SALE,
              Ingredient.business_profile_id == profile_id,
              Sale.deleted_at.is_(None),
              Sale.date >= start, Sale.date <= end,
          )
          .all()
    )

    meta: dict[str, tuple] = {}
    daily: dict[str, dict[date, float]] = defaultdict(lambda: defaultdict(float))
    for ing_id, name, unit, category, day, change in rows:
        meta.setdefault(ing_id, (name, unit, category))
        daily[ing_id][day] += -float(change or 0)

    out = []
    for ing_id, (name, unit, category) in meta.items():
        per_day = daily[ing_id]
        out.append({
            "ingredient_id": ing_id,
            "name": name,
            "unit": unit,
            "category": category,
            "total": qty(sum(per_day.values())),
            "daily": [{"date": d, "quantity": qty(per_day.get(d, 0.0))} for d in days],
        })
    out.sort(key=lambda u: (-u["total"], u["name"]))
    log.debug("inventory usage %s..%s: %d ingredients", start, end, len(out))
    return out


def dietary_flags(categories) -> dict[str, bool]:
    cats = {c.lower() for c in categories if c}
    meat_free = not cats & {"meat", "seafood"}
    return {
        "vegetarian": meat_free,
        "vegan": meat_free and not cats & {"dairy", "eggs"},
        "gluten_free": not cats & {"gluten", "wheat"},
        "dairy_free": "dairy" not in cats,
    }


def dish_performance(db: Session, profile_id: str, dish_id: str, start: date, end: date) -> dict:
    range_days(start, end)
    d = db.get(Dish, dish_id)
    if not d or d.deleted_at is not None or d.business_profile_id != profile_id:
        raise NotFound("dish not found")

    lines = []
    for di in d.ingredients:
        ing = di.ingredient
        if ing is None:
            continue
        lines.append({
            "ingredient_id": ing.id,
            "name": ing.name,
            "quantity": float(di.quantity or 0),
            "unit": ing.unit,
            "cost": money(float(ing.cost or 0) * float(di.quantity or 0)),
            "category": ing.category or "Other",
        })
    unit_cost = recipe_unit_cost(d)

    sales = _sales(db, profile_id, start, end, dish_id=dish_id)
    total_quantity = sum(float(s.quantity or 0) for s in sales)
    total_revenue = sum(float(s.total_amount or 0) for s in sales)
    total_cost = unit_cost * total_quantity
    profit = total_revenue - total_cost

    per_day: dict[date, float] = defaultdict(float)
    for s in sales:
        per_day[s.date] += float(s.quantity or 0)

    return {
        "dish": {
            "id": d.id,
            "name": d.name,
            "price": float(d.price or 0),
            "ingredients": lines,
            "dietary": dietary_flags(l["category"] for l in lines),
        },
        "metrics": {
            "total_quantity": qty(total_quantity),
            "total_revenue": money(total_revenue),
            "total_cost": money(total_cost),
            "profit": money(profit),
            "profit_margin": round(profit / total_revenue * 100, 1) if total_revenue > 0 else 0.0,
            "cost_percentage": round(total_cost / total_revenue * 100, 1) if total_revenue > 0 else 0.0,
            "ingredient_cost_per_unit": money(unit_cost),
        },
        "daily": [{"date": day, "quantity": qty(q)} for day, q in sorted(per_day.items())],
    }
