"""Dashboard reads.

Each read goes through the shared ``MemoizedFetch`` under the key
``"{profile_id}:{name}"`` and runs its query on a worker thread with a
session of its own, so a timed-out query never holds the request's session.
Reads never raise: failures come back as the last good value or the
documented default.
"""
import asyncio
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Callable

from sqlalchemy import func
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from larder.config import settings
from larder.models.core import Ingredient, Sale
from larder.services.memo import MemoizedFetch
from larder.services.stock import fetch_low_stock_items

log = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ["Meat", "Produce", "Dairy", "Dry Goods", "Seafood"]


def _month_start(d: date, back: int = 0) -> date:
    y, m = d.year, d.month - back
    while m <= 0:
        m += 12
        y -= 1
    return date(y, m, 1)


def default_months(today: date) -> list[dict]:
    out = []
    for back in range(5, -1, -1):
        m = _month_start(today, back)
        out.append({"month": m.strftime("%b"), "key": m.strftime("%Y-%m"), "sales": 0.0})
    return out


# ── queries (sync, run on a worker thread) ──────────────────────────────────

def _sales(db: Session, profile_id: str):
    return db.query(Sale).filter(Sale.business_profile_id == profile_id, Sale.deleted_at.is_(None))


def query_inventory_value(db: Session, profile_id: str) -> float:
    total = (
        db.query(func.coalesce(func.sum(Ingredient.quantity * func.coalesce(Ingredient.cost, 0)), 0))
          .filter(Ingredient.business_profile_id == profile_id, Ingredient.deleted_at.is_(None))
          .scalar()
    )
    return round(float(total or 0), 2)


def query_monthly_sales(db: Session, profile_id: str, today: date) -> dict:
    months = default_months(today)
    start = _month_start(today, 5)
    rows = _sales(db, profile_id).filter(Sale.date >= start, Sale.date <= today).all()
    by_key = {m["key"]: m for m in months}
    for s in rows:
        bucket = by_key.get(s.date.strftime("%Y-%m"))
        if bucket is not None:
            bucket["sales"] = round(bucket["sales"] + float(s.total_amount or 0), 2)
    return {"current_month_sales": months[-1]["sales"], "monthly_sales_data": months}


def query_sales_growth(db: Session, profile_id: str, today: date) -> float:
    """Percent change of last calendar month over the month before it."""
    last_start = _month_start(today, 1)
    prev_start = _month_start(today, 2)
    this_start = _month_start(today, 0)

    def total(start: date, end: date) -> float:
        v = (
            db.query(func.coalesce(func.sum(Sale.total_amount), 0))
              .filter(Sale.business_profile_id == profile_id, Sale.deleted_at.is_(None),
                      Sale.date >= start, Sale.date < end)
              .scalar()
        )
        return float(v or 0)

    last = total(last_start, this_start)
    prev = total(prev_start, last_start)
    if prev == 0:
        return 100.0 if last > 0 else 0.0
    return round((last - prev) / prev * 100, 1)


def query_recent_sales(db: Session, profile_id: str, limit: int = 5) -> list[dict]:
    rows = _sales(db, profile_id).order_by(Sale.created_at.desc()).limit(limit).all()
    return [
        {"id": s.id, "date": s.created_at.isoformat() if s.created_at else None,
         "amount": float(s.total_amount or 0), "dish_name": s.dish_name}
        for s in rows
    ]


def query_top_selling(db: Session, profile_id: str, window: int = 100, top: int = 5) -> list[dict]:
    rows = _sales(db, profile_id).order_by(Sale.created_at.desc()).limit(window).all()
    by_dish: dict[str, float] = defaultdict(float)
    for s in rows:
        by_dish[s.dish_name or "Unknown Dish"] += float(s.quantity or 0)
    ranked = sorted(by_dish.items(), key=lambda kv: (-kv[1], kv[0]))
    return [{"name": name, "quantity": q} for name, q in ranked[:top]]


def query_inventory_alerts(db: Session, profile_id: str, today: date) -> list[dict]:
    alerts = [
        {"id": i["id"], "name": i["name"], "current_stock": i["quantity"],
         "reorder_level": i["reorder_level"], "expiry_date": None, "type": "low_stock"}
        for i in fetch_low_stock_items(db, profile_id)
    ]
    horizon = today + timedelta(days=settings.EXPIRY_WINDOW_DAYS)
    expiring = (
        db.query(Ingredient)
          .filter(Ingredient.business_profile_id == profile_id, Ingredient.deleted_at.is_(None),
                  Ingredient.expiry_date.isnot(None), Ingredient.expiry_date <= horizon)
          .order_by(Ingredient.expiry_date.asc())
          .all()
    )
    for i in expiring:
        alerts.append({
            "id": i.id, "name": i.name, "current_stock": float(i.quantity or 0),
            "reorder_level": float(i.reorder_level or 0),
            "expiry_date": i.expiry_date.isoformat(), "type": "expiring",
        })
    return alerts


def query_category_stats(db: Session, profile_id: str) -> list[dict]:
    rows = (
        db.query(Ingredient.category, func.count(Ingredient.id))
          .filter(Ingredient.business_profile_id == profile_id, Ingredient.deleted_at.is_(None))
          .group_by(Ingredient.category)
          .order_by(Ingredient.category.asc())
          .all()
    )
    if not rows:
        return default_categories()
    return [{"name": cat or "Other", "count": int(n)} for cat, n in rows]


def default_categories() -> list[dict]:
    return [{"name": c, "count": 0} for c in DEFAULT_CATEGORIES]


# ── cached service ──────────────────────────────────────────────────────────

class DashboardService:
    def __init__(self, memo: MemoizedFetch, session_factory: Callable[[], Session],
                 today: Callable[[], date] = date.today):
        self.memo = memo
        self.session_factory = session_factory
        self.today = today

    def _read(self, fn, *args):
        async def fetch():
            def work():
                db = self.session_factory()
                try:
                    return fn(db, *args)
                finally:
                    db.close()
            return await run_in_threadpool(work)
        return fetch

    async def _get(self, profile_id: str | None, name: str, fn, default, *args, force: bool = False):
        if not profile_id:
            return default() if callable(default) else default
        return await self.memo.get(f"{profile_id}:{name}", self._read(fn, profile_id, *args), default, force=force)

    async def low_stock_items(self, profile_id, force=False):
        return await self._get(profile_id, "lowStockItems", fetch_low_stock_items, list, force=force)

    async def low_stock_count(self, profile_id, force=False) -> int:
        return len(await self.low_stock_items(profile_id, force=force))

    async def inventory_value(self, profile_id, force=False) -> float:
        return await self._get(profile_id, "inventoryValue", query_inventory_value, 0.0, force=force)

    async def monthly_sales(self, profile_id, force=False) -> dict:
        today = self.today()

        def empty():
            return {"current_month_sales": 0.0, "monthly_sales_data": default_months(today)}
        return await self._get(profile_id, "monthlySales", query_monthly_sales, empty, today, force=force)

    async def sales_growth(self, profile_id, force=False) -> float:
        return await self._get(profile_id, "salesGrowth", query_sales_growth, 0.0, self.today(), force=force)

    async def recent_sales(self, profile_id, force=False):
        return await self._get(profile_id, "recentSales", query_recent_sales, list, force=force)

    async def top_selling(self, profile_id, force=False):
        return await self._get(profile_id, "topSelling", query_top_selling, list, force=force)

    async def inventory_alerts(self, profile_id, force=False):
        return await self._get(profile_id, "inventoryAlerts", query_inventory_alerts, list,
                               self.today(), force=force)

    async def category_stats(self, profile_id, force=False):
        return await self._get(profile_id, "categoryStats", query_category_stats, default_categories, force=force)

    async def stats(self, profile_id, force=False) -> dict:
        value, low, monthly, growth = await asyncio.gather(
            self.inventory_value(profile_id, force),
            self.low_stock_count(profile_id, force),
            self.monthly_sales(profile_id, force),
            self.sales_growth(profile_id, force),
        )
        return {
            "total_inventory_value": value,
            "low_stock_items": low,
            "monthly_sales": monthly["current_month_sales"],
            "sales_growth": growth,
        }

    def invalidate(self, profile_id: str) -> None:
        n = self.memo.invalidate(f"{profile_id}:")
        log.debug("dashboard: %d cached reads marked stale for %s", n, profile_id)
