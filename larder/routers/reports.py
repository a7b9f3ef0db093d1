from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from larder.db import get_db
from larder.deps import ProfileContext, require_profile
from larder.schemas.reports import DishPerformanceOut, IngredientUsageOut, SalesReportOut, TopDishOut
from larder.services import reports

router = APIRouter(prefix="/reports", tags=["reports"])


def date_range(start: Optional[date] = None, end: Optional[date] = None) -> tuple[date, date]:
    """Defaults to the 30 days ending today."""
    end = end or date.today()
    start = start or end - timedelta(days=29)
    return start, end


@router.get("/sales", response_model=SalesReportOut)
def sales(
    rng: tuple[date, date] = Depends(date_range),
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    return reports.sales_report(db, ctx.profile_id, *rng)


@router.get("/top_dishes", response_model=List[TopDishOut])
def top_dishes(
    limit: int = Query(5, ge=1, le=50),
    rng: tuple[date, date] = Depends(date_range),
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    return reports.top_dishes(db, ctx.profile_id, *rng, limit=limit)


@router.get("/inventory_usage", response_model=List[IngredientUsageOut])
def inventory_usage(
    rng: tuple[date, date] = Depends(date_range),
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    return reports.inventory_usage(db, ctx.profile_id, *rng)


@router.get("/dishes/{dish_id}", response_model=DishPerformanceOut)
def dish_performance(
    dish_id: str,
    rng: tuple[date, date] = Depends(date_range),
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    return reports.dish_performance(db, ctx.profile_id, dish_id, *rng)
