from typing import List, Optional

from fastapi import APIRouter, Depends

from larder.deps import ProfileContext, get_dashboard, optional_profile
from larder.schemas.dashboard import (
    CategoryStatOut, DashboardStatsOut, InventoryAlertOut, MonthlySalesOut, RecentSaleOut, TopSellingOut,
)
from larder.services.dashboard import DashboardService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

# No resolvable profile -> empty defaults, never an error.


def _pid(ctx: Optional[ProfileContext]) -> str | None:
    return ctx.profile_id if ctx else None


@router.get("/stats", response_model=DashboardStatsOut)
async def stats(
    force: bool = False,
    ctx: Optional[ProfileContext] = Depends(optional_profile),
    svc: DashboardService = Depends(get_dashboard),
):
    return await svc.stats(_pid(ctx), force=force)


@router.get("/monthly_sales", response_model=MonthlySalesOut)
async def monthly_sales(
    force: bool = False,
    ctx: Optional[ProfileContext] = Depends(optional_profile),
    svc: DashboardService = Depends(get_dashboard),
):
    return await svc.monthly_sales(_pid(ctx), force=force)


@router.get("/top_selling", response_model=List[TopSellingOut])
async def top_selling(
    force: bool = False,
    ctx: Optional[ProfileContext] = Depends(optional_profile),
    svc: DashboardService = Depends(get_dashboard),
):
    return await svc.top_selling(_pid(ctx), force=force)


@router.get("/recent_sales", response_model=List[RecentSaleOut])
async def recent_sales(
    force: bool = False,
    ctx: Optional[ProfileContext] = Depends(optional_profile),
    svc: DashboardService = Depends(get_dashboard),
):
    return await svc.recent_sales(_pid(ctx), force=force)


@router.get("/alerts", response_model=List[InventoryAlertOut])
async def alerts(
    force: bool = False,
    ctx: Optional[ProfileContext] = Depends(optional_profile),
    svc: DashboardService = Depends(get_dashboard),
):
    return await svc.inventory_alerts(_pid(ctx), force=force)


@router.get("/low_stock_count")
async def low_stock_count(
    force: bool = False,
    ctx: Optional[ProfileContext] = Depends(optional_profile),
    svc: DashboardService = Depends(get_dashboard),
):
    return {"count": await svc.low_stock_count(_pid(ctx), force=force)}


@router.get("/categories", response_model=List[CategoryStatOut])
async def categories(
    force: bool = False,
    ctx: Optional[ProfileContext] = Depends(optional_profile),
    svc: DashboardService = Depends(get_dashboard),
):
    return await svc.category_stats(_pid(ctx), force=force)
