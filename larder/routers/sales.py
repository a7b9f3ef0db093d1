from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from larder.config import settings
from larder.db import get_db
from larder.deps import ProfileContext, get_dashboard, require_profile, require_role
from larder.models.core import MemberRole, Sale, Shift
from larder.schemas.sales import (
    ImpactOut, NoticeOut, SaleOut, SalePatch, SalesFormIn, SalesPreviewOut, SubmissionOut,
)
from larder.services.inventory_impact import assess_impacts, low_stock_alerts, status_counts
from larder.services.sales_submission import (
    SalesForm, SalesSubmission, SqlSalesGateway, SubmissionState, derive,
)
from larder.services.stock import load_dish_table, load_stock_levels
from larder.util.numbers import money

router = APIRouter(prefix="/sales", tags=["sales"])


def _sale_out(s: Sale) -> SaleOut:
    return SaleOut(
        id=s.id, dish_id=s.dish_id, dish_name=s.dish_name, quantity=float(s.quantity),
        total_amount=float(s.total_amount), date=s.date,
        shift=getattr(s.shift, "value", s.shift) or Shift.ALL.value,
        notes=s.notes, user_id=s.user_id, created_at=s.created_at,
    )


def _form(body: SalesFormIn) -> SalesForm:
    track = settings.TRACK_INVENTORY_DEFAULT if body.track_inventory is None else body.track_inventory
    return SalesForm(entries=dict(body.entries), date_string=body.date_string,
                     shift=body.shift, track_inventory=track)


def _get_owned(db: Session, ctx: ProfileContext, sale_id: str) -> Sale:
    s = db.get(Sale, sale_id)
    if not s or s.deleted_at is not None or s.business_profile_id != ctx.profile_id:
        raise HTTPException(404, detail="sale not found")
    return s


@router.get("", response_model=List[SaleOut])
def list_sales(
    date: Optional[date] = None,
    search: Optional[str] = None,
    shift: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    q = db.query(Sale).filter(Sale.business_profile_id == ctx.profile_id, Sale.deleted_at.is_(None))
    if date:
        q = q.filter(Sale.date == date)
    if search:
        q = q.filter(Sale.dish_name.ilike(f"%{search}%"))
    if shift and shift != Shift.ALL.value:
        try:
            q = q.filter(Sale.shift == Shift(shift))
        except ValueError:
            raise HTTPException(400, detail="invalid shift")
    rows = q.order_by(Sale.date.desc(), Sale.created_at.desc()).all()
    return [_sale_out(s) for s in rows]


@router.get("/by_date", response_model=List[SaleOut])
def sales_by_date(day: date, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    rows = (db.query(Sale)
              .filter(Sale.business_profile_id == ctx.profile_id, Sale.deleted_at.is_(None), Sale.date == day)
              .order_by(Sale.created_at.asc()).all())
    return [_sale_out(s) for s in rows]


@router.get("/template")
def previous_day_template(day: date, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    """Quantities sold the day before ``day``, keyed by dish id."""
    prev = day - timedelta(days=1)
    rows = (db.query(Sale)
              .filter(Sale.business_profile_id == ctx.profile_id, Sale.deleted_at.is_(None), Sale.date == prev)
              .all())
    template: dict[str, float] = {}
    for s in rows:
        template[s.dish_id] = template.get(s.dish_id, 0.0) + float(s.quantity)
    return {"date": prev.isoformat(), "entries": template, "available": bool(template)}


@router.post("/preview", response_model=SalesPreviewOut)
def preview(body: SalesFormIn, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    """Derived total and inventory impact of an unsaved form. No writes."""
    dishes = load_dish_table(db, ctx.profile_id)
    derived = derive(_form(body), dishes)
    levels = load_stock_levels(db, ctx.profile_id, derived.impact.keys())
    assessed = assess_impacts(derived.impact, levels)
    return SalesPreviewOut(
        total=derived.total,
        impact=[ImpactOut.model_validate(a) for a in assessed],
        status_counts=status_counts(assessed),
        low_stock_alerts=low_stock_alerts(assessed),
    )


@router.post("/submit", response_model=SubmissionOut)
def submit(
    body: SalesFormIn,
    response: Response,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
    dashboard=Depends(get_dashboard),
):
    dishes = load_dish_table(db, ctx.profile_id)
    flow = SalesSubmission(SqlSalesGateway(db, ctx.profile_id, ctx.user_id), dishes)
    res = flow.submit(_form(body))
    if res.sales:
        dashboard.invalidate(ctx.profile_id)
    if not res.ok:
        response.status_code = 500 if SubmissionState.FAILURE in res.history else 400
    return SubmissionOut(
        ok=res.ok,
        state=flow.state.value,
        notices=[NoticeOut(level=n.level, title=n.title, description=n.description) for n in res.notices],
        sales=[_sale_out(s) for s in res.sales],
        low_stock=res.low_stock,
        inventory_failures=res.inventory_failures,
        entries=dict(res.form.entries),
    )


@router.patch("/{sale_id}", response_model=SaleOut)
def update_sale(
    sale_id: str,
    body: SalePatch,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
    dashboard=Depends(get_dashboard),
):
    """Edit a recorded sale. Stock is not re-adjusted."""
    s = _get_owned(db, ctx, sale_id)
    changes = body.model_dump(exclude_unset=True)
    if "quantity" in changes and changes["quantity"] is not None:
        unit_price = float(s.total_amount) / float(s.quantity) if float(s.quantity) else 0.0
        s.quantity = changes["quantity"]
        s.total_amount = money(unit_price * changes["quantity"])
    if changes.get("date") is not None:
        s.date = changes["date"]
    if changes.get("shift") is not None:
        s.shift = Shift(changes["shift"])
    if "notes" in changes:
        s.notes = changes["notes"]
    db.commit(); db.refresh(s)
    dashboard.invalidate(ctx.profile_id)
    return _sale_out(s)


@router.delete("/{sale_id}")
def delete_sale(
    sale_id: str,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_role(MemberRole.MANAGER)),
    dashboard=Depends(get_dashboard),
):
    s = _get_owned(db, ctx, sale_id)
    s.deleted_at = datetime.now(timezone.utc)
    db.commit()
    dashboard.invalidate(ctx.profile_id)
    return {"ok": True, "id": sale_id}
