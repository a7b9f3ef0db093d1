import csv
import io
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from larder.db import get_db
from larder.deps import ProfileContext, get_dashboard, require_profile, require_role
from larder.models.core import Ingredient, MemberRole, Supplier
from larder.schemas.ingredients import (
    IngredientIn, IngredientOut, IngredientPatch, LowStockOut, StockAdjustIn,
)
from larder.services.stock import adjust_stock, fetch_low_stock_items

router = APIRouter(prefix="/ingredients", tags=["ingredients"])


def _get_owned(db: Session, ctx: ProfileContext, ingredient_id: str) -> Ingredient:
    ing = db.get(Ingredient, ingredient_id)
    if not ing or ing.deleted_at is not None or ing.business_profile_id != ctx.profile_id:
        raise HTTPException(404, detail="ingredient not found")
    return ing


def _check_supplier(db: Session, ctx: ProfileContext, supplier_id: str | None):
    if not supplier_id:
        return
    s = db.get(Supplier, supplier_id)
    if not s or s.deleted_at is not None or s.business_profile_id != ctx.profile_id:
        raise HTTPException(400, detail="unknown supplier_id")


@router.get("", response_model=List[IngredientOut])
def list_ingredients(
    category: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    q = (db.query(Ingredient)
           .filter(Ingredient.business_profile_id == ctx.profile_id, Ingredient.deleted_at.is_(None)))
    if category:
        q = q.filter(Ingredient.category == category)
    if search:
        q = q.filter(Ingredient.name.ilike(f"%{search}%"))
    return [IngredientOut.model_validate(i) for i in q.order_by(Ingredient.name.asc()).all()]


@router.post("", response_model=IngredientOut)
def create_ingredient(
    body: IngredientIn,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
    dashboard=Depends(get_dashboard),
):
    _check_supplier(db, ctx, body.supplier_id)
    ing = Ingredient(business_profile_id=ctx.profile_id, **body.model_dump())
    db.add(ing); db.commit(); db.refresh(ing)
    dashboard.invalidate(ctx.profile_id)
    return IngredientOut.model_validate(ing)


@router.get("/low_stock", response_model=List[LowStockOut])
def low_stock(db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    return [LowStockOut(**i) for i in fetch_low_stock_items(db, ctx.profile_id)]


@router.get("/categories")
def categories(db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    rows = (db.query(Ingredient.category)
              .filter(Ingredient.business_profile_id == ctx.profile_id, Ingredient.deleted_at.is_(None))
              .distinct().order_by(Ingredient.category.asc()).all())
    return [r[0] for r in rows if r[0]]


EXPORT_COLUMNS = [
    "Name", "Category", "Quantity", "Unit", "Cost", "Reorder Level", "Minimum Stock",
    "Supplier", "Location", "Expiry Date",
]


@router.get("/export")
def export_csv(db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    rows = (db.query(Ingredient, Supplier.name)
              .outerjoin(Supplier, Supplier.id == Ingredient.supplier_id)
              .filter(Ingredient.business_profile_id == ctx.profile_id, Ingredient.deleted_at.is_(None))
              .order_by(Ingredient.name.asc()).all())
    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow(EXPORT_COLUMNS)
    for ing, supplier_name in rows:
        w.writerow([
            ing.name, ing.category or "", float(ing.quantity or 0), ing.unit, float(ing.cost or 0),
            "" if ing.reorder_level is None else float(ing.reorder_level),
            "" if ing.minimum_stock_level is None else float(ing.minimum_stock_level),
            supplier_name or "", ing.location or "",
            ing.expiry_date.isoformat() if ing.expiry_date else "",
        ])
    return Response(
        content=buf.getvalue(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="inventory.csv"'},
    )


@router.get("/{ingredient_id}", response_model=IngredientOut)
def get_ingredient(ingredient_id: str, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    return IngredientOut.model_validate(_get_owned(db, ctx, ingredient_id))


@router.patch("/{ingredient_id}", response_model=IngredientOut)
def update_ingredient(
    ingredient_id: str,
    body: IngredientPatch,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
    dashboard=Depends(get_dashboard),
):
    ing = _get_owned(db, ctx, ingredient_id)
    changes = body.model_dump(exclude_unset=True)
    _check_supplier(db, ctx, changes.get("supplier_id"))
    for k, v in changes.items():
        setattr(ing, k, v)
    db.commit(); db.refresh(ing)
    dashboard.invalidate(ctx.profile_id)
    return IngredientOut.model_validate(ing)


@router.post("/{ingredient_id}/adjust", response_model=IngredientOut)
def adjust(
    ingredient_id: str,
    body: StockAdjustIn,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
    dashboard=Depends(get_dashboard),
):
    ing = adjust_stock(db, _get_owned(db, ctx, ingredient_id), body.delta, body.reason)
    dashboard.invalidate(ctx.profile_id)
    return IngredientOut.model_validate(ing)


@router.delete("/{ingredient_id}")
def delete_ingredient(
    ingredient_id: str,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_role(MemberRole.MANAGER)),
    dashboard=Depends(get_dashboard),
):
    ing = _get_owned(db, ctx, ingredient_id)
    ing.deleted_at = datetime.now(timezone.utc)
    db.commit()
    dashboard.invalidate(ctx.profile_id)
    return {"ok": True, "id": ingredient_id}
