from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from larder.db import get_db
from larder.deps import ProfileContext, require_profile
from larder.models.core import Ingredient, ShoppingListItem
from larder.schemas.shopping import ShoppingItemIn, ShoppingItemOut, ShoppingItemPatch
from larder.services.shopping import generate_shopping_list

router = APIRouter(prefix="/shopping_list", tags=["shopping_list"])


def _get_owned(db: Session, ctx: ProfileContext, item_id: str) -> ShoppingListItem:
    it = db.get(ShoppingListItem, item_id)
    if not it or it.deleted_at is not None or it.business_profile_id != ctx.profile_id:
        raise HTTPException(404, detail="shopping list item not found")
    return it


def _mark(it: ShoppingListItem, purchased: bool):
    it.is_purchased = purchased
    it.purchased_at = datetime.now(timezone.utc) if purchased else None


@router.get("", response_model=List[ShoppingItemOut])
def list_items(
    purchased: Optional[bool] = None,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    q = (db.query(ShoppingListItem)
           .filter(ShoppingListItem.business_profile_id == ctx.profile_id, ShoppingListItem.deleted_at.is_(None)))
    if purchased is not None:
        q = q.filter(ShoppingListItem.is_purchased.is_(purchased))
    return [ShoppingItemOut.model_validate(i) for i in q.order_by(ShoppingListItem.added_at.desc()).all()]


@router.post("", response_model=ShoppingItemOut)
def create_item(body: ShoppingItemIn, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    if body.inventory_item_id:
        ing = db.get(Ingredient, body.inventory_item_id)
        if not ing or ing.business_profile_id != ctx.profile_id:
            raise HTTPException(400, detail="unknown inventory_item_id")
    it = ShoppingListItem(
        business_profile_id=ctx.profile_id,
        user_id=ctx.user_id,
        is_auto_generated=False,
        is_purchased=False,
        added_at=datetime.now(timezone.utc),
        **body.model_dump(),
    )
    db.add(it); db.commit(); db.refresh(it)
    return ShoppingItemOut.model_validate(it)


@router.post("/generate", response_model=List[ShoppingItemOut])
def generate(db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    rows = generate_shopping_list(db, ctx.profile_id, user_id=ctx.user_id)
    return [ShoppingItemOut.model_validate(i) for i in rows]


@router.patch("/{item_id}", response_model=ShoppingItemOut)
def update_item(
    item_id: str,
    body: ShoppingItemPatch,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    it = _get_owned(db, ctx, item_id)
    changes = body.model_dump(exclude_unset=True)
    purchased = changes.pop("is_purchased", None)
    for k, v in changes.items():
        setattr(it, k, v)
    if purchased is not None:
        _mark(it, purchased)
    db.commit(); db.refresh(it)
    return ShoppingItemOut.model_validate(it)


@router.post("/{item_id}/purchased", response_model=ShoppingItemOut)
def mark_purchased(
    item_id: str,
    value: bool = True,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    it = _get_owned(db, ctx, item_id)
    _mark(it, value)
    db.commit(); db.refresh(it)
    return ShoppingItemOut.model_validate(it)


@router.delete("/{item_id}")
def delete_item(item_id: str, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    it = _get_owned(db, ctx, item_id)
    it.deleted_at = datetime.now(timezone.utc)
    db.commit()
    return {"ok": True, "id": item_id}
