from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from larder.db import get_db
from larder.deps import ProfileContext, require_profile, require_role
from larder.errors import NotFound, ValidationFailed
from larder.models.core import Dish, DishIngredient, Ingredient, MemberRole
from larder.schemas.dishes import (
    DishIn, DishIngredientIn, DishIngredientOut, DishOut, DishPatch, RecipeOut,
)

router = APIRouter(prefix="/dishes", tags=["dishes"])
recipes_router = APIRouter(prefix="/api", tags=["dishes"])


# ---------- helpers ----------

def _lines(d: Dish) -> list[DishIngredientOut]:
    return [
        DishIngredientOut(
            ingredient_id=di.ingredient_id,
            name=di.ingredient.name if di.ingredient else None,
            unit=di.ingredient.unit if di.ingredient else None,
            quantity=float(di.quantity),
        )
        for di in d.ingredients
    ]


def _dish_out(d: Dish) -> DishOut:
    return DishOut(
        id=d.id, name=d.name, price=float(d.price or 0), category=d.category,
        description=d.description, image_url=d.image_url,
        food_cost=float(d.food_cost) if d.food_cost is not None else None,
        is_archived=bool(d.is_archived), ingredients=_lines(d),
    )


def _get_owned(db: Session, ctx: ProfileContext, dish_id: str) -> Dish:
    d = db.get(Dish, dish_id)
    if not d or d.deleted_at is not None or d.business_profile_id != ctx.profile_id:
        raise NotFound("dish not found")
    return d


def _set_lines(db: Session, ctx: ProfileContext, d: Dish, lines: list[DishIngredientIn]):
    merged: dict[str, float] = {}
    for line in lines:
        merged[line.ingredient_id] = merged.get(line.ingredient_id, 0.0) + line.quantity
    if merged:
        known = {
            row[0] for row in
            db.query(Ingredient.id)
              .filter(Ingredient.id.in_(list(merged)), Ingredient.business_profile_id == ctx.profile_id,
                      Ingredient.deleted_at.is_(None))
              .all()
        }
        missing = sorted(set(merged) - known)
        if missing:
            raise ValidationFailed(f"unknown ingredient ids: {', '.join(missing)}")
    # keep existing rows so (dish_id, ingredient_id) is updated, not re-inserted
    current = {di.ingredient_id: di for di in d.ingredients}
    lines_out = []
    for ingredient_id, q in merged.items():
        di = current.get(ingredient_id) or DishIngredient(ingredient_id=ingredient_id)
        di.quantity = q
        lines_out.append(di)
    d.ingredients = lines_out


# ---------- dishes ----------

@router.get("", response_model=List[DishOut])
def list_dishes(
    category: Optional[str] = None,
    include_archived: bool = False,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    q = db.query(Dish).filter(Dish.business_profile_id == ctx.profile_id, Dish.deleted_at.is_(None))
    if category:
        q = q.filter(Dish.category == category)
    if not include_archived:
        q = q.filter(Dish.is_archived.is_(False))
    return [_dish_out(d) for d in q.order_by(Dish.name.asc()).all()]


@router.post("", response_model=DishOut)
def create_dish(body: DishIn, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    d = Dish(
        business_profile_id=ctx.profile_id,
        **body.model_dump(exclude={"ingredients"}),
    )
    db.add(d)
    _set_lines(db, ctx, d, body.ingredients)
    db.commit(); db.refresh(d)
    return _dish_out(d)


@router.get("/{dish_id}", response_model=DishOut)
def get_dish(dish_id: str, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    return _dish_out(_get_owned(db, ctx, dish_id))


@router.patch("/{dish_id}", response_model=DishOut)
def update_dish(
    dish_id: str,
    body: DishPatch,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    d = _get_owned(db, ctx, dish_id)
    changes = body.model_dump(exclude_unset=True, exclude={"ingredients"})
    for k, v in changes.items():
        setattr(d, k, v)
    if body.ingredients is not None:
        _set_lines(db, ctx, d, body.ingredients)
    db.commit(); db.refresh(d)
    return _dish_out(d)


@router.post("/{dish_id}/archive", response_model=DishOut)
def archive_dish(
    dish_id: str,
    value: bool = True,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    d = _get_owned(db, ctx, dish_id)
    d.is_archived = bool(value)
    db.commit(); db.refresh(d)
    return _dish_out(d)


@router.delete("/{dish_id}")
def delete_dish(
    dish_id: str,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_role(MemberRole.MANAGER)),
):
    """Soft delete; past sales keep their dish name."""
    d = _get_owned(db, ctx, dish_id)
    d.deleted_at = datetime.now(timezone.utc)
    db.commit()
    return {"ok": True, "id": dish_id}


# ---------- recipe feed ----------

@recipes_router.get("/recipes", response_model=List[RecipeOut])
def list_recipes(db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    rows = (db.query(Dish)
              .filter(Dish.business_profile_id == ctx.profile_id, Dish.deleted_at.is_(None),
                      Dish.is_archived.is_(False))
              .order_by(Dish.name.asc()).all())
    return [
        RecipeOut(
            id=d.id, name=d.name, price=float(d.price or 0), selling_price=float(d.price or 0),
            category=d.category, description=d.description, image=d.image_url,
            ingredients=_lines(d),
        )
        for d in rows
    ]
