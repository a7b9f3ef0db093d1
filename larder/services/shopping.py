import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from larder.config import settings
from larder.models.core import ShoppingListItem
from larder.services.stock import fetch_low_stock_items
from larder.util.numbers import money, qty

log = logging.getLogger(__name__)


def _open_auto_items(db: Session, profile_id: str) -> dict[str, ShoppingListItem]:
    rows = (
        db.query(ShoppingListItem)
          .filter(
              ShoppingListItem.business_profile_id == profile_id,
              ShoppingListItem.deleted_at.is_(None),
              ShoppingListItem.is_auto_generated.is_(True),
              ShoppingListItem.is_purchased.is_(False),
              ShoppingListItem.inventory_item_id.isnot(None),
          )
          .all()
    )
    return {r.inventory_item_id: r for r in rows}


def generate_shopping_list(
    db: Session,
    profile_id: str,
    low_stock: list[dict] | None = None,
    user_id: str | None = None,
) -> list[ShoppingListItem]:
    """Add (or top up) one auto-generated line per low-stock ingredient.

    The quantity brings stock back to ``reorder_level * SHOPPING_PAR_FACTOR``.
    An open auto line for the same ingredient is updated instead of duplicated.
    """
    if low_stock is None:
        low_stock = fetch_low_stock_items(db, profile_id)
    existing = _open_auto_items(db, profile_id)
    now = datetime.now(timezone.utc)
    out: list[ShoppingListItem] = []

    for item in low_stock:
        need = qty(item["reorder_level"] * settings.SHOPPING_PAR_FACTOR - item["quantity"])
        if need <= 0:
            continue
        cost = money(need * item.get("cost", 0))
        line = existing.get(item["id"])
        if line is None:
            line = ShoppingListItem(
                business_profile_id=profile_id,
                user_id=user_id,
                name=item["name"],
                quantity=need,
                unit=item["unit"],
                category=item.get("category") or "Other",
                estimated_cost=cost,
                is_auto_generated=True,
                is_purchased=False,
                inventory_item_id=item["id"],
                added_at=now,
            )
            db.add(line)
        else:
            line.quantity = need
            line.estimated_cost = cost
        out.append(line)

    db.commit()
    log.info("shopping list: %d auto lines for profile %s", len(out), profile_id)
    return out
