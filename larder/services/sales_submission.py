"""Daily sales entry: form state, derived totals and the submit flow.

``SalesForm`` is an immutable value; every edit returns a new form and
``derive`` recomputes the total and inventory impact from scratch, so there
is a single place derived state comes from.

``SalesSubmission.submit`` walks ``idle -> validating -> submitting ->
success | failure -> idle``. Validation failures never reach the gateway.
Sales are inserted one at a time; an inventory update failure is logged and
does not undo the sale or stop the batch.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Mapping, Protocol

from sqlalchemy.orm import Session

from larder.models.core import Sale, Shift
from larder.services.inventory_impact import (
    DishRecipe, InventoryImpactItem, aggregate_inventory_impact, calculate_inventory_impact,
)
from larder.services.shopping import generate_shopping_list
from larder.services.stock import fetch_low_stock_items, update_ingredients_stock
from larder.util.numbers import money

log = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class SalesForm:
    entries: Mapping[str, float] = field(default_factory=dict)
    date_string: str = ""
    shift: str = Shift.ALL.value
    track_inventory: bool = True

    def set_quantity(self, dish_id: str, quantity: float) -> "SalesForm":
        entries = dict(self.entries)
        entries[dish_id] = max(0.0, float(quantity))
        return replace(self, entries=entries)

    def clear(self) -> "SalesForm":
        return replace(self, entries={})

    def load_template(self, template: Mapping[str, float]) -> "SalesForm":
        return replace(self, entries=dict(template))

    def positive_entries(self) -> dict[str, float]:
        return {k: v for k, v in self.entries.items() if v > 0}


@dataclass(frozen=True)
class DerivedSales:
    total: float
    impact: dict[str, InventoryImpactItem]


def derive(form: SalesForm, dishes: Mapping[str, DishRecipe]) -> DerivedSales:
    total = 0.0
    for dish_id, q in form.positive_entries().items():
        dish = dishes.get(dish_id)
        if dish is not None:
            total += dish.price * q
    return DerivedSales(total=money(total), impact=aggregate_inventory_impact(form.entries, dishes))


@dataclass(frozen=True)
class Notice:
    level: str  # success | warning | error
    title: str
    description: str | None = None


@dataclass(frozen=True)
class SaleDraft:
    dish_id: str
    dish_name: str
    quantity: float
    total_amount: float
    date: date
    shift: str


@dataclass
class SubmissionResult:
    ok: bool
    form: SalesForm
    notices: list[Notice]
    sales: list[Any] = field(default_factory=list)
    low_stock: list[dict] = field(default_factory=list)
    inventory_failures: list[str] = field(default_factory=list)
    history: list[SubmissionState] = field(default_factory=list)


class SalesGateway(Protocol):
    def insert_sale(self, draft: SaleDraft) -> Any: ...
    def push_inventory_impact(self, impacts: list[InventoryImpactItem], sale: Any) -> None: ...
    def fetch_low_stock(self) -> list[dict]: ...
    def generate_shopping_list(self, low_stock: list[dict]) -> None: ...


class SqlSalesGateway:
    """Gateway backed by the profile's tables."""

    def __init__(self, db: Session, profile_id: str, user_id: str | None = None):
        self.db = db
        self.profile_id = profile_id
        self.user_id = user_id

    def insert_sale(self, draft: SaleDraft) -> Sale:
        s = Sale(
            business_profile_id=self.profile_id,
            user_id=self.user_id,
            dish_id=draft.dish_id,
            dish_name=draft.dish_name,
            quantity=draft.quantity,
            total_amount=draft.total_amount,
            date=draft.date,
            shift=Shift(draft.shift),
        )
        self.db.add(s)
        self.db.commit()
        self.db.refresh(s)
        return s

    def push_inventory_impact(self, impacts: list[InventoryImpactItem], sale: Sale) -> None:
        update_ingredients_stock(self.db, self.profile_id, impacts, ref_sale_id=sale.id)

    def fetch_low_stock(self) -> list[dict]:
        return fetch_low_stock_items(self.db, self.profile_id)

    def generate_shopping_list(self, low_stock: list[dict]) -> None:
        generate_shopping_list(self.db, self.profile_id, low_stock, user_id=self.user_id)


def _parse_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


class SalesSubmission:
    def __init__(self, gateway: SalesGateway, dishes: Mapping[str, DishRecipe]):
        self.gateway = gateway
        self.dishes = dishes
        self.state = SubmissionState.IDLE
        self._history: list[SubmissionState] = []

    def _enter(self, state: SubmissionState) -> None:
        self.state = state
        self._history.append(state)

    def _finish(self, ok: bool, form: SalesForm, notices: list[Notice], **extra) -> SubmissionResult:
        self._enter(SubmissionState.IDLE)
        res = SubmissionResult(ok=ok, form=form, notices=notices, history=list(self._history), **extra)
        self._history = []
        return res

    def validate(self, form: SalesForm) -> Notice | None:
        if not form.positive_entries():
            return Notice("error", "No items to submit",
                          "Please add at least one item with a quantity greater than zero.")
        if _parse_date(form.date_string) is None:
            return Notice("error", "Invalid date", "Please select a valid date for the sales entry.")
        return None

    def _drafts(self, form: SalesForm) -> list[SaleDraft]:
        day = _parse_date(form.date_string)
        drafts = []
        for dish_id, q in form.positive_entries().items():
            dish = self.dishes.get(dish_id)
            if dish is None:
                raise LookupError(f"Dish not found: {dish_id}")
            drafts.append(SaleDraft(
                dish_id=dish_id, dish_name=dish.name, quantity=q,
                total_amount=money(dish.price * q), date=day, shift=form.shift,
            ))
        return drafts

    def submit(self, form: SalesForm) -> SubmissionResult:
        if self.state is not SubmissionState.IDLE:
            return SubmissionResult(ok=False, form=form, notices=[
                Notice("error", "Submission in progress")
            ])

        self._enter(SubmissionState.VALIDATING)
        problem = self.validate(form)
        if problem is not None:
            return self._finish(False, form, [problem])

        self._enter(SubmissionState.SUBMITTING)
        sales: list[Any] = []
        inventory_failures: list[str] = []
        try:
            for draft in self._drafts(form):
                sale = self.gateway.insert_sale(draft)
                sales.append(sale)
                if not form.track_inventory:
                    continue
                impacts = calculate_inventory_impact(draft.dish_id, draft.quantity, self.dishes)
                try:
                    self.gateway.push_inventory_impact(impacts, sale)
                except Exception:
                    log.warning("inventory update failed for dish %s; sale kept", draft.dish_id, exc_info=True)
                    inventory_failures.append(draft.dish_id)

            low_stock = self.gateway.fetch_low_stock()
        except Exception:
            log.exception("sales submission failed")
            self._enter(SubmissionState.FAILURE)
            # sales committed before the error are still reported
            return self._finish(False, form, [Notice(
                "error", "Submission error",
                "An unexpected error occurred while submitting sales. Please try again.",
            )], sales=sales, inventory_failures=inventory_failures)

        self._enter(SubmissionState.SUCCESS)
        if low_stock:
            try:
                self.gateway.generate_shopping_list(low_stock)
            except Exception:
                log.warning("shopping list generation failed", exc_info=True)
            listed = ", ".join(f"{i['name']} ({i['quantity']:.1f} {i['unit']} remaining)" for i in low_stock)
            notice = Notice("warning", "Sales submitted with low stock alerts",
                            f"The following items are now below minimum stock levels: {listed}")
        else:
            notice = Notice("success", "Sales submitted successfully")

        return self._finish(True, form.clear(), [notice], sales=sales,
                            low_stock=low_stock, inventory_failures=inventory_failures)
