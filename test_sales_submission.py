# test_sales_submission.py
import pytest

from larder.services.inventory_impact import DishRecipe, RecipeLine
from larder.services.sales_submission import (
    SalesForm, SalesSubmission, SubmissionState, derive,
)

DISHES = {
    "pizza": DishRecipe("pizza", "Pizza", 12.5, lines=(RecipeLine("ing-tomato", "Tomato", "kg", 2.0),)),
    "soup": DishRecipe("soup", "Soup", 4.1, lines=(RecipeLine("ing-tomato", "Tomato", "kg", 0.5),)),
}


class FakeGateway:
    def __init__(self, low_stock=(), fail_insert=False, fail_push=False, fail_shopping=False):
        self.calls = []
        self.low_stock = list(low_stock)
        self.fail_insert = fail_insert
        self.fail_push = fail_push
        self.fail_shopping = fail_shopping

    def insert_sale(self, draft):
        self.calls.append(("insert", draft.dish_id, draft.quantity, draft.total_amount))
        if self.fail_insert:
            raise ConnectionError("insert refused")
        return {"id": f"sale-{len(self.calls)}", "dish_id": draft.dish_id}

    def push_inventory_impact(self, impacts, sale):
        self.calls.append(("push", sale["dish_id"], [(i.ingredient_id, i.quantity_used) for i in impacts]))
        if self.fail_push:
            raise ConnectionError("rpc failed")

    def fetch_low_stock(self):
        self.calls.append(("low_stock",))
        return self.low_stock

    def generate_shopping_list(self, low_stock):
        self.calls.append(("shopping", len(low_stock)))
        if self.fail_shopping:
            raise ConnectionError("shopping list write failed")


def _form(**entries):
    return SalesForm(entries=entries, date_string="2026-10-19")


# ---------- form / derived state ----------

def test_form_edits_return_new_values():
    f0 = SalesForm(date_string="2026-10-19")
    f1 = f0.set_quantity("pizza", 3)
    f2 = f1.set_quantity("soup", -4)
    assert f0.entries == {}
    assert f1.entries == {"pizza": 3.0}
    assert f2.entries == {"pizza": 3.0, "soup": 0.0}
    assert f2.positive_entries() == {"pizza": 3.0}
    assert f2.clear().entries == {} and f2.clear().date_string == "2026-10-19"
    assert f0.load_template({"soup": 2}).entries == {"soup": 2}


def test_derive_total_and_impact():
    d = derive(_form(pizza=2, soup=3, ghost=9), DISHES)
    assert d.total == 37.3
    assert d.impact["ing-tomato"].quantity_used == 5.5


# ---------- validation ----------

def test_no_positive_quantities_never_reaches_gateway():
    gw = FakeGateway()
    flow = SalesSubmission(gw, DISHES)
    res = flow.submit(_form(pizza=0, soup=0))
    assert not res.ok
    assert res.notices[0].title == "No items to submit"
    assert gw.calls == []
    assert flow.state is SubmissionState.IDLE
    assert res.history == [SubmissionState.VALIDATING, SubmissionState.IDLE]


@pytest.mark.parametrize("bad", ["", "19/10/2026", "2026-13-01"])
def test_invalid_date_is_rejected(bad):
    gw = FakeGateway()
    res = SalesSubmission(gw, DISHES).submit(SalesForm(entries={"pizza": 1}, date_string=bad))
    assert not res.ok
    assert res.notices[0].title == "Invalid date"
    assert gw.calls == []


# ---------- submission ----------

def test_success_inserts_then_pushes_each_sale():
    gw = FakeGateway()
    flow = SalesSubmission(gw, DISHES)
    res = flow.submit(_form(pizza=2, soup=1))
    assert res.ok
    assert [n.title for n in res.notices] == ["Sales submitted successfully"]
    assert gw.calls == [
        ("insert", "pizza", 2, 25.0),
        ("push", "pizza", [("ing-tomato", 4.0)]),
        ("insert", "soup", 1, 4.1),
        ("push", "soup", [("ing-tomato", 0.5)]),
        ("low_stock",),
    ]
    assert res.form.entries == {}
    assert res.form.date_string == "2026-10-19"
    assert res.history == [
        SubmissionState.VALIDATING, SubmissionState.SUBMITTING, SubmissionState.SUCCESS, SubmissionState.IDLE,
    ]


def test_tracking_off_skips_inventory_push():
    gw = FakeGateway()
    form = SalesForm(entries={"pizza": 1}, date_string="2026-10-19", track_inventory=False)
    res = SalesSubmission(gw, DISHES).submit(form)
    assert res.ok
    assert [c[0] for c in gw.calls] == ["insert", "low_stock"]


def test_inventory_failure_does_not_undo_sales():
    gw = FakeGateway(fail_push=True)
    res = SalesSubmission(gw, DISHES).submit(_form(pizza=1, soup=1))
    assert res.ok
    assert len(res.sales) == 2
    assert res.inventory_failures == ["pizza", "soup"]


def test_insert_failure_preserves_form():
    gw = FakeGateway(fail_insert=True)
    flow = SalesSubmission(gw, DISHES)
    form = _form(pizza=2)
    res = flow.submit(form)
    assert not res.ok
    assert res.form == form
    assert res.notices[0].title == "Submission error"
    assert res.notices[0].description == "An unexpected error occurred while submitting sales. Please try again."
    assert SubmissionState.FAILURE in res.history
    assert flow.state is SubmissionState.IDLE


def test_unknown_dish_fails_submission():
    gw = FakeGateway()
    res = SalesSubmission(gw, DISHES).submit(_form(ghost=1))
    assert not res.ok
    assert res.notices[0].title == "Submission error"
    assert gw.calls == []


def test_low_stock_warning_and_shopping_list():
    low = [
        {"id": "ing-tomato", "name": "Tomato", "quantity": 2, "unit": "kg", "reorder_level": 5},
        {"id": "ing-basil", "name": "Basil", "quantity": 0.25, "unit": "bunch", "reorder_level": 1},
    ]
    gw = FakeGateway(low_stock=low)
    res = SalesSubmission(gw, DISHES).submit(_form(pizza=1))
    assert res.ok
    n = res.notices[0]
    assert n.level == "warning"
    assert n.title == "Sales submitted with low stock alerts"
    assert n.description == (
        "The following items are now below minimum stock levels: "
        "Tomato (2.0 kg remaining), Basil (0.2 bunch remaining)"
    )
    assert ("shopping", 2) in gw.calls
    assert res.low_stock == low


def test_shopping_list_failure_is_not_fatal():
    gw = FakeGateway(low_stock=[{"name": "Tomato", "quantity": 1, "unit": "kg"}], fail_shopping=True)
    res = SalesSubmission(gw, DISHES).submit(_form(pizza=1))
    assert res.ok
    assert res.notices[0].level == "warning"


def test_flow_is_reusable_after_each_outcome():
    gw = FakeGateway()
    flow = SalesSubmission(gw, DISHES)
    assert not flow.submit(_form()).ok
    assert flow.submit(_form(pizza=1)).ok
    assert flow.state is SubmissionState.IDLE


class FailOnDishGateway(FakeGateway):
    def __init__(self, fail_on):
        super().__init__()
        self.fail_on = fail_on
        self.committed = []

    def insert_sale(self, draft):
        if draft.dish_id == self.fail_on:
            raise ConnectionError("insert refused")
        self.committed.append(draft.dish_id)
        return {"id": draft.dish_id, "dish_id": draft.dish_id}


def test_partial_batch_failure_reports_committed_sales():
    gw = FailOnDishGateway(fail_on="soup")
    form = _form(pizza=1, soup=1)
    res = SalesSubmission(gw, DISHES).submit(form)
    assert not res.ok
    assert gw.committed == ["pizza"]
    assert res.sales == [{"id": "pizza", "dish_id": "pizza"}]
    assert res.inventory_failures == []
    assert res.form == form
    assert res.notices[0].title == "Submission error"
