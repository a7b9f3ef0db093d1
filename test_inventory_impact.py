# test_inventory_impact.py
import logging

import pytest

from larder.services.inventory_impact import (
    IN_STOCK, LOW_STOCK, OUT_OF_STOCK, UNTRACKED,
    DishRecipe, InventoryImpactItem, RecipeLine, StockLevel,
    aggregate_inventory_impact, assess_impacts, assess_stock, calculate_inventory_impact,
    low_stock_alerts, status_counts,
)

TOMATO = RecipeLine("ing-tomato", "Tomato", "kg", 2.0)
CHEESE = RecipeLine("ing-cheese", "Cheese", "g", 50.0)

DISHES = {
    "pizza": DishRecipe("pizza", "Pizza", 12.5, "Mains", (TOMATO, CHEESE)),
    "salad": DishRecipe("salad", "Salad", 7.0, "Starters", (RecipeLine("ing-tomato", "Tomato", "kg", 1.0),)),
    "water": DishRecipe("water", "Water", 1.0),
}


def _used(impact):
    return {k: v.quantity_used for k, v in impact.items()}


@pytest.mark.parametrize("q", [0, -1, -0.5])
def test_non_positive_quantity_has_no_impact(q):
    assert calculate_inventory_impact("pizza", q, DISHES) == []


def test_unknown_dish_and_dish_without_recipe_have_no_impact():
    assert calculate_inventory_impact("nope", 3, DISHES) == []
    assert calculate_inventory_impact("water", 3, DISHES) == []


def test_impact_scales_recipe_lines():
    items = calculate_inventory_impact("pizza", 3, DISHES)
    assert items == [
        InventoryImpactItem("ing-tomato", "Tomato", 6.0, "kg"),
        InventoryImpactItem("ing-cheese", "Cheese", 150.0, "g"),
    ]


def test_aggregate_sums_shared_ingredients():
    impact = aggregate_inventory_impact({"pizza": 2, "salad": 3}, DISHES)
    assert _used(impact) == {"ing-tomato": 7.0, "ing-cheese": 100.0}


def test_aggregate_ignores_order_and_zero_entries():
    a = aggregate_inventory_impact({"pizza": 2, "salad": 3, "water": 0}, DISHES)
    b = aggregate_inventory_impact({"water": 5, "salad": 3, "pizza": 2}, DISHES)
    assert _used(a) == _used(b)
    assert aggregate_inventory_impact({"pizza": 0, "salad": -2}, DISHES) == {}


def test_aggregate_is_repeatable_and_leaves_inputs_alone():
    entries = {"pizza": 1, "salad": 1}
    before = dict(entries)
    first = aggregate_inventory_impact(entries, DISHES)
    second = aggregate_inventory_impact(entries, DISHES)
    assert first == second
    assert entries == before
    assert DISHES["pizza"].lines == (TOMATO, CHEESE)


def test_first_record_supplies_name_and_unit(caplog):
    dishes = {
        "a": DishRecipe("a", "A", 1.0, lines=(RecipeLine("ing-x", "Flour", "kg", 1.0),)),
        "b": DishRecipe("b", "B", 1.0, lines=(RecipeLine("ing-x", "Flour (bulk)", "g", 500.0),)),
    }
    with caplog.at_level(logging.WARNING):
        impact = aggregate_inventory_impact({"a": 1, "b": 1}, dishes)
    item = impact["ing-x"]
    assert (item.name, item.unit, item.quantity_used) == ("Flour", "kg", 501.0)
    assert "ing-x" in caplog.text


# ---------- stock assessment ----------

def _tomato_used(n_pizzas):
    return aggregate_inventory_impact({"pizza": n_pizzas}, DISHES)["ing-tomato"]


def test_selling_four_leaves_low_stock():
    a = assess_stock(_tomato_used(4), StockLevel(current_stock=10, minimum_stock=3))
    assert a.remaining == 2
    assert a.is_low_stock and not a.is_out_of_stock
    assert a.status == LOW_STOCK


def test_selling_five_runs_out():
    a = assess_stock(_tomato_used(5), StockLevel(current_stock=10, minimum_stock=3))
    assert a.remaining == 0
    assert a.is_out_of_stock and a.is_low_stock
    assert a.status == OUT_OF_STOCK


def test_remaining_equal_to_minimum_is_not_low():
    item = InventoryImpactItem("ing-tomato", "Tomato", 7.0, "kg")
    a = assess_stock(item, StockLevel(current_stock=10, minimum_stock=3))
    assert a.remaining == 3
    assert not a.is_low_stock
    assert a.status == IN_STOCK


def test_remaining_never_negative():
    a = assess_stock(_tomato_used(10), StockLevel(current_stock=10, minimum_stock=3))
    assert a.remaining == 0
    assert a.status == OUT_OF_STOCK


def test_out_of_stock_with_zero_minimum_is_not_low():
    a = assess_stock(_tomato_used(5), StockLevel(current_stock=10, minimum_stock=0))
    assert a.is_out_of_stock and not a.is_low_stock


def test_missing_inventory_record_is_untracked():
    a = assess_stock(_tomato_used(50), None)
    assert a.status == UNTRACKED
    assert a.remaining is None
    assert not a.is_low_stock and not a.is_out_of_stock


def test_counts_and_alerts():
    impact = aggregate_inventory_impact({"pizza": 4, "salad": 0}, DISHES)
    levels = {"ing-tomato": StockLevel(10, 3)}
    assessed = assess_impacts(impact, levels)
    assert status_counts(assessed) == {"outOfStock": 0, "lowStock": 1, "inStock": 0}
    assert low_stock_alerts(assessed) == ["Tomato (2.0 kg remaining)"]

    levels["ing-cheese"] = StockLevel(150, 100)
    assessed = assess_impacts(impact, levels)
    assert status_counts(assessed) == {"outOfStock": 1, "lowStock": 1, "inStock": 0}
    assert low_stock_alerts(assessed) == ["Tomato (2.0 kg remaining)", "Cheese (0.0 g remaining)"]
