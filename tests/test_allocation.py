import random
from datetime import date, timedelta

import pytest

from pantryplan.domain import FamilyMember, IngredientSpec, ProductRef, RecipeCandidate, ShoppingEntry
from pantryplan.errors import NoRecipesAvailableError
from pantryplan.services.allocation import (
    MealPlanAllocator,
    batch_from_stock,
    parse_manual_plan,
    plan_days,
)
from pantryplan.services.fallbacks import DEFAULT_FAMILY, FALLBACK_RECIPES

MONDAY = date(2026, 3, 2)

ADULTS = [FamilyMember(id=f"adult-{i}", name=f"Adulte {i}") for i in range(4)]
WITH_TODDLER = ADULTS[:3] + [FamilyMember(id="toddler", name="Lou", age_group="toddler")]

PATES = ProductRef(id="p-pates", name="Pâtes", default_unit="g")
RIZ = ProductRef(id="p-riz", name="Riz", default_unit="g")
LAIT = ProductRef(id="p-lait", name="Lait", default_unit="L")
PRODUCTS = [PATES, RIZ, LAIT]


def recipe(id, meal_type, *ingredients, toddler=True):
    return RecipeCandidate(
        id=id,
        title=f"Recette {id}",
        meal_type=meal_type,
        ingredients=[IngredientSpec(name, qty, unit) for name, qty, unit in ingredients],
        suitable_for_toddler=toddler,
    )


def allocator(recipes, inventory=(), family=ADULTS, shopping=(), seed=7):
    return MealPlanAllocator(
        family=family,
        products=PRODUCTS,
        inventory=list(inventory),
        recipes=recipes,
        shopping=shopping,
        rng=random.Random(seed),
    )


# --- Request helpers ---

def test_plan_days():
    assert plan_days(MONDAY, "today") == [MONDAY]
    week = plan_days(MONDAY, "week")
    assert len(week) == 7
    assert week[-1] == MONDAY + timedelta(days=6)


def test_batch_from_stock_converts_without_clamping():
    batch = batch_from_stock("b1", "p-pates", 25, "kg")
    assert batch.quantity == 25000
    assert batch.unit == "g"
    assert batch.stored_quantity() == 25


def test_parse_manual_plan_skips_malformed_days():
    plan = parse_manual_plan([
        {"date": "2026-03-03", "meals": [{"mealType": "Dîner", "title": "Soupe"}]},
        {"date": "demain", "meals": []},
        {"date": "2026-03-04"},
        "n'importe quoi",
    ])
    assert list(plan) == [date(2026, 3, 3)]
    assert plan[date(2026, 3, 3)][0].meal_type == "dinner"


# --- Stock consumption ---

def test_fifo_consumption_and_low_stock_alerts():
    b1 = batch_from_stock("b1", "p-pates", 300, "g", MONDAY + timedelta(days=1), 0)
    b2 = batch_from_stock("b2", "p-pates", 500, "g", MONDAY + timedelta(days=5), 250)
    b3 = batch_from_stock("b3", "p-pates", 1, "kg")
    alloc = allocator([recipe("r1", "lunch", ("Pâtes", 600, "g"))], [b3, b2, b1])

    result = alloc.allocate([MONDAY], ["lunch"])

    assert (b1.quantity, b2.quantity, b3.quantity) == (0, 200, 1000)
    assert {b.id for b in result.dirty_batches} == {"b1", "b2"}
    menu = result.menus[0]
    assert menu.stock_status == "ready"
    assert menu.ingredients[0].available_qty == 600
    assert menu.ingredients[0].missing_qty == 0
    alerts = {a.batch_id: a for a in result.low_stock_alerts}
    assert set(alerts) == {"b1", "b2"}
    assert alerts["b2"].quantity == 200
    assert alerts["b2"].unit == "g"
    assert not result.shopping_changed


def test_partial_stock_queues_the_shortfall():
    stock = batch_from_stock("b1", "p-pates", 200, "g")
    result = allocator([recipe("r1", "lunch", ("pates", 600, "g"))], [stock]).allocate([MONDAY], ["lunch"])

    line = result.menus[0].ingredients[0]
    assert result.menus[0].stock_status == "missing-partial"
    assert (line.available_qty, line.missing_qty) == (200, 400)
    assert line.product_id == "p-pates"
    [entry] = result.shopping_insertions
    assert (entry.product_id, entry.name, entry.quantity, entry.unit) == ("p-pates", None, 400, "g")
    assert entry.priority == "high"
    assert entry.added_reason == "auto"


def test_batches_in_other_units_are_left_alone():
    liquid = batch_from_stock("b-l", "p-lait", 1, "L")
    bottles = batch_from_stock("b-pcs", "p-lait", 6, "pcs")
    result = allocator([recipe("r1", "breakfast", ("Lait", 0.2, "L"))], [liquid, bottles]).allocate(
        [MONDAY], ["breakfast"]
    )

    assert liquid.quantity == 800
    assert liquid.stored_quantity() == 0.8
    assert bottles.quantity == 6
    assert not bottles.dirty
    assert [b.id for b in result.dirty_batches] == ["b-l"]


def test_low_stock_alert_is_reported_once_per_batch():
    stock = batch_from_stock("b1", "p-pates", 1000, "g", minimum_threshold=500)
    result = allocator([recipe("r1", "lunch", ("Pâtes", 300, "g"))], [stock]).allocate(
        plan_days(MONDAY, "week")[:3], ["lunch"]
    )

    [alert] = result.low_stock_alerts
    assert alert.quantity == 100
    assert stock.quantity == 100


# --- Shopping list ---

def test_shortfalls_for_one_product_merge_into_one_entry():
    alloc = allocator([recipe("r1", "lunch", ("Riz", 400, "g"))])
    result = alloc.allocate([MONDAY, MONDAY + timedelta(days=1)], ["lunch"])

    assert [m.stock_status for m in result.menus] == ["missing-all", "missing-all"]
    [entry] = result.shopping_insertions
    assert entry.product_id == "p-riz"
    assert entry.quantity == 800
    assert result.shopping_updates == []


def test_shortfall_is_added_to_existing_line_in_its_unit():
    existing = ShoppingEntry(
        id="s1", product_id="p-riz", name=None, quantity=1, unit="kg", priority="medium", added_reason="manual"
    )
    alloc = allocator([recipe("r1", "lunch", ("Riz", 400, "g"))], shopping=[existing])
    result = alloc.allocate([MONDAY, MONDAY + timedelta(days=1)], ["lunch"])

    assert result.shopping_insertions == []
    [entry] = result.shopping_updates
    assert entry.id == "s1"
    assert entry.quantity == 1.8
    assert entry.unit == "kg"
    assert entry.priority == "high"


def test_unknown_ingredient_goes_to_shopping_by_name():
    result = allocator([recipe("r1", "lunch", ("Safran", 2, "g"))]).allocate([MONDAY], ["lunch"])

    line = result.menus[0].ingredients[0]
    assert line.product_id is None
    assert (line.quantity, line.available_qty, line.missing_qty) == (10, 0, 10)
    [entry] = result.shopping_insertions
    assert entry.name == "Safran"
    assert entry.product_id is None


def test_nameless_ingredients_are_skipped():
    result = allocator([
        recipe("r1", "lunch", ("", 100, "g"), ("  ", 200, "g"), ("Safran", 2, "g")),
    ]).allocate([MONDAY], ["lunch"])

    [line] = result.menus[0].ingredients
    assert line.name == "Safran"
    assert [e.name for e in result.shopping_insertions] == ["Safran"]


def test_week_keeps_quantities_consistent():
    inventory = [
        batch_from_stock("b-pates", "p-pates", 1, "kg", MONDAY + timedelta(days=2), 100),
        batch_from_stock("b-riz", "p-riz", 500, "g"),
        batch_from_stock("b-lait", "p-lait", 2, "L"),
    ]
    alloc = MealPlanAllocator(DEFAULT_FAMILY, PRODUCTS, inventory, FALLBACK_RECIPES, rng=random.Random(3))
    result = alloc.allocate(plan_days(MONDAY, "week"))

    assert len(result.menus) <= 7 * 3
    assert len({m.key for m in result.menus}) == len(result.menus)
    for menu in result.menus:
        for line in menu.ingredients:
            assert abs(line.available_qty + line.missing_qty - line.quantity) <= 0.01
    assert all(b.quantity >= 0 for b in inventory)
    keys = [e.product_id or e.name for e in result.shopping_insertions]
    assert len(keys) == len(set(keys))


# --- Recipe selection ---

def test_tie_bucket_keeps_best_scores_only():
    stocked = recipe("a", "lunch", ("Pâtes", 600, "g"))
    others = [recipe("b", "lunch", ("Inconnu", 100, "g")), recipe("c", "lunch", ("Riz", 100, "g"))]
    alloc = allocator([stocked, *others], [batch_from_stock("b1", "p-pates", 1, "kg")])

    assert alloc.tie_bucket([stocked, *others]) == [stocked]
    assert alloc.draw_recipe("lunch") is stocked


@pytest.mark.parametrize("seed", range(10))
def test_draw_picks_inside_the_tie_bucket(seed):
    pool = [recipe(x, "dinner", ("Inconnu", 100, "g")) for x in "abc"]
    alloc = allocator(pool, seed=seed)
    bucket = alloc.tie_bucket(alloc.candidate_pool("dinner"))

    assert len(bucket) == 3
    assert alloc.draw_recipe("dinner") in bucket


def test_recipes_are_not_repeated_until_pool_is_exhausted():
    stocked = recipe("a", "lunch", ("Pâtes", 600, "g"))
    other = recipe("b", "lunch", ("Inconnu", 100, "g"))
    alloc = allocator([stocked, other], [batch_from_stock("b1", "p-pates", 1, "kg")])

    result = alloc.allocate(plan_days(MONDAY, "week")[:3], ["lunch"])
    assert [m.recipe_id for m in result.menus] == ["a", "b", "a"]


def test_meal_type_falls_back_to_whole_pool():
    alloc = allocator([recipe("a", "lunch", ("Riz", 100, "g"))])
    result = alloc.allocate([MONDAY], ["snack"])
    assert result.menus[0].recipe_id == "a"
    assert result.menus[0].meal_type == "snack"


def test_toddler_friendly_recipes_preferred():
    salad = recipe("salade", "dinner", ("Inconnu", 100, "g"), toddler=False)
    soup = recipe("soupe", "dinner", ("Inconnu", 100, "g"))
    alloc = allocator([salad, soup], family=WITH_TODDLER)

    assert alloc.candidate_pool("dinner") == [soup]
    menu = alloc.allocate([MONDAY], ["dinner"]).menus[0]
    assert menu.recipe_id == "soupe"
    assert "toddler" in menu.suitable_for
    assert menu.portion_multiplier == 0.875


def test_unfriendly_recipe_excludes_toddler_from_suitable_for():
    alloc = allocator([recipe("salade", "dinner", ("Inconnu", 100, "g"), toddler=False)], family=WITH_TODDLER)
    menu = alloc.allocate([MONDAY], ["dinner"]).menus[0]
    assert menu.suitable_for == ["adult-0", "adult-1", "adult-2"]
    assert menu.suitable_for_toddler is False


def test_meal_without_ingredients_is_missing_all():
    menu = allocator([recipe("vide", "lunch")]).allocate([MONDAY], ["lunch"]).menus[0]
    assert menu.stock_status == "missing-all"
    assert menu.ingredients == []


def test_no_recipes_and_no_plan_raises():
    with pytest.raises(NoRecipesAvailableError):
        allocator([]).allocate([MONDAY])


# --- Manual plans ---

def test_manual_plan_drives_dates_and_meal_types():
    plan = parse_manual_plan([{
        "date": "2026-03-03",
        "meals": [{
            "meal_type": "dîner",
            "title": "Soupe de carottes",
            "ingredients": [{"name": "Carottes", "quantity": 300, "unit": "g"}],
            "suitable_for_toddler": False,
        }],
    }])
    alloc = allocator([recipe("r1", "lunch", ("Riz", 100, "g"))], family=WITH_TODDLER)
    result = alloc.allocate([MONDAY], ["lunch"], plan)

    assert result.source == "ai"
    assert result.days == [date(2026, 3, 3)]
    assert result.meal_types == ["lunch", "dinner"]
    lunch, dinner = result.menus
    assert lunch.recipe_id == "r1"
    assert lunch.source == "ai"
    assert dinner.recipe_id is None
    assert dinner.title == "Soupe de carottes"
    # manual quantities are not scaled by the portion multiplier
    assert dinner.ingredients[0].quantity == 300
    assert "toddler" not in dinner.suitable_for


def test_manual_meal_keeps_its_own_multiplier_and_members():
    plan = parse_manual_plan([{
        "date": "2026-03-02",
        "meals": [{
            "meal_type": "lunch",
            "title": "Buffet",
            "portion_multiplier": 2,
            "suitable_for": ["adult-0", "inconnu"],
        }],
    }])
    result = allocator([]).allocate([MONDAY], ["lunch"], plan)

    [menu] = result.menus
    assert menu.portion_multiplier == 2
    assert menu.suitable_for == ["adult-0"]


def test_manual_plan_without_recipes_leaves_other_slots_empty():
    plan = parse_manual_plan([{"date": "2026-03-02", "meals": [{"meal_type": "dinner", "title": "Crêpes"}]}])
    result = allocator([]).allocate([MONDAY], None, plan)
    assert [m.meal_type for m in result.menus] == ["dinner"]
