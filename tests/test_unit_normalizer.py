import pytest

from pantryplan.domain import IngredientSpec, InventoryBatch, ProductRef, RecipeCandidate
from pantryplan.services.availability import score_recipe_availability
from pantryplan.services.portions import compute_portion_multiplier
from pantryplan.services.unit_normalizer import normalize_quantity_unit, sanitize_unit, to_base_unit


# --- Units ---

@pytest.mark.parametrize("raw, expected", [
    ("Kilos", "kg"),
    ("grammes", "g"),
    ("gr", "g"),
    ("Litres", "l"),
    ("cl", "cl"),
    ("pièces", "pcs"),
    ("cuillère", "pcs"),
    ("", "pcs"),
    (None, "pcs"),
])
def test_sanitize_unit(raw, expected):
    assert sanitize_unit(raw) == expected


def test_kg_is_converted_and_clamped_for_four():
    assert normalize_quantity_unit(5, "kg") == {"quantity": 720, "unit": "g"}


def test_volume_is_converted_to_ml():
    assert normalize_quantity_unit(0.2, "L", 4) == {"quantity": 200, "unit": "ml"}


def test_tiny_quantities_hit_the_minimum():
    assert normalize_quantity_unit(2, "g").quantity == 10
    assert normalize_quantity_unit(0.2, "pcs").quantity == 1


def test_pieces_capped_per_person():
    assert normalize_quantity_unit(12, "pièces", 2) == {"quantity": 8, "unit": "pcs"}


def test_mass_rounds_half_up_to_ten():
    assert normalize_quantity_unit(123, "g").quantity == 120
    assert normalize_quantity_unit(125, "g").quantity == 130


@pytest.mark.parametrize("raw", [-1, 0, "abc", None, float("nan"), True])
def test_invalid_quantity_keeps_sanitized_unit(raw):
    result = normalize_quantity_unit(raw, "kg")
    assert result.quantity is None
    assert result.unit == "kg"


def test_bad_family_size_defaults():
    # 0 and non-numeric fall back to four people, negatives to one
    assert normalize_quantity_unit(5, "kg", 0).quantity == 720
    assert normalize_quantity_unit(5, "kg", "beaucoup").quantity == 720
    assert normalize_quantity_unit(1, "kg", -2).quantity == 180


def test_to_base_unit_does_not_clamp():
    assert to_base_unit(1.5, "kg") == (1500.0, "g", 1000.0)
    assert to_base_unit(40, "pcs") == (40, "pcs", 1.0)


# --- Portions ---

def test_portion_multiplier_baseline():
    assert compute_portion_multiplier([{"age_group": "adult"}] * 4) == 1.0


def test_portion_multiplier_with_toddler():
    family = [{"age_group": "adult"}] * 3 + [{"age_group": "toddler"}]
    assert compute_portion_multiplier(family) == 0.875


def test_portion_multiplier_unknown_group_counts_as_adult():
    family = [{"age_group": "senior"}, {"age_group": None}, {}, {"age_group": "adult"}]
    assert compute_portion_multiplier(family) == 1.0


def test_portion_multiplier_teenagers():
    family = [{"age_group": "adult"}] * 2 + [{"age_group": "teenager"}] * 3 + [{"age_group": "toddler"}]
    assert compute_portion_multiplier(family) == 1.45


def test_portion_multiplier_keeps_three_decimals():
    family = [{"age_group": "adult"}] * 3 + [{"age_group": "teenager"}]
    assert compute_portion_multiplier(family) == 1.025


# --- Availability ---

def _stock(product_id, grams):
    return InventoryBatch(id=f"b-{product_id}", product_id=product_id, quantity=grams, unit="g", factor=1.0, stored_unit="g")


def test_availability_is_mean_of_covered_ratios():
    pates = ProductRef(id="p1", name="Pâtes", default_unit="g")
    recipe = RecipeCandidate(
        id="r1",
        title="Pâtes",
        meal_type="lunch",
        ingredients=[
            IngredientSpec("Pâtes", 600, "g"),
            IngredientSpec("Inconnu", 100, "g"),
            IngredientSpec("Sel", None, None),
        ],
    )
    score = score_recipe_availability(recipe, {"pates": pates}, {"p1": [_stock("p1", 300)]}, 1.0, 4)
    assert score == 0.25


def test_availability_caps_each_ingredient_at_one():
    pates = ProductRef(id="p1", name="Pâtes", default_unit="g")
    recipe = RecipeCandidate(id="r1", title="Pâtes", meal_type="lunch", ingredients=[IngredientSpec("pates", 600, "g")])
    assert score_recipe_availability(recipe, {"pates": pates}, {"p1": [_stock("p1", 5000)]}, 1.0, 4) == 1.0


def test_availability_without_scoreable_ingredients_is_zero():
    recipe = RecipeCandidate(id="r1", title="Eau", meal_type="lunch", ingredients=[IngredientSpec("Eau")])
    assert score_recipe_availability(recipe, {}, {}, 1.0, 4) == 0.0
