"""Availability Scorer: how much of a recipe the current stock already covers."""

from typing import Mapping, Sequence

from ..core.text import normalize_label
from ..domain import InventoryBatch, ProductRef, RecipeCandidate
from .unit_normalizer import normalize_quantity_unit


def available_quantity(batches: Sequence[InventoryBatch], unit: str) -> float:
    """Stock on hand across batches sharing the ingredient's base unit."""
    return sum(b.quantity for b in batches if b.unit == unit and b.quantity > 0)


def score_recipe_availability(
    recipe: RecipeCandidate,
    products_by_name: Mapping[str, ProductRef],
    inventory_by_product: Mapping[str, Sequence[InventoryBatch]],
    portion_multiplier: float,
    family_size: int,
) -> float:
    """
    Score in [0, 1].

    Each ingredient with a positive scaled requirement contributes
    min(available / required, 1), or 0 when the product is unknown or out of
    stock. Ingredients normalizing to "no quantity" are left out of the mean.
    A recipe with nothing scoreable scores 0.
    """
    total = 0.0
    counted = 0
    for ingredient in recipe.ingredients:
        try:
            scaled = float(ingredient.quantity) * portion_multiplier
        except (TypeError, ValueError):
            continue
        product = products_by_name.get(normalize_label(ingredient.name))
        raw_unit = ingredient.unit or (product.default_unit if product else None) or "pcs"
        required = normalize_quantity_unit(scaled, raw_unit, family_size)
        if required.quantity is None:
            continue
        counted += 1
        if product is None:
            continue
        available = available_quantity(inventory_by_product.get(product.id, ()), required.unit)
        if available <= 0:
            continue
        total += min(available / required.quantity, 1.0)

    if counted == 0:
        return 0.0
    return round(total / counted, 3)
