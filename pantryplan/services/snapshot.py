"""Load the planning snapshot from the store.

Read failures here are fatal to the request (StoreUnavailableError); the
empty-household and empty-recipe-pool cases fall back to demo data.
"""

import json
import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..core.text import normalize_meal_type
from ..domain import FamilyMember, IngredientSpec, InventoryBatch, ProductRef, RecipeCandidate, ShoppingEntry
from ..errors import StoreUnavailableError
from .allocation import batch_from_stock
from .fallbacks import DEFAULT_FAMILY, FALLBACK_RECIPES
from .shopping_list import load_pending_entries

logger = logging.getLogger("pantryplan.snapshot")

STORE_UNAVAILABLE_MESSAGE = "Impossible de lire les données du foyer."


@dataclass
class PlanningSnapshot:
    family: list[FamilyMember]
    products: list[ProductRef]
    inventory: list[InventoryBatch]
    recipes: list[RecipeCandidate]
    shopping: list[ShoppingEntry] = field(default_factory=list)


def _recipe_ingredients(raw) -> list[IngredientSpec]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw or "[]")
        except ValueError:
            logger.warning("Unparsable recipe ingredients, ignoring them")
            return []
    if not isinstance(raw, list):
        return []
    return [IngredientSpec.from_raw(item) for item in raw if item]


def recipe_from_row(row: models.RecipeTemplate) -> RecipeCandidate:
    return RecipeCandidate(
        id=row.id,
        title=row.title,
        meal_type=normalize_meal_type(row.meal_type),
        description=row.description or "",
        ingredients=_recipe_ingredients(row.ingredients),
        suitable_for_toddler=row.suitable_for_toddler is not False,
        prep_time_minutes=row.prep_time_minutes,
        cook_time_minutes=row.cook_time_minutes,
        recipe_url=row.recipe_url,
    )


def load_family(db: Session) -> list[FamilyMember]:
    try:
        rows = db.scalars(select(models.FamilyMember).order_by(models.FamilyMember.created_at)).all()
    except SQLAlchemyError as e:
        logger.error("Family read failed: %s", e)
        raise StoreUnavailableError(STORE_UNAVAILABLE_MESSAGE) from e
    if not rows:
        return list(DEFAULT_FAMILY)
    return [FamilyMember(id=r.id, name=r.name, age_group=r.age_group or "adult") for r in rows]


def load_inventory_summary(db: Session) -> list[dict]:
    """[{name, quantity, unit}] in stored units, for LLM prompts."""
    try:
        rows = db.scalars(
            select(models.InventoryEntry).options(selectinload(models.InventoryEntry.product))
        ).all()
    except SQLAlchemyError as e:
        logger.error("Inventory read failed: %s", e)
        raise StoreUnavailableError(STORE_UNAVAILABLE_MESSAGE) from e
    return [
        {
            "name": r.product.name,
            "quantity": float(r.quantity or 0),
            "unit": r.unit or r.product.default_unit or "pcs",
        }
        for r in rows
        if r.product is not None
    ]


def load_recipes(db: Session) -> list[RecipeCandidate]:
    try:
        rows = db.scalars(select(models.RecipeTemplate).order_by(models.RecipeTemplate.title)).all()
    except SQLAlchemyError as e:
        logger.error("Recipe read failed: %s", e)
        raise StoreUnavailableError(STORE_UNAVAILABLE_MESSAGE) from e
    if not rows:
        return list(FALLBACK_RECIPES)
    return [recipe_from_row(r) for r in rows]


def load_snapshot(db: Session) -> PlanningSnapshot:
    family = load_family(db)
    recipes = load_recipes(db)
    try:
        product_rows = db.scalars(select(models.Product)).all()
        inventory_rows = db.scalars(select(models.InventoryEntry)).all()
        shopping = load_pending_entries(db)
    except SQLAlchemyError as e:
        logger.error("Snapshot read failed: %s", e)
        raise StoreUnavailableError(STORE_UNAVAILABLE_MESSAGE) from e

    products = [ProductRef(id=p.id, name=p.name, default_unit=p.default_unit or "pcs") for p in product_rows]
    inventory = [
        batch_from_stock(
            id=r.id,
            product_id=r.product_id,
            quantity=r.quantity,
            unit=r.unit,
            expiry_date=r.expiry_date,
            minimum_threshold=r.minimum_threshold,
        )
        for r in inventory_rows
        if r.product_id
    ]
    return PlanningSnapshot(
        family=family,
        products=products,
        inventory=inventory,
        recipes=recipes,
        shopping=shopping,
    )
