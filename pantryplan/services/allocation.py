"""
Meal Plan Allocator.

Fills a grid of (date, meal_type) slots from an in-memory snapshot:

1. Pick a meal per slot: the manual meal when one is given, otherwise a
   recipe drawn from the pool (meal type, toddler preference, diversity,
   availability score, random pick inside the 0.05 tie-bucket).
2. Scale ingredients by the portion multiplier (manual meals are absolute)
   and normalize them.
3. Consume stock FIFO by expiry, record available/missing per line.
4. Queue shopping deltas and low-stock alerts.

No I/O happens here; `agents.planner_agent` loads the snapshot and writes
the result back.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..core.text import normalize_label, normalize_meal_type, normalize_meal_types, parse_minutes
from ..domain import (
    FamilyMember,
    IngredientSpec,
    InventoryBatch,
    LowStockAlert,
    ManualMeal,
    PlannedIngredient,
    PlannedMenu,
    ProductRef,
    RecipeCandidate,
    ShoppingEntry,
)
from ..errors import NoRecipesAvailableError
from .availability import score_recipe_availability
from .portions import compute_portion_multiplier
from .shopping_list import ShoppingListMerger
from .unit_normalizer import normalize_quantity_unit, to_base_unit

logger = logging.getLogger("pantryplan.allocation")

TIE_BUCKET_WIDTH = 0.05

SCOPE_TODAY = "today"
SCOPE_WEEK = "week"


# --- Request helpers ---

def plan_days(start: date, scope: str) -> list[date]:
    count = 1 if scope == SCOPE_TODAY else 7
    return [start + timedelta(days=i) for i in range(count)]


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _float_or_none(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def parse_manual_meal(raw: Mapping[str, Any]) -> ManualMeal:
    suitable_for = raw.get("suitable_for")
    return ManualMeal(
        meal_type=normalize_meal_type(raw.get("meal_type") or raw.get("mealType") or ""),
        title=str(raw.get("title") or "").strip(),
        description=str(raw.get("description") or ""),
        ingredients=[IngredientSpec.from_raw(i) for i in (raw.get("ingredients") or []) if i],
        suitable_for_toddler=raw.get("suitable_for_toddler") is not False,
        suitable_for=[str(i) for i in suitable_for] if isinstance(suitable_for, list) else None,
        portion_multiplier=_float_or_none(raw.get("portion_multiplier")),
        prep_time_minutes=raw.get("prep_time_minutes"),
        cook_time_minutes=raw.get("cook_time_minutes"),
        recipe_url=raw.get("recipe_url") or raw.get("instructions_url"),
    )


def parse_manual_plan(raw_plan: Optional[Sequence[Any]]) -> dict[date, list[ManualMeal]]:
    """[{date, meals: [...]}, ...] -> {date: [ManualMeal]}; malformed days are skipped."""
    plan: dict[date, list[ManualMeal]] = {}
    for entry in raw_plan or []:
        if not isinstance(entry, Mapping):
            continue
        day = _parse_date(entry.get("date"))
        meals = entry.get("meals")
        if day is None or not isinstance(meals, list):
            continue
        plan[day] = [parse_manual_meal(m) for m in meals if isinstance(m, Mapping)]
    return plan


def batch_from_stock(
    id: str,
    product_id: str,
    quantity: Any,
    unit: Any,
    expiry_date: Optional[date] = None,
    minimum_threshold: Optional[float] = None,
) -> InventoryBatch:
    """Stock row -> batch in base units. Stock is never clamped."""
    try:
        stored = max(0.0, float(quantity or 0))
    except (TypeError, ValueError):
        stored = 0.0
    base_quantity, base_unit, factor = to_base_unit(stored, unit)
    return InventoryBatch(
        id=id,
        product_id=product_id,
        quantity=base_quantity,
        unit=base_unit,
        factor=factor,
        stored_unit=unit or "pcs",
        expiry_date=expiry_date,
        minimum_threshold=minimum_threshold,
    )


def _fifo_key(batch: InventoryBatch):
    # Undated batches go last
    return (batch.expiry_date is None, batch.expiry_date or date.max)


# --- Result ---

@dataclass
class AllocationResult:
    source: str
    days: list[date]
    meal_types: list[str]
    menus: list[PlannedMenu] = field(default_factory=list)
    dirty_batches: list[InventoryBatch] = field(default_factory=list)
    shopping_updates: list[ShoppingEntry] = field(default_factory=list)
    shopping_insertions: list[ShoppingEntry] = field(default_factory=list)
    low_stock_alerts: list[LowStockAlert] = field(default_factory=list)

    @property
    def shopping_changed(self) -> bool:
        return bool(self.shopping_updates or self.shopping_insertions)

    @property
    def date_range(self) -> tuple[date, date]:
        return self.days[0], self.days[-1]


# --- Allocator ---

class MealPlanAllocator:
    def __init__(
        self,
        family: Sequence[FamilyMember],
        products: Iterable[ProductRef],
        inventory: Iterable[InventoryBatch],
        recipes: Sequence[RecipeCandidate],
        shopping: Iterable[ShoppingEntry] = (),
        rng: Optional[random.Random] = None,
    ):
        self.family = list(family)
        self.recipes = list(recipes)
        self.rng = rng or random.Random()

        self.products_by_id: dict[str, ProductRef] = {}
        self.products_by_name: dict[str, ProductRef] = {}
        for product in products:
            self.products_by_id[product.id] = product
            self.products_by_name.setdefault(normalize_label(product.name), product)

        self.inventory_by_product: dict[str, list[InventoryBatch]] = {}
        for batch in inventory:
            self.inventory_by_product.setdefault(batch.product_id, []).append(batch)
        for batches in self.inventory_by_product.values():
            batches.sort(key=_fifo_key)

        self.shopping = ShoppingListMerger(shopping)
        self.portion_multiplier = compute_portion_multiplier(self.family)
        self.family_size = len(self.family)
        self.has_toddler = any(m.age_group == "toddler" for m in self.family)

        self._used_recipe_ids: set[str] = set()
        self._low_stock: dict[str, LowStockAlert] = {}

    # Recipe selection

    def score(self, recipe: RecipeCandidate) -> float:
        return score_recipe_availability(
            recipe,
            self.products_by_name,
            self.inventory_by_product,
            self.portion_multiplier,
            self.family_size,
        )

    def candidate_pool(self, meal_type: str) -> list[RecipeCandidate]:
        pool = [r for r in self.recipes if r.meal_type == meal_type] or list(self.recipes)
        if self.has_toddler:
            friendly = [r for r in pool if r.suitable_for_toddler]
            if friendly:
                pool = friendly
        unused = [r for r in pool if r.id not in self._used_recipe_ids]
        return unused or pool

    def tie_bucket(self, candidates: Sequence[RecipeCandidate]) -> list[RecipeCandidate]:
        """Candidates scoring within TIE_BUCKET_WIDTH of the best one."""
        if not candidates:
            return []
        scored = [(self.score(r), r) for r in candidates]
        top = max(s for s, _ in scored)
        return [r for s, r in scored if top - s < TIE_BUCKET_WIDTH]

    def draw_recipe(self, meal_type: str) -> Optional[RecipeCandidate]:
        bucket = self.tie_bucket(self.candidate_pool(meal_type))
        if not bucket:
            return None
        recipe = self.rng.choice(bucket)
        self._used_recipe_ids.add(recipe.id)
        return recipe

    # Stock consumption

    def _check_low_stock(self, batch: InventoryBatch) -> None:
        if batch.minimum_threshold is None:
            return
        remaining = batch.stored_quantity()
        if remaining <= batch.minimum_threshold:
            self._low_stock[batch.id] = LowStockAlert(
                product_id=batch.product_id,
                batch_id=batch.id,
                quantity=remaining,
                unit=batch.stored_unit,
            )

    def allocate_ingredient(self, ingredient: IngredientSpec, scale: float) -> Optional[PlannedIngredient]:
        """Consume stock for one ingredient; None when it has no usable name or quantity."""
        key = normalize_label(ingredient.name)
        if not key:
            return None
        product = self.products_by_name.get(key)
        try:
            base_quantity = float(ingredient.quantity or 0)
        except (TypeError, ValueError):
            base_quantity = 0.0
        raw_unit = ingredient.unit or (product.default_unit if product else None) or "pcs"
        required = normalize_quantity_unit(base_quantity * scale, raw_unit, self.family_size)
        if required.quantity is None:
            return None
        quantity = float(required.quantity)
        unit = required.unit

        if product is None:
            self.shopping.add_shortfall(None, ingredient.name, quantity, unit)
            return PlannedIngredient(
                name=ingredient.name,
                product_id=None,
                quantity=quantity,
                unit=unit,
                available_qty=0.0,
                missing_qty=quantity,
            )

        remaining = quantity
        consumed = 0.0
        touched = []
        for batch in self.inventory_by_product.get(product.id, ()):
            if remaining <= 0:
                break
            if batch.unit != unit or batch.quantity <= 0:
                continue
            take = min(batch.quantity, remaining)
            batch.quantity = round(batch.quantity - take, 2)
            batch.dirty = True
            consumed += take
            remaining -= take
            touched.append(batch)

        for batch in touched:
            self._check_low_stock(batch)

        missing = max(0.0, round(remaining, 2))
        if missing > 0:
            self.shopping.add_shortfall(product.id, product.name, missing, unit)

        return PlannedIngredient(
            name=product.name,
            product_id=product.id,
            quantity=round(quantity, 2),
            unit=unit,
            available_qty=round(consumed, 2),
            missing_qty=missing,
        )

    # Slots

    def _suitable_for(self, manual: Optional[ManualMeal], toddler_ok: bool) -> list[str]:
        member_ids = [m.id for m in self.family]
        if manual is not None and manual.suitable_for is not None:
            return [i for i in manual.suitable_for if i in member_ids]
        if not toddler_ok:
            return [m.id for m in self.family if m.age_group != "toddler"]
        return member_ids

    def fill_slot(
        self,
        day: date,
        meal_type: str,
        source: str,
        manual: Optional[ManualMeal] = None,
    ) -> Optional[PlannedMenu]:
        recipe = None
        if manual is not None:
            title = manual.title or meal_type
            description = manual.description
            ingredients = manual.ingredients
            toddler_ok = manual.suitable_for_toddler
            scale = 1.0
            prep, cook = manual.prep_time_minutes, manual.cook_time_minutes
            raw_url = manual.recipe_url
        else:
            recipe = self.draw_recipe(meal_type)
            if recipe is None:
                return None
            title = recipe.title
            description = recipe.description or ""
            ingredients = recipe.ingredients
            toddler_ok = recipe.suitable_for_toddler
            scale = self.portion_multiplier
            prep, cook = recipe.prep_time_minutes, recipe.cook_time_minutes
            raw_url = recipe.recipe_url

        lines = []
        for ingredient in ingredients:
            line = self.allocate_ingredient(ingredient, scale)
            if line is not None:
                lines.append(line)

        if not any(line.available_qty > 0 for line in lines):
            stock_status = "missing-all"
        elif any(line.missing_qty > 0 for line in lines):
            stock_status = "missing-partial"
        else:
            stock_status = "ready"

        multiplier = self.portion_multiplier
        if manual is not None and manual.portion_multiplier:
            multiplier = manual.portion_multiplier

        return PlannedMenu(
            date=day,
            meal_type=meal_type,
            title=title,
            description=description or "",
            recipe_id=recipe.id if recipe else None,
            suitable_for=self._suitable_for(manual, toddler_ok),
            suitable_for_toddler=toddler_ok,
            portion_multiplier=multiplier,
            stock_status=stock_status,
            source=source,
            prep_time_minutes=parse_minutes(prep),
            cook_time_minutes=parse_minutes(cook),
            raw_recipe_url=raw_url,
            ingredients=lines,
        )

    def allocate(
        self,
        days: Sequence[date],
        meal_types: Optional[Sequence[str]] = None,
        manual_plan: Optional[Mapping[date, Sequence[ManualMeal]]] = None,
    ) -> AllocationResult:
        """
        Fill every slot of the grid.

        With a manual plan the grid becomes the plan's dates (sorted) and
        any meal type it names is appended; its slots without a manual meal
        are drawn like any other. Source is "ai" for manual plans, else
        "auto".
        """
        meal_types = normalize_meal_types(list(meal_types or []))
        has_manual = bool(manual_plan)
        if not has_manual and not self.recipes:
            raise NoRecipesAvailableError("Aucune recette disponible pour générer les menus.")

        if has_manual:
            days = sorted(manual_plan.keys())
            for meals in manual_plan.values():
                for meal in meals:
                    if meal.meal_type not in meal_types:
                        meal_types.append(meal.meal_type)
        days = list(days)
        source = "ai" if has_manual else "auto"

        result = AllocationResult(source=source, days=days, meal_types=meal_types)
        for day in days:
            planned = (manual_plan or {}).get(day) or []
            for meal_type in meal_types:
                manual = next((m for m in planned if m.meal_type == meal_type), None)
                menu = self.fill_slot(day, meal_type, source, manual)
                if menu is None:
                    logger.info("No recipe for %s %s, slot left empty", day, meal_type)
                    continue
                result.menus.append(menu)

        result.dirty_batches = [
            b for batches in self.inventory_by_product.values() for b in batches if b.dirty
        ]
        result.shopping_updates = self.shopping.updates
        result.shopping_insertions = list(self.shopping.insertions)
        result.low_stock_alerts = list(self._low_stock.values())
        return result
