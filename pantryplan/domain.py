"""In-memory planning snapshot.

The allocator only sees these plain records; rows are copied out of the
store once per request and written back afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional


@dataclass(frozen=True)
class FamilyMember:
    id: str
    name: str
    age_group: str = "adult"


@dataclass(frozen=True)
class ProductRef:
    id: str
    name: str
    default_unit: str = "pcs"


@dataclass
class InventoryBatch:
    """Stock batch expressed in its base unit (g, ml or pcs).

    `factor` converts back to the stored unit: stored = quantity / factor.
    """
    id: str
    product_id: str
    quantity: float
    unit: str
    factor: float = 1.0
    stored_unit: str = "pcs"
    expiry_date: Optional[date] = None
    minimum_threshold: Optional[float] = None
    dirty: bool = False

    def stored_quantity(self) -> float:
        return round(self.quantity / self.factor, 2)


@dataclass(frozen=True)
class IngredientSpec:
    name: str
    quantity: Any = None
    unit: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "IngredientSpec":
        if not isinstance(raw, dict):
            return cls(name=str(raw or ""))
        name = raw.get("product") or raw.get("name") or raw.get("title") or ""
        return cls(name=str(name), quantity=raw.get("quantity"), unit=raw.get("unit"))


@dataclass
class RecipeCandidate:
    id: str
    title: str
    meal_type: str
    description: str = ""
    ingredients: list[IngredientSpec] = field(default_factory=list)
    suitable_for_toddler: bool = True
    prep_time_minutes: Any = None
    cook_time_minutes: Any = None
    recipe_url: Optional[str] = None


@dataclass
class ManualMeal:
    """Meal authored outside the planner (AI proposal or user edit)."""
    meal_type: str
    title: str
    description: str = ""
    ingredients: list[IngredientSpec] = field(default_factory=list)
    suitable_for_toddler: bool = True
    suitable_for: Optional[list[str]] = None
    portion_multiplier: Optional[float] = None
    prep_time_minutes: Any = None
    cook_time_minutes: Any = None
    recipe_url: Optional[str] = None


@dataclass
class PlannedIngredient:
    name: str
    product_id: Optional[str]
    quantity: float
    unit: str
    available_qty: float
    missing_qty: float


@dataclass
class PlannedMenu:
    date: date
    meal_type: str
    title: str
    description: str
    recipe_id: Optional[str]
    suitable_for: list[str]
    suitable_for_toddler: bool
    portion_multiplier: float
    stock_status: str
    source: str
    prep_time_minutes: Optional[int]
    cook_time_minutes: Optional[int]
    raw_recipe_url: Optional[str]
    ingredients: list[PlannedIngredient] = field(default_factory=list)
    recipe_url: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.date.isoformat()}:{self.meal_type}"


@dataclass
class LowStockAlert:
    product_id: str
    batch_id: str
    quantity: float
    unit: str


@dataclass
class ShoppingEntry:
    """Unpurchased shopping list line; `id` is None until inserted."""
    id: Optional[str]
    product_id: Optional[str]
    name: Optional[str]
    quantity: float
    unit: str
    priority: str = "high"
    added_reason: str = "auto"
