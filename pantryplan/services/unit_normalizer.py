"""
Unit Normalizer.

Collapses free-text quantity/unit pairs into g, ml or pcs and clamps them to
plausible per-household ranges, so that a hallucinated "5000 g salt" can't
dominate a shopping list.
"""

import math
from typing import Any, Optional, Tuple

from ..core.text import normalize_label

# --- Data Tables ---

# Canonical unit -> accepted spellings (compared after normalize_label)
UNIT_SYNONYMS = {
    "kg": {"kg", "kgs", "kilo", "kilos", "kilogramme", "kilogrammes", "kilogram", "kilograms"},
    "g": {"g", "gr", "grs", "gramme", "grammes", "gram", "grams"},
    "mg": {"mg", "milligramme", "milligrammes", "milligram", "milligrams"},
    "l": {"l", "litre", "litres", "liter", "liters"},
    "cl": {"cl", "centilitre", "centilitres", "centiliter", "centiliters"},
    "ml": {"ml", "millilitre", "millilitres", "milliliter", "milliliters"},
    "pcs": {
        "pcs", "pc", "piece", "pieces", "unit", "units", "unite", "unites",
        "portion", "portions", "each",
    },
}

_ALIASES = {alias: canonical for canonical, aliases in UNIT_SYNONYMS.items() for alias in aliases}

# unit -> (base unit, factor to base)
CONVERSIONS = {
    "kg": ("g", 1000.0),
    "g": ("g", 1.0),
    "mg": ("g", 0.001),
    "l": ("ml", 1000.0),
    "cl": ("ml", 10.0),
    "ml": ("ml", 1.0),
    "pcs": ("pcs", 1.0),
}

BASE_UNITS = ("g", "ml", "pcs")

# base unit -> (min, max per person)
CLAMP_RANGES = {
    "g": (10, 180),
    "ml": (10, 320),
    "pcs": (1, 4),
}
DEFAULT_CLAMP_RANGE = (1, 500)

DEFAULT_FAMILY_SIZE = 4


class NormalizedQuantity:
    def __init__(self, quantity: Optional[float], unit: str):
        self.quantity = quantity
        self.unit = unit

    def to_dict(self):
        return {"quantity": self.quantity, "unit": self.unit}

    def __eq__(self, other):
        if isinstance(other, NormalizedQuantity):
            return self.quantity == other.quantity and self.unit == other.unit
        if isinstance(other, dict):
            return self.to_dict() == other
        return NotImplemented

    def __repr__(self):
        return f"NormalizedQuantity(quantity={self.quantity!r}, unit={self.unit!r})"


# --- Core Functions ---

def sanitize_unit(unit: Any) -> str:
    """Collapse a unit spelling to kg, g, mg, l, cl, ml or pcs (default)."""
    u = normalize_label(unit).replace(" ", "")
    if not u:
        return "pcs"
    if u in _ALIASES:
        return _ALIASES[u]
    # Plural s removal
    if u.endswith("s") and u[:-1] in _ALIASES:
        return _ALIASES[u[:-1]]
    return "pcs"


def parse_quantity(raw: Any) -> Optional[float]:
    """Positive finite float, or None."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def _family_size(raw: Any) -> float:
    try:
        size = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_FAMILY_SIZE
    if not math.isfinite(size) or size == 0:
        return DEFAULT_FAMILY_SIZE
    return max(1.0, size)


def _round_half_up(value: float, step: int = 1) -> int:
    return int(math.floor(value / step + 0.5)) * step


def to_base_unit(quantity: float, unit: Any) -> Tuple[float, str, float]:
    """
    Convert without clamping (stock batches).
    Returns (quantity_in_base, base_unit, factor).
    """
    base, factor = CONVERSIONS[sanitize_unit(unit)]
    return quantity * factor, base, factor


def normalize_quantity_unit(raw_quantity: Any, raw_unit: Any, family_size: Any = DEFAULT_FAMILY_SIZE) -> NormalizedQuantity:
    """
    Normalize a recipe quantity.

    - unit collapses to g, ml or pcs (kg/mg -> g, l/cl -> ml)
    - non-positive or non-numeric quantity -> quantity None
    - clamp to [min, max * family_size] then round g/ml to 10, pcs to 1
    """
    size = _family_size(family_size)
    unit = sanitize_unit(raw_unit)
    quantity = parse_quantity(raw_quantity)
    if quantity is None:
        return NormalizedQuantity(None, unit)

    base, factor = CONVERSIONS[unit]
    quantity *= factor

    low, per_person = CLAMP_RANGES.get(base, DEFAULT_CLAMP_RANGE)
    quantity = min(max(quantity, low), per_person * size)

    if base in ("g", "ml"):
        quantity = _round_half_up(quantity, 10)
    elif base == "pcs":
        quantity = _round_half_up(quantity)

    return NormalizedQuantity(quantity, base)
