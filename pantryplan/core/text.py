import math
import re
import unicodedata
from typing import Any, Optional


MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")
DEFAULT_MEAL_TYPES = ["breakfast", "lunch", "dinner"]

# label -> canonical meal type; compared after normalize_label
MEAL_TYPE_ALIASES = {
    "breakfast": "breakfast",
    "petit dejeuner": "breakfast",
    "petit dej": "breakfast",
    "matin": "breakfast",
    "lunch": "lunch",
    "dejeuner": "lunch",
    "midi": "lunch",
    "dinner": "dinner",
    "diner": "dinner",
    "soir": "dinner",
    "snack": "snack",
    "gouter": "snack",
    "collation": "snack",
}


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def normalize_label(value: Any) -> str:
    """
    Canonical matching form of a free-text label.

    "Pâtes  Complètes!" -> "pates completes"
    """
    if value is None:
        return ""
    s = strip_accents(str(value).lower())
    # Ligatures survive NFD ("œufs"), spell them out
    s = s.replace("œ", "oe").replace("æ", "ae")
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return s.strip()


def normalize_meal_type(value: Any) -> str:
    """Map English/French meal labels to a meal type; unknown labels are lunch."""
    label = normalize_label(value)
    return MEAL_TYPE_ALIASES.get(label, "lunch")


def normalize_meal_types(values: Optional[list]) -> list[str]:
    if not values:
        return list(DEFAULT_MEAL_TYPES)
    seen = []
    for v in values:
        meal = normalize_meal_type(v)
        if meal not in seen:
            seen.append(meal)
    return seen or list(DEFAULT_MEAL_TYPES)


def parse_minutes(value: Any) -> Optional[int]:
    """Whole non-negative minutes, or None when the value is not a number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    return max(0, int(math.floor(num + 0.5)))


def extract_json_block(content: Optional[str]) -> Optional[str]:
    """
    Pull the JSON payload out of an LLM answer.

    Prefers a ```json fenced block, then the outermost {...} span.
    """
    if not content:
        return None
    fenced = re.search(r"```json(.*?)```", content, re.IGNORECASE | re.DOTALL)
    if fenced:
        return fenced.group(1).strip()
    braces = re.search(r"\{.*\}", content, re.DOTALL)
    return braces.group(0) if braces else None
