"""
Menu proposals.

Asks the LLM for a structured plan covering the requested dates and meal
types, retries once with a stricter instruction when the output is
truncated, empty or not JSON, and passes every proposed recipe link through
the RecipeLinkValidator. In mock mode the plan is built from the recipe
pool so the endpoint works offline.
"""

import json
import logging
from datetime import date
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.ai_client import AIClient
from ..core.text import extract_json_block, normalize_meal_types
from ..domain import FamilyMember, RecipeCandidate
from ..errors import GenerationInterruptedError
from .allocation import SCOPE_TODAY, SCOPE_WEEK, plan_days
from .recipe_links import ALLOWED_RECIPE_DOMAINS, RecipeLinkValidator
from .snapshot import load_family, load_inventory_summary, load_recipes

logger = logging.getLogger("pantryplan.proposals")

MAX_OUTPUT_TOKENS_CAP = 3500
RETRY_TOKEN_STEP = 500

SYSTEM_PROMPT = "Tu es un assistant nutritionniste qui génère des menus équilibrés et variés pour une famille."

RETRY_INSTRUCTION = (
    "La réponse précédente était trop longue ou invalide. Génère de nouveau un JSON concis en "
    "respectant exactement le format demandé, avec uniquement le nombre de jours requis et au plus "
    "3 repas et 3 ingrédients principaux par repas."
)

INTERRUPTED_MESSAGE = "La génération IA a été interrompue. Réessayez."

MEAL_TYPE_LABELS = {
    "breakfast": "petit-déjeuner",
    "lunch": "déjeuner",
    "dinner": "dîner",
    "snack": "goûter",
}

WEEKDAYS_FR = ("lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche")
MONTHS_FR = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)

PLAN_FORMAT = """{
  "days": [
    {
      "date": "%(date)s",
      "label": "%(label)s",
      "meals": [
        {
          "meal_type": "dinner",
          "title": "…",
          "description": "…",
          "ingredients": [
            { "name": "…", "quantity": 1, "unit": "pcs" }
          ],
          "suitable_for_toddler": true,
          "prep_time_minutes": 10,
          "cook_time_minutes": 20,
          "recipe_url": "https://exemple.com/recette"
        }
      ]
    }
  ]
}"""


def french_date_label(day: date) -> str:
    return f"{WEEKDAYS_FR[day.weekday()]} {day.day} {MONTHS_FR[day.month - 1]}"


def build_prompt(
    days: Sequence[date],
    meal_types: Sequence[str],
    family: Sequence[FamilyMember],
    inventory: Sequence[dict],
    restrictions: Sequence[str] = (),
    preferences: Sequence[str] = (),
) -> str:
    meals_text = ", ".join(MEAL_TYPE_LABELS.get(t, t) for t in meal_types)
    dates_text = "; ".join(f"{d.isoformat()} ({french_date_label(d)})" for d in days)
    # bare domains duplicate their www. form
    sites_text = ", ".join(
        f"https://{host}" for host in ALLOWED_RECIPE_DOMAINS if f"www.{host}" not in ALLOWED_RECIPE_DOMAINS
    )
    family_text = ", ".join(f"{m.name} ({m.age_group})" for m in family)
    stock_text = (
        ", ".join(f"{item['name']} ({item['quantity']:g} {item['unit']})" for item in inventory)
        or "aucun stock particulier"
    )
    start = days[0]

    return "\n".join([
        "Génère un menu équilibré pour une famille.",
        "Exigences :",
        "- Utilise une structure JSON EXACTEMENT comme suit :",
        PLAN_FORMAT % {"date": start.isoformat(), "label": french_date_label(start)},
        f"- Planifie {len(days)} jour(s).",
        f"- Repas autorisés : {meals_text} (aucun autre repas).",
        "- Utilise au maximum les ingrédients disponibles.",
        "- Préfère des repas simples à cuisiner.",
        "- Indique suitable_for_toddler=false si un repas n'est pas adapté aux tout-petits.",
        '- Interdiction stricte : aucun ingrédient listé dans "Restrictions" ne doit apparaître, même partiellement.',
        "- Diversifie les repas : évite de répéter le même plat plus de deux fois dans la période.",
        "- Chaque repas doit lister au maximum 3 ingrédients principaux.",
        f'- Fournis pour chaque repas "prep_time_minutes", "cook_time_minutes" et "recipe_url" '
        f"(URL https vers un site parmi : {sites_text}).",
        f"- Dates exactes à utiliser et ordre à respecter : {dates_text}.",
        "",
        f"Famille ({len(family)} personnes) : {family_text}.",
        f"Restrictions : {', '.join(restrictions) or 'aucune'}.",
        f"Préférences : {', '.join(preferences) or 'varié et équilibré'}.",
        f"Stocks disponibles : {stock_text}.",
        f"Prévois des quantités pour {len(family)} personnes.",
        "Les portions doivent rester raisonnables : environ 120 g de féculents solides ou 250 ml de "
        "liquides par personne, et au maximum 3 pièces par personne pour les éléments unitaires.",
        "Réponds uniquement en JSON valide.",
    ])


def parse_plan(text: Optional[str]) -> Optional[dict]:
    block = extract_json_block(text)
    if not block:
        return None
    try:
        data = json.loads(block)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


async def request_plan(ai: AIClient, prompt: str, max_output_tokens: int) -> dict:
    """Two attempts at most; the second one asks for a shorter answer."""
    system_instruction = SYSTEM_PROMPT
    budget = max_output_tokens
    for attempt in (1, 2):
        generation = await ai.generate_json_text(
            prompt,
            system_instruction=system_instruction,
            max_output_tokens=budget,
        )
        if generation is None:
            reason = "call failed"
        elif generation.truncated:
            reason = "truncated"
        elif not generation.text.strip():
            reason = "empty"
        else:
            plan = parse_plan(generation.text)
            if plan is not None:
                return plan
            reason = "unparsable"

        logger.warning("Menu proposal attempt %d rejected: %s", attempt, reason)
        system_instruction = f"{SYSTEM_PROMPT}\n{RETRY_INSTRUCTION}"
        budget = min(budget + RETRY_TOKEN_STEP, MAX_OUTPUT_TOKENS_CAP)

    raise GenerationInterruptedError(INTERRUPTED_MESSAGE)


def build_mock_plan(
    days: Sequence[date],
    meal_types: Sequence[str],
    recipes: Sequence[RecipeCandidate],
) -> dict:
    """Deterministic plan: recipes of each meal type in rotation, day after day."""
    plan_days_out = []
    for offset, day in enumerate(days):
        meals = []
        for meal_type in meal_types:
            pool = [r for r in recipes if r.meal_type == meal_type] or list(recipes)
            if not pool:
                continue
            recipe = pool[offset % len(pool)]
            meals.append({
                "meal_type": meal_type,
                "title": recipe.title,
                "description": recipe.description,
                "ingredients": [
                    {"name": i.name, "quantity": i.quantity, "unit": i.unit}
                    for i in recipe.ingredients
                ],
                "suitable_for_toddler": recipe.suitable_for_toddler,
                "prep_time_minutes": recipe.prep_time_minutes,
                "cook_time_minutes": recipe.cook_time_minutes,
                "recipe_url": recipe.recipe_url,
            })
        plan_days_out.append({"date": day.isoformat(), "label": french_date_label(day), "meals": meals})
    return {"days": plan_days_out}


async def sanitize_plan(plan: Any, validator: RecipeLinkValidator) -> dict:
    if not isinstance(plan, dict):
        return {"days": []}
    days = plan.get("days") if isinstance(plan.get("days"), list) else []
    sanitized_days = []
    for day in days:
        if not isinstance(day, dict):
            continue
        meals = day.get("meals") if isinstance(day.get("meals"), list) else []
        sanitized_meals = []
        for meal in meals:
            if not isinstance(meal, dict):
                continue
            raw_url = meal.get("recipe_url") or meal.get("instructions_url") or meal.get("url")
            sanitized_meals.append({
                **meal,
                "recipe_url": await validator.sanitize(raw_url, meal.get("title") or ""),
            })
        sanitized_days.append({**day, "meals": sanitized_meals})
    return {**plan, "days": sanitized_days}


async def propose_menus(
    db: Session,
    validator: RecipeLinkValidator,
    ai: AIClient,
    *,
    start_date: Optional[date] = None,
    scope: Optional[str] = None,
    meal_types: Optional[list] = None,
    preferences: Sequence[str] = (),
    restrictions: Sequence[str] = (),
    max_output_tokens: int = 2500,
) -> dict:
    scope = SCOPE_TODAY if scope == SCOPE_TODAY else SCOPE_WEEK
    start = start_date or date.today()
    days = plan_days(start, scope)
    meal_types = normalize_meal_types(meal_types)

    inventory = load_inventory_summary(db)
    family = load_family(db)

    if ai.is_mock:
        logger.info("AI mock mode, building menu proposal from the recipe pool")
        plan = build_mock_plan(days, meal_types, load_recipes(db))
    else:
        prompt = build_prompt(days, meal_types, family, inventory, restrictions, preferences)
        plan = await request_plan(ai, prompt, max_output_tokens)

    return {
        "plan": await sanitize_plan(plan, validator),
        "startDate": start.isoformat(),
        "scope": scope,
        "dayCount": len(days),
        "mealTypes": meal_types,
        "familySize": len(family),
    }
