from datetime import date

import pytest

from pantryplan.core.ai_client import AIClient, TextGeneration
from pantryplan.deps import get_ai_client
from pantryplan.domain import FamilyMember
from pantryplan.errors import AIUnavailableError, GenerationInterruptedError
from pantryplan.main import app
from pantryplan.services.menu_proposals import (
    RETRY_INSTRUCTION,
    SYSTEM_PROMPT,
    build_prompt,
    french_date_label,
    request_plan,
    sanitize_plan,
)
from pantryplan.services.recipe_links import RecipeLinkValidator

MONDAY = date(2026, 3, 2)
COCHON_TITLE = "Sauté de cochon aux pommes de terre"
BOEUF_URL = "https://www.marmiton.org/recettes/recette_boeuf-bourguignon_1234.aspx"


class ScriptedAI:
    """Replays canned generations in order."""

    is_mock = False
    mode = "gemini"

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = []

    def is_available(self):
        return True

    async def generate_json_text(self, prompt, system_instruction=None, max_output_tokens=None, temperature=0.7):
        self.calls.append({"system_instruction": system_instruction, "max_output_tokens": max_output_tokens})
        return self.answers.pop(0)


# --- Prompt ---

def test_french_date_label():
    assert french_date_label(MONDAY) == "lundi 2 mars"


def test_build_prompt_lists_constraints():
    family = [FamilyMember(id="1", name="Sandy"), FamilyMember(id="2", name="Lou", age_group="toddler")]
    prompt = build_prompt(
        [MONDAY, date(2026, 3, 3)],
        ["lunch", "dinner"],
        family,
        [{"name": "Riz", "quantity": 1.5, "unit": "kg"}],
        restrictions=["arachides"],
    )

    assert "Planifie 2 jour(s)." in prompt
    assert "Repas autorisés : déjeuner, dîner" in prompt
    assert "2026-03-02 (lundi 2 mars); 2026-03-03 (mardi 3 mars)" in prompt
    assert "Restrictions : arachides." in prompt
    assert "Riz (1.5 kg)" in prompt
    assert "Famille (2 personnes) : Sandy (adult), Lou (toddler)." in prompt
    assert "https://www.marmiton.org" in prompt
    assert "https://marmiton.org" not in prompt


# --- Retry policy ---

@pytest.mark.asyncio
async def test_request_plan_retries_truncated_output():
    ai = ScriptedAI(
        TextGeneration('{"days": [', truncated=True),
        TextGeneration('{"days": []}'),
    )

    assert await request_plan(ai, "prompt", 2500) == {"days": []}
    assert ai.calls[0] == {"system_instruction": SYSTEM_PROMPT, "max_output_tokens": 2500}
    assert ai.calls[1]["system_instruction"].endswith(RETRY_INSTRUCTION)
    assert ai.calls[1]["max_output_tokens"] == 3000


@pytest.mark.asyncio
async def test_request_plan_caps_retry_budget():
    ai = ScriptedAI(TextGeneration(""), TextGeneration('Voici: {"days": [{"date": "2026-03-02"}]}'))

    plan = await request_plan(ai, "prompt", 3400)
    assert plan["days"][0]["date"] == "2026-03-02"
    assert ai.calls[1]["max_output_tokens"] == 3500


@pytest.mark.asyncio
async def test_request_plan_gives_up_after_two_attempts():
    ai = ScriptedAI(None, TextGeneration("pas du json"))
    with pytest.raises(GenerationInterruptedError):
        await request_plan(ai, "prompt", 2500)
    assert len(ai.calls) == 2


@pytest.mark.asyncio
async def test_unconfigured_model_is_unavailable():
    ai = AIClient(mode="gemini", api_key="")
    assert not ai.is_available()
    with pytest.raises(AIUnavailableError):
        await ai.generate_json_text("prompt")


# --- Link sanitation ---

@pytest.mark.asyncio
async def test_sanitize_plan_rewrites_links():
    plan = {
        "days": [{
            "date": "2026-03-02",
            "meals": [
                {"title": COCHON_TITLE, "recipe_url": BOEUF_URL},
                {"title": "Salade", "instructions_url": "javascript:alert(1)"},
                "bruit",
            ],
        }, "bruit"],
    }
    result = await sanitize_plan(plan, RecipeLinkValidator(network_enabled=False))

    [day] = result["days"]
    first, second = day["meals"]
    assert "recherche.aspx" in first["recipe_url"]
    assert "cochon" in first["recipe_url"]
    assert second["recipe_url"] is None


@pytest.mark.asyncio
async def test_sanitize_plan_rejects_non_objects():
    assert await sanitize_plan(["pas", "un", "plan"], RecipeLinkValidator(network_enabled=False)) == {"days": []}


# --- API ---

def test_mock_proposal_uses_recipe_pool(client):
    resp = client.post("/api/menus/proposals", json={"startDate": "2026-03-02", "scope": "today"})
    assert resp.status_code == 200, resp.text
    body = resp.json()

    assert body["startDate"] == "2026-03-02"
    assert body["scope"] == "today"
    assert body["dayCount"] == 1
    assert body["mealTypes"] == ["breakfast", "lunch", "dinner"]
    assert body["familySize"] == 6
    [day] = body["plan"]["days"]
    assert day["label"] == "lundi 2 mars"
    assert [m["title"] for m in day["meals"]] == [
        "Œufs brouillés & pain",
        "Pâtes sauce tomate",
        "Poulet rôti & légumes",
    ]


def test_week_proposal_covers_seven_days(client):
    body = client.post("/api/menus/proposals", json={"startDate": "2026-03-02", "mealTypes": ["dîner"]}).json()
    assert body["dayCount"] == 7
    assert body["mealTypes"] == ["dinner"]
    assert len(body["plan"]["days"]) == 7


def test_live_proposal_links_are_sanitized(client):
    answer = (
        '```json\n{"days": [{"date": "2026-03-02", "meals": [{"meal_type": "dinner", '
        f'"title": "{COCHON_TITLE}", "recipe_url": "{BOEUF_URL}"}}]}}]}}\n```'
    )
    app.dependency_overrides[get_ai_client] = lambda: ScriptedAI(TextGeneration(answer))

    resp = client.post("/api/menus/proposals", json={"startDate": "2026-03-02", "scope": "today"})
    assert resp.status_code == 200, resp.text
    [meal] = resp.json()["plan"]["days"][0]["meals"]
    assert meal["recipe_url"] != BOEUF_URL
    assert "cochon" in meal["recipe_url"]


def test_interrupted_generation_is_502(client):
    app.dependency_overrides[get_ai_client] = lambda: ScriptedAI(
        TextGeneration("", truncated=True), TextGeneration("{")
    )
    resp = client.post("/api/menus/proposals", json={"scope": "today"})
    assert resp.status_code == 502
    assert resp.json() == {"detail": "La génération IA a été interrompue. Réessayez."}


def test_missing_model_is_503(client):
    app.dependency_overrides[get_ai_client] = lambda: AIClient(mode="gemini", api_key="")
    resp = client.post("/api/menus/proposals", json={"scope": "today"})
    assert resp.status_code == 503
    assert "GEMINI_API_KEY" in resp.json()["detail"]
