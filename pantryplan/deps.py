"""FastAPI dependencies for PantryPlan API.

Provides:
- Database session dependency
- Recipe link validator (one per process, owns its TTL cache)
- Notifier (webhook target from settings)
- AI client
"""

from functools import lru_cache

from .core.ai_client import AIClient, ai_client
from .db import get_db
from .services.notifications import Notifier
from .services.recipe_links import RecipeLinkValidator
from .settings import settings

__all__ = ["get_db", "get_recipe_link_validator", "get_notifier", "get_ai_client"]


@lru_cache(maxsize=1)
def get_recipe_link_validator() -> RecipeLinkValidator:
    return RecipeLinkValidator.from_settings(settings)


def get_notifier() -> Notifier:
    return Notifier.from_settings(settings)


def get_ai_client() -> AIClient:
    return ai_client
