"""Menus API router.

Endpoints:
- GET /api/menus - Menus with ingredient lines, optionally within a date range
- POST /api/menus/generate (alias /api/generate-menu) - Allocate a day or week
- POST /api/menus/proposals - LLM menu proposal (not persisted)
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import schemas
from ..agents.planner_agent import generate_menus, list_menus
from ..core.ai_client import AIClient
from ..deps import get_ai_client, get_db, get_notifier, get_recipe_link_validator
from ..infra.idempotency import idempotency_clear_key, idempotency_precheck, idempotency_store_result
from ..rate_limit import limiter
from ..services.menu_proposals import propose_menus
from ..services.notifications import Notifier
from ..services.recipe_links import RecipeLinkValidator
from ..settings import settings

router = APIRouter()
logger = logging.getLogger("pantryplan.menus")


@router.get("/menus", response_model=list[schemas.MenuOut])
def get_menus(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return list_menus(db, start, end)


@router.post("/menus/generate", response_model=list[schemas.MenuOut])
@router.post("/generate-menu", response_model=list[schemas.MenuOut], include_in_schema=False)
async def generate_menus_endpoint(
    request: Request,
    payload: schemas.MenuGenerateRequest,
    db: Session = Depends(get_db),
    validator: RecipeLinkValidator = Depends(get_recipe_link_validator),
    notifier: Notifier = Depends(get_notifier),
):
    """Fill the requested slots, consume stock and update the shopping list.

    Re-running the same range replaces the menus it generated before.
    Honours an optional Idempotency-Key header.
    """
    pre = await idempotency_precheck(request, route_key="menus_generate")
    if isinstance(pre, JSONResponse):
        return pre

    try:
        menus = await generate_menus(
            db,
            validator,
            notifier,
            start_date=payload.start_date,
            scope=payload.scope,
            meal_types=payload.meal_types,
            plan=payload.plan,
        )
    except Exception:
        if pre:
            await idempotency_clear_key(pre[0])
        raise

    body = [schemas.MenuOut.model_validate(m).model_dump(mode="json") for m in menus]
    if pre:
        redis_key, req_hash, _ = pre
        await idempotency_store_result(redis_key, req_hash, status=200, body=body)
    return body


@router.post("/menus/proposals", response_model=schemas.MenuProposalResponse, response_model_by_alias=True)
@limiter.limit("10/minute")
async def propose_menus_endpoint(
    request: Request,
    payload: schemas.MenuProposalRequest,
    db: Session = Depends(get_db),
    validator: RecipeLinkValidator = Depends(get_recipe_link_validator),
    ai: AIClient = Depends(get_ai_client),
):
    """Ask the LLM (or the mock planner) for a menu; links are sanitized."""
    return await propose_menus(
        db,
        validator,
        ai,
        start_date=payload.start_date,
        scope=payload.scope,
        meal_types=payload.meal_types,
        preferences=payload.preferences,
        restrictions=payload.restrictions,
        max_output_tokens=settings.ai_max_output_tokens,
    )
