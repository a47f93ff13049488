from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..core.ai_client import AIClient
from ..deps import get_ai_client, get_db
from ..infra.redis_client import get_redis
from ..settings import settings

router = APIRouter()


@router.get("/ready")
async def ready():
    redis_ok = False
    try:
        r = await get_redis()
        await r.ping()
        redis_ok = True
    except Exception:
        pass
    return {"ok": True, "redis_ok": redis_ok}


@router.get("/status", response_model=schemas.StatusOut)
async def status(
    db: Session = Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    database_ok = True
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        database_ok = False

    redis_ok = (await ready())["redis_ok"]
    return schemas.StatusOut(
        database_ok=database_ok,
        redis_ok=redis_ok,
        ai_mode=ai.mode,
        ai_available=ai.is_mock or ai.is_available(),
        alert_configured=bool(settings.alert_email or settings.notify_webhook),
    )
