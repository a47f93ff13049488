"""In-app notifications, mirrored to an optional webhook.

Both writes are best-effort: a failure is logged and the caller carries on.
"""

import logging
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger("pantryplan.notify")

LOW_STOCK = "low_stock"
SHOPPING_REMINDER = "shopping_reminder"


class Notifier:
    def __init__(
        self,
        webhook_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings, **overrides) -> "Notifier":
        options = dict(webhook_url=settings.notify_webhook)
        options.update(overrides)
        return cls(**options)

    async def record(
        self,
        db: Session,
        type: str,
        title: str,
        message: str,
        related_product_id: Optional[str] = None,
    ) -> Optional[models.Notification]:
        try:
            row = models.Notification(
                type=type,
                title=title,
                message=message,
                related_product_id=related_product_id,
            )
            db.add(row)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Could not store notification %r: %s", title, e)
            return None

        await self.post_webhook({"type": type, "title": title, "message": message})
        return row

    async def post_webhook(self, payload: dict) -> bool:
        if not self.webhook_url:
            return False
        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.webhook_url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self.webhook_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Webhook notification failed: %s", e)
            return False
        return True
