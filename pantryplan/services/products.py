import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..core.text import normalize_label
from .unit_normalizer import sanitize_unit

logger = logging.getLogger("pantryplan.products")


def find_product(db: Session, name: str) -> Optional[models.Product]:
    key = normalize_label(name)
    if not key:
        return None
    return db.scalar(select(models.Product).where(models.Product.name_key == key))


def find_or_create_product(db: Session, name: str, default_unit: Optional[str] = None) -> Optional[models.Product]:
    """
    Idempotent product lookup by normalized label.

    "Pâtes", "pates" and " PÂTES " resolve to the same row. Two requests
    racing to create the same product both end up with the winner's row:
    the loser hits the unique `name_key` constraint, rolls back and reads it.
    Returns None for a blank name.
    """
    key = normalize_label(name)
    if not key:
        return None

    existing = db.scalar(select(models.Product).where(models.Product.name_key == key))
    if existing:
        return existing

    product = models.Product(
        name=name.strip(),
        name_key=key,
        default_unit=sanitize_unit(default_unit) if default_unit else "pcs",
    )
    db.add(product)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = db.scalar(select(models.Product).where(models.Product.name_key == key))
        if existing is None:
            raise
        logger.info("Product %r created concurrently, reusing %s", name, existing.id)
        return existing
    db.refresh(product)
    return product
