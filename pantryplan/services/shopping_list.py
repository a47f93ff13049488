"""
Shopping list deltas.

`ShoppingListMerger` works on the unpurchased entries loaded at request
start: a shortfall is folded into the existing line for the same product
(or, for unknown products, the same normalized name) instead of creating a
duplicate. Persistence is best-effort, one commit per write.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..core.text import normalize_label
from ..domain import ShoppingEntry
from .unit_normalizer import CONVERSIONS, sanitize_unit

logger = logging.getLogger("pantryplan.shopping")

INSERT_CHUNK_SIZE = 50


class ShoppingListMerger:
    def __init__(self, existing: Iterable[ShoppingEntry] = ()):
        self._by_product: dict[str, ShoppingEntry] = {}
        self._by_name: dict[str, ShoppingEntry] = {}
        self._updated: dict[str, ShoppingEntry] = {}
        self.insertions: list[ShoppingEntry] = []
        for entry in existing:
            self._index(entry)

    def _index(self, entry: ShoppingEntry) -> None:
        if entry.product_id:
            self._by_product.setdefault(entry.product_id, entry)
        elif entry.name:
            self._by_name.setdefault(normalize_label(entry.name), entry)

    @property
    def updates(self) -> list[ShoppingEntry]:
        return list(self._updated.values())

    @property
    def changed(self) -> bool:
        return bool(self._updated or self.insertions)

    def find(self, product_id: Optional[str], name: Optional[str]) -> Optional[ShoppingEntry]:
        if product_id:
            return self._by_product.get(product_id)
        return self._by_name.get(normalize_label(name))

    def add_shortfall(self, product_id: Optional[str], name: Optional[str], quantity: float, unit: str) -> ShoppingEntry:
        """Record `quantity` of `unit` (a base unit) as missing."""
        entry = self.find(product_id, name)
        if entry is not None:
            entry.quantity = round(float(entry.quantity or 0) + _in_unit(quantity, unit, entry.unit), 2)
            entry.priority = "high"
            if entry.id:
                self._updated[entry.id] = entry
            return entry

        entry = ShoppingEntry(
            id=None,
            product_id=product_id,
            name=None if product_id else name,
            quantity=round(quantity, 2),
            unit=unit,
            priority="high",
            added_reason="auto",
        )
        self._index(entry)
        self.insertions.append(entry)
        return entry


def _in_unit(quantity: float, base_unit: str, target_unit: Optional[str]) -> float:
    """Express a base-unit quantity in an existing line's unit (kg, l...).

    Lines whose unit belongs to another family are summed as-is.
    """
    if not target_unit:
        return quantity
    base, factor = CONVERSIONS[sanitize_unit(target_unit)]
    if base != base_unit:
        return quantity
    return quantity / factor


def entry_from_row(row: models.ShoppingListEntry) -> ShoppingEntry:
    return ShoppingEntry(
        id=row.id,
        product_id=row.product_id,
        name=row.name,
        quantity=float(row.quantity or 0),
        unit=row.unit or "pcs",
        priority=row.priority,
        added_reason=row.added_reason,
    )


def load_pending_entries(db: Session) -> list[ShoppingEntry]:
    rows = db.scalars(
        select(models.ShoppingListEntry).where(models.ShoppingListEntry.is_purchased.is_(False))
    ).all()
    return [entry_from_row(r) for r in rows]


def apply_shopping_changes(db: Session, merger: ShoppingListMerger) -> int:
    """Persist merged quantities then new lines; returns rows written."""
    written = 0
    for entry in merger.updates:
        try:
            row = db.get(models.ShoppingListEntry, entry.id)
            if row is None:
                continue
            row.quantity = entry.quantity
            row.unit = entry.unit
            row.priority = "high"
            db.commit()
            written += 1
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Shopping list update failed for %s: %s", entry.id, e)

    pending = merger.insertions
    for start in range(0, len(pending), INSERT_CHUNK_SIZE):
        chunk = pending[start:start + INSERT_CHUNK_SIZE]
        rows = [
            models.ShoppingListEntry(
                product_id=e.product_id,
                name=e.name,
                quantity=e.quantity,
                unit=e.unit,
                priority=e.priority,
                added_reason=e.added_reason,
                is_purchased=False,
            )
            for e in chunk
        ]
        try:
            db.add_all(rows)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Shopping list insert failed (%d rows): %s", len(rows), e)
            continue
        for entry, row in zip(chunk, rows):
            entry.id = row.id
        written += len(rows)
    return written


def find_product_by_label(db: Session, label: str) -> Optional[models.Product]:
    key = normalize_label(label)
    if not key:
        return None
    return db.scalar(select(models.Product).where(models.Product.name_key == key))


def add_item(
    db: Session,
    *,
    product_id: Optional[str] = None,
    name: Optional[str] = None,
    quantity: float = 1,
    unit: str = "pcs",
    priority: str = "medium",
    added_reason: str = "manual",
) -> models.ShoppingListEntry:
    row = models.ShoppingListEntry(
        product_id=product_id or None,
        name=None if product_id else name,
        quantity=quantity,
        unit=unit,
        priority=priority,
        added_reason=added_reason,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def add_voice_item(db: Session, item: str, quantity: float = 1, unit: str = "pcs") -> models.ShoppingListEntry:
    """Voice assistant request: link to a known product when the label matches."""
    product = find_product_by_label(db, item)
    return add_item(
        db,
        product_id=product.id if product else None,
        name=item,
        quantity=quantity,
        unit=unit,
        priority="medium",
        added_reason="alexa",
    )
