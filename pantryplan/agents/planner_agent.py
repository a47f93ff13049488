import logging
import random
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..domain import InventoryBatch
from ..errors import StoreUnavailableError
from ..services.allocation import (
    SCOPE_TODAY,
    SCOPE_WEEK,
    AllocationResult,
    MealPlanAllocator,
    parse_manual_plan,
    plan_days,
)
from ..services.notifications import LOW_STOCK, SHOPPING_REMINDER, Notifier
from ..services.recipe_links import RecipeLinkValidator
from ..services.shopping_list import apply_shopping_changes
from ..services.snapshot import load_snapshot

logger = logging.getLogger("pantryplan.planner")


async def generate_menus(
    db: Session,
    validator: RecipeLinkValidator,
    notifier: Notifier,
    *,
    start_date: Optional[date] = None,
    scope: Optional[str] = None,
    meal_types: Optional[list] = None,
    plan: Optional[list] = None,
    rng: Optional[random.Random] = None,
) -> list[models.Menu]:
    """Generate menus for a day or a week and write everything back.

    Steps:
    1. Load the snapshot (fatal if the store can't be read).
    2. Allocate slots in memory.
    3. Sanitize each menu's recipe link.
    4. Persist inventory, shopping list, menus (replace same-source rows
       in the range) and notifications. Only the menu upsert is fatal;
       every other write is best-effort.
    """
    scope = SCOPE_TODAY if scope == SCOPE_TODAY else SCOPE_WEEK
    start = start_date or date.today()
    manual_plan = parse_manual_plan(plan)

    snapshot = load_snapshot(db)
    allocator = MealPlanAllocator(
        family=snapshot.family,
        products=snapshot.products,
        inventory=snapshot.inventory,
        recipes=snapshot.recipes,
        shopping=snapshot.shopping,
        rng=rng,
    )
    result = allocator.allocate(plan_days(start, scope), meal_types, manual_plan)
    logger.info(
        "Allocated %d menus (%s) from %s to %s",
        len(result.menus), result.source, *result.date_range,
    )

    for menu in result.menus:
        menu.recipe_url = await validator.sanitize(menu.raw_recipe_url, menu.title)

    persist_inventory(db, result.dirty_batches)
    apply_shopping_changes(db, allocator.shopping)
    persist_menus(db, result)
    await emit_notifications(db, notifier, result, {p.id: p.name for p in snapshot.products})

    return list_menus(db, *result.date_range)


def persist_inventory(db: Session, batches: Sequence[InventoryBatch]) -> int:
    written = 0
    for batch in batches:
        try:
            row = db.get(models.InventoryEntry, batch.id)
            if row is None:
                continue
            row.quantity = batch.stored_quantity()
            row.last_updated = datetime.now(timezone.utc)
            db.commit()
            written += 1
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Inventory update failed for %s: %s", batch.id, e)
    return written


def _delete_stale_menus(db: Session, result: AllocationResult) -> None:
    start, end = result.date_range
    try:
        stale = db.scalars(
            select(models.Menu).where(
                models.Menu.date >= start,
                models.Menu.date <= end,
                models.Menu.source == result.source,
            )
        ).all()
        for menu in stale:
            db.delete(menu)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Could not clear previous %s menus: %s", result.source, e)


def persist_menus(db: Session, result: AllocationResult) -> list[models.Menu]:
    _delete_stale_menus(db, result)

    rows = []
    try:
        for planned in result.menus:
            row = db.scalar(
                select(models.Menu).where(
                    models.Menu.date == planned.date,
                    models.Menu.meal_type == planned.meal_type,
                )
            )
            if row is None:
                row = models.Menu(date=planned.date, meal_type=planned.meal_type)
                db.add(row)
            row.recipe_id = planned.recipe_id
            row.title = planned.title
            row.description = planned.description
            row.suitable_for = list(planned.suitable_for)
            row.suitable_for_toddler = planned.suitable_for_toddler
            row.portion_multiplier = planned.portion_multiplier
            row.stock_status = planned.stock_status
            row.source = planned.source
            row.prep_time_minutes = planned.prep_time_minutes
            row.cook_time_minutes = planned.cook_time_minutes
            row.recipe_url = planned.recipe_url
            rows.append(row)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Menu upsert failed: %s", e)
        raise StoreUnavailableError("Impossible d'enregistrer les menus.") from e

    for row, planned in zip(rows, result.menus):
        try:
            row.ingredients = [
                models.MenuIngredient(
                    product_id=line.product_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit=line.unit,
                    available_qty=line.available_qty,
                    missing_qty=line.missing_qty,
                    position=position,
                )
                for position, line in enumerate(planned.ingredients)
            ]
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Ingredient lines insert failed for %s: %s", planned.key, e)
    return rows


async def emit_notifications(
    db: Session,
    notifier: Notifier,
    result: AllocationResult,
    product_names: dict[str, str],
) -> None:
    for alert in result.low_stock_alerts:
        name = product_names.get(alert.product_id, "Produit")
        await notifier.record(
            db,
            LOW_STOCK,
            f"Stock bas: {name}",
            f"Il reste {alert.quantity:g} {alert.unit} pour {name}.",
            related_product_id=alert.product_id,
        )

    if result.shopping_changed:
        await notifier.record(
            db,
            SHOPPING_REMINDER,
            "Liste de courses mise à jour",
            "Des ingrédients manquants ont été ajoutés à la liste de courses.",
        )


def list_menus(db: Session, start: Optional[date] = None, end: Optional[date] = None) -> list[models.Menu]:
    stmt = select(models.Menu).options(
        selectinload(models.Menu.ingredients).selectinload(models.MenuIngredient.product)
    )
    if start is not None:
        stmt = stmt.where(models.Menu.date >= start)
    if end is not None:
        stmt = stmt.where(models.Menu.date <= end)
    stmt = stmt.order_by(models.Menu.date, models.Menu.meal_type)
    return list(db.scalars(stmt).all())
