from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import case, select
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..deps import get_db, get_notifier
from ..infra.idempotency import idempotency_clear_key, idempotency_precheck, idempotency_store_result
from ..services.notifications import SHOPPING_REMINDER, Notifier
from ..services.shopping_list import add_item, add_voice_item

router = APIRouter()

_PRIORITY_ORDER = case({"high": 0, "medium": 1, "low": 2}, value=models.ShoppingListEntry.priority, else_=3)


@router.get("/shopping-lists", response_model=list[schemas.ShoppingItemOut])
def list_shopping_items(db: Session = Depends(get_db)):
    """Open items first, then by priority, newest first."""
    stmt = (
        select(models.ShoppingListEntry)
        .options(selectinload(models.ShoppingListEntry.product))
        .order_by(
            models.ShoppingListEntry.is_purchased,
            _PRIORITY_ORDER,
            models.ShoppingListEntry.added_at.desc(),
        )
    )
    return db.scalars(stmt).all()


@router.post("/shopping-lists", response_model=schemas.ShoppingItemOut, status_code=status.HTTP_201_CREATED)
async def create_shopping_item(
    item_in: schemas.ShoppingItemCreate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    product = None
    if item_in.product_id:
        product = db.get(models.Product, item_in.product_id)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
    elif not (item_in.name and item_in.name.strip()):
        raise HTTPException(status_code=400, detail="product_id or name is required")

    item = add_item(db, **item_in.model_dump())
    label = product.name if product else item_in.name
    await notifier.record(
        db,
        SHOPPING_REMINDER,
        "Ajout dans la liste de courses",
        f"{label} ajouté à la liste ({item_in.quantity:g} {item_in.unit})",
    )
    db.refresh(item)
    return item


@router.patch("/shopping-lists/{item_id}", response_model=schemas.ShoppingItemOut)
def update_shopping_item(item_id: str, item_in: schemas.ShoppingItemUpdate, db: Session = Depends(get_db)):
    item = db.get(models.ShoppingListEntry, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Shopping list item not found")

    update_data = item_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(item, field, value)
    if "is_purchased" in update_data:
        item.purchased_at = datetime.now(timezone.utc) if item.is_purchased else None

    db.commit()
    db.refresh(item)
    return item


@router.delete("/shopping-lists/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_shopping_item(item_id: str, db: Session = Depends(get_db)):
    item = db.get(models.ShoppingListEntry, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Shopping list item not found")
    db.delete(item)
    db.commit()


@router.post("/alexa/shopping-list", response_model=schemas.VoiceShoppingResponse)
async def voice_shopping_item(
    request: Request,
    payload: schemas.VoiceShoppingRequest,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Voice assistant entry point; honours an optional Idempotency-Key header."""
    if not (payload.item and payload.item.strip()):
        raise HTTPException(status_code=400, detail='Paramètre "item" requis.')

    pre = await idempotency_precheck(request, route_key="alexa_shopping")
    if isinstance(pre, JSONResponse):
        return pre

    try:
        item = add_voice_item(db, payload.item.strip(), payload.quantity, payload.unit)
    except Exception:
        if pre:
            await idempotency_clear_key(pre[0])
        raise

    await notifier.record(db, SHOPPING_REMINDER, "Demande Alexa", f"{payload.item.strip()} ajouté via Alexa")
    db.refresh(item)

    body = schemas.VoiceShoppingResponse(
        success=True, item=schemas.ShoppingItemOut.model_validate(item)
    ).model_dump(mode="json")
    if pre:
        redis_key, req_hash, _ = pre
        await idempotency_store_result(redis_key, req_hash, status=200, body=body)
    return body
