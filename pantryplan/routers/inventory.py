from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..deps import get_db
from ..services.products import find_or_create_product

router = APIRouter()


@router.get("/products", response_model=list[schemas.ProductOut])
def list_products(db: Session = Depends(get_db)):
    return db.scalars(select(models.Product).order_by(models.Product.name)).all()


@router.get("/inventory", response_model=list[schemas.InventoryOut])
def list_inventory(db: Session = Depends(get_db)):
    """Stock batches, earliest expiry first (undated last)."""
    stmt = (
        select(models.InventoryEntry)
        .options(selectinload(models.InventoryEntry.product))
        .order_by(models.InventoryEntry.expiry_date.is_(None), models.InventoryEntry.expiry_date)
    )
    return db.scalars(stmt).all()


@router.post("/inventory", response_model=schemas.InventoryOut, status_code=status.HTTP_201_CREATED)
def create_inventory_entry(entry_in: schemas.InventoryCreate, db: Session = Depends(get_db)):
    """Add a stock batch; a new `name` creates its product on the fly."""
    if entry_in.product_id:
        product = db.get(models.Product, entry_in.product_id)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
    elif entry_in.name and entry_in.name.strip():
        product = find_or_create_product(db, entry_in.name, entry_in.unit)
    else:
        raise HTTPException(status_code=400, detail="product_id or name is required")

    quantity = entry_in.qty if entry_in.qty is not None else entry_in.quantity
    entry = models.InventoryEntry(
        product_id=product.id,
        quantity=max(0.0, float(quantity or 0)),
        unit=entry_in.unit or product.default_unit or "pcs",
        expiry_date=entry_in.expiry_date,
        minimum_threshold=entry_in.minimum_threshold or 0,
        location=entry_in.location,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


@router.put("/inventory/{entry_id}", response_model=schemas.InventoryOut)
def update_inventory_entry(entry_id: str, entry_in: schemas.InventoryUpdate, db: Session = Depends(get_db)):
    entry = db.get(models.InventoryEntry, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Inventory entry not found")

    for field, value in entry_in.model_dump(exclude_unset=True).items():
        setattr(entry, field, value)
    entry.last_updated = datetime.now(timezone.utc)

    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/inventory/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_inventory_entry(entry_id: str, db: Session = Depends(get_db)):
    entry = db.get(models.InventoryEntry, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Inventory entry not found")
    db.delete(entry)
    db.commit()
