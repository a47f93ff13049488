from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .. import models, schemas
from ..deps import get_db

router = APIRouter()


@router.get("/notifications", response_model=list[schemas.NotificationOut])
def list_notifications(limit: int = 50, db: Session = Depends(get_db)):
    stmt = select(models.Notification).order_by(models.Notification.created_at.desc()).limit(limit)
    return db.scalars(stmt).all()


@router.post("/notifications/mark-all-read", status_code=status.HTTP_204_NO_CONTENT)
def mark_all_notifications_read(db: Session = Depends(get_db)):
    db.execute(
        update(models.Notification).where(models.Notification.is_read.is_(False)).values(is_read=True)
    )
    db.commit()


@router.post("/notifications/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_notification_read(notification_id: str, db: Session = Depends(get_db)):
    notification = db.get(models.Notification, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    notification.is_read = True
    db.commit()
