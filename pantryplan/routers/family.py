from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..deps import get_db

router = APIRouter()


@router.get("/family-members", response_model=list[schemas.FamilyMemberOut])
def list_family_members(db: Session = Depends(get_db)):
    return db.scalars(select(models.FamilyMember).order_by(models.FamilyMember.created_at)).all()


@router.post("/family-members", response_model=schemas.FamilyMemberOut, status_code=status.HTTP_201_CREATED)
def create_family_member(member_in: schemas.FamilyMemberCreate, db: Session = Depends(get_db)):
    member = models.FamilyMember(name=member_in.name.strip(), age_group=member_in.age_group)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


@router.delete("/family-members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_family_member(member_id: str, db: Session = Depends(get_db)):
    member = db.get(models.FamilyMember, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Family member not found")
    db.delete(member)
    db.commit()
