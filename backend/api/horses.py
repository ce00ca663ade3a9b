import json
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.database import get_db
from db.models import Horse

router = APIRouter(prefix="/horses", tags=["horses"])


def _load_flags(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        flags = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return [str(f) for f in flags] if isinstance(flags, list) else []


def _horse_to_dict(horse: Horse) -> dict:
    return {
        "id": horse.id,
        "user_id": horse.user_id,
        "name": horse.name,
        "age": horse.age,
        "breed": horse.breed,
        "weight_lbs": horse.weight_lbs,
        "primary_use": horse.primary_use,
        "bcs": horse.bcs,
        "health_flags": _load_flags(horse.health_flags),
        "photo_url": horse.photo_url,
        "notes": horse.notes,
        "created_at": horse.created_at.isoformat() if horse.created_at else None,
        "updated_at": horse.updated_at.isoformat() if horse.updated_at else None,
    }


class HorseUpdateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    age: Optional[int] = Field(default=None, ge=0, le=60)
    breed: Optional[str] = None
    weight_lbs: Optional[float] = Field(default=None, ge=0)
    primary_use: Optional[str] = None
    bcs: Optional[int] = Field(default=None, ge=1, le=9)
    health_flags: list[str] = Field(default_factory=list)
    photo_url: Optional[str] = None
    notes: Optional[str] = None


class HorseCreateRequest(HorseUpdateRequest):
    user_id: Optional[int] = None


def _apply_fields(horse: Horse, body: HorseUpdateRequest) -> None:
    horse.name = body.name.strip()
    horse.age = body.age
    horse.breed = body.breed
    horse.weight_lbs = body.weight_lbs
    horse.primary_use = body.primary_use
    horse.bcs = body.bcs
    horse.health_flags = json.dumps([f.strip() for f in body.health_flags if f and f.strip()])
    horse.photo_url = body.photo_url
    horse.notes = body.notes


def _commit_or_400(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=f"Horse rejected by database: {exc.orig}") from exc


@router.get("/{user_id}")
def list_horses(user_id: int, db: Session = Depends(get_db)):
    """Get all horses for a user, newest first."""
    horses = (
        db.query(Horse)
        .filter(Horse.user_id == user_id)
        .order_by(Horse.created_at.desc(), Horse.id.desc())
        .all()
    )
    return [_horse_to_dict(h) for h in horses]


@router.post("")
def create_horse(body: HorseCreateRequest, db: Session = Depends(get_db)):
    horse = Horse(user_id=body.user_id)
    _apply_fields(horse, body)
    db.add(horse)
    _commit_or_400(db)
    db.refresh(horse)
    return _horse_to_dict(horse)


@router.put("/{horse_id}")
def update_horse(horse_id: int, body: HorseUpdateRequest, db: Session = Depends(get_db)):
    horse = db.query(Horse).filter(Horse.id == horse_id).first()
    if not horse:
        raise HTTPException(status_code=404, detail="Horse not found")
    _apply_fields(horse, body)
    horse.updated_at = datetime.utcnow()
    _commit_or_400(db)
    db.refresh(horse)
    return _horse_to_dict(horse)


@router.delete("/{horse_id}")
def delete_horse(horse_id: int, db: Session = Depends(get_db)):
    horse = db.query(Horse).filter(Horse.id == horse_id).first()
    if horse:
        db.delete(horse)
        db.commit()
    return {"success": True}
