from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.database import get_db
from db.models import User

router = APIRouter(prefix="/users", tags=["users"])


class UserUpsertRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=255)
    name: Optional[str] = Field(default=None, max_length=255)


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _find_by_email(db: Session, email: Optional[str]) -> Optional[User]:
    if not email:
        return None
    return db.query(User).filter(User.email == email).first()


@router.post("")
def upsert_user(body: UserUpsertRequest, db: Session = Depends(get_db)):
    """Create a user, or rename the existing user with the same email."""
    email = (body.email or "").strip().lower() or None
    user = _find_by_email(db, email)
    if user:
        user.name = body.name
        db.commit()
    else:
        user = User(email=email, name=body.name)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent request inserted the same email first.
            db.rollback()
            user = db.query(User).filter(User.email == email).one()
            user.name = body.name
            db.commit()
    db.refresh(user)
    return _user_to_dict(user)
