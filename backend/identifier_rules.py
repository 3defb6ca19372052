from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from models import User


def normalize_identifier(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def initials_for(name: Optional[str]) -> str:
    return "".join(part[0] for part in str(name or "").split() if part).upper()


def find_user_by_email(db: Session, email: Optional[str]) -> Optional[User]:
    normalized = normalize_identifier(email)
    if not normalized:
        return None
    return db.query(User).filter(func.lower(func.trim(User.email)) == normalized).first()


def ensure_no_identifier_collision(
    db: Session,
    *,
    email: Optional[str] = None,
    username: Optional[str] = None,
) -> None:
    if find_user_by_email(db, email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already in use",
        )

    normalized_username = normalize_identifier(username)
    if normalized_username:
        username_conflict = (
            db.query(User.id)
            .filter(func.lower(func.trim(User.username)) == normalized_username)
            .first()
        )
        if username_conflict:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already in use",
            )
