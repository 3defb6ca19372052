import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auth import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    get_token_payload,
    is_token_revoked,
    revoke_token,
    verify_password,
)
from database import get_db
from identifier_rules import ensure_no_identifier_collision, find_user_by_email
from models import User, UserRole
from schemas import MessageResponse, RefreshTokenRequest, TokenResponse, UserLogin, UserRegister, UserResponse
from security import get_optional_user, require_user

router = APIRouter()
logger = logging.getLogger(__name__)


def _token_response(user: User) -> TokenResponse:
    access_token = create_access_token({"sub": user.email, "role": user.role.value})
    refresh_token = create_refresh_token({"sub": user.email})
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=UserResponse.model_validate(user)
    )


def _resolve_role(db: Session, requested: Optional[UserRole], caller: Optional[User]) -> UserRole:
    if db.query(User.id).first() is None:
        return UserRole.ADMIN
    if requested == UserRole.ADMIN and caller and caller.role == UserRole.ADMIN:
        return UserRole.ADMIN
    return UserRole.USER


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    caller: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    ensure_no_identifier_collision(db, email=user_data.email, username=user_data.username)

    new_user = User(
        username=user_data.username,
        email=str(user_data.email).strip().lower(),
        hashed_password=get_password_hash(user_data.password),
        name=user_data.name,
        role=_resolve_role(db, user_data.role, caller),
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    logger.info("Registered user %s with role %s", new_user.email, new_user.role.value)
    return _token_response(new_user)


@router.post("/login", response_model=TokenResponse)
def login(login_data: UserLogin, db: Session = Depends(get_db)):
    user = find_user_by_email(db, login_data.email)
    if not user or not verify_password(login_data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return _token_response(user)


@router.post("/token/refresh", response_model=TokenResponse)
def refresh(request: RefreshTokenRequest, db: Session = Depends(get_db)):
    payload = decode_token(request.refresh_token)
    if payload.get("type") != "refresh" or is_token_revoked(db, payload.get("jti")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    user = db.query(User).filter(User.email == payload.get("sub")).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    revoke_token(db, payload)
    return _token_response(user)


@router.post("/logout", response_model=MessageResponse)
def logout(
    payload: dict = Depends(get_token_payload),
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    revoke_token(db, payload)
    return {"message": "Logged out successfully"}


@router.get("/user", response_model=UserResponse)
def get_me(user: User = Depends(require_user)):
    return user
