from __future__ import annotations

import logging
import os

from auth import get_password_hash
from database import Base, SessionLocal, engine
from identifier_rules import find_user_by_email, normalize_identifier
from models import User, UserRole

logger = logging.getLogger(__name__)


def ensure_schema(reset: bool = False) -> None:
    if reset:
        Base.metadata.drop_all(bind=engine)
        logger.warning("Dropped all managed tables before recreating the schema.")
    Base.metadata.create_all(bind=engine)


def ensure_default_admin() -> bool:
    """Seed an admin from DEFAULT_ADMIN_EMAIL/DEFAULT_ADMIN_PASSWORD when none exists."""
    email = normalize_identifier(os.environ.get("DEFAULT_ADMIN_EMAIL"))
    password = os.environ.get("DEFAULT_ADMIN_PASSWORD")
    if not email or not password:
        return False

    db = SessionLocal()
    try:
        if db.query(User).filter(User.role == UserRole.ADMIN).first():
            return False
        if find_user_by_email(db, email):
            logger.warning("Default admin %s exists without the admin role; leaving it unchanged.", email)
            return False
        username = os.environ.get("DEFAULT_ADMIN_USERNAME") or email.split("@", 1)[0]
        db.add(User(
            username=username,
            email=email,
            hashed_password=get_password_hash(password),
            name="Administrator",
            role=UserRole.ADMIN,
        ))
        db.commit()
        logger.info("Default admin created: %s", email)
        return True
    finally:
        db.close()


def run_bootstrap(reset: bool = False, seed_admin: bool = True) -> None:
    ensure_schema(reset=reset)
    if seed_admin:
        ensure_default_admin()
