"""Startup data - bootstrap administrator account"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ddm_jewellers.auth.security import hash_password
from ddm_jewellers.config import settings
from ddm_jewellers.infrastructure.database.models import User
from ddm_jewellers.infrastructure.database.repositories import UserRepository

logger = logging.getLogger(__name__)


def seed_admin(db: Session, email: Optional[str] = None, password: Optional[str] = None) -> Optional[User]:
    """
    Create the configured admin account if it does not exist yet.

    Does nothing unless both an email and a password are configured. An
    existing user with that email is left untouched.
    """
    email = email or settings.admin_email
    password = password or settings.admin_password
    if not email or not password:
        return None

    users = UserRepository(db)
    existing = users.get_by_email(email)
    if existing:
        return existing

    admin = users.create(
        email=email,
        password_hash=hash_password(password),
        first_name="Admin",
        last_name="User",
        role="admin",
        is_active=True,
        is_email_verified=True,
        is_approved=True,
    )
    db.commit()
    logger.info("Bootstrap admin created", extra={"user_id": admin.id})
    return admin
