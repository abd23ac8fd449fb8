"""Password hashing and session token helpers"""

import secrets
from datetime import datetime, timedelta

import bcrypt

from ddm_jewellers.config import settings
from ddm_jewellers.utils.date_utils import utcnow


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def generate_session_token() -> str:
    return secrets.token_hex(64)


def session_expiry(now: datetime | None = None) -> datetime:
    return (now or utcnow()) + timedelta(seconds=settings.session_max_age_seconds)
