"""Dependency injection for FastAPI endpoints"""

from typing import Callable

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ddm_jewellers.infrastructure.database.models import User
from ddm_jewellers.infrastructure.database.repositories import UserRepository
from ddm_jewellers.infrastructure.database.session import get_db
from ddm_jewellers.services.market_rates import MarketRateService
from ddm_jewellers.utils.date_utils import utcnow


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_market_rate_service(db: Session = Depends(get_db)) -> MarketRateService:
    """Provide market rate service bound to the request session"""
    return MarketRateService(db)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Resolve the signed-in user from the session cookie.

    The cookie carries the user id and session token; both must match the
    stored session, which must not have expired.
    """
    user_id = request.session.get("user_id")
    token = request.session.get("session_token")
    if not user_id or not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    user = UserRepository(db).get(user_id)
    if user is None or not user.session_token or user.session_token != token:
        request.session.clear()
        raise HTTPException(status_code=401, detail="Invalid session")

    if user.session_expires_at is None or user.session_expires_at < utcnow():
        request.session.clear()
        raise HTTPException(status_code=401, detail="Session expired")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    return user


def require_roles(*roles: str) -> Callable[..., User]:
    """Dependency factory allowing only the given roles"""

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency


require_admin = require_roles("admin")


def require_approved(user: User = Depends(get_current_user)) -> User:
    """Wholesalers may not buy or save until an admin approves them"""
    if user.role == "wholesaler" and not user.is_approved:
        raise HTTPException(status_code=403, detail="Account pending approval")
    return user
