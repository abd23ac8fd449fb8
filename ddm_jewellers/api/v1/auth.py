"""/api/auth - signup, signin and cookie sessions"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ddm_jewellers.api.dependencies import get_current_user, get_request_id
from ddm_jewellers.api.v1.schemas import (
    AuthResponse,
    CustomerSignupRequest,
    MessageResponse,
    SigninRequest,
    UserResponse,
    WholesalerSignupRequest,
)
from ddm_jewellers.auth.security import generate_session_token, hash_password, session_expiry, verify_password
from ddm_jewellers.infrastructure.database.models import User
from ddm_jewellers.infrastructure.database.repositories import ActivityRepository, UserRepository
from ddm_jewellers.infrastructure.database.session import get_db

router = APIRouter()

REDIRECTS = {"admin": "/admin", "wholesaler": "/wholesaler-dashboard"}


def _log_activity(db: Session, request: Request, user_id: Optional[str], action: str, details: Dict[str, Any]) -> None:
    ActivityRepository(db).log(
        user_id=user_id,
        action=action,
        details=details,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def _create_user(db: Session, request: Request, fields: Dict[str, Any], role: str) -> User:
    users = UserRepository(db)
    if users.get_by_email(fields["email"]):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = users.create(
        email=fields["email"],
        password_hash=hash_password(fields["password"]),
        first_name=fields["first_name"],
        last_name=fields["last_name"],
        phone_number=fields.get("phone_number"),
        business_name=fields.get("business_name"),
        business_address=fields.get("business_address"),
        gst_number=fields.get("gst_number"),
        role=role,
        is_active=True,
        is_email_verified=False,
        is_approved=role == "customer",  # Wholesalers wait for admin approval
    )
    _log_activity(db, request, user.id, "signup", {"role": role})
    db.commit()
    logging.info("User signed up", extra={"user_id": user.id, "role": role, "request_id": get_request_id(request)})
    return user


@router.post("/auth/signup/customer", response_model=AuthResponse, status_code=201)
def signup_customer(body: CustomerSignupRequest, request: Request, db: Session = Depends(get_db)):
    user = _create_user(db, request, body.model_dump(), role="customer")
    return AuthResponse(message="Account created successfully", user=UserResponse.model_validate(user))


@router.post("/auth/signup/wholesaler", response_model=AuthResponse, status_code=201)
def signup_wholesaler(body: WholesalerSignupRequest, request: Request, db: Session = Depends(get_db)):
    user = _create_user(db, request, body.model_dump(), role="wholesaler")
    return AuthResponse(
        message="Wholesaler account created successfully. Please wait for admin approval.",
        user=UserResponse.model_validate(user),
    )


@router.post("/auth/signin", response_model=AuthResponse)
def signin(body: SigninRequest, request: Request, db: Session = Depends(get_db)):
    """
    Verify credentials and start a cookie session.

    The session cookie stores the user id and a fresh session token; the
    token and its 7 day expiry are also stored on the user row.
    """
    users = UserRepository(db)
    user = users.get_by_email(body.email)
    if user is None or not user.password_hash:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not verify_password(body.password, user.password_hash):
        _log_activity(db, request, user.id, "failed_login", {"reason": "invalid_password"})
        db.commit()
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    token = generate_session_token()
    users.update_session(user, token, session_expiry())
    _log_activity(db, request, user.id, "login", {})
    db.commit()

    request.session["user_id"] = user.id
    request.session["session_token"] = token

    return AuthResponse(
        message="Sign in successful",
        user=UserResponse.model_validate(user),
        redirect_to=REDIRECTS.get(user.role, "/"),
    )


@router.post("/auth/signout", response_model=MessageResponse)
def signout(request: Request, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    UserRepository(db).update_session(user, None, None)
    _log_activity(db, request, user.id, "logout", {})
    db.commit()
    request.session.clear()
    return MessageResponse(message="Signed out successfully")


@router.get("/auth/user", response_model=UserResponse)
def current_user(user: User = Depends(get_current_user)):
    return user
