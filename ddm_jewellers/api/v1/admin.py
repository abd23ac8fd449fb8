"""/api/admin - dashboard and user management"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ddm_jewellers.api.dependencies import require_admin
from ddm_jewellers.api.v1.schemas import DashboardResponse, UserActiveUpdate, UserResponse
from ddm_jewellers.infrastructure.database.models import User
from ddm_jewellers.infrastructure.database.repositories import (
    CategoryRepository,
    GullakRepository,
    OrderRepository,
    ProductRepository,
    UserRepository,
)
from ddm_jewellers.infrastructure.database.session import get_db

router = APIRouter(dependencies=[Depends(require_admin)])


def _get_user(db: Session, user_id: str) -> User:
    user = UserRepository(db).get(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/admin/dashboard", response_model=DashboardResponse)
def dashboard(db: Session = Depends(get_db)):
    users = UserRepository(db)
    orders = OrderRepository(db)
    return DashboardResponse(
        total_users=users.count(),
        total_customers=users.count(role="customer"),
        total_wholesalers=users.count(role="wholesaler"),
        pending_wholesalers=users.count(role="wholesaler", pending_approval=True),
        total_products=ProductRepository(db).count(),
        total_categories=CategoryRepository(db).count(),
        total_orders=orders.count(),
        total_revenue=orders.revenue(),
        active_gullak_accounts=GullakRepository(db).count_active(),
    )


@router.get("/admin/users", response_model=List[UserResponse])
def list_users(
    role: Optional[str] = Query(None, pattern="^(customer|wholesaler|admin)$"),
    db: Session = Depends(get_db),
):
    return UserRepository(db).list(role)


@router.put("/admin/users/{user_id}/approve", response_model=UserResponse)
def approve_user(user_id: str, db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    user.is_approved = True
    db.commit()
    return user


@router.put("/admin/users/{user_id}/active", response_model=UserResponse)
def set_user_active(user_id: str, body: UserActiveUpdate, db: Session = Depends(get_db)):
    """Deactivating a user also ends their session"""
    user = _get_user(db, user_id)
    user.is_active = body.is_active
    if not body.is_active:
        UserRepository(db).update_session(user, None, None)
    db.commit()
    return user
