"""/api/cart - the signed-in user's shopping cart"""

from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ddm_jewellers.api.dependencies import get_current_user, require_approved
from ddm_jewellers.api.v1.schemas import (
    CartAddRequest,
    CartItemResponse,
    CartResponse,
    CartUpdateRequest,
    MessageResponse,
    PricingBreakdownSchema,
    ProductResponse,
)
from ddm_jewellers.domain.exceptions import RatesUnavailableError
from ddm_jewellers.infrastructure.database.models import CartItem, User
from ddm_jewellers.infrastructure.database.repositories import CartRepository, ProductRepository
from ddm_jewellers.infrastructure.database.session import get_db
from ddm_jewellers.services.market_rates import load_rate_snapshot
from ddm_jewellers.services.pricing import line_total, price_product

router = APIRouter()


def _owned_item(db: Session, item_id: int, user: User) -> CartItem:
    item = CartRepository(db).get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Cart item not found")
    if item.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not your cart item")
    return item


def _priced_items(db: Session, items: List[CartItem]) -> List[CartItemResponse]:
    if not items:
        return []

    rates = load_rate_snapshot(db)
    priced = []
    for item in items:
        breakdown = price_product(db, item.product, item.quantity, rates)
        priced.append(
            CartItemResponse(
                id=item.id,
                product_id=item.product_id,
                quantity=item.quantity,
                product=ProductResponse.model_validate(item.product),
                line_total=line_total(item.product, breakdown, item.quantity),
                pricing=PricingBreakdownSchema.model_validate(breakdown),
            )
        )
    return priced


@router.get("/cart", response_model=CartResponse)
def get_cart(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Cart lines priced against the latest market rate"""
    try:
        items = _priced_items(db, CartRepository(db).list_for_user(user.id))
    except RatesUnavailableError:
        raise HTTPException(status_code=503, detail="Market rates not available")

    total = sum((item.line_total for item in items), Decimal("0"))
    return CartResponse(items=items, total=total)


@router.post("/cart", response_model=MessageResponse, status_code=201)
def add_to_cart(body: CartAddRequest, user: User = Depends(require_approved), db: Session = Depends(get_db)):
    product = ProductRepository(db).get(body.product_id)
    if product is None or not product.is_active:
        raise HTTPException(status_code=404, detail="Product not found")

    CartRepository(db).add(user.id, product.id, body.quantity)
    db.commit()
    return MessageResponse(message="Item added to cart")


@router.put("/cart/{item_id}", response_model=MessageResponse)
def update_cart_item(
    item_id: int,
    body: CartUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = _owned_item(db, item_id, user)
    item.quantity = body.quantity
    db.commit()
    return MessageResponse(message="Cart updated")


@router.delete("/cart/{item_id}", response_model=MessageResponse)
def remove_cart_item(item_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    item = _owned_item(db, item_id, user)
    CartRepository(db).remove(item)
    db.commit()
    return MessageResponse(message="Item removed from cart")


@router.delete("/cart", response_model=MessageResponse)
def clear_cart(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    CartRepository(db).clear(user.id)
    db.commit()
    return MessageResponse(message="Cart cleared")
