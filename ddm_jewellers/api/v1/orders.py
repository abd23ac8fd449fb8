"""/api/orders - checkout and order history"""

import logging
import time
from decimal import Decimal
from typing import List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ddm_jewellers.api.dependencies import get_current_user, get_request_id, require_admin, require_approved
from ddm_jewellers.api.v1.schemas import OrderCreateRequest, OrderResponse, OrderStatusUpdate
from ddm_jewellers.domain.exceptions import ProductNotFoundError, RatesUnavailableError
from ddm_jewellers.infrastructure.database.models import OrderItem, Product, User
from ddm_jewellers.infrastructure.database.repositories import CartRepository, OrderRepository, ProductRepository
from ddm_jewellers.infrastructure.database.session import get_db
from ddm_jewellers.infrastructure.observability.metrics import order_counter
from ddm_jewellers.services.market_rates import load_rate_snapshot
from ddm_jewellers.services.pricing import line_total, price_product

router = APIRouter()


def _requested_lines(db: Session, body: OrderCreateRequest, user: User) -> Tuple[List[Tuple[Product, int]], bool]:
    """Products and quantities to order, and whether they came from the cart"""
    if body.items:
        products = ProductRepository(db)
        lines = []
        for line in body.items:
            product = products.get(line.product_id)
            if product is None or not product.is_active:
                raise ProductNotFoundError(f"Product {line.product_id} not found")
            lines.append((product, line.quantity))
        return lines, False

    lines = []
    for item in CartRepository(db).list_for_user(user.id):
        if item.product is None or not item.product.is_active:
            raise ProductNotFoundError(f"Product {item.product_id} is no longer available")
        lines.append((item.product, item.quantity))
    return lines, True


def _order_items(db: Session, lines: List[Tuple[Product, int]]) -> Tuple[List[OrderItem], Decimal]:
    """Snapshot each line's price breakdown at checkout time"""
    rates = load_rate_snapshot(db)
    items = []
    total = Decimal("0")
    for product, quantity in lines:
        breakdown = price_product(db, product, quantity, rates)
        amount = line_total(product, breakdown, quantity)
        total += amount
        items.append(
            OrderItem(
                product_id=product.id,
                quantity=quantity,
                price=amount,
                weight_in_grams=breakdown.weight,
                rate_per_gram=breakdown.rate_per_gram,
                metal_cost=breakdown.metal_cost,
                making_charges=breakdown.making_charges,
                gemstones_cost=breakdown.gemstones_cost,
                diamonds_cost=breakdown.diamonds_cost,
                gst_amount=breakdown.gst_amount,
            )
        )
    return items, total


@router.get("/orders", response_model=List[OrderResponse])
def list_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """The caller's orders; admins see every order"""
    return OrderRepository(db).list(None if user.role == "admin" else user.id)


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    order = OrderRepository(db).get(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.user_id != user.id and user.role != "admin":
        raise HTTPException(status_code=403, detail="Not your order")
    return order


@router.post("/orders", response_model=OrderResponse, status_code=201)
def create_order(
    body: OrderCreateRequest,
    request: Request,
    user: User = Depends(require_approved),
    db: Session = Depends(get_db),
):
    """
    Place an order.

    Flow:
    1. Take the lines from the request body, or from the cart when omitted
    2. Price every line against the latest market rate
    3. Persist the order with a per-line breakdown
    4. Empty the cart if it was the source
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        lines, from_cart = _requested_lines(db, body, user)
        if not lines:
            raise HTTPException(status_code=400, detail="No items to order")

        items, total = _order_items(db, lines)
        order = OrderRepository(db).create(
            user_id=user.id,
            total_amount=total,
            items=items,
            payment_method=body.payment_method,
            shipping_address=body.shipping_address,
            billing_address=body.billing_address,
            notes=body.notes,
        )
        if from_cart:
            CartRepository(db).clear(user.id)
        db.commit()

        order_counter.inc()
        logging.info(
            "Order placed",
            extra={
                "request_id": request_id,
                "order_id": order.id,
                "user_id": user.id,
                "total_amount": str(total),
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return order

    except HTTPException:
        db.rollback()
        raise

    except ProductNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except RatesUnavailableError as e:
        db.rollback()
        logging.warning(f"Order pricing unavailable: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Market rates not available")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/orders/{order_id}/status", response_model=OrderResponse, dependencies=[Depends(require_admin)])
def update_order_status(order_id: int, body: OrderStatusUpdate, db: Session = Depends(get_db)):
    order = OrderRepository(db).get(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    order.status = body.status
    db.commit()
    return order
