"""/api/products and /api/pricing - catalog and live pricing"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ddm_jewellers.api.dependencies import require_admin
from ddm_jewellers.api.v1.schemas import (
    MessageResponse,
    PricingBreakdownSchema,
    PricingRequest,
    PricingResponse,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)
from ddm_jewellers.domain.exceptions import RatesUnavailableError
from ddm_jewellers.domain.models import ProductPricingInput
from ddm_jewellers.domain.pricing import calculate_cart_item_price, format_breakdown
from ddm_jewellers.infrastructure.cache import cache_key, response_cache
from ddm_jewellers.infrastructure.database.repositories import CategoryRepository, ProductRepository
from ddm_jewellers.infrastructure.database.session import get_db
from ddm_jewellers.services.market_rates import load_rate_snapshot
from ddm_jewellers.services.pricing import gst_rate, line_total, price_product

router = APIRouter()

CACHE_PREFIX = "products"


@router.get("/products", response_model=List[ProductResponse])
def list_products(
    category_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    featured: Optional[bool] = Query(None),
    product_type: Optional[str] = Query(None, pattern="^(real|imitation)$"),
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    filters = {
        "category_id": category_id,
        "search": search,
        "featured": featured,
        "product_type": product_type,
        "limit": limit,
        "offset": offset,
    }
    key = cache_key(CACHE_PREFIX, filters)
    cached = response_cache.get(key)
    if cached is not None:
        return cached

    products = [ProductResponse.model_validate(p) for p in ProductRepository(db).list(**filters)]
    response_cache.set(key, products)
    return products


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = ProductRepository(db).get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/products/{product_id}/pricing", response_model=PricingResponse)
def get_product_pricing(
    product_id: int,
    quantity: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    """
    Live price breakdown for a product.

    Imitation products report an all-zero breakdown and are payable at
    their catalog price.
    """
    product = ProductRepository(db).get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    try:
        breakdown = price_product(db, product, quantity)
    except RatesUnavailableError as e:
        logging.warning(f"Pricing unavailable: {e}", extra={"product_id": product_id})
        raise HTTPException(status_code=503, detail="Market rates not available")

    return PricingResponse(
        quantity=quantity,
        breakdown=PricingBreakdownSchema.model_validate(breakdown),
        formatted=format_breakdown(breakdown, gst_rate()),
        payable=line_total(product, breakdown, quantity),
        uses_catalog_price=product.product_type == "imitation",
    )


@router.post("/pricing/calculate", response_model=PricingResponse)
def calculate_pricing(body: PricingRequest, db: Session = Depends(get_db)):
    """Price an arbitrary weight/material combination against the latest rate"""
    pricing_input = ProductPricingInput(**body.model_dump(exclude={"quantity"}))
    try:
        breakdown = calculate_cart_item_price(pricing_input, load_rate_snapshot(db), body.quantity, gst_rate())
    except RatesUnavailableError:
        raise HTTPException(status_code=503, detail="Market rates not available")

    return PricingResponse(
        quantity=body.quantity,
        breakdown=PricingBreakdownSchema.model_validate(breakdown),
        formatted=format_breakdown(breakdown, gst_rate()),
        payable=breakdown.final_price,
        uses_catalog_price=body.product_type == "imitation",
    )


def _check_category(db: Session, category_id: Optional[int]) -> None:
    if category_id is not None and CategoryRepository(db).get(category_id) is None:
        raise HTTPException(status_code=400, detail=f"Category {category_id} not found")


@router.post("/products", response_model=ProductResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_product(body: ProductCreate, db: Session = Depends(get_db)):
    _check_category(db, body.category_id)
    product = ProductRepository(db).create(**body.model_dump())
    db.commit()
    response_cache.clear(CACHE_PREFIX)
    return product


@router.put("/products/{product_id}", response_model=ProductResponse, dependencies=[Depends(require_admin)])
def update_product(product_id: int, body: ProductUpdate, db: Session = Depends(get_db)):
    repo = ProductRepository(db)
    product = repo.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    changes = body.model_dump(exclude_unset=True)
    _check_category(db, changes.get("category_id"))
    repo.update(product, changes)
    db.commit()
    response_cache.clear(CACHE_PREFIX)
    return product


@router.delete("/products/{product_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
def delete_product(product_id: int, db: Session = Depends(get_db)):
    repo = ProductRepository(db)
    product = repo.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    repo.delete(product)
    db.commit()
    response_cache.clear(CACHE_PREFIX)
    return MessageResponse(message="Product deleted successfully")
