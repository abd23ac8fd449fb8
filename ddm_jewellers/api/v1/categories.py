"""/api/categories - catalog categories"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ddm_jewellers.api.dependencies import require_admin
from ddm_jewellers.api.v1.schemas import CategoryCreate, CategoryResponse, CategoryUpdate, MessageResponse
from ddm_jewellers.infrastructure.cache import cache_key, response_cache
from ddm_jewellers.infrastructure.database.repositories import CategoryRepository
from ddm_jewellers.infrastructure.database.session import get_db

router = APIRouter()

CACHE_PREFIX = "categories"


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(
    product_type: Optional[str] = Query(None, description="real, imitation or both"),
    db: Session = Depends(get_db),
):
    key = cache_key(CACHE_PREFIX, {"product_type": product_type})
    cached = response_cache.get(key)
    if cached is not None:
        return cached

    categories = [
        CategoryResponse.model_validate(c)
        for c in CategoryRepository(db).list(product_type)
    ]
    response_cache.set(key, categories)
    return categories


@router.get("/categories/{slug}", response_model=CategoryResponse)
def get_category(slug: str, db: Session = Depends(get_db)):
    category = CategoryRepository(db).get_by_slug(slug)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post("/categories", response_model=CategoryResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_category(body: CategoryCreate, db: Session = Depends(get_db)):
    try:
        category = CategoryRepository(db).create(**body.model_dump())
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Category slug already exists")

    response_cache.clear(CACHE_PREFIX)
    return category


@router.put("/categories/{category_id}", response_model=CategoryResponse, dependencies=[Depends(require_admin)])
def update_category(category_id: int, body: CategoryUpdate, db: Session = Depends(get_db)):
    repo = CategoryRepository(db)
    category = repo.get(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    try:
        repo.update(category, body.model_dump(exclude_unset=True))
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Category slug already exists")

    response_cache.clear(CACHE_PREFIX)
    return category


@router.delete("/categories/{category_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
def delete_category(category_id: int, db: Session = Depends(get_db)):
    repo = CategoryRepository(db)
    category = repo.get(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    repo.delete(category)
    db.commit()
    response_cache.clear(CACHE_PREFIX)
    return MessageResponse(message="Category deleted successfully")
