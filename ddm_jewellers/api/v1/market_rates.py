"""/api/market-rates - current and historical gold/silver rates"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ddm_jewellers.api.dependencies import get_market_rate_service, get_request_id, require_admin
from ddm_jewellers.api.v1.schemas import MarketRateResponse
from ddm_jewellers.infrastructure.cache import cache_key, response_cache
from ddm_jewellers.services.market_rates import RATES_CACHE_PREFIX, MarketRateService

router = APIRouter()


@router.get("/market-rates", response_model=Optional[MarketRateResponse])
def get_current_rates(service: MarketRateService = Depends(get_market_rate_service)):
    """Latest stored snapshot; null until the first successful fetch"""
    key = cache_key(RATES_CACHE_PREFIX, {"view": "current"})
    cached = response_cache.get(key)
    if cached is not None:
        return cached

    rate = service.get_current_rates()
    if rate is None:
        return None

    current = MarketRateResponse.model_validate(rate)
    response_cache.set(key, current)
    return current


@router.get("/market-rates/history", response_model=List[MarketRateResponse])
def get_rate_history(
    limit: int = Query(10, ge=1, le=100),
    service: MarketRateService = Depends(get_market_rate_service),
):
    return service.get_rate_history(limit)


@router.post("/market-rates/refresh", response_model=MarketRateResponse, dependencies=[Depends(require_admin)])
async def refresh_rates(request: Request, service: MarketRateService = Depends(get_market_rate_service)):
    """Fetch from the provider chain now instead of waiting for the scheduler"""
    rate = await service.update_rates()
    if rate is None:
        logging.error("Manual rate refresh failed", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Rate providers unavailable")
    return rate
