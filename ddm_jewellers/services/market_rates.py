"""Market rate fetcher - provider fallback chain and snapshot persistence"""

import asyncio
import logging
from typing import List, Optional

import httpx
from sqlalchemy.orm import Session

from ddm_jewellers.config import settings
from ddm_jewellers.domain.exceptions import RateProviderError
from ddm_jewellers.domain.models import RateQuote, RateSnapshot
from ddm_jewellers.infrastructure.cache import response_cache
from ddm_jewellers.infrastructure.clients.rates import RateProvider, default_providers
from ddm_jewellers.infrastructure.database.models import MarketRate
from ddm_jewellers.infrastructure.database.repositories import MarketRateRepository
from ddm_jewellers.infrastructure.observability.metrics import (
    rate_provider_failure_counter,
    rate_update_counter,
    record_market_rate,
)
from ddm_jewellers.utils.date_utils import utcnow

logger = logging.getLogger(__name__)

RATES_CACHE_PREFIX = "market_rates"


def to_snapshot(rate: MarketRate) -> RateSnapshot:
    return RateSnapshot(
        gold24k=rate.rate_24k,
        gold22k=rate.rate_22k,
        gold18k=rate.rate_18k,
        silver=rate.silver_rate,
        currency=rate.currency,
        source=rate.source,
        effective_date=rate.effective_date,
    )


def load_rate_snapshot(db: Session) -> Optional[RateSnapshot]:
    """Latest persisted rate as a domain snapshot, or None before the first update"""
    rate = MarketRateRepository(db).get_latest()
    return to_snapshot(rate) if rate else None


class MarketRateService:
    """
    Fetch gold/silver rates and persist them.

    Providers are tried in order and the first success wins. A failing
    provider is logged and skipped for this cycle; there are no retries.
    The last provider in the default chain never fails.
    """

    def __init__(
        self,
        db: Session,
        providers: Optional[List[RateProvider]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self.providers = providers if providers is not None else default_providers()
        self.transport = transport
        self.repository = MarketRateRepository(db)

    async def fetch_rates(self) -> Optional[RateQuote]:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds, transport=self.transport) as client:
            for provider in self.providers:
                try:
                    return await provider.fetch(client)
                except RateProviderError as e:
                    rate_provider_failure_counter.labels(provider=provider.name).inc()
                    logger.info(f"{provider.name} fetch failed: {e}", extra={"provider": provider.name})
        return None

    async def update_rates(self) -> Optional[MarketRate]:
        """Fetch and persist a new snapshot; returns None if every provider failed"""
        logger.info("Updating market rates")
        quote = await self.fetch_rates()

        if quote is None:
            logger.error("Failed to fetch market rates from all sources")
            return None

        rate = await asyncio.to_thread(self._save, quote)
        response_cache.clear(RATES_CACHE_PREFIX)
        rate_update_counter.labels(source=quote.source).inc()
        record_market_rate(quote.gold24k, quote.gold22k, quote.gold18k, quote.silver)

        logger.info(
            "Market rates updated",
            extra={
                "source": quote.source,
                "gold_24k": str(rate.rate_24k),
                "silver": str(rate.silver_rate),
            },
        )
        return rate

    def _save(self, quote: RateQuote) -> MarketRate:
        rate = self.repository.create(quote, currency=settings.rate_currency, effective_date=utcnow())
        self.db.commit()
        return rate

    def get_current_rates(self) -> Optional[MarketRate]:
        return self.repository.get_latest()

    def get_rate_history(self, limit: int = 10) -> List[MarketRate]:
        return self.repository.get_history(limit)

    def current_snapshot(self) -> Optional[RateSnapshot]:
        return load_rate_snapshot(self.db)
