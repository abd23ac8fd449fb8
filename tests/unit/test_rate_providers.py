"""Unit tests for market rate providers and the fallback chain"""

from decimal import Decimal

import httpx
import pytest
from prometheus_client import REGISTRY

from ddm_jewellers.domain.exceptions import RateProviderError
from ddm_jewellers.infrastructure.cache import cache_key, response_cache
from ddm_jewellers.infrastructure.clients.rates import (
    GRAMS_PER_TROY_OUNCE,
    SAMPLE_SOURCE,
    AlphaVantageProvider,
    FinnhubProvider,
    FreeMetalsProvider,
    MetalsApiProvider,
    SampleRatesProvider,
    default_providers,
    quote_from_ounce_prices,
)
from ddm_jewellers.infrastructure.database.repositories import MarketRateRepository
from ddm_jewellers.services.market_rates import RATES_CACHE_PREFIX, MarketRateService


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_ounce_conversion():
    quote = quote_from_ounce_prices(2000, 25, "feed", usd_to_inr=83)

    expected_24k = Decimal("2000") * Decimal("83") / GRAMS_PER_TROY_OUNCE
    assert quote.gold24k == expected_24k
    assert quote.gold22k == expected_24k * Decimal("0.916")
    assert quote.gold18k == expected_24k * Decimal("0.75")
    assert quote.silver == Decimal("25") * Decimal("83") / GRAMS_PER_TROY_OUNCE
    assert quote.source == "feed"


def test_default_chain_order():
    names = [provider.name for provider in default_providers()]
    assert names == ["Metals-API", "Alpha Vantage", "Finnhub", "Free Metals API", SAMPLE_SOURCE]


async def test_keyed_provider_without_key_fails_fast():
    def handler(request):
        raise AssertionError("no request expected")

    async with mock_client(handler) as client:
        for provider in (MetalsApiProvider(api_key=""), AlphaVantageProvider(api_key=""), FinnhubProvider(api_key="")):
            with pytest.raises(RateProviderError, match="API key not configured"):
                await provider.fetch(client)


async def test_metals_api_parses_spot_prices():
    def handler(request: httpx.Request):
        assert request.url.params["api_key"] == "k1"
        return httpx.Response(200, json={"gold": 2300, "silver": 28})

    async with mock_client(handler) as client:
        quote = await MetalsApiProvider(api_key="k1").fetch(client)

    assert quote.source == "Metals-API"
    assert quote.gold24k == quote_from_ounce_prices(2300, 28, "x").gold24k


async def test_alpha_vantage_inverts_exchange_rate():
    def handler(request: httpx.Request):
        rate = "0.0005" if request.url.params["from_currency"] == "XAU" else "0.04"
        return httpx.Response(200, json={"Realtime Currency Exchange Rate": {"5. Exchange Rate": rate}})

    async with mock_client(handler) as client:
        quote = await AlphaVantageProvider(api_key="k2").fetch(client)

    expected = quote_from_ounce_prices(2000, 25, "x")
    assert quote.gold24k == expected.gold24k
    assert quote.silver == expected.silver


async def test_finnhub_reads_current_price():
    def handler(request: httpx.Request):
        price = 2100 if request.url.params["symbol"] == "OANDA:XAU_USD" else 24
        return httpx.Response(200, json={"c": price})

    async with mock_client(handler) as client:
        quote = await FinnhubProvider(api_key="k3").fetch(client)

    assert quote.gold24k == quote_from_ounce_prices(2100, 24, "x").gold24k


async def test_free_provider_defaults_missing_prices():
    def handler(request):
        return httpx.Response(200, json={"gold": 2400})

    async with mock_client(handler) as client:
        quote = await FreeMetalsProvider().fetch(client)

    assert quote.silver == quote_from_ounce_prices(2400, 25, "x").silver


async def test_http_error_becomes_provider_error():
    def handler(request):
        return httpx.Response(502, json={"error": "upstream"})

    async with mock_client(handler) as client:
        with pytest.raises(RateProviderError, match="502"):
            await FreeMetalsProvider().fetch(client)


async def test_malformed_payload_becomes_provider_error():
    def handler(request):
        return httpx.Response(200, json={"unexpected": True})

    async with mock_client(handler) as client:
        with pytest.raises(RateProviderError, match="Invalid"):
            await MetalsApiProvider(api_key="k").fetch(client)


async def test_network_error_becomes_provider_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_client(handler) as client:
        with pytest.raises(RateProviderError):
            await FinnhubProvider(api_key="k").fetch(client)


async def test_fallback_reaches_first_working_provider(db):
    def handler(request: httpx.Request):
        if "spot" in request.url.path and "api_key" in request.url.params:
            return httpx.Response(500)
        return httpx.Response(200, json={"gold": 2000, "silver": 25})

    service = MarketRateService(
        db,
        providers=[MetalsApiProvider(api_key="k"), FreeMetalsProvider(), SampleRatesProvider()],
        transport=httpx.MockTransport(handler),
    )
    quote = await service.fetch_rates()

    assert quote.source == "Free Metals API"


async def test_update_rates_persists_and_clears_cache(db):
    key = cache_key(RATES_CACHE_PREFIX, {"view": "current"})
    response_cache.set(key, "stale")

    service = MarketRateService(db, providers=[MetalsApiProvider(api_key=""), SampleRatesProvider()])
    rate = await service.update_rates()

    assert rate.source == SAMPLE_SOURCE
    assert rate.currency == "INR"
    assert rate.rate_22k == Decimal("6200.00")
    assert MarketRateRepository(db).get_latest().id == rate.id
    assert response_cache.get(key) is None
    assert REGISTRY.get_sample_value("ddm_market_rate_per_gram", {"purity": "22k"}) == 6200.0


async def test_update_rates_all_failing_keeps_previous(db, market_rate):
    service = MarketRateService(db, providers=[MetalsApiProvider(api_key=""), FinnhubProvider(api_key="")])

    assert await service.update_rates() is None
    assert service.get_current_rates().id == market_rate.id
    assert len(service.get_rate_history()) == 1
    assert service.current_snapshot().gold22k == Decimal("6200.00")
