"""Market rate provider clients for gold and silver spot prices"""

import asyncio
from decimal import Decimal
from typing import List, Optional

import httpx

from ddm_jewellers.config import settings
from ddm_jewellers.domain.exceptions import RateProviderError
from ddm_jewellers.domain.models import RateQuote
from ddm_jewellers.domain.pricing import to_decimal

GRAMS_PER_TROY_OUNCE = Decimal("31.1035")
PURITY_22K = Decimal("0.916")
PURITY_18K = Decimal("0.75")

SAMPLE_SOURCE = "Sample Data (Demo)"


def quote_from_ounce_prices(gold_usd_per_oz, silver_usd_per_oz, source: str, usd_to_inr=None) -> RateQuote:
    """
    Convert USD per troy ounce spot prices to INR per gram for each purity.

    22k and 18k are priced from the 24k figure by fineness (91.6% and 75%).
    """
    usd_to_inr = to_decimal(usd_to_inr if usd_to_inr is not None else settings.usd_to_inr)
    gold24k = to_decimal(gold_usd_per_oz) * usd_to_inr / GRAMS_PER_TROY_OUNCE
    silver = to_decimal(silver_usd_per_oz) * usd_to_inr / GRAMS_PER_TROY_OUNCE

    return RateQuote(
        gold24k=gold24k,
        gold22k=gold24k * PURITY_22K,
        gold18k=gold24k * PURITY_18K,
        silver=silver,
        source=source,
    )


class RateProvider:
    """One upstream source of spot prices; `fetch` raises RateProviderError on any failure"""

    name = "provider"

    async def fetch(self, client: httpx.AsyncClient) -> RateQuote:
        raise NotImplementedError

    async def _get_json(self, client: httpx.AsyncClient, url: str, params: Optional[dict] = None) -> dict:
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise RateProviderError(f"{self.name} timeout") from e
        except httpx.HTTPStatusError as e:
            raise RateProviderError(f"{self.name} error: {e.response.status_code}") from e
        except (httpx.RequestError, ValueError) as e:
            raise RateProviderError(f"{self.name} request failed: {e}") from e


class KeyedRateProvider(RateProvider):
    """Provider that needs an API key and is skipped without one"""

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key

    def _require_key(self) -> str:
        if not self.api_key:
            raise RateProviderError(f"{self.name} API key not configured")
        return self.api_key


class MetalsApiProvider(KeyedRateProvider):
    """Metals-API spot endpoint (USD per ounce)"""

    name = "Metals-API"
    url = "https://api.metals.live/v1/spot"

    def __init__(self, api_key: Optional[str] = None):
        super().__init__(api_key if api_key is not None else settings.metals_api_key)

    async def fetch(self, client: httpx.AsyncClient) -> RateQuote:
        api_key = self._require_key()
        data = await self._get_json(client, self.url, {"api_key": api_key, "currency": "USD", "unit": "oz"})
        try:
            return quote_from_ounce_prices(data["gold"], data["silver"], self.name)
        except (KeyError, TypeError, ArithmeticError) as e:
            raise RateProviderError(f"Invalid {self.name} payload: {e}") from e


class AlphaVantageProvider(KeyedRateProvider):
    """Alpha Vantage XAU/XAG exchange rates"""

    name = "Alpha Vantage"
    url = "https://www.alphavantage.co/query"

    def __init__(self, api_key: Optional[str] = None):
        super().__init__(api_key if api_key is not None else settings.alpha_vantage_api_key)

    async def fetch(self, client: httpx.AsyncClient) -> RateQuote:
        api_key = self._require_key()
        gold_data, silver_data = await asyncio.gather(
            self._get_json(client, self.url, self._params("XAU", api_key)),
            self._get_json(client, self.url, self._params("XAG", api_key)),
        )
        try:
            gold_rate = to_decimal(gold_data["Realtime Currency Exchange Rate"]["5. Exchange Rate"])
            silver_rate = to_decimal(silver_data["Realtime Currency Exchange Rate"]["5. Exchange Rate"])
            # XAU -> USD rate is ounces per dollar
            return quote_from_ounce_prices(1 / gold_rate, 1 / silver_rate, self.name)
        except (KeyError, TypeError, ArithmeticError) as e:
            raise RateProviderError(f"Invalid {self.name} payload: {e}") from e

    @staticmethod
    def _params(symbol: str, api_key: str) -> dict:
        return {
            "function": "CURRENCY_EXCHANGE_RATE",
            "from_currency": symbol,
            "to_currency": "USD",
            "apikey": api_key,
        }


class FinnhubProvider(KeyedRateProvider):
    """Finnhub OANDA quotes (current price in `c`)"""

    name = "Finnhub"
    url = "https://finnhub.io/api/v1/quote"

    def __init__(self, api_key: Optional[str] = None):
        super().__init__(api_key if api_key is not None else settings.finnhub_api_key)

    async def fetch(self, client: httpx.AsyncClient) -> RateQuote:
        api_key = self._require_key()
        gold_data, silver_data = await asyncio.gather(
            self._get_json(client, self.url, {"symbol": "OANDA:XAU_USD", "token": api_key}),
            self._get_json(client, self.url, {"symbol": "OANDA:XAG_USD", "token": api_key}),
        )
        try:
            return quote_from_ounce_prices(gold_data["c"], silver_data["c"], self.name)
        except (KeyError, TypeError, ArithmeticError) as e:
            raise RateProviderError(f"Invalid {self.name} payload: {e}") from e


class FreeMetalsProvider(RateProvider):
    """Keyless metals.live endpoint; missing prices default to 2000 / 25 USD"""

    name = "Free Metals API"
    url = "https://api.metals.live/v1/spot/gold,silver"

    async def fetch(self, client: httpx.AsyncClient) -> RateQuote:
        data = await self._get_json(client, self.url)
        try:
            return quote_from_ounce_prices(data.get("gold") or 2000, data.get("silver") or 25, self.name)
        except (AttributeError, TypeError, ArithmeticError) as e:
            raise RateProviderError(f"Invalid {self.name} payload: {e}") from e


class SampleRatesProvider(RateProvider):
    """Last resort: fixed INR per gram figures so callers always get a rate"""

    name = SAMPLE_SOURCE

    async def fetch(self, client: httpx.AsyncClient) -> RateQuote:
        return RateQuote(
            gold24k=Decimal("6800.00"),
            gold22k=Decimal("6200.00"),
            gold18k=Decimal("5100.00"),
            silver=Decimal("82.50"),
            source=SAMPLE_SOURCE,
        )


def default_providers() -> List[RateProvider]:
    """Providers in priority order: paid APIs, free API, hardcoded sample"""
    return [
        MetalsApiProvider(),
        AlphaVantageProvider(),
        FinnhubProvider(),
        FreeMetalsProvider(),
        SampleRatesProvider(),
    ]
