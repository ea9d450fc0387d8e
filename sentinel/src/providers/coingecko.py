"""CoinGecko provider.

Endpoint: https://api.coingecko.com/api/v3/simple/price?ids={ids}&vs_currencies=usd
Rate Limit: 30 calls/min (free), higher with API key
Volume: include_24hr_vol=true adds "usd_24h_vol" per coin
"""

import asyncio
import logging
import time
from typing import Any

from ..PriceAggregator import PriceObservation
from ..StablecoinRegistry import DEFAULT_REGISTRY, StablecoinRegistry
from .base import BaseProvider, ProviderError, ProviderHTTPError, register_provider

logger = logging.getLogger(__name__)


@register_provider
class CoinGeckoProvider(BaseProvider):
    """Provider for the CoinGecko simple price API.

    All requested symbols are priced with a single batch request. Transient
    failures are retried with exponential backoff; a 429 waits at least
    RATE_LIMIT_BACKOFF seconds before the next attempt.

    API tiers:
        - Free: api.coingecko.com (no key, 30 calls/min)
        - Demo: api.coingecko.com + x-cg-demo-api-key header
        - Pro: pro-api.coingecko.com + x-cg-pro-api-key header

    A key prefixed with "demo:" is a demo key. Otherwise ``is_pro`` decides.
    """

    name = "coingecko"
    BASE_URL_FREE = "https://api.coingecko.com/api/v3"
    BASE_URL_PRO = "https://pro-api.coingecko.com/api/v3"

    MAX_ATTEMPTS = 3
    RETRY_DELAY = 1.0
    RATE_LIMIT_BACKOFF = 5.0
    PING_TIMEOUT = 5.0

    def __init__(
        self,
        api_key: str | None = None,
        is_pro: bool = False,
        timeout: float | None = None,
        registry: StablecoinRegistry | None = None,
        **kwargs: Any,
    ):
        """Initialize with optional demo: prefix handling.

        :param api_key: CoinGecko API key.
        :param is_pro: Treat an unprefixed key as a Pro key.
        :param timeout: Request timeout in seconds.
        :param registry: Registry used to map symbols to CoinGecko ids.
        """
        super().__init__(timeout=timeout)
        self._is_demo = False
        if api_key and api_key.lower().startswith("demo:"):
            self._is_demo = True
            api_key = api_key[5:]
        self.api_key = api_key or None
        self.is_pro = is_pro and not self._is_demo
        self.registry = registry or DEFAULT_REGISTRY

    @property
    def base_url(self) -> str:
        return self.BASE_URL_PRO if self.api_key and self.is_pro else self.BASE_URL_FREE

    @property
    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            header_name = "x-cg-pro-api-key" if self.is_pro else "x-cg-demo-api-key"
            headers[header_name] = self.api_key
        return headers

    async def get_prices(self, symbols: list[str], chain: str) -> list[PriceObservation]:
        """Fetch USD prices and 24h volume for every symbol with a CoinGecko id.

        CoinGecko prices are chain-agnostic, so ``chain`` is not used.

        :param symbols: Stablecoin symbols.
        :param chain: Chain identifier (ignored).
        :returns: One observation per priced symbol; empty on failure.
        """
        id_to_symbol: dict[str, str] = {}
        for symbol in symbols:
            meta = self.registry.lookup(symbol)
            if meta is None or not meta.coingecko_id:
                logger.debug(f"[coingecko] No CoinGecko id for {symbol}")
                continue
            id_to_symbol[meta.coingecko_id] = meta.symbol

        if not id_to_symbol:
            return []

        try:
            data = await self._fetch_with_retry(list(id_to_symbol))
        except ProviderError as e:
            logger.warning(f"[coingecko] Failed to fetch {list(id_to_symbol.values())}: {e}")
            return []

        now = time.time()
        observations: list[PriceObservation] = []
        for coin_id, symbol in id_to_symbol.items():
            entry = data.get(coin_id)
            if not isinstance(entry, dict) or "usd" not in entry:
                logger.warning(f"[coingecko] Coin {coin_id} not in response")
                continue
            try:
                price = float(entry["usd"])
                volume = entry.get("usd_24h_vol")
                observations.append(
                    PriceObservation(
                        price=price,
                        source=self.name,
                        timestamp=now,
                        symbol=symbol,
                        volume_24h=float(volume) if volume is not None else None,
                    )
                )
            except (TypeError, ValueError) as e:
                logger.warning(f"[coingecko] Failed to parse {coin_id}: {e}")

        return observations

    async def _fetch_with_retry(self, coin_ids: list[str]) -> dict:
        """Request /simple/price, retrying transient failures.

        :raises ProviderError: When every attempt failed.
        """
        params = {
            "ids": ",".join(coin_ids),
            "vs_currencies": "usd",
            "include_24hr_vol": "true",
        }
        last_error: ProviderError | None = None
        for attempt in range(self.MAX_ATTEMPTS):
            try:
                response = await self._get(
                    f"{self.base_url}/simple/price",
                    params=params,
                    headers=self.headers,
                )
                data = response.json()
                if not isinstance(data, dict):
                    raise ProviderError(f"Unexpected response payload: {data!r}")
                return data
            except ProviderError as e:
                last_error = e
                if attempt == self.MAX_ATTEMPTS - 1:
                    break
                delay = self.RETRY_DELAY * (2 ** attempt)
                if isinstance(e, ProviderHTTPError) and e.status_code == 429:
                    delay = max(delay, self.RATE_LIMIT_BACKOFF)
                logger.debug(
                    f"[coingecko] Attempt {attempt + 1} failed ({e}), retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
            except ValueError as e:
                raise ProviderError(f"Invalid JSON response: {e}") from e

        assert last_error is not None
        raise last_error

    def supports(self, symbol: str, chain: str) -> bool:
        """Covered when the registry has a CoinGecko id for the symbol, on any chain."""
        meta = self.registry.lookup(symbol)
        return meta is not None and bool(meta.coingecko_id)

    async def is_available(self) -> bool:
        """Ping the API; True only on HTTP 200."""
        try:
            response = await self._get(
                f"{self.base_url}/ping",
                headers=self.headers,
                timeout=self.PING_TIMEOUT,
            )
        except ProviderError as e:
            logger.debug(f"[coingecko] Ping failed: {e}")
            return False
        return response.status_code == 200
