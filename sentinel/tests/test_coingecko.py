"""Unit tests for CoinGeckoProvider using httpx.MockTransport."""

from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio

from sentinel.src.providers import BaseProvider, CoinGeckoProvider, get_provider


@pytest_asyncio.fixture
async def http():
    """Route the shared client through a list of canned responses.

    Each test sets ``http.responses``; every request is recorded in
    ``http.requests``.
    """

    router = SimpleNamespace(responses=[], requests=[])

    def handler(request: httpx.Request) -> httpx.Response:
        router.requests.append(request)
        return router.responses.pop(0)

    BaseProvider._shared_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    yield router
    await BaseProvider.close_shared_client()


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    monkeypatch.setattr(CoinGeckoProvider, "RETRY_DELAY", 0.0)
    monkeypatch.setattr(CoinGeckoProvider, "RATE_LIMIT_BACKOFF", 0.0)


class TestConfiguration:
    """Test key handling and endpoint selection."""

    def test_registered(self) -> None:
        assert isinstance(get_provider("coingecko"), CoinGeckoProvider)

    def test_free_tier(self) -> None:
        provider = CoinGeckoProvider()
        assert provider.base_url == CoinGeckoProvider.BASE_URL_FREE
        assert provider.headers == {"Accept": "application/json"}

    def test_demo_prefix(self) -> None:
        provider = CoinGeckoProvider(api_key="demo:CG-abc", is_pro=True)
        assert provider.api_key == "CG-abc"
        assert provider.base_url == CoinGeckoProvider.BASE_URL_FREE
        assert provider.headers["x-cg-demo-api-key"] == "CG-abc"

    def test_pro_key(self) -> None:
        provider = CoinGeckoProvider(api_key="CG-pro", is_pro=True)
        assert provider.base_url == CoinGeckoProvider.BASE_URL_PRO
        assert provider.headers["x-cg-pro-api-key"] == "CG-pro"


class TestGetPrices:
    """Test price fetching."""

    @pytest.mark.asyncio
    async def test_batch_request(self, http) -> None:
        http.responses = [
            httpx.Response(
                200,
                json={
                    "tether": {"usd": 1.0002, "usd_24h_vol": 45_000_000_000},
                    "dai": {"usd": 0.9998},
                },
            )
        ]
        result = await CoinGeckoProvider().get_prices(["USDT", "DAI"], "ethereum")

        assert len(http.requests) == 1
        params = http.requests[0].url.params
        assert params["ids"] == "tether,dai"
        assert params["include_24hr_vol"] == "true"

        by_symbol = {o.symbol: o for o in result}
        assert by_symbol["USDT"].price == 1.0002
        assert by_symbol["USDT"].volume_24h == 45_000_000_000
        assert by_symbol["DAI"].volume_24h is None
        assert all(o.source == "coingecko" for o in result)

    @pytest.mark.asyncio
    async def test_unknown_symbols_skipped(self, http) -> None:
        result = await CoinGeckoProvider().get_prices(["FAKE"], "ethereum")

        assert result == []
        assert http.requests == []

    @pytest.mark.asyncio
    async def test_missing_coin_in_response(self, http) -> None:
        http.responses = [httpx.Response(200, json={"tether": {"usd": 1.0}})]
        result = await CoinGeckoProvider().get_prices(["USDT", "USDC"], "ethereum")

        assert [o.symbol for o in result] == ["USDT"]

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, http) -> None:
        http.responses = [
            httpx.Response(429, text="rate limited"),
            httpx.Response(500, text="oops"),
            httpx.Response(200, json={"usd-coin": {"usd": 1.0}}),
        ]
        result = await CoinGeckoProvider().get_prices(["USDC"], "ethereum")

        assert len(http.requests) == 3
        assert [o.price for o in result] == [1.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, http) -> None:
        http.responses = [
            httpx.Response(503, text="down") for _ in range(CoinGeckoProvider.MAX_ATTEMPTS)
        ]
        result = await CoinGeckoProvider().get_prices(["USDC"], "ethereum")

        assert result == []
        assert len(http.requests) == CoinGeckoProvider.MAX_ATTEMPTS

    @pytest.mark.asyncio
    async def test_invalid_json(self, http) -> None:
        http.responses = [httpx.Response(200, text="<html>")]
        assert await CoinGeckoProvider().get_prices(["USDT"], "ethereum") == []


class TestAvailability:
    """Test the /ping health probe."""

    @pytest.mark.asyncio
    async def test_ping_ok(self, http) -> None:
        http.responses = [httpx.Response(200, json={"gecko_says": "(V3) To the Moon!"})]
        assert await CoinGeckoProvider().is_available() is True
        assert http.requests[0].url.path.endswith("/ping")

    @pytest.mark.asyncio
    async def test_ping_failure(self, http) -> None:
        http.responses = [httpx.Response(500)]
        assert await CoinGeckoProvider().is_available() is False


class TestSupports:
    """Test coverage checks against the registry."""

    def test_known_symbol_any_chain(self) -> None:
        provider = CoinGeckoProvider()
        assert provider.supports("FRAX", "ethereum")
        assert provider.supports("usdt", "avalanche")

    def test_unknown_symbol(self) -> None:
        assert not CoinGeckoProvider().supports("FAKE", "ethereum")
