"""Unit tests for MultiSourcePriceSource."""

import asyncio
from unittest.mock import patch

import pytest

from sentinel.src.PriceAggregator import PriceObservation
from sentinel.src.PriceSource import MultiSourcePriceSource
from sentinel.src.providers import BaseProvider


class FakeProvider(BaseProvider):
    """Provider returning canned prices, or raising/hanging on demand."""

    def __init__(
        self, name: str, prices=None, error=None, delay=0.0, available=True, covers=None
    ):
        super().__init__()
        self.name = name
        self.prices = prices or {}
        self.covers = covers
        self.requested: list[list[str]] = []
        self.error = error
        self.delay = delay
        self.available = available
        self.calls = 0

    async def get_prices(self, symbols, chain):
        self.calls += 1
        self.requested.append(list(symbols))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return [
            PriceObservation(price=self.prices[s], source=self.name, symbol=s)
            for s in symbols
            if s in self.prices
        ]

    def supports(self, symbol, chain):
        return self.covers is None or symbol in self.covers

    async def is_available(self):
        if isinstance(self.available, Exception):
            raise self.available
        return self.available


class TestInit:
    """Test constructor validation."""

    def test_requires_providers(self) -> None:
        with pytest.raises(ValueError, match="At least one provider"):
            MultiSourcePriceSource([])

    def test_duplicate_names(self) -> None:
        with pytest.raises(ValueError, match="Duplicate providers"):
            MultiSourcePriceSource([FakeProvider("a"), FakeProvider("a")])

    def test_invalid_timeout(self) -> None:
        with pytest.raises(ValueError, match="fetch_timeout"):
            MultiSourcePriceSource([FakeProvider("a")], fetch_timeout=0)


class TestBackoff:
    """Test failure bookkeeping."""

    def test_exponential_backoff(self) -> None:
        source = MultiSourcePriceSource([FakeProvider("a")], base_backoff_seconds=5.0)
        assert source.record_failure("a") == 5.0
        assert source.record_failure("a") == 10.0
        assert source.record_failure("a") == 20.0

    def test_backoff_capped(self) -> None:
        source = MultiSourcePriceSource(
            [FakeProvider("a")], base_backoff_seconds=5.0, max_backoff_seconds=30.0
        )
        for _ in range(10):
            backoff = source.record_failure("a")
        assert backoff == 30.0

    def test_success_resets(self) -> None:
        source = MultiSourcePriceSource([FakeProvider("a")])
        source.record_failure("a")
        source.record_failure("a")
        source.record_success("a")

        status = source.get_provider_status("a")
        assert status.consecutive_failures == 0
        assert status.backoff_until == 0.0
        assert status.total_failures == 2
        assert status.total_successes == 1

    @patch("sentinel.src.PriceSource.time.time")
    def test_provider_active_after_backoff(self, mock_time) -> None:
        mock_time.return_value = 1000.0
        source = MultiSourcePriceSource(
            [FakeProvider("a"), FakeProvider("b")], base_backoff_seconds=10.0
        )
        source.record_failure("a")

        mock_time.return_value = 1005.0
        assert source.get_active_providers() == ["b"]

        mock_time.return_value = 1010.0
        assert source.get_active_providers() == ["a", "b"]


class TestFetchPrices:
    """Test concurrent fetching."""

    @pytest.mark.asyncio
    async def test_merges_all_providers(self) -> None:
        a = FakeProvider("a", {"USDT": 1.0})
        b = FakeProvider("b", {"USDT": 0.999, "USDC": 1.0})
        source = MultiSourcePriceSource([a, b])

        result = await source.fetch_prices(["USDT", "USDC"], "ethereum")

        assert [(o.source, o.symbol) for o in result] == [
            ("a", "USDT"), ("b", "USDT"), ("b", "USDC"),
        ]

    @pytest.mark.asyncio
    async def test_error_isolated(self) -> None:
        good = FakeProvider("good", {"DAI": 1.0})
        bad = FakeProvider("bad", error=RuntimeError("boom"))
        source = MultiSourcePriceSource([bad, good])

        result = await source.fetch_prices(["DAI"], "ethereum")

        assert [o.source for o in result] == ["good"]
        assert source.get_provider_status("bad").consecutive_failures == 1
        assert source.get_active_providers() == ["good"]

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        slow = FakeProvider("slow", {"USDT": 1.0}, delay=1.0)
        fast = FakeProvider("fast", {"USDT": 1.0})
        source = MultiSourcePriceSource([slow, fast], fetch_timeout=0.05)

        result = await source.fetch_prices(["USDT"], "ethereum")

        assert [o.source for o in result] == ["fast"]
        assert source.get_provider_status("slow").consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_empty_result_counts_as_failure(self) -> None:
        source = MultiSourcePriceSource([FakeProvider("a")])

        assert await source.fetch_prices(["USDT"], "ethereum") == []
        assert source.get_provider_status("a").consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_all_in_backoff_skips_calls(self) -> None:
        provider = FakeProvider("a", {"USDT": 1.0})
        source = MultiSourcePriceSource([provider])
        source.record_failure("a")

        assert await source.fetch_prices(["USDT"], "ethereum") == []
        assert provider.calls == 0


class TestCoverage:
    """Providers are only asked for, and only penalised for, symbols they cover."""

    @pytest.mark.asyncio
    async def test_uncovered_symbol_does_not_back_off_provider(self) -> None:
        feeds = FakeProvider("feeds", {"USDT": 1.0}, covers={"USDT"})
        market = FakeProvider("market", {"USDT": 1.001, "FRAX": 0.998})
        source = MultiSourcePriceSource([feeds, market])

        frax = await source.fetch_prices(["FRAX"], "ethereum")
        usdt = await source.fetch_prices(["USDT"], "ethereum")

        assert [o.source for o in frax] == ["market"]
        assert feeds.requested == [["USDT"]]
        assert sorted(o.source for o in usdt) == ["feeds", "market"]
        assert source.get_provider_status("feeds").consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_only_covered_symbols_requested(self) -> None:
        feeds = FakeProvider("feeds", {"USDT": 1.0}, covers={"USDT"})
        source = MultiSourcePriceSource([feeds])

        await source.fetch_prices(["USDT", "FRAX"], "ethereum")

        assert feeds.requested == [["USDT"]]

    @pytest.mark.asyncio
    async def test_no_coverage_returns_empty(self) -> None:
        feeds = FakeProvider("feeds", covers=set())
        source = MultiSourcePriceSource([feeds])

        assert await source.fetch_prices(["FRAX"], "ethereum") == []
        assert feeds.calls == 0
        assert source.get_active_providers() == ["feeds"]


class TestAvailability:
    """Test is_available."""

    @pytest.mark.asyncio
    async def test_any_available(self) -> None:
        source = MultiSourcePriceSource(
            [FakeProvider("a", available=False), FakeProvider("b", available=True)]
        )
        assert await source.is_available() is True

    @pytest.mark.asyncio
    async def test_none_available(self) -> None:
        source = MultiSourcePriceSource(
            [
                FakeProvider("a", available=False),
                FakeProvider("b", available=RuntimeError("down")),
            ]
        )
        assert await source.is_available() is False
