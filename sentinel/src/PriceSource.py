"""PriceSource: Concurrent multi-provider price fetching with backoff.

MultiSourcePriceSource queries every active provider that covers the
requested symbols on the chain, concurrently, and concatenates their
observations. Providers without coverage are neither queried nor penalised.
A covering provider that raises, times out or returns nothing enters
exponential backoff:

    - First failure: 5 second backoff
    - Second failure: 10 second backoff
    - ... doubling up to max_backoff_seconds (default 300)

A provider that returns observations is reset. Timeouts and provider errors
never escape ``fetch_prices``; total failure shows up as an empty list.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from .PriceAggregator import PriceObservation

if TYPE_CHECKING:
    from .providers import BaseProvider

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    """Upstream collaborator that produces raw observations."""

    async def fetch_prices(self, symbols: list[str], chain: str) -> list[PriceObservation]:
        ...

    async def is_available(self) -> bool:
        ...


@dataclass
class ProviderStatus:
    """Failure bookkeeping for one provider.

    :ivar consecutive_failures: Failures since the last success.
    :ivar backoff_until: Unix timestamp when the provider may be queried again.
    :ivar total_failures: Failures since tracking began.
    :ivar total_successes: Successes since tracking began.
    """

    consecutive_failures: int = 0
    backoff_until: float = 0.0
    total_failures: int = 0
    total_successes: int = 0


class MultiSourcePriceSource:
    """Price source merging observations from several providers.

    :ivar providers: Providers keyed by name, in query order.
    :ivar fetch_timeout: Per-provider timeout in seconds.
    :ivar base_backoff_seconds: Backoff after the first failure.
    :ivar max_backoff_seconds: Cap on exponential backoff.
    """

    DEFAULT_BASE_BACKOFF_SECONDS = 5.0
    DEFAULT_MAX_BACKOFF_SECONDS = 300.0

    def __init__(
        self,
        providers: list[BaseProvider],
        fetch_timeout: float = 10.0,
        base_backoff_seconds: float = DEFAULT_BASE_BACKOFF_SECONDS,
        max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS,
    ) -> None:
        """Initialize the price source.

        :param providers: Provider instances; names must be unique.
        :param fetch_timeout: Timeout applied to each provider call.
        :param base_backoff_seconds: Initial backoff duration.
        :param max_backoff_seconds: Maximum backoff duration.
        :raises ValueError: If no providers are given or names collide.
        """
        if not providers:
            raise ValueError("At least one provider must be specified")
        names = [p.name for p in providers]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate providers: {names}")
        if fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be positive")

        self.providers: dict[str, BaseProvider] = {p.name: p for p in providers}
        self.fetch_timeout = fetch_timeout
        self.base_backoff_seconds = base_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self._status: dict[str, ProviderStatus] = {n: ProviderStatus() for n in names}

    def record_failure(self, name: str) -> float:
        """Record a failure and apply exponential backoff.

        :returns: The backoff duration in seconds.
        """
        status = self._status.setdefault(name, ProviderStatus())
        status.consecutive_failures += 1
        status.total_failures += 1
        backoff = min(
            self.base_backoff_seconds * (2 ** (status.consecutive_failures - 1)),
            self.max_backoff_seconds,
        )
        status.backoff_until = time.time() + backoff
        return backoff

    def record_success(self, name: str) -> None:
        status = self._status.setdefault(name, ProviderStatus())
        status.consecutive_failures = 0
        status.backoff_until = 0.0
        status.total_successes += 1

    def get_active_providers(self) -> list[str]:
        """Names of providers not currently in backoff, in query order."""
        now = time.time()
        return [n for n in self.providers if now >= self._status[n].backoff_until]

    def get_provider_status(self, name: str) -> ProviderStatus | None:
        return self._status.get(name)

    async def fetch_prices(self, symbols: list[str], chain: str) -> list[PriceObservation]:
        """Fetch observations for ``symbols`` from every active provider.

        :param symbols: Stablecoin symbols.
        :param chain: Chain identifier.
        :returns: All observations, grouped by provider in query order.
        """
        active = self.get_active_providers()
        if not active:
            logger.warning("All price providers are in backoff")
            return []

        # Group symbols by provider based on support
        provider_symbols: dict[str, list[str]] = {}
        for name in active:
            supported = [s for s in symbols if self.providers[name].supports(s, chain)]
            if supported:
                provider_symbols[name] = supported
        if not provider_symbols:
            logger.debug(f"No active provider covers {symbols} on {chain}")
            return []

        results = await asyncio.gather(
            *(self._fetch_one(name, syms, chain) for name, syms in provider_symbols.items())
        )

        observations: list[PriceObservation] = []
        for name, provider_obs in zip(provider_symbols, results, strict=True):
            if provider_obs:
                self.record_success(name)
                observations.extend(provider_obs)
            else:
                backoff = self.record_failure(name)
                logger.debug(
                    f"[{name}] No prices for {provider_symbols[name]}, backoff {backoff:.1f}s"
                )

        logger.debug(
            f"Fetched {len(observations)} observations for {symbols} on {chain} "
            f"from {len(provider_symbols)} providers"
        )
        return observations

    async def _fetch_one(
        self, name: str, symbols: list[str], chain: str
    ) -> list[PriceObservation]:
        provider = self.providers[name]
        try:
            return await asyncio.wait_for(
                provider.get_prices(symbols, chain),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[{name}] Timeout fetching {symbols} on {chain}")
            return []
        except Exception as e:
            logger.warning(f"[{name}] Error fetching {symbols} on {chain}: {e}")
            return []

    async def is_available(self) -> bool:
        """True when any provider reports itself available."""
        checks = await asyncio.gather(
            *(p.is_available() for p in self.providers.values()),
            return_exceptions=True,
        )
        return any(result is True for result in checks)
