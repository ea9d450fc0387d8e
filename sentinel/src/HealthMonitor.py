"""HealthMonitor: Orchestrates price fetching, risk scoring and events.

Per request:
    1. Reject unknown symbols before touching the cache or the network
    2. Return the cached report for (symbol, chain) if still fresh
    3. Fetch observations; none at all is a PriceDataError
    4. Aggregate, score, classify and build alerts, in that order
    5. Cache the report for report_ttl seconds
    6. Emit depeg / risk-change events

Scheduled monitoring runs one asyncio task per (symbol, chain). Each tick
calls get_health and logs failures; nothing propagates out of the task.

.. code-block:: python

    monitor = HealthMonitor.from_config(SentinelConfig.from_env())
    report = await monitor.get_health("USDT", "ethereum")
    monitor.events.subscribe(DEPEG_WARNING, print)
    monitor.start_monitoring("USDC", "ethereum", interval=60)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from .config import SentinelConfig
from .errors import PriceDataError, UnsupportedStablecoinError
from .EventSink import DEPEG_WARNING, RISK_CHANGE, DepegEvent, EventSink, RiskChangeEvent
from .FreshReadCache import FreshReadCache
from .HealthReport import HealthReport
from .PriceAggregator import PriceAggregator
from .PriceSource import MultiSourcePriceSource, PriceSource
from .providers import (
    BaseProvider,
    LiquidityProvider,
    StaticLiquidityProvider,
    get_provider,
)
from .RiskModel import HealthStatus, RiskModel
from .StablecoinRegistry import DEFAULT_REGISTRY, StablecoinMetadata, StablecoinRegistry

logger = logging.getLogger(__name__)

HEALTH_PREFIX = "health"
RISK_SCORE_PREFIX = "risk-score"
MONITOR_PREFIX = "monitor"

DEFAULT_CHAIN = "ethereum"


@dataclass
class MonitoringRegistration:
    """An active repeating health check.

    :ivar symbol: Canonical asset symbol.
    :ivar chain: Chain identifier.
    :ivar interval: Seconds between checks.
    :ivar task: The asyncio task running the checks.
    """

    symbol: str
    chain: str
    interval: float
    task: asyncio.Task


class HealthMonitor:
    """Produces health reports and drives scheduled monitoring.

    Thresholds live in the risk model and are fixed for the monitor's
    lifetime; build a new monitor to change them.

    :cvar REPORT_TTL: Default seconds a report stays fresh, regardless of cache default.
    :cvar SCORE_TTL: Default seconds the last risk score is remembered.
    :ivar source: Upstream price source.
    :ivar registry: Stablecoin registry used for validation and pegs.
    :ivar cache: Fresh-read cache for reports and last scores.
    :ivar risk_model: Scoring and classification model.
    :ivar liquidity_provider: Source of liquidity context.
    :ivar events: Sink receiving depeg and risk-change events.
    :ivar risk_change_threshold: Score change that triggers a risk-change event.
    :ivar report_ttl: Seconds a report stays fresh.
    :ivar score_ttl: Seconds the last risk score is remembered.
    """

    REPORT_TTL = 60.0
    SCORE_TTL = 3600.0

    def __init__(
        self,
        source: PriceSource,
        registry: StablecoinRegistry | None = None,
        cache: FreshReadCache | None = None,
        risk_model: RiskModel | None = None,
        aggregator: PriceAggregator | None = None,
        liquidity_provider: LiquidityProvider | None = None,
        events: EventSink | None = None,
        risk_change_threshold: float = 10.0,
        report_ttl: float = REPORT_TTL,
        score_ttl: float = SCORE_TTL,
    ) -> None:
        """Initialize the monitor.

        :param source: Price source collaborator.
        :param registry: Stablecoin registry (built-in table by default).
        :param cache: Cache instance (60s default TTL by default).
        :param risk_model: Risk model (default thresholds by default).
        :param aggregator: Price aggregator (uniform weights by default).
        :param liquidity_provider: Liquidity provider (static placeholder by default).
        :param events: Event sink (a fresh one by default).
        :param risk_change_threshold: Minimum score change for a risk-change event.
        :param report_ttl: Seconds a computed report is served from the cache.
        :param score_ttl: Seconds the last risk score is remembered.
        :raises ValueError: If risk_change_threshold or a TTL is not positive.
        """
        if risk_change_threshold <= 0:
            raise ValueError("risk_change_threshold must be positive")
        if report_ttl <= 0 or score_ttl <= 0:
            raise ValueError("report_ttl and score_ttl must be positive")

        self.source = source
        self.registry = registry or DEFAULT_REGISTRY
        self.cache = cache if cache is not None else FreshReadCache()
        self.risk_model = risk_model or RiskModel()
        self.aggregator = aggregator or PriceAggregator()
        self.liquidity_provider = liquidity_provider or StaticLiquidityProvider()
        self.events = events if events is not None else EventSink()
        self.risk_change_threshold = risk_change_threshold
        self.report_ttl = report_ttl
        self.score_ttl = score_ttl
        self._monitors: dict[str, MonitoringRegistration] = {}

    @classmethod
    def from_config(
        cls,
        config: SentinelConfig,
        sources: list[str] | None = None,
        events: EventSink | None = None,
    ) -> HealthMonitor:
        """Assemble a monitor and its providers from configuration.

        :param config: Runtime configuration.
        :param sources: Provider names to use (default: coingecko, chainlink).
        :param events: Event sink to publish to.
        :raises ValueError: If a provider name is unknown.
        """
        names = sources or ["coingecko", "chainlink"]
        providers: list[BaseProvider] = [
            get_provider(
                name,
                api_key=config.coingecko_api_key,
                is_pro=config.coingecko_is_pro,
                rpc_urls=config.rpc_urls,
                timeout=config.fetch_timeout,
            )
            for name in names
        ]
        logger.info(
            f"HealthMonitor configured: sources={names}, "
            f"cache={'on' if config.cache_enabled else 'off'} ttl={config.cache_ttl}s, "
            f"thresholds={config.thresholds}"
        )
        return cls(
            source=MultiSourcePriceSource(providers, fetch_timeout=config.fetch_timeout),
            cache=FreshReadCache(config.cache_ttl, config.cache_enabled),
            risk_model=RiskModel(config.thresholds),
            events=events,
            risk_change_threshold=config.risk_change_threshold,
        )

    def _resolve(self, symbol: str) -> StablecoinMetadata:
        meta = self.registry.lookup(symbol)
        if meta is None:
            raise UnsupportedStablecoinError(symbol)
        return meta

    async def get_health(self, symbol: str, chain: str = DEFAULT_CHAIN) -> HealthReport:
        """Get the health report for a stablecoin on a chain.

        :param symbol: Stablecoin symbol (case-insensitive).
        :param chain: Chain identifier.
        :returns: Cached or freshly computed HealthReport.
        :raises UnsupportedStablecoinError: If the symbol is not registered.
        :raises PriceDataError: If no prices were available or the computation failed.
        """
        meta = self._resolve(symbol)
        symbol = meta.symbol

        cache_key = FreshReadCache.generate_key(HEALTH_PREFIX, symbol, chain)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit for {symbol} on {chain}")
            return cached

        logger.debug(f"Fetching health data for {symbol} on {chain}")
        try:
            observations = await self.source.fetch_prices([symbol], chain)
            observations = [o for o in observations if not o.symbol or o.symbol == symbol]
            if not observations:
                raise PriceDataError(f"No price data available for {symbol}")

            aggregated = self.aggregator.aggregate(observations, meta.target_price)
            liquidity = await self.liquidity_provider.get_liquidity(symbol, chain)

            metrics = self.risk_model.score_metrics(aggregated, liquidity, meta.kind)
            score = self.risk_model.combine(metrics)
            level = self.risk_model.classify_level(score)
            status = self.risk_model.classify_status(aggregated.deviation, score)
            alerts = self.risk_model.generate_alerts(
                symbol, aggregated.deviation, score, metrics
            )

            report = HealthReport(
                symbol=symbol,
                chain=chain,
                timestamp=int(time.time()),
                price=aggregated.price,
                deviation=aggregated.deviation,
                risk_score=score,
                risk_level=level,
                status=status,
                metrics=metrics,
                liquidity=liquidity,
                alerts=tuple(alerts),
                sources=tuple(dict.fromkeys(o.source for o in observations)),
            )
            self.cache.set(cache_key, report, self.report_ttl)
        except PriceDataError as e:
            logger.warning(f"Health check failed for {symbol} on {chain}: {e}")
            raise
        except Exception as e:
            logger.exception(f"Failed to get health report for {symbol} on {chain}")
            raise PriceDataError(f"Failed to get health report for {symbol}", e) from e

        if aggregated.dropped:
            logger.info(
                f"{symbol}/{chain}: dropped outliers "
                f"{[(o.source, o.price) for o in aggregated.dropped]}"
            )
        logger.debug(
            f"Health report generated for {symbol} on {chain}: "
            f"price=${report.price:.6f}, risk={score}, status={status.value}"
        )

        self._emit_events(report)
        return report

    async def get_multiple_health(
        self, symbols: list[str], chain: str = DEFAULT_CHAIN
    ) -> list[HealthReport]:
        """Get reports for several symbols concurrently.

        Symbols that fail for any reason are left out of the result.

        :returns: Reports for the symbols that succeeded, in request order.
        """
        results = await asyncio.gather(
            *(self.get_health(symbol, chain) for symbol in symbols),
            return_exceptions=True,
        )
        reports: list[HealthReport] = []
        for symbol, result in zip(symbols, results, strict=True):
            if isinstance(result, HealthReport):
                reports.append(result)
            else:
                logger.debug(f"Skipping {symbol} on {chain}: {result!r}")
        return reports

    def _emit_events(self, report: HealthReport) -> None:
        if report.status in (HealthStatus.CRITICAL, HealthStatus.DEPEGGED):
            self.events.emit(
                DEPEG_WARNING,
                DepegEvent(
                    symbol=report.symbol,
                    chain=report.chain,
                    price=report.price,
                    deviation=report.deviation,
                    timestamp=report.timestamp,
                    severity="critical" if report.status is HealthStatus.DEPEGGED else "warning",
                ),
            )

        score_key = FreshReadCache.generate_key(RISK_SCORE_PREFIX, report.symbol, report.chain)
        previous = self.cache.get(score_key)
        if previous is not None and abs(previous - report.risk_score) >= self.risk_change_threshold:
            logger.info(
                f"{report.symbol}/{report.chain}: risk score {previous} -> {report.risk_score}"
            )
            self.events.emit(
                RISK_CHANGE,
                RiskChangeEvent(
                    symbol=report.symbol,
                    chain=report.chain,
                    old_risk_score=previous,
                    new_risk_score=report.risk_score,
                    timestamp=report.timestamp,
                ),
            )
        self.cache.set(score_key, report.risk_score, self.score_ttl)

    def start_monitoring(
        self, symbol: str, chain: str = DEFAULT_CHAIN, interval: float = 60.0
    ) -> None:
        """Check ``symbol`` immediately and then every ``interval`` seconds.

        Any existing registration for the same key is replaced. Must be called
        with a running event loop.

        :raises UnsupportedStablecoinError: If the symbol is not registered.
        :raises ValueError: If interval is not positive.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        meta = self._resolve(symbol)

        self.stop_monitoring(meta.symbol, chain)
        key = FreshReadCache.generate_key(MONITOR_PREFIX, meta.symbol, chain)
        task = asyncio.get_running_loop().create_task(
            self._monitor_loop(meta.symbol, chain, interval), name=key
        )
        self._monitors[key] = MonitoringRegistration(meta.symbol, chain, interval, task)
        logger.info(f"Starting monitoring for {meta.symbol} on {chain} (interval: {interval}s)")

    async def _monitor_loop(self, symbol: str, chain: str, interval: float) -> None:
        first = True
        while True:
            try:
                await self.get_health(symbol, chain)
            except Exception as e:
                what = "Initial health check" if first else "Monitoring check"
                logger.error(f"{what} failed for {symbol} on {chain}: {e}")
            first = False
            await asyncio.sleep(interval)

    def stop_monitoring(self, symbol: str, chain: str = DEFAULT_CHAIN) -> bool:
        """Cancel the registration for (symbol, chain).

        :returns: True if a registration was removed.
        """
        meta = self.registry.lookup(symbol)
        if meta is None:
            return False
        key = FreshReadCache.generate_key(MONITOR_PREFIX, meta.symbol, chain)
        registration = self._monitors.pop(key, None)
        if registration is None:
            return False
        registration.task.cancel()
        logger.info(f"Stopped monitoring for {registration.symbol} on {chain}")
        return True

    def stop_all_monitoring(self) -> None:
        for registration in self._monitors.values():
            registration.task.cancel()
        if self._monitors:
            logger.info(f"Stopped {len(self._monitors)} monitors")
        self._monitors.clear()

    def active_monitors(self) -> list[tuple[str, str]]:
        """(symbol, chain) pairs with an active registration."""
        return [(r.symbol, r.chain) for r in self._monitors.values()]

    def get_supported_stablecoins(self) -> list[str]:
        return self.registry.list_all()

    async def check_provider_availability(self) -> bool:
        return await self.source.is_available()

    def clear_cache(self) -> None:
        self.cache.clear()

    async def aclose(self) -> None:
        """Stop all monitoring and release the shared HTTP client."""
        self.stop_all_monitoring()
        await BaseProvider.close_shared_client()
