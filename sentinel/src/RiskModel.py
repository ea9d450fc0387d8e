"""RiskModel: Sub-scores, combined risk score, risk level and health status.

Each sub-score maps one raw signal onto a bounded 0-100 scale:

    - price deviation: 0% -> 0, ``max_deviation_percent`` (5%) -> 100
    - liquidity: tiered on total USD liquidity, 50 when unknown
    - volatility: coefficient of variation of observed prices, scaled
    - volume: tiered on summed 24h volume, 50 when unknown
    - collateral: crypto-collateralized assets only

Price deviation and volatility are "higher is worse"; liquidity, volume and
collateral are "higher is better" and are inverted when combined.

.. code-block:: python

    >>> model = RiskModel()
    >>> model.classify_status(deviation=0.1, score=15)
    <HealthStatus.HEALTHY: 'healthy'>
    >>> model.classify_status(deviation=2.5, score=15)
    <HealthStatus.DEPEGGED: 'depegged'>
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from statistics import fmean, pstdev
from typing import Callable

from .errors import ConfigurationError
from .PriceAggregator import AggregatedPrice, PriceObservation

CRYPTO_COLLATERALIZED = "crypto-collateralized"

# Fixed low/medium boundary of the risk level ladder.
RISK_LOW_CEILING = 20

# Combined score at or above which the asset counts as depegged.
DEPEGGED_SCORE = 90

NEUTRAL_SCORE = 50.0

# Stand-in until on-chain collateral ratios are read.
PLACEHOLDER_COLLATERAL_SCORE = 75.0

# (minimum USD, score), checked top-down.
LIQUIDITY_TIERS: tuple[tuple[float, float], ...] = (
    (100_000_000, 100),
    (50_000_000, 90),
    (10_000_000, 75),
    (5_000_000, 60),
    (1_000_000, 40),
)
LIQUIDITY_FLOOR_SCORE = 20.0

VOLUME_TIERS: tuple[tuple[float, float], ...] = (
    (1_000_000_000, 100),
    (500_000_000, 90),
    (100_000_000, 75),
    (50_000_000, 60),
    (10_000_000, 40),
)
VOLUME_FLOOR_SCORE = 20.0

WEIGHTS = {
    "price_deviation": 0.40,
    "liquidity": 0.25,
    "volatility": 0.20,
    "volume": 0.10,
    "collateral": 0.05,
}


class RiskLevel(str, Enum):
    """Coarse bucket of the combined risk score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class HealthStatus(str, Enum):
    """User-facing severity derived from deviation and risk score."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    DEPEGGED = "depegged"


@dataclass(frozen=True)
class RiskThresholds:
    """Threshold configuration for classification and alerts.

    :ivar depeg_warning: Deviation percent that starts the warning band.
    :ivar depeg_critical: Deviation percent treated as a depeg.
    :ivar risk_high: Score at or above which risk is high.
    :ivar risk_medium: Score at or above which risk is medium.
    """

    depeg_warning: float = 0.5
    depeg_critical: float = 2.0
    risk_high: float = 70
    risk_medium: float = 40

    def __post_init__(self) -> None:
        if self.depeg_warning <= 0:
            raise ConfigurationError("depeg_warning must be positive")
        if self.depeg_critical <= self.depeg_warning:
            raise ConfigurationError("depeg_critical must be greater than depeg_warning")
        if not 0 < self.risk_medium < self.risk_high <= 100:
            raise ConfigurationError(
                "risk thresholds must satisfy 0 < risk_medium < risk_high <= 100"
            )


@dataclass(frozen=True)
class LiquidityInfo:
    """DEX liquidity context for an asset on one chain.

    :ivar total_liquidity: Total pooled liquidity in USD.
    :ivar liquidity_by_dex: USD liquidity per venue.
    :ivar depth_buy: USD depth on the buy side.
    :ivar depth_sell: USD depth on the sell side.
    :ivar slippage_1pct: Slippage for a trade of 1% of depth.
    :ivar slippage_5pct: Slippage for a trade of 5% of depth.
    """

    total_liquidity: float
    liquidity_by_dex: dict[str, float] = field(default_factory=dict)
    depth_buy: float = 0.0
    depth_sell: float = 0.0
    slippage_1pct: float = 0.0
    slippage_5pct: float = 0.0


@dataclass(frozen=True)
class RiskMetrics:
    """Independent 0-100 sub-scores.

    :ivar price_deviation: Higher is worse.
    :ivar liquidity_score: Higher is better.
    :ivar volatility_score: Higher is worse.
    :ivar volume_score: Higher is better.
    :ivar collateral_score: Higher is better; only for crypto-collateralized assets.
    """

    price_deviation: float
    liquidity_score: float
    volatility_score: float
    volume_score: float
    collateral_score: float | None = None


def clamp(value: float, low: float, high: float) -> float:
    """Limit ``value`` to the closed interval [low, high]."""
    return min(max(value, low), high)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return math.floor(value + 0.5)


def _tier_score(
    amount: float, tiers: tuple[tuple[float, float], ...], floor: float
) -> float:
    for minimum, score in tiers:
        if amount >= minimum:
            return float(score)
    return floor


def tiered_liquidity_score(liquidity: LiquidityInfo | None) -> float:
    """Step function over total USD liquidity; neutral when unknown."""
    if liquidity is None:
        return NEUTRAL_SCORE
    return _tier_score(liquidity.total_liquidity, LIQUIDITY_TIERS, LIQUIDITY_FLOOR_SCORE)


def placeholder_collateral_score(aggregated: AggregatedPrice) -> float:
    """Neutral-leaning collateral score used until real collateral data exists."""
    return PLACEHOLDER_COLLATERAL_SCORE


class RiskModel:
    """Scores aggregated prices and classifies them.

    Liquidity and collateral scoring are pluggable so a real implementation
    can replace the placeholders without touching the combination logic.

    :ivar thresholds: Immutable threshold configuration.
    :ivar max_deviation_percent: Deviation mapped to a price-deviation score of 100.
    """

    def __init__(
        self,
        thresholds: RiskThresholds | None = None,
        max_deviation_percent: float = 5.0,
        liquidity_scorer: Callable[[LiquidityInfo | None], float] | None = None,
        collateral_scorer: Callable[[AggregatedPrice], float] | None = None,
    ) -> None:
        """Initialize the model.

        :param thresholds: Classification thresholds (defaults when omitted).
        :param max_deviation_percent: Deviation that saturates the price score.
        :param liquidity_scorer: Maps liquidity context to a 0-100 score.
        :param collateral_scorer: Maps the aggregate to a 0-100 collateral score.
        :raises ValueError: If max_deviation_percent is not positive.
        """
        if max_deviation_percent <= 0:
            raise ValueError("max_deviation_percent must be positive")

        self.thresholds = thresholds or RiskThresholds()
        self.max_deviation_percent = max_deviation_percent
        self.liquidity_scorer = liquidity_scorer or tiered_liquidity_score
        self.collateral_scorer = collateral_scorer or placeholder_collateral_score

    def score_metrics(
        self,
        aggregated: AggregatedPrice,
        liquidity: LiquidityInfo | None = None,
        kind: str | None = None,
    ) -> RiskMetrics:
        """Compute every sub-score for an aggregate.

        :param aggregated: Output of the price aggregator.
        :param liquidity: Optional liquidity context.
        :param kind: Asset kind; collateral is scored only for crypto-collateralized.
        :returns: RiskMetrics with each sub-score clamped to [0, 100].
        """
        collateral: float | None = None
        if kind == CRYPTO_COLLATERALIZED:
            collateral = clamp(self.collateral_scorer(aggregated), 0, 100)

        return RiskMetrics(
            price_deviation=self.price_deviation_score(aggregated.deviation),
            liquidity_score=clamp(self.liquidity_scorer(liquidity), 0, 100),
            volatility_score=self.volatility_score(aggregated.sources),
            volume_score=self.volume_score(aggregated.sources),
            collateral_score=collateral,
        )

    def price_deviation_score(self, deviation: float) -> float:
        return clamp(deviation / self.max_deviation_percent * 100, 0, 100)

    def volatility_score(self, observations: list[PriceObservation]) -> float:
        """Coefficient of variation (in percent) times 50, clamped."""
        if len(observations) < 2:
            return 0.0
        prices = [o.price for o in observations]
        mean = fmean(prices)
        if mean == 0:
            return 0.0
        cv = pstdev(prices) / mean * 100
        return clamp(cv * 50, 0, 100)

    def volume_score(self, observations: list[PriceObservation]) -> float:
        """Step function over summed 24h volume; neutral when nobody reports it."""
        volumes = [o.volume_24h for o in observations if o.volume_24h is not None]
        if not volumes:
            return NEUTRAL_SCORE
        return _tier_score(sum(volumes), VOLUME_TIERS, VOLUME_FLOOR_SCORE)

    def combine(self, metrics: RiskMetrics) -> int:
        """Weighted sum of sub-scores, rounded and clamped to [0, 100].

        An absent collateral score contributes nothing; the remaining
        weights are not renormalized.
        """
        score = (
            metrics.price_deviation * WEIGHTS["price_deviation"]
            + (100 - metrics.liquidity_score) * WEIGHTS["liquidity"]
            + metrics.volatility_score * WEIGHTS["volatility"]
            + (100 - metrics.volume_score) * WEIGHTS["volume"]
        )
        if metrics.collateral_score is not None:
            score += (100 - metrics.collateral_score) * WEIGHTS["collateral"]
        return int(clamp(round_half_up(score), 0, 100))

    def classify_level(self, score: float) -> RiskLevel:
        if score >= self.thresholds.risk_high:
            return RiskLevel.CRITICAL
        if score >= self.thresholds.risk_medium:
            return RiskLevel.HIGH
        if score >= RISK_LOW_CEILING:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def classify_status(self, deviation: float, score: float) -> HealthStatus:
        """Health status as a pure function of deviation and score.

        No history is consulted, so a value oscillating around a threshold
        flips status on every evaluation.
        """
        t = self.thresholds
        if deviation >= t.depeg_critical or score >= DEPEGGED_SCORE:
            return HealthStatus.DEPEGGED
        if deviation >= t.depeg_warning or score >= t.risk_high:
            return HealthStatus.CRITICAL
        if score >= t.risk_medium:
            return HealthStatus.WARNING
        return HealthStatus.HEALTHY

    def generate_alerts(
        self,
        symbol: str,
        deviation: float,
        score: float,
        metrics: RiskMetrics,
    ) -> list[str]:
        """Human-readable alerts, independent of the health status.

        :returns: Ordered alert strings; critical-severity ones start with
            ``CRITICAL:`` and warnings with ``WARNING:``.
        """
        t = self.thresholds
        alerts: list[str] = []

        if deviation >= t.depeg_critical:
            alerts.append(f"CRITICAL: {symbol} has depegged by {deviation:.2f}%")
        elif deviation >= t.depeg_warning:
            alerts.append(f"WARNING: {symbol} price deviation is {deviation:.2f}%")

        if metrics.price_deviation > 70:
            alerts.append("WARNING: High price deviation detected across sources")
        if metrics.liquidity_score < 30:
            alerts.append("WARNING: Low liquidity detected")
        if metrics.volatility_score > 70:
            alerts.append("WARNING: High volatility in recent prices")
        if metrics.volume_score < 30:
            alerts.append("WARNING: Low trading volume detected")
        if metrics.collateral_score is not None and metrics.collateral_score < 50:
            alerts.append("WARNING: Collateral ratio below safe threshold")

        if score >= t.risk_high and not alerts:
            alerts.append("WARNING: Overall risk score is elevated")

        return alerts
