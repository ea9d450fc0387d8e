"""HealthReport: The unit of record produced for one asset on one chain.

Reports are immutable; a newer report for the same key replaces the old one
in the cache rather than mutating it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from .RiskModel import HealthStatus, LiquidityInfo, RiskLevel, RiskMetrics


@dataclass(frozen=True)
class HealthReport:
    """Health snapshot of a stablecoin.

    :ivar symbol: Canonical asset symbol.
    :ivar chain: Chain identifier.
    :ivar timestamp: Unix timestamp (seconds) when the report was built.
    :ivar price: Consensus price.
    :ivar deviation: Absolute percentage deviation from the peg.
    :ivar risk_score: Combined risk score in [0, 100].
    :ivar risk_level: Risk bucket of the score.
    :ivar status: Health status.
    :ivar metrics: Sub-scores behind the risk score.
    :ivar liquidity: Liquidity context, when known.
    :ivar alerts: Human-readable alerts, most severe first.
    :ivar sources: Names of the sources that contributed observations.
    """

    symbol: str
    chain: str
    timestamp: int
    price: float
    deviation: float
    risk_score: int
    risk_level: RiskLevel
    status: HealthStatus
    metrics: RiskMetrics
    liquidity: LiquidityInfo | None
    alerts: tuple[str, ...] = ()
    sources: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        data = asdict(self)
        data["risk_level"] = self.risk_level.value
        data["status"] = self.status.value
        data["alerts"] = list(self.alerts)
        data["sources"] = list(self.sources)
        return data
