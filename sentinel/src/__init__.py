"""
Stablecoin Sentinel - Peg Health Monitoring Module

This module provides price aggregation and risk scoring for stablecoins:
- PriceAggregator: Consensus price with IQR outlier rejection
- RiskModel: Sub-scores, combined risk score, risk level and health status
- FreshReadCache: Thread-safe TTL cache for reports
- HealthMonitor: Main orchestrator for health checks and scheduled monitoring
- EventSink: Callback registry for depeg and risk-change events
- providers: Modular price and liquidity provider implementations
"""

from .config import SentinelConfig
from .errors import (
    ConfigurationError,
    PriceDataError,
    SentinelError,
    UnsupportedStablecoinError,
)
from .EventSink import DEPEG_WARNING, RISK_CHANGE, DepegEvent, EventSink, RiskChangeEvent
from .FreshReadCache import FreshReadCache
from .HealthMonitor import HealthMonitor
from .HealthReport import HealthReport
from .PriceAggregator import AggregatedPrice, PriceAggregator, PriceObservation
from .PriceSource import MultiSourcePriceSource, PriceSource
from .RiskModel import HealthStatus, LiquidityInfo, RiskLevel, RiskMetrics, RiskModel, RiskThresholds
from .StablecoinRegistry import StablecoinMetadata, StablecoinRegistry

__all__ = [
    "AggregatedPrice",
    "ConfigurationError",
    "DEPEG_WARNING",
    "DepegEvent",
    "EventSink",
    "FreshReadCache",
    "HealthMonitor",
    "HealthReport",
    "HealthStatus",
    "LiquidityInfo",
    "MultiSourcePriceSource",
    "PriceAggregator",
    "PriceDataError",
    "PriceObservation",
    "PriceSource",
    "RISK_CHANGE",
    "RiskChangeEvent",
    "RiskLevel",
    "RiskMetrics",
    "RiskModel",
    "RiskThresholds",
    "SentinelConfig",
    "SentinelError",
    "StablecoinMetadata",
    "StablecoinRegistry",
    "UnsupportedStablecoinError",
]
