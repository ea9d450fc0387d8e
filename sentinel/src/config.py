"""Runtime configuration read from environment variables.

Configuration objects are immutable and passed explicitly; there is no
process-wide instance.

Environment variables:
    ETHEREUM_RPC_URL, BSC_RPC_URL, POLYGON_RPC_URL, ARBITRUM_RPC_URL,
    OPTIMISM_RPC_URL, AVALANCHE_RPC_URL, COINGECKO_API_KEY, COINGECKO_IS_PRO,
    CACHE_ENABLED, CACHE_TTL, DEPEG_WARNING_THRESHOLD, DEPEG_CRITICAL_THRESHOLD,
    RISK_THRESHOLD_HIGH, RISK_THRESHOLD_MEDIUM, FETCH_TIMEOUT
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Mapping

from .errors import ConfigurationError
from .RiskModel import RiskThresholds

logger = logging.getLogger(__name__)

DEFAULT_RPC_URLS: dict[str, str] = {
    "ethereum": "",
    "bsc": "https://bsc-dataseed.binance.org",
    "polygon": "https://polygon-rpc.com",
    "arbitrum": "https://arb1.arbitrum.io/rpc",
    "optimism": "https://mainnet.optimism.io",
    "avalanche": "https://api.avax.network/ext/bc/C/rpc",
}

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class SentinelConfig:
    """Settings needed to assemble a HealthMonitor.

    :ivar rpc_urls: JSON-RPC endpoint per chain (empty means unconfigured).
    :ivar coingecko_api_key: Optional CoinGecko key ("demo:" prefix for demo keys).
    :ivar coingecko_is_pro: Treat the CoinGecko key as a Pro key.
    :ivar cache_enabled: Whether the fresh-read cache stores anything.
    :ivar cache_ttl: Default cache TTL in seconds.
    :ivar thresholds: Depeg and risk thresholds.
    :ivar fetch_timeout: Per-provider fetch timeout in seconds.
    :ivar risk_change_threshold: Score change that triggers a risk-change event.
    """

    rpc_urls: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_RPC_URLS))
    coingecko_api_key: str | None = None
    coingecko_is_pro: bool = False
    cache_enabled: bool = True
    cache_ttl: float = 60.0
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)
    fetch_timeout: float = 10.0
    risk_change_threshold: float = 10.0

    def __post_init__(self) -> None:
        if self.cache_ttl < 0:
            raise ConfigurationError("cache_ttl must not be negative")
        if self.fetch_timeout <= 0:
            raise ConfigurationError("fetch_timeout must be positive")
        if self.risk_change_threshold <= 0:
            raise ConfigurationError("risk_change_threshold must be positive")
        if not any(self.rpc_urls.values()):
            logger.warning(
                "No RPC URLs configured; on-chain price feeds will be unavailable"
            )

    def get_rpc_url(self, chain: str) -> str:
        """Return the RPC URL for ``chain``.

        :raises ConfigurationError: If the chain has no URL configured.
        """
        url = self.rpc_urls.get(chain)
        if not url:
            raise ConfigurationError(f"No RPC URL configured for chain: {chain}")
        return url

    def with_overrides(self, **changes) -> SentinelConfig:
        """Copy of this config with ``changes`` applied (None values ignored)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SentinelConfig:
        """Build a config from environment variables.

        :param environ: Mapping to read instead of ``os.environ``.
        :raises ConfigurationError: If a value cannot be parsed or is out of range.
        """
        env = os.environ if environ is None else environ

        rpc_urls = {
            chain: env.get(f"{chain.upper()}_RPC_URL") or default
            for chain, default in DEFAULT_RPC_URLS.items()
        }
        thresholds = RiskThresholds(
            depeg_warning=_float(env, "DEPEG_WARNING_THRESHOLD", 0.5),
            depeg_critical=_float(env, "DEPEG_CRITICAL_THRESHOLD", 2.0),
            risk_high=_float(env, "RISK_THRESHOLD_HIGH", 70),
            risk_medium=_float(env, "RISK_THRESHOLD_MEDIUM", 40),
        )
        return cls(
            rpc_urls=rpc_urls,
            coingecko_api_key=env.get("COINGECKO_API_KEY") or None,
            coingecko_is_pro=_bool(env, "COINGECKO_IS_PRO", False),
            cache_enabled=_bool(env, "CACHE_ENABLED", True),
            cache_ttl=_float(env, "CACHE_TTL", 60.0),
            thresholds=thresholds,
            fetch_timeout=_float(env, "FETCH_TIMEOUT", 10.0),
        )


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if not raw:
        return default
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")
