"""Unit tests for SentinelConfig."""

import pytest

from sentinel.src.config import DEFAULT_RPC_URLS, SentinelConfig
from sentinel.src.errors import ConfigurationError


class TestFromEnv:
    """Test environment parsing."""

    def test_defaults(self) -> None:
        config = SentinelConfig.from_env({})

        assert config.rpc_urls == DEFAULT_RPC_URLS
        assert config.coingecko_api_key is None
        assert config.cache_enabled is True
        assert config.cache_ttl == 60.0
        assert config.fetch_timeout == 10.0
        assert config.thresholds.depeg_critical == 2.0

    def test_overrides(self) -> None:
        config = SentinelConfig.from_env(
            {
                "ETHEREUM_RPC_URL": "https://eth.example",
                "COINGECKO_API_KEY": "demo:abc",
                "COINGECKO_IS_PRO": "yes",
                "CACHE_ENABLED": "false",
                "CACHE_TTL": "120",
                "DEPEG_WARNING_THRESHOLD": "1",
                "DEPEG_CRITICAL_THRESHOLD": "3",
                "RISK_THRESHOLD_HIGH": "80",
                "RISK_THRESHOLD_MEDIUM": "50",
                "FETCH_TIMEOUT": "5",
            }
        )

        assert config.get_rpc_url("ethereum") == "https://eth.example"
        assert config.coingecko_api_key == "demo:abc"
        assert config.coingecko_is_pro is True
        assert config.cache_enabled is False
        assert config.cache_ttl == 120.0
        assert config.thresholds.depeg_warning == 1.0
        assert config.thresholds.risk_high == 80.0
        assert config.fetch_timeout == 5.0

    def test_bad_number(self) -> None:
        with pytest.raises(ConfigurationError, match="CACHE_TTL must be a number"):
            SentinelConfig.from_env({"CACHE_TTL": "soon"})

    def test_bad_bool(self) -> None:
        with pytest.raises(ConfigurationError, match="CACHE_ENABLED must be a boolean"):
            SentinelConfig.from_env({"CACHE_ENABLED": "maybe"})

    def test_inconsistent_thresholds(self) -> None:
        with pytest.raises(ConfigurationError):
            SentinelConfig.from_env(
                {"DEPEG_WARNING_THRESHOLD": "3", "DEPEG_CRITICAL_THRESHOLD": "1"}
            )


class TestValidation:
    """Test value checks and helpers."""

    def test_negative_ttl(self) -> None:
        with pytest.raises(ConfigurationError, match="cache_ttl"):
            SentinelConfig(cache_ttl=-1)

    def test_non_positive_timeout(self) -> None:
        with pytest.raises(ConfigurationError, match="fetch_timeout"):
            SentinelConfig(fetch_timeout=0)

    def test_missing_rpc_url(self) -> None:
        with pytest.raises(ConfigurationError, match="No RPC URL configured"):
            SentinelConfig().get_rpc_url("ethereum")

    def test_no_rpc_urls_warns(self, caplog) -> None:
        SentinelConfig(rpc_urls={"ethereum": ""})
        assert "No RPC URLs configured" in caplog.text

    def test_with_overrides_ignores_none(self) -> None:
        config = SentinelConfig().with_overrides(fetch_timeout=None, cache_ttl=5)
        assert config.fetch_timeout == 10.0
        assert config.cache_ttl == 5
