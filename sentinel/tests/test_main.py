"""Tests for the command line entry point."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from sentinel.main import format_currency, format_large_number, format_percentage, main
from sentinel.src.errors import PriceDataError
from sentinel.src.EventSink import DEPEG_WARNING, RISK_CHANGE, DepegEvent, RiskChangeEvent
from sentinel.src.HealthReport import HealthReport
from sentinel.src.providers import StaticLiquidityProvider
from sentinel.src.RiskModel import HealthStatus, RiskLevel, RiskMetrics


class TestFormatting:
    """Test output helpers."""

    def test_currency(self) -> None:
        assert format_currency(0.99871) == "$0.9987"
        assert format_currency(12.5, 2) == "$12.50"

    def test_percentage(self) -> None:
        assert format_percentage(5) == "5.00%"

    @pytest.mark.parametrize(
        "value,expected",
        [
            (2_500_000_000, "$2.50B"),
            (50_000_000, "$50.00M"),
            (1_500, "$1.50K"),
            (12, "$12.00"),
        ],
    )
    def test_large_number(self, value, expected) -> None:
        assert format_large_number(value) == expected


class TestCommands:
    """Test argument handling and exit codes."""

    def test_list(self, capsys) -> None:
        assert main(["list"]) == 0
        out = capsys.readouterr().out
        assert "USDT" in out
        assert "Binance USD (deprecated)" in out

    def test_unknown_source(self) -> None:
        with pytest.raises(SystemExit):
            main(["--sources", "binance", "check", "USDT"])

    def test_unknown_chain(self) -> None:
        with pytest.raises(SystemExit):
            main(["check", "USDT", "--chain", "solana"])

    def test_unsupported_symbol_exit_code(self, capsys) -> None:
        assert main(["check", "FAKE"]) == 1
        assert "Stablecoin FAKE is not supported" in capsys.readouterr().err

    def test_price_error_exit_code(self, capsys) -> None:
        with patch(
            "sentinel.main.HealthMonitor.get_health",
            new=AsyncMock(side_effect=PriceDataError("No price data available for USDT")),
        ):
            assert main(["--sources", "coingecko", "check", "USDT"]) == 1
        assert "No price data available" in capsys.readouterr().err


def make_report(symbol: str = "DAI", price: float = 0.95) -> HealthReport:
    return HealthReport(
        symbol=symbol,
        chain="ethereum",
        timestamp=1_700_000_000,
        price=price,
        deviation=abs(price - 1) * 100,
        risk_score=48,
        risk_level=RiskLevel.HIGH,
        status=HealthStatus.DEPEGGED,
        metrics=RiskMetrics(
            price_deviation=100,
            liquidity_score=90,
            volatility_score=0,
            volume_score=50,
            collateral_score=75,
        ),
        liquidity=StaticLiquidityProvider.PLACEHOLDER,
        alerts=(f"CRITICAL: {symbol} has depegged by 5.00%",),
        sources=("coingecko", "chainlink"),
    )


class TestReports:
    """Test the report-printing commands."""

    def test_check(self, capsys) -> None:
        with patch(
            "sentinel.main.HealthMonitor.get_health",
            new=AsyncMock(return_value=make_report()),
        ) as get_health:
            assert main(["check", "dai", "--chain", "polygon"]) == 0

        get_health.assert_awaited_once_with("DAI", "polygon")
        out = capsys.readouterr().out
        assert "DAI Health Report" in out
        assert "Status:      DEPEGGED" in out
        assert "Price:       $0.9500" in out
        assert "Risk Score:  48/100 (high)" in out
        assert "Sources:     coingecko, chainlink" in out
        assert "CRITICAL: DAI has depegged by 5.00%" in out
        assert "Risk Metrics" not in out

    def test_risk_breakdown(self, capsys) -> None:
        with patch(
            "sentinel.main.HealthMonitor.get_health",
            new=AsyncMock(return_value=make_report()),
        ):
            assert main(["risk", "DAI"]) == 0

        out = capsys.readouterr().out
        assert "Risk Metrics (0-100)" in out
        assert "Price Deviation:   100.0" in out
        assert "Collateral:         75.0" in out
        assert "Total Liquidity:  $50.00M" in out
        assert "Uniswap" in out
        assert "Depth:            buy $1.00M / sell $1.00M" in out

    def test_check_json_is_single_object(self, capsys) -> None:
        with patch(
            "sentinel.main.HealthMonitor.get_health",
            new=AsyncMock(return_value=make_report()),
        ):
            assert main(["check", "DAI", "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["symbol"] == "DAI"
        assert data["status"] == "depegged"
        assert data["metrics"]["collateral_score"] == 75

    def test_monitor_table(self, capsys) -> None:
        reports = [make_report("USDT", 0.95), make_report("USDC", 0.95)]
        with patch(
            "sentinel.main.HealthMonitor.get_multiple_health",
            new=AsyncMock(return_value=reports),
        ) as get_multiple:
            assert main(["monitor"]) == 0

        get_multiple.assert_awaited_once_with(["USDT", "USDC", "DAI"], "ethereum")
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("Symbol")
        assert lines[1].startswith("USDT")
        assert "depegged" in lines[2]

    def test_monitor_json_is_list(self, capsys) -> None:
        reports = [make_report("USDT"), make_report("FRAX")]
        with patch(
            "sentinel.main.HealthMonitor.get_multiple_health",
            new=AsyncMock(return_value=reports),
        ):
            assert main(["monitor", "usdt", "frax", "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert [d["symbol"] for d in data] == ["USDT", "FRAX"]

    def test_monitor_nothing_available(self) -> None:
        with patch(
            "sentinel.main.HealthMonitor.get_multiple_health",
            new=AsyncMock(return_value=[]),
        ):
            assert main(["monitor", "USDT"]) == 1


class TestWatch:
    """Test the repeating watch command."""

    def test_prints_report_and_events(self, capsys) -> None:
        report = make_report()

        async def get_health(self, symbol, chain):
            self.events.emit(
                DEPEG_WARNING,
                DepegEvent(symbol, chain, report.price, report.deviation, report.timestamp, "critical"),
            )
            self.events.emit(RISK_CHANGE, RiskChangeEvent(symbol, chain, 16, 48, report.timestamp))
            return report

        with patch("sentinel.main.HealthMonitor.get_health", new=get_health), patch(
            "sentinel.main.asyncio.sleep", new=AsyncMock(side_effect=KeyboardInterrupt)
        ) as sleep:
            assert main(["watch", "DAI", "--interval", "5"]) == 0

        sleep.assert_awaited_once_with(5.0)
        out = capsys.readouterr().out
        assert "Watching DAI on ethereum" in out
        assert "[CRITICAL] DAI on ethereum: $0.9500 (5.00% off peg)" in out
        assert "[RISK] DAI on ethereum: 16 -> 48" in out
        assert "Last update:" in out
        assert "DAI Health Report" in out

    def test_price_errors_keep_watching(self, capsys) -> None:
        with patch(
            "sentinel.main.HealthMonitor.get_health",
            new=AsyncMock(side_effect=PriceDataError("No price data available for DAI")),
        ), patch(
            "sentinel.main.asyncio.sleep", new=AsyncMock(side_effect=KeyboardInterrupt)
        ) as sleep:
            assert main(["watch", "DAI"]) == 0

        sleep.assert_awaited_once()

    def test_invalid_interval(self) -> None:
        with pytest.raises(SystemExit):
            main(["watch", "DAI", "--interval", "0"])
