#!/usr/bin/env python3
"""Stablecoin Sentinel.

Checks stablecoin peg health from multiple price sources, scores the risk
and reports depeg / risk-change events.

Run via ``python -m sentinel.main <command>``. Configuration comes from
environment variables; see sentinel/src/config.py.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime

from .src.config import SentinelConfig
from .src.errors import SentinelError
from .src.EventSink import DEPEG_WARNING, RISK_CHANGE, DepegEvent, RiskChangeEvent
from .src.HealthMonitor import DEFAULT_CHAIN, HealthMonitor
from .src.HealthReport import HealthReport
from .src.providers import get_available_providers
from .src.StablecoinRegistry import DEFAULT_REGISTRY, SUPPORTED_CHAINS

# Configure logging
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "WARNING").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

DEFAULT_MONITOR_SYMBOLS = ["USDT", "USDC", "DAI"]


def format_currency(value: float, decimals: int = 4) -> str:
    return f"${value:.{decimals}f}"


def format_percentage(value: float, decimals: int = 2) -> str:
    return f"{value:.{decimals}f}%"


def format_large_number(value: float) -> str:
    """Format USD amounts with K/M/B suffixes, e.g. ``$50.00M``."""
    if value >= 1e9:
        return f"${value / 1e9:.2f}B"
    if value >= 1e6:
        return f"${value / 1e6:.2f}M"
    if value >= 1e3:
        return f"${value / 1e3:.2f}K"
    return format_currency(value, 2)


def print_report(report: HealthReport, show_timestamp: bool = True) -> None:
    print(f"{report.symbol} Health Report")
    print("-" * 50)
    print(f"Status:      {report.status.value.upper()}")
    print(f"Price:       {format_currency(report.price)}")
    print(f"Deviation:   {format_percentage(report.deviation)}")
    print(f"Risk Score:  {report.risk_score}/100 ({report.risk_level.value})")
    print(f"Chain:       {report.chain}")
    print(f"Sources:     {', '.join(report.sources)}")
    if show_timestamp:
        print(f"Timestamp:   {datetime.fromtimestamp(report.timestamp):%Y-%m-%d %H:%M:%S}")
    if report.alerts:
        print()
        print("Alerts:")
        for alert in report.alerts:
            print(f"  {alert}")
    print()


def print_risk_breakdown(report: HealthReport) -> None:
    print_report(report)
    metrics = report.metrics
    print("Risk Metrics (0-100)")
    print("-" * 50)
    print(f"Price Deviation:  {metrics.price_deviation:6.1f}  (higher is worse)")
    print(f"Liquidity:        {metrics.liquidity_score:6.1f}  (higher is better)")
    print(f"Volatility:       {metrics.volatility_score:6.1f}  (higher is worse)")
    print(f"Volume:           {metrics.volume_score:6.1f}  (higher is better)")
    if metrics.collateral_score is not None:
        print(f"Collateral:       {metrics.collateral_score:6.1f}  (higher is better)")
    if report.liquidity is not None:
        liquidity = report.liquidity
        print()
        print(f"Total Liquidity:  {format_large_number(liquidity.total_liquidity)}")
        for dex, amount in liquidity.liquidity_by_dex.items():
            print(f"  {dex:<14}  {format_large_number(amount)}")
        print(
            f"Depth:            buy {format_large_number(liquidity.depth_buy)} / "
            f"sell {format_large_number(liquidity.depth_sell)}"
        )
    print()


def print_table(reports: list[HealthReport]) -> None:
    print(f"{'Symbol':<8} {'Price':>10} {'Deviation':>10} {'Risk':>5} {'Level':<9} {'Status':<9}")
    for r in reports:
        print(
            f"{r.symbol:<8} {format_currency(r.price):>10} "
            f"{format_percentage(r.deviation):>10} {r.risk_score:>5} "
            f"{r.risk_level.value:<9} {r.status.value:<9}"
        )
    print()


def print_json(reports: list[HealthReport]) -> None:
    payload = [r.to_dict() for r in reports]
    print(json.dumps(payload[0] if len(payload) == 1 else payload, indent=2))


def cmd_list(args: argparse.Namespace) -> int:
    print(f"{'Symbol':<8} {'Name':<18} {'Kind':<22} Chains")
    for symbol in DEFAULT_REGISTRY.list_all():
        meta = DEFAULT_REGISTRY.lookup(symbol)
        name = meta.name + (" (deprecated)" if meta.deprecated else "")
        print(f"{symbol:<8} {name:<18} {meta.kind:<22} {', '.join(meta.chains)}")
    return 0


async def cmd_check(args: argparse.Namespace, monitor: HealthMonitor) -> int:
    report = await monitor.get_health(args.symbol.upper(), args.chain)
    if args.json:
        print_json([report])
    elif args.command == "risk":
        print_risk_breakdown(report)
    else:
        print_report(report)
    return 0


async def cmd_monitor(args: argparse.Namespace, monitor: HealthMonitor) -> int:
    symbols = [s.upper() for s in args.symbols] or DEFAULT_MONITOR_SYMBOLS
    reports = await monitor.get_multiple_health(symbols, args.chain)
    if not reports:
        logger.error(f"No health data available for {', '.join(symbols)}")
        return 1
    if args.json:
        print_json(reports)
    else:
        print_table(reports)
    return 0


async def cmd_watch(args: argparse.Namespace, monitor: HealthMonitor) -> int:
    symbol = args.symbol.upper()

    def on_depeg(event: DepegEvent) -> None:
        print(
            f"[{event.severity.upper()}] {event.symbol} on {event.chain}: "
            f"{format_currency(event.price)} ({format_percentage(event.deviation)} off peg)"
        )

    def on_risk_change(event: RiskChangeEvent) -> None:
        print(
            f"[RISK] {event.symbol} on {event.chain}: "
            f"{event.old_risk_score} -> {event.new_risk_score}"
        )

    monitor.events.subscribe(DEPEG_WARNING, on_depeg)
    monitor.events.subscribe(RISK_CHANGE, on_risk_change)

    print(f"Watching {symbol} on {args.chain}, updates every {args.interval}s. Ctrl+C to stop.\n")
    while True:
        try:
            report = await monitor.get_health(symbol, args.chain)
            print(f"Last update: {datetime.now():%H:%M:%S}")
            print_report(report, show_timestamp=False)
        except SentinelError as e:
            if not monitor.registry.is_known(symbol):
                raise
            logger.error(str(e))
        await asyncio.sleep(args.interval)


async def run(args: argparse.Namespace, config: SentinelConfig) -> int:
    monitor = HealthMonitor.from_config(config, sources=args.sources)
    try:
        if args.command in ("check", "risk"):
            return await cmd_check(args, monitor)
        if args.command == "monitor":
            return await cmd_monitor(args, monitor)
        return await cmd_watch(args, monitor)
    finally:
        await monitor.aclose()


def build_parser() -> argparse.ArgumentParser:
    available_sources = get_available_providers()

    parser = argparse.ArgumentParser(
        prog="sentinel",
        description="Stablecoin Sentinel: peg health monitoring and risk scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available price sources:
  {', '.join(available_sources)}

Examples:
  python -m sentinel.main check USDT
  python -m sentinel.main risk DAI --chain polygon
  python -m sentinel.main monitor USDT USDC FRAX --json
  python -m sentinel.main watch USDC --interval 30

Environment variables:
  ETHEREUM_RPC_URL, BSC_RPC_URL, ..., COINGECKO_API_KEY, COINGECKO_IS_PRO,
  CACHE_ENABLED, CACHE_TTL, DEPEG_WARNING_THRESHOLD, DEPEG_CRITICAL_THRESHOLD,
  RISK_THRESHOLD_HIGH, RISK_THRESHOLD_MEDIUM, FETCH_TIMEOUT, SOURCES, LOG_LEVEL
""",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    parser.add_argument(
        "--sources",
        type=str,
        help=f"Comma-separated price sources. Available: {', '.join(available_sources)}",
        default=os.environ.get("SOURCES") or "coingecko,chainlink",
    )
    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Timeout for each price source in seconds (default: 10.0)",
        default=None,
    )

    chain_kwargs = dict(
        choices=SUPPORTED_CHAINS,
        default=DEFAULT_CHAIN,
        help=f"Blockchain network (default: {DEFAULT_CHAIN})",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Check health status of a stablecoin")
    check.add_argument("symbol")
    check.add_argument("-c", "--chain", **chain_kwargs)
    check.add_argument("--json", action="store_true", help="Print the report as JSON")

    risk = subparsers.add_parser("risk", help="Detailed risk report for a stablecoin")
    risk.add_argument("symbol")
    risk.add_argument("-c", "--chain", **chain_kwargs)
    risk.add_argument("--json", action="store_true", help="Print the report as JSON")

    monitor = subparsers.add_parser("monitor", help="Health table for several stablecoins")
    monitor.add_argument("symbols", nargs="*")
    monitor.add_argument("-c", "--chain", **chain_kwargs)
    monitor.add_argument("--json", action="store_true", help="Print the reports as JSON")

    subparsers.add_parser("list", help="List supported stablecoins")

    watch = subparsers.add_parser("watch", help="Re-check a stablecoin periodically")
    watch.add_argument("symbol")
    watch.add_argument("-c", "--chain", **chain_kwargs)
    watch.add_argument(
        "-i", "--interval",
        type=float,
        default=60.0,
        help="Seconds between updates (default: 60)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the Stablecoin Sentinel CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "list":
        return cmd_list(args)

    args.sources = [s.strip().lower() for s in args.sources.split(",") if s.strip()]
    if not args.sources:
        parser.error("At least one source must be specified")

    # Validate sources
    invalid_sources = [s for s in args.sources if s not in get_available_providers()]
    if invalid_sources:
        parser.error(
            f"Unknown sources: {invalid_sources}. "
            f"Available: {', '.join(get_available_providers())}"
        )
    if args.command == "watch" and args.interval <= 0:
        parser.error("--interval must be positive")

    try:
        config = SentinelConfig.from_env().with_overrides(fetch_timeout=args.fetch_timeout)
        return asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return 0
    except SentinelError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
