"""Liquidity providers feeding the liquidity sub-score.

StaticLiquidityProvider stands in for a DEX liquidity reader until pool
reserves are read on-chain. NullLiquidityProvider reports no data, which
scores as neutral.
"""

from __future__ import annotations

from typing import Protocol

from ..RiskModel import LiquidityInfo


class LiquidityProvider(Protocol):
    """Source of liquidity context for an asset on a chain."""

    async def get_liquidity(self, symbol: str, chain: str) -> LiquidityInfo | None:
        ...


class StaticLiquidityProvider:
    """Returns the same fixed liquidity figures for every asset.

    :ivar liquidity: Figures returned for every request.
    """

    PLACEHOLDER = LiquidityInfo(
        total_liquidity=50_000_000,
        liquidity_by_dex={"Uniswap": 30_000_000, "Curve": 20_000_000},
        depth_buy=1_000_000,
        depth_sell=1_000_000,
        slippage_1pct=0.01,
        slippage_5pct=0.05,
    )

    def __init__(self, liquidity: LiquidityInfo | None = None) -> None:
        self.liquidity = liquidity or self.PLACEHOLDER

    async def get_liquidity(self, symbol: str, chain: str) -> LiquidityInfo | None:
        return self.liquidity


class NullLiquidityProvider:
    """Reports liquidity as unknown."""

    async def get_liquidity(self, symbol: str, chain: str) -> LiquidityInfo | None:
        return None
