"""Chainlink provider: on-chain price feeds via AggregatorV3Interface.

Reads ``latestRoundData()`` and ``decimals()`` from the USD feed of each
stablecoin on the requested chain. Web3 calls are blocking and run in a
worker thread.
"""

import asyncio
import logging
import time
from typing import Any

from web3 import Web3

from ..PriceAggregator import PriceObservation
from .base import BaseProvider, ProviderConfigError, register_provider

logger = logging.getLogger(__name__)

AGGREGATOR_V3_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "latestRoundData",
        "outputs": [
            {"internalType": "uint80", "name": "roundId", "type": "uint80"},
            {"internalType": "int256", "name": "answer", "type": "int256"},
            {"internalType": "uint256", "name": "startedAt", "type": "uint256"},
            {"internalType": "uint256", "name": "updatedAt", "type": "uint256"},
            {"internalType": "uint80", "name": "answeredInRound", "type": "uint80"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

# USD feed addresses per symbol and chain.
PRICE_FEEDS: dict[str, dict[str, str]] = {
    "USDT": {
        "ethereum": "0x3E7d1eAB13ad0104d22bbE6254F419e6c8F46B9e",
        "bsc": "0xB97Ad0E74fa7d920791E90258A6E2085088b4320",
        "polygon": "0x0A6513e40db6EB1b165753AD52E80663aeA50545",
        "arbitrum": "0x3f3f5dF88dC9F13eac63DF89EC16ef6e7E25DdE7",
    },
    "USDC": {
        "ethereum": "0x8fFfFfd4AfB6115b954Bd326cbe7B4BA576818f6",
        "bsc": "0x51597f405303C4377E36123cBc172b13269EA163",
        "polygon": "0xfE4A8cc5b5B2366C1B58Bea3858e81843581b2F7",
        "arbitrum": "0x50834F3163758fcC1Df9973b6e91f0F0F0434aD3",
    },
    "DAI": {
        "ethereum": "0xAed0c38402a5d19df6E4c03F4E2DceD6e29c1ee9",
        "polygon": "0x4746DeC9e833A82EC7C2C1356372CcF2cfcD2F3D",
        "arbitrum": "0xc5C8E77B397E531B8EC06BFb0048328B30E9eCfB",
    },
}


@register_provider
class ChainlinkProvider(BaseProvider):
    """Provider reading Chainlink USD feeds over JSON-RPC.

    :cvar DEFAULT_MAX_AGE: Rounds older than this many seconds are ignored.
    :ivar rpc_urls: JSON-RPC endpoint per chain.
    :ivar max_age: Staleness limit in seconds.
    """

    name = "chainlink"

    DEFAULT_MAX_AGE = 24 * 60 * 60

    def __init__(
        self,
        rpc_urls: dict[str, str] | None = None,
        max_age: float = DEFAULT_MAX_AGE,
        timeout: float | None = None,
        feeds: dict[str, dict[str, str]] | None = None,
        **kwargs: Any,
    ):
        """Initialize the provider.

        :param rpc_urls: Mapping of chain name to RPC URL; empty URLs are dropped.
        :param max_age: Maximum accepted age of a feed round in seconds.
        :param timeout: RPC request timeout in seconds.
        :param feeds: Feed address table override.
        """
        super().__init__(timeout=timeout)
        self.rpc_urls = {c: u for c, u in (rpc_urls or {}).items() if u}
        self.max_age = max_age
        self.feeds = PRICE_FEEDS if feeds is None else feeds
        self._web3: dict[str, Web3] = {}

    def _w3(self, chain: str) -> Web3:
        """Get (and memoize) the Web3 connection for ``chain``.

        :raises ProviderConfigError: If no RPC URL is configured for the chain.
        """
        if chain not in self._web3:
            url = self.rpc_urls.get(chain)
            if not url:
                raise ProviderConfigError(f"No RPC URL configured for chain: {chain}")
            self._web3[chain] = Web3(
                Web3.HTTPProvider(url, request_kwargs={"timeout": self.timeout})
            )
        return self._web3[chain]

    def _read_feed(self, chain: str, address: str) -> tuple[float, int]:
        """Read one feed; returns (price, updated_at)."""
        contract = self._w3(chain).eth.contract(
            address=Web3.to_checksum_address(address), abi=AGGREGATOR_V3_ABI
        )
        decimals = contract.functions.decimals().call()
        _, answer, _, updated_at, _ = contract.functions.latestRoundData().call()
        return answer / (10 ** decimals), updated_at

    async def get_prices(self, symbols: list[str], chain: str) -> list[PriceObservation]:
        """Read the feed of each symbol that has one on ``chain``.

        :param symbols: Stablecoin symbols.
        :param chain: Chain identifier.
        :returns: Observations for fresh, positive feed answers.
        """
        if chain not in self.rpc_urls:
            logger.debug(f"[chainlink] No RPC URL for {chain}, skipping")
            return []

        observations: list[PriceObservation] = []
        for symbol in symbols:
            address = self.feeds.get(symbol.upper(), {}).get(chain)
            if not address:
                continue
            try:
                price, updated_at = await asyncio.to_thread(self._read_feed, chain, address)
            except Exception as e:
                logger.warning(f"[chainlink] Failed to read {symbol} feed on {chain}: {e}")
                continue

            if price <= 0:
                logger.warning(f"[chainlink] Non-positive answer for {symbol} on {chain}")
                continue
            age = time.time() - updated_at
            if age > self.max_age:
                logger.warning(
                    f"[chainlink] Stale {symbol} feed on {chain} ({age:.0f}s old)"
                )
                continue

            observations.append(
                PriceObservation(
                    price=price,
                    source=self.name,
                    timestamp=float(updated_at),
                    symbol=symbol.upper(),
                )
            )
        return observations

    async def is_available(self) -> bool:
        return bool(self.rpc_urls)

    def supports(self, symbol: str, chain: str) -> bool:
        """Covered when the symbol has a feed on ``chain`` and the chain has an RPC URL."""
        return chain in self.rpc_urls and chain in self.feeds.get(symbol.upper(), {})
