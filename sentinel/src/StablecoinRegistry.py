"""StablecoinRegistry: Static metadata for supported stablecoins.

Symbols are matched case-insensitively. Token addresses are validated as
EVM addresses when a registry is built.

.. code-block:: python

    >>> get_stablecoin("usdt").name
    'Tether USD'
    >>> get_address("DAI", "polygon")
    '0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063'
    >>> is_supported("FAKE")
    False
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from web3 import Web3

from .errors import ConfigurationError

SUPPORTED_CHAINS = ("ethereum", "bsc", "polygon", "arbitrum", "optimism", "avalanche")

FIAT_BACKED = "fiat-backed"
CRYPTO_COLLATERALIZED = "crypto-collateralized"
ALGORITHMIC = "algorithmic"

STABLECOIN_KINDS = (FIAT_BACKED, CRYPTO_COLLATERALIZED, ALGORITHMIC)


@dataclass(frozen=True)
class StablecoinMetadata:
    """Static description of one stablecoin.

    :ivar symbol: Canonical upper-case ticker.
    :ivar name: Human-readable name.
    :ivar kind: One of STABLECOIN_KINDS.
    :ivar peg_currency: Currency the asset tracks.
    :ivar target_price: Peg value in the peg currency.
    :ivar decimals: Token decimals.
    :ivar addresses: Token contract address per chain.
    :ivar coingecko_id: CoinGecko API identifier.
    :ivar website: Project website.
    :ivar deprecated: True when the asset is being wound down.
    """

    symbol: str
    name: str
    kind: str
    peg_currency: str = "USD"
    target_price: float = 1.0
    decimals: int = 18
    addresses: dict[str, str] = field(default_factory=dict)
    coingecko_id: str | None = None
    website: str | None = None
    deprecated: bool = False

    @property
    def chains(self) -> list[str]:
        return list(self.addresses)


STABLECOINS: dict[str, StablecoinMetadata] = {
    "USDT": StablecoinMetadata(
        symbol="USDT",
        name="Tether USD",
        kind=FIAT_BACKED,
        decimals=6,
        coingecko_id="tether",
        addresses={
            "ethereum": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
            "bsc": "0x55d398326f99059fF775485246999027B3197955",
            "polygon": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
            "arbitrum": "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
            "optimism": "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58",
            "avalanche": "0x9702230A8Ea53601f5cD2dc00fDBc13d4dF4A8c7",
        },
    ),
    "USDC": StablecoinMetadata(
        symbol="USDC",
        name="USD Coin",
        kind=FIAT_BACKED,
        decimals=6,
        coingecko_id="usd-coin",
        addresses={
            "ethereum": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            "bsc": "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d",
            "polygon": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
            "arbitrum": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
            "optimism": "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
            "avalanche": "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
        },
    ),
    "DAI": StablecoinMetadata(
        symbol="DAI",
        name="Dai Stablecoin",
        kind=CRYPTO_COLLATERALIZED,
        coingecko_id="dai",
        addresses={
            "ethereum": "0x6B175474E89094C44Da98b954EedeAC495271d0F",
            "bsc": "0x1AF3F329e8BE154074D8769D1FFa4eE058B1DBc3",
            "polygon": "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063",
            "arbitrum": "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
            "optimism": "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
            "avalanche": "0xd586E7F844cEa2F87f50152665BCbc2C279D8d70",
        },
    ),
    "BUSD": StablecoinMetadata(
        symbol="BUSD",
        name="Binance USD",
        kind=FIAT_BACKED,
        coingecko_id="binance-usd",
        deprecated=True,
        addresses={
            "ethereum": "0x4Fabb145d64652a948d72533023f6E7A623C7C53",
            "bsc": "0xe9e7CEA3DedcA5984780Bafc599bD69ADd087D56",
        },
    ),
    "FRAX": StablecoinMetadata(
        symbol="FRAX",
        name="Frax",
        kind=CRYPTO_COLLATERALIZED,
        coingecko_id="frax",
        addresses={
            "ethereum": "0x853d955aCEf822Db058eb8505911ED77F175b99e",
            "bsc": "0x90C97F71E18723b0Cf0dfa30ee176Ab653E89F40",
            "polygon": "0x45c32fA6DF82ead1e2EF74d17b76547EDdFaFF89",
            "arbitrum": "0x17FC002b466eEc40DaE837Fc4bE5c67993ddBd6F",
            "optimism": "0x2E3D870790dC77A83DD1d18184Acc7439A53f475",
            "avalanche": "0xD24C2Ad096400B6FBcd2ad8B24E7acBc21A1da64",
        },
    ),
    "LUSD": StablecoinMetadata(
        symbol="LUSD",
        name="Liquity USD",
        kind=CRYPTO_COLLATERALIZED,
        coingecko_id="liquity-usd",
        addresses={
            "ethereum": "0x5f98805A4E8be255a32880FDeC7F6728C6568bA0",
            "arbitrum": "0x93b346b6BC2548dA6A1E7d98E9a421B42541425b",
            "optimism": "0xc40F949F8a4e094D1b49a23ea9241D289B7b2819",
        },
    ),
    "TUSD": StablecoinMetadata(
        symbol="TUSD",
        name="TrueUSD",
        kind=FIAT_BACKED,
        coingecko_id="true-usd",
        addresses={
            "ethereum": "0x0000000000085d4780B73119b644AE5ecd22b376",
            "bsc": "0x40af3827F39D0EAcBF4A168f8D4ee67c121D11c9",
            "polygon": "0x2e1AD108fF1D8C782fcBbB89AAd783aC49586756",
        },
    ),
    "USDP": StablecoinMetadata(
        symbol="USDP",
        name="Pax Dollar",
        kind=FIAT_BACKED,
        coingecko_id="paxos-standard",
        addresses={
            "ethereum": "0x8E870D67F660D95d5be530380D0eC0bd388289E1",
        },
    ),
    "USDD": StablecoinMetadata(
        symbol="USDD",
        name="USDD",
        kind=ALGORITHMIC,
        coingecko_id="usdd",
        addresses={
            "ethereum": "0x0C10bF8FcB7Bf5412187A595ab97a3609160b5c6",
            "bsc": "0xd17479997F34dd9156Deef8F95A52D81D265be9c",
        },
    ),
}


class StablecoinRegistry:
    """Read-only lookup over a mapping of stablecoin metadata.

    :ivar entries: Metadata keyed by upper-case symbol.
    """

    def __init__(self, entries: Mapping[str, StablecoinMetadata] | None = None) -> None:
        """Build a registry, validating every entry.

        :param entries: Metadata keyed by symbol; the built-in table when omitted.
        :raises ConfigurationError: If an entry has an unknown kind or chain,
            a non-positive target price, or an invalid address.
        """
        source = STABLECOINS if entries is None else entries
        self.entries: dict[str, StablecoinMetadata] = {}
        for symbol, meta in source.items():
            self._validate(meta)
            self.entries[symbol.upper()] = meta

    @staticmethod
    def _validate(meta: StablecoinMetadata) -> None:
        if meta.kind not in STABLECOIN_KINDS:
            raise ConfigurationError(f"{meta.symbol}: unknown kind '{meta.kind}'")
        if meta.target_price <= 0:
            raise ConfigurationError(f"{meta.symbol}: target_price must be positive")
        for chain, address in meta.addresses.items():
            if chain not in SUPPORTED_CHAINS:
                raise ConfigurationError(f"{meta.symbol}: unknown chain '{chain}'")
            try:
                Web3.to_checksum_address(address)
            except (ValueError, TypeError) as e:
                raise ConfigurationError(
                    f"{meta.symbol}: invalid address on {chain}: {address}"
                ) from e

    def lookup(self, symbol: str) -> StablecoinMetadata | None:
        return self.entries.get(symbol.upper())

    def is_known(self, symbol: str) -> bool:
        return symbol.upper() in self.entries

    def list_all(self) -> list[str]:
        return list(self.entries)

    def by_kind(self, kind: str) -> list[StablecoinMetadata]:
        return [meta for meta in self.entries.values() if meta.kind == kind]

    def address(self, symbol: str, chain: str) -> str | None:
        meta = self.lookup(symbol)
        if meta is None:
            return None
        return meta.addresses.get(chain)


DEFAULT_REGISTRY = StablecoinRegistry()


def get_stablecoin(symbol: str) -> StablecoinMetadata | None:
    return DEFAULT_REGISTRY.lookup(symbol)


def is_supported(symbol: str) -> bool:
    return DEFAULT_REGISTRY.is_known(symbol)


def get_all_stablecoins() -> list[str]:
    return DEFAULT_REGISTRY.list_all()


def get_stablecoins_by_kind(kind: str) -> list[StablecoinMetadata]:
    return DEFAULT_REGISTRY.by_kind(kind)


def get_address(symbol: str, chain: str) -> str | None:
    return DEFAULT_REGISTRY.address(symbol, chain)
