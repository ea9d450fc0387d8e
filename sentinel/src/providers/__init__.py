"""
Price and liquidity providers for stablecoin monitoring.

Usage:
    from sentinel.src.providers import get_provider, get_available_providers

    # Get list of available providers
    available = get_available_providers()
    # ['chainlink', 'coingecko']

    # Create a provider instance
    provider = get_provider("coingecko", api_key="demo:CG-xxxx")
    observations = await provider.get_prices(["USDT", "DAI"], "ethereum")

    # On-chain feeds need RPC URLs
    provider = get_provider("chainlink", rpc_urls={"ethereum": "https://..."})
"""

from .base import (
    PROVIDER_REGISTRY,
    BaseProvider,
    ProviderConfigError,
    ProviderError,
    ProviderHTTPError,
    get_available_providers,
    get_provider,
    register_provider,
)

# Import implementations to trigger registration
from .chainlink import ChainlinkProvider
from .coingecko import CoinGeckoProvider
from .liquidity import LiquidityProvider, NullLiquidityProvider, StaticLiquidityProvider

__all__ = [
    # Base classes
    "BaseProvider",
    "ProviderError",
    "ProviderConfigError",
    "ProviderHTTPError",
    # Registry functions
    "register_provider",
    "get_provider",
    "get_available_providers",
    "PROVIDER_REGISTRY",
    # Price providers
    "ChainlinkProvider",
    "CoinGeckoProvider",
    # Liquidity providers
    "LiquidityProvider",
    "NullLiquidityProvider",
    "StaticLiquidityProvider",
]
