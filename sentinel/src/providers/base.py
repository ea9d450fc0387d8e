"""Base price provider interface and shared HTTP client management.

Every provider returns a list of PriceObservation for the symbols it can
price; symbols it cannot price are simply absent from the result. A shared
httpx.AsyncClient is reused by all HTTP-based providers.

.. code-block:: python

    @register_provider
    class MyProvider(BaseProvider):
        name = "myprovider"

        async def get_prices(
            self, symbols: list[str], chain: str
        ) -> list[PriceObservation]:
            response = await self._get("https://api.example.com/prices")
            ...

        async def is_available(self) -> bool:
            return True
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx

from ..PriceAggregator import PriceObservation

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Base exception for provider errors."""

    pass


class ProviderConfigError(ProviderError):
    """Raised when provider configuration is invalid (e.g., missing RPC URL)."""

    pass


class ProviderHTTPError(ProviderError):
    """Raised when an HTTP request returns a non-2xx status.

    :ivar status_code: HTTP status code from the failed request.
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


class BaseProvider(ABC):
    """Abstract base class for price providers.

    Subclasses must implement:
        - name: Class variable identifying the provider
        - get_prices(): Async method returning observations for symbols
        - is_available(): Async health probe

    Subclasses may override supports() to restrict coverage.

    :cvar name: Unique identifier for this provider.
    :cvar DEFAULT_TIMEOUT: Default HTTP request timeout in seconds.
    :ivar timeout: Request timeout in seconds.
    """

    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    name: ClassVar[str] = ""

    DEFAULT_TIMEOUT = 10.0

    def __init__(self, timeout: float | None = None, **kwargs: Any):
        """Initialize the provider.

        :param timeout: Request timeout in seconds (default: 10).
        :param kwargs: Options meant for other providers; ignored here.
        """
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        :returns: Shared httpx.AsyncClient instance.
        """
        if BaseProvider._shared_client is None or BaseProvider._shared_client.is_closed:
            BaseProvider._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
                follow_redirects=True,
            )
        return BaseProvider._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        client = BaseProvider._shared_client
        if client is not None and not client.is_closed:
            await client.aclose()
        BaseProvider._shared_client = None

    @abstractmethod
    async def get_prices(self, symbols: list[str], chain: str) -> list[PriceObservation]:
        """Fetch current prices.

        :param symbols: Upper-case stablecoin symbols.
        :param chain: Chain identifier (e.g., "ethereum").
        :returns: Observations for the symbols this provider could price.
        """
        pass

    @abstractmethod
    async def is_available(self) -> bool:
        """Report whether the provider can currently serve requests."""
        pass

    def supports(self, symbol: str, chain: str) -> bool:
        """Check if this provider can price ``symbol`` on ``chain``.

        Override in subclasses to restrict coverage. Symbols a provider does
        not cover are never requested from it.

        :param symbol: Stablecoin symbol.
        :param chain: Chain identifier.
        :returns: True if the symbol is covered.
        """
        return True

    async def _get(
        self,
        url: str,
        *,
        params: dict | None = None,
        headers: dict | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Make an HTTP GET request using the shared client.

        :param url: Request URL.
        :param params: Optional query parameters.
        :param headers: Optional request headers.
        :param timeout: Per-request timeout override.
        :returns: httpx.Response object.
        :raises ProviderHTTPError: On non-2xx response.
        :raises ProviderError: On network/timeout errors.
        """
        client = self.get_shared_client()
        try:
            response = await client.get(
                url,
                params=params,
                headers=headers,
                timeout=timeout or self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise ProviderError(f"Request failed: {e}") from e

        if not response.is_success:
            logger.debug(
                "HTTP GET %s failed with status %s: %s",
                url,
                response.status_code,
                response.text[:200],
            )
            raise ProviderHTTPError(response.status_code, response.text[:200])
        return response


# Registry of available providers (populated by subclass imports)
PROVIDER_REGISTRY: dict[str, type[BaseProvider]] = {}


def register_provider(cls: type[BaseProvider]) -> type[BaseProvider]:
    """Decorator to register a provider class in the global registry.

    :param cls: Provider class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If provider has no name defined.
    """
    if not cls.name:
        raise ValueError(f"Provider {cls.__name__} must define a 'name' class variable")
    PROVIDER_REGISTRY[cls.name] = cls
    return cls


def get_provider(name: str, **kwargs: Any) -> BaseProvider:
    """Get a provider instance by name.

    :param name: Provider name (e.g., "coingecko", "chainlink").
    :param kwargs: Constructor options; options a provider does not use are ignored.
    :returns: Provider instance.
    :raises ValueError: If provider name is unknown.
    """
    if name not in PROVIDER_REGISTRY:
        available = ", ".join(sorted(PROVIDER_REGISTRY.keys()))
        raise ValueError(f"Unknown provider '{name}'. Available: {available}")
    return PROVIDER_REGISTRY[name](**kwargs)


def get_available_providers() -> list[str]:
    """Get sorted list of registered provider names."""
    return sorted(PROVIDER_REGISTRY.keys())
