"""Pluggable metal price provider interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date


@dataclass
class MetalPriceQuote:
    """Gold and silver price per gram in one currency."""
    currency: str           # ISO 4217 code
    gold_per_gram: float
    silver_per_gram: float
    as_of_date: date
    source: str


class MetalProvider(ABC):
    """Abstract base for metal price providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @property
    @abstractmethod
    def requires_api_key(self) -> bool:
        """Whether this provider needs an API key."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if provider is properly configured."""
        pass

    @abstractmethod
    def get_prices(self, currency: str) -> MetalPriceQuote:
        """Fetch current gold and silver prices per gram in `currency`.

        Raises:
            ProviderError: If the fetch fails, the payload is malformed,
                or the currency is not supported.
        """
        pass


class ProviderError(Exception):
    """Base exception for provider errors."""
    pass


class RateLimitError(ProviderError):
    """API rate limit exceeded."""
    pass


class AuthenticationError(ProviderError):
    """API key invalid or missing."""
    pass


class NetworkError(ProviderError):
    """Network connectivity issue."""
    pass


class UnsupportedCurrencyError(ProviderError):
    """Provider does not quote the requested currency."""
    pass


class MalformedResponseError(ProviderError):
    """Provider returned data that could not be parsed."""
    pass
