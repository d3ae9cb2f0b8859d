"""Metal price provider implementations."""
import json
import logging
import math
import urllib.error
import urllib.parse
import urllib.request
from typing import Optional

from zakat_tracker.constants import TROY_OZ_TO_GRAMS
from zakat_tracker.services.config import get_goldapi_key, get_metalsdev_key, get_user_agent
from zakat_tracker.services.time_provider import get_today
from . import (
    MetalProvider,
    MetalPriceQuote,
    ProviderError,
    RateLimitError,
    AuthenticationError,
    NetworkError,
    UnsupportedCurrencyError,
    MalformedResponseError,
)

logger = logging.getLogger('metal_providers')


def _per_gram(price_per_oz) -> float:
    """Convert a troy-ounce quote to a positive per-gram price."""
    try:
        value = float(price_per_oz)
    except (TypeError, ValueError):
        raise MalformedResponseError(f"Non-numeric price: {price_per_oz!r}")
    if not math.isfinite(value):
        raise MalformedResponseError(f"Non-finite price: {value}")
    if value <= 0:
        raise MalformedResponseError(f"Non-positive price: {value}")
    return round(value / TROY_OZ_TO_GRAMS, 4)


class GoldAPIProvider(MetalProvider):
    """GoldAPI.io provider - requires API key.

    Quotes XAU and XAG directly in most fiat currencies.
    Free tier: 300 requests/month.
    """

    BASE_URL = "https://www.goldapi.io/api"

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or get_goldapi_key()

    @property
    def name(self) -> str:
        return "goldapi"

    @property
    def requires_api_key(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _fetch_symbol(self, symbol: str, currency: str) -> float:
        url = f"{self.BASE_URL}/{symbol}/{urllib.parse.quote(currency)}"
        req = urllib.request.Request(url, headers={
            'User-Agent': get_user_agent(),
            'x-access-token': self._api_key,
        })
        try:
            with urllib.request.urlopen(req, timeout=30) as response:
                data = json.loads(response.read().decode('utf-8'))
        except urllib.error.HTTPError as e:
            if e.code == 429:
                raise RateLimitError("Rate limit exceeded")
            if e.code in (401, 403):
                raise AuthenticationError("Invalid API key")
            if e.code in (400, 404):
                raise UnsupportedCurrencyError(f"Currency not supported: {currency}")
            raise ProviderError(f"HTTP error: {e.code}")
        except urllib.error.URLError as e:
            raise NetworkError(f"Network error: {e.reason}")
        except json.JSONDecodeError:
            raise MalformedResponseError("Invalid JSON response")

        if not isinstance(data, dict):
            raise MalformedResponseError("Unexpected response shape")
        if data.get('error'):
            raise UnsupportedCurrencyError(f"API error: {data['error']}")
        return _per_gram(data.get('price'))

    def get_prices(self, currency: str) -> MetalPriceQuote:
        """Fetch gold and silver prices in `currency`."""
        if not self._api_key:
            raise AuthenticationError("API key not configured")

        currency = currency.upper()
        gold = self._fetch_symbol('XAU', currency)
        silver = self._fetch_symbol('XAG', currency)
        return MetalPriceQuote(
            currency=currency,
            gold_per_gram=gold,
            silver_per_gram=silver,
            as_of_date=get_today(),
            source=self.name,
        )


class MetalsDevAPIProvider(MetalProvider):
    """Metals.dev API provider - free tier available.

    Latest prices only, in the requested currency.
    Free tier: 1000 requests/month.
    """

    BASE_URL = "https://api.metals.dev/v1"

    # API reports either symbols or lowercase names depending on plan
    GOLD_KEYS = ('gold', 'XAU')
    SILVER_KEYS = ('silver', 'XAG')

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or get_metalsdev_key()

    @property
    def name(self) -> str:
        return "metals-dev"

    @property
    def requires_api_key(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def get_prices(self, currency: str) -> MetalPriceQuote:
        if not self._api_key:
            raise AuthenticationError("Metals.dev API key not configured")

        currency = currency.upper()
        query = urllib.parse.urlencode({
            'api_key': self._api_key,
            'currency': currency,
            'unit': 'toz',
        })
        url = f"{self.BASE_URL}/latest?{query}"

        try:
            req = urllib.request.Request(url, headers={'User-Agent': get_user_agent()})
            with urllib.request.urlopen(req, timeout=30) as response:
                data = json.loads(response.read().decode('utf-8'))
        except urllib.error.HTTPError as e:
            if e.code == 429:
                raise RateLimitError("Rate limit exceeded")
            if e.code in (401, 403):
                raise AuthenticationError("Invalid API key")
            raise ProviderError(f"HTTP error: {e.code}")
        except urllib.error.URLError as e:
            raise NetworkError(f"Network error: {e.reason}")
        except json.JSONDecodeError:
            raise MalformedResponseError("Invalid JSON response")

        if not isinstance(data, dict):
            raise MalformedResponseError("Unexpected response shape")
        if data.get('status') != 'success':
            message = data.get('error_message') or data.get('error') or 'unknown'
            raise ProviderError(f"API error: {message}")

        reported = (data.get('currency') or currency).upper()
        if reported != currency:
            raise UnsupportedCurrencyError(f"Requested {currency}, provider quoted {reported}")

        metals = data.get('metals') or {}
        if not isinstance(metals, dict):
            raise MalformedResponseError("Unexpected metals shape")
        gold = next((metals[k] for k in self.GOLD_KEYS if k in metals), None)
        silver = next((metals[k] for k in self.SILVER_KEYS if k in metals), None)
        if gold is None or silver is None:
            raise MalformedResponseError("Response missing gold or silver price")

        return MetalPriceQuote(
            currency=currency,
            gold_per_gram=_per_gram(gold),
            silver_per_gram=_per_gram(silver),
            as_of_date=get_today(),
            source=self.name,
        )


class FixedPriceProvider(MetalProvider):
    """Static per-gram prices, for offline and development setups.

    Only quotes the currencies present in its table.
    """

    DEFAULT_PRICES = {
        'USD': (65.0, 0.85),
        'EUR': (60.0, 0.78),
        'GBP': (52.0, 0.68),
        'AED': (240.0, 3.12),
        'SAR': (245.0, 3.19),
        'EGP': (3200.0, 42.0),
    }

    def __init__(self, prices: Optional[dict] = None):
        self._prices = {k.upper(): v for k, v in (prices or self.DEFAULT_PRICES).items()}

    @property
    def name(self) -> str:
        return "fixed"

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return True

    def get_prices(self, currency: str) -> MetalPriceQuote:
        currency = currency.upper()
        if currency not in self._prices:
            raise UnsupportedCurrencyError(f"Currency not supported: {currency}")
        gold, silver = self._prices[currency]
        return MetalPriceQuote(
            currency=currency,
            gold_per_gram=gold,
            silver_per_gram=silver,
            as_of_date=get_today(),
            source=self.name,
        )


class ChainedMetalProvider(MetalProvider):
    """Try a primary provider, then fall back when it fails.

    The quote's source names the provider that answered.
    """

    def __init__(self, primary: MetalProvider, fallback: MetalProvider):
        self._primary = primary
        self._fallback = fallback

    @property
    def name(self) -> str:
        return f"{self._primary.name}+{self._fallback.name}"

    @property
    def requires_api_key(self) -> bool:
        return self._primary.requires_api_key and self._fallback.requires_api_key

    def is_configured(self) -> bool:
        return self._primary.is_configured() or self._fallback.is_configured()

    def get_prices(self, currency: str) -> MetalPriceQuote:
        try:
            return self._primary.get_prices(currency)
        except ProviderError as exc:
            logger.warning(f"{self._primary.name} failed for {currency}: {exc}; trying {self._fallback.name}")
            primary_error = exc

        try:
            return self._fallback.get_prices(currency)
        except ProviderError as exc:
            raise ProviderError(f"Primary provider failed: {primary_error}; fallback failed: {exc}") from exc
