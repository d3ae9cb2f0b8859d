"""Fake metal price provider for testing without network calls."""
import threading
from datetime import date

from zakat_tracker.services.providers import (
    MetalProvider,
    MetalPriceQuote,
    NetworkError,
    UnsupportedCurrencyError,
)


class FakeMetalProvider(MetalProvider):
    """In-memory provider with per-currency prices and failures."""

    def __init__(
        self,
        prices: dict | None = None,
        failing: tuple = (),
        requires_key: bool = False,
    ):
        self.prices = prices if prices is not None else {
            'USD': (65.0, 0.85),
            'EUR': (60.0, 0.78),
            'GBP': (52.0, 0.68),
        }
        self.failing = set(failing)
        self.calls: list[str] = []
        self._requires_key = requires_key
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "fake"

    @property
    def requires_api_key(self) -> bool:
        return self._requires_key

    def is_configured(self) -> bool:
        return True

    def get_prices(self, currency: str) -> MetalPriceQuote:
        with self._lock:
            self.calls.append(currency)
        if currency in self.failing:
            raise NetworkError(f"Simulated outage for {currency}")
        if currency not in self.prices:
            raise UnsupportedCurrencyError(f"Currency not supported: {currency}")
        gold, silver = self.prices[currency]
        return MetalPriceQuote(
            currency=currency,
            gold_per_gram=gold,
            silver_per_gram=silver,
            as_of_date=date(2026, 1, 15),
            source=self.name,
        )
