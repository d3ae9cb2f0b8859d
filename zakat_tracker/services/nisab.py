"""Nisab threshold calculation and daily snapshotting.

Thresholds are price-per-gram times the configured gram weight of each
metal. Snapshots are written once per (date, currency); repeated calls
on the same day return the stored row, so an at-least-once scheduler can
trigger the refresh as often as it likes.
"""
import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import date
from typing import Optional

from zakat_tracker.errors import PriceFetchError
from zakat_tracker.services.config import (
    get_nisab_grams,
    get_fetch_workers,
    is_sync_enabled,
)
from zakat_tracker.services.providers import MetalProvider, MetalPriceQuote, ProviderError
from zakat_tracker.services.snapshot_store import NisabSnapshot, SnapshotStore

logger = logging.getLogger('nisab')


@dataclass(frozen=True)
class NisabThresholds:
    nisab_gold_value: float
    nisab_silver_value: float


def select_threshold(snapshot: NisabSnapshot, basis: str) -> float:
    """Pick the threshold that gates eligibility.

    Args:
        snapshot: Snapshot holding both thresholds
        basis: 'gold', 'silver' or 'lower'
    """
    if basis == 'gold':
        return snapshot.nisab_gold_value
    if basis == 'silver':
        return snapshot.nisab_silver_value
    if basis == 'lower':
        return min(snapshot.nisab_gold_value, snapshot.nisab_silver_value)
    raise ValueError(f"Unknown nisab basis: {basis}")


class NisabCalculator:
    """Fetches metal prices and maintains daily nisab snapshots."""

    def __init__(
        self,
        provider: MetalProvider,
        store: SnapshotStore,
        gold_grams: Optional[float] = None,
        silver_grams: Optional[float] = None,
        max_workers: Optional[int] = None,
    ):
        if gold_grams is None or silver_grams is None:
            default_gold, default_silver = get_nisab_grams()
            gold_grams = default_gold if gold_grams is None else gold_grams
            silver_grams = default_silver if silver_grams is None else silver_grams
        self.provider = provider
        self.store = store
        self.gold_grams = gold_grams
        self.silver_grams = silver_grams
        self.max_workers = max_workers or get_fetch_workers()

    def get_current_prices(self, currency: str) -> MetalPriceQuote:
        """Fetch the current quote for a currency.

        Raises:
            PriceFetchError: If the provider fails, returns malformed data,
                or does not support the currency.
        """
        currency = currency.upper()
        if self.provider.requires_api_key and not is_sync_enabled():
            raise PriceFetchError(currency, "Network fetches are disabled (PRICING_ALLOW_NETWORK=0)")

        try:
            quote = self.provider.get_prices(currency)
        except ProviderError as e:
            raise PriceFetchError(currency, f"{self.provider.name}: {e}") from e

        if quote is None:
            raise PriceFetchError(currency, "Provider returned no quote")
        if quote.currency.upper() != currency:
            raise PriceFetchError(currency, f"Provider quoted {quote.currency} instead")
        for label, value in (('gold', quote.gold_per_gram), ('silver', quote.silver_per_gram)):
            if (not isinstance(value, (int, float)) or isinstance(value, bool)
                    or not math.isfinite(value) or value <= 0):
                raise PriceFetchError(currency, f"Invalid {label} price: {value!r}")
        return quote

    def compute_thresholds(self, quote: MetalPriceQuote) -> NisabThresholds:
        """Price per gram times gram weight, unrounded.

        Rounding happens only when amounts are displayed.
        """
        return NisabThresholds(
            nisab_gold_value=quote.gold_per_gram * self.gold_grams,
            nisab_silver_value=quote.silver_per_gram * self.silver_grams,
        )

    def _build_snapshot(self, quote: MetalPriceQuote, today: date) -> NisabSnapshot:
        thresholds = self.compute_thresholds(quote)
        return NisabSnapshot(
            date=today,
            currency=quote.currency.upper(),
            gold_per_gram=quote.gold_per_gram,
            silver_per_gram=quote.silver_per_gram,
            nisab_gold_value=thresholds.nisab_gold_value,
            nisab_silver_value=thresholds.nisab_silver_value,
            gold_grams=self.gold_grams,
            silver_grams=self.silver_grams,
            source=quote.source,
        )

    def refresh_daily_snapshot(self, currency: str, today: date) -> NisabSnapshot:
        """Ensure a snapshot exists for (today, currency) and return it."""
        currency = currency.upper()
        existing = self.store.get_snapshot(today, currency)
        if existing is not None:
            logger.info(f"Nisab snapshot for {today.isoformat()} {currency} already exists")
            return existing

        quote = self.get_current_prices(currency)
        return self.store.upsert_if_absent(self._build_snapshot(quote, today))

    def refresh_all_currencies(self, today: date, currencies: list[str]) -> dict:
        """Refresh snapshots for every currency, isolating failures.

        Provider fetches for missing snapshots run concurrently (bounded
        by max_workers); writes happen on the calling thread.

        Returns:
            Dict with success_count, failure_count, created_count, total,
            success and per_currency results.
        """
        per_currency: dict[str, dict] = {}
        missing = []

        for currency in dict.fromkeys(c.upper() for c in currencies):
            existing = self.store.get_snapshot(today, currency)
            if existing is not None:
                per_currency[currency] = {'status': 'existing', 'snapshot': existing.to_dict()}
            else:
                missing.append(currency)

        if missing:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(missing))) as pool:
                futures = {pool.submit(self.get_current_prices, c): c for c in missing}
                for future in as_completed(futures):
                    currency = futures[future]
                    try:
                        quote = future.result()
                        snapshot = self._build_snapshot(quote, today)
                        stored = self.store.upsert_if_absent(snapshot)
                    except Exception as e:
                        logger.warning(f"Nisab refresh failed for {currency}: {e}")
                        per_currency[currency] = {'status': 'failed', 'error': str(e)}
                        continue
                    status = 'created' if stored == snapshot else 'existing'
                    per_currency[currency] = {'status': status, 'snapshot': stored.to_dict()}

        failure_count = sum(1 for r in per_currency.values() if r['status'] == 'failed')
        created_count = sum(1 for r in per_currency.values() if r['status'] == 'created')
        total = len(per_currency)

        logger.info(
            f"Nisab refresh {today.isoformat()}: {created_count} created, "
            f"{total - failure_count - created_count} existing, {failure_count} failed"
        )

        return {
            'date': today.isoformat(),
            'success': failure_count == 0,
            'success_count': total - failure_count,
            'failure_count': failure_count,
            'created_count': created_count,
            'total': total,
            'per_currency': per_currency,
        }


def get_nisab_calculator() -> NisabCalculator:
    """Get a NisabCalculator wired to the configured provider and database."""
    from zakat_tracker.services.providers.registry import get_metal_provider
    from zakat_tracker.services.snapshot_store import get_snapshot_store
    return NisabCalculator(get_metal_provider(), get_snapshot_store())
