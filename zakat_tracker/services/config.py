"""Configuration service for nisab policy, providers and the daily job."""
import os

from zakat_tracker.constants import (
    NISAB_GRAM_CONVENTIONS,
    DEFAULT_NISAB_GRAM_CONVENTION,
    NISAB_BASES,
    DEFAULT_NISAB_BASIS,
    REQUALIFY_POLICIES,
    DEFAULT_REQUALIFY_POLICY,
    DEFAULT_NISAB_CURRENCIES,
)
from zakat_tracker.data.hijri import HIJRI_EPOCHS, DEFAULT_HIJRI_EPOCH


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


def is_sync_enabled() -> bool:
    """Check if network price fetches are allowed.

    Controlled by PRICING_ALLOW_NETWORK env var (default: 1/true).
    """
    return _env_flag('PRICING_ALLOW_NETWORK', '1')


def get_nisab_gram_convention() -> str:
    """Get the named gram-weight convention (classical or rounded).

    Controlled by NISAB_GRAMS_CONVENTION env var (default: classical).
    """
    value = os.environ.get('NISAB_GRAMS_CONVENTION', DEFAULT_NISAB_GRAM_CONVENTION).lower()
    if value not in NISAB_GRAM_CONVENTIONS:
        raise ValueError(
            f"Unknown NISAB_GRAMS_CONVENTION {value!r}; "
            f"expected one of {sorted(NISAB_GRAM_CONVENTIONS)}"
        )
    return value


def get_nisab_grams() -> tuple[float, float]:
    """Get (gold_grams, silver_grams) for nisab.

    NISAB_GOLD_GRAMS / NISAB_SILVER_GRAMS override the named convention.
    """
    convention = NISAB_GRAM_CONVENTIONS[get_nisab_gram_convention()]
    gold = float(os.environ.get('NISAB_GOLD_GRAMS', convention['gold']))
    silver = float(os.environ.get('NISAB_SILVER_GRAMS', convention['silver']))
    if gold <= 0 or silver <= 0:
        raise ValueError("Nisab gram weights must be positive")
    return (gold, silver)


def get_nisab_basis() -> str:
    """Get which threshold gates eligibility: gold, silver or lower.

    Controlled by NISAB_BASIS env var (default: lower).
    """
    value = os.environ.get('NISAB_BASIS', DEFAULT_NISAB_BASIS).lower()
    if value not in NISAB_BASES:
        raise ValueError(f"Unknown NISAB_BASIS {value!r}; expected one of {list(NISAB_BASES)}")
    return value


def get_requalify_policy() -> str:
    """Get the anniversary policy after wealth lapses below nisab.

    Controlled by ZAKAT_REQUALIFY_POLICY env var (default: keep).
    """
    value = os.environ.get('ZAKAT_REQUALIFY_POLICY', DEFAULT_REQUALIFY_POLICY).lower()
    if value not in REQUALIFY_POLICIES:
        raise ValueError(
            f"Unknown ZAKAT_REQUALIFY_POLICY {value!r}; expected one of {list(REQUALIFY_POLICIES)}"
        )
    return value


def get_hijri_epoch() -> str:
    """Get the Hijri epoch convention name (default: gregorian)."""
    value = os.environ.get('HIJRI_EPOCH', DEFAULT_HIJRI_EPOCH).lower()
    if value not in HIJRI_EPOCHS:
        raise ValueError(f"Unknown HIJRI_EPOCH {value!r}; expected one of {sorted(HIJRI_EPOCHS)}")
    return value


def get_hijri_epoch_jdn() -> int:
    return HIJRI_EPOCHS[get_hijri_epoch()]


def get_nisab_currencies() -> list[str]:
    """Get currencies refreshed by the daily job.

    Controlled by NISAB_CURRENCIES env var (comma separated).
    """
    raw = os.environ.get('NISAB_CURRENCIES')
    if not raw:
        return list(DEFAULT_NISAB_CURRENCIES)
    return [c.strip().upper() for c in raw.split(',') if c.strip()]


def get_fetch_workers() -> int:
    """Max concurrent provider fetches (NISAB_FETCH_WORKERS, default: 4)."""
    return max(1, int(os.environ.get('NISAB_FETCH_WORKERS', '4')))


def get_metal_provider_name() -> str | None:
    """Explicit provider choice (goldapi, metals-dev, fixed). None = auto."""
    value = os.environ.get('METAL_PROVIDER')
    return value.lower() if value else None


def get_user_agent() -> str:
    """Get the User-Agent string for provider HTTP requests."""
    default_ua = 'ZakatTracker/1.0'
    return os.environ.get('PRICING_SYNC_USER_AGENT', default_ua)


def get_cron_secret() -> str | None:
    """Bearer token required by the cron endpoints, if set."""
    return os.environ.get('CRON_SECRET') or None


def get_notification_sink_name() -> str:
    """Where reminders go: database (default) or log."""
    return os.environ.get('NOTIFICATION_SINK', 'database').lower()


def is_background_job_enabled() -> bool:
    """Check if the in-process daily job thread should start."""
    return _env_flag('DAILY_JOB_BACKGROUND', '0')


def get_job_interval_seconds() -> int:
    """Seconds between background daily job runs (default: 21600 = 6 hours)."""
    return int(os.environ.get('DAILY_JOB_INTERVAL_SECONDS', '21600'))


# Provider API key getters
def get_goldapi_key() -> str | None:
    """Get GoldAPI key if configured."""
    return os.environ.get('GOLDAPI_KEY')


def get_metalsdev_key() -> str | None:
    """Get Metals.dev key if configured."""
    return os.environ.get('METALSDEV_KEY')


def get_policy_config() -> dict:
    """Get the resolved jurisprudential policy settings."""
    gold_grams, silver_grams = get_nisab_grams()
    return {
        'gram_convention': get_nisab_gram_convention(),
        'gold_grams': gold_grams,
        'silver_grams': silver_grams,
        'nisab_basis': get_nisab_basis(),
        'requalify_policy': get_requalify_policy(),
        'hijri_epoch': get_hijri_epoch(),
    }


def get_provider_keys_status() -> dict:
    """Get status of configured provider API keys."""
    return {
        'goldapi': bool(get_goldapi_key()),
        'metals-dev': bool(get_metalsdev_key()),
    }
