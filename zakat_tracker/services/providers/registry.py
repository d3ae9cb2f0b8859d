"""Provider registry and selection logic."""
from zakat_tracker.services.config import (
    get_goldapi_key,
    get_metalsdev_key,
    get_metal_provider_name,
)
from . import MetalProvider, ProviderError
from .metal_providers import (
    GoldAPIProvider,
    MetalsDevAPIProvider,
    FixedPriceProvider,
    ChainedMetalProvider,
)


def get_metal_provider() -> MetalProvider:
    """Get configured metal provider.

    METAL_PROVIDER selects one explicitly. Otherwise, priority:
    1. GoldAPI (if key configured), falling back to Metals.dev when it
       is also configured
    2. MetalsDevAPI (if key configured)
    3. Fixed table prices
    """
    explicit = get_metal_provider_name()
    if explicit == 'goldapi':
        return GoldAPIProvider()
    if explicit == 'metals-dev':
        return MetalsDevAPIProvider()
    if explicit == 'fixed':
        return FixedPriceProvider()
    if explicit is not None:
        raise ProviderError(f"Unknown METAL_PROVIDER: {explicit}")

    if get_goldapi_key():
        if get_metalsdev_key():
            return ChainedMetalProvider(primary=GoldAPIProvider(), fallback=MetalsDevAPIProvider())
        return GoldAPIProvider()
    if get_metalsdev_key():
        return MetalsDevAPIProvider()
    return FixedPriceProvider()


def get_provider_status() -> dict:
    """Return status of the configured metal provider."""
    metal = get_metal_provider()
    return {
        'metals': {
            'provider': metal.name,
            'requires_key': metal.requires_api_key,
            'configured': metal.is_configured(),
        },
    }
