"""Shared constants for nisab and zakat policy."""

# Nisab gram weights by convention. Which one applies is a policy choice.
NISAB_GRAM_CONVENTIONS = {
    'classical': {'gold': 87.48, 'silver': 612.36},
    'rounded': {'gold': 85.0, 'silver': 595.0},
}
DEFAULT_NISAB_GRAM_CONVENTION = 'classical'

# Which threshold gates eligibility
NISAB_BASES = {
    'gold': 'Gold-based nisab',
    'silver': 'Silver-based nisab',
    'lower': 'Lower of gold and silver nisab',
}
DEFAULT_NISAB_BASIS = 'lower'

# What happens to the lunar anniversary when wealth drops below nisab on it
REQUALIFY_POLICIES = {
    'keep': 'Keep the original anniversary',
    'reset': 'Start a new anniversary on re-qualification',
}
DEFAULT_REQUALIFY_POLICY = 'keep'

# Zakat rate (2.5%)
ZAKAT_RATE = 0.025

# Conversion constant: troy ounce to grams
TROY_OZ_TO_GRAMS = 31.1035

DEFAULT_NISAB_CURRENCIES = ('USD', 'EUR', 'GBP', 'AED', 'SAR', 'EGP')

NOTIFICATION_TYPE_ZAKAT_REMINDER = 'zakat_reminder'
