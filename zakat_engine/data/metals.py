"""Precious metals that count toward nisab."""
from zakat_engine.constants import NISAB_GOLD_GRAMS, NISAB_SILVER_GRAMS

SUPPORTED_METALS = {
    'gold': {
        'name': 'Gold',
        'symbol': 'Au',
        'nisab_grams': NISAB_GOLD_GRAMS,
    },
    'silver': {
        'name': 'Silver',
        'symbol': 'Ag',
        'nisab_grams': NISAB_SILVER_GRAMS,
    },
}

# Gold karats and their purity fractions
GOLD_KARATS = {
    24: 1.0,
    22: 22/24,
    21: 21/24,
    18: 18/24,
    14: 14/24,
    10: 10/24,
    9: 9/24,
}
DEFAULT_KARAT = 24


def is_valid_metal(metal_id: str) -> bool:
    """Check if a metal ID is valid."""
    return isinstance(metal_id, str) and metal_id.lower() in SUPPORTED_METALS


def parse_karat(value) -> int:
    """Parse a purity value such as 22, '22', '22K' or '22k' into a karat.

    Anything unparseable or outside 1..24 falls back to 24K.
    """
    if isinstance(value, bool) or value is None:
        return DEFAULT_KARAT
    if isinstance(value, str):
        value = value.strip().upper().rstrip('K')
    try:
        karat = int(float(value))
    except (TypeError, ValueError):
        return DEFAULT_KARAT
    if karat < 1 or karat > 24:
        return DEFAULT_KARAT
    return karat


def get_karat_fraction(karat) -> float:
    """Get purity fraction for a gold karat value (24K = 1.0)."""
    karat = parse_karat(karat)
    return GOLD_KARATS.get(karat, karat / 24)
