"""Configuration service for engine defaults."""
import json
import logging
import os

from zakat_engine.constants import (
    DEFAULT_ELIGIBILITY_POLICY,
    DEFAULT_NISAB_BASIS,
    ELIGIBILITY_POLICIES,
    NISAB_GRAMS,
    SCHOLAR_DISTRIBUTION,
)
from zakat_engine.data.currencies import DEFAULT_CURRENCY, is_valid_currency, normalize_currency

logger = logging.getLogger(__name__)


def get_default_currency() -> str:
    """Get the display currency used when a request does not name one.

    Controlled by ZAKAT_DEFAULT_CURRENCY env var (default: usd).
    """
    code = normalize_currency(os.environ.get('ZAKAT_DEFAULT_CURRENCY', DEFAULT_CURRENCY))
    if not is_valid_currency(code):
        logger.warning(f"Invalid ZAKAT_DEFAULT_CURRENCY {code!r}; using {DEFAULT_CURRENCY}")
        return DEFAULT_CURRENCY
    return code


def get_nisab_basis() -> str:
    """Get the metal the monetary pool is compared against.

    Controlled by ZAKAT_NISAB_BASIS env var (default: gold).
    """
    basis = os.environ.get('ZAKAT_NISAB_BASIS', DEFAULT_NISAB_BASIS).lower()
    if basis not in NISAB_GRAMS:
        logger.warning(f"Invalid ZAKAT_NISAB_BASIS {basis!r}; using {DEFAULT_NISAB_BASIS}")
        return DEFAULT_NISAB_BASIS
    return basis


def get_eligibility_policy() -> str:
    """Controlled by ZAKAT_ELIGIBILITY_POLICY env var (either | lower_of_two)."""
    policy = os.environ.get('ZAKAT_ELIGIBILITY_POLICY', DEFAULT_ELIGIBILITY_POLICY).lower()
    if policy not in ELIGIBILITY_POLICIES:
        logger.warning(f"Invalid ZAKAT_ELIGIBILITY_POLICY {policy!r}; using {DEFAULT_ELIGIBILITY_POLICY}")
        return DEFAULT_ELIGIBILITY_POLICY
    return policy


def include_uncertain_receivables() -> bool:
    """Check if uncertain receivables count at 50%.

    Controlled by ZAKAT_INCLUDE_UNCERTAIN_RECEIVABLES env var (default: 0/false).
    """
    return os.environ.get('ZAKAT_INCLUDE_UNCERTAIN_RECEIVABLES', '0').lower() in ('1', 'true', 'yes')


def get_scholar_weights() -> dict:
    """Get the scholar distribution table.

    Controlled by ZAKAT_SCHOLAR_WEIGHTS env var holding a JSON object. The
    table itself is validated when an allocator is built from it.
    """
    raw = os.environ.get('ZAKAT_SCHOLAR_WEIGHTS')
    if not raw:
        return dict(SCHOLAR_DISTRIBUTION)
    try:
        weights = json.loads(raw)
    except ValueError as e:
        logger.warning(f"ZAKAT_SCHOLAR_WEIGHTS is not valid JSON ({e}); using defaults")
        return dict(SCHOLAR_DISTRIBUTION)
    if not isinstance(weights, dict):
        logger.warning("ZAKAT_SCHOLAR_WEIGHTS must be a JSON object; using defaults")
        return dict(SCHOLAR_DISTRIBUTION)
    return weights


def get_engine_config() -> dict:
    """Get complete engine configuration, keyed as Flask config entries."""
    return {
        'ZAKAT_DEFAULT_CURRENCY': get_default_currency(),
        'ZAKAT_NISAB_BASIS': get_nisab_basis(),
        'ZAKAT_ELIGIBILITY_POLICY': get_eligibility_policy(),
        'ZAKAT_INCLUDE_UNCERTAIN_RECEIVABLES': include_uncertain_receivables(),
        'ZAKAT_SCHOLAR_WEIGHTS': get_scholar_weights(),
    }
