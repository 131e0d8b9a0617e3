"""Currency conversion service.

Rates are expressed relative to one base currency: rates[base] == 1 and
rates[x] is how many units of x one unit of base buys. Conversions between
two non-base currencies pivot through the base, so the table stays linear in
the number of currencies.
"""
import logging
import math
from dataclasses import dataclass, field

from zakat_engine.data.currencies import DEFAULT_CURRENCY, normalize_currency
from zakat_engine.errors import RateUnavailable

logger = logging.getLogger(__name__)


@dataclass
class RateTable:
    """Snapshot of exchange rates relative to base_currency.

    Codes are normalized to lowercase on construction. Factors that are not
    strictly positive finite numbers are dropped, so a lookup for them fails
    the same way as a missing currency.
    """
    base_currency: str = DEFAULT_CURRENCY
    rates: dict = field(default_factory=dict)

    def __post_init__(self):
        self.base_currency = normalize_currency(self.base_currency) or DEFAULT_CURRENCY
        cleaned = {}
        for code, factor in (self.rates or {}).items():
            code = normalize_currency(code)
            if not code:
                continue
            if isinstance(factor, bool) or not isinstance(factor, (int, float)):
                logger.warning(f"Dropping non-numeric rate for {code}: {factor!r}")
                continue
            if not math.isfinite(factor) or factor <= 0:
                logger.warning(f"Dropping non-positive rate for {code}: {factor}")
                continue
            cleaned[code] = float(factor)
        cleaned[self.base_currency] = 1.0
        self.rates = cleaned

    @classmethod
    def from_dict(cls, data: dict | None) -> 'RateTable':
        """Build a table from a request/collaborator payload.

        Accepts both {'base_currency': ..., 'rates': {...}} and the shorter
        {'base': ..., 'rates': {...}} shape.
        """
        data = data or {}
        base = data.get('base_currency', data.get('base', DEFAULT_CURRENCY))
        rates = data.get('rates') or {}
        if not isinstance(rates, dict):
            rates = {}
        return cls(base_currency=base, rates=rates)

    def has(self, currency: str) -> bool:
        return normalize_currency(currency) in self.rates

    def rate(self, currency: str) -> float:
        """Return the factor for currency, raising RateUnavailable when absent."""
        code = normalize_currency(currency)
        try:
            return self.rates[code]
        except KeyError:
            raise RateUnavailable(code) from None

    def currencies(self) -> list[str]:
        return sorted(self.rates)

    def to_dict(self) -> dict:
        return {'base_currency': self.base_currency, 'rates': dict(self.rates)}


def get_rate(from_currency: str, to_currency: str, table: RateTable) -> float:
    """Return the multiplicative factor that converts from_currency into to_currency."""
    source = normalize_currency(from_currency)
    target = normalize_currency(to_currency)
    if source == target:
        return 1.0
    if source == table.base_currency:
        return table.rate(target)
    if target == table.base_currency:
        return 1.0 / table.rate(source)
    return table.rate(target) / table.rate(source)


def convert(amount: float, from_currency: str, to_currency: str, table: RateTable) -> float:
    """Convert amount between currencies through the table's base currency.

    Same-currency conversions return the amount untouched without consulting
    the table. Raises RateUnavailable when either side is missing.
    """
    source = normalize_currency(from_currency)
    target = normalize_currency(to_currency)
    if source == target:
        return amount

    if source == table.base_currency:
        converted = amount * table.rate(target)
    elif target == table.base_currency:
        converted = amount / table.rate(source)
    else:
        # Into the base first, then out to the target
        converted = amount / table.rate(source) * table.rate(target)

    logger.debug(f"Converted {amount} {source} -> {converted} {target}")
    return converted


def try_convert(amount: float, from_currency: str, to_currency: str, table: RateTable | None) -> float | None:
    """Convert, returning None instead of raising when a rate is unavailable."""
    if normalize_currency(from_currency) == normalize_currency(to_currency):
        return amount
    if table is None:
        logger.warning(f"No rate table supplied for {from_currency} -> {to_currency}")
        return None
    try:
        return convert(amount, from_currency, to_currency, table)
    except RateUnavailable as e:
        logger.warning(f"Conversion {from_currency} -> {to_currency} unavailable: {e}")
        return None
