"""Nisab threshold evaluation.

The evaluator turns the fixed gram weights (85g gold, 595g silver) into a
value in the display currency. It never raises: when a price or rate is
missing the threshold comes back as 0 with is_available=False, and a zero
threshold never counts as met.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime

from zakat_engine.constants import NISAB_GRAMS
from zakat_engine.data.currencies import DEFAULT_CURRENCY, normalize_currency
from zakat_engine.data.metals import is_valid_metal
from zakat_engine.errors import InvalidPolicy, RateUnavailable
from .fx import RateTable, convert

logger = logging.getLogger(__name__)


def _valid_price(value) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return float(value)


@dataclass
class MetalPrices:
    """Spot prices per gram in `currency`.

    A price that is missing, zero, negative or not finite is stored as None
    ("unavailable") rather than zero.
    """
    gold: float | None = None
    silver: float | None = None
    currency: str = DEFAULT_CURRENCY
    last_updated: datetime | str | None = None
    source: str | None = None

    def __post_init__(self):
        self.gold = _valid_price(self.gold)
        self.silver = _valid_price(self.silver)
        self.currency = normalize_currency(self.currency) or DEFAULT_CURRENCY

    @classmethod
    def from_dict(cls, data: dict | None) -> 'MetalPrices':
        data = data or {}
        return cls(
            gold=data.get('gold'),
            silver=data.get('silver'),
            currency=data.get('currency', DEFAULT_CURRENCY),
            last_updated=data.get('last_updated', data.get('lastUpdated')),
            source=data.get('source'),
        )

    def price_for(self, metal: str) -> float | None:
        if metal == 'gold':
            return self.gold
        if metal == 'silver':
            return self.silver
        return None

    def to_dict(self) -> dict:
        last_updated = self.last_updated
        if isinstance(last_updated, datetime):
            last_updated = last_updated.isoformat()
        return {
            'gold': self.gold,
            'silver': self.silver,
            'currency': self.currency,
            'last_updated': last_updated,
            'source': self.source,
        }


@dataclass(frozen=True)
class NisabStatus:
    threshold_type: str
    threshold_value: float
    currency: str
    meets_nisab: bool = False
    is_direct_price: bool = True
    is_available: bool = True
    price_per_gram: float = 0.0
    grams: int = 0
    notes: list = field(default_factory=list)

    def check(self, value: float) -> bool:
        """Return whether value reaches this threshold. Unavailable thresholds never do."""
        if not self.is_available or self.threshold_value <= 0:
            return False
        return value >= self.threshold_value

    def with_value(self, value: float) -> 'NisabStatus':
        """Return a copy whose meets_nisab reflects value."""
        return NisabStatus(
            threshold_type=self.threshold_type,
            threshold_value=self.threshold_value,
            currency=self.currency,
            meets_nisab=self.check(value),
            is_direct_price=self.is_direct_price,
            is_available=self.is_available,
            price_per_gram=self.price_per_gram,
            grams=self.grams,
            notes=list(self.notes),
        )

    def to_dict(self) -> dict:
        return {
            'threshold_type': self.threshold_type,
            'threshold_value': round(self.threshold_value, 2),
            'currency': self.currency,
            'meets_nisab': self.meets_nisab,
            'is_direct_price': self.is_direct_price,
            'is_available': self.is_available,
            'price_per_gram': round(self.price_per_gram, 4),
            'grams': self.grams,
            'notes': list(self.notes),
        }


def validate_threshold_type(threshold_type: str) -> str:
    threshold_type = threshold_type.lower() if isinstance(threshold_type, str) else ''
    if not is_valid_metal(threshold_type):
        raise InvalidPolicy(f"Invalid nisab basis: {threshold_type!r}. Must be 'gold' or 'silver'")
    return threshold_type


def evaluate_nisab(
    threshold_type: str,
    prices: MetalPrices | None,
    table: RateTable | None,
    display_currency: str,
    value: float | None = None,
) -> NisabStatus:
    """Establish the nisab threshold for one metal in display_currency.

    Args:
        threshold_type: 'gold' or 'silver'
        prices: Metal spot prices per gram
        table: Rate table used when prices are quoted in another currency
        display_currency: Currency the threshold is expressed in
        value: Optional wealth figure; when given, meets_nisab is set from it

    Returns:
        NisabStatus. is_direct_price is False whenever the price had to be
        converted; is_available is False when no usable threshold exists.
    """
    threshold_type = validate_threshold_type(threshold_type)
    grams = NISAB_GRAMS[threshold_type]
    display_currency = normalize_currency(display_currency) or DEFAULT_CURRENCY

    price = prices.price_for(threshold_type) if prices else None
    if price is None:
        logger.warning(f"No {threshold_type} price available for nisab in {display_currency}")
        return NisabStatus(
            threshold_type=threshold_type,
            threshold_value=0.0,
            currency=display_currency,
            is_direct_price=bool(prices) and prices.currency == display_currency,
            is_available=False,
            grams=grams,
            notes=[f'{threshold_type} price unavailable'],
        )

    if prices.currency == display_currency:
        status = NisabStatus(
            threshold_type=threshold_type,
            threshold_value=price * grams,
            currency=display_currency,
            is_direct_price=True,
            price_per_gram=price,
            grams=grams,
        )
    else:
        try:
            if table is None:
                raise RateUnavailable(display_currency, 'No rate table supplied')
            converted_price = convert(price, prices.currency, display_currency, table)
        except RateUnavailable as e:
            logger.warning(
                f"Cannot convert {threshold_type} price from {prices.currency} to {display_currency}: {e}"
            )
            return NisabStatus(
                threshold_type=threshold_type,
                threshold_value=0.0,
                currency=display_currency,
                is_direct_price=False,
                is_available=False,
                grams=grams,
                notes=[str(e)],
            )
        status = NisabStatus(
            threshold_type=threshold_type,
            threshold_value=converted_price * grams,
            currency=display_currency,
            is_direct_price=False,
            price_per_gram=converted_price,
            grams=grams,
        )

    if value is not None:
        status = status.with_value(value)
    return status


def evaluate_both(
    prices: MetalPrices | None,
    table: RateTable | None,
    display_currency: str,
    value: float | None = None,
) -> dict[str, NisabStatus]:
    """Evaluate gold and silver thresholds together."""
    return {
        metal: evaluate_nisab(metal, prices, table, display_currency, value)
        for metal in NISAB_GRAMS
    }


def lower_threshold(statuses: dict[str, NisabStatus]) -> NisabStatus | None:
    """Pick the lower available threshold (the classical, more inclusive standard).

    Returns None when no threshold is available.
    """
    available = [s for s in statuses.values() if s.is_available and s.threshold_value > 0]
    if not available:
        return None
    return min(available, key=lambda s: s.threshold_value)
