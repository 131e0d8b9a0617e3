"""Per-category zakat aggregation.

One pure function per asset category. Every aggregator takes the raw field
mapping the caller collected for that category plus an optional
PricingContext, and returns a CategoryBreakdown. Missing or malformed fields
count as zero; nothing here raises on empty input.

Hawl is not applied here; the engine decides which categories count.
"""
import logging
import math
from dataclasses import dataclass, field

from zakat_engine.constants import (
    CASH_FIELDS,
    CATEGORY_IDS,
    DEFAULT_PASSIVE_METHOD,
    EARLY_WITHDRAWAL_PENALTY_RATE,
    LIABILITY_FIELDS,
    METAL_USES,
    NISAB_GOLD_GRAMS,
    NISAB_SILVER_GRAMS,
    PASSIVE_FUND_RATE,
    PASSIVE_METHODS,
    RECEIVABLE_LIKELIHOODS,
    RETIREMENT_TAX_RATE,
    ZAKATABLE_METAL_USES,
)
from zakat_engine.data.currencies import DEFAULT_CURRENCY, normalize_currency
from zakat_engine.data.metals import get_karat_fraction
from .fx import RateTable, try_convert
from .nisab import MetalPrices

logger = logging.getLogger(__name__)


def sanitize_amount(value) -> float:
    """Coerce a raw field value to a non-negative finite float.

    None, booleans, non-numeric strings, NaN, infinities and negatives all
    become 0. Numeric strings (form input such as "1,250.50") are parsed.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        text = value.strip().replace(',', '')
        if not text:
            return 0.0
        try:
            value = float(text)
        except ValueError:
            logger.debug(f"Ignoring non-numeric amount {text!r}")
            return 0.0
    if not isinstance(value, (int, float)):
        logger.debug(f"Ignoring amount of type {type(value).__name__}")
        return 0.0
    value = float(value)
    if not math.isfinite(value) or value < 0:
        logger.debug(f"Ignoring invalid amount {value}")
        return 0.0
    return value


def parse_flag(value) -> bool:
    """Interpret checkbox-style input ('true', 'on', 1, True) as a bool.

    Strings such as 'false', '0' or 'off' are False.
    """
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _as_list(value) -> list:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


@dataclass
class PricingContext:
    """Everything an aggregator may need beyond the raw values."""
    display_currency: str = DEFAULT_CURRENCY
    metal_prices: MetalPrices | None = None
    rate_table: RateTable | None = None
    include_uncertain_receivables: bool = False

    def __post_init__(self):
        self.display_currency = normalize_currency(self.display_currency) or DEFAULT_CURRENCY


@dataclass(frozen=True)
class CategoryBreakdown:
    category_id: str
    total: float = 0.0
    zakatable: float = 0.0
    meets_nisab_individually: bool | None = None
    # Liabilities reported here are deducted from the pool by the engine
    deductions: float = 0.0
    items: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {
            'category_id': self.category_id,
            'total': round(self.total, 2),
            'zakatable': round(self.zakatable, 2),
            'deductions': round(self.deductions, 2),
            'items': list(self.items),
            'warnings': list(self.warnings),
        }
        if self.meets_nisab_individually is not None:
            data['meets_nisab_individually'] = self.meets_nisab_individually
        return data


def _breakdown(category_id: str, total: float, zakatable: float, **kwargs) -> CategoryBreakdown:
    # Guard against float drift pushing zakatable a hair above total
    return CategoryBreakdown(category_id, total, min(zakatable, total), **kwargs)


def normalize_category_id(category_id) -> str:
    """Map 'precious-metals' / 'Real Estate' style ids onto snake_case ids."""
    if not isinstance(category_id, str):
        return ''
    return category_id.strip().lower().replace('-', '_').replace(' ', '_')


def calculate_cash_breakdown(values: dict | None, pricing: PricingContext | None = None) -> CategoryBreakdown:
    """Cash, bank balances and wallets are zakatable in full.

    foreign_currency holds an amount already in the display currency;
    foreign_currency_entries holds [{amount, currency}] entries that are
    converted here.
    """
    values = values or {}
    pricing = pricing or PricingContext()
    items = []
    warnings = []
    total = 0.0

    for name in CASH_FIELDS:
        amount = sanitize_amount(values.get(name))
        if amount:
            items.append({'name': name, 'value': round(amount, 2)})
        total += amount

    for entry in _as_list(values.get('foreign_currency_entries')):
        amount = sanitize_amount(entry.get('amount'))
        currency = normalize_currency(entry.get('currency')) or pricing.display_currency
        if not amount:
            continue
        converted = try_convert(amount, currency, pricing.display_currency, pricing.rate_table)
        if converted is None:
            warnings.append(f'No exchange rate for {currency}; {amount} {currency} excluded')
            continue
        items.append({
            'name': 'foreign_currency',
            'original_currency': currency,
            'original_amount': amount,
            'value': round(converted, 2),
        })
        total += converted

    return _breakdown('cash', total, total, items=items, warnings=warnings)


def _metal_price(metal: str, pricing: PricingContext, warnings: list) -> float:
    """Per-gram price of metal in the display currency, 0 when unavailable."""
    prices = pricing.metal_prices
    price = prices.price_for(metal) if prices else None
    if price is None:
        warnings.append(f'{metal} price unavailable; {metal} valued at 0')
        return 0.0
    converted = try_convert(price, prices.currency, pricing.display_currency, pricing.rate_table)
    if converted is None:
        warnings.append(f'Cannot convert {metal} price from {prices.currency}; {metal} valued at 0')
        return 0.0
    return converted


def calculate_precious_metals_breakdown(values: dict | None, pricing: PricingContext | None = None) -> CategoryBreakdown:
    """Gold and silver held for regular, occasional or investment use.

    Regular-use jewelry counts toward the total but is exempt. Eligibility on
    its own is decided by pure zakatable grams, not by value.
    """
    values = values or {}
    pricing = pricing or PricingContext()
    items = []
    warnings = []
    total = 0.0
    zakatable = 0.0
    zakatable_grams = {'gold': 0.0, 'silver': 0.0}

    for metal in ('gold', 'silver'):
        price = _metal_price(metal, pricing, warnings)
        for use in METAL_USES:
            weight = sanitize_amount(values.get(f'{metal}_{use}'))
            if not weight:
                continue
            if metal == 'gold':
                purity = values.get(f'gold_{use}_purity')
                pure = weight * get_karat_fraction(purity)
            else:
                pure = weight
            value = pure * price
            is_zakatable = use in ZAKATABLE_METAL_USES
            items.append({
                'name': f'{metal}_{use}',
                'weight_grams': weight,
                'pure_grams': round(pure, 4),
                'value': round(value, 2),
                'zakatable': is_zakatable,
            })
            total += value
            if is_zakatable:
                zakatable += value
                zakatable_grams[metal] += pure

    meets = (
        zakatable_grams['gold'] >= NISAB_GOLD_GRAMS
        or zakatable_grams['silver'] >= NISAB_SILVER_GRAMS
    )
    return _breakdown(
        'precious_metals', total, zakatable,
        meets_nisab_individually=meets, items=items, warnings=warnings,
    )


def _stock_value(entry: dict) -> float:
    if 'market_value' in entry:
        return sanitize_amount(entry.get('market_value'))
    return sanitize_amount(entry.get('shares')) * sanitize_amount(entry.get('price'))


def calculate_stocks_breakdown(values: dict | None, pricing: PricingContext | None = None) -> CategoryBreakdown:
    """Active trading is zakatable in full; passive holdings at 30% or by CRI."""
    values = values or {}
    items = []
    total = 0.0
    zakatable = 0.0

    for entry in _as_list(values.get('active_stocks')):
        value = _stock_value(entry)
        items.append({
            'name': 'active_stock',
            'symbol': str(entry.get('symbol', '')).upper(),
            'value': round(value, 2),
        })
        total += value
        zakatable += value

    active_trading = sanitize_amount(values.get('active_trading_value'))
    total += active_trading
    zakatable += active_trading

    passive = sanitize_amount(values.get('passive_market_value'))
    if passive:
        method = values.get('passive_method') or DEFAULT_PASSIVE_METHOD
        if method not in PASSIVE_METHODS:
            method = DEFAULT_PASSIVE_METHOD
        if method == 'detailed':
            total_shares = sanitize_amount(values.get('total_shares_issued'))
            liquid = (
                sanitize_amount(values.get('company_cash'))
                + sanitize_amount(values.get('company_receivables'))
                + sanitize_amount(values.get('company_inventory'))
            )
            if total_shares > 0:
                passive_zakatable = liquid * sanitize_amount(values.get('passive_shares')) / total_shares
            else:
                passive_zakatable = 0.0
            passive_zakatable = min(passive_zakatable, passive)
        else:
            passive_zakatable = passive * PASSIVE_FUND_RATE
        items.append({
            'name': 'passive_investments',
            'method': method,
            'method_label': PASSIVE_METHODS[method],
            'value': round(passive, 2),
            'zakatable_value': round(passive_zakatable, 2),
        })
        total += passive
        zakatable += passive_zakatable

    dividends = sanitize_amount(values.get('dividend_earnings'))
    total += dividends
    zakatable += dividends

    fund_value = sanitize_amount(values.get('fund_value'))
    if fund_value:
        is_passive = parse_flag(values.get('is_passive_fund'))
        fund_zakatable = fund_value * PASSIVE_FUND_RATE if is_passive else fund_value
        items.append({
            'name': 'fund',
            'is_passive_fund': is_passive,
            'value': round(fund_value, 2),
            'zakatable_value': round(fund_zakatable, 2),
        })
        total += fund_value
        zakatable += fund_zakatable

    return _breakdown('stocks', total, zakatable, items=items)


def calculate_retirement_breakdown(values: dict | None, pricing: PricingContext | None = None) -> CategoryBreakdown:
    """Retirement accounts.

    Traditional 401k/IRA balances are zakatable net of income tax and the
    early-withdrawal penalty. Roth accounts and pensions are exempt until
    withdrawn; other_retirement holds withdrawn funds.
    """
    values = values or {}
    traditional = (
        sanitize_amount(values.get('traditional_401k'))
        + sanitize_amount(values.get('traditional_ira'))
    )
    exempt = (
        sanitize_amount(values.get('roth_401k'))
        + sanitize_amount(values.get('roth_ira'))
        + sanitize_amount(values.get('pension'))
    )
    withdrawn = sanitize_amount(values.get('other_retirement'))

    net_rate = 1 - RETIREMENT_TAX_RATE - EARLY_WITHDRAWAL_PENALTY_RATE
    traditional_zakatable = traditional * net_rate

    items = []
    if traditional:
        items.append({
            'name': 'traditional',
            'value': round(traditional, 2),
            'zakatable_value': round(traditional_zakatable, 2),
        })
    if exempt:
        items.append({'name': 'exempt', 'value': round(exempt, 2), 'zakatable_value': 0.0})
    if withdrawn:
        items.append({'name': 'withdrawn', 'value': round(withdrawn, 2), 'zakatable_value': round(withdrawn, 2)})

    total = traditional + exempt + withdrawn
    return _breakdown('retirement', total, traditional_zakatable + withdrawn, items=items)


def calculate_real_estate_breakdown(values: dict | None, pricing: PricingContext | None = None) -> CategoryBreakdown:
    """Real estate: only net rental income, active listings and sold land count."""
    values = values or {}
    items = []
    total = 0.0
    zakatable = 0.0

    residence = sanitize_amount(values.get('primary_residence_value'))
    total += residence

    rental_income = sanitize_amount(values.get('rental_income'))
    rental_expenses = sanitize_amount(values.get('rental_expenses'))
    net_rental = max(0.0, rental_income - rental_expenses)
    if rental_income:
        items.append({'name': 'rental', 'value': round(net_rental, 2), 'zakatable_value': round(net_rental, 2)})
    total += net_rental
    zakatable += net_rental

    for_sale = sanitize_amount(values.get('property_for_sale_value'))
    for_sale_active = parse_flag(values.get('property_for_sale_active'))
    total += for_sale
    if for_sale and for_sale_active:
        zakatable += for_sale
        items.append({'name': 'property_for_sale', 'value': round(for_sale, 2), 'zakatable_value': round(for_sale, 2)})

    # Once land is sold the holding is the sale proceeds
    if parse_flag(values.get('vacant_land_sold')):
        proceeds = sanitize_amount(values.get('sale_price'))
        total += proceeds
        zakatable += proceeds
        if proceeds:
            items.append({'name': 'vacant_land_sale', 'value': round(proceeds, 2), 'zakatable_value': round(proceeds, 2)})
    else:
        total += sanitize_amount(values.get('vacant_land_value'))

    return _breakdown('real_estate', total, zakatable, items=items)


def calculate_crypto_breakdown(values: dict | None, pricing: PricingContext | None = None) -> CategoryBreakdown:
    """Cryptocurrency holdings, aggregated by symbol and fully zakatable."""
    values = values or {}
    pricing = pricing or PricingContext()
    warnings = []
    by_symbol = {}

    for entry in _as_list(values.get('coins')):
        symbol = str(entry.get('symbol', '') or 'unknown').upper()
        quantity = sanitize_amount(entry.get('quantity'))
        if 'market_value' in entry:
            value = sanitize_amount(entry.get('market_value'))
        else:
            value = quantity * sanitize_amount(entry.get('price'))
        currency = normalize_currency(entry.get('currency')) or pricing.display_currency
        converted = try_convert(value, currency, pricing.display_currency, pricing.rate_table)
        if converted is None:
            warnings.append(f'No exchange rate for {currency}; {symbol} excluded')
            continue
        holding = by_symbol.setdefault(symbol, {'symbol': symbol, 'quantity': 0.0, 'value': 0.0})
        holding['quantity'] += quantity
        holding['value'] += converted

    total = sum(holding['value'] for holding in by_symbol.values())
    items = [
        {'symbol': h['symbol'], 'quantity': h['quantity'], 'value': round(h['value'], 2)}
        for h in by_symbol.values()
    ]
    return _breakdown('crypto', total, total, items=items, warnings=warnings)


def calculate_receivables_breakdown(values: dict | None, pricing: PricingContext | None = None) -> CategoryBreakdown:
    """Money owed to you, weighted by how likely it is to be repaid.

    Uncertain debts count at half value only when the caller opts in;
    doubtful debts never count. Debts you owe (short_term_liabilities and
    the annual portion of long-term debt) are reported as deductions and
    leave total and zakatable untouched.
    """
    values = values or {}
    pricing = pricing or PricingContext()
    items = []
    total = 0.0
    zakatable = 0.0

    for likelihood, rule in RECEIVABLE_LIKELIHOODS.items():
        amount = sanitize_amount(values.get(rule['field']))
        if not amount:
            continue
        rate = rule['rate']
        if likelihood == 'uncertain' and not pricing.include_uncertain_receivables:
            rate = 0.0
        items.append({
            'name': rule['field'],
            'likelihood': likelihood,
            'likelihood_label': rule['label'],
            'value': round(amount, 2),
            'zakatable_value': round(amount * rate, 2),
        })
        total += amount
        zakatable += amount * rate

    deductions = 0.0
    for name, label in LIABILITY_FIELDS.items():
        amount = sanitize_amount(values.get(name))
        if not amount:
            continue
        items.append({
            'name': name,
            'label': label,
            'is_liability': True,
            'value': round(amount, 2),
            'zakatable_value': 0.0,
        })
        deductions += amount

    return _breakdown('receivables', total, zakatable, deductions=deductions, items=items)


CATEGORY_AGGREGATORS = {
    'cash': calculate_cash_breakdown,
    'precious_metals': calculate_precious_metals_breakdown,
    'stocks': calculate_stocks_breakdown,
    'retirement': calculate_retirement_breakdown,
    'real_estate': calculate_real_estate_breakdown,
    'crypto': calculate_crypto_breakdown,
    'receivables': calculate_receivables_breakdown,
}


def aggregate(category_id: str, values: dict | None, pricing: PricingContext | None = None) -> CategoryBreakdown:
    """Run the aggregator for one category id (hyphenated ids accepted)."""
    category_id = normalize_category_id(category_id)
    aggregator = CATEGORY_AGGREGATORS.get(category_id)
    if aggregator is None:
        raise KeyError(f'Unknown asset category: {category_id}')
    return aggregator(values, pricing)


def aggregate_all(inputs: dict | None, pricing: PricingContext | None = None) -> dict[str, CategoryBreakdown]:
    """Aggregate every known category. Unknown ids in inputs are skipped."""
    inputs = {normalize_category_id(k): v for k, v in (inputs or {}).items()}
    for category_id in inputs:
        if category_id not in CATEGORY_AGGREGATORS:
            logger.warning(f"Ignoring unknown asset category {category_id!r}")
    return {
        category_id: CATEGORY_AGGREGATORS[category_id](inputs.get(category_id), pricing)
        for category_id in CATEGORY_IDS
    }
