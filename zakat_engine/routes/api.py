"""API routes for conversion, nisab, calculation and distribution."""
from flask import Blueprint, jsonify, request, current_app

from zakat_engine.constants import (
    CATEGORY_IDS,
    CATEGORY_LABELS,
    DISTRIBUTION_MODES,
    ELIGIBILITY_POLICIES,
    NISAB_GOLD_GRAMS,
    NISAB_SILVER_GRAMS,
    PASSIVE_METHODS,
    RECEIVABLE_LIKELIHOODS,
    ZAKAT_RATE,
)
from zakat_engine.data.asnaf import ASNAF_CATEGORIES
from zakat_engine.data.currencies import (
    get_currency_name,
    get_ordered_currencies,
    is_valid_currency,
    normalize_currency,
)
from zakat_engine.data.metals import GOLD_KARATS, SUPPORTED_METALS
from zakat_engine.errors import InvalidPolicy, RateUnavailable, UnknownRecipientCategory
from zakat_engine.services.calc import parse_flag, sanitize_amount
from zakat_engine.services.distribution import plan_distribution
from zakat_engine.services.engine import ZakatEngine
from zakat_engine.services.fx import RateTable, convert, get_rate
from zakat_engine.services.nisab import MetalPrices, evaluate_both, evaluate_nisab

api_bp = Blueprint('api', __name__)


def _error(message: str, status: int = 400):
    return jsonify({'error': message}), status


def _display_currency(body: dict):
    """Return the requested display currency, or None if it is not a valid code."""
    code = normalize_currency(body.get('currency') or current_app.config['ZAKAT_DEFAULT_CURRENCY'])
    return code if is_valid_currency(code) else None


def _pricing_inputs(body: dict):
    rates = body.get('rates')
    prices = body.get('metal_prices')
    if rates is not None and not isinstance(rates, dict):
        raise ValueError('rates must be an object')
    if prices is not None and not isinstance(prices, dict):
        raise ValueError('metal_prices must be an object')
    table = RateTable.from_dict(rates) if rates is not None else None
    metal_prices = MetalPrices.from_dict(prices) if prices is not None else None
    return metal_prices, table


@api_bp.route('/currencies')
def currencies():
    """Return known currencies, default first then alphabetically."""
    return jsonify({
        'default': current_app.config['ZAKAT_DEFAULT_CURRENCY'],
        'currencies': get_ordered_currencies(),
    })


@api_bp.route('/constants')
def constants():
    """Return the fixed rules the engine applies."""
    return jsonify({
        'nisab': {
            'gold_grams': NISAB_GOLD_GRAMS,
            'silver_grams': NISAB_SILVER_GRAMS,
        },
        'zakat_rate': ZAKAT_RATE,
        'metals': SUPPORTED_METALS,
        'gold_karats': sorted(GOLD_KARATS, reverse=True),
        'categories': [{'id': c, 'label': CATEGORY_LABELS[c]} for c in CATEGORY_IDS],
        'passive_methods': PASSIVE_METHODS,
        'receivable_likelihoods': {k: v['label'] for k, v in RECEIVABLE_LIKELIHOODS.items()},
        'asnaf': ASNAF_CATEGORIES,
        'eligibility_policies': ELIGIBILITY_POLICIES,
        'distribution_modes': DISTRIBUTION_MODES,
        'scholar_weights': current_app.config['ZAKAT_SCHOLAR_WEIGHTS'],
    })


@api_bp.route('/convert', methods=['POST'])
def convert_amount():
    """Convert an amount between currencies.

    {
        "amount": 100,
        "from": "EUR",
        "to": "GBP",
        "rates": {"base_currency": "usd", "rates": {"eur": 0.92, "gbp": 0.79}}
    }
    """
    body = request.get_json(silent=True) or {}
    amount = body.get('amount')
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return _error('amount must be a number')
    source = body.get('from')
    target = body.get('to')
    if not is_valid_currency(source) or not is_valid_currency(target):
        return _error('from and to must be three-letter currency codes')
    rates = body.get('rates')
    if not isinstance(rates, dict):
        return _error('rates must be an object')

    table = RateTable.from_dict(rates)
    try:
        converted = convert(amount, source, target, table)
        rate = get_rate(source, target, table)
    except RateUnavailable as e:
        current_app.logger.warning(f"Conversion failed: {e}")
        return jsonify({'error': str(e), 'currency': e.currency}), 422

    return jsonify({
        'amount': amount,
        'from': normalize_currency(source),
        'to': normalize_currency(target),
        'to_name': get_currency_name(target),
        'converted': converted,
        'rate': rate,
    })


@api_bp.route('/nisab', methods=['POST'])
def nisab():
    """Evaluate the nisab threshold.

    {
        "threshold_type": "gold" | "silver" | "both",
        "currency": "usd",
        "metal_prices": {"gold": 93.98, "silver": 1.05, "currency": "usd"},
        "rates": {...},
        "value": 10000
    }
    """
    body = request.get_json(silent=True) or {}
    currency = _display_currency(body)
    if currency is None:
        return _error(f"Invalid currency: {body.get('currency')}")
    try:
        metal_prices, table = _pricing_inputs(body)
    except ValueError as e:
        return _error(str(e))

    value = body.get('value')
    value = sanitize_amount(value) if value is not None else None
    threshold_type = body.get('threshold_type', 'both')

    if threshold_type == 'both':
        statuses = evaluate_both(metal_prices, table, currency, value)
        return jsonify({metal: status.to_dict() for metal, status in statuses.items()})

    try:
        status = evaluate_nisab(threshold_type, metal_prices, table, currency, value)
    except InvalidPolicy as e:
        return _error(str(e))
    return jsonify(status.to_dict())


@api_bp.route('/calculate', methods=['POST'])
def calculate():
    """Calculate zakat from submitted assets.

    {
        "currency": "usd",
        "assets": {
            "cash": {"values": {"checking_account": 50000}, "hawl_met": true},
            "precious-metals": {"values": {"gold_investment": 100}}
        },
        "metal_prices": {"gold": 93.98, "silver": 1.05, "currency": "usd"},
        "rates": {"base_currency": "usd", "rates": {...}},
        "nisab_basis": "gold",
        "eligibility_policy": "either",
        "include_uncertain_receivables": false,
        "distribution": {"mode": "scholar", "edits": [...]}
    }
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return _error('Request body must be a JSON object')

    currency = _display_currency(body)
    if currency is None:
        return _error(f"Invalid currency: {body.get('currency')}")
    assets = body.get('assets', {})
    if not isinstance(assets, dict):
        return _error('assets must be an object keyed by category id')
    try:
        metal_prices, table = _pricing_inputs(body)
    except ValueError as e:
        return _error(str(e))

    config = current_app.config
    include_uncertain = body.get('include_uncertain_receivables')
    if include_uncertain is None:
        include_uncertain = config['ZAKAT_INCLUDE_UNCERTAIN_RECEIVABLES']

    try:
        engine = ZakatEngine(
            assets,
            metal_prices=metal_prices,
            rate_table=table,
            display_currency=currency,
            nisab_basis=body.get('nisab_basis') or config['ZAKAT_NISAB_BASIS'],
            eligibility_policy=body.get('eligibility_policy') or config['ZAKAT_ELIGIBILITY_POLICY'],
            include_uncertain_receivables=parse_flag(include_uncertain),
        )
    except InvalidPolicy as e:
        return _error(str(e))

    result = engine.calculate()
    response = result.to_dict()

    distribution = body.get('distribution')
    if distribution is not None:
        if not isinstance(distribution, dict):
            return _error('distribution must be an object')
        try:
            allocator = plan_distribution(
                result.zakat_due,
                mode=distribution.get('mode', 'equal'),
                edits=distribution.get('edits'),
                scholar_weights=config['ZAKAT_SCHOLAR_WEIGHTS'],
            )
        except (InvalidPolicy, UnknownRecipientCategory) as e:
            return _error(str(e))
        response['distribution'] = allocator.to_dict()

    return jsonify(response)


@api_bp.route('/distribution', methods=['POST'])
def distribution():
    """Allocate an amount of zakat across the eight asnaf.

    {
        "zakat_due": 1250,
        "mode": "equal" | "scholar",
        "edits": [{"category_id": "the_poor", "percentage": 40}]
    }
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return _error('Request body must be a JSON object')
    zakat_due = body.get('zakat_due')
    if isinstance(zakat_due, bool) or not isinstance(zakat_due, (int, float)) or zakat_due < 0:
        return _error('zakat_due must be a non-negative number')
    edits = body.get('edits', [])
    if not isinstance(edits, list):
        return _error('edits must be a list')

    try:
        allocator = plan_distribution(
            zakat_due,
            mode=body.get('mode', 'equal'),
            edits=edits,
            scholar_weights=current_app.config['ZAKAT_SCHOLAR_WEIGHTS'],
        )
    except (InvalidPolicy, UnknownRecipientCategory) as e:
        return _error(str(e))

    return jsonify(allocator.to_dict())
