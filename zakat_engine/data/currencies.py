"""Currency codes and display names.

Codes are canonically lowercase everywhere inside the engine. Anything coming
from a caller goes through normalize_currency() before it is stored or
compared.
"""
import re

DEFAULT_CURRENCY = 'usd'

_CODE_PATTERN = re.compile(r'^[a-z]{3}$')

# Display names for the currencies the calculator offers in its selector
CURRENCY_NAMES: dict[str, str] = {
    # Major global currencies
    'usd': 'United States Dollar',
    'eur': 'Euro',
    'gbp': 'British Pound Sterling',
    'jpy': 'Japanese Yen',
    'chf': 'Swiss Franc',
    'aud': 'Australian Dollar',
    'cad': 'Canadian Dollar',
    'nzd': 'New Zealand Dollar',
    # Middle East and Muslim-majority countries
    'aed': 'UAE Dirham',
    'sar': 'Saudi Riyal',
    'kwd': 'Kuwaiti Dinar',
    'bhd': 'Bahraini Dinar',
    'omr': 'Omani Rial',
    'qar': 'Qatari Riyal',
    'jod': 'Jordanian Dinar',
    'egp': 'Egyptian Pound',
    'lyd': 'Libyan Dinar',
    'dzd': 'Algerian Dinar',
    'mad': 'Moroccan Dirham',
    'tnd': 'Tunisian Dinar',
    'iqd': 'Iraqi Dinar',
    'syp': 'Syrian Pound',
    'yer': 'Yemeni Rial',
    'bnd': 'Brunei Dollar',
    'myr': 'Malaysian Ringgit',
    'idr': 'Indonesian Rupiah',
    'pkr': 'Pakistani Rupee',
    'bdt': 'Bangladeshi Taka',
    'mvr': 'Maldivian Rufiyaa',
    'lbp': 'Lebanese Pound',
    # Asia
    'cny': 'Chinese Yuan',
    'hkd': 'Hong Kong Dollar',
    'twd': 'Taiwan Dollar',
    'sgd': 'Singapore Dollar',
    'krw': 'South Korean Won',
    'inr': 'Indian Rupee',
    'thb': 'Thai Baht',
    'php': 'Philippine Peso',
    'vnd': 'Vietnamese Dong',
    'lkr': 'Sri Lankan Rupee',
    'npr': 'Nepalese Rupee',
    # Europe
    'sek': 'Swedish Krona',
    'nok': 'Norwegian Krone',
    'dkk': 'Danish Krone',
    'pln': 'Polish Zloty',
    'czk': 'Czech Koruna',
    'huf': 'Hungarian Forint',
    'ron': 'Romanian Leu',
    'bgn': 'Bulgarian Lev',
    'rsd': 'Serbian Dinar',
    'isk': 'Icelandic Krona',
    # Americas
    'mxn': 'Mexican Peso',
    'brl': 'Brazilian Real',
    'ars': 'Argentine Peso',
    'clp': 'Chilean Peso',
    'cop': 'Colombian Peso',
    'pen': 'Peruvian Sol',
    # Africa
    'zar': 'South African Rand',
    'ngn': 'Nigerian Naira',
    'ghs': 'Ghanaian Cedi',
    'kes': 'Kenyan Shilling',
    'ugx': 'Ugandan Shilling',
    'tzs': 'Tanzanian Shilling',
    'mur': 'Mauritian Rupee',
    # Other
    'rub': 'Russian Ruble',
    'try': 'Turkish Lira',
    'afn': 'Afghan Afghani',
    'azn': 'Azerbaijani Manat',
    'kzt': 'Kazakhstani Tenge',
    'uzs': 'Uzbekistani Som',
}


def normalize_currency(code) -> str:
    """Return the canonical (lowercase, stripped) form of a currency code.

    Non-string input normalizes to an empty string, which is never a valid
    code and therefore never found in a rate table.
    """
    if not isinstance(code, str):
        return ''
    return code.strip().lower()


def is_valid_currency(code) -> bool:
    """Check that a code looks like an ISO 4217 code (three letters, any case)."""
    return bool(_CODE_PATTERN.match(normalize_currency(code)))


def get_currency_name(code) -> str | None:
    return CURRENCY_NAMES.get(normalize_currency(code))


def get_ordered_currencies() -> list[dict]:
    """Return known currencies with the default first, then alphabetically by code."""
    result = [{'code': DEFAULT_CURRENCY, 'name': CURRENCY_NAMES[DEFAULT_CURRENCY]}]
    for code in sorted(CURRENCY_NAMES):
        if code != DEFAULT_CURRENCY:
            result.append({'code': code, 'name': CURRENCY_NAMES[code]})
    return result
