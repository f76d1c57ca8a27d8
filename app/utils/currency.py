"""
Currency formatting and preference helpers.

Every currency the portal can display, with symbol placement and precision.
Amounts are formatted en-GB style: comma thousands separator, dot decimal.
"""
import json
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

DEFAULT_CURRENCY = 'GBP'

CURRENCY_MAP: Dict[str, Dict[str, Any]] = {
    'GBP': {'symbol': '£', 'name': 'British Pound', 'code': 'GBP', 'position': 'before', 'decimal_places': 2},
    'USD': {'symbol': '$', 'name': 'US Dollar', 'code': 'USD', 'position': 'before', 'decimal_places': 2},
    'EUR': {'symbol': '€', 'name': 'Euro', 'code': 'EUR', 'position': 'before', 'decimal_places': 2},
    'CAD': {'symbol': 'C$', 'name': 'Canadian Dollar', 'code': 'CAD', 'position': 'before', 'decimal_places': 2},
    'AUD': {'symbol': 'A$', 'name': 'Australian Dollar', 'code': 'AUD', 'position': 'before', 'decimal_places': 2},
    'AED': {'symbol': 'د.إ', 'name': 'UAE Dirham', 'code': 'AED', 'position': 'before', 'decimal_places': 2},
    'BHD': {'symbol': '.د.ب', 'name': 'Bahraini Dinar', 'code': 'BHD', 'position': 'before', 'decimal_places': 3},
    'SGD': {'symbol': 'S$', 'name': 'Singapore Dollar', 'code': 'SGD', 'position': 'before', 'decimal_places': 2},
    'NZD': {'symbol': 'NZ$', 'name': 'New Zealand Dollar', 'code': 'NZD', 'position': 'before', 'decimal_places': 2},
    'ZAR': {'symbol': 'R', 'name': 'South African Rand', 'code': 'ZAR', 'position': 'before', 'decimal_places': 2},
    'MYR': {'symbol': 'RM', 'name': 'Malaysian Ringgit', 'code': 'MYR', 'position': 'before', 'decimal_places': 2},
    'QAR': {'symbol': 'ر.ق', 'name': 'Qatari Riyal', 'code': 'QAR', 'position': 'before', 'decimal_places': 2},
    'SAR': {'symbol': 'ر.س', 'name': 'Saudi Riyal', 'code': 'SAR', 'position': 'before', 'decimal_places': 2},
    'INR': {'symbol': '₹', 'name': 'Indian Rupee', 'code': 'INR', 'position': 'before', 'decimal_places': 2},
}


def _normalize(currency: Optional[str]) -> str:
    return (currency or DEFAULT_CURRENCY).upper()


def get_currency_symbol(currency: Optional[str]) -> str:
    """Symbol for a currency code, '£' when unknown."""
    info = CURRENCY_MAP.get(_normalize(currency))
    return info['symbol'] if info else '£'


def get_currency_info(currency: Optional[str]) -> Dict[str, Any]:
    """Full currency information, GBP when unknown."""
    return CURRENCY_MAP.get(_normalize(currency), CURRENCY_MAP[DEFAULT_CURRENCY])


def get_currency_name(currency: Optional[str]) -> str:
    info = CURRENCY_MAP.get(_normalize(currency))
    return info['name'] if info else 'British Pound'


def is_valid_currency(currency: Optional[str]) -> bool:
    if not currency:
        return False
    return currency.upper() in CURRENCY_MAP


def get_supported_currencies() -> List[str]:
    return list(CURRENCY_MAP.keys())


def format_amount(
    amount: float,
    min_fraction_digits: int,
    max_fraction_digits: int
) -> str:
    """
    Format a number with grouping and a bounded number of decimals.

    Rounds half away from zero to max_fraction_digits, then drops trailing
    zeros while more than min_fraction_digits decimals remain.
    """
    rounded = Decimal(str(amount)).quantize(Decimal(1).scaleb(-max_fraction_digits), rounding=ROUND_HALF_UP)
    formatted = f'{rounded:,.{max_fraction_digits}f}'
    if max_fraction_digits > min_fraction_digits and '.' in formatted:
        whole, fraction = formatted.split('.')
        while len(fraction) > min_fraction_digits and fraction.endswith('0'):
            fraction = fraction[:-1]
        formatted = f'{whole}.{fraction}' if fraction else whole
    return formatted


def format_currency_with_symbol(
    amount: float,
    currency: Optional[str] = DEFAULT_CURRENCY,
    min_fraction_digits: int = None,
    max_fraction_digits: int = None
) -> str:
    """
    Format an amount with the currency's symbol.

        format_currency_with_symbol(1234.5, 'GBP')  -> '£1,234.50'
        format_currency_with_symbol(12, 'BHD')      -> '.د.ب12.000'
    """
    info = get_currency_info(currency)
    places = info['decimal_places']
    min_digits = places if min_fraction_digits is None else min_fraction_digits
    max_digits = places if max_fraction_digits is None else max_fraction_digits
    max_digits = max(max_digits, min_digits)

    formatted = format_amount(amount, min_digits, max_digits)

    if info['position'] == 'before':
        return f"{info['symbol']}{formatted}"
    return f"{formatted} {info['symbol']}"


def parse_preferences(preferences: Any) -> Dict[str, Any]:
    """
    Normalize stored client preferences into a dict.

    Preferences may be stored as a dict or a JSON string. Invalid JSON and
    non-object values give an empty dict.
    """
    if not preferences:
        return {}
    if isinstance(preferences, dict):
        return dict(preferences)
    if isinstance(preferences, str):
        try:
            parsed = json.loads(preferences)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def get_client_preferred_currency(client: Any, default_currency: str = DEFAULT_CURRENCY) -> str:
    """
    Client's preferred currency code, falling back to default_currency.

    Accepts a Client model, a dict with a 'preferences' key, or None.
    """
    fallback = (default_currency or DEFAULT_CURRENCY).upper()

    if client is None:
        return fallback
    if isinstance(client, dict):
        raw = client.get('preferences')
    else:
        raw = getattr(client, 'preferences', None)

    prefs = parse_preferences(raw)
    preferred = prefs.get('preferred_currency') or prefs.get('currency')
    if isinstance(preferred, str) and is_valid_currency(preferred):
        return preferred.upper()

    return fallback
