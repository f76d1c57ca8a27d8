"""
Currency conversion service.

Fetches exchange rates from exchangerate-api.com (v6), caches them per base
currency, and converts amounts with a fixed markup applied to cover rate
movement between quote and payment.

API Documentation: https://www.exchangerate-api.com/docs/standard-requests
"""
import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

import requests
from flask import current_app

from ..utils.cache import cache, cache_key
from ..utils.currency import (
    CURRENCY_MAP,
    DEFAULT_CURRENCY,
    format_currency_with_symbol,
    get_client_preferred_currency,
)
from ..utils.exceptions import ExchangeRateError

logger = logging.getLogger(__name__)


def is_usable_rate(rate) -> bool:
    """A positive, finite number (bools are not rates)."""
    if isinstance(rate, bool) or not isinstance(rate, (int, float)):
        return False
    return math.isfinite(rate) and rate > 0


class CurrencyService:
    """
    Exchange rate lookup and conversion.

    Rates are cached for FX_CACHE_SECONDS per base currency, so a page that
    converts several amounts makes at most one API call.
    """

    DEFAULT_API_BASE = 'https://v6.exchangerate-api.com/v6'
    DEFAULT_MARKUP = 0.025
    DEFAULT_CACHE_SECONDS = 40 * 60
    REQUEST_TIMEOUT = 10

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        markup: Optional[float] = None,
        cache_seconds: Optional[int] = None
    ):
        config = current_app.config
        self.api_key = api_key if api_key is not None else config.get('EXCHANGE_RATE_API_KEY', '')
        self.api_base = (api_base or config.get('EXCHANGE_RATE_API_BASE') or self.DEFAULT_API_BASE).rstrip('/')
        self.markup = markup if markup is not None else config.get('FX_MARKUP', self.DEFAULT_MARKUP)
        self.cache_seconds = cache_seconds or config.get('FX_CACHE_SECONDS', self.DEFAULT_CACHE_SECONDS)

    @staticmethod
    def _rates_key(base_currency: str) -> str:
        return cache_key('fx_rates', base=base_currency.upper())

    def fetch_exchange_rates(self, base_currency: str = DEFAULT_CURRENCY) -> Dict[str, Any]:
        """
        Get the latest rates for a base currency.

        Returns:
            API payload: {result, base_code, conversion_rates: {code: rate}, ...}

        Raises:
            ExchangeRateError: API unreachable or returned a non-2xx status
        """
        base_currency = (base_currency or DEFAULT_CURRENCY).upper()
        key = self._rates_key(base_currency)

        cached = cache.get(key)
        if cached is not None:
            logger.debug('Using cached exchange rates for %s', base_currency)
            return cached

        if not self.api_key:
            raise ExchangeRateError('Exchange rate API key not configured')

        url = f'{self.api_base}/{self.api_key}/latest/{base_currency}'
        logger.info('Fetching exchange rates for %s', base_currency)

        try:
            response = requests.get(url, timeout=self.REQUEST_TIMEOUT)
        except requests.RequestException as e:
            logger.error('Error fetching exchange rates for %s: %s', base_currency, e)
            raise ExchangeRateError(f'Failed to fetch exchange rates: {e}', original_error=e)

        if not response.ok:
            logger.error('Exchange rate API returned %s for %s', response.status_code, base_currency)
            raise ExchangeRateError(f'Failed to fetch exchange rates: {response.status_code}')

        try:
            data = response.json()
        except ValueError as e:
            raise ExchangeRateError('Exchange rate API returned invalid JSON', original_error=e)

        if not isinstance(data, dict) or not isinstance(data.get('conversion_rates'), dict):
            logger.error('Exchange rate API returned an unexpected payload for %s', base_currency)
            raise ExchangeRateError('Exchange rate API returned an unexpected payload')

        cache.set(key, data, timeout=self.cache_seconds)
        return data

    def convert_currency(self, amount: float, from_currency: str, to_currency: str) -> Dict[str, Any]:
        """
        Convert an amount, applying the markup to the market rate.

        Returns:
            Dict with from_currency, to_currency, rate and adjusted_rate (both
            rounded to 3 dp), amount, and converted_amount (unrounded)

        Raises:
            ExchangeRateError: Rates unavailable or no rate for to_currency
        """
        from_currency = (from_currency or DEFAULT_CURRENCY).upper()
        to_currency = (to_currency or DEFAULT_CURRENCY).upper()

        if from_currency == to_currency:
            return {
                'from_currency': from_currency,
                'to_currency': to_currency,
                'rate': 1,
                'adjusted_rate': 1,
                'amount': amount,
                'converted_amount': amount,
            }

        rates = self.fetch_exchange_rates(from_currency)
        base_rate = rates['conversion_rates'].get(to_currency)
        if not is_usable_rate(base_rate):
            raise ExchangeRateError(f'Exchange rate not found for {to_currency}')

        adjusted_rate = base_rate * (1 + self.markup)

        return {
            'from_currency': from_currency,
            'to_currency': to_currency,
            'rate': round(base_rate, 3),
            'adjusted_rate': round(adjusted_rate, 3),
            'amount': amount,
            'converted_amount': amount * adjusted_rate,
        }

    @staticmethod
    def get_supported_currencies() -> List[Dict[str, str]]:
        return [
            {'code': code, 'name': info['name'], 'symbol': info['symbol']}
            for code, info in CURRENCY_MAP.items()
        ]

    @staticmethod
    def format_currency(amount: float, currency_code: str) -> str:
        """Symbol (or the code itself when unsupported) followed by the amount to 2 dp."""
        info = CURRENCY_MAP.get((currency_code or '').upper())
        symbol = info['symbol'] if info else currency_code
        rounded = Decimal(str(amount)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        return f'{symbol}{rounded:,.2f}'

    def clear_cache(self) -> None:
        cache.delete_many(*[self._rates_key(code) for code in CURRENCY_MAP])


def convert_discount_to_preferred_currency(
    amount: float,
    base_currency: str,
    preferred_currency: str,
    service: Optional[CurrencyService] = None
) -> Dict[str, Any]:
    """
    Convert a discount from the program's base currency for display.

    Never raises: when conversion fails the original amount is returned with
    a rate of 1.
    """
    base_currency = (base_currency or DEFAULT_CURRENCY).upper()
    preferred_currency = (preferred_currency or base_currency).upper()

    def unconverted():
        formatted = format_currency_with_symbol(amount, base_currency)
        return {
            'original_amount': amount,
            'converted_amount': amount,
            'original_currency': base_currency,
            'preferred_currency': preferred_currency,
            'rate': 1,
            'adjusted_rate': 1,
            'formatted_original': formatted,
            'formatted_converted': formatted,
        }

    if base_currency == preferred_currency:
        return unconverted()

    try:
        conversion = (service or CurrencyService()).convert_currency(amount, base_currency, preferred_currency)
    except Exception:
        logger.exception('Currency conversion %s->%s failed, showing base amount',
                         base_currency, preferred_currency)
        return unconverted()

    return {
        'original_amount': amount,
        'converted_amount': conversion['converted_amount'],
        'original_currency': base_currency,
        'preferred_currency': preferred_currency,
        'rate': conversion['rate'],
        'adjusted_rate': conversion['adjusted_rate'],
        'formatted_original': format_currency_with_symbol(amount, base_currency),
        'formatted_converted': format_currency_with_symbol(conversion['converted_amount'], preferred_currency),
    }


def format_discount_with_conversion(
    amount: float,
    base_currency: str,
    preferred_currency: str,
    converted_amount: Optional[float] = None
) -> str:
    """
    Show both currencies when they differ: '£100.00 (≈ $125.00)'.
    """
    if (base_currency or '').upper() == (preferred_currency or '').upper():
        return format_currency_with_symbol(amount, base_currency)

    base_formatted = format_currency_with_symbol(amount, base_currency)
    if converted_amount:
        preferred_formatted = format_currency_with_symbol(converted_amount, preferred_currency)
    else:
        preferred_formatted = format_currency_with_symbol(amount, preferred_currency)

    return f'{base_formatted} (≈ {preferred_formatted})'


def get_display_currency(client: Any, base_currency: str = DEFAULT_CURRENCY) -> str:
    """Client's preferred currency, else the program base currency."""
    return get_client_preferred_currency(client, base_currency)
