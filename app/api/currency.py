"""
Currency endpoints: supported currencies and display conversion.
"""
import math

from flask import Blueprint, request, jsonify

from ..middleware.rate_limit import ratelimit_api
from ..services.currency_service import CurrencyService
from ..utils.currency import is_valid_currency
from ..utils.errors import ErrorCode, bad_request

currency_bp = Blueprint('currency', __name__)


@currency_bp.route('/supported', methods=['GET'])
def supported():
    return jsonify({'currencies': CurrencyService.get_supported_currencies()})


@currency_bp.route('/convert', methods=['GET'])
@ratelimit_api
def convert():
    """
    Query params:
        amount: number (required)
        from: currency code (required)
        to: currency code (required)
    """
    from_currency = (request.args.get('from') or '').upper()
    to_currency = (request.args.get('to') or '').upper()
    amount = request.args.get('amount', type=float)

    if amount is None or not math.isfinite(amount):
        return bad_request('amount must be a number', ErrorCode.VALIDATION_ERROR)
    if not is_valid_currency(from_currency) or not is_valid_currency(to_currency):
        return bad_request('Unsupported currency', ErrorCode.VALIDATION_ERROR)

    result = CurrencyService().convert_currency(amount, from_currency, to_currency)
    result['formatted'] = CurrencyService.format_currency(result['converted_amount'], to_currency)
    return jsonify(result)
