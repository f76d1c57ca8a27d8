"""
Airport and airline search used by the flight details form.
"""
from flask import Blueprint, request, jsonify

from ..middleware.rate_limit import ratelimit_api
from ..services.search_service import DEFAULT_LIMIT, search_airlines, search_airports

search_bp = Blueprint('search', __name__)

MAX_LIMIT = 200


def _paging():
    limit = request.args.get('limit', DEFAULT_LIMIT, type=int) or DEFAULT_LIMIT
    offset = request.args.get('offset', 0, type=int) or 0
    return min(max(1, limit), MAX_LIMIT), max(0, offset)


@search_bp.route('/airports/search', methods=['GET'])
@ratelimit_api
def airports():
    """
    Query params:
        q: IATA code, name, or city fragment
        limit: default 50
        offset: default 0
    """
    limit, offset = _paging()
    return jsonify(search_airports(request.args.get('q', '').strip(), limit, offset))


@search_bp.route('/airlines/search', methods=['GET'])
@ratelimit_api
def airlines():
    limit, offset = _paging()
    return jsonify(search_airlines(request.args.get('q', '').strip(), limit, offset))
