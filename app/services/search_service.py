"""
Airport and airline lookup for the flight details form.
"""
from typing import Any, Dict

from sqlalchemy import or_

from ..models import Airline, AirlineCode, Airport

DEFAULT_LIMIT = 50


def _page(data, count: int, limit: int, offset: int) -> Dict[str, Any]:
    return {'data': data, 'count': count, 'limit': limit, 'offset': offset}


def _like(value: str) -> str:
    return f'%{value}%'


def search_airports(query: str = '', limit: int = DEFAULT_LIMIT, offset: int = 0) -> Dict[str, Any]:
    """Match on IATA code, name, or city (case-insensitive), ordered by name."""
    q = Airport.query
    if query:
        pattern = _like(query)
        q = q.filter(or_(
            Airport.iata_code.ilike(pattern),
            Airport.name.ilike(pattern),
            Airport.city.ilike(pattern),
        ))

    count = q.count()
    airports = q.order_by(Airport.name).offset(offset).limit(limit).all()
    return _page([a.to_dict() for a in airports], count, limit, offset)


def search_airlines(query: str = '', limit: int = DEFAULT_LIMIT, offset: int = 0) -> Dict[str, Any]:
    """
    Without a query, a plain page of airlines by name. With one, airlines whose
    name matches plus airlines with a matching IATA/ICAO code, deduplicated.
    """
    if not query:
        q = Airline.query
        count = q.count()
        airlines = q.order_by(Airline.name).offset(offset).limit(limit).all()
        return _page([a.to_dict() for a in airlines], count, limit, offset)

    pattern = _like(query)
    by_name = Airline.query.filter(Airline.name.ilike(pattern)).all()
    by_code = Airline.query.join(AirlineCode).filter(or_(
        AirlineCode.iata_code.ilike(pattern),
        AirlineCode.icao_code.ilike(pattern),
    )).all()

    seen = set()
    combined = []
    for airline in by_name + by_code:
        if airline.id in seen:
            continue
        seen.add(airline.id)
        combined.append(airline)

    combined.sort(key=lambda a: a.name.lower())
    page = combined[offset:offset + limit]
    return _page([a.to_dict() for a in page], len(combined), limit, offset)
