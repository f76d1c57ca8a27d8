"""
Trip Service for the loyalty portal.

Read side of bookings (list with tabs, detail) plus the two things a customer
may change themselves: traveller details and their own flight information.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..extensions import db
from ..models import (
    Booking,
    BookingFlight,
    BookingTraveler,
    Client,
    LoyaltyTransaction,
    Redemption,
    SourceType,
)
from ..utils.cache_invalidation import invalidate_booking_caches
from ..utils.dates import parse_calendar_date, parse_date_of_birth, start_of_today
from ..utils.exceptions import BookingNotFoundError, NotFoundError, ValidationError
from ..utils.phone import is_valid_phone
from ..utils.validation import is_valid_email

logger = logging.getLogger(__name__)

TABS = ('upcoming', 'past', 'cancelled')

EPOCH = datetime(1970, 1, 1)

# Max lengths for customer-editable traveller fields
TRAVELER_FIELD_LIMITS = {
    'first_name': 100,
    'last_name': 100,
    'phone': 50,
    'address_line1': 200,
    'address_line2': 200,
    'city': 100,
    'state': 100,
    'postal_code': 20,
    'country': 100,
    'dietary_restrictions': 500,
    'accessibility_needs': 500,
    'special_requests': 1000,
}

FLIGHT_DIRECTIONS = ('outbound', 'return')


def map_booking_status(status: Optional[str]) -> str:
    """Collapse back-office statuses into the four the portal shows."""
    if status in ('cancelled', 'refunded'):
        return 'cancelled'
    if status == 'completed':
        return 'completed'
    if status == 'confirmed':
        return 'confirmed'
    return 'pending'  # draft, provisional, pending_payment


def event_location(event) -> str:
    if event is None:
        return 'Location TBD'
    venue = event.venue
    if venue:
        return ', '.join(p for p in (venue.city, venue.country) if p) or venue.name or 'Location TBD'
    return event.location or 'Location TBD'


def _num(value):
    if isinstance(value, Decimal):
        return float(value)
    return value


def _iso(value):
    return value.isoformat() if value else None


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ''


class TripService:
    """
    Usage:
        service = TripService(client)

        trips = service.list_trips('upcoming')
        detail = service.get_trip(booking_id)
    """

    def __init__(self, client: Client):
        self.client = client

    def _bookings_query(self):
        return Booking.query.filter(
            Booking.client_id == self.client.id,
            Booking.deleted_at.is_(None)
        )

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self._bookings_query().filter(Booking.id == booking_id).first()
        if not booking:
            raise BookingNotFoundError(booking_id)
        return booking

    # ==================== Enrichment ====================

    def _loyalty_lookups(self, booking_ids: List[str]):
        """Purchase transactions and redemptions by booking id, fetched in two queries."""
        earn = {}
        redemptions = {}
        if not booking_ids:
            return earn, redemptions

        for tx in LoyaltyTransaction.query.filter(
            LoyaltyTransaction.client_id == self.client.id,
            LoyaltyTransaction.source_type == SourceType.PURCHASE,
            LoyaltyTransaction.source_reference_id.in_(booking_ids)
        ).all():
            earn.setdefault(tx.source_reference_id, tx)

        for redemption in Redemption.query.filter(Redemption.booking_id.in_(booking_ids)).all():
            redemptions.setdefault(redemption.booking_id, redemption)

        return earn, redemptions

    def _enrich(self, booking: Booking, earn_tx=None, redemption=None) -> Dict[str, Any]:
        event = booking.event

        if booking.points_earned is not None:
            points_earned = booking.points_earned
        else:
            points_earned = earn_tx.points if earn_tx else 0

        if booking.points_used is not None:
            points_used = booking.points_used
        else:
            points_used = redemption.points_redeemed if redemption else 0

        if booking.discount_applied is not None:
            discount_applied = _num(booking.discount_applied)
        else:
            discount_applied = _num(redemption.discount_amount) if redemption else 0

        first_at = self.client.first_loyalty_booking_at
        is_first = bool(booking.is_first_loyalty_booking) or bool(
            first_at and booking.confirmed_at and booking.confirmed_at == first_at
        )

        return {
            'id': booking.id,
            'booking_id': booking.id,
            'booking_reference': booking.booking_reference,
            'client_id': booking.client_id,
            'event_id': booking.event_id,
            'quote_id': booking.quote_id,
            'event_name': event.name if event else None,
            'event_start_date': _iso(event.start_date) if event else None,
            'event_end_date': _iso(event.end_date) if event else None,
            'event_image': event.event_image if event else None,
            'event_location': event_location(event),
            'total_amount': _num(booking.total_price),
            'currency': booking.currency or 'GBP',
            'discount_applied': discount_applied,
            'points_earned': points_earned,
            'points_used': points_used,
            'is_first_loyalty_booking': is_first,
            'earn_transaction_id': earn_tx.id if earn_tx else None,
            'spend_transaction_id': redemption.transaction_id if redemption else None,
            'booking_status': map_booking_status(booking.status),
            'booked_at': _iso(booking.created_at),
            'confirmed_at': _iso(booking.confirmed_at),
            'cancelled_at': _iso(booking.cancelled_at),
            'created_at': _iso(booking.created_at),
            'updated_at': _iso(booking.updated_at),
        }

    def get_enriched_bookings(self) -> List[Dict[str, Any]]:
        bookings = self._bookings_query().order_by(Booking.created_at.desc()).all()
        earn, redemptions = self._loyalty_lookups([b.id for b in bookings])
        return [self._enrich(b, earn.get(b.id), redemptions.get(b.id)) for b in bookings]

    # ==================== Tabs ====================

    @staticmethod
    def in_tab(trip: Dict[str, Any], tab: str, today: datetime) -> bool:
        status = trip['booking_status']
        if tab == 'upcoming':
            start = parse_calendar_date(trip['event_start_date'])
            return bool(start) and start >= today and status in ('confirmed', 'pending')
        if tab == 'past':
            end = parse_calendar_date(trip['event_end_date'])
            return bool(end) and end < today and status in ('confirmed', 'completed')
        if tab == 'cancelled':
            return status == 'cancelled'
        return False

    @staticmethod
    def sort_tab(trips: List[Dict[str, Any]], tab: str) -> List[Dict[str, Any]]:
        def start(trip):
            return parse_calendar_date(trip['event_start_date']) or EPOCH

        if tab == 'upcoming':
            return sorted(trips, key=start)
        if tab == 'past':
            return sorted(trips, key=start, reverse=True)
        if tab == 'cancelled':
            return sorted(
                trips,
                key=lambda t: parse_calendar_date(t['updated_at'] or t['created_at']) or EPOCH,
                reverse=True
            )
        return trips

    def list_trips(self, tab: str = 'upcoming', now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Trips for one tab, sorted, with counts for every tab.
        """
        if tab not in TABS:
            tab = 'upcoming'

        today = start_of_today(now)
        trips = self.get_enriched_bookings()

        by_tab = {name: [t for t in trips if self.in_tab(t, name, today)] for name in TABS}

        return {
            'tab': tab,
            'counts': {name: len(items) for name, items in by_tab.items()},
            'trips': self.sort_tab(by_tab[tab], tab),
        }

    def upcoming_trips(self, limit: int = 3, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        return self.list_trips('upcoming', now=now)['trips'][:limit]

    def count_bookings(self) -> int:
        return self._bookings_query().count()

    # ==================== Detail ====================

    def get_trip(self, booking_id: str) -> Dict[str, Any]:
        booking = self._get_booking(booking_id)
        earn, redemptions = self._loyalty_lookups([booking.id])

        data = self._enrich(booking, earn.get(booking.id), redemptions.get(booking.id))
        data['event'] = booking.event.to_dict() if booking.event else None
        data['travelers'] = [t.to_dict() for t in booking.travelers]
        data['payments'] = [p.to_dict() for p in booking.payments]
        data['components'] = [c.to_dict() for c in booking.components]
        data['flights'] = [f.to_dict() for f in booking.flights]
        return data

    # ==================== Customer edits ====================

    def update_traveler(self, booking_id: str, traveler_id: int, data: Dict[str, Any]) -> BookingTraveler:
        """
        Update a traveller on one of the client's own bookings.

        Empty optional fields are stored as NULL.
        """
        booking = self._get_booking(booking_id)
        traveler = BookingTraveler.query.filter_by(id=traveler_id, booking_id=booking.id).first()
        if not traveler:
            raise NotFoundError('Traveler', traveler_id)

        values = {}
        errors = {}
        for field in BookingTraveler.EDITABLE_FIELDS:
            if field not in data:
                values[field] = getattr(traveler, field) or None
                continue
            raw = data[field]
            if raw is not None and not isinstance(raw, str):
                errors[field] = f"{field.replace('_', ' ').capitalize()} must be text"
                raw = ''
            values[field] = (raw or '').strip() or None

        if not values['first_name']:
            errors.setdefault('first_name', 'First name is required')
        if not values['last_name']:
            errors.setdefault('last_name', 'Last name is required')
        for field, limit in TRAVELER_FIELD_LIMITS.items():
            if isinstance(values[field], str) and len(values[field]) > limit:
                errors.setdefault(field, f"{field.replace('_', ' ').capitalize()} is too long")
        if values['email'] and not is_valid_email(values['email']):
            errors['email'] = 'Invalid email address'
        if values['phone'] and not is_valid_phone(values['phone']):
            errors['phone'] = 'Invalid phone number'

        dob = None
        if values['date_of_birth']:
            dob = parse_date_of_birth(str(values['date_of_birth']))
            if not dob:
                errors['date_of_birth'] = 'Invalid date of birth'

        if errors:
            raise ValidationError('Please fix the highlighted fields.', errors=errors)

        values['date_of_birth'] = dob
        for field, value in values.items():
            setattr(traveler, field, value)
        traveler.updated_at = datetime.utcnow()
        db.session.commit()

        invalidate_booking_caches(self.client.user_id)
        logger.info('Traveler %s on booking %s updated by client %s', traveler.id, booking.id, self.client.id)
        return traveler

    def save_flight(self, booking_id: str, data: Dict[str, Any], flight_id: Optional[int] = None) -> BookingFlight:
        """
        Create or update the customer's own flight details for one direction.
        """
        booking = self._get_booking(booking_id)

        direction = _text(data, 'direction').lower()
        airline_code = _text(data, 'airline_code').upper()
        flight_number = _text(data, 'flight_number').upper()
        departure_airport = _text(data, 'departure_airport').upper()
        arrival_airport = _text(data, 'arrival_airport').upper()
        departure_datetime = _text(data, 'departure_datetime')
        arrival_datetime = _text(data, 'arrival_datetime') or None

        errors = {}
        if direction not in FLIGHT_DIRECTIONS:
            errors['direction'] = 'Direction must be outbound or return'
        if not airline_code:
            errors['airline_code'] = 'Airline required'
        if not flight_number:
            errors['flight_number'] = 'Flight number required'
        if len(departure_airport) != 3 or not departure_airport.isalpha():
            errors['departure_airport'] = 'Departure airport code required'
        if len(arrival_airport) != 3 or not arrival_airport.isalpha():
            errors['arrival_airport'] = 'Arrival airport code required'
        if not departure_datetime or not parse_calendar_date(departure_datetime):
            errors['departure_datetime'] = 'Departure date/time required'
        if arrival_datetime and not parse_calendar_date(arrival_datetime):
            errors['arrival_datetime'] = 'Invalid arrival date/time'
        if errors:
            raise ValidationError('Please fix the highlighted fields.', errors=errors)

        if flight_id is not None:
            flight = BookingFlight.query.filter_by(
                id=flight_id, booking_id=booking.id, flight_type='customer'
            ).first()
            if not flight:
                raise NotFoundError('Flight', flight_id)
        else:
            flight = BookingFlight.query.filter_by(booking_id=booking.id, flight_type='customer').first()
            if not flight:
                flight = BookingFlight(booking_id=booking.id, flight_type='customer', quantity=1,
                                       unit_price=Decimal('0'), total_price=Decimal('0'))
                db.session.add(flight)

        segment = {
            'departureCode': departure_airport,
            'arrivalCode': arrival_airport,
            'departureDateTime': departure_datetime,
            'arrivalDateTime': arrival_datetime,
            'flightNumber': flight_number,
            'marketingAirlineCode': airline_code,
        }

        details = dict(flight.flight_details or {})
        if direction == 'outbound':
            details['outboundSegments'] = [segment]
            details['origin'] = departure_airport
            details['destination'] = arrival_airport
            details['departureDate'] = departure_datetime
            flight.outbound_airline_code = airline_code
        else:
            details['returnSegments'] = [segment]
            details['returnDate'] = departure_datetime
            flight.inbound_airline_code = airline_code
        details.setdefault('outboundSegments', [])
        details.setdefault('returnSegments', [])

        # Reassign so the JSON column is marked dirty
        flight.flight_details = details
        flight.updated_at = datetime.utcnow()
        db.session.commit()

        invalidate_booking_caches(self.client.user_id)
        logger.info('Customer flight %s saved on booking %s (%s)', flight.id, booking.id, direction)
        return flight
