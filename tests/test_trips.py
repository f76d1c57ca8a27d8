"""
Tests for trips: tabs, enrichment, detail, and customer edits.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.extensions import db
from app.models import Booking, BookingFlight, Event, Redemption
from app.services.points_service import PointsService
from app.services.trip_service import TripService, event_location, map_booking_status
from app.utils.exceptions import BookingNotFoundError, NotFoundError, ValidationError


def add_booking(client, reference, status='confirmed', start_in_days=30, length=3, **kwargs):
    start = datetime.now() + timedelta(days=start_in_days)
    event = Event(name=f'Event {reference}', location='Monaco',
                  start_date=start, end_date=start + timedelta(days=length))
    booking = Booking(client_id=client.id, event=event, booking_reference=reference, status=status,
                      total_price=Decimal('1000'), currency='GBP', **kwargs)
    db.session.add_all([event, booking])
    db.session.commit()
    return booking


FLIGHT = {
    'direction': 'outbound',
    'airline_code': 'ba',
    'flight_number': 'ba107',
    'departure_airport': 'lhr',
    'arrival_airport': 'auh',
    'departure_datetime': '2025-11-20T09:30',
}


class TestStatusMapping:

    def test_map_booking_status(self):
        assert map_booking_status('draft') == 'pending'
        assert map_booking_status('pending_payment') == 'pending'
        assert map_booking_status('confirmed') == 'confirmed'
        assert map_booking_status('completed') == 'completed'
        assert map_booking_status('refunded') == 'cancelled'

    def test_event_location_fallbacks(self, app, sample_booking):
        assert event_location(sample_booking.event) == 'Abu Dhabi, UAE'
        assert event_location(Event(name='x', location='Silverstone')) == 'Silverstone'
        assert event_location(None) == 'Location TBD'


class TestTripTabs:
    """Tests for TripService.list_trips."""

    def test_tabs_and_counts(self, app, loyalty_settings, sample_client):
        add_booking(sample_client, 'UP-2', start_in_days=60)
        add_booking(sample_client, 'UP-1', status='provisional', start_in_days=10)
        add_booking(sample_client, 'PAST-1', status='completed', start_in_days=-30)
        add_booking(sample_client, 'CXL-1', status='cancelled', start_in_days=20)

        service = TripService(sample_client)
        upcoming = service.list_trips('upcoming')

        assert upcoming['counts'] == {'upcoming': 2, 'past': 1, 'cancelled': 1}
        assert [t['booking_reference'] for t in upcoming['trips']] == ['UP-1', 'UP-2']
        assert upcoming['trips'][0]['booking_status'] == 'pending'
        assert service.list_trips('past')['trips'][0]['booking_reference'] == 'PAST-1'
        assert service.list_trips('cancelled')['trips'][0]['booking_reference'] == 'CXL-1'

    def test_event_ending_today_is_neither_upcoming_nor_past(self, app, loyalty_settings, sample_client):
        add_booking(sample_client, 'NOW-1', start_in_days=-2, length=2)

        counts = TripService(sample_client).list_trips()['counts']
        assert counts['upcoming'] == 0
        assert counts['past'] == 0

    def test_unknown_tab_defaults_to_upcoming(self, app, loyalty_settings, sample_booking, sample_client):
        result = TripService(sample_client).list_trips('archived')
        assert result['tab'] == 'upcoming'
        assert len(result['trips']) == 1

    def test_soft_deleted_hidden(self, app, loyalty_settings, sample_booking, sample_client):
        sample_booking.deleted_at = datetime.utcnow()
        db.session.commit()
        assert TripService(sample_client).list_trips()['counts']['upcoming'] == 0

    def test_other_clients_bookings_hidden(self, app, loyalty_settings, sample_booking, make_client):
        other = make_client('other@example.com')
        assert TripService(other).list_trips()['trips'] == []


class TestTripEnrichment:
    """Tests for loyalty fields on trips."""

    def test_points_from_ledger_when_column_empty(self, app, loyalty_settings, sample_booking, sample_client):
        PointsService().award_booking_points(sample_booking)
        sample_booking.points_earned = None
        db.session.commit()

        trip = TripService(sample_client).get_trip(sample_booking.id)
        assert trip['points_earned'] == 1500
        assert trip['earn_transaction_id'] is not None

    def test_redemption_fills_points_used(self, app, loyalty_settings, sample_booking, sample_client):
        db.session.add(Redemption(client_id=sample_client.id, booking_id=sample_booking.id,
                                  points_redeemed=200, discount_amount=Decimal('200'), status='applied'))
        db.session.commit()

        trip = TripService(sample_client).get_trip(sample_booking.id)
        assert trip['points_used'] == 200
        assert trip['discount_applied'] == 200.0

    def test_first_loyalty_booking_flag(self, app, loyalty_settings, sample_booking, sample_client):
        sample_client.first_loyalty_booking_at = sample_booking.confirmed_at
        db.session.commit()

        trip = TripService(sample_client).get_trip(sample_booking.id)
        assert trip['is_first_loyalty_booking'] is True

    def test_detail_includes_travelers(self, app, loyalty_settings, sample_booking, sample_client):
        trip = TripService(sample_client).get_trip(sample_booking.id)

        assert trip['event_location'] == 'Abu Dhabi, UAE'
        assert trip['travelers'][0]['is_lead_traveler'] is True
        assert trip['total_amount'] == 1500.0

    def test_detail_for_missing_booking(self, app, loyalty_settings, sample_client):
        with pytest.raises(BookingNotFoundError):
            TripService(sample_client).get_trip('missing')


class TestTravelerUpdates:
    """Tests for TripService.update_traveler."""

    def test_update_traveler(self, app, loyalty_settings, sample_booking, sample_client):
        traveler = sample_booking.travelers[0]

        updated = TripService(sample_client).update_traveler(sample_booking.id, traveler.id, {
            'phone': '+44 7123 456789',
            'date_of_birth': '1990-04-12',
            'dietary_restrictions': '  ',
            'special_requests': 'Window seat',
        })

        assert updated.phone == '+44 7123 456789'
        assert updated.date_of_birth.isoformat() == '1990-04-12'
        assert updated.dietary_restrictions is None
        assert updated.special_requests == 'Window seat'
        assert updated.first_name == 'Jane'

    def test_invalid_fields_reported(self, app, loyalty_settings, sample_booking, sample_client):
        traveler = sample_booking.travelers[0]

        with pytest.raises(ValidationError) as exc:
            TripService(sample_client).update_traveler(sample_booking.id, traveler.id, {
                'first_name': '',
                'email': 'bad',
                'phone': '12',
                'date_of_birth': 'yesterday',
            })

        assert set(exc.value.errors) == {'first_name', 'email', 'phone', 'date_of_birth'}

    def test_non_string_fields_rejected(self, app, loyalty_settings, sample_booking, sample_client):
        traveler = sample_booking.travelers[0]

        with pytest.raises(ValidationError) as exc:
            TripService(sample_client).update_traveler(sample_booking.id, traveler.id, {
                'phone': 447123456789,
                'first_name': ['Jane'],
            })

        assert exc.value.errors == {
            'phone': 'Phone must be text',
            'first_name': 'First name must be text',
        }
        assert traveler.first_name == 'Jane'


class TestCustomerFlights:
    """Tests for TripService.save_flight."""

    def test_outbound_flight_created(self, app, loyalty_settings, sample_booking, sample_client):
        flight = TripService(sample_client).save_flight(sample_booking.id, FLIGHT)

        assert flight.flight_type == 'customer'
        assert flight.outbound_airline_code == 'BA'
        details = flight.flight_details
        assert details['origin'] == 'LHR'
        assert details['outboundSegments'][0]['flightNumber'] == 'BA107'
        assert details['returnSegments'] == []

    def test_return_leg_added_to_same_row(self, app, loyalty_settings, sample_booking, sample_client):
        service = TripService(sample_client)
        service.save_flight(sample_booking.id, FLIGHT)
        service.save_flight(sample_booking.id, {
            **FLIGHT,
            'direction': 'return',
            'flight_number': 'BA108',
            'departure_airport': 'AUH',
            'arrival_airport': 'LHR',
            'departure_datetime': '2025-11-24',
        })

        flight = BookingFlight.query.filter_by(booking_id=sample_booking.id).one()
        assert flight.inbound_airline_code == 'BA'
        assert len(flight.flight_details['outboundSegments']) == 1
        assert flight.flight_details['returnDate'] == '2025-11-24'

    def test_flight_validation(self, app, loyalty_settings, sample_booking, sample_client):
        with pytest.raises(ValidationError) as exc:
            TripService(sample_client).save_flight(sample_booking.id, {'direction': 'sideways'})

        assert {'direction', 'airline_code', 'flight_number', 'departure_airport',
                'arrival_airport', 'departure_datetime'} <= set(exc.value.errors)

    def test_flight_non_string_fields(self, app, loyalty_settings, sample_booking, sample_client):
        with pytest.raises(ValidationError) as exc:
            TripService(sample_client).save_flight(sample_booking.id, {**FLIGHT, 'flight_number': 107})

        assert exc.value.errors == {'flight_number': 'Flight number required'}

    def test_package_flight_not_editable(self, app, loyalty_settings, sample_booking, sample_client):
        package = BookingFlight(booking_id=sample_booking.id, flight_type='package', flight_details={})
        db.session.add(package)
        db.session.commit()

        with pytest.raises(NotFoundError) as exc:
            TripService(sample_client).save_flight(sample_booking.id, FLIGHT, flight_id=package.id)
        assert exc.value.code == 'FLIGHT_NOT_FOUND'


class TestTripsAPI:
    """Tests for /api/trips endpoints."""

    def test_list_requires_auth(self, client):
        assert client.get('/api/trips').status_code == 401

    def test_list_trips(self, client, loyalty_settings, auth_headers, sample_booking):
        response = client.get('/api/trips?tab=upcoming', headers=auth_headers)
        assert response.status_code == 200
        data = response.get_json()
        assert data['counts']['upcoming'] == 1
        assert data['trips'][0]['booking_reference'] == 'BK-1001'

    def test_awarded_points_refresh_cached_list(self, client, loyalty_settings, auth_headers, sample_booking):
        before = client.get('/api/trips', headers=auth_headers).get_json()
        assert before['trips'][0]['points_earned'] == 0

        PointsService().award_booking_points(sample_booking)

        after = client.get('/api/trips', headers=auth_headers).get_json()
        assert after['trips'][0]['points_earned'] == 1500

    def test_detail_not_found(self, client, loyalty_settings, auth_headers):
        response = client.get('/api/trips/does-not-exist', headers=auth_headers)
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'BOOKING_NOT_FOUND'

    def test_traveler_edit_refreshes_cached_detail(self, client, loyalty_settings, auth_headers, sample_booking):
        traveler_id = sample_booking.travelers[0].id
        url = f'/api/trips/{sample_booking.id}'

        before = client.get(url, headers=auth_headers).get_json()
        assert before['travelers'][0]['special_requests'] is None

        response = client.put(f'{url}/travelers/{traveler_id}', headers=auth_headers,
                              json={'special_requests': 'Late check-in'})
        assert response.status_code == 200

        after = client.get(url, headers=auth_headers).get_json()
        assert after['travelers'][0]['special_requests'] == 'Late check-in'

    def test_traveler_edit_validation(self, client, loyalty_settings, auth_headers, sample_booking):
        traveler_id = sample_booking.travelers[0].id
        response = client.put(f'/api/trips/{sample_booking.id}/travelers/{traveler_id}',
                              headers=auth_headers, json={'email': 'bad'})
        assert response.status_code == 400
        assert response.get_json()['error']['errors'] == {'email': 'Invalid email address'}

    def test_traveler_edit_numeric_phone_is_400(self, client, loyalty_settings, auth_headers, sample_booking):
        traveler_id = sample_booking.travelers[0].id
        response = client.put(f'/api/trips/{sample_booking.id}/travelers/{traveler_id}',
                              headers=auth_headers, json={'phone': 447123456789})
        assert response.status_code == 400
        assert response.get_json()['error']['errors'] == {'phone': 'Phone must be text'}

    def test_flight_endpoints(self, client, loyalty_settings, auth_headers, sample_booking):
        created = client.post(f'/api/trips/{sample_booking.id}/flights', headers=auth_headers, json=FLIGHT)
        assert created.status_code == 201
        flight_id = created.get_json()['flight']['id']

        updated = client.put(f'/api/trips/{sample_booking.id}/flights/{flight_id}', headers=auth_headers,
                             json={**FLIGHT, 'flight_number': 'BA117'})
        assert updated.status_code == 200
        segment = updated.get_json()['flight']['flight_details']['outboundSegments'][0]
        assert segment['flightNumber'] == 'BA117'
