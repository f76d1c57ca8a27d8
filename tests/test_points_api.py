"""
Tests for the Points and Dashboard API endpoints.

- GET /api/points overview
- GET /api/points/statement
- GET /api/points/redeem with currency conversion
- GET /api/points/earn
- POST /api/points/calculator/redemption
- GET /api/dashboard and its cache invalidation
"""
from unittest.mock import patch

from app.extensions import db
from app.models import SourceType, TransactionType
from app.services.points_service import PointsService
from app.services.referral_service import ReferralService


def award(client, points, source=SourceType.MANUAL_ADJUSTMENT):
    return PointsService().update_client_points(client.id, points, TransactionType.EARN, source)


class TestPointsOverview:
    """Tests for GET /api/points."""

    def test_requires_auth(self, client):
        assert client.get('/api/points').status_code == 401

    def test_overview(self, client, loyalty_settings, auth_headers, sample_client, sample_booking):
        PointsService().award_booking_points(sample_booking)
        award(sample_client, 50)

        response = client.get('/api/points', headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['summary']['points_balance'] == 1550
        assert data['summary']['usable_points'] == 1500
        assert data['summary']['next_threshold'] == 1600
        assert data['summary']['lifetime_points_earned'] == 1550
        assert data['bookings'] == {'total': 1, 'average_points_per_booking': 1500}
        assert data['referral']['link'].endswith(data['referral']['code'])
        assert data['expiring_points'] is None
        assert len(data['monthly_activity']) == 6
        assert data['history']['total'] == 2
        assert data['stats']['current_year']['purchase_points'] == 1500

    def test_statement_page_size_capped(self, client, loyalty_settings, auth_headers, sample_client):
        award(sample_client, 10)

        data = client.get('/api/points/statement?page_size=500', headers=auth_headers).get_json()

        assert data['page_size'] == 100
        assert data['points_balance'] == 10
        assert len(data['transactions']) == 1


class TestRedeemInfo:
    """Tests for GET /api/points/redeem."""

    def test_same_currency_needs_no_rates(self, client, loyalty_settings, auth_headers, sample_client):
        award(sample_client, 340)

        with patch('app.services.currency_service.requests.get') as mock_get:
            data = client.get('/api/points/redeem', headers=auth_headers).get_json()
            mock_get.assert_not_called()

        assert data['usable_points'] == 300
        assert data['discount']['converted_amount'] == 300
        assert data['discount']['formatted_converted'] == '£300.00'
        assert data['example']['points'] == 100
        assert data['total_saved']['converted_amount'] == 0

    def test_converts_to_preferred_currency(self, client, loyalty_settings, auth_headers, sample_client):
        sample_client.preferences = {'preferred_currency': 'USD'}
        db.session.commit()
        award(sample_client, 200)

        with patch('app.services.currency_service.requests.get') as mock_get:
            mock_get.return_value.ok = True
            mock_get.return_value.json.return_value = {'result': 'success', 'conversion_rates': {'USD': 1.25}}
            data = client.get('/api/points/redeem', headers=auth_headers).get_json()

        assert data['preferred_currency'] == 'USD'
        assert data['discount']['original_amount'] == 200
        # 1.25 plus the 2.5% markup
        assert round(data['discount']['converted_amount'], 2) == 256.25
        assert data['discount']['formatted_original'] == '£200.00'

    def test_conversion_failure_falls_back(self, client, loyalty_settings, auth_headers, sample_client):
        sample_client.preferences = {'preferred_currency': 'EUR'}
        db.session.commit()
        award(sample_client, 100)

        with patch('app.services.currency_service.requests.get') as mock_get:
            mock_get.return_value.ok = False
            mock_get.return_value.status_code = 503
            response = client.get('/api/points/redeem', headers=auth_headers)

        assert response.status_code == 200
        discount = response.get_json()['discount']
        assert discount['converted_amount'] == 100
        assert discount['rate'] == 1

    def test_malformed_rates_fall_back(self, client, loyalty_settings, auth_headers, sample_client):
        sample_client.preferences = {'preferred_currency': 'USD'}
        db.session.commit()
        award(sample_client, 100)

        with patch('app.services.currency_service.requests.get') as mock_get:
            mock_get.return_value.ok = True
            mock_get.return_value.json.return_value = {'result': 'success', 'conversion_rates': {'USD': '1.2'}}
            response = client.get('/api/points/redeem', headers=auth_headers)

        assert response.status_code == 200
        discount = response.get_json()['discount']
        assert discount['converted_amount'] == 100
        assert discount['formatted_converted'] == '£100.00'


class TestEarnAndCalculator:

    def test_earn_info(self, client, loyalty_settings, auth_headers, sample_booking):
        data = client.get('/api/points/earn', headers=auth_headers).get_json()

        assert data['points_per_currency_unit'] == 1.0
        assert data['total_bookings'] == 1
        assert data['total_referrals'] == 0
        assert data['referral_program_enabled'] is True

    def test_calculator(self, client, loyalty_settings, auth_headers):
        response = client.post('/api/points/calculator/redemption', headers=auth_headers,
                               json={'booking_amount': 2500, 'points': 400})
        assert response.get_json()['final_amount'] == 2100

    def test_calculator_rejects_non_numbers(self, client, loyalty_settings, auth_headers):
        response = client.post('/api/points/calculator/redemption', headers=auth_headers,
                               json={'booking_amount': 'lots', 'points': 400})
        assert response.status_code == 400

    def test_calculator_rejects_non_finite(self, client, loyalty_settings, auth_headers):
        for body in ('{"booking_amount": NaN, "points": 400}',
                     '{"booking_amount": "inf", "points": 400}',
                     '{"booking_amount": 100, "points": Infinity}'):
            response = client.post('/api/points/calculator/redemption', headers=auth_headers,
                                   data=body, content_type='application/json')
            assert response.status_code == 400

    def test_calculator_rejects_negative(self, client, loyalty_settings, auth_headers):
        response = client.post('/api/points/calculator/redemption', headers=auth_headers,
                               json={'booking_amount': 100, 'points': -5})
        assert response.status_code == 400
        assert response.get_json()['error']['errors'] == {'points': 'Points must be zero or more'}


class TestDashboard:
    """Tests for GET /api/dashboard."""

    def test_dashboard(self, client, loyalty_settings, auth_headers, sample_client, sample_booking):
        award(sample_client, 120)

        response = client.get('/api/dashboard', headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['greeting'] == {'first_name': 'Jane', 'member_since': 'Mar 2024'}
        assert data['points']['balance'] == 120
        assert data['points']['next_threshold'] == 200
        assert data['next_trip']['booking_reference'] == 'BK-1001'
        assert len(data['recent_activity']) == 1
        assert data['referrals']['referrer_bonus'] == 100
        assert data['unread_notifications'] == 0
        assert data['preferred_currency'] == 'GBP'

    def test_member_since_fallback(self, client, loyalty_settings, auth_headers, sample_client):
        sample_client.loyalty_enrolled_at = None
        db.session.commit()

        data = client.get('/api/dashboard', headers=auth_headers).get_json()
        assert data['greeting']['member_since'] == 'N/A'

    def test_points_change_refreshes_cached_dashboard(self, client, loyalty_settings, auth_headers, sample_client):
        first = client.get('/api/dashboard', headers=auth_headers).get_json()
        assert first['points']['balance'] == 0

        award(sample_client, 300)

        second = client.get('/api/dashboard', headers=auth_headers).get_json()
        assert second['points']['balance'] == 300

    def test_invite_refreshes_cached_referrals(self, client, loyalty_settings, auth_headers, sample_client):
        first = client.get('/api/dashboard', headers=auth_headers).get_json()
        assert first['referrals']['recent'] == []

        ReferralService().submit_invite(sample_client, 'pal@example.com')

        second = client.get('/api/dashboard', headers=auth_headers).get_json()
        assert second['referrals']['recent'][0]['referee_email'] == 'pal@example.com'

    def test_currency_switch_refreshes_cached_dashboard(self, client, loyalty_settings, auth_headers):
        client.get('/api/dashboard', headers=auth_headers)

        with patch('app.services.currency_service.requests.get') as mock_get:
            mock_get.return_value.ok = True
            mock_get.return_value.json.return_value = {'result': 'success', 'conversion_rates': {'EUR': 1.1}}
            client.put('/api/profile/preferences', headers=auth_headers, json={'preferred_currency': 'EUR'})
            data = client.get('/api/dashboard', headers=auth_headers).get_json()

        assert data['preferred_currency'] == 'EUR'
        assert data['points']['discount']['preferred_currency'] == 'EUR'

