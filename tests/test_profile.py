"""
Tests for profile updates, display currency preferences, and password changes.
"""
from app.extensions import db
from app.services.profile_service import ProfileService


def profile_data(client, **overrides):
    data = {
        'client_id': client.id,
        'first_name': 'Janet',
        'last_name': 'Doe',
        'phone': '+44 7123 456789',
        'date_of_birth': '1988-02-29',
        'address': {'address_line1': '1 High Street', 'city': 'London', 'country': 'UK'},
    }
    data.update(overrides)
    return data


class TestProfileService:
    """Tests for ProfileService form states."""

    def test_update_profile(self, app, sample_user, sample_client):
        state = ProfileService(sample_user).update_profile(profile_data(sample_client))

        assert state == {'status': 'success', 'message': 'Profile updated successfully.', 'errors': {}}
        assert sample_client.first_name == 'Janet'
        assert sample_client.phone == '+447123456789'
        assert sample_client.date_of_birth.isoformat() == '1988-02-29'
        assert sample_client.address['city'] == 'London'
        assert sample_client.address['state'] is None

    def test_empty_address_stored_as_null(self, app, sample_user, sample_client):
        ProfileService(sample_user).update_profile(profile_data(sample_client, address={}))
        assert sample_client.address is None

    def test_validation_errors(self, app, sample_user, sample_client):
        state = ProfileService(sample_user).update_profile(
            profile_data(sample_client, first_name=' ', phone='123', date_of_birth='31/31/2000')
        )

        assert state['status'] == 'error'
        assert state['message'] == 'Please fix the highlighted fields.'
        assert set(state['errors']) == {'first_name', 'phone', 'date_of_birth'}
        assert sample_client.first_name == 'Jane'

    def test_cannot_update_someone_elses_client(self, app, sample_user, make_client):
        other = make_client('other@example.com')

        state = ProfileService(sample_user).update_profile(profile_data(other))

        assert state['status'] == 'error'
        assert state['errors'] == {}
        assert other.first_name == 'Sam'

    def test_invalid_client_reference(self, app, sample_user, sample_client):
        state = ProfileService(sample_user).update_profile(profile_data(sample_client, client_id='abc'))
        assert state['errors']['client_id'] == 'Invalid client reference'

    def test_update_preferences_keeps_other_keys(self, app, sample_user, sample_client):
        sample_client.preferences = {'newsletter': True}
        db.session.commit()

        state = ProfileService(sample_user).update_preferences(
            {'client_id': sample_client.id, 'preferred_currency': 'usd'}
        )

        assert state['status'] == 'success'
        assert sample_client.preferences['preferred_currency'] == 'USD'
        assert sample_client.preferences['newsletter'] is True
        assert sample_client.preferences['currency_updated_at']

    def test_preferences_from_json_string(self, app, sample_user, sample_client):
        sample_client.preferences = '{"preferred_currency": "EUR"}'
        db.session.commit()

        prefs = ProfileService(sample_user).get_preferences(sample_client)
        assert prefs['preferred_currency'] == 'EUR'

    def test_unsupported_currency(self, app, sample_user, sample_client):
        state = ProfileService(sample_user).update_preferences(
            {'client_id': sample_client.id, 'preferred_currency': 'XYZ'}
        )
        assert state['errors'] == {'preferred_currency': 'Invalid currency code'}

    def test_change_password(self, app, sample_user):
        state = ProfileService(sample_user).change_password(
            {'new_password': 'An0ther-pass', 'confirm_password': 'An0ther-pass'}
        )
        assert state['status'] == 'success'
        assert sample_user.check_password('An0ther-pass')

    def test_change_password_mismatch(self, app, sample_user):
        state = ProfileService(sample_user).change_password(
            {'new_password': 'An0ther-pass', 'confirm_password': 'different'}
        )
        assert state['status'] == 'error'
        assert state['errors'] == {'confirm_password': "Passwords don't match"}

    def test_change_password_weak(self, app, sample_user):
        state = ProfileService(sample_user).change_password(
            {'new_password': 'password1', 'confirm_password': 'password1'}
        )
        assert state['errors'] == {'new_password': 'Password must contain at least one special character'}


class TestProfileAPI:
    """Tests for /api/profile endpoints."""

    def test_get_profile(self, client, auth_headers):
        response = client.get('/api/profile', headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['client']['first_name'] == 'Jane'

    def test_update_profile_defaults_to_own_client(self, client, auth_headers, sample_client):
        response = client.put('/api/profile', headers=auth_headers, json={
            'first_name': 'Janet',
            'last_name': 'Doe',
        })
        assert response.status_code == 200
        assert response.get_json()['status'] == 'success'
        assert sample_client.first_name == 'Janet'

    def test_update_profile_errors_are_400(self, client, auth_headers):
        response = client.put('/api/profile', headers=auth_headers, json={'first_name': 'Janet'})
        assert response.status_code == 400
        assert response.get_json()['errors'] == {'last_name': 'Last name is required'}

    def test_preferences_round_trip(self, client, auth_headers):
        before = client.get('/api/profile/preferences', headers=auth_headers).get_json()
        assert before['preferred_currency'] == 'GBP'
        assert before['currency_updated_at'] is None

        response = client.put('/api/profile/preferences', headers=auth_headers,
                              json={'preferred_currency': 'AED'})
        assert response.status_code == 200
        assert response.get_json()['preferences']['preferred_currency'] == 'AED'

        after = client.get('/api/profile/preferences', headers=auth_headers).get_json()
        assert after['preferred_currency'] == 'AED'
        assert after['currency']['name'] == 'UAE Dirham'
        assert after['currency_updated_at'] is not None

    def test_password_endpoint(self, client, auth_headers):
        response = client.post('/api/profile/password', headers=auth_headers,
                               json={'new_password': 'short', 'confirm_password': 'short'})
        assert response.status_code == 400
        assert 'new_password' in response.get_json()['errors']
