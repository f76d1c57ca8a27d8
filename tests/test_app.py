"""
Tests for the application factory, health check, and error handlers.
"""
from app.utils.scheduler import scheduler_enabled


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json() == {'status': 'healthy', 'service': 'loyalty-portal'}


def test_unknown_route_is_json_404(client):
    response = client.get('/api/nowhere')
    assert response.status_code == 404
    assert response.get_json()['error']['code'] == 'NOT_FOUND'


def test_wrong_method(client):
    response = client.delete('/health')
    assert response.status_code == 405
    assert response.get_json()['error']['code'] == 'METHOD_NOT_ALLOWED'


def test_testing_config(app):
    assert app.config['TESTING'] is True
    assert app.config['RATELIMIT_ENABLED'] is False
    assert not scheduler_enabled(app)


def test_blueprints_registered(app):
    for name in ('auth', 'dashboard', 'points', 'referrals', 'trips',
                 'profile', 'notifications', 'search', 'currency'):
        assert name in app.blueprints
