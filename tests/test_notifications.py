"""
Tests for client notifications.
"""
import pytest

from app.services.notification_service import NotificationService
from app.utils.exceptions import NotFoundError


class TestNotificationService:

    def test_list_newest_first(self, app, sample_client):
        service = NotificationService(sample_client.id)
        service.create('First')
        service.create('Second', notification_type='points')

        titles = [n.title for n in service.list()]
        assert titles == ['Second', 'First']
        assert service.unread_count() == 2

    def test_mark_read(self, app, sample_client):
        service = NotificationService(sample_client.id)
        notification = service.create('Trip update', link='/trips')

        service.mark_read(notification.id)

        assert notification.read is True
        assert notification.read_at is not None
        assert service.unread_count() == 0

    def test_cannot_read_other_clients_notification(self, app, sample_client, make_client):
        other = make_client('other@example.com')
        notification = NotificationService(other.id).create('Private')

        with pytest.raises(NotFoundError):
            NotificationService(sample_client.id).mark_read(notification.id)

    def test_mark_all_read(self, app, sample_client):
        service = NotificationService(sample_client.id)
        for title in ('a', 'b', 'c'):
            service.create(title)

        assert service.mark_all_read() == 3
        assert service.mark_all_read() == 0


class TestNotificationsAPI:

    def test_list(self, client, auth_headers, sample_client):
        NotificationService(sample_client.id).create('Welcome')

        data = client.get('/api/notifications', headers=auth_headers).get_json()

        assert data['unread_count'] == 1
        assert data['notifications'][0]['title'] == 'Welcome'

    def test_limit(self, client, auth_headers, sample_client):
        service = NotificationService(sample_client.id)
        for title in ('a', 'b', 'c'):
            service.create(title)

        data = client.get('/api/notifications?limit=2', headers=auth_headers).get_json()
        assert len(data['notifications']) == 2
        assert data['unread_count'] == 3

    def test_mark_read_endpoints(self, client, auth_headers, sample_client):
        service = NotificationService(sample_client.id)
        first = service.create('one')
        service.create('two')

        response = client.post(f'/api/notifications/{first.id}/read', headers=auth_headers)
        assert response.get_json()['notification']['read'] is True

        response = client.post('/api/notifications/read-all', headers=auth_headers)
        assert response.get_json()['marked'] == 1

    def test_missing_notification_is_404(self, client, auth_headers):
        response = client.post('/api/notifications/999/read', headers=auth_headers)
        assert response.status_code == 404

    def test_read_all_refreshes_cached_dashboard(self, client, loyalty_settings, auth_headers, sample_client):
        NotificationService(sample_client.id).create('Welcome')
        assert client.get('/api/dashboard', headers=auth_headers).get_json()['unread_notifications'] == 1

        client.post('/api/notifications/read-all', headers=auth_headers)

        assert client.get('/api/dashboard', headers=auth_headers).get_json()['unread_notifications'] == 0
