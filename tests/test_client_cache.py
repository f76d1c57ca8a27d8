"""
Tests for client resolution and cache invalidation.
"""
from unittest.mock import patch

from app.extensions import db
from app.models import Client, User
from app.services.client_service import NOT_AUTHENTICATED, ClientService, get_client
from app.utils.cache import bump_tag, cache, page_key, tag_version
from app.utils.cache_invalidation import (
    ALL_PATHS,
    BOOKING_DATA,
    CLIENT_DATA,
    CLIENT_PREFERENCES,
    LOYALTY_DATA,
    PROFILE_PATHS,
    TRIP_DETAIL_PATH,
    cached_page,
    get_cached_client_id,
    invalidate_all_caches,
    invalidate_booking_caches,
    invalidate_currency_caches,
    invalidate_profile_caches,
    revalidate_path,
    set_cached_client_id,
)


def new_user(email='new@example.com', first_name=None, last_name=None):
    user = User(email=email, first_name=first_name, last_name=last_name, password_hash='x')
    db.session.add(user)
    db.session.commit()
    return user


class TestClientResolution:
    """Tests for ClientService.resolve."""

    def test_anonymous(self, app):
        assert ClientService().resolve(None) == (None, NOT_AUTHENTICATED)

    def test_existing_linked_client(self, app, sample_user, sample_client):
        client, error = ClientService().resolve(sample_user)
        assert error is None
        assert client.id == sample_client.id
        assert get_cached_client_id(sample_user.id) == sample_client.id

    def test_links_customer_by_email(self, app, make_client):
        existing = make_client('Booked@Example.com')
        user = new_user('booked@example.com')

        client, error = ClientService().resolve(user)

        assert client.id == existing.id
        assert client.user_id == user.id
        assert client.loyalty_enrolled is True

    def test_linking_drops_cached_pages(self, app, make_client):
        make_client('booked@example.com')
        user = new_user('booked@example.com')
        cached_page(user.id, '/points', lambda: 'before-link', tags=(LOYALTY_DATA,))

        ClientService().resolve(user)

        assert cached_page(user.id, '/points', lambda: 'after-link', tags=(LOYALTY_DATA,)) == 'after-link'

    def test_creates_client_for_new_user(self, app):
        user = new_user('fresh@example.com')

        client, error = ClientService().resolve(user)

        assert error is None
        assert client.first_name == 'fresh'
        assert client.last_name == 'User'
        assert client.loyalty_signup_source == 'self_signup'
        assert Client.query.count() == 1

    def test_stale_cache_entry_ignored(self, app, sample_user, sample_client, make_client):
        other = make_client('other@example.com')
        set_cached_client_id(sample_user.id, other.id)

        client, _ = ClientService().resolve(sample_user)
        assert client.id == sample_client.id

    def test_get_client_resolves_once_per_request(self, app, sample_user, sample_client):
        with app.test_request_context('/'):
            first, _ = get_client(sample_user)
            with patch.object(ClientService, 'resolve') as resolve:
                second, _ = get_client(sample_user)
                resolve.assert_not_called()

        assert second is first


class TestTagVersions:

    def test_bump(self, app):
        assert tag_version('loyalty-data') == 0
        assert bump_tag('loyalty-data') == 1
        assert tag_version('loyalty-data') == 1

    def test_page_key_changes_with_tag(self, app):
        before = page_key('user-1', '/points', tags=(CLIENT_DATA,))
        bump_tag(CLIENT_DATA)
        assert page_key('user-1', '/points', tags=(CLIENT_DATA,)) != before


class TestCachedPages:
    """Tests for cached_page and the invalidation helpers."""

    def test_cached_until_invalidated(self, app):
        calls = []

        def build():
            calls.append(1)
            return {'n': len(calls)}

        assert cached_page('user-1', '/points', build, tags=(CLIENT_DATA,)) == {'n': 1}
        assert cached_page('user-1', '/points', build, tags=(CLIENT_DATA,)) == {'n': 1}

        revalidate_path('/points', 'user-1')
        assert cached_page('user-1', '/points', build, tags=(CLIENT_DATA,)) == {'n': 2}

    def test_user_scoped_revalidation(self, app):
        cached_page('user-1', '/refer', lambda: 'one')
        cached_page('user-2', '/refer', lambda: 'two')

        revalidate_path('/refer', 'user-1')

        assert cached_page('user-1', '/refer', lambda: 'one-new') == 'one-new'
        assert cached_page('user-2', '/refer', lambda: 'two-new') == 'two'

    def test_global_path_revalidation(self, app):
        cached_page('user-1', '/refer', lambda: 'one')
        revalidate_path('/refer')
        assert cached_page('user-1', '/refer', lambda: 'new') == 'new'

    def test_detail_pattern_covers_every_booking(self, app):
        cached_page('user-1', TRIP_DETAIL_PATH, lambda: 'a', variant='booking-a')
        cached_page('user-1', TRIP_DETAIL_PATH, lambda: 'b', variant='booking-b')

        invalidate_booking_caches('user-1')

        assert cached_page('user-1', TRIP_DETAIL_PATH, lambda: 'a2', variant='booking-a') == 'a2'
        assert cached_page('user-1', TRIP_DETAIL_PATH, lambda: 'b2', variant='booking-b') == 'b2'

    def test_currency_invalidation_clears_client_cache(self, app):
        set_cached_client_id('user-1', 'client-1')
        cached_page('user-1', '/points/redeem', lambda: 'gbp')

        invalidate_currency_caches('user-1')

        assert get_cached_client_id('user-1') is None
        assert cached_page('user-1', '/points/redeem', lambda: 'usd') == 'usd'

    def test_unrelated_paths_kept(self, app):
        cached_page('user-1', '/refer', lambda: 'kept')
        invalidate_currency_caches('user-1')
        assert cached_page('user-1', '/refer', lambda: 'rebuilt') == 'kept'
        assert cache.get('tag:path:/refer') is None

    def test_all_invalidation_covers_every_path(self, app):
        set_cached_client_id('user-1', 'client-1')
        for path in ALL_PATHS:
            cached_page('user-1', path, lambda: 'old', variant=path)

        invalidate_all_caches('user-1')

        assert get_cached_client_id('user-1') is None
        for path in ALL_PATHS:
            assert cached_page('user-1', path, lambda: 'new', variant=path) == 'new'
        assert [tag_version(tag) for tag in (CLIENT_DATA, CLIENT_PREFERENCES, LOYALTY_DATA)] == [1, 1, 1]
        assert tag_version(BOOKING_DATA) == 0

    def test_profile_invalidation(self, app):
        for path in PROFILE_PATHS + ('/points', '/profile/preferences'):
            cached_page('user-1', path, lambda: 'old')

        invalidate_profile_caches('user-1')

        assert cached_page('user-1', '/profile', lambda: 'new') == 'new'
        assert cached_page('user-1', '/profile/edit', lambda: 'new') == 'new'
        assert cached_page('user-1', '/points', lambda: 'new') == 'old'
        assert cached_page('user-1', '/profile/preferences', lambda: 'new') == 'old'
        assert tag_version(CLIENT_DATA) == 1
        assert tag_version(CLIENT_PREFERENCES) == 0
        assert tag_version(LOYALTY_DATA) == 0
