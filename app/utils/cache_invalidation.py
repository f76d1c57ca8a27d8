"""
Cache invalidation after client data changes.

Two layers are cleared when a client's data changes:
- the per-user client lookup cache (user id -> client id)
- cached page payloads, keyed by path and tag versions (see utils.cache)

Usage:
    from app.utils.cache_invalidation import invalidate_currency_caches

    invalidate_currency_caches(g.user.id)
"""
import logging
from typing import Any, Callable, Iterable, Optional

from .cache import cache, cache_key, bump_tag, page_tags, page_key

logger = logging.getLogger(__name__)

CLIENT_CACHE_TIMEOUT = 300

# Cache tags
CLIENT_DATA = 'client-data'
CLIENT_PREFERENCES = 'client-preferences'
LOYALTY_DATA = 'loyalty-data'
BOOKING_DATA = 'booking-data'

TRIP_DETAIL_PATH = '/trips/[bookingId]'

ALL_PATHS = (
    '/',
    '/profile',
    '/profile/edit',
    '/profile/preferences',
    '/profile/security',
    '/points',
    '/points/earn',
    '/points/redeem',
    '/trips',
    '/refer',
    '/notifications',
    TRIP_DETAIL_PATH,
)

CURRENCY_PATHS = (
    '/',
    '/profile',
    '/profile/preferences',
    '/points',
    '/points/earn',
    '/points/redeem',
    '/trips',
    TRIP_DETAIL_PATH,
)

PROFILE_PATHS = ('/profile', '/profile/edit')

BOOKING_PATHS = ('/trips', TRIP_DETAIL_PATH)


# ==================== CLIENT CACHE ====================

def client_cache_key(user_id) -> str:
    return cache_key('client', user_id)


def get_cached_client_id(user_id) -> Optional[str]:
    return cache.get(client_cache_key(user_id))


def set_cached_client_id(user_id, client_id: str) -> None:
    cache.set(client_cache_key(user_id), client_id, timeout=CLIENT_CACHE_TIMEOUT)


def clear_client_cache(user_id) -> None:
    cache.delete(client_cache_key(user_id))


# ==================== PAGE CACHE ====================

def revalidate_path(path: str, user_id=None) -> None:
    """
    Drop cached payloads for a path.

    With user_id only that user's payload is dropped; without it every
    user's payload for the path misses on next read.
    """
    global_tag, user_tag = page_tags(user_id, path)
    bump_tag(user_tag if user_id is not None else global_tag)


def revalidate_tag(tag: str) -> None:
    """Invalidate every payload built under the tag's current version."""
    bump_tag(tag)


def cached_page(
    user_id,
    path: str,
    builder: Callable[[], Any],
    tags: Iterable[str] = (),
    variant=None,
    timeout: int = 300
) -> Any:
    """
    Return a cached page payload, building and storing it on a miss.
    """
    key = page_key(user_id, path, tags=tuple(tags), variant=variant)
    payload = cache.get(key)
    if payload is None:
        payload = builder()
        cache.set(key, payload, timeout=timeout)
    return payload


def _invalidate(user_id, paths: Iterable[str], tags: Iterable[str]) -> None:
    if user_id is not None:
        clear_client_cache(user_id)

    for path in paths:
        revalidate_path(path, user_id)

    for tag in tags:
        revalidate_tag(tag)


def invalidate_all_caches(user_id=None) -> None:
    """Invalidate everything that displays client data."""
    _invalidate(user_id, ALL_PATHS, (CLIENT_DATA, CLIENT_PREFERENCES, LOYALTY_DATA))
    logger.debug('Invalidated all caches for user %s', user_id)


def invalidate_currency_caches(user_id=None) -> None:
    """Invalidate pages that display amounts in the preferred currency."""
    _invalidate(user_id, CURRENCY_PATHS, (CLIENT_DATA, CLIENT_PREFERENCES))
    logger.debug('Invalidated currency caches for user %s', user_id)


def invalidate_profile_caches(user_id=None) -> None:
    _invalidate(user_id, PROFILE_PATHS, (CLIENT_DATA,))


def invalidate_booking_caches(user_id=None) -> None:
    _invalidate(user_id, BOOKING_PATHS, (CLIENT_DATA, BOOKING_DATA))
