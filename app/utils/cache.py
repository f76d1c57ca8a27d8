"""
Cache utilities for the portal.

Provides Redis-backed caching with graceful fallback to simple in-memory caching.
Uses Flask-Caching for integration with Flask app.

Usage:
    from app.utils.cache import cache

    cache.set('key', value, timeout=300)
    value = cache.get('key')
    cache.delete('key')

    # Tag-versioned payloads (see utils.cache_invalidation)
    key = page_key(user_id, '/points', tags=('client-data', 'loyalty-data'))

Environment Variables:
    REDIS_URL: Redis connection URL (e.g., redis://localhost:6379/0)
              Falls back to simple cache if not set or unavailable.
"""
import os
import logging

import redis
from flask_caching import Cache

logger = logging.getLogger(__name__)

# Global cache instance - initialized in init_cache()
cache = Cache()

DEFAULT_TIMEOUT = 300  # 5 minutes


def init_cache(app):
    """
    Initialize Flask-Caching with Redis or fallback to simple cache.

    Args:
        app: Flask application instance

    Returns:
        bool: True if Redis connected, False if using fallback
    """
    redis_url = os.getenv('REDIS_URL')

    if redis_url and not app.config.get('TESTING'):
        try:
            # Test Redis connection before configuring
            r = redis.from_url(redis_url, socket_connect_timeout=2)
            r.ping()

            app.config['CACHE_TYPE'] = 'RedisCache'
            app.config['CACHE_REDIS_URL'] = redis_url
            app.config['CACHE_DEFAULT_TIMEOUT'] = DEFAULT_TIMEOUT
            app.config['CACHE_KEY_PREFIX'] = 'portal:'

            cache.init_app(app)
            logger.info('Redis cache connected: %s', redis_url.split('@')[-1])
            return True

        except (redis.RedisError, ValueError) as e:
            logger.warning('Redis unavailable (%s), using simple cache', str(e))

    # Fallback to simple in-memory cache
    app.config['CACHE_TYPE'] = 'SimpleCache'
    app.config['CACHE_DEFAULT_TIMEOUT'] = DEFAULT_TIMEOUT

    cache.init_app(app)
    logger.info('Using simple in-memory cache (no Redis)')
    return False


def cache_key(*args, **kwargs):
    """
    Generate a cache key from arguments.

        key = cache_key('fx_rates', base='GBP')  # 'fx_rates:base=GBP'
    """
    parts = list(args)
    for k, v in sorted(kwargs.items()):
        parts.append(f'{k}={v}')
    return ':'.join(str(p) for p in parts)


def tag_version(tag: str) -> int:
    """Current version number of a cache tag (0 when never bumped)."""
    return cache.get(cache_key('tag', tag)) or 0


def bump_tag(tag: str) -> int:
    """
    Advance a tag's version so every payload keyed under the old version misses.

    Returns:
        The new version number
    """
    version = tag_version(tag) + 1
    # Tag versions must outlive any payload keyed on them
    cache.set(cache_key('tag', tag), version, timeout=0)
    return version


def page_tags(user_id, path: str) -> tuple:
    """Implicit tags every cached page payload depends on: its path, globally and per user."""
    return (cache_key('path', path), cache_key('path', path, user=user_id))


def page_key(user_id, path: str, tags=(), variant=None) -> str:
    """
    Key for a cached per-user page payload, bound to the current tag versions.

    Dynamic routes pass the route pattern as path (e.g. '/trips/[bookingId]')
    and the concrete id as variant, so revalidating the pattern covers every id.
    """
    versions = {tag: tag_version(tag) for tag in tuple(tags) + page_tags(user_id, path)}
    parts = ['page', user_id, path]
    if variant is not None:
        parts.append(variant)
    return cache_key(*parts, **versions)
