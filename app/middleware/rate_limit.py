"""
Rate limit presets (Flask-Limiter).

Limits are keyed on the caller's IP (first X-Forwarded-For hop). Values come
from the RATE_LIMITS config so deployments can tune them:

    @auth_bp.route('/signup', methods=['POST'])
    @ratelimit_signup
    def signup():
        ...
"""
from flask import current_app

from ..extensions import limiter

DEFAULT_LIMITS = {
    'signup': '5 per hour',
    'login': '10 per 15 minutes',
    'referral_invite': '10 per hour',
    'api': '100 per minute',
}


def _preset(name: str):
    def limit_value() -> str:
        limits = current_app.config.get('RATE_LIMITS') or {}
        return limits.get(name, DEFAULT_LIMITS[name])
    return limit_value


def init_rate_limiter(app) -> None:
    """Attach the limiter; storage comes from RATELIMIT_STORAGE_URI."""
    limiter.init_app(app)


ratelimit_signup = limiter.limit(_preset('signup'))
ratelimit_login = limiter.limit(_preset('login'))
ratelimit_referral_invite = limiter.limit(_preset('referral_invite'))
ratelimit_api = limiter.limit(_preset('api'))
