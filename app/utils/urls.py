"""
Public URL helpers.
"""
from flask import current_app


def get_base_url() -> str:
    """
    Public site URL without a trailing slash, or '' when not configured.

    DevelopmentConfig defaults SITE_URL to http://localhost:5000.
    """
    return (current_app.config.get('SITE_URL') or '').rstrip('/')


def referral_link(code: str):
    base_url = get_base_url()
    if not base_url or not code:
        return None
    return f'{base_url}/signup?ref={code}'
