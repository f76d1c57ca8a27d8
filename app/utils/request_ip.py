"""
Client IP resolution for rate limiting.
"""
from flask import request


def get_client_ip() -> str:
    """
    Get the caller's IP address.

    Priority:
    1. First address in X-Forwarded-For (set by the hosting proxy)
    2. X-Real-IP
    3. 'unknown'
    """
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()

    real_ip = request.headers.get('X-Real-IP')
    if real_ip:
        return real_ip

    return 'unknown'
