"""
Middleware package for the loyalty portal.
"""
from .auth import require_auth, require_user, get_current_user, get_bearer_token
from .rate_limit import (
    init_rate_limiter,
    ratelimit_signup,
    ratelimit_login,
    ratelimit_referral_invite,
    ratelimit_api,
)
