"""
Utility modules for the loyalty portal.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    too_many_requests
)
from .exceptions import (
    PortalError,
    NotFoundError,
    ClientNotFoundError,
    BookingNotFoundError,
    ValidationError,
    InsufficientPointsError,
    DuplicateError,
    AuthenticationError,
    AuthorizationError,
    ExchangeRateError,
    ConfigurationError
)
