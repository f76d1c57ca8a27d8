"""
Standardized error response utilities for the portal API.

Provides consistent error response format across all endpoints:
{
    "error": {
        "message": "User-friendly error message",
        "code": "ERROR_CODE"
    }
}

Usage:
    from app.utils.errors import error_response, ErrorCode

    return error_response("Booking not found", ErrorCode.BOOKING_NOT_FOUND, 404)
"""
import logging
from enum import Enum
from flask import jsonify
from typing import Optional

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication & Authorization (401, 403)
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Validation Errors (400)
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_FIELD = "MISSING_FIELD"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Not Found (404)
    NOT_FOUND = "NOT_FOUND"
    CLIENT_NOT_FOUND = "CLIENT_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"

    # Conflict (409)
    ALREADY_EXISTS = "ALREADY_EXISTS"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"

    # Business Logic Errors (400, 422)
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"
    PROGRAM_DISABLED = "PROGRAM_DISABLED"

    # Rate limiting (429)
    RATE_LIMITED = "RATE_LIMITED"

    # External Service Errors (502, 503)
    EXCHANGE_RATE_ERROR = "EXCHANGE_RATE_ERROR"

    # Server Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SETUP_FAILED = "SETUP_FAILED"


def error_response(
    message: str,
    code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    status_code: int = 500,
    log_error: bool = True,
    details: Optional[dict] = None,
    errors: Optional[dict] = None
) -> tuple:
    """
    Create a standardized error response.

    Args:
        message: User-friendly error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code
        log_error: Whether to log the error (default True for 500s)
        details: Optional additional details (only logged, not returned to user)
        errors: Optional per-field validation messages (returned to user)

    Returns:
        Tuple of (response, status_code) for Flask
    """
    if log_error and status_code >= 500:
        logger.error(f"API Error [{code}]: {message}", extra={"details": details})
    elif log_error and status_code >= 400:
        logger.warning(f"API Error [{code}]: {message}", extra={"details": details})

    body = {
        "message": message,
        "code": code.value if isinstance(code, ErrorCode) else code
    }
    if errors:
        body["errors"] = errors

    return jsonify({"error": body}), status_code


def bad_request(message: str, code: ErrorCode = ErrorCode.INVALID_REQUEST, errors: Optional[dict] = None) -> tuple:
    """400 Bad Request error."""
    return error_response(message, code, 400, log_error=False, errors=errors)


def unauthorized(message: str = "Authentication required", code: ErrorCode = ErrorCode.AUTH_REQUIRED) -> tuple:
    """401 Unauthorized error."""
    return error_response(message, code, 401, log_error=False)


def too_many_requests(retry_after: int) -> tuple:
    """429 Too Many Requests error."""
    return error_response(
        f"Rate limit exceeded. Please try again in {retry_after} seconds.",
        ErrorCode.RATE_LIMITED,
        429,
        log_error=False
    )
