"""
Custom exceptions for portal business logic.

These exceptions provide more specific error handling than generic Exception,
allowing for better error messages and appropriate HTTP status codes.
"""


class PortalError(Exception):
    """Base exception for all portal business logic errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "PORTAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(PortalError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper()}_NOT_FOUND")


class ClientNotFoundError(NotFoundError):
    """Client profile not found."""

    def __init__(self, identifier=None):
        super().__init__("Client", identifier)


class BookingNotFoundError(NotFoundError):
    """Booking not found (or not owned by the caller)."""

    def __init__(self, identifier=None):
        super().__init__("Booking", identifier)


class ValidationError(PortalError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None, errors: dict = None):
        self.field = field
        self.errors = errors or ({field: message} if field else {})
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class InsufficientPointsError(PortalError):
    """Not enough points for the operation."""

    def __init__(self, current: int, required: int):
        self.current = current
        self.required = required
        message = f"Insufficient points. Current: {current}, Required: {required}"
        super().__init__(message, "INSUFFICIENT_POINTS")


class DuplicateError(PortalError):
    """Resource already exists."""

    status_code = 409

    def __init__(self, resource: str, identifier=None, message: str = None):
        if not message:
            message = f"{resource} already exists"
            if identifier:
                message = f"{resource} with {identifier} already exists"
        super().__init__(message, "DUPLICATE_ENTRY")


class AuthenticationError(PortalError):
    """Missing or invalid credentials."""

    status_code = 401

    def __init__(self, message: str = "Authentication required", code: str = "AUTH_REQUIRED"):
        super().__init__(message, code)


class AuthorizationError(PortalError):
    """User not authorized for this operation."""

    status_code = 403

    def __init__(self, message: str = "Not authorized for this operation"):
        super().__init__(message, "AUTHORIZATION_ERROR")


class ExchangeRateError(PortalError):
    """Error fetching or applying exchange rates."""

    status_code = 502

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message, "EXCHANGE_RATE_ERROR")


class ConfigurationError(PortalError):
    """Application configuration error."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")
