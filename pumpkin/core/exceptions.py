from typing import Optional, Dict, Any


class BaseAPIException(Exception):
    """Base exception for API errors"""

    status_code: int = 500
    error: str = "Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BaseAPIException):
    """Malformed input, slug mismatch or missing required field"""
    status_code = 400
    error = "Invalid Argument"


class AuthenticationError(BaseAPIException):
    """Missing or invalid credential"""
    status_code = 401
    error = "Unauthenticated"


class AuthorizationError(BaseAPIException):
    """Valid credential, insufficient authorization"""
    status_code = 403
    error = "Forbidden"


class NotFoundError(BaseAPIException):
    """Resource not found exception"""
    status_code = 404
    error = "Not Found"


class ConflictError(BaseAPIException):
    """Resource conflict exception"""
    status_code = 409
    error = "Conflict"


class UnexpectedError(BaseAPIException):
    """Backend or infrastructure failure. The message is always generic."""
    status_code = 500
    error = "Unexpected"
