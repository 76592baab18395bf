"""
Custom exceptions for the Rollcall ledger.
"""

from typing import Optional, Any, Dict


class RollcallException(Exception):
    """Base exception for all Rollcall errors."""

    default_code = "ROLLCALL_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}


class AuthorizationError(RollcallException):
    """Raised when the caller lacks the role an operation requires."""
    default_code = "UNAUTHORIZED"


class CourseInactiveError(RollcallException):
    """Raised when a write targets a course that is not active (or unknown)."""
    default_code = "COURSE_INACTIVE"


class ValidationError(RollcallException):
    """Raised when request data is malformed."""
    default_code = "VALIDATION_ERROR"


class LengthMismatchError(ValidationError):
    """Raised when paired batch inputs differ in length."""
    default_code = "LENGTH_MISMATCH"


class EmptyBatchError(ValidationError):
    """Raised when a bulk operation is given no elements."""
    default_code = "EMPTY_BATCH"


class InvalidArgumentError(ValidationError):
    """Raised when an argument is out of range."""
    default_code = "INVALID_ARGUMENT"


class ConcurrencyError(RollcallException):
    """Raised when concurrency control fails."""
    default_code = "CONCURRENCY"


class PersistenceError(RollcallException):
    """Raised when persistence operations fail."""
    default_code = "PERSISTENCE"


class ConfigurationError(RollcallException):
    """Raised when configuration is invalid."""
    default_code = "CONFIGURATION"
