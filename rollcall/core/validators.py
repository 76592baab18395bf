"""
Argument checks shared by the services.
"""

from typing import Any

from .exceptions import InvalidArgumentError

# Largest id the SQLite INTEGER column can hold.
MAX_ID = 2 ** 63 - 1


def require_uint(name: str, value: Any) -> int:
    """Accept integers in ``0..MAX_ID`` only (bool is rejected)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name} must be an integer", details={name: value})
    if value < 0:
        raise InvalidArgumentError(f"{name} must not be negative", details={name: value})
    if value > MAX_ID:
        raise InvalidArgumentError(f"{name} must be at most {MAX_ID}", details={name: value})
    return value


def require_identity(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(f"{name} must be a non-empty identity", details={name: value})
    return value


def require_max_length(name: str, size: int, limit: int) -> None:
    if size > limit:
        raise InvalidArgumentError(
            f"{name} has {size} entries; at most {limit} are accepted",
            details={'size': size, 'limit': limit},
        )
