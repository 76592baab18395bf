"""
Core module containing the ledger's entities, interfaces and exceptions.
"""

from .entities import *
from .interfaces import *
from .exceptions import *
from .enums import *

__all__ = [
    # Entities
    "Course",
    "AttendanceKey",
    "AttendanceRecord",
    "EMPTY_RECORD",
    "LogEntry",
    "ChangeSet",

    # Interfaces
    "IdentityProvider",
    "Clock",
    "SystemClock",
    "LedgerStore",
    "EventHandler",

    # Enums
    "CourseStatus",
    "EventType",
    "StoreType",

    # Exceptions
    "RollcallException",
    "AuthorizationError",
    "CourseInactiveError",
    "ValidationError",
    "LengthMismatchError",
    "EmptyBatchError",
    "InvalidArgumentError",
    "ConcurrencyError",
    "PersistenceError",
    "ConfigurationError",
]
