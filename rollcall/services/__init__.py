"""
Services module containing the ledger's components.
"""

from .access_control import AccessControlLedger
from .attendance_store import AttendanceStore
from .concurrency_manager import ConcurrencyManager, LockType
from .course_registry import CourseRegistry
from .event_log import EventLog, EventSubscription

__all__ = [
    "AccessControlLedger",
    "AttendanceStore",
    "ConcurrencyManager",
    "LockType",
    "CourseRegistry",
    "EventLog",
    "EventSubscription",
]
