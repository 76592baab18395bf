"""
Enumerations for the Rollcall ledger.
"""

from enum import Enum


class CourseStatus(Enum):
    """Lifecycle state of a course."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class EventType(Enum):
    """Kinds of entries in the event log."""
    COURSE_CREATED = "CourseCreated"
    INSTRUCTOR_AUTHORIZED = "InstructorAuthorized"
    ATTENDANCE_MARKED = "AttendanceMarked"


class StoreType(Enum):
    """Supported ledger store backends."""
    MEMORY = "memory"
    SQLITE = "sqlite"
