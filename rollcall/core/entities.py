"""
Core entities for the Rollcall ledger.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .enums import CourseStatus, EventType


class Course:
    """A named course with an append-only set of authorised instructors."""

    def __init__(self, course_id: int, name: str, instructors: Iterable[str] = (),
                 status: CourseStatus = CourseStatus.ACTIVE):
        self._course_id = course_id
        self._name = name
        self._status = status
        self._instructors = frozenset(instructors)

    @property
    def course_id(self) -> int:
        return self._course_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def status(self) -> CourseStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status == CourseStatus.ACTIVE

    @property
    def instructors(self) -> FrozenSet[str]:
        return self._instructors

    def has_instructor(self, identity: str) -> bool:
        """Check whether an identity is in the instructor set."""
        return identity in self._instructors

    def to_dict(self) -> Dict[str, Any]:
        """Convert course to dictionary."""
        return {
            'course_id': self._course_id,
            'name': self._name,
            'is_active': self.is_active,
            'instructors': sorted(self._instructors),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Course):
            return NotImplemented
        return (self._course_id, self._name, self._status, self._instructors) == \
            (other._course_id, other._name, other._status, other._instructors)

    def __repr__(self) -> str:
        return f"Course(course_id={self._course_id}, name={self._name!r}, status={self._status.value})"


@dataclass(frozen=True)
class AttendanceKey:
    """Composite key of an attendance record."""
    course_id: int
    session_id: int
    student: str


@dataclass(frozen=True)
class AttendanceRecord:
    """Presence flag and commit timestamp for one student in one session."""
    is_present: bool = False
    timestamp: int = 0

    def as_tuple(self) -> Tuple[bool, int]:
        return self.is_present, self.timestamp


# Returned for keys that were never written.
EMPTY_RECORD = AttendanceRecord()


@dataclass(frozen=True)
class LogEntry:
    """Immutable event log entry.

    ``sequence`` is assigned by the ledger store at commit time; staged entries
    carry ``0`` until then.
    """
    event_type: EventType
    course_id: int
    timestamp: int
    sequence: int = 0
    session_id: Optional[int] = None
    student: Optional[str] = None
    instructor: Optional[str] = None
    name: Optional[str] = None
    is_present: Optional[bool] = None

    def with_sequence(self, sequence: int) -> "LogEntry":
        return LogEntry(
            event_type=self.event_type,
            course_id=self.course_id,
            timestamp=self.timestamp,
            sequence=sequence,
            session_id=self.session_id,
            student=self.student,
            instructor=self.instructor,
            name=self.name,
            is_present=self.is_present,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert the entry to its wire form; unset fields are omitted."""
        data: Dict[str, Any] = {
            'sequence': self.sequence,
            'event_type': self.event_type.value,
            'course_id': self.course_id,
            'timestamp': self.timestamp,
        }
        for key in ('session_id', 'student', 'instructor', 'name', 'is_present'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class ChangeSet:
    """State writes and log entries that must be committed together."""
    new_course: Optional[Course] = None
    records: List[Tuple[AttendanceKey, AttendanceRecord]] = field(default_factory=list)
    students: List[str] = field(default_factory=list)
    entries: List[LogEntry] = field(default_factory=list)

    def write_record(self, key: AttendanceKey, record: AttendanceRecord) -> None:
        self.records.append((key, record))
        if key.student not in self.students:
            self.students.append(key.student)

    def log(self, entry: LogEntry) -> None:
        self.entries.append(entry)
