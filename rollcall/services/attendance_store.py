"""
Attendance store: composite-keyed presence records with role-gated writes.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.entities import EMPTY_RECORD, AttendanceKey, AttendanceRecord, ChangeSet, LogEntry
from ..core.enums import EventType
from ..core.exceptions import CourseInactiveError, EmptyBatchError, InvalidArgumentError, LengthMismatchError
from ..core.interfaces import Clock, LedgerStore, SystemClock
from ..core.validators import require_identity, require_max_length, require_uint
from .access_control import AccessControlLedger
from .concurrency_manager import ConcurrencyManager, course_resource
from .course_registry import CourseRegistry
from .event_log import EventLog

logger = logging.getLogger(__name__)


def _require_presence(value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidArgumentError("presence flag must be a boolean", details={'is_present': value})
    return value


class AttendanceStore:
    """Records who attended which session of which course.

    Records are keyed by ``(course_id, session_id, student)``. Every write
    overwrites the previous record for its key; there is no history beyond the
    event log. Writes to one course are serialised; reads see committed state
    only.
    """

    def __init__(self, store: LedgerStore, access_control: AccessControlLedger,
                 course_registry: CourseRegistry, event_log: EventLog,
                 concurrency_manager: ConcurrencyManager, clock: Optional[Clock] = None,
                 max_batch_size: int = 256):
        self._store = store
        self._access_control = access_control
        self._course_registry = course_registry
        self._event_log = event_log
        self._concurrency_manager = concurrency_manager
        self._clock = clock or SystemClock()
        self._max_batch_size = max_batch_size

    def mark_attendance(self, caller: str, course_id: int, session_id: int,
                        student: str, is_present: bool) -> AttendanceRecord:
        """Write one record and return it as committed."""
        require_uint("course_id", course_id)
        require_uint("session_id", session_id)

        with self._concurrency_manager.write_lock(course_resource(course_id)):
            self._check_writable(caller, course_id)
            require_identity("student", student)
            _require_presence(is_present)

            records = self._write(course_id, session_id, [(student, is_present)])

        return records[0]

    def bulk_mark_attendance(self, caller: str, course_id: int, session_id: int,
                             students: Sequence[str], presence: Sequence[bool]) -> List[AttendanceRecord]:
        """Write one record per student, all or nothing.

        Every record in the batch carries the same commit timestamp and events
        are emitted in input order.
        """
        require_uint("course_id", course_id)
        require_uint("session_id", session_id)
        students = list(students)
        presence = list(presence)

        with self._concurrency_manager.write_lock(course_resource(course_id)):
            self._check_writable(caller, course_id)
            if len(students) != len(presence):
                raise LengthMismatchError(
                    "students and presence flags differ in length",
                    details={'students': len(students), 'presence': len(presence)},
                )
            if not students:
                raise EmptyBatchError("bulk attendance requires at least one student")
            require_max_length("students", len(students), self._max_batch_size)
            for student, flag in zip(students, presence):
                require_identity("student", student)
                _require_presence(flag)

            records = self._write(course_id, session_id, list(zip(students, presence)))

        logger.info("Marked %d student(s) for course %d session %d", len(records), course_id, session_id)
        return records

    def _check_writable(self, caller: str, course_id: int) -> None:
        self._access_control.require_authorized(course_id, caller)
        if not self._course_registry.is_active(course_id):
            logger.warning("Rejected write to inactive course %d", course_id)
            raise CourseInactiveError(f"Course {course_id} is not active", details={'course_id': course_id})

    def _write(self, course_id: int, session_id: int,
               marks: List[Tuple[str, bool]]) -> List[AttendanceRecord]:
        timestamp = self._clock.now()
        changes = ChangeSet()
        records = []
        for student, is_present in marks:
            record = AttendanceRecord(is_present=is_present, timestamp=timestamp)
            changes.write_record(AttendanceKey(course_id, session_id, student), record)
            changes.log(LogEntry(
                EventType.ATTENDANCE_MARKED, course_id, timestamp,
                session_id=session_id, student=student, is_present=is_present,
            ))
            records.append(record)

        self._event_log.commit(changes)
        return records

    def verify_attendance(self, course_id: int, session_id: int, student: str) -> Tuple[bool, int]:
        """Return ``(is_present, timestamp)``; ``(False, 0)`` for unwritten keys.

        An unwritten key is indistinguishable from a record marked absent at
        time zero. Use ``has_record`` or ``find_record`` to tell the two apart.
        Unknown courses read as unwritten keys, but a negative id or one above
        ``MAX_ID`` is malformed and raises ``InvalidArgumentError``.
        """
        return self.get_record(course_id, session_id, student).as_tuple()

    def get_record(self, course_id: int, session_id: int, student: str) -> AttendanceRecord:
        record = self.find_record(course_id, session_id, student)
        return record if record is not None else EMPTY_RECORD

    def has_record(self, course_id: int, session_id: int, student: str) -> bool:
        return self.find_record(course_id, session_id, student) is not None

    def find_record(self, course_id: int, session_id: int, student: str) -> Optional[AttendanceRecord]:
        """The committed record for the key, or ``None`` if it was never written.

        Ids must lie in ``0..MAX_ID``; a negative or oversized id raises
        ``InvalidArgumentError`` instead of reading as an unwritten key.
        """
        require_uint("course_id", course_id)
        require_uint("session_id", session_id)
        with self._concurrency_manager.read_lock(course_resource(course_id)):
            return self._store.get_record(AttendanceKey(course_id, session_id, student))

    def get_student_attendance_count(self, course_id: int, student: str, total_sessions: int) -> int:
        """Count sessions ``0..total_sessions-1`` in which the student was present.

        Sessions at or beyond ``total_sessions`` are ignored even when records
        exist for them.
        """
        require_uint("course_id", course_id)
        require_uint("total_sessions", total_sessions)
        if total_sessions == 0:
            raise InvalidArgumentError("total_sessions must be greater than zero",
                                       details={'total_sessions': total_sessions})
        with self._concurrency_manager.read_lock(course_resource(course_id)):
            return self._store.count_present(course_id, student, total_sessions)

    def is_registered_student(self, identity: str) -> bool:
        return self._store.is_registered_student(identity)

    def registered_student_count(self) -> int:
        return self._store.registered_student_count()

    def get_statistics(self) -> Dict[str, Any]:
        return {
            'registered_students': self._store.registered_student_count(),
            'max_batch_size': self._max_batch_size,
        }
