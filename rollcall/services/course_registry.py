"""
Course registry: course creation, sequential ids and the active flag.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from ..core.entities import ChangeSet, Course, LogEntry
from ..core.enums import EventType
from ..core.exceptions import InvalidArgumentError
from ..core.interfaces import Clock, LedgerStore, SystemClock
from ..core.validators import require_identity, require_max_length, require_uint
from .access_control import AccessControlLedger
from .concurrency_manager import REGISTRY_RESOURCE, ConcurrencyManager
from .event_log import EventLog

logger = logging.getLogger(__name__)


class CourseRegistry:
    """Creates courses and answers course-state queries."""

    def __init__(self, store: LedgerStore, access_control: AccessControlLedger,
                 event_log: EventLog, concurrency_manager: ConcurrencyManager,
                 clock: Optional[Clock] = None, max_instructors: int = 64):
        self._store = store
        self._access_control = access_control
        self._event_log = event_log
        self._concurrency_manager = concurrency_manager
        self._clock = clock or SystemClock()
        self._max_instructors = max_instructors

    def create_course(self, caller: str, name: str, instructors: Iterable[str] = ()) -> int:
        """Create a course and authorise its instructors. Owner only.

        Returns the new course id. Instructors are added in the order given;
        repeating an identity emits another ``InstructorAuthorized`` entry but
        leaves the set unchanged.
        """
        instructors = list(instructors)
        self._access_control.require_owner(caller)
        if not isinstance(name, str):
            raise InvalidArgumentError("course name must be a string", details={'name': name})
        require_max_length("instructors", len(instructors), self._max_instructors)
        for identity in instructors:
            require_identity("instructor", identity)

        with self._concurrency_manager.write_lock(REGISTRY_RESOURCE):
            course_id = self._store.next_course_id()
            timestamp = self._clock.now()

            changes = ChangeSet(new_course=Course(course_id, name, instructors))
            changes.log(LogEntry(EventType.COURSE_CREATED, course_id, timestamp, name=name))
            for identity in instructors:
                changes.log(LogEntry(EventType.INSTRUCTOR_AUTHORIZED, course_id, timestamp,
                                     instructor=identity))

            self._event_log.commit(changes)

        logger.info("Created course %d (%s) with %d instructor(s)",
                    course_id, name, len(set(instructors)))
        return course_id

    def is_active(self, course_id: int) -> bool:
        """Unknown courses read as inactive.

        A negative id or one above ``MAX_ID`` is malformed rather than unknown
        and raises ``InvalidArgumentError``.
        """
        course = self.get_course(course_id)
        return course is not None and course.is_active

    def get_course(self, course_id: int) -> Optional[Course]:
        require_uint("course_id", course_id)
        with self._concurrency_manager.read_lock(REGISTRY_RESOURCE):
            return self._store.get_course(course_id)

    def course_count(self) -> int:
        with self._concurrency_manager.read_lock(REGISTRY_RESOURCE):
            return self._store.next_course_id()

    def get_statistics(self) -> Dict[str, Any]:
        return {
            'courses': self.course_count(),
            'max_instructors': self._max_instructors,
        }
