"""
Access control ledger: who owns the system and who may write for a course.
"""

import logging
from typing import FrozenSet

from ..core.exceptions import AuthorizationError, ConfigurationError
from ..core.interfaces import LedgerStore
from ..core.validators import require_uint

logger = logging.getLogger(__name__)


class AccessControlLedger:
    """Owner and per-course instructor predicates.

    The owner is fixed when the ledger is constructed and is persisted in the
    store on first start; reopening a store with a different owner is refused.
    Instructor sets live on the courses themselves and are only changed by the
    course registry.
    """

    def __init__(self, store: LedgerStore, owner: str):
        if not owner:
            raise ConfigurationError("An owner identity is required")
        stored_owner = store.initialize_owner(owner)
        if stored_owner != owner:
            raise ConfigurationError(
                "Configured owner does not match the owner recorded in the ledger",
                details={'configured': owner, 'recorded': stored_owner},
            )
        self._store = store
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, identity: str) -> bool:
        return identity == self._owner

    def is_authorized(self, course_id: int, identity: str) -> bool:
        """True for the owner or any instructor of the course.

        Unknown courses only authorise the owner. A malformed id (negative or
        above ``MAX_ID``) raises ``InvalidArgumentError`` rather than reading as
        unknown.
        """
        require_uint("course_id", course_id)
        if self.is_owner(identity):
            return True
        course = self._store.get_course(course_id)
        return course is not None and course.has_instructor(identity)

    def instructors(self, course_id: int) -> FrozenSet[str]:
        require_uint("course_id", course_id)
        course = self._store.get_course(course_id)
        return course.instructors if course is not None else frozenset()

    def require_owner(self, identity: str) -> None:
        if not self.is_owner(identity):
            logger.warning("Rejected owner-only operation from %s", identity)
            raise AuthorizationError("Only the owner may perform this operation",
                                     details={'caller': identity})

    def require_authorized(self, course_id: int, identity: str) -> None:
        if not self.is_authorized(course_id, identity):
            logger.warning("Rejected write to course %s from %s", course_id, identity)
            raise AuthorizationError("Caller is not authorized for this course",
                                     details={'caller': identity, 'course_id': course_id})
