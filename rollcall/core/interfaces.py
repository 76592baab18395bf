"""
Core interfaces and abstract base classes for the Rollcall ledger.
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Iterable, List, Mapping, Optional

from .entities import AttendanceKey, AttendanceRecord, ChangeSet, Course, LogEntry
from .enums import EventType


class IdentityProvider(ABC):
    """Resolves an already-authenticated caller identity.

    Signature checks and session handling belong to whatever sits in front of
    the ledger; implementations only translate its output into an identity.
    """

    @abstractmethod
    def resolve(self, headers: Mapping[str, str]) -> Optional[str]:
        """Return the caller identity, or None when the request is anonymous."""
        pass


class Clock(ABC):
    """Source of commit timestamps."""

    @abstractmethod
    def now(self) -> int:
        """Current timestamp in whole seconds."""
        pass


class SystemClock(Clock):
    """Wall clock that never runs backwards between calls."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class LedgerStore(ABC):
    """Durable home of every piece of ledger state.

    ``commit`` must apply a change set and its log entries as one unit; readers
    never observe part of a commit.
    """

    @abstractmethod
    def initialize_owner(self, owner: str) -> str:
        """Persist the owner on first use and return the stored owner."""
        pass

    @abstractmethod
    def get_owner(self) -> Optional[str]:
        pass

    @abstractmethod
    def next_course_id(self) -> int:
        """Id the next created course will receive."""
        pass

    @abstractmethod
    def get_course(self, course_id: int) -> Optional[Course]:
        pass

    @abstractmethod
    def get_record(self, key: AttendanceKey) -> Optional[AttendanceRecord]:
        """Stored record, or None when the key was never written."""
        pass

    @abstractmethod
    def count_present(self, course_id: int, student: str, total_sessions: int) -> int:
        """Sessions in ``0..total_sessions-1`` where the student is present."""
        pass

    @abstractmethod
    def is_registered_student(self, identity: str) -> bool:
        pass

    @abstractmethod
    def registered_student_count(self) -> int:
        pass

    @abstractmethod
    def commit(self, changes: ChangeSet) -> List[LogEntry]:
        """Apply a change set atomically and return its sequenced log entries."""
        pass

    @abstractmethod
    def get_entries(self, since: int = 0, event_type: Optional[EventType] = None,
                    course_id: Optional[int] = None) -> List[LogEntry]:
        """Log entries with ``sequence > since`` in commit order."""
        pass

    @abstractmethod
    def last_sequence(self) -> int:
        pass

    def close(self) -> None:
        """Release backend resources."""
        pass


class EventHandler(ABC):
    """Consumer of committed log entries."""

    @abstractmethod
    def handle_entry(self, entry: LogEntry) -> None:
        pass

    def event_types(self) -> Optional[Iterable[EventType]]:
        """Event kinds this handler wants; None means all."""
        return None
