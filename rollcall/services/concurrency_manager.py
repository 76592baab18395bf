"""
Concurrency management and thread safety components.
"""

import logging
import threading
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set

from ..core.exceptions import ConcurrencyError

logger = logging.getLogger(__name__)

REGISTRY_RESOURCE = "course-registry"


def course_resource(course_id: int) -> str:
    """Lock resource name for one course's attendance table."""
    return f"course:{course_id}"


class LockType(Enum):
    """Types of locks available."""
    READ = "read"
    WRITE = "write"


@dataclass
class LockInfo:
    """Information about a held lock."""
    lock_id: str
    resource_id: str
    lock_type: LockType
    holder_id: str
    acquired_at: float


class ConcurrencyManager:
    """Reader/writer locks keyed by resource name.

    Any number of readers may share a resource; a writer excludes everyone
    else. A holder that already owns the write lock may re-enter the resource
    with either lock type.
    """

    def __init__(self, lock_timeout: Optional[float] = 5.0):
        self._lock_timeout = lock_timeout
        self._locks: Dict[str, Dict[LockType, Set[str]]] = defaultdict(lambda: defaultdict(set))
        self._lock_holders: Dict[str, LockInfo] = {}
        self._lock = threading.RLock()
        self._released = threading.Condition(self._lock)

    def acquire_lock(self, resource_id: str, lock_type: LockType,
                     holder_id: Optional[str] = None, timeout: Optional[float] = None) -> str:
        """Acquire a lock on a resource, waiting up to ``timeout`` seconds."""
        holder_id = holder_id or self._current_holder()
        timeout = self._lock_timeout if timeout is None else timeout
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._released:
            while not self._can_acquire_lock(resource_id, lock_type, holder_id):
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    logger.warning("Timed out waiting for %s lock on %s", lock_type.value, resource_id)
                    raise ConcurrencyError(
                        f"Timed out acquiring {lock_type.value} lock on {resource_id}",
                        details={'resource_id': resource_id, 'timeout': timeout},
                    )
                self._released.wait(remaining)

            lock_id = str(uuid.uuid4())
            self._locks[resource_id][lock_type].add(lock_id)
            self._lock_holders[lock_id] = LockInfo(
                lock_id=lock_id,
                resource_id=resource_id,
                lock_type=lock_type,
                holder_id=holder_id,
                acquired_at=time.time(),
            )
            return lock_id

    def release_lock(self, lock_id: str) -> bool:
        """Release a lock."""
        with self._released:
            lock_info = self._lock_holders.pop(lock_id, None)
            if lock_info is None:
                return False

            resource_locks = self._locks[lock_info.resource_id]
            resource_locks[lock_info.lock_type].discard(lock_id)
            if not resource_locks[lock_info.lock_type]:
                del resource_locks[lock_info.lock_type]
            if not resource_locks:
                del self._locks[lock_info.resource_id]

            self._released.notify_all()
            return True

    def _can_acquire_lock(self, resource_id: str, lock_type: LockType, holder_id: str) -> bool:
        """Check if a lock can be acquired."""
        existing_locks = self._locks.get(resource_id)
        if not existing_locks:
            return True

        held_by_me = {self._lock_holders[lock_id].lock_type
                      for locks in existing_locks.values()
                      for lock_id in locks
                      if self._lock_holders[lock_id].holder_id == holder_id}

        if LockType.WRITE in held_by_me:
            return True

        if lock_type == LockType.READ:
            return LockType.WRITE not in existing_locks

        if LockType.READ in held_by_me:
            # Upgrading while other readers wait on us would never finish.
            raise ConcurrencyError(f"Cannot upgrade read lock to write lock on {resource_id}")
        return not existing_locks

    @staticmethod
    def _current_holder() -> str:
        return f"thread-{threading.get_ident()}"

    @contextmanager
    def lock(self, resource_id: str, lock_type: LockType,
             holder_id: Optional[str] = None, timeout: Optional[float] = None):
        """Context manager for acquiring and releasing locks."""
        lock_id = self.acquire_lock(resource_id, lock_type, holder_id, timeout)
        try:
            yield lock_id
        finally:
            self.release_lock(lock_id)

    def read_lock(self, resource_id: str):
        return self.lock(resource_id, LockType.READ)

    def write_lock(self, resource_id: str):
        return self.lock(resource_id, LockType.WRITE)

    def get_lock_info(self, resource_id: str) -> List[LockInfo]:
        """Get information about all locks on a resource."""
        with self._lock:
            return [self._lock_holders[lock_id]
                    for lock_ids in self._locks.get(resource_id, {}).values()
                    for lock_id in lock_ids]

    def get_holder_locks(self, holder_id: str) -> List[LockInfo]:
        """Get all locks held by a specific holder."""
        with self._lock:
            return [lock_info for lock_info in self._lock_holders.values()
                    if lock_info.holder_id == holder_id]
