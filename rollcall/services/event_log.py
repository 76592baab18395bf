"""
Append-only event log with a live subscription feed.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from ..core.entities import ChangeSet, LogEntry
from ..core.enums import EventType
from ..core.interfaces import EventHandler, LedgerStore
from ..core.validators import require_uint

logger = logging.getLogger(__name__)


@dataclass
class EventSubscription:
    """Event subscription information."""
    subscriber_id: str
    handler: Callable[[LogEntry], None]
    event_types: Optional[FrozenSet[EventType]] = None
    created_at: float = field(default_factory=time.time)

    def wants(self, entry: LogEntry) -> bool:
        return self.event_types is None or entry.event_type in self.event_types


class EventLog:
    """Records state changes and fans committed entries out to subscribers.

    Entries only reach the log through ``commit``, which hands the whole change
    set to the ledger store so state and log land in the same transaction.
    Subscribers are notified afterwards, in sequence order; a failing handler
    is logged and skipped.
    """

    def __init__(self, store: LedgerStore):
        self._store = store
        self._subscriptions: Dict[str, EventSubscription] = {}
        self._lock = threading.RLock()
        self._delivery_failures = 0

    def commit(self, changes: ChangeSet) -> List[LogEntry]:
        """Commit a change set and publish its entries."""
        with self._lock:
            committed = self._store.commit(changes)
            for entry in committed:
                logger.info("Recorded #%d %s for course %d",
                            entry.sequence, entry.event_type.value, entry.course_id)
                self._notify_subscribers(entry)
            return committed

    def subscribe(self, subscriber_id: str, handler: Callable[[LogEntry], None],
                  event_types: Optional[Iterable[EventType]] = None) -> None:
        """Subscribe to committed entries."""
        with self._lock:
            self._subscriptions[subscriber_id] = EventSubscription(
                subscriber_id=subscriber_id,
                handler=handler,
                event_types=frozenset(event_types) if event_types is not None else None,
            )

    def add_handler(self, subscriber_id: str, handler: EventHandler) -> None:
        """Subscribe an ``EventHandler`` implementation."""
        self.subscribe(subscriber_id, handler.handle_entry, handler.event_types())

    def unsubscribe(self, subscriber_id: str) -> bool:
        """Unsubscribe from entries."""
        with self._lock:
            return self._subscriptions.pop(subscriber_id, None) is not None

    def _notify_subscribers(self, entry: LogEntry) -> None:
        for subscription in list(self._subscriptions.values()):
            if not subscription.wants(entry):
                continue
            try:
                subscription.handler(entry)
            except Exception:
                self._delivery_failures += 1
                logger.exception("Subscriber %s failed on entry #%d",
                                 subscription.subscriber_id, entry.sequence)

    def replay(self, since: int = 0, event_type: Optional[EventType] = None,
               course_id: Optional[int] = None) -> List[LogEntry]:
        """Entries after ``since`` in commit order, optionally filtered."""
        require_uint("since", since)
        if course_id is not None:
            require_uint("course_id", course_id)
        return self._store.get_entries(since=since, event_type=event_type, course_id=course_id)

    def last_sequence(self) -> int:
        return self._store.last_sequence()

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'entries': self._store.last_sequence(),
                'subscribers': len(self._subscriptions),
                'delivery_failures': self._delivery_failures,
            }
