"""
Ledger store implementations.

Both backends hold the owner, the course table and counter, instructor sets,
attendance records, the registered-student set and the event log, and apply a
``ChangeSet`` as a single atomic commit.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

from ..core.entities import AttendanceKey, AttendanceRecord, ChangeSet, Course, LogEntry
from ..core.enums import CourseStatus, EventType, StoreType
from ..core.exceptions import ConfigurationError, PersistenceError
from ..core.interfaces import LedgerStore
from .database import DatabaseFactory, DatabaseManager

logger = logging.getLogger(__name__)


def _matches(entry: LogEntry, since: int, event_type: Optional[EventType],
             course_id: Optional[int]) -> bool:
    if entry.sequence <= since:
        return False
    if event_type is not None and entry.event_type != event_type:
        return False
    if course_id is not None and entry.course_id != course_id:
        return False
    return True


class InMemoryLedgerStore(LedgerStore):
    """In-memory implementation of the ledger store."""

    def __init__(self):
        self._owner: Optional[str] = None
        self._courses: Dict[int, Course] = {}
        self._records: Dict[AttendanceKey, AttendanceRecord] = {}
        # course_id -> student -> session ids with a record
        self._sessions_by_student: Dict[int, Dict[str, Set[int]]] = defaultdict(lambda: defaultdict(set))
        self._students: Set[str] = set()
        self._entries: List[LogEntry] = []
        self._lock = threading.RLock()

    def initialize_owner(self, owner: str) -> str:
        with self._lock:
            if self._owner is None:
                self._owner = owner
            return self._owner

    def get_owner(self) -> Optional[str]:
        with self._lock:
            return self._owner

    def next_course_id(self) -> int:
        with self._lock:
            return len(self._courses)

    def get_course(self, course_id: int) -> Optional[Course]:
        with self._lock:
            return self._courses.get(course_id)

    def get_record(self, key: AttendanceKey) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._records.get(key)

    def count_present(self, course_id: int, student: str, total_sessions: int) -> int:
        with self._lock:
            sessions = self._sessions_by_student.get(course_id, {}).get(student, ())
            return sum(
                1 for session_id in sessions
                if session_id < total_sessions
                and self._records[AttendanceKey(course_id, session_id, student)].is_present
            )

    def is_registered_student(self, identity: str) -> bool:
        with self._lock:
            return identity in self._students

    def registered_student_count(self) -> int:
        with self._lock:
            return len(self._students)

    def commit(self, changes: ChangeSet) -> List[LogEntry]:
        with self._lock:
            if changes.new_course is not None:
                course = changes.new_course
                if course.course_id != len(self._courses):
                    raise PersistenceError(
                        f"Course id {course.course_id} is out of sequence; expected {len(self._courses)}"
                    )
                self._courses[course.course_id] = course

            for key, record in changes.records:
                self._records[key] = record
                self._sessions_by_student[key.course_id][key.student].add(key.session_id)
            self._students.update(changes.students)

            committed = []
            for entry in changes.entries:
                sequenced = entry.with_sequence(len(self._entries) + 1)
                self._entries.append(sequenced)
                committed.append(sequenced)
            return committed

    def get_entries(self, since: int = 0, event_type: Optional[EventType] = None,
                    course_id: Optional[int] = None) -> List[LogEntry]:
        with self._lock:
            return [entry for entry in self._entries[max(since, 0):]
                    if _matches(entry, since, event_type, course_id)]

    def last_sequence(self) -> int:
        with self._lock:
            return len(self._entries)


class SQLiteLedgerStore(LedgerStore):
    """SQLite-backed ledger store; every commit is one database transaction."""

    SCHEMA = {
        "meta": """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """,
        "courses": """
            CREATE TABLE IF NOT EXISTS courses (
                course_id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                status TEXT NOT NULL
            )
        """,
        "course_instructors": """
            CREATE TABLE IF NOT EXISTS course_instructors (
                course_id INTEGER NOT NULL REFERENCES courses(course_id),
                identity TEXT NOT NULL,
                PRIMARY KEY (course_id, identity)
            )
        """,
        "attendance": """
            CREATE TABLE IF NOT EXISTS attendance (
                course_id INTEGER NOT NULL,
                session_id INTEGER NOT NULL,
                student TEXT NOT NULL,
                is_present INTEGER NOT NULL,
                timestamp INTEGER NOT NULL,
                PRIMARY KEY (course_id, session_id, student)
            )
        """,
        "attendance_by_student": """
            CREATE INDEX IF NOT EXISTS idx_attendance_student
            ON attendance (course_id, student, session_id)
        """,
        "registered_students": """
            CREATE TABLE IF NOT EXISTS registered_students (
                identity TEXT PRIMARY KEY
            )
        """,
        "events": """
            CREATE TABLE IF NOT EXISTS events (
                sequence INTEGER PRIMARY KEY,
                event_type TEXT NOT NULL,
                course_id INTEGER NOT NULL,
                session_id INTEGER,
                student TEXT,
                instructor TEXT,
                name TEXT,
                is_present INTEGER,
                timestamp INTEGER NOT NULL
            )
        """,
    }

    def __init__(self, database: DatabaseManager):
        self._database = database
        self._database.create_tables(self.SCHEMA)

    def initialize_owner(self, owner: str) -> str:
        with self._database.transaction() as cursor:
            cursor.execute("INSERT OR IGNORE INTO meta (key, value) VALUES ('owner', ?)", (owner,))
            cursor.execute("SELECT value FROM meta WHERE key = 'owner'")
            return cursor.fetchone()["value"]

    def get_owner(self) -> Optional[str]:
        rows = self._database.execute_query("SELECT value FROM meta WHERE key = 'owner'")
        return rows[0]["value"] if rows else None

    def next_course_id(self) -> int:
        rows = self._database.execute_query("SELECT value FROM meta WHERE key = 'next_course_id'")
        return int(rows[0]["value"]) if rows else 0

    def get_course(self, course_id: int) -> Optional[Course]:
        rows = self._database.execute_query(
            "SELECT course_id, name, status FROM courses WHERE course_id = ?", (course_id,)
        )
        if not rows:
            return None
        instructors = self._database.execute_query(
            "SELECT identity FROM course_instructors WHERE course_id = ?", (course_id,)
        )
        row = rows[0]
        return Course(
            course_id=row["course_id"],
            name=row["name"],
            instructors=[r["identity"] for r in instructors],
            status=CourseStatus(row["status"]),
        )

    def get_record(self, key: AttendanceKey) -> Optional[AttendanceRecord]:
        rows = self._database.execute_query(
            """
            SELECT is_present, timestamp FROM attendance
            WHERE course_id = ? AND session_id = ? AND student = ?
            """,
            (key.course_id, key.session_id, key.student),
        )
        if not rows:
            return None
        return AttendanceRecord(is_present=bool(rows[0]["is_present"]), timestamp=rows[0]["timestamp"])

    def count_present(self, course_id: int, student: str, total_sessions: int) -> int:
        rows = self._database.execute_query(
            """
            SELECT COUNT(*) AS present FROM attendance
            WHERE course_id = ? AND student = ? AND session_id < ? AND is_present = 1
            """,
            (course_id, student, total_sessions),
        )
        return rows[0]["present"]

    def is_registered_student(self, identity: str) -> bool:
        rows = self._database.execute_query(
            "SELECT 1 FROM registered_students WHERE identity = ?", (identity,)
        )
        return bool(rows)

    def registered_student_count(self) -> int:
        return self._database.execute_query("SELECT COUNT(*) AS total FROM registered_students")[0]["total"]

    def commit(self, changes: ChangeSet) -> List[LogEntry]:
        with self._database.transaction() as cursor:
            if changes.new_course is not None:
                self._insert_course(cursor, changes.new_course)

            for key, record in changes.records:
                cursor.execute(
                    """
                    INSERT OR REPLACE INTO attendance (course_id, session_id, student, is_present, timestamp)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (key.course_id, key.session_id, key.student, int(record.is_present), record.timestamp),
                )
            for identity in changes.students:
                cursor.execute("INSERT OR IGNORE INTO registered_students (identity) VALUES (?)", (identity,))

            cursor.execute("SELECT COALESCE(MAX(sequence), 0) AS last FROM events")
            sequence = cursor.fetchone()["last"]
            committed = []
            for entry in changes.entries:
                sequence += 1
                sequenced = entry.with_sequence(sequence)
                cursor.execute(
                    """
                    INSERT INTO events (sequence, event_type, course_id, session_id, student,
                                        instructor, name, is_present, timestamp)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        sequenced.sequence,
                        sequenced.event_type.value,
                        sequenced.course_id,
                        sequenced.session_id,
                        sequenced.student,
                        sequenced.instructor,
                        sequenced.name,
                        None if sequenced.is_present is None else int(sequenced.is_present),
                        sequenced.timestamp,
                    ),
                )
                committed.append(sequenced)
            return committed

    @staticmethod
    def _insert_course(cursor, course: Course) -> None:
        cursor.execute("SELECT value FROM meta WHERE key = 'next_course_id'")
        row = cursor.fetchone()
        expected = int(row["value"]) if row else 0
        if course.course_id != expected:
            raise PersistenceError(
                f"Course id {course.course_id} is out of sequence; expected {expected}"
            )
        cursor.execute(
            "INSERT INTO courses (course_id, name, status) VALUES (?, ?, ?)",
            (course.course_id, course.name, course.status.value),
        )
        cursor.executemany(
            "INSERT OR IGNORE INTO course_instructors (course_id, identity) VALUES (?, ?)",
            [(course.course_id, identity) for identity in sorted(course.instructors)],
        )
        cursor.execute(
            "INSERT OR REPLACE INTO meta (key, value) VALUES ('next_course_id', ?)",
            (str(course.course_id + 1),),
        )

    def get_entries(self, since: int = 0, event_type: Optional[EventType] = None,
                    course_id: Optional[int] = None) -> List[LogEntry]:
        query = "SELECT * FROM events WHERE sequence > ?"
        params: List[Any] = [since]
        if event_type is not None:
            query += " AND event_type = ?"
            params.append(event_type.value)
        if course_id is not None:
            query += " AND course_id = ?"
            params.append(course_id)
        query += " ORDER BY sequence ASC"
        return [self._row_to_entry(row) for row in self._database.execute_query(query, tuple(params))]

    def last_sequence(self) -> int:
        return self._database.execute_query("SELECT COALESCE(MAX(sequence), 0) AS last FROM events")[0]["last"]

    @staticmethod
    def _row_to_entry(row: Dict[str, Any]) -> LogEntry:
        return LogEntry(
            event_type=EventType(row["event_type"]),
            course_id=row["course_id"],
            timestamp=row["timestamp"],
            sequence=row["sequence"],
            session_id=row["session_id"],
            student=row["student"],
            instructor=row["instructor"],
            name=row["name"],
            is_present=None if row["is_present"] is None else bool(row["is_present"]),
        )


class LedgerStoreFactory:
    """Factory for creating ledger store instances."""

    @staticmethod
    def create_store(store_type: str, **kwargs) -> LedgerStore:
        """Create a ledger store based on type."""
        try:
            kind = StoreType(store_type.lower())
        except ValueError:
            raise ConfigurationError(f"Unsupported ledger store type: {store_type}")

        if kind == StoreType.MEMORY:
            return InMemoryLedgerStore()

        database_path = kwargs.get("database_path", "rollcall.db")
        database = DatabaseFactory.create_database("sqlite", database_path=database_path)
        logger.info("Using SQLite ledger at %s", database_path)
        return SQLiteLedgerStore(database)
