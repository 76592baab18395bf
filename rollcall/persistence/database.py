"""
Database management and connection handling.
"""

import logging
import os
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..core.exceptions import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)


class DatabaseManager(ABC):
    """Abstract base class for database management."""

    @abstractmethod
    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        pass

    @abstractmethod
    def transaction(self):
        """Context manager yielding a cursor whose statements commit together."""
        pass

    @abstractmethod
    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        pass

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        pass


class SQLiteDatabase(DatabaseManager):
    """SQLite database implementation."""

    def __init__(self, database_path: str = "rollcall.db"):
        self._database_path = database_path
        self._lock = threading.RLock()
        directory = os.path.dirname(os.path.abspath(database_path))
        os.makedirs(directory, exist_ok=True)

    @property
    def database_path(self) -> str:
        return self._database_path

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get database connection with proper cleanup."""
        try:
            conn = sqlite3.connect(self._database_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise PersistenceError(f"Database connection error: {e}")
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        with self._get_connection() as conn:
            try:
                cursor = conn.execute(query, params or ())
                return [dict(row) for row in cursor.fetchall()]
            except (sqlite3.Error, OverflowError) as e:
                raise PersistenceError(f"Query failed: {e}")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run statements in one transaction; roll back on any error."""
        with self._lock, self._get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("BEGIN IMMEDIATE")
                yield cursor
                conn.commit()
            except (sqlite3.Error, OverflowError) as e:
                conn.rollback()
                raise PersistenceError(f"Transaction failed: {e}")
            except Exception:
                conn.rollback()
                raise

    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        with self.transaction() as cursor:
            for table_name, table_schema in schema.items():
                logger.debug("Ensuring table %s", table_name)
                cursor.execute(table_schema)

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        query = "SELECT name FROM sqlite_master WHERE type='table' AND name=?"
        return len(self.execute_query(query, (table_name,))) > 0


class DatabaseFactory:
    """Factory for creating database instances."""

    @staticmethod
    def create_database(db_type: str, **kwargs) -> DatabaseManager:
        """Create a database instance based on type."""
        if db_type.lower() == "sqlite":
            return SQLiteDatabase(**kwargs)
        raise ConfigurationError(f"Unsupported database type: {db_type}")
