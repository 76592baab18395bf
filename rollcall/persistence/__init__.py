"""
Persistence module for durable ledger state and the event log.
"""

from .database import DatabaseManager, SQLiteDatabase, DatabaseFactory
from .ledger_store import InMemoryLedgerStore, SQLiteLedgerStore, LedgerStoreFactory

__all__ = [
    "DatabaseManager",
    "SQLiteDatabase",
    "DatabaseFactory",
    "InMemoryLedgerStore",
    "SQLiteLedgerStore",
    "LedgerStoreFactory",
]
