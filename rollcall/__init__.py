"""
Rollcall: a permissioned, append-only attendance ledger.

Courses are created by a single owner, attendance is written by the owner or a
course's authorised instructors, and every state change is recorded in an
immutable event log.
"""

__version__ = "1.0.0"
__author__ = "Rollcall Development Team"
__description__ = "Permissioned attendance ledger with an append-only event log"
