"""
Services Package
================

These are the "workers" that do the actual work.

- Database: The SQLite file everything lives in
- ClassroomRegistry: Which classrooms exist and which school they belong to
- SessionService: Turns session tokens into classroom/student identities
- StatusStore: The per-class, per-day status rows
- ScoreManager: The boss that applies the scoring rules
"""

from .database import Database
from .registry import ClassroomRegistry
from .session_service import SessionService
from .status_store import StatusStore
from .score_manager import ScoreManager

__all__ = [
    "Database",
    "ClassroomRegistry",
    "SessionService",
    "StatusStore",
    "ScoreManager",
]
