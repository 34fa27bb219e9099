"""
Classroom Registry
==================

Read access to schools and classrooms for the scoring core, plus the small
create helpers used to seed a database (account sign-up lives elsewhere).
"""

import logging
import secrets
from typing import Optional

from classpoint.errors import NotFound
from classpoint.services.database import Database

logger = logging.getLogger(__name__)


def new_id() -> str:
    """Opaque random identifier for schools, classrooms and tokens."""
    return secrets.token_urlsafe(18)


class ClassroomRegistry:
    """Existence checks and school lookups for classrooms."""

    def __init__(self, db: Database):
        self.db = db

    def school_exists(self, school_id: str) -> bool:
        row = self.db.fetch_one("SELECT 1 FROM school WHERE id = ?", (school_id,))
        return row is not None

    def class_exists(self, class_id: str) -> bool:
        row = self.db.fetch_one("SELECT 1 FROM classroom WHERE id = ?", (class_id,))
        return row is not None

    def school_of(self, class_id: str) -> str:
        """
        Return the school a classroom belongs to.

        Raises:
            NotFound: If the classroom doesn't exist
        """
        row = self.db.fetch_one("SELECT school_id FROM classroom WHERE id = ?", (class_id,))
        if row is None:
            raise NotFound("Classroom not found")
        return row["school_id"]

    def count_classes(self, school_id: str) -> int:
        row = self.db.fetch_one(
            "SELECT COUNT(*) AS n FROM classroom WHERE school_id = ?", (school_id,)
        )
        return row["n"]

    # =========================================================================
    # SEEDING
    # =========================================================================

    def create_school(self, name: str) -> str:
        school_id = new_id()
        self.db.execute("INSERT INTO school VALUES (?, ?)", (school_id, name))
        logger.info(f"Created school {name!r} ({school_id})")
        return school_id

    def create_classroom(
        self,
        school_id: str,
        grade: int,
        name: str,
        password_hash: Optional[str] = None,
    ) -> str:
        """
        Register a classroom under an existing school.

        Raises:
            NotFound: If the school doesn't exist
        """
        if not self.school_exists(school_id):
            raise NotFound("School not found")

        class_id = new_id()
        self.db.execute(
            "INSERT INTO classroom VALUES (?, ?, ?, ?, ?)",
            (class_id, school_id, grade, name, password_hash),
        )
        logger.info(f"Created classroom {grade}-{name} in school {school_id} ({class_id})")
        return class_id
