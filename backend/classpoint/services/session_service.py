"""
Session Service
===============

Maps opaque session tokens to the classroom (or student) that owns them.

Tokens arrive in cookies:
- class_token:   issued to a classroom account
- student_token: issued to a student inside a classroom

Tokens never expire. A token stays valid until its row is removed.
"""

import logging
from typing import Optional

from classpoint.errors import InvalidToken, NotFound, Unauthenticated
from classpoint.models import Identity, SessionKind
from classpoint.services.database import Database
from classpoint.services.registry import ClassroomRegistry, new_id

logger = logging.getLogger(__name__)


CLASS_COOKIE = "class_token"
STUDENT_COOKIE = "student_token"


class SessionService:
    """Token store and resolver."""

    def __init__(self, db: Database, registry: ClassroomRegistry):
        self.db = db
        self.registry = registry

    # =========================================================================
    # RESOLVING
    # =========================================================================

    def resolve(self, token: Optional[str], kind: SessionKind) -> Identity:
        if kind == SessionKind.CLASS:
            return Identity(kind=kind, class_id=self.resolve_class(token))
        class_id, student_id = self.resolve_student(token)
        return Identity(kind=kind, class_id=class_id, student_id=student_id)

    def resolve_class(self, token: Optional[str]) -> str:
        """
        Look up the classroom behind a class_token.

        Raises:
            Unauthenticated: No token was sent
            InvalidToken: The token isn't in the store
        """
        if not token:
            raise Unauthenticated()

        row = self.db.fetch_one("SELECT class_id FROM class_token WHERE token = ?", (token,))
        if row is None:
            raise InvalidToken()
        return row["class_id"]

    def resolve_student(self, token: Optional[str]) -> tuple[str, str]:
        """Look up (class_id, student_id) behind a student_token."""
        if not token:
            raise Unauthenticated()

        row = self.db.fetch_one(
            "SELECT class_id, student_id FROM student_token WHERE token = ?", (token,)
        )
        if row is None:
            raise InvalidToken()
        return row["class_id"], row["student_id"]

    # =========================================================================
    # ISSUING
    # =========================================================================

    def issue_class_token(self, class_id: str) -> str:
        if not self.registry.class_exists(class_id):
            raise NotFound("Classroom not found")

        token = new_id()
        self.db.execute("INSERT INTO class_token VALUES (?, ?)", (token, class_id))
        logger.info(f"Issued class session for {class_id}")
        return token

    def issue_student_token(self, class_id: str, student_id: str) -> str:
        if not self.registry.class_exists(class_id):
            raise NotFound("Classroom not found")

        token = new_id()
        self.db.execute(
            "INSERT INTO student_token VALUES (?, ?, ?)", (token, student_id, class_id)
        )
        logger.info(f"Issued student session for {student_id} in {class_id}")
        return token
