"""
Error Kinds
===========

Every failure the scoring core can report. Each carries the HTTP status the
API layer answers with and a short user-facing message.

- Unauthenticated: no session cookie at all
- InvalidToken:    a cookie was sent but no session matches it
- InvalidInput:    malformed request payload
- NotFound:        referenced school or classroom does not exist
- StorageFailure:  the database failed; the message stays generic
"""


class ScoringError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ScoringError):
    status_code = 401
    default_message = "Not logged in"


class InvalidToken(ScoringError):
    status_code = 401
    default_message = "Invalid session token"


class InvalidInput(ScoringError):
    status_code = 400
    default_message = "Invalid params"


class NotFound(ScoringError):
    status_code = 404
    default_message = "Not found"


class StorageFailure(ScoringError):
    status_code = 500
    default_message = "Internal server error"
