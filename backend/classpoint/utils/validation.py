"""
Input Validation Utilities
===========================

Checks applied to identifiers and counts before they reach the scoring core.
"""

import re


# Tokens and IDs are URL-safe base64 (secrets.token_urlsafe)
_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


def validate_token(token: str) -> bool:
    """
    Check that a session token has a plausible shape.

    Args:
        token: Raw cookie value

    Returns:
        True if it could be a token we issued, False otherwise
    """
    return bool(token) and bool(_ID_PATTERN.match(token))


def validate_headcount(value: int, max_count: int = 1000) -> bool:
    """
    Validate an attendance or leftover count.

    Args:
        value: Count sent by the client
        max_count: Largest count a single classroom can report

    Returns:
        True if valid, False otherwise
    """
    return 0 <= value <= max_count
