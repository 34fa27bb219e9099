"""
Utility modules for the classroom points backend.
"""

from classpoint.utils.validation import (
    validate_token,
    validate_headcount,
)

__all__ = [
    "validate_token",
    "validate_headcount",
]
