"""
Routers Package
===============

Routers are like the reception desk - they direct incoming requests
to the right place.
"""

from .classroom import router as classroom_router, set_score_manager
from .student import router as student_router

__all__ = [
    "classroom_router",
    "student_router",
    "set_score_manager",
]
