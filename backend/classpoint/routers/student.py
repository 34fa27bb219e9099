"""
Student API Router
==================

Read-only views for students, authenticated by the `student_token` cookie.
A student sees their classroom's numbers.

GET    /api/student/status  - Today's status of the student's classroom
GET    /api/student/rank    - Today's rank of the student's classroom
"""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends

from classpoint.models import DayStatus, Identity, RankResponse, SessionKind
from classpoint.routers.classroom import get_score_manager, resolve_token
from classpoint.services.session_service import STUDENT_COOKIE

router = APIRouter(prefix="/api/student", tags=["student"])


def current_student(
    student_token: Optional[str] = Cookie(None, alias=STUDENT_COOKIE),
    manager=Depends(get_score_manager),
) -> Identity:
    return resolve_token(manager, student_token, SessionKind.STUDENT)


@router.get("/status", response_model=DayStatus)
async def get_class_status(
    identity: Identity = Depends(current_student),
    manager=Depends(get_score_manager),
):
    return manager.today_status(identity.class_id)


@router.get("/rank", response_model=RankResponse)
async def get_class_rank(
    identity: Identity = Depends(current_student),
    manager=Depends(get_score_manager),
):
    return manager.compute_rank(identity.class_id)
