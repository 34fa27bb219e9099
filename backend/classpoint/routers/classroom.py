"""
Classroom API Router
====================

Endpoints used by the classroom's own devices: the class dashboard and
the sensor box on the wall. Every endpoint needs the `class_token` cookie
handed out at login.

ALL ENDPOINTS:
-------------
POST   /api/classroom/attendance      - Register today's headcount
POST   /api/classroom/leftovers       - Register today's leftover meals
POST   /api/classroom/sensor          - Sensor device reports a reading
GET    /api/classroom/status          - Today's status
GET    /api/classroom/status/history  - Last 30 days of statuses
GET    /api/classroom/rank            - Today's rank within the school
"""

import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException

from classpoint.errors import InvalidInput, InvalidToken
from classpoint.models import (
    DayStatus,
    Identity,
    PointResponse,
    RankResponse,
    RegisterAttendanceRequest,
    RegisterLeftoversRequest,
    SensorReading,
    SessionKind,
    StatusHistoryResponse,
)
from classpoint.services.session_service import CLASS_COOKIE
from classpoint.utils.validation import validate_headcount, validate_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/classroom", tags=["classroom"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================

_score_manager = None  # This gets set when the app is created


def set_score_manager(manager):
    """Called by create_app() to hand the routers their ScoreManager."""
    global _score_manager
    _score_manager = manager


def get_score_manager():
    """Get the score manager for use in endpoints."""
    if _score_manager is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return _score_manager


def resolve_token(manager, token: Optional[str], kind: SessionKind) -> Identity:
    # A cookie that can't be one of ours is rejected without a lookup
    if token and not validate_token(token):
        logger.warning(f"Rejected malformed {kind.value} session cookie")
        raise InvalidToken()
    return manager.resolve_session(token, kind)


def current_class(
    class_token: Optional[str] = Cookie(None, alias=CLASS_COOKIE),
    manager=Depends(get_score_manager),
) -> Identity:
    """Resolve the class_token cookie. Runs before any endpoint body."""
    return resolve_token(manager, class_token, SessionKind.CLASS)


# =============================================================================
# ATTENDANCE / LEFTOVERS
# =============================================================================

@router.post("/attendance", response_model=DayStatus)
async def register_attendance(
    request: RegisterAttendanceRequest,
    identity: Identity = Depends(current_class),
    manager=Depends(get_score_manager),
):
    """
    Register how many students are present today.

    Sending the same number twice doesn't change the points.
    """
    if not validate_headcount(request.attendees):
        raise InvalidInput(f"Invalid attendees: {request.attendees}")

    return manager.register_attendance(identity.class_id, manager.today(), request.attendees)


@router.post("/leftovers", response_model=DayStatus)
async def register_leftovers(
    request: RegisterLeftoversRequest,
    identity: Identity = Depends(current_class),
    manager=Depends(get_score_manager),
):
    """Register how many meals were left over today."""
    if not validate_headcount(request.leftovers):
        raise InvalidInput(f"Invalid leftovers: {request.leftovers}")

    return manager.register_leftovers(identity.class_id, manager.today(), request.leftovers)


# =============================================================================
# SENSOR
# =============================================================================

@router.post("/sensor", response_model=PointResponse)
async def report_sensor(
    reading: SensorReading,
    identity: Identity = Depends(current_class),
    manager=Depends(get_score_manager),
):
    """
    The classroom sensor reports a reading.

    Points are credited for the time since the previous report, up to one
    sensor interval.
    """
    return manager.record_sensor_sample(identity.class_id, reading)


# =============================================================================
# STATUS / RANK
# =============================================================================

@router.get("/status", response_model=DayStatus)
async def get_status(
    identity: Identity = Depends(current_class),
    manager=Depends(get_score_manager),
):
    """Today's status. Zero points and no counts if nothing was registered yet."""
    return manager.today_status(identity.class_id)


@router.get("/status/history", response_model=StatusHistoryResponse)
async def get_status_history(
    identity: Identity = Depends(current_class),
    manager=Depends(get_score_manager),
):
    """Statuses for the last 30 days, oldest first."""
    statuses = manager.status_history(identity.class_id)
    return StatusHistoryResponse(statuses=statuses, total=len(statuses))


@router.get("/rank", response_model=RankResponse)
async def get_rank(
    identity: Identity = Depends(current_class),
    manager=Depends(get_score_manager),
):
    """Today's points and rank among the classrooms of the same school."""
    return manager.compute_rank(identity.class_id)
