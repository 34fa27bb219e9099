"""
Status Models
=============
Pydantic models for the daily scoring API.

This module defines all data structures used throughout the application:
- Request models: What the frontend and the sensor device send us
- Response models: What the backend returns
- Internal models: Day statuses and resolved session identities
"""

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class SessionKind(str, Enum):
    """
    Who a session token belongs to.

    - CLASS: the classroom account itself (class dashboard, sensor device)
    - STUDENT: a student logged in under a classroom
    """
    CLASS = "class"
    STUDENT = "student"


# =============================================================================
# INTERNAL MODELS
# =============================================================================

class DayStatus(BaseModel):
    """
    The per-class, per-day aggregate.

    attend and leftovers stay None until the first registration of the day;
    while either is None the attendance/leftover formula contributes nothing.
    """
    model_config = ConfigDict(frozen=True)

    class_id: str = Field(..., description="Classroom ID")
    date: datetime.date = Field(..., description="Calendar day in the service time zone")
    point: int = Field(default=0, ge=0, description="Running point total")
    attend: Optional[int] = Field(None, description="Registered attendance headcount")
    leftovers: Optional[int] = Field(None, description="Registered leftover-food count")


class Identity(BaseModel):
    """A resolved session: the classroom, plus the student for student sessions."""
    model_config = ConfigDict(frozen=True)

    kind: SessionKind
    class_id: str
    student_id: Optional[str] = None


# =============================================================================
# REQUEST MODELS
# =============================================================================

class RegisterAttendanceRequest(BaseModel):
    """
    Request body for registering today's attendance.

    Example Request:
        POST /api/classroom/attendance
        {"attendees": 28}
    """
    attendees: int = Field(..., ge=0, description="Number of students present")


class RegisterLeftoversRequest(BaseModel):
    """
    Request body for registering today's leftover food count.

    Example Request:
        POST /api/classroom/leftovers
        {"leftovers": 3}
    """
    leftovers: int = Field(..., ge=0, description="Number of leftover meals")


class SensorReading(BaseModel):
    """
    One report from the classroom sensor device.

    The device posts this every SENSOR_INTERVAL milliseconds.

    Example Request:
        POST /api/classroom/sensor
        {
            "temperature": 24.0,
            "humidity": 50.0,
            "is_people": false,
            "lux": 10.0,
            "use_air_conditioner": false
        }
    """
    temperature: float = Field(..., ge=-50, le=80, description="Temperature in °C")
    humidity: float = Field(..., ge=0, le=100, description="Relative humidity %")
    is_people: bool = Field(..., description="Whether anyone is in the room")
    lux: float = Field(..., ge=0, description="Ambient light in lux")
    use_air_conditioner: bool = Field(..., description="Whether the air conditioner is running")


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class PointResponse(BaseModel):
    """Returned after a sensor report: the class's point total for today."""
    point: int = Field(..., description="Today's point total")


class RankResponse(BaseModel):
    """
    Today's standing of a classroom within its school.

    rank is 1-based; a class without a status row today is ranked last.
    """
    point: int = Field(..., description="Today's point total")
    rank: int = Field(..., description="1-based position in the school")
    class_count: int = Field(..., description="Classrooms registered in the school")


class StatusHistoryResponse(BaseModel):
    """Day statuses over the lookback window, oldest first."""
    statuses: list[DayStatus] = Field(..., description="Day statuses")
    total: int = Field(..., description="Number of days returned")
