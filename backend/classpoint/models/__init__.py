"""
Models Package
==============

This is where all our data models live.
Import from here instead of the individual files.

Example:
    from classpoint.models import DayStatus, SensorReading
"""

from .status import (
    # Session kinds and identities
    SessionKind,
    Identity,

    # The central daily record
    DayStatus,

    # What clients send us
    RegisterAttendanceRequest,
    RegisterLeftoversRequest,
    SensorReading,

    # What we send back
    PointResponse,
    RankResponse,
    StatusHistoryResponse,
)

__all__ = [
    "SessionKind",
    "Identity",
    "DayStatus",
    "RegisterAttendanceRequest",
    "RegisterLeftoversRequest",
    "SensorReading",
    "PointResponse",
    "RankResponse",
    "StatusHistoryResponse",
]
