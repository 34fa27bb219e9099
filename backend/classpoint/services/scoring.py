"""
Scoring Rules
=============

The pure math behind the daily point total. Nothing here touches storage.

ATTENDANCE / LEFTOVERS:
----------------------
    f(attend, leftovers) = round((1030 * attend / 30 - leftovers) * 2.501 / 10)

f is 0 until both counts are registered for the day. A write changes the
point total by f(after) - f(before), floored at zero.

ENVIRONMENT (per sensor report):
-------------------------------
    DI = 0.81*T + 0.01*H*(0.99*T - 14.3) + 46.3     (discomfort index)
    n  = elapsed minutes, capped at one sensor interval

    air conditioner point = ceil(0.567 * (10 - |DI - 69.5|) * n)  when > 0.5
    lux point             = floor(5.4 * 0.378 * 2 * n)  when the room is empty and dark

RANKING:
-------
Stable sort by point, highest first. Equal points keep fetch order.
"""

import math
from typing import Optional, Sequence

from classpoint.models import DayStatus, SensorReading


# =============================================================================
# ATTENDANCE / LEFTOVER ADJUSTER
# =============================================================================

def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def attendance_score(attend: Optional[int], leftovers: Optional[int]) -> int:
    """Points contributed by a day's attendance and leftovers."""
    if attend is None or leftovers is None:
        return 0
    return round_half_away((1030 * attend / 30 - leftovers) * 2.501 / 10)


def adjust_point(before: Optional[DayStatus], after: DayStatus) -> int:
    """
    New point total after an attend/leftovers write.

    Args:
        before: Row as it was before the write (None on the first write of the day)
        after: Row right after the write

    Returns:
        previous point plus f(after) - f(before), never below zero
    """
    if before is None:
        previous_point = 0
        previous_score = 0
    else:
        previous_point = before.point
        previous_score = attendance_score(before.attend, before.leftovers)

    delta = attendance_score(after.attend, after.leftovers) - previous_score
    return max(0, previous_point + delta)


# =============================================================================
# ENVIRONMENTAL ACCRUAL ENGINE
# =============================================================================

def discomfort_index(temperature: float, humidity: float) -> float:
    """Temperature-humidity index; about 69.5 is the comfortable center."""
    return 0.81 * temperature + 0.01 * humidity * (0.99 * temperature - 14.3) + 46.3


class AccrualEngine:
    """
    Turns a sensor report into a point increment.

    The engine only knows the configured sensor interval; a single report is
    never credited for more than one interval of elapsed time.
    """

    CO2_RATE = 1.5 * 0.378
    COMFORT_CENTER = 69.5
    COMFORT_BAND = 10
    LUX_RATE = 5.4 * 0.378 * 2
    DARK_LUX = 30

    def __init__(self, sensor_interval_ms: int):
        if sensor_interval_ms <= 0:
            raise ValueError("sensor_interval_ms must be positive")
        self.sensor_interval_ms = sensor_interval_ms

    def clamp_duration(self, duration_ms: float) -> float:
        return min(max(duration_ms, 0), self.sensor_interval_ms)

    def air_conditioner_point(self, reading: SensorReading, minutes: float) -> int:
        di = discomfort_index(reading.temperature, reading.humidity)
        raw = self.CO2_RATE * (self.COMFORT_BAND - abs(di - self.COMFORT_CENTER)) * minutes
        return math.ceil(raw) if raw > 0.5 else 0

    def lux_point(self, reading: SensorReading, minutes: float) -> int:
        # lights off in an empty room
        if reading.is_people or reading.lux >= self.DARK_LUX:
            return 0
        return math.floor(self.LUX_RATE * minutes)

    def increment(self, reading: SensorReading, duration_ms: float) -> int:
        """Points earned by one report covering `duration_ms` of elapsed time."""
        minutes = self.clamp_duration(duration_ms) / 60000
        return self.air_conditioner_point(reading, minutes) + self.lux_point(reading, minutes)

    @staticmethod
    def fold(previous_point: int, increment: int) -> int:
        return max(0, previous_point + increment)


# =============================================================================
# RANKING ENGINE
# =============================================================================

def rank_class(
    statuses: Sequence[DayStatus],
    class_id: str,
    class_count: int,
) -> tuple[int, int]:
    """
    Find a class's (point, rank) among today's statuses of its school.

    Ties keep fetch order, so the first-fetched class gets the better rank.
    A class with no status row today gets point 0 and is ranked last
    (rank == class_count).
    """
    ordered = sorted(statuses, key=lambda s: s.point, reverse=True)
    for position, status in enumerate(ordered, start=1):
        if status.class_id == class_id:
            return status.point, position
    return 0, class_count
