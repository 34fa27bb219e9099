"""
Score Manager
=============

The operations the API layer calls. Each one resolves nothing by itself
(routers hand it an already resolved class_id), reads the day's status,
applies the scoring rules and writes the result back.

WHAT IT DOES:
------------
1. register_attendance / register_leftovers: store the count, then move the
   point total by f(after) - f(before)
2. record_sensor_sample: credit the time since the class's previous report
3. compute_rank: place the class among its school's classes for today
4. today_status / status_history: read-only views for the dashboard

CONSISTENCY:
-----------
Each write operation runs inside one database transaction: the snapshot
read, the upsert, the point write and (for sensor reports) the sensor
timestamp replace either all commit or all roll back. Concurrent reports for
the same class are serialized, so no delta is computed from a stale row.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from classpoint.errors import InvalidInput
from classpoint.models import DayStatus, Identity, SensorReading, SessionKind
from classpoint.services import scoring
from classpoint.services.database import Database
from classpoint.services.registry import ClassroomRegistry
from classpoint.services.session_service import SessionService
from classpoint.services.status_store import StatusStore

logger = logging.getLogger(__name__)


class ScoreManager:
    """The daily scoring engine behind every score-affecting endpoint."""

    HISTORY_DAYS = 30

    def __init__(
        self,
        db: Database,
        sensor_interval_ms: int,
        tz: ZoneInfo,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Set up the manager.

        Args:
            db: Open database shared by all stores
            sensor_interval_ms: Longest elapsed time a single sensor report can earn
            tz: Time zone that decides what "today" is
            clock: Returns the current aware datetime (tests pin it)
        """
        self.db = db
        self.tz = tz
        self.clock = clock or (lambda: datetime.now(self.tz))

        self.registry = ClassroomRegistry(db)
        self.sessions = SessionService(db, self.registry)
        self.statuses = StatusStore(db)
        self.accrual = scoring.AccrualEngine(sensor_interval_ms)

    def now(self) -> datetime:
        return self.clock().astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    # =========================================================================
    # SESSIONS
    # =========================================================================

    def resolve_session(self, token: Optional[str], kind: SessionKind) -> Identity:
        return self.sessions.resolve(token, kind)

    # =========================================================================
    # ATTENDANCE / LEFTOVERS
    # =========================================================================

    def register_attendance(self, class_id: str, date_today: date, attendees: int) -> DayStatus:
        """Store today's headcount and fold the resulting point change."""
        return self._register(class_id, date_today, self.statuses.upsert_attend, attendees, "attend")

    def register_leftovers(self, class_id: str, date_today: date, leftovers: int) -> DayStatus:
        """Store today's leftover count and fold the resulting point change."""
        return self._register(class_id, date_today, self.statuses.upsert_leftovers, leftovers, "leftovers")

    def _register(self, class_id, day, upsert, value, field) -> DayStatus:
        if value < 0:
            raise InvalidInput(f"{field} must not be negative")

        with self.db.transaction():
            before = self.statuses.get(class_id, day)
            after = upsert(class_id, day, value)

            new_point = scoring.adjust_point(before, after)
            self.statuses.upsert_point(class_id, day, new_point)

        previous_point = before.point if before else 0
        logger.info(
            f"[ATTEND] {class_id} {day} {field}={value} point {previous_point} -> {new_point}"
        )
        return after.model_copy(update={"point": new_point})

    # =========================================================================
    # SENSOR REPORTS
    # =========================================================================

    def record_sensor_sample(self, class_id: str, sample: SensorReading) -> dict:
        """
        Credit one sensor report.

        The elapsed time since the class's previous report (0 when there is
        none) is capped at one sensor interval. The report time always
        replaces the stored one, even when nothing is earned.

        Returns:
            {"point": today's point total after the report}
        """
        with self.db.transaction():
            # read the clock under the lock so reports commit in time order
            now = self.now()
            day = now.date()

            last = self.statuses.get_sensor_time(class_id)
            duration_ms = (now - last) / timedelta(milliseconds=1) if last else 0
            self.statuses.replace_sensor_time(class_id, now)

            increment = self.accrual.increment(sample, duration_ms)

            status = self.statuses.get(class_id, day)
            previous_point = status.point if status else 0
            new_point = self.accrual.fold(previous_point, increment)
            self.statuses.upsert_point(class_id, day, new_point)

        logger.info(
            f"[SENSOR] {class_id} T={sample.temperature:.1f} H={sample.humidity:.0f} "
            f"lux={sample.lux:.0f} people={sample.is_people} ac={sample.use_air_conditioner} "
            f"elapsed={duration_ms:.0f}ms +{increment} -> {new_point}"
        )
        return {"point": new_point}

    # =========================================================================
    # RANKING
    # =========================================================================

    def compute_rank(self, class_id: str) -> dict:
        """
        Today's standing of a class within its school.

        Returns:
            {"point": ..., "rank": ..., "class_count": ...}
        """
        school_id = self.registry.school_of(class_id)
        class_count = self.registry.count_classes(school_id)
        statuses = self.statuses.list_for_school(school_id, self.today())

        point, rank = scoring.rank_class(statuses, class_id, class_count)
        return {"point": point, "rank": rank, "class_count": class_count}

    # =========================================================================
    # READ-ONLY VIEWS
    # =========================================================================

    def today_status(self, class_id: str) -> DayStatus:
        day = self.today()
        status = self.statuses.get(class_id, day)
        return status or DayStatus(class_id=class_id, date=day)

    def status_history(self, class_id: str, days: int = HISTORY_DAYS) -> list[DayStatus]:
        since = self.today() - timedelta(days=days - 1)
        return self.statuses.history(class_id, since)
