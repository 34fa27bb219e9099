"""
Day-Status Store
================

One row per (class_id, date) with the running point total and the raw
attendance/leftover counts, plus one row per class with the time of its
latest sensor report.

Every upsert touches only its own column, so two writers updating
different fields of the same row never clobber each other. Recomputing the
point total after an upsert is the scoring engine's job, not ours.
"""

import sqlite3
from datetime import date, datetime
from typing import Optional

from classpoint.models import DayStatus
from classpoint.services.database import Database


def _to_status(row: sqlite3.Row) -> DayStatus:
    return DayStatus(
        class_id=row["class_id"],
        date=date.fromisoformat(row["date"]),
        point=row["point"],
        attend=row["attend"],
        leftovers=row["leftovers"],
    )


class StatusStore:
    """Accessor for day_status and latest_sensor_time."""

    def __init__(self, db: Database):
        self.db = db

    # =========================================================================
    # DAY STATUS
    # =========================================================================

    def get(self, class_id: str, day: date) -> Optional[DayStatus]:
        row = self.db.fetch_one(
            "SELECT * FROM day_status WHERE class_id = ? AND date = ?",
            (class_id, day.isoformat()),
        )
        return _to_status(row) if row else None

    def upsert_attend(self, class_id: str, day: date, attend: int) -> DayStatus:
        return self._upsert_column("attend", class_id, day, attend)

    def upsert_leftovers(self, class_id: str, day: date, leftovers: int) -> DayStatus:
        return self._upsert_column("leftovers", class_id, day, leftovers)

    def upsert_point(self, class_id: str, day: date, point: int):
        self._upsert_column("point", class_id, day, point)

    def _upsert_column(self, column: str, class_id: str, day: date, value: int) -> DayStatus:
        # column names come from the three methods above, never from callers
        with self.db.transaction():
            self.db.execute(
                f"INSERT INTO day_status (class_id, date, {column}) VALUES (?, ?, ?) "
                f"ON CONFLICT(class_id, date) DO UPDATE SET {column} = excluded.{column}",
                (class_id, day.isoformat(), value),
            )
            return self.get(class_id, day)

    def list_for_school(self, school_id: str, day: date) -> list[DayStatus]:
        """All statuses of a school's classrooms on a day, in insertion order."""
        rows = self.db.fetch_all(
            "SELECT ds.* FROM day_status ds "
            "JOIN classroom c ON c.id = ds.class_id "
            "WHERE c.school_id = ? AND ds.date = ? "
            "ORDER BY ds.rowid",
            (school_id, day.isoformat()),
        )
        return [_to_status(row) for row in rows]

    def history(self, class_id: str, since: date) -> list[DayStatus]:
        """Statuses of a class from `since` onward, oldest first."""
        rows = self.db.fetch_all(
            "SELECT * FROM day_status WHERE class_id = ? AND date >= ? ORDER BY date",
            (class_id, since.isoformat()),
        )
        return [_to_status(row) for row in rows]

    # =========================================================================
    # LATEST SENSOR TIME
    # =========================================================================

    def get_sensor_time(self, class_id: str) -> Optional[datetime]:
        row = self.db.fetch_one(
            "SELECT time FROM latest_sensor_time WHERE class_id = ?", (class_id,)
        )
        return datetime.fromisoformat(row["time"]) if row else None

    def replace_sensor_time(self, class_id: str, when: datetime):
        if when.tzinfo is None:
            raise ValueError("Sensor time must be timezone-aware")
        self.db.execute(
            "INSERT OR REPLACE INTO latest_sensor_time (class_id, time) VALUES (?, ?)",
            (class_id, when.isoformat()),
        )
