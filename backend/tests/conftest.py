from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from classpoint.config import Config
from classpoint.main import create_app
from classpoint.services import Database, ScoreManager

TZ = ZoneInfo("Asia/Tokyo")
INTERVAL_MS = 60000


class FakeClock:
    """A clock tests can move forward by hand."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, ms: float) -> None:
        self.current += timedelta(milliseconds=ms)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 3, 10, 0, 0, tzinfo=TZ))


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "classpoint.db")
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def manager(db, clock) -> ScoreManager:
    return ScoreManager(db, sensor_interval_ms=INTERVAL_MS, tz=TZ, clock=clock)


@pytest.fixture
def school(manager) -> str:
    return manager.registry.create_school("Minami Elementary")


@pytest.fixture
def classes(manager, school) -> list[str]:
    """Three classrooms of the same school, created in order A, B, C."""
    return [
        manager.registry.create_classroom(school, 5, name)
        for name in ("A", "B", "C")
    ]


@pytest.fixture
def client(tmp_path, manager) -> TestClient:
    config = Config(database_path=str(tmp_path / "classpoint.db"), sensor_interval_ms=INTERVAL_MS)
    return TestClient(create_app(config, manager=manager))


def count_rows(db: Database, table: str) -> int:
    return db.fetch_one(f"SELECT COUNT(*) AS n FROM {table}")["n"]
