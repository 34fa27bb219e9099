"""
Configuration
=============

Settings loaded from environment variables (a local .env file is read first).

Environment Variables:
    DATABASE_PATH: SQLite file holding schools, classrooms and day statuses
    SENSOR_INTERVAL: Sensor reporting interval in milliseconds (default: 60000)
    TIMEZONE: IANA time zone used for "today" (default: Asia/Tokyo)
    FRONTEND_URL: URL of the frontend for CORS
"""

import os
from zoneinfo import ZoneInfo

from dotenv import load_dotenv


# Load environment variables from .env file
load_dotenv()


class Config:
    """
    Application configuration.

    Build one with Config.from_env() in production; tests pass values
    directly so nothing depends on the process environment.
    """

    def __init__(
        self,
        database_path: str = "classpoint.db",
        sensor_interval_ms: int = 60000,
        timezone: str = "Asia/Tokyo",
        frontend_url: str = "http://localhost:5173",
    ):
        if sensor_interval_ms <= 0:
            raise ValueError("SENSOR_INTERVAL must be a positive number of milliseconds")

        self.DATABASE_PATH = database_path
        self.SENSOR_INTERVAL_MS = sensor_interval_ms
        self.TIMEZONE = ZoneInfo(timezone)
        self.FRONTEND_URL = frontend_url

        # Allowed CORS origins
        self.CORS_ORIGINS = [
            frontend_url,
            "http://localhost:5173",    # Vite dev server
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ]

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            database_path=os.getenv("DATABASE_PATH", "classpoint.db"),
            sensor_interval_ms=int(os.getenv("SENSOR_INTERVAL", "60000")),
            timezone=os.getenv("TIMEZONE", "Asia/Tokyo"),
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:5173"),
        )
