"""
Classroom Points - Backend API
==============================
FastAPI application for the classroom engagement platform's daily scoring.

ARCHITECTURE:
    [Web/Mobile Frontend] --cookie: class_token / student_token--+
                                                                 |
    [Classroom Sensor Box] --cookie: class_token-----------------+--> [This Backend] --> [SQLite]

HOW POINTS ARE EARNED:
    1. Attendance and leftover meals registered by the class each day
    2. Sensor reports: comfortable temperature/humidity, and lights off in an
       empty room, credited for the time between reports

HOW TO RUN:
    pip install -e .

    # Copy environment config and edit it
    cp env.example.txt .env

    # Run the server
    uvicorn classpoint.main:create_app --factory --reload --port 8000

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from classpoint.config import Config
from classpoint.errors import InvalidInput, ScoringError
from classpoint.routers import classroom_router, student_router, set_score_manager
from classpoint.services import Database, ScoreManager


logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
    datefmt='%H:%M:%S',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)


# =============================================================================
# ERROR RESPONSES
# =============================================================================

async def scoring_error_handler(request: Request, exc: ScoringError):
    """Render a ScoringError as {"error": "..."} with its status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed payloads are InvalidInput, not FastAPI's default 422."""
    logger.info(f"{request.method} {request.url.path} rejected: {exc.errors()}")
    error = InvalidInput()
    return JSONResponse(status_code=error.status_code, content={"error": error.message})


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(config: Optional[Config] = None, manager: Optional[ScoreManager] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Settings (default: read from the environment)
        manager: Prebuilt ScoreManager (tests pass one with a pinned clock)
    """
    config = config or Config.from_env()

    if manager is None:
        db = Database(config.DATABASE_PATH)
        db.init_schema()
        manager = ScoreManager(
            db,
            sensor_interval_ms=config.SENSOR_INTERVAL_MS,
            tz=config.TIMEZONE,
        )

    # Inject into routers
    set_score_manager(manager)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info("CLASSROOM POINTS - Starting Backend")
        logger.info(f"   Database: {manager.db.path}")
        logger.info(f"   Sensor interval: {manager.accrual.sensor_interval_ms} ms")
        logger.info(f"   Time zone: {manager.tz.key}")
        logger.info("=" * 60)

        yield  # Application runs here

        logger.info("Shutting down...")
        manager.db.close()

    app = FastAPI(
        title="Classroom Points API",
        description="Daily point scoring for classrooms: attendance, leftovers and sensor reports.",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ScoringError, scoring_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(classroom_router)
    app.include_router(student_router)

    @app.get("/", summary="API Information")
    async def root():
        return {
            "name": "Classroom Points API",
            "version": "1.0.0",
            "documentation": {
                "swagger": "/docs",
                "redoc": "/redoc",
                "openapi": "/openapi.json"
            },
            "endpoints": {
                "classroom": {
                    "attendance": "POST /api/classroom/attendance",
                    "leftovers": "POST /api/classroom/leftovers",
                    "sensor": "POST /api/classroom/sensor",
                    "status": "GET /api/classroom/status",
                    "history": "GET /api/classroom/status/history",
                    "rank": "GET /api/classroom/rank"
                },
                "student": {
                    "status": "GET /api/student/status",
                    "rank": "GET /api/student/rank"
                }
            }
        }

    @app.get("/health", summary="Health Check")
    async def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "sensor_interval_ms": manager.accrual.sensor_interval_ms,
            "timezone": manager.tz.key,
        }

    return app

