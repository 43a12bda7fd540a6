"""
Health check endpoint.

Reports whether the database answers a trivial query and the state of the
booking maintenance worker. A failing database check yields "degraded"
rather than an error response.
"""

import logging
from datetime import datetime, timezone

import aiosqlite
from fastapi import APIRouter

from app import db
from app.config import APP_VERSION
from app.models import HealthResponse, WorkerHealth
from app.services.maintenance import maintenance_worker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


async def _database_ok() -> bool:
    try:
        async with db.get_db().execute("SELECT 1") as cur:
            await cur.fetchone()
    except (RuntimeError, aiosqlite.Error) as exc:
        logger.warning("Health check could not reach the database: %s", exc)
        return False
    return True


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Service, database and maintenance worker status",
)
async def get_health() -> HealthResponse:
    database_ok = await _database_ok()
    return HealthResponse(
        status="ok" if database_ok else "degraded",
        version=APP_VERSION,
        timestamp=datetime.now(timezone.utc),
        database="ok" if database_ok else "unavailable",
        maintenance=WorkerHealth(
            running=maintenance_worker.is_running,
            last_run_at=maintenance_worker.last_run_at,
            failures=maintenance_worker.failures,
        ),
    )
