"""Main FastAPI application for the sports arena booking service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import (
    APP_VERSION,
    ARENA_NAME,
    CLOSING_HOUR,
    LOG_LEVEL,
    OPENING_HOUR,
    SEED_DEMO_DATA,
)
from app.db import close_db, init_db
from app.rate_limit import limiter
from app.routers import (
    admin,
    admin_catalog,
    auth,
    bookings,
    catalog,
    health,
    notifications,
    receipts,
    reports,
)
from app.seed import seed_demo_data
from app.services.bookings import BookingError
from app.services.maintenance import maintenance_worker

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await init_db()
    if SEED_DEMO_DATA and await seed_demo_data(
        opening_hour=OPENING_HOUR, closing_hour=CLOSING_HOUR
    ):
        logger.info("Seeded demo catalog and accounts")
    await maintenance_worker.start()
    logger.info("%s booking API ready", ARENA_NAME)
    yield
    await maintenance_worker.stop()
    await close_db()


app = FastAPI(
    title=f"{ARENA_NAME} Booking API",
    description="Book sports grounds, take payments and manage the arena",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Rate limiting ──────────────────────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(catalog.router)
app.include_router(bookings.router)
app.include_router(receipts.router)
app.include_router(notifications.router)
app.include_router(admin_catalog.router)
app.include_router(reports.router)
app.include_router(admin.router)
