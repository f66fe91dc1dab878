"""
GeoClock — Application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `services/` package; `api/` only maps HTTP onto it.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from geoclock.api.v1.api import api_router
from geoclock.api.v1.endpoints.attendance import limiter
from geoclock.core.config import settings
from geoclock.core.exceptions import register_exception_handlers
from geoclock.db.base import Base
from geoclock.db.session import engine

# Ensure all models are imported so metadata.create_all can see them
from geoclock.models.attendance import AttendanceRecord  # noqa: F401
from geoclock.models.location import Location  # noqa: F401
from geoclock.models.user import User  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    logger.info("GeoClock v%s started (calendar timezone %s)", settings.VERSION, settings.TIMEZONE)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Geofenced attendance tracking and presence reports",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiter used by the clock endpoints
    application.state.limiter = limiter

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.API_V1_PREFIX)
    return application


app = create_app()
