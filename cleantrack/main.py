"""
CleanTrack application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `services/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select

from cleantrack.api.v1.api import api_router
from cleantrack.api.v1.endpoints.auth import limiter
from cleantrack.core.config import settings
from cleantrack.core.exceptions import register_exception_handlers
from cleantrack.core.security import get_password_hash
from cleantrack.db.base import Base
from cleantrack.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from cleantrack.models.attendance import AttendanceEvent  # noqa: F401
from cleantrack.models.disposal import DisposalEvent  # noqa: F401
from cleantrack.models.leave import LeaveRequest  # noqa: F401
from cleantrack.models.override import DailyOverride  # noqa: F401
from cleantrack.models.user import ROLE_ADMIN, User

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed default admin user on first run
    async with async_session_factory() as session:
        result = await session.execute(
            select(User).where(User.phone_number == settings.FIRST_ADMIN_PHONE)
        )
        if result.scalar_one_or_none() is None:
            admin = User(
                phone_number=settings.FIRST_ADMIN_PHONE,
                hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                name=settings.ADMIN_LABEL,
                area=settings.ADMIN_AREA,
                role=ROLE_ADMIN,
            )
            session.add(admin)
            await session.commit()
            logger.info(
                "Default admin created: %s (password: <redacted>)",
                settings.FIRST_ADMIN_PHONE,
            )

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Waste-bag usage tracking and attendance",
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

    # Login rate limiting (slowapi reads the limiter from app state)
    application.state.limiter = limiter

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
