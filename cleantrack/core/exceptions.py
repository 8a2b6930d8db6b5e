"""
Domain errors and global exception handlers.

Every failure reaches the client as ``{"detail": ..., "success": false}``
so callers always get a human-readable reason and never a stack trace.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class CleanTrackError(Exception):
    """Base exception for business rule violations."""

    status_code = 400


class InvalidRequestError(CleanTrackError):
    """Raised when input data violates a domain rule."""


class AuthorizationError(CleanTrackError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(CleanTrackError):
    """Raised when a referenced record does not exist."""

    status_code = 404


class UsageUpdateError(CleanTrackError):
    """A multi-step usage mutation failed and was rolled back.

    Re-issuing the same logical request is safe.
    """

    status_code = 500


class AttendanceUpdateError(CleanTrackError):
    """A multi-step attendance mutation failed and was rolled back."""

    status_code = 500


class LeaveUpdateError(CleanTrackError):
    status_code = 500


async def _domain_error_handler(_request: Request, exc: CleanTrackError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Mutation failed: %s", exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "success": False},
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _rate_limit_handler(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}", "success": False},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(CleanTrackError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
