"""
Domain errors and global exception handlers.

Store failures surface to the caller as 503s; nothing here retries.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TimeclockError(Exception):
    """Base class for errors raised by the attendance domain."""


class StoreUnavailableError(TimeclockError):
    """The document store could not complete a read or write."""


class NotFoundError(TimeclockError):
    """A referenced employee, status record or message does not exist."""


class ConflictError(TimeclockError):
    """A record with the same key already exists."""


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _store_unavailable_handler(_request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error("Document store unavailable: %s", exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Attendance store unavailable, try again", "success": False},
    )


async def _not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"detail": str(exc) or "Not found", "success": False},
    )


async def _conflict_handler(_request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc) or "Conflict", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StoreUnavailableError, _store_unavailable_handler)  # type: ignore[arg-type]
    app.add_exception_handler(NotFoundError, _not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ConflictError, _conflict_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
