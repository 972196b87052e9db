"""Typed application errors and their FastAPI rendering.

Service components raise these instead of ``fastapi.HTTPException`` so they
stay usable outside a request (e.g. from the backfill generator).  The
handler registered in ``src.main`` renders every ``HttpApplicationError`` as::

    {"error": "<code>", "error_description": "<description>"}
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("gateway.errors")


class HttpApplicationError(Exception):
    """Error with an HTTP status, a machine-readable code and a description."""

    status_code: int = 500

    def __init__(self, code: str, description: str, status_code: int | None = None) -> None:
        super().__init__(description)
        self.code = code
        self.description = description
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return f"{self.code}: {self.description}"


class HttpBadRequestError(HttpApplicationError):
    status_code = 400


class HttpUnauthorizedError(HttpApplicationError):
    status_code = 401


class HttpForbiddenError(HttpApplicationError):
    status_code = 403


class HttpNotFoundError(HttpApplicationError):
    status_code = 404


class HttpBadGatewayError(HttpApplicationError):
    status_code = 502


class HttpServiceUnavailableError(HttpApplicationError):
    status_code = 503


class DirectoryIOError(IOError):
    """Reading or writing the remote user directory failed or timed out."""


class IllegalStateError(RuntimeError):
    """An operation was called in a state that does not allow it."""


async def http_application_error_handler(
    request: Request, exc: HttpApplicationError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(
            "%s %s failed with %d: %s",
            request.method, request.url.path, exc.status_code, exc,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "error_description": exc.description},
    )


async def directory_io_error_handler(request: Request, exc: DirectoryIOError) -> JSONResponse:
    logger.error("%s %s failed reading the user directory: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"error": "directory_unavailable", "error_description": "User directory unavailable"},
    )
