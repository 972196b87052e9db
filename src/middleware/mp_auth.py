"""Management Portal JWT verification middleware for FastAPI.

Validates the Bearer token on every request except public routes and sets
``request.state.auth`` to the ``JwtAuth`` that route handlers consume via
``get_current_auth``.  Garmin push endpoints are public here; Garmin calls
are matched to users by their access token instead.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.auth.token_validator import ManagementPortalTokenValidator
from src.exceptions import HttpApplicationError

logger = logging.getLogger("gateway.auth")

# Paths that do not require authentication
PUBLIC_PATHS: set[str] = {
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}
PUBLIC_PREFIXES: tuple[str, ...] = (
    "/docs",
    "/redoc",
    "/push/integrations/garmin",
)


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def _error(status_code: int, code: str, description: str) -> Response:
    return JSONResponse(
        status_code=status_code,
        content={"error": code, "error_description": description},
    )


class ManagementPortalAuthMiddleware(BaseHTTPMiddleware):
    """Verify Management Portal access tokens and populate request.state.auth."""

    def __init__(self, app: Any, validator: ManagementPortalTokenValidator) -> None:
        super().__init__(app)
        self._validator = validator

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if _is_public(request.url.path):
            return await call_next(request)

        # OPTIONS requests pass through (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return _error(401, "token_missing", "Missing or invalid Authorization header")

        token = auth_header.removeprefix("Bearer ").strip()

        try:
            # Key fetching blocks on first use.
            request.state.auth = await run_in_threadpool(self._validator.validate, token)
        except HttpApplicationError as exc:
            return _error(exc.status_code, exc.code, exc.description)

        return await call_next(request)
