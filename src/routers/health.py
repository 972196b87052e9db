"""Health check endpoint — public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from src.exceptions import HttpApplicationError

router = APIRouter(tags=["system"])
logger = logging.getLogger("gateway.health")


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Also reports whether Kafka answers, using the cached topic list.
    """
    settings = request.app.state.settings
    admin = getattr(request.app.state, "kafka_admin_service", None)
    kafka_ok = False
    if admin is not None:
        try:
            admin.list_topics()
            kafka_ok = True
        except HttpApplicationError as exc:
            logger.warning("Health check Kafka probe failed: %s", exc)

    directory = getattr(request.app.state, "user_directory", None)
    body = {
        "status": "healthy" if kafka_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "kafka": "connected" if kafka_ok else "unreachable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if directory is not None:
        body["garmin_users"] = len(directory)
    return body
