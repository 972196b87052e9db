"""Shared FastAPI dependencies injected into route handlers.

Long-lived services are created in the application lifespan and stored on
``app.state``; these dependencies hand them to the routes.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from src.auth.jwt_auth import JwtAuth
from src.exceptions import HttpServiceUnavailableError, HttpUnauthorizedError
from src.garmin.user.repository import UserRepository
from src.kafka.admin_service import KafkaAdminService
from src.kafka.sender import KafkaRecordSender


def get_current_auth(request: Request) -> JwtAuth:
    """Return the token claims set by the auth middleware."""
    auth: JwtAuth | None = getattr(request.state, "auth", None)
    if auth is None:
        raise HttpUnauthorizedError("token_missing", "Not authenticated")
    return auth


def get_measurement_auth(auth: JwtAuth = Depends(get_current_auth)) -> JwtAuth:
    """Require the ``MEASUREMENT.CREATE`` scope on the current token."""
    auth.check_permission()
    return auth


def _service(request: Request, name: str, description: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HttpServiceUnavailableError("service_unavailable", f"{description} is not configured")
    return service


def get_kafka_admin_service(request: Request) -> KafkaAdminService:
    return _service(request, "kafka_admin_service", "Kafka admin")


def get_record_sender(request: Request) -> KafkaRecordSender:
    return _service(request, "record_sender", "Kafka producer")


def get_user_repository(request: Request) -> UserRepository:
    return _service(request, "user_repository", "Garmin integration")


# Annotated shortcuts for route signatures
MeasurementAuth = Annotated[JwtAuth, Depends(get_measurement_auth)]
KafkaAdmin = Annotated[KafkaAdminService, Depends(get_kafka_admin_service)]
RecordSender = Annotated[KafkaRecordSender, Depends(get_record_sender)]
GarminUsers = Annotated[UserRepository, Depends(get_user_repository)]
