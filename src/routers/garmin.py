"""Garmin Health API push endpoints.

Garmin posts summaries for many users in one payload::

    {"stressDetails": [{"userId": "...", "userAccessToken": "...", ...}, ...]}

Each entry is matched to a known user by its Garmin ``userId`` and access
token.  Entries for unknown users or with a stale token are skipped so one
revoked user does not make Garmin retry the whole batch.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from fastapi import APIRouter, Body

from src.dependencies import GarminUsers, RecordSender
from src.exceptions import HttpBadRequestError, HttpNotFoundError, HttpUnauthorizedError
from src.garmin.converters import CONVERTER_REGISTRY, GarminConverter, Record, get_converter
from src.garmin.user.base import User
from src.garmin.user.repository import UserRepository
from src.models.base import ErrorDetail
from src.models.garmin import GarminDeregistrationRequest, PushResult

router = APIRouter(prefix="/push/integrations/garmin", tags=["garmin"])
logger = logging.getLogger("gateway.garmin.push")


def _resolve_user(repository: UserRepository, service_user_id: str, access_token: str | None) -> User | None:
    try:
        user = repository.find_by_external_id(service_user_id)
    except HttpNotFoundError:
        logger.warning("Skipping push entries for unknown Garmin user %s", service_user_id)
        return None
    if access_token is not None:
        try:
            known_token = repository.get_access_token(user)
        except HttpUnauthorizedError:
            known_token = None
        if known_token != access_token:
            logger.warning("Skipping push entries for Garmin user %s: access token mismatch", service_user_id)
            return None
    return user


def convert_push(
    converter: GarminConverter, payload: dict[str, Any], repository: UserRepository
) -> list[Record]:
    """Validate a push payload and convert the entries of every known user."""
    converter.validate(payload)

    groups: dict[tuple[str, str | None], list[dict[str, Any]]] = defaultdict(list)
    for entry in converter.entries(payload):
        if not isinstance(entry, dict):
            raise HttpBadRequestError(
                "invalid_payload", f"The {converter.description} data was invalid."
            )
        service_user_id = entry.get("userId")
        if not service_user_id:
            logger.warning("Skipping %s entry without userId", converter.root)
            continue
        groups[(service_user_id, entry.get("userAccessToken"))].append(entry)

    records: list[Record] = []
    for (service_user_id, access_token), entries in groups.items():
        user = _resolve_user(repository, service_user_id, access_token)
        if user is None:
            continue
        try:
            records.extend(converter.convert({converter.root: entries}, user))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed %s entry for Garmin user %s: %r", converter.root, service_user_id, exc)
            raise HttpBadRequestError(
                "invalid_payload", f"The {converter.description} data was invalid."
            ) from exc
    return records


@router.post("/deregistration")
def deregister(body: GarminDeregistrationRequest, repository: GarminUsers) -> dict:
    """Revoke the tokens of users who disconnected from the gateway in Garmin Connect."""
    for deregistration in body.deregistrations:
        repository.deregister_user(deregistration.user_id, deregistration.user_access_token)
    return {"deregistrations": len(body.deregistrations)}


@router.post(
    "/{route}",
    response_model=PushResult,
    responses={400: {"model": ErrorDetail}, 404: {"model": ErrorDetail}, 503: {"model": ErrorDetail}},
)
def push(
    route: str,
    repository: GarminUsers,
    sender: RecordSender,
    payload: dict[str, Any] = Body(...),
) -> PushResult:
    """Convert a Garmin push and publish the records to the route's topic."""
    if route not in CONVERTER_REGISTRY:
        raise HttpNotFoundError("route_not_found", f"No Garmin push route {route}")
    converter = get_converter(route)
    records = convert_push(converter, payload, repository)
    count = sender.send(converter.topic, records) if records else 0
    logger.info("Published %d records from Garmin %s push to %s", count, route, converter.topic)
    return PushResult(topic=converter.topic, records=count)
