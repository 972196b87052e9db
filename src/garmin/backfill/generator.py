"""Backfill request generation across all known Garmin users.

Keeps a per-user, per-route offset: the end of the last window that was
completed.  Each pass emits, for every user and route, up to
``max_requests_per_user`` signed requests continuing from that offset.

The user list is refreshed from the repository whenever it reports pending
updates, draining them with ``apply_pending_updates``.  Offsets are keyed by
``versioned_id`` so a re-authorized user (new version) starts over.

Usage::

    generator = RequestGenerator(repository, build_routes(key, repository, config))
    for rest_request in generator.requests():
        response = client.send(rest_request.request)
        if response.is_success:
            generator.mark_completed(rest_request)
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from src.exceptions import HttpUnauthorizedError
from src.garmin.backfill.config_loader import BackfillConfig, get_backfill_config
from src.garmin.backfill.route import GarminRoute, RestRequest
from src.garmin.user.base import User
from src.garmin.user.repository import UserRepository
from src.models.base import utc_now

logger = logging.getLogger("gateway.garmin.backfill")


class RequestGenerator:
    """Generate backfill requests for every user and route.

    Args:
        user_repository: Source of users and request signatures.
        routes:          Routes to backfill.
        config:          Backfill config; the global one by default.
        clock:           Returns the current UTC time.
    """

    def __init__(
        self,
        user_repository: UserRepository,
        routes: list[GarminRoute],
        *,
        config: BackfillConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = user_repository
        self._routes = routes
        self._config = config or get_backfill_config()
        self._clock = clock
        self._users: list[User] = []
        self._offsets: dict[tuple[str, str], datetime] = {}
        self._lock = threading.Lock()

    @property
    def users(self) -> list[User]:
        return list(self._users)

    def _refresh_users(self) -> None:
        if not self._repository.has_pending_updates():
            return
        self._repository.apply_pending_updates()
        self._users = list(self._repository.stream())
        logger.info("Refreshed backfill user list: %d users", len(self._users))

    def offset(self, user: User, route: GarminRoute) -> datetime | None:
        return self._offsets.get((user.versioned_id, route.sub_path()))

    def window(self, user: User, route: GarminRoute, now: datetime) -> tuple[datetime, datetime]:
        """Return the ``[start, end)`` range still to backfill for a user and route.

        The start is the latest of the user's start date, the route's
        backfill horizon and the completed offset.  The end is the earlier
        of the user's end date and ``now``.
        """
        start = max(user.start_date, now - route.max_backfill_period())
        completed = self.offset(user, route)
        if completed is not None and completed > start:
            start = completed
        end = min(user.end_date, now)
        return start, end

    def requests(self) -> list[RestRequest]:
        """Produce the next batch of signed backfill requests."""
        with self._lock:
            self._refresh_users()
            users = list(self._users)
            now = self._clock()

        max_requests = self._config.max_requests_per_user
        result: list[RestRequest] = []
        for user in users:
            if not user.is_authorized:
                continue
            for route in self._routes:
                start, end = self.window(user, route, now)
                if start >= end:
                    continue
                try:
                    result.extend(route.generate_requests(user, start, end, max_requests))
                except HttpUnauthorizedError as exc:
                    logger.warning("Skipping backfill for user %s: %s", user.id, exc)
                    break
        logger.debug("Generated %d backfill requests for %d users", len(result), len(users))
        return result

    def mark_completed(self, request: RestRequest) -> None:
        """Advance the offset for the request's user and route to its window end."""
        key = (request.user.versioned_id, request.route.sub_path())
        with self._lock:
            current = self._offsets.get(key)
            if current is None or request.end > current:
                self._offsets[key] = request.end
