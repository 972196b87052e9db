"""Backfill routes: signed, windowed GET requests against the Garmin backfill API."""

from __future__ import annotations

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import httpx

from src.garmin.signature import (
    OAUTH_CONSUMER_KEY,
    OAUTH_NONCE,
    OAUTH_TIMESTAMP,
    OAUTH_VERSION,
    OAUTH_VERSION_VALUE,
    SignRequestParams,
    format_authorization_header,
)
from src.garmin.user.base import User
from src.garmin.user.repository import UserRepository

GARMIN_BACKFILL_BASE_URL = "https://healthapi.garmin.com/wellness-api/rest/backfill"
ROUTE_METHOD = "GET"


@dataclass(frozen=True)
class RestRequest:
    """One signed backfill request and the window it covers."""

    request: httpx.Request
    user: User
    route: GarminRoute
    start: datetime
    end: datetime


class GarminRoute(ABC):
    """A Garmin backfill endpoint.

    Subclasses only name their sub-path; the backfill period defaults to two
    years and may be overridden per route.
    """

    max_days_per_request: int = 5

    def __init__(
        self,
        consumer_key: str,
        user_repository: UserRepository,
        *,
        max_days_per_request: int | None = None,
        max_backfill_days: int | None = None,
        base_url: str = GARMIN_BACKFILL_BASE_URL,
    ) -> None:
        self._consumer_key = consumer_key
        self._user_repository = user_repository
        self._base_url = base_url
        if max_days_per_request is not None:
            self.max_days_per_request = max_days_per_request
        self._max_backfill_days = max_backfill_days

    @abstractmethod
    def sub_path(self) -> str: ...

    def max_backfill_period(self) -> timedelta:
        if self._max_backfill_days is not None:
            return timedelta(days=self._max_backfill_days)
        return timedelta(days=365 * 2)

    @property
    def url(self) -> str:
        return f"{self._base_url}/{self.sub_path()}"

    def _params(self, query: dict[str, str]) -> dict[str, str]:
        return {
            OAUTH_CONSUMER_KEY: self._consumer_key,
            OAUTH_NONCE: str(uuid.uuid4()),
            OAUTH_TIMESTAMP: str(int(time.time())),
            OAUTH_VERSION: OAUTH_VERSION_VALUE,
            **query,
        }

    def create_request(self, user: User, base_url: str, query: dict[str, str]) -> httpx.Request:
        """Build a GET request for ``base_url`` signed with the user's credentials.

        The query parameters are part of the signature; only the ``oauth_*``
        parameters go into the ``Authorization`` header.
        """
        payload = SignRequestParams(base_url, ROUTE_METHOD, self._params(query))
        signed = self._user_repository.get_signed_request(user, payload)
        oauth_params = {k: v for k, v in signed.parameters.items() if k.startswith("oauth_")}
        return httpx.Request(
            ROUTE_METHOD,
            base_url,
            params=query,
            headers={"Authorization": format_authorization_header(oauth_params)},
        )

    def generate_requests(
        self, user: User, start: datetime, end: datetime, max_requests: int
    ) -> list[RestRequest]:
        """Split ``[start, end)`` into signed requests of at most ``max_days_per_request``.

        The last window is clipped to ``end``.  At most ``max_requests``
        requests are returned.
        """
        window = timedelta(days=self.max_days_per_request)
        requests: list[RestRequest] = []
        range_start = start
        while range_start < end and len(requests) < max_requests:
            range_end = min(range_start + window, end)
            query = {
                "summaryStartTimeInSeconds": str(int(range_start.timestamp())),
                "summaryEndTimeInSeconds": str(int(range_end.timestamp())),
            }
            request = self.create_request(user, self.url, query)
            requests.append(RestRequest(request, user, self, range_start, range_end))
            range_start = range_end
        return requests

    def __str__(self) -> str:
        return self.sub_path()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.sub_path()!r})"

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, GarminRoute) and other.sub_path() == self.sub_path()

    def __hash__(self) -> int:
        return hash(self.sub_path())
