"""Concrete Garmin backfill routes and their registry."""

from __future__ import annotations

from datetime import timedelta

from src.garmin.backfill.config_loader import BackfillConfig
from src.garmin.backfill.route import GarminRoute
from src.garmin.user.repository import UserRepository


class GarminDailiesRoute(GarminRoute):
    def sub_path(self) -> str:
        return "dailies"


class GarminEpochsRoute(GarminRoute):
    def sub_path(self) -> str:
        return "epochs"


class GarminSleepsRoute(GarminRoute):
    def sub_path(self) -> str:
        return "sleeps"


class GarminBodyCompsRoute(GarminRoute):
    def sub_path(self) -> str:
        return "bodyComps"


class GarminStressDetailsRoute(GarminRoute):
    def sub_path(self) -> str:
        return "stressDetails"


class GarminUserMetricsRoute(GarminRoute):
    def sub_path(self) -> str:
        return "userMetrics"


class GarminPulseOxRoute(GarminRoute):
    def sub_path(self) -> str:
        return "pulseOx"


class GarminRespirationRoute(GarminRoute):
    def sub_path(self) -> str:
        return "respiration"


class GarminActivityRoute(GarminRoute):
    """Base for Activity API routes, which allow five years of backfill."""

    def max_backfill_period(self) -> timedelta:
        if self._max_backfill_days is not None:
            return timedelta(days=self._max_backfill_days)
        return timedelta(days=365 * 5)


class GarminActivitiesRoute(GarminActivityRoute):
    def sub_path(self) -> str:
        return "activities"


class GarminActivityDetailsRoute(GarminActivityRoute):
    def sub_path(self) -> str:
        return "activityDetails"


class GarminMoveIQRoute(GarminActivityRoute):
    def sub_path(self) -> str:
        return "moveiq"


ROUTE_REGISTRY: dict[str, type[GarminRoute]] = {
    "dailies": GarminDailiesRoute,
    "epochs": GarminEpochsRoute,
    "sleeps": GarminSleepsRoute,
    "bodyComps": GarminBodyCompsRoute,
    "stressDetails": GarminStressDetailsRoute,
    "userMetrics": GarminUserMetricsRoute,
    "pulseOx": GarminPulseOxRoute,
    "respiration": GarminRespirationRoute,
    "activities": GarminActivitiesRoute,
    "activityDetails": GarminActivityDetailsRoute,
    "moveiq": GarminMoveIQRoute,
}


def build_routes(
    consumer_key: str,
    user_repository: UserRepository,
    config: BackfillConfig,
) -> list[GarminRoute]:
    """Instantiate every enabled route with its configured limits.

    Args:
        consumer_key:    OAuth1 consumer key sent with each request.
        user_repository: Repository used to sign requests.
        config:          Backfill configuration.

    Returns:
        Routes in registry order.
    """
    routes = []
    for name, route_cls in ROUTE_REGISTRY.items():
        if not config.route_enabled(name):
            continue
        override = config.routes.get(name)
        routes.append(
            route_cls(
                consumer_key,
                user_repository,
                max_days_per_request=config.max_days_per_request,
                max_backfill_days=override.max_backfill_days if override else None,
            )
        )
    return routes
