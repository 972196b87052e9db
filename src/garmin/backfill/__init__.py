"""Signed backfill request generation for the Garmin Health API."""

from src.garmin.backfill.generator import RequestGenerator
from src.garmin.backfill.route import GarminRoute, RestRequest
from src.garmin.backfill.routes import ROUTE_REGISTRY, build_routes

__all__ = ["GarminRoute", "ROUTE_REGISTRY", "RequestGenerator", "RestRequest", "build_routes"]
