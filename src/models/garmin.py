"""Pydantic models for Garmin push and deregistration callbacks.

Push payloads themselves stay plain JSON; the converters read them.
"""

from __future__ import annotations

from pydantic import Field

from src.models.base import GatewayBase


class GarminDeregistration(GatewayBase):
    user_id: str = Field(alias="userId")
    user_access_token: str = Field(alias="userAccessToken")


class GarminDeregistrationRequest(GatewayBase):
    deregistrations: list[GarminDeregistration] = Field(default_factory=list)


class PushResult(GatewayBase):
    topic: str
    records: int
