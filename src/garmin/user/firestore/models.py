"""Typed views of the Firestore documents describing a Garmin user.

Two documents share the user's uuid as document id:

    <garmin collection>/<uuid>  — OAuth1 credentials and authorization window
    <user collection>/<uuid>    — profile (project id)

Documents are parsed once into frozen dataclasses.  ``build_user`` applies
the admission rules and returns None for anything that must not be cached,
so a ``FirestoreUser`` instance is always complete.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from src.garmin.user.base import User

logger = logging.getLogger("gateway.garmin.firestore")

OAUTH_KEY = "resource_token"
DEFAULT_SOURCE_ID = "garmin"
DEFAULT_PROJECT_ID = "radar-firebase-default-project"


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _string_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v]


@dataclass(frozen=True)
class OAuthCredentials:
    """Access tokens and secrets, newest first."""

    datetime: int | None = None
    oauth_tokens: list[str] = field(default_factory=list)
    oauth_token_secrets: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> OAuthCredentials | None:
        if data is None:
            return None
        return cls(
            datetime=_optional_int(data.get("datetime")),
            oauth_tokens=_string_list(data.get("oauth_token")),
            oauth_token_secrets=_string_list(data.get("oauth_token_secret")),
        )


@dataclass(frozen=True)
class UserInfo:
    user_id: str | None = None
    error_message: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> UserInfo | None:
        if data is None:
            return None
        return cls(user_id=data.get("userId"), error_message=data.get("errorMessage"))


@dataclass(frozen=True)
class GarminAuthDetails:
    """Contents of the Garmin credential document."""

    source_id: str = DEFAULT_SOURCE_ID
    start_date: int | None = None
    end_date: int | None = None
    version: str | None = None
    oauth_credentials: OAuthCredentials | None = None
    user_info: UserInfo | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GarminAuthDetails:
        version = data.get("version")
        return cls(
            source_id=data.get("source_id") or DEFAULT_SOURCE_ID,
            start_date=_optional_int(data.get("start_date")),
            end_date=_optional_int(data.get("end_date")),
            version=str(version) if version is not None else None,
            oauth_credentials=OAuthCredentials.from_dict(data.get(OAUTH_KEY)),
            user_info=UserInfo.from_dict(data.get("userId")),
        )

    def admission_errors(self) -> list[str]:
        """Return the reasons this record may not be cached (empty if valid)."""
        errors = []
        if self.end_date is None:
            errors.append("missing end date")
        if self.start_date is None:
            errors.append("missing start date")
        if self.user_info is None or self.user_info.user_id is None:
            errors.append("missing Garmin user id")
        if self.oauth_credentials is None or not self.oauth_credentials.oauth_tokens:
            errors.append("no OAuth tokens")
        if self.user_info is not None and self.user_info.error_message:
            errors.append(f"auth error: {self.user_info.error_message}")
        return errors


@dataclass(frozen=True)
class FirestoreUser(User):
    """A validated Garmin user backed by Firestore."""

    uuid: str
    project: str
    auth_details: GarminAuthDetails

    @property
    def id(self) -> str:
        return self.uuid

    @property
    def user_id(self) -> str:
        return self.uuid

    @property
    def project_id(self) -> str:
        return self.project

    @property
    def source_id(self) -> str:
        return self.auth_details.source_id

    @property
    def external_id(self) -> str:
        return self.service_user_id

    @property
    def service_user_id(self) -> str:
        return self.auth_details.user_info.user_id  # type: ignore[union-attr,return-value]

    @property
    def start_date(self) -> datetime:
        return datetime.fromtimestamp(self.auth_details.start_date, tz=timezone.utc)  # type: ignore[arg-type]

    @property
    def end_date(self) -> datetime:
        return datetime.fromtimestamp(self.auth_details.end_date, tz=timezone.utc)  # type: ignore[arg-type]

    @property
    def created_at(self) -> datetime | None:
        credentials = self.auth_details.oauth_credentials
        if credentials is None or credentials.datetime is None:
            return None
        return datetime.fromtimestamp(credentials.datetime, tz=timezone.utc)

    @property
    def version(self) -> str | None:
        return self.auth_details.version

    @property
    def is_authorized(self) -> bool:
        credentials = self.auth_details.oauth_credentials
        return credentials is not None and bool(credentials.oauth_tokens)

    @property
    def access_token(self) -> str | None:
        credentials = self.auth_details.oauth_credentials
        return credentials.oauth_tokens[0] if credentials and credentials.oauth_tokens else None

    @property
    def access_token_secret(self) -> str | None:
        credentials = self.auth_details.oauth_credentials
        if credentials and credentials.oauth_token_secrets:
            return credentials.oauth_token_secrets[0]
        return None

    def __repr__(self) -> str:
        # Credentials stay out of logs.
        return (
            f"FirestoreUser(uuid={self.uuid!r}, project={self.project!r}, "
            f"service_user_id={self.service_user_id!r}, version={self.version!r})"
        )


def build_user(
    uuid: str,
    auth_data: dict[str, Any] | None,
    profile_data: dict[str, Any] | None,
) -> FirestoreUser | None:
    """Construct a user from its two documents, or None if it is not admissible."""
    if not auth_data or OAUTH_KEY not in auth_data:
        logger.warning(
            "The %s key for user %s in the Garmin document is not present. Skipping...",
            OAUTH_KEY, uuid,
        )
        return None

    auth_details = GarminAuthDetails.from_dict(auth_data)
    errors = auth_details.admission_errors()
    if errors:
        logger.info("User %s cannot be processed: %s", uuid, ", ".join(errors))
        return None

    project = (profile_data or {}).get("project_id") or DEFAULT_PROJECT_ID
    return FirestoreUser(uuid=uuid, project=project, auth_details=auth_details)
