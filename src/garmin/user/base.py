"""User model shared by all Garmin user repositories.

A ``User`` is the gateway's view of one authorized wearable connection:
who the participant is in the research platform (project, user, source) and
who they are at the vendor (``service_user_id``).  ``observation_key`` and
``versioned_id`` are derived from the other fields and never stored.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ObservationKey:
    """Kafka record key identifying whose data a record holds."""

    project_id: str | None
    user_id: str
    source_id: str

    def to_dict(self) -> dict[str, str | None]:
        return {
            "projectId": self.project_id,
            "userId": self.user_id,
            "sourceId": self.source_id,
        }


class User(ABC):
    """Capability set of an authorized vendor user."""

    @property
    @abstractmethod
    def id(self) -> str: ...

    @property
    @abstractmethod
    def user_id(self) -> str: ...

    @property
    @abstractmethod
    def project_id(self) -> str | None: ...

    @property
    @abstractmethod
    def source_id(self) -> str: ...

    @property
    @abstractmethod
    def external_id(self) -> str | None: ...

    @property
    @abstractmethod
    def service_user_id(self) -> str: ...

    @property
    @abstractmethod
    def start_date(self) -> datetime: ...

    @property
    @abstractmethod
    def end_date(self) -> datetime: ...

    @property
    @abstractmethod
    def is_authorized(self) -> bool: ...

    @property
    def version(self) -> str | None:
        return None

    @property
    def observation_key(self) -> ObservationKey:
        return ObservationKey(self.project_id, self.user_id, self.source_id)

    @property
    def versioned_id(self) -> str:
        return f"{self.id}#{self.version}" if self.version else self.id
