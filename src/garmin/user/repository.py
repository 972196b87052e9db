"""The ``UserRepository`` interface every Garmin user backend implements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator

from src.garmin.signature import SignRequestParams
from src.garmin.user.base import User


class UserRepository(ABC):
    """Credential lookup, request signing and revocation for Garmin users.

    Implementations own their user store; callers never mutate users.
    Failures are raised as ``src.exceptions`` HTTP errors.
    """

    @abstractmethod
    def get(self, key: str) -> User | None:
        """Return the user with internal id ``key``, or None if unknown."""

    @abstractmethod
    def stream(self) -> Iterator[User]:
        """Iterate over all currently known valid users."""

    @abstractmethod
    def find_by_external_id(self, external_id: str) -> User:
        """Return the user with the given vendor user id.

        Raises:
            HttpNotFoundError: No such user.
        """

    @abstractmethod
    def get_access_token(self, user: User) -> str:
        """Raises HttpUnauthorizedError when the user has no access token."""

    @abstractmethod
    def get_access_token_secret(self, user: User) -> str:
        """Raises HttpUnauthorizedError when the user has no token secret."""

    @abstractmethod
    def get_signed_request(self, user: User, payload: SignRequestParams) -> SignRequestParams:
        """Return a copy of ``payload`` carrying the user's OAuth1 signature."""

    @abstractmethod
    def deregister_user(self, service_user_id: str, access_token: str) -> None:
        """Revoke the user's vendor token and forget the user on success."""

    @abstractmethod
    def has_pending_updates(self) -> bool: ...

    @abstractmethod
    def apply_pending_updates(self) -> None:
        """Acknowledge pending updates.

        Raises:
            IllegalStateError: Nothing is pending.
        """
