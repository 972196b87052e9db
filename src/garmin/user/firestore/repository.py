"""Garmin user repository backed by the Firestore user directory."""

from __future__ import annotations

import logging
import time
from typing import Iterator

import httpx
from authlib.common.security import generate_token

from src.exceptions import (
    HttpBadGatewayError,
    HttpBadRequestError,
    HttpNotFoundError,
    HttpUnauthorizedError,
)
from src.garmin.signature import (
    OAUTH_ACCESS_TOKEN,
    OAUTH_CONSUMER_KEY,
    OAUTH_NONCE,
    OAUTH_SIGNATURE,
    OAUTH_SIGNATURE_METHOD,
    OAUTH_SIGNATURE_METHOD_VALUE,
    OAUTH_TIMESTAMP,
    OAUTH_VERIFIER,
    OAUTH_VERSION,
    OAUTH_VERSION_VALUE,
    SignRequestParams,
    format_authorization_header,
    sign,
)
from src.garmin.user.base import User
from src.garmin.user.firestore.directory import UserDirectory
from src.garmin.user.firestore.models import FirestoreUser
from src.garmin.user.firestore.store import delete_document
from src.garmin.user.repository import UserRepository

logger = logging.getLogger("gateway.garmin.repository")

GARMIN_DEREGISTER_ENDPOINT = "https://healthapi.garmin.com/wellness-api/rest/user/registration"


class FirestoreUserRepository(UserRepository):
    """``UserRepository`` reading credentials from a ``UserDirectory``.

    Args:
        directory:       Live snapshot of Garmin users.
        http_client:     Client used for vendor calls (revocation).
        consumer_key:    Process-wide OAuth1 consumer key.
        consumer_secret: Process-wide OAuth1 consumer secret.
    """

    def __init__(
        self,
        directory: UserDirectory,
        http_client: httpx.Client,
        consumer_key: str,
        consumer_secret: str,
        *,
        deregister_endpoint: str = GARMIN_DEREGISTER_ENDPOINT,
    ) -> None:
        self._directory = directory
        self._http = http_client
        self._consumer_key = consumer_key
        self._consumer_secret = consumer_secret
        self._deregister_endpoint = deregister_endpoint

    @property
    def consumer_key(self) -> str:
        return self._consumer_key

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, key: str) -> FirestoreUser | None:
        return self._directory.get(key)

    def stream(self) -> Iterator[User]:
        return iter(self._directory.users())

    def find_by_external_id(self, external_id: str) -> User:
        user = self._directory.find_by_service_user_id(external_id)
        if user is None:
            raise HttpNotFoundError(
                "user_not_found", f"User with service user id {external_id} not found."
            )
        return user

    def _current(self, user: User) -> FirestoreUser | None:
        return self._directory.get(user.id)

    def get_access_token(self, user: User) -> str:
        current = self._current(user)
        token = current.access_token if current is not None else None
        if not token:
            raise HttpUnauthorizedError(
                "invalid_access_token",
                f"The access token for user {user.id} could not be found.",
            )
        return token

    def get_access_token_secret(self, user: User) -> str:
        current = self._current(user)
        secret = current.access_token_secret if current is not None else None
        if not secret:
            raise HttpUnauthorizedError(
                "invalid_access_token_secret",
                f"The access token secret for user {user.id} could not be found.",
            )
        return secret

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def get_signed_request(self, user: User, payload: SignRequestParams) -> SignRequestParams:
        # Token and secret come from the same record.
        current = self._current(user)
        if current is None or not current.access_token:
            raise HttpUnauthorizedError(
                "invalid_access_token",
                f"The access token for user {user.id} could not be found.",
            )
        if not current.access_token_secret:
            raise HttpUnauthorizedError(
                "invalid_access_token_secret",
                f"The access token secret for user {user.id} could not be found.",
            )

        parameters = dict(payload.parameters)
        parameters[OAUTH_ACCESS_TOKEN] = current.access_token
        parameters[OAUTH_SIGNATURE_METHOD] = OAUTH_SIGNATURE_METHOD_VALUE
        parameters[OAUTH_SIGNATURE] = sign(
            payload.url,
            payload.method,
            parameters,
            self._consumer_secret,
            current.access_token_secret,
        )
        return SignRequestParams(payload.url, payload.method, parameters)

    def _auth_params(self, access_token: str, verifier: str | None = None) -> dict[str, str | None]:
        return {
            OAUTH_CONSUMER_KEY: self._consumer_key,
            OAUTH_NONCE: generate_token(32),
            OAUTH_SIGNATURE_METHOD: OAUTH_SIGNATURE_METHOD_VALUE,
            OAUTH_TIMESTAMP: str(int(time.time())),
            OAUTH_ACCESS_TOKEN: access_token,
            OAUTH_VERIFIER: verifier,
            OAUTH_VERSION: OAUTH_VERSION_VALUE,
        }

    def _create_request(
        self, method: str, url: str, access_token: str, access_token_secret: str | None
    ) -> httpx.Request:
        params = self._auth_params(access_token)
        signed = {k: v for k, v in params.items() if v is not None}
        params[OAUTH_SIGNATURE] = sign(
            url, method, signed, self._consumer_secret, access_token_secret
        )
        return self._http.build_request(
            method, url, headers={"Authorization": format_authorization_header(params)}
        )

    # ------------------------------------------------------------------
    # Deregistration
    # ------------------------------------------------------------------

    def revoke_token(self, token: str, access_token_secret: str | None) -> bool:
        """Ask Garmin to revoke ``token``.

        Returns:
            True when Garmin accepted the revocation, False when it refused
            it (400, 401 or 403).

        Raises:
            HttpBadRequestError:  ``token`` is empty.
            HttpBadGatewayError:  Garmin could not be reached or answered
                                  with any other status.
        """
        if not token:
            raise HttpBadRequestError("token-empty", "Token cannot be null or empty")

        request = self._create_request(
            "DELETE", self._deregister_endpoint, token, access_token_secret
        )
        try:
            response = self._http.send(request)
        except httpx.HTTPError as exc:
            raise HttpBadGatewayError(
                "bad_gateway",
                f"Cannot connect to {self._deregister_endpoint}: {exc}",
            ) from exc

        if response.status_code in (200, 204):
            return True
        if response.status_code in (400, 401, 403):
            logger.warning(
                "Error while revoking token. Code: %d, Body: %s",
                response.status_code, response.text,
            )
            return False
        raise HttpBadGatewayError(
            "bad_gateway",
            f"Cannot connect to {self._deregister_endpoint}: HTTP status {response.status_code}",
        )

    def deregister_user(self, service_user_id: str, access_token: str) -> None:
        try:
            secret = self.get_access_token_secret(self.find_by_external_id(service_user_id))
        except HttpNotFoundError:
            logger.info(
                "User not found with id %s, trying to deregister without access token secret.",
                service_user_id,
            )
            secret = ""
        except HttpUnauthorizedError:
            logger.info(
                "Access token secret not found for id %s, trying to deregister "
                "without access token secret.",
                service_user_id,
            )
            secret = ""

        if not self.revoke_token(access_token, secret):
            logger.error(
                "Not able to deregister user. Please contact Garmin Support Team "
                "(connect-support@developer.garmin.com) to remove the user with "
                "access token: %s and user ID: %s",
                access_token, service_user_id,
            )
            return

        logger.info("Successfully deregistered user %s.", service_user_id)
        doc_ref = self._directory.get_document_reference_by_service_id(service_user_id)
        if doc_ref is not None:
            delete_document(doc_ref, self._directory.document_timeout)

    # ------------------------------------------------------------------
    # Drain protocol
    # ------------------------------------------------------------------

    def has_pending_updates(self) -> bool:
        return self._directory.has_pending_updates

    def apply_pending_updates(self) -> None:
        self._directory.apply_updates()
