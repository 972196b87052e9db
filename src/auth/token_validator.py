"""Verify Management Portal access tokens.

Public keys are fetched from ``{management_portal_url}/oauth/token_key``,
which answers either with a single key::

    {"alg": "SHA256withECDSA", "value": "-----BEGIN PUBLIC KEY-----..."}

or with a JWK set (``{"keys": [...]}``).  Keys are cached for
``jwt_key_cache_seconds``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import httpx
import jwt as pyjwt

from src.auth.jwt_auth import JwtAuth
from src.config import Settings, get_settings
from src.exceptions import HttpServiceUnavailableError, HttpUnauthorizedError
from src.util.cache import CacheConfig, CachedValue, Clock

logger = logging.getLogger("gateway.auth")

# Management Portal (Java) algorithm names -> JWA names
_ALGORITHMS = {
    "SHA256withRSA": "RS256",
    "SHA256withECDSA": "ES256",
    "RS256": "RS256",
    "ES256": "ES256",
}


@dataclass(frozen=True)
class VerificationKey:
    algorithm: str
    key: Any


def _pem(value: str) -> str:
    value = value.strip()
    if value.startswith("-----BEGIN"):
        return value
    return f"-----BEGIN PUBLIC KEY-----\n{value}\n-----END PUBLIC KEY-----"


def parse_token_keys(body: dict[str, Any]) -> list[VerificationKey]:
    """Parse a ``token_key`` response into verification keys.

    Raises:
        ValueError: The response holds no usable key.
    """
    keys: list[VerificationKey] = []
    if "keys" in body:
        for jwk in body["keys"]:
            try:
                parsed = pyjwt.PyJWK(jwk)
            except pyjwt.PyJWTError as exc:
                logger.warning("Skipping unusable JWK %s: %s", jwk.get("kid"), exc)
                continue
            keys.append(VerificationKey(parsed.algorithm_name, parsed.key))
    elif "value" in body:
        algorithm = _ALGORITHMS.get(body.get("alg", ""))
        if algorithm is None:
            raise ValueError(f"Unsupported token key algorithm {body.get('alg')!r}")
        keys.append(VerificationKey(algorithm, _pem(body["value"])))
    if not keys:
        raise ValueError("No verification keys in token key response")
    return keys


class ManagementPortalTokenValidator:
    """Validate bearer tokens against the Management Portal's public keys.

    Args:
        key_url:       Token key endpoint.
        resource_name: Required audience.
        issuer:        Required issuer, or None to skip the check.
        http_client:   Client used to fetch keys.
        cache_seconds: How long fetched keys stay valid.
    """

    def __init__(
        self,
        key_url: str,
        resource_name: str,
        *,
        issuer: str | None = None,
        http_client: httpx.Client | None = None,
        cache_seconds: int = 3600,
        clock: Clock = time.monotonic,
    ) -> None:
        self._key_url = key_url
        self._resource_name = resource_name
        self._issuer = issuer
        self._http = http_client or httpx.Client(timeout=10.0)
        self._keys: CachedValue[list[VerificationKey]] = CachedValue(
            CacheConfig(
                refresh_duration=timedelta(seconds=cache_seconds),
                retry_duration=timedelta(seconds=10),
            ),
            self._fetch_keys,
            clock=clock,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, http_client: httpx.Client | None = None
    ) -> ManagementPortalTokenValidator:
        s = settings or get_settings()
        return cls(
            f"{s.management_portal_url.rstrip('/')}/oauth/token_key",
            s.jwt_resource_name,
            issuer=s.jwt_issuer,
            http_client=http_client,
            cache_seconds=s.jwt_key_cache_seconds,
        )

    def _fetch_keys(self) -> list[VerificationKey]:
        response = self._http.get(self._key_url, headers={"Accept": "application/json"})
        response.raise_for_status()
        keys = parse_token_keys(response.json())
        logger.info("Fetched %d token verification key(s) from %s", len(keys), self._key_url)
        return keys

    def validate(self, token: str) -> JwtAuth:
        """Verify ``token`` and return its claims.

        Raises:
            HttpUnauthorizedError:       The token is invalid or expired.
            HttpServiceUnavailableError: No verification keys could be fetched.
        """
        try:
            keys = self._keys.get()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Cannot fetch token keys from %s: %s", self._key_url, exc)
            raise HttpServiceUnavailableError(
                "token_key_unavailable", "Cannot verify tokens at this time"
            ) from exc

        error: pyjwt.PyJWTError | None = None
        for key in keys:
            try:
                claims = pyjwt.decode(
                    token,
                    key.key,
                    algorithms=[key.algorithm],
                    audience=self._resource_name,
                    issuer=self._issuer,
                )
            except (
                pyjwt.InvalidSignatureError,
                pyjwt.InvalidAlgorithmError,
                pyjwt.InvalidKeyError,
            ) as exc:
                error = exc
                continue
            except pyjwt.ExpiredSignatureError as exc:
                raise HttpUnauthorizedError("token_expired", "Token expired") from exc
            except pyjwt.InvalidTokenError as exc:
                logger.warning("JWT validation failed: %s", exc)
                raise HttpUnauthorizedError("invalid_token", str(exc)) from exc
            return JwtAuth.from_claims(claims, token=token)

        logger.warning("JWT validation failed: %s", error)
        raise HttpUnauthorizedError("invalid_token", "Token signature could not be verified")

    def close(self) -> None:
        self._http.close()
