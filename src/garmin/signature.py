"""OAuth 1.0a HMAC-SHA1 request signatures (RFC 5849).

Garmin's Health API authenticates every call with an OAuth1 signature over
the request method, the base URL and the sorted request parameters:

    base string  = METHOD & enc(base_url) & enc(k1=v1&k2=v2...)
    signing key  = enc(consumer_secret) & enc(token_secret)
    signature    = enc(base64(HMAC-SHA1(signing key, base string)))

The canonicalization and HMAC primitives come from authlib's RFC 5849
implementation.  Nonce and timestamp are ordinary parameters supplied by the
caller, so signing is deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Union

from authlib.oauth1.rfc5849.signature import construct_base_string, hmac_sha1_signature
from authlib.oauth1.rfc5849.util import escape

OAUTH_CONSUMER_KEY = "oauth_consumer_key"
OAUTH_NONCE = "oauth_nonce"
OAUTH_SIGNATURE = "oauth_signature"
OAUTH_SIGNATURE_METHOD = "oauth_signature_method"
OAUTH_SIGNATURE_METHOD_VALUE = "HMAC-SHA1"
OAUTH_TIMESTAMP = "oauth_timestamp"
OAUTH_ACCESS_TOKEN = "oauth_token"
OAUTH_ACCESS_TOKEN_SECRET = "oauth_token_secret"
OAUTH_VERSION = "oauth_version"
OAUTH_VERSION_VALUE = "1.0"
OAUTH_VERIFIER = "oauth_verifier"

Parameters = Union[Mapping[str, str], Iterable[tuple[str, str]]]


@dataclass(frozen=True)
class SignRequestParams:
    """Everything needed to sign one request: target, method and parameters."""

    url: str
    method: str
    parameters: dict[str, str] = field(default_factory=dict)


def _pairs(parameters: Parameters) -> list[tuple[str, str]]:
    items = parameters.items() if isinstance(parameters, Mapping) else parameters
    return [(k, "" if v is None else str(v)) for k, v in items]


def signature_base_string(url: str, method: str, parameters: Parameters) -> str:
    """Return the RFC 5849 section 3.4.1 signature base string.

    Query and fragment of ``url`` are ignored; query parameters must be part
    of ``parameters``.  Repeated keys are allowed when given as pairs.
    """
    return construct_base_string(method, url, _pairs(parameters))


def sign(
    url: str,
    method: str,
    parameters: Parameters,
    consumer_secret: str,
    token_secret: str | None = None,
) -> str:
    """Compute the percent-encoded HMAC-SHA1 signature of a request.

    Args:
        url:             Request URL (scheme, host, path).
        method:          HTTP method.
        parameters:      Request parameters, including all ``oauth_*``
                         parameters except ``oauth_signature``.
        consumer_secret: Process-wide consumer secret.
        token_secret:    The user's access token secret, if any.

    Returns:
        The signature, percent-encoded for direct use in a header or query.
    """
    pairs = [(k, v) for k, v in _pairs(parameters) if k != OAUTH_SIGNATURE]
    base_string = construct_base_string(method, url, pairs)
    return escape(hmac_sha1_signature(base_string, consumer_secret, token_secret or ""))


def format_authorization_header(parameters: Mapping[str, str | None]) -> str:
    """Format parameters as an ``OAuth k1="v1", k2="v2"`` header value.

    Values are written as given; the signature is already percent-encoded.
    ``None`` values are skipped.
    """
    return "OAuth " + ", ".join(
        f'{key}="{value}"' for key, value in parameters.items() if value is not None
    )
