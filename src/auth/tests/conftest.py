"""Key material and token factories for auth tests."""

from __future__ import annotations

import time
from typing import Any

import jwt as pyjwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

RESOURCE = "res_gateway"


@pytest.fixture(scope="session")
def ec_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def public_pem(ec_key) -> str:
    return ec_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def make_token(ec_key):
    def factory(**claims: Any) -> str:
        now = int(time.time())
        payload = {
            "sub": "user-1",
            "aud": [RESOURCE],
            "iat": now,
            "exp": now + 300,
            "scope": ["MEASUREMENT.CREATE", "PROJECT.READ"],
            "roles": ["radar-test:ROLE_PARTICIPANT"],
            "sources": ["source-1"],
        }
        payload.update(claims)
        payload = {k: v for k, v in payload.items() if v is not None}
        return pyjwt.encode(payload, ec_key, algorithm="ES256")

    return factory
