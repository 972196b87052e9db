"""App fixtures for route tests.

The lifespan is not run: services are placed on ``app.state`` directly.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from src.auth.jwt_auth import JwtAuth
from src.config import Settings
from src.exceptions import HttpUnauthorizedError
from src.main import create_app

VALID_TOKEN = "valid-token"
READ_ONLY_TOKEN = "read-only-token"


@pytest.fixture
def token_validator() -> MagicMock:
    validator = MagicMock()

    def validate(token: str) -> JwtAuth:
        if token == READ_ONLY_TOKEN:
            return JwtAuth.from_claims({"sub": "user-1", "scope": ["SUBJECT.READ"]}, token=token)
        if token != VALID_TOKEN:
            raise HttpUnauthorizedError("invalid_token", "Token signature could not be verified")
        return JwtAuth.from_claims({"sub": "user-1", "scope": ["MEASUREMENT.CREATE"]}, token=token)

    validator.validate.side_effect = validate
    return validator


@pytest.fixture
def app(token_validator):
    settings = Settings(_env_file=None, garmin_enabled=True)
    application = create_app(settings=settings, token_validator=token_validator)
    application.state.kafka_admin_service = MagicMock()
    application.state.record_sender = MagicMock()
    application.state.user_repository = MagicMock()
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {VALID_TOKEN}"}
