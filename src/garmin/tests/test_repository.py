"""Tests for the Firestore-backed Garmin user repository."""

from __future__ import annotations

import httpx
import pytest

from src.exceptions import (
    HttpBadGatewayError,
    HttpBadRequestError,
    HttpNotFoundError,
    HttpUnauthorizedError,
)
from src.garmin.signature import SignRequestParams, sign
from src.garmin.tests.conftest import (
    ACCESS_TOKEN,
    ACCESS_TOKEN_SECRET,
    GARMIN_USER_ID,
    UUID,
    auth_document,
)
from src.garmin.user.firestore.directory import ADDED, DirectoryChange
from src.garmin.user.firestore.repository import (
    GARMIN_DEREGISTER_ENDPOINT,
    FirestoreUserRepository,
)

CONSUMER_KEY = "consumer-key"
CONSUMER_SECRET = "consumer-secret"


class RecordingTransport:
    """Answers every request with a fixed status and records the requests."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text="response body")


def _repository(directory, status_code: int = 204) -> tuple[FirestoreUserRepository, RecordingTransport]:
    transport = RecordingTransport(status_code)
    client = httpx.Client(transport=httpx.MockTransport(transport))
    return FirestoreUserRepository(directory, client, CONSUMER_KEY, CONSUMER_SECRET), transport


@pytest.fixture
def loaded_directory(directory):
    directory.apply_change(DirectoryChange(ADDED, UUID))
    return directory


class TestCredentials:
    def test_access_token_and_secret(self, loaded_directory) -> None:
        repository, _ = _repository(loaded_directory)
        user = repository.get(UUID)

        assert repository.get_access_token(user) == ACCESS_TOKEN
        assert repository.get_access_token_secret(user) == ACCESS_TOKEN_SECRET

    def test_missing_secret_is_unauthorized(self, directory, garmin_collection) -> None:
        garmin_collection.documents[UUID] = auth_document(
            resource_token={"oauth_token": [ACCESS_TOKEN], "oauth_token_secret": []}
        )
        repository, _ = _repository(directory)
        user = repository.get(UUID)

        with pytest.raises(HttpUnauthorizedError):
            repository.get_access_token_secret(user)

    def test_evicted_user_is_unauthorized(self, loaded_directory, garmin_collection) -> None:
        repository, _ = _repository(loaded_directory)
        user = repository.get(UUID)
        del garmin_collection.documents[UUID]
        loaded_directory.apply_change(DirectoryChange("REMOVED", UUID))

        with pytest.raises(HttpUnauthorizedError):
            repository.get_access_token(user)

    def test_find_by_external_id(self, loaded_directory) -> None:
        repository, _ = _repository(loaded_directory)
        assert repository.find_by_external_id(GARMIN_USER_ID).id == UUID
        with pytest.raises(HttpNotFoundError):
            repository.find_by_external_id("unknown")

    def test_stream_lists_cached_users(self, loaded_directory) -> None:
        repository, _ = _repository(loaded_directory)
        assert [u.id for u in repository.stream()] == [UUID]


class TestSignedRequest:
    def test_returns_new_signed_payload(self, loaded_directory) -> None:
        repository, _ = _repository(loaded_directory)
        user = repository.get(UUID)
        payload = SignRequestParams(
            "https://healthapi.garmin.com/wellness-api/rest/backfill/dailies",
            "GET",
            {"oauth_consumer_key": CONSUMER_KEY, "oauth_nonce": "n", "oauth_timestamp": "1"},
        )
        original = dict(payload.parameters)

        signed = repository.get_signed_request(user, payload)

        assert payload.parameters == original
        assert signed is not payload
        assert signed.url == payload.url
        assert signed.method == "GET"
        assert signed.parameters["oauth_token"] == ACCESS_TOKEN
        assert signed.parameters["oauth_signature_method"] == "HMAC-SHA1"
        expected = sign(
            payload.url,
            "GET",
            {**original, "oauth_token": ACCESS_TOKEN, "oauth_signature_method": "HMAC-SHA1"},
            CONSUMER_SECRET,
            ACCESS_TOKEN_SECRET,
        )
        assert signed.parameters["oauth_signature"] == expected


class TestDeregistration:
    def test_success_deletes_document(self, loaded_directory, garmin_collection) -> None:
        repository, transport = _repository(loaded_directory, 204)

        repository.deregister_user(GARMIN_USER_ID, ACCESS_TOKEN)

        assert UUID not in garmin_collection.documents
        request = transport.requests[0]
        assert request.method == "DELETE"
        assert str(request.url) == GARMIN_DEREGISTER_ENDPOINT
        header = request.headers["Authorization"]
        assert header.startswith('OAuth oauth_consumer_key="consumer-key", ')
        assert f'oauth_token="{ACCESS_TOKEN}"' in header
        assert 'oauth_signature_method="HMAC-SHA1"' in header
        assert 'oauth_version="1.0"' in header
        assert "oauth_signature=" in header
        assert "oauth_verifier" not in header

    def test_200_is_success(self, loaded_directory, garmin_collection) -> None:
        repository, _ = _repository(loaded_directory, 200)
        repository.deregister_user(GARMIN_USER_ID, ACCESS_TOKEN)
        assert UUID not in garmin_collection.documents

    @pytest.mark.parametrize("status_code", [400, 401, 403])
    def test_refusal_keeps_document(self, loaded_directory, garmin_collection, status_code) -> None:
        repository, _ = _repository(loaded_directory, status_code)

        repository.deregister_user(GARMIN_USER_ID, ACCESS_TOKEN)

        assert UUID in garmin_collection.documents

    def test_other_status_is_bad_gateway(self, loaded_directory, garmin_collection) -> None:
        repository, _ = _repository(loaded_directory, 500)

        with pytest.raises(HttpBadGatewayError) as excinfo:
            repository.deregister_user(GARMIN_USER_ID, ACCESS_TOKEN)
        assert excinfo.value.code == "bad_gateway"
        assert excinfo.value.status_code == 502
        assert "HTTP status 500" in excinfo.value.description
        assert UUID in garmin_collection.documents

    def test_unknown_user_is_revoked_without_secret(self, directory) -> None:
        repository, transport = _repository(directory, 204)

        repository.deregister_user("unknown", "some-token")

        assert len(transport.requests) == 1
        assert 'oauth_token="some-token"' in transport.requests[0].headers["Authorization"]

    def test_empty_token_is_bad_request(self, loaded_directory) -> None:
        repository, transport = _repository(loaded_directory)
        with pytest.raises(HttpBadRequestError):
            repository.deregister_user(GARMIN_USER_ID, "")
        assert transport.requests == []

    def test_connection_error_is_bad_gateway(self, loaded_directory) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(fail))
        repository = FirestoreUserRepository(loaded_directory, client, CONSUMER_KEY, CONSUMER_SECRET)
        with pytest.raises(HttpBadGatewayError):
            repository.revoke_token(ACCESS_TOKEN, ACCESS_TOKEN_SECRET)


class TestPendingUpdates:
    def test_pass_through(self, directory) -> None:
        repository, _ = _repository(directory)
        assert repository.has_pending_updates()
        repository.apply_pending_updates()
        assert not repository.has_pending_updates()
