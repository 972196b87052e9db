"""Shared fixtures and in-memory Firestore fakes for Garmin tests."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.garmin.user.firestore.directory import UserDirectory

UUID = "5f3b8c1e-0000-4000-8000-000000000001"
GARMIN_USER_ID = "garmin-user-1"
ACCESS_TOKEN = "access-token-1"
ACCESS_TOKEN_SECRET = "access-secret-1"

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2027, 1, 1, tzinfo=timezone.utc)


def auth_document(**overrides: Any) -> dict[str, Any]:
    """A valid Garmin credential document."""
    doc: dict[str, Any] = {
        "source_id": "garmin",
        "start_date": int(START.timestamp()),
        "end_date": int(END.timestamp()),
        "version": "2",
        "resource_token": {
            "datetime": int(START.timestamp()),
            "oauth_token": [ACCESS_TOKEN],
            "oauth_token_secret": [ACCESS_TOKEN_SECRET],
        },
        "userId": {"userId": GARMIN_USER_ID},
    }
    doc.update(overrides)
    return doc


class FakeSnapshot:
    def __init__(self, doc_id: str, data: dict[str, Any] | None) -> None:
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._data)


class FakeDocumentReference:
    def __init__(self, collection: FakeCollection, doc_id: str) -> None:
        self._collection = collection
        self.id = doc_id
        self.path = f"{collection.name}/{doc_id}"

    def get(self, timeout: float | None = None) -> FakeSnapshot:
        self._collection.reads.append(self.id)
        if self._collection.error is not None:
            raise self._collection.error
        return FakeSnapshot(self.id, self._collection.documents.get(self.id))

    def set(self, data: dict[str, Any], merge: bool = False, timeout: float | None = None) -> None:
        current = self._collection.documents.get(self.id, {}) if merge else {}
        self._collection.documents[self.id] = {**current, **data}

    def delete(self, timeout: float | None = None) -> None:
        self._collection.documents.pop(self.id, None)


class FakeCollection:
    """Dict-backed stand-in for a Firestore ``CollectionReference``."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.documents: dict[str, dict[str, Any]] = {}
        self.reads: list[str] = []
        self.error: Exception | None = None
        self.watch = MagicMock()
        self.listener = None

    def document(self, doc_id: str) -> FakeDocumentReference:
        return FakeDocumentReference(self, doc_id)

    def on_snapshot(self, callback):
        self.listener = callback
        return self.watch


def change(kind: str, doc_id: str) -> MagicMock:
    """Mimic a Firestore ``DocumentChange``."""
    item = MagicMock()
    item.type.name = kind
    item.document.id = doc_id
    return item


@pytest.fixture
def user_collection() -> FakeCollection:
    collection = FakeCollection("users")
    collection.documents[UUID] = {"project_id": "radar-test"}
    return collection


@pytest.fixture
def garmin_collection() -> FakeCollection:
    collection = FakeCollection("garmin")
    collection.documents[UUID] = auth_document()
    return collection


@pytest.fixture
def directory(user_collection, garmin_collection) -> UserDirectory:
    return UserDirectory(user_collection, garmin_collection, document_timeout=1.0)
