"""Fixtures for Kafka admin and sender tests."""

from __future__ import annotations

from concurrent.futures import Future
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def cluster_metadata(*names: str) -> SimpleNamespace:
    """Mimic ``ClusterMetadata`` with a ``topics`` dict keyed by name."""
    return SimpleNamespace(topics={name: SimpleNamespace(topic=name) for name in names})


def topic_description(name: str, partitions: int) -> Future:
    future: Future = Future()
    future.set_result(
        SimpleNamespace(
            name=name,
            partitions=[SimpleNamespace(id=i) for i in range(partitions)],
        )
    )
    return future


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_metadata():
    return cluster_metadata


@pytest.fixture
def admin_client() -> MagicMock:
    client = MagicMock()
    client.list_topics.return_value = cluster_metadata(
        "android_phone_acceleration", "__consumer_offsets", "_schemas", "garmin_stress"
    )
    client.describe_topics.side_effect = lambda collection, request_timeout: {
        name: topic_description(name, 3) for name in collection.topic_names
    }
    return client
