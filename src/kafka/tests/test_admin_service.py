"""Tests for the cached Kafka topic metadata service."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from confluent_kafka import KafkaException

from src.exceptions import HttpNotFoundError, HttpServiceUnavailableError
from src.kafka.admin_service import KafkaAdminService, KafkaUnavailableError


class TestListTopics:
    """Topic name listing through the topic cache."""

    def test_internal_topics_are_hidden(self, admin_client, clock) -> None:
        service = KafkaAdminService(admin_client, clock=clock)
        assert service.list_topics() == ["android_phone_acceleration", "garmin_stress"]

    def test_list_uses_bounded_timeout(self, admin_client, clock) -> None:
        service = KafkaAdminService(admin_client, timeout=3.0, clock=clock)
        service.list_topics()
        admin_client.list_topics.assert_called_once_with(timeout=3.0)

    def test_list_is_cached_for_ten_seconds(self, admin_client, clock) -> None:
        service = KafkaAdminService(admin_client, clock=clock)
        service.list_topics()
        clock.advance(9)
        service.list_topics()
        assert admin_client.list_topics.call_count == 1

        clock.advance(2)
        service.list_topics()
        assert admin_client.list_topics.call_count == 2

    def test_contains_topic(self, admin_client, clock) -> None:
        service = KafkaAdminService(admin_client, clock=clock)
        assert service.contains_topic("garmin_stress")
        assert not service.contains_topic("_schemas")

    def test_failure_without_cached_value_is_unavailable(self, clock) -> None:
        client = MagicMock()
        client.list_topics.side_effect = KafkaException("broker down")
        service = KafkaAdminService(client, clock=clock)

        with pytest.raises(KafkaUnavailableError) as exc_info:
            service.list_topics()
        assert isinstance(exc_info.value, HttpServiceUnavailableError)
        assert exc_info.value.status_code == 503

    def test_failure_after_success_never_returns_empty(self, clock, make_metadata) -> None:
        """Once topics were listed, a broker outage keeps serving them."""
        client = MagicMock()
        client.list_topics.side_effect = [
            make_metadata("a"),
            KafkaException("broker down"),
            make_metadata("a", "b"),
        ]
        service = KafkaAdminService(client, clock=clock)

        assert service.list_topics() == ["a"]
        clock.advance(11)
        assert service.list_topics() == ["a"]
        clock.advance(1)
        assert service.list_topics() == ["a"]
        clock.advance(2)
        assert service.list_topics() == ["a", "b"]


class TestTopicInfo:
    """Per-topic descriptions."""

    def test_unknown_topic_is_not_found(self, admin_client, clock) -> None:
        service = KafkaAdminService(admin_client, clock=clock)
        with pytest.raises(HttpNotFoundError):
            service.topic_info("missing")
        admin_client.describe_topics.assert_not_called()

    def test_internal_topic_is_not_found(self, admin_client, clock) -> None:
        service = KafkaAdminService(admin_client, clock=clock)
        with pytest.raises(HttpNotFoundError):
            service.topic_info("_schemas")

    def test_describes_partitions_in_order(self, admin_client, clock) -> None:
        service = KafkaAdminService(admin_client, clock=clock)
        info = service.topic_info("garmin_stress")

        assert info.topic == "garmin_stress"
        assert [p.partition for p in info.partitions] == [0, 1, 2]

    def test_description_is_cached(self, admin_client, clock) -> None:
        service = KafkaAdminService(admin_client, clock=clock)
        service.topic_info("garmin_stress")
        clock.advance(60)
        service.topic_info("garmin_stress")
        assert admin_client.describe_topics.call_count == 1

    def test_describe_failure_is_unavailable(self, admin_client, clock) -> None:
        admin_client.describe_topics.side_effect = KafkaException("timed out")
        service = KafkaAdminService(admin_client, clock=clock)
        with pytest.raises(KafkaUnavailableError):
            service.topic_info("garmin_stress")
