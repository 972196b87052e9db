"""Cached Kafka topic metadata in front of the cluster admin API.

Two independently configured caches sit between HTTP callers and the
broker:

    topic names   — refreshed every 10 s, 2 s retry after failure, 3 computes
    descriptions  — per topic, refreshed every 30 min, 2 s retry, 2 computes

Internal topics (leading underscore) are never exposed.  Any broker failure,
timeouts included, surfaces as ``KafkaUnavailableError`` (HTTP 503) unless a
previously fetched value can still be served.
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any

from confluent_kafka import TopicCollection
from confluent_kafka.admin import AdminClient

from src.config import Settings, get_settings
from src.exceptions import HttpNotFoundError, HttpServiceUnavailableError
from src.models.kafka import TopicInfo, TopicPartitionInfo
from src.util.cache import CacheConfig, CachedMap, CachedSet, Clock

logger = logging.getLogger("gateway.kafka")

ADMIN_TIMEOUT_SECONDS = 3.0

LIST_CACHE_CONFIG = CacheConfig(
    refresh_duration=timedelta(seconds=10),
    retry_duration=timedelta(seconds=2),
    max_simultaneous_compute=3,
)
DESCRIBE_CACHE_CONFIG = CacheConfig(
    refresh_duration=timedelta(minutes=30),
    retry_duration=timedelta(seconds=2),
    max_simultaneous_compute=2,
)


class KafkaUnavailableError(HttpServiceUnavailableError):
    """The Kafka cluster could not be reached or did not answer in time."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__("kafka_unavailable", str(cause) or type(cause).__name__)


def create_admin_client(settings: Settings | None = None) -> AdminClient:
    s = settings or get_settings()
    config: dict[str, Any] = {"bootstrap.servers": s.kafka_bootstrap_servers}
    config.update(s.kafka_admin_config)
    return AdminClient(config)


class KafkaAdminService:
    """Topic listing and description backed by single-flight caches."""

    def __init__(
        self,
        admin_client: AdminClient,
        *,
        list_cache_config: CacheConfig = LIST_CACHE_CONFIG,
        describe_cache_config: CacheConfig = DESCRIBE_CACHE_CONFIG,
        timeout: float = ADMIN_TIMEOUT_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        self._admin = admin_client
        self._timeout = timeout
        self._topics: CachedSet[str] = CachedSet(
            list_cache_config, self._fetch_topic_names, clock=clock
        )
        self._descriptions: CachedMap[str, TopicInfo] = CachedMap(
            describe_cache_config, self._fetch_topic_info, clock=clock
        )

    def contains_topic(self, topic: str) -> bool:
        return topic in self._topics

    def list_topics(self) -> list[str]:
        return self._topics.get()

    def topic_info(self, topic: str) -> TopicInfo:
        """Return the partition layout of ``topic``.

        Raises:
            HttpNotFoundError:    The topic is not in the cached topic list.
            KafkaUnavailableError: The broker could not describe the topic.
        """
        if not self.contains_topic(topic):
            raise HttpNotFoundError("topic_not_found", f"Topic {topic} does not exist")
        return self._descriptions.get(topic)

    def close(self) -> None:
        # AdminClient has no close(); dropping the reference stops its threads.
        self._admin = None  # type: ignore[assignment]

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    def _fetch_topic_names(self) -> list[str]:
        try:
            metadata = self._admin.list_topics(timeout=self._timeout)
        except Exception as exc:
            logger.error("Failed to list Kafka topics", exc_info=exc)
            raise KafkaUnavailableError(exc) from exc
        return [name for name in metadata.topics if not name.startswith("_")]

    def _fetch_topic_info(self, topic: str) -> TopicInfo:
        try:
            futures = self._admin.describe_topics(
                TopicCollection([topic]), request_timeout=self._timeout
            )
            description = futures[topic].result(timeout=self._timeout)
        except Exception as exc:
            logger.error("Failed to describe Kafka topic %s", topic, exc_info=exc)
            raise KafkaUnavailableError(exc) from exc

        return TopicInfo(
            topic=description.name,
            partitions=[
                TopicPartitionInfo(partition=p.id) for p in description.partitions
            ],
        )
