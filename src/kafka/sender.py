"""Publish converted records to Kafka.

Keys and values are JSON-encoded dicts.  ``send`` blocks until every record
of the batch is acknowledged or the flush timeout elapses; partial delivery
is reported as HTTP 503 so the vendor retries the push.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from confluent_kafka import KafkaException, Producer

from src.config import Settings, get_settings
from src.exceptions import HttpServiceUnavailableError

logger = logging.getLogger("gateway.kafka.sender")

Record = tuple[dict[str, Any], dict[str, Any]]


def create_producer(settings: Settings | None = None) -> Producer:
    s = settings or get_settings()
    config: dict[str, Any] = {
        "bootstrap.servers": s.kafka_bootstrap_servers,
        "enable.idempotence": True,
    }
    config.update(s.kafka_producer_config)
    return Producer(config)


def _encode(obj: dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":"), default=str).encode("utf-8")


class KafkaRecordSender:
    """Synchronous batch sender on top of ``confluent_kafka.Producer``."""

    def __init__(self, producer: Producer, flush_timeout: float = 10.0) -> None:
        self._producer = producer
        self._flush_timeout = flush_timeout

    def send(self, topic: str, records: Iterable[Record]) -> int:
        """Send ``records`` to ``topic`` and wait for delivery.

        Returns:
            Number of records delivered.

        Raises:
            HttpServiceUnavailableError: Kafka rejected or did not acknowledge
                                         every record in time.
        """
        failures: list[str] = []

        def on_delivery(err: Any, _msg: Any) -> None:
            if err is not None:
                failures.append(str(err))

        count = 0
        try:
            for key, value in records:
                self._producer.produce(
                    topic, key=_encode(key), value=_encode(value), on_delivery=on_delivery
                )
                count += 1
            remaining = self._producer.flush(self._flush_timeout)
        except (KafkaException, BufferError) as exc:
            logger.error("Failed to produce to topic %s", topic, exc_info=exc)
            raise HttpServiceUnavailableError("kafka_unavailable", str(exc)) from exc

        if remaining or failures:
            logger.error(
                "Delivery to %s incomplete: %d pending, %d failed (%s)",
                topic, remaining, len(failures), "; ".join(failures[:3]),
            )
            raise HttpServiceUnavailableError(
                "kafka_unavailable", f"Could not deliver all records to {topic}"
            )
        logger.debug("Delivered %d records to %s", count, topic)
        return count

    def close(self) -> None:
        self._producer.flush(self._flush_timeout)
