"""Conversion of Garmin push payloads into Kafka records.

Every converter reads one root list from the pushed JSON tree and turns each
summary (or each sample inside it) into a ``(key, value)`` record.  The key
is the user's observation key; values are plain JSON-serializable dicts.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

from src.exceptions import HttpBadRequestError
from src.garmin.user.base import User
from src.kafka.sender import Record


def time_received() -> float:
    """Current time in epoch seconds, millisecond precision."""
    return round(time.time(), 3)


class GarminConverter(ABC):
    """Base class for all Garmin push converters.

    Subclasses set ``root`` (the top-level list key in the push payload) and
    implement ``convert_summary``.
    """

    root: str
    description: str = "Garmin"

    def __init__(self, topic: str) -> None:
        self.topic = topic

    def entries(self, tree: Any) -> list[dict[str, Any]]:
        nodes = tree.get(self.root) if isinstance(tree, dict) else None
        return nodes if isinstance(nodes, list) else []

    def validate(self, tree: Any) -> None:
        """Raise ``HttpBadRequestError`` if the root list is missing or not a list."""
        if not isinstance(tree, dict) or not isinstance(tree.get(self.root), list):
            raise HttpBadRequestError(
                "invalid_payload", f"The {self.description} data was invalid."
            )

    def convert(self, tree: dict[str, Any], user: User) -> list[Record]:
        key = user.observation_key.to_dict()
        records: list[Record] = []
        for node in self.entries(tree):
            records.extend((key, value) for value in self.convert_summary(node))
        return records

    @abstractmethod
    def convert_summary(self, node: dict[str, Any]) -> list[dict[str, Any]]:
        """Return the record values for one pushed summary."""

    def validate_and_convert(self, tree: Any, user: User) -> list[Record]:
        self.validate(tree)
        return self.convert(tree, user)


def _float(value: Any) -> float | None:
    return float(value) if value is not None else None


def _int(value: Any) -> int | None:
    return int(value) if value is not None else None


def offset_samples(node: dict[str, Any], sub_node: str) -> list[tuple[float, Any]]:
    """Return ``(absolute time, value)`` pairs for a map of second offsets.

    Garmin encodes intra-day samples as ``{"<offset seconds>": value}`` relative
    to the summary's ``startTimeInSeconds``.  Missing maps yield no samples.
    """
    samples = node.get(sub_node)
    if not samples:
        return []
    start = float(node["startTimeInSeconds"])
    return [(start + float(offset), value) for offset, value in samples.items()]
