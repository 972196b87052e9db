"""Pydantic models for the Kafka topic facade."""

from __future__ import annotations

from src.models.base import GatewayBase


class TopicPartitionInfo(GatewayBase):
    partition: int


class TopicInfo(GatewayBase):
    topic: str
    partitions: list[TopicPartitionInfo]
