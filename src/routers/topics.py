"""Kafka topic listing and description."""

from __future__ import annotations

from fastapi import APIRouter

from src.dependencies import KafkaAdmin, MeasurementAuth
from src.models.base import ErrorDetail
from src.models.kafka import TopicInfo

router = APIRouter(prefix="/topics", tags=["topics"])


@router.get("", response_model=list[str])
def list_topics(auth: MeasurementAuth, admin: KafkaAdmin) -> list[str]:
    """List all non-internal topic names."""
    return admin.list_topics()


@router.get(
    "/{topic}",
    response_model=TopicInfo,
    responses={403: {"model": ErrorDetail}, 404: {"model": ErrorDetail}, 503: {"model": ErrorDetail}},
)
def get_topic(topic: str, auth: MeasurementAuth, admin: KafkaAdmin) -> TopicInfo:
    """Describe one topic: its name and partition indices."""
    return admin.topic_info(topic)
