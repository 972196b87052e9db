from __future__ import annotations

from typing import Any

from src.garmin.converters.base import (
    GarminConverter,
    _float,
    _int,
    offset_samples,
    time_received,
)


class RespirationConverter(GarminConverter):
    """One record per breathing-rate sample of an all-day respiration summary."""

    root = "allDayRespiration"
    sub_node = "timeOffsetEpochToBreaths"
    description = "Respiration"

    def __init__(self, topic: str = "push_integration_garmin_respiration") -> None:
        super().__init__(topic)

    def convert_summary(self, node: dict[str, Any]) -> list[dict[str, Any]]:
        received = time_received()
        return [
            {
                "summaryId": node.get("summaryId"),
                "time": sample_time,
                "timeReceived": received,
                "startTimeOffsetInSeconds": _int(node.get("startTimeOffsetInSeconds")),
                "respirationInBreathsPerMinute": _float(value),
                "durationInSeconds": _int(node.get("durationInSeconds")),
            }
            for sample_time, value in offset_samples(node, self.sub_node)
        ]
