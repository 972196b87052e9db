from __future__ import annotations

from typing import Any

from src.garmin.converters.base import GarminConverter, _int, time_received


class StressDetailsConverter(GarminConverter):
    """One record per stress details summary."""

    root = "stressDetails"
    description = "Stress"

    def __init__(self, topic: str = "push_integration_garmin_stress") -> None:
        super().__init__(topic)

    def convert_summary(self, node: dict[str, Any]) -> list[dict[str, Any]]:
        return [
            {
                "summaryId": node.get("summaryId"),
                "time": float(node["startTimeInSeconds"]),
                "timeReceived": time_received(),
                "startTimeOffset": _int(node.get("startTimeOffsetInSeconds")),
                "duration": _int(node.get("durationInSeconds")),
                "date": node.get("calendarDate"),
            }
        ]
