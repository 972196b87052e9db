from __future__ import annotations

from typing import Any

from src.garmin.converters.base import GarminConverter, _float, offset_samples, time_received


class BodyBatterySampleConverter(GarminConverter):
    """Body battery samples carried inside stress details summaries.

    Stress pushes without body battery samples are valid and yield nothing,
    so a missing root list is not an error here.
    """

    root = "stressDetails"
    sub_node = "timeOffsetBodyBatteryDetails"
    description = "Body battery"

    def __init__(self, topic: str = "push_integration_garmin_body_battery_sample") -> None:
        super().__init__(topic)

    def validate(self, tree: Any) -> None:
        return None

    def convert_summary(self, node: dict[str, Any]) -> list[dict[str, Any]]:
        received = time_received()
        return [
            {
                "summaryId": node.get("summaryId"),
                "time": sample_time,
                "timeReceived": received,
                "bodyBattery": _float(value),
            }
            for sample_time, value in offset_samples(node, self.sub_node)
        ]
