"""Tests for Garmin push payload converters."""

from __future__ import annotations

import pytest

from src.exceptions import HttpBadRequestError
from src.garmin.converters import (
    BodyBatterySampleConverter,
    RespirationConverter,
    StressDetailsConverter,
    get_converter,
)
from src.garmin.tests.conftest import UUID, auth_document
from src.garmin.user.firestore.models import build_user

STRESS_PUSH = {
    "stressDetails": [
        {
            "userId": "garmin-user-1",
            "userAccessToken": "access-token-1",
            "summaryId": "x153a9f3-5a9478d4-6",
            "calendarDate": "2026-01-24",
            "startTimeInSeconds": 1769212800,
            "startTimeOffsetInSeconds": 3600,
            "durationInSeconds": 540,
            "timeOffsetStressLevelValues": {"0": 18, "180": 51},
            "timeOffsetBodyBatteryDetails": {"0": 55, "180": 56, "360": 59},
        }
    ]
}

RESPIRATION_PUSH = {
    "allDayRespiration": [
        {
            "userId": "garmin-user-1",
            "summaryId": "x15372ea-5a9478d4",
            "startTimeInSeconds": 1769212800,
            "durationInSeconds": 900,
            "startTimeOffsetInSeconds": 0,
            "timeOffsetEpochToBreaths": {"0": 14.63, "60": 14.4},
        }
    ]
}


@pytest.fixture
def user():
    return build_user(UUID, auth_document(), {"project_id": "radar-test"})


class TestStressDetailsConverter:
    def test_one_record_per_summary(self, user) -> None:
        converter = StressDetailsConverter()
        records = converter.validate_and_convert(STRESS_PUSH, user)

        assert converter.topic == "push_integration_garmin_stress"
        assert len(records) == 1
        key, value = records[0]
        assert key == user.observation_key.to_dict()
        assert value["summaryId"] == "x153a9f3-5a9478d4-6"
        assert value["time"] == 1769212800.0
        assert value["startTimeOffset"] == 3600
        assert value["duration"] == 540
        assert value["date"] == "2026-01-24"
        assert value["timeReceived"] > 0

    @pytest.mark.parametrize("payload", [{}, {"stressDetails": {}}, [], {"other": []}])
    def test_malformed_payload_is_bad_request(self, payload, user) -> None:
        with pytest.raises(HttpBadRequestError):
            StressDetailsConverter().validate_and_convert(payload, user)


class TestRespirationConverter:
    def test_one_record_per_sample(self, user) -> None:
        records = RespirationConverter().validate_and_convert(RESPIRATION_PUSH, user)

        assert [v["time"] for _, v in records] == [1769212800.0, 1769212860.0]
        assert [v["respirationInBreathsPerMinute"] for _, v in records] == [14.63, 14.4]
        assert records[0][1]["durationInSeconds"] == 900

    def test_malformed_payload_is_bad_request(self, user) -> None:
        with pytest.raises(HttpBadRequestError):
            RespirationConverter().validate({"allDayRespiration": "nope"})


class TestBodyBatterySampleConverter:
    def test_samples_from_stress_details(self, user) -> None:
        converter = BodyBatterySampleConverter()
        records = converter.validate_and_convert(STRESS_PUSH, user)

        assert converter.topic == "push_integration_garmin_body_battery_sample"
        assert [v["time"] for _, v in records] == [1769212800.0, 1769212980.0, 1769213160.0]
        assert [v["bodyBattery"] for _, v in records] == [55.0, 56.0, 59.0]
        assert all(v["summaryId"] == "x153a9f3-5a9478d4-6" for _, v in records)

    def test_missing_samples_yield_nothing(self, user) -> None:
        payload = {"stressDetails": [{"summaryId": "s", "startTimeInSeconds": 1}]}
        assert BodyBatterySampleConverter().validate_and_convert(payload, user) == []

    def test_missing_root_is_accepted(self, user) -> None:
        assert BodyBatterySampleConverter().validate_and_convert({}, user) == []


class TestRegistry:
    def test_known_routes(self) -> None:
        assert isinstance(get_converter("stress"), StressDetailsConverter)
        assert isinstance(get_converter("respiration"), RespirationConverter)
        assert isinstance(get_converter("body-battery"), BodyBatterySampleConverter)

    def test_unknown_route(self) -> None:
        with pytest.raises(KeyError):
            get_converter("sleeps")
