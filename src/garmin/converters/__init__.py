from src.garmin.converters.base import GarminConverter, Record
from src.garmin.converters.body_battery import BodyBatterySampleConverter
from src.garmin.converters.respiration import RespirationConverter
from src.garmin.converters.stress import StressDetailsConverter

# Push route path segment -> converter class
CONVERTER_REGISTRY: dict[str, type[GarminConverter]] = {
    "stress": StressDetailsConverter,
    "respiration": RespirationConverter,
    "body-battery": BodyBatterySampleConverter,
}


def get_converter(route: str) -> GarminConverter:
    """Return a converter instance for a push route.

    Raises:
        KeyError: If no converter is registered for ``route``.
    """
    if route not in CONVERTER_REGISTRY:
        raise KeyError(
            f"No converter registered for route '{route}'. "
            f"Available: {list(CONVERTER_REGISTRY)}"
        )
    return CONVERTER_REGISTRY[route]()


__all__ = [
    "BodyBatterySampleConverter",
    "CONVERTER_REGISTRY",
    "GarminConverter",
    "Record",
    "RespirationConverter",
    "StressDetailsConverter",
    "get_converter",
]
