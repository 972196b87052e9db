from src.garmin.user.base import ObservationKey, User
from src.garmin.user.repository import UserRepository

__all__ = ["ObservationKey", "User", "UserRepository"]
