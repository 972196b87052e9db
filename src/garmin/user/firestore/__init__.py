from src.garmin.user.firestore.directory import DirectoryChange, UserDirectory
from src.garmin.user.firestore.models import FirestoreUser, build_user
from src.garmin.user.firestore.repository import FirestoreUserRepository

__all__ = [
    "DirectoryChange",
    "FirestoreUser",
    "FirestoreUserRepository",
    "UserDirectory",
    "build_user",
]
