"""Thin Firestore access layer with bounded waits.

All reads and writes go through ``get_document``, ``update_document`` and
``delete_document`` so that every Google API failure and every timeout
surfaces as ``DirectoryIOError``.
"""

from __future__ import annotations

import logging
from typing import Any

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions

from src.config import Settings
from src.exceptions import DirectoryIOError

logger = logging.getLogger("gateway.garmin.firestore")

_FIREBASE_APP: firebase_admin.App | None = None


def init_firebase(settings: Settings) -> firebase_admin.App:
    """Initialise (once) and return the default Firebase app."""
    global _FIREBASE_APP
    if _FIREBASE_APP is not None:
        return _FIREBASE_APP
    try:
        _FIREBASE_APP = firebase_admin.get_app()
        return _FIREBASE_APP
    except ValueError:
        pass  # not initialised yet

    if settings.firebase_credentials_path:
        cert = credentials.Certificate(settings.firebase_credentials_path)
    else:
        cert = credentials.ApplicationDefault()
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    _FIREBASE_APP = firebase_admin.initialize_app(cert, options)
    logger.info("Firebase app initialised (project=%s)", _FIREBASE_APP.project_id)
    return _FIREBASE_APP


def get_firestore(settings: Settings) -> Any:
    """Return a ``google.cloud.firestore.Client`` for the configured project."""
    return firestore.client(init_firebase(settings))


def get_document(doc_ref: Any, timeout: float) -> dict[str, Any] | None:
    """Read one document; None when it does not exist.

    Raises:
        DirectoryIOError: The read failed or did not finish within ``timeout``.
    """
    try:
        snapshot = doc_ref.get(timeout=timeout)
    except (google_exceptions.GoogleAPIError, TimeoutError) as exc:
        raise DirectoryIOError(f"Failed to read document {doc_ref.path}: {exc}") from exc
    if not snapshot.exists:
        return None
    return snapshot.to_dict()


def update_document(doc_ref: Any, data: dict[str, Any], timeout: float) -> None:
    """Merge ``data`` into a document."""
    try:
        doc_ref.set(data, merge=True, timeout=timeout)
    except (google_exceptions.GoogleAPIError, TimeoutError) as exc:
        raise DirectoryIOError(f"Failed to write document {doc_ref.path}: {exc}") from exc


def delete_document(doc_ref: Any, timeout: float) -> None:
    try:
        doc_ref.delete(timeout=timeout)
    except (google_exceptions.GoogleAPIError, TimeoutError) as exc:
        raise DirectoryIOError(f"Failed to delete document {doc_ref.path}: {exc}") from exc
