"""In-memory snapshot of the Garmin user directory kept current by Firestore.

The Garmin collection is watched with ``on_snapshot``.  The listener thread
only enqueues ``DirectoryChange`` items; a single worker thread applies them
in delivery order, so changes for one user id are never reordered.

Readers (repository, HTTP handlers, backfill generator) call ``get``,
``users`` and ``find_by_service_user_id`` from any thread.  Only the update
and remove paths write to the map, one update at a time.

``has_pending_updates`` starts out True so the first consumer always reads
the initial snapshot.  ``apply_updates`` acknowledges a drain and raises
``IllegalStateError`` when there was nothing to drain.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, NamedTuple

from src.config import Settings
from src.exceptions import DirectoryIOError, IllegalStateError
from src.garmin.user.firestore.models import FirestoreUser, build_user
from src.garmin.user.firestore.store import get_document, get_firestore

logger = logging.getLogger("gateway.garmin.directory")

ADDED = "ADDED"
MODIFIED = "MODIFIED"
REMOVED = "REMOVED"

DEFAULT_QUEUE_SIZE = 1000


class DirectoryChange(NamedTuple):
    """One change-feed event: change type and the affected document id."""

    kind: str
    document_id: str


class UserDirectory:
    """Snapshot of valid Garmin users keyed by internal user id.

    Args:
        user_collection:   Firestore collection holding user profiles.
        garmin_collection: Firestore collection holding Garmin credentials.
        document_timeout:  Bounded wait (seconds) for every document read.
        queue_size:        Capacity of the change queue between the listener
                           and the worker thread.
    """

    def __init__(
        self,
        user_collection: Any,
        garmin_collection: Any,
        *,
        document_timeout: float = 20.0,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._user_collection = user_collection
        self._garmin_collection = garmin_collection
        self._document_timeout = document_timeout

        self._users: dict[str, FirestoreUser] = {}
        self._update_lock = threading.RLock()

        self._has_pending_updates = True
        self._pending_lock = threading.Lock()

        self._in_flight: dict[str, Future] = {}
        self._in_flight_lock = threading.Lock()

        self._changes: queue.Queue[DirectoryChange | None] = queue.Queue(maxsize=queue_size)
        self._worker: threading.Thread | None = None
        self._watch: Any = None

    @classmethod
    def from_settings(cls, settings: Settings) -> UserDirectory:
        db = get_firestore(settings)
        return cls(
            db.collection(settings.garmin_user_collection),
            db.collection(settings.garmin_auth_collection),
            document_timeout=settings.garmin_document_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the worker thread and subscribe to the Garmin collection."""
        if self._worker is not None:
            return
        self._worker = threading.Thread(
            target=self._process_changes, name="garmin-directory", daemon=True
        )
        self._worker.start()
        self._watch = self._garmin_collection.on_snapshot(self._on_snapshot)
        logger.info("Listening for changes on Garmin user collection")

    def close(self, timeout: float = 5.0) -> None:
        """Unsubscribe from the change feed and stop the worker thread."""
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None
        if self._worker is not None:
            self._changes.put(None)
            self._worker.join(timeout)
            self._worker = None
        logger.info("Garmin user directory closed")

    # ------------------------------------------------------------------
    # Change feed
    # ------------------------------------------------------------------

    def _on_snapshot(self, col_snapshot: Any, changes: list[Any], read_time: Any) -> None:
        logger.info("Received %d document changes (%d documents)", len(changes), len(col_snapshot))
        for change in changes:
            self._changes.put(DirectoryChange(change.type.name, change.document.id))

    def _process_changes(self) -> None:
        while True:
            change = self._changes.get()
            try:
                if change is None:
                    return
                self.apply_change(change)
            except Exception:
                logger.exception(
                    "Could not process document change event for document %s",
                    change.document_id,
                )
            finally:
                self._changes.task_done()

    def apply_change(self, change: DirectoryChange) -> None:
        """Apply one change-feed event to the snapshot."""
        logger.debug("Change %s for document %s", change.kind, change.document_id)
        if change.kind in (ADDED, MODIFIED):
            try:
                self._update_user(change.document_id)
            except DirectoryIOError:
                logger.error(
                    "The update of the user %s was not possible.",
                    change.document_id, exc_info=True,
                )
        elif change.kind == REMOVED:
            self._remove_user(change.document_id)

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def _load_user(self, uuid: str) -> FirestoreUser | None:
        auth_data = get_document(self._garmin_collection.document(uuid), self._document_timeout)
        profile_data = get_document(self._user_collection.document(uuid), self._document_timeout)
        return build_user(uuid, auth_data, profile_data)

    def _update_user(self, uuid: str) -> FirestoreUser | None:
        """Re-read the user's documents and upsert or evict the snapshot entry.

        Raises:
            DirectoryIOError: A document could not be read.
        """
        with self._update_lock:
            user = self._load_user(uuid)
            if user is None:
                logger.info("User %s cannot be processed due to constraints", uuid)
                self._remove_user(uuid)
                return None

            previous = self._users.get(uuid)
            self._users[uuid] = user
            if previous is None:
                logger.debug("Created new user %s", uuid)
            else:
                logger.debug("Updated existing user %s", uuid)
            self._set_pending()
            return user

    def _remove_user(self, uuid: str) -> None:
        with self._update_lock:
            user = self._users.pop(uuid, None)
        if user is not None:
            logger.info("Removed user %r", user)
            self._set_pending()

    def _set_pending(self) -> None:
        with self._pending_lock:
            self._has_pending_updates = True

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def get(self, uuid: str) -> FirestoreUser | None:
        """Return the cached user, loading it from Firestore on a miss.

        Concurrent callers for the same uncached id share one load and see
        the same user, the same absence or the same error.

        Raises:
            DirectoryIOError: The lazy load could not read the documents.
        """
        user = self._users.get(uuid)
        if user is not None:
            return user

        with self._in_flight_lock:
            future = self._in_flight.get(uuid)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[uuid] = future

        if not owner:
            return future.result()

        logger.debug("User %s not cached, loading from Firestore", uuid)
        try:
            future.set_result(self._update_user(uuid))
        except BaseException as exc:
            future.set_exception(exc)
        finally:
            with self._in_flight_lock:
                self._in_flight.pop(uuid, None)
        return future.result()

    def users(self) -> list[FirestoreUser]:
        """Point-in-time list of all cached users."""
        return list(self._users.copy().values())

    def find_by_service_user_id(self, service_user_id: str) -> FirestoreUser | None:
        for user in self.users():
            if user.service_user_id == service_user_id:
                return user
        return None

    def get_document_reference_by_service_id(self, service_user_id: str) -> Any | None:
        """Return the Garmin document reference of a cached user, if any."""
        user = self.find_by_service_user_id(service_user_id)
        if user is None:
            return None
        return self._garmin_collection.document(user.id)

    @property
    def document_timeout(self) -> float:
        return self._document_timeout

    def __len__(self) -> int:
        return len(self._users)

    # ------------------------------------------------------------------
    # Drain protocol
    # ------------------------------------------------------------------

    @property
    def has_pending_updates(self) -> bool:
        return self._has_pending_updates

    def apply_updates(self) -> None:
        """Acknowledge that pending updates were consumed.

        Raises:
            IllegalStateError: No updates are pending.
        """
        with self._pending_lock:
            if not self._has_pending_updates:
                raise IllegalStateError(
                    "No pending updates available. "
                    "Try calling this method only when updates are available"
                )
            self._has_pending_updates = False
