"""Single-flight caches with a refresh and retry-after-failure policy.

Three primitives share one contract:

- ``CachedValue`` holds one computed value.
- ``CachedSet`` holds an ordered set and answers membership questions.
- ``CachedMap`` holds one ``CachedValue`` per key, created on first use.

``get()`` returns the cached value while it is younger than
``refresh_duration``.  Once it is older, the first caller recomputes it
inline while every concurrent caller waits for that same computation and
observes its outcome.  A failed computation is remembered for
``retry_duration``: during that window no new attempt is made, callers get
the last good value if one exists and the failure otherwise.  A failure is
only ever raised to callers when no good value exists.

The caches are thread-safe.  Clocks are injectable for tests.

Usage::

    topics = CachedSet(
        CacheConfig(refresh_duration=timedelta(seconds=10)),
        lambda: admin.list_topic_names(),
    )
    if "my_topic" in topics:
        ...
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Generic, Hashable, Iterable, TypeVar

logger = logging.getLogger("gateway.cache")

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheConfig:
    """Refresh policy shared by all entries of a cache.

    Attributes:
        refresh_duration:         Age after which a value is recomputed.
        retry_duration:           Wait after a failed computation before the
                                  next attempt is allowed.
        max_simultaneous_compute: Bound on concurrent computations across all
                                  entries sharing this config instance.
    """

    refresh_duration: timedelta = timedelta(minutes=30)
    retry_duration: timedelta = timedelta(minutes=1)
    max_simultaneous_compute: int = 1

    def __post_init__(self) -> None:
        if self.max_simultaneous_compute < 1:
            raise ValueError("max_simultaneous_compute must be at least 1")


class CachedValue(Generic[T]):
    """A lazily computed value with single-flight refresh."""

    def __init__(
        self,
        config: CacheConfig,
        supplier: Callable[[], T],
        *,
        clock: Clock = time.monotonic,
        compute_slots: threading.Semaphore | None = None,
    ) -> None:
        self._config = config
        self._supplier = supplier
        self._clock = clock
        self._slots = compute_slots or threading.BoundedSemaphore(
            config.max_simultaneous_compute
        )
        self._lock = threading.Lock()
        self._done = threading.Condition(self._lock)

        self._value: T | None = None
        self._has_value = False
        self._fetched_at = 0.0
        self._error: Exception | None = None
        self._failed_at = 0.0
        self._computing = False

    @property
    def has_value(self) -> bool:
        return self._has_value

    def get(self) -> T:
        """Return the cached value, recomputing it per the refresh policy.

        Raises:
            Exception: The last computation failure, when no good value exists.
        """
        with self._lock:
            if self._computing:
                while self._computing:
                    self._done.wait()
                return self._current()

            now = self._clock()
            if self._has_value and self._age(self._fetched_at, now) < self._config.refresh_duration:
                return self._value  # type: ignore[return-value]
            if self._error is not None and self._age(self._failed_at, now) < self._config.retry_duration:
                return self._current()
            self._computing = True

        return self._compute()

    def invalidate(self) -> None:
        """Force the next ``get()`` to recompute, keeping the value as fallback."""
        with self._lock:
            self._fetched_at = self._clock() - self._config.refresh_duration.total_seconds()
            self._error = None

    def _compute(self) -> T:
        value: T | None = None
        error: Exception | None = None
        completed = False
        try:
            with self._slots:
                value = self._supplier()
            completed = True
        except Exception as exc:
            error = exc
        finally:
            with self._lock:
                if completed:
                    self._value = value
                    self._has_value = True
                    self._fetched_at = self._clock()
                    self._error = None
                elif error is not None:
                    self._error = error
                    self._failed_at = self._clock()
                # Interrupted computes leave the cached state untouched.
                self._computing = False
                self._done.notify_all()

        if error is not None:
            if self._has_value:
                logger.info("Serving stale cached value after failed refresh: %s", error)
                return self._value  # type: ignore[return-value]
            raise error
        return value  # type: ignore[return-value]

    def _current(self) -> T:
        # Caller holds the lock.
        if self._has_value:
            return self._value  # type: ignore[return-value]
        if self._error is not None:
            raise self._error
        raise RuntimeError("Cached value was never computed")

    @staticmethod
    def _age(since: float, now: float) -> timedelta:
        return timedelta(seconds=now - since)


class CachedSet(Generic[T]):
    """An ordered set computed by ``supplier``, kept in a ``CachedValue``."""

    def __init__(
        self,
        config: CacheConfig,
        supplier: Callable[[], Iterable[T]],
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self._cache: CachedValue[dict[T, None]] = CachedValue(
            config, lambda: dict.fromkeys(supplier()), clock=clock
        )

    def get(self) -> list[T]:
        """Return the set's members in discovery order."""
        return list(self._cache.get())

    def __contains__(self, item: object) -> bool:
        return item in self._cache.get()

    def invalidate(self) -> None:
        self._cache.invalidate()


class CachedMap(Generic[K, T]):
    """Per-key cached values computed by ``supplier(key)``.

    All entries share one pool of ``max_simultaneous_compute`` compute slots.
    """

    def __init__(
        self,
        config: CacheConfig,
        supplier: Callable[[K], T],
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self._config = config
        self._supplier = supplier
        self._clock = clock
        self._slots = threading.BoundedSemaphore(config.max_simultaneous_compute)
        self._entries: dict[K, CachedValue[T]] = {}
        self._lock = threading.Lock()

    def get(self, key: K) -> T:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = CachedValue(
                    self._config,
                    lambda: self._supplier(key),
                    clock=self._clock,
                    compute_slots=self._slots,
                )
                self._entries[key] = entry
        return entry.get()

    def discard(self, key: K) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
