"""Bounded, TTL-aware in-memory cache of executed request/response pairs.

:class:`ResponseCache` keeps at most ``max_size`` live entries. Entries are
ordered by insertion in an :class:`collections.OrderedDict`; when a new key
arrives at capacity, expired entries are purged first and, if the cache is
still full, the oldest entry by insertion order is evicted (FIFO, not LRU:
reads do not refresh an entry's position). Re-storing an existing key
replaces its payload and moves it to the newest position.

Expiry has two independent mechanisms:

* **lazy** -- every access that finds an expired entry removes it and
  treats it as absent. Correctness relies only on this.
* **eager** -- with ``enable_cleanup=True`` a daemon thread sweeps expired
  entries every ``cleanup_interval_ms``. It is an optimisation and is
  stopped by :meth:`ResponseCache.close`.

Cache misses are routine and never raise; absent and expired keys read as
``None``. Payloads are copied on the way in and out so a cached response
cannot be mutated through a reference held by the caller.

All state changes happen under one lock per instance. Query methods copy
the live entries under the lock and run predicates after releasing it, so
a :meth:`~ResponseCache.find` predicate may safely call back into the cache.
"""

from __future__ import annotations

import copy
import json
import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from restified.cache.query import (
    CacheHit,
    Predicate,
    TimePoint,
    UrlMatcher,
    all_of,
    method_is,
    status_is,
    to_epoch,
    url_matches,
)
from restified.exceptions import InvalidConfigurationError, InvalidUsageError
from restified.models import CacheConfig, CacheStats, ExportedEntry

logger = logging.getLogger(__name__)

_FALLBACK_SIZE_ESTIMATE = 1024


@dataclass
class CacheEntry:
    """A stored payload plus its bookkeeping. Times are epoch seconds."""

    key: str
    payload: Any
    inserted_at: float
    expires_at: Optional[float]
    size_bytes_estimate: int

    def is_live(self, now: float) -> bool:
        return self.expires_at is None or self.expires_at > now


def validate_cache_config(config: CacheConfig) -> None:
    """Reject out-of-range cache options.

    Raises:
        InvalidConfigurationError: If ``max_size`` is not positive,
            ``default_ttl_ms`` is negative, or cleanup is enabled with a
            non-positive ``cleanup_interval_ms``.
    """
    if config.max_size <= 0:
        raise InvalidConfigurationError(
            f"Cache max_size must be greater than 0 (got {config.max_size})"
        )
    if config.default_ttl_ms is not None and config.default_ttl_ms < 0:
        raise InvalidConfigurationError(
            f"Cache default_ttl_ms must not be negative (got {config.default_ttl_ms})"
        )
    if config.enable_cleanup and config.cleanup_interval_ms <= 0:
        raise InvalidConfigurationError(
            "Cache cleanup_interval_ms must be greater than 0 when cleanup is enabled "
            f"(got {config.cleanup_interval_ms})"
        )


class ResponseCache:
    """In-memory FIFO cache with per-entry TTL and a small query engine.

    Args:
        config: Capacity, default TTL and background-cleanup settings.
            Defaults to :class:`~restified.models.CacheConfig()`.
        clock: Callable returning the current time in epoch seconds
            (defaults to :func:`time.time`); injectable for tests.

    Raises:
        InvalidConfigurationError: If *config* is out of range.

    Example::

        cache = ResponseCache(CacheConfig(max_size=2, default_ttl_ms=None))
        cache.store("create-user", {"status": 201, "url": "https://api/users"})
        cache.find_by_status(201)   # [CacheHit(key="create-user", payload={...})]
        cache.close()
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._config = (config or CacheConfig()).model_copy()
        validate_cache_config(self._config)
        self._clock = clock or time.time
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

        self._stop_event = threading.Event()
        self._cleanup_thread: Optional[threading.Thread] = None
        if self._config.enable_cleanup:
            self._start_cleanup(self._config.cleanup_interval_ms)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def max_size(self) -> int:
        return self._config.max_size

    @property
    def default_ttl_ms(self) -> Optional[int]:
        return self._config.default_ttl_ms

    @property
    def closed(self) -> bool:
        return self._stop_event.is_set()

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def store(self, key: str, payload: Any, ttl_ms: Optional[int] = None) -> None:
        """Store *payload* under *key*.

        Args:
            key: Cache key. An existing entry is replaced and becomes the
                newest entry for eviction purposes.
            payload: Response payload (copied).
            ttl_ms: Lifetime override in milliseconds. ``None`` uses the
                configured ``default_ttl_ms`` (which may itself be ``None``,
                meaning the entry never expires); ``0`` makes the entry
                expire immediately.

        Raises:
            InvalidUsageError: If *ttl_ms* is negative.
        """
        ttl = self._config.default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl is not None and ttl < 0:
            raise InvalidUsageError(f"ttl_ms must not be negative (got {ttl_ms})")

        stored = _clone(payload)
        size = _estimate_size(stored)
        with self._lock:
            now = self._clock()
            expires_at = None if ttl is None else now + ttl / 1000.0
            self._insert_locked(CacheEntry(key, stored, now, expires_at, size), now)

    def get(self, key: str) -> Any:
        """Return a copy of the payload stored under *key*, or ``None``.

        An expired entry is removed by the lookup that finds it.
        """
        with self._lock:
            entry = self._live_entry_locked(key, self._clock())
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            payload = entry.payload
        return _clone(payload)

    def has(self, key: str) -> bool:
        """Whether a live entry exists for *key* (same expiry rules as :meth:`get`)."""
        with self._lock:
            return self._live_entry_locked(key, self._clock()) is not None

    def remove(self, key: str) -> bool:
        """Remove *key*. Returns ``True`` if a live entry was removed."""
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return False
            if not entry.is_live(self._clock()):
                self._expirations += 1
                return False
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        """Return the keys of live entries, oldest first."""
        with self._lock:
            self._purge_expired_locked(self._clock())
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired_locked(self._clock())
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find(self, predicate: Predicate) -> list[CacheHit]:
        """Return live entries for which ``predicate(key, payload)`` is true.

        The predicate receives a copy of each payload and runs without the
        cache lock held.
        """
        return [hit for hit in self._live_hits() if predicate(hit.key, hit.payload)]

    def find_by_status(self, code: int) -> list[CacheHit]:
        """Return live entries whose payload status equals *code*."""
        return self.find(status_is(code))

    def find_by_url(self, matcher: UrlMatcher) -> list[CacheHit]:
        """Return live entries whose payload URL matches *matcher*.

        A plain string matches by substring containment; a compiled
        :class:`re.Pattern` matches with :meth:`re.Pattern.search`.
        """
        return self.find(url_matches(matcher))

    def find_by_time_range(self, start: TimePoint, end: TimePoint) -> list[CacheHit]:
        """Return live entries inserted within ``[start, end]`` (inclusive).

        Bounds may be :class:`~datetime.datetime` objects or epoch seconds.
        """
        low, high = to_epoch(start), to_epoch(end)
        with self._lock:
            now = self._clock()
            self._purge_expired_locked(now)
            selected = [
                (entry.key, entry.payload)
                for entry in self._entries.values()
                if low <= entry.inserted_at <= high
            ]
        return [CacheHit(key, _clone(payload)) for key, payload in selected]

    def query(
        self,
        status: Optional[int] = None,
        url: Optional[UrlMatcher] = None,
        since: Optional[TimePoint] = None,
        until: Optional[TimePoint] = None,
        method: Optional[str] = None,
    ) -> list[CacheHit]:
        """Return live entries matching every given criterion.

        Criteria left as ``None`` are ignored; with no criteria all live
        entries are returned, oldest first.
        """
        predicates: list[Predicate] = []
        if status is not None:
            predicates.append(status_is(status))
        if url is not None:
            predicates.append(url_matches(url))
        if method is not None:
            predicates.append(method_is(method))

        low = to_epoch(since) if since is not None else -math.inf
        high = to_epoch(until) if until is not None else math.inf
        with self._lock:
            self._purge_expired_locked(self._clock())
            selected = [
                (entry.key, entry.payload)
                for entry in self._entries.values()
                if low <= entry.inserted_at <= high
            ]

        match = all_of(*predicates)
        hits = [CacheHit(key, _clone(payload)) for key, payload in selected]
        return [hit for hit in hits if match(hit.key, hit.payload)]

    def get_stats(self) -> CacheStats:
        """Return size, capacity, memory estimate, age bounds and counters.

        ``size`` always equals ``len(keys())`` at the moment of the call.
        ``memory_usage_estimate`` sums the size estimates recorded when each
        live entry was stored.
        """
        with self._lock:
            self._purge_expired_locked(self._clock())
            entries = list(self._entries.values())
            inserted = [entry.inserted_at for entry in entries]
            return CacheStats(
                size=len(entries),
                max_size=self._config.max_size,
                memory_usage_estimate=sum(entry.size_bytes_estimate for entry in entries),
                oldest_entry_timestamp=_to_datetime(min(inserted)) if inserted else None,
                newest_entry_timestamp=_to_datetime(max(inserted)) if inserted else None,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
            )

    # ------------------------------------------------------------------
    # TTL management
    # ------------------------------------------------------------------

    def update_ttl(self, key: str, ttl_ms: Optional[int]) -> bool:
        """Give a live entry a new lifetime counted from now.

        Args:
            key: Entry to update.
            ttl_ms: New lifetime in milliseconds; ``None`` makes the entry
                never expire.

        Returns:
            ``True`` if a live entry was updated.

        Raises:
            InvalidUsageError: If *ttl_ms* is negative.
        """
        if ttl_ms is not None and ttl_ms < 0:
            raise InvalidUsageError(f"ttl_ms must not be negative (got {ttl_ms})")
        with self._lock:
            now = self._clock()
            entry = self._live_entry_locked(key, now)
            if entry is None:
                return False
            entry.expires_at = None if ttl_ms is None else now + ttl_ms / 1000.0
            return True

    def time_to_expiration(self, key: str) -> Optional[float]:
        """Milliseconds until *key* expires.

        Returns ``None`` for an absent or expired key and ``math.inf`` for an
        entry without expiry.
        """
        with self._lock:
            now = self._clock()
            entry = self._live_entry_locked(key, now)
            if entry is None:
                return None
            if entry.expires_at is None:
                return math.inf
            return (entry.expires_at - now) * 1000.0

    def purge_expired(self) -> int:
        """Remove every expired entry now. Returns how many were removed."""
        with self._lock:
            return self._purge_expired_locked(self._clock())

    def resize(self, max_size: int) -> None:
        """Change the capacity, evicting the oldest entries if over the new bound.

        Raises:
            InvalidConfigurationError: If *max_size* is not positive.
        """
        if max_size <= 0:
            raise InvalidConfigurationError(
                f"Cache max_size must be greater than 0 (got {max_size})"
            )
        with self._lock:
            self._config.max_size = max_size
            self._purge_expired_locked(self._clock())
            while len(self._entries) > max_size:
                self._evict_oldest_locked()

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export(self) -> list[ExportedEntry]:
        """Return every live entry, oldest first, with copied payloads."""
        with self._lock:
            self._purge_expired_locked(self._clock())
            entries = list(self._entries.values())
        return [
            ExportedEntry(
                key=entry.key,
                payload=_clone(entry.payload),
                inserted_at=entry.inserted_at,
                expires_at=entry.expires_at,
            )
            for entry in entries
        ]

    def import_entries(self, entries: Iterable[Union[ExportedEntry, Mapping[str, Any]]]) -> int:
        """Insert previously exported entries, keeping their timestamps.

        Entries that have already expired are skipped. Capacity is enforced
        exactly as for :meth:`store`.

        Returns:
            The number of entries imported.
        """
        prepared: list[CacheEntry] = []
        for item in entries:
            if not isinstance(item, ExportedEntry):
                item = ExportedEntry.model_validate(dict(item))
            payload = _clone(item.payload)
            prepared.append(
                CacheEntry(
                    item.key, payload, item.inserted_at, item.expires_at, _estimate_size(payload)
                )
            )

        imported = 0
        with self._lock:
            now = self._clock()
            for entry in prepared:
                if not entry.is_live(now):
                    continue
                self._insert_locked(entry, now)
                imported += 1
        return imported

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop the background cleanup thread. Safe to call more than once.

        The cache remains usable afterwards; only timer-driven purging stops.
        """
        self._stop_event.set()
        thread = self._cleanup_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)
        self._cleanup_thread = None

    def __enter__(self) -> "ResponseCache":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ResponseCache(size={len(self._entries)}, max_size={self._config.max_size})"

    # ------------------------------------------------------------------
    # Internals (callers hold self._lock)
    # ------------------------------------------------------------------

    def _insert_locked(self, entry: CacheEntry, now: float) -> None:
        if entry.key in self._entries:
            del self._entries[entry.key]
        elif len(self._entries) >= self._config.max_size:
            self._purge_expired_locked(now)
            if len(self._entries) >= self._config.max_size:
                self._evict_oldest_locked()
        self._entries[entry.key] = entry

    def _evict_oldest_locked(self) -> None:
        key, _ = self._entries.popitem(last=False)
        self._evictions += 1
        logger.debug("Evicted oldest cache entry '%s'", key)

    def _live_entry_locked(self, key: str, now: float) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_live(now):
            del self._entries[key]
            self._expirations += 1
            logger.debug("Cache entry '%s' expired", key)
            return None
        return entry

    def _purge_expired_locked(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if not entry.is_live(now)]
        for key in expired:
            del self._entries[key]
        self._expirations += len(expired)
        return len(expired)

    def _live_hits(self) -> list[CacheHit]:
        with self._lock:
            self._purge_expired_locked(self._clock())
            selected = [(entry.key, entry.payload) for entry in self._entries.values()]
        return [CacheHit(key, _clone(payload)) for key, payload in selected]

    # ------------------------------------------------------------------
    # Background cleanup
    # ------------------------------------------------------------------

    def _start_cleanup(self, interval_ms: int) -> None:
        self._cleanup_thread = threading.Thread(
            target=self._cleanup_loop,
            args=(interval_ms / 1000.0,),
            name="restified-cache-cleanup",
            daemon=True,
        )
        self._cleanup_thread.start()

    def _cleanup_loop(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            removed = self.purge_expired()
            if removed:
                logger.debug("Cleanup sweep removed %d expired cache entries", removed)


# ------------------------------------------------------------------
# Module-level helpers
# ------------------------------------------------------------------


def _clone(payload: Any) -> Any:
    """Deep-copy a payload; Pydantic models use ``model_copy(deep=True)``."""
    model_copy = getattr(payload, "model_copy", None)
    if callable(model_copy):
        return model_copy(deep=True)
    try:
        return copy.deepcopy(payload)
    except (TypeError, copy.Error) as exc:
        logger.debug("Payload of type %s is not copyable (%s); storing by reference",
                     type(payload).__name__, exc)
        return payload


def _estimate_size(payload: Any) -> int:
    """Approximate the serialised size of *payload* in bytes (never zero)."""
    try:
        dump_json = getattr(payload, "model_dump_json", None)
        if callable(dump_json):
            text = dump_json()
        else:
            text = json.dumps(payload, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return _FALLBACK_SIZE_ESTIMATE
    return max(len(text.encode("utf-8")), 1)


def _to_datetime(epoch: float) -> datetime:
    return datetime.fromtimestamp(epoch, tz=timezone.utc)


__all__ = ["CacheEntry", "CacheHit", "ResponseCache", "validate_cache_config"]