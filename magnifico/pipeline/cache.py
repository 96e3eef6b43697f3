"""In-memory result cache keyed by quantized geography.

Keys snap coordinates (and the optional viewport) to an integer grid so
requests a few meters apart share one entry. Entries live for a fixed TTL;
an expired entry is never returned and is dropped on the next read or write.

Locking:
  - a striped per-key lock serializes get/put/invalidate for the same key,
    so a reader sees the old complete entry or the new one, never a mix;
  - a short guard lock protects the dict itself and the counters.
Neither is ever held across I/O; entries are immutable once built.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterable

from pydantic import BaseModel, ConfigDict

from magnifico.core.config import CacheConfig
from magnifico.core.schemas import Coordinates, PlaceType, ScoredPlace, Viewport

logger = logging.getLogger(__name__)

_LOCK_STRIPES = 64


class CacheKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat_cell: int
    lng_cell: int
    category: PlaceType
    viewport: tuple[int, int, int, int] | None = None


class CacheEntry(BaseModel):
    """A ranked result set and when it was stored (monotonic seconds)."""

    model_config = ConfigDict(frozen=True)

    key: CacheKey
    places: tuple[ScoredPlace, ...]
    created_at: float

    def age(self, now: float) -> float:
        return now - self.created_at


class CacheStats(BaseModel):
    size: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        """Hits as a percentage of lookups, 0.0 before any lookup."""
        total = self.hits + self.misses
        return round(self.hits / total * 100, 1) if total > 0 else 0.0


def quantize(value: float, precision: int) -> int:
    """Snap a coordinate to its grid cell at ``precision`` decimal places."""
    return round(value * 10**precision)


def make_cache_key(
    coordinates: Coordinates,
    category: PlaceType,
    viewport: Viewport | None = None,
    precision: int = 4,
) -> CacheKey:
    """Build a cache key. Pure: depends only on the request, never on time."""
    cells = None
    if viewport is not None:
        cells = (
            quantize(viewport.low.latitude, precision),
            quantize(viewport.low.longitude, precision),
            quantize(viewport.high.latitude, precision),
            quantize(viewport.high.longitude, precision),
        )
    return CacheKey(
        lat_cell=quantize(coordinates.latitude, precision),
        lng_cell=quantize(coordinates.longitude, precision),
        category=category,
        viewport=cells,
    )


class ResultCache:
    """TTL cache of ranked results, owned by one orchestrator.

    Usage::

        cache = ResultCache(ttl_seconds=300)
        key = cache.make_key(coords, PlaceType.HOTEL)
        entry = cache.get(key)
        if entry is None:
            entry = cache.put(key, ranked)
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        precision: int = 4,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            msg = f"ttl_seconds must be positive, got {ttl_seconds}"
            raise ValueError(msg)
        self._ttl = ttl_seconds
        self._precision = precision
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._guard = threading.Lock()
        self._stripes = [threading.Lock() for _ in range(_LOCK_STRIPES)]
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_config(
        cls,
        config: CacheConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> "ResultCache":
        return cls(
            ttl_seconds=config.ttl_seconds,
            precision=config.precision,
            max_entries=config.max_entries,
            clock=clock,
        )

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def make_key(
        self,
        coordinates: Coordinates,
        category: PlaceType,
        viewport: Viewport | None = None,
    ) -> CacheKey:
        return make_cache_key(coordinates, category, viewport, self._precision)

    def get(self, key: CacheKey) -> CacheEntry | None:
        """Return the live entry for ``key``, or None if absent or expired."""
        with self._lock_for(key):
            entry = self._entries.get(key)
            now = self._clock()
            if entry is not None and entry.age(now) >= self._ttl:
                logger.debug("Cache entry expired after %.1fs", entry.age(now))
                with self._guard:
                    self._entries.pop(key, None)
                entry = None
            with self._guard:
                if entry is None:
                    self._misses += 1
                else:
                    self._hits += 1
            return entry

    def put(self, key: CacheKey, places: Iterable[ScoredPlace]) -> CacheEntry:
        """Create or overwrite the entry for ``key``, timestamped now."""
        entry = CacheEntry(key=key, places=tuple(places), created_at=self._clock())
        with self._lock_for(key):
            with self._guard:
                self._entries[key] = entry
                self._evict_locked(key)
        return entry

    def invalidate(self, key: CacheKey) -> bool:
        """Remove the entry for ``key``. Returns True if one was present."""
        with self._lock_for(key):
            with self._guard:
                removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("Invalidated cache entry for %s", key)
        return removed

    def clear(self, category: PlaceType | None = None) -> int:
        """Drop every entry, or only those of ``category``. Returns the count."""
        with self._guard:
            doomed = [k for k in self._entries if category is None or k.category == category]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def stats(self) -> CacheStats:
        with self._guard:
            return CacheStats(size=len(self._entries), hits=self._hits, misses=self._misses)

    def __len__(self) -> int:
        return len(self._entries)

    def _lock_for(self, key: CacheKey) -> threading.Lock:
        return self._stripes[hash(key) % _LOCK_STRIPES]

    def _evict_locked(self, keep: CacheKey) -> None:
        """Purge expired entries, then shed the oldest ones if over capacity.

        Under memory pressure, entries of other categories go before entries
        of the category just written. Caller holds the guard lock.
        """
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.age(now) >= self._ttl]
        for k in expired:
            del self._entries[k]

        overflow = len(self._entries) - self._max_entries
        if overflow <= 0:
            return
        victims = sorted(
            (k for k in self._entries if k != keep),
            key=lambda k: (k.category == keep.category, self._entries[k].created_at),
        )
        for k in victims[:overflow]:
            del self._entries[k]
        logger.debug(
            "Cache over capacity: purged %d expired, evicted %d",
            len(expired), min(overflow, len(victims)),
        )
