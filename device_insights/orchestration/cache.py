"""
Snapshot Cache - time-bounded device snapshots keyed by source name.

Usage:
    cache = SnapshotCache()
    snapshot = await cache.get_or_collect("default", gather_snapshot, freshness_ms=300_000)

Rules:
- A snapshot is served while now - collected_at < freshness_ms.
- Concurrent misses on one key share a single collection task.
- A failed refresh serves the previous snapshot marked stale=True, or raises
  CollectionError when nothing was cached.
"""

import asyncio
import dataclasses
import inspect
import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from device_insights.orchestration.errors import CollectionError
from device_insights.orchestration.models import CacheEntry, Snapshot, utc_now

logger = logging.getLogger("device_insights.orchestration.cache")


class SnapshotCache:
    """
    One live entry per source name plus one in-flight collection per key.

    The clock is injectable so freshness boundaries can be tested exactly.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now, monitor=None):
        self._clock = clock
        self._monitor = monitor
        self._entries: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get_or_collect(
        self,
        source_name: str,
        collector: Callable[[], Any],
        freshness_ms: float,
        *,
        force: bool = False,
    ) -> Snapshot:
        """
        Return a fresh snapshot for source_name, collecting when needed.

        force skips the freshness check but keeps the cached entry, so a
        failed forced refresh still falls back to it.

        Raises:
            CollectionError: If collection fails and no snapshot is cached
        """
        now = self._clock()
        entry = self._entries.get(source_name)
        if not force and entry is not None and entry.snapshot.is_fresh(now, freshness_ms):
            self._track(source_name, hit=True, age_ms=entry.snapshot.age_ms(now))
            return entry.snapshot

        self._track(source_name, hit=False)

        task = self._in_flight.get(source_name)
        if task is None:
            task = asyncio.ensure_future(self._collect(source_name, collector, freshness_ms))
            self._in_flight[source_name] = task
            task.add_done_callback(lambda t, key=source_name: self._clear_in_flight(key, t))
        else:
            logger.debug(f"Joining in-flight collection for '{source_name}'")

        try:
            return await asyncio.shield(task)
        except CollectionError:
            stale = self._entries.get(source_name)
            if stale is None:
                raise
            logger.warning(
                f"Serving stale snapshot for '{source_name}' collected at "
                f"{stale.snapshot.collected_at.isoformat()}"
            )
            return dataclasses.replace(stale.snapshot, stale=True)

    def invalidate(self, source_name: Optional[str] = None) -> None:
        """Drop one entry, or every entry when source_name is None."""
        if source_name is None:
            self._entries.clear()
            logger.info("Snapshot cache cleared")
        elif self._entries.pop(source_name, None) is not None:
            logger.info(f"Invalidated snapshot '{source_name}'")

    def peek(self, source_name: str) -> Optional[Snapshot]:
        entry = self._entries.get(source_name)
        return entry.snapshot if entry else None

    def entries(self) -> List[Dict[str, Any]]:
        """Status rows: source name, age and expiry of every cached snapshot."""
        now = self._clock()
        return [
            {
                "source_name": name,
                "age_ms": round(entry.snapshot.age_ms(now), 2),
                "collected_at": entry.snapshot.collected_at.isoformat(),
                "expires_at": entry.expires_at.isoformat(),
            }
            for name, entry in self._entries.items()
        ]

    # -----------------------------------------------------------------------
    # PRIVATE METHODS
    # -----------------------------------------------------------------------

    async def _collect(
        self,
        source_name: str,
        collector: Callable[[], Any],
        freshness_ms: float,
    ) -> Snapshot:
        try:
            data = collector()
            if inspect.isawaitable(data):
                data = await data
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Collection failed for '{source_name}': {e}")
            raise CollectionError(source_name, e) from e

        if isinstance(data, Snapshot):
            snapshot = data
        elif isinstance(data, Mapping):
            snapshot = Snapshot.from_mapping(data, source_name, collected_at=self._clock())
        else:
            raise CollectionError(
                source_name,
                TypeError(f"collector returned {type(data).__name__}, expected a mapping"),
            )

        # expires_at uses the window of the caller that started the collection;
        # it is status-only, freshness is always judged per call in get_or_collect.
        self._entries[source_name] = CacheEntry(
            snapshot=snapshot,
            expires_at=snapshot.collected_at + timedelta(milliseconds=freshness_ms),
        )
        logger.info(f"Collected snapshot '{source_name}' with {len(snapshot.fields)} field(s)")
        return snapshot

    def _clear_in_flight(self, source_name: str, task: asyncio.Task) -> None:
        if self._in_flight.get(source_name) is task:
            del self._in_flight[source_name]

    def _track(self, source_name: str, hit: bool, age_ms: Optional[float] = None) -> None:
        if self._monitor:
            self._monitor.track_cache(source_name, hit=hit, age_ms=age_ms)
