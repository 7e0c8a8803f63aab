"""Read-through cache for GitHub lookups.

Keys are ``<namespace><sha256 of lookup params>`` so that commit, tree and
blob lookups never collide. Two storage backends share one interface:

- ``MemoryCache`` lives for a single operation and is cleared whenever the
  revision service starts a new one.
- ``SQLiteCache`` persists across operations and process restarts. Commits,
  trees and blobs are immutable once created, so entries never expire.

``SQLiteCache`` catches ``aiosqlite.Error`` internally and degrades
gracefully: read failures are treated as a miss, write failures are logged
and ignored. A failed remote lookup, on the other hand, always propagates
out of ``ReadThroughCache.get_or_compute`` and is never stored.
"""

from __future__ import annotations

import hashlib
import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

import aiosqlite
import structlog

from ghrevisions.models.cache import CacheEntry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ghrevisions.protocols import CacheBackendProtocol

log = structlog.get_logger()

T = TypeVar("T")

_CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS revision_cache (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    stored_at  TEXT NOT NULL
)
"""


def make_cache_key(namespace: str, *parts: str) -> str:
    """Return ``namespace`` followed by the SHA-256 of the joined ``parts``."""
    digest = hashlib.sha256("\0".join(parts).encode("utf-8")).hexdigest()
    return f"{namespace}{digest}"


class MemoryCache:
    """Operation-scoped cache implementing CacheBackendProtocol."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get_entry(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def put(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(key=key, value=value, stored_at=datetime.now(UTC))

    async def begin_operation(self) -> None:
        """Forget everything cached by the previous operation."""
        self._entries.clear()


class SQLiteCache:
    """SQLite-backed durable cache implementing CacheBackendProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_CACHE_TABLE)
        await self._db.commit()

    async def get_entry(self, key: str) -> CacheEntry | None:
        """Read an entry. Returns ``None`` on cache miss or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT key, value, stored_at FROM revision_cache WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            return CacheEntry(
                key=row[0],
                value=json.loads(row[1]),
                stored_at=datetime.fromisoformat(row[2]),
            )
        except aiosqlite.Error:
            log.warning("cache_read_error", key=key, exc_info=True)
            return None

    async def put(self, key: str, value: Any) -> None:
        """Write an entry. Non-fatal on failure."""
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO revision_cache (key, value, stored_at) VALUES (?, ?, ?)",
                (key, json.dumps(value), datetime.now(UTC).isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=key, exc_info=True)

    async def begin_operation(self) -> None:
        # Entries outlive operations
        return None


class ReadThroughCache:
    """Memoizes remote lookups on top of a CacheBackendProtocol."""

    def __init__(self, backend: CacheBackendProtocol) -> None:
        self._backend = backend

    async def begin_operation(self) -> None:
        await self._backend.begin_operation()

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        """Return the value stored under ``key``, computing and storing it on a miss.

        A backend read failure counts as a miss. Exceptions raised by ``compute``
        propagate and leave the cache untouched. Two concurrent misses on the
        same key may both compute.
        """
        entry = await self._backend.get_entry(key)
        if entry is not None:
            log.debug("cache_hit", key=key)
            return entry.value

        log.debug("cache_miss", key=key)
        value = await compute()
        await self._backend.put(key, value)
        return value
