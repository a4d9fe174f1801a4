"""Process-wide storage behind the HTTP response cache.

:mod:`hishel` decides what may be stored, when a stored response is
fresh and how a stale one is revalidated. :class:`HttpCache` owns what
is shared by every derived client:

* the hishel SQLite storage file under the cache directory,
* the caching policy (a private, single-user cache, so responses to
  authenticated requests are stored),
* the byte quota (:attr:`~ghstubs.models.CacheConfig.max_size_bytes`,
  20 MiB by default),
* URLs whose stored responses were made obsolete by a successful unsafe
  request and must be revalidated on their next read.

Once the files exceed the quota the whole store is emptied.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

import hishel

logger = logging.getLogger(__name__)

DATABASE_NAME = "hishel_cache.db"


class HttpCache:
    """Shared hishel storage bounded by a byte quota.

    Args:
        directory: Directory holding the SQLite database.
        max_size_bytes: Byte quota for the database files.

    Example::

        cache = HttpCache("/tmp/gh-http", 20 * 1024 * 1024)
        transport = CachingTransport(httpx.HTTPTransport(), cache)
    """

    def __init__(self, directory: str | Path, max_size_bytes: int) -> None:
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        self._max_size_bytes = max_size_bytes
        self._lock = threading.Lock()
        self._invalidated: set[str] = set()
        self._connection = sqlite3.connect(str(self.database), check_same_thread=False)
        self._storage = hishel.SyncSqliteStorage(connection=self._connection)
        self._policy = hishel.SpecificationPolicy(
            cache_options=hishel.CacheOptions(shared=False),
        )
        self.enforce_quota()

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def database(self) -> Path:
        return self._directory / DATABASE_NAME

    @property
    def storage(self) -> hishel.SyncSqliteStorage:
        return self._storage

    @property
    def policy(self) -> hishel.SpecificationPolicy:
        return self._policy

    # ------------------------------------------------------------------ #
    # Invalidation
    # ------------------------------------------------------------------ #

    def invalidate(self, url: str) -> None:
        """Mark the stored response for *url* as obsolete."""
        with self._lock:
            self._invalidated.add(url)
        logger.debug("Invalidated cached response for %s", url)

    def consume_invalidation(self, url: str) -> bool:
        """Return True once if *url* was invalidated since its last read."""
        with self._lock:
            if url in self._invalidated:
                self._invalidated.discard(url)
                return True
            return False

    # ------------------------------------------------------------------ #
    # Quota and maintenance
    # ------------------------------------------------------------------ #

    def size_bytes(self) -> int:
        """Bytes on disk used by the database and its journal files."""
        return sum(
            path.stat().st_size
            for path in self._directory.glob(f"{DATABASE_NAME}*")
            if path.is_file()
        )

    def enforce_quota(self) -> bool:
        """Empty the store if it grew past the quota; return True if it did."""
        size = self.size_bytes()
        if size <= self._max_size_bytes:
            return False
        logger.info(
            "HTTP cache at %s holds %d bytes (quota %d); clearing it",
            self._directory,
            size,
            self._max_size_bytes,
        )
        self.clear()
        return True

    def clear(self) -> None:
        """Delete every stored response and compact the database."""
        with self._lock:
            tables = [
                row[0]
                for row in self._connection.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
                )
            ]
            for table in tables:
                self._connection.execute(f'DELETE FROM "{table}"')
            self._connection.commit()
            try:
                self._connection.execute("VACUUM")
            except sqlite3.OperationalError as exc:
                logger.debug("Could not compact %s: %s", self.database, exc)
            self._invalidated.clear()

    def stats(self) -> dict[str, Any]:
        """Return bytes on disk, quota and location."""
        return {
            "size_bytes": self.size_bytes(),
            "max_size_bytes": self._max_size_bytes,
            "database": str(self.database),
        }

    def close(self) -> None:
        """Close the SQLite connection shared with the hishel storage."""
        self._connection.close()
