# catalog_sync/storage/persistent_cache.py

"""SQLite-backed key/value cache shared by every catalog context.

Each context opens its own connection to the same database file. A write
records the writer's context id and a monotonically increasing revision,
which lets :meth:`PersistentCache.poll_external_changes` report keys that
*other* contexts committed, the way a browser's storage event only fires
in the tabs that did not make the change.
"""

import json
import logging
import sqlite3
import threading
import uuid
from pathlib import Path
from typing import Any

from catalog_sync.config.settings import Settings
from catalog_sync.models.exceptions import CacheCorrupt
from catalog_sync.models.product import Product

logger = logging.getLogger("catalog_sync.persistent_cache")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS entries (
    key      TEXT    PRIMARY KEY,
    value    TEXT    NOT NULL,
    revision INTEGER NOT NULL,
    writer   TEXT    NOT NULL
);
"""


class PersistentCache:
    """Key/value store holding JSON documents, one per namespaced key."""

    def __init__(
        self,
        db_path: Path | None = None,
        context_id: str | None = None,
    ) -> None:
        path = db_path or Settings.CACHE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self.context_id = context_id or uuid.uuid4().hex
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._data_version = self._read_data_version()
        self._seen_revision = self._max_revision()
        logger.debug(
            "PersistentCache opened at %s (context=%s)",
            path,
            self.context_id,
        )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    # ── Raw documents ────────────────────────────────────

    def read_document(self, key: str) -> dict[str, Any]:
        """Return the JSON document stored under *key* (``{}`` if absent).

        Raises :class:`CacheCorrupt` when the stored value is not a JSON
        object or the database cannot be read.
        """
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value FROM entries WHERE key = ?", (key,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise CacheCorrupt(f"Cache unreadable: {exc}") from exc

        if row is None:
            return {}
        try:
            document = json.loads(row[0])
        except json.JSONDecodeError as exc:
            raise CacheCorrupt(
                f"Invalid JSON under '{key}': {exc}"
            ) from exc
        if not isinstance(document, dict):
            raise CacheCorrupt(
                f"Expected an object under '{key}', "
                f"got {type(document).__name__}"
            )
        return document

    def write_document(self, key: str, document: dict[str, Any]) -> None:
        """Overwrite the document stored under *key*."""
        payload = json.dumps(document, ensure_ascii=False)
        with self._lock:
            self._conn.execute(
                "INSERT INTO entries (key, value, revision, writer) "
                "VALUES (?, ?, "
                "  (SELECT COALESCE(MAX(revision), 0) + 1 FROM entries), ?) "
                "ON CONFLICT(key) DO UPDATE SET "
                "  value = excluded.value, "
                "  revision = excluded.revision, "
                "  writer = excluded.writer",
                (key, payload, self.context_id),
            )
            self._conn.commit()

    # ── Catalog helpers ──────────────────────────────────

    def read_products(self, key: str | None = None) -> list[Any]:
        """Return the raw product records of the catalog document."""
        document = self.read_document(key or Settings.CATALOG_KEY)
        products = document.get("products", [])
        if not isinstance(products, list):
            raise CacheCorrupt("'products' is not a list")
        return products

    def write_products(
        self,
        products: list[Product],
        key: str | None = None,
    ) -> None:
        """Read-merge-write the product list, keeping unrelated fields."""
        cache_key = key or Settings.CATALOG_KEY
        try:
            document = self.read_document(cache_key)
        except CacheCorrupt:
            logger.warning(
                "Overwriting corrupt cache document '%s'",
                cache_key,
                exc_info=True,
            )
            document = {}
        document["products"] = [p.to_dict() for p in products]
        self.write_document(cache_key, document)
        logger.debug(
            "Wrote %d products to cache key '%s'",
            len(products),
            cache_key,
        )

    # ── Cross-context change detection ───────────────────

    def poll_external_changes(self) -> list[str]:
        """Return keys committed by other contexts since the last poll.

        ``PRAGMA data_version`` only moves when another connection
        commits, so an idle poll costs a single pragma. Rows last written
        by this context are skipped.
        """
        with self._lock:
            version = self._read_data_version_locked()
            if version == self._data_version:
                return []
            self._data_version = version
            rows = self._conn.execute(
                "SELECT key, revision, writer FROM entries "
                "WHERE revision > ? ORDER BY revision",
                (self._seen_revision,),
            ).fetchall()
            if rows:
                self._seen_revision = rows[-1][1]

        keys = [r[0] for r in rows if r[2] != self.context_id]
        if keys:
            logger.debug("External cache changes: %s", keys)
        return keys

    def _read_data_version(self) -> int:
        with self._lock:
            return self._read_data_version_locked()

    def _read_data_version_locked(self) -> int:
        row = self._conn.execute("PRAGMA data_version").fetchone()
        return int(row[0])

    def _max_revision(self) -> int:
        with self._lock:
            return self._max_revision_locked()

    def _max_revision_locked(self) -> int:
        row = self._conn.execute(
            "SELECT COALESCE(MAX(revision), 0) FROM entries"
        ).fetchone()
        return int(row[0])
