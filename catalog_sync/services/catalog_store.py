# catalog_sync/services/catalog_store.py

"""Canonical in-memory catalog for one execution context."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace as dc_replace

from catalog_sync.models.product import Product
from catalog_sync.models.snapshot import CatalogSnapshot, CatalogSource

logger = logging.getLogger("catalog_sync.store")

ChangeCallback = Callable[[], None]


class CatalogStore:
    """Holds the latest accepted snapshot and notifies subscribers.

    Updates whose product tuple equals the current one are absorbed as
    no-ops: no version bump and no notification. Accepted updates bump
    ``version`` by one and call every subscriber exactly once, after the
    new snapshot is in place.
    """

    def __init__(self, initial: CatalogSnapshot | None = None) -> None:
        self._snapshot = initial or CatalogSnapshot()
        self._subscribers: list[ChangeCallback] = []

    def current(self) -> CatalogSnapshot:
        """Return the latest accepted snapshot."""
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register a no-argument "catalog changed" callback.

        Returns a function that removes the registration.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def replace(self, snapshot: CatalogSnapshot) -> bool:
        """Accept *snapshot* unless its products equal the current ones."""
        if snapshot.products == self._snapshot.products:
            logger.debug(
                "Snapshot from %s unchanged, keeping version %d",
                snapshot.source.value,
                self._snapshot.version,
            )
            return False
        self._commit(
            dc_replace(snapshot, version=self._snapshot.version + 1)
        )
        return True

    def apply_patch(self, products: Sequence[Product]) -> bool:
        """Replace the whole collection with an authoritative full list.

        The provenance tag is kept, except that a patched list moves an
        ``empty`` catalog to ``cache`` and an emptied catalog to
        ``empty``.
        """
        candidate = tuple(products)
        if candidate == self._snapshot.products:
            logger.debug("Patch identical to current catalog, skipped")
            return False

        source = self._snapshot.source
        if not candidate:
            source = CatalogSource.EMPTY
        elif source is CatalogSource.EMPTY:
            source = CatalogSource.CACHE

        self._commit(
            CatalogSnapshot(
                products=candidate,
                version=self._snapshot.version + 1,
                source=source,
            )
        )
        return True

    def _commit(self, snapshot: CatalogSnapshot) -> None:
        self._snapshot = snapshot
        logger.info(
            "Catalog updated to version %d (%d products, source=%s)",
            snapshot.version,
            len(snapshot.products),
            snapshot.source.value,
        )
        for callback in list(self._subscribers):
            try:
                callback()
            except Exception:
                logger.error(
                    "Catalog change subscriber failed", exc_info=True
                )
