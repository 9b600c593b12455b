# catalog_sync/services/source_resolver.py

"""Ordered remote → cache → direct-fetch → empty source resolution."""

import asyncio
import logging
import sqlite3
from typing import Any

from catalog_sync.filters.product_normalizer import ProductNormalizer
from catalog_sync.models.exceptions import CacheCorrupt, SourceUnavailable
from catalog_sync.models.product import Product
from catalog_sync.models.snapshot import CatalogSnapshot, CatalogSource
from catalog_sync.services.api_client import CatalogApiClient
from catalog_sync.storage.persistent_cache import PersistentCache

logger = logging.getLogger("catalog_sync.resolver")


class SourceResolver:
    """Decides which source is authoritative for the next snapshot."""

    def __init__(
        self,
        api_client: CatalogApiClient,
        cache: PersistentCache,
    ) -> None:
        self.api_client = api_client
        self.cache = cache

    # ── Private helpers ──────────────────────────────────

    async def _fetch_remote(self) -> list[Product]:
        """Fetch and normalise the API product list ([] on failure)."""
        try:
            raw = await asyncio.to_thread(self.api_client.get_products)
        except SourceUnavailable as exc:
            logger.warning("Remote API unavailable: %s", exc)
            return []
        products, _ = ProductNormalizer.normalize(raw)
        return products

    async def _fetch_direct(self) -> list[Product]:
        """Last-resort fetch of the fixed fallback endpoint."""
        try:
            raw = await asyncio.to_thread(self.api_client.fetch_direct)
        except SourceUnavailable as exc:
            logger.warning("Direct fallback fetch failed: %s", exc)
            return []
        products, _ = ProductNormalizer.normalize(raw)
        return products

    async def _read_cache(self) -> list[Product]:
        """Read the persistent cache; corrupt contents count as empty."""
        try:
            raw: list[Any] = await asyncio.to_thread(
                self.cache.read_products
            )
        except CacheCorrupt as exc:
            logger.error(
                "Persistent cache corrupt, treating as empty: %s", exc
            )
            return []
        products, _ = ProductNormalizer.normalize(raw)
        return products

    async def _write_through(self, products: list[Product]) -> None:
        """Persist a fresh remote list; failures are logged only."""
        try:
            await asyncio.to_thread(self.cache.write_products, products)
        except sqlite3.Error as exc:
            logger.error(
                "Write-through to persistent cache failed: %s",
                exc,
                exc_info=True,
            )

    # ── Public API ───────────────────────────────────────

    async def load(self, refresh: bool = False) -> CatalogSnapshot:
        """Resolve the current catalog. Never raises.

        A remote result with zero products is treated the same as a
        remote failure and falls through to the cache.
        """
        if refresh:
            self.api_client.clear_cache()

        products = await self._fetch_remote()
        if products:
            await self._write_through(products)
            logger.info("Loaded %d products from remote API", len(products))
            return CatalogSnapshot(
                products=tuple(products), source=CatalogSource.REMOTE
            )

        products = await self._read_cache()
        if products:
            logger.info(
                "Loaded %d products from persistent cache", len(products)
            )
            return CatalogSnapshot(
                products=tuple(products), source=CatalogSource.CACHE
            )

        products = await self._fetch_direct()
        if products:
            await self._write_through(products)
            logger.info(
                "Loaded %d products from direct fallback fetch",
                len(products),
            )
            return CatalogSnapshot(
                products=tuple(products), source=CatalogSource.REMOTE
            )

        logger.warning("No product source available, catalog is empty")
        return CatalogSnapshot(source=CatalogSource.EMPTY)
