# catalog_sync/services/catalog_engine.py

"""Per-context wiring of resolver, store, bus, gateway and projections."""

import logging
import uuid
from pathlib import Path

from catalog_sync.config.logging_config import log_context
from catalog_sync.filters.projections import (
    CatalogProjection,
    CatalogQuery,
    QueryResult,
)
from catalog_sync.models.product import Product
from catalog_sync.models.snapshot import CatalogSnapshot
from catalog_sync.services.api_client import CatalogApiClient
from catalog_sync.services.catalog_store import CatalogStore, ChangeCallback
from catalog_sync.services.change_bus import ChangeBus
from catalog_sync.services.editor_channel import EditorChannel
from catalog_sync.services.mutation_gateway import MutationGateway
from catalog_sync.services.source_resolver import SourceResolver
from catalog_sync.storage.persistent_cache import PersistentCache

logger = logging.getLogger("catalog_sync.engine")


class CatalogEngine:
    """Everything one execution context needs, passed around explicitly.

    A storefront view receives the engine, registers its re-render
    callback with :meth:`on_change` and re-queries the projections when
    called back. Several engines sharing one cache file behave like
    several open tabs.
    """

    def __init__(
        self,
        api_client: CatalogApiClient | None = None,
        cache: PersistentCache | None = None,
        cache_path: Path | None = None,
        context_id: str | None = None,
        poll_interval: float | None = None,
        watch_interval: float | None = None,
    ) -> None:
        self.context_id = context_id or uuid.uuid4().hex[:8]
        self.api_client = api_client or CatalogApiClient()
        self.cache = cache or PersistentCache(
            cache_path, context_id=self.context_id
        )
        self.store = CatalogStore()
        self.editor_channel = EditorChannel()
        self.resolver = SourceResolver(self.api_client, self.cache)
        self.bus = ChangeBus(
            self.store,
            self.resolver,
            self.cache,
            self.editor_channel,
            poll_interval=poll_interval,
            watch_interval=watch_interval,
        )
        self.mutations = MutationGateway(
            self.store,
            self.cache,
            self.editor_channel,
            self.api_client,
            self.bus,
        )

    # ── Lifecycle ────────────────────────────────────────

    async def start(self) -> CatalogSnapshot:
        """Run the initial load, then start listening for changes."""
        # Bus tasks inherit the context id for their log records
        with log_context(self.context_id):
            snapshot = await self.resolver.load()
            self.store.replace(snapshot)
            self.bus.start()
        logger.info(
            "Context %s started with %d products from %s",
            self.context_id,
            len(self.store.current()),
            self.store.current().source.value,
        )
        return self.store.current()

    async def stop(self) -> None:
        """Stop background listeners and close the cache connection."""
        await self.bus.stop()
        self.cache.close()
        logger.info("Context %s stopped", self.context_id)

    def on_change(self, callback: ChangeCallback) -> None:
        """Register the rendering layer's "catalog changed" callback."""
        self.store.subscribe(callback)

    # ── Query shortcuts over the current snapshot ────────

    def snapshot(self) -> CatalogSnapshot:
        return self.store.current()

    def featured(self) -> list[Product]:
        return CatalogProjection.featured(self.snapshot().products)

    def trending(self, limit: int | None = None) -> list[Product]:
        products = self.snapshot().products
        if limit is None:
            return CatalogProjection.trending(products)
        return CatalogProjection.trending(products, limit)

    def by_category(self, category: str) -> list[Product]:
        return CatalogProjection.by_category(
            self.snapshot().products, category
        )

    def search(self, term: str) -> list[Product]:
        return CatalogProjection.search(self.snapshot().products, term)

    def query(self, query: CatalogQuery) -> QueryResult:
        return CatalogProjection.apply_filters(
            self.snapshot().products, query
        )
