# catalog_sync/services/mutation_gateway.py

"""Entry points through which the admin editor changes the catalog."""

import asyncio
import logging
import sqlite3
import time
from datetime import datetime, timezone
from typing import Any

from catalog_sync.config.settings import Settings
from catalog_sync.filters.product_normalizer import normalize_product
from catalog_sync.models.exceptions import (
    MutationRejected,
    SourceUnavailable,
)
from catalog_sync.models.product import Product
from catalog_sync.services.api_client import CatalogApiClient
from catalog_sync.services.catalog_store import CatalogStore
from catalog_sync.services.change_bus import ChangeBus
from catalog_sync.services.editor_channel import EditorChannel
from catalog_sync.storage.persistent_cache import PersistentCache

logger = logging.getLogger("catalog_sync.mutations")

_REQUIRED_TEXT_FIELDS: tuple[str, ...] = ("name", "brand", "category")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_required(record: dict[str, Any]) -> None:
    """Raise :class:`MutationRejected` if a required field is missing."""
    for name in _REQUIRED_TEXT_FIELDS:
        value = record.get(name)
        if value is None or not str(value).strip():
            msg = f"Missing required field '{name}'"
            raise MutationRejected(msg)

    price = record.get("price")
    if price is None:
        msg = "Missing required field 'price'"
        raise MutationRejected(msg)
    if isinstance(price, str):
        if not any(ch.isdigit() for ch in price):
            msg = f"Price '{price}' is not a number"
            raise MutationRejected(msg)
    elif isinstance(price, bool) or not isinstance(price, (int, float)):
        msg = f"Price must be a number, got {type(price).__name__}"
        raise MutationRejected(msg)
    elif price < 0:
        msg = f"Price must be non-negative, got {price}"
        raise MutationRejected(msg)


class MutationGateway:
    """Add, update and remove products in one context.

    Each mutation is sent to the API first. If the API cannot be reached
    the change is still applied locally. An accepted mutation writes the
    full list to the persistent cache, patches the store and announces the
    new list on the editor channel.
    """

    def __init__(
        self,
        store: CatalogStore,
        cache: PersistentCache,
        editor_channel: EditorChannel,
        api_client: CatalogApiClient,
        bus: ChangeBus,
    ) -> None:
        self.store = store
        self.cache = cache
        self.editor_channel = editor_channel
        self.api_client = api_client
        self.bus = bus

    def _index_of(self, product_id: str) -> int:
        for idx, product in enumerate(self.store.current().products):
            if product.id == product_id:
                return idx
        msg = f"Unknown product id '{product_id}'"
        raise MutationRejected(msg)

    async def _push(self, action: str, call: Any, *args: Any) -> Any:
        """Send a change to the API; a failure keeps the change local."""
        try:
            return await asyncio.to_thread(call, *args)
        except SourceUnavailable as exc:
            logger.warning(
                "%s not sent to the API, kept locally: %s", action, exc
            )
            return None

    async def _commit(self, products: list[Product], action: str) -> None:
        try:
            await asyncio.to_thread(self.cache.write_products, products)
        except sqlite3.Error as exc:
            logger.error("%s could not be cached: %s", action, exc)
            msg = f"{action} could not be saved: {exc}"
            raise MutationRejected(msg) from exc
        self.store.apply_patch(products)
        self.editor_channel.publish([p.to_dict() for p in products])
        logger.info(
            "%s committed, catalog now %d products (version %d)",
            action,
            len(products),
            self.store.version,
        )

    # ── Public API ───────────────────────────────────────

    async def add(self, product_data: dict[str, Any]) -> Product:
        """Create a product on the API, then append it locally."""
        _check_required(product_data)
        record = dict(product_data)
        if not record.get("id") and not record.get("_id"):
            record["id"] = str(int(time.time() * 1000))
        stamp = _now()
        record.setdefault("createdAt", stamp)
        record.setdefault("updatedAt", stamp)

        product = normalize_product(record, stamp)
        if product is None:
            msg = "Product id could not be determined"
            raise MutationRejected(msg)
        current = list(self.store.current().products)
        if any(p.id == product.id for p in current):
            msg = f"Duplicate product id '{product.id}'"
            raise MutationRejected(msg)

        stored = await self._push(
            f"Add {product.id}", self.api_client.create_product, record
        )
        if stored:
            # The API may assign its own id
            merged = {**record, **stored}
            merged["id"] = stored.get("id") or stored.get("_id") or product.id
            product = normalize_product(merged, stamp) or product

        # The snapshot may have moved while the API call was pending
        current = list(self.store.current().products)
        if any(p.id == product.id for p in current):
            msg = f"Duplicate product id '{product.id}'"
            raise MutationRejected(msg)

        await self._commit([*current, product], f"Add {product.id}")
        return product

    async def update(
        self, product_id: str, patch: dict[str, Any],
    ) -> Product:
        """Update a product on the API, then merge *patch* locally."""
        idx = self._index_of(product_id)
        patch_id = patch.get("id")
        if patch_id is not None and str(patch_id) != product_id:
            msg = "Product id cannot be changed"
            raise MutationRejected(msg)

        record = {**self.store.current().products[idx].to_dict(), **patch}
        record["id"] = product_id
        record["updatedAt"] = _now()
        _check_required(record)

        stored = await self._push(
            f"Update {product_id}",
            self.api_client.update_product,
            product_id,
            record,
        )
        if stored:
            record = {**record, **stored, "id": product_id}

        updated = normalize_product(record)
        if updated is None:
            msg = f"Update produced an invalid product '{product_id}'"
            raise MutationRejected(msg)
        idx = self._index_of(product_id)
        current = list(self.store.current().products)
        current[idx] = updated
        await self._commit(current, f"Update {product_id}")
        return updated

    async def remove(self, product_id: str) -> None:
        """Delete a product on the API and locally, then reconcile."""
        self._index_of(product_id)
        await self._push(
            f"Remove {product_id}",
            self.api_client.delete_product,
            product_id,
        )

        current = [
            p for p in self.store.current().products if p.id != product_id
        ]
        await self._commit(current, f"Remove {product_id}")
        self.api_client.clear_cache()
        self.bus.schedule_reload(Settings.DELETE_RELOAD_DELAY)
