# tests/test_catalog_engine.py

"""End-to-end tests for catalog contexts sharing one cache file."""

import asyncio
import tempfile
import unittest
from pathlib import Path
from typing import Any
from unittest.mock import patch

from catalog_sync.config.settings import Settings
from catalog_sync.filters.projections import CatalogQuery
from catalog_sync.models.exceptions import SourceUnavailable
from catalog_sync.models.product import Product
from catalog_sync.models.snapshot import (
    CatalogSource,
    ChangeSignal,
    SignalKind,
)
from catalog_sync.services.catalog_engine import CatalogEngine
from catalog_sync.storage.persistent_cache import PersistentCache

_QUIET = 3600.0


class _StubApiClient:
    """Remote API stand-in; ``None`` products means the API is down."""

    def __init__(self, products: list[Any] | None = None) -> None:
        self.products = products

    def get_products(self) -> list[Any]:
        if self.products is None:
            raise SourceUnavailable("remote down")
        return list(self.products)

    def fetch_direct(self, url: str | None = None) -> list[Any]:
        raise SourceUnavailable("fallback down")

    def clear_cache(self) -> int:
        return 0

    def create_product(self, record: dict[str, Any]) -> dict[str, Any] | None:
        if self.products is None:
            raise SourceUnavailable("remote down")
        self.products.append(dict(record))
        return dict(record)

    def update_product(
        self, product_id: str, record: dict[str, Any],
    ) -> dict[str, Any] | None:
        if self.products is None:
            raise SourceUnavailable("remote down")
        self.products = [
            dict(record) if r.get("id") == product_id else r
            for r in self.products
        ]
        return dict(record)

    def delete_product(self, product_id: str) -> bool:
        if self.products is None:
            raise SourceUnavailable("remote down")
        before = len(self.products)
        self.products = [r for r in self.products if r.get("id") != product_id]
        return len(self.products) < before


def _seed(db_path: Path, *products: Product) -> None:
    seeder = PersistentCache(db_path=db_path, context_id="seed")
    seeder.write_products(list(products))
    seeder.close()


class TestCatalogEngine(unittest.IsolatedAsyncioTestCase):
    """Single-context lifecycle and projections."""

    async def asyncSetUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.db_path = Path(self._tmpdir.name) / "shared.db"

    async def asyncTearDown(self) -> None:
        self._tmpdir.cleanup()

    def _engine(self, api: _StubApiClient, context_id: str) -> CatalogEngine:
        return CatalogEngine(
            api_client=api,  # type: ignore[arg-type]
            cache_path=self.db_path,
            context_id=context_id,
            poll_interval=_QUIET,
            watch_interval=_QUIET,
        )

    async def test_start_from_remote(self) -> None:
        """A reachable API gives a remote snapshot at version 1."""
        engine = self._engine(
            _StubApiClient([{"id": "p1", "name": "A", "featured": 1}]), "tab"
        )
        try:
            snapshot = await engine.start()
            self.assertIs(snapshot.source, CatalogSource.REMOTE)
            self.assertEqual(snapshot.version, 1)
            self.assertEqual([p.id for p in engine.featured()], ["p1"])
        finally:
            await engine.stop()

    async def test_start_from_cache_when_offline(self) -> None:
        """With the API down the engine serves the cached catalog."""
        _seed(self.db_path, Product(id="c1", name="Cached"))
        engine = self._engine(_StubApiClient(None), "tab")
        try:
            snapshot = await engine.start()
            self.assertIs(snapshot.source, CatalogSource.CACHE)
            self.assertEqual([p.id for p in snapshot.products], ["c1"])
        finally:
            await engine.stop()

    async def test_start_empty(self) -> None:
        """No sources at all gives an empty catalog and no notification."""
        engine = self._engine(_StubApiClient(None), "tab")
        calls: list[int] = []
        engine.on_change(lambda: calls.append(1))
        try:
            snapshot = await engine.start()
            self.assertIs(snapshot.source, CatalogSource.EMPTY)
            self.assertEqual(snapshot.version, 0)
            self.assertEqual(calls, [])
        finally:
            await engine.stop()

    async def test_query_shortcuts(self) -> None:
        """Engine shortcuts project the current snapshot."""
        api = _StubApiClient(
            [
                {"id": f"p{i}", "name": f"Frame {i}", "category": "eyeglasses",
                 "price": i}
                for i in range(1, 16)
            ]
        )
        engine = self._engine(api, "tab")
        try:
            await engine.start()
            self.assertEqual(len(engine.by_category("eyeglasses")), 15)
            self.assertEqual(len(engine.search("frame 1")), 7)
            self.assertEqual(
                [p.id for p in engine.trending(3)], ["p15", "p14", "p13"]
            )
            result = engine.query(CatalogQuery(sort_by="price-high"))
            self.assertEqual(len(result.products), 12)
            self.assertTrue(result.has_more)
            self.assertEqual(result.products[0].id, "p15")
        finally:
            await engine.stop()


class TestCrossContextSync(unittest.IsolatedAsyncioTestCase):
    """Two contexts on one shared cache file converge."""

    async def asyncSetUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(self._tmpdir.name) / "shared.db"
        _seed(
            db_path,
            Product(id="p1", name="Aviator", brand="Ray-Ban",
                    category="sunglasses", price=100.0),
            Product(id="p2", name="Round", brand="Vogue",
                    category="eyeglasses", price=200.0),
        )
        self.tab_a = CatalogEngine(
            api_client=_StubApiClient(None),  # type: ignore[arg-type]
            cache_path=db_path,
            context_id="tab-a",
            poll_interval=_QUIET,
            watch_interval=_QUIET,
        )
        self.tab_b = CatalogEngine(
            api_client=_StubApiClient(None),  # type: ignore[arg-type]
            cache_path=db_path,
            context_id="tab-b",
            poll_interval=_QUIET,
            watch_interval=_QUIET,
        )
        await self.tab_a.start()
        await self.tab_b.start()

    async def asyncTearDown(self) -> None:
        await self.tab_a.stop()
        await self.tab_b.stop()
        self._tmpdir.cleanup()

    async def test_both_start_from_cache(self) -> None:
        """Both contexts see the seeded catalog."""
        for tab in (self.tab_a, self.tab_b):
            self.assertEqual(len(tab.snapshot()), 2)
            self.assertIs(tab.snapshot().source, CatalogSource.CACHE)

    async def test_removal_propagates(self) -> None:
        """A product removed in tab A disappears from tab B."""
        renders: list[int] = []
        self.tab_b.on_change(lambda: renders.append(1))

        await self.tab_a.mutations.remove("p1")
        self.assertTrue(await self.tab_b.bus.check_external_changes())
        await self.tab_b.bus.drain()

        self.assertEqual([p.id for p in self.tab_b.snapshot().products], ["p2"])
        self.assertEqual(renders, [1])

    async def test_addition_propagates(self) -> None:
        """A product added in tab B shows up in tab A."""
        await self.tab_b.mutations.add(
            {"id": "p3", "name": "Clubmaster", "brand": "Ray-Ban",
             "category": "sunglasses", "price": 150}
        )
        self.assertTrue(await self.tab_a.bus.check_external_changes())
        await self.tab_a.bus.drain()

        self.assertEqual(
            [p.id for p in self.tab_a.snapshot().products], ["p1", "p2", "p3"]
        )

    async def test_writer_ignores_own_change(self) -> None:
        """The mutating context does not see its own write as external."""
        await self.tab_a.mutations.update("p2", {"price": 250})
        self.assertFalse(await self.tab_a.bus.check_external_changes())

    async def test_repeated_check_reloads_once(self) -> None:
        """A single external write is only picked up once."""
        await self.tab_a.mutations.update("p2", {"featured": True})
        self.assertTrue(await self.tab_b.bus.check_external_changes())
        self.assertFalse(await self.tab_b.bus.check_external_changes())
        await self.tab_b.bus.drain()
        self.assertEqual([p.id for p in self.tab_b.featured()], ["p2"])


class TestCrossContextSyncOnline(unittest.IsolatedAsyncioTestCase):
    """Two contexts backed by a reachable API stay converged."""

    async def asyncSetUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(self._tmpdir.name) / "shared.db"
        self.api = _StubApiClient(
            [
                {"id": "p1", "name": "Aviator", "brand": "Ray-Ban",
                 "category": "sunglasses", "price": 100},
                {"id": "p2", "name": "Round", "brand": "Vogue",
                 "category": "eyeglasses", "price": 200},
            ]
        )
        self.tab_a = CatalogEngine(
            api_client=self.api,  # type: ignore[arg-type]
            cache_path=db_path,
            context_id="tab-a",
            poll_interval=_QUIET,
            watch_interval=_QUIET,
        )
        self.tab_b = CatalogEngine(
            api_client=self.api,  # type: ignore[arg-type]
            cache_path=db_path,
            context_id="tab-b",
            poll_interval=_QUIET,
            watch_interval=_QUIET,
        )
        await self.tab_a.start()
        await self.tab_b.start()

    async def asyncTearDown(self) -> None:
        await self.tab_a.stop()
        await self.tab_b.stop()
        self._tmpdir.cleanup()

    async def test_removal_stays_removed_everywhere(self) -> None:
        """After the reconcile reload, p1 is gone in both contexts."""
        with patch.object(Settings, "DELETE_RELOAD_DELAY", 0.01):
            await self.tab_a.mutations.remove("p1")
            await asyncio.sleep(0.05)
            await self.tab_a.bus.drain()

        await self.tab_b.bus.check_external_changes()
        await self.tab_b.bus.drain()
        self.tab_b.bus.submit(ChangeSignal(SignalKind.POLL_TICK))
        await self.tab_b.bus.drain()

        for tab in (self.tab_a, self.tab_b):
            with self.subTest(context=tab.context_id):
                ids = [p.id for p in tab.snapshot().products]
                self.assertNotIn("p1", ids)
                self.assertEqual(ids, ["p2"])


if __name__ == "__main__":
    unittest.main()
