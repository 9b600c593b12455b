# catalog_sync/services/change_bus.py

"""Single-consumer signal queue feeding the catalog store.

Three channels produce :class:`ChangeSignal` objects:

* a storage watcher that notices catalog writes committed by *other*
  contexts to the shared persistent cache (``external-storage``),
* the in-process :class:`EditorChannel` (``editor-event``),
* a freshness ticker (``poll-tick``), silent during editor sessions.

One worker task drains the queue strictly in arrival order, so at most
one resolver call is ever in flight per context. A signal submitted while
another of the same kind is still queued replaces it (coalescing); the
survivor is evaluated against whatever snapshot is current when its turn
comes.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from catalog_sync.config.settings import Settings
from catalog_sync.filters.product_normalizer import ProductNormalizer
from catalog_sync.models.snapshot import ChangeSignal, SignalKind
from catalog_sync.services.catalog_store import CatalogStore
from catalog_sync.services.editor_channel import EditorChannel
from catalog_sync.services.source_resolver import SourceResolver
from catalog_sync.storage.persistent_cache import PersistentCache

logger = logging.getLogger("catalog_sync.change_bus")


@dataclass
class BusStats:
    """Counters describing what the bus did with incoming signals."""

    received: int = 0
    coalesced: int = 0
    suppressed: int = 0
    processed: int = 0
    applied: int = 0
    failed: int = 0


class ChangeBus:
    """Arbiter deciding how each change signal updates the store."""

    def __init__(
        self,
        store: CatalogStore,
        resolver: SourceResolver,
        cache: PersistentCache,
        editor_channel: EditorChannel,
        poll_interval: float | None = None,
        watch_interval: float | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.cache = cache
        self.editor_channel = editor_channel
        self.poll_interval = (
            Settings.POLL_INTERVAL if poll_interval is None else poll_interval
        )
        self.watch_interval = (
            Settings.STORAGE_WATCH_INTERVAL
            if watch_interval is None
            else watch_interval
        )
        self.stats = BusStats()

        self._pending: list[ChangeSignal] = []
        self._in_flight: ChangeSignal | None = None
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._editor_sessions = 0
        self._tasks: list[asyncio.Task[None]] = []
        self._timers: list[asyncio.TimerHandle] = []
        self._unsubscribe_editor: Any = None

    # ── Lifecycle ────────────────────────────────────────

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        """Attach the editor listener and launch worker, watcher and ticker."""
        if self.running:
            return
        self._unsubscribe_editor = self.editor_channel.subscribe(
            self._on_editor_announcement
        )
        # Signals submitted while stopped are picked up by the new worker
        if self._pending:
            self._wakeup.set()
        else:
            self._idle.set()
        self._tasks = [
            asyncio.create_task(self._worker(), name="change-bus-worker"),
            asyncio.create_task(
                self._watch_storage(), name="change-bus-storage-watch"
            ),
            asyncio.create_task(self._tick(), name="change-bus-poll"),
        ]
        logger.info(
            "Change bus started (poll=%.1fs, watch=%.1fs)",
            self.poll_interval,
            self.watch_interval,
        )

    async def stop(self) -> None:
        """Cancel background tasks and pending timers."""
        if self._unsubscribe_editor is not None:
            self._unsubscribe_editor()
            self._unsubscribe_editor = None
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Change bus stopped (%s)", self.stats)

    # ── Editor sessions ──────────────────────────────────

    @property
    def editor_active(self) -> bool:
        return self._editor_sessions > 0

    @contextmanager
    def editor_session(self) -> Iterator[None]:
        """Suppress freshness polling while the admin editor is open."""
        self._editor_sessions += 1
        try:
            yield
        finally:
            self._editor_sessions -= 1

    # ── Signal intake ────────────────────────────────────

    def submit(self, signal: ChangeSignal) -> None:
        """Queue *signal*, collapsing any queued signal of the same kind."""
        self.stats.received += 1
        for idx, pending in enumerate(self._pending):
            if pending.kind is signal.kind:
                del self._pending[idx]
                self.stats.coalesced += 1
                logger.debug("Coalesced pending %s signal", signal.kind.value)
                break
        self._pending.append(signal)
        self._idle.clear()
        self._wakeup.set()

    def schedule_reload(self, delay: float) -> None:
        """Submit one payload-less editor signal after *delay* seconds."""
        loop = asyncio.get_running_loop()
        self._timers = [t for t in self._timers if not t.cancelled()]
        self._timers.append(
            loop.call_later(
                delay, self.submit, ChangeSignal(SignalKind.EDITOR_EVENT)
            )
        )

    async def check_external_changes(self) -> bool:
        """Check the shared cache once; submit a signal on a catalog change."""
        try:
            keys = await asyncio.to_thread(self.cache.poll_external_changes)
        except sqlite3.Error as exc:
            logger.warning("Storage watch check failed: %s", exc)
            return False
        if Settings.CATALOG_KEY not in keys:
            return False
        logger.info("Catalog changed in another context")
        self.submit(ChangeSignal(SignalKind.EXTERNAL_STORAGE))
        return True

    async def drain(self) -> None:
        """Wait until no signal is queued or in flight.

        Returns at once when the bus is not running; queued signals then
        wait for the next :meth:`start`.
        """
        if not self.running:
            return
        await self._idle.wait()

    def _on_editor_announcement(self, products: list[Any] | None) -> None:
        payload = list(products) if products is not None else None
        self.submit(ChangeSignal(SignalKind.EDITOR_EVENT, payload))

    # ── Dispatch ─────────────────────────────────────────

    async def _dispatch(self, signal: ChangeSignal) -> bool:
        """Apply one signal; returns whether the store accepted a change."""
        if signal.kind is SignalKind.POLL_TICK and self.editor_active:
            self.stats.suppressed += 1
            logger.debug("Queued poll tick dropped, editor session active")
            return False

        if signal.kind is SignalKind.EDITOR_EVENT and signal.payload is not None:
            products, _ = ProductNormalizer.normalize(signal.payload)
            if tuple(products) == self.store.current().products:
                logger.debug("Editor payload matches current catalog")
                return False
            return self.store.apply_patch(products)

        snapshot = await self.resolver.load(refresh=True)
        return self.store.replace(snapshot)

    async def _worker(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            while self._pending:
                signal = self._pending.pop(0)
                self._in_flight = signal
                try:
                    if await self._dispatch(signal):
                        self.stats.applied += 1
                except Exception:
                    self.stats.failed += 1
                    logger.error(
                        "Failed to process %s signal",
                        signal.kind.value,
                        exc_info=True,
                    )
                finally:
                    self._in_flight = None
                    self.stats.processed += 1
            self._idle.set()

    async def _watch_storage(self) -> None:
        while True:
            await asyncio.sleep(self.watch_interval)
            await self.check_external_changes()

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            if self.editor_active:
                self.stats.suppressed += 1
                logger.debug("Poll tick suppressed, editor session active")
                continue
            self.submit(ChangeSignal(SignalKind.POLL_TICK))
