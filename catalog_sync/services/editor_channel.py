# catalog_sync/services/editor_channel.py

"""In-process broadcast of admin editor announcements."""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger("catalog_sync.editor")

EditorListener = Callable[[list[Any] | None], None]


class EditorChannel:
    """Same-context event bus for "catalog edited" announcements.

    An announcement optionally carries the full updated product list.
    Listeners run synchronously in registration order.
    """

    def __init__(self) -> None:
        self._listeners: list[EditorListener] = []

    def subscribe(self, listener: EditorListener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, products: list[Any] | None = None) -> None:
        """Announce an edit to every listener."""
        logger.debug(
            "Editor announcement (%s)",
            "no payload" if products is None else f"{len(products)} products",
        )
        for listener in list(self._listeners):
            try:
                listener(products)
            except Exception:
                logger.error("Editor listener failed", exc_info=True)
