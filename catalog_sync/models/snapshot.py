# catalog_sync/models/snapshot.py

"""Versioned catalog snapshot and change-signal models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from catalog_sync.models.product import Product


class CatalogSource(Enum):
    """Provenance of a snapshot's product list."""

    REMOTE = "remote"
    CACHE = "cache"
    EMPTY = "empty"


@dataclass(frozen=True)
class CatalogSnapshot:
    """The catalog of one context at a point in time.

    Snapshots produced by the resolver carry ``version=0``; the store
    stamps the real version when it accepts them.
    """

    products: tuple[Product, ...] = field(default_factory=tuple)
    version: int = 0
    source: CatalogSource = CatalogSource.EMPTY

    def __len__(self) -> int:
        return len(self.products)


class SignalKind(Enum):
    """Channels the change bus listens on."""

    EXTERNAL_STORAGE = "external-storage"
    EDITOR_EVENT = "editor-event"
    POLL_TICK = "poll-tick"


@dataclass(frozen=True)
class ChangeSignal:
    """A single change notification awaiting dispatch."""

    kind: SignalKind
    payload: list[Any] | None = None
