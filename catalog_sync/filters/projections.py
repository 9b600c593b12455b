# catalog_sync/filters/projections.py

"""Read-only derived views over a catalog snapshot.

Every function takes a sequence of products (usually
``snapshot.products``) and returns a new list; nothing here mutates its
input or depends on anything but its arguments.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from catalog_sync.config.settings import Settings
from catalog_sync.models.product import Product

logger = logging.getLogger("catalog_sync.projections")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; missing or invalid values are epoch."""
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class CatalogQuery:
    """Filter state of a listing page."""

    category: str = "all"
    brand: str = "all"
    search: str = ""
    sort_by: str = "newest"
    page: int = 1
    page_size: int = Settings.PAGE_SIZE


@dataclass
class QueryResult:
    """A cumulative "load more" page of a filtered listing."""

    products: list[Product] = field(
        default_factory=lambda: list[Product]()
    )
    total: int = 0
    has_more: bool = False


class CatalogProjection:
    """Pure query functions consumed by the rendering layer."""

    @staticmethod
    def by_category(
        products: Sequence[Product], category: str,
    ) -> list[Product]:
        """Exact category match; ``"all"`` returns everything."""
        if category == "all":
            return list(products)
        return [p for p in products if p.category == category]

    @staticmethod
    def by_brand(
        products: Sequence[Product], brand: str,
    ) -> list[Product]:
        """Exact brand match; ``"all"`` returns everything."""
        if brand == "all":
            return list(products)
        return [p for p in products if p.brand == brand]

    @staticmethod
    def by_gender(
        products: Sequence[Product], gender: str,
    ) -> list[Product]:
        """Gender match where ``unisex`` items belong to every gender."""
        if gender == "all":
            return list(products)
        return [
            p for p in products if p.gender in (gender, "unisex")
        ]

    @staticmethod
    def brands(products: Sequence[Product]) -> list[str]:
        """Sorted distinct non-empty brand names."""
        return sorted({p.brand for p in products if p.brand})

    @staticmethod
    def featured(products: Sequence[Product]) -> list[Product]:
        """Products flagged as featured."""
        return [p for p in products if p.featured]

    @staticmethod
    def trending(
        products: Sequence[Product],
        limit: int = Settings.TRENDING_LIMIT,
    ) -> list[Product]:
        """Trending products, capped at *limit*, in insertion order.

        With no trending products at all, the last *limit* products are
        shown newest-added first instead.
        """
        if limit <= 0:
            return []
        flagged = [p for p in products if p.trending]
        if flagged:
            return flagged[:limit]
        return list(reversed(products[-limit:]))

    @staticmethod
    def search(
        products: Sequence[Product], term: str,
    ) -> list[Product]:
        """Case-insensitive substring match on name, brand, category, model."""
        needle = term.strip().lower()
        if not needle:
            return list(products)
        return [
            p
            for p in products
            if any(
                needle in text.lower()
                for text in (p.name, p.brand, p.category, p.model)
            )
        ]

    @staticmethod
    def sort(
        products: Sequence[Product], key: str,
    ) -> list[Product]:
        """Stable sort by one of ``Settings.SORT_KEYS``.

        Raises ``ValueError`` for an unknown key.
        """
        if key == "newest":
            return sorted(
                products,
                key=lambda p: _parse_timestamp(p.created_at),
                reverse=True,
            )
        if key == "oldest":
            return sorted(
                products, key=lambda p: _parse_timestamp(p.created_at)
            )
        if key == "price-low":
            return sorted(products, key=lambda p: p.price)
        if key == "price-high":
            return sorted(products, key=lambda p: p.price, reverse=True)
        if key == "name":
            return sorted(products, key=lambda p: p.name.casefold())
        msg = f"Unknown sort key '{key}'"
        raise ValueError(msg)

    @staticmethod
    def paginate(
        products: Sequence[Product], page: int, page_size: int,
    ) -> list[Product]:
        """Cumulative pages: items ``[0, min(page * page_size, n))``."""
        if page < 1 or page_size < 1:
            return []
        return list(products[: min(page * page_size, len(products))])

    @staticmethod
    def primary_image(product: Product) -> str | None:
        """URL of the primary image, else the first one, else ``None``."""
        for image in product.images:
            if image.is_primary:
                return image.image_url
        if product.images:
            return product.images[0].image_url
        return None

    @staticmethod
    def apply_filters(
        products: Sequence[Product], query: CatalogQuery,
    ) -> QueryResult:
        """Run the listing pipeline: category, brand, search, sort, page."""
        filtered = CatalogProjection.by_category(products, query.category)
        filtered = CatalogProjection.by_brand(filtered, query.brand)
        filtered = CatalogProjection.search(filtered, query.search)
        filtered = CatalogProjection.sort(filtered, query.sort_by)
        page = CatalogProjection.paginate(
            filtered, query.page, query.page_size
        )
        logger.debug(
            "Query %s matched %d products, showing %d",
            query,
            len(filtered),
            len(page),
        )
        return QueryResult(
            products=page,
            total=len(filtered),
            has_more=len(page) < len(filtered),
        )
