# catalog_sync/filters/product_normalizer.py

"""Ingestion-boundary normalisation of loosely-typed product records."""

import logging
import re
from datetime import datetime, timezone
from typing import Any

from catalog_sync.models.product import Product, ProductImage

logger = logging.getLogger("catalog_sync.normalizer")

_TRUE_STRINGS: frozenset[str] = frozenset({"1", "true", "yes", "on"})

_PRICE_RE = re.compile(r"\d+(?:\.\d+)?")


def coerce_bool(value: Any) -> bool:
    """Map ``1`` / ``"1"`` / ``"true"`` / ``True`` style values to a bool.

    Anything unrecognised (``"0"``, ``"false"``, ``None``, ``""``) is
    ``False``; a non-empty string is *not* truthy by itself.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def coerce_price(value: Any) -> float:
    """Extract a non-negative float price from a number or a string.

    Strings like ``"499"`` or ``"₹ 1,299.00"`` are accepted; anything
    without digits becomes ``0.0``.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return max(float(value), 0.0)
    if isinstance(value, str):
        match = _PRICE_RE.search(value.replace(",", ""))
        return float(match.group()) if match else 0.0
    return 0.0


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _coerce_images(raw: dict[str, Any]) -> tuple[ProductImage, ...]:
    """Build the image tuple, backfilling from a lone ``image_url``."""
    images = raw.get("images")
    if not isinstance(images, list):
        single = raw.get("image_url")
        if isinstance(single, str) and single.strip():
            return (ProductImage(image_url=single.strip()),)
        return ()

    result: list[ProductImage] = []
    for entry in images:
        if isinstance(entry, str):
            if entry.strip():
                result.append(ProductImage(image_url=entry.strip()))
        elif isinstance(entry, dict):
            url = entry.get("image_url") or entry.get("url")
            if isinstance(url, str) and url.strip():
                result.append(
                    ProductImage(
                        image_url=url.strip(),
                        is_primary=coerce_bool(entry.get("is_primary")),
                    )
                )
    return tuple(result)


def _timestamp(raw: dict[str, Any], camel: str, snake: str, default: str) -> str:
    value = raw.get(camel) or raw.get(snake)
    return str(value) if value else default


def normalize_product(
    raw: dict[str, Any] | Product,
    now: str | None = None,
) -> Product | None:
    """Turn one raw record into a strict :class:`Product`.

    Returns ``None`` for records without an ``id`` (or ``_id``).
    Already-normalised products pass through unchanged.
    """
    if isinstance(raw, Product):
        return raw
    if not isinstance(raw, dict):
        return None

    product_id = _coerce_text(raw.get("id") or raw.get("_id"))
    if not product_id:
        return None

    stamp = now or datetime.now(timezone.utc).isoformat()
    created = _timestamp(raw, "createdAt", "created_at", stamp)
    return Product(
        id=product_id,
        name=_coerce_text(raw.get("name")),
        brand=_coerce_text(raw.get("brand")),
        category=_coerce_text(raw.get("category")),
        model=_coerce_text(raw.get("model")),
        price=coerce_price(raw.get("price")),
        featured=coerce_bool(raw.get("featured")),
        trending=coerce_bool(raw.get("trending")),
        images=_coerce_images(raw),
        created_at=created,
        updated_at=_timestamp(raw, "updatedAt", "updated_at", created),
        gender=_coerce_text(raw.get("gender")) or "unisex",
        description=_coerce_text(raw.get("description")),
    )


class ProductNormalizer:
    """Normalise whole product lists and enforce id uniqueness."""

    @staticmethod
    def normalize(
        records: list[Any],
    ) -> tuple[list[Product], int]:
        """Normalise *records*, dropping id-less and duplicate-id entries.

        The first occurrence of an id wins. Returns the products and the
        count of dropped records.
        """
        now = datetime.now(timezone.utc).isoformat()
        seen: set[str] = set()
        products: list[Product] = []
        dropped = 0

        for raw in records:
            product = normalize_product(raw, now)
            if product is None:
                logger.debug("Dropped record without id: %r", raw)
                dropped += 1
                continue
            if product.id in seen:
                logger.debug(
                    "Dropped duplicate product id %s", product.id
                )
                dropped += 1
                continue
            seen.add(product.id)
            products.append(product)

        if dropped:
            logger.info(
                "Normalisation dropped %d invalid or duplicate records",
                dropped,
            )

        return products, dropped
