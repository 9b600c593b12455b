# catalog_sync/models/product.py

"""Product data model shared by every catalog component."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ProductImage:
    """A single product image reference."""

    image_url: str
    is_primary: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the record shape kept in the persistent cache."""
        return {"image_url": self.image_url, "is_primary": self.is_primary}


@dataclass(frozen=True)
class Product:
    """A strictly-typed catalog product.

    Instances are only built by the normaliser, so ``price`` is always a
    float and the flags are real booleans. Equality is structural (minus
    the timestamps), which is what the store relies on to absorb
    identical reloads.
    """

    id: str
    name: str
    brand: str = ""
    category: str = ""
    model: str = ""
    price: float = 0.0
    featured: bool = False
    trending: bool = False
    images: tuple[ProductImage, ...] = field(default_factory=tuple)
    # Not part of equality: ingestion-time defaults differ per load.
    created_at: str = field(default="", compare=False)
    updated_at: str = field(default="", compare=False)
    gender: str = "unisex"
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-compatible record."""
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "model": self.model,
            "price": self.price,
            "featured": self.featured,
            "trending": self.trending,
            "images": [img.to_dict() for img in self.images],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "gender": self.gender,
            "description": self.description,
        }
