# tests/test_projections.py

"""Tests for the pure catalog projections."""

import unittest

from catalog_sync.filters.projections import (
    CatalogProjection,
    CatalogQuery,
)
from catalog_sync.models.product import Product, ProductImage


def _p(
    pid: str,
    name: str = "",
    brand: str = "",
    category: str = "",
    price: float = 0.0,
    created_at: str = "",
    **kwargs: object,
) -> Product:
    return Product(
        id=pid,
        name=name or pid,
        brand=brand,
        category=category,
        price=price,
        created_at=created_at,
        **kwargs,  # type: ignore[arg-type]
    )


class TestFilters(unittest.TestCase):
    """Category, brand, gender and search filters."""

    def setUp(self) -> None:
        self.products = [
            _p("p1", "Aviator", "Ray-Ban", "sunglasses", gender="men"),
            _p("p2", "Cat Eye", "Vogue", "eyeglasses", gender="women"),
            _p("p3", "Round", "Ray-Ban", "eyeglasses"),
        ]

    def test_by_category(self) -> None:
        """Exact category match."""
        result = CatalogProjection.by_category(self.products, "eyeglasses")
        self.assertEqual([p.id for p in result], ["p2", "p3"])

    def test_by_category_all(self) -> None:
        """"all" returns every product."""
        self.assertEqual(
            CatalogProjection.by_category(self.products, "all"),
            self.products,
        )

    def test_by_category_is_case_sensitive(self) -> None:
        """Category matching does not fold case."""
        self.assertEqual(
            CatalogProjection.by_category(self.products, "Eyeglasses"), []
        )

    def test_by_brand(self) -> None:
        """Exact brand match."""
        result = CatalogProjection.by_brand(self.products, "Ray-Ban")
        self.assertEqual([p.id for p in result], ["p1", "p3"])

    def test_by_gender_includes_unisex(self) -> None:
        """Unisex products show up under every gender."""
        result = CatalogProjection.by_gender(self.products, "women")
        self.assertEqual([p.id for p in result], ["p2", "p3"])

    def test_brands_distinct_sorted(self) -> None:
        """Brand list is distinct and sorted, blanks skipped."""
        products = [*self.products, _p("p4")]
        self.assertEqual(
            CatalogProjection.brands(products), ["Ray-Ban", "Vogue"]
        )

    def test_search_case_insensitive(self) -> None:
        """Search spans name, brand and category ignoring case."""
        self.assertEqual(
            [p.id for p in CatalogProjection.search(self.products, "RAY")],
            ["p1", "p3"],
        )
        self.assertEqual(
            [p.id for p in CatalogProjection.search(self.products, "cat")],
            ["p2"],
        )

    def test_search_model_field(self) -> None:
        """The model field is searchable too."""
        products = [_p("p1", model="RB3025")]
        self.assertEqual(
            len(CatalogProjection.search(products, "rb30")), 1
        )

    def test_blank_search_returns_all(self) -> None:
        """Whitespace-only search terms do not filter."""
        self.assertEqual(
            len(CatalogProjection.search(self.products, "   ")), 3
        )


class TestFeaturedAndTrending(unittest.TestCase):
    """Featured and trending projections."""

    def test_featured(self) -> None:
        """Only featured products are returned."""
        products = [_p("a", featured=True), _p("b"), _p("c", featured=True)]
        self.assertEqual(
            [p.id for p in CatalogProjection.featured(products)], ["a", "c"]
        )

    def test_featured_empty(self) -> None:
        """No flagged products means an empty list."""
        self.assertEqual(CatalogProjection.featured([_p("a")]), [])

    def test_trending_flagged_in_order(self) -> None:
        """Flagged products keep insertion order."""
        products = [_p("a", trending=True), _p("b"), _p("c", trending=True)]
        self.assertEqual(
            [p.id for p in CatalogProjection.trending(products)], ["a", "c"]
        )

    def test_trending_fallback_last_reversed(self) -> None:
        """Without flags, the last N products are returned newest-added first."""
        products = [_p(f"p{i}") for i in range(1, 11)]
        result = CatalogProjection.trending(products, limit=4)
        self.assertEqual(
            [p.id for p in result], ["p10", "p9", "p8", "p7"]
        )

    def test_trending_flagged_capped(self) -> None:
        """At most *limit* flagged products are returned."""
        products = [_p(f"p{i}", trending=True) for i in range(30)]
        self.assertEqual(len(CatalogProjection.trending(products)), 20)

    def test_trending_fallback_short_list(self) -> None:
        """A catalog smaller than the limit is returned whole, reversed."""
        products = [_p("a"), _p("b")]
        self.assertEqual(
            [p.id for p in CatalogProjection.trending(products, 5)],
            ["b", "a"],
        )

    def test_trending_non_positive_limit(self) -> None:
        """A zero limit yields nothing."""
        self.assertEqual(CatalogProjection.trending([_p("a")], 0), [])


class TestSortAndPaginate(unittest.TestCase):
    """Sorting and cumulative pagination."""

    def setUp(self) -> None:
        self.products = [
            _p("a", "banana", price=300, created_at="2025-01-02T00:00:00Z"),
            _p("b", "Apple", price=100, created_at="2025-01-03T00:00:00Z"),
            _p("c", "cherry", price=200, created_at="2025-01-01T00:00:00Z"),
        ]

    def _ids(self, key: str) -> list[str]:
        return [p.id for p in CatalogProjection.sort(self.products, key)]

    def test_sort_newest(self) -> None:
        """Newest first by createdAt."""
        self.assertEqual(self._ids("newest"), ["b", "a", "c"])

    def test_sort_oldest(self) -> None:
        """Oldest first by createdAt."""
        self.assertEqual(self._ids("oldest"), ["c", "a", "b"])

    def test_sort_price(self) -> None:
        """Ascending and descending price."""
        self.assertEqual(self._ids("price-low"), ["b", "c", "a"])
        self.assertEqual(self._ids("price-high"), ["a", "c", "b"])

    def test_sort_name_ignores_case(self) -> None:
        """Name sort is case-insensitive."""
        self.assertEqual(self._ids("name"), ["b", "a", "c"])

    def test_sort_invalid_timestamp_is_epoch(self) -> None:
        """Unparseable createdAt sorts as the oldest."""
        products = [*self.products, _p("d", created_at="not a date")]
        self.assertEqual(
            CatalogProjection.sort(products, "oldest")[0].id, "d"
        )

    def test_sort_unknown_key(self) -> None:
        """Unknown sort keys raise ValueError."""
        with self.assertRaises(ValueError):
            CatalogProjection.sort(self.products, "rating")

    def test_sort_does_not_mutate(self) -> None:
        """The input order is untouched."""
        before = list(self.products)
        CatalogProjection.sort(self.products, "price-low")
        self.assertEqual(self.products, before)

    def test_paginate_cumulative(self) -> None:
        """Page 2 of 12 over 20 items shows all 20."""
        products = [_p(f"p{i}") for i in range(20)]
        self.assertEqual(len(CatalogProjection.paginate(products, 1, 12)), 12)
        self.assertEqual(len(CatalogProjection.paginate(products, 2, 12)), 20)
        self.assertEqual(len(CatalogProjection.paginate(products, 5, 12)), 20)

    def test_paginate_invalid(self) -> None:
        """Page or page size below one yields nothing."""
        products = [_p("a")]
        self.assertEqual(CatalogProjection.paginate(products, 0, 12), [])
        self.assertEqual(CatalogProjection.paginate(products, 1, 0), [])


class TestPrimaryImage(unittest.TestCase):
    """Primary image selection."""

    def test_flagged_primary_wins(self) -> None:
        """The image flagged primary is chosen over the first one."""
        product = _p(
            "a",
            images=(
                ProductImage("https://cdn/1.jpg"),
                ProductImage("https://cdn/2.jpg", is_primary=True),
            ),
        )
        self.assertEqual(
            CatalogProjection.primary_image(product), "https://cdn/2.jpg"
        )

    def test_first_image_fallback(self) -> None:
        """Without a flag, the first image is used."""
        product = _p("a", images=(ProductImage("https://cdn/1.jpg"),))
        self.assertEqual(
            CatalogProjection.primary_image(product), "https://cdn/1.jpg"
        )

    def test_no_images(self) -> None:
        """No images means no primary image."""
        self.assertIsNone(CatalogProjection.primary_image(_p("a")))


class TestApplyFilters(unittest.TestCase):
    """The full listing pipeline."""

    def setUp(self) -> None:
        self.products = [
            _p(
                f"p{i}",
                f"Frame {i:02d}",
                "Ray-Ban" if i % 2 else "Vogue",
                "eyeglasses",
                price=float(i),
            )
            for i in range(1, 21)
        ]

    def test_pipeline(self) -> None:
        """Brand filter, price sort and paging combine."""
        result = CatalogProjection.apply_filters(
            self.products,
            CatalogQuery(
                brand="Ray-Ban", sort_by="price-high", page=1, page_size=4
            ),
        )
        self.assertEqual(
            [p.id for p in result.products], ["p19", "p17", "p15", "p13"]
        )
        self.assertEqual(result.total, 10)
        self.assertTrue(result.has_more)

    def test_last_page_has_no_more(self) -> None:
        """Once everything is shown, has_more is False."""
        result = CatalogProjection.apply_filters(
            self.products, CatalogQuery(page=2, page_size=12)
        )
        self.assertEqual(len(result.products), 20)
        self.assertFalse(result.has_more)

    def test_no_match(self) -> None:
        """A search with no hits gives an empty result."""
        result = CatalogProjection.apply_filters(
            self.products, CatalogQuery(search="aviator")
        )
        self.assertEqual(result.products, [])
        self.assertEqual(result.total, 0)
        self.assertFalse(result.has_more)


if __name__ == "__main__":
    unittest.main()
