# catalog_sync/services/api_client.py

"""Remote catalog API client."""

import json
import logging
from typing import Any

from curl_cffi import requests as curl_requests

from catalog_sync.config.settings import Settings
from catalog_sync.models.exceptions import SourceUnavailable
from catalog_sync.storage.response_cache import ResponseCache

logger = logging.getLogger("catalog_sync.api_client")


class CatalogApiClient:
    """Blocking HTTP client for the storefront's product API.

    Every failure (transport error, non-200 status, undecodable body,
    payload without a ``products`` list) surfaces as
    :class:`SourceUnavailable`. Callers on the event loop run the
    methods through ``asyncio.to_thread``.
    """

    def __init__(self, base_url: str | None = None) -> None:
        self.base_url = (base_url or Settings.API_BASE_URL).rstrip("/")
        self.session = curl_requests.Session(
            impersonate=Settings.IMPERSONATE_BROWSER
        )
        self.cache = ResponseCache()
        self._request_timeout: int = Settings.REQUEST_TIMEOUT

    def _send(
        self,
        method: str,
        url: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Issue one request and return the response object."""
        try:
            if method == "GET":
                return self.session.get(
                    url,
                    headers=Settings.DEFAULT_HEADERS,
                    timeout=self._request_timeout,
                )
            if method == "POST":
                return self.session.post(
                    url,
                    headers=Settings.DEFAULT_HEADERS,
                    json=payload,
                    timeout=self._request_timeout,
                )
            if method == "PUT":
                return self.session.put(
                    url,
                    headers=Settings.DEFAULT_HEADERS,
                    json=payload,
                    timeout=self._request_timeout,
                )
            return self.session.delete(
                url,
                headers=Settings.DEFAULT_HEADERS,
                timeout=self._request_timeout,
            )
        except Exception as exc:
            raise SourceUnavailable(
                f"{method} {url} failed: {exc}"
            ) from exc

    @staticmethod
    def _decode(resp: Any, url: str) -> Any:
        """Decode a JSON body; an empty body decodes to ``None``."""
        if not resp.text:
            return None
        try:
            return json.loads(resp.text)
        except json.JSONDecodeError as exc:
            raise SourceUnavailable(
                f"Undecodable response from {url}: {exc}"
            ) from exc

    def _get_json(self, url: str) -> Any:
        """GET *url* once and decode the JSON body."""
        resp = self._send("GET", url)
        if resp.status_code != 200:
            raise SourceUnavailable(
                f"HTTP {resp.status_code} from {url}"
            )
        return self._decode(resp, url)

    @staticmethod
    def _extract_record(payload: Any) -> dict[str, Any] | None:
        """Product record from a write response (bare or ``{"product": ...}``)."""
        if isinstance(payload, dict) and isinstance(payload.get("product"), dict):
            return payload["product"]
        if isinstance(payload, dict) and (payload.get("id") or payload.get("_id")):
            return payload
        return None

    @staticmethod
    def _extract_products(payload: Any) -> list[Any]:
        """Pull the product list out of a ``{"products": [...]}`` body."""
        if not isinstance(payload, dict):
            raise SourceUnavailable("Malformed payload: not an object")
        products = payload.get("products")
        if not isinstance(products, list):
            raise SourceUnavailable(
                "Malformed payload: 'products' is not a list"
            )
        return products

    def get_products(self) -> list[Any]:
        """Return raw product records, served from the response cache
        while it is fresh."""
        key = ResponseCache.make_key("/products")
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        payload = self._get_json(f"{self.base_url}/products")
        products = self._extract_products(payload)
        self.cache.store(key, products)
        logger.info("Fetched %d products from API", len(products))
        return list(products)

    def fetch_direct(self, url: str | None = None) -> list[Any]:
        """Fetch the product list from *url*, bypassing the response cache."""
        target = url or Settings.FALLBACK_PRODUCTS_URL
        products = self._extract_products(self._get_json(target))
        logger.info(
            "Direct fetch returned %d products from %s",
            len(products),
            target,
        )
        return products

    # ── Writes ───────────────────────────────────────────

    def create_product(self, record: dict[str, Any]) -> dict[str, Any] | None:
        """POST a new product; returns the stored record if echoed back."""
        url = f"{self.base_url}/products"
        resp = self._send("POST", url, record)
        if resp.status_code not in (200, 201):
            raise SourceUnavailable(f"HTTP {resp.status_code} from {url}")
        self.cache.clear()
        logger.info("Created product %s on the API", record.get("id"))
        return self._extract_record(self._decode(resp, url))

    def update_product(
        self, product_id: str, record: dict[str, Any],
    ) -> dict[str, Any] | None:
        """PUT an updated product; returns the stored record if echoed back."""
        url = f"{self.base_url}/products/{product_id}"
        resp = self._send("PUT", url, record)
        if resp.status_code != 200:
            raise SourceUnavailable(f"HTTP {resp.status_code} from {url}")
        self.cache.clear()
        logger.info("Updated product %s on the API", product_id)
        return self._extract_record(self._decode(resp, url))

    def delete_product(self, product_id: str) -> bool:
        """DELETE a product. Returns ``False`` when the API did not know it.

        A 404 means the product is already gone, which is what the caller
        wanted, so it is not an error.
        """
        url = f"{self.base_url}/products/{product_id}"
        resp = self._send("DELETE", url)
        if resp.status_code == 404:
            logger.info("Product %s not found on the API", product_id)
            self.cache.clear()
            return False
        if resp.status_code not in (200, 204):
            raise SourceUnavailable(f"HTTP {resp.status_code} from {url}")
        self.cache.clear()
        logger.info("Deleted product %s on the API", product_id)
        return True

    def clear_cache(self) -> int:
        """Invalidate every cached API response."""
        return self.cache.clear()
