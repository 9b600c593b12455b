# catalog_sync/services/health_checker.py

"""Remote catalog API connectivity health checker."""

import asyncio
import logging
import time
from dataclasses import dataclass

from curl_cffi import requests as curl_requests

from catalog_sync.config.settings import Settings

logger = logging.getLogger("catalog_sync.health")

_SLOW_THRESHOLD_MS = 2000


@dataclass
class HealthResult:
    """Result of a single endpoint health check."""

    endpoint: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


def check_endpoint(base_url: str, path: str) -> HealthResult:
    """GET ``{base_url}{path}`` once and classify the outcome."""
    url = f"{base_url}{path}"
    start = time.monotonic()
    try:
        with curl_requests.Session(
            impersonate=Settings.IMPERSONATE_BROWSER
        ) as session:
            resp = session.get(
                url,
                headers=Settings.DEFAULT_HEADERS,
                timeout=Settings.HEALTH_TIMEOUT,
            )
        elapsed_ms = (time.monotonic() - start) * 1000

        if resp.status_code != 200:
            return HealthResult(
                endpoint=path,
                status="down",
                latency_ms=elapsed_ms,
                message=f"HTTP {resp.status_code}",
            )

        if elapsed_ms > _SLOW_THRESHOLD_MS:
            return HealthResult(
                endpoint=path,
                status="slow",
                latency_ms=elapsed_ms,
                message="High latency",
            )

        return HealthResult(
            endpoint=path,
            status="ok",
            latency_ms=elapsed_ms,
            message="",
        )

    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            endpoint=path,
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )


class HealthChecker:
    """Checks the API health and product endpoints concurrently."""

    ENDPOINTS: tuple[str, ...] = ("/health", "/products")

    def __init__(self, base_url: str | None = None) -> None:
        self.base_url = (base_url or Settings.API_BASE_URL).rstrip("/")

    async def check_all(self) -> list[HealthResult]:
        """Check every endpoint concurrently."""
        tasks = [
            asyncio.to_thread(check_endpoint, self.base_url, path)
            for path in self.ENDPOINTS
        ]
        results: list[HealthResult] = list(await asyncio.gather(*tasks))
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.endpoint,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
