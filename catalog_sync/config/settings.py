# catalog_sync/config/settings.py

"""Central configuration for the catalog_sync engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the catalog_sync engine."""

    # --- Remote API ---
    API_BASE_URL: str = os.getenv(
        "CATALOG_API_URL", "http://localhost:3001/api"
    ).rstrip("/")
    FALLBACK_PRODUCTS_URL: str = os.getenv(
        "CATALOG_FALLBACK_URL", f"{API_BASE_URL}/products"
    )
    REQUEST_TIMEOUT: int = 10           # Seconds before a request times out
    HEALTH_TIMEOUT: int = 5             # Seconds for the /health check
    API_CACHE_TTL: float = 10.0         # Response cache lifetime (secs)

    # --- Synchronisation ---
    CATALOG_KEY: str = "adminPanelData"  # Persistent cache document key
    POLL_INTERVAL: float = float(
        os.getenv("CATALOG_POLL_INTERVAL", "30")
    )
    STORAGE_WATCH_INTERVAL: float = 1.0  # Cross-context change check (secs)
    DELETE_RELOAD_DELAY: float = 0.5     # Reconcile after remove (secs)

    # --- Projections ---
    TRENDING_LIMIT: int = 20
    PAGE_SIZE: int = 12
    SORT_KEYS: list[str] = [
        "newest",
        "oldest",
        "price-low",
        "price-high",
        "name",
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": "application/json",
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    CACHE_DB_PATH: Path = Path(
        os.getenv(
            "CATALOG_CACHE_DB",
            str(BASE_DIR / "data" / "catalog_cache.db"),
        )
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("CATALOG_LOG_LEVEL", "WARNING")  # Console only
    LOG_RETENTION: int = int(os.getenv("CATALOG_LOG_RETENTION", "20"))
