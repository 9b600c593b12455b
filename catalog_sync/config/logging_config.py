# catalog_sync/config/logging_config.py

"""Per-run timestamped logging configuration for catalog_sync.

Each application launch creates a dedicated log file inside ``logs/``,
named with the launch timestamp (e.g. ``logs/run_20260214_153045.log``).
Only the newest ``Settings.LOG_RETENTION`` run logs are kept.

Several catalog contexts can share one process (and one log file), so
every record carries the id of the context that emitted it. The id lives
in a :class:`~contextvars.ContextVar`: tasks and worker threads started
inside :func:`log_context` inherit it.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path

from catalog_sync.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(context)s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(context)s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NO_CONTEXT = "-"

current_context: ContextVar[str] = ContextVar(
    "catalog_context", default=_NO_CONTEXT
)


class ContextFilter(logging.Filter):
    """Stamp each record with the active catalog context id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = current_context.get()
        return True


@contextmanager
def log_context(context_id: str) -> Iterator[None]:
    """Attribute records logged inside the block to *context_id*."""
    token = current_context.set(context_id)
    try:
        yield
    finally:
        current_context.reset(token)


def resolve_level(name: str | None) -> int:
    """Map a level name such as ``"info"`` to its number; unknown names
    fall back to WARNING."""
    if not name:
        return logging.WARNING
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.WARNING


def prune_old_logs(logs_dir: Path, keep: int) -> list[Path]:
    """Delete all but the newest *keep* run logs; returns what was removed."""
    runs = sorted(logs_dir.glob("run_*.log"))
    stale = runs[:-keep] if keep > 0 else runs
    removed: list[Path] = []
    for path in stale:
        try:
            path.unlink()
        except OSError as exc:
            logging.getLogger("catalog_sync").debug(
                "Could not remove old log %s: %s", path, exc
            )
            continue
        removed.append(path)
    return removed


def setup_logging(console_level: str | None = None) -> Path:
    """Initialise the root ``catalog_sync`` logger for the current run.

    Args:
        console_level: Level name for stderr output. Defaults to
            ``Settings.LOG_LEVEL``; the file always receives DEBUG.

    Returns:
        The :class:`~pathlib.Path` to the log file created for this run.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"run_{timestamp}.log"

    root_logger = logging.getLogger("catalog_sync")
    root_logger.setLevel(logging.DEBUG)

    # Repeated calls (tests, watch restarts) keep the first handlers
    if root_logger.handlers:
        return log_file

    # Older runs go before this run's file exists
    removed = prune_old_logs(logs_dir, Settings.LOG_RETENTION - 1)

    context_filter = ContextFilter()

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.addFilter(context_filter)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(
        resolve_level(console_level or Settings.LOG_LEVEL)
    )
    console_handler.addFilter(context_filter)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    root_logger.info("Logging initialised, log file: %s", log_file)
    if removed:
        root_logger.debug("Pruned %d old run logs", len(removed))

    return log_file
