"""
Per-category log files for the governance service.

Modules never configure handlers themselves; they call get_logger(__name__)
and are routed by package path to one of four category loggers:

- system: startup, shutdown, configuration, command bus
- domain: aggregate transitions
- chain:  EVM RPC calls, the meta-allocator poller and its resolvers
- store:  event store, read-model lookups, migrations

Each category writes to logs/<date>/allocgov_<env>_<category>_<date>.log
through a QueueListener so a slow disk never stalls the event loop. Lines
are JSON by default and use the same keys as StructuredLogger entries,
which pass through unchanged.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from queue import Queue
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from config.models import LoggingConfig

from .trace_context import get_cycle_id

LOGGER_PREFIX = "allocgov"

CATEGORIES = ("system", "domain", "chain", "store")

# Longest prefix wins; checked in order
MODULE_ROUTING: Tuple[Tuple[str, str], ...] = (
    ("allocator_governance.infrastructure.chain", "chain"),
    ("allocator_governance.application.services", "chain"),
    ("allocator_governance.infrastructure.persistence", "store"),
    ("migrations", "store"),
    ("allocator_governance.domain", "domain"),
)

_log_timezone: Optional[ZoneInfo] = None
_category_loggers: Dict[str, logging.Logger] = {}
_queue_listeners: List[logging.handlers.QueueListener] = []


def set_log_timezone(tz: Optional[str] = None) -> None:
    """Use the named zone for log timestamps; None or "local" means system time."""
    global _log_timezone
    _log_timezone = None if tz in (None, "local") else ZoneInfo(tz)


def get_current_timestamp() -> str:
    return datetime.now(_log_timezone).isoformat()


def _category_of(module_name: str) -> str:
    for prefix, category in MODULE_ROUTING:
        if module_name.startswith(prefix):
            return category
    return "system"


def get_logger(module_name: str) -> logging.Logger:
    """
    Logger for a module, routed to its category.

    Example:
        logger = get_logger(__name__)
        logger.info(f"Loaded allocator {guid} at version {version}")
    """
    return logging.getLogger(f"{LOGGER_PREFIX}.{_category_of(module_name)}")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, keyed like StructuredLogger entries."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if message.startswith("{") and message.endswith("}") and not record.exc_info:
            # Already a StructuredLogger entry
            return message

        entry = {
            "timestamp": get_current_timestamp(),
            "level": record.levelname,
            "category": record.name.rsplit(".", 1)[-1].upper(),
            "trace_id": get_cycle_id(),
            "message": message,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """[LEVEL  ] [category] [trace] message, coloured on a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        level = f"[{record.levelname:7}]"
        if self.use_colors:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"
        category = record.name.rsplit(".", 1)[-1]
        text = f"{level} [{category}] [{get_cycle_id()}] {record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def _file_handler(path: Path, level: int, json_files: bool) -> logging.Handler:
    handler = logging.FileHandler(str(path), mode="a", encoding="utf-8")
    handler.setLevel(level)
    if json_files:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        ))
    return handler


def setup_category_logging(
    env: str,
    log_dir: str = "./logs",
    level: str = "INFO",
    console: bool = False,
    verbose: bool = False,
    json_files: bool = True,
) -> Dict[str, logging.Logger]:
    """
    (Re)configure the four category loggers.

    Args:
        env: Environment name, used in file names (dev/prod/demo).
        log_dir: Base directory; a subdirectory per day is created.
        level: Level for file output.
        console: Also log to stderr.
        verbose: Force DEBUG everywhere.
        json_files: JSON lines (True) or plain text (False).

    Returns:
        Category name to logger.
    """
    shutdown_logging()

    effective = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    date_str = datetime.now(_log_timezone).strftime("%Y-%m-%d")
    day_dir = Path(log_dir) / date_str
    day_dir.mkdir(parents=True, exist_ok=True)

    for category in CATEGORIES:
        logger = logging.getLogger(f"{LOGGER_PREFIX}.{category}")
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(effective)
        logger.propagate = False

        file_handler = _file_handler(
            day_dir / f"{LOGGER_PREFIX}_{env}_{category}_{date_str}.log", effective, json_files
        )
        log_queue: Queue = Queue(-1)
        logger.addHandler(logging.handlers.QueueHandler(log_queue))
        listener = logging.handlers.QueueListener(log_queue, file_handler, respect_handler_level=True)
        listener.start()
        _queue_listeners.append(listener)

        if console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(ConsoleFormatter(use_colors=sys.stderr.isatty()))
            console_handler.setLevel(effective)
            logger.addHandler(console_handler)

        _category_loggers[category] = logger

    return dict(_category_loggers)


def setup_logging_from_config(
    config: LoggingConfig,
    env: str,
    console: bool = False,
    verbose: bool = False,
) -> Dict[str, logging.Logger]:
    set_log_timezone(config.timezone)
    return setup_category_logging(
        env=env,
        log_dir=config.dir,
        level=config.level,
        console=console,
        verbose=verbose,
        json_files=config.json,
    )


def flush_all_loggers() -> None:
    for logger in _category_loggers.values():
        for handler in logger.handlers:
            handler.flush()


def shutdown_logging() -> None:
    """Stop the queue listeners, draining anything still queued to disk."""
    for listener in _queue_listeners:
        listener.stop()
    _queue_listeners.clear()
