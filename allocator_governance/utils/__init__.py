"""Utility modules."""

from .logging_setup import (
    setup_category_logging,
    setup_logging_from_config,
    flush_all_loggers,
    shutdown_logging,
    set_log_timezone,
    get_current_timestamp,
    get_logger,
)
from .structured_logger import StructuredLogger, LogCategory
from .trace_context import (
    get_cycle_id,
    new_cycle,
    ensure_cycle,
    generate_cycle_id,
)
from .result import Result, Ok, Err
from .timezone import (
    now_utc,
    now_epoch_ms,
    to_epoch_ms,
    zulu_to_epoch,
)

__all__ = [
    # Logging setup
    "setup_category_logging",
    "setup_logging_from_config",
    "flush_all_loggers",
    "shutdown_logging",
    "set_log_timezone",
    "get_current_timestamp",
    "get_logger",
    "StructuredLogger",
    "LogCategory",
    # Trace context
    "get_cycle_id",
    "new_cycle",
    "ensure_cycle",
    "generate_cycle_id",
    # Result type
    "Result",
    "Ok",
    "Err",
    # Time
    "now_utc",
    "now_epoch_ms",
    "to_epoch_ms",
    "zulu_to_epoch",
]
