"""
Categorised JSON audit entries.

Every committed domain event (LIFECYCLE), every processed on-chain approval
(CHAIN) and service start/stop (SYSTEM) is written as one JSON line that
carries the active trace id, so an approval can be followed from the
poller tick to the events it produced.
"""

from __future__ import annotations
import json
import logging
from typing import Dict, Any
from enum import Enum

from .timezone import now_utc
from .trace_context import get_cycle_id


class LogCategory(Enum):
    SYSTEM = "SYSTEM"
    LIFECYCLE = "LIFECYCLE"
    CHAIN = "CHAIN"


class StructuredLogger:
    """
    Entry schema:
    {
        "timestamp": "2024-03-15T10:30:45.123+00:00",
        "level": "INFO",
        "category": "LIFECYCLE",
        "trace_id": "a1b2c3",
        "message": "KYCApproved",
        "data": {"aggregate_id": "...", "version": 3}
    }
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log(
        self,
        level: int,
        category: LogCategory,
        message: str,
        data: Dict[str, Any] | None = None,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        entry: Dict[str, Any] = {
            "timestamp": now_utc().isoformat(),
            "level": logging.getLevelName(level),
            "category": category.value,
            "trace_id": get_cycle_id(),
            "message": message,
        }
        if data:
            entry["data"] = data
        self.logger.log(level, json.dumps(entry, default=str))

    def info(self, category: LogCategory, message: str, data: Dict[str, Any] | None = None) -> None:
        self.log(logging.INFO, category, message, data)

    def warning(self, category: LogCategory, message: str, data: Dict[str, Any] | None = None) -> None:
        self.log(logging.WARNING, category, message, data)

    def error(self, category: LogCategory, message: str, data: Dict[str, Any] | None = None) -> None:
        self.log(logging.ERROR, category, message, data)
