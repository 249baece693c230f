"""
Trace context for correlating logs across one poller tick or one command.

Provides:
- Unique trace IDs (6-char hex) per poller tick / command dispatch
- Context propagation via contextvars (async-safe)

Usage:
    with new_cycle():
        await poller.run_once()

    # In any module
    from allocator_governance.utils.trace_context import get_cycle_id
    logger.info(f"[{get_cycle_id()}] Resolving approval...")
"""

from __future__ import annotations

import secrets
from contextvars import ContextVar
from contextlib import contextmanager
from typing import Optional, Generator

_cycle_id: ContextVar[Optional[str]] = ContextVar("cycle_id", default=None)


def generate_cycle_id() -> str:
    """Return a new 6-character hex trace id."""
    return secrets.token_hex(3)


def get_cycle_id() -> str:
    """
    Get the current trace ID.

    Returns:
        Current trace ID, or "------" if none is active.
    """
    cycle_id = _cycle_id.get()
    return cycle_id if cycle_id else "------"


@contextmanager
def new_cycle() -> Generator[str, None, None]:
    """
    Context manager that scopes a fresh trace ID.

    Nested scopes restore the outer ID on exit.

    Yields:
        The new trace ID.
    """
    token = _cycle_id.set(generate_cycle_id())
    try:
        yield _cycle_id.get()
    finally:
        _cycle_id.reset(token)


@contextmanager
def ensure_cycle() -> Generator[str, None, None]:
    """Keep the active trace ID, or scope a fresh one when none is active."""
    current = _cycle_id.get()
    if current:
        yield current
        return
    with new_cycle() as cycle_id:
        yield cycle_id
