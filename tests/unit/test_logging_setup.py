"""Tests for category routing and per-category log files."""

import json
import logging
import sys

import pytest

from allocator_governance.utils.logging_setup import (
    JSONFormatter,
    get_logger,
    setup_category_logging,
    shutdown_logging,
)
from allocator_governance.utils.structured_logger import LogCategory, StructuredLogger
from allocator_governance.utils.trace_context import new_cycle


@pytest.mark.parametrize(
    "module, category",
    [
        ("allocator_governance.infrastructure.chain.evm_client", "chain"),
        ("allocator_governance.application.services.approval_poller", "chain"),
        ("allocator_governance.infrastructure.persistence.event_store", "store"),
        ("migrations.runner", "store"),
        ("allocator_governance.domain.allocator.allocator", "domain"),
        ("allocator_governance.application.command_bus", "system"),
        ("main", "system"),
    ],
)
def test_module_routing(module, category) -> None:
    assert get_logger(module).name == f"allocgov.{category}"


def test_files_per_category(tmp_path) -> None:
    loggers = setup_category_logging(env="test", log_dir=str(tmp_path))
    try:
        with new_cycle() as trace_id:
            StructuredLogger(loggers["domain"]).info(
                LogCategory.LIFECYCLE, "KYCApproved", {"aggregate_id": "a-1"}
            )
            loggers["store"].info("Saved 1 event")
    finally:
        shutdown_logging()

    [day_dir] = list(tmp_path.iterdir())
    date_str = day_dir.name
    assert sorted(p.name for p in day_dir.iterdir()) == sorted(
        f"allocgov_test_{c}_{date_str}.log" for c in ("system", "domain", "chain", "store")
    )

    domain_entry = json.loads((day_dir / f"allocgov_test_domain_{date_str}.log").read_text())
    assert domain_entry["category"] == "LIFECYCLE"
    assert domain_entry["trace_id"] == trace_id
    assert domain_entry["data"] == {"aggregate_id": "a-1"}

    store_entry = json.loads((day_dir / f"allocgov_test_store_{date_str}.log").read_text())
    assert store_entry["category"] == "STORE"
    assert store_entry["message"] == "Saved 1 event"
    assert store_entry["trace_id"] == trace_id


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("rpc down")
    except RuntimeError:
        record = logging.LogRecord(
            "allocgov.chain", logging.ERROR, __file__, 1, "Poll failed", None, sys.exc_info()
        )

    entry = json.loads(JSONFormatter().format(record))

    assert entry["category"] == "CHAIN"
    assert entry["message"] == "Poll failed"
    assert "RuntimeError: rpc down" in entry["exception"]
