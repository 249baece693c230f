"""Unit tests for instruction ledger helpers and zulu timestamp parsing."""

import pytest

from allocator_governance.domain.allocator.instructions import (
    ApplicationInstruction,
    active_instruction,
    append_refresh,
    deny_active,
    grant_active,
    ledger_from_list,
    ledger_to_list,
)
from allocator_governance.domain.allocator.types import InstructionStatus
from allocator_governance.utils.timezone import zulu_to_epoch


LEDGER = (
    ApplicationInstruction(method="RKH", datacap_amount=5, status=InstructionStatus.GRANTED),
    ApplicationInstruction(method="RKH", datacap_amount=10, start_timestamp=100),
)


class TestLedgerHelpers:
    def test_active_is_last(self) -> None:
        assert active_instruction(LEDGER).datacap_amount == 10
        assert active_instruction(()) is None

    def test_grant_touches_only_active(self) -> None:
        ledger = grant_active(LEDGER, 999)

        assert ledger[0] == LEDGER[0]
        assert ledger[1].status == InstructionStatus.GRANTED
        assert ledger[1].allocated_timestamp == 999
        assert LEDGER[1].status == InstructionStatus.PENDING

    def test_deny(self) -> None:
        assert deny_active(LEDGER)[-1].status == InstructionStatus.DENIED

    def test_append_refresh_doubles(self) -> None:
        ledger = append_refresh(LEDGER, 500)

        assert len(ledger) == 3
        assert ledger[-1] == ApplicationInstruction(
            method="RKH", datacap_amount=20, start_timestamp=500, status=InstructionStatus.PENDING
        )

    def test_list_round_trip_keeps_status(self) -> None:
        assert ledger_from_list(ledger_to_list(LEDGER)) == LEDGER


class TestZuluToEpoch:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1970-01-01T00:00:01.000Z", 1000),
            ("2021-01-01T00:00:00Z", 1609459200000),
            ("2021-01-01T01:00:00+01:00", 1609459200000),
        ],
    )
    def test_parses(self, value, expected) -> None:
        assert zulu_to_epoch(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", "2021-13-45T00:00:00Z"])
    def test_absent_or_invalid_is_none(self, value) -> None:
        assert zulu_to_epoch(value) is None
