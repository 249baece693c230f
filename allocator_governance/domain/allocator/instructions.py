"""
Instruction ledger: the ordered funding tranches of an application.

The ledger is an immutable tuple of ApplicationInstruction. Every helper
returns a new tuple; the active instruction is always the last entry and
the grant cycle count is the ledger length.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from ...utils.timezone import zulu_to_epoch
from .types import InstructionStatus


@dataclass(frozen=True)
class ApplicationInstruction:
    """One funding tranche and its lifecycle."""
    method: str
    datacap_amount: float
    start_timestamp: Optional[int] = None
    end_timestamp: Optional[int] = None
    allocated_timestamp: Optional[int] = None
    status: InstructionStatus = InstructionStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "datacap_amount": self.datacap_amount,
            "start_timestamp": self.start_timestamp,
            "end_timestamp": self.end_timestamp,
            "allocated_timestamp": self.allocated_timestamp,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApplicationInstruction":
        return cls(
            method=data.get("method", ""),
            datacap_amount=data.get("datacap_amount", 0),
            start_timestamp=data.get("start_timestamp"),
            end_timestamp=data.get("end_timestamp"),
            allocated_timestamp=data.get("allocated_timestamp"),
            status=InstructionStatus(data.get("status", InstructionStatus.PENDING.value)),
        )


Ledger = Tuple[ApplicationInstruction, ...]


def active_instruction(ledger: Ledger) -> Optional[ApplicationInstruction]:
    """Return the active (last) instruction, or None for an empty ledger."""
    return ledger[-1] if ledger else None


def replace_active(ledger: Ledger, **changes: Any) -> Ledger:
    """Return a ledger whose active instruction has the given fields changed."""
    if not ledger:
        return ledger
    return ledger[:-1] + (replace(ledger[-1], **changes),)


def grant_active(ledger: Ledger, allocated_at: int) -> Ledger:
    """Mark the active instruction GRANTED at the given time."""
    return replace_active(
        ledger,
        status=InstructionStatus.GRANTED,
        allocated_timestamp=allocated_at,
    )


def deny_active(ledger: Ledger) -> Ledger:
    """Mark the active instruction DENIED."""
    return replace_active(ledger, status=InstructionStatus.DENIED)


def append_refresh(ledger: Ledger, started_at: int) -> Ledger:
    """
    Append the next tranche for a datacap refresh.

    The new tranche requests double the previous tranche's amount
    with the same method.
    """
    previous = active_instruction(ledger)
    method = previous.method if previous else ""
    amount = previous.datacap_amount * 2 if previous else 0
    return ledger + (
        ApplicationInstruction(
            method=method,
            datacap_amount=amount,
            start_timestamp=started_at,
            status=InstructionStatus.PENDING,
        ),
    )


def ledger_from_audits(audits: Iterable[Any], method: str) -> Ledger:
    """
    Rebuild a ledger from the audit history of an application file.

    Each audit becomes one instruction. Missing outcomes default to PENDING,
    missing amounts to 0, and missing timestamps stay None.
    """
    return tuple(
        ApplicationInstruction(
            method=method,
            datacap_amount=audit.datacap_amount or 0,
            start_timestamp=zulu_to_epoch(audit.started),
            end_timestamp=zulu_to_epoch(audit.ended),
            allocated_timestamp=zulu_to_epoch(audit.dc_allocated),
            status=audit.outcome or InstructionStatus.PENDING,
        )
        for audit in audits
    )


def ledger_to_list(ledger: Ledger) -> list:
    return [instruction.to_dict() for instruction in ledger]


def ledger_from_list(items: Iterable[Dict[str, Any]]) -> Ledger:
    return tuple(ApplicationInstruction.from_dict(item) for item in items)
