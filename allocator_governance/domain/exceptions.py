"""
Domain exceptions for the allocator governance service.

Implements a hierarchy distinguishing between recoverable errors
(a rejected command, a lost version race, an RPC glitch) and fatal
errors (bad configuration, a corrupted event stream) that require
operator intervention.
"""

from __future__ import annotations

from typing import Any, Dict


class GovernanceError(Exception):
    """Base class for all allocator governance exceptions."""
    pass


class RecoverableError(GovernanceError):
    """
    Errors the service can recover from without restarting.

    Examples:
    - A command invoked in the wrong lifecycle phase
    - An optimistic concurrency conflict (caller may retry)
    - A failed chain RPC call (next poller tick retries)
    """
    pass


class FatalError(GovernanceError):
    """
    Critical errors requiring operator intervention.

    Examples:
    - Invalid configuration
    - An event stream that cannot be replayed
    """
    pass


class ApplicationError(RecoverableError):
    """
    Client-facing business error with an HTTP status and a stable error code.
    """

    def __init__(self, status_code: int, error_code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message

    def to_response(self) -> Dict[str, Any]:
        """Body reported to callers of the command layer."""
        return {
            "status": str(self.status_code),
            "errorCode": self.error_code,
            "message": self.message,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApplicationError):
            return NotImplemented
        return (
            self.status_code == other.status_code
            and self.error_code == other.error_code
            and self.message == other.message
        )

    def __hash__(self) -> int:
        return hash((self.status_code, self.error_code, self.message))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.status_code}, {self.error_code!r}, {self.message!r})"


class InvalidPhaseError(ApplicationError):
    """Operation invoked while the application is in a non-permitted status."""

    STATUS_CODE = 400
    ERROR_CODE = "5308"
    MESSAGE = "Invalid operation for the current phase"

    def __init__(self) -> None:
        super().__init__(self.STATUS_CODE, self.ERROR_CODE, self.MESSAGE)


class ApplicationNotFoundError(ApplicationError):
    """No aggregate exists for the requested identifier."""

    def __init__(self, guid: str):
        super().__init__(404, "5404", f"Application with id {guid} not found")
        self.guid = guid


class ConcurrencyError(RecoverableError):
    """Stored aggregate version advanced past the version the caller loaded."""

    def __init__(self, guid: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Concurrency conflict for allocator {guid!r}: "
            f"expected version {expected_version}, stored version {actual_version}"
        )
        self.guid = guid
        self.expected_version = expected_version
        self.actual_version = actual_version


class ResolutionError(RecoverableError):
    """An on-chain approval could not be matched to a pending record."""
    pass


class ChainError(RecoverableError):
    """EVM JSON-RPC transport or log decoding failure."""
    pass


class ReplayIntegrityError(FatalError):
    """An event stream contains an event the aggregate cannot apply."""
    pass


class ConfigurationError(FatalError):
    """Invalid service configuration."""
    pass
