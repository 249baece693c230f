"""
Ok / Err result type.

The approval resolvers return a Result so the poller can try an ordered list
of strategies and log why each one declined, without exceptions for the
expected "no pending record" case.

Usage:
    result = await resolver.resolve(approval, actor_id)
    if result.is_ok():
        await command_bus.send(result.unwrap())
    else:
        logger.info(f"{resolver.name}: {result.error}")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value

    @property
    def error(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> None:
        """Raise the carried exception, or ValueError for a plain error value."""
        if isinstance(self.error, BaseException):
            raise self.error
        raise ValueError(f"Called unwrap() on Err: {self.error}")

    @property
    def value(self) -> None:
        return None


Result = Union[Ok[T], Err[E]]
