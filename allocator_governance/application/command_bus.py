"""
Command bus: routes command objects to their single async handler.

Usage:
    bus = CommandBus()
    bus.register(SubmitKYCResultHandler(repository, event_bus))
    await bus.send(SubmitKYCResultCommand(application_id, result))
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Generic, Type, TypeVar
import time

from ..utils.logging_setup import get_logger
from ..utils.trace_context import ensure_cycle


logger = get_logger(__name__)


@dataclass(frozen=True)
class Command:
    """Base class for commands."""

    @property
    def command_name(self) -> str:
        return type(self).__name__


C = TypeVar("C", bound=Command)


class CommandHandler(ABC, Generic[C]):
    """Handles exactly one command type."""

    command_type: Type[Command] = Command

    @abstractmethod
    async def handle(self, command: C) -> Any:
        pass


class CommandBus:
    """In-process dispatcher with one handler per command type."""

    def __init__(self):
        self._handlers: Dict[Type[Command], CommandHandler] = {}

    def register(self, handler: CommandHandler) -> None:
        """
        Register a handler for its command type.

        Raises:
            ValueError: If a handler is already registered for the type.
        """
        command_type = handler.command_type
        if command_type in self._handlers:
            raise ValueError(f"Handler already registered for {command_type.__name__}")
        self._handlers[command_type] = handler
        logger.debug(f"Registered {type(handler).__name__} for {command_type.__name__}")

    def has_handler(self, command_type: Type[Command]) -> bool:
        return command_type in self._handlers

    async def send(self, command: Command) -> Any:
        """
        Dispatch a command to its handler.

        Handler exceptions propagate to the caller.

        Raises:
            LookupError: If no handler is registered for the command type.
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise LookupError(f"No handler registered for {command.command_name}")

        with ensure_cycle() as cycle_id:
            start = time.perf_counter()
            logger.info(f"[{cycle_id}] Dispatching {command.command_name}")
            result = await handler.handle(command)
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.debug(f"[{cycle_id}] {command.command_name} handled in {elapsed_ms:.1f}ms")
            return result
