"""Event bus interface for publishing committed allocator events."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Type

from ..events.domain_events import DomainEvent


EventHandler = Callable[[DomainEvent], None]


class EventBus(ABC):
    """Event bus for decoupled projection consumers."""

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Publish a committed event to all subscribers of its type."""
        pass

    @abstractmethod
    def subscribe(self, event_type: Type[DomainEvent], callback: EventHandler) -> None:
        """
        Subscribe to an event type.

        Subscribing to DomainEvent receives every event.
        """
        pass

    @abstractmethod
    def unsubscribe(self, event_type: Type[DomainEvent], callback: EventHandler) -> None:
        pass
