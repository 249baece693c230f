"""Simple in-memory event bus for committed allocator events."""

from __future__ import annotations
from typing import Dict, List, Type

from ..domain.events.domain_events import DomainEvent
from ..domain.interfaces.event_bus import EventBus, EventHandler
from ..utils.logging_setup import get_logger


logger = get_logger(__name__)


class SimpleEventBus(EventBus):
    """
    Simple in-memory event bus implementation.

    Subscribers of DomainEvent receive every event; subscribers of a concrete
    event class receive only that class.
    """

    def __init__(self):
        self._subscribers: Dict[Type[DomainEvent], List[EventHandler]] = {}

    def publish(self, event: DomainEvent) -> None:
        """
        Publish an event to all subscribers.

        A failing subscriber is logged and does not stop delivery to the rest.
        """
        logger.debug(f"Publishing event: {event.event_name} ({event.aggregate_id})")

        subscribers = self._subscribers.get(type(event), []) + self._subscribers.get(DomainEvent, [])
        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error in event subscriber: {e}", exc_info=True)

    def subscribe(self, event_type: Type[DomainEvent], callback: EventHandler) -> None:
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []

        self._subscribers[event_type].append(callback)
        logger.debug(f"Subscribed to {event_type.__name__}")

    def unsubscribe(self, event_type: Type[DomainEvent], callback: EventHandler) -> None:
        if event_type in self._subscribers:
            try:
                self._subscribers[event_type].remove(callback)
                logger.debug(f"Unsubscribed from {event_type.__name__}")
            except ValueError:
                logger.warning(f"Callback not found for {event_type.__name__}")
