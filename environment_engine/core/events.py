"""Event emitters for the environment lifecycle."""

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from environment_engine.core.events_model import LifecycleEvent
from environment_engine.core.models import EnvironmentState

logger = logging.getLogger(__name__)


ALLOWED_EVENTS = {
    f"environment.{state.value.lower()}" for state in EnvironmentState
} | {"environment.database_ready"}


class EventEmitter(ABC):
    """Abstract event emitter."""

    @abstractmethod
    def emit(self, events: Iterable[LifecycleEvent]) -> None:
        """Emit one or more events."""
        pass


def _validate(event: LifecycleEvent) -> None:
    if event.event_type not in ALLOWED_EVENTS:
        raise ValueError(f"Invalid event type: {event.event_type}")
    if not event.project_name:
        raise ValueError("Event must have project_name")


class LoggingEventEmitter(EventEmitter):
    """Writes events to the module logger."""

    def emit(self, events: Iterable[LifecycleEvent]) -> None:
        for event in events:
            _validate(event)
            logger.info(f"[EVENT] {event.event_type} | project={event.project_name}")
            logger.debug(f"[EVENT] {event.event_type} metadata={event.metadata}")


class RecordingEventEmitter(EventEmitter):
    """Keeps events in memory (tests, diagnostics)."""

    def __init__(self):
        self.events = []

    def emit(self, events: Iterable[LifecycleEvent]) -> None:
        for event in events:
            _validate(event)
            self.events.append(event)

    @property
    def event_types(self):
        return [event.event_type for event in self.events]


class MultiEventEmitter:
    """Fan-out to multiple emitters."""

    def __init__(self, emitters: Iterable[EventEmitter]):
        self._emitters = list(emitters)

    def emit(self, events: Iterable[LifecycleEvent]):
        """Emit to all emitters."""
        events = list(events)
        for emitter in self._emitters:
            emitter.emit(events)