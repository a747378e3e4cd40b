"""Route runtime events into the standard ``logging`` hierarchy.

The learning runtime emits typed events and never logs by itself. This
subscriber is the observability collaborator that turns those events into
log records:

- ExampleAddedEvent         -> DEBUG
- RetrainRequestedEvent     -> INFO
- ConfidenceOutOfRangeEvent -> WARNING
- InferenceFailureEvent     -> ERROR
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Type

from aiop.runtime.learning.events import (
    ConfidenceOutOfRangeEvent,
    EventBus,
    ExampleAddedEvent,
    InferenceFailureEvent,
    RetrainRequestedEvent,
    RuntimeEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_LEVELS: Dict[Type[RuntimeEvent], int] = {
    ExampleAddedEvent: logging.DEBUG,
    RetrainRequestedEvent: logging.INFO,
    ConfidenceOutOfRangeEvent: logging.WARNING,
    InferenceFailureEvent: logging.ERROR,
}


def describe_event(event: RuntimeEvent) -> str:
    if isinstance(event, ExampleAddedEvent):
        example = event.example
        return f"[{event.context}] example added: {example.input!r} -> {example.output!r}"
    if isinstance(event, RetrainRequestedEvent):
        return f"[{event.context}] retrain requested: {', '.join(event.reasons)}"
    if isinstance(event, ConfidenceOutOfRangeEvent):
        return f"[{event.context}] confidence {event.raw!r} out of range, clamped to {event.clamped}"
    if isinstance(event, InferenceFailureEvent):
        return f"[{event.context}] inference failed: {event.cause!r}"
    return f"[{event.context}] {event.name}"


class LoggingEventSubscriber:
    """Callable subscriber writing one log record per runtime event."""

    def __init__(
        self,
        log: Optional[logging.Logger] = None,
        *,
        levels: Optional[Dict[Type[RuntimeEvent], int]] = None,
    ) -> None:
        self._logger = log or logger
        self._levels = dict(DEFAULT_LEVELS)
        if levels:
            self._levels.update(levels)
        self._detach: Optional[Callable[[], None]] = None

    def level_for(self, event: RuntimeEvent) -> int:
        for event_type, level in self._levels.items():
            if isinstance(event, event_type):
                return level
        return logging.INFO

    def __call__(self, event: RuntimeEvent) -> None:
        self._logger.log(
            self.level_for(event),
            describe_event(event),
            extra={"aiop_event": event.name, "aiop_context": event.context},
        )

    def attach(self, bus: EventBus) -> "LoggingEventSubscriber":
        self._detach = bus.subscribe(self)
        return self

    def detach(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None


def attach_logging(bus: EventBus, log: Optional[logging.Logger] = None) -> LoggingEventSubscriber:
    """Subscribe a ``LoggingEventSubscriber`` to ``bus`` and return it."""

    return LoggingEventSubscriber(log).attach(bus)


__all__ = [
    "DEFAULT_LEVELS",
    "LoggingEventSubscriber",
    "attach_logging",
    "describe_event",
]
