"""
Runtime Events - Typed side-channel for observability collaborators

WHAT: Event types and a synchronous event bus for runtime notifications
WHERE: aiop/runtime/learning/events.py - observability seam of the runtime
WHO: Contexts and the adaptation engine emit; loggers/telemetry subscribe
TIME: Dispatch is O(subscribers), zero cost with no subscribers

The runtime never prints or logs on its own. Everything an operator might
want to see (new examples, retrain requests, inference failures, clamped
confidences) is emitted here and left to subscribers such as
``aiop.logging.LoggingEventSubscriber``.

Boundary Notes:
- Only the four event types below are emitted by the runtime
- Subscribers run inline on the emitting thread, in subscription order
- Subscriber exceptions are kept on the bus (handler_errors), never re-raised
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Type

from .errors import OutOfRangeConfidenceWarning


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class RuntimeEvent:
    """Base for all runtime events; ``context`` names the emitting capability."""

    context: str
    timestamp: datetime = field(default_factory=_utcnow, compare=False, kw_only=True)

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class ExampleAddedEvent(RuntimeEvent):
    example: Any = None


@dataclass(frozen=True, slots=True)
class RetrainRequestedEvent(RuntimeEvent):
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class InferenceFailureEvent(RuntimeEvent):
    cause: Optional[BaseException] = None


@dataclass(frozen=True, slots=True)
class ConfidenceOutOfRangeEvent(RuntimeEvent):
    warning: Optional[OutOfRangeConfidenceWarning] = None

    @property
    def raw(self) -> Any:
        return self.warning.raw if self.warning else None

    @property
    def clamped(self) -> Optional[float]:
        return self.warning.clamped if self.warning else None


EventHandler = Callable[[RuntimeEvent], None]


class EventBus:
    """Synchronous publish/subscribe channel for ``RuntimeEvent`` instances."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[tuple[Optional[Type[RuntimeEvent]], EventHandler]] = []
        self._handler_errors: list[tuple[RuntimeEvent, Exception]] = []

    def subscribe(
        self,
        handler: EventHandler,
        event_type: Optional[Type[RuntimeEvent]] = None,
    ) -> Callable[[], None]:
        """Register ``handler``; returns a callable that removes it again."""

        entry = (event_type, handler)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    def emit(self, event: RuntimeEvent) -> None:
        """Deliver ``event`` to matching subscribers.

        A failing subscriber never reaches the emitter; its exception is kept
        in ``handler_errors`` and the remaining subscribers still run.
        """

        with self._lock:
            subscribers = list(self._subscribers)
        for event_type, handler in subscribers:
            if event_type is None or isinstance(event, event_type):
                try:
                    handler(event)
                except Exception as exc:
                    with self._lock:
                        self._handler_errors.append((event, exc))

    @property
    def handler_errors(self) -> tuple[tuple[RuntimeEvent, Exception], ...]:
        with self._lock:
            return tuple(self._handler_errors)

    def __len__(self) -> int:
        return len(self._subscribers)


class CaptureSubscriber:
    """Collects events in memory; handy in tests and notebooks."""

    def __init__(self, bus: Optional[EventBus] = None) -> None:
        self.events: list[RuntimeEvent] = []
        if bus is not None:
            bus.subscribe(self)

    def __call__(self, event: RuntimeEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: Type[RuntimeEvent]) -> list[RuntimeEvent]:
        return [e for e in self.events if isinstance(e, event_type)]


__all__ = [
    "RuntimeEvent",
    "ExampleAddedEvent",
    "RetrainRequestedEvent",
    "InferenceFailureEvent",
    "ConfidenceOutOfRangeEvent",
    "EventHandler",
    "EventBus",
    "CaptureSubscriber",
]
