"""Logging utilities for the AIOP runtime.

Runtime components only emit events; the helpers here subscribe to an
``EventBus`` and forward those events to the standard ``logging`` module.
"""

from __future__ import annotations

from .events import (  # noqa: F401
    DEFAULT_LEVELS,
    LoggingEventSubscriber,
    attach_logging,
    describe_event,
)

__all__ = [
    "DEFAULT_LEVELS",
    "LoggingEventSubscriber",
    "attach_logging",
    "describe_event",
]
