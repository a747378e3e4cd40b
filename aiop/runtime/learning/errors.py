"""
Learning Runtime Errors - Typed failures for the capability runtime

WHAT: Exception and warning types raised across the learning runtime
WHERE: aiop/runtime/learning/errors.py - shared by every runtime module
WHO: Callers of LearningContext, ConfidenceRouter and enhanced procedures
TIME: Construction only, no runtime cost

Boundary Notes:
- InvalidExampleError is rejected at the store boundary and is recoverable
- InferenceFailure always propagates to the caller of process()
- NoDefaultHandlerError signals a routing-policy gap (misconfiguration)
- OutOfRangeConfidenceWarning is surfaced through the event channel, not raised
"""

from __future__ import annotations

from typing import Any


class LearningRuntimeError(Exception):
    """Base class for errors raised by the learning runtime."""


class InvalidExampleError(LearningRuntimeError, ValueError):
    """Raised when an example is malformed or carries a missing input/output."""


class TriggerConfigError(LearningRuntimeError, ValueError):
    """Raised when an adaptation trigger spec cannot be interpreted."""


class InferenceFailure(LearningRuntimeError, RuntimeError):
    """Raised when the inference strategy fails, times out or breaks its contract."""

    def __init__(self, context: str, cause: BaseException) -> None:
        self.context = context
        self.cause = cause
        super().__init__(f"inference failed in context '{context}': {cause!r}")


class NoDefaultHandlerError(LearningRuntimeError, LookupError):
    """Raised when no confidence band matches and no default handler exists."""

    def __init__(self, confidence: float | None = None) -> None:
        self.confidence = confidence
        if confidence is None:
            message = "route table has no default handler"
        else:
            message = f"no confidence band matched {confidence!r} and no default handler is configured"
        super().__init__(message)


class OutOfRangeConfidenceWarning(UserWarning):
    """Strategy reported a confidence outside [0, 1]; the value was clamped."""

    def __init__(self, raw: Any, clamped: float) -> None:
        self.raw = raw
        self.clamped = clamped
        super().__init__(f"confidence {raw!r} outside [0, 1], clamped to {clamped}")


__all__ = [
    "LearningRuntimeError",
    "InvalidExampleError",
    "TriggerConfigError",
    "InferenceFailure",
    "NoDefaultHandlerError",
    "OutOfRangeConfidenceWarning",
]
