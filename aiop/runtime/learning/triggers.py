"""
Adaptation Triggers - Named predicates deciding when a capability should adapt

WHAT: Threshold, accumulated-feedback and callable triggers plus outcome windows
WHERE: aiop/runtime/learning/triggers.py - evaluated by LearningContext/AdaptationEngine
WHO: Capability authors configuring ``adaptation_triggers``
TIME: ConfidenceBelow O(1); DisagreementAbove O(window)

Each trigger is evaluated as ``trigger.fires(result, feedback)``. ``feedback``
is either a single ``Outcome`` or an ``OutcomeWindow`` holding recent
outcomes for the context. Threshold triggers ignore feedback; accumulated
triggers ignore the current result.

Boundary Notes:
- Window size is a parameter, never inferred
- A trigger that cannot decide (no feedback, too few observations) does not fire
"""

from __future__ import annotations

import inspect
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Optional, Union

from .results import InferenceResult, extract_confidence


@dataclass(frozen=True, slots=True)
class Outcome:
    """Observed outcome for one inference: did the answer hold up?"""

    agreed: bool
    expected: Any = None

    @classmethod
    def from_expected(cls, result: Any, expected: Any) -> "Outcome":
        actual = result.result if isinstance(result, InferenceResult) else result
        return cls(agreed=actual == expected, expected=expected)


class OutcomeWindow:
    """Bounded rolling window of outcome observations for one context."""

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("outcome window size must be >= 1")
        self._lock = threading.Lock()
        self._outcomes: Deque[Outcome] = deque(maxlen=size)

    @property
    def size(self) -> int:
        return self._outcomes.maxlen or 0

    def record(self, outcome: Outcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)

    def clear(self) -> None:
        with self._lock:
            self._outcomes.clear()

    def recent(self, count: Optional[int] = None) -> tuple[Outcome, ...]:
        with self._lock:
            items = tuple(self._outcomes)
        if count is not None:
            items = items[-count:] if count > 0 else ()
        return items

    def disagreement_rate(self, count: Optional[int] = None) -> Optional[float]:
        """Fraction of disagreeing outcomes among the last ``count``; None when empty."""

        items = self.recent(count)
        if not items:
            return None
        return sum(1 for o in items if not o.agreed) / len(items)

    def __len__(self) -> int:
        return len(self._outcomes)


Feedback = Union[Outcome, OutcomeWindow, None]


def _accepts_two_args(fn: Callable[..., Any]) -> bool:
    try:
        inspect.signature(fn).bind(None, None)
    except TypeError:
        return False
    except ValueError:
        # builtins without an introspectable signature
        return True
    return True


class AdaptationTrigger:
    """Base trigger. Subclasses implement ``fires``."""

    name: str = "trigger"
    needs_history: bool = False

    def fires(self, result: Any, feedback: Feedback = None) -> bool:
        raise NotImplementedError

    def __call__(self, result: Any, feedback: Feedback = None) -> bool:
        return self.fires(result, feedback)


class ConfidenceBelow(AdaptationTrigger):
    """Fires when the result confidence is strictly below ``threshold``."""

    def __init__(self, threshold: float, *, name: str = "confidenceBelowThreshold") -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"confidence threshold must be within [0, 1], got {threshold}")
        self.threshold = float(threshold)
        self.name = name

    def fires(self, result: Any, feedback: Feedback = None) -> bool:
        confidence = extract_confidence(result)
        if confidence is None:
            return False
        return confidence < self.threshold

    def __repr__(self) -> str:
        return f"ConfidenceBelow({self.threshold}, name={self.name!r})"


class DisagreementAbove(AdaptationTrigger):
    """Fires when the disagreement rate over the last ``window`` outcomes exceeds ``threshold``."""

    needs_history = True

    def __init__(
        self,
        threshold: float,
        *,
        window: Optional[int] = None,
        min_observations: int = 1,
        name: str = "disagreementRate",
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"disagreement threshold must be within [0, 1], got {threshold}")
        if window is not None and window < 1:
            raise ValueError("window must be >= 1")
        self.threshold = float(threshold)
        self.window = window
        self.min_observations = max(1, int(min_observations))
        self.name = name

    def fires(self, result: Any, feedback: Feedback = None) -> bool:
        if isinstance(feedback, Outcome):
            observations = (feedback,)
        elif isinstance(feedback, OutcomeWindow):
            observations = feedback.recent(self.window)
        else:
            return False
        if len(observations) < self.min_observations:
            return False
        rate = sum(1 for o in observations if not o.agreed) / len(observations)
        return rate > self.threshold

    def __repr__(self) -> str:
        return f"DisagreementAbove({self.threshold}, window={self.window}, name={self.name!r})"


class PredicateTrigger(AdaptationTrigger):
    """Wraps ``fn(result)`` or ``fn(result, feedback)``."""

    def __init__(self, name: str, fn: Callable[..., Any]) -> None:
        self.name = name
        self._fn = fn
        self._takes_feedback = _accepts_two_args(fn)

    def fires(self, result: Any, feedback: Feedback = None) -> bool:
        if self._takes_feedback:
            return bool(self._fn(result, feedback))
        return bool(self._fn(result))

    def __repr__(self) -> str:
        return f"PredicateTrigger({self.name!r})"


__all__ = [
    "AdaptationTrigger",
    "ConfidenceBelow",
    "DisagreementAbove",
    "Feedback",
    "Outcome",
    "OutcomeWindow",
    "PredicateTrigger",
]
