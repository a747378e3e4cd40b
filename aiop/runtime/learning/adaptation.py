"""
Adaptation Engine - Decides when a capability should be retrained

WHAT: Evaluates triggers over results and outcome history, emits retrain requests
WHERE: aiop/runtime/learning/adaptation.py - feedback loop of the runtime
WHO: Enhanced procedures (after each call) and feedback reporters
TIME: O(triggers + window) per evaluation

The engine keeps a bounded rolling window of outcomes per context so that
accumulated-feedback triggers ("disagreement above 15% over the last K
outcomes") can be evaluated next to plain confidence thresholds. When a
decision says retrain, the engine emits ``RetrainRequestedEvent`` and hands
the reasons to the context, which forwards them to the strategy's own
``retrain`` hook. No model logic lives here.

Boundary Notes:
- Evaluation failures never propagate; they become should_retrain=False plus a reason
  and are kept in ``failures``
- A retrain request clears the context's outcome window
- Asynchronous retrain hooks run through aevaluate() (or a task when watching examples)
- Window size comes from AdaptationConfig (env AIOP_FEEDBACK_WINDOW) or the trigger
"""

from __future__ import annotations

import asyncio
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from .context import LearningContext
from .events import EventBus, ExampleAddedEvent, RetrainRequestedEvent, RuntimeEvent
from .triggers import DisagreementAbove, Feedback, Outcome, OutcomeWindow

DEFAULT_FEEDBACK_WINDOW = int(os.environ.get("AIOP_FEEDBACK_WINDOW", "20"))

EXAMPLES_ADDED_REASON = "examplesAdded"


@dataclass(slots=True)
class AdaptationConfig:
    window_size: int = DEFAULT_FEEDBACK_WINDOW
    retrain_after_examples: Optional[int] = None


@dataclass(frozen=True, slots=True)
class AdaptationDecision:
    """Outcome of one evaluation; ``reasons`` lists trigger names in firing order."""

    should_retrain: bool
    reasons: tuple[str, ...] = field(default_factory=tuple)


class AdaptationEngine:
    """Evaluates adaptation triggers and signals retraining.

    State (outcome windows, example counts) is kept per context object, so
    two contexts sharing a name never share history.
    """

    def __init__(self, config: AdaptationConfig | None = None, *, events: EventBus | None = None) -> None:
        self.config = config or AdaptationConfig()
        if self.config.window_size < 1:
            raise ValueError("window_size must be >= 1")
        if self.config.retrain_after_examples is not None and self.config.retrain_after_examples < 1:
            raise ValueError("retrain_after_examples must be >= 1")
        self._events = events or EventBus()
        self._lock = threading.Lock()
        self._windows: Dict[LearningContext, OutcomeWindow] = {}
        self._example_counts: Dict[LearningContext, int] = {}
        self._watched: Dict[LearningContext, Callable[[], None]] = {}
        self._failures: List[str] = []
        self._pending: Set["asyncio.Task[None]"] = set()

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def failures(self) -> tuple[str, ...]:
        """Every degraded evaluation and failed retrain signal, oldest first."""

        with self._lock:
            return tuple(self._failures)

    def record_failure(self, capability: str, reason: str) -> None:
        with self._lock:
            self._failures.append(f"{capability}: {reason}")

    # ---------------------- outcome history ----------------------
    def window_for(self, context: LearningContext) -> OutcomeWindow:
        with self._lock:
            window = self._windows.get(context)
            if window is None:
                window = OutcomeWindow(self._window_size(context))
                self._windows[context] = window
            return window

    def _window_size(self, context: LearningContext) -> int:
        sizes = [
            trigger.window
            for trigger in context.triggers.values()
            if isinstance(trigger, DisagreementAbove) and trigger.window is not None
        ]
        return max([self.config.window_size, *sizes])

    def record_outcome(self, context: LearningContext, outcome: Outcome) -> None:
        self.window_for(context).record(outcome)

    # ---------------------- evaluation ----------------------
    def _fired(
        self,
        context: Optional[LearningContext],
        result: Any,
        feedback: Feedback,
        forced_reasons: Sequence[str],
    ) -> tuple[str, ...]:
        fired: List[str] = []
        if context is not None:
            history: Feedback = feedback
            if isinstance(feedback, Outcome):
                self.record_outcome(context, feedback)
                history = self.window_for(context)
            elif feedback is None:
                with self._lock:
                    history = self._windows.get(context)
            fired = context.fired_triggers(result, history)
        return tuple(dict.fromkeys([*forced_reasons, *fired]))

    def _degraded(self, name: str, reasons: tuple[str, ...]) -> AdaptationDecision:
        self.record_failure(name, reasons[-1])
        return AdaptationDecision(False, reasons)

    def evaluate(
        self,
        context: Optional[LearningContext],
        result: Any,
        feedback: Feedback = None,
        *,
        forced_reasons: Sequence[str] = (),
        capability: Optional[str] = None,
    ) -> AdaptationDecision:
        """Decide whether ``context`` should retrain after producing ``result``.

        ``feedback`` may be a single ``Outcome`` (recorded into the context's
        window first) or an ``OutcomeWindow`` supplied by the caller.
        ``forced_reasons`` are added unconditionally (used for gate policies
        on capabilities without triggers). An asynchronous retrain hook
        cannot run here; that degrades to ``retrain_signal_failed`` and
        callers on an event loop use ``aevaluate``.
        """

        name = context.name if context is not None else (capability or "anonymous")
        try:
            reasons = self._fired(context, result, feedback, forced_reasons)
        except Exception as exc:
            return self._degraded(name, (f"evaluation_failed: {type(exc).__name__}: {exc}",))
        if not reasons:
            return AdaptationDecision(False, ())

        try:
            if context is not None and context.has_async_hook("retrain"):
                raise TypeError(f"strategy for '{name}' has an asynchronous retrain hook; use aevaluate()")
            self._signal(name, context, reasons)
            if context is not None:
                context.request_retrain(reasons)
        except Exception as exc:
            return self._degraded(name, reasons + (f"retrain_signal_failed: {type(exc).__name__}: {exc}",))
        return AdaptationDecision(True, reasons)

    async def aevaluate(
        self,
        context: Optional[LearningContext],
        result: Any,
        feedback: Feedback = None,
        *,
        forced_reasons: Sequence[str] = (),
        capability: Optional[str] = None,
    ) -> AdaptationDecision:
        """Awaitable ``evaluate``; awaits asynchronous retrain hooks."""

        name = context.name if context is not None else (capability or "anonymous")
        try:
            reasons = self._fired(context, result, feedback, forced_reasons)
        except Exception as exc:
            return self._degraded(name, (f"evaluation_failed: {type(exc).__name__}: {exc}",))
        if not reasons:
            return AdaptationDecision(False, ())

        try:
            self._signal(name, context, reasons)
            if context is not None:
                await context.arequest_retrain(reasons)
        except Exception as exc:
            return self._degraded(name, reasons + (f"retrain_signal_failed: {type(exc).__name__}: {exc}",))
        return AdaptationDecision(True, reasons)

    def _signal(self, name: str, context: Optional[LearningContext], reasons: tuple[str, ...]) -> None:
        """Emit the retrain request and start fresh history for ``context``."""

        if context is None:
            self._events.emit(RetrainRequestedEvent(name, reasons=reasons))
            return
        with self._lock:
            self._example_counts[context] = 0
            window = self._windows.get(context)
        # outcomes seen before this request must not trigger the next one
        if window is not None:
            window.clear()
        context.events.emit(RetrainRequestedEvent(name, reasons=reasons))

    # ---------------------- example counting ----------------------
    def watch(self, context: LearningContext) -> None:
        """Count ``ExampleAddedEvent`` on ``context`` toward ``retrain_after_examples``."""

        threshold = self.config.retrain_after_examples
        if threshold is None:
            return
        with self._lock:
            if context in self._watched:
                return
            self._example_counts.setdefault(context, 0)

        def on_example_added(event: RuntimeEvent) -> None:
            with self._lock:
                count = self._example_counts.get(context, 0) + 1
                self._example_counts[context] = count
            if count < threshold:
                return
            reasons = (EXAMPLES_ADDED_REASON,)
            try:
                if context.has_async_hook("retrain"):
                    loop = asyncio.get_running_loop()
                    self._signal(context.name, context, reasons)
                    self._spawn(loop, context, reasons)
                else:
                    self._signal(context.name, context, reasons)
                    context.request_retrain(reasons)
            except Exception as exc:
                self.record_failure(context.name, f"retrain_signal_failed: {type(exc).__name__}: {exc}")

        unsubscribe = context.events.subscribe(on_example_added, ExampleAddedEvent)
        with self._lock:
            self._watched[context] = unsubscribe

    def _spawn(self, loop: asyncio.AbstractEventLoop, context: LearningContext, reasons: tuple[str, ...]) -> None:
        task = loop.create_task(context.arequest_retrain(reasons))
        self._pending.add(task)

        def done(finished: "asyncio.Task[None]") -> None:
            self._pending.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                exc = finished.exception()
                self.record_failure(context.name, f"retrain_signal_failed: {type(exc).__name__}: {exc}")

        task.add_done_callback(done)

    def unwatch(self, context: LearningContext) -> None:
        with self._lock:
            unsubscribe = self._watched.pop(context, None)
        if unsubscribe is not None:
            unsubscribe()

    def examples_since_retrain(self, context: LearningContext) -> int:
        with self._lock:
            return self._example_counts.get(context, 0)


__all__ = [
    "AdaptationConfig",
    "AdaptationDecision",
    "AdaptationEngine",
    "DEFAULT_FEEDBACK_WINDOW",
    "EXAMPLES_ADDED_REASON",
]
