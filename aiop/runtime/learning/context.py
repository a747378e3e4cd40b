"""
Learning Context - The unit of a learned capability

WHAT: Couples an ExampleStore, an inference strategy and adaptation triggers
WHERE: aiop/runtime/learning/context.py - core of the learning runtime
WHO: Enhanced procedures, the adaptation engine and direct callers (add_example)
TIME: process() cost is the strategy's; add_example O(1) plus subscribers

A context is created when a capability is defined, optionally seeded with
examples, and then lives for the rest of the process. It is shared by
reference: the enhancement wrapper and any code calling ``add_example``
directly see the same store.

Boundary Notes:
- Strategy errors never get swallowed; they surface as InferenceFailure
- Out-of-range confidences are clamped and reported via ConfidenceOutOfRangeEvent
- A cancelled aprocess() emits nothing and leaves no partial result behind
- Asynchronous update/retrain hooks only run through aadd_example()/arequest_retrain()
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .config import build_triggers
from .errors import InferenceFailure, OutOfRangeConfidenceWarning
from .events import (
    ConfidenceOutOfRangeEvent,
    EventBus,
    ExampleAddedEvent,
    InferenceFailureEvent,
)
from .examples import Example, ExampleRepository, ExampleStore, ExampleView, coerce_example
from .results import InferenceResult, normalize_output
from .strategy import CallableStrategy, is_async_strategy
from .triggers import AdaptationTrigger, Feedback


class LearningContext:
    """Example store + strategy + triggers for one named capability."""

    def __init__(
        self,
        name: str,
        strategy: Any,
        *,
        examples: Iterable[Any] | None = None,
        adaptation_triggers: Mapping[str, Any] | None = None,
        events: EventBus | None = None,
        timeout: float | None = None,
    ) -> None:
        if not name:
            raise ValueError("learning context needs a name")
        if not hasattr(strategy, "infer"):
            if not callable(strategy):
                raise TypeError("strategy must define infer(input, examples) or be callable")
            strategy = CallableStrategy(strategy)
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        self._name = name
        self._strategy = strategy
        self._store = ExampleStore(examples)
        self._triggers: Dict[str, AdaptationTrigger] = build_triggers(adaptation_triggers)
        self._events = events or EventBus()
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self._name

    @property
    def strategy(self) -> Any:
        return self._strategy

    @property
    def store(self) -> ExampleStore:
        return self._store

    @property
    def examples(self) -> ExampleView:
        return self._store.all()

    @property
    def triggers(self) -> Dict[str, AdaptationTrigger]:
        return dict(self._triggers)

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def timeout(self) -> float | None:
        return self._timeout

    @property
    def is_async(self) -> bool:
        return is_async_strategy(self._strategy)

    # ---------------------- inference ----------------------
    def process(self, input: Any) -> InferenceResult:
        """Run the strategy synchronously against the current example snapshot."""

        examples = self._store.all()
        try:
            raw = self._strategy.infer(input, examples)
            if inspect.isawaitable(raw):
                if inspect.iscoroutine(raw):
                    raw.close()
                raise TypeError(f"strategy for '{self._name}' is asynchronous; use aprocess()")
            result, warning = normalize_output(raw)
        except Exception as exc:
            raise self._failure(exc) from exc
        self._report_clamp(warning)
        return result

    async def aprocess(self, input: Any) -> InferenceResult:
        """Awaitable variant of ``process``; applies ``timeout`` to async strategies."""

        examples = self._store.all()
        try:
            raw = self._strategy.infer(input, examples)
            if inspect.isawaitable(raw):
                if self._timeout is not None:
                    raw = await asyncio.wait_for(raw, self._timeout)
                else:
                    raw = await raw
            result, warning = normalize_output(raw)
        except Exception as exc:
            # timeouts land here too; CancelledError is a BaseException and propagates untouched
            raise self._failure(exc) from exc
        self._report_clamp(warning)
        return result

    def _failure(self, exc: BaseException) -> InferenceFailure:
        self._events.emit(InferenceFailureEvent(self._name, cause=exc))
        return InferenceFailure(self._name, exc)

    def _report_clamp(self, warning: Optional[OutOfRangeConfidenceWarning]) -> None:
        if warning is not None:
            self._events.emit(ConfidenceOutOfRangeEvent(self._name, warning=warning))

    # ---------------------- examples ----------------------
    def _hook(self, name: str) -> Any:
        return getattr(self._strategy, name, None)

    def has_async_hook(self, name: str) -> bool:
        """True when the strategy's ``name`` hook (update, retrain) is a coroutine function."""

        hook = self._hook(name)
        return hook is not None and inspect.iscoroutinefunction(hook)

    def _reject_awaitable(self, outcome: Any, hook: str, alternative: str) -> None:
        if inspect.isawaitable(outcome):
            if inspect.iscoroutine(outcome):
                outcome.close()
            raise TypeError(f"{hook} hook for '{self._name}' returned an awaitable; use {alternative}()")

    def _store_example(self, input: Any, output: Any) -> Example:
        example = coerce_example(Example(input, output))
        self._store.add(example)
        self._events.emit(ExampleAddedEvent(self._name, example=example))
        return example

    def add_example(self, input: Any, output: Any) -> None:
        """Validate and store a new labeled example, then notify strategy and subscribers.

        Strategies with an asynchronous ``update`` hook must use ``aadd_example``;
        the example is rejected before anything is stored.
        """

        if self.has_async_hook("update"):
            raise TypeError(f"strategy for '{self._name}' has an asynchronous update hook; use aadd_example()")
        example = self._store_example(input, output)
        update = self._hook("update")
        if update is not None:
            self._reject_awaitable(update(example), "update", "aadd_example")

    async def aadd_example(self, input: Any, output: Any) -> None:
        example = self._store_example(input, output)
        update = self._hook("update")
        if update is not None:
            outcome = update(example)
            if inspect.isawaitable(outcome):
                await outcome

    def reset(self) -> None:
        self._store.clear()

    def load_examples(self, repository: ExampleRepository) -> int:
        """Seed the store from ``repository``; returns the number of examples loaded."""

        loaded = 0
        for value in repository.load(self._name):
            self._store.add(value)
            loaded += 1
        return loaded

    def save_examples(self, repository: ExampleRepository) -> None:
        repository.save(self._name, tuple(self._store.all()))

    # ---------------------- adaptation ----------------------
    def fired_triggers(self, result: Any, feedback: Feedback = None) -> List[str]:
        return [name for name, trigger in self._triggers.items() if trigger.fires(result, feedback)]

    def should_adapt(self, result: Any, feedback: Feedback = None) -> bool:
        """True when any configured trigger fires; always False without triggers."""

        return bool(self.fired_triggers(result, feedback))

    def request_retrain(self, reasons: Sequence[str]) -> None:
        if self.has_async_hook("retrain"):
            raise TypeError(f"strategy for '{self._name}' has an asynchronous retrain hook; use arequest_retrain()")
        retrain = self._hook("retrain")
        if retrain is not None:
            self._reject_awaitable(retrain(self._store.all(), tuple(reasons)), "retrain", "arequest_retrain")

    async def arequest_retrain(self, reasons: Sequence[str]) -> None:
        retrain = self._hook("retrain")
        if retrain is not None:
            outcome = retrain(self._store.all(), tuple(reasons))
            if inspect.isawaitable(outcome):
                await outcome

    def __repr__(self) -> str:
        return f"LearningContext(name={self._name!r}, examples={len(self._store)}, triggers={list(self._triggers)})"


__all__ = ["LearningContext"]
