"""
Inference Strategies - Pluggable answer/confidence providers

WHAT: Strategy base class, callable adapter and a deterministic keyword strategy
WHERE: aiop/runtime/learning/strategy.py - external-collaborator seam
WHO: LearningContext (infer/update/retrain), ExplainabilityGenerator (hooks)
TIME: KeywordOverlapStrategy is O(examples × tokens) per call

A strategy only has to provide ``infer(input, examples)``. Everything else is
optional and looked up with ``getattr``, so duck-typed objects work as long
as they expose ``infer``:

- ``update(example)``: notified after every added example
- ``retrain(examples, reasons)``: retraining hook driven by the adaptation engine
- ``influential_tokens(input, result, examples)``: tokens to highlight, or None
- ``nearest_counterexamples(input, result, examples, limit)``: boundary examples, or None

``infer`` may be a coroutine function; contexts then require ``aprocess``.

Boundary Notes:
- Strategies own every ML-specific decision; the runtime never inspects models
- Returning None from an explanation hook means "unsupported", not "empty"
"""

from __future__ import annotations

import functools
import inspect
import re
from collections import Counter
from typing import Any, Callable, Hashable, List, Optional, Sequence

from .examples import Example
from .results import InferenceResult

TOKEN_PATTERN = re.compile(r"[a-z0-9']+")


@functools.lru_cache(maxsize=4096)
def tokenize(text: str) -> tuple[str, ...]:
    """Lower-case word tokens in order of appearance."""

    return tuple(TOKEN_PATTERN.findall(text.lower()))


def is_async_strategy(strategy: Any) -> bool:
    infer = getattr(strategy, "infer", None)
    return inspect.iscoroutinefunction(infer)


def _label_of(result: Any) -> Any:
    return result.result if isinstance(result, InferenceResult) else result


class InferenceStrategy:
    """Base strategy; override ``infer`` and whichever hooks are supported."""

    def infer(self, input: Any, examples: Sequence[Example]) -> Any:
        raise NotImplementedError

    def update(self, example: Example) -> None:
        """Called after each added example. Default: nothing to do."""

    def retrain(self, examples: Sequence[Example], reasons: Sequence[str]) -> None:
        """Called when the adaptation engine requests retraining. Default: nothing to do."""

    def influential_tokens(self, input: Any, result: Any, examples: Sequence[Example]) -> Optional[List[str]]:
        return None

    def nearest_counterexamples(
        self,
        input: Any,
        result: Any,
        examples: Sequence[Example],
        limit: int = 3,
    ) -> Optional[List[Example]]:
        return None


class CallableStrategy(InferenceStrategy):
    """Adapts a plain ``fn(input, examples)`` into a strategy."""

    def __init__(self, fn: Callable[[Any, Sequence[Example]], Any]) -> None:
        self._fn = fn
        if inspect.iscoroutinefunction(fn):
            self.infer = self._ainfer  # type: ignore[method-assign]

    def infer(self, input: Any, examples: Sequence[Example]) -> Any:
        return self._fn(input, examples)

    async def _ainfer(self, input: Any, examples: Sequence[Example]) -> Any:
        return await self._fn(input, examples)


class KeywordOverlapStrategy(InferenceStrategy):
    """Deterministic reference strategy based on word containment.

    Each stored example scores the fraction of its own tokens found in the
    input. The best-scoring example decides the label (later examples win
    ties, so superseding examples take effect). Confidence is
    ``0.5 + 0.5 * (best - best_other_label)``. With no overlap at all the
    strategy answers ``fallback`` (or the most common label) with
    ``no_match_confidence``.
    """

    def __init__(self, *, fallback: Any = None, no_match_confidence: float = 0.0) -> None:
        self.fallback = fallback
        self.no_match_confidence = no_match_confidence
        self.retrain_requests: List[tuple[str, ...]] = []

    @staticmethod
    def _score(query: frozenset[str], example: Example) -> float:
        if not isinstance(example.input, str):
            return 0.0
        tokens = set(tokenize(example.input))
        if not tokens:
            return 0.0
        return len(query & tokens) / len(tokens)

    def _fallback_label(self, examples: Sequence[Example]) -> Any:
        if self.fallback is not None:
            return self.fallback
        counts: Counter[Hashable] = Counter()
        order: dict[Hashable, int] = {}
        for index, example in enumerate(examples):
            counts[example.output] += 1
            order.setdefault(example.output, index)
        return max(counts, key=lambda label: (counts[label], -order[label]))

    def infer(self, input: Any, examples: Sequence[Example]) -> InferenceResult:
        if not isinstance(input, str):
            raise TypeError(f"keyword strategy expects text input, got {type(input).__name__}")
        if len(examples) == 0:
            raise ValueError("keyword strategy needs at least one example")

        query = frozenset(tokenize(input))
        best_score, best_index = 0.0, -1
        scores: List[float] = []
        for index, example in enumerate(examples):
            score = self._score(query, example)
            scores.append(score)
            if score > 0.0 and score >= best_score:
                best_score, best_index = score, index

        if best_index < 0:
            return InferenceResult(self._fallback_label(examples), self.no_match_confidence)

        label = examples[best_index].output
        runner_up = max(
            (score for score, example in zip(scores, examples) if example.output != label),
            default=0.0,
        )
        confidence = 0.5 + 0.5 * (best_score - runner_up)
        return InferenceResult(label, min(1.0, max(0.0, confidence)))

    def retrain(self, examples: Sequence[Example], reasons: Sequence[str]) -> None:
        # Nothing is fitted; keep the request for inspection.
        self.retrain_requests.append(tuple(reasons))

    def influential_tokens(self, input: Any, result: Any, examples: Sequence[Example]) -> Optional[List[str]]:
        if not isinstance(input, str):
            return []
        label = _label_of(result)
        supporting: set[str] = set()
        for example in examples:
            if example.output == label and isinstance(example.input, str):
                supporting.update(tokenize(example.input))
        seen: List[str] = []
        for token in tokenize(input):
            if token in supporting and token not in seen:
                seen.append(token)
        return seen

    def nearest_counterexamples(
        self,
        input: Any,
        result: Any,
        examples: Sequence[Example],
        limit: int = 3,
    ) -> Optional[List[Example]]:
        if not isinstance(input, str):
            return []
        label = _label_of(result)
        query = frozenset(tokenize(input))
        ranked = sorted(
            (
                (-self._score(query, example), index, example)
                for index, example in enumerate(examples)
                if example.output != label
            ),
            key=lambda item: (item[0], item[1]),
        )
        return [example for _, _, example in ranked[:limit]]


__all__ = [
    "CallableStrategy",
    "InferenceStrategy",
    "KeywordOverlapStrategy",
    "is_async_strategy",
    "tokenize",
]
