"""
Explainability Generator - Structured, advisory explanations for results

WHAT: Builds Explanation objects with one section per requested kind
WHERE: aiop/runtime/learning/explain.py - optional step of an enhanced call
WHO: Enhanced procedures with ``explain_with`` and direct callers
TIME: confidenceBreakdown O(1); other kinds cost whatever the strategy hook costs

Supported kinds and their rules:
- confidenceBreakdown: percentage string plus the raw float
- highlightInfluentialWords: tokens from the strategy's ``influential_tokens``
  hook; text inputs only, empty when unsupported
- provideCounterexamples: examples from the strategy's
  ``nearest_counterexamples`` hook; an explicit "not supported" section otherwise

Boundary Notes:
- Never raises for a kind; failures become "not available" sections
- Unknown kind names produce no section and are listed in Explanation.ignored
- Output is deterministic for identical (result, kinds, input)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .examples import Example
from .results import extract_confidence

if TYPE_CHECKING:
    from .context import LearningContext

COUNTEREXAMPLE_LIMIT = 3


class ExplanationKind(str, Enum):
    """Explanation kinds with a fixed generation rule."""

    CONFIDENCE_BREAKDOWN = "confidenceBreakdown"
    HIGHLIGHT_INFLUENTIAL_WORDS = "highlightInfluentialWords"
    PROVIDE_COUNTEREXAMPLES = "provideCounterexamples"

    @classmethod
    def parse(cls, value: Any) -> Optional["ExplanationKind"]:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class ExplanationSection:
    kind: ExplanationKind
    content: Dict[str, Any]
    available: bool = True

    @property
    def summary(self) -> str:
        return str(self.content.get("summary", ""))


@dataclass(frozen=True, slots=True)
class Explanation:
    kinds: frozenset[ExplanationKind]
    sections: Tuple[ExplanationSection, ...]
    ignored: Tuple[str, ...] = field(default_factory=tuple)

    def section(self, kind: ExplanationKind | str) -> Optional[ExplanationSection]:
        wanted = ExplanationKind.parse(kind)
        for section in self.sections:
            if section.kind is wanted:
                return section
        return None

    def render(self) -> str:
        lines = ["Explanation:"]
        lines.extend(f"- {section.summary}" for section in self.sections)
        return "\n".join(lines) + "\n"


def format_percentage(confidence: float) -> str:
    text = f"{confidence * 100:.2f}".rstrip("0").rstrip(".")
    return f"{text}%"


def _not_available(kind: ExplanationKind, reason: str) -> ExplanationSection:
    return ExplanationSection(
        kind,
        {"status": "not available", "reason": reason, "summary": f"{kind.value}: not available ({reason})"},
        available=False,
    )


def _text_of(original_input: Any) -> Optional[str]:
    if isinstance(original_input, str):
        return original_input
    if isinstance(original_input, tuple) and len(original_input) == 1 and isinstance(original_input[0], str):
        return original_input[0]
    return None


class ExplainabilityGenerator:
    """Produces explanations; strategy hooks and examples come from an optional context."""

    def __init__(self, *, counterexample_limit: int = COUNTEREXAMPLE_LIMIT) -> None:
        self.counterexample_limit = counterexample_limit

    def explain(
        self,
        result: Any,
        kinds: Iterable[Any],
        original_input: Any,
        *,
        context: Optional["LearningContext"] = None,
    ) -> Explanation:
        requested: List[ExplanationKind] = []
        ignored: List[str] = []
        for raw_kind in kinds:
            kind = ExplanationKind.parse(raw_kind)
            if kind is None:
                ignored.append(str(getattr(raw_kind, "value", raw_kind)))
            else:
                requested.append(kind)

        sections = []
        for kind in requested:
            try:
                sections.append(self._generate(kind, result, original_input, context))
            except Exception as exc:
                sections.append(_not_available(kind, f"{type(exc).__name__}: {exc}"))
        return Explanation(frozenset(requested), tuple(sections), tuple(ignored))

    def _generate(
        self,
        kind: ExplanationKind,
        result: Any,
        original_input: Any,
        context: Optional["LearningContext"],
    ) -> ExplanationSection:
        if kind is ExplanationKind.CONFIDENCE_BREAKDOWN:
            return self._confidence_breakdown(result)
        if kind is ExplanationKind.HIGHLIGHT_INFLUENTIAL_WORDS:
            return self._influential_words(result, original_input, context)
        return self._counterexamples(result, original_input, context)

    def _confidence_breakdown(self, result: Any) -> ExplanationSection:
        kind = ExplanationKind.CONFIDENCE_BREAKDOWN
        confidence = extract_confidence(result)
        if confidence is None:
            return _not_available(kind, "result carries no confidence")
        percentage = format_percentage(confidence)
        return ExplanationSection(
            kind,
            {
                "percentage": percentage,
                "raw": confidence,
                "summary": f"Confidence: {percentage} (raw {confidence})",
            },
        )

    def _influential_words(
        self,
        result: Any,
        original_input: Any,
        context: Optional["LearningContext"],
    ) -> ExplanationSection:
        kind = ExplanationKind.HIGHLIGHT_INFLUENTIAL_WORDS
        text = _text_of(original_input)
        tokens: Optional[List[str]] = None
        if text is not None and context is not None:
            hook = getattr(context.strategy, "influential_tokens", None)
            if hook is not None:
                tokens = hook(text, result, context.examples)
        supported = tokens is not None
        tokens = list(tokens or [])
        summary = f"Influential words: [{', '.join(tokens)}]" if tokens else "Influential words: none identified"
        return ExplanationSection(
            kind,
            {"tokens": tokens, "supported": supported, "text_input": text is not None, "summary": summary},
        )

    def _counterexamples(
        self,
        result: Any,
        original_input: Any,
        context: Optional["LearningContext"],
    ) -> ExplanationSection:
        kind = ExplanationKind.PROVIDE_COUNTEREXAMPLES
        hook = getattr(context.strategy, "nearest_counterexamples", None) if context is not None else None
        found: Optional[Sequence[Example]] = None
        if hook is not None:
            found = hook(_text_of(original_input) or original_input, result, context.examples, self.counterexample_limit)
        if found is None:
            return ExplanationSection(
                kind,
                {"status": "not supported", "summary": "Counter examples: not supported by this strategy"},
                available=False,
            )
        items = [example.as_dict() for example in found]
        rendered = "; ".join(f"{item['input']!r} -> {item['output']!r}" for item in items) or "none"
        return ExplanationSection(
            kind,
            {"counterexamples": items, "summary": f"Counter examples: {rendered}"},
        )


__all__ = [
    "COUNTEREXAMPLE_LIMIT",
    "Explanation",
    "ExplanationKind",
    "ExplanationSection",
    "ExplainabilityGenerator",
    "format_percentage",
]
