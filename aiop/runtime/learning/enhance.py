"""
Enhancement Wrapper - Compose a plain procedure with a learned capability

WHAT: ``enhance()`` returns a new callable adding inference, adaptation,
      explanation and confidence routing around a base procedure
WHERE: aiop/runtime/learning/enhance.py - public composition point
WHO: Systems defining AI-enhanced capabilities
TIME: Overhead beyond the strategy is O(triggers + bands + explanation kinds)

Per call the order is fixed: process -> adapt-check -> explain -> route.
Adaptation only has side effects and never changes the value; explanation
wraps the value in ``EnhancedResult``; routing replaces the value with the
selected handler's output. Async procedures, async strategies and async
retrain hooks yield an ``async def`` wrapper with the same ordering.

Boundary Notes:
- Without a context the base procedure runs directly (no learning)
- Route tables are validated when composing, not on the first call
- A procedure's name, docstring and signature are kept via functools.wraps
- A raising adaptWhen gate becomes an "adaptWhen_failed" decision and an engine failure
"""

from __future__ import annotations

import functools
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from .adaptation import AdaptationDecision, AdaptationEngine
from .config import EnhancementConfig
from .context import LearningContext
from .events import EventBus
from .explain import ExplainabilityGenerator, Explanation
from .router import ConfidenceRouter, as_route_table
from .triggers import Outcome

ADAPT_WHEN_REASON = "adaptWhen"
ADAPT_WHEN_FAILED_REASON = "adaptWhen_failed"


@dataclass(frozen=True, slots=True)
class EnhancedResult:
    """Value plus explanation; returned only when explanations were requested."""

    result: Any
    explanation: Explanation


def _input_of(args: tuple, kwargs: dict) -> Any:
    if len(args) == 1 and not kwargs:
        return args[0]
    if kwargs:
        return (args, dict(kwargs))
    return args


def enhance(
    procedure: Optional[Callable[..., Any]] = None,
    config: Union[EnhancementConfig, Mapping[str, Any], None] = None,
    *,
    context: Optional[LearningContext] = None,
    strategy: Any = None,
    name: Optional[str] = None,
    engine: Optional[AdaptationEngine] = None,
    router: Optional[ConfidenceRouter] = None,
    explainer: Optional[ExplainabilityGenerator] = None,
    **options: Any,
) -> Callable[..., Any]:
    """Wrap ``procedure`` with a learning context and enhancement policies.

    Args:
        procedure: Base procedure. Optional when a context (or strategy) supplies
            the behaviour.
        config: ``EnhancementConfig`` or its option mapping; ``options`` are
            merged on top (``explainWith=[...]``, ``routes={...}``, ...).
        context: Shared learning context. ``process`` replaces the procedure call.
        strategy: Builds a fresh context (seeded from ``examples``) when no
            context is given.
        name: Capability name used for new contexts and context-less events.

    Returns:
        The enhanced callable. It exposes ``context``, ``config``, ``engine``,
        ``route_table``, ``feedback(result, outcome)`` (``afeedback`` when
        awaiting) and ``last_decision``, the adaptation decision of the most
        recent call (None when adaptation did not run).

    Raises:
        NoDefaultHandlerError: ``routes`` has no ``default`` handler.
        ValueError: examples/triggers were given without a context or strategy.
    """

    cfg = config if isinstance(config, EnhancementConfig) else EnhancementConfig.from_options(config, **options)
    if isinstance(config, EnhancementConfig) and options:
        cfg = EnhancementConfig.from_options(config.model_dump(by_alias=False), **options)

    if procedure is None and context is None and strategy is None:
        raise ValueError("enhance() needs a procedure, a context or a strategy")
    if procedure is not None and not callable(procedure):
        raise TypeError(f"procedure must be callable, got {type(procedure).__name__}")

    capability = name or (context.name if context is not None else None) or getattr(procedure, "__name__", None)
    if capability is None:
        raise ValueError("enhance() needs a name when neither a procedure nor a context is given")

    if context is None and strategy is not None:
        context = LearningContext(
            capability,
            strategy,
            examples=cfg.examples,
            adaptation_triggers=cfg.adaptation_triggers,
            timeout=cfg.timeout,
        )
    elif context is not None:
        if cfg.adaptation_triggers:
            raise ValueError(f"context '{context.name}' already exists; configure adaptation triggers on it")
        context.store.extend(cfg.examples)
    elif cfg.examples or cfg.adaptation_triggers:
        raise ValueError("examples and adaptation triggers need a learning context or strategy")

    table = as_route_table(cfg.routes)
    if table is not None:
        table.validate()

    engine = engine or AdaptationEngine(events=context.events if context is not None else EventBus())
    if context is not None:
        engine.watch(context)
    router = router or ConfidenceRouter()
    explainer = explainer or ExplainabilityGenerator()

    def plan(result: Any) -> Union[tuple[str, ...], AdaptationDecision, None]:
        """Forced reasons to evaluate with, a ready decision, or None to skip."""

        has_triggers = context is not None and bool(context.triggers)
        if cfg.adapt_when is not None:
            try:
                gate_open = bool(cfg.adapt_when(result))
            except Exception as exc:
                reason = f"{ADAPT_WHEN_FAILED_REASON}: {type(exc).__name__}: {exc}"
                engine.record_failure(capability, reason)
                return AdaptationDecision(False, (reason,))
            if not gate_open:
                return None
            return () if has_triggers else (ADAPT_WHEN_REASON,)
        return () if has_triggers else None

    def adapt(result: Any) -> Optional[AdaptationDecision]:
        decision = plan(result)
        if isinstance(decision, tuple):
            decision = engine.evaluate(context, result, forced_reasons=decision, capability=capability)
        wrapper.last_decision = decision  # type: ignore[attr-defined]
        return decision

    async def aadapt(result: Any) -> Optional[AdaptationDecision]:
        decision = plan(result)
        if isinstance(decision, tuple):
            decision = await engine.aevaluate(context, result, forced_reasons=decision, capability=capability)
        wrapper.last_decision = decision  # type: ignore[attr-defined]
        return decision

    def finish(result: Any, args: tuple, kwargs: dict) -> Any:
        explanation = None
        if cfg.explain_with:
            explanation = explainer.explain(result, cfg.explain_with, _input_of(args, kwargs), context=context)
        value = router.route(result, table, *args, **kwargs) if table is not None else result
        if explanation is not None:
            return EnhancedResult(value, explanation)
        return value

    run_async = (procedure is not None and inspect.iscoroutinefunction(procedure)) or (
        context is not None and (context.is_async or context.has_async_hook("retrain"))
    )

    if run_async:
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            if context is not None:
                result = await context.aprocess(_input_of(args, kwargs))
            else:
                result = await procedure(*args, **kwargs)
            await aadapt(result)
            return finish(result, args, kwargs)
    else:
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if context is not None:
                result = context.process(_input_of(args, kwargs))
            else:
                result = procedure(*args, **kwargs)
            adapt(result)
            return finish(result, args, kwargs)

    if procedure is not None:
        wrapper = functools.wraps(procedure)(wrapper)
    else:
        wrapper.__name__ = wrapper.__qualname__ = capability

    def _outcome(outcome: Union[Outcome, bool]) -> Outcome:
        if context is None:
            raise ValueError(f"'{capability}' has no learning context to receive feedback")
        return Outcome(agreed=outcome) if isinstance(outcome, bool) else outcome

    def feedback(result: Any, outcome: Union[Outcome, bool]) -> AdaptationDecision:
        """Report whether ``result`` held up; may trigger a retrain request."""

        return engine.evaluate(context, result, _outcome(outcome), capability=capability)

    async def afeedback(result: Any, outcome: Union[Outcome, bool]) -> AdaptationDecision:
        """``feedback`` for strategies with an asynchronous retrain hook."""

        return await engine.aevaluate(context, result, _outcome(outcome), capability=capability)

    wrapper.context = context  # type: ignore[attr-defined]
    wrapper.config = cfg  # type: ignore[attr-defined]
    wrapper.engine = engine  # type: ignore[attr-defined]
    wrapper.route_table = table  # type: ignore[attr-defined]
    wrapper.feedback = feedback  # type: ignore[attr-defined]
    wrapper.afeedback = afeedback  # type: ignore[attr-defined]
    wrapper.last_decision = None  # type: ignore[attr-defined]
    return wrapper


def enhanced(
    config: Union[EnhancementConfig, Mapping[str, Any], None] = None,
    **kwargs: Any,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator form of ``enhance``: ``@enhanced(explainWith=["confidenceBreakdown"])``."""

    def decorator(procedure: Callable[..., Any]) -> Callable[..., Any]:
        return enhance(procedure, config, **kwargs)

    return decorator


__all__ = ["ADAPT_WHEN_FAILED_REASON", "ADAPT_WHEN_REASON", "EnhancedResult", "enhance", "enhanced"]
