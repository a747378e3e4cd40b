"""
Capability Registry - Name -> LearningContext map owned by the composition layer

WHAT: Thread-safe registry so systems can look up shared learning contexts
WHERE: aiop/runtime/learning/registry.py - optional composition helper
WHO: Systems defining several capabilities (e.g. sentiment + intent)
TIME: O(1) lookups under a lock

Contexts registered here live for the rest of the process; there is no
removal. A registry is an ordinary object, not a module-level singleton.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Iterable, Iterator, Mapping, Optional

from .context import LearningContext
from .enhance import enhance as enhance_procedure
from .events import EventBus


class CapabilityRegistry:
    """Maps capability names to their learning contexts."""

    def __init__(self, *, events: Optional[EventBus] = None) -> None:
        self._lock = threading.Lock()
        self._contexts: Dict[str, LearningContext] = {}
        self._events = events

    @property
    def events(self) -> Optional[EventBus]:
        """Bus shared by contexts created through ``define`` (None -> one bus per context)."""

        return self._events

    def define(
        self,
        name: str,
        strategy: Any,
        *,
        examples: Iterable[Any] | None = None,
        adaptation_triggers: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> LearningContext:
        context = LearningContext(
            name,
            strategy,
            examples=examples,
            adaptation_triggers=adaptation_triggers,
            events=self._events,
            timeout=timeout,
        )
        return self.register(context)

    def register(self, context: LearningContext) -> LearningContext:
        with self._lock:
            if context.name in self._contexts:
                raise ValueError(f"capability '{context.name}' is already defined")
            self._contexts[context.name] = context
        return context

    def get(self, name: str) -> LearningContext:
        with self._lock:
            try:
                return self._contexts[name]
            except KeyError:
                raise KeyError(f"unknown capability '{name}'") from None

    def enhance(self, name: str, procedure: Optional[Callable[..., Any]] = None, **options: Any) -> Callable[..., Any]:
        """``enhance()`` bound to the registered context ``name``."""

        return enhance_procedure(procedure, context=self.get(name), **options)

    def names(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._contexts)

    def __contains__(self, name: object) -> bool:
        return name in self._contexts

    def __iter__(self) -> Iterator[LearningContext]:
        with self._lock:
            return iter(list(self._contexts.values()))

    def __len__(self) -> int:
        return len(self._contexts)


__all__ = ["CapabilityRegistry"]
