"""
Learning Runtime - Example-trained capabilities with confidence routing

WHAT: Local library composing plain procedures with pluggable inference strategies
WHERE: aiop/runtime/learning/ - runtime orchestration subsystem
WHO: Systems defining learned capabilities (classification, triage, routing)
TIME: Runtime overhead O(triggers + bands + explanation kinds) per call

Components (leaves first):
- ExampleStore: append-only labeled examples for one capability
- InferenceStrategy: pluggable (result, confidence) provider
- LearningContext: store + strategy + adaptation triggers
- ConfidenceRouter: one handler per call, chosen by confidence band
- AdaptationEngine: threshold and accumulated-feedback retrain decisions
- ExplainabilityGenerator: structured, advisory explanations
- enhance(): the public composition point

Boundary Notes:
- Observability goes through EventBus; nothing here prints or logs
- Order per call is fixed: process -> adapt-check -> explain -> route
"""

from .adaptation import (  # noqa: F401
    AdaptationConfig,
    AdaptationDecision,
    AdaptationEngine,
)
from .config import EnhancementConfig, TriggerSpec, build_trigger, build_triggers  # noqa: F401
from .context import LearningContext  # noqa: F401
from .enhance import EnhancedResult, enhance, enhanced  # noqa: F401
from .errors import (  # noqa: F401
    InferenceFailure,
    InvalidExampleError,
    LearningRuntimeError,
    NoDefaultHandlerError,
    OutOfRangeConfidenceWarning,
    TriggerConfigError,
)
from .events import (  # noqa: F401
    CaptureSubscriber,
    ConfidenceOutOfRangeEvent,
    EventBus,
    ExampleAddedEvent,
    InferenceFailureEvent,
    RetrainRequestedEvent,
    RuntimeEvent,
)
from .examples import Example, ExampleRepository, ExampleStore, ExampleView  # noqa: F401
from .explain import (  # noqa: F401
    ExplainabilityGenerator,
    Explanation,
    ExplanationKind,
    ExplanationSection,
)
from .registry import CapabilityRegistry  # noqa: F401
from .results import InferenceResult  # noqa: F401
from .router import ConfidenceBand, ConfidenceRouter, ConfidenceRouteTable  # noqa: F401
from .strategy import CallableStrategy, InferenceStrategy, KeywordOverlapStrategy  # noqa: F401
from .triggers import (  # noqa: F401
    AdaptationTrigger,
    ConfidenceBelow,
    DisagreementAbove,
    Outcome,
    OutcomeWindow,
    PredicateTrigger,
)

__all__ = [
    "AdaptationConfig",
    "AdaptationDecision",
    "AdaptationEngine",
    "AdaptationTrigger",
    "CallableStrategy",
    "CapabilityRegistry",
    "CaptureSubscriber",
    "ConfidenceBand",
    "ConfidenceBelow",
    "ConfidenceOutOfRangeEvent",
    "ConfidenceRouteTable",
    "ConfidenceRouter",
    "DisagreementAbove",
    "EnhancedResult",
    "EnhancementConfig",
    "EventBus",
    "Example",
    "ExampleAddedEvent",
    "ExampleRepository",
    "ExampleStore",
    "ExampleView",
    "ExplainabilityGenerator",
    "Explanation",
    "ExplanationKind",
    "ExplanationSection",
    "InferenceFailure",
    "InferenceFailureEvent",
    "InferenceResult",
    "InferenceStrategy",
    "InvalidExampleError",
    "KeywordOverlapStrategy",
    "LearningContext",
    "LearningRuntimeError",
    "NoDefaultHandlerError",
    "Outcome",
    "OutcomeWindow",
    "OutOfRangeConfidenceWarning",
    "PredicateTrigger",
    "RetrainRequestedEvent",
    "RuntimeEvent",
    "TriggerConfigError",
    "TriggerSpec",
    "build_trigger",
    "build_triggers",
    "enhance",
    "enhanced",
]
