"""
Machine-readable contract for enhancement options.

Validates the option map passed when a procedure is enhanced (examples,
adaptation triggers, adapt/explain policies, confidence routes) and turns
adaptation trigger specs into trigger objects. Both snake_case names and the
camelCase spellings used in capability definitions are accepted.
"""

from __future__ import annotations

from numbers import Real
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import TriggerConfigError
from .examples import coerce_example
from .router import ConfidenceRouteTable
from .triggers import (
    AdaptationTrigger,
    ConfidenceBelow,
    DisagreementAbove,
    PredicateTrigger,
)

CONFIDENCE_TRIGGER_NAMES = frozenset(
    {"confidenceThreshold", "confidenceBelowThreshold", "confidence_below", "confidence_threshold"}
)
DISAGREEMENT_TRIGGER_NAMES = frozenset(
    {"disagreement", "disagreementRate", "disagreement_above", "disagreement_rate"}
)


class TriggerSpec(BaseModel):
    """Declarative trigger spec, e.g. ``{"type": "disagreement_above", "threshold": 0.15}``."""

    type: Literal["confidence_below", "disagreement_above"]
    threshold: float = Field(..., ge=0.0, le=1.0)
    window: Optional[int] = Field(default=None, ge=1, description="Outcomes considered (disagreement only)")
    min_observations: int = Field(default=1, ge=1)

    model_config = ConfigDict(extra="forbid")

    def to_trigger(self, name: str) -> AdaptationTrigger:
        if self.type == "confidence_below":
            return ConfidenceBelow(self.threshold, name=name)
        return DisagreementAbove(
            self.threshold,
            window=self.window,
            min_observations=self.min_observations,
            name=name,
        )


def build_trigger(name: str, spec: Any) -> AdaptationTrigger:
    """Interpret one ``adaptation_triggers`` entry."""

    if isinstance(spec, AdaptationTrigger):
        return spec
    if isinstance(spec, bool):
        raise TriggerConfigError(f"trigger '{name}': boolean is not a valid spec")
    if isinstance(spec, Real):
        if name in CONFIDENCE_TRIGGER_NAMES:
            return ConfidenceBelow(float(spec), name=name)
        if name in DISAGREEMENT_TRIGGER_NAMES:
            return DisagreementAbove(float(spec), name=name)
        raise TriggerConfigError(
            f"trigger '{name}': a bare threshold needs a known trigger name "
            f"({sorted(CONFIDENCE_TRIGGER_NAMES | DISAGREEMENT_TRIGGER_NAMES)})"
        )
    if isinstance(spec, Mapping):
        try:
            return TriggerSpec.model_validate(dict(spec)).to_trigger(name)
        except ValidationError as exc:
            raise TriggerConfigError(f"trigger '{name}': {exc}") from exc
    if callable(spec):
        return PredicateTrigger(name, spec)
    raise TriggerConfigError(f"trigger '{name}': unsupported spec type {type(spec).__name__}")


def build_triggers(specs: Optional[Mapping[str, Any]]) -> Dict[str, AdaptationTrigger]:
    try:
        return {name: build_trigger(name, spec) for name, spec in (specs or {}).items()}
    except ValueError as exc:
        if isinstance(exc, TriggerConfigError):
            raise
        raise TriggerConfigError(str(exc)) from exc


class EnhancementConfig(BaseModel):
    """Options recognised by ``enhance``."""

    examples: List[Any] = Field(default_factory=list, description="Seed examples")
    adaptation_triggers: Dict[str, Any] = Field(default_factory=dict, alias="adaptationTriggers")
    adapt_when: Optional[Callable[..., Any]] = Field(default=None, alias="adaptWhen")
    explain_with: List[str] = Field(default_factory=list, alias="explainWith")
    routes: Optional[Union[ConfidenceRouteTable, Dict[str, Callable[..., Any]]]] = None
    timeout: Optional[float] = Field(default=None, gt=0.0, description="aprocess timeout in seconds")

    model_config = ConfigDict(extra="forbid", populate_by_name=True, arbitrary_types_allowed=True)

    @field_validator("examples", mode="after")
    @classmethod
    def _coerce_examples(cls, value: List[Any]) -> List[Any]:
        return [coerce_example(item) for item in value]

    @field_validator("adaptation_triggers", mode="after")
    @classmethod
    def _check_triggers(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        build_triggers(value)
        return value

    @field_validator("explain_with", mode="before")
    @classmethod
    def _coerce_kinds(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return [getattr(kind, "value", kind) for kind in value or ()]

    def triggers(self) -> Dict[str, AdaptationTrigger]:
        return build_triggers(self.adaptation_triggers)

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None, **overrides: Any) -> "EnhancementConfig":
        merged = dict(options or {})
        merged.update(overrides)
        return cls.model_validate(merged)


__all__ = [
    "CONFIDENCE_TRIGGER_NAMES",
    "DISAGREEMENT_TRIGGER_NAMES",
    "EnhancementConfig",
    "TriggerSpec",
    "build_trigger",
    "build_triggers",
]
