import pytest
from pydantic import ValidationError

from aiop.runtime.learning.config import EnhancementConfig, TriggerSpec, build_trigger, build_triggers
from aiop.runtime.learning.errors import InvalidExampleError, TriggerConfigError
from aiop.runtime.learning.examples import Example, coerce_example
from aiop.runtime.learning.explain import ExplanationKind
from aiop.runtime.learning.router import ConfidenceRouteTable
from aiop.runtime.learning.triggers import ConfidenceBelow, DisagreementAbove, PredicateTrigger


def test_camel_case_and_snake_case_options_are_equivalent():
    camel = EnhancementConfig.model_validate(
        {
            "examples": [("hi", "GREETING")],
            "adaptationTriggers": {"confidenceThreshold": 0.7},
            "explainWith": ["confidenceBreakdown"],
        }
    )
    snake = EnhancementConfig(
        examples=[("hi", "GREETING")],
        adaptation_triggers={"confidenceThreshold": 0.7},
        explain_with=["confidenceBreakdown"],
    )

    assert camel.examples == snake.examples == [Example("hi", "GREETING")]
    assert camel.adaptation_triggers == snake.adaptation_triggers
    assert camel.explain_with == snake.explain_with == ["confidenceBreakdown"]


def test_explain_with_accepts_single_kind_and_enum_members():
    assert EnhancementConfig(explainWith="confidenceBreakdown").explain_with == ["confidenceBreakdown"]
    assert EnhancementConfig(
        explainWith=[ExplanationKind.PROVIDE_COUNTEREXAMPLES]
    ).explain_with == ["provideCounterexamples"]


def test_from_options_merges_overrides():
    cfg = EnhancementConfig.from_options({"explainWith": ["confidenceBreakdown"]}, timeout=2.5)
    assert cfg.timeout == 2.5
    assert cfg.explain_with == ["confidenceBreakdown"]


@pytest.mark.parametrize(
    "options",
    [
        {"unknownOption": True},
        {"timeout": 0},
        {"routes": {"default": "not callable"}},
        {"adaptWhen": 0.7},
    ],
)
def test_invalid_options_are_rejected(options):
    with pytest.raises(ValidationError):
        EnhancementConfig.model_validate(options)


def test_malformed_examples_fail_validation():
    with pytest.raises(ValidationError):
        EnhancementConfig(examples=[{"input": "x"}])
    with pytest.raises(InvalidExampleError):
        coerce_example({"input": None, "output": "y"})


@pytest.mark.parametrize("name", ["confidenceThreshold", "confidence_below", "confidenceBelowThreshold"])
def test_bare_threshold_for_confidence_names(name):
    trigger = build_trigger(name, 0.7)
    assert isinstance(trigger, ConfidenceBelow)
    assert trigger.threshold == 0.7
    assert trigger.name == name


@pytest.mark.parametrize("name", ["disagreement", "disagreementRate"])
def test_bare_threshold_for_disagreement_names(name):
    trigger = build_trigger(name, 0.15)
    assert isinstance(trigger, DisagreementAbove)
    assert trigger.window is None


def test_mapping_specs_go_through_trigger_spec():
    trigger = build_trigger("drift", {"type": "disagreement_above", "threshold": 0.2, "window": 50, "min_observations": 5})
    assert isinstance(trigger, DisagreementAbove)
    assert (trigger.threshold, trigger.window, trigger.min_observations, trigger.name) == (0.2, 50, 5, "drift")

    spec = TriggerSpec(type="confidence_below", threshold=0.4)
    assert isinstance(spec.to_trigger("low"), ConfidenceBelow)


def test_callables_and_trigger_instances():
    predicate = build_trigger("neutral", lambda result: result == "NEUTRAL")
    instance = ConfidenceBelow(0.5)

    assert isinstance(predicate, PredicateTrigger)
    assert predicate("NEUTRAL") is True
    assert build_trigger("anything", instance) is instance


@pytest.mark.parametrize(
    "name, spec",
    [
        ("custom", 0.5),
        ("confidenceThreshold", True),
        ("confidenceThreshold", 1.5),
        ("drift", {"type": "unknown", "threshold": 0.2}),
        ("drift", {"type": "disagreement_above", "threshold": 0.2, "extra": 1}),
        ("weird", "0.7"),
    ],
)
def test_invalid_trigger_specs(name, spec):
    with pytest.raises(TriggerConfigError):
        build_triggers({name: spec})


def test_trigger_config_error_is_a_value_error():
    assert issubclass(TriggerConfigError, ValueError)


def test_routes_accept_mapping_or_route_table():
    table = ConfidenceRouteTable([(0.9, lambda r: "auto")], default=lambda r: "review")

    assert EnhancementConfig(routes=table).routes is table
    assert set(EnhancementConfig(routes={"default": print}).routes) == {"default"}
