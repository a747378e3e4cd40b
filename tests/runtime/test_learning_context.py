import asyncio

import pytest

from aiop.runtime.learning.context import LearningContext
from aiop.runtime.learning.errors import InferenceFailure, InvalidExampleError
from aiop.runtime.learning.events import (
    CaptureSubscriber,
    ConfidenceOutOfRangeEvent,
    EventBus,
    ExampleAddedEvent,
    InferenceFailureEvent,
)
from aiop.runtime.learning.examples import Example
from aiop.runtime.learning.results import InferenceResult
from aiop.runtime.learning.strategy import InferenceStrategy, KeywordOverlapStrategy
from aiop.runtime.learning.triggers import ConfidenceBelow, Outcome

SENTIMENT_SEED = [
    ("I love this product!", "POSITIVE"),
    ("This is terrible", "NEGATIVE"),
    ("It works as expected", "NEUTRAL"),
]


class FixedStrategy(InferenceStrategy):
    def __init__(self, output):
        self.output = output
        self.seen = []
        self.updates = []
        self.retrains = []

    def infer(self, input, examples):
        self.seen.append((input, len(examples)))
        return self.output

    def update(self, example):
        self.updates.append(example)

    def retrain(self, examples, reasons):
        self.retrains.append((len(examples), tuple(reasons)))


class BrokenStrategy(InferenceStrategy):
    def infer(self, input, examples):
        raise RuntimeError("model offline")


class SlowAsyncStrategy(InferenceStrategy):
    async def infer(self, input, examples):
        await asyncio.sleep(1)
        return ("late", 0.9)


class FakeRepository:
    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.saved = None

    def load(self, capability):
        return list(self.rows)

    def save(self, capability, examples):
        self.saved = (capability, list(examples))


def make_context(strategy=None, **kwargs):
    return LearningContext("sentiment", strategy or KeywordOverlapStrategy(), examples=SENTIMENT_SEED, **kwargs)


def test_sentiment_scenario_is_positive_with_confident_score():
    context = make_context()
    result = context.process("I love your product, it's really helping me!")

    assert result.result == "POSITIVE"
    assert 0.5 <= result.confidence <= 1.0


def test_process_passes_current_examples_to_strategy():
    strategy = FixedStrategy(("X", 0.4))
    context = make_context(strategy)
    context.add_example("new", "X")
    result = context.process("anything")

    assert result == InferenceResult("X", 0.4)
    assert strategy.seen == [("anything", 4)]


@pytest.mark.parametrize(
    "raw",
    [InferenceResult("A", 0.6), ("A", 0.6), {"result": "A", "confidence": 0.6}],
)
def test_process_normalizes_strategy_output_shapes(raw):
    context = make_context(FixedStrategy(raw))
    assert context.process("x") == InferenceResult("A", 0.6)


@pytest.mark.parametrize("raw_confidence, clamped", [(1.4, 1.0), (-0.2, 0.0)])
def test_out_of_range_confidence_is_clamped_and_reported(raw_confidence, clamped):
    context = make_context(FixedStrategy(("A", raw_confidence)))
    capture = CaptureSubscriber(context.events)

    result = context.process("x")

    assert result.confidence == clamped
    events = capture.of_type(ConfidenceOutOfRangeEvent)
    assert len(events) == 1
    assert events[0].raw == raw_confidence
    assert events[0].clamped == clamped


def test_strategy_errors_surface_as_inference_failure():
    context = make_context(BrokenStrategy())
    capture = CaptureSubscriber(context.events)

    with pytest.raises(InferenceFailure) as excinfo:
        context.process("x")

    assert excinfo.value.context == "sentiment"
    assert isinstance(excinfo.value.cause, RuntimeError)
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert len(capture.of_type(InferenceFailureEvent)) == 1


@pytest.mark.parametrize("raw", ["just a label", ("A", "high"), ("A", True)])
def test_contract_violations_are_inference_failures(raw):
    context = make_context(FixedStrategy(raw))
    with pytest.raises(InferenceFailure) as excinfo:
        context.process("x")
    assert isinstance(excinfo.value.cause, TypeError)


def test_sync_process_rejects_async_strategy():
    context = make_context(SlowAsyncStrategy())
    assert context.is_async
    with pytest.raises(InferenceFailure) as excinfo:
        context.process("x")
    assert "aprocess" in str(excinfo.value.cause)


def test_aprocess_supports_sync_and_async_strategies():
    async def infer(input, examples):
        return ("async", 0.75)

    sync_context = make_context()
    async_context = LearningContext("async", infer)

    sync_result = asyncio.run(sync_context.aprocess("I love this product!"))
    async_result = asyncio.run(async_context.aprocess("x"))

    assert sync_result.result == "POSITIVE"
    assert async_result == InferenceResult("async", 0.75)


def test_aprocess_timeout_becomes_inference_failure():
    context = make_context(SlowAsyncStrategy(), timeout=0.01)
    capture = CaptureSubscriber(context.events)

    with pytest.raises(InferenceFailure) as excinfo:
        asyncio.run(context.aprocess("x"))

    assert isinstance(excinfo.value.cause, asyncio.TimeoutError)
    assert len(capture.of_type(InferenceFailureEvent)) == 1


def test_cancelled_aprocess_emits_nothing():
    context = make_context(SlowAsyncStrategy())
    capture = CaptureSubscriber(context.events)

    async def run():
        task = asyncio.create_task(context.aprocess("x"))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert capture.events == []


def test_add_example_validates_stores_notifies_and_emits():
    strategy = FixedStrategy(("A", 0.5))
    context = make_context(strategy)
    capture = CaptureSubscriber(context.events)

    context.add_example("Great stuff", "POSITIVE")

    assert context.examples[-1] == Example("Great stuff", "POSITIVE")
    assert len(context.examples) == 4
    assert strategy.updates == [Example("Great stuff", "POSITIVE")]
    events = capture.of_type(ExampleAddedEvent)
    assert len(events) == 1
    assert events[0].context == "sentiment"
    assert events[0].example == Example("Great stuff", "POSITIVE")

    with pytest.raises(InvalidExampleError):
        context.add_example(None, "POSITIVE")
    assert len(context.examples) == 4
    assert len(capture.of_type(ExampleAddedEvent)) == 1


def test_should_adapt_is_false_without_triggers():
    context = make_context()
    assert context.should_adapt(InferenceResult("A", 0.0)) is False
    assert context.fired_triggers(InferenceResult("A", 0.0), Outcome(agreed=False)) == []


def test_should_adapt_is_logical_or_over_triggers():
    context = make_context(
        adaptation_triggers={
            "confidenceThreshold": 0.7,
            "isNeutral": lambda result: result.result == "NEUTRAL",
        }
    )

    assert context.should_adapt(InferenceResult("POSITIVE", 0.95)) is False
    assert context.should_adapt(InferenceResult("POSITIVE", 0.6)) is True
    assert context.should_adapt(InferenceResult("NEUTRAL", 0.95)) is True
    assert context.fired_triggers(InferenceResult("NEUTRAL", 0.5)) == ["confidenceThreshold", "isNeutral"]
    assert isinstance(context.triggers["confidenceThreshold"], ConfidenceBelow)


def test_request_retrain_forwards_to_strategy_hook():
    strategy = FixedStrategy(("A", 0.5))
    context = make_context(strategy)
    context.request_retrain(["confidenceThreshold"])
    assert strategy.retrains == [(3, ("confidenceThreshold",))]


def test_reset_clears_examples():
    context = make_context()
    context.reset()
    assert len(context.examples) == 0
    with pytest.raises(InferenceFailure):
        context.process("anything")


def test_examples_round_trip_through_repository():
    repo = FakeRepository(rows=[{"input": "meh", "output": "NEUTRAL"}])
    context = make_context()

    assert context.load_examples(repo) == 1
    context.save_examples(repo)

    name, saved = repo.saved
    assert name == "sentiment"
    assert saved[-1] == Example("meh", "NEUTRAL")
    assert len(saved) == 4


def test_plain_callable_is_accepted_as_strategy():
    context = LearningContext("echo", lambda input, examples: (input.upper(), 1.0))
    assert context.process("hi") == InferenceResult("HI", 1.0)


def test_context_requires_name_and_usable_strategy():
    with pytest.raises(ValueError):
        LearningContext("", KeywordOverlapStrategy())
    with pytest.raises(TypeError):
        LearningContext("x", object())


class AsyncHookStrategy(InferenceStrategy):
    def __init__(self):
        self.updates = []
        self.retrains = []

    def infer(self, input, examples):
        return ("A", 0.5)

    async def update(self, example):
        await asyncio.sleep(0)
        self.updates.append(example)

    async def retrain(self, examples, reasons):
        await asyncio.sleep(0)
        self.retrains.append(tuple(reasons))


def test_aadd_example_awaits_async_update_hook():
    strategy = AsyncHookStrategy()
    context = make_context(strategy)

    asyncio.run(context.aadd_example("Great stuff", "POSITIVE"))

    assert strategy.updates == [Example("Great stuff", "POSITIVE")]
    assert len(context.examples) == 4


def test_sync_add_example_rejects_async_update_hook_before_storing():
    strategy = AsyncHookStrategy()
    context = make_context(strategy)
    capture = CaptureSubscriber(context.events)

    with pytest.raises(TypeError, match="aadd_example"):
        context.add_example("Great stuff", "POSITIVE")

    assert len(context.examples) == 3
    assert capture.events == []
    assert strategy.updates == []


def test_async_retrain_hook_needs_arequest_retrain():
    strategy = AsyncHookStrategy()
    context = make_context(strategy)

    with pytest.raises(TypeError, match="arequest_retrain"):
        context.request_retrain(["confidenceThreshold"])
    asyncio.run(context.arequest_retrain(["confidenceThreshold"]))

    assert strategy.retrains == [("confidenceThreshold",)]
    assert context.has_async_hook("retrain") is True
    assert make_context(FixedStrategy(("A", 0.5))).has_async_hook("retrain") is False


def test_raising_subscriber_does_not_replace_inference_failure():
    bus = EventBus()

    def broken_handler(event):
        raise OSError("log sink closed")

    bus.subscribe(broken_handler)
    context = LearningContext("broken", BrokenStrategy(), events=bus)

    with pytest.raises(InferenceFailure):
        context.process("x")

    assert len(bus.handler_errors) == 1
    event, exc = bus.handler_errors[0]
    assert isinstance(event, InferenceFailureEvent)
    assert isinstance(exc, OSError)


def test_raising_subscriber_does_not_block_update_hook():
    strategy = FixedStrategy(("A", 0.5))
    context = make_context(strategy)
    capture = CaptureSubscriber(context.events)

    def broken_handler(event):
        raise OSError("log sink closed")

    context.events.subscribe(broken_handler)
    context.add_example("Great stuff", "POSITIVE")

    assert strategy.updates == [Example("Great stuff", "POSITIVE")]
    assert len(capture.of_type(ExampleAddedEvent)) == 1
    assert len(context.events.handler_errors) == 1
