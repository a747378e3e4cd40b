#!/usr/bin/env python3
"""
Module: scripts/customer_support_demo.py
Summary: Customer-support triage built from learned capabilities (sentiment + intent).
Inputs: CLI flags (--message, repeatable; --log-level)
Outputs: Per-message sentiment, intent, routing decision and priority on stdout;
         runtime events (retrain requests, failures) via logging
Related: aiop/runtime/learning/*
Stability: demo

Usage:
  python scripts/customer_support_demo.py
  python scripts/customer_support_demo.py --message "I want my money back" --log-level DEBUG
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from aiop.logging import attach_logging
from aiop.runtime.learning import (
    CapabilityRegistry,
    EnhancedResult,
    EventBus,
    InferenceResult,
    KeywordOverlapStrategy,
)

POSITIVE, NEGATIVE, NEUTRAL = "POSITIVE", "NEGATIVE", "NEUTRAL"
QUESTION, COMPLAINT, REFUND_REQUEST, GENERAL_FEEDBACK = (
    "QUESTION",
    "COMPLAINT",
    "REFUND_REQUEST",
    "GENERAL_FEEDBACK",
)

SENTIMENT_EXAMPLES = [
    {"input": "I love this product!", "output": POSITIVE},
    {"input": "This is terrible, don't buy it", "output": NEGATIVE},
    {"input": "It works as expected", "output": NEUTRAL},
]

INTENT_EXAMPLES = [
    {"input": "How do I use this feature?", "output": QUESTION},
    {"input": "This doesn't work as advertised", "output": COMPLAINT},
    {"input": "I want my money back", "output": REFUND_REQUEST},
    {"input": "Just wanted to let you know that I'm enjoying the product", "output": GENERAL_FEEDBACK},
]

DEPARTMENTS = {
    QUESTION: "Support",
    COMPLAINT: "CustomerSuccess",
    REFUND_REQUEST: "Billing",
    GENERAL_FEEDBACK: "ProductTeam",
}

DEMO_MESSAGES = [
    "I love your product, it's really helping me!",
    "How do I reset my password?",
    "This is not working and I want a refund immediately!",
    "Just checking in about my recent order",
]


def department_for(intent: Any) -> str:
    return DEPARTMENTS.get(intent, "General")


def all_departments() -> List[str]:
    return [*DEPARTMENTS.values(), "General"]


def route_automatically(result: InferenceResult, *_: Any) -> Dict[str, Any]:
    return {"action": "ROUTE_AUTOMATICALLY", "department": department_for(result.result), "result": result}


def suggest_routing(result: InferenceResult, *_: Any) -> Dict[str, Any]:
    return {
        "action": "SUGGEST_ROUTING",
        "department": department_for(result.result),
        "requiresConfirmation": True,
        "result": result,
    }


def human_review(result: InferenceResult, *_: Any) -> Dict[str, Any]:
    return {"action": "HUMAN_REVIEW", "possibleDepartments": all_departments(), "result": result}


class CustomerSupportSystem:
    """Sentiment + intent capabilities combined into a triage decision."""

    def __init__(self, *, events: Optional[EventBus] = None) -> None:
        self.registry = CapabilityRegistry(events=events)
        self.registry.define(
            "sentiment",
            KeywordOverlapStrategy(fallback=NEUTRAL),
            examples=SENTIMENT_EXAMPLES,
            adaptation_triggers={"confidenceThreshold": 0.7},
        )
        self.registry.define(
            "intent",
            KeywordOverlapStrategy(fallback=GENERAL_FEEDBACK),
            examples=INTENT_EXAMPLES,
        )
        self.analyze_sentiment = self.registry.enhance(
            "sentiment",
            explainWith=["highlightInfluentialWords", "confidenceBreakdown"],
        )
        self.classify_intent = self.registry.enhance(
            "intent",
            adaptWhen=lambda result: result.confidence < 0.7,
        )
        self.route_customer_message = self.registry.enhance(
            "intent",
            routes={
                ">0.9": route_automatically,
                ">0.7": suggest_routing,
                "default": human_review,
            },
        )

    def process_customer_message(self, message: str) -> Dict[str, Any]:
        sentiment: EnhancedResult = self.analyze_sentiment(message)
        routing = self.route_customer_message(message)
        if sentiment.result.result == NEGATIVE and routing["result"].result == COMPLAINT:
            return {
                "priority": "HIGH",
                "response": "I'm sorry you're experiencing issues. We're routing you to our dedicated team.",
                "routing": routing,
            }
        return {
            "priority": "NORMAL",
            "response": "Thank you for your message. We'll get back to you shortly.",
            "routing": routing,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, InferenceResult):
        return {"result": value.result, "confidence": round(value.confidence, 4)}
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the customer-support triage demo")
    p.add_argument("--message", action="append", default=[], help="Message to triage (repeatable)")
    p.add_argument("--log-level", default="INFO", help="Logging level for runtime events")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    bus = EventBus()
    attach_logging(bus)
    system = CustomerSupportSystem(events=bus)

    for i, message in enumerate(args.message or DEMO_MESSAGES, start=1):
        print(f"\nProcessing message {i}: {message!r}")
        sentiment = system.analyze_sentiment(message)
        print("1. Sentiment:", json.dumps(_jsonable(sentiment.result)))
        print(sentiment.explanation.render(), end="")
        print("2. Intent:", json.dumps(_jsonable(system.classify_intent(message))))
        print("3. Routing:", json.dumps(_jsonable(system.route_customer_message(message))))
        print("4. Full processing:", json.dumps(_jsonable(system.process_customer_message(message))))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
