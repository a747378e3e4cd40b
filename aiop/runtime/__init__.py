"""
Runtime Orchestration Module

WHAT: Runtime subsystem for AI-enhanced procedures and learned capabilities
WHERE: aiop/runtime/ - orchestration layer between plain code and inference strategies
WHO: Systems composing procedures with example-trained strategies
TIME: Per-call orchestration; strategy latency dominates

Provides the execution layer for learned capabilities: example management,
inference normalization, confidence routing, adaptation decisions and
explanations. Model code stays outside, behind the strategy interface.
"""

__all__ = ["learning"]
