"""Inference results and normalization of raw strategy output."""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Mapping, Optional, Tuple

from .errors import OutOfRangeConfidenceWarning


@dataclass(frozen=True, slots=True)
class InferenceResult:
    """A strategy answer together with its self-reported confidence in [0, 1]."""

    result: Any
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence!r}")


def clamp_confidence(value: Any) -> Tuple[float, Optional[OutOfRangeConfidenceWarning]]:
    """Coerce ``value`` into [0, 1]; the warning is set when clamping happened."""

    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"confidence must be a real number, got {type(value).__name__}")
    raw = float(value)
    if math.isnan(raw):
        return 0.0, OutOfRangeConfidenceWarning(value, 0.0)
    if raw < 0.0:
        return 0.0, OutOfRangeConfidenceWarning(value, 0.0)
    if raw > 1.0:
        return 1.0, OutOfRangeConfidenceWarning(value, 1.0)
    return raw, None


def normalize_output(raw: Any) -> Tuple[InferenceResult, Optional[OutOfRangeConfidenceWarning]]:
    """Turn strategy output into an ``InferenceResult``.

    Accepted shapes: ``InferenceResult``, ``(result, confidence)`` and a
    mapping with ``result`` and ``confidence`` keys. Anything else raises
    ``TypeError``, which callers report as a contract violation.
    """

    if isinstance(raw, InferenceResult):
        return raw, None
    if isinstance(raw, Mapping):
        if "result" not in raw or "confidence" not in raw:
            raise TypeError("strategy mapping output needs 'result' and 'confidence' keys")
        value, confidence = raw["result"], raw["confidence"]
    elif isinstance(raw, tuple) and len(raw) == 2:
        value, confidence = raw
    else:
        raise TypeError(f"unsupported strategy output type {type(raw).__name__}")

    clamped, warning = clamp_confidence(confidence)
    return InferenceResult(value, clamped), warning


def extract_confidence(value: Any) -> Optional[float]:
    """Best-effort confidence lookup for results of plain procedures.

    Returns ``None`` when ``value`` carries no numeric confidence.
    """

    if isinstance(value, InferenceResult):
        return value.confidence
    if isinstance(value, Mapping):
        confidence = value.get("confidence")
    else:
        confidence = getattr(value, "confidence", None)
    if isinstance(confidence, bool) or not isinstance(confidence, Real):
        return None
    return float(confidence)


__all__ = [
    "InferenceResult",
    "clamp_confidence",
    "extract_confidence",
    "normalize_output",
]
