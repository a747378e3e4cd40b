"""
Confidence Router - Dispatch by self-reported confidence

WHAT: Route tables of exclusive-lower-bound bands plus a default handler
WHERE: aiop/runtime/learning/router.py - last step of an enhanced call
WHO: Enhanced procedures with ``routes`` and direct callers of ConfidenceRouter
TIME: O(bands) per route

Bands are checked highest bound first and a band matches when
``confidence > bound``. A confidence equal to a bound therefore falls through
to the next band (0.9 against ``>0.9, >0.7`` lands in ``>0.7``). When nothing
matches the default handler runs; without one the router raises instead of
returning the raw result.

Boundary Notes:
- Exactly one handler fires per route() call
- Results without a confidence route as 0.0
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Union

from .errors import NoDefaultHandlerError
from .results import extract_confidence

DEFAULT_LABEL = "default"
BAND_LABEL = re.compile(r"^\s*>?\s*(?P<bound>\d*\.?\d+)\s*$")

Handler = Callable[..., Any]


def parse_band_label(label: str) -> float:
    """``">0.9"`` / ``"> 0.9"`` / ``"0.9"`` -> 0.9."""

    match = BAND_LABEL.match(label)
    if match is None:
        raise ValueError(f"cannot parse confidence band label {label!r}; expected e.g. '>0.9'")
    return float(match.group("bound"))


@dataclass(frozen=True, slots=True)
class ConfidenceBand:
    lower_bound: float
    handler: Handler
    label: str = ""

    def matches(self, confidence: float) -> bool:
        return confidence > self.lower_bound

    @property
    def is_default(self) -> bool:
        return self.label == DEFAULT_LABEL


class ConfidenceRouteTable:
    """Ordered bands (descending bound) plus an optional default handler."""

    def __init__(
        self,
        bands: Iterable[Union[ConfidenceBand, Tuple[float, Handler]]] = (),
        default: Optional[Handler] = None,
    ) -> None:
        normalized = []
        for band in bands:
            if not isinstance(band, ConfidenceBand):
                bound, handler = band
                band = ConfidenceBand(float(bound), handler, f">{bound}")
            if not 0.0 <= band.lower_bound < 1.0:
                raise ValueError(f"band bound must be within [0, 1), got {band.lower_bound}")
            if not callable(band.handler):
                raise TypeError(f"handler for band {band.label or band.lower_bound} is not callable")
            normalized.append(band)

        bounds = [band.lower_bound for band in normalized]
        if len(set(bounds)) != len(bounds):
            raise ValueError(f"duplicate band bounds in route table: {sorted(bounds, reverse=True)}")
        if default is not None and not callable(default):
            raise TypeError("default handler is not callable")

        self._bands: Tuple[ConfidenceBand, ...] = tuple(
            sorted(normalized, key=lambda band: band.lower_bound, reverse=True)
        )
        self._default = (
            ConfidenceBand(float("-inf"), default, DEFAULT_LABEL) if default is not None else None
        )

    @classmethod
    def from_mapping(cls, routes: Mapping[str, Handler]) -> "ConfidenceRouteTable":
        """Build from ``{">0.9": h1, ">0.7": h2, "default": h3}``."""

        bands = [
            ConfidenceBand(parse_band_label(label), handler, label)
            for label, handler in routes.items()
            if label != DEFAULT_LABEL
        ]
        return cls(bands, routes.get(DEFAULT_LABEL))

    @property
    def bands(self) -> Tuple[ConfidenceBand, ...]:
        return self._bands

    @property
    def default(self) -> Optional[Handler]:
        return self._default.handler if self._default else None

    def validate(self) -> None:
        """Raise ``NoDefaultHandlerError`` when some confidence could go unrouted."""

        if self._default is None:
            raise NoDefaultHandlerError()

    def select(self, confidence: float) -> ConfidenceBand:
        for band in self._bands:
            if band.matches(confidence):
                return band
        if self._default is not None:
            return self._default
        raise NoDefaultHandlerError(confidence)


class ConfidenceRouter:
    """Selects and invokes exactly one handler from a route table."""

    @staticmethod
    def confidence_of(result: Any) -> float:
        confidence = extract_confidence(result)
        return 0.0 if confidence is None else confidence

    def select(self, result: Any, table: ConfidenceRouteTable) -> ConfidenceBand:
        return table.select(self.confidence_of(result))

    def route(self, result: Any, table: ConfidenceRouteTable, *args: Any, **kwargs: Any) -> Any:
        """Invoke the selected handler as ``handler(result, *args, **kwargs)``."""

        band = self.select(result, table)
        return band.handler(result, *args, **kwargs)


def as_route_table(routes: Union[ConfidenceRouteTable, Mapping[str, Handler], None]) -> Optional[ConfidenceRouteTable]:
    if routes is None or isinstance(routes, ConfidenceRouteTable):
        return routes
    return ConfidenceRouteTable.from_mapping(routes)


__all__ = [
    "BAND_LABEL",
    "DEFAULT_LABEL",
    "ConfidenceBand",
    "ConfidenceRouteTable",
    "ConfidenceRouter",
    "Handler",
    "as_route_table",
    "parse_band_label",
]
