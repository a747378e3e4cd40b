"""AIOP production runtime core package."""

__all__ = [
    "logging",
    "runtime",
]
