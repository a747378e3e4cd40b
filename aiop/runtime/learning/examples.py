"""
Example Store - Labeled input/output pairs for one capability

WHAT: Append-only, thread-safe store of labeled examples with snapshot reads
WHERE: aiop/runtime/learning/examples.py - owned by a LearningContext
WHO: LearningContext (seeding, add_example) and inference strategies (reads)
TIME: add O(1) under a lock, all() O(1) (lazy view, no copy)

Examples are immutable once stored and keep insertion order. Reads return a
view pinned to the store length at call time, so concurrent appends never
leak into an iteration that already started.

Boundary Notes:
- No deletion; corrections are new examples that strategies may weight by recency
- clear() swaps the backing list so previously issued views keep their snapshot
- Persistence is an external collaborator (ExampleRepository)
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Mapping, Protocol, overload

from .errors import InvalidExampleError


@dataclass(frozen=True, slots=True)
class Example:
    """One labeled pair: ``input`` is what the capability sees, ``output`` what it should answer."""

    input: Any
    output: Any

    def as_dict(self) -> dict[str, Any]:
        return {"input": self.input, "output": self.output}


def coerce_example(value: Any) -> Example:
    """Accept an Example, an ``(input, output)`` pair or an ``{input, output}`` mapping."""

    if isinstance(value, Example):
        example = value
    elif isinstance(value, Mapping):
        if "input" not in value or "output" not in value:
            raise InvalidExampleError(f"example mapping needs 'input' and 'output' keys, got {sorted(value)}")
        example = Example(value["input"], value["output"])
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        example = Example(value[0], value[1])
    else:
        raise InvalidExampleError(f"cannot interpret {type(value).__name__} as an example")

    if example.input is None:
        raise InvalidExampleError("example input must not be None")
    if example.output is None:
        raise InvalidExampleError("example output must not be None")
    return example


class ExampleView(Sequence):
    """Read-only, restartable view over the first ``length`` stored examples."""

    __slots__ = ("_items", "_length")

    def __init__(self, items: List[Example], length: int) -> None:
        self._items = items
        self._length = length

    def __len__(self) -> int:
        return self._length

    @overload
    def __getitem__(self, index: int) -> Example: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Example, ...]: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return tuple(self._items[: self._length][index])
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError("example index out of range")
        return self._items[index]

    def __iter__(self) -> Iterator[Example]:
        for i in range(self._length):
            yield self._items[i]

    def __repr__(self) -> str:
        return f"ExampleView(len={self._length})"


class ExampleStore:
    """Append-only collection of examples for a single capability."""

    def __init__(self, examples: Iterable[Any] | None = None) -> None:
        self._lock = threading.Lock()
        self._items: List[Example] = []
        for value in examples or ():
            self.add(value)

    def add(self, example: Any) -> None:
        """Validate and append one example."""

        item = coerce_example(example)
        with self._lock:
            self._items.append(item)

    def extend(self, examples: Iterable[Any]) -> None:
        for value in examples:
            self.add(value)

    def all(self) -> ExampleView:
        with self._lock:
            return ExampleView(self._items, len(self._items))

    def clear(self) -> None:
        """Logical reset; views handed out earlier keep their contents."""

        with self._lock:
            self._items = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Example]:
        return iter(self.all())


class ExampleRepository(Protocol):
    """External persistence collaborator for example sets."""

    def load(self, capability: str) -> Iterable[Any]:
        """Return stored examples for ``capability`` (Example, pair or mapping)."""

    def save(self, capability: str, examples: Sequence[Example]) -> None:
        """Persist the full example set for ``capability``."""


__all__ = [
    "Example",
    "ExampleRepository",
    "ExampleStore",
    "ExampleView",
    "coerce_example",
]
