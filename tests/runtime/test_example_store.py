import threading

import pytest

from aiop.runtime.learning.errors import InvalidExampleError
from aiop.runtime.learning.examples import Example, ExampleStore, coerce_example


def test_store_add_then_all_ends_with_added_example():
    store = ExampleStore([("a", 1), {"input": "b", "output": 2}])
    store.add(Example("c", 3))

    examples = store.all()
    assert len(store) == 3
    assert examples[-1] == Example("c", 3)
    assert [e.input for e in examples] == ["a", "b", "c"]


def test_store_counts_duplicates_separately():
    store = ExampleStore()
    store.add(("same", "X"))
    store.add(("same", "X"))

    assert len(store) == 2
    assert list(store.all()) == [Example("same", "X"), Example("same", "X")]


@pytest.mark.parametrize(
    "bad",
    [
        (None, "X"),
        ("x", None),
        {"input": "x"},
        "not-an-example",
        ("too", "many", "items"),
    ],
)
def test_store_rejects_malformed_examples(bad):
    store = ExampleStore()
    with pytest.raises(InvalidExampleError):
        store.add(bad)
    assert len(store) == 0


def test_invalid_example_error_is_a_value_error():
    with pytest.raises(ValueError):
        coerce_example((None, None))


def test_view_is_a_restartable_snapshot():
    store = ExampleStore([("a", 1)])
    view = store.all()
    store.add(("b", 2))

    assert len(view) == 1
    assert list(view) == list(view) == [Example("a", 1)]
    assert len(store.all()) == 2
    with pytest.raises(IndexError):
        view[1]


def test_clear_keeps_previous_views_intact():
    store = ExampleStore([("a", 1), ("b", 2)])
    before = store.all()
    store.clear()

    assert len(store) == 0
    assert [e.input for e in before] == ["a", "b"]


def test_examples_are_immutable():
    example = Example("a", 1)
    with pytest.raises(AttributeError):
        example.output = 2  # type: ignore[misc]


def test_concurrent_appends_are_all_kept():
    store = ExampleStore()

    def worker(offset: int) -> None:
        for i in range(200):
            store.add((f"{offset}-{i}", i))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store) == 800
    assert len({e.input for e in store.all()}) == 800
