import pytest

from aiop.runtime.learning.errors import NoDefaultHandlerError
from aiop.runtime.learning.results import InferenceResult
from aiop.runtime.learning.router import (
    ConfidenceRouter,
    ConfidenceRouteTable,
    parse_band_label,
)


def labelled(label):
    return lambda result, *args: label


def standard_table():
    return ConfidenceRouteTable.from_mapping(
        {
            ">0.5": labelled(">0.5"),
            "default": labelled("default"),
            ">0.9": labelled(">0.9"),
            ">0.7": labelled(">0.7"),
        }
    )


@pytest.mark.parametrize(
    "confidence, expected",
    [
        (1.0, ">0.9"),
        (0.95, ">0.9"),
        (0.9, ">0.7"),
        (0.71, ">0.7"),
        (0.7, ">0.5"),
        (0.5, "default"),
        (0.2, "default"),
        (0.0, "default"),
    ],
)
def test_bands_use_exclusive_lower_bounds(confidence, expected):
    router = ConfidenceRouter()
    assert router.route(InferenceResult("x", confidence), standard_table()) == expected


def test_bands_are_checked_highest_first():
    table = standard_table()
    assert [band.lower_bound for band in table.bands] == [0.9, 0.7, 0.5]


def test_exactly_one_handler_fires():
    calls = []
    table = ConfidenceRouteTable(
        [(0.9, lambda r: calls.append("hi")), (0.5, lambda r: calls.append("mid"))],
        default=lambda r: calls.append("default"),
    )
    router = ConfidenceRouter()
    for confidence in (0.0, 0.5, 0.51, 0.9, 0.91, 1.0):
        calls.clear()
        router.route(InferenceResult("x", confidence), table)
        assert len(calls) == 1


def test_default_only_table_routes_everything_to_default():
    table = ConfidenceRouteTable.from_mapping({"default": labelled("default")})
    router = ConfidenceRouter()
    for confidence in (0.0, 0.3, 0.99, 1.0):
        assert router.route(InferenceResult("x", confidence), table) == "default"


def test_missing_default_raises_instead_of_returning_raw_result():
    table = ConfidenceRouteTable.from_mapping({">0.9": labelled(">0.9")})
    router = ConfidenceRouter()

    assert router.route(InferenceResult("x", 0.95), table) == ">0.9"
    with pytest.raises(NoDefaultHandlerError) as excinfo:
        router.route(InferenceResult("x", 0.9), table)
    assert excinfo.value.confidence == 0.9
    with pytest.raises(NoDefaultHandlerError):
        table.validate()


def test_handlers_receive_result_and_original_arguments():
    seen = []
    table = ConfidenceRouteTable(default=lambda result, *args, **kwargs: seen.append((result, args, kwargs)))
    result = InferenceResult("x", 0.4)
    ConfidenceRouter().route(result, table, "message", channel="email")
    assert seen == [(result, ("message",), {"channel": "email"})]


def test_results_without_confidence_route_as_zero():
    table = standard_table()
    router = ConfidenceRouter()
    assert router.route({"label": "x"}, table) == "default"
    assert router.route({"label": "x", "confidence": 0.95}, table) == ">0.9"


@pytest.mark.parametrize("label, bound", [(">0.9", 0.9), ("> 0.7", 0.7), ("0.5", 0.5), (">.25", 0.25)])
def test_parse_band_label(label, bound):
    assert parse_band_label(label) == bound


@pytest.mark.parametrize("label", [">=0.9", "high", "<0.5", ""])
def test_parse_band_label_rejects_other_forms(label):
    with pytest.raises(ValueError):
        parse_band_label(label)


def test_table_rejects_duplicate_and_out_of_range_bounds():
    with pytest.raises(ValueError):
        ConfidenceRouteTable.from_mapping({">0.9": labelled("a"), "> 0.9": labelled("b")})
    with pytest.raises(ValueError):
        ConfidenceRouteTable([(1.0, labelled("never"))])
    with pytest.raises(ValueError):
        ConfidenceRouteTable([(-0.1, labelled("always"))])


def test_select_reports_the_band_without_calling_it():
    table = standard_table()
    band = ConfidenceRouter().select(InferenceResult("x", 0.8), table)
    assert band.label == ">0.7"
    assert not band.is_default
    assert table.select(0.1).is_default
