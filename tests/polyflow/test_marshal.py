import json
import math

import pytest

from polyflow.marshal import is_array_keys
from polyflow.marshal import normalize_result
from polyflow.marshal import parse_output
from polyflow.marshal import summarize
from polyflow.marshal import to_json_value


@pytest.mark.parametrize(
    "keys, expected",
    [
        ([1, 2, 3], True),
        ([3, 1, 2], True),
        ([1, 3], False),
        ([0, 1], False),
        (["1", "2"], False),
        ([True], False),
        ([], False),
    ],
)
def test_is_array_keys(keys, expected):
    assert is_array_keys(keys) is expected


def test_scalars_pass_through():
    assert to_json_value(True) is True
    assert to_json_value(7) == 7
    assert to_json_value(2.5) == 2.5
    assert to_json_value("s") == "s"
    assert to_json_value(None) is None


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_non_finite_numbers_become_null(value):
    assert to_json_value(value) is None


def test_contiguous_integer_keys_become_array():
    assert to_json_value({2: "b", 1: "a", 3: "c"}) == ["a", "b", "c"]


def test_other_keys_become_object_with_string_keys():
    assert to_json_value({1: "a", 3: "c"}) == {"1": "a", "3": "c"}
    assert to_json_value({"x": {1: 10, 2: 20}}) == {"x": [10, 20]}


def test_collections_and_unknown_values():
    assert to_json_value((1, [2, 3])) == [1, [2, 3]]
    assert to_json_value(b"bytes") == "bytes"
    assert to_json_value(object).startswith("<class")


def test_absent_result_is_empty_object():
    assert normalize_result(None) == {}
    assert normalize_result(0) == 0


def test_parse_output_whole_json():
    assert parse_output('{"a": 1}\n') == {"a": 1}
    assert parse_output("42") == 42


def test_parse_output_last_json_line():
    stdout = 'starting\n{"progress": 1}\nprocessing...\n{"result": [1, 2]}\ndone\n'
    assert parse_output(stdout) == {"result": [1, 2]}


def test_parse_output_non_finite_literals_become_null():
    assert parse_output("NaN") is None
    parsed = parse_output('{"a": NaN, "b": Infinity, "c": [-Infinity, 1]}')

    assert parsed == {"a": None, "b": None, "c": [None, 1]}
    assert json.dumps(parsed, allow_nan=False)


def test_parse_output_empty():
    assert parse_output("  \n") == {}


def test_parse_output_unstructured_text_is_kept():
    assert parse_output("hello world\n", "warn", 0) == {
        "raw": True,
        "stdout": "hello world",
        "stderr": "warn",
        "exit_code": 0,
    }


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, "null"),
        (True, "bool[true]"),
        (3, "number[3]"),
        ("abc", "string[3]"),
        ([1, 2], "array[2]"),
        ({"a": 1}, "object[1]"),
    ],
)
def test_summarize(value, expected):
    assert summarize(value) == expected
