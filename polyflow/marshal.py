"""
Conversion helpers shared by all runners.

Every runner hands back whatever its step produced in the runner's native
shape; these helpers turn it into a JSON value using one fixed set of rules,
and turn captured subprocess output into a JSON value without ever dropping
text that does not parse.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from collections.abc import Sequence
from typing import Any

type JSONValue = None | bool | int | float | str | list[JSONValue] | dict[str, JSONValue]


def is_array_keys(keys: Sequence[Any]) -> bool:
    """True when the keys are exactly the integers 1..n (in any order)."""
    if not keys:
        return False
    if not all(isinstance(k, int) and not isinstance(k, bool) for k in keys):
        return False
    return sorted(keys) == list(range(1, len(keys) + 1))


def to_json_value(value: Any) -> JSONValue:
    """Converts a native value into a JSON-compatible value."""
    if value is None or isinstance(value, bool | int | str):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, bytes | bytearray):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        keys = list(value.keys())
        if is_array_keys(keys):
            return [to_json_value(value[k]) for k in sorted(keys)]
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple | set | frozenset):
        return [to_json_value(item) for item in value]
    return str(value)


def normalize_result(value: Any) -> JSONValue:
    """Converts a step's return value; an absent result becomes an empty object."""
    if value is None:
        return {}
    return to_json_value(value)


def dumps(value: JSONValue) -> str:
    return json.dumps(value, ensure_ascii=False)


def loads(text: str) -> JSONValue:
    """Strict JSON decoding: NaN and Infinity literals become null."""
    return json.loads(text, parse_constant=lambda _: None)


def raw_output(stdout: str, stderr: str = "", exit_code: int = 0) -> dict[str, JSONValue]:
    """Wraps unstructured text output so it is never discarded."""
    return {
        "raw": True,
        "stdout": stdout,
        "stderr": stderr,
        "exit_code": exit_code,
    }


def parse_output(stdout: str, stderr: str = "", exit_code: int = 0) -> JSONValue:
    """
    Parses captured stdout into a JSON value.

    The whole output is tried first, then each line from the last one
    upwards looking for a JSON object or array. Output that holds no JSON
    is returned wrapped by `raw_output`.
    """
    text = stdout.strip()
    if not text:
        return {}

    try:
        return loads(text)
    except json.JSONDecodeError:
        pass

    for line in reversed(text.splitlines()):
        line = line.strip()
        if not (line.startswith(("{", "[")) and line.endswith(("}", "]"))):
            continue
        try:
            return loads(line)
        except json.JSONDecodeError:
            continue

    return raw_output(text, stderr.strip(), exit_code)


def summarize(value: JSONValue) -> str:
    """Short type/size description of a JSON value, e.g. 'array[3]'."""
    match value:
        case None:
            return "null"
        case bool():
            return f"bool[{str(value).lower()}]"
        case int() | float():
            return f"number[{value}]"
        case str():
            return f"string[{len(value)}]"
        case list():
            return f"array[{len(value)}]"
        case dict():
            return f"object[{len(value)}]"
    return type(value).__name__
