# domain/values.py
"""
Value helpers shared by template rendering and check operators.

Scripts describe values in a JSON-like space (str, int/float, bool, None,
list, dict). Lookups that find nothing produce ``UNDEFINED``, which is kept
distinct from ``None`` (a variable explicitly set to null).
"""
from __future__ import annotations

import math
import re
from typing import Any, Union


class _Undefined:
    _instance = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Undefined":
        return self

    def __deepcopy__(self, _memo: Any) -> "_Undefined":
        return self


UNDEFINED = _Undefined()

_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_numeric_string(value: Any) -> bool:
    return isinstance(value, str) and _NUMERIC_RE.match(value.strip()) is not None


def parse_number(text: str) -> Union[int, float]:
    """
    Parse a numeric-looking string. Integers stay ``int``, anything with a
    fraction or exponent becomes ``float``.
    """
    s = text.strip()
    if _INTEGER_RE.match(s):
        return int(s)
    return float(s)


def to_number(value: Any) -> float:
    """JavaScript ``Number(value)``; NaN when the value is not numeric."""
    if isinstance(value, bool):
        return 1 if value else 0
    if is_number(value):
        return value
    if value is None:
        return 0
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return 0
        if _NUMERIC_RE.match(s):
            return parse_number(s)
    return math.nan


def _number_to_string(value: Union[int, float]) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def js_string(value: Any) -> str:
    """Stringify a value the way JavaScript ``String(value)`` does."""
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return _number_to_string(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ",".join("" if x is None or x is UNDEFINED else js_string(x) for x in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def type_name(value: Any) -> str:
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def js_truthy(value: Any) -> bool:
    """Empty lists and objects are truthy; 0, NaN, "", false, null and undefined are not."""
    if value is None or value is UNDEFINED or value is False:
        return False
    if is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True
