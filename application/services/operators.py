# application/services/operators.py
"""
Check operators used inside ``{{...}}`` expressions.

The built-in set is closed: ``CheckOperator`` enumerates it and
``_BUILTIN_TABLE`` maps each member to its evaluation function. A run may add
extra helpers through ``OperatorRegistry``; built-in names cannot be shadowed.
"""
from __future__ import annotations

import math
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from domain.errors import OperatorError, StructuralError
from domain.values import UNDEFINED, is_number, is_numeric_string, js_string, parse_number, to_number, type_name


class CheckOperator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    STARTS_WITH = "startsWith"
    NOT_STARTS_WITH = "notStartsWith"
    ENDS_WITH = "endsWith"
    NOT_ENDS_WITH = "notEndsWith"
    INCLUDES = "includes"
    NOT_INCLUDES = "notIncludes"
    EMPTY = "empty"
    NOT_EMPTY = "notEmpty"
    NULL = "null"
    NOT_NULL = "notNull"
    UNDEFINED = "undefined"
    NOT_UNDEFINED = "notUndefined"
    LENGTH = "length"
    COMPARE = "compare"


COMPARISON_OPS = ("==", "!=", ">", ">=", "<", "<=")

_NUMERIC_OPS: Dict[str, Callable[[Any, Any], bool]] = {
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
}

_STRING_OPS: Dict[str, Callable[[str, str], bool]] = {
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    "startsWith": lambda a, b: a.startswith(b),
    "notStartsWith": lambda a, b: not a.startswith(b),
    "endsWith": lambda a, b: a.endswith(b),
    "notEndsWith": lambda a, b: not a.endswith(b),
    "includes": lambda a, b: b in a,
    "notIncludes": lambda a, b: b not in a,
}

UNARY_COMPARE_OPS = ("empty", "null", "undefined")
COMPARE_OPS = (*COMPARISON_OPS, *_STRING_OPS, *UNARY_COMPARE_OPS)


def _is_nullish(v: Any) -> bool:
    return v is None or v is UNDEFINED


def _to_primitive(v: Any) -> Any:
    if isinstance(v, (list, tuple, dict)):
        return js_string(v)
    return v


def loose_equals(left: Any, right: Any) -> bool:
    """JavaScript ``==``."""
    if _is_nullish(left) or _is_nullish(right):
        return _is_nullish(left) and _is_nullish(right)

    l_obj = isinstance(left, (list, tuple, dict))
    r_obj = isinstance(right, (list, tuple, dict))
    if l_obj and r_obj:
        return left is right
    if l_obj:
        return loose_equals(_to_primitive(left), right)
    if r_obj:
        return loose_equals(left, _to_primitive(right))

    if isinstance(left, bool) or isinstance(right, bool):
        if isinstance(left, bool) and isinstance(right, bool):
            return left == right
        return loose_equals(to_number(left) if isinstance(left, bool) else left,
                            to_number(right) if isinstance(right, bool) else right)

    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if is_number(left) and isinstance(right, str):
        return left == to_number(right)
    if isinstance(left, str) and is_number(right):
        return to_number(left) == right
    return left == right


def _is_comparable(v: Any) -> bool:
    return isinstance(v, str) or is_number(v)


def _coerce_operands(op: str, left: Any, right: Any) -> Tuple[Any, Any]:
    if not _is_comparable(left):
        raise OperatorError(
            f"operator {op} requires string | number operands: invalid left operand: {js_string(left)}"
        )
    if not _is_comparable(right):
        raise OperatorError(
            f"operator {op} requires string | number operands: invalid right operand: {js_string(right)}"
        )
    # number wins: a numeric-looking string facing a number becomes a number
    if is_number(left) and is_numeric_string(right):
        right = parse_number(right)
    elif is_number(right) and is_numeric_string(left):
        left = parse_number(left)
    if is_number(left) != is_number(right):
        raise OperatorError(
            f"operator {op} requires operands of the same type: left={type_name(left)} right={type_name(right)}"
        )
    return left, right


def is_empty(value: Any) -> bool:
    if _is_nullish(value):
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


def compare(left: Any, op: Any, right: Any = UNDEFINED) -> bool:
    if op == "empty":
        return is_empty(left)
    if op == "undefined":
        return left is UNDEFINED
    if op == "null":
        return _is_nullish(left)
    if op == "==":
        return loose_equals(left, right)
    if op == "!=":
        return not loose_equals(left, right)

    if not isinstance(op, str) or (op not in _NUMERIC_OPS and op not in _STRING_OPS):
        raise OperatorError(f"unsupported operator {js_string(op)}")

    left, right = _coerce_operands(op, left, right)
    if is_number(left):
        fn = _NUMERIC_OPS.get(op)
        if fn is None:
            raise OperatorError(f"operator {op} requires string operands, got numbers: {js_string(left)}, {js_string(right)}")
        if (isinstance(left, float) and math.isnan(left)) or (isinstance(right, float) and math.isnan(right)):
            return False
        return fn(left, right)
    return _STRING_OPS[op](left, right)


def length(target: Any, op: Any, n: Any) -> bool:
    if isinstance(target, (str, list, tuple, dict)):
        size = len(target)
    else:
        raise OperatorError(f"operator length cannot get length for type {type_name(target)}")
    if not is_number(n) or n < 0:
        raise OperatorError(f"operator length expects a non-negative number, got {js_string(n)}")
    if op not in COMPARISON_OPS:
        raise OperatorError(f"operator length does not support comparison {js_string(op)}")
    if op == "==":
        return size == n
    if op == "!=":
        return size != n
    return _NUMERIC_OPS[op](size, n)


def _binary(op: str) -> Callable[[Any, Any], bool]:
    def fn(left: Any = UNDEFINED, right: Any = UNDEFINED) -> bool:
        return compare(left, op, right)
    return fn


def _negated(fn: Callable[[Any], bool]) -> Callable[[Any], bool]:
    def inner(value: Any = UNDEFINED) -> bool:
        return not fn(value)
    return inner


def _unary(op: str) -> Callable[[Any], bool]:
    def fn(value: Any = UNDEFINED) -> bool:
        return compare(value, op)
    return fn


# (function, max operand count)
_BUILTIN_TABLE: Dict[CheckOperator, Tuple[Callable[..., bool], int]] = {
    CheckOperator.EQ: (_binary("=="), 2),
    CheckOperator.NEQ: (_binary("!="), 2),
    CheckOperator.GT: (_binary(">"), 2),
    CheckOperator.GTE: (_binary(">="), 2),
    CheckOperator.LT: (_binary("<"), 2),
    CheckOperator.LTE: (_binary("<="), 2),
    CheckOperator.STARTS_WITH: (_binary("startsWith"), 2),
    CheckOperator.NOT_STARTS_WITH: (_binary("notStartsWith"), 2),
    CheckOperator.ENDS_WITH: (_binary("endsWith"), 2),
    CheckOperator.NOT_ENDS_WITH: (_binary("notEndsWith"), 2),
    CheckOperator.INCLUDES: (_binary("includes"), 2),
    CheckOperator.NOT_INCLUDES: (_binary("notIncludes"), 2),
    CheckOperator.EMPTY: (_unary("empty"), 1),
    CheckOperator.NOT_EMPTY: (_negated(_unary("empty")), 1),
    CheckOperator.NULL: (_unary("null"), 1),
    CheckOperator.NOT_NULL: (_negated(_unary("null")), 1),
    CheckOperator.UNDEFINED: (_unary("undefined"), 1),
    CheckOperator.NOT_UNDEFINED: (_negated(_unary("undefined")), 1),
    CheckOperator.LENGTH: (length, 3),
    CheckOperator.COMPARE: (compare, 3),
}

_BUILTIN_NAMES = {op.value: op for op in CheckOperator}


class OperatorRegistry:
    """
    Per-run helper table: the built-in operators plus optional extra helpers.
    """

    def __init__(self, helpers: Optional[Mapping[str, Callable[..., Any]]] = None):
        self._extra: Dict[str, Callable[..., Any]] = {}
        for name, fn in (helpers or {}).items():
            if name in _BUILTIN_NAMES:
                raise StructuralError(f"helper={name} would shadow a built-in operator")
            if not callable(fn):
                raise StructuralError(f"helper={name} is not callable")
            self._extra[name] = fn

    def has(self, name: str) -> bool:
        return name in _BUILTIN_NAMES or name in self._extra

    def invoke(self, name: str, args: Sequence[Any]) -> Any:
        op = _BUILTIN_NAMES.get(name)
        if op is not None:
            fn, arity = _BUILTIN_TABLE[op]
            if len(args) > arity:
                raise OperatorError(f"operator {name} takes at most {arity} operands, got {len(args)}")
            return fn(*args)

        fn = self._extra.get(name)
        if fn is None:
            raise OperatorError(f"unknown operator {name}")
        try:
            return fn(*args)
        except OperatorError:
            raise
        except Exception as e:
            raise OperatorError(f"helper {name} failed: {e}") from e
