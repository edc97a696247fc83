"""
Value adapter between native Python data and expression values.

Expression values form a closed union: str, int, float, bool, None,
lists of values and string-keyed dicts of values. Native data with a
direct mapping (JSON/YAML documents, scalars) converts structurally.
Anything else takes the structural round-trip: it is serialized to JSON
and read back as plain data before being adapted. The round-trip trades
type fidelity (tuples become lists, keys become strings, dates become
ISO strings) for accepting any object an external lookup may return.
"""

import dataclasses
import json
from datetime import date, datetime, time
from typing import Any, Mapping, Sequence, Union

from .errors import ValueConversionError
from .types import ExprType

# Runtime value types for the expression language.
#
# Note: None is the canonical null value in Python.
ExprValue = Union[
    str,
    float,
    int,
    bool,
    None,
    Sequence["ExprValue"],
    Mapping[str, "ExprValue"],
]


class _NoDirectConversion(Exception):
    """Raised internally when a value needs the structural round-trip."""


def to_expr_value(value: Any) -> ExprValue:
    """
    Converts a native value to an expression value.

    Raises:
        ValueConversionError: If the structural round-trip fails
    """
    try:
        return _convert_direct(value)
    except _NoDirectConversion:
        pass
    return _convert_direct(_round_trip(value))


def from_expr_value(value: ExprValue) -> Any:
    """
    Converts an expression value back to plain native data.

    Lists and dicts are copied so callers never share structure with the
    engine.
    """
    if isinstance(value, (list, tuple)):
        return [from_expr_value(item) for item in value]
    if isinstance(value, dict):
        return {key: from_expr_value(item) for key, item in value.items()}
    return value


def _convert_direct(value: Any) -> ExprValue:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value

    if isinstance(value, (list, tuple)):
        return [_convert_direct(item) for item in value]

    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise _NoDirectConversion()
            out[key] = _convert_direct(item)
        return out

    raise _NoDirectConversion()


def json_default(value: Any) -> Any:
    """`default` hook for json.dumps covering dates, dataclasses and plain objects."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    if isinstance(value, bytes):
        return value.decode("utf-8")
    if hasattr(value, "__dict__"):
        return {k: v for k, v in vars(value).items() if not k.startswith("_")}
    raise ValueError(f"cannot serialize {type(value).__name__}")


def _round_trip(value: Any) -> Any:
    try:
        encoded = json.dumps(value, default=json_default, allow_nan=True)
    except (ValueError, TypeError, RecursionError) as e:
        raise ValueConversionError(
            f"cannot convert {type(value).__name__} to an expression value: {e}"
        ) from e

    try:
        return json.loads(encoded)
    except ValueError as e:
        raise ValueConversionError(
            f"cannot decode serialized {type(value).__name__}: {e}"
        ) from e


def type_of_value(value: ExprValue) -> ExprType:
    """Returns the static type matching a runtime value."""
    if value is None:
        return ExprType.NULL
    if isinstance(value, bool):
        return ExprType.BOOL
    if isinstance(value, int):
        return ExprType.INT
    if isinstance(value, float):
        return ExprType.DOUBLE
    if isinstance(value, str):
        return ExprType.STRING
    if isinstance(value, (list, tuple)):
        return ExprType.LIST
    if isinstance(value, dict):
        return ExprType.MAP
    return ExprType.DYN


def matches_type(value: ExprValue, declared: ExprType) -> bool:
    """Checks a runtime value against a declared type."""
    if declared == ExprType.DYN or value is None:
        return True
    actual = type_of_value(value)
    if actual == declared:
        return True
    return declared == ExprType.DOUBLE and actual == ExprType.INT


def is_number(value: ExprValue) -> bool:
    """True for int and float values, never for bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def get_type_name(value: ExprValue) -> str:
    """Gets the type name of a value for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__
