"""
Static types used by environment declarations and the checker.
"""

from enum import Enum
from typing import Sequence


class ExprType(Enum):
    """Declared type of an identifier, function parameter or result."""

    STRING = "string"
    INT = "int"
    DOUBLE = "double"
    BOOL = "bool"
    NULL = "null"
    LIST = "list"
    MAP = "map"
    DYN = "dyn"

    def __str__(self) -> str:
        return self.value


NUMERIC_TYPES = frozenset({ExprType.INT, ExprType.DOUBLE})


def is_assignable(target: ExprType, source: ExprType) -> bool:
    """
    Returns True if a value of type `source` may be passed where `target`
    is declared.

    `dyn` on either side defers the check to runtime, `null` is accepted
    everywhere (helpers are null tolerant) and `int` widens to `double`.
    """
    if target == ExprType.DYN or source == ExprType.DYN:
        return True
    if source == ExprType.NULL:
        return True
    if target == source:
        return True
    return target == ExprType.DOUBLE and source == ExprType.INT


def is_numeric(t: ExprType) -> bool:
    return t in NUMERIC_TYPES


def join_types(a: ExprType, b: ExprType) -> ExprType:
    """Least common type of two branches, falling back to dyn."""
    if a == b:
        return a
    if is_numeric(a) and is_numeric(b):
        return ExprType.DOUBLE
    return ExprType.DYN


def format_signature(types: Sequence[ExprType]) -> str:
    return "(" + ", ".join(str(t) for t in types) + ")"
