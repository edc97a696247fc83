"""
Standard helper functions for the expression language.

All helpers here are pure and deterministic. External, I/O-backed functions
use the same call signature but live in `eventexpr.functions`.

Null handling semantics:
- Predicate-style helpers (starts_with, ends_with, contains, glob_match,
  regex_match) return False when passed None instead of raising.
- Wrong non-null types still raise BuiltinError to surface real bugs.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

from .deadline import Deadline
from .environment import FunctionDecl, Overload
from .errors import BuiltinError, EvaluationError, LimitExceededError
from .limits import ExpressionLimits, enforce_limit
from .types import ExprType
from .values import ExprValue, get_type_name


@dataclass(frozen=True)
class ErrorValue:
    """
    In-band error returned by a function instead of raising.

    The evaluator turns it into an EvaluationError unless a logical
    operator makes the failing operand irrelevant.
    """

    message: str
    function_name: Optional[str] = None
    cause: Optional[BaseException] = None

    def __str__(self) -> str:
        if self.function_name:
            return f"{self.function_name}: {self.message}"
        return self.message


class BuiltinContext:
    """Context passed to built-in and external functions."""

    def __init__(
        self,
        limits: ExpressionLimits,
        position: int,
        source: str,
        deadline: Optional[Deadline] = None,
    ):
        self.limits = limits
        self.position = position
        self.source = source
        self.deadline = deadline


FunctionResult = Union[ExprValue, ErrorValue]

# Signature of a built-in or external function.
BuiltinFunction = Callable[[Sequence[ExprValue], BuiltinContext], FunctionResult]

# Function registry: name -> implementation.
FunctionRegistry = Dict[str, BuiltinFunction]


def _assert_arg_count(
    args: Sequence[ExprValue], expected: int, function_name: str
) -> None:
    if len(args) != expected:
        raise BuiltinError(
            function_name, f"expected {expected} argument(s), got {len(args)}"
        )


def _assert_string(value: ExprValue, arg_name: str, function_name: str) -> str:
    if not isinstance(value, str):
        raise BuiltinError(
            function_name, f"{arg_name} must be a string, got {get_type_name(value)}"
        )
    return value


def _strings_or_none(
    args: Sequence[ExprValue], names: Sequence[str], function_name: str
) -> Optional[List[str]]:
    """
    Validates predicate arguments: returns None if any is null, raises if a
    non-null argument is not a string.
    """
    _assert_arg_count(args, len(names), function_name)
    out: List[str] = []
    for value, name in zip(args, names):
        if value is None:
            return None
        out.append(_assert_string(value, name, function_name))
    return out


# ============================================================
# String Helpers
# ============================================================


def _lower(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    _assert_arg_count(args, 1, "lower")
    return _assert_string(args[0], "s", "lower").lower()


def _upper(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    _assert_arg_count(args, 1, "upper")
    return _assert_string(args[0], "s", "upper").upper()


def _trim(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """trim(s) -> string; null trims to the empty string."""
    _assert_arg_count(args, 1, "trim")
    if args[0] is None:
        return ""
    return _assert_string(args[0], "s", "trim").strip()


def _starts_with(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    values = _strings_or_none(args, ("s", "prefix"), "starts_with")
    return values is not None and values[0].startswith(values[1])


def _ends_with(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    values = _strings_or_none(args, ("s", "suffix"), "ends_with")
    return values is not None and values[0].endswith(values[1])


def _contains(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    values = _strings_or_none(args, ("s", "substring"), "contains")
    return values is not None and values[1] in values[0]


def _split(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """split(s[, separator]) -> list; the separator defaults to a space."""
    if len(args) not in (1, 2):
        raise BuiltinError("split", f"expected 1-2 argument(s), got {len(args)}")
    s = _assert_string(args[0], "s", "split")
    separator = _assert_string(args[1], "separator", "split") if len(args) == 2 else " "
    if separator == "":
        raise BuiltinError("split", "separator must not be empty")
    return s.split(separator)


# ============================================================
# Collection and Generic Helpers
# ============================================================


def _len(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    _assert_arg_count(args, 1, "len")
    x = args[0]
    if isinstance(x, (str, list, tuple, dict)):
        return len(x)
    raise BuiltinError(
        "len", f"expected string, array or object, got {get_type_name(x)}"
    )


def _exists(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """exists(x) -> bool; True if the value is not null."""
    _assert_arg_count(args, 1, "exists")
    return args[0] is not None


def _coalesce(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """coalesce(a, b) -> a if it is not null, otherwise b."""
    _assert_arg_count(args, 2, "coalesce")
    return args[0] if args[0] is not None else args[1]


# ============================================================
# Pattern Helpers
# ============================================================


def _check_pattern_length(
    field_name: str, pattern: str, ctx: BuiltinContext, function_name: str
) -> None:
    try:
        enforce_limit(field_name, len(pattern), ctx.limits)
    except LimitExceededError as e:
        raise BuiltinError(function_name, e.message) from e


def _glob_to_regex(glob: str) -> str:
    """`**` matches anything, `*` and `?` stop at dots."""
    parts: List[str] = []
    i = 0
    while i < len(glob):
        if glob.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        ch = glob[i]
        if ch == "*":
            parts.append("[^.]*")
        elif ch == "?":
            parts.append("[^.]")
        else:
            parts.append(re.escape(ch))
        i += 1
    return "".join(parts)


def _glob_match(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    values = _strings_or_none(args, ("value", "pattern"), "glob_match")
    if values is None:
        return False
    value, pattern = values
    _check_pattern_length("max_glob_pattern_length", pattern, ctx, "glob_match")
    return re.fullmatch(_glob_to_regex(pattern), value) is not None


_NESTED_QUANTIFIERS = re.compile(r"([+*?]|\{\d+,?\d*\})\s*\)\s*([+*?]|\{\d+,?\d*\})")
_EXCESSIVE_BACKTRACKING = re.compile(r"(\.\*){3,}|(\.\+){3,}")


def _is_safe_regex(pattern: str) -> bool:
    """Best-effort rejection of common catastrophic-backtracking patterns."""
    return not (
        _NESTED_QUANTIFIERS.search(pattern) or _EXCESSIVE_BACKTRACKING.search(pattern)
    )


def _regex_match(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """regex_match(value, pattern) -> bool; the pattern must match the whole value."""
    values = _strings_or_none(args, ("value", "pattern"), "regex_match")
    if values is None:
        return False
    value, pattern = values
    _check_pattern_length("max_regex_pattern_length", pattern, ctx, "regex_match")

    if not _is_safe_regex(pattern):
        raise BuiltinError(
            "regex_match", f"pattern may cause excessive backtracking: {pattern}"
        )

    try:
        return re.fullmatch(pattern, value) is not None
    except re.error as e:
        raise BuiltinError("regex_match", f"invalid regex pattern: {pattern} - {e}")


# ============================================================
# Registry and Declarations
# ============================================================

_S, _B, _D = ExprType.STRING, ExprType.BOOL, ExprType.DYN

BUILTIN_FUNCTIONS: FunctionRegistry = {
    "lower": _lower,
    "upper": _upper,
    "trim": _trim,
    "starts_with": _starts_with,
    "ends_with": _ends_with,
    "contains": _contains,
    "split": _split,
    "len": _len,
    "exists": _exists,
    "coalesce": _coalesce,
    "glob_match": _glob_match,
    "regex_match": _regex_match,
}

BUILTIN_DECLARATIONS: List[FunctionDecl] = [
    FunctionDecl.of("lower", [_S], _S),
    FunctionDecl.of("upper", [_S], _S),
    FunctionDecl.of("trim", [_S], _S),
    FunctionDecl.of("starts_with", [_S, _S], _B),
    FunctionDecl.of("ends_with", [_S, _S], _B),
    FunctionDecl.of("contains", [_S, _S], _B),
    FunctionDecl(
        "split",
        (
            Overload((_S,), ExprType.LIST),
            Overload((_S, _S), ExprType.LIST),
        ),
    ),
    FunctionDecl.of("len", [_D], ExprType.INT),
    FunctionDecl.of("exists", [_D], _B),
    FunctionDecl.of("coalesce", [_D, _D], _D),
    FunctionDecl.of("glob_match", [_S, _S], _B),
    FunctionDecl.of("regex_match", [_S, _S], _B),
]


def call_builtin(
    name: str,
    args: Sequence[ExprValue],
    context: BuiltinContext,
    functions: Optional[FunctionRegistry] = None,
) -> FunctionResult:
    """
    Calls a function by name.

    Raises:
        EvaluationError: If the function is not registered
        BuiltinError: If a pure helper rejects its arguments
    """
    functions = functions if functions is not None else BUILTIN_FUNCTIONS
    fn = functions.get(name)
    if fn is None:
        raise EvaluationError(
            f"Unknown function: {name}", context.position, context.source
        )
    return fn(args, context)
