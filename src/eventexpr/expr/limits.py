"""
Size limits applied while tokenizing, parsing and evaluating.

Expressions come from templates and command lines, so every structural
dimension of an expression is bounded. Each bound is a field of
ExpressionLimits; `enforce_limit` raises LimitExceededError when a measured
value is above its bound.
"""

from dataclasses import dataclass
from typing import Optional

from .errors import LimitExceededError


@dataclass(frozen=True)
class ExpressionLimits:
    """Upper bounds for one expression."""

    max_expression_length: int = 4096
    max_ast_depth: int = 32
    max_ast_nodes: int = 256
    max_array_length: int = 64
    max_function_args: int = 16

    # Chained field selections, e.g. `ce.a.b.c` is three
    max_member_access_depth: int = 16

    # Patterns passed to glob_match/regex_match
    max_regex_pattern_length: int = 256
    max_glob_pattern_length: int = 256


DEFAULT_EXPRESSION_LIMITS = ExpressionLimits()

# field name -> label used in LimitExceededError messages
_LABELS = {
    "max_expression_length": "expression length",
    "max_ast_depth": "AST depth",
    "max_ast_nodes": "AST node count",
    "max_array_length": "array length",
    "max_function_args": "function argument count",
    "max_member_access_depth": "member access depth",
    "max_regex_pattern_length": "regex pattern length",
    "max_glob_pattern_length": "glob pattern length",
}


def enforce_limit(
    field_name: str, actual: int, limits: Optional[ExpressionLimits] = None
) -> None:
    """
    Raises:
        LimitExceededError: If `actual` is above the bound named by `field_name`
    """
    bound = getattr(limits or DEFAULT_EXPRESSION_LIMITS, field_name)
    if actual > bound:
        raise LimitExceededError(_LABELS[field_name], bound, actual)
