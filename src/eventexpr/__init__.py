"""
Typed expressions over CloudEvents, with source-control lookups as
first-class functions and `$(...)` template expansion.
"""

from eventexpr.config import EngineConfig
from eventexpr.expr import (
    Deadline,
    Engine,
    Environment,
    EvaluationResult,
    ExpressionError,
    ExprType,
    FunctionDecl,
    IdentifierDecl,
    Overload,
    Program,
)
from eventexpr.functions import ExternalFunction, ExternalFunctionRegistry
from eventexpr.runtime import bindings_for, create_engine
from eventexpr.template import TemplateError, expand_template

__all__ = [
    "Deadline",
    "Engine",
    "EngineConfig",
    "Environment",
    "EvaluationResult",
    "ExpressionError",
    "ExprType",
    "ExternalFunction",
    "ExternalFunctionRegistry",
    "FunctionDecl",
    "IdentifierDecl",
    "Overload",
    "Program",
    "TemplateError",
    "bindings_for",
    "create_engine",
    "expand_template",
]
