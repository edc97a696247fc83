"""
Typed expression engine.

Expressions are parsed, statically checked against an Environment of
declared identifiers and function signatures, bound to implementations and
evaluated against input bindings.
"""

# Core types and utilities
from .ast import (
    ArrayLiteralNode,
    AstNode,
    AstNodeBase,
    BinaryOperator,
    BinaryOpNode,
    BooleanLiteralNode,
    FunctionCallNode,
    IdentifierNode,
    IndexAccessNode,
    MemberAccessNode,
    NullLiteralNode,
    NumberLiteralNode,
    StringLiteralNode,
    TernaryOpNode,
    UnaryOperator,
    UnaryOpNode,
    ast_to_string,
    calculate_ast_depth,
    called_functions,
    count_ast_nodes,
)

# Builtins
from .builtins import (
    BUILTIN_DECLARATIONS,
    BUILTIN_FUNCTIONS,
    BuiltinContext,
    BuiltinFunction,
    ErrorValue,
    FunctionRegistry,
    FunctionResult,
    call_builtin,
)
from .checker import CheckedExpr, Checker, check
from .deadline import Deadline
from .environment import Environment, FunctionDecl, IdentifierDecl, Overload
from .errors import (
    BindingError,
    BuiltinError,
    CheckError,
    DeclarationError,
    EvaluationError,
    ExpressionError,
    ExternalCallError,
    LimitExceededError,
    ParseError,
    TokenizerError,
    TypeError,
    ValueConversionError,
)

# Evaluator
from .evaluator import (
    EvaluationContext,
    EvaluationResult,
    Evaluator,
    values_equal,
)
from .limits import DEFAULT_EXPRESSION_LIMITS, ExpressionLimits
from .parser import Parser, parse
from .program import Engine, Program
from .tokenizer import Token, Tokenizer, TokenType, tokenize
from .types import ExprType, is_assignable
from .values import (
    ExprValue,
    from_expr_value,
    get_type_name,
    to_expr_value,
    type_of_value,
)

__all__ = [
    # AST
    "ArrayLiteralNode",
    "AstNode",
    "AstNodeBase",
    "BinaryOperator",
    "BinaryOpNode",
    "BooleanLiteralNode",
    "FunctionCallNode",
    "IdentifierNode",
    "IndexAccessNode",
    "MemberAccessNode",
    "NullLiteralNode",
    "NumberLiteralNode",
    "StringLiteralNode",
    "TernaryOpNode",
    "UnaryOperator",
    "UnaryOpNode",
    "ast_to_string",
    "calculate_ast_depth",
    "called_functions",
    "count_ast_nodes",
    # Builtins
    "BUILTIN_DECLARATIONS",
    "BUILTIN_FUNCTIONS",
    "BuiltinContext",
    "BuiltinFunction",
    "ErrorValue",
    "FunctionRegistry",
    "FunctionResult",
    "call_builtin",
    # Checker and environment
    "CheckedExpr",
    "Checker",
    "check",
    "Environment",
    "FunctionDecl",
    "IdentifierDecl",
    "Overload",
    "ExprType",
    "is_assignable",
    # Errors
    "BindingError",
    "BuiltinError",
    "CheckError",
    "DeclarationError",
    "EvaluationError",
    "ExpressionError",
    "ExternalCallError",
    "LimitExceededError",
    "ParseError",
    "TokenizerError",
    "TypeError",
    "ValueConversionError",
    # Evaluation
    "Deadline",
    "EvaluationContext",
    "EvaluationResult",
    "Evaluator",
    "values_equal",
    "Engine",
    "Program",
    # Limits
    "DEFAULT_EXPRESSION_LIMITS",
    "ExpressionLimits",
    # Parsing
    "Parser",
    "parse",
    "Token",
    "Tokenizer",
    "TokenType",
    "tokenize",
    # Values
    "ExprValue",
    "from_expr_value",
    "get_type_name",
    "to_expr_value",
    "type_of_value",
]
