"""
Error types for the expression engine.

Every error raised by the pipeline derives from ExpressionError and names
the stage it belongs to in `stage`: "syntax" for tokenizing and parsing,
"declaration" for inconsistent environments, "type" for static checking,
"binding" for function bindings that disagree with their declarations and
"runtime" for evaluation. Callers report failures as `<stage> error`.
"""

from typing import Optional


class ExpressionError(Exception):
    """
    Base class; carries the expression text and the offending offset when
    they are known.
    """

    stage = "expression"

    def __init__(
        self,
        message: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.position = position
        self.expression = expression

    def format_with_context(self) -> str:
        """The message followed by the expression and a caret under `position`."""
        if self.expression is None or self.position is None:
            return self.message

        caret = " " * self.position + "^"
        return f"{self.message}\n  {self.expression}\n  {caret}"


class TokenizerError(ExpressionError):
    """Unknown character, unterminated string or malformed number."""

    stage = "syntax"


class ParseError(ExpressionError):
    """Token sequence that does not form an expression."""

    stage = "syntax"


class LimitExceededError(ExpressionError):
    """An expression is larger than its ExpressionLimits allow."""

    stage = "syntax"

    def __init__(self, limit_name: str, limit: int, actual: int):
        super().__init__(f"Limit exceeded: {limit_name} (limit: {limit}, actual: {actual})")
        self.limit_name = limit_name
        self.limit = limit
        self.actual = actual


class DeclarationError(ExpressionError):
    stage = "declaration"


class CheckError(ExpressionError):
    """Undeclared identifier or function, or no overload accepts the operands."""

    stage = "type"


class BindingError(ExpressionError):
    """A function implementation is missing or disagrees with its declaration."""

    stage = "binding"


class EvaluationError(ExpressionError):
    """Failure while evaluating a checked expression against bindings."""

    stage = "runtime"


class TypeError(EvaluationError):
    """A value of the wrong dynamic type reached an operator or selection."""

    def __init__(
        self,
        expected: str,
        actual: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(
            f"Type error: expected {expected}, got {actual}", position, expression
        )
        self.expected = expected
        self.actual = actual


class BuiltinError(EvaluationError):
    """A helper function rejected its arguments; the message names the function."""

    def __init__(
        self,
        function_name: str,
        message: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(f"{function_name}: {message}", position, expression)
        self.function_name = function_name


class ExternalCallError(BuiltinError):
    """
    An external lookup failed and the surrounding expression did not absorb
    the failure.
    """


class ValueConversionError(EvaluationError):
    """A native value cannot be adapted to an expression value."""
