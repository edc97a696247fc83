"""
Expression evaluator.

Evaluates an AST against a set of variable bindings and returns a value.

Access semantics:
- Selecting a missing key, or a field of a non-object, is a runtime error.
  Use has(x.f) to test for presence first.
- Out-of-range list indexes are runtime errors.
- Identifiers are adapted with `to_expr_value` on first use.

Error values:
- Functions may return an ErrorValue instead of raising. It becomes an
  EvaluationError at the point of use, except that `&&` and `||` absorb an
  error on one side when the other side alone decides the result
  (`false && err` is false, `true || err` is true, in either order).
"""

import math
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

from .ast import (
    ArrayLiteralNode,
    AstNode,
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
    UnaryOpNode,
)
from .builtins import (
    BUILTIN_FUNCTIONS,
    BuiltinContext,
    ErrorValue,
    FunctionRegistry,
    call_builtin,
)
from .checker import HAS_MACRO, CheckedExpr
from .deadline import Deadline
from .environment import Environment
from .errors import EvaluationError, ExpressionError, ExternalCallError
from .errors import TypeError as ExprTypeError
from .limits import DEFAULT_EXPRESSION_LIMITS, ExpressionLimits
from .types import format_signature
from .values import (
    ExprValue,
    get_type_name,
    is_number,
    matches_type,
    to_expr_value,
    type_of_value,
)


@dataclass
class EvaluationContext:
    """Evaluation context with variable bindings."""

    bindings: Mapping[str, object]
    """Variable bindings available to expressions (native values)."""

    limits: Optional[ExpressionLimits] = None

    source: Optional[str] = None
    """Source expression for error reporting."""

    functions: Optional[FunctionRegistry] = None
    """Function registry for helpers and external functions."""

    environment: Optional[Environment] = None
    """Declarations used to verify `dyn` arguments and results at runtime."""

    checked: Optional[CheckedExpr] = None

    deadline: Optional[Deadline] = None


@dataclass
class EvaluationResult:
    """Result of expression evaluation."""

    value: ExprValue

    success: bool

    error: Optional[str] = None
    """Error message if evaluation failed."""

    stage: Optional[str] = None
    """Pipeline stage that failed (syntax, type, binding, runtime)."""

    exception: Optional[ExpressionError] = None


class Evaluator:
    """Evaluates an AST node and returns the result."""

    def __init__(self, context: EvaluationContext):
        self._context = context
        self._limits = context.limits or DEFAULT_EXPRESSION_LIMITS
        self._source = context.source or ""
        self._functions = (
            context.functions if context.functions is not None else BUILTIN_FUNCTIONS
        )
        self._resolved: Dict[str, ExprValue] = {}
        self._member_access_depth = 0

    def _error(self, message: str, node: AstNode) -> EvaluationError:
        return EvaluationError(message, node.position, self._source)

    def evaluate(self, node: AstNode) -> ExprValue:
        """Evaluates an AST node and returns the value."""
        if isinstance(
            node, (StringLiteralNode, NumberLiteralNode, BooleanLiteralNode)
        ):
            return node.value

        if isinstance(node, NullLiteralNode):
            return None

        if isinstance(node, ArrayLiteralNode):
            return [self.evaluate(e) for e in node.elements]

        if isinstance(node, IdentifierNode):
            return self._evaluate_identifier(node)

        if isinstance(node, MemberAccessNode):
            return self._evaluate_member_access(node)

        if isinstance(node, IndexAccessNode):
            return self._evaluate_index_access(node)

        if isinstance(node, FunctionCallNode):
            return self._evaluate_function_call(node)

        if isinstance(node, UnaryOpNode):
            return self._evaluate_unary_op(node)

        if isinstance(node, BinaryOpNode):
            return self._evaluate_binary_op(node)

        if isinstance(node, TernaryOpNode):
            return self._evaluate_ternary_op(node)

        raise self._error(f"unsupported expression node {node!r}", node)

    def _evaluate_identifier(self, node: IdentifierNode) -> ExprValue:
        name = node.name
        if name not in self._resolved:
            if name not in self._context.bindings:
                raise self._error(f"no such attribute: '{name}' is not bound", node)
            value = to_expr_value(self._context.bindings[name])
            env = self._context.environment
            declared = env.identifier_type(name) if env else None
            if declared is not None and not matches_type(value, declared):
                raise self._error(
                    f"binding '{name}' is {type_of_value(value)}, declared {declared}",
                    node,
                )
            self._resolved[name] = value
        return self._resolved[name]

    def _select(self, obj: ExprValue, key: str, node: AstNode) -> ExprValue:
        if not isinstance(obj, dict):
            raise self._error(
                f"type '{get_type_name(obj)}' does not support field selection "
                f"(key '{key}')",
                node,
            )
        if key not in obj:
            raise self._error(f"no such key: '{key}'", node)
        return obj[key]

    def _evaluate_member_access(self, node: MemberAccessNode) -> ExprValue:
        self._member_access_depth += 1
        if self._member_access_depth > self._limits.max_member_access_depth:
            raise self._error(
                f"Member access depth {self._member_access_depth} exceeds limit of "
                f"{self._limits.max_member_access_depth}",
                node,
            )
        try:
            return self._select(self.evaluate(node.object), node.property, node)
        finally:
            self._member_access_depth -= 1

    def _evaluate_index_access(self, node: IndexAccessNode) -> ExprValue:
        obj = self.evaluate(node.object)
        index = self.evaluate(node.index)

        if isinstance(obj, (list, tuple)):
            if not isinstance(index, int) or isinstance(index, bool):
                raise ExprTypeError(
                    "integer", get_type_name(index), node.position, self._source
                )
            if index < 0 or index >= len(obj):
                raise self._error(
                    f"index out of range: {index} (length {len(obj)})", node
                )
            return obj[index]

        if isinstance(obj, dict):
            if not isinstance(index, str):
                raise ExprTypeError(
                    "string", get_type_name(index), node.position, self._source
                )
            return self._select(obj, index, node)

        raise self._error(
            f"type '{get_type_name(obj)}' does not support indexing", node
        )

    def _evaluate_has(self, node: FunctionCallNode) -> bool:
        target = node.args[0]
        if not isinstance(target, MemberAccessNode):
            raise self._error("has() expects a field selection argument", node)
        obj = self.evaluate(target.object)
        if not isinstance(obj, dict):
            raise self._error(
                f"has() requires an object, got {get_type_name(obj)}", node
            )
        return target.property in obj

    def _evaluate_function_call(self, node: FunctionCallNode) -> ExprValue:
        if node.name == HAS_MACRO:
            return self._evaluate_has(node)

        args = [self.evaluate(arg) for arg in node.args]
        self._check_runtime_overload(node, args)

        deadline = self._context.deadline
        if deadline is not None and deadline.expired:
            raise self._error(f"{node.name}: {deadline.reason()}", node)

        builtin_context = BuiltinContext(
            limits=self._limits,
            position=node.position,
            source=self._source,
            deadline=deadline,
        )
        result = call_builtin(node.name, args, builtin_context, self._functions)

        if isinstance(result, ErrorValue):
            raise ExternalCallError(
                result.function_name or node.name,
                result.message,
                node.position,
                self._source,
            )

        value = to_expr_value(result)
        self._check_result_type(node, value)
        return value

    def _check_runtime_overload(
        self, node: FunctionCallNode, args: Sequence[ExprValue]
    ) -> None:
        """Re-resolves the overload when `dyn` arguments were deferred by the checker."""
        env = self._context.environment
        decl = env.function(node.name) if env else None
        if decl is None:
            return
        arg_types = [type_of_value(a) for a in args]
        if decl.resolve(arg_types) is None:
            raise self._error(
                f"no matching overload for '{node.name}' applied to "
                f"{format_signature(arg_types)} at runtime",
                node,
            )

    def _check_result_type(self, node: FunctionCallNode, value: ExprValue) -> None:
        checked = self._context.checked
        if checked is None or id(node) not in checked.overloads:
            return
        declared = checked.overload_of(node).result
        if not matches_type(value, declared):
            raise self._error(
                f"function '{node.name}' returned {type_of_value(value)}, "
                f"declared {declared}",
                node,
            )

    def _evaluate_unary_op(self, node: UnaryOpNode) -> ExprValue:
        value = self.evaluate(node.operand)

        if node.operator == "!":
            if not isinstance(value, bool):
                raise ExprTypeError(
                    "boolean", get_type_name(value), node.position, self._source
                )
            return not value

        if not is_number(value):
            raise ExprTypeError(
                "number", get_type_name(value), node.position, self._source
            )
        return -value

    def _evaluate_logical(self, node: BinaryOpNode) -> bool:
        """
        Short-circuit `&&` / `||` with error absorption.

        `deciding` is the operand value that fixes the result on its own.
        """
        deciding = node.operator == "||"

        left, left_error = self._evaluate_bool_operand(node.left)
        if left_error is None and left == deciding:
            return deciding

        right, right_error = self._evaluate_bool_operand(node.right)
        if right_error is None and right == deciding:
            return deciding

        if left_error is not None:
            raise left_error
        if right_error is not None:
            raise right_error
        return not deciding

    def _evaluate_bool_operand(
        self, node: AstNode
    ) -> Tuple[Optional[bool], Optional[EvaluationError]]:
        try:
            value = self.evaluate(node)
        except EvaluationError as error:
            return None, error
        if not isinstance(value, bool):
            return None, ExprTypeError(
                "boolean", get_type_name(value), node.position, self._source
            )
        return value, None

    def _evaluate_binary_op(self, node: BinaryOpNode) -> ExprValue:
        operator = node.operator
        if operator in ("&&", "||"):
            return self._evaluate_logical(node)

        left = self.evaluate(node.left)
        right = self.evaluate(node.right)

        if operator == "==":
            return values_equal(left, right)
        if operator == "!=":
            return not values_equal(left, right)
        if operator in ("<", "<=", ">", ">="):
            return self._evaluate_comparison(operator, left, right, node)
        if operator == "in":
            return self._evaluate_in(left, right, node)
        if operator == "not in":
            return not self._evaluate_in(left, right, node)
        return self._evaluate_arithmetic(operator, left, right, node)

    def _evaluate_arithmetic(
        self, operator: str, left: ExprValue, right: ExprValue, node: BinaryOpNode
    ) -> ExprValue:
        if operator == "+":
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            if isinstance(left, list) and isinstance(right, list):
                return left + right

        if not (is_number(left) and is_number(right)):
            verb = {
                "+": "add",
                "-": "subtract",
                "*": "multiply",
                "/": "divide",
                "%": "compute modulo of",
            }[operator]
            raise self._error(
                f"Cannot {verb} {get_type_name(left)} and {get_type_name(right)}",
                node,
            )

        if operator == "+":
            return left + right
        if operator == "-":
            return left - right
        if operator == "*":
            return left * right

        if right == 0:
            raise self._error(
                "Division by zero" if operator == "/" else "Modulo by zero", node
            )
        both_int = isinstance(left, int) and isinstance(right, int)
        if operator == "/":
            return _truncated_div(left, right) if both_int else left / right
        if both_int:
            return left - right * _truncated_div(left, right)
        return _float_mod(left, right)

    def _evaluate_comparison(
        self, operator: str, left: ExprValue, right: ExprValue, node: BinaryOpNode
    ) -> bool:
        comparable = (is_number(left) and is_number(right)) or (
            isinstance(left, str) and isinstance(right, str)
        )
        if not comparable:
            raise self._error(
                f"Cannot compare {get_type_name(left)} and "
                f"{get_type_name(right)} with {operator}",
                node,
            )
        if operator == "<":
            return left < right
        if operator == "<=":
            return left <= right
        if operator == ">":
            return left > right
        return left >= right

    def _evaluate_in(self, left: ExprValue, right: ExprValue, node: BinaryOpNode) -> bool:
        if isinstance(left, str) and isinstance(right, str):
            return left in right

        if isinstance(right, (list, tuple)):
            return any(values_equal(left, item) for item in right)

        if isinstance(right, dict):
            if not isinstance(left, str):
                raise self._error(
                    f"Cannot check if {get_type_name(left)} is a key in object "
                    "(expected string)",
                    node,
                )
            return left in right

        raise self._error(
            f"Cannot check membership: {get_type_name(left)} in "
            f"{get_type_name(right)}",
            node,
        )

    def _evaluate_ternary_op(self, node: TernaryOpNode) -> ExprValue:
        condition = self.evaluate(node.condition)
        if not isinstance(condition, bool):
            raise ExprTypeError(
                "boolean",
                get_type_name(condition),
                node.condition.position,
                self._source,
            )
        return self.evaluate(node.consequent if condition else node.alternate)


def _truncated_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _float_mod(a: Union[int, float], b: Union[int, float]) -> float:
    """Remainder with the sign of the dividend."""
    return math.fmod(a, b)


def values_equal(a: ExprValue, b: ExprValue) -> bool:
    """Deep equality check for expression values."""
    if a is None or b is None:
        return a is None and b is None

    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b

    if is_number(a) and is_number(b):
        return a == b

    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))

    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)

    if type(a) is not type(b):
        return False
    return a == b
