"""
Static checker.

Verifies a parsed expression against an Environment before anything runs:
every identifier must be declared, every call must resolve to a declared
overload, and operator operands must have compatible types. Anything typed
`dyn` is deferred to runtime.

The result is a CheckedExpr carrying the static type of every node, which
the program stage and the evaluator use for overload resolution.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping

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
from .environment import Environment, Overload
from .errors import CheckError
from .types import ExprType, format_signature, is_numeric, join_types

_DYN = ExprType.DYN

HAS_MACRO = "has"


@dataclass(frozen=True)
class CheckedExpr:
    """A parsed expression that passed static checking."""

    ast: AstNode
    source: str
    result_type: ExprType
    node_types: Mapping[int, ExprType] = field(default_factory=dict)
    overloads: Mapping[int, Overload] = field(default_factory=dict)

    def type_of(self, node: AstNode) -> ExprType:
        return self.node_types.get(id(node), _DYN)

    def overload_of(self, node: FunctionCallNode) -> Overload:
        return self.overloads[id(node)]


class Checker:
    """Infers and verifies node types against an environment."""

    def __init__(self, environment: Environment, source: str = ""):
        self._env = environment
        self._source = source
        self._types: Dict[int, ExprType] = {}
        self._overloads: Dict[int, Overload] = {}

    def check(self, ast: AstNode) -> CheckedExpr:
        result = self._infer(ast)
        return CheckedExpr(
            ast=ast,
            source=self._source,
            result_type=result,
            node_types=dict(self._types),
            overloads=dict(self._overloads),
        )

    def _error(self, message: str, node: AstNode) -> CheckError:
        return CheckError(message, node.position, self._source)

    def _infer(self, node: AstNode) -> ExprType:
        t = self._infer_node(node)
        self._types[id(node)] = t
        return t

    def _infer_node(self, node: AstNode) -> ExprType:
        if isinstance(node, StringLiteralNode):
            return ExprType.STRING
        if isinstance(node, NumberLiteralNode):
            return ExprType.INT if isinstance(node.value, int) else ExprType.DOUBLE
        if isinstance(node, BooleanLiteralNode):
            return ExprType.BOOL
        if isinstance(node, NullLiteralNode):
            return ExprType.NULL
        if isinstance(node, ArrayLiteralNode):
            for element in node.elements:
                self._infer(element)
            return ExprType.LIST
        if isinstance(node, IdentifierNode):
            return self._infer_identifier(node)
        if isinstance(node, MemberAccessNode):
            return self._infer_member_access(node)
        if isinstance(node, IndexAccessNode):
            return self._infer_index_access(node)
        if isinstance(node, FunctionCallNode):
            return self._infer_call(node)
        if isinstance(node, UnaryOpNode):
            return self._infer_unary(node)
        if isinstance(node, BinaryOpNode):
            return self._infer_binary(node)
        if isinstance(node, TernaryOpNode):
            return self._infer_ternary(node)
        raise self._error(f"unsupported expression node {node!r}", node)

    def _infer_identifier(self, node: IdentifierNode) -> ExprType:
        declared = self._env.identifier_type(node.name)
        if declared is None:
            if self._env.has_function(node.name):
                raise self._error(
                    f"function '{node.name}' used as a value; call it instead", node
                )
            raise self._error(f"undeclared reference to '{node.name}'", node)
        return declared

    def _infer_member_access(self, node: MemberAccessNode) -> ExprType:
        object_type = self._infer(node.object)
        if object_type not in (ExprType.MAP, _DYN):
            raise self._error(
                f"type '{object_type}' does not support field selection "
                f"('.{node.property}')",
                node,
            )
        return _DYN

    def _infer_index_access(self, node: IndexAccessNode) -> ExprType:
        object_type = self._infer(node.object)
        index_type = self._infer(node.index)

        if object_type == ExprType.LIST:
            allowed = (ExprType.INT, _DYN)
        elif object_type == ExprType.MAP:
            allowed = (ExprType.STRING, _DYN)
        elif object_type == _DYN:
            allowed = (ExprType.INT, ExprType.STRING, _DYN)
        else:
            raise self._error(f"type '{object_type}' does not support indexing", node)

        if index_type not in allowed:
            raise self._error(
                f"cannot index '{object_type}' with '{index_type}'", node.index
            )
        return _DYN

    def _infer_call(self, node: FunctionCallNode) -> ExprType:
        if node.name == HAS_MACRO:
            return self._infer_has(node)

        decl = self._env.function(node.name)
        if decl is None:
            if self._env.has_identifier(node.name):
                raise self._error(f"'{node.name}' is not a function", node)
            raise self._error(f"undeclared reference to function '{node.name}'", node)

        arg_types = [self._infer(arg) for arg in node.args]
        overload = decl.resolve(arg_types)
        if overload is None:
            expected = ", ".join(str(o) for o in decl.overloads)
            raise self._error(
                f"found no matching overload for '{node.name}' applied to "
                f"{format_signature(arg_types)}; expected {expected}",
                node,
            )
        self._overloads[id(node)] = overload
        return overload.result

    def _infer_has(self, node: FunctionCallNode) -> ExprType:
        if len(node.args) != 1 or not isinstance(node.args[0], MemberAccessNode):
            raise self._error(
                "has() expects a single field selection argument, e.g. has(ce.data)",
                node,
            )
        self._infer(node.args[0])
        return ExprType.BOOL

    def _infer_unary(self, node: UnaryOpNode) -> ExprType:
        operand = self._infer(node.operand)
        if node.operator == "!":
            self._require(operand in (ExprType.BOOL, _DYN), "!", [operand], node)
            return ExprType.BOOL
        self._require(is_numeric(operand) or operand == _DYN, "-", [operand], node)
        return operand

    def _infer_binary(self, node: BinaryOpNode) -> ExprType:
        left = self._infer(node.left)
        right = self._infer(node.right)
        op = node.operator
        operands = [left, right]

        if op in ("&&", "||"):
            self._require(
                all(t in (ExprType.BOOL, _DYN) for t in operands), op, operands, node
            )
            return ExprType.BOOL

        if op in ("==", "!="):
            return ExprType.BOOL

        if op in ("<", "<=", ">", ">="):
            self._require(
                _DYN in operands
                or (is_numeric(left) and is_numeric(right))
                or left == right == ExprType.STRING,
                op,
                operands,
                node,
            )
            return ExprType.BOOL

        if op in ("in", "not in"):
            self._require(
                right in (ExprType.LIST, ExprType.MAP, ExprType.STRING, _DYN),
                op,
                operands,
                node,
            )
            return ExprType.BOOL

        if op == "+" and left == right and left in (ExprType.STRING, ExprType.LIST):
            return left

        # remaining arithmetic: + - * / %
        if _DYN in operands:
            self._require(
                all(t == _DYN or is_numeric(t) or op == "+" for t in operands),
                op,
                operands,
                node,
            )
            return _DYN
        self._require(is_numeric(left) and is_numeric(right), op, operands, node)
        return join_types(left, right)

    def _infer_ternary(self, node: TernaryOpNode) -> ExprType:
        condition = self._infer(node.condition)
        if condition not in (ExprType.BOOL, _DYN):
            raise self._error(
                f"ternary condition must be bool, got '{condition}'", node.condition
            )
        return join_types(self._infer(node.consequent), self._infer(node.alternate))

    def _require(self, ok: bool, op: str, operands: list, node: AstNode) -> None:
        if not ok:
            raise self._error(
                f"no matching overload for operator '{op}' applied to "
                f"{format_signature(operands)}",
                node,
            )


def check(ast: AstNode, environment: Environment, source: str = "") -> CheckedExpr:
    """
    Statically checks an AST against an environment.

    Raises:
        CheckError: On undeclared references or incompatible types
    """
    return Checker(environment, source).check(ast)
