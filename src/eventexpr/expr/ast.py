"""
Abstract Syntax Tree (AST) node types for the expression language.

The AST is produced by the parser, annotated by the checker and consumed
by the evaluator. Nodes are immutable; every node exposes its direct
children so the tree utilities below can walk it generically.
"""

from abc import ABC
from dataclasses import dataclass
from typing import Iterator, Literal, Sequence, Tuple, Union

UnaryOperator = Literal["!", "-"]

BinaryOperator = Literal[
    "*",
    "/",
    "%",
    "+",
    "-",
    "<",
    "<=",
    ">",
    ">=",
    "==",
    "!=",
    "in",
    "not in",
    "&&",
    "||",
]


@dataclass(frozen=True)
class AstNodeBase(ABC):
    """Base class for all AST nodes."""

    position: int
    """Position in source expression (for error reporting)."""

    def children(self) -> Tuple["AstNode", ...]:
        return ()


@dataclass(frozen=True)
class StringLiteralNode(AstNodeBase):
    value: str

    @property
    def type(self) -> Literal["StringLiteral"]:
        return "StringLiteral"


@dataclass(frozen=True)
class NumberLiteralNode(AstNodeBase):
    """Number literal; integers without a fraction or exponent stay `int`."""

    value: Union[int, float]

    @property
    def type(self) -> Literal["NumberLiteral"]:
        return "NumberLiteral"


@dataclass(frozen=True)
class BooleanLiteralNode(AstNodeBase):
    value: bool

    @property
    def type(self) -> Literal["BooleanLiteral"]:
        return "BooleanLiteral"


@dataclass(frozen=True)
class NullLiteralNode(AstNodeBase):
    @property
    def type(self) -> Literal["NullLiteral"]:
        return "NullLiteral"


@dataclass(frozen=True)
class ArrayLiteralNode(AstNodeBase):
    elements: Sequence["AstNode"]

    @property
    def type(self) -> Literal["ArrayLiteral"]:
        return "ArrayLiteral"

    def children(self) -> Tuple["AstNode", ...]:
        return tuple(self.elements)


@dataclass(frozen=True)
class IdentifierNode(AstNodeBase):
    name: str

    @property
    def type(self) -> Literal["Identifier"]:
        return "Identifier"


@dataclass(frozen=True)
class MemberAccessNode(AstNodeBase):
    """Member access node (e.g., ce.type)."""

    object: "AstNode"
    property: str

    @property
    def type(self) -> Literal["MemberAccess"]:
        return "MemberAccess"

    def children(self) -> Tuple["AstNode", ...]:
        return (self.object,)


@dataclass(frozen=True)
class IndexAccessNode(AstNodeBase):
    """Index access node (e.g., ce["type"], list[0])."""

    object: "AstNode"
    index: "AstNode"

    @property
    def type(self) -> Literal["IndexAccess"]:
        return "IndexAccess"

    def children(self) -> Tuple["AstNode", ...]:
        return (self.object, self.index)


@dataclass(frozen=True)
class FunctionCallNode(AstNodeBase):
    name: str
    args: Sequence["AstNode"]

    @property
    def type(self) -> Literal["FunctionCall"]:
        return "FunctionCall"

    def children(self) -> Tuple["AstNode", ...]:
        return tuple(self.args)


@dataclass(frozen=True)
class UnaryOpNode(AstNodeBase):
    operator: UnaryOperator
    operand: "AstNode"

    @property
    def type(self) -> Literal["UnaryOp"]:
        return "UnaryOp"

    def children(self) -> Tuple["AstNode", ...]:
        return (self.operand,)


@dataclass(frozen=True)
class BinaryOpNode(AstNodeBase):
    operator: BinaryOperator
    left: "AstNode"
    right: "AstNode"

    @property
    def type(self) -> Literal["BinaryOp"]:
        return "BinaryOp"

    def children(self) -> Tuple["AstNode", ...]:
        return (self.left, self.right)


@dataclass(frozen=True)
class TernaryOpNode(AstNodeBase):
    """Ternary operator node (condition ? consequent : alternate)."""

    condition: "AstNode"
    consequent: "AstNode"
    alternate: "AstNode"

    @property
    def type(self) -> Literal["TernaryOp"]:
        return "TernaryOp"

    def children(self) -> Tuple["AstNode", ...]:
        return (self.condition, self.consequent, self.alternate)


AstNode = Union[
    StringLiteralNode,
    NumberLiteralNode,
    BooleanLiteralNode,
    NullLiteralNode,
    ArrayLiteralNode,
    IdentifierNode,
    MemberAccessNode,
    IndexAccessNode,
    FunctionCallNode,
    UnaryOpNode,
    BinaryOpNode,
    TernaryOpNode,
]


def walk(node: AstNode) -> Iterator[AstNode]:
    """Yields the node and all of its descendants, depth first."""
    yield node
    for child in node.children():
        yield from walk(child)


def count_ast_nodes(node: AstNode) -> int:
    """Counts the total number of nodes in an AST."""
    return sum(1 for _ in walk(node))


def calculate_ast_depth(node: AstNode) -> int:
    """Calculates the maximum depth of an AST."""
    return 1 + max((calculate_ast_depth(c) for c in node.children()), default=0)


def called_functions(node: AstNode) -> Tuple[str, ...]:
    """Names of all functions called in the tree, in first-seen order."""
    seen: dict[str, None] = {}
    for n in walk(node):
        if isinstance(n, FunctionCallNode):
            seen.setdefault(n.name, None)
    return tuple(seen)


def ast_to_string(node: AstNode, indent: int = 0) -> str:
    """Returns a human-readable representation of an AST node for debugging."""
    prefix = "  " * indent

    if isinstance(node, StringLiteralNode):
        head = f'String: "{node.value}"'
    elif isinstance(node, NumberLiteralNode):
        head = f"Number: {node.value}"
    elif isinstance(node, BooleanLiteralNode):
        head = f"Boolean: {node.value}"
    elif isinstance(node, NullLiteralNode):
        head = "Null"
    elif isinstance(node, ArrayLiteralNode):
        head = "Array:"
    elif isinstance(node, IdentifierNode):
        head = f"Identifier: {node.name}"
    elif isinstance(node, MemberAccessNode):
        head = f"MemberAccess: .{node.property}"
    elif isinstance(node, IndexAccessNode):
        head = "IndexAccess:"
    elif isinstance(node, FunctionCallNode):
        head = f"FunctionCall: {node.name}"
    elif isinstance(node, (UnaryOpNode, BinaryOpNode)):
        head = f"{node.type}: {node.operator}"
    elif isinstance(node, TernaryOpNode):
        head = "TernaryOp:"
    else:
        return f"{prefix}Unknown: {node}"

    lines = [prefix + head]
    lines.extend(ast_to_string(child, indent + 1) for child in node.children())
    return "\n".join(lines)
