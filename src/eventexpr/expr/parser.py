"""
Parser for the expression language.

Parses a stream of tokens into an Abstract Syntax Tree (AST).
Uses recursive descent parsing with operator precedence.

Precedence (lowest to highest):
1. Ternary: ? :
2. Logical OR: ||
3. Logical AND: &&
4. Equality: ==, !=
5. Membership: in, not in
6. Comparison: <, <=, >, >=
7. Additive: +, -
8. Multiplicative: *, /, %
9. Unary: !, -
10. Postfix: . [] ()
11. Primary: literals, identifiers, parentheses, arrays
"""

import math
from typing import Callable, Dict, List, Union

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
    calculate_ast_depth,
    count_ast_nodes,
)
from .errors import ParseError
from .limits import DEFAULT_EXPRESSION_LIMITS, ExpressionLimits, enforce_limit
from .tokenizer import Token, TokenType, tokenize

# Binary precedence levels, lowest first. Each maps token types to operators.
_BINARY_LEVELS: List[Dict[TokenType, str]] = [
    {TokenType.OR: "||"},
    {TokenType.AND: "&&"},
    {TokenType.EQ: "==", TokenType.NE: "!="},
    {TokenType.IN: "in", TokenType.NOT_IN: "not in"},
    {TokenType.LT: "<", TokenType.LE: "<=", TokenType.GT: ">", TokenType.GE: ">="},
    {TokenType.PLUS: "+", TokenType.MINUS: "-"},
    {TokenType.STAR: "*", TokenType.SLASH: "/", TokenType.PERCENT: "%"},
]


class Parser:
    """Parser for expression strings."""

    def __init__(
        self,
        tokens: List[Token],
        source: str,
        limits: ExpressionLimits = DEFAULT_EXPRESSION_LIMITS,
    ):
        self._tokens = tokens
        self._source = source
        self._limits = limits
        self._current = 0

    def parse(self) -> AstNode:
        """Parses the token stream into an AST."""
        ast = self._parse_ternary()

        if not self._is_at_end():
            raise self._unexpected(self._peek())

        enforce_limit("max_ast_nodes", count_ast_nodes(ast), self._limits)
        enforce_limit("max_ast_depth", calculate_ast_depth(ast), self._limits)

        return ast

    # ============================================================
    # Token Helpers
    # ============================================================

    def _is_at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self) -> Token:
        return self._tokens[self._current]

    def _previous(self) -> Token:
        return self._tokens[self._current - 1]

    def _advance(self) -> Token:
        if not self._is_at_end():
            self._current += 1
        return self._previous()

    def _check(self, token_type: TokenType) -> bool:
        return not self._is_at_end() and self._peek().type == token_type

    def _match(self, *types: TokenType) -> bool:
        if any(self._check(t) for t in types):
            self._advance()
            return True
        return False

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._check(token_type):
            return self._advance()
        raise ParseError(message, self._peek().position, self._source)

    def _unexpected(self, token: Token) -> ParseError:
        return ParseError(
            f"Unexpected token: {token.value or token.type.value}",
            token.position,
            self._source,
        )

    # ============================================================
    # Expression Parsing (by precedence, lowest to highest)
    # ============================================================

    def _parse_ternary(self) -> AstNode:
        """Parses ternary expressions: condition ? consequent : alternate"""
        position = self._peek().position
        node = self._parse_binary(0)

        if self._match(TokenType.QUESTION):
            consequent = self._parse_ternary()
            self._consume(TokenType.COLON, "Expected ':' in ternary expression")
            alternate = self._parse_ternary()
            node = TernaryOpNode(
                position=position,
                condition=node,
                consequent=consequent,
                alternate=alternate,
            )

        return node

    def _parse_binary(self, level: int) -> AstNode:
        """Parses left-associative binary operators at the given precedence level."""
        if level == len(_BINARY_LEVELS):
            return self._parse_unary()

        operators = _BINARY_LEVELS[level]
        node = self._parse_binary(level + 1)

        while self._match(*operators):
            token = self._previous()
            right = self._parse_binary(level + 1)
            node = BinaryOpNode(
                position=token.position,
                operator=operators[token.type],  # type: ignore[arg-type]
                left=node,
                right=right,
            )

        return node

    def _parse_unary(self) -> AstNode:
        """Parses unary: !, -"""
        if self._match(TokenType.NOT, TokenType.MINUS):
            token = self._previous()
            operand = self._parse_unary()
            return UnaryOpNode(
                position=token.position,
                operator="!" if token.type == TokenType.NOT else "-",
                operand=operand,
            )

        return self._parse_postfix()

    def _parse_postfix(self) -> AstNode:
        """Parses postfix: . [] ()"""
        node = self._parse_primary()

        while True:
            if self._match(TokenType.DOT):
                position = self._previous().position
                prop = self._consume(
                    TokenType.IDENTIFIER, "Expected property name after '.'"
                )
                node = MemberAccessNode(
                    position=position, object=node, property=prop.value
                )
            elif self._match(TokenType.LBRACKET):
                position = self._previous().position
                index = self._parse_ternary()
                self._consume(TokenType.RBRACKET, "Expected ']' after index")
                node = IndexAccessNode(position=position, object=node, index=index)
            elif self._match(TokenType.LPAREN):
                if not isinstance(node, IdentifierNode):
                    raise ParseError(
                        "Only named functions can be called",
                        node.position,
                        self._source,
                    )
                args = self._parse_sequence(
                    TokenType.RPAREN, "Expected ')' after function arguments"
                )
                enforce_limit("max_function_args", len(args), self._limits)
                node = FunctionCallNode(
                    position=node.position, name=node.name, args=tuple(args)
                )
            else:
                return node

    def _parse_sequence(self, closing: TokenType, message: str) -> List[AstNode]:
        """Parses comma-separated expressions up to `closing` (opener consumed)."""
        items: List[AstNode] = []

        if not self._check(closing):
            items.append(self._parse_ternary())
            while self._match(TokenType.COMMA):
                items.append(self._parse_ternary())

        self._consume(closing, message)
        return items

    def _parse_number(self, token: Token) -> Union[int, float]:
        text = token.value
        if any(c in text for c in ".eE"):
            value = float(text)
            if not math.isfinite(value):
                raise ParseError("Invalid number", token.position, self._source)
            return value
        return int(text)

    def _parse_primary(self) -> AstNode:
        """Parses primary expressions: literals, identifiers, parentheses, arrays."""
        token = self._peek()
        position = token.position

        literal_parsers: Dict[TokenType, Callable[[Token], AstNode]] = {
            TokenType.TRUE: lambda t: BooleanLiteralNode(position=position, value=True),
            TokenType.FALSE: lambda t: BooleanLiteralNode(position=position, value=False),
            TokenType.NULL: lambda t: NullLiteralNode(position=position),
            TokenType.STRING: lambda t: StringLiteralNode(position=position, value=t.value),
            TokenType.NUMBER: lambda t: NumberLiteralNode(
                position=position, value=self._parse_number(t)
            ),
            TokenType.IDENTIFIER: lambda t: IdentifierNode(position=position, name=t.value),
        }

        if token.type in literal_parsers:
            self._advance()
            return literal_parsers[token.type](token)

        if self._match(TokenType.LPAREN):
            expr = self._parse_ternary()
            self._consume(TokenType.RPAREN, "Expected ')' after expression")
            return expr

        if self._match(TokenType.LBRACKET):
            elements = self._parse_sequence(
                TokenType.RBRACKET, "Expected ']' after array elements"
            )
            enforce_limit("max_array_length", len(elements), self._limits)
            return ArrayLiteralNode(position=position, elements=tuple(elements))

        raise self._unexpected(token)


def parse(
    source: str, limits: ExpressionLimits = DEFAULT_EXPRESSION_LIMITS
) -> AstNode:
    """
    Parses an expression string into an AST.

    Raises:
        TokenizerError: If tokenization fails
        ParseError: If parsing fails
        LimitExceededError: If the expression exceeds the configured limits
    """
    tokens = tokenize(source, limits)
    return Parser(tokens, source, limits).parse()
