"""
Tests for expression parser.
"""

# pyright: reportAttributeAccessIssue=false

import pytest

from eventexpr.expr import (
    ExpressionLimits,
    LimitExceededError,
    ParseError,
    ast_to_string,
    called_functions,
    count_ast_nodes,
    parse,
)


class TestLiterals:
    """Tests for literal parsing."""

    def test_parses_string_literal(self):
        ast = parse('"hello"')
        assert ast.type == "StringLiteral"
        assert ast.position == 0
        assert ast.value == "hello"

    def test_integer_literal_stays_int(self):
        ast = parse("42")
        assert ast.type == "NumberLiteral"
        assert ast.value == 42
        assert isinstance(ast.value, int)

    def test_decimal_literal_is_float(self):
        ast = parse("3.14")
        assert ast.value == pytest.approx(3.14)
        assert isinstance(ast.value, float)

    def test_exponent_literal_is_float(self):
        ast = parse("1e3")
        assert ast.value == 1000.0
        assert isinstance(ast.value, float)

    def test_parses_booleans_and_null(self):
        assert parse("true").value is True
        assert parse("false").value is False
        assert parse("null").type == "NullLiteral"

    def test_parses_array_literal(self):
        ast = parse('[1, "two", null]')
        assert ast.type == "ArrayLiteral"
        assert [e.type for e in ast.elements] == [
            "NumberLiteral",
            "StringLiteral",
            "NullLiteral",
        ]

    def test_parses_empty_array(self):
        assert parse("[]").elements == ()


class TestAccess:
    def test_parses_member_access_chain(self):
        ast = parse("ce.comexampleextension2.otherValue")
        assert ast.type == "MemberAccess"
        assert ast.property == "otherValue"
        assert ast.object.type == "MemberAccess"
        assert ast.object.property == "comexampleextension2"
        assert ast.object.object.name == "ce"

    def test_parses_index_access(self):
        ast = parse('ce["type"]')
        assert ast.type == "IndexAccess"
        assert ast.index.value == "type"

    def test_parses_function_call(self):
        ast = parse('commit("o", "r", "sha")')
        assert ast.type == "FunctionCall"
        assert ast.name == "commit"
        assert [a.value for a in ast.args] == ["o", "r", "sha"]

    def test_parses_call_on_member_result(self):
        ast = parse('commit(ce.owner, ce.repo, "sha").sha')
        assert ast.type == "MemberAccess"
        assert ast.object.type == "FunctionCall"

    def test_rejects_calling_a_member(self):
        with pytest.raises(ParseError, match="Only named functions"):
            parse("ce.type()")

    def test_rejects_missing_property_name(self):
        with pytest.raises(ParseError, match="property name"):
            parse("ce.")


class TestPrecedence:
    def test_and_binds_tighter_than_or(self):
        ast = parse("a || b && c")
        assert ast.operator == "||"
        assert ast.right.operator == "&&"

    def test_comparison_binds_tighter_than_equality(self):
        ast = parse("a < b == c")
        assert ast.operator == "=="
        assert ast.left.operator == "<"

    def test_multiplicative_binds_tighter_than_additive(self):
        ast = parse("1 + 2 * 3")
        assert ast.operator == "+"
        assert ast.right.operator == "*"

    def test_binary_operators_are_left_associative(self):
        ast = parse("10 - 4 - 3")
        assert ast.operator == "-"
        assert ast.left.operator == "-"
        assert ast.right.value == 3

    def test_parentheses_override_precedence(self):
        ast = parse("(1 + 2) * 3")
        assert ast.operator == "*"
        assert ast.left.operator == "+"

    def test_not_in(self):
        ast = parse('"x" not in ce.tags')
        assert ast.operator == "not in"

    def test_unary_operators_nest(self):
        ast = parse("!!true")
        assert ast.operator == "!"
        assert ast.operand.operator == "!"

    def test_ternary_is_right_associative(self):
        ast = parse("a ? 1 : b ? 2 : 3")
        assert ast.type == "TernaryOp"
        assert ast.alternate.type == "TernaryOp"


class TestErrors:
    def test_rejects_trailing_tokens(self):
        with pytest.raises(ParseError, match="Unexpected token"):
            parse("ce.type ce.id")

    def test_rejects_unclosed_call(self):
        with pytest.raises(ParseError, match="Expected '\\)'"):
            parse('commit("o", "r"')

    def test_rejects_incomplete_ternary(self):
        with pytest.raises(ParseError, match="':'"):
            parse("a ? b")

    def test_rejects_empty_expression(self):
        with pytest.raises(ParseError):
            parse("")

    def test_error_formats_with_caret(self):
        with pytest.raises(ParseError) as exc_info:
            parse("ce.type ==")
        formatted = exc_info.value.format_with_context()
        assert "ce.type ==" in formatted
        assert formatted.rstrip().endswith("^")


class TestLimits:
    def test_array_length_limit(self):
        with pytest.raises(LimitExceededError, match="array length"):
            parse("[1, 2, 3]", ExpressionLimits(max_array_length=2))

    def test_argument_count_limit(self):
        with pytest.raises(LimitExceededError, match="argument count"):
            parse("f(1, 2, 3)", ExpressionLimits(max_function_args=2))

    def test_node_count_limit(self):
        with pytest.raises(LimitExceededError, match="node count"):
            parse("1 + 2 + 3", ExpressionLimits(max_ast_nodes=4))

    def test_depth_limit(self):
        with pytest.raises(LimitExceededError, match="depth"):
            parse("a.b.c.d", ExpressionLimits(max_ast_depth=3))


class TestAstHelpers:
    def test_counts_nodes(self):
        assert count_ast_nodes(parse("ce.type == 'x'")) == 4

    def test_called_functions_in_first_seen_order(self):
        ast = parse(
            'isCollaborator("o", "r", commit("o", "r", "s").author)'
            ' || commit("a", "b", "c") != null'
        )
        assert called_functions(ast) == ("isCollaborator", "commit")

    def test_ast_to_string_renders_tree(self):
        rendered = ast_to_string(parse('ce.type == "x"'))
        assert rendered.splitlines() == [
            "BinaryOp: ==",
            "  MemberAccess: .type",
            "    Identifier: ce",
            '  String: "x"',
        ]
