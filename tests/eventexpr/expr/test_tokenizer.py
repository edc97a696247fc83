"""
Tests for expression tokenizer.
"""

import pytest

from eventexpr.expr import ExpressionLimits, LimitExceededError, TokenizerError, tokenize
from eventexpr.expr.tokenizer import TokenType, is_identifier


def types_of(source: str) -> list[TokenType]:
    return [t.type for t in tokenize(source)]


class TestLiterals:
    """Tests for literal tokenization."""

    def test_tokenizes_string_literals_with_double_quotes(self):
        tokens = tokenize('"hello"')
        assert len(tokens) == 2
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == "hello"
        assert tokens[0].position == 0
        assert tokens[1].type == TokenType.EOF

    def test_tokenizes_string_literals_with_single_quotes(self):
        tokens = tokenize("'world'")
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == "world"

    def test_tokenizes_escape_sequences_in_strings(self):
        tokens = tokenize('"line1\\nline2\\ttab"')
        assert tokens[0].value == "line1\nline2\ttab"

    def test_tokenizes_escaped_quotes_in_strings(self):
        tokens = tokenize('"say \\"hello\\""')
        assert tokens[0].value == 'say "hello"'

    def test_tokenizes_unicode_escapes(self):
        tokens = tokenize('"\\u00e9t\\u00e9"')
        assert tokens[0].value == "été"

    def test_keeps_non_ascii_text(self):
        assert tokenize('"🐱"')[0].value == "🐱"

    def test_throws_on_unterminated_string(self):
        with pytest.raises(TokenizerError):
            tokenize('"unterminated')

    def test_throws_on_newline_in_string(self):
        with pytest.raises(TokenizerError, match="newline"):
            tokenize('"line\nbreak"')

    def test_throws_on_invalid_escape(self):
        with pytest.raises(TokenizerError, match="Invalid escape"):
            tokenize('"bad \\q"')

    def test_throws_on_short_unicode_escape(self):
        with pytest.raises(TokenizerError, match="unicode"):
            tokenize('"\\u12"')

    def test_numbers_keep_their_source_text(self):
        tokens = tokenize("42 3.14 1e3 2.5E-2")
        assert [t.value for t in tokens[:-1]] == ["42", "3.14", "1e3", "2.5E-2"]
        assert all(t.type == TokenType.NUMBER for t in tokens[:-1])

    def test_throws_on_missing_exponent_digits(self):
        with pytest.raises(TokenizerError, match="exponent"):
            tokenize("1e+")

    def test_keywords(self):
        assert types_of("true false null") == [
            TokenType.TRUE,
            TokenType.FALSE,
            TokenType.NULL,
            TokenType.EOF,
        ]

    def test_keywords_are_case_sensitive(self):
        assert types_of("True NULL")[:2] == [TokenType.IDENTIFIER, TokenType.IDENTIFIER]


class TestOperators:
    """Tests for operator tokenization."""

    def test_tokenizes_comparison_operators(self):
        assert types_of("< <= > >= == !=")[:-1] == [
            TokenType.LT,
            TokenType.LE,
            TokenType.GT,
            TokenType.GE,
            TokenType.EQ,
            TokenType.NE,
        ]

    def test_tokenizes_logical_operators(self):
        assert types_of("&& || !")[:-1] == [TokenType.AND, TokenType.OR, TokenType.NOT]

    def test_tokenizes_not_in_as_one_token(self):
        tokens = tokenize("x not in y")
        assert tokens[1].type == TokenType.NOT_IN
        assert tokens[1].value == "not in"
        assert tokens[2].type == TokenType.IDENTIFIER

    def test_not_followed_by_identifier_starting_with_in(self):
        assert types_of("not inside")[:2] == [TokenType.NOT, TokenType.IDENTIFIER]

    def test_single_equals_is_rejected(self):
        with pytest.raises(TokenizerError, match="Did you mean '=='"):
            tokenize("a = b")

    def test_single_ampersand_is_rejected(self):
        with pytest.raises(TokenizerError, match="Did you mean '&&'"):
            tokenize("a & b")

    def test_unexpected_character_reports_position(self):
        with pytest.raises(TokenizerError) as exc_info:
            tokenize("ce.type # x")
        assert exc_info.value.position == 8
        assert exc_info.value.stage == "syntax"


class TestLimits:
    def test_rejects_expressions_over_the_length_limit(self):
        with pytest.raises(LimitExceededError):
            tokenize("a" * 11, ExpressionLimits(max_expression_length=10))


class TestIsIdentifier:
    @pytest.mark.parametrize("name", ["ce", "cat", "_x", "pullRequest", "a1"])
    def test_accepts_identifiers(self, name):
        assert is_identifier(name)

    @pytest.mark.parametrize("name", ["", "1a", "a-b", "true", "in", "a.b"])
    def test_rejects_non_identifiers(self, name):
        assert not is_identifier(name)
