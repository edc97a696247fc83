"""
Tests for environment declarations.
"""

import pytest

from eventexpr.expr import (
    DeclarationError,
    Environment,
    ExprType,
    FunctionDecl,
    IdentifierDecl,
    Overload,
)

S, I, B, D = ExprType.STRING, ExprType.INT, ExprType.BOOL, ExprType.DYN


def commit_decl() -> FunctionDecl:
    return FunctionDecl.of("commit", [S, S, S], D)


class TestBuild:
    def test_builds_identifiers_and_functions(self):
        env = Environment.build(
            [IdentifierDecl("ce", D), IdentifierDecl("cat", S)], [commit_decl()]
        )
        assert env.identifier_type("ce") == D
        assert env.identifier_type("cat") == S
        assert env.has_function("commit")
        assert env.function("commit").overloads == (Overload((S, S, S), D),)

    def test_environment_is_read_only(self):
        env = Environment.build([IdentifierDecl("ce", D)])
        with pytest.raises(TypeError):
            env.identifiers["x"] = S  # type: ignore[index]

    def test_unknown_names(self):
        env = Environment.build()
        assert env.identifier_type("ce") is None
        assert env.function("commit") is None
        assert not env.has_identifier("ce")

    def test_extend_returns_new_environment(self):
        env = Environment.build([IdentifierDecl("ce", D)])
        extended = env.extend(functions=[commit_decl()])
        assert extended.has_function("commit")
        assert not env.has_function("commit")


class TestInvalidDeclarations:
    def test_duplicate_identifier(self):
        with pytest.raises(DeclarationError, match="duplicate identifier 'ce'"):
            Environment.build([IdentifierDecl("ce", D), IdentifierDecl("ce", S)])

    def test_duplicate_function(self):
        with pytest.raises(DeclarationError, match="duplicate function"):
            Environment.build(functions=[commit_decl(), commit_decl()])

    def test_name_shared_by_identifier_and_function(self):
        with pytest.raises(DeclarationError, match="both an identifier and a function"):
            Environment.build(
                [IdentifierDecl("commit", D)], [commit_decl()]
            )

    @pytest.mark.parametrize("name", ["", "1x", "a-b", "true", "in"])
    def test_invalid_names(self, name):
        with pytest.raises(DeclarationError, match="invalid identifier name"):
            Environment.build([IdentifierDecl(name, D)])

    def test_reserved_macro_name(self):
        with pytest.raises(DeclarationError, match="reserved"):
            Environment.build(functions=[FunctionDecl.of("has", [D], B)])

    def test_malformed_identifier_type(self):
        with pytest.raises(DeclarationError, match="malformed type"):
            Environment.build([IdentifierDecl("ce", "dyn")])  # type: ignore[arg-type]

    def test_function_without_overloads(self):
        with pytest.raises(DeclarationError, match="no overloads"):
            Environment.build(functions=[FunctionDecl("f", ())])

    def test_duplicate_overload(self):
        with pytest.raises(DeclarationError, match="twice"):
            Environment.build(
                functions=[FunctionDecl("f", (Overload((S,), S), Overload((S,), B)))]
            )

    def test_malformed_signature(self):
        with pytest.raises(DeclarationError, match="malformed signature"):
            Environment.build(
                functions=[FunctionDecl("f", (Overload(("string",), S),))]  # type: ignore[arg-type]
            )


class TestOverloadResolution:
    def test_resolves_by_arity(self):
        decl = FunctionDecl("split", (Overload((S,), D), Overload((S, S), D)))
        assert decl.resolve([S]).arity == 1
        assert decl.resolve([S, S]).arity == 2
        assert decl.resolve([S, S, S]) is None
        assert decl.arities() == (1, 2)

    def test_dyn_arguments_are_deferred(self):
        assert commit_decl().resolve([D, D, D]) is not None

    def test_null_is_accepted_everywhere(self):
        assert commit_decl().resolve([ExprType.NULL, S, S]) is not None

    def test_int_widens_to_double(self):
        decl = FunctionDecl.of("f", [ExprType.DOUBLE], B)
        assert decl.resolve([I]) is not None
        assert FunctionDecl.of("g", [I], B).resolve([ExprType.DOUBLE]) is None

    def test_mismatched_types(self):
        assert commit_decl().resolve([S, S, I]) is None
