"""
Tests for the parse -> check -> program -> evaluate pipeline.
"""

import pytest

from eventexpr.config import EngineConfig
from eventexpr.expr import (
    BindingError,
    CheckError,
    Deadline,
    Engine,
    Environment,
    EvaluationError,
    ExprType,
    FunctionDecl,
    IdentifierDecl,
    ParseError,
)
from eventexpr.functions.registry import external_function
from eventexpr.runtime import create_engine

S, B, D = ExprType.STRING, ExprType.BOOL, ExprType.DYN


class TestScenarios:
    def test_matching_event_type(self, engine):
        result = engine.evaluate(
            'ce.type == "com.example.someevent"',
            {"ce": {"type": "com.example.someevent"}, "cat": "🐱"},
        )
        assert result.success
        assert result.value is True

    def test_other_event_type(self, engine):
        result = engine.evaluate(
            'ce.type == "com.example.someevent"', {"ce": {"type": "x"}, "cat": "🐱"}
        )
        assert result.value is False

    def test_constant_identifier(self, engine, bindings):
        assert engine.run("cat", bindings) == "🐱"

    def test_failed_lookup_is_a_runtime_error(self, engine, bindings):
        result = engine.evaluate('commit("o", "r", "bad-sha")', bindings)
        assert not result.success
        assert result.stage == "runtime"
        assert result.value is None
        assert "commit" in result.error
        assert "No commit found for SHA: bad-sha" in result.error


class TestExternalFunctions:
    def test_commit_lookup(self, engine, bindings, host):
        value = engine.run('commit(ce.owner, ce.repo, "abc123").commit.message', bindings)
        assert value == "Fix the thing"
        assert host.calls == [("commit", "tektoncd", "pipeline", "abc123")]

    def test_pull_request_lookup(self, engine, bindings):
        assert engine.run("pullRequest(ce.owner, ce.repo, 42).user.login", bindings) == "octocat"

    def test_aliases(self, engine, bindings):
        assert engine.run('pr("tektoncd", "pipeline", 42).state', bindings) == "open"
        assert engine.run('collaborator("tektoncd", "pipeline", "octocat")', bindings) is True

    def test_collaborator_lookup(self, engine, bindings):
        assert engine.run('isCollaborator("tektoncd", "pipeline", "octocat")', bindings) is True
        assert engine.run('isCollaborator("tektoncd", "pipeline", "mallory")', bindings) is False

    def test_failed_lookup_absorbed_by_logical_operator(self, engine, bindings):
        expression = 'isCollaborator("o", "r", "u") && commit("o", "r", "bad").sha == "x"'
        assert engine.run(expression, bindings) is False
        expression = 'commit("o", "r", "bad").sha == "x" || ce.type == "com.example.someevent"'
        assert engine.run(expression, bindings) is True

    def test_dyn_arguments_checked_at_runtime(self, engine, bindings):
        result = engine.evaluate(
            "commit(ce.owner, ce.repo, ce.comexampleextension2)", bindings
        )
        assert result.stage == "runtime"
        assert "(string, string, map)" in result.error

    def test_lookups_are_deterministic(self, engine, bindings):
        expression = 'commit("tektoncd", "pipeline", "abc123").sha'
        assert engine.run(expression, bindings) == engine.run(expression, bindings)


class TestStages:
    def test_syntax_error(self, engine, bindings):
        result = engine.evaluate("ce.type ==", bindings)
        assert result.stage == "syntax"
        assert isinstance(result.exception, ParseError)

    def test_type_error(self, engine, bindings):
        result = engine.evaluate('commit("o", "r")', bindings)
        assert result.stage == "type"
        assert isinstance(result.exception, CheckError)

    def test_undeclared_identifier(self, engine, bindings):
        assert engine.evaluate("dog", bindings).stage == "type"

    def test_missing_binding(self, engine):
        result = engine.evaluate("ce.type", {"cat": "🐱"})
        assert result.stage == "runtime"
        assert "'ce' is not bound" in result.error

    def test_binding_of_wrong_declared_type(self, engine, event):
        result = engine.evaluate("cat", {"ce": event, "cat": 5})
        assert result.stage == "runtime"
        assert "declared string" in result.error

    def test_run_raises_the_stage_error(self, engine, bindings):
        with pytest.raises(EvaluationError):
            engine.run("ce.missing", bindings)


class TestProgram:
    def test_program_runs_against_different_bindings(self, engine):
        program = engine.compile('ce.type == "push"')
        assert program.run({"ce": {"type": "push"}, "cat": "🐱"}) is True
        assert program.run({"ce": {"type": "pull"}, "cat": "🐱"}) is False
        assert program.source == 'ce.type == "push"'
        assert program.checked.result_type == B

    def test_missing_implementation_is_a_binding_error(self):
        env = Environment.build(functions=[FunctionDecl.of("lookup", [S], D)])
        engine = Engine(env, functions={})
        with pytest.raises(BindingError, match="no implementation"):
            engine.compile('lookup("x")')

    def test_arity_mismatch_is_a_binding_error(self):
        env = Environment.build(functions=[FunctionDecl.of("lookup", [S], D)])
        impl = external_function("lookup", [S, S], lambda args, ctx: None)
        engine = Engine(env, functions={"lookup": impl})
        with pytest.raises(BindingError, match="bound with 2 parameter"):
            engine.compile('lookup("x")')

    def test_result_must_match_declared_type(self):
        env = Environment.build(
            [IdentifierDecl("ce", D)], [FunctionDecl.of("isMember", [S], B)]
        )
        engine = Engine(env, functions={"isMember": lambda args, ctx: "yes"})
        result = engine.evaluate('isMember("x")', {"ce": {}})
        assert result.stage == "runtime"
        assert "returned string, declared bool" in result.error


class TestDeadlines:
    def test_per_call_timeout(self, host, bindings):
        host.delay = 1.0
        engine = create_engine(EngineConfig(call_timeout_ms=50), host=host)
        result = engine.evaluate('isCollaborator("o", "r", "u")', bindings)
        assert result.stage == "runtime"
        assert "timed out" in result.error

    def test_evaluation_deadline_bounds_calls(self, engine, host, bindings):
        host.delay = 1.0
        result = engine.evaluate(
            'isCollaborator("o", "r", "u")', bindings, Deadline(timeout_ms=50)
        )
        assert "timed out" in result.error

    def test_cancelled_deadline_skips_lookups(self, engine, host, bindings):
        deadline = Deadline()
        deadline.cancel()
        result = engine.evaluate('commit("o", "r", "abc123")', bindings, deadline)
        assert "evaluation cancelled" in result.error
        assert host.calls == []

    def test_deadline_remaining(self):
        assert Deadline().remaining() is None
        assert Deadline(timeout_ms=0).expired
        assert Deadline(timeout_ms=60_000).bound(1.0) == 1.0
        assert Deadline(timeout_ms=10).bound(60.0) <= 0.01
