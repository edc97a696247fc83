"""
Evaluation pipeline.

parse -> check -> program -> evaluate, strictly in that order. Each stage
raises its own error type so callers can tell a malformed expression from a
declaration mismatch, a missing binding or a failed external lookup.
"""

from typing import Mapping, Optional

from eventexpr.util.logging import getLogger

from .ast import AstNode, ast_to_string, called_functions
from .builtins import BUILTIN_FUNCTIONS, FunctionRegistry
from .checker import CheckedExpr, check
from .deadline import Deadline
from .environment import Environment
from .errors import BindingError, ExpressionError
from .evaluator import EvaluationContext, EvaluationResult, Evaluator
from .limits import DEFAULT_EXPRESSION_LIMITS, ExpressionLimits
from .parser import parse
from .values import ExprValue

logger = getLogger(__name__)


class Program:
    """
    A checked expression with its function bindings resolved.

    Programs hold no per-run state and may be run any number of times
    against different bindings.
    """

    def __init__(
        self,
        checked: CheckedExpr,
        functions: FunctionRegistry,
        environment: Environment,
        limits: ExpressionLimits = DEFAULT_EXPRESSION_LIMITS,
    ):
        self._checked = checked
        self._functions = functions
        self._environment = environment
        self._limits = limits

    @property
    def checked(self) -> CheckedExpr:
        return self._checked

    @property
    def source(self) -> str:
        return self._checked.source

    def run(
        self, bindings: Mapping[str, object], deadline: Optional[Deadline] = None
    ) -> ExprValue:
        """
        Evaluates the program against input bindings.

        Raises:
            EvaluationError: On any runtime failure
        """
        context = EvaluationContext(
            bindings=bindings,
            limits=self._limits,
            source=self._checked.source,
            functions=self._functions,
            environment=self._environment,
            checked=self._checked,
            deadline=deadline,
        )
        return Evaluator(context).evaluate(self._checked.ast)

    def evaluate(
        self, bindings: Mapping[str, object], deadline: Optional[Deadline] = None
    ) -> EvaluationResult:
        try:
            return EvaluationResult(value=self.run(bindings, deadline), success=True)
        except ExpressionError as error:
            return _failed(error)


class Engine:
    """
    Runs expressions against one environment and one function registry.

    The environment and registry are shared read-only by every run.
    """

    def __init__(
        self,
        environment: Environment,
        functions: Optional[FunctionRegistry] = None,
        limits: ExpressionLimits = DEFAULT_EXPRESSION_LIMITS,
    ):
        self._environment = environment
        self._functions = dict(functions if functions is not None else BUILTIN_FUNCTIONS)
        self._limits = limits

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def limits(self) -> ExpressionLimits:
        return self._limits

    def parse(self, source: str) -> AstNode:
        ast = parse(source, self._limits)
        logger.debug(
            "expression_parsed", expression=source, ast="\n" + ast_to_string(ast)
        )
        return ast

    def check(self, ast: AstNode, source: str = "") -> CheckedExpr:
        checked = check(ast, self._environment, source)
        logger.debug(
            "expression_checked",
            expression=source,
            result_type=str(checked.result_type),
        )
        return checked

    def program(self, checked: CheckedExpr) -> Program:
        """
        Binds every function the expression calls.

        Raises:
            BindingError: If a called function has no implementation, or the
                implementation's arity disagrees with the declaration
        """
        for name in called_functions(checked.ast):
            decl = self._environment.function(name)
            if decl is None:
                # only reachable for macros
                continue
            fn = self._functions.get(name)
            if fn is None:
                raise BindingError(
                    f"function '{name}' is declared but has no implementation",
                    expression=checked.source,
                )
            arity = getattr(fn, "arity", None)
            if arity is not None and arity not in decl.arities():
                raise BindingError(
                    f"function '{name}' is bound with {arity} parameter(s) but "
                    f"declared with {', '.join(map(str, decl.arities()))}",
                    expression=checked.source,
                )
        return Program(checked, self._functions, self._environment, self._limits)

    def compile(self, source: str) -> Program:
        """
        Parses, checks and binds an expression.

        Raises:
            TokenizerError, ParseError, LimitExceededError: syntax stage
            CheckError: type stage
            BindingError: binding stage
        """
        ast = self.parse(source)
        return self.program(self.check(ast, source))

    def evaluate(
        self,
        source: str,
        bindings: Mapping[str, object],
        deadline: Optional[Deadline] = None,
    ) -> EvaluationResult:
        """Runs the whole pipeline; any stage failure is reported in the result."""
        try:
            program = self.compile(source)
        except ExpressionError as error:
            return _failed(error)
        return program.evaluate(bindings, deadline)

    def run(
        self,
        source: str,
        bindings: Mapping[str, object],
        deadline: Optional[Deadline] = None,
    ) -> ExprValue:
        """Runs the whole pipeline, raising the failing stage's error."""
        return self.compile(source).run(bindings, deadline)


def _failed(error: ExpressionError) -> EvaluationResult:
    return EvaluationResult(
        value=None,
        success=False,
        error=str(error),
        stage=error.stage,
        exception=error,
    )
