"""
Template scanning.

A template is a mapping whose string values may be placeholders of the form
`$(<expression>)`. Expanding a template evaluates every placeholder and
replaces the value with the raw result, which need not be a string.

Any string containing `$(...)` on one line is a placeholder. The expression
is the string with a leading `$(` and a trailing `)` removed; text outside
the delimiters stays in the expression and fails to parse.
"""

import re
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Pattern,
    Tuple,
    Union,
)

from eventexpr.expr.deadline import Deadline
from eventexpr.expr.errors import ExpressionError
from eventexpr.expr.program import Engine
from eventexpr.expr.values import from_expr_value
from eventexpr.util.logging import getLogger

logger = getLogger(__name__)

PLACEHOLDER_PATTERN: Pattern[str] = re.compile(r"\$\(.*\)")
PLACEHOLDER_DELIMITERS = ("$(", ")")

# Original keys and list indexes leading from the document root to a value.
TemplatePath = Tuple[Any, ...]

# (container, key) pair locating a value inside the document.
_Slot = Tuple[Union[MutableMapping[Any, Any], List[Any]], Any]


class TemplateError(Exception):
    """A placeholder failed; wraps the failing stage's error."""

    def __init__(
        self,
        key: str,
        expression: str,
        cause: ExpressionError,
        path: TemplatePath = (),
    ):
        super().__init__(f"placeholder '{key}': {cause}")
        self.key = key
        self.path = path
        self.expression = expression
        self.cause = cause

    @property
    def stage(self) -> str:
        return self.cause.stage


@dataclass
class PlaceholderResult:
    """Outcome of one placeholder evaluation; `key` is the printable path."""

    key: str
    expression: str
    value: Any = None
    error: Optional[ExpressionError] = None
    path: TemplatePath = ()

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class TemplateReport:
    """Expanded document plus the per-placeholder results, keyed by path."""

    document: MutableMapping[Any, Any]
    results: Dict[TemplatePath, PlaceholderResult] = field(default_factory=dict)

    @property
    def failures(self) -> List[PlaceholderResult]:
        return [r for r in self.results.values() if not r.success]

    @property
    def ok(self) -> bool:
        return not self.failures


def extract_expression(
    value: Any,
    pattern: Pattern[str] = PLACEHOLDER_PATTERN,
    delimiters: Tuple[str, str] = PLACEHOLDER_DELIMITERS,
) -> Optional[str]:
    """Returns the expression inside a placeholder, or None if `value` is not one."""
    if not isinstance(value, str) or pattern.search(value) is None:
        return None
    prefix, suffix = delimiters
    expression = value
    if expression.startswith(prefix):
        expression = expression[len(prefix):]
    if suffix and expression.endswith(suffix):
        expression = expression[: -len(suffix)]
    return expression


def _iter_placeholders(
    document: MutableMapping[Any, Any],
    pattern: Pattern[str],
    delimiters: Tuple[str, str],
    recursive: bool,
) -> Iterator[Tuple[TemplatePath, str, str, _Slot]]:
    """Yields (path, printable path, expression, slot) for every placeholder."""

    def visit(
        container: Any, path: TemplatePath, shown: str
    ) -> Iterator[Tuple[TemplatePath, str, str, _Slot]]:
        if isinstance(container, dict):
            items = list(container.items())
            labels = [f"{shown}.{k}" if shown else str(k) for k, _ in items]
        else:
            items = list(enumerate(container))
            labels = [f"{shown}[{i}]" for i, _ in items]

        for (key, value), label in zip(items, labels):
            expression = extract_expression(value, pattern, delimiters)
            if expression is not None:
                yield path + (key,), label, expression, (container, key)
            elif recursive and isinstance(value, (dict, list)):
                yield from visit(value, path + (key,), label)

    return visit(document, (), "")


def _evaluate_one(
    engine: Engine,
    path: TemplatePath,
    label: str,
    expression: str,
    bindings: Mapping[str, object],
    deadline: Optional[Deadline],
) -> PlaceholderResult:
    result = engine.evaluate(expression, bindings, deadline)
    if not result.success:
        logger.debug(
            "placeholder_failed", key=label, stage=result.stage, error=result.error
        )
        return PlaceholderResult(
            label, expression, error=result.exception, path=path
        )
    logger.debug("placeholder_evaluated", key=label)
    return PlaceholderResult(
        label, expression, value=from_expr_value(result.value), path=path
    )


def evaluate_template(
    document: MutableMapping[Any, Any],
    engine: Engine,
    bindings: Mapping[str, object],
    *,
    pattern: Pattern[str] = PLACEHOLDER_PATTERN,
    delimiters: Tuple[str, str] = PLACEHOLDER_DELIMITERS,
    recursive: bool = False,
    deadline: Optional[Deadline] = None,
) -> Dict[TemplatePath, PlaceholderResult]:
    """
    Evaluates every placeholder independently without modifying the document.

    A failing placeholder never affects its siblings.
    """
    return {
        path: _evaluate_one(engine, path, label, expression, bindings, deadline)
        for path, label, expression, _ in _iter_placeholders(
            document, pattern, delimiters, recursive
        )
    }


def expand_template(
    document: MutableMapping[Any, Any],
    engine: Engine,
    bindings: Mapping[str, object],
    *,
    pattern: Pattern[str] = PLACEHOLDER_PATTERN,
    delimiters: Tuple[str, str] = PLACEHOLDER_DELIMITERS,
    recursive: bool = False,
    deadline: Optional[Deadline] = None,
    fail_fast: bool = True,
) -> Union[MutableMapping[Any, Any], TemplateReport]:
    """
    Replaces every placeholder in `document` with its evaluated value, in place.

    With `fail_fast` (the default) the expansion is all-or-nothing: every
    placeholder is evaluated before anything is written, and the first
    failure raises TemplateError leaving the document untouched. The
    document itself is returned.

    Without `fail_fast`, successful placeholders are written, failed ones
    keep their original text, and a TemplateReport is returned.

    Raises:
        TemplateError: If a placeholder fails and `fail_fast` is set
    """
    slots = list(_iter_placeholders(document, pattern, delimiters, recursive))

    if not fail_fast:
        report = TemplateReport(document)
        for path, label, expression, (container, key) in slots:
            result = _evaluate_one(engine, path, label, expression, bindings, deadline)
            report.results[path] = result
            if result.success:
                container[key] = result.value
        logger.info(
            "template_expanded", placeholders=len(slots), failed=len(report.failures)
        )
        return report

    pending: List[Tuple[_Slot, Any]] = []
    for path, label, expression, slot in slots:
        try:
            value = engine.run(expression, bindings, deadline)
        except ExpressionError as e:
            logger.debug("placeholder_failed", key=label, stage=e.stage, error=str(e))
            raise TemplateError(label, expression, e, path) from e
        logger.debug("placeholder_evaluated", key=label)
        pending.append((slot, from_expr_value(value)))

    for (container, key), value in pending:
        container[key] = value

    logger.info("template_expanded", placeholders=len(slots), failed=0)
    return document
