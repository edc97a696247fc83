"""Command-line interface for eventexpr.

`eventexpr eval` evaluates one expression against an event;
`eventexpr template` expands the `$(...)` placeholders of a YAML mapping.
"""

import json
import sys
from contextlib import contextmanager
from typing import Any, Iterator, NoReturn, Optional

import click
import yaml

from eventexpr.config import (
    DEFAULT_EVENT,
    DEFAULT_EXPRESSION,
    DEFAULT_LOG_LEVEL,
    ENV_VAR_LOG_LEVEL,
    ConfigError,
    EngineConfig,
)
from eventexpr.documents import (
    DocumentError,
    load_document,
    parse_json_document,
    parse_yaml_document,
)
from eventexpr.expr.deadline import Deadline
from eventexpr.expr.errors import ExpressionError
from eventexpr.expr.program import Engine
from eventexpr.expr.values import from_expr_value, json_default
from eventexpr.runtime import bindings_for, create_engine, create_source_control_host
from eventexpr.template.scanner import TemplateError, TemplateReport, expand_template
from eventexpr.util.logging import enable_logging, getLogger

logger = getLogger(__name__)

LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]


def _fail(stage: str, message: str) -> NoReturn:
    click.echo(f"{stage} error: {message}", err=True)
    sys.exit(1)


@contextmanager
def _reporting_errors() -> Iterator[None]:
    """Turns library errors into `<stage> error: <message>` and exit status 1."""
    try:
        yield
    except ExpressionError as e:
        _fail(e.stage, e.format_with_context())
    except TemplateError as e:
        _fail(e.stage, f"{e.key}: {e.cause.format_with_context()}")
    except (DocumentError, ConfigError) as e:
        _fail(e.stage, str(e))


def _load_event(ce: Optional[str], ce_file: Optional[str]) -> dict[str, Any]:
    if ce is not None and ce_file is not None:
        raise click.UsageError("--ce and --ce-file are mutually exclusive")
    if ce_file is not None:
        return load_document(ce_file, "event")
    return parse_json_document(ce if ce is not None else DEFAULT_EVENT, "event")


def _build(config: EngineConfig) -> Engine:
    return create_engine(config, host=create_source_control_host(config))


def _deadline(config: EngineConfig, timeout_ms: Optional[int]) -> Optional[Deadline]:
    timeout_ms = timeout_ms if timeout_ms is not None else config.evaluation_timeout_ms
    return Deadline(timeout_ms) if timeout_ms is not None else None


def _dump(value: Any, output: str) -> str:
    if output == "json":
        return json.dumps(value, default=json_default, ensure_ascii=False, indent=2)
    return yaml.safe_dump(value, allow_unicode=True, sort_keys=False).rstrip("\n")


event_options = [
    click.option("--ce", "ce", default=None, help="CloudEvent as JSON"),
    click.option(
        "--ce-file",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="Read the CloudEvent from a JSON or YAML file",
    ),
    click.option(
        "--timeout-ms",
        type=click.IntRange(min=0),
        default=None,
        help="Deadline for the whole evaluation in milliseconds",
    ),
]


def with_event_options(fn: Any) -> Any:
    for option in reversed(event_options):
        fn = option(fn)
    return fn


@click.group()
@click.version_option(package_name="eventexpr", prog_name="eventexpr")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help=f"Set log level (default: ${ENV_VAR_LOG_LEVEL} or {DEFAULT_LOG_LEVEL})",
)
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Evaluate expressions against CloudEvents."""
    with _reporting_errors():
        ctx.obj = EngineConfig.from_env()
    enable_logging(log_level or ctx.obj.log_level)


@cli.command("eval")
@click.option(
    "-e",
    "--expression",
    default=DEFAULT_EXPRESSION,
    show_default=True,
    help="Expression to evaluate",
)
@with_event_options
@click.pass_obj
def eval_command(
    config: EngineConfig,
    expression: str,
    ce: Optional[str],
    ce_file: Optional[str],
    timeout_ms: Optional[int],
) -> None:
    """Evaluate one expression and print the result as JSON."""
    with _reporting_errors():
        event = _load_event(ce, ce_file)
        engine = _build(config)
        value = engine.run(
            expression, bindings_for(config, event), _deadline(config, timeout_ms)
        )
    logger.debug("expression_evaluated", expression=expression)
    output = json.dumps(from_expr_value(value), default=json_default, ensure_ascii=False)
    click.echo(output)


@cli.command("template")
@click.option("-e", "--expression", "template_text", default=None, help="Template as YAML")
@click.option(
    "-f",
    "--file",
    "template_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read the template from a YAML or JSON file",
)
@with_event_options
@click.option("--recursive", is_flag=True, help="Expand placeholders in nested values")
@click.option(
    "--keep-going",
    is_flag=True,
    help="Expand what succeeds and report failed placeholders",
)
@click.option(
    "--output",
    type=click.Choice(["yaml", "json"]),
    default="yaml",
    show_default=True,
)
@click.pass_obj
def template_command(
    config: EngineConfig,
    template_text: Optional[str],
    template_file: Optional[str],
    ce: Optional[str],
    ce_file: Optional[str],
    timeout_ms: Optional[int],
    recursive: bool,
    keep_going: bool,
    output: str,
) -> None:
    """Expand the $(...) placeholders of a template and print it."""
    if (template_text is None) == (template_file is None):
        raise click.UsageError("exactly one of --expression or --file is required")

    with _reporting_errors():
        if template_file is not None:
            document = load_document(template_file, "template")
        else:
            document = parse_yaml_document(template_text or "", "template")
        event = _load_event(ce, ce_file)
        engine = _build(config)
        logger.debug("template_loaded", keys=len(document))
        result = expand_template(
            document,
            engine,
            bindings_for(config, event),
            recursive=recursive,
            deadline=_deadline(config, timeout_ms),
            fail_fast=not keep_going,
        )

    if isinstance(result, TemplateReport):
        click.echo(_dump(result.document, output))
        for failure in result.failures:
            stage = failure.error.stage if failure.error else "runtime"
            click.echo(f"{stage} error: {failure.key}: {failure.error}", err=True)
        if not result.ok:
            sys.exit(1)
        return

    click.echo(_dump(result, output))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
