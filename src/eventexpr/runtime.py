"""
Runtime wiring: builds the environment, the function registry and the
engine from an EngineConfig.

The environment and registry are built once and shared read-only by every
evaluation.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from eventexpr.config import EngineConfig
from eventexpr.expr.builtins import BUILTIN_DECLARATIONS
from eventexpr.expr.environment import Environment, FunctionDecl, IdentifierDecl
from eventexpr.expr.program import Engine
from eventexpr.expr.types import ExprType
from eventexpr.expr.values import to_expr_value, type_of_value
from eventexpr.functions.registry import ExternalFunction, ExternalFunctionRegistry
from eventexpr.functions.source_control import (
    SourceControlHost,
    create_source_control_functions,
)
from eventexpr.github.client import GitHubClient
from eventexpr.util.logging import getLogger

logger = getLogger(__name__)


def create_source_control_host(config: EngineConfig) -> SourceControlHost:
    return GitHubClient(config.github)


def build_registry(
    host: SourceControlHost,
    config: EngineConfig,
    extra: Iterable[ExternalFunction] = (),
) -> ExternalFunctionRegistry:
    registry = ExternalFunctionRegistry(
        create_source_control_functions(host, config.call_timeout_ms)
    )
    for fn in extra:
        registry.register(fn)
    return registry


def build_environment(
    config: EngineConfig, registry: ExternalFunctionRegistry
) -> Environment:
    """
    Declares the event identifier, the constants, the standard helpers and
    every registered external function, then verifies the registry against
    the result.

    Raises:
        DeclarationError: On conflicting declarations
        BindingError: If the registry disagrees with the declarations
    """
    identifiers: List[IdentifierDecl] = [
        IdentifierDecl(config.event_identifier, ExprType.DYN)
    ]
    identifiers.extend(
        IdentifierDecl(name, type_of_value(to_expr_value(value)))
        for name, value in config.constants.items()
    )
    functions: List[FunctionDecl] = list(BUILTIN_DECLARATIONS) + registry.declarations()

    environment = Environment.build(identifiers, functions)
    registry.verify(environment)
    logger.debug(
        "environment_built",
        identifiers=sorted(environment.identifiers),
        functions=sorted(environment.functions),
    )
    return environment


def create_engine(
    config: Optional[EngineConfig] = None,
    host: Optional[SourceControlHost] = None,
    extra_functions: Iterable[ExternalFunction] = (),
) -> Engine:
    """Builds an engine with the source-control functions bound to `host`."""
    config = config or EngineConfig()
    host = host if host is not None else create_source_control_host(config)
    registry = build_registry(host, config, extra_functions)
    environment = build_environment(config, registry)
    return Engine(environment, registry.as_function_registry(), config.limits)


def bindings_for(config: EngineConfig, event: Mapping[str, Any]) -> Dict[str, Any]:
    """Input bindings for one run: the event plus the configured constants."""
    return {config.event_identifier: event, **config.constants}
