from .registry import (
    ExternalFunction,
    ExternalFunctionRegistry,
    external_function,
    run_blocking,
)
from .source_control import SourceControlHost, create_source_control_functions

__all__ = [
    "ExternalFunction",
    "ExternalFunctionRegistry",
    "SourceControlHost",
    "create_source_control_functions",
    "external_function",
    "run_blocking",
]
