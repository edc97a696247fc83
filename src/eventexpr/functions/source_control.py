"""
Source-control functions: commit, pullRequest and isCollaborator.

Each function performs one lookup against a SourceControlHost. Lookups are
async; they run to completion before the call returns, bounded by the
per-call timeout and whatever remains of the evaluation deadline.
"""

from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence

from eventexpr.expr.builtins import BuiltinContext
from eventexpr.expr.types import ExprType

from .registry import ExternalFunction, external_function, run_blocking

_S, _I, _B, _D = ExprType.STRING, ExprType.INT, ExprType.BOOL, ExprType.DYN

DEFAULT_CALL_TIMEOUT_MS = 10_000


class SourceControlHost(Protocol):
    """Facts about repositories on a source-control host."""

    async def get_commit(self, owner: str, repo: str, revision: str) -> Any: ...

    async def get_pull_request(self, owner: str, repo: str, number: int) -> Any: ...

    async def is_collaborator(self, owner: str, repo: str, username: str) -> bool: ...


def _blocking(
    method: Callable[..., Awaitable[Any]], timeout_ms: Optional[int]
) -> Callable[[Sequence[Any], BuiltinContext], Any]:
    timeout = timeout_ms / 1000 if timeout_ms is not None else None

    def lookup(args: Sequence[Any], ctx: BuiltinContext) -> Any:
        effective = ctx.deadline.bound(timeout) if ctx.deadline else timeout
        return run_blocking(lambda: method(*args), effective)

    return lookup


def create_source_control_functions(
    host: SourceControlHost, timeout_ms: Optional[int] = DEFAULT_CALL_TIMEOUT_MS
) -> List[ExternalFunction]:
    """Builds the capability-table entries backed by a host."""
    table = [
        ("commit", (_S, _S, _S), _D, host.get_commit, ()),
        ("pullRequest", (_S, _S, _I), _D, host.get_pull_request, ("pr",)),
        ("isCollaborator", (_S, _S, _S), _B, host.is_collaborator, ("collaborator",)),
    ]
    return [
        ExternalFunction(
            name=name,
            params=params,
            result=result,
            implementation=external_function(
                name, params, _blocking(method, timeout_ms)
            ),
            aliases=aliases,
        )
        for name, params, result, method, aliases in table
    ]
