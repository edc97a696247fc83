"""
External function registry.

A capability table mapping a function name to its declared parameter types,
result type and implementation. The environment's function declarations are
derived from the same table, and `verify` checks the two agree before any
expression runs.
"""

import asyncio
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from eventexpr.expr.builtins import (
    BUILTIN_FUNCTIONS,
    BuiltinContext,
    BuiltinFunction,
    ErrorValue,
    FunctionRegistry,
    FunctionResult,
)
from eventexpr.expr.environment import Environment, FunctionDecl, Overload
from eventexpr.expr.errors import BindingError, DeclarationError
from eventexpr.expr.types import ExprType, format_signature
from eventexpr.expr.values import ExprValue, get_type_name, is_number
from eventexpr.util.logging import getLogger

logger = getLogger(__name__)

T = TypeVar("T")

# Lookup performed by an external function once its arguments are extracted.
Lookup = Callable[[Sequence[Any], BuiltinContext], Any]


@dataclass(frozen=True)
class ExternalFunction:
    """One entry of the capability table."""

    name: str
    params: Tuple[ExprType, ...]
    result: ExprType
    implementation: BuiltinFunction
    aliases: Tuple[str, ...] = ()

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def overload(self) -> Overload:
        return Overload(self.params, self.result)

    def names(self) -> Tuple[str, ...]:
        return (self.name, *self.aliases)


class ExternalFunctionRegistry:
    """Registry of external functions, keyed by name and alias."""

    def __init__(self, functions: Iterable[ExternalFunction] = ()):
        self._entries: Dict[str, ExternalFunction] = {}
        for fn in functions:
            self.register(fn)

    def register(
        self,
        function: Any,
        arity: Optional[int] = None,
        implementation: Optional[BuiltinFunction] = None,
    ) -> ExternalFunction:
        """
        Registers an ExternalFunction, or a `(name, arity, implementation)`
        triple declaring `dyn` parameters and result.

        Raises:
            DeclarationError: If a name or alias is already registered
        """
        if isinstance(function, ExternalFunction):
            entry = function
        else:
            if arity is None or implementation is None:
                raise TypeError(
                    "register(name, arity, implementation) requires all three arguments"
                )
            entry = ExternalFunction(
                name=function,
                params=(ExprType.DYN,) * arity,
                result=ExprType.DYN,
                implementation=implementation,
            )

        for name in entry.names():
            if name in self._entries:
                raise DeclarationError(f"duplicate external function '{name}'")
        for name in entry.names():
            self._entries[name] = entry
        return entry

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def names(self) -> List[str]:
        return sorted(self._entries)

    def get(self, name: str) -> Optional[ExternalFunction]:
        return self._entries.get(name)

    def resolve(self, name: str) -> BuiltinFunction:
        """
        Raises:
            BindingError: If no function is registered under the name
        """
        entry = self._entries.get(name)
        if entry is None:
            raise BindingError(f"no external function registered as '{name}'")
        return entry.implementation

    def declarations(self) -> List[FunctionDecl]:
        """One declaration per registered name, aliases included."""
        return [
            FunctionDecl(name, (entry.overload,))
            for name, entry in sorted(self._entries.items())
        ]

    def verify(self, environment: Environment) -> None:
        """
        Checks every entry against the environment's declarations.

        Raises:
            BindingError: If an entry is undeclared or its signature disagrees
        """
        for name, entry in sorted(self._entries.items()):
            decl = environment.function(name)
            if decl is None:
                raise BindingError(f"external function '{name}' is not declared")
            if entry.overload not in decl.overloads:
                raise BindingError(
                    f"external function '{name}' is bound as "
                    f"{format_signature(entry.params)} -> {entry.result}, "
                    f"declared as {', '.join(str(o) for o in decl.overloads)}"
                )

    def as_function_registry(
        self, base: Optional[FunctionRegistry] = None
    ) -> FunctionRegistry:
        """
        Returns a registry suitable for evaluation, merged over the standard
        helpers.

        Raises:
            DeclarationError: If an external function shadows a helper
        """
        merged: FunctionRegistry = dict(base if base is not None else BUILTIN_FUNCTIONS)
        for name, entry in self._entries.items():
            if name in merged:
                raise DeclarationError(
                    f"external function '{name}' conflicts with a standard helper"
                )
            merged[name] = entry.implementation
        return merged


def _extract(value: ExprValue, expected: ExprType, position: int, name: str) -> Any:
    """Extracts a native argument of the declared type."""
    ok = {
        ExprType.STRING: lambda v: isinstance(v, str),
        ExprType.INT: lambda v: isinstance(v, int) and not isinstance(v, bool),
        ExprType.DOUBLE: is_number,
        ExprType.BOOL: lambda v: isinstance(v, bool),
        ExprType.LIST: lambda v: isinstance(v, list),
        ExprType.MAP: lambda v: isinstance(v, dict),
        ExprType.NULL: lambda v: v is None,
        ExprType.DYN: lambda v: True,
    }[expected](value)
    if not ok:
        raise BindingError(
            f"{name}: argument {position + 1} expected {expected}, "
            f"got {get_type_name(value)}"
        )
    return value


def external_function(
    name: str, params: Sequence[ExprType], lookup: Lookup
) -> BuiltinFunction:
    """
    Wraps a lookup as an expression function.

    The wrapper checks the argument count (returning an ErrorValue on
    mismatch), extracts each argument by its declared type (a mismatch is a
    declaration bug and raises BindingError) and performs the lookup. Any
    exception raised by the lookup is returned as an ErrorValue.
    """
    params = tuple(params)

    def call(args: Sequence[ExprValue], ctx: BuiltinContext) -> FunctionResult:
        if len(args) != len(params):
            return ErrorValue(
                f"invalid arguments: expected {len(params)}, got {len(args)}",
                function_name=name,
            )

        native = [_extract(a, t, i, name) for i, (a, t) in enumerate(zip(args, params))]

        if ctx.deadline is not None and ctx.deadline.expired:
            return ErrorValue(ctx.deadline.reason(), function_name=name)

        try:
            return lookup(native, ctx)
        except BindingError:
            raise
        except Exception as e:
            logger.warning(
                "external_call_failed",
                function=name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return ErrorValue(_describe(e), function_name=name, cause=e)

    call.arity = len(params)  # type: ignore[attr-defined]
    call.__name__ = name
    return call


def _describe(error: BaseException) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return "lookup timed out"
    return str(error) or type(error).__name__


def run_blocking(
    coro_factory: Callable[[], Awaitable[T]], timeout: Optional[float] = None
) -> T:
    """
    Runs one coroutine to completion on a fresh event loop.

    Raises:
        asyncio.TimeoutError: If the timeout elapses first
    """

    async def _bounded() -> T:
        if timeout is None:
            return await coro_factory()
        return await asyncio.wait_for(coro_factory(), timeout)

    return asyncio.run(_bounded())
