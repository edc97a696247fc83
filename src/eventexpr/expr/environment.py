"""
Expression environment: the declared identifiers and function signatures
an expression may reference.

The environment is purely descriptive. It carries type information for the
checker and never any behaviour; implementations are bound separately when a
program is created.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from .errors import DeclarationError
from .tokenizer import is_identifier
from .types import ExprType, format_signature, is_assignable

# Names the checker treats as macros; they cannot be redeclared.
RESERVED_NAMES = frozenset({"has"})


@dataclass(frozen=True)
class IdentifierDecl:
    """A free identifier and its declared type."""

    name: str
    type: ExprType


@dataclass(frozen=True)
class Overload:
    """One callable signature of a function."""

    params: Tuple[ExprType, ...]
    result: ExprType

    @property
    def arity(self) -> int:
        return len(self.params)

    def accepts(self, arg_types: Sequence[ExprType]) -> bool:
        return len(arg_types) == len(self.params) and all(
            is_assignable(p, a) for p, a in zip(self.params, arg_types)
        )

    def __str__(self) -> str:
        return f"{format_signature(self.params)} -> {self.result}"


@dataclass(frozen=True)
class FunctionDecl:
    """A function name and its overloads."""

    name: str
    overloads: Tuple[Overload, ...]

    @classmethod
    def of(
        cls, name: str, params: Sequence[ExprType], result: ExprType
    ) -> "FunctionDecl":
        """Declares a function with a single overload."""
        return cls(name, (Overload(tuple(params), result),))

    def arities(self) -> Tuple[int, ...]:
        return tuple(sorted({o.arity for o in self.overloads}))

    def resolve(self, arg_types: Sequence[ExprType]) -> Optional[Overload]:
        """Returns the first overload accepting the argument types."""
        for overload in self.overloads:
            if overload.accepts(arg_types):
                return overload
        return None


@dataclass(frozen=True)
class Environment:
    """
    Immutable declaration set shared by every pipeline run.

    Build with `Environment.build(...)`, which validates the declarations.
    """

    identifiers: Mapping[str, ExprType] = field(default_factory=dict)
    functions: Mapping[str, FunctionDecl] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        identifiers: Iterable[IdentifierDecl] = (),
        functions: Iterable[FunctionDecl] = (),
    ) -> "Environment":
        """
        Validates declarations and returns a new environment.

        Raises:
            DeclarationError: On duplicate or malformed declarations
        """
        identifier_map: dict[str, ExprType] = {}
        function_map: dict[str, FunctionDecl] = {}

        for decl in identifiers:
            _validate_name(decl.name, "identifier")
            if not isinstance(decl.type, ExprType):
                raise DeclarationError(
                    f"identifier '{decl.name}' has malformed type {decl.type!r}"
                )
            if decl.name in identifier_map:
                raise DeclarationError(f"duplicate identifier '{decl.name}'")
            identifier_map[decl.name] = decl.type

        for fn in functions:
            _validate_name(fn.name, "function")
            _validate_overloads(fn)
            if fn.name in function_map:
                raise DeclarationError(f"duplicate function '{fn.name}'")
            if fn.name in identifier_map:
                raise DeclarationError(
                    f"'{fn.name}' is declared as both an identifier and a function"
                )
            function_map[fn.name] = fn

        return cls(
            identifiers=MappingProxyType(identifier_map),
            functions=MappingProxyType(function_map),
        )

    def extend(
        self,
        identifiers: Iterable[IdentifierDecl] = (),
        functions: Iterable[FunctionDecl] = (),
    ) -> "Environment":
        """Returns a new environment with additional declarations."""
        return Environment.build(
            [IdentifierDecl(n, t) for n, t in self.identifiers.items()]
            + list(identifiers),
            list(self.functions.values()) + list(functions),
        )

    def has_identifier(self, name: str) -> bool:
        return name in self.identifiers

    def identifier_type(self, name: str) -> Optional[ExprType]:
        return self.identifiers.get(name)

    def has_function(self, name: str) -> bool:
        return name in self.functions

    def function(self, name: str) -> Optional[FunctionDecl]:
        return self.functions.get(name)


def _validate_name(name: str, kind: str) -> None:
    if not isinstance(name, str) or not is_identifier(name):
        raise DeclarationError(f"invalid {kind} name {name!r}")
    if name in RESERVED_NAMES:
        raise DeclarationError(f"{kind} name '{name}' is reserved")


def _validate_overloads(fn: FunctionDecl) -> None:
    if not fn.overloads:
        raise DeclarationError(f"function '{fn.name}' declares no overloads")

    seen: set[Tuple[ExprType, ...]] = set()
    for overload in fn.overloads:
        types = (*overload.params, overload.result)
        if not all(isinstance(t, ExprType) for t in types):
            raise DeclarationError(
                f"function '{fn.name}' has a malformed signature {overload.params!r}"
            )
        if overload.params in seen:
            raise DeclarationError(
                f"function '{fn.name}' declares overload "
                f"{format_signature(overload.params)} twice"
            )
        seen.add(overload.params)
