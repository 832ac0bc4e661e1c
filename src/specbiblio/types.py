"""Core value types for operation signatures.

Types are immutable and produced once by parsing a header. ``Type`` is a
closed union of four shapes:

- ``NamedType`` — an opaque type phrase ("an ECMAScript language value")
- ``ListType`` — a list parameterized by its element type
- ``RecordType`` — named fields, each carrying a ``Type``
- ``UnionType`` — a flattened alternation of two or more types
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True, slots=True)
class NamedType:
    """An opaque named type or type phrase."""

    name: str

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("NamedType.name cannot be empty")


@dataclass(frozen=True, slots=True)
class ListType:
    element: Type


@dataclass(frozen=True, slots=True)
class RecordType:
    """Record with ordered ``(field_name, Type)`` pairs."""

    fields: tuple[tuple[str, Type], ...]

    def __post_init__(self) -> None:
        names = [name for name, _ in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate record field in {names!r}")


@dataclass(frozen=True, slots=True)
class UnionType:
    """Alternation of two or more types; never nested directly."""

    alternatives: tuple[Type, ...]

    def __post_init__(self) -> None:
        if len(self.alternatives) < 2:
            raise ValueError("UnionType needs at least two alternatives")
        for alt in self.alternatives:
            if isinstance(alt, UnionType):
                raise ValueError("UnionType alternatives must be flattened")


Type: TypeAlias = NamedType | ListType | RecordType | UnionType


@dataclass(frozen=True, slots=True)
class Parameter:
    name: str
    type: Type | None = None
    optional: bool = False


@dataclass(frozen=True, slots=True)
class Signature:
    """Structured operation signature: name, ordered params, return type."""

    name: str
    params: tuple[Parameter, ...]
    return_type: Type | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Signature.name cannot be empty")


def make_union(alternatives: list[Type]) -> Type:
    """Build a flattened union, collapsing a single alternative to itself."""
    flat: list[Type] = []
    for alt in alternatives:
        if isinstance(alt, UnionType):
            flat.extend(alt.alternatives)
        else:
            flat.append(alt)
    if len(flat) == 1:
        return flat[0]
    return UnionType(alternatives=tuple(flat))


def render_type(value: Type) -> str:
    """Render a type back into header type syntax."""
    match value:
        case NamedType(name=name):
            return name
        case ListType(element=element):
            inner = render_type(element)
            if isinstance(element, UnionType):
                inner = f"({inner})"
            return f"List of {inner}"
        case RecordType(fields=fields):
            if not fields:
                return "{ }"
            body = ", ".join(f"{name}: {render_type(t)}" for name, t in fields)
            return "{ " + body + " }"
        case UnionType(alternatives=alternatives):
            return " or ".join(render_type(alt) for alt in alternatives)
        case _:
            raise TypeError(f"not a Type: {value!r}")


def render_signature(signature: Signature) -> str:
    """Render a signature as ``Name(a: T, optional b): R``."""
    parts: list[str] = []
    for param in signature.params:
        text = f"optional {param.name}" if param.optional else param.name
        if param.type is not None:
            text += f": {render_type(param.type)}"
        parts.append(text)
    out = f"{signature.name}({', '.join(parts)})"
    if signature.return_type is not None:
        out += f": {render_type(signature.return_type)}"
    return out
