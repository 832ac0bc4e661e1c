"""Operation header parser.

Parses headers such as::

    Call(_F_: a function object, optional _thisArg_: an ECMAScript language value): a Boolean

into a ``ParsedHeader`` (name, raw parameters, raw return type, with source
offsets) or a ``HeaderParseFailure`` listing every independent problem found
in one pass. Type phrases are parsed in a second step by
``parsed_header_to_signature``, which raises ``TypeParseError`` for a
malformed type. Nothing else is raised for malformed input.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import TypeAlias

from specbiblio.type_parser import TypeParseError, parse_type
from specbiblio.types import Parameter, Signature, Type, render_type

__all__ = [
    "FormattedHeader",
    "HeaderError",
    "HeaderParseFailure",
    "ParsedHeader",
    "ParsedParam",
    "TypeParseError",
    "format_header",
    "offset_to_line_column",
    "parse_header",
    "parsed_header_to_signature",
]

_PARAM_RE = re.compile(
    r"\s*(?P<optional>optional\s+)?"
    r"(?P<u>_?)(?P<name>[A-Za-z$][\w$]*?)(?P=u)"
    r"(?P<qmark>\?)?\s*"
    r"(?::(?P<type>.*))?",
    re.DOTALL,
)

_OPENERS = {"(": ")", "{": "}", "[": "]"}
_CLOSERS = frozenset(_OPENERS.values())


@dataclass(frozen=True, slots=True)
class HeaderError:
    """A single header diagnostic at a character offset in the source."""

    message: str
    offset: int


@dataclass(frozen=True, slots=True)
class ParsedParam:
    name: str
    optional: bool
    type_source: str | None
    type_offset: int
    offset: int


@dataclass(frozen=True, slots=True)
class ParsedHeader:
    """Successful structural parse; type phrases are still raw text."""

    name: str
    params: tuple[ParsedParam, ...]
    return_source: str | None
    return_offset: int


@dataclass(frozen=True, slots=True)
class HeaderParseFailure:
    errors: tuple[HeaderError, ...]

    def __post_init__(self) -> None:
        if not self.errors:
            raise ValueError("HeaderParseFailure needs at least one error")


HeaderParseResult: TypeAlias = ParsedHeader | HeaderParseFailure


def offset_to_line_column(source: str, offset: int) -> tuple[int, int]:
    """Map a character offset to a 1-based ``(line, column)`` pair."""
    offset = max(0, min(offset, len(source)))
    preceding = source[:offset].split("\n")
    return len(preceding), len(preceding[-1]) + 1


def _split_params(
    source: str, open_idx: int,
) -> tuple[list[tuple[str, int]], int | None]:
    """Split the parameter list at top-level commas.

    Returns ``(chunks, close_idx)``; ``close_idx`` is None when the list is
    never closed.
    """
    chunks: list[tuple[str, int]] = []
    stack: list[str] = []
    start = open_idx + 1
    for idx in range(open_idx + 1, len(source)):
        ch = source[idx]
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if stack and stack[-1] == ch:
                stack.pop()
            elif not stack and ch == ")":
                chunks.append((source[start:idx], start))
                return chunks, idx
        elif ch == "," and not stack:
            chunks.append((source[start:idx], start))
            start = idx + 1
    return chunks, None


def _parse_param(chunk: str, start: int, errors: list[HeaderError]) -> ParsedParam | None:
    leading = len(chunk) - len(chunk.lstrip())
    if not chunk.strip():
        errors.append(HeaderError("empty parameter", start + leading))
        return None
    m = _PARAM_RE.fullmatch(chunk)
    if m is None:
        errors.append(HeaderError(
            f"malformed parameter {chunk.strip()!r}", start + leading,
        ))
        return None
    type_source = m.group("type")
    type_offset = start + m.start("type") if type_source is not None else start
    if type_source is not None:
        if not type_source.strip():
            errors.append(HeaderError("missing type after ':'", type_offset))
            return None
        type_offset += len(type_source) - len(type_source.lstrip())
        type_source = type_source.strip()
    return ParsedParam(
        name=m.group("name"),
        optional=bool(m.group("optional") or m.group("qmark")),
        type_source=type_source,
        type_offset=type_offset,
        offset=start + m.start("name"),
    )


def parse_header(source: str) -> HeaderParseResult:
    """Parse ``Name(param, ...)[: ReturnType]`` without interpreting types."""
    errors: list[HeaderError] = []
    open_idx = source.find("(")
    if open_idx < 0:
        return HeaderParseFailure((
            HeaderError("expected '(' after operation name", len(source.rstrip())),
        ))

    name = source[:open_idx].strip()
    if not name:
        errors.append(HeaderError("missing operation name", open_idx))
    elif any(ch in name for ch in "),{}"):
        errors.append(HeaderError(
            f"malformed operation name {name!r}", len(source) - len(source.lstrip()),
        ))

    chunks, close_idx = _split_params(source, open_idx)
    if close_idx is None:
        errors.append(HeaderError("unbalanced parameter list: missing ')'", open_idx))
        return HeaderParseFailure(tuple(errors))

    # A trailing comma before the closing paren is allowed in multi-line headers.
    if len(chunks) > 1 and not chunks[-1][0].strip() and chunks[-2][0].strip():
        chunks = chunks[:-1]
    params: list[ParsedParam] = []
    seen: set[str] = set()
    if not (len(chunks) == 1 and not chunks[0][0].strip()):
        for chunk, start in chunks:
            param = _parse_param(chunk, start, errors)
            if param is None:
                continue
            if param.name in seen:
                errors.append(HeaderError(
                    f"duplicate parameter name {param.name!r}", param.offset,
                ))
                continue
            seen.add(param.name)
            params.append(param)

    return_source: str | None = None
    return_offset = close_idx + 1
    rest = source[close_idx + 1:]
    if rest.strip():
        stripped = rest.lstrip()
        colon_idx = close_idx + 1 + (len(rest) - len(stripped))
        if stripped.startswith(":"):
            after = source[colon_idx + 1:]
            if after.strip():
                return_offset = colon_idx + 1 + (len(after) - len(after.lstrip()))
                return_source = after.strip()
            else:
                errors.append(HeaderError("missing return type after ':'", colon_idx))
        else:
            errors.append(HeaderError(
                f"unexpected text after parameter list: {stripped[:20]!r}", colon_idx,
            ))

    if errors:
        return HeaderParseFailure(tuple(errors))
    return ParsedHeader(
        name=name,
        params=tuple(params),
        return_source=return_source,
        return_offset=return_offset,
    )


def parsed_header_to_signature(parsed: ParsedHeader) -> Signature:
    """Interpret the raw type phrases. Raises ``TypeParseError``."""
    params: list[Parameter] = []
    for param in parsed.params:
        param_type: Type | None = None
        if param.type_source is not None:
            param_type = parse_type(param.type_source, param.type_offset)
        params.append(Parameter(name=param.name, type=param_type, optional=param.optional))
    return_type: Type | None = None
    if parsed.return_source is not None:
        return_type = parse_type(parsed.return_source, parsed.return_offset)
    return Signature(name=parsed.name, params=tuple(params), return_type=return_type)


@dataclass(frozen=True, slots=True)
class FormattedHeader:
    """Typeset header plus the pieces of the descriptive sentence (HTML)."""

    name: str
    header_html: str
    params_html: str
    return_html: str


def _param_html(param: Parameter, *, with_type_in_parens: bool) -> str:
    out = f"<var>{html.escape(param.name)}</var>"
    if param.type is not None:
        type_html = html.escape(render_type(param.type))
        out += f" ({type_html})" if with_type_in_parens else f": {type_html}"
    if param.optional:
        out = "optional " + out
    return out


def format_header(signature: Signature) -> FormattedHeader:
    name = html.escape(signature.name)
    params = signature.params
    header_params = ", ".join(_param_html(p, with_type_in_parens=False) for p in params)
    header_html = f"{name}({header_params})"
    if signature.return_type is not None:
        header_html += f": {html.escape(render_type(signature.return_type))}"

    described = [_param_html(p, with_type_in_parens=True) for p in params]
    if not described:
        params_html = "no arguments"
    elif len(described) == 1:
        params_html = f"argument {described[0]}"
    elif len(described) == 2:
        params_html = f"arguments {described[0]} and {described[1]}"
    else:
        params_html = f"arguments {', '.join(described[:-1])}, and {described[-1]}"

    if signature.return_type is None:
        return_html = "unknown"
    else:
        return_html = html.escape(render_type(signature.return_type))
    return FormattedHeader(
        name=name,
        header_html=header_html,
        params_html=params_html,
        return_html=return_html,
    )
