"""Clause registration for the first pass.

Each ``<emu-clause>`` / ``<emu-annex>`` gets the next clause number and, if
it has an id, a ``ClauseEntry``. Operation clauses (``type="abstract
operation"``, ``type="concrete method"``, ...) additionally have their
``<h1>`` parsed as an operation header and register an ``OpEntry`` that
points back at the clause id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bs4.element import Tag

from specbiblio.biblio import CONCRETE_METHOD, BiblioIndex, ClauseEntry, OpEntry
from specbiblio.clause_numbering import ClauseKind, ClauseNumberIterator
from specbiblio.diagnostics import DiagnosticSink, warn_contents, warn_node
from specbiblio.header_parser import (
    HeaderParseFailure,
    TypeParseError,
    format_header,
    parse_header,
    parsed_header_to_signature,
)
from specbiblio.html_utils import element_children, header_source, new_tag, replace_contents
from specbiblio.types import Signature

log = logging.getLogger(__name__)

CLAUSE_TAGS = ("emu-clause", "emu-annex")

OPERATION_CLAUSE_TYPES = frozenset({
    "abstract operation",
    "abstract method",
    "concrete method",
    "internal method",
    "numeric method",
    "host-defined abstract operation",
    "implementation-defined abstract operation",
})


@dataclass(slots=True)
class Clause:
    node: Tag
    id: str | None
    number: str
    title: str
    namespace: str
    kind: ClauseKind
    parent: Clause | None = None
    clause_type: str | None = None
    signature: Signature | None = None

    def chain(self) -> list[Clause]:
        """Ancestors root-first, ending with this clause."""
        out: list[Clause] = []
        node: Clause | None = self
        while node is not None:
            out.append(node)
            node = node.parent
        out.reverse()
        return out


def signature_from_header(header: Tag, sink: DiagnosticSink) -> Signature | None:
    """Parse ``header``'s text; report problems and return None on failure.

    Only content errors are reported; any other exception propagates.
    """
    source = header_source(header)
    result = parse_header(source)
    if isinstance(result, HeaderParseFailure):
        for error in result.errors:
            warn_contents(sink, header, source, error.offset, "header-format", error.message)
        return None
    try:
        return parsed_header_to_signature(result)
    except TypeParseError as exc:
        warn_contents(sink, header, source, exc.offset, "type-parsing", exc.message)
        return None


def _header_dl(node: Tag) -> dict[str, str]:
    """``<dl class="header">`` fields of an operation clause."""
    for child in element_children(node):
        if child.name == "dl" and "header" in (child.get("class") or []):
            fields: dict[str, str] = {}
            key: str | None = None
            for item in element_children(child):
                if item.name == "dt":
                    key = item.get_text(" ", strip=True).lower()
                elif item.name == "dd" and key is not None:
                    fields[key] = item.get_text(" ", strip=True)
                    key = None
            return fields
    return {}


def _parse_effects(node: Tag) -> tuple[str, ...]:
    raw = node.get("effects") or ""
    return tuple(e.strip() for e in str(raw).split(",") if e.strip())


def register_clause(
    node: Tag,
    parent: Clause | None,
    numbering: ClauseNumberIterator,
    biblio: BiblioIndex,
    sink: DiagnosticSink,
    default_namespace: str,
) -> Clause:
    kind: ClauseKind = "annex" if node.name == "emu-annex" else "clause"
    ancestors = parent.chain() if parent is not None else []
    number = numbering.next(ancestors, kind)
    namespace = str(node.get("namespace") or (parent.namespace if parent else default_namespace))
    clause_id = str(node.get("id") or "") or None
    clause_type = node.get("type")
    clause_type = str(clause_type) if clause_type else None

    header = next((c for c in element_children(node) if c.name == "h1"), None)
    title = header_source(header) if header is not None else ""

    clause = Clause(
        node=node,
        id=clause_id,
        number=number,
        title=title,
        namespace=namespace,
        kind=kind,
        parent=parent,
        clause_type=clause_type,
    )

    if clause_type in OPERATION_CLAUSE_TYPES:
        if header is None:
            warn_node(sink, node, "missing-header", f'<{node.name} type="{clause_type}"> has no <h1>')
        else:
            _register_operation(clause, header, biblio, sink)

    if clause_id is not None:
        biblio.add(ClauseEntry(
            id=clause_id,
            number=number,
            title=clause.title,
            namespace=namespace,
            parent=parent.id if parent is not None else None,
        ))
    else:
        log.debug("clause %s has no id; not registered", number)

    if header is not None:
        secnum = new_tag(header, "span", **{"class": "secnum"})
        secnum.string = number
        header.insert(0, secnum)
    return clause


def _register_operation(
    clause: Clause, header: Tag, biblio: BiblioIndex, sink: DiagnosticSink,
) -> None:
    signature = signature_from_header(header, sink)
    if signature is None:
        return
    clause.signature = signature
    clause.title = signature.name
    replace_contents(header, format_header(signature).header_html)

    for_type = _header_dl(clause.node).get("for")
    if clause.clause_type == CONCRETE_METHOD and not for_type:
        warn_node(
            sink,
            clause.node,
            "concrete-method-for",
            "concrete methods must declare the type they are for in a <dl class=\"header\">",
        )
    if clause.id is None:
        warn_node(
            sink,
            clause.node,
            "clause-id-required",
            f"{clause.clause_type} clauses must have an id to be referenced",
        )
        return
    biblio.add(OpEntry(
        aoid=signature.name,
        kind=str(clause.clause_type),
        namespace=clause.namespace,
        signature=signature,
        effects=_parse_effects(clause.node),
        ref_id=clause.id,
        for_type=for_type or None,
    ))
