"""Abstract-methods table classifier.

``<emu-table type="abstract methods" of="Module Record">`` declares one
abstract method per row: the first cell holds the header
(``Link(): a normal completion``), the second a description. Each parsed
row registers an ``OpEntry`` of kind ``"abstract method"`` and has its
header typeset and a descriptive sentence prepended to the description.
Every ``<emu-table>`` with an id, of any type, is also registered as a
numbered ``TableEntry``.

Row headers may be wrapped in diff markup: a leading ``<del>`` is skipped
to the next non-deleted element; a leading ``<ins>`` is itself the header.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4.element import PageElement, Tag

from specbiblio.biblio import ABSTRACT_METHOD, BiblioIndex, OpEntry, TableEntry
from specbiblio.clauses import signature_from_header
from specbiblio.diagnostics import DiagnosticSink, warn_node
from specbiblio.header_parser import format_header
from specbiblio.html_utils import (
    element_children,
    first_element_child,
    is_empty,
    new_tag,
    replace_contents,
    traverse_while,
)
from specbiblio.types import Signature

TABLE_TYPES = frozenset({"abstract methods"})


@dataclass(frozen=True, slots=True)
class MethodDeclaration:
    name: str
    signature: Signature
    row_id: str | None


@dataclass(slots=True)
class Table:
    node: Tag
    table: Tag | None
    table_type: str | None
    of: str | None = None
    number: int = 1
    methods: list[MethodDeclaration] = field(default_factory=list)

    @property
    def id(self) -> str | None:
        return str(self.node.get("id") or "") or None


def _is_generated(el: PageElement) -> bool:
    return isinstance(el, Tag) and (
        el.name == "emu-caption" or (el.name == "span" and el.get_text() == "")
    )


def _is_del(el: PageElement) -> bool:
    return isinstance(el, Tag) and el.name == "del"


def locate_row_header(cell: Tag) -> Tag | None:
    """Find the header element of a row, looking through diff markup."""
    first = traverse_while(next(iter(cell.children), None), "next_sibling", is_empty)
    if isinstance(first, Tag) and first.name == "del":
        found = traverse_while(first, "next_element_sibling", _is_del)
        return found if isinstance(found, Tag) else None
    if isinstance(first, Tag) and first.name == "ins":
        return first
    return cell


def _rows(table: Tag) -> list[Tag]:
    body = table.find("tbody") or table
    return [row for row in element_children(body) if row.name == "tr"]


def process_table(
    node: Tag, namespace: str, biblio: BiblioIndex, sink: DiagnosticSink, number: int = 1,
) -> Table:
    """Classify an ``<emu-table>`` and register it and any abstract methods.

    ``number`` is the table's position among the document's tables. Any
    table with an id gets a ``TableEntry``, registered before its rows so
    that id-less rows can point at it.
    """
    table = _classify_table(node, sink)
    table.number = number
    if table.id is not None:
        biblio.add(TableEntry(
            id=table.id,
            number=number,
            caption=str(node.get("caption") or ""),
            namespace=namespace,
        ))
    if table.table_type is not None:
        _register_methods(table, namespace, biblio, sink)
    return table


def _classify_table(node: Tag, sink: DiagnosticSink) -> Table:
    table_type = node.get("type")
    table_type = str(table_type) if table_type else None
    if table_type is not None and table_type not in TABLE_TYPES:
        warn_node(sink, node, "emu-table-invalid-type", f'<emu-table> has invalid type "{table_type}"')
        table_type = None

    found = traverse_while(first_element_child(node), "next_element_sibling", _is_generated)
    table_el = found if isinstance(found, Tag) and found.name == "table" else None
    if table_el is None and table_type is not None:
        warn_node(
            sink, node, "emu-table-missing",
            f'<emu-table type="{table_type}"> must contain a <table> element',
        )
        table_type = None

    table = Table(node=node, table=table_el, table_type=table_type)
    if table_type is None or table_el is None:
        return table

    of = node.get("of")
    if not of:
        warn_node(
            sink, node, "emu-abstract-methods-invalid",
            "<emu-table type=\"abstract methods\"> must have an 'of' attribute",
        )
        table.table_type = None
        return table
    table.of = str(of)
    if not node.get("caption"):
        node["caption"] = f"Abstract Methods of {table.of}"

    _classify_rows(table, table_el, sink)
    return table


def _classify_rows(table: Table, table_el: Tag, sink: DiagnosticSink) -> None:
    rows = _rows(table_el)
    for tr in rows:
        cells = element_children(tr)
        if len(cells) < 2:
            warn_node(
                sink, tr, "emu-abstract-methods-invalid",
                '<emu-table type="abstract methods"> <tr>s must contain at least two <td>s',
            )
            continue

        header = locate_row_header(cells[0])
        if header is None:
            continue
        if header.name not in ("td", "ins"):
            warn_node(
                sink, header, "missing-header",
                f"could not locate header element; found <{header.name}>",
            )
            continue

        signature = signature_from_header(header, sink)
        if signature is None:
            continue

        row_id = str(tr.get("id") or "") or None
        if len(rows) > 1 and row_id is None:
            warn_node(
                sink, tr, "abstract-method-id",
                "<tr>s which define abstract methods should have their own id",
            )
        table.methods.append(MethodDeclaration(name=signature.name, signature=signature, row_id=row_id))

        formatted = format_header(signature)
        replace_contents(header, formatted.header_html)
        sentence = (
            f"The abstract method {formatted.name} takes {formatted.params_html}"
            f" and returns {formatted.return_html}."
        )
        if header.name == "ins":
            sentence = f"<ins>{sentence}</ins>"
        para = new_tag(tr, "p")
        replace_contents(para, sentence)
        cells[1].insert(0, para)


def _register_methods(
    table: Table, namespace: str, biblio: BiblioIndex, sink: DiagnosticSink,
) -> None:
    for method in table.methods:
        if method.row_id is None and table.id is None:
            warn_node(
                sink, table.node, "abstract-method-id",
                f"abstract method {method.name} has no row id and the table has no id;"
                " it cannot be referenced",
            )
            continue
        biblio.add(OpEntry(
            aoid=method.name,
            kind=ABSTRACT_METHOD,
            namespace=namespace,
            signature=method.signature,
            id=method.row_id,
            ref_id=table.id,
        ))
