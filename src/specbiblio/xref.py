"""Second-pass reference resolution.

``Xref`` resolves ``<emu-xref href="#id">`` by id and ``<emu-xref
aoid="Name">`` by ``(namespace, aoid)``, falling back to the document
namespace. ``ConcreteMethodDfns`` expands ``<emu-concrete-method-dfns
for="Name">`` into a list of links to every concrete definition of the
abstract method; the links it generates are themselves ``Xref``s.
"""

from __future__ import annotations

from dataclasses import dataclass

from bs4.element import Tag

from specbiblio.biblio import BiblioEntry, BiblioIndex, ClauseEntry, OpEntry, TableEntry
from specbiblio.clauses import Clause
from specbiblio.diagnostics import DiagnosticSink, warn_node
from specbiblio.html_utils import is_blank, new_tag


@dataclass(frozen=True, slots=True)
class ResolvedXref:
    entry: BiblioEntry
    anchor: str
    label: str


@dataclass(slots=True)
class Xref:
    node: Tag
    namespace: str
    clause: Clause | None = None
    resolved: ResolvedXref | None = None

    def lookup(
        self, biblio: BiblioIndex, default_namespace: str, sink: DiagnosticSink,
    ) -> BiblioEntry | None:
        href = self.node.get("href")
        aoid = self.node.get("aoid")
        if href:
            href = str(href)
            if not href.startswith("#"):
                warn_node(
                    sink, self.node, "invalid-xref",
                    f"xref to anything other than a fragment id is not supported (is {href!r});"
                    " use href=\"#sec-id\" instead",
                )
                return None
            target = href[1:]
            entry = biblio.by_id(target)
            if entry is None:
                warn_node(
                    sink, self.node, "xref-not-found",
                    f"can't find clause, table or operation with id {target}",
                )
            return entry
        if aoid:
            aoid = str(aoid)
            op = biblio.by_aoid(aoid, self.namespace)
            if op is None and self.namespace != default_namespace:
                op = biblio.by_aoid(aoid, default_namespace)
            if op is None:
                warn_node(
                    sink, self.node, "xref-not-found",
                    f"can't find abstract op with aoid {aoid} in namespace {self.namespace}",
                )
            return op
        warn_node(sink, self.node, "invalid-xref", "<emu-xref> must have an href or aoid attribute")
        return None

    def resolve(
        self, biblio: BiblioIndex, default_namespace: str, sink: DiagnosticSink,
    ) -> ResolvedXref | None:
        entry = self.lookup(biblio, default_namespace, sink)
        if entry is None:
            return None
        match entry:
            case ClauseEntry():
                anchor = entry.id
                label = entry.title if self.node.has_attr("title") else entry.number
            case TableEntry():
                anchor = entry.id
                label = entry.caption if self.node.has_attr("title") and entry.caption else entry.label
            case OpEntry():
                if entry.anchor is None:
                    return None
                anchor = entry.anchor
                label = entry.aoid
            case _:
                raise TypeError(f"not a biblio entry: {entry!r}")
        self.resolved = ResolvedXref(entry=entry, anchor=anchor, label=label)
        self._link(self.resolved)
        return self.resolved

    def _link(self, resolved: ResolvedXref) -> None:
        link = new_tag(self.node, "a", href=f"#{resolved.anchor}")
        if all(is_blank(child) for child in self.node.children):
            self.node.clear()
            link.string = resolved.label
        else:
            for child in list(self.node.children):
                link.append(child.extract())
        self.node.append(link)


@dataclass(slots=True)
class ConcreteMethodDfns:
    node: Tag
    for_aoid: str
    clause: Clause | None = None

    def build(
        self, biblio: BiblioIndex, default_namespace: str, sink: DiagnosticSink,
    ) -> list[Xref]:
        """Append the listing and return the xrefs it generated."""
        namespace = self.clause.namespace if self.clause is not None else default_namespace
        ul = new_tag(self.node, "ul")
        xrefs: list[Xref] = []
        for definition in biblio.by_abstract_method_aoid(self.for_aoid, namespace):
            anchor = definition.anchor
            if anchor is None:
                continue
            declaration = biblio.by_id(anchor)
            match declaration:
                case ClauseEntry(number=number):
                    label = f"{number} {definition.for_type or ''}".strip()
                case OpEntry() | TableEntry() | None:
                    warn_node(
                        sink, self.node, "concrete-method-dfns",
                        f"concrete definition of {self.for_aoid} at #{anchor} is not a clause",
                    )
                    label = definition.for_type or anchor
                case _:
                    raise TypeError(f"not a biblio entry: {declaration!r}")
            li = new_tag(self.node, "li")
            xref_node = new_tag(self.node, "emu-xref", href=f"#{anchor}")
            xref_node.string = label
            li.append(xref_node)
            ul.append(li)
            xrefs.append(Xref(node=xref_node, namespace=namespace, clause=self.clause))
        self.node.append(ul)
        return xrefs
