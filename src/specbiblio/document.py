"""Two-pass document build.

Pass 1 walks every element in document order: clauses are numbered and
registered, abstract-methods tables are classified, and xref /
concrete-method-listing nodes are collected. The local index is then
frozen and merged with any imported indices. Pass 2 expands the
concrete-method listings and resolves every xref against the merged
index, so references may precede their targets.

Content problems become diagnostics. ``BiblioError`` (duplicate ids,
invalid entries) propagates and aborts the build.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from bs4 import BeautifulSoup
from bs4.element import Tag

from specbiblio.biblio import BiblioIndex, MergePolicy
from specbiblio.clause_numbering import ClauseNumberIterator
from specbiblio.clauses import CLAUSE_TAGS, Clause, register_clause
from specbiblio.diagnostics import Diagnostic, DiagnosticCollector, DiagnosticSink, warn_node
from specbiblio.tables import Table, process_table
from specbiblio.xref import ConcreteMethodDfns, Xref

log = logging.getLogger(__name__)

_WALKED_TAGS = [*CLAUSE_TAGS, "emu-table", "emu-xref", "emu-concrete-method-dfns"]


@dataclass(frozen=True, slots=True)
class BuildOptions:
    """Build configuration.

    The indices in ``external`` are first combined strictly, so an id
    shared by two imports is always fatal. ``merge_policy`` then applies
    between the document and the combined imports: "strict" makes any
    shared id fatal; "local-wins" treats the imports as supplementary and
    drops their colliding entries.
    """

    namespace: str
    external: tuple[BiblioIndex, ...] = ()
    merge_policy: MergePolicy = "strict"

    def __post_init__(self) -> None:
        if not self.namespace:
            raise ValueError("namespace cannot be empty")
        if self.merge_policy not in ("strict", "local-wins"):
            raise ValueError(f"unknown merge policy {self.merge_policy!r}")


@dataclass(frozen=True, slots=True)
class BuildResult:
    local: BiblioIndex
    biblio: BiblioIndex
    clauses: tuple[Clause, ...]
    tables: tuple[Table, ...]
    xrefs: tuple[Xref, ...]
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)


@dataclass(slots=True)
class _FirstPass:
    local: BiblioIndex
    clauses: list[Clause] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)
    xrefs: list[Xref] = field(default_factory=list)
    listings: list[ConcreteMethodDfns] = field(default_factory=list)


def _enclosing_clause(node: Tag, by_node: dict[int, Clause]) -> Clause | None:
    parent = node.find_parent(list(CLAUSE_TAGS))
    if parent is None:
        return None
    return by_node.get(id(parent))


def _first_pass(root: Tag, options: BuildOptions, sink: DiagnosticSink) -> _FirstPass:
    state = _FirstPass(local=BiblioIndex())
    numbering = ClauseNumberIterator()
    by_node: dict[int, Clause] = {}

    for node in root.find_all(_WALKED_TAGS):
        enclosing = _enclosing_clause(node, by_node)
        namespace = enclosing.namespace if enclosing is not None else options.namespace
        if node.name in CLAUSE_TAGS:
            clause = register_clause(node, enclosing, numbering, state.local, sink, options.namespace)
            by_node[id(node)] = clause
            state.clauses.append(clause)
        elif node.name == "emu-table":
            state.tables.append(
                process_table(node, namespace, state.local, sink, number=len(state.tables) + 1),
            )
        elif node.name == "emu-xref":
            state.xrefs.append(Xref(node=node, namespace=namespace, clause=enclosing))
        elif node.name == "emu-concrete-method-dfns":
            for_aoid = node.get("for")
            if not for_aoid:
                warn_node(
                    sink, node, "concrete-method-dfns",
                    "<emu-concrete-method-dfns> must have a 'for' attribute",
                )
                continue
            state.listings.append(ConcreteMethodDfns(node=node, for_aoid=str(for_aoid), clause=enclosing))
    return state


def build_document(
    root: BeautifulSoup | Tag,
    options: BuildOptions,
    sink: DiagnosticSink | None = None,
) -> BuildResult:
    """Run both passes over ``root``, mutating it in place."""
    collector = DiagnosticCollector(forward=sink)

    state = _first_pass(root, options, collector)
    local = state.local.freeze()
    log.info(
        "pass 1: %d clauses, %d biblio entries, %d diagnostics",
        len(state.clauses), len(local), len(collector),
    )

    biblio = local
    if options.external:
        imported = BiblioIndex.combine(options.external)
        biblio = local.merge(imported, policy=options.merge_policy)

    xrefs = list(state.xrefs)
    for listing in state.listings:
        xrefs.extend(listing.build(biblio, options.namespace, collector))
    unresolved = 0
    for xref in xrefs:
        if xref.resolve(biblio, options.namespace, collector) is None:
            unresolved += 1
    log.info("pass 2: %d xrefs, %d unresolved", len(xrefs), unresolved)

    return BuildResult(
        local=local,
        biblio=biblio,
        clauses=tuple(state.clauses),
        tables=tuple(state.tables),
        xrefs=tuple(xrefs),
        diagnostics=tuple(collector.diagnostics),
    )
