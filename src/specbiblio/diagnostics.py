"""Diagnostics reported while building a document.

A sink is any callable accepting a ``Diagnostic``. ``DiagnosticCollector``
is the default sink: it accumulates diagnostics for reporting after each
pass and logs each one as it arrives.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, TypeAlias

from bs4.element import Tag

from specbiblio.header_parser import offset_to_line_column

log = logging.getLogger(__name__)

DiagnosticKind: TypeAlias = Literal["node", "contents"]


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One warning, located at a node and optionally a line/column in it."""

    kind: DiagnosticKind
    rule_id: str
    message: str
    node: Tag
    line: int | None = None
    column: int | None = None

    def __post_init__(self) -> None:
        if not self.rule_id:
            raise ValueError("rule_id cannot be empty")
        if self.kind == "contents" and (self.line is None or self.column is None):
            raise ValueError("contents diagnostics must carry line and column")

    def location(self) -> str:
        where = f"<{self.node.name}"
        node_id = self.node.get("id")
        if node_id:
            where += f' id="{node_id}"'
        where += ">"
        if self.line is not None:
            where += f":{self.line}:{self.column}"
        return where


DiagnosticSink: TypeAlias = Callable[[Diagnostic], None]


class DiagnosticCollector:
    """Accumulating sink, optionally forwarding to another sink."""

    def __init__(self, forward: DiagnosticSink | None = None) -> None:
        self.diagnostics: list[Diagnostic] = []
        self._forward = forward

    def __call__(self, diagnostic: Diagnostic) -> None:
        log.warning(
            "%s (%s) at %s", diagnostic.message, diagnostic.rule_id, diagnostic.location(),
        )
        self.diagnostics.append(diagnostic)
        if self._forward is not None:
            self._forward(diagnostic)

    def __len__(self) -> int:
        return len(self.diagnostics)

    def by_rule(self, rule_id: str) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.rule_id == rule_id]


def warn_node(sink: DiagnosticSink, node: Tag, rule_id: str, message: str) -> None:
    sink(Diagnostic(kind="node", rule_id=rule_id, message=message, node=node))


def warn_contents(
    sink: DiagnosticSink,
    node: Tag,
    source: str,
    offset: int,
    rule_id: str,
    message: str,
) -> None:
    """Report a problem at ``offset`` inside ``source``, the node's text."""
    line, column = offset_to_line_column(source, offset)
    sink(Diagnostic(
        kind="contents",
        rule_id=rule_id,
        message=message,
        node=node,
        line=line,
        column=column,
    ))
