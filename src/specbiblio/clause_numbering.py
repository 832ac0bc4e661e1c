"""Hierarchical clause numbering.

``advance`` is a pure transition over ``ClauseNumberState``; the
``ClauseNumberIterator`` wraps it for the document walk, which visits
clauses strictly in pre-order and never rewinds.

Main body clauses number ``1``, ``1.1``, ``1.2.1``; the first top-level
annex switches to lettering (``A``, ``A.1``, ``B``) with fresh counters,
and numbering never switches back.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, TypeAlias

ClauseKind: TypeAlias = Literal["clause", "annex"]


class ClauseNumberingError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class ClauseNumberState:
    """Per-depth counters (index 0 is top level) plus the annex flag."""

    counters: tuple[int, ...] = ()
    in_annex: bool = False


def annex_letter(n: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA."""
    if n <= 0:
        raise ValueError(f"annex ordinal must be > 0, got {n}")
    letters = ""
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def render_number(state: ClauseNumberState) -> str:
    if not state.counters:
        return ""
    top = annex_letter(state.counters[0]) if state.in_annex else str(state.counters[0])
    return ".".join([top, *(str(c) for c in state.counters[1:])])


def advance(
    state: ClauseNumberState, depth: int, kind: ClauseKind,
) -> tuple[ClauseNumberState, str]:
    """Number the next clause at ``depth`` (0 = top level)."""
    if depth < 0:
        raise ClauseNumberingError(f"depth must be >= 0, got {depth}")
    counters = list(state.counters)
    in_annex = state.in_annex

    if depth == 0:
        if kind == "annex" and not in_annex:
            in_annex = True
            counters = []
        top = counters[0] + 1 if counters else 1
        counters = [top]
    else:
        if depth > len(counters):
            raise ClauseNumberingError(
                f"clause at depth {depth} has no numbered parent "
                f"(deepest counter is {len(counters)})",
            )
        current = counters[depth] if depth < len(counters) else 0
        counters = [*counters[:depth], current + 1]

    new_state = ClauseNumberState(counters=tuple(counters), in_annex=in_annex)
    return new_state, render_number(new_state)


class ClauseNumberIterator:
    """Stateful wrapper used during the first pass."""

    def __init__(self) -> None:
        self.state = ClauseNumberState()

    def next(self, ancestors: Sequence[object], kind: ClauseKind) -> str:
        self.state, number = advance(self.state, len(ancestors), kind)
        return number
