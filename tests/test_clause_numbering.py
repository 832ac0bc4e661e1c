"""Tests for specbiblio.clause_numbering."""
from __future__ import annotations

import pytest

from specbiblio.clause_numbering import (
    ClauseNumberingError,
    ClauseNumberIterator,
    ClauseNumberState,
    advance,
    annex_letter,
)

PARENT = object()


class TestIterator:
    def test_main_then_annex_sequence(self) -> None:
        it = ClauseNumberIterator()
        assert it.next([], "clause") == "1"
        assert it.next([PARENT], "clause") == "1.1"
        assert it.next([PARENT], "clause") == "1.2"
        assert it.next([PARENT, PARENT], "clause") == "1.2.1"
        assert it.next([], "clause") == "2"
        assert it.next([], "annex") == "A"
        assert it.next([PARENT], "annex") == "A.1"
        assert it.next([PARENT], "annex") == "A.2"
        assert it.next([PARENT, PARENT], "annex") == "A.2.1"
        assert it.next([], "annex") == "B"

    def test_new_child_sequence_restarts(self) -> None:
        it = ClauseNumberIterator()
        it.next([], "clause")
        it.next([PARENT], "clause")
        it.next([PARENT, PARENT], "clause")
        it.next([PARENT, PARENT], "clause")
        assert it.next([PARENT], "clause") == "1.2"
        assert it.next([PARENT, PARENT], "clause") == "1.2.1"

    def test_annex_independent_of_main_count(self) -> None:
        it = ClauseNumberIterator()
        for _ in range(7):
            it.next([], "clause")
        assert it.next([], "annex") == "A"

    def test_annex_mode_does_not_revert(self) -> None:
        it = ClauseNumberIterator()
        it.next([], "annex")
        assert it.next([], "clause") == "B"


class TestAdvance:
    def test_pure(self) -> None:
        start = ClauseNumberState()
        state, number = advance(start, 0, "clause")
        assert number == "1"
        assert start == ClauseNumberState()
        assert state == ClauseNumberState(counters=(1,), in_annex=False)

    def test_skipping_a_level_is_an_error(self) -> None:
        state, _ = advance(ClauseNumberState(), 0, "clause")
        with pytest.raises(ClauseNumberingError):
            advance(state, 2, "clause")

    def test_negative_depth(self) -> None:
        with pytest.raises(ClauseNumberingError):
            advance(ClauseNumberState(), -1, "clause")


class TestAnnexLetter:
    @pytest.mark.parametrize(
        ("n", "expected"), [(1, "A"), (2, "B"), (26, "Z"), (27, "AA"), (28, "AB"), (53, "BA")],
    )
    def test_letters(self, n: int, expected: str) -> None:
        assert annex_letter(n) == expected

    def test_zero_rejected(self) -> None:
        with pytest.raises(ValueError):
            annex_letter(0)
