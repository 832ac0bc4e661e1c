"""Tests for specbiblio.type_parser — type phrases inside headers."""
from __future__ import annotations

import pytest

from specbiblio.type_parser import TypeParseError, _tokenize, parse_type
from specbiblio.types import ListType, NamedType, RecordType, UnionType, render_type


class TestTokenizer:
    def test_record_tokens(self) -> None:
        kinds = [t.kind for t in _tokenize("{ [[Value]]: a String }") if t.kind != "EOF"]
        assert kinds == ["LBRACE", "SLOT", "COLON", "WORD", "WORD", "RBRACE"]

    def test_list_suffix(self) -> None:
        kinds = [t.kind for t in _tokenize("String[]") if t.kind != "EOF"]
        assert kinds == ["WORD", "LIST_SUFFIX"]

    def test_stray_bracket_is_error_token(self) -> None:
        tokens = _tokenize("a [")
        assert tokens[1].kind == "ERROR"
        assert tokens[1].pos == 2


class TestNamedTypes:
    def test_single_word(self) -> None:
        assert parse_type("Number") == NamedType("Number")

    def test_phrase_is_normalized_to_single_spaces(self) -> None:
        assert parse_type("an   ECMAScript\nlanguage value") == NamedType(
            "an ECMAScript language value",
        )


class TestUnions:
    def test_two_way(self) -> None:
        assert parse_type("a String or undefined") == UnionType((
            NamedType("a String"), NamedType("undefined"),
        ))

    def test_three_way_is_flat(self) -> None:
        result = parse_type("A or B or C")
        assert isinstance(result, UnionType)
        assert result.alternatives == (NamedType("A"), NamedType("B"), NamedType("C"))

    def test_parenthesized_union_is_flattened(self) -> None:
        result = parse_type("(A or B) or C")
        assert result == UnionType((NamedType("A"), NamedType("B"), NamedType("C")))

    def test_leading_either_dropped(self) -> None:
        assert parse_type("either a normal completion or a throw completion") == UnionType((
            NamedType("a normal completion"), NamedType("a throw completion"),
        ))

    def test_dangling_or_fails(self) -> None:
        with pytest.raises(TypeParseError) as exc_info:
            parse_type("A or")
        assert exc_info.value.offset == 4


class TestLists:
    def test_suffix_notation(self) -> None:
        assert parse_type("String[]") == ListType(NamedType("String"))

    def test_nested_suffix(self) -> None:
        assert parse_type("Number[][]") == ListType(ListType(NamedType("Number")))

    def test_list_of_phrase(self) -> None:
        assert parse_type("a List of Strings") == ListType(NamedType("Strings"))

    def test_list_of_parenthesized_union(self) -> None:
        assert parse_type("List of (A or B)") == ListType(
            UnionType((NamedType("A"), NamedType("B"))),
        )

    def test_list_binds_tighter_than_or(self) -> None:
        assert parse_type("List of A or B") == UnionType((
            ListType(NamedType("A")), NamedType("B"),
        ))


class TestRecords:
    def test_fields(self) -> None:
        result = parse_type("{ [[Key]]: a String, [[Value]]: Number or undefined }")
        assert isinstance(result, RecordType)
        assert result.fields[0] == ("[[Key]]", NamedType("a String"))
        assert result.fields[1] == (
            "[[Value]]", UnionType((NamedType("Number"), NamedType("undefined"))),
        )

    def test_empty_record(self) -> None:
        assert parse_type("{}") == RecordType(())

    def test_unterminated_record(self) -> None:
        with pytest.raises(TypeParseError, match="missing '}'"):
            parse_type("{ a: B")

    def test_duplicate_field(self) -> None:
        with pytest.raises(TypeParseError, match="duplicate record field"):
            parse_type("{ a: B, a: C }")


class TestErrors:
    def test_empty(self) -> None:
        with pytest.raises(TypeParseError, match="end of input"):
            parse_type("")

    def test_base_offset_applied(self) -> None:
        with pytest.raises(TypeParseError) as exc_info:
            parse_type("A )", base_offset=10)
        assert exc_info.value.offset == 12

    def test_deep_parentheses_fail_cleanly(self) -> None:
        with pytest.raises(TypeParseError, match="nested too deeply"):
            parse_type("(" * 500 + "A" + ")" * 500)

    def test_deep_records_fail_cleanly(self) -> None:
        with pytest.raises(TypeParseError, match="nested too deeply"):
            parse_type("{ a: " * 500 + "A" + " }" * 500)

    def test_long_list_suffix_chain_fails_cleanly(self) -> None:
        with pytest.raises(TypeParseError, match="nested too deeply"):
            parse_type("A" + "[]" * 500)

    def test_moderate_nesting_accepted(self) -> None:
        assert parse_type("(" * 10 + "A" + ")" * 10) == NamedType("A")
        assert parse_type("List of " * 10 + "A") == parse_type("A" + "[]" * 10)


class TestRender:
    def test_render_reparses_to_same_type(self) -> None:
        original = parse_type("{ a: List of (X or Y), b: Z[] } or undefined")
        assert parse_type(render_type(original)) == original
