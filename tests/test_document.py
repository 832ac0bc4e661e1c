"""End-to-end tests for the two-pass build in specbiblio.document."""
from __future__ import annotations

import pytest
from bs4 import BeautifulSoup
from bs4.element import Tag

from specbiblio.biblio import BiblioIndex, ClauseEntry, DuplicateIdError, OpEntry
from specbiblio.diagnostics import Diagnostic
from specbiblio.document import BuildOptions, BuildResult, build_document

NS = "https://example.org/spec"

ABSTRACT_CLAUSE = """
<emu-clause id="sec-things">
  <h1>Things</h1>
  <emu-table id="table-thing-methods" type="abstract methods" of="Thing">
    <table><tbody>
      <tr><td>Foo(x: a String): a Boolean</td><td>Does foo.</td></tr>
    </tbody></table>
  </emu-table>
  <emu-concrete-method-dfns for="Foo"></emu-concrete-method-dfns>
</emu-clause>
"""

CONCRETE_CLAUSES = """
<emu-clause id="sec-widget-foo" type="concrete method">
  <h1>Foo(x: a String): a Boolean</h1>
  <dl class="header"><dt>for</dt><dd>a Widget</dd></dl>
</emu-clause>
<emu-clause id="sec-gadget-foo" type="concrete method">
  <h1>Foo(x)</h1>
  <dl class="header"><dt>for</dt><dd>a Gadget</dd></dl>
</emu-clause>
"""


def _build(markup: str, **kwargs: object) -> tuple[BeautifulSoup, BuildResult]:
    soup = BeautifulSoup(markup, "html.parser")
    options = BuildOptions(namespace=NS, **kwargs)  # type: ignore[arg-type]
    return soup, build_document(soup, options)


def _listing_items(soup: BeautifulSoup) -> list[tuple[str, str]]:
    listing = soup.find("emu-concrete-method-dfns")
    assert isinstance(listing, Tag)
    items = []
    for li in listing.find_all("li"):
        link = li.find("a")
        items.append((link["href"], li.get_text()))
    return items


class TestConcreteMethodListing:
    def test_two_definitions_in_declaration_order(self) -> None:
        soup, result = _build(ABSTRACT_CLAUSE + CONCRETE_CLAUSES)
        assert _listing_items(soup) == [
            ("#sec-widget-foo", "2 a Widget"),
            ("#sec-gadget-foo", "3 a Gadget"),
        ]
        assert result.diagnostics == ()

    def test_no_definitions_renders_empty_list(self) -> None:
        soup, result = _build(ABSTRACT_CLAUSE)
        listing = soup.find("emu-concrete-method-dfns")
        ul = listing.find("ul")
        assert ul is not None and ul.find("li") is None
        assert result.diagnostics == ()

    def test_other_namespace_excluded(self) -> None:
        soup, _ = _build(ABSTRACT_CLAUSE + CONCRETE_CLAUSES + """
<emu-clause id="sec-other" namespace="https://example.org/other">
  <h1>Other</h1>
  <emu-clause id="sec-other-foo" type="concrete method">
    <h1>Foo()</h1>
    <dl class="header"><dt>for</dt><dd>an Other</dd></dl>
  </emu-clause>
</emu-clause>
""")
        assert [href for href, _ in _listing_items(soup)] == ["#sec-widget-foo", "#sec-gadget-foo"]

    def test_external_definitions_follow_local_ones(self) -> None:
        external = BiblioIndex()
        external.add(ClauseEntry(id="sec-ext", number="7.1", title="Foo", namespace=NS))
        external.add(OpEntry(
            aoid="Foo", kind="concrete method", namespace=NS, ref_id="sec-ext", for_type="a Gizmo",
        ))
        soup, result = _build(ABSTRACT_CLAUSE + CONCRETE_CLAUSES, external=(external,))
        assert _listing_items(soup)[-1] == ("#sec-ext", "7.1 a Gizmo")
        assert result.local.by_id("sec-ext") is None
        assert result.biblio.by_id("sec-ext") is not None

    def test_listing_without_for_warns(self) -> None:
        _, result = _build("<emu-concrete-method-dfns></emu-concrete-method-dfns>")
        assert [d.rule_id for d in result.diagnostics] == ["concrete-method-dfns"]


class TestXrefs:
    def test_href_to_later_clause_resolves_to_number(self) -> None:
        soup, result = _build(
            '<emu-clause id="sec-a"><h1>A</h1><p><emu-xref href="#sec-b"></emu-xref></p></emu-clause>'
            '<emu-clause id="sec-b"><h1>B</h1></emu-clause>',
        )
        link = soup.find("emu-xref").find("a")
        assert link["href"] == "#sec-b"
        assert link.get_text() == "2"
        assert result.diagnostics == ()

    def test_title_attribute_uses_clause_title(self) -> None:
        soup, _ = _build(
            '<emu-clause id="sec-b"><h1>Bees</h1><emu-xref href="#sec-b" title></emu-xref></emu-clause>',
        )
        assert soup.find("emu-xref").find("a").get_text() == "Bees"

    def test_existing_content_is_wrapped(self) -> None:
        soup, _ = _build(
            '<emu-clause id="sec-b"><h1>B</h1><emu-xref href="#sec-b">this <i>clause</i></emu-xref></emu-clause>',
        )
        link = soup.find("emu-xref").find("a")
        assert link.get_text() == "this clause"
        assert link.find("i") is not None

    def test_aoid_resolves_to_declaration_anchor(self) -> None:
        soup, _ = _build(ABSTRACT_CLAUSE + CONCRETE_CLAUSES + '<p><emu-xref aoid="Foo"></emu-xref></p>')
        link = soup.find("emu-xref", attrs={"aoid": "Foo"}).find("a")
        assert link["href"] == "#table-thing-methods"
        assert link.get_text() == "Foo"

    def test_aoid_falls_back_to_document_namespace(self) -> None:
        soup, result = _build(
            ABSTRACT_CLAUSE
            + '<emu-clause id="sec-n" namespace="elsewhere"><h1>N</h1>'
            '<emu-xref aoid="Foo"></emu-xref></emu-clause>',
        )
        assert soup.find("emu-xref", attrs={"aoid": "Foo"}).find("a") is not None
        assert result.diagnostics == ()

    def test_unresolved_href_reported_and_left_unlinked(self) -> None:
        soup, result = _build('<emu-clause id="sec-a"><h1>A</h1><emu-xref href="#nope">x</emu-xref></emu-clause>')
        assert soup.find("emu-xref").find("a") is None
        assert len(result.diagnostics) == 1
        diagnostic = result.diagnostics[0]
        assert diagnostic.rule_id == "xref-not-found"
        assert "nope" in diagnostic.message
        assert diagnostic.node.name == "emu-xref"

    def test_unresolved_aoid(self) -> None:
        _, result = _build('<emu-xref aoid="Missing"></emu-xref>')
        assert [d.rule_id for d in result.diagnostics] == ["xref-not-found"]

    def test_xref_without_target(self) -> None:
        _, result = _build("<emu-xref>x</emu-xref>")
        assert [d.rule_id for d in result.diagnostics] == ["invalid-xref"]

    def test_href_to_table_resolves_to_table_number(self) -> None:
        soup, result = _build(
            '<emu-table id="table-plain"><table></table></emu-table>'
            + ABSTRACT_CLAUSE
            + '<p><emu-xref href="#table-thing-methods"></emu-xref></p>',
        )
        link = soup.find("emu-xref", attrs={"href": "#table-thing-methods"}).find("a")
        assert link["href"] == "#table-thing-methods"
        assert link.get_text() == "Table 2"
        assert result.diagnostics == ()

    def test_href_to_table_with_title_uses_caption(self) -> None:
        soup, _ = _build(ABSTRACT_CLAUSE + '<p><emu-xref href="#table-thing-methods" title></emu-xref></p>')
        link = soup.find("emu-xref", attrs={"href": "#table-thing-methods"}).find("a")
        assert link.get_text() == "Abstract Methods of Thing"

    def test_non_fragment_href_is_invalid(self) -> None:
        soup, result = _build('<emu-xref href="other.html#sec-a">a</emu-xref>')
        assert soup.find("emu-xref").find("a") is None
        assert [d.rule_id for d in result.diagnostics] == ["invalid-xref"]
        assert "other.html#sec-a" in result.diagnostics[0].message


class TestClauses:
    def test_numbers_and_annexes(self) -> None:
        soup, result = _build(
            '<emu-clause id="c1"><h1>One</h1>'
            '<emu-clause id="c1-1"><h1>One One</h1></emu-clause>'
            '<emu-clause id="c1-2"><h1>One Two</h1>'
            '<emu-clause id="c1-2-1"><h1>Deep</h1></emu-clause></emu-clause></emu-clause>'
            '<emu-clause id="c2"><h1>Two</h1></emu-clause>'
            '<emu-annex id="a"><h1>Annex</h1><emu-annex id="a-1"><h1>Sub</h1></emu-annex></emu-annex>'
            '<emu-annex id="b"><h1>Annex B</h1></emu-annex>',
        )
        assert [c.number for c in result.clauses] == ["1", "1.1", "1.2", "1.2.1", "2", "A", "A.1", "B"]
        entry = result.biblio.by_id("c1-2-1")
        assert isinstance(entry, ClauseEntry)
        assert entry.parent == "c1-2"
        assert entry.title == "Deep"
        assert soup.find("emu-annex").find("span", class_="secnum").get_text() == "A"

    def test_clause_without_id_still_numbered(self) -> None:
        _, result = _build("<emu-clause><h1>Anon</h1></emu-clause><emu-clause id=\"x\"><h1>X</h1></emu-clause>")
        assert [c.number for c in result.clauses] == ["1", "2"]
        assert len(result.local) == 1

    def test_operation_clause_registers_op(self) -> None:
        soup, result = _build(
            '<emu-clause id="sec-tostring" type="abstract operation" effects="user-code">'
            "<h1>ToString(argument: an ECMAScript language value): a String</h1></emu-clause>",
        )
        op = result.biblio.by_aoid("ToString", NS)
        assert op is not None
        assert op.ref_id == "sec-tostring"
        assert op.effects == ("user-code",)
        assert op.signature is not None and op.signature.params[0].name == "argument"
        clause = result.biblio.by_id("sec-tostring")
        assert isinstance(clause, ClauseEntry) and clause.title == "ToString"
        assert soup.find("h1").find("var").get_text() == "argument"

    def test_malformed_operation_header(self) -> None:
        _, result = _build('<emu-clause id="sec-bad" type="abstract operation"><h1>Bad(a</h1></emu-clause>')
        assert [d.rule_id for d in result.diagnostics] == ["header-format"]
        diagnostic: Diagnostic = result.diagnostics[0]
        assert (diagnostic.line, diagnostic.column) == (1, 4)
        assert result.biblio.by_aoid("Bad", NS) is None
        assert result.biblio.by_id("sec-bad") is not None

    def test_concrete_method_without_for_warns(self) -> None:
        _, result = _build('<emu-clause id="sec-c" type="concrete method"><h1>Foo()</h1></emu-clause>')
        assert [d.rule_id for d in result.diagnostics] == ["concrete-method-for"]
        assert len(result.biblio.by_abstract_method_aoid("Foo", NS)) == 1

    def test_operation_clause_without_id(self) -> None:
        _, result = _build('<emu-clause type="abstract operation"><h1>Anon()</h1></emu-clause>')
        assert [d.rule_id for d in result.diagnostics] == ["clause-id-required"]
        assert len(result.biblio) == 0


class TestStructuralErrors:
    def test_duplicate_local_ids_abort(self) -> None:
        with pytest.raises(DuplicateIdError):
            _build('<emu-clause id="x"><h1>A</h1></emu-clause><emu-clause id="x"><h1>B</h1></emu-clause>')

    def test_duplicate_with_external_aborts_when_strict(self) -> None:
        external = BiblioIndex()
        external.add(ClauseEntry(id="sec-things", number="9", title="Things", namespace=NS))
        with pytest.raises(DuplicateIdError):
            _build(ABSTRACT_CLAUSE, external=(external,))

    def test_supplementary_external_yields(self) -> None:
        external = BiblioIndex()
        external.add(ClauseEntry(id="sec-things", number="9", title="Things", namespace=NS))
        _, result = _build(ABSTRACT_CLAUSE, external=(external,), merge_policy="local-wins")
        entry = result.biblio.by_id("sec-things")
        assert isinstance(entry, ClauseEntry) and entry.number == "1"

    def test_imports_sharing_an_id_abort_under_any_policy(self) -> None:
        first = BiblioIndex()
        first.add(ClauseEntry(id="sec-x", number="1", title="X", namespace=NS))
        second = BiblioIndex()
        second.add(ClauseEntry(id="sec-x", number="9", title="X", namespace=NS))
        page = '<emu-xref href="#sec-x"></emu-xref>'
        for external in ((first, second), (second, first)):
            for policy in ("strict", "local-wins"):
                with pytest.raises(DuplicateIdError):
                    _build(page, external=external, merge_policy=policy)

    def test_supplementary_imports_without_overlap_both_apply(self) -> None:
        first = BiblioIndex()
        first.add(ClauseEntry(id="sec-x", number="1", title="X", namespace=NS))
        second = BiblioIndex()
        second.add(ClauseEntry(id="sec-y", number="2", title="Y", namespace=NS))
        soup, result = _build(
            '<emu-xref href="#sec-x"></emu-xref><emu-xref href="#sec-y"></emu-xref>',
            external=(first, second),
            merge_policy="local-wins",
        )
        assert [a.get_text() for a in soup.find_all("a")] == ["1", "2"]
        assert result.diagnostics == ()


class TestOptions:
    def test_namespace_required(self) -> None:
        with pytest.raises(ValueError):
            BuildOptions(namespace="")

    def test_unknown_policy(self) -> None:
        with pytest.raises(ValueError):
            BuildOptions(namespace=NS, merge_policy="newest")  # type: ignore[arg-type]

    def test_forwarding_sink(self) -> None:
        seen: list[Diagnostic] = []
        soup = BeautifulSoup('<emu-xref href="#gone"></emu-xref>', "html.parser")
        result = build_document(soup, BuildOptions(namespace=NS), seen.append)
        assert seen == list(result.diagnostics)
        assert len(seen) == 1

    def test_local_index_frozen_after_build(self) -> None:
        _, result = _build(ABSTRACT_CLAUSE)
        assert result.local.frozen and result.biblio.frozen
