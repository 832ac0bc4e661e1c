"""Tests for scripts/build_biblio.py."""
from __future__ import annotations

from pathlib import Path

import orjson

from scripts.build_biblio import main

DOC = """
<emu-clause id="sec-records">
  <h1>Records</h1>
  <emu-table id="table-record-methods" type="abstract methods" of="Record">
    <table><tbody><tr><td>Link()</td><td>Links.</td></tr></tbody></table>
  </emu-table>
</emu-clause>
"""


def test_exports_snapshot_and_document(tmp_path: Path) -> None:
    source = tmp_path / "spec.html"
    source.write_text(DOC, encoding="utf-8")
    export = tmp_path / "out" / "biblio.json"
    output = tmp_path / "out" / "spec.html"

    status = main([
        str(source), "--namespace", "https://example.org/records",
        "--export", str(export), "--output", str(output),
    ])

    assert status == 0
    snapshot = orjson.loads(export.read_bytes())
    assert "sec-records" in snapshot["idToEntry"]
    assert snapshot["byAoidNamespace"]["https://example.org/records"]["Link"] == [
        "table-record-methods",
    ]
    assert "The abstract method Link takes no arguments" in output.read_text(encoding="utf-8")


def test_import_collision_aborts_unless_supplementary(tmp_path: Path) -> None:
    source = tmp_path / "spec.html"
    source.write_text(DOC, encoding="utf-8")
    export = tmp_path / "biblio.json"
    assert main([str(source), "--namespace", "ns", "--export", str(export)]) == 0

    args = [str(source), "--namespace", "ns", "--import-biblio", str(export)]
    assert main(args) == 1
    assert main([*args, "--supplementary"]) == 0
