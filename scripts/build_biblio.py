#!/usr/bin/env python3
"""Build the biblio index of one specification document.

Runs both passes over an HTML document, writes the rewritten document
and, optionally, an exported biblio snapshot other documents can import.

Usage::

    python3 scripts/build_biblio.py spec.html --namespace https://example.org/spec \
        [--import-biblio other.json ...] [--supplementary] \
        [--export biblio.json] [--output out.html] [--verbose]

Exit status is 0 when only recoverable diagnostics were reported, 1 when
the build was aborted by a structural error (e.g. a duplicate id).
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from bs4 import BeautifulSoup

from specbiblio.biblio import BiblioError
from specbiblio.document import BuildOptions, build_document
from specbiblio.io_utils import load_biblio, save_biblio

log = logging.getLogger("build_biblio")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("input", type=Path, help="HTML specification document")
    parser.add_argument(
        "--namespace", required=True,
        help="Default namespace for this document's entries",
    )
    parser.add_argument(
        "--import-biblio", type=Path, action="append", default=[],
        help="Exported biblio snapshot to merge (repeatable)",
    )
    parser.add_argument(
        "--supplementary", action="store_true",
        help="Imported entries yield to local ones on id collision "
             "(default: any collision is fatal)",
    )
    parser.add_argument("--export", type=Path, help="Write this document's biblio snapshot")
    parser.add_argument("--output", type=Path, help="Write the rewritten document")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    options = BuildOptions(
        namespace=args.namespace,
        external=tuple(load_biblio(path) for path in args.import_biblio),
        merge_policy="local-wins" if args.supplementary else "strict",
    )
    soup = BeautifulSoup(args.input.read_text(encoding="utf-8"), "html.parser")

    try:
        result = build_document(soup, options)
    except BiblioError as exc:
        log.error("build aborted: %s", exc)
        return 1

    log.info(
        "%s: %d entries, %d diagnostics",
        args.input, len(result.local), len(result.diagnostics),
    )
    if args.export is not None:
        save_biblio(result.local, args.export)
        log.info("exported biblio to %s", args.export)
    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(str(soup), encoding="utf-8")
    return 0


if __name__ == "__main__":
    sys.exit(main())
