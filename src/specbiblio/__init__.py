"""Biblio index, operation headers, clause numbering and xref resolution."""

from specbiblio.biblio import (
    BiblioError,
    BiblioIndex,
    ClauseEntry,
    DuplicateIdError,
    InvalidEntryError,
    MissingEntryError,
    OpEntry,
    TableEntry,
)
from specbiblio.clause_numbering import ClauseNumberIterator, ClauseNumberState, advance
from specbiblio.diagnostics import Diagnostic, DiagnosticCollector
from specbiblio.document import BuildOptions, BuildResult, build_document
from specbiblio.header_parser import (
    HeaderParseFailure,
    ParsedHeader,
    offset_to_line_column,
    parse_header,
    parsed_header_to_signature,
)
from specbiblio.types import (
    ListType,
    NamedType,
    Parameter,
    RecordType,
    Signature,
    UnionType,
    render_signature,
)

__all__ = [
    "BiblioError",
    "BiblioIndex",
    "BuildOptions",
    "BuildResult",
    "ClauseEntry",
    "ClauseNumberIterator",
    "ClauseNumberState",
    "Diagnostic",
    "DiagnosticCollector",
    "DuplicateIdError",
    "HeaderParseFailure",
    "InvalidEntryError",
    "ListType",
    "MissingEntryError",
    "NamedType",
    "OpEntry",
    "Parameter",
    "ParsedHeader",
    "RecordType",
    "Signature",
    "TableEntry",
    "UnionType",
    "advance",
    "build_document",
    "offset_to_line_column",
    "parse_header",
    "parsed_header_to_signature",
    "render_signature",
]
