"""Recursive-descent parser for type phrases inside operation headers.

Grammar::

    type      := ['either'] alt ('or' alt)*
    alt       := primary ('[]')*
    primary   := '{' [field (',' field)*] '}'
               | '(' type ')'
               | ['a' | 'an'] 'List' 'of' alt
               | WORD+
    field     := (WORD | SLOT) ':' type
    SLOT      := '[[' name ']]'

Unions are flattened: ``A or B or C`` is one three-way ``UnionType``.
Nesting (brackets, records, list phrases and ``[]`` suffixes) is capped at
``MAX_TYPE_DEPTH`` levels.
Malformed input raises ``TypeParseError`` carrying an offset into the
enclosing header source.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from specbiblio.types import ListType, NamedType, RecordType, Type, make_union


class TypeParseError(Exception):
    """A malformed type phrase; ``offset`` indexes the header source."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset


@dataclass(frozen=True, slots=True)
class _Token:
    kind: str
    value: str
    pos: int


# Order matters (first match wins)
_TOKEN_PATTERNS: list[tuple[str, str]] = [
    ("WHITESPACE", r"\s+"),
    ("SLOT", r"\[\[[^\[\]]+\]\]"),
    ("LIST_SUFFIX", r"\[\s*\]"),
    ("LBRACE", r"\{"),
    ("RBRACE", r"\}"),
    ("LPAREN", r"\("),
    ("RPAREN", r"\)"),
    ("COLON", r":"),
    ("COMMA", r","),
    ("WORD", r"[^\s{}():,\[\]]+"),
]

_COMPILED_PATTERNS = [(name, re.compile(pat)) for name, pat in _TOKEN_PATTERNS]

MAX_TYPE_DEPTH = 64

_ARTICLES = frozenset({"a", "an"})


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(text):
        for name, pattern in _COMPILED_PATTERNS:
            m = pattern.match(text, pos)
            if m:
                if name != "WHITESPACE":
                    tokens.append(_Token(kind=name, value=m.group(), pos=pos))
                pos = m.end()
                break
        else:
            tokens.append(_Token(kind="ERROR", value=text[pos], pos=pos))
            pos += 1
    tokens.append(_Token(kind="EOF", value="", pos=pos))
    return tokens


def _describe(tok: _Token) -> str:
    if tok.kind == "EOF":
        return "end of input"
    return repr(tok.value)


class _TypeParser:
    def __init__(self, tokens: list[_Token], base_offset: int) -> None:
        self._tokens = tokens
        self._base = base_offset
        self._pos = 0
        self._depth = 0

    def _peek(self, ahead: int = 0) -> _Token:
        idx = min(self._pos + ahead, len(self._tokens) - 1)
        return self._tokens[idx]

    def _advance(self) -> _Token:
        tok = self._tokens[self._pos]
        if self._pos < len(self._tokens) - 1:
            self._pos += 1
        return tok

    def _fail(self, message: str, tok: _Token | None = None) -> TypeParseError:
        tok = tok or self._peek()
        return TypeParseError(message, self._base + tok.pos)

    def _expect(self, kind: str, what: str) -> _Token:
        tok = self._peek()
        if tok.kind != kind:
            raise self._fail(f"expected {what}, got {_describe(tok)}", tok)
        return self._advance()

    def _is_word(self, value: str, ahead: int = 0) -> bool:
        tok = self._peek(ahead)
        return tok.kind == "WORD" and tok.value.lower() == value

    def parse(self) -> Type:
        result = self._parse_union()
        tok = self._peek()
        if tok.kind != "EOF":
            raise self._fail(f"unexpected {_describe(tok)} after type", tok)
        return result

    def _parse_union(self) -> Type:
        if self._is_word("either") and self._peek(1).kind != "EOF":
            self._advance()
        alternatives = [self._parse_alt()]
        while self._is_word("or"):
            self._advance()
            alternatives.append(self._parse_alt())
        return make_union(alternatives)

    def _parse_alt(self) -> Type:
        result = self._parse_primary()
        levels = self._depth
        while self._peek().kind == "LIST_SUFFIX":
            levels += 1
            if levels >= MAX_TYPE_DEPTH:
                raise self._fail("type nested too deeply")
            self._advance()
            result = ListType(element=result)
        return result

    def _parse_primary(self) -> Type:
        tok = self._peek()
        if self._depth >= MAX_TYPE_DEPTH:
            raise self._fail("type nested too deeply", tok)
        self._depth += 1
        try:
            return self._parse_nested(tok)
        finally:
            self._depth -= 1

    def _parse_nested(self, tok: _Token) -> Type:
        if tok.kind == "LBRACE":
            return self._parse_record()
        if tok.kind == "LPAREN":
            self._advance()
            inner = self._parse_union()
            self._expect("RPAREN", "')'")
            return inner
        if tok.kind == "WORD" and tok.value.lower() != "or":
            if self._at_list_phrase():
                return self._parse_list_phrase()
            return self._parse_phrase()
        raise self._fail(f"expected a type, got {_describe(tok)}", tok)

    def _at_list_phrase(self) -> bool:
        skip = 1 if self._peek().value.lower() in _ARTICLES else 0
        list_tok = self._peek(skip)
        return (
            list_tok.kind == "WORD"
            and list_tok.value == "List"
            and self._is_word("of", skip + 1)
        )

    def _parse_list_phrase(self) -> Type:
        if self._peek().value.lower() in _ARTICLES:
            self._advance()
        self._advance()  # List
        self._advance()  # of
        return ListType(element=self._parse_alt())

    def _parse_phrase(self) -> Type:
        words: list[str] = []
        while self._peek().kind == "WORD" and not self._is_word("or"):
            words.append(self._advance().value)
        return NamedType(name=" ".join(words))

    def _parse_record(self) -> Type:
        open_tok = self._advance()
        fields: list[tuple[str, Type]] = []
        seen: set[str] = set()
        if self._peek().kind == "RBRACE":
            self._advance()
            return RecordType(fields=())
        while True:
            name_tok = self._peek()
            if name_tok.kind not in ("WORD", "SLOT"):
                raise self._fail(
                    f"expected record field name, got {_describe(name_tok)}", name_tok,
                )
            self._advance()
            if name_tok.value in seen:
                raise self._fail(f"duplicate record field {name_tok.value!r}", name_tok)
            seen.add(name_tok.value)
            self._expect("COLON", "':' after record field name")
            fields.append((name_tok.value, self._parse_union()))
            sep = self._peek()
            if sep.kind == "COMMA":
                self._advance()
                continue
            if sep.kind == "RBRACE":
                self._advance()
                break
            if sep.kind == "EOF":
                raise self._fail("unterminated record: missing '}'", open_tok)
            raise self._fail(f"expected ',' or '}}' in record, got {_describe(sep)}", sep)
        return RecordType(fields=tuple(fields))


def parse_type(text: str, base_offset: int = 0) -> Type:
    """Parse one type phrase.

    ``base_offset`` is the position of ``text`` inside the header source, so
    that error offsets point into the header rather than into the phrase.
    """
    return _TypeParser(_tokenize(text), base_offset).parse()
