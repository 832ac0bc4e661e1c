"""Biblio index: the cross-document symbol table.

Entries are a closed union of ``ClauseEntry``, ``TableEntry`` and ``OpEntry``.
An entry without an id must carry a ``ref_id`` naming an entry that has
one; ``freeze`` rejects dangling references. The index
keeps three views over the same entries:

- ``id -> entry`` (ids are unique across everything merged in)
- ``(namespace, aoid) -> op entry`` (first registered wins)
- ``(namespace, aoid) -> [concrete method entries]`` in insertion order,
  which is the display order of concrete-method listings

An index is built by a single owner during the first pass, then frozen.
``merge``, ``combine`` and ``from_export`` always produce frozen indices.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, ClassVar, Literal, TypeAlias

from specbiblio.types import (
    ListType,
    NamedType,
    Parameter,
    RecordType,
    Signature,
    Type,
    UnionType,
)

log = logging.getLogger(__name__)

CONCRETE_METHOD = "concrete method"
ABSTRACT_METHOD = "abstract method"

# "strict": any id collision is fatal.
# "local-wins": the external index is supplementary; its colliding entries are dropped.
MergePolicy: TypeAlias = Literal["strict", "local-wins"]


class BiblioError(ValueError):
    """Structural problem with the index; aborts the build."""


class DuplicateIdError(BiblioError):
    def __init__(self, entry_id: str) -> None:
        super().__init__(f"duplicate biblio entry id {entry_id!r}")
        self.entry_id = entry_id


class InvalidEntryError(BiblioError):
    pass


class MissingEntryError(BiblioError):
    def __init__(self, entry_id: str) -> None:
        super().__init__(f"no biblio entry with id {entry_id!r}")
        self.entry_id = entry_id


class FrozenIndexError(BiblioError):
    pass


@dataclass(frozen=True, slots=True)
class ClauseEntry:
    type: ClassVar[str] = "clause"

    id: str
    number: str
    title: str
    namespace: str
    parent: str | None = None
    ref_id: str | None = None

    @property
    def anchor(self) -> str:
        return self.id


@dataclass(frozen=True, slots=True)
class TableEntry:
    """A numbered ``<emu-table>`` with an id."""

    type: ClassVar[str] = "table"

    id: str
    number: int
    caption: str
    namespace: str
    ref_id: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("table entry requires an id")
        if self.number < 1:
            raise ValueError(f"table number must be >= 1, got {self.number}")

    @property
    def anchor(self) -> str:
        return self.id

    @property
    def label(self) -> str:
        return f"Table {self.number}"


@dataclass(frozen=True, slots=True)
class OpEntry:
    """An operation: abstract operation, abstract or concrete method, ..."""

    type: ClassVar[str] = "op"

    aoid: str
    kind: str
    namespace: str
    signature: Signature | None = None
    effects: tuple[str, ...] = ()
    id: str | None = None
    ref_id: str | None = None
    for_type: str | None = None

    @property
    def anchor(self) -> str | None:
        return self.id or self.ref_id


BiblioEntry: TypeAlias = ClauseEntry | TableEntry | OpEntry


class BiblioIndex:
    def __init__(self) -> None:
        self._entries: list[BiblioEntry] = []
        self._by_id: dict[str, BiblioEntry] = {}
        self._by_aoid: dict[tuple[str, str], OpEntry] = {}
        self._by_abstract_method_aoid: dict[tuple[str, str], list[OpEntry]] = {}
        self._frozen = False

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._by_id

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> BiblioIndex:
        """Make the index read-only. Returns ``self``.

        Raises ``InvalidEntryError`` if any ``ref_id`` names an id that is
        not in the index.
        """
        dangling = sorted({
            entry.ref_id
            for entry in self._entries
            if entry.ref_id and entry.ref_id not in self._by_id
        })
        if dangling:
            raise InvalidEntryError(
                "refId does not resolve to an entry with an id: " + ", ".join(dangling),
            )
        self._frozen = True
        return self

    def add(self, entry: BiblioEntry) -> None:
        """Register an entry.

        Raises ``DuplicateIdError`` on an id collision and
        ``InvalidEntryError`` for an entry with neither id nor ref_id.
        """
        if self._frozen:
            raise FrozenIndexError("cannot add entries to a frozen biblio index")
        self._insert(entry)

    def _insert(self, entry: BiblioEntry) -> None:
        if not entry.id and not entry.ref_id:
            raise InvalidEntryError(
                f"{entry.type} entry {_describe(entry)} has neither id nor refId",
            )
        if entry.id:
            if entry.id in self._by_id:
                raise DuplicateIdError(entry.id)
            self._by_id[entry.id] = entry
        self._entries.append(entry)
        match entry:
            case OpEntry():
                key = (entry.namespace, entry.aoid)
                self._by_aoid.setdefault(key, entry)
                if entry.kind == CONCRETE_METHOD:
                    self._by_abstract_method_aoid.setdefault(key, []).append(entry)
            case ClauseEntry() | TableEntry():
                pass
            case _:
                raise TypeError(f"not a biblio entry: {entry!r}")

    def entries(self) -> tuple[BiblioEntry, ...]:
        return tuple(self._entries)

    def by_id(self, entry_id: str) -> BiblioEntry | None:
        return self._by_id.get(entry_id)

    def require(self, entry_id: str) -> BiblioEntry:
        entry = self._by_id.get(entry_id)
        if entry is None:
            raise MissingEntryError(entry_id)
        return entry

    def by_aoid(self, aoid: str, namespace: str) -> OpEntry | None:
        return self._by_aoid.get((namespace, aoid))

    def by_abstract_method_aoid(self, aoid: str, namespace: str) -> tuple[OpEntry, ...]:
        """Concrete definitions of ``aoid`` in ``namespace``, in registration order."""
        return tuple(self._by_abstract_method_aoid.get((namespace, aoid), ()))

    def merge(self, external: BiblioIndex, *, policy: MergePolicy = "strict") -> BiblioIndex:
        """Combine this index with ``external`` into a new frozen index.

        Neither input is modified. Local entries come first, so they also
        come first in concrete-method listings and win ``by_aoid`` lookups.
        """
        if policy not in ("strict", "local-wins"):
            raise ValueError(f"unknown merge policy {policy!r}")
        merged = BiblioIndex()
        for entry in self._entries:
            merged._insert(entry)
        dropped = 0
        for entry in external._entries:
            if entry.id and entry.id in merged._by_id:
                if policy == "local-wins":
                    dropped += 1
                    continue
                raise DuplicateIdError(entry.id)
            merged._insert(entry)
        if dropped:
            log.debug("merge dropped %d shadowed external entries", dropped)
        return merged.freeze()

    @classmethod
    def combine(cls, indices: Iterable[BiblioIndex]) -> BiblioIndex:
        """Strictly merge several imported indices into one frozen index.

        Imports never shadow each other: an id shared by two of them raises
        ``DuplicateIdError`` whatever policy later applies against the
        local index.
        """
        combined = cls()
        for index in indices:
            for entry in index._entries:
                combined._insert(entry)
        return combined.freeze()

    def export(self) -> dict[str, Any]:
        """Serializable snapshot for documents that import this one."""
        entries = [entry_to_dict(entry) for entry in self._entries]
        by_ns: dict[str, dict[str, list[str]]] = {}
        for entry in self._entries:
            if isinstance(entry, OpEntry) and entry.anchor:
                by_ns.setdefault(entry.namespace, {}).setdefault(entry.aoid, []).append(
                    entry.anchor,
                )
        return {
            "entries": entries,
            "idToEntry": {row["id"]: row for row in entries if row.get("id")},
            "byAoidNamespace": by_ns,
        }

    @classmethod
    def from_export(cls, snapshot: dict[str, Any]) -> BiblioIndex:
        rows = snapshot.get("entries")
        if not isinstance(rows, list):
            raise ValueError("biblio snapshot must carry an 'entries' list")
        index = cls()
        for row in rows:
            index._insert(entry_from_dict(row))
        return index.freeze()


def _describe(entry: BiblioEntry) -> str:
    match entry:
        case OpEntry(aoid=aoid):
            return repr(aoid)
        case ClauseEntry(title=title):
            return repr(title)
        case TableEntry(id=entry_id):
            return repr(entry_id)
        case _:
            return repr(entry)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def type_to_dict(value: Type) -> dict[str, Any]:
    match value:
        case NamedType(name=name):
            return {"kind": "named", "name": name}
        case ListType(element=element):
            return {"kind": "list", "element": type_to_dict(element)}
        case RecordType(fields=fields):
            return {
                "kind": "record",
                "fields": [[name, type_to_dict(t)] for name, t in fields],
            }
        case UnionType(alternatives=alternatives):
            return {"kind": "union", "alternatives": [type_to_dict(a) for a in alternatives]}
        case _:
            raise TypeError(f"not a Type: {value!r}")


def type_from_dict(payload: dict[str, Any]) -> Type:
    kind = payload.get("kind")
    if kind == "named":
        return NamedType(name=str(payload["name"]))
    if kind == "list":
        return ListType(element=type_from_dict(payload["element"]))
    if kind == "record":
        return RecordType(fields=tuple(
            (str(name), type_from_dict(t)) for name, t in payload["fields"]
        ))
    if kind == "union":
        return UnionType(alternatives=tuple(
            type_from_dict(a) for a in payload["alternatives"]
        ))
    raise ValueError(f"unknown type kind {kind!r}")


def signature_to_dict(signature: Signature) -> dict[str, Any]:
    return {
        "name": signature.name,
        "params": [
            {
                "name": p.name,
                "type": type_to_dict(p.type) if p.type is not None else None,
                "optional": p.optional,
            }
            for p in signature.params
        ],
        "return": (
            type_to_dict(signature.return_type)
            if signature.return_type is not None
            else None
        ),
    }


def signature_from_dict(payload: dict[str, Any]) -> Signature:
    params = tuple(
        Parameter(
            name=str(p["name"]),
            type=type_from_dict(p["type"]) if p.get("type") is not None else None,
            optional=bool(p.get("optional", False)),
        )
        for p in payload.get("params", [])
    )
    ret = payload.get("return")
    return Signature(
        name=str(payload["name"]),
        params=params,
        return_type=type_from_dict(ret) if ret is not None else None,
    )


def entry_to_dict(entry: BiblioEntry) -> dict[str, Any]:
    match entry:
        case TableEntry():
            return {
                "type": "table",
                "id": entry.id,
                "number": entry.number,
                "caption": entry.caption,
                "namespace": entry.namespace,
                "refId": entry.ref_id,
            }
        case ClauseEntry():
            return {
                "type": "clause",
                "id": entry.id,
                "number": entry.number,
                "title": entry.title,
                "namespace": entry.namespace,
                "parent": entry.parent,
                "refId": entry.ref_id,
            }
        case OpEntry():
            return {
                "type": "op",
                "aoid": entry.aoid,
                "kind": entry.kind,
                "namespace": entry.namespace,
                "signature": (
                    signature_to_dict(entry.signature)
                    if entry.signature is not None
                    else None
                ),
                "effects": list(entry.effects),
                "id": entry.id,
                "refId": entry.ref_id,
                "for": entry.for_type,
            }
        case _:
            raise TypeError(f"not a biblio entry: {entry!r}")


def entry_from_dict(payload: dict[str, Any]) -> BiblioEntry:
    entry_type = payload.get("type")
    if entry_type == "clause":
        return ClauseEntry(
            id=str(payload["id"]),
            number=str(payload.get("number", "")),
            title=str(payload.get("title", "")),
            namespace=str(payload["namespace"]),
            parent=payload.get("parent"),
            ref_id=payload.get("refId"),
        )
    if entry_type == "table":
        return TableEntry(
            id=str(payload["id"]),
            number=int(payload["number"]),
            caption=str(payload.get("caption", "")),
            namespace=str(payload["namespace"]),
            ref_id=payload.get("refId"),
        )
    if entry_type == "op":
        signature = payload.get("signature")
        return OpEntry(
            aoid=str(payload["aoid"]),
            kind=str(payload["kind"]),
            namespace=str(payload["namespace"]),
            signature=signature_from_dict(signature) if signature is not None else None,
            effects=tuple(payload.get("effects", ())),
            id=payload.get("id"),
            ref_id=payload.get("refId"),
            for_type=payload.get("for"),
        )
    raise ValueError(f"unknown biblio entry type {entry_type!r}")
