"""orjson-backed I/O for exported biblio snapshots."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

from specbiblio.biblio import BiblioIndex


def load_json(path: Path) -> Any:
    return orjson.loads(path.read_bytes())


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    opts = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS if pretty else orjson.OPT_SORT_KEYS
    path.write_bytes(orjson.dumps(obj, option=opts))


def load_biblio(path: Path) -> BiblioIndex:
    """Load an exported snapshot as a frozen index."""
    payload = load_json(path)
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: biblio snapshot must be a JSON object")
    return BiblioIndex.from_export(payload)


def save_biblio(index: BiblioIndex, path: Path) -> None:
    save_json(index.export(), path)
