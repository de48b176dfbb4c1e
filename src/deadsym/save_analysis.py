"""
Decoding of per-crate save-analysis JSON dumps into unit records.

A full dump looks like::

    {
      "prelude": {"crate_id": {"name": "foo", "disambiguator": [1, 2]},
                  "external_crates": [{"num": 1, "id": {...}}]},
      "compilation": {"directory": "/home/me/foo", ...},
      "defs": [{"kind": "Function", "name": "bar",
                "id": {"krate": 0, "index": 7},
                "span": {"file_name": "src/lib.rs", "line_start": 3, ...},
                "parent": null, "decl_id": null}],
      "refs": [{"kind": "Function", "ref_id": {...}, "span": {...}}]
    }

The metadata-only variant carries just ``prelude`` and ``compilation``;
``defs``/``refs`` then decode as empty lists.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import DecodeError, IoError
from .records import (
    DependencyTable,
    ExternalUnit,
    LocalDefinition,
    LocalRef,
    LocalReference,
    SourceSpan,
    UnitDump,
    UnitIdentity,
    UnitMetadata,
)

SAVE_ANALYSIS_SUFFIX = ".json"


def read_unit(path: Path) -> UnitDump:
    """Read and decode one dump file. Any failure is fatal."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise IoError(f"cannot read {path}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"{path}: invalid JSON: {exc}") from exc
    return parse_unit(data, source=str(path))


def parse_unit(data: Any, source: str = "<memory>") -> UnitDump:
    try:
        metadata = _metadata(data)
        defs = [_definition(d) for d in data.get("defs") or []]
        refs = [_reference(r) for r in data.get("refs") or []]
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise DecodeError(f"{source}: malformed save-analysis data ({exc!r})") from exc
    return UnitDump(source=source, metadata=metadata, defs=defs, refs=refs)


def _metadata(data: Dict[str, Any]) -> UnitMetadata:
    prelude = data["prelude"]
    crate_id = prelude["crate_id"]
    externals = tuple(
        ExternalUnit(
            num=int(ext["num"]),
            name=str(ext["id"].get("name", "")),
            identity=_identity(ext["id"]["disambiguator"]),
        )
        for ext in prelude.get("external_crates") or []
    )
    table = DependencyTable(
        name=str(crate_id.get("name", "")),
        own=_identity(crate_id["disambiguator"]),
        externals=externals,
    )
    compilation = data.get("compilation") or {}
    return UnitMetadata(table=table, directory=str(compilation.get("directory") or ""))


def _identity(raw: List[int]) -> UnitIdentity:
    high, low = raw
    return UnitIdentity(int(high), int(low))


def _item_id(raw: Optional[Dict[str, Any]]) -> Optional[LocalRef]:
    if raw is None:
        return None
    return LocalRef(index=int(raw["krate"]), slot=int(raw["index"]))


def _span(raw: Dict[str, Any]) -> SourceSpan:
    return SourceSpan(
        file_name=str(raw["file_name"]),
        line_start=int(raw["line_start"]),
        column_start=int(raw["column_start"]),
        line_end=int(raw["line_end"]),
        column_end=int(raw["column_end"]),
    )


def _definition(raw: Dict[str, Any]) -> LocalDefinition:
    local_id = _item_id(raw["id"])
    if local_id is None:
        raise ValueError("definition without id")
    return LocalDefinition(
        kind=str(raw["kind"]),
        name=str(raw["name"]),
        id=local_id,
        span=_span(raw["span"]),
        parent=_item_id(raw.get("parent")),
        decl=_item_id(raw.get("decl_id")),
    )


def _reference(raw: Dict[str, Any]) -> LocalReference:
    target = _item_id(raw["ref_id"])
    if target is None:
        raise ValueError("reference without ref_id")
    return LocalReference(kind=str(raw["kind"]), target=target, span=_span(raw["span"]))
