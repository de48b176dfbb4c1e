"""
Unused-definition analysis over a single SCIP index.

SCIP symbols are already build-global strings and every occurrence carries a
role bitmask, so there is nothing to remap: an occurrence with the
Definition bit defines its symbol, any other occurrence (read, write,
import, ...) uses it. SCIP positions are post-expansion and author-visible,
so no macro muting is applied here.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Set, Tuple

from .detector import UnusedDefinition
from .records import SourceSpan
from .scip_index import SymbolRole, kind_name, occurrence_span, read_index

logger = logging.getLogger(__name__)

LOCAL_PREFIX = "local "

SymbolKey = Tuple[str, str]  # (document path for locals else "", symbol)

_LAST_DESCRIPTOR = re.compile(r"(`[^`]*`|[^/#.:!\[\]()`]+)(?:\([^)]*\))?[/#.:!\])]?$")


def is_local(symbol: str) -> bool:
    return symbol.startswith(LOCAL_PREFIX)


def symbol_key(relative_path: str, symbol: str) -> SymbolKey:
    # local symbols are only unique within their document
    return (relative_path if is_local(symbol) else "", symbol)


def symbol_display_name(symbol: str) -> str:
    """Best-effort short name from a SCIP symbol string (``pkg/Foo#`` -> ``Foo``)."""
    if is_local(symbol):
        return symbol
    descriptors = symbol.rsplit(" ", 1)[-1]
    m = _LAST_DESCRIPTOR.search(descriptors)
    if not m:
        return descriptors
    return m.group(1).strip("`")


@dataclass(frozen=True)
class ScipDefinition:
    symbol: str
    span: SourceSpan
    name: str
    kind: str


class ScipAnalysis:
    def __init__(self, index):
        self.index = index
        self.definitions: Dict[SymbolKey, ScipDefinition] = {}
        self.used: Set[SymbolKey] = set()
        self._build()

    @classmethod
    def from_path(cls, path: Path) -> "ScipAnalysis":
        index = read_index(path)
        logger.info("parsed scip file %s: %d documents", path, len(index.documents))
        return cls(index)

    @property
    def project_root(self) -> str:
        return self.index.metadata.project_root

    def _symbol_info(self) -> Dict[SymbolKey, Tuple[str, int]]:
        info: Dict[SymbolKey, Tuple[str, int]] = {}
        for ext in self.index.external_symbols:
            info[("", ext.symbol)] = (ext.display_name, ext.kind)
        for doc in self.index.documents:
            for sym in doc.symbols:
                info[symbol_key(doc.relative_path, sym.symbol)] = (sym.display_name, sym.kind)
        return info

    def _build(self) -> None:
        info = self._symbol_info()
        for doc in self.index.documents:
            for occ in doc.occurrences:
                if not occ.symbol:
                    continue
                key = symbol_key(doc.relative_path, occ.symbol)
                if not occ.symbol_roles & SymbolRole.Definition:
                    self.used.add(key)
                    continue
                display_name, kind = info.get(key, ("", 0))
                self.definitions[key] = ScipDefinition(
                    symbol=occ.symbol,
                    span=occurrence_span(doc.relative_path, list(occ.range)),
                    name=display_name or symbol_display_name(occ.symbol),
                    kind=kind_name(kind),
                )

    def stats(self) -> Dict[str, int]:
        return {
            "documents": len(self.index.documents),
            "definitions": len(self.definitions),
            "referenced": len(self.used),
        }

    def unused_definitions(self) -> List[UnusedDefinition]:
        found = [
            UnusedDefinition(span=d.span, kind=d.kind, name=d.name, symbol=d.symbol)
            for key, d in self.definitions.items()
            if key not in self.used and not d.name.startswith("_")
        ]
        found.sort()
        return found
