"""
Global symbol graph assembled from all admitted units.

Definitions are keyed by their resolved id, references by their resolved
target (many references to one target collapse into a single "used" entry).
Insertion is last-write-wins, so ingesting the same unit twice leaves the
graph unchanged.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set

from .records import Definition, GlobalId, Reference, UnitDump, UnitIdentity
from .resolver import resolve_definition, resolve_reference


@dataclass
class SymbolGraph:
    defs: Dict[GlobalId, Definition] = field(default_factory=dict)
    refs: Dict[GlobalId, Reference] = field(default_factory=dict)
    covered_units: Set[UnitIdentity] = field(default_factory=set)

    def add_unit(self, unit: UnitDump) -> None:
        table = unit.metadata.table
        for d in unit.defs:
            resolved = resolve_definition(table, d)
            self.defs[resolved.id] = resolved
        for r in unit.refs:
            resolved_ref = resolve_reference(table, r)
            self.refs[resolved_ref.target] = resolved_ref
        self.covered_units.add(unit.identity)

    def add_definition(self, d: Definition) -> None:
        self.defs[d.id] = d

    def add_reference(self, r: Reference) -> None:
        self.refs[r.target] = r

    def lookup(self, key: Optional[GlobalId]) -> Optional[Definition]:
        """Follow a weak back-reference; unknown ids resolve to None."""
        if key is None:
            return None
        return self.defs.get(key)

    def used_ids(self) -> Set[GlobalId]:
        return set(self.refs)

    def __len__(self) -> int:
        return len(self.defs) + len(self.refs)


def assemble(units: Iterable[UnitDump]) -> SymbolGraph:
    graph = SymbolGraph()
    for unit in units:
        graph.add_unit(unit)
    return graph
