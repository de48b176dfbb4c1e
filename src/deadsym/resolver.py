"""
Identity resolution: unit-local ``LocalRef`` -> build-global ``GlobalId``.

All functions here are pure; resolving the same reference against the same
table always yields the same result.
"""
from __future__ import annotations

from typing import Optional

from .errors import SchemaError
from .records import (
    Definition,
    DependencyTable,
    GlobalId,
    LocalDefinition,
    LocalRef,
    LocalReference,
    Reference,
    UnitIdentity,
)


def identity_for_index(table: DependencyTable, index: int) -> UnitIdentity:
    if index == 0:
        return table.own
    if index < 0 or index > len(table.externals):
        raise SchemaError(
            f"unit '{table.name}' references dependency #{index} "
            f"but declares only {len(table.externals)}"
        )
    entry = table.externals[index - 1]
    if entry.num != index:
        raise SchemaError(
            f"unit '{table.name}': dependency at position {index} "
            f"declares ordinal {entry.num}"
        )
    return entry.identity


def resolve(table: DependencyTable, ref: LocalRef) -> GlobalId:
    return GlobalId(unit=identity_for_index(table, ref.index), slot=ref.slot)


def _resolve_optional(table: DependencyTable, ref: Optional[LocalRef]) -> Optional[GlobalId]:
    if ref is None:
        return None
    return resolve(table, ref)


def resolve_definition(table: DependencyTable, d: LocalDefinition) -> Definition:
    return Definition(
        kind=d.kind,
        name=d.name,
        id=resolve(table, d.id),
        span=d.span,
        parent=_resolve_optional(table, d.parent),
        decl=_resolve_optional(table, d.decl),
    )


def resolve_reference(table: DependencyTable, r: LocalReference) -> Reference:
    return Reference(kind=r.kind, target=resolve(table, r.target), span=r.span)
