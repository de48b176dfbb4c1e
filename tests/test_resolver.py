from __future__ import annotations

import pytest

from deadsym.errors import SchemaError
from deadsym.records import DependencyTable, ExternalUnit, GlobalId, LocalDefinition, LocalRef, SourceSpan, UnitIdentity
from deadsym.resolver import identity_for_index, resolve, resolve_definition

SELF = UnitIdentity(1, 1)
CORE = UnitIdentity(7, 7)
SERDE = UnitIdentity(9, 3)


def _table(*externals: ExternalUnit) -> DependencyTable:
    return DependencyTable(name="app", own=SELF, externals=tuple(externals))


def test_index_zero_is_the_unit_itself():
    table = _table(ExternalUnit(1, "core", CORE))
    assert resolve(table, LocalRef(0, 42)) == GlobalId(SELF, 42)


def test_dependency_ordinal_resolves_through_table():
    table = _table(ExternalUnit(1, "core", CORE), ExternalUnit(2, "serde", SERDE))
    assert resolve(table, LocalRef(2, 5)) == GlobalId(SERDE, 5)
    assert identity_for_index(table, 1) == CORE


def test_resolution_is_idempotent():
    table = _table(ExternalUnit(1, "core", CORE))
    ref = LocalRef(1, 11)
    assert resolve(table, ref) == resolve(table, ref)
    assert hash(resolve(table, ref)) == hash(resolve(table, ref))


def test_out_of_range_index_is_schema_error():
    table = _table(ExternalUnit(1, "core", CORE))
    with pytest.raises(SchemaError):
        resolve(table, LocalRef(2, 0))


def test_ordinal_mismatch_is_schema_error():
    # position 1 declares ordinal 3
    table = _table(ExternalUnit(3, "core", CORE))
    with pytest.raises(SchemaError):
        resolve(table, LocalRef(1, 0))


def test_definition_back_references_are_resolved():
    table = _table(ExternalUnit(1, "core", CORE))
    sp = SourceSpan("src/lib.rs", 1, 1, 1, 5)
    d = LocalDefinition(kind="Method", name="fmt", id=LocalRef(0, 3), span=sp, parent=LocalRef(0, 1), decl=LocalRef(1, 99))
    resolved = resolve_definition(table, d)
    assert resolved.id == GlobalId(SELF, 3)
    assert resolved.parent == GlobalId(SELF, 1)
    assert resolved.decl == GlobalId(CORE, 99)
