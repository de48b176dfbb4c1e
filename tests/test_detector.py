from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from deadsym.detector import TRAIT_IMPL_ALWAYS, DeadSymbolDetector
from deadsym.graph import SymbolGraph
from deadsym.macro_spans import MacroSpanIndex
from deadsym.records import Definition, GlobalId, Reference, SourceSpan, UnitIdentity

U1 = UnitIdentity(1, 1)
U2 = UnitIdentity(2, 2)
FOREIGN = UnitIdentity(9, 9)


class StaticMacroIndex:
    """Macro lookup that mutes exactly the given (unit, file, line)."""

    def __init__(self, *muted):
        self.muted = set(muted)
        self.calls = 0

    def is_in_macro(self, unit, span):
        self.calls += 1
        return (unit, span.file_name, span.line_start) in self.muted


def _def(
    name: str,
    slot: int,
    kind: str = "Function",
    unit: UnitIdentity = U1,
    file_name: str = "a.rs",
    line: int = 10,
    parent: Optional[GlobalId] = None,
    decl: Optional[GlobalId] = None,
) -> Definition:
    return Definition(
        kind=kind,
        name=name,
        id=GlobalId(unit, slot),
        span=SourceSpan(file_name, line, 1, line, 1 + len(name)),
        parent=parent,
        decl=decl,
    )


def _graph(*defs: Definition, used=(), covered=(U1,)) -> SymbolGraph:
    graph = SymbolGraph()
    for d in defs:
        graph.add_definition(d)
    for target in used:
        graph.add_reference(Reference("Function", target, SourceSpan("main.rs", 1, 1, 1, 2)))
    graph.covered_units.update(covered)
    return graph


def _report(graph: SymbolGraph, **kwargs):
    return [ud.display() for ud in DeadSymbolDetector(graph, **kwargs).unused_definitions()]


def test_unreferenced_function_is_reported():
    foo = Definition("Function", "foo", GlobalId(U1, 1), SourceSpan("a.rs", 10, 1, 10, 9))
    assert _report(_graph(foo)) == ["a.rs:10:1: unused Function 'foo'"]


def test_reference_from_another_unit_marks_definition_used():
    foo = _def("foo", 1)
    graph = _graph(foo, used=[GlobalId(U1, 1)], covered=(U1, U2))
    assert _report(graph) == []


def test_underscore_local_is_suppressed_by_underscore_rule():
    detector = DeadSymbolDetector(_graph(_def("_tmp", 1, kind="Local")))
    d = detector.graph.defs[GlobalId(U1, 1)]
    assert detector.suppression_reason(d, set()) == "underscore"
    assert detector.unused_definitions() == []


def test_self_and_other_locals_are_suppressed():
    detector = DeadSymbolDetector(_graph(_def("self", 1, kind="Local"), _def("x", 2, kind="Local")))
    assert detector.suppression_reason(detector.graph.defs[GlobalId(U1, 1)], set()) == "self-receiver"
    assert detector.suppression_reason(detector.graph.defs[GlobalId(U1, 2)], set()) == "local"
    assert detector.unused_definitions() == []


def test_tuple_variant_is_suppressed():
    assert _report(_graph(_def("V", 1, kind="TupleVariant"))) == []


def test_trait_impl_is_suppressed_when_declared_member_is_used():
    trait_fn = _def("run", 1, kind="Method", line=2)
    impl_fn = _def("run", 2, kind="Method", line=20, decl=GlobalId(U1, 1))
    assert _report(_graph(trait_fn, impl_fn, used=[GlobalId(U1, 1)])) == []


def test_trait_impl_is_reported_when_local_declared_member_is_unused():
    trait_fn = _def("run", 1, kind="Method", line=2)
    impl_fn = _def("run", 2, kind="Method", line=20, decl=GlobalId(U1, 1))
    assert _report(_graph(trait_fn, impl_fn)) == [
        "a.rs:2:1: unused Method 'run'",
        "a.rs:20:1: unused Method 'run'",
    ]


def test_trait_impl_of_foreign_trait_is_suppressed():
    impl_fn = _def("fmt", 2, kind="Method", decl=GlobalId(FOREIGN, 77))
    assert _report(_graph(impl_fn)) == []


def test_always_policy_suppresses_every_trait_impl():
    trait_fn = _def("run", 1, kind="Method", line=2)
    impl_fn = _def("run", 2, kind="Method", line=20, decl=GlobalId(U1, 1))
    assert _report(_graph(trait_fn, impl_fn), trait_impl_policy=TRAIT_IMPL_ALWAYS) == [
        "a.rs:2:1: unused Method 'run'",
    ]


def test_unknown_policy_is_rejected():
    with pytest.raises(ValueError):
        DeadSymbolDetector(_graph(), trait_impl_policy="sometimes")


def test_associated_type_of_trait_is_suppressed():
    trait = _def("Iter", 1, kind="Trait", line=1)
    assoc = _def("Item", 2, kind="Type", line=2, parent=GlobalId(U1, 1))
    plain_type = _def("Alias", 3, kind="Type", line=5)
    graph = _graph(trait, assoc, plain_type, used=[GlobalId(U1, 1)])
    assert _report(graph) == ["a.rs:5:1: unused Type 'Alias'"]


def test_unknown_parent_degrades_gracefully():
    assoc = _def("Item", 2, kind="Type", parent=GlobalId(FOREIGN, 1))
    assert _report(_graph(assoc)) == ["a.rs:10:1: unused Type 'Item'"]


def test_macro_generated_definition_is_suppressed():
    generated = _def("generated_fn", 1, file_name="b.rs", line=20)
    other = _def("handwritten", 2, file_name="b.rs", line=30)
    index = StaticMacroIndex((U1, "b.rs", 20))
    assert _report(_graph(generated, other), macro_index=index) == ["b.rs:30:1: unused Function 'handwritten'"]


def test_macro_lookup_only_runs_for_unsuppressed_candidates():
    index = StaticMacroIndex()
    graph = _graph(_def("_a", 1), _def("x", 2, kind="Local"), _def("used", 3), used=[GlobalId(U1, 3)])
    DeadSymbolDetector(graph, macro_index=index).unused_definitions()
    assert index.calls == 0


def test_macro_suppression_from_real_source(tmp_path: Path):
    src = tmp_path / "b.rs"
    lines = ["// filler"] * 19 + ["make!(generated_fn, one, two, three);", ""]
    src.write_text("\n".join(lines), encoding="utf-8")
    generated = Definition("Function", "generated_fn", GlobalId(U1, 1), SourceSpan("b.rs", 20, 7, 20, 19))
    graph = _graph(generated)
    assert _report(graph, macro_index=MacroSpanIndex(tmp_path)) == []


def test_report_is_identical_across_worker_counts():
    defs = [
        _def(f"item{i:03d}", i, kind=("Function", "Struct", "Const")[i % 3], file_name=f"m{i % 7}.rs", line=i)
        for i in range(300)
    ]
    graph = _graph(*defs, used=[GlobalId(U1, i) for i in range(0, 300, 5)])
    one = _report(graph, workers=1)
    many = _report(graph, workers=8)
    assert one == many
    assert len(one) == 240
    assert one == sorted(one, key=lambda line: (line.split(":")[0], int(line.split(":")[1])))
