"""
Dead-symbol detection over an assembled ``SymbolGraph``.

A definition is unused when no reference in the graph targets its id.
Unused candidates then go through an ordered suppression chain that
compensates for known gaps in save-analysis output:

 1. names starting with ``_`` are intentionally unused
 2. ``self`` locals
 3. all other locals (rustc's own lints cover them, and save-analysis has
    false positives there: rust-lang/rust#61385)
 4. tuple variants (id mismatch bug: rust-lang/rust#61302)
 5. trait-member implementations whose declared member is used, or lives in
    a unit outside the covered set (nothing can be proven about it)
 6. associated types of traits (rustc emits no refs for them at all)
 7. anything fully inside a macro invocation or attribute

The chain runs on a thread pool; the report is sorted afterwards, so its
order never depends on scheduling.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Set, Tuple

from .graph import SymbolGraph
from .records import Definition, GlobalId, SourceSpan, UnitIdentity

logger = logging.getLogger(__name__)

KIND_LOCAL = "Local"
KIND_TUPLE_VARIANT = "TupleVariant"
KIND_TRAIT = "Trait"
KIND_ASSOCIATED_TYPE = "Type"
SELF_RECEIVER = "self"

TRAIT_IMPL_RESOLVE = "resolve"
TRAIT_IMPL_ALWAYS = "always"
TRAIT_IMPL_POLICIES = (TRAIT_IMPL_RESOLVE, TRAIT_IMPL_ALWAYS)


@dataclass(frozen=True, order=True)
class UnusedDefinition:
    # field order is the report order
    span: SourceSpan
    kind: str
    name: str
    symbol: str  # stable tie-breaker (global id or SCIP symbol)

    def display(self) -> str:
        return f"{self.span.display_str()}: unused {self.kind} '{self.name}'"


class UnusedSymbolAnalyzer(Protocol):
    """Anything that can produce a sorted unused-definition report."""

    def unused_definitions(self) -> List[UnusedDefinition]:
        ...

    def stats(self) -> Dict[str, int]:
        ...


class MacroLookup(Protocol):
    def is_in_macro(self, unit: UnitIdentity, span: SourceSpan) -> bool:
        ...


class DeadSymbolDetector:
    def __init__(
        self,
        graph: SymbolGraph,
        macro_index: Optional[MacroLookup] = None,
        workers: Optional[int] = None,
        trait_impl_policy: str = TRAIT_IMPL_RESOLVE,
    ):
        if trait_impl_policy not in TRAIT_IMPL_POLICIES:
            raise ValueError(f"unknown trait_impl_policy: {trait_impl_policy!r}")
        self.graph = graph
        self.macro_index = macro_index
        self.workers = workers
        self.trait_impl_policy = trait_impl_policy
        self._rules: Sequence[Tuple[str, Callable[[Definition, Set[GlobalId]], bool]]] = (
            ("underscore", self._underscore),
            ("self-receiver", self._self_receiver),
            ("local", self._local),
            ("tuple-variant", self._tuple_variant),
            ("trait-impl", self._trait_impl),
            ("associated-type", self._associated_type),
            ("macro", self._in_macro),
        )

    # --- suppression rules ---
    @staticmethod
    def _underscore(d: Definition, used: Set[GlobalId]) -> bool:
        return d.name.startswith("_")

    @staticmethod
    def _self_receiver(d: Definition, used: Set[GlobalId]) -> bool:
        return d.kind == KIND_LOCAL and d.name == SELF_RECEIVER

    @staticmethod
    def _local(d: Definition, used: Set[GlobalId]) -> bool:
        return d.kind == KIND_LOCAL

    @staticmethod
    def _tuple_variant(d: Definition, used: Set[GlobalId]) -> bool:
        return d.kind == KIND_TUPLE_VARIANT

    def _trait_impl(self, d: Definition, used: Set[GlobalId]) -> bool:
        if d.decl is None:
            return False
        if self.trait_impl_policy == TRAIT_IMPL_ALWAYS:
            return True
        if d.decl in used:
            return True
        # Policy choice: a member of a trait from an uncovered unit cannot be
        # proven unused without that unit's data.
        return d.decl.unit not in self.graph.covered_units

    def _associated_type(self, d: Definition, used: Set[GlobalId]) -> bool:
        parent = self.graph.lookup(d.parent)
        return parent is not None and parent.kind == KIND_TRAIT and d.kind == KIND_ASSOCIATED_TYPE

    def _in_macro(self, d: Definition, used: Set[GlobalId]) -> bool:
        if self.macro_index is None:
            return False
        return self.macro_index.is_in_macro(d.id.unit, d.span)

    def stats(self) -> Dict[str, int]:
        return {
            "definitions": len(self.graph.defs),
            "referenced": len(self.graph.refs),
            "units": len(self.graph.covered_units),
        }

    # --- evaluation ---
    def suppression_reason(self, d: Definition, used: Set[GlobalId]) -> Optional[str]:
        for name, rule in self._rules:
            if rule(d, used):
                return name
        return None

    def _evaluate(self, batch: List[Definition], used: Set[GlobalId]) -> List[UnusedDefinition]:
        out: List[UnusedDefinition] = []
        for d in batch:
            reason = self.suppression_reason(d, used)
            if reason is not None:
                logger.debug("%s: '%s' suppressed (%s)", d.span.display_str(), d.name, reason)
                continue
            out.append(UnusedDefinition(span=d.span, kind=d.kind, name=d.name, symbol=str(d.id)))
        return out

    def unused_definitions(self) -> List[UnusedDefinition]:
        used = self.graph.used_ids()
        candidates = [d for did, d in self.graph.defs.items() if did not in used]
        workers = self.workers or 1
        if workers <= 1 or len(candidates) < 2:
            found = self._evaluate(candidates, used)
        else:
            size = max(1, -(-len(candidates) // (workers * 4)))
            batches = [candidates[i : i + size] for i in range(0, len(candidates), size)]
            found = []
            with ThreadPoolExecutor(max_workers=workers) as pool:
                for part in pool.map(lambda b: self._evaluate(b, used), batches):
                    found.extend(part)
        found.sort()
        return found
