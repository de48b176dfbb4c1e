"""
Language-neutral record shapes shared by both ingestion formats.

Unit-local records (``LocalDefinition``/``LocalReference``) carry ``LocalRef``
identities that are only meaningful inside the unit that produced them.
After resolution they become ``Definition``/``Reference`` keyed by
``GlobalId``, which is comparable across the whole build.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

Position = Tuple[int, int]  # (line, column), both 1-based


@dataclass(frozen=True, order=True)
class UnitIdentity:
    """128-bit identity of one compilation (the crate disambiguator)."""

    high: int
    low: int

    def __str__(self) -> str:
        return f"{self.high:016x}{self.low:016x}"


@dataclass(frozen=True, order=True)
class LocalRef:
    index: int  # 0 = this unit, >0 = 1-based ordinal in the dependency table
    slot: int


@dataclass(frozen=True, order=True)
class GlobalId:
    unit: UnitIdentity
    slot: int

    def __str__(self) -> str:
        return f"{self.unit}:{self.slot}"


@dataclass(frozen=True)
class ExternalUnit:
    num: int  # declared ordinal, must equal the 1-based position in the table
    name: str
    identity: UnitIdentity


@dataclass(frozen=True)
class DependencyTable:
    name: str
    own: UnitIdentity
    externals: Tuple[ExternalUnit, ...] = ()


@dataclass(frozen=True, order=True)
class SourceSpan:
    file_name: str
    line_start: int
    column_start: int
    line_end: int
    column_end: int

    @property
    def start(self) -> Position:
        return (self.line_start, self.column_start)

    @property
    def end(self) -> Position:
        return (self.line_end, self.column_end)

    def display_str(self) -> str:
        return f"{self.file_name}:{self.line_start}:{self.column_start}"


@dataclass(frozen=True)
class LocalDefinition:
    kind: str
    name: str
    id: LocalRef
    span: SourceSpan
    parent: Optional[LocalRef] = None
    decl: Optional[LocalRef] = None


@dataclass(frozen=True)
class LocalReference:
    kind: str
    target: LocalRef
    span: SourceSpan


@dataclass(frozen=True)
class Definition:
    kind: str
    name: str
    id: GlobalId
    span: SourceSpan
    parent: Optional[GlobalId] = None  # lookup key only, may be absent from the graph
    decl: Optional[GlobalId] = None  # implemented trait member, may be foreign


@dataclass(frozen=True)
class Reference:
    kind: str
    target: GlobalId
    span: SourceSpan


@dataclass(frozen=True)
class UnitMetadata:
    """The metadata-only view of a unit dump: prelude plus compilation dir."""

    table: DependencyTable
    directory: str = ""

    @property
    def identity(self) -> UnitIdentity:
        return self.table.own


@dataclass
class UnitDump:
    source: str  # path of the dump file, for diagnostics
    metadata: UnitMetadata
    defs: List[LocalDefinition] = field(default_factory=list)
    refs: List[LocalReference] = field(default_factory=list)

    @property
    def identity(self) -> UnitIdentity:
        return self.metadata.identity
