"""
Unit loader: discover sibling dumps of a leaf dump and keep those belonging
to the current build.

A sibling is admitted when

 - its own identity is the leaf's identity or one of the leaf's dependencies
   (anything else is left over from another compile run), and
 - its compilation directory does not look like a vendored checkout
   (crates.io registry or git dependency cache).

Siblings are decoded and filtered independently on a thread pool; the
admitted units are then returned ordered by path, so the set of units
never depends on completion order.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .errors import IoError
from .records import UnitDump, UnitIdentity, UnitMetadata
from .save_analysis import SAVE_ANALYSIS_SUFFIX, read_unit

logger = logging.getLogger(__name__)

DEFAULT_VENDOR_MARKERS: Tuple[str, ...] = (
    ".cargo/registry/src/github.com",
    ".cargo/git/",
)

ADMITTED = "admitted"
STALE = "stale"
VENDORED = "vendored"


@dataclass
class LoadedBuild:
    leaf: UnitMetadata
    units: List[UnitDump] = field(default_factory=list)
    vendored: List[Path] = field(default_factory=list)
    stale: List[Path] = field(default_factory=list)


def admissible_identities(leaf: UnitMetadata) -> Set[UnitIdentity]:
    allowed = {ext.identity for ext in leaf.table.externals}
    allowed.add(leaf.identity)
    return allowed


def is_vendored(directory: str, markers: Iterable[str] = DEFAULT_VENDOR_MARKERS) -> bool:
    return any(marker and marker in directory for marker in markers)


def candidate_files(directory: Path) -> List[Path]:
    try:
        entries = list(Path(directory).iterdir())
    except OSError as exc:
        raise IoError(f"cannot list {directory}: {exc}") from exc
    return sorted(p for p in entries if p.is_file() and p.suffix == SAVE_ANALYSIS_SUFFIX)


def classify_unit(
    unit: UnitDump, allowed: Set[UnitIdentity], markers: Sequence[str]
) -> str:
    if unit.identity not in allowed:
        return STALE
    if is_vendored(unit.metadata.directory, markers):
        return VENDORED
    return ADMITTED


def _load_candidate(
    path: Path, allowed: Set[UnitIdentity], markers: Sequence[str]
) -> Tuple[str, Path, Optional[UnitDump]]:
    unit = read_unit(path)
    verdict = classify_unit(unit, allowed, markers)
    if verdict == STALE:
        logger.debug("skipping %s: unit %s is not part of this build", path, unit.identity)
        return verdict, path, None
    if verdict == VENDORED:
        logger.info("ignoring vendored unit %s", path)
        return verdict, path, None
    logger.info("processing %s", path)
    return verdict, path, unit


def load_build(
    leaf_path: Path,
    workers: Optional[int] = None,
    vendor_markers: Sequence[str] = DEFAULT_VENDOR_MARKERS,
) -> LoadedBuild:
    """Load every admitted unit next to ``leaf_path``.

    The first decoding error aborts the whole load; no partial build is
    returned.
    """
    leaf_path = Path(leaf_path)
    leaf = read_unit(leaf_path).metadata
    allowed = admissible_identities(leaf)
    files = candidate_files(leaf_path.parent)

    build = LoadedBuild(leaf=leaf)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        # map() yields in submission order and re-raises the first failure
        outcomes = list(pool.map(lambda p: _load_candidate(p, allowed, vendor_markers), files))

    for verdict, path, unit in outcomes:
        if verdict == ADMITTED and unit is not None:
            build.units.append(unit)
        elif verdict == VENDORED:
            build.vendored.append(path)
        else:
            build.stale.append(path)
    return build
