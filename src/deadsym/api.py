"""
High-level entry points: pick the ingestion format for a path and build the
matching ``UnusedSymbolAnalyzer``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config_loader import DeadsymConfig
from .detector import DeadSymbolDetector, UnusedSymbolAnalyzer
from .graph import SymbolGraph, assemble
from .indexer import index_path_for, run_indexer
from .loader import load_build
from .macro_spans import MacroSpanIndex
from .save_analysis import SAVE_ANALYSIS_SUFFIX
from .scip_analysis import ScipAnalysis
from .scip_index import SCIP_SUFFIX

logger = logging.getLogger(__name__)


def default_source_root(dump_path: Path) -> Path:
    """Project root for ``<root>/target/<profile>/deps/save-analysis/<x>.json``."""
    parents = Path(dump_path).resolve().parents
    if len(parents) > 4:
        return parents[4]
    return Path(dump_path).resolve().parent


def build_graph(dump_path: Path, config: DeadsymConfig) -> SymbolGraph:
    build = load_build(dump_path, workers=config.workers, vendor_markers=config.vendor_markers)
    graph = assemble(build.units)
    logger.info(
        "assembled %d definitions, %d referenced ids from %d units (%d vendored, %d stale)",
        len(graph.defs),
        len(graph.refs),
        len(graph.covered_units),
        len(build.vendored),
        len(build.stale),
    )
    return graph


def analyze_save_analysis(dump_path: Path, config: Optional[DeadsymConfig] = None) -> DeadSymbolDetector:
    config = config or DeadsymConfig()
    graph = build_graph(dump_path, config)
    macro_index = None
    if config.macro_suppression:
        root = Path(config.source_root) if config.source_root else default_source_root(dump_path)
        macro_index = MacroSpanIndex(root)
    return DeadSymbolDetector(
        graph,
        macro_index=macro_index,
        workers=config.workers,
        trait_impl_policy=config.trait_impl_policy,
    )


def analyze_scip(index_path: Path) -> ScipAnalysis:
    return ScipAnalysis.from_path(index_path)


def analyze_directory(project: Path, config: Optional[DeadsymConfig] = None) -> ScipAnalysis:
    config = config or DeadsymConfig()
    # the indexer runs with the project as cwd, so its arguments must not be relative
    project = Path(project).resolve()
    output = index_path_for(project, config.indexer.output_dir, config.indexer.index_name)
    run_indexer(project, output, config.indexer.command)
    return analyze_scip(output)


def analyze_path(path: Path, config: Optional[DeadsymConfig] = None) -> Optional[UnusedSymbolAnalyzer]:
    """Dispatch on the input kind; None for unknown paths."""
    path = Path(path)
    name = path.name.lower()
    if name.endswith(SCIP_SUFFIX):
        return analyze_scip(path)
    if name.endswith(SAVE_ANALYSIS_SUFFIX):
        return analyze_save_analysis(path, config)
    if path.is_dir():
        return analyze_directory(path, config)
    return None
