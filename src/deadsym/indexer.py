"""
Invocation of the external SCIP indexer for directory inputs.
"""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from .errors import ExternalToolError, IoError

logger = logging.getLogger(__name__)

DEFAULT_INDEXER_COMMAND: List[str] = ["rust-analyzer", "scip", "{project}", "--output", "{output}"]
DEFAULT_OUTPUT_DIR = "target"
DEFAULT_INDEX_NAME = "index.scip"


def index_path_for(project: Path, output_dir: str = DEFAULT_OUTPUT_DIR, index_name: str = DEFAULT_INDEX_NAME) -> Path:
    """Return the index location under ``project``, creating its directory."""
    target = Path(project) / output_dir
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IoError(f"cannot create {target}: {exc}") from exc
    return target / index_name


def build_command(template: Sequence[str], project: Path, output: Path) -> List[str]:
    return [part.format(project=str(project), output=str(output)) for part in template]


def run_indexer(
    project: Path,
    output: Path,
    command: Sequence[str] = DEFAULT_INDEXER_COMMAND,
) -> Path:
    args = build_command(command, project, output)
    logger.info("running %s", " ".join(args))
    try:
        proc = subprocess.run(args, capture_output=True, text=True, cwd=str(project))
    except OSError as exc:
        raise ExternalToolError(f"failed to start {args[0]}: {exc}") from exc
    if proc.returncode != 0:
        detail = (proc.stderr or proc.stdout or "").strip().splitlines()[-5:]
        raise ExternalToolError(
            f"{args[0]} exited with status {proc.returncode}"
            + (": " + " | ".join(detail) if detail else "")
        )
    if not Path(output).exists():
        raise ExternalToolError(f"{args[0]} did not produce {output}")
    return Path(output)
