"""
Configuration loader - YAML or pyproject.toml ([tool.deadsym])
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field

import yaml

try:  # py3.11+
    import tomllib as tomli
except ImportError:
    import tomli

from .detector import TRAIT_IMPL_POLICIES, TRAIT_IMPL_RESOLVE
from .indexer import DEFAULT_INDEXER_COMMAND, DEFAULT_INDEX_NAME, DEFAULT_OUTPUT_DIR
from .loader import DEFAULT_VENDOR_MARKERS

CONFIG_FILE_NAMES = (
    'deadsym.yaml',
    'deadsym.yml',
    '.deadsym.yaml',
    '.deadsym.yml',
    'pyproject.toml',  # only with a [tool.deadsym] table
)


@dataclass
class IndexerConfig:
    """External SCIP indexer used for directory inputs"""
    command: List[str] = field(default_factory=lambda: list(DEFAULT_INDEXER_COMMAND))
    output_dir: str = DEFAULT_OUTPUT_DIR
    index_name: str = DEFAULT_INDEX_NAME


@dataclass
class DeadsymConfig:
    workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    vendor_markers: List[str] = field(default_factory=lambda: list(DEFAULT_VENDOR_MARKERS))
    # None = infer the project root from the dump location
    source_root: Optional[str] = None
    # resolve | always (suppress every trait-member implementation)
    trait_impl_policy: str = TRAIT_IMPL_RESOLVE
    macro_suppression: bool = True
    log_level: Optional[str] = None
    indexer: IndexerConfig = field(default_factory=IndexerConfig)


def load_config(config_path: Optional[Path] = None, cwd: Optional[Path] = None) -> DeadsymConfig:
    """
    Load configuration

    Args:
        config_path: explicit config file; discovered from ``cwd`` when None
        cwd: directory searched for config files (default: current directory)

    Returns:
        DeadsymConfig: loaded configuration, defaults when nothing is found
    """
    if config_path:
        return _load_config_file(Path(config_path))

    found_config = find_config_file(cwd)
    if found_config:
        return _load_config_file(found_config)

    return DeadsymConfig()


def find_config_file(cwd: Optional[Path] = None) -> Optional[Path]:
    """Return the first config file found in ``cwd``, by priority."""
    base = Path(cwd) if cwd else Path.cwd()
    for name in CONFIG_FILE_NAMES:
        candidate = base / name
        if candidate.exists():
            if candidate.name == 'pyproject.toml':
                if _has_deadsym_config(candidate):
                    return candidate
                continue
            return candidate

    return None


def _load_config_file(config_path: Path) -> DeadsymConfig:
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    if suffix in ['.yaml', '.yml']:
        return _load_yaml_config(config_path)
    elif suffix == '.toml':
        return _load_toml_config(config_path)
    else:
        raise ValueError(f"unsupported config file format: {suffix}")


def _load_yaml_config(config_path: Path) -> DeadsymConfig:
    with config_path.open('r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ValueError(f"invalid YAML in {config_path}: {exc}") from exc

    if not data:
        return DeadsymConfig()

    return _parse_config_data(data)


def _load_toml_config(config_path: Path) -> DeadsymConfig:
    with config_path.open('rb') as f:
        try:
            data = tomli.load(f)
        except tomli.TOMLDecodeError as exc:
            raise ValueError(f"invalid TOML in {config_path}: {exc}") from exc

    # pyproject.toml layout
    if 'tool' in data and 'deadsym' in data['tool']:
        config_data = data['tool']['deadsym']
    else:
        config_data = data

    return _parse_config_data(config_data)


def _has_deadsym_config(pyproject_path: Path) -> bool:
    try:
        with pyproject_path.open('rb') as f:
            data = tomli.load(f)
    except (OSError, tomli.TOMLDecodeError):
        return False
    return 'tool' in data and 'deadsym' in data['tool']


def _parse_config_data(data: Dict[str, Any]) -> DeadsymConfig:
    if not isinstance(data, dict):
        raise ValueError("config root must be a mapping")
    config = DeadsymConfig()

    if 'workers' in data:
        try:
            workers = int(data['workers'])
        except (TypeError, ValueError):
            raise ValueError(f"workers must be an integer, got {data['workers']!r}") from None
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        config.workers = workers
    if 'vendor_markers' in data:
        markers = data['vendor_markers'] or []
        if not isinstance(markers, list):
            raise ValueError("vendor_markers must be a list")
        config.vendor_markers = [str(m) for m in markers]
    if data.get('source_root'):
        config.source_root = str(data['source_root'])
    if 'trait_impl_policy' in data:
        policy = str(data['trait_impl_policy']).strip().lower()
        if policy not in TRAIT_IMPL_POLICIES:
            raise ValueError(
                f"trait_impl_policy must be one of {', '.join(TRAIT_IMPL_POLICIES)}: {policy}"
            )
        config.trait_impl_policy = policy
    if 'macro_suppression' in data:
        config.macro_suppression = bool(data['macro_suppression'])
    if data.get('log_level'):
        config.log_level = str(data['log_level']).upper()

    indexer_data = data.get('indexer')
    if isinstance(indexer_data, dict):
        indexer = IndexerConfig()
        if 'command' in indexer_data:
            command = indexer_data['command']
            if isinstance(command, str):
                command = command.split()
            if not command:
                raise ValueError("indexer.command must not be empty")
            indexer.command = [str(part) for part in command]
        if 'output_dir' in indexer_data:
            indexer.output_dir = str(indexer_data['output_dir'])
        if 'index_name' in indexer_data:
            indexer.index_name = str(indexer_data['index_name'])
        config.indexer = indexer

    return config
