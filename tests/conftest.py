import sys
from pathlib import Path

import pytest

# Ensure repo_root/src (and the test helpers next to this file) are importable
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
TESTS_PATH = Path(__file__).resolve().parent
for p in (SRC_PATH, TESTS_PATH):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from builders import SaveAnalysisDir  # noqa: E402


@pytest.fixture
def project(tmp_path: Path) -> SaveAnalysisDir:
    """A project root with an empty target/debug/deps/save-analysis dir."""
    return SaveAnalysisDir(tmp_path)
