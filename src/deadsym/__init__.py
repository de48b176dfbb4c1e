"""
deadsym - find unused definitions across a multi-crate build

Simple API:

    from deadsym import analyze_path

    analyzer = analyze_path("target/debug/deps/save-analysis/mycrate.json")
    for ud in analyzer.unused_definitions():
        print(ud.display())

``analyze_path`` also accepts a ``.scip`` index or a project directory (the
SCIP indexer is run first).
"""


def analyze_path(*args, **kwargs):
    """Lazy import wrapper for analyze_path to keep package import light."""
    from .api import analyze_path as _analyze_path

    return _analyze_path(*args, **kwargs)


from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("deadsym")
except PackageNotFoundError:
    # Fallback for development/uninstalled package
    __version__ = "unknown"

__all__ = ["analyze_path", "__version__"]
