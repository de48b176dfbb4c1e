"""
Macro/attribute range index.

save-analysis output has poor span data for macro-expanded code, so the
detector mutes any definition that sits entirely inside a macro invocation
or an attribute. The ranges are recovered by re-parsing the source file with
tree-sitter (syntax only, no expansion) and loaded into an interval tree per
(unit, file).

Ranges cover the whole invocation, from the macro path through the closing
delimiter of its token tree, not just the name token. A span is muted only
when fully nested inside one range; overlapping is not enough.

The per-(unit, file) cache is shared by the detector's worker threads.
Two workers may build the same entry concurrently; both results are equal
(the build is a pure function of the file), the last write wins, and the
only cost is the duplicate parse.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from intervaltree import IntervalTree
from tree_sitter_language_pack import get_parser

from .records import Position, SourceSpan, UnitIdentity

logger = logging.getLogger(__name__)

MacroRange = Tuple[Position, Position]

# Nodes whose whole extent is macro input or attribute tokens.
MACRO_NODE_TYPES = frozenset(
    {
        "macro_invocation",
        "macro_definition",
        "attribute_item",
        "inner_attribute_item",
    }
)
PROC_MACRO_ATTRIBUTES = frozenset(
    {"proc_macro", "proc_macro_derive", "proc_macro_attribute"}
)

# Positions are packed into one integer so the tree only compares ints.
_COLUMN_STRIDE = 1 << 32


def _key(pos: Position) -> int:
    return pos[0] * _COLUMN_STRIDE + pos[1]


class MacroSpans:
    """Interval tree over the macro ranges of one source file."""

    def __init__(self, ranges: Iterable[MacroRange] = ()):
        self.tree = IntervalTree()
        for start, end in ranges:
            # closed range -> half-open interval
            self.tree.addi(_key(start), _key(end) + 1, (start, end))

    def __len__(self) -> int:
        return len(self.tree)

    def containing(self, span: SourceSpan) -> Optional[MacroRange]:
        """Return a range fully enclosing ``span``, if any."""
        needle_start, needle_end = span.start, span.end
        for iv in sorted(self.tree.at(_key(needle_start))):
            start, end = iv.data
            if start <= needle_start and end >= needle_end:
                return start, end
        return None


def _position(point, lines: Sequence[bytes]) -> Position:
    # tree-sitter rows and columns are 0-based, columns count UTF-8 bytes
    row, col = point[0], point[1]
    line = lines[row] if row < len(lines) else b""
    return (row + 1, len(line[:col].decode("utf-8", errors="replace")) + 1)


def _node_range(node, lines: Sequence[bytes]) -> MacroRange:
    return _position(node.start_point, lines), _position(node.end_point, lines)


def _attribute_path(attr_item) -> str:
    for child in attr_item.named_children:
        if child.type == "attribute" and child.named_children:
            return child.named_children[0].text.decode("utf-8", errors="replace")
    return ""


def _leading_attributes(node) -> List:
    attrs = []
    sib = node.prev_named_sibling
    while sib is not None and sib.type in ("attribute_item", "line_comment", "block_comment"):
        if sib.type == "attribute_item":
            attrs.append(sib)
        sib = sib.prev_named_sibling
    return attrs


def _proc_macro_range(fn_node, lines: Sequence[bytes]) -> Optional[MacroRange]:
    """A proc-macro entry point mutes its attributes through its return type."""
    attrs = _leading_attributes(fn_node)
    if not any(_attribute_path(a) in PROC_MACRO_ATTRIBUTES for a in attrs):
        return None
    name = fn_node.child_by_field_name("name")
    logger.info(
        "found proc macro %s",
        name.text.decode("utf-8", errors="replace") if name is not None else "<anonymous>",
    )
    parts = [_node_range(a, lines) for a in attrs]
    ret = fn_node.child_by_field_name("return_type")
    if ret is not None:
        parts.append(_node_range(ret, lines))
    return min(p[0] for p in parts), max(p[1] for p in parts)


_local = threading.local()


def _parser():
    # tree-sitter parsers are not shareable between threads
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = get_parser("rust")
        _local.parser = parser
    return parser


def macro_ranges_for_source(source: bytes) -> List[MacroRange]:
    tree = _parser().parse(source)
    lines = source.split(b"\n")
    ranges: List[MacroRange] = []
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type in MACRO_NODE_TYPES:
            ranges.append(_node_range(node, lines))
            continue
        if node.type == "function_item":
            proc = _proc_macro_range(node, lines)
            if proc is not None:
                ranges.append(proc)
        stack.extend(node.children)
    ranges.sort()
    return ranges


def macro_spans_for_file(path: Path) -> MacroSpans:
    return MacroSpans(macro_ranges_for_source(Path(path).read_bytes()))


class MacroSpanIndex:
    """Lazily built, process-wide cache of ``MacroSpans`` per (unit, file)."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._cache: Dict[Tuple[UnitIdentity, str], MacroSpans] = {}
        self._lock = threading.Lock()

    def spans_for(self, unit: UnitIdentity, file_name: str) -> MacroSpans:
        key = (unit, file_name)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached
        path = self.root / file_name
        try:
            spans = macro_spans_for_file(path)
        except OSError as exc:
            # best effort: an unreadable file under-suppresses, it never aborts
            logger.warning("cannot read %s for macro ranges: %s", path, exc)
            spans = MacroSpans()
        with self._lock:
            self._cache[key] = spans
        return spans

    def is_in_macro(self, unit: UnitIdentity, span: SourceSpan) -> bool:
        found = self.spans_for(unit, span.file_name).containing(span)
        if found is None:
            return False
        start, end = found
        logger.info(
            "%s: unused ignored because of macro: %s till %s",
            span.display_str(),
            start,
            end,
        )
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
