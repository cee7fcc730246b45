"""
Render a focused profile tree into a display table.

Two modes:
  - source aligned: the tree references exactly one readable source file, so
    every line of that file gets a row carrying the metrics attributed to it.
  - depth reduced: anything else; the calls below the focused node are listed
    down to a fixed nesting depth.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from lineprof_explorer.config import REDUCE_DEPTH
from lineprof_explorer.errors import UnreadableSourcePath
from lineprof_explorer.tree import ProfilingNode, SourceRef, iter_nodes, source_paths

logger = logging.getLogger(__name__)


class ProjectionMode(str, Enum):
    SOURCE_ALIGNED = "source_aligned"
    DEPTH_REDUCED = "depth_reduced"


@dataclass(frozen=True)
class TableRow:
    position: int
    label: str
    time: float = 0.0
    memory_released: float = 0.0
    memory_allocated: float = 0.0
    duplications: int = 0
    handle: str | None = None

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "label": self.label,
            "time": self.time,
            "memory_released": self.memory_released,
            "memory_allocated": self.memory_allocated,
            "duplications": self.duplications,
            "handle": self.handle
        }


@dataclass(frozen=True)
class TableModel:
    mode: ProjectionMode
    rows: tuple[TableRow, ...]
    source_path: str | None = None

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "source_path": self.source_path,
            "rows": [row.to_dict() for row in self.rows]
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def row_at(self, position: int) -> TableRow | None:
        for row in self.rows:
            if row.position == position:
                return row
        return None


class SourceReader:
    """
    Reads source files for alignment, remembering both hits and misses.

    A path that failed once is never retried for the lifetime of the reader.
    """

    def __init__(self, source_root: str | Path | None = None):
        self.source_root = Path(source_root) if source_root else None
        self._lines: dict[str, tuple[str, ...]] = {}
        self._failures: dict[str, str] = {}

    def resolve(self, path: str) -> Path:
        candidate = Path(path)
        if self.source_root is not None and not candidate.is_absolute():
            return self.source_root / candidate
        return candidate

    def read(self, path: str) -> tuple[str, ...]:
        """
        Return the lines of `path` without trailing newlines.

        Raises:
            UnreadableSourcePath: if the file is missing or cannot be decoded
        """
        if path in self._lines:
            return self._lines[path]
        if path in self._failures:
            raise UnreadableSourcePath(self._failures[path])

        resolved = self.resolve(path)
        try:
            text = resolved.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            reason = f"Cannot read source {resolved}: {exc}"
            self._failures[path] = reason
            raise UnreadableSourcePath(reason) from exc

        lines = tuple(text.splitlines())
        self._lines[path] = lines
        return lines


def _first_by_ref(tree: ProfilingNode) -> dict[SourceRef, ProfilingNode]:
    """The node a `ref:` selector would land on, for each ref in `tree`."""
    first: dict[SourceRef, ProfilingNode] = {}
    for node in iter_nodes(tree):
        if node.source_ref is not None:
            first.setdefault(node.source_ref, node)
    return first


def _handle_for(
    node: ProfilingNode,
    path: tuple[int, ...],
    first_by_ref: dict[SourceRef, ProfilingNode]
) -> str | None:
    if node.is_leaf:
        return None
    # A ref shared with the focused node or an earlier call would land there instead.
    if node.source_ref is not None and first_by_ref.get(node.source_ref) is node:
        return f"ref:{node.source_ref.token()}"
    return "path:" + "/".join(str(i) for i in path)


def _frontier(tree: ProfilingNode) -> tuple[list[tuple[ProfilingNode, tuple[int, ...]]], bool]:
    """
    Topmost nodes below `tree` that carry a source ref, with their paths.

    The flag is False when some branch ends without reaching a ref, i.e. part
    of the focused time cannot be placed on any source line. A leaf root
    stands for itself.
    """
    if tree.is_leaf:
        if tree.source_ref is not None:
            return [(tree, ())], True
        return [], False

    found = []
    complete = True
    pending = [(child, (index,)) for index, child in reversed(list(enumerate(tree.children)))]
    while pending:
        node, path = pending.pop()
        if node.source_ref is not None:
            found.append((node, path))
            continue
        if node.is_leaf:
            complete = False
            continue
        pending.extend(
            (child, path + (index,))
            for index, child in reversed(list(enumerate(node.children)))
        )
    return found, complete


def _descendant_paths(tree: ProfilingNode) -> list[str]:
    """Source files referenced below `tree`; a leaf root counts itself."""
    if tree.is_leaf:
        return source_paths(tree)
    seen: dict[str, None] = {}
    for child in tree.children:
        for path in source_paths(child):
            seen.setdefault(path, None)
    return list(seen)


def align(tree: ProfilingNode, source_path: str, lines: tuple[str, ...]) -> TableModel:
    """One row per line of `source_path`, with metrics summed per line."""
    first_by_ref = _first_by_ref(tree)
    frontier, _ = _frontier(tree)
    totals: dict[int, list] = {}
    handles: dict[int, str] = {}
    for node, path in frontier:
        if node.source_ref.path != source_path:
            continue
        line = node.source_ref.first_line
        if line > len(lines):
            logger.debug("Dropping %r: line %d is past the end of %s", node.label, line, source_path)
            continue
        entry = totals.setdefault(line, [0.0, 0.0, 0.0, 0])
        entry[0] += node.time
        entry[1] += node.memory_released
        entry[2] += node.memory_allocated
        entry[3] += node.duplications
        handle = _handle_for(node, path, first_by_ref)
        if handle is not None:
            handles.setdefault(line, handle)

    rows = []
    for number, text in enumerate(lines, start=1):
        time, released, allocated, dups = totals.get(number, (0.0, 0.0, 0.0, 0))
        rows.append(
            TableRow(
                position=number,
                label=text,
                time=time,
                memory_released=released,
                memory_allocated=allocated,
                duplications=dups,
                handle=handles.get(number)
            )
        )
    return TableModel(mode=ProjectionMode.SOURCE_ALIGNED, rows=tuple(rows), source_path=source_path)


def reduce_depth(tree: ProfilingNode, max_depth: int = REDUCE_DEPTH) -> TableModel:
    """
    List calls below `tree` down to `max_depth` levels in pre-order.

    Node metrics already include everything beneath them, so hidden levels
    are accounted for by their visible ancestors.
    """
    if max_depth < 1:
        raise ValueError(f"max_depth must be at least 1, got {max_depth}")

    if tree.is_leaf:
        row = TableRow(
            position=1,
            label=tree.label,
            time=tree.time,
            memory_released=tree.memory_released,
            memory_allocated=tree.memory_allocated,
            duplications=tree.duplications
        )
        return TableModel(mode=ProjectionMode.DEPTH_REDUCED, rows=(row,))

    first_by_ref = _first_by_ref(tree)
    rows = []
    pending = [(child, (index,)) for index, child in reversed(list(enumerate(tree.children)))]
    while pending:
        node, path = pending.pop()
        rows.append(
            TableRow(
                position=len(rows) + 1,
                label="  " * (len(path) - 1) + node.label,
                time=node.time,
                memory_released=node.memory_released,
                memory_allocated=node.memory_allocated,
                duplications=node.duplications,
                handle=_handle_for(node, path, first_by_ref)
            )
        )
        if len(path) < max_depth:
            pending.extend(
                (child, path + (index,))
                for index, child in reversed(list(enumerate(node.children)))
            )
    return TableModel(mode=ProjectionMode.DEPTH_REDUCED, rows=tuple(rows))


def choose_mode(tree: ProfilingNode, reader: SourceReader) -> tuple[ProjectionMode, str | None, tuple[str, ...]]:
    """
    Decide the projection mode once, returning the aligned file and its lines if any.

    Only what sits below the focused node counts: the focused node's own ref
    says where it was called from, not what it spends its time on.
    """
    paths = _descendant_paths(tree)
    if len(paths) != 1:
        return ProjectionMode.DEPTH_REDUCED, None, ()
    frontier, complete = _frontier(tree)
    if not frontier or not complete:
        logger.debug("Falling back to call listing: some calls below %r have no source", tree.label)
        return ProjectionMode.DEPTH_REDUCED, None, ()
    try:
        lines = reader.read(paths[0])
    except UnreadableSourcePath as exc:
        logger.debug("Falling back to call listing: %s", exc)
        return ProjectionMode.DEPTH_REDUCED, None, ()
    return ProjectionMode.SOURCE_ALIGNED, paths[0], lines


def project(
    tree: ProfilingNode,
    reader: SourceReader | None = None,
    max_depth: int = REDUCE_DEPTH
) -> TableModel:
    """Project `tree` into a table. Reads source files but never touches the tree."""
    if reader is None:
        reader = SourceReader()
    mode, path, lines = choose_mode(tree, reader)
    if mode is ProjectionMode.SOURCE_ALIGNED:
        return align(tree, path, lines)
    return reduce_depth(tree, max_depth)
