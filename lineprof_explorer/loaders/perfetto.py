"""Build a profile tree from the slice hierarchy of a Perfetto trace."""

from __future__ import annotations

import logging
from pathlib import Path

from perfetto.trace_processor import TraceProcessor

from lineprof_explorer.tree import ProfilingNode

logger = logging.getLogger(__name__)

SLICE_QUERY = """
SELECT id, parent_id, name, ts, dur, depth
FROM slice
ORDER BY ts, depth
"""


def _q(tp: TraceProcessor, sql: str) -> list[dict]:
    """Execute a SQL query and return results as a list of dictionaries."""
    result = tp.query(sql)
    rows = []
    for row in result:
        row_dict = {col: getattr(row, col) for col in result.column_names}
        rows.append(row_dict)
    return rows


def _slice_seconds(dur) -> float:
    # Unfinished slices report dur = -1.
    if dur is None or dur < 0:
        return 0.0
    return dur / 1e9


def build_slice_tree(rows: list[dict], root_label: str) -> ProfilingNode:
    """
    Turn slice rows (id, parent_id, name, ts, dur, depth) into a tree.

    Top-level slices become children of a synthetic root whose time is the
    sum of theirs. Children keep timestamp order.
    """
    children_of: dict[int | None, list[dict]] = {}
    known_ids = {row["id"] for row in rows}
    for row in sorted(rows, key=lambda r: (r.get("ts") or 0, r.get("depth") or 0)):
        parent = row.get("parent_id")
        if parent is not None and parent not in known_ids:
            logger.debug("Slice %s has unknown parent %s; attaching to root", row["id"], parent)
            parent = None
        children_of.setdefault(parent, []).append(row)

    built: dict[int, ProfilingNode] = {}
    for row in sorted(rows, key=lambda r: r.get("depth") or 0, reverse=True):
        built[row["id"]] = ProfilingNode(
            label=row.get("name") or "<unnamed slice>",
            time=_slice_seconds(row.get("dur")),
            children=tuple(built[child["id"]] for child in children_of.get(row["id"], []))
        )

    top_level = tuple(built[row["id"]] for row in children_of.get(None, []))
    return ProfilingNode(
        label=root_label,
        time=sum(node.time for node in top_level),
        children=top_level
    )


def load_perfetto_tree(trace_path: str | Path) -> ProfilingNode:
    """
    Load a Perfetto trace and return its slices as a profile tree.

    Perfetto slices carry no source references, so the explorer always shows
    these trees as call listings.
    """
    trace_path = str(trace_path)
    tp = TraceProcessor(trace=trace_path)
    try:
        rows = _q(tp, SLICE_QUERY)
    finally:
        tp.close()
    logger.info("Loaded %d slices from %s", len(rows), trace_path)
    return build_slice_tree(rows, Path(trace_path).name)
