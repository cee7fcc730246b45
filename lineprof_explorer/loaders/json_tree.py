"""Load a profile tree saved as JSON."""

from __future__ import annotations

import json
from pathlib import Path

from lineprof_explorer.tree import ProfilingNode, tree_from_dict


def load_json_tree(path: str | Path) -> ProfilingNode:
    """
    Read a tree file written by `tree_to_dict` (or by hand).

    The file may hold the root node directly or wrap it as {"tree": {...}}.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and "tree" in data and "label" not in data:
        data = data["tree"]
    return tree_from_dict(data)
