"""Producers of profile trees from files on disk."""

from lineprof_explorer.loaders.json_tree import load_json_tree
from lineprof_explorer.loaders.perfetto import load_perfetto_tree

__all__ = [
    "load_json_tree",
    "load_perfetto_tree"
]
