"""Narrowing a profile tree to a subtree, and skipping single-child chains."""

from __future__ import annotations

import logging

from lineprof_explorer.errors import SelectorNotFound
from lineprof_explorer.selectors import ByPath, Selector
from lineprof_explorer.tree import ProfilingNode, iter_nodes, node_at

logger = logging.getLogger(__name__)


def locate(tree: ProfilingNode, selector: Selector) -> ProfilingNode:
    """
    Return the first node matching `selector` in pre-order.

    Raises:
        SelectorNotFound: if nothing matches
    """
    if isinstance(selector, ByPath):
        found = node_at(tree, selector.indices)
        if found is None:
            raise SelectorNotFound(selector.describe())
        return found

    for node in iter_nodes(tree):
        if selector.matches(node):
            return node
    raise SelectorNotFound(selector.describe())


def focus(tree: ProfilingNode, selector: Selector) -> ProfilingNode:
    """Subtree rooted at the first match, or `tree` itself when nothing matches."""
    try:
        return locate(tree, selector)
    except SelectorNotFound:
        logger.info("No node matches %s; staying on %r", selector.describe(), tree.label)
        return tree


def auto_collapse(tree: ProfilingNode) -> ProfilingNode:
    """Descend through single-child links to the first branch or leaf."""
    node = tree
    hops = 0
    while len(node.children) == 1:
        node = node.children[0]
        hops += 1
    if hops:
        logger.debug("Collapsed %d single-child hop(s) from %r to %r", hops, tree.label, node.label)
    return node
