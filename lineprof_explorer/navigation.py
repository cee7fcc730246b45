"""Drill-down history and the per-session navigation controller."""

from __future__ import annotations

import logging

from lineprof_explorer.config import REDUCE_DEPTH
from lineprof_explorer.errors import EmptyStackInvariantViolation
from lineprof_explorer.focus import auto_collapse, focus
from lineprof_explorer.projection import SourceReader, TableModel, project
from lineprof_explorer.selectors import Selector
from lineprof_explorer.tree import ProfilingNode

logger = logging.getLogger(__name__)


class NavigationStack:
    """
    Ordered focus history. The bottom frame is the full tree and is never popped.
    """

    def __init__(self, root: ProfilingNode):
        self._frames: list[ProfilingNode] = [root]

    def __len__(self) -> int:
        return len(self._frames)

    def top(self) -> ProfilingNode:
        if not self._frames:
            raise EmptyStackInvariantViolation("navigation stack has no frames")
        return self._frames[-1]

    def root(self) -> ProfilingNode:
        if not self._frames:
            raise EmptyStackInvariantViolation("navigation stack has no frames")
        return self._frames[0]

    def push(self, tree: ProfilingNode) -> None:
        self._frames.append(tree)

    def pop(self) -> ProfilingNode | None:
        """Remove and return the top frame; at the root frame do nothing and return None."""
        if len(self._frames) <= 1:
            return None
        return self._frames.pop()


class NavigationController:
    """
    One explorer session over an immutable profile tree.

    Each navigate pushes a focused, collapsed frame; each back pops one.
    Both return the table for whatever is now on top.
    """

    def __init__(
        self,
        root: ProfilingNode,
        reader: SourceReader | None = None,
        max_depth: int = REDUCE_DEPTH
    ):
        self.stack = NavigationStack(root)
        self.reader = reader if reader is not None else SourceReader()
        self.max_depth = max_depth

    @property
    def current(self) -> ProfilingNode:
        return self.stack.top()

    @property
    def depth(self) -> int:
        """Frames above the root."""
        return len(self.stack) - 1

    def table(self) -> TableModel:
        return project(self.stack.top(), self.reader, self.max_depth)

    def navigate(self, selector: Selector) -> TableModel:
        logger.info("Navigating to %s", selector.describe())
        current = self.stack.top()
        zoomed = focus(current, selector)
        # Focus hands back the current frame on a miss; keep that view as it is.
        if zoomed is not current:
            zoomed = auto_collapse(zoomed)
        self.stack.push(zoomed)
        return self.table()

    def back(self) -> TableModel:
        logger.info("Backing up")
        if self.stack.pop() is None:
            logger.debug("Already at the root frame")
        return self.table()
