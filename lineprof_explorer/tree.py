"""Profiling call tree: nodes, source references and traversal helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator


@dataclass(frozen=True)
class SourceRef:
    """A file plus an inclusive line range."""

    path: str
    first_line: int
    last_line: int | None = None

    def __post_init__(self):
        if self.first_line < 1:
            raise ValueError(f"first_line must be >= 1, got {self.first_line}")
        if self.last_line is None:
            object.__setattr__(self, "last_line", self.first_line)
        elif self.last_line < self.first_line:
            raise ValueError(
                f"last_line {self.last_line} is before first_line {self.first_line}"
            )

    @classmethod
    def parse(cls, token: str) -> "SourceRef":
        """
        Parse a `path:line` or `path:first-last` token.

        The split happens on the last colon so Windows drive letters survive.
        """
        path, sep, lines = token.strip().rpartition(":")
        if not sep or not path:
            raise ValueError(f"Not a source reference: {token!r}")
        first, dash, last = lines.partition("-")
        try:
            first_line = int(first)
            last_line = int(last) if dash else None
        except ValueError:
            raise ValueError(f"Bad line range in source reference: {token!r}") from None
        return cls(path=path, first_line=first_line, last_line=last_line)

    def token(self) -> str:
        if self.last_line == self.first_line:
            return f"{self.path}:{self.first_line}"
        return f"{self.path}:{self.first_line}-{self.last_line}"

    def __str__(self) -> str:
        return self.token()


@dataclass(frozen=True)
class ProfilingNode:
    """
    One call or source line in a profile.

    Metrics are aggregates over the node's subtree as measured by the profiler.
    Nodes are never mutated once built; navigation hands out references.
    """

    label: str
    source_ref: SourceRef | None = None
    time: float = 0.0
    memory_released: float = 0.0
    memory_allocated: float = 0.0
    duplications: int = 0
    children: tuple["ProfilingNode", ...] = field(default=(), repr=False)

    def __post_init__(self):
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))
        for name in ("time", "memory_released", "memory_allocated", "duplications"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative for node {self.label!r}")

    @property
    def is_leaf(self) -> bool:
        return not self.children


def iter_nodes(tree: ProfilingNode) -> Iterator[ProfilingNode]:
    """Yield every node in pre-order: node first, then children left to right."""
    pending = [tree]
    while pending:
        node = pending.pop()
        yield node
        pending.extend(reversed(node.children))


def source_paths(tree: ProfilingNode) -> list[str]:
    """Distinct source file paths referenced anywhere in the tree, first-seen order."""
    seen: dict[str, None] = {}
    for node in iter_nodes(tree):
        if node.source_ref is not None:
            seen.setdefault(node.source_ref.path, None)
    return list(seen)


def node_at(tree: ProfilingNode, path: tuple[int, ...]) -> ProfilingNode | None:
    """Follow child indices from `tree`; None if any index is out of range."""
    node = tree
    for index in path:
        if index < 0 or index >= len(node.children):
            return None
        node = node.children[index]
    return node


def _parse_ref(value: Any) -> SourceRef | None:
    if value is None:
        return None
    if isinstance(value, str):
        return SourceRef.parse(value)
    if isinstance(value, dict):
        last_line = value.get("last_line")
        return SourceRef(
            path=value["path"],
            first_line=int(value["first_line"]),
            last_line=int(last_line) if last_line is not None else None
        )
    raise ValueError(f"Unsupported source_ref value: {value!r}")


def _node_from_dict(data: Any, children: tuple[ProfilingNode, ...]) -> ProfilingNode:
    return ProfilingNode(
        label=str(data["label"]),
        source_ref=_parse_ref(data.get("source_ref")),
        time=float(data.get("time", 0.0) or 0.0),
        memory_released=float(data.get("memory_released", 0.0) or 0.0),
        memory_allocated=float(data.get("memory_allocated", 0.0) or 0.0),
        duplications=int(data.get("duplications", 0) or 0),
        children=children
    )


def tree_from_dict(data: dict) -> ProfilingNode:
    """
    Build a tree from a plain JSON object.

    Args:
        data: Mapping with `label` and optional `source_ref`, `time`,
            `memory_released`, `memory_allocated`, `duplications`, `children`

    Returns:
        The root ProfilingNode
    """
    # Post-order with an explicit stack; finished children collect in `built`.
    pending: list[tuple[Any, bool]] = [(data, False)]
    built: list[ProfilingNode] = []
    while pending:
        item, expanded = pending.pop()
        if not isinstance(item, dict) or "label" not in item:
            raise ValueError("Tree node must be an object with a 'label'")
        child_data = item.get("children") or []
        if not expanded:
            pending.append((item, True))
            pending.extend((child, False) for child in reversed(child_data))
            continue
        count = len(child_data)
        children = tuple(built[len(built) - count:]) if count else ()
        if count:
            del built[len(built) - count:]
        built.append(_node_from_dict(item, children))
    return built[0]


def _shallow_dict(node: ProfilingNode) -> dict:
    return {
        "label": node.label,
        "source_ref": node.source_ref.token() if node.source_ref else None,
        "time": node.time,
        "memory_released": node.memory_released,
        "memory_allocated": node.memory_allocated,
        "duplications": node.duplications,
        "children": []
    }


def tree_to_dict(tree: ProfilingNode) -> dict:
    root = _shallow_dict(tree)
    pending = [(tree, root)]
    while pending:
        node, out = pending.pop()
        for child in node.children:
            child_out = _shallow_dict(child)
            out["children"].append(child_out)
            pending.append((child, child_out))
    return root
