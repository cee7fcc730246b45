"""
Focus selectors and the text grammar the shell accepts for them.

Selector text is parsed into a closed set of selector types; nothing from the
user is ever evaluated as code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Union

from lineprof_explorer.errors import MalformedSelector
from lineprof_explorer.tree import ProfilingNode, SourceRef


@dataclass(frozen=True)
class BySourceRef:
    """Exact match on a node's source reference."""

    ref: SourceRef

    def matches(self, node: ProfilingNode) -> bool:
        return node.source_ref == self.ref

    def describe(self) -> str:
        return f"ref:{self.ref.token()}"


@dataclass(frozen=True)
class ByPredicate:
    """Match the first node for which `predicate` returns True."""

    predicate: Callable[[ProfilingNode], bool]
    description: str = "<predicate>"

    def matches(self, node: ProfilingNode) -> bool:
        return bool(self.predicate(node))

    def describe(self) -> str:
        return self.description


@dataclass(frozen=True)
class ByPath:
    """Structural address: child indices from the tree being focused."""

    indices: tuple[int, ...] = ()

    def describe(self) -> str:
        return "path:" + "/".join(str(i) for i in self.indices)


Selector = Union[BySourceRef, ByPredicate, ByPath]


def label_equals(text: str) -> ByPredicate:
    return ByPredicate(lambda node: node.label == text, f"call:{text}")


def label_contains(text: str) -> ByPredicate:
    return ByPredicate(lambda node: text in node.label, f"match:{text}")


def min_time(seconds: float) -> ByPredicate:
    return ByPredicate(lambda node: node.time >= seconds, f"time>={seconds:g}")


def min_allocated(megabytes: float) -> ByPredicate:
    return ByPredicate(
        lambda node: node.memory_allocated >= megabytes,
        f"alloc>={megabytes:g}"
    )


_THRESHOLD_RE = re.compile(r"^(time|alloc)\s*>=\s*(\S+)$")
_BARE_REF_RE = re.compile(r"^.+:\d+(-\d+)?$")


def _parse_ref(token: str, text: str) -> BySourceRef:
    try:
        return BySourceRef(SourceRef.parse(token))
    except ValueError as exc:
        raise MalformedSelector(f"Bad source reference in {text!r}: {exc}") from None


def _parse_path(token: str, text: str) -> ByPath:
    if not token:
        return ByPath(())
    try:
        indices = tuple(int(part) for part in token.split("/"))
    except ValueError:
        raise MalformedSelector(f"Path must be '/'-separated integers: {text!r}") from None
    if any(index < 0 for index in indices):
        raise MalformedSelector(f"Path indices must be non-negative: {text!r}")
    return ByPath(indices)


def parse_selector(text: str) -> Selector:
    """
    Parse shell input into a Selector.

    Accepted forms:
        ref:FILE:LINE[-LINE]   or a bare FILE:LINE[-LINE]
        path:I/J/K             (empty path is the current root)
        call:NAME              exact label match
        match:TEXT             label substring match
        time>=SECONDS
        alloc>=MEGABYTES

    Raises:
        MalformedSelector: for anything else
    """
    if text is None or not text.strip():
        raise MalformedSelector("Empty selector")
    text = text.strip()

    prefix, sep, rest = text.partition(":")
    if sep:
        if prefix == "ref":
            return _parse_ref(rest, text)
        if prefix == "path":
            return _parse_path(rest.strip(), text)
        if prefix == "call":
            if not rest:
                raise MalformedSelector("call: needs a name")
            return label_equals(rest)
        if prefix == "match":
            if not rest:
                raise MalformedSelector("match: needs some text")
            return label_contains(rest)

    threshold = _THRESHOLD_RE.match(text)
    if threshold:
        kind, raw = threshold.groups()
        try:
            value = float(raw)
        except ValueError:
            raise MalformedSelector(f"Not a number in {text!r}") from None
        if value < 0:
            raise MalformedSelector(f"Threshold must be non-negative: {text!r}")
        return min_time(value) if kind == "time" else min_allocated(value)

    if _BARE_REF_RE.match(text):
        return _parse_ref(text, text)

    raise MalformedSelector(f"Unrecognised selector: {text!r}")
