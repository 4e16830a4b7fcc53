from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional

from splitarchitect.parser.tokenizer import RESERVED

if TYPE_CHECKING:
    from splitarchitect.tree import Node


@dataclass
class LeafSpan:
    """Character range ``[start, end)`` of a leaf label in rendered text."""

    node: "Node"
    start: int
    end: int


@dataclass
class RenderedNewick:
    text: str
    leaf_spans: List[LeafSpan] = field(default_factory=list)


def format_number(value: float, precision: int = 8) -> str:
    """Fixed-point with ``precision`` decimals, trailing zeros removed."""
    text = f"{value:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def quote_label(label: str) -> str:
    """Quote a label if it contains whitespace or reserved characters."""
    if not label:
        return ""
    if any(ch.isspace() or ch in RESERVED for ch in label):
        return "'" + label.replace("'", "''") + "'"
    return label


def render_newick(
    tree: "Node",
    lengths: bool = True,
    confidences: bool = False,
    label: Optional[Callable[["Node"], str]] = None,
    precision: int = 8,
    terminate: bool = True,
) -> RenderedNewick:
    """
    Render ``tree`` as Newick and record where each leaf label was written.

    Args:
        tree: root of the tree
        lengths: write ``:length`` for nodes that have one
        confidences: also write ``:confidence`` after the length
        label: node to label function; defaults to ``node.name``
        precision: number of decimals for numbers
        terminate: append the final ``;``
    """
    label = label or (lambda node: node.name)
    parts: List[str] = []
    spans: List[LeafSpan] = []
    offset = 0

    def emit(text: str) -> None:
        nonlocal offset
        parts.append(text)
        offset += len(text)

    def emit_values(node: "Node") -> None:
        if not lengths or node.parent is None:
            return
        if node.length is not None:
            emit(":" + format_number(node.length, precision))
            if confidences and node.confidence is not None:
                emit(":" + format_number(node.confidence, precision))

    # (node, children_done) pairs keep the walk iterative
    stack: List[tuple] = [(tree, False)]
    while stack:
        node, done = stack.pop()
        if isinstance(node, str):
            emit(node)
            continue
        if node.children and not done:
            emit("(")
            stack.append((node, True))
            for index in range(len(node.children) - 1, -1, -1):
                stack.append((node.children[index], False))
                if index > 0:
                    stack.append((",", False))
            continue
        if node.children:
            emit(")")
            emit(quote_label(label(node)))
        else:
            text = quote_label(label(node))
            spans.append(LeafSpan(node, offset, offset + len(text)))
            emit(text)
        emit_values(node)

    if terminate:
        emit(";")
    return RenderedNewick("".join(parts), spans)
