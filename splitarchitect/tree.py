from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

try:
    from typing import Self
except ImportError:
    from typing_extensions import Self

from splitarchitect.elements.taxa import TaxonId


class Node:
    """
    Rooted tree node.

    Besides the usual Newick fields a node carries ``taxa``: the taxon ids
    attached to it. Leaves normally carry exactly one taxon, but trees rebuilt
    from split systems may attach a taxon to an internal node as well.
    """

    __slots__ = (
        "children",
        "parent",
        "name",
        "length",
        "confidence",
        "probability",
        "taxa",
        "values",
    )

    children: List[Self]
    parent: Optional[Self]
    name: str
    length: Optional[float]
    confidence: Optional[float]
    probability: Optional[float]
    taxa: List[TaxonId]
    values: Dict[str, Any]

    def __init__(
        self,
        children: Optional[List[Self]] = None,
        name: str = "",
        length: Optional[float] = None,
        confidence: Optional[float] = None,
        probability: Optional[float] = None,
        taxa: Optional[Iterable[int]] = None,
        values: Optional[Dict[str, Any]] = None,
    ):
        self.children = list(children) if children is not None else []
        for child in self.children:
            child.parent = self
        self.parent = None
        self.name = name
        self.length = length
        self.confidence = confidence
        self.probability = probability
        self.taxa = [TaxonId(t) for t in taxa] if taxa is not None else []
        self.values = dict(values) if values is not None else {}

    def __repr__(self) -> str:
        return f"Node({self.name!r}, taxa={self.taxa}, children={len(self.children)})"

    def __str__(self) -> str:
        return self.to_newick(lengths=False)

    def append_child(self, node: Self) -> Self:
        node.parent = self
        self.children.append(node)
        return node

    def add_taxon(self, taxon: int) -> None:
        if taxon not in self.taxa:
            self.taxa.append(TaxonId(taxon))

    def is_leaf(self) -> bool:
        return len(self.children) == 0

    def is_internal(self) -> bool:
        return bool(self.children)

    def get_root(self) -> Self:
        cur = self
        while cur.parent is not None:
            cur = cur.parent
        return cur

    def traverse(self) -> List[Self]:
        """
        Return all nodes of the subtree rooted at this node in pre-order.
        Iterative, so deep caterpillar trees do not hit the recursion limit.
        """
        nodes: List[Self] = []
        stack: List[Self] = [self]
        while stack:
            current = stack.pop()
            nodes.append(current)
            for child in reversed(current.children):
                stack.append(child)
        return nodes

    def postorder(self) -> List[Self]:
        """Children before parents, left to right."""
        nodes: List[Self] = []
        stack: List[Self] = [self]
        while stack:
            current = stack.pop()
            nodes.append(current)
            stack.extend(current.children)
        nodes.reverse()
        return nodes

    def get_leaves(self) -> List[Self]:
        return [node for node in self.traverse() if not node.children]

    def get_current_order(self) -> tuple[str, ...]:
        """Leaf names from left to right."""
        return tuple(str(leaf.name) for leaf in self.get_leaves())

    def deep_copy(self) -> Self:
        new_node = type(self)(
            name=self.name,
            length=self.length,
            confidence=self.confidence,
            probability=self.probability,
            taxa=self.taxa,
            values=self.values,
        )
        for child in self.children:
            new_node.append_child(child.deep_copy())
        return new_node

    def to_newick(self, lengths: bool = True, confidences: bool = False) -> str:
        from splitarchitect.parser.newick_writer import render_newick

        return render_newick(self, lengths=lengths, confidences=confidences).text
