"""
PQ-tree over integer taxa.

A PQ-tree represents a family of permutations of its leaves: the children of a
P-node may be permuted arbitrarily, the children of a Q-node only reversed.
``accept(subset)`` restricts the family to the permutations in which ``subset``
is consecutive, using the Booth-Lueker reduction templates. When no such
permutation exists the subset is rejected and the tree is left unchanged.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    LEAF = "leaf"
    P = "P"
    Q = "Q"


class Label(Enum):
    EMPTY = 0
    PARTIAL = 1
    FULL = 2


class PQNode:
    __slots__ = ("kind", "children", "taxon")

    def __init__(
        self,
        kind: NodeKind,
        children: Optional[List["PQNode"]] = None,
        taxon: int = 0,
    ):
        self.kind = kind
        self.children: List["PQNode"] = children if children is not None else []
        self.taxon = taxon

    def __repr__(self) -> str:
        if self.kind is NodeKind.LEAF:
            return str(self.taxon)
        inner = " ".join(repr(c) for c in self.children)
        return f"({inner})" if self.kind is NodeKind.P else f"[{inner}]"


class _Reject(Exception):
    """Internal signal: the subset cannot be made consecutive."""


def _group(nodes: List[PQNode]) -> List[PQNode]:
    """Wrap several siblings into one P-node; zero or one node is returned as is."""
    if len(nodes) <= 1:
        return list(nodes)
    return [PQNode(NodeKind.P, list(nodes))]


class PQTree:
    """
    PQ-tree whose leaves are the given taxa, initially a single P-node.

    Example:
        >>> tree = PQTree([1, 2, 3, 4])
        >>> tree.accept({2, 4})
        True
    """

    def __init__(self, taxa: Iterable[int]):
        leaves = [PQNode(NodeKind.LEAF, taxon=t) for t in taxa]
        self._taxa = {leaf.taxon for leaf in leaves}
        if len(leaves) == 1:
            self.root = leaves[0]
        else:
            self.root = PQNode(NodeKind.P, leaves)

    def __repr__(self) -> str:
        return f"PQTree({self.root!r})"

    # ------------------------------------------------------------------
    # labelling
    # ------------------------------------------------------------------

    def _count_pertinent(self, subset: frozenset) -> Dict[int, int]:
        """Number of subset leaves below every node, keyed by ``id(node)``."""
        counts: Dict[int, int] = {}
        order: List[PQNode] = []
        stack = [self.root]
        while stack:
            v = stack.pop()
            order.append(v)
            stack.extend(v.children)
        for v in reversed(order):
            if v.kind is NodeKind.LEAF:
                counts[id(v)] = 1 if v.taxon in subset else 0
            else:
                counts[id(v)] = sum(counts[id(c)] for c in v.children)
        return counts

    def _leaf_counts(self) -> Dict[int, int]:
        counts: Dict[int, int] = {}
        order: List[PQNode] = []
        stack = [self.root]
        while stack:
            v = stack.pop()
            order.append(v)
            stack.extend(v.children)
        for v in reversed(order):
            counts[id(v)] = 1 if v.kind is NodeKind.LEAF else sum(
                counts[id(c)] for c in v.children
            )
        return counts

    # ------------------------------------------------------------------
    # reduction
    # ------------------------------------------------------------------

    def accept(self, subset: Iterable[int]) -> bool:
        """
        Require ``subset`` to be consecutive.

        Returns False, without modifying the tree, if that is impossible.
        """
        members = frozenset(subset)
        if not members <= self._taxa:
            return False
        if len(members) <= 1 or len(members) == len(self._taxa):
            return True

        pertinent = self._count_pertinent(members)
        sizes = self._leaf_counts()
        total = len(members)

        def label(v: PQNode) -> Label:
            count = pertinent[id(v)]
            if count == 0:
                return Label.EMPTY
            if count == sizes[id(v)]:
                return Label.FULL
            return Label.PARTIAL

        root = self.root
        while True:
            for child in root.children:
                if pertinent[id(child)] == total:
                    root = child
                    break
            else:
                break

        if label(root) is Label.FULL:
            return True

        try:
            if root.kind is NodeKind.P:
                kind, children = self._reduce_p_root(root, label)
            else:
                kind, children = self._reduce_q_root(root, label)
        except _Reject:
            return False

        root.kind = kind
        root.children = children
        return True

    def _end_partial(self, v: PQNode, label) -> List[PQNode]:
        """
        Sequence replacing a partial node: empty part first, full part last.
        """
        if v.kind is NodeKind.P:
            empty = [c for c in v.children if label(c) is Label.EMPTY]
            full = [c for c in v.children if label(c) is Label.FULL]
            partial = [c for c in v.children if label(c) is Label.PARTIAL]
            if len(partial) > 1:
                raise _Reject()
            middle = self._end_partial(partial[0], label) if partial else []
            return _group(empty) + middle + _group(full)

        labels = [label(c) for c in v.children]
        children = v.children
        if not self._is_end_pattern(labels):
            labels = labels[::-1]
            children = children[::-1]
            if not self._is_end_pattern(labels):
                raise _Reject()
        result: List[PQNode] = []
        for child, child_label in zip(children, labels):
            if child_label is Label.PARTIAL:
                result.extend(self._end_partial(child, label))
            else:
                result.append(child)
        return result

    @staticmethod
    def _is_end_pattern(labels: List[Label]) -> bool:
        """True for E* [P] F*."""
        stage = 0
        for lab in labels:
            if lab is Label.EMPTY:
                if stage > 0:
                    return False
            elif lab is Label.PARTIAL:
                if stage > 0:
                    return False
                stage = 1
            else:
                stage = 2
        return True

    def _reduce_p_root(self, v: PQNode, label):
        empty = [c for c in v.children if label(c) is Label.EMPTY]
        full = [c for c in v.children if label(c) is Label.FULL]
        partial = [c for c in v.children if label(c) is Label.PARTIAL]
        if len(partial) > 2:
            raise _Reject()
        if not partial:
            return NodeKind.P, empty + _group(full)

        sequence = self._end_partial(partial[0], label) + _group(full)
        if len(partial) == 2:
            sequence += self._end_partial(partial[1], label)[::-1]
        if not empty:
            return NodeKind.Q, sequence
        return NodeKind.P, empty + [PQNode(NodeKind.Q, sequence)]

    def _reduce_q_root(self, v: PQNode, label):
        labels = [label(c) for c in v.children]
        pertinent = [i for i, lab in enumerate(labels) if lab is not Label.EMPTY]
        first, last = pertinent[0], pertinent[-1]
        for i in range(first, last + 1):
            if labels[i] is Label.EMPTY:
                raise _Reject()
            if labels[i] is Label.PARTIAL and i not in (first, last):
                raise _Reject()

        children: List[PQNode] = list(v.children[:first])
        for i in range(first, last + 1):
            child = v.children[i]
            if labels[i] is not Label.PARTIAL:
                children.append(child)
            elif i == first:
                children.extend(self._end_partial(child, label))
            else:
                children.extend(self._end_partial(child, label)[::-1])
        children.extend(v.children[last + 1 :])
        return NodeKind.Q, children

    # ------------------------------------------------------------------
    # extraction
    # ------------------------------------------------------------------

    def extract_ordering(self) -> List[int]:
        """One permutation of the taxa allowed by the tree (leaves left to right)."""
        ordering: List[int] = []
        stack = [self.root]
        while stack:
            v = stack.pop()
            if v.kind is NodeKind.LEAF:
                ordering.append(v.taxon)
            else:
                stack.extend(reversed(v.children))
        return ordering
