"""
Split network graph stored as an arena.

Nodes and edges are addressed by integer ids that index into flat lists, so
rewiring an edge never invalidates another reference. Deleted slots are set
to ``None`` and their ids are not reused until :meth:`SplitsGraph.clear`.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

from splitarchitect.elements.taxa import TaxonId


@dataclass
class _NodeData:
    taxa: List[TaxonId] = field(default_factory=list)
    edges: List[int] = field(default_factory=list)
    label: Optional[str] = None


@dataclass
class _EdgeData:
    source: int
    target: int
    split: int = 0
    weight: float = 1.0
    label: Optional[str] = None


class SplitsGraph:
    """
    Undirected multigraph whose edges carry split ids (0 means "no split").

    Every taxon is attached to at most one node; a node may hold several taxa.
    """

    def __init__(self) -> None:
        self._nodes: List[Optional[_NodeData]] = []
        self._edges: List[Optional[_EdgeData]] = []
        self._taxon2node: Dict[int, int] = {}
        self._node_count = 0
        self._edge_count = 0

    def __repr__(self) -> str:
        return f"SplitsGraph(nodes={self._node_count}, edges={self._edge_count})"

    # ------------------------------------------------------------------
    # structure
    # ------------------------------------------------------------------

    def new_node(self) -> int:
        self._nodes.append(_NodeData())
        self._node_count += 1
        return len(self._nodes) - 1

    def _node(self, v: int) -> _NodeData:
        data = self._nodes[v] if 0 <= v < len(self._nodes) else None
        if data is None:
            raise KeyError(f"No node {v}")
        return data

    def _edge(self, e: int) -> _EdgeData:
        data = self._edges[e] if 0 <= e < len(self._edges) else None
        if data is None:
            raise KeyError(f"No edge {e}")
        return data

    def delete_node(self, v: int) -> None:
        data = self._node(v)
        for e in list(data.edges):
            self.delete_edge(e)
        for t in data.taxa:
            del self._taxon2node[t]
        self._nodes[v] = None
        self._node_count -= 1

    def new_edge(self, v: int, w: int, split: int = 0, weight: float = 1.0) -> int:
        self._node(v)
        self._node(w)
        self._edges.append(_EdgeData(v, w, split, weight))
        e = len(self._edges) - 1
        self._nodes[v].edges.append(e)
        if w != v:
            self._nodes[w].edges.append(e)
        self._edge_count += 1
        return e

    def delete_edge(self, e: int) -> None:
        data = self._edge(e)
        self._node(data.source).edges.remove(e)
        if data.target != data.source:
            self._node(data.target).edges.remove(e)
        self._edges[e] = None
        self._edge_count -= 1

    def source(self, e: int) -> int:
        return self._edge(e).source

    def target(self, e: int) -> int:
        return self._edge(e).target

    def opposite(self, v: int, e: int) -> int:
        data = self._edge(e)
        if data.source == v:
            return data.target
        if data.target == v:
            return data.source
        raise ValueError(f"Node {v} is not incident to edge {e}")

    def adjacent_edges(self, v: int) -> List[int]:
        """Snapshot of the edges incident to ``v``."""
        return list(self._node(v).edges)

    def degree(self, v: int) -> int:
        return len(self._node(v).edges)

    def common_edge(self, v: int, w: int) -> Optional[int]:
        for e in self._node(v).edges:
            if self.opposite(v, e) == w:
                return e
        return None

    def nodes(self) -> Iterator[int]:
        return (v for v, data in enumerate(self._nodes) if data is not None)

    def edges(self) -> Iterator[int]:
        return (e for e, data in enumerate(self._edges) if data is not None)

    @property
    def number_of_nodes(self) -> int:
        return self._node_count

    @property
    def number_of_edges(self) -> int:
        return self._edge_count

    def clear(self) -> None:
        self._nodes.clear()
        self._edges.clear()
        self._taxon2node.clear()
        self._node_count = 0
        self._edge_count = 0

    # ------------------------------------------------------------------
    # taxa
    # ------------------------------------------------------------------

    def add_taxon(self, v: int, taxon: int) -> None:
        current = self._taxon2node.get(taxon)
        if current is not None and current != v:
            self._node(current).taxa.remove(TaxonId(taxon))
        data = self._node(v)
        if taxon not in data.taxa:
            data.taxa.append(TaxonId(taxon))
        self._taxon2node[taxon] = v

    def get_taxa(self, v: int) -> List[TaxonId]:
        return list(self._node(v).taxa)

    def clear_taxa(self, v: int) -> None:
        data = self._node(v)
        for t in data.taxa:
            del self._taxon2node[t]
        data.taxa.clear()

    def taxon_to_node(self, taxon: int) -> Optional[int]:
        return self._taxon2node.get(taxon)

    def taxa(self) -> List[TaxonId]:
        return sorted(TaxonId(t) for t in self._taxon2node)

    # ------------------------------------------------------------------
    # attributes
    # ------------------------------------------------------------------

    def split(self, e: int) -> int:
        return self._edge(e).split

    def set_split(self, e: int, split_id: int) -> None:
        self._edge(e).split = split_id

    def weight(self, e: int) -> float:
        return self._edge(e).weight

    def set_weight(self, e: int, weight: float) -> None:
        self._edge(e).weight = float(weight)

    def edge_label(self, e: int) -> Optional[str]:
        return self._edge(e).label

    def set_edge_label(self, e: int, label: Optional[str]) -> None:
        self._edge(e).label = label

    def node_label(self, v: int) -> Optional[str]:
        return self._node(v).label

    def set_node_label(self, v: int, label: Optional[str]) -> None:
        self._node(v).label = label

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def is_connected(self) -> bool:
        start = next(self.nodes(), None)
        if start is None:
            return True
        seen = {start}
        queue = deque([start])
        while queue:
            v = queue.popleft()
            for e in self._node(v).edges:
                w = self.opposite(v, e)
                if w not in seen:
                    seen.add(w)
                    queue.append(w)
        return len(seen) == self._node_count

    def collect_side(self, start: int, split_id: int) -> Set[int]:
        """Nodes reachable from ``start`` without crossing an edge of ``split_id``."""
        seen = {start}
        stack = [start]
        while stack:
            v = stack.pop()
            for e in self._node(v).edges:
                if self.split(e) == split_id:
                    continue
                w = self.opposite(v, e)
                if w not in seen:
                    seen.add(w)
                    stack.append(w)
        return seen

    def split_ids(self) -> List[int]:
        return sorted({data.split for data in self._edges if data is not None})

    def edges_of_split(self, split_id: int) -> List[int]:
        return [e for e in self.edges() if self.split(e) == split_id]
