"""
Hardwired clusters of rooted trees, and the way back from clusters to trees.

A cluster is the set of taxa below a node. Every non-root cluster of a tree
induces the split ``cluster | rest``; conversely a family of pairwise
compatible clusters can be "popped" into a rooted tree.
"""

import logging
from typing import (
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from splitarchitect.diagnostics import Diagnostics
from splitarchitect.elements.compatibility import is_compatible
from splitarchitect.elements.partition import Partition
from splitarchitect.elements.split import Split
from splitarchitect.elements.split_system import SplitSystem
from splitarchitect.elements.taxa import TaxonId
from splitarchitect.exceptions import IncompatibleSplitsError
from splitarchitect.tree import Node

logger = logging.getLogger(__name__)

ClusterValues = Tuple[float, Optional[float]]


def _reachable_nodes(tree: Node) -> List[Node]:
    """All distinct nodes below ``tree``, each listed once even if shared."""
    seen: Set[int] = set()
    nodes: List[Node] = []
    stack = [tree]
    while stack:
        v = stack.pop()
        if id(v) in seen:
            continue
        seen.add(id(v))
        nodes.append(v)
        stack.extend(reversed(v.children))
    return nodes


def _compute_all_clusters(tree: Node) -> Dict[Node, Partition]:
    clusters: Dict[Node, Partition] = {}
    stack = [tree]
    while stack:
        v = stack[-1]
        if v in clusters:
            stack.pop()
            continue
        pending = [w for w in v.children if w not in clusters]
        if pending:
            stack.extend(pending)
            continue
        stack.pop()
        bitmask = 0
        for t in v.taxa:
            bitmask |= 1 << t
        for w in v.children:
            bitmask |= clusters[w].bitmask
        clusters[v] = Partition.from_bitmask(bitmask)
    return clusters


def extract_clusters(tree: Node) -> Dict[Node, Partition]:
    """
    Map every node to its hardwired cluster, computed bottom-up.

    The input may be a rooted network in which a node object appears in the
    children of several parents. Only nodes with exactly one parent are kept,
    so the root and every reticulation are left out.
    """
    clusters = _compute_all_clusters(tree)
    in_degree: Dict[int, int] = {}
    for v in _reachable_nodes(tree):
        for w in v.children:
            in_degree[id(w)] = in_degree.get(id(w), 0) + 1
    for v in list(clusters):
        if in_degree.get(id(v), 0) != 1:
            del clusters[v]
    return clusters


def collect_hardwired_clusters(tree: Node) -> Set[Partition]:
    """All clusters of the tree or network, the root's full set included."""
    return set(_compute_all_clusters(tree).values())


def get_taxa(tree: Node) -> Partition:
    """All taxa attached to any node of the tree."""
    bitmask = 0
    for v in _reachable_nodes(tree):
        for t in v.taxa:
            bitmask |= 1 << t
    return Partition.from_bitmask(bitmask)


def compute_splits(
    tree: Node, taxa_in_tree: Optional[Partition] = None
) -> SplitSystem:
    """
    Compute the splits of a tree, one per distinct bipartition.

    Every non-root node contributes ``cluster | taxa - cluster`` with the weight
    of its incoming edge (1.0 if the edge has no length). Nodes inducing the
    same bipartition, such as the two children of a bifurcating root, are
    merged into one split whose weight is the sum.
    """
    if taxa_in_tree is None:
        taxa_in_tree = get_taxa(tree)

    splits = SplitSystem(name="tree splits")
    for v, cluster in extract_clusters(tree).items():
        if v is tree:
            continue
        complement = taxa_in_tree - cluster
        if cluster and complement:
            weight = 1.0 if v.length is None else v.length
            splits.add(Split(cluster, complement, weight=weight, confidence=v.confidence))
    logger.debug("Computed %d splits from tree", len(splits))
    return splits


def _find_parent(root: Node, cluster: Partition, node_clusters: Dict[Node, Partition]) -> Node:
    """Walk down from the root while a child's cluster strictly contains ``cluster``."""
    v = root
    while True:
        for w in v.children:
            other = node_clusters[w]
            if cluster.is_subset_of(other):
                v = w
                break
            if cluster.intersects(other) and not other.is_subset_of(cluster):
                raise IncompatibleSplitsError(
                    f"Cluster {cluster} overlaps incompatible cluster {other}"
                )
        else:
            return v


def _deepest_node_containing(
    root: Node, taxon: int, node_clusters: Dict[Node, Partition]
) -> Node:
    v = root
    while True:
        for w in v.children:
            if taxon in node_clusters[w]:
                v = w
                break
        else:
            return v


def cluster_popping(
    clusters: Iterable[Partition],
    values: Optional[Callable[[Partition], ClusterValues]] = None,
    all_taxa: Optional[Partition] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> Node:
    """
    Build a rooted tree from a laminar family of clusters.

    Clusters are inserted in order of decreasing size below the deepest node
    that contains them. The ``(weight, confidence)`` returned by ``values``
    becomes the length and confidence of the new node. A singleton cluster's
    node carries its taxon; every other taxon is attached to the deepest node
    containing it.

    Raises:
        IncompatibleSplitsError: if two clusters overlap without nesting
    """
    unique: List[Partition] = []
    seen: Set[Partition] = set()
    for cluster in clusters:
        if cluster in seen:
            if diagnostics is not None:
                diagnostics.warn("duplicate-cluster", f"Cluster {cluster} occurs more than once")
            continue
        seen.add(cluster)
        unique.append(cluster)

    if all_taxa is None:
        bitmask = 0
        for cluster in unique:
            bitmask |= cluster.bitmask
        all_taxa = Partition.from_bitmask(bitmask)

    root = Node()
    node_clusters: Dict[Node, Partition] = {root: all_taxa}

    for cluster in sorted(unique, key=lambda c: (-len(c), c.indices)):
        if cluster == all_taxa or not cluster:
            continue
        if not cluster.is_subset_of(all_taxa):
            raise IncompatibleSplitsError(f"Cluster {cluster} is not within {all_taxa}")
        parent = _find_parent(root, cluster, node_clusters)
        weight, confidence = values(cluster) if values else (1.0, None)
        v = parent.append_child(Node(length=weight, confidence=confidence))
        node_clusters[v] = cluster
        if len(cluster) == 1:
            v.add_taxon(cluster[0])

    placed = {t for v in node_clusters for t in v.taxa}
    for t in all_taxa:
        if t not in placed:
            _deepest_node_containing(root, t, node_clusters).add_taxon(t)
    return root


def label_nodes(tree: Node, taxon_label: Callable[[TaxonId], str]) -> None:
    """Name every node that carries exactly one taxon."""
    for v in tree.traverse():
        if len(v.taxa) == 1:
            v.name = taxon_label(v.taxa[0])


def compute_tree_from_compatible_splits(
    splits: Sequence[Split],
    taxon_label: Optional[Callable[[TaxonId], str]] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> Node:
    """
    Rebuild the tree whose edges are the given pairwise compatible splits.

    The clusters are the split sides not containing taxon 1; the tree is rooted
    at the node carrying taxon 1.

    Raises:
        IncompatibleSplitsError: if the splits are not pairwise compatible
    """
    if not splits:
        raise IncompatibleSplitsError("Cannot build a tree from an empty split list")
    if not is_compatible(splits):
        raise IncompatibleSplitsError("Splits are not pairwise compatible")

    ntax = splits[0].ntax
    cluster_values: Dict[Partition, ClusterValues] = {}
    clusters: List[Partition] = []
    for split in splits:
        cluster = split.part_not_containing(1)
        clusters.append(cluster)
        cluster_values.setdefault(cluster, (split.weight, split.confidence))

    tree = cluster_popping(
        clusters,
        cluster_values.__getitem__,
        all_taxa=Partition(range(1, ntax + 1)),
        diagnostics=diagnostics,
    )
    label_nodes(tree, taxon_label or str)
    return tree


def reorder_by_ordering(tree: Node, ordering: Sequence[int]) -> None:
    """Sort children of every node by the smallest ordering rank below them."""
    rank = {taxon: index for index, taxon in enumerate(ordering)}
    missing = len(ordering)
    min_rank: Dict[Node, int] = {}
    for v in tree.postorder():
        best = min((rank.get(t, missing) for t in v.taxa), default=missing)
        for w in v.children:
            best = min(best, min_rank[w])
        min_rank[v] = best
    for v in tree.traverse():
        v.children.sort(key=min_rank.__getitem__)
