"""
Convex Hull construction of split networks.

Splits are folded into the graph one at a time. For a new split ``S = A | B``
the algorithm computes, for each side, the part of the current network that
is spanned by the taxa of that side without crossing an edge of an already
used split that keeps the side together (the side's "convex hull"). Nodes in
both hulls are duplicated, the copy receives the taxa of ``A``, and a new edge
labelled ``S`` joins original and copy. Edges towards the ``A`` hull are moved
to the copy and edges between two duplicated nodes are doubled, which yields
the parallel edge bands of a split network.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set

from splitarchitect.config import NetworkConfig
from splitarchitect.diagnostics import Diagnostics
from splitarchitect.elements.partition import Partition
from splitarchitect.elements.split import Split
from splitarchitect.elements.split_system import SplitSystem
from splitarchitect.elements.taxa import TaxonId
from splitarchitect.exceptions import CancelledError
from splitarchitect.network.progress import ProgressListener, SilentProgress
from splitarchitect.network.splits_graph import SplitsGraph

logger = logging.getLogger(__name__)

TaxonLabel = Callable[[TaxonId], str]

SIDE_0 = 0
SIDE_1 = 1
INTERSECTION = 2


@dataclass
class SplitNetwork:
    """A built split network together with the splits its edge ids refer to.

    Attributes:
        graph: the network; edge split ids are 1-based positions in ``splits``
        splits: the (duplicate free) split system
        diagnostics: anomalies found while building
        fallback: True if the star network replaced a disconnected result
    """

    graph: SplitsGraph
    splits: SplitSystem
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    fallback: bool = False


def _order_to_process(splits: Sequence[Split], used_splits: Set[int]) -> List[int]:
    """Unused split ids, smaller split side first, ties broken by id."""
    unused = [s for s in range(1, len(splits) + 1) if s not in used_splits]
    return sorted(unused, key=lambda s: (splits[s - 1].size(), s))


def _convex_hull_path(
    graph: SplitsGraph,
    start: int,
    hulls: Dict[int, int],
    allowed_splits: Set[int],
    intersection_nodes: List[int],
    side: int,
) -> None:
    """Label everything reachable from ``start`` over allowed edges with ``side``."""
    visited: Set[int] = set()
    todo = [start]
    while todo:
        v = todo.pop()
        for f in graph.adjacent_edges(v):
            if f in visited or graph.split(f) not in allowed_splits:
                continue
            visited.add(f)
            w = graph.opposite(v, f)
            hull = hulls.get(w)
            if hull is None:
                hulls[w] = side
                todo.append(w)
            elif hull == 1 - side:
                hulls[w] = INTERSECTION
                intersection_nodes.append(w)
                todo.append(w)


def _divided_splits(
    splits: Sequence[Split], used_splits: Set[int], side: Partition, progress
) -> Set[int]:
    """Used splits that have taxa of ``side`` on both of their sides."""
    divided: Set[int] = set()
    for i in sorted(used_splits):
        progress.check_for_cancel()
        other = splits[i - 1]
        if side.intersects(other.a) and side.intersects(other.b):
            divided.add(i)
    return divided


def _duplicate_edge_target(graph: SplitsGraph, v: int, split_id: int) -> Optional[int]:
    for e in graph.adjacent_edges(v):
        if graph.split(e) == split_id:
            return graph.opposite(v, e)
    return None


def _add_split(
    graph: SplitsGraph,
    splits: Sequence[Split],
    used_splits: Set[int],
    j: int,
    ntax: int,
    progress,
    diagnostics: Diagnostics,
) -> bool:
    """Fold split ``j`` into the graph; False if a side has no node to start from."""
    split = splits[j - 1]
    part_a = split.a

    splits0 = _divided_splits(splits, used_splits, split.b, progress)
    splits1 = _divided_splits(splits, used_splits, part_a, progress)

    start0: Optional[int] = None
    start1: Optional[int] = None
    for t in range(1, ntax + 1):
        if t not in part_a:
            start0 = graph.taxon_to_node(t)
        else:
            start1 = graph.taxon_to_node(t)
        if start0 is not None and start1 is not None:
            break
    if start0 is None or start1 is None:
        diagnostics.warn("incomplete-taxa", f"Split {j} has no node on one side, skipped")
        return False

    hulls: Dict[int, int] = {start0: SIDE_0}
    intersection_nodes: List[int] = []
    if start0 == start1:
        hulls[start1] = INTERSECTION
        intersection_nodes.append(start1)
    else:
        hulls[start1] = SIDE_1

    _convex_hull_path(graph, start0, hulls, splits0, intersection_nodes, SIDE_0)
    _convex_hull_path(graph, start1, hulls, splits1, intersection_nodes, SIDE_1)

    for v in intersection_nodes:
        v1 = graph.new_node()
        graph.new_edge(v1, v, split=j, weight=split.weight)
        taxa = graph.get_taxa(v)
        graph.clear_taxa(v)
        for t in taxa:
            graph.add_taxon(v1 if t in part_a else v, t)

    for v in intersection_nodes:
        progress.check_for_cancel()
        to_v1 = next(e for e in graph.adjacent_edges(v) if graph.split(e) == j)
        v1 = graph.opposite(v, to_v1)

        for consider in graph.adjacent_edges(v):
            progress.check_for_cancel()
            if consider == to_v1:
                continue
            w = graph.opposite(v, consider)
            hull = hulls.get(w)
            if hull == SIDE_1:
                graph.new_edge(
                    v1, w, split=graph.split(consider), weight=graph.weight(consider)
                )
                graph.delete_edge(consider)
            elif hull == INTERSECTION:
                w1 = _duplicate_edge_target(graph, w, j)
                if w1 is not None and graph.common_edge(v1, w1) is None:
                    graph.new_edge(
                        v1, w1, split=graph.split(consider), weight=graph.weight(consider)
                    )

    logger.debug(
        "Added split %d (%s): %d intersection node(s)", j, split, len(intersection_nodes)
    )
    return True


def _check_graph(graph: SplitsGraph, ntax: int, diagnostics: Diagnostics) -> None:
    for t in range(1, ntax + 1):
        if graph.taxon_to_node(t) is None:
            diagnostics.warn("incomplete-taxa", f"Taxon {t} has no node")
    for e in graph.edges():
        if graph.split(e) == 0:
            diagnostics.warn("edge-without-split", f"Edge {e} has no split")


def label_graph(
    graph: SplitsGraph,
    taxon_label: Optional[TaxonLabel] = None,
    label_edges: bool = True,
) -> None:
    """Label nodes by their taxa and one representative edge per split id."""
    taxon_label = taxon_label or str
    for v in graph.nodes():
        taxa = graph.get_taxa(v)
        graph.set_node_label(v, ", ".join(taxon_label(t) for t in taxa) if taxa else None)

    seen: Set[int] = set()
    for e in graph.edges():
        s = graph.split(e)
        if label_edges and s > 0 and s not in seen:
            seen.add(s)
            graph.set_edge_label(e, str(s))
        else:
            graph.set_edge_label(e, None)


def convex_hull(
    ntax: int,
    splits: Sequence[Split],
    graph: Optional[SplitsGraph] = None,
    used_splits: Optional[Set[int]] = None,
    taxon_label: Optional[TaxonLabel] = None,
    progress: Optional[ProgressListener] = None,
    diagnostics: Optional[Diagnostics] = None,
    config: Optional[NetworkConfig] = None,
) -> SplitsGraph:
    """
    Fold the splits not in ``used_splits`` into ``graph``.

    Split ids are the 1-based positions in ``splits``. An empty graph is
    started as a single node carrying all taxa; a non-empty graph must
    already represent the splits in ``used_splits``.

    Raises:
        CancelledError: if the progress listener cancels; the graph is cleared
    """
    graph = graph if graph is not None else SplitsGraph()
    used_splits = used_splits if used_splits is not None else set()
    progress = progress or SilentProgress()
    diagnostics = diagnostics if diagnostics is not None else Diagnostics("convex hull")
    config = config or NetworkConfig()

    if len(used_splits) >= len(splits):
        return graph

    progress.set_tasks("Computing splits network", "Convex Hull algorithm")
    try:
        if graph.number_of_nodes == 0:
            start = graph.new_node()
            for t in range(1, ntax + 1):
                graph.add_taxon(start, t)
        else:
            _check_graph(graph, ntax, diagnostics)

        order = _order_to_process(splits, used_splits)
        progress.set_maximum(len(order))
        progress.set_progress(0)

        for j in order:
            progress.increment_progress()
            progress.check_for_cancel()
            if _add_split(graph, splits, used_splits, j, ntax, progress, diagnostics):
                used_splits.add(j)

        label_graph(graph, taxon_label, config.label_representative_edges)
    except CancelledError:
        logger.info("Convex Hull cancelled, clearing graph")
        graph.clear()
        raise

    logger.debug(
        "Convex Hull: %d nodes, %d edges from %d splits",
        graph.number_of_nodes,
        graph.number_of_edges,
        len(splits),
    )
    return graph


def create_star_network(
    ntax: int,
    taxon_label: Optional[TaxonLabel] = None,
    graph: Optional[SplitsGraph] = None,
) -> SplitsGraph:
    """
    Star network: a center node joined to one node per taxon.

    The edge to taxon ``t`` carries split id ``t`` (the trivial split of ``t``)
    and weight 1.
    """
    graph = graph if graph is not None else SplitsGraph()
    graph.clear()
    center = graph.new_node()
    for t in range(1, ntax + 1):
        v = graph.new_node()
        graph.add_taxon(v, t)
        graph.new_edge(center, v, split=t, weight=1.0)
    label_graph(graph, taxon_label)
    return graph


def trivial_splits(ntax: int) -> SplitSystem:
    """The trivial split ``t | rest`` for every taxon, in taxon order."""
    return SplitSystem(
        (Split.from_cluster([t], ntax) for t in range(1, ntax + 1)),
        ntax=ntax,
        name="trivial splits",
    )


def build_split_network(
    splits: Sequence[Split],
    taxon_label: Optional[TaxonLabel] = None,
    ntax: Optional[int] = None,
    graph: Optional[SplitsGraph] = None,
    progress: Optional[ProgressListener] = None,
    config: Optional[NetworkConfig] = None,
) -> SplitNetwork:
    """
    Build the split network of ``splits``.

    Duplicate bipartitions are merged first. If the result is not connected,
    it is replaced by the star network and the splits by the trivial splits.

    Raises:
        CancelledError: if the progress listener cancels
        ValueError: if ``ntax`` disagrees with the splits
    """
    config = config or NetworkConfig()
    logger.debug("Building network from %d splits", len(splits))
    diagnostics = Diagnostics("split network")
    system = SplitSystem.from_splits(splits, ntax=ntax or 0)
    graph = graph if graph is not None else SplitsGraph()
    progress = progress or SilentProgress()

    if not len(system):
        # no splits: all taxa share a single node
        graph.clear()
        if ntax:
            start = graph.new_node()
            for t in range(1, ntax + 1):
                graph.add_taxon(start, t)
            label_graph(graph, taxon_label)
        return SplitNetwork(graph, system, diagnostics)

    convex_hull(
        system.ntax,
        system,
        graph=graph,
        taxon_label=taxon_label,
        progress=progress,
        diagnostics=diagnostics,
        config=config,
    )

    fallback = False
    if config.star_fallback and not graph.is_connected():
        diagnostics.warn(
            "disconnected-network",
            f"Network of {len(system)} splits is not connected, using star network",
        )
        create_star_network(system.ntax, taxon_label, graph)
        system = trivial_splits(system.ntax)
        fallback = True

    progress.report_task_completed()
    return SplitNetwork(graph, system, diagnostics, fallback)


def induced_cluster(graph: SplitsGraph, split_id: int, taxon: int = 1) -> Partition:
    """Taxa on the side of ``taxon`` when all edges of ``split_id`` are cut."""
    start = graph.taxon_to_node(taxon)
    if start is None:
        raise KeyError(f"Taxon {taxon} has no node")
    bitmask = 0
    for v in graph.collect_side(start, split_id):
        for t in graph.get_taxa(v):
            bitmask |= 1 << t
    return Partition.from_bitmask(bitmask)


def extract_splits(
    graph: SplitsGraph, diagnostics: Optional[Diagnostics] = None
) -> List[Split]:
    """
    Recover the split system represented by a split network.

    The weight of each split is taken from one of its edges.
    """
    ntax = len(graph.taxa())
    splits: List[Split] = []
    for split_id in graph.split_ids():
        if split_id == 0:
            continue
        side = induced_cluster(graph, split_id)
        if len(side) in (0, ntax):
            if diagnostics is not None:
                diagnostics.warn(
                    "invalid-split", f"Edges of split {split_id} do not separate any taxa"
                )
            continue
        weight = graph.weight(graph.edges_of_split(split_id)[0])
        splits.append(Split.from_cluster(side, ntax, weight=weight))
    return splits
