"""
Split-Newick: a split system written as one Newick string.

A maximal set of compatible splits is written as an ordinary Newick tree (the
backbone). Every remaining split is written as marker pairs around the leaf
labels of its side: ``<k|`` before the first label of a run and ``|k>`` after
the last one. The last closing marker of split ``k`` may carry its weight and
confidence, as in ``|k:0.5:95>``.

Example:
    ``((a,<1|b),(c|1:2>,d));`` encodes the tree splits plus ``bc | ad``.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, TextIO, Tuple

from splitarchitect.clusters import cluster_popping, compute_splits, reorder_by_ordering
from splitarchitect.config import NetworkConfig, SplitNewickConfig
from splitarchitect.diagnostics import Diagnostics
from splitarchitect.elements.compatibility import is_compatible_with
from splitarchitect.elements.partition import Partition
from splitarchitect.elements.split import Split
from splitarchitect.elements.split_system import SplitSystem
from splitarchitect.elements.taxa import TaxonId
from splitarchitect.exceptions import NewickParseError
from splitarchitect.leaforder.circular_ordering import (
    compute_cycle,
    is_compatible_with_ordering,
)
from splitarchitect.logger.formatting import format_split
from splitarchitect.network.convex_hull import SplitNetwork, build_split_network, extract_splits
from splitarchitect.network.progress import ProgressListener
from splitarchitect.network.splits_graph import SplitsGraph
from splitarchitect.parser.newick_parser import parse_newick_with_markers
from splitarchitect.parser.newick_writer import RenderedNewick, format_number, render_newick

logger = logging.getLogger(__name__)

TaxonLabel = Callable[[TaxonId], str]

WEIGHT_TOLERANCE = 1e-8


@dataclass
class SplitNewickResult:
    """Splits read from a Split-Newick string.

    Attributes:
        splits: tree splits followed by marker splits, duplicates merged
        taxon_labels: taxon id to leaf label
        diagnostics: anomalies found while reading
    """

    splits: SplitSystem
    taxon_labels: Dict[int, str]
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def ntax(self) -> int:
        return self.splits.ntax or len(self.taxon_labels)

    def taxon_label(self, taxon: TaxonId) -> str:
        return self.taxon_labels.get(taxon, str(taxon))


# ===================================================================
# READING
# ===================================================================


def parse_split_newick(
    text: str,
    label_taxon_map: Optional[Dict[str, int]] = None,
    diagnostics: Optional[Diagnostics] = None,
    config: Optional[SplitNewickConfig] = None,
) -> SplitNewickResult:
    """
    Parse a Split-Newick string.

    Taxon ids come from ``label_taxon_map`` or, if it is not given, are
    assigned 1, 2, ... in the order the leaf labels occur.

    Raises:
        NewickParseError: on malformed text, unlabelled or duplicate leaves,
            unknown labels and unmatched markers
    """
    config = config or SplitNewickConfig()
    diagnostics = diagnostics if diagnostics is not None else Diagnostics("split newick")

    if not text.strip():
        return SplitNewickResult(SplitSystem(name="split newick"), {}, diagnostics)

    parsed = parse_newick_with_markers(text)
    if not parsed.trees:
        return SplitNewickResult(SplitSystem(name="split newick"), {}, diagnostics)
    if len(parsed.trees) > 1:
        logger.info("Ignoring %d trees after the first", len(parsed.trees) - 1)
    tree = parsed.trees[0]

    assign_ids = label_taxon_map is None
    label_taxon = {} if assign_ids else dict(label_taxon_map)
    seen: Dict[str, int] = {}
    for leaf in tree.get_leaves():
        position = parsed.position_of(leaf)
        if not leaf.name:
            raise NewickParseError("Unlabelled leaf", text, position)
        if leaf.name in seen:
            raise NewickParseError(f"Duplicate leaf label {leaf.name!r}", text, position)
        if assign_ids:
            label_taxon[leaf.name] = len(label_taxon) + 1
        elif leaf.name not in label_taxon:
            raise NewickParseError(f"Unknown taxon label {leaf.name!r}", text, position)
        seen[leaf.name] = label_taxon[leaf.name]
        leaf.add_taxon(label_taxon[leaf.name])

    ntax = max(seen.values(), default=0)
    present = set(seen.values())
    for t in range(1, ntax + 1):
        if t not in present:
            diagnostics.warn("incomplete-taxa", f"Taxon {t} does not occur in the tree")
    all_taxa = Partition(range(1, ntax + 1))

    splits = compute_splits(tree, all_taxa)
    splits.name = "split newick"

    for marker_id in sorted(parsed.markers):
        marker = parsed.markers[marker_id]
        side = Partition(t for leaf in marker.leaves for t in leaf.taxa)
        if not side:
            diagnostics.warn("empty-split", f"Split marker {marker_id} encloses no taxa")
            continue
        if len(side) == ntax:
            diagnostics.warn("invalid-split", f"Split marker {marker_id} encloses all taxa")
            continue
        values = marker.values
        weight = values[0] if values else config.default_weight
        confidence = values[1] if len(values) > 1 else None
        splits.add(Split.from_cluster(side, ntax, weight=weight, confidence=confidence))

    taxon_labels = {t: label for label, t in seen.items()}
    logger.debug("Read %d splits on %d taxa", len(splits), ntax)
    return SplitNewickResult(splits, taxon_labels, diagnostics)


def read_split_newick(
    stream: TextIO,
    label_taxon_map: Optional[Dict[str, int]] = None,
    diagnostics: Optional[Diagnostics] = None,
    config: Optional[SplitNewickConfig] = None,
) -> SplitNewickResult:
    """Parse the first line of a text stream."""
    return parse_split_newick(stream.readline(), label_taxon_map, diagnostics, config)


def read_split_network(
    text: str,
    label_taxon_map: Optional[Dict[str, int]] = None,
    progress: Optional[ProgressListener] = None,
    config: Optional[SplitNewickConfig] = None,
    network_config: Optional[NetworkConfig] = None,
) -> SplitNetwork:
    """Parse a Split-Newick string and build its split network."""
    result = parse_split_newick(text, label_taxon_map, config=config)
    network = build_split_network(
        result.splits,
        taxon_label=result.taxon_label,
        ntax=result.ntax or None,
        progress=progress,
        config=network_config,
    )
    result.diagnostics.extend(network.diagnostics)
    network.diagnostics = result.diagnostics
    return network


# ===================================================================
# WRITING
# ===================================================================


def _partition_splits(
    splits: Sequence[Split], ordering: Sequence[int]
) -> Tuple[List[Split], List[Split]]:
    """Backbone splits (arcs of the ordering, pairwise compatible) and the rest."""
    compatible: List[Split] = []
    additional: List[Split] = []
    first = ordering[0]
    for split in splits:
        if split.is_trivial() or (
            is_compatible_with_ordering(split.part_not_containing(first), ordering)
            and is_compatible_with(split, compatible)
        ):
            compatible.append(split)
        else:
            additional.append(split)
    return compatible, additional


def _backbone_clusters(
    compatible: Sequence[Split], ntax: int, first: int
) -> Tuple[List[Partition], Dict[Partition, Tuple[float, Optional[float]]]]:
    clusters: List[Partition] = []
    values: Dict[Partition, Tuple[float, Optional[float]]] = {}
    for split in compatible:
        cluster = split.part_not_containing(first)
        clusters.append(cluster)
        values[cluster] = (split.weight, split.confidence)
        other = split.part_containing(first)
        if len(other) == 1:
            clusters.append(other)
            values[other] = (0.0, split.confidence)
    for t in range(1, ntax + 1):
        singleton = Partition([t])
        if singleton not in values:
            clusters.append(singleton)
            values[singleton] = (0.0, None)
    return clusters, values


def _marker_close(
    number: int, split: Split, with_values: bool, config: SplitNewickConfig
) -> str:
    if not with_values or not config.include_weights:
        return f"|{number}>"
    text = f"|{number}:{format_number(split.weight, config.precision)}"
    if config.include_confidences and split.confidence is not None:
        text += f":{format_number(split.confidence, config.precision)}"
    return text + ">"


def to_split_newick(
    splits: Sequence[Split],
    taxon_label: Optional[TaxonLabel] = None,
    ordering: Optional[Sequence[int]] = None,
    config: Optional[SplitNewickConfig] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> str:
    """
    Write splits as a Split-Newick string.

    Args:
        splits: splits over the taxa ``1..n``; equal bipartitions are merged
            by summing their weights
        taxon_label: taxon to label function; defaults to the taxon number
        ordering: circular ordering of the taxa; computed if not given.
            A good ordering gives a shorter string.
        config: output options
        diagnostics: receives self-check findings

    Returns:
        The Split-Newick string, ``""`` for an empty split list.
    """
    if not splits:
        return ""
    config = config or SplitNewickConfig()
    diagnostics = diagnostics if diagnostics is not None else Diagnostics("split newick")
    taxon_label = taxon_label or str
    splits = list(SplitSystem.from_splits(splits))
    ntax = splits[0].ntax

    if ordering is None:
        ordering = compute_cycle(ntax, splits)
    ordering = list(ordering)
    first = ordering[0]

    compatible, additional = _partition_splits(splits, ordering)
    clusters, values = _backbone_clusters(compatible, ntax, first)
    tree = cluster_popping(
        clusters,
        values.__getitem__,
        all_taxa=Partition(range(1, ntax + 1)),
        diagnostics=diagnostics,
    )
    for leaf in tree.get_leaves():
        if leaf.taxa:
            leaf.name = taxon_label(leaf.taxa[0])
    reorder_by_ordering(tree, ordering)

    rendered = render_newick(
        tree,
        lengths=config.include_weights,
        confidences=config.include_confidences,
        precision=config.precision,
    )
    logger.debug(
        "Backbone of %d splits, %d written as markers", len(compatible), len(additional)
    )
    if not additional:
        result = rendered.text
    else:
        result = _insert_markers(rendered, additional, first, config)

    if config.self_check:
        _self_check(result, splits, taxon_label, ntax, first, config, diagnostics)
    return result


def _insert_markers(
    rendered: RenderedNewick,
    additional: Sequence[Split],
    first: int,
    config: SplitNewickConfig,
) -> str:
    taxa_list: List[int] = []
    span_of: Dict[int, Tuple[int, int]] = {}
    for span in rendered.leaf_spans:
        t = span.node.taxa[0]
        taxa_list.append(t)
        span_of[t] = (span.start, span.end)

    before: Dict[int, List[str]] = {}
    after: Dict[int, List[str]] = {}
    for number, split in enumerate(additional, start=1):
        side = split.part_not_containing(first)
        inside = False
        count = 0
        prev = 0
        for t in taxa_list:
            if t in side:
                if not inside:
                    inside = True
                    before.setdefault(t, []).append(f"<{number}|")
                count += 1
                if count == len(side):
                    after.setdefault(t, []).append(_marker_close(number, split, True, config))
            elif inside:
                if count < len(side):
                    after.setdefault(prev, []).append(_marker_close(number, split, False, config))
                inside = False
            prev = t

    text = rendered.text
    parts: List[str] = []
    position = 0
    for t in taxa_list:
        start, end = span_of[t]
        parts.append(text[position:start])
        parts.extend(before.get(t, ()))
        parts.append(text[start:end])
        parts.extend(after.get(t, ()))
        position = end
    parts.append(text[position:])
    return "".join(parts)


def _self_check(
    text: str,
    splits: Sequence[Split],
    taxon_label: TaxonLabel,
    ntax: int,
    first: int,
    config: SplitNewickConfig,
    diagnostics: Diagnostics,
) -> None:
    """Re-read the written string and record every difference to the input."""
    label_taxon_map = {taxon_label(TaxonId(t)): t for t in range(1, ntax + 1)}
    try:
        back = parse_split_newick(text, label_taxon_map, diagnostics=Diagnostics(), config=config)
    except NewickParseError as e:
        diagnostics.warn("roundtrip-missing", f"Written string cannot be read back: {e}")
        return

    expected = SplitSystem.from_splits(splits)
    for split in expected:
        if split.weight <= 0:
            continue
        other = back.splits.get(split)
        if other is None:
            diagnostics.warn(
                "roundtrip-missing",
                f"In input, not in output: {format_split(split, first)}",
            )
        elif config.include_weights and abs(other.weight - split.weight) > WEIGHT_TOLERANCE:
            diagnostics.warn(
                "roundtrip-weight",
                f"Weight of {format_split(split, first)} read back as "
                f"{format_number(other.weight)}",
            )
    for split in back.splits:
        if not config.include_weights and split.is_trivial():
            # unweighted backbone edges read back with weight 1
            continue
        if split.weight > 0 and split not in expected:
            diagnostics.warn(
                "roundtrip-extra",
                f"In output, not in input: {format_split(split, first)}",
            )


def write_split_newick(
    stream: TextIO,
    splits: Sequence[Split],
    taxon_label: Optional[TaxonLabel] = None,
    ordering: Optional[Sequence[int]] = None,
    config: Optional[SplitNewickConfig] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> None:
    stream.write(to_split_newick(splits, taxon_label, ordering, config, diagnostics))


def _graph_taxon_label(graph: SplitsGraph) -> TaxonLabel:
    def label(t: TaxonId) -> str:
        v = graph.taxon_to_node(t)
        if v is not None and len(graph.get_taxa(v)) == 1 and graph.node_label(v):
            return graph.node_label(v)
        return str(t)

    return label


def split_network_to_string(
    graph: SplitsGraph,
    taxon_label: Optional[TaxonLabel] = None,
    ordering: Optional[Sequence[int]] = None,
    config: Optional[SplitNewickConfig] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> str:
    """Write the splits of a split network as a Split-Newick string."""
    splits = extract_splits(graph, diagnostics)
    return to_split_newick(
        splits, taxon_label or _graph_taxon_label(graph), ordering, config, diagnostics
    )
