"""
Tests for the Convex Hull construction of split networks.
"""

import pytest
from hypothesis import given, settings, strategies as st

from splitarchitect.config import NetworkConfig
from splitarchitect.diagnostics import Diagnostics
from splitarchitect.elements.compatibility import is_compatible
from splitarchitect.elements.split import Split
from splitarchitect.elements.split_system import SplitSystem
from splitarchitect.exceptions import CancelledError
from splitarchitect.network.convex_hull import (
    build_split_network,
    convex_hull,
    create_star_network,
    extract_splits,
    induced_cluster,
    trivial_splits,
)
from splitarchitect.network.progress import CancellableProgress, SilentProgress
from splitarchitect.network.splits_graph import SplitsGraph


def assert_represents(graph, splits, ntax):
    """Every taxon has a node and every split id separates exactly its split."""
    for t in range(1, ntax + 1):
        assert graph.taxon_to_node(t) is not None
    for split_id, split in enumerate(splits, start=1):
        assert graph.edges_of_split(split_id), f"split {split_id} has no edges"
        assert induced_cluster(graph, split_id) == split.part_containing(1)


def test_square(square_splits):
    graph = convex_hull(4, square_splits)
    assert graph.number_of_nodes == 4
    assert graph.number_of_edges == 4
    assert all(len(graph.get_taxa(v)) == 1 for v in graph.nodes())
    assert sorted(graph.split(e) for e in graph.edges()) == [1, 1, 2, 2]
    assert_represents(graph, square_splits, 4)


def test_square_with_trivial_splits(square_splits, trivial4):
    splits = square_splits + trivial4
    graph = convex_hull(4, splits)
    assert graph.number_of_nodes == 8
    assert graph.number_of_edges == 8
    assert_represents(graph, splits, 4)


def test_tree_splits_give_a_tree(trivial4):
    splits = [Split([1, 2], [3, 4], weight=2.0)] + trivial4
    graph = convex_hull(4, splits)
    assert graph.number_of_edges == graph.number_of_nodes - 1
    assert graph.is_connected()
    e = graph.edges_of_split(1)[0]
    assert graph.weight(e) == 2.0


def test_circular_system_on_five_taxa():
    splits = [
        Split.from_cluster(arc, 5)
        for arc in ([1, 2], [2, 3], [3, 4], [4, 5], [5, 1], [1], [2], [3], [4], [5])
    ]
    graph = convex_hull(5, splits)
    assert graph.is_connected()
    assert_represents(graph, splits, 5)


def test_labels(square_splits, labels4):
    graph = convex_hull(4, square_splits, taxon_label=labels4)
    labels = sorted(graph.node_label(v) for v in graph.nodes())
    assert labels == ["a", "b", "c", "d"]
    edge_labels = [graph.edge_label(e) for e in graph.edges() if graph.edge_label(e)]
    assert sorted(edge_labels) == ["1", "2"]


def test_node_with_several_taxa():
    graph = convex_hull(3, [Split([1, 2], [3])], taxon_label=str)
    assert sorted(graph.node_label(v) for v in graph.nodes()) == ["1, 2", "3"]


def test_used_splits_are_skipped(square_splits):
    graph = convex_hull(4, square_splits[:1])
    used = {1}
    convex_hull(4, square_splits, graph=graph, used_splits=used)
    assert used == {1, 2}
    assert graph.number_of_nodes == 4
    assert_represents(graph, square_splits, 4)

    untouched = convex_hull(4, square_splits, graph=graph, used_splits=used)
    assert untouched is graph


def test_split_without_start_node_is_skipped():
    graph = SplitsGraph()
    left, right = graph.new_node(), graph.new_node()
    for t in (1, 2, 3):
        graph.add_taxon(left, t)
    graph.add_taxon(right, 5)
    graph.new_edge(left, right, split=1)
    splits = [Split([1, 2, 3], [4, 5]), Split([4], [1, 2, 3, 5])]
    used = {1}
    diagnostics = Diagnostics()

    convex_hull(5, splits, graph=graph, used_splits=used, diagnostics=diagnostics)

    assert used == {1}
    assert diagnostics.codes() == {"incomplete-taxa"}
    assert any("Split 2" in d.message for d in diagnostics)
    assert graph.number_of_nodes == 2
    assert graph.number_of_edges == 1


def test_progress_is_reported(square_splits):
    progress = SilentProgress()
    convex_hull(4, square_splits, progress=progress)
    assert progress.task == "Computing splits network"
    assert progress.maximum == 2
    assert progress.value == 2


def test_cancellation_clears_graph(square_splits):
    graph = SplitsGraph()
    progress = CancellableProgress(should_cancel=lambda: True)
    with pytest.raises(CancelledError):
        convex_hull(4, square_splits, graph=graph, progress=progress)
    assert graph.number_of_nodes == 0
    assert graph.number_of_edges == 0


def test_cancel_after_first_split(square_splits, trivial4):
    progress = CancellableProgress()
    original = progress.increment_progress

    def cancel_on_second():
        original()
        if progress.value == 2:
            progress.cancel()

    progress.increment_progress = cancel_on_second
    graph = SplitsGraph()
    with pytest.raises(CancelledError):
        build_split_network(square_splits + trivial4, graph=graph, progress=progress)
    assert graph.number_of_nodes == 0


def test_build_merges_duplicates(square_splits):
    network = build_split_network(square_splits + [Split([3, 4], [1, 2], weight=2.0)])
    assert len(network.splits) == 2
    assert network.splits[0].weight == 3.0
    assert not network.fallback
    assert network.diagnostics.count() == 0
    e = network.graph.edges_of_split(1)[0]
    assert network.graph.weight(e) == 3.0


def test_build_without_splits():
    network = build_split_network([], ntax=3)
    assert network.graph.number_of_nodes == 1
    assert network.graph.get_taxa(0) == [1, 2, 3]
    assert network.graph.number_of_edges == 0


def test_star_fallback_for_disconnected_graph(square_splits):
    graph = SplitsGraph()
    for t in range(1, 5):
        graph.add_taxon(graph.new_node(), t)
    progress = SilentProgress()
    network = build_split_network(square_splits, graph=graph, progress=progress)

    assert network.fallback
    assert "disconnected-network" in network.diagnostics.codes()
    assert network.splits == trivial_splits(4)
    assert graph.number_of_nodes == 5
    assert graph.number_of_edges == 4
    for t in range(1, 5):
        (e,) = graph.adjacent_edges(graph.taxon_to_node(t))
        assert graph.split(e) == t
        assert graph.weight(e) == 1.0
    assert progress.completed


def test_disconnected_graph_kept_without_fallback(square_splits):
    graph = SplitsGraph()
    for t in range(1, 5):
        graph.add_taxon(graph.new_node(), t)
    network = build_split_network(
        square_splits, graph=graph, config=NetworkConfig(star_fallback=False)
    )
    assert not network.fallback
    assert not graph.is_connected()


def test_star_network(labels4):
    graph = create_star_network(4, labels4)
    assert graph.number_of_nodes == 5
    assert graph.number_of_edges == 4
    center = next(v for v in graph.nodes() if graph.degree(v) == 4)
    assert graph.get_taxa(center) == []
    assert graph.node_label(center) is None
    assert_represents(graph, trivial_splits(4), 4)


def test_extract_splits_recovers_input(square_splits, trivial4):
    splits = [Split([1, 2], [3, 4], weight=2.5)] + square_splits[1:] + trivial4
    network = build_split_network(splits)
    recovered = SplitSystem.from_splits(extract_splits(network.graph))
    assert recovered == network.splits
    assert recovered.get(Split([1, 2], [3, 4])).weight == 2.5


@st.composite
def circular_systems(draw):
    """Random arcs of the cycle 1..n plus all trivial splits."""
    ntax = draw(st.integers(min_value=4, max_value=8))
    arcs = draw(
        st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=ntax - 1),
                st.integers(min_value=2, max_value=ntax - 2),
            ),
            max_size=6,
        )
    )
    splits = [Split.from_cluster([t], ntax) for t in range(1, ntax + 1)]
    for start, length in arcs:
        side = [(start + i) % ntax + 1 for i in range(length)]
        splits.append(Split.from_cluster(side, ntax))
    return ntax, splits


@given(circular_systems())
@settings(max_examples=60, deadline=None)
def test_circular_systems_are_represented(system):
    ntax, splits = system
    network = build_split_network(splits)
    assert not network.fallback
    assert network.graph.is_connected()
    assert_represents(network.graph, network.splits, ntax)


@given(circular_systems())
@settings(max_examples=30, deadline=None)
def test_compatible_subsystems_give_trees(system):
    ntax, splits = system
    compatible = []
    for split in splits:
        if is_compatible(compatible + [split]):
            compatible.append(split)
    graph = build_split_network(compatible).graph
    assert graph.number_of_edges == graph.number_of_nodes - 1
