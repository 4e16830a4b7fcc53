import pytest

from splitarchitect.clusters import (
    cluster_popping,
    collect_hardwired_clusters,
    compute_splits,
    compute_tree_from_compatible_splits,
    extract_clusters,
    get_taxa,
    reorder_by_ordering,
)
from splitarchitect.diagnostics import Diagnostics
from splitarchitect.elements.partition import Partition
from splitarchitect.elements.split import Split
from splitarchitect.elements.split_system import SplitSystem
from splitarchitect.exceptions import IncompatibleSplitsError
from splitarchitect.parser.newick_parser import parse_newick
from splitarchitect.tree import Node


def tree_with_taxa(text):
    """Parse a tree and give leaf ``x<i>`` taxon ``i``."""
    tree = parse_newick(text)
    for leaf in tree.get_leaves():
        leaf.add_taxon(int(leaf.name[1:]))
    return tree


def P(*taxa):
    return Partition(taxa)


def test_compute_splits_of_rooted_tree():
    tree = tree_with_taxa("((x1:1,x2:2):0.5,(x3:1,x4:1):0.25);")
    splits = compute_splits(tree)
    # the two root edges induce the same bipartition
    assert len(splits) == 5
    assert splits.get(Split([1, 2], [3, 4])).weight == 0.75
    assert splits.get(Split([2], [1, 3, 4])).weight == 2.0


def test_missing_length_counts_as_one():
    tree = tree_with_taxa("(x1,x2,(x3,x4));")
    splits = compute_splits(tree)
    assert splits.get(Split([1, 2], [3, 4])).weight == 1.0


def test_compute_splits_keeps_confidence():
    tree = tree_with_taxa("(x1,x2,(x3,x4):2:95);")
    split = compute_splits(tree).get(Split([1, 2], [3, 4]))
    assert (split.weight, split.confidence) == (2.0, 95.0)


def test_hardwired_clusters():
    tree = tree_with_taxa("((x1,x2),x3);")
    assert collect_hardwired_clusters(tree) == {P(1), P(2), P(3), P(1, 2), P(1, 2, 3)}
    assert get_taxa(tree) == P(1, 2, 3)


def test_reticulation_cluster_is_dropped():
    leaf_a, leaf_b, leaf_c = Node(taxa=[1]), Node(taxa=[2]), Node(taxa=[3])
    reticulation = Node(children=[leaf_c])
    p = Node(children=[leaf_a])
    q = Node(children=[leaf_b])
    p.children.append(reticulation)
    q.children.append(reticulation)
    root = Node(children=[p, q])

    clusters = extract_clusters(root)
    assert reticulation not in clusters
    assert clusters[p] == P(1, 3)
    assert clusters[q] == P(2, 3)
    assert root not in clusters
    assert clusters[leaf_c] == P(3)


def test_reticulation_with_two_children_is_dropped():
    leaves = [Node(taxa=[t]) for t in (1, 2, 3, 4)]
    reticulation = Node(children=leaves[2:])
    x = Node(children=[leaves[0], reticulation])
    y = Node(children=[leaves[1], reticulation])
    root = Node(children=[x, y])

    clusters = extract_clusters(root)
    assert reticulation not in clusters
    assert clusters[x] == P(1, 3, 4)
    assert clusters[y] == P(2, 3, 4)
    splits = compute_splits(root)
    assert Split([1, 2], [3, 4]) not in splits
    assert Split([1, 3, 4], [2]) in splits


def test_cluster_popping_caterpillar():
    clusters = [P(1, 2), P(1, 2, 3), P(1), P(2), P(3), P(4)]
    tree = cluster_popping(clusters, all_taxa=P(1, 2, 3, 4))
    internal = [v for v in tree.traverse() if v.is_internal()]
    assert len(internal) == 3
    assert sorted(t for leaf in tree.get_leaves() for t in leaf.taxa) == [1, 2, 3, 4]
    assert set(extract_clusters(tree).values()) == set(clusters)
    assert tree not in extract_clusters(tree)


def test_cluster_popping_values_and_duplicates():
    values = {P(1, 2): (2.0, 80.0), P(3): (0.5, None)}
    diagnostics = Diagnostics()
    tree = cluster_popping(
        [P(1, 2), P(3), P(1, 2)],
        values.__getitem__,
        all_taxa=P(1, 2, 3),
        diagnostics=diagnostics,
    )
    assert diagnostics.codes() == {"duplicate-cluster"}
    cherry = next(v for v in tree.children if v.is_internal() or len(v.taxa) > 1)
    assert (cherry.length, cherry.confidence) == (2.0, 80.0)
    # taxa without a singleton cluster sit on the deepest node containing them
    assert sorted(cherry.taxa) == [1, 2]


def test_cluster_popping_rejects_overlap():
    with pytest.raises(IncompatibleSplitsError):
        cluster_popping([P(1, 2), P(2, 3)], all_taxa=P(1, 2, 3, 4))


def test_tree_from_compatible_splits(labels4):
    splits = [
        Split([1, 2], [3, 4], weight=3.0),
        Split([1], [2, 3, 4], weight=1.0),
        Split([2], [1, 3, 4], weight=2.0),
        Split([3], [1, 2, 4], weight=1.0),
        Split([4], [1, 2, 3], weight=1.0),
    ]
    tree = compute_tree_from_compatible_splits(splits, labels4)
    assert sorted(leaf.name for leaf in tree.get_leaves()) == ["b", "c", "d"]
    # taxon 1 is the root
    assert tree.taxa == [1]
    assert tree.name == "a"
    assert compute_splits(tree) == SplitSystem.from_splits(splits)


def test_tree_from_splits_requires_compatibility(square_splits):
    with pytest.raises(IncompatibleSplitsError):
        compute_tree_from_compatible_splits(square_splits)
    with pytest.raises(IncompatibleSplitsError):
        compute_tree_from_compatible_splits([])


def test_reorder_by_ordering():
    tree = tree_with_taxa("((x4,x1),(x3,x2));")
    for leaf in tree.get_leaves():
        leaf.name = str(leaf.taxa[0])
    reorder_by_ordering(tree, [2, 3, 1, 4])
    assert tree.get_current_order() == ("2", "3", "1", "4")
