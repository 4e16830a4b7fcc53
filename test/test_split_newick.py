import io

import pytest
from hypothesis import given, settings, strategies as st

from splitarchitect.config import SplitNewickConfig
from splitarchitect.diagnostics import Diagnostics
from splitarchitect.elements.compatibility import is_compatible
from splitarchitect.elements.split import Split
from splitarchitect.elements.split_system import SplitSystem
from splitarchitect.exceptions import NewickParseError
from splitarchitect.io.split_newick import (
    parse_split_newick,
    read_split_network,
    read_split_newick,
    split_network_to_string,
    to_split_newick,
    write_split_newick,
)
from splitarchitect.network.convex_hull import build_split_network


def positive(splits):
    return SplitSystem.from_splits(s for s in splits if s.weight > 0)


def round_trip(splits, labels, **kwargs):
    diagnostics = Diagnostics()
    text = to_split_newick(splits, labels, diagnostics=diagnostics, **kwargs)
    label_map = {labels(t): t for t in range(1, splits[0].ntax + 1)}
    back = parse_split_newick(text, label_map)
    return text, back, diagnostics


# ===================================================================
# reading
# ===================================================================


def test_parse_tree_splits():
    result = parse_split_newick("((a:1,b:2):0.5,(c:1,d:1):0.5);")
    assert result.taxon_labels == {1: "a", 2: "b", 3: "c", 4: "d"}
    assert result.ntax == 4
    assert len(result.splits) == 5
    assert result.splits.get(Split([1, 2], [3, 4])).weight == 1.0
    assert result.taxon_label(2) == "b"
    assert result.taxon_label(9) == "9"


def test_parse_marker_split():
    result = parse_split_newick("((a,<1|b),(c|1:2:80>,d));")
    marker_split = result.splits.get(Split([2, 3], [1, 4]))
    assert marker_split is not None
    assert (marker_split.weight, marker_split.confidence) == (2.0, 80.0)
    assert len(result.diagnostics) == 0


def test_marker_without_values_uses_default_weight():
    config = SplitNewickConfig(default_weight=0.25)
    result = parse_split_newick("((a,<1|b),(c|1>,d));", config=config)
    split = result.splits.get(Split([2, 3], [1, 4]))
    assert split.weight == 0.25
    assert split.confidence is None


def test_marker_equal_to_tree_split_is_merged():
    result = parse_split_newick("(<1|(a,b):1|1:2>,(c,d):1);")
    assert result.splits.get(Split([1, 2], [3, 4])).weight == 4.0


def test_taxa_from_label_map():
    result = parse_split_newick("(c,(a,b));", {"a": 1, "b": 2, "c": 3})
    assert result.taxon_labels == {1: "a", 2: "b", 3: "c"}
    assert Split([1, 2], [3]) in result.splits


def test_missing_taxa_are_reported():
    result = parse_split_newick("(a,b,d);", {"a": 1, "b": 2, "c": 3, "d": 4})
    assert result.diagnostics.codes() == {"incomplete-taxa"}


@pytest.mark.parametrize(
    "text, label_map, position, fragment",
    [
        ("(a,,b);", None, 3, "Unlabelled leaf"),
        ("(a,b,a);", None, 5, "Duplicate leaf label"),
        ("(a,b,x);", {"a": 1, "b": 2, "c": 3}, 5, "Unknown taxon label"),
        ("(a,<1|b,c);", None, 3, "not closed"),
        ("((a,b);", None, 6, "missing ')'"),
    ],
)
def test_parse_errors(text, label_map, position, fragment):
    with pytest.raises(NewickParseError) as info:
        parse_split_newick(text, label_map)
    assert info.value.position == position
    assert fragment in str(info.value)


def test_empty_and_all_taxa_markers_are_skipped():
    result = parse_split_newick("(<2|a,b,c,<1||1>d|2>);")
    assert result.diagnostics.codes() == {"empty-split", "invalid-split"}
    assert all(s.is_trivial() for s in result.splits)


def test_empty_text():
    result = parse_split_newick("  ")
    assert len(result.splits) == 0
    assert result.ntax == 0


def test_only_first_tree_is_read():
    result = parse_split_newick("(a,b,(c,d));(a,c,(b,d));")
    assert Split([1, 2], [3, 4]) in result.splits
    assert Split([1, 3], [2, 4]) not in result.splits


def test_read_from_stream():
    stream = io.StringIO("(a,b,(c,d):3);\n(ignored);\n")
    result = read_split_newick(stream)
    assert result.splits.get(Split([1, 2], [3, 4])).weight == 3.0


# ===================================================================
# writing
# ===================================================================


def test_square_with_explicit_ordering(square_splits):
    text = to_split_newick(square_splits, ordering=[1, 2, 3, 4])
    assert text == "(1:0,<1|2|1>:0,(3:0,<1|4|1:1>:0):1);"
    assert text.count("<1|") == 2


def test_square_round_trip(square_splits, labels4):
    text, back, diagnostics = round_trip(square_splits, labels4)
    assert len(diagnostics) == 0
    assert positive(back.splits) == SplitSystem.from_splits(square_splits)
    assert text.endswith(";")


def test_tree_round_trip(labels4):
    source = parse_split_newick("((a:1,b:2):0.5,(c:1,d:1):0.5);")
    text, back, diagnostics = round_trip(list(source.splits), labels4)
    assert len(diagnostics) == 0
    assert "<" not in text
    assert positive(back.splits) == positive(source.splits)
    for split in source.splits:
        assert back.splits.get(split).weight == pytest.approx(split.weight)


def test_circular_round_trip_with_confidences():
    labels = "abcdef".__getitem__
    splits = [
        Split.from_cluster(arc, 6, weight=w, confidence=c)
        for arc, w, c in [
            ([1, 2], 1.5, 90.0),
            ([2, 3], 0.5, 50.0),
            ([3, 4, 5], 2.0, 75.0),
            ([6, 1], 0.25, 99.0),
        ]
    ]
    splits += [Split.from_cluster([t], 6, weight=0.1 * t) for t in range(1, 7)]
    config = SplitNewickConfig(include_confidences=True)
    text, back, diagnostics = round_trip(splits, lambda t: labels(t - 1), config=config)
    assert len(diagnostics) == 0
    for split in splits:
        other = back.splits.get(split)
        assert other.weight == pytest.approx(split.weight)
        assert other.confidence == split.confidence


def test_incompatible_round_trip_without_weights(labels4):
    splits = [Split([1, 2], [3, 4]), Split([1, 3], [2, 4]), Split([1, 4], [2, 3])]
    config = SplitNewickConfig(include_weights=False)
    text, back, diagnostics = round_trip(splits, labels4, config=config)
    assert ":" not in text
    assert len(diagnostics) == 0
    assert SplitSystem(back.splits.nontrivial()) == SplitSystem.from_splits(splits)


def test_duplicate_splits_are_merged_before_writing(trivial4, labels4):
    splits = trivial4 + [Split([1, 2], [3, 4]), Split([3, 4], [1, 2], weight=2.0)]
    text, back, diagnostics = round_trip(splits, labels4)
    assert len(diagnostics) == 0
    assert back.splits.get(Split([1, 2], [3, 4])).weight == 3.0
    assert splits[-1].weight == 2.0


def test_labels_are_quoted():
    splits = [Split([1, 2], [3, 4])]
    names = {1: "Homo sapiens", 2: "b", 3: "c", 4: "d"}
    text = to_split_newick(splits, names.__getitem__, ordering=[1, 2, 3, 4])
    assert "'Homo sapiens'" in text
    back = parse_split_newick(text, {v: k for k, v in names.items()})
    assert Split([1, 2], [3, 4]) in back.splits


def test_empty_split_list():
    assert to_split_newick([]) == ""


def test_self_check_reports_weight_changes(square_splits):
    # zero precision rounds the weight 0.4 to 0
    splits = [Split([1, 2], [3, 4], weight=0.4)] + square_splits[1:]
    diagnostics = Diagnostics()
    to_split_newick(
        splits,
        ordering=[1, 2, 3, 4],
        config=SplitNewickConfig(precision=0),
        diagnostics=diagnostics,
    )
    assert "roundtrip-weight" in diagnostics.codes()


def test_self_check_can_be_disabled(square_splits):
    diagnostics = Diagnostics()
    splits = [Split([1, 2], [3, 4], weight=0.4)] + square_splits[1:]
    to_split_newick(
        splits,
        ordering=[1, 2, 3, 4],
        config=SplitNewickConfig(precision=0, self_check=False),
        diagnostics=diagnostics,
    )
    assert len(diagnostics) == 0


def test_write_to_stream(square_splits):
    stream = io.StringIO()
    write_split_newick(stream, square_splits, ordering=[1, 2, 3, 4])
    assert stream.getvalue() == to_split_newick(square_splits, ordering=[1, 2, 3, 4])


# ===================================================================
# networks
# ===================================================================


def test_network_to_string_uses_node_labels(square_splits, trivial4, labels4):
    network = build_split_network(square_splits + trivial4, taxon_label=labels4)
    text = split_network_to_string(network.graph)
    back = parse_split_newick(text, {"a": 1, "b": 2, "c": 3, "d": 4})
    assert positive(back.splits) == network.splits


def test_read_split_network():
    network = read_split_network("(a:1,<1|b:1|1>,(c:1,<1|d:1|1:2>):1);")
    assert network.graph.is_connected()
    assert not network.fallback
    assert len(network.diagnostics) == 0
    graph = network.graph
    labels = sorted(graph.node_label(v) for v in graph.nodes() if graph.get_taxa(v))
    assert labels == ["a", "b", "c", "d"]
    assert Split([2, 4], [1, 3]) in network.splits


def test_read_split_network_collects_diagnostics():
    network = read_split_network("(a,b,(c,<1||1>d));")
    assert "empty-split" in network.diagnostics.codes()


def test_caterpillar_is_written_without_markers(labels4):
    splits = [Split([1], [2, 3, 4]), Split([1, 2], [3, 4]), Split([1, 2, 3], [4])]
    text, back, diagnostics = round_trip(splits, labels4, ordering=[1, 2, 3, 4])
    assert "<" not in text
    assert len(diagnostics) == 0
    assert positive(back.splits) == SplitSystem.from_splits(splits)


# ===================================================================
# round-trip properties
# ===================================================================


@st.composite
def split_lists(draw, compatible=False):
    """Random weighted splits plus all trivial splits, duplicates allowed."""
    ntax = draw(st.integers(min_value=4, max_value=8))
    weights = st.integers(min_value=1, max_value=400).map(lambda w: w / 4)
    splits = [
        Split.from_cluster([t], ntax, weight=draw(weights)) for t in range(1, ntax + 1)
    ]
    sides = draw(
        st.lists(
            st.sets(st.integers(min_value=1, max_value=ntax), min_size=2, max_size=ntax - 2),
            max_size=8,
        )
    )
    for side in sides:
        split = Split.from_cluster(sorted(side), ntax, weight=draw(weights))
        if compatible and not is_compatible(splits + [split]):
            continue
        splits.append(split)
    return splits


def taxon_name(t):
    return f"t{t}"


def assert_round_trip(splits):
    text, back, diagnostics = round_trip(splits, taxon_name)
    expected = SplitSystem.from_splits(splits)
    assert len(diagnostics) == 0, text
    assert positive(back.splits) == expected
    for split in expected:
        assert back.splits.get(split).weight == pytest.approx(split.weight, abs=1e-8)


@given(split_lists(compatible=True))
@settings(max_examples=60, deadline=None)
def test_compatible_systems_round_trip(splits):
    assert_round_trip(splits)


@given(split_lists())
@settings(max_examples=100, deadline=None)
def test_arbitrary_systems_round_trip(splits):
    assert_round_trip(splits)
