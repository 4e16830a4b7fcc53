import pytest

from splitarchitect.elements.split import Split
from splitarchitect.elements.split_system import SplitSystem


def test_duplicates_are_merged_by_summing_weights():
    system = SplitSystem()
    system.add(Split([1, 2], [3, 4], weight=1.0))
    held = system.add(Split([3, 4], [1, 2], weight=2.5))
    assert len(system) == 1
    assert held is system[0]
    assert system[0].weight == 3.5
    assert system.ntax == 4


def test_later_confidence_wins():
    system = SplitSystem()
    system.add(Split([1, 2], [3, 4], confidence=0.5))
    system.add(Split([1, 2], [3, 4]))
    assert system[0].confidence == 0.5
    system.add(Split([1, 2], [3, 4], confidence=0.9))
    assert system[0].confidence == 0.9


def test_ntax_mismatch_is_rejected():
    system = SplitSystem([Split([1, 2], [3, 4])])
    with pytest.raises(ValueError):
        system.add(Split([1], [2, 3]))


def test_lookup(square_splits):
    system = SplitSystem(square_splits)
    assert system.index_of(Split([2, 4], [1, 3])) == 1
    assert system.index_of(Split([1, 4], [2, 3])) == -1
    assert system.index_of(Split([1], [2, 3])) == -1
    assert Split([3, 4], [1, 2]) in system
    assert "12|34" not in system
    assert system.get(Split([1, 4], [2, 3])) is None


def test_from_splits_copies_input(square_splits):
    system = SplitSystem.from_splits(square_splits + [Split([1, 2], [3, 4])])
    assert len(system) == 2
    assert system[0].weight == 2.0
    assert square_splits[0].weight == 1.0


def test_equality_ignores_order_and_weights(square_splits):
    forward = SplitSystem.from_splits(square_splits)
    backward = SplitSystem.from_splits(reversed(square_splits))
    backward[0].weight = 7.0
    assert forward == backward
    assert forward != SplitSystem.from_splits(square_splits[:1])


def test_derived_views(square_splits, trivial4):
    system = SplitSystem.from_splits(square_splits + trivial4)
    assert len(system.trivial()) == 4
    assert len(system.nontrivial()) == 2
    assert system.total_weight() == 6.0
    assert system.filter(lambda s: s.is_trivial()) == SplitSystem.from_splits(trivial4)
    ordered = system.sorted(key=lambda s: (s.size(), s.key))
    assert [s.size() for s in ordered] == [1, 1, 1, 1, 2, 2]
    assert system.to_list()[0] is system[0]
    assert system[1:3] == [system[1], system[2]]


def test_copy_is_deep(square_splits):
    system = SplitSystem.from_splits(square_splits)
    other = system.copy()
    other[0].weight = 10.0
    assert system[0].weight == 1.0
    assert other.name == system.name
