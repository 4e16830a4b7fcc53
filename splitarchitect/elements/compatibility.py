"""
Compatibility predicates for splits and split systems.

Two splits are compatible when they can be edges of one tree. Weak compatibility
is a three-way condition that still admits some non-tree structure, and a split
system is cyclic when a single circular ordering makes every split an arc.
"""

from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

import numpy as np

from splitarchitect.elements.split import Split


class Compatibility(Enum):
    COMPATIBLE = "compatible"
    CYCLIC = "cyclic"
    WEAKLY_COMPATIBLE = "weakly compatible"
    INCOMPATIBLE = "incompatible"
    UNKNOWN = "unknown"


def are_compatible(split1: Split, split2: Split) -> bool:
    """
    True if at least one of A1∩A2, A1∩B2, B1∩A2, B1∩B2 is empty.
    """
    a1, b1 = split1.a.bitmask, split1.b.bitmask
    a2, b2 = split2.a.bitmask, split2.b.bitmask
    return not (a1 & a2) or not (a1 & b2) or not (b1 & a2) or not (b1 & b2)


def _intersects(a: int, b: int, c: int) -> bool:
    return bool(a & b & c)


def are_weakly_compatible(split1: Split, split2: Split, split3: Split) -> bool:
    """
    True unless one of the two complementary labelings has all four
    three-way intersections non-empty.
    """
    a1, b1 = split1.a.bitmask, split1.b.bitmask
    a2, b2 = split2.a.bitmask, split2.b.bitmask
    a3, b3 = split3.a.bitmask, split3.b.bitmask

    return not (
        (
            _intersects(a1, a2, a3)
            and _intersects(a1, b2, b3)
            and _intersects(b1, a2, b3)
            and _intersects(b1, b2, a3)
        )
        or (
            _intersects(b1, b2, b3)
            and _intersects(b1, a2, a3)
            and _intersects(a1, b2, a3)
            and _intersects(a1, a2, b3)
        )
    )


def is_compatible(splits: Sequence[Split]) -> bool:
    """True if the splits are pairwise compatible."""
    for i in range(len(splits)):
        for j in range(i + 1, len(splits)):
            if not are_compatible(splits[i], splits[j]):
                return False
    return True


def is_compatible_with(split: Split, splits: Sequence[Split]) -> bool:
    return all(are_compatible(split, other) for other in splits)


def is_weakly_compatible(splits: Sequence[Split]) -> bool:
    n = len(splits)
    for i in range(n):
        for j in range(i + 1, n):
            for k in range(j + 1, n):
                if not are_weakly_compatible(splits[i], splits[j], splits[k]):
                    return False
    return True


def is_cyclic(
    ntax: int, splits: Sequence[Split], cycle: Optional[Sequence[int]] = None
) -> bool:
    """
    True if every split is an arc of the circular ordering ``cycle``.

    When no cycle is given one is computed from the splits.
    """
    if cycle is None:
        from splitarchitect.leaforder.circular_ordering import compute_cycle

        cycle = compute_cycle(ntax, splits)

    position = {taxon: rank for rank, taxon in enumerate(cycle)}
    for split in splits:
        # the side avoiding cycle[0] cannot wrap around
        side = split.part_not_containing(cycle[0])
        ranks = [position[t] for t in side]
        if max(ranks) - min(ranks) + 1 != len(side):
            return False
    return True


def compute_compatibility(
    ntax: int, splits: Sequence[Split], cycle: Optional[Sequence[int]] = None
) -> Compatibility:
    """Classify a split system, strongest property first."""
    if not splits:
        return Compatibility.UNKNOWN
    if is_compatible(splits):
        return Compatibility.COMPATIBLE
    if is_cyclic(ntax, splits, cycle):
        return Compatibility.CYCLIC
    if ntax < 100 and is_weakly_compatible(splits):
        return Compatibility.WEAKLY_COMPATIBLE
    return Compatibility.INCOMPATIBLE


def compatibility_matrix(splits: Sequence[Split]) -> np.ndarray:
    """
    Boolean matrix ``M[i, j] = are_compatible(splits[i], splits[j])``.

    Every split is compatible with itself, so the diagonal is True.
    """
    n = len(splits)
    matrix = np.ones((n, n), dtype=bool)
    for i in range(n):
        for j in range(i + 1, n):
            matrix[i, j] = matrix[j, i] = are_compatible(splits[i], splits[j])
    return matrix


def incompatibility_graph(splits: Sequence[Split]) -> Dict[int, Set[int]]:
    """Adjacency of incompatible split pairs, keyed by 0-based split index."""
    matrix = compatibility_matrix(splits)
    graph: Dict[int, Set[int]] = {i: set() for i in range(len(splits))}
    for i, j in zip(*np.nonzero(~matrix)):
        graph[int(i)].add(int(j))
    return graph


def count_incompatible_pairs(splits: Sequence[Split]) -> int:
    matrix = compatibility_matrix(splits)
    return int(np.count_nonzero(~matrix)) // 2


def incompatible_splits(split: Split, splits: Sequence[Split]) -> List[Split]:
    return [other for other in splits if not are_compatible(split, other)]
