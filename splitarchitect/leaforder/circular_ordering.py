import functools
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from splitarchitect.elements.split import Split
from splitarchitect.leaforder.pq_tree import PQTree

logger = logging.getLogger(__name__)


##################################################
#                Cycle computation
##################################################


def compute_cycle(ntax: int, splits: Iterable[Split], progress=None) -> List[int]:
    """
    Compute a circular ordering of the taxa ``1..ntax``.

    Non-trivial splits are offered to a PQ-tree as consecutive-subset
    constraints, in decreasing order of ``weight * size``. A split whose side
    not containing taxon 1 can no longer be made consecutive is dropped, so the
    result is a best-effort ordering for incompatible systems.

    Returns:
        The taxa in cyclic order, as a plain list starting anywhere.
    """
    pq_tree = PQTree(range(1, ntax + 1))
    clusters: List[Tuple[float, Tuple[int, ...]]] = [
        (split.weight * split.size(), split.part_not_containing(1).indices)
        for split in splits
        if not split.is_trivial()
    ]
    # stable sort keeps input order among equal scores
    clusters.sort(key=lambda item: -item[0])

    rejected = 0
    for _, cluster in clusters:
        if progress is not None:
            progress.check_for_cancel()
        if not pq_tree.accept(cluster):
            rejected += 1
    if rejected:
        logger.debug("%d of %d splits not represented in cycle", rejected, len(clusters))
    return pq_tree.extract_ordering()


def normalize_cycle(cycle: Sequence[int]) -> List[int]:
    """
    Rotate so that taxon 1 comes first and orient the cycle so that the taxon
    following 1 is smaller than the one preceding it.
    """
    if not cycle:
        return []
    n = len(cycle)
    pos = list(cycle).index(1)
    following = cycle[(pos + 1) % n]
    preceding = cycle[(pos - 1) % n]
    if preceding > following:
        return [cycle[(pos + i) % n] for i in range(n)]
    return [cycle[(pos - i) % n] for i in range(n)]


def rotate_cycle(cycle: Sequence[int], first: int) -> List[int]:
    """Rotate the cycle so that it starts with ``first``."""
    pos = list(cycle).index(first)
    return list(cycle[pos:]) + list(cycle[:pos])


def is_compatible_with_ordering(part: Iterable[int], ordering: Sequence[int]) -> bool:
    """True if the taxa of ``part`` occur consecutively in ``ordering``."""
    members = set(part)
    if not members:
        return False
    inside = False
    count = 0
    for t in ordering:
        if t in members:
            inside = True
            count += 1
            if count == len(members):
                return True
        elif inside:
            return False
    return False


def splits_compatible_with_cycle(
    splits: Iterable[Split], cycle: Sequence[int]
) -> List[Split]:
    """Splits whose side not containing ``cycle[0]`` is an arc of the cycle."""
    return [
        split
        for split in splits
        if is_compatible_with_ordering(split.part_not_containing(cycle[0]), cycle)
    ]


##################################################
#                Distance Utilities
##################################################


def _circular_distance_ranked(x: Tuple[int, ...], y: Tuple[int, ...]) -> float:
    """
    Normalized circular distance of two rank tuples:
    sum( min(|pos_x - pos_y|, n - |pos_x - pos_y|) ) / ( n * (n//2) )
    """
    n = len(x)
    index_x = {elem: i for i, elem in enumerate(x)}
    index_y = {elem: i for i, elem in enumerate(y)}
    distance = 0
    for element in y:
        diff = abs(index_x[element] - index_y[element])
        distance += min(diff, n - diff)
    max_possible_distance = n * (n // 2)
    return distance / max_possible_distance if max_possible_distance else 0.0


@functools.lru_cache(maxsize=None)
def circular_distance(order_x: Tuple[int, ...], order_y: Tuple[int, ...]) -> float:
    """
    Normalized circular distance between two orderings of the same taxa.
    0 means identical positions, 1 the largest possible displacement.
    """
    if not order_x or not order_y:
        raise ValueError("Input tuples must not be empty.")
    if len(set(order_x)) != len(order_x) or len(set(order_y)) != len(order_y):
        raise ValueError("Input tuples must contain unique elements.")
    if set(order_x) != set(order_y):
        raise ValueError(f"The two orders contain different taxa: {order_x} {order_y}")
    return _circular_distance_ranked(tuple(order_x), tuple(order_y))
