from splitarchitect.leaforder.circular_ordering import (
    circular_distance,
    compute_cycle,
    is_compatible_with_ordering,
    normalize_cycle,
    rotate_cycle,
)
from splitarchitect.leaforder.pq_tree import PQTree

__all__ = [
    "PQTree",
    "circular_distance",
    "compute_cycle",
    "is_compatible_with_ordering",
    "normalize_cycle",
    "rotate_cycle",
]
