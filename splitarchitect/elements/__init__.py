"""Split data model: taxa, partitions, splits and split systems."""

from splitarchitect.elements.taxa import TaxonId, taxon_range, taxa_mask
from splitarchitect.elements.partition import Partition
from splitarchitect.elements.split import Split
from splitarchitect.elements.split_system import SplitSystem
from splitarchitect.elements.compatibility import (
    Compatibility,
    are_compatible,
    are_weakly_compatible,
    compute_compatibility,
    is_compatible,
    is_cyclic,
    is_weakly_compatible,
)

__all__ = [
    "TaxonId",
    "taxon_range",
    "taxa_mask",
    "Partition",
    "Split",
    "SplitSystem",
    "Compatibility",
    "are_compatible",
    "are_weakly_compatible",
    "compute_compatibility",
    "is_compatible",
    "is_cyclic",
    "is_weakly_compatible",
]
