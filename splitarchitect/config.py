from dataclasses import dataclass


@dataclass
class SplitNewickConfig:
    """Configuration for reading and writing Split-Newick strings."""

    include_weights: bool = True
    include_confidences: bool = False
    self_check: bool = True
    default_weight: float = 1.0
    precision: int = 8


@dataclass
class NetworkConfig:
    """Configuration for split network construction."""

    star_fallback: bool = True
    label_representative_edges: bool = True
