from splitarchitect.network.convex_hull import (
    SplitNetwork,
    build_split_network,
    convex_hull,
    create_star_network,
    extract_splits,
    induced_cluster,
)
from splitarchitect.network.progress import (
    CancellableProgress,
    ProgressListener,
    RichProgress,
    SilentProgress,
)
from splitarchitect.network.splits_graph import SplitsGraph

__all__ = [
    "SplitNetwork",
    "build_split_network",
    "convex_hull",
    "create_star_network",
    "extract_splits",
    "induced_cluster",
    "CancellableProgress",
    "ProgressListener",
    "RichProgress",
    "SilentProgress",
    "SplitsGraph",
]
