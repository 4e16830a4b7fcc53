"""Split networks: split systems, Convex Hull construction and Split-Newick I/O."""

__version__ = "0.1.0"

__all__ = [
    "Split",
    "SplitSystem",
    "SplitsGraph",
    "SplitNetwork",
    "build_split_network",
    "convex_hull",
    "compute_cycle",
    "parse_split_newick",
    "to_split_newick",
]


def __getattr__(name):
    if name in {"Split", "SplitSystem"}:
        from .elements import Split, SplitSystem

        return locals()[name]
    if name in {"SplitsGraph", "SplitNetwork", "build_split_network", "convex_hull"}:
        from .network import SplitNetwork, SplitsGraph, build_split_network, convex_hull

        return locals()[name]
    if name == "compute_cycle":
        from .leaforder import compute_cycle

        return compute_cycle
    if name in {"parse_split_newick", "to_split_newick"}:
        from .io import parse_split_newick, to_split_newick

        return locals()[name]
    raise AttributeError(name)
