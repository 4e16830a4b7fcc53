from splitarchitect.io.split_newick import (
    SplitNewickResult,
    parse_split_newick,
    read_split_network,
    read_split_newick,
    split_network_to_string,
    to_split_newick,
    write_split_newick,
)

__all__ = [
    "SplitNewickResult",
    "parse_split_newick",
    "read_split_network",
    "read_split_newick",
    "split_network_to_string",
    "to_split_newick",
    "write_split_newick",
]
