"""Table rendering of split systems.

Renders small tables for terminal output and logs. Taxa are shown by label
when a label function is supplied.
"""

import logging
from typing import Any, Callable, List, Optional, Sequence

from tabulate import tabulate

from splitarchitect.elements.split import Split
from splitarchitect.network.splits_graph import SplitsGraph

logger = logging.getLogger(__name__)


def split_rows(
    splits: Sequence[Split], label: Optional[Callable[[int], str]] = None
) -> List[List[Any]]:
    label = label or str
    rows: List[List[Any]] = []
    for index, split in enumerate(splits, start=1):
        first, second = split.canonical()
        rows.append(
            [
                index,
                " ".join(label(t) for t in first),
                " ".join(label(t) for t in second),
                split.size(),
                split.weight,
                "" if split.confidence is None else split.confidence,
            ]
        )
    return rows


def split_table(
    splits: Sequence[Split],
    label: Optional[Callable[[int], str]] = None,
    tablefmt: str = "simple",
) -> str:
    """Render splits as a table with one row per split."""
    return tabulate(
        split_rows(splits, label),
        headers=["id", "side A", "side B", "size", "weight", "confidence"],
        tablefmt=tablefmt,
        floatfmt=".6g",
        colalign=("right", "left", "left", "right", "right", "right"),
        showindex=False,
    )


def graph_summary_table(graph: SplitsGraph, tablefmt: str = "simple") -> str:
    """Node, edge and split counts of a split network."""
    rows = [
        ["nodes", graph.number_of_nodes],
        ["edges", graph.number_of_edges],
        ["splits", len([s for s in graph.split_ids() if s > 0])],
        ["taxa", len(graph.taxa())],
        ["connected", "yes" if graph.is_connected() else "no"],
    ]
    return tabulate(rows, tablefmt=tablefmt)


def log_split_table(
    splits: Sequence[Split],
    title: Optional[str] = None,
    label: Optional[Callable[[int], str]] = None,
    level: int = logging.DEBUG,
) -> None:
    """Write a split table to the module logger."""
    if not logger.isEnabledFor(level):
        return
    if title:
        logger.log(level, "%s:", title)
    logger.log(level, "\n%s", split_table(splits, label))
