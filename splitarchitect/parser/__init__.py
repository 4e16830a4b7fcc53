"""
Newick reading and writing.

Exports:
    parse_newick: Parse Newick text into one or more trees
    parse_newick_with_markers: Parse Newick text carrying Split-Newick markers
    render_newick: Render a tree and record leaf label positions
"""

from splitarchitect.parser.newick_parser import (
    NewickParseResult,
    SplitMarker,
    get_linear_order,
    parse_newick,
    parse_newick_with_markers,
)
from splitarchitect.parser.newick_writer import (
    LeafSpan,
    RenderedNewick,
    format_number,
    quote_label,
    render_newick,
)

__all__ = [
    "NewickParseResult",
    "SplitMarker",
    "get_linear_order",
    "parse_newick",
    "parse_newick_with_markers",
    "LeafSpan",
    "RenderedNewick",
    "format_number",
    "quote_label",
    "render_newick",
]
