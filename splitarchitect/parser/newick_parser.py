import ast
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from splitarchitect.exceptions import NewickParseError
from splitarchitect.parser.tokenizer import Token, TokenType, parse_number, tokenize
from splitarchitect.tree import Node

logger = logging.getLogger(__name__)

# length, confidence, probability
MAX_EDGE_VALUES = 3


@dataclass
class SplitMarker:
    """A split marker id together with every node labelled while it was open."""

    marker_id: int
    position: int
    nodes: List[Node] = field(default_factory=list)
    values: Tuple[float, ...] = ()
    closed: int = 0

    @property
    def leaves(self) -> List[Node]:
        return [node for node in self.nodes if node.is_leaf()]


@dataclass
class NewickParseResult:
    trees: List[Node]
    markers: Dict[int, SplitMarker]
    # id(node) -> offset of its label, or of where it starts if unlabelled
    positions: Dict[int, int] = field(default_factory=dict)

    def position_of(self, node: Node) -> Optional[int]:
        return self.positions.get(id(node))


# ===================================================================
# 1. METADATA PROCESSING FUNCTIONS
# ===================================================================


def split_token(token: str) -> Tuple[str, Any]:
    """
    Split a metadata token into name and value parts.
    Handles both "name=value" and "name:value" formats.
    """
    if "=" in token:
        name, value = token.split("=", 1)
    elif ":" in token:
        name, value = token.split(":", 1)
    else:
        return token, True

    try:
        parsed_value = ast.literal_eval(value)
    except (ValueError, SyntaxError):
        parsed_value = value
    return name, parsed_value


def parse_metadata(data: str) -> Dict[str, Any]:
    """
    Parse a bracket comment into a dictionary.
    Handles both NHX (``&&NHX:key=value:key=value``) and ``key=value,key=value``.
    """
    data = data.strip()
    if data.startswith("&&NHX:"):
        tokens = data[6:].split(":")
        result: Dict[str, Any] = {}
        for token in tokens:
            if "=" in token:
                key, value_str = token.split("=", 1)
                result[key] = split_token(f"{key}={value_str}")[1]
        return result
    tokens = data.replace(";", ",").replace(" ", ",").split(",")
    return dict(split_token(token.strip()) for token in tokens if token.strip())


# ===================================================================
# 2. NODE STACK MANAGEMENT FUNCTIONS
# ===================================================================


def init_nodestack() -> List[Node]:
    """Start a tree with a dummy root node, filled in by the outermost group."""
    return [Node()]


def create_new_node(stack: List[Node]) -> Node:
    """Create a child of the node on top of the stack and push it."""
    new_node = stack[-1].append_child(Node())
    stack.append(new_node)
    return new_node


def close_node(stack: List[Node]) -> Node:
    return stack.pop()


# ===================================================================
# 3. CORE PARSING
# ===================================================================


class _TreeReader:
    """State of a single left-to-right pass over the token list."""

    def __init__(self, text: str, allow_markers: bool):
        self.text = text
        self.allow_markers = allow_markers
        self.tokens: List[Token] = list(tokenize(text))
        self.index = 0
        self.trees: List[Node] = []
        self.markers: Dict[int, SplitMarker] = {}
        self.open_counts: Dict[int, int] = {}
        self.positions: Dict[int, int] = {}
        self._reset_tree()

    def _reset_tree(self) -> None:
        self.stack = init_nodestack()
        if self.index < len(self.tokens):
            self.positions[id(self.stack[0])] = self.tokens[self.index].position
        self.fresh = True
        self.value_count = 0
        self.started = False

    def error(self, message: str, position: Optional[int]) -> NewickParseError:
        return NewickParseError(message, self.text, position)

    def run(self) -> NewickParseResult:
        while self.index < len(self.tokens):
            token = self.tokens[self.index]
            self.index += 1
            self.started = True
            handler = getattr(self, "_on_" + token.kind.name.lower())
            handler(token)

        if self.started:
            self._finish_tree(len(self.text))
        return NewickParseResult(self.trees, self.markers, self.positions)

    def _on_lparen(self, token: Token) -> None:
        if not self.fresh:
            raise self.error("Unexpected '('", token.position)
        new_node = create_new_node(self.stack)
        self.positions[id(new_node)] = token.position + 1
        self.value_count = 0

    def _on_rparen(self, token: Token) -> None:
        if len(self.stack) <= 1:
            raise self.error("Unbalanced parentheses: unexpected ')'", token.position)
        close_node(self.stack)
        self.fresh = False
        self.value_count = 0

    def _on_comma(self, token: Token) -> None:
        if len(self.stack) <= 1:
            raise self.error("Unexpected ',' outside of parentheses", token.position)
        close_node(self.stack)
        new_node = create_new_node(self.stack)
        self.positions[id(new_node)] = token.position + 1
        self.fresh = True
        self.value_count = 0

    def _on_label(self, token: Token) -> None:
        node = self.stack[-1]
        if node.name or self.value_count:
            raise self.error(f"Unexpected label {token.text!r}", token.position)
        node.name = token.text
        self.positions[id(node)] = token.position
        self.fresh = False
        for marker_id, count in self.open_counts.items():
            if count > 0:
                self.markers[marker_id].nodes.append(node)

    def _on_colon(self, token: Token) -> None:
        node = self.stack[-1]
        if self.value_count >= MAX_EDGE_VALUES:
            raise self.error("Too many values after label", token.position)
        if self.index >= len(self.tokens):
            raise self.error("Missing number after ':'", token.position)
        number_token = self.tokens[self.index]
        if number_token.kind is not TokenType.LABEL or number_token.quoted:
            raise self.error("Missing number after ':'", number_token.position)
        self.index += 1
        value = parse_number(number_token.text, self.text, number_token.position)
        if self.value_count == 0:
            node.length = value
        elif self.value_count == 1:
            node.confidence = value
        else:
            node.probability = value
        self.value_count += 1
        self.fresh = False

    def _on_comment(self, token: Token) -> None:
        self.stack[-1].values.update(parse_metadata(token.text))

    def _on_open_marker(self, token: Token) -> None:
        if not self.allow_markers:
            raise self.error("Split marker in plain Newick text", token.position)
        marker = self.markers.get(token.marker_id)
        if marker is None:
            marker = SplitMarker(token.marker_id, token.position)
            self.markers[token.marker_id] = marker
        self.open_counts[token.marker_id] = self.open_counts.get(token.marker_id, 0) + 1

    def _on_close_marker(self, token: Token) -> None:
        if not self.allow_markers:
            raise self.error("Split marker in plain Newick text", token.position)
        if self.open_counts.get(token.marker_id, 0) <= 0:
            raise self.error(
                f"Closing split marker {token.marker_id} was never opened",
                token.position,
            )
        self.open_counts[token.marker_id] -= 1
        marker = self.markers[token.marker_id]
        marker.closed += 1
        if token.values:
            marker.values = token.values

    def _on_semicolon(self, token: Token) -> None:
        self._finish_tree(token.position)
        self._reset_tree()

    def _finish_tree(self, position: int) -> None:
        if len(self.stack) > 1:
            raise self.error("Unbalanced parentheses: missing ')'", position)
        for marker_id, count in self.open_counts.items():
            if count > 0:
                raise self.error(
                    f"Split marker {marker_id} is not closed",
                    self.markers[marker_id].position,
                )
        self.trees.append(self.stack.pop())


# ===================================================================
# 4. PUBLIC API FUNCTIONS
# ===================================================================


def parse_newick_with_markers(text: str) -> NewickParseResult:
    """Parse Newick text that may contain ``<id|``/``|id>`` split markers."""
    result = _TreeReader(text, allow_markers=True).run()
    logger.debug(
        "Parsed %d tree(s) with %d split marker(s)", len(result.trees), len(result.markers)
    )
    return result


def parse_newick(text: str, force_list: bool = False) -> Union[Node, List[Node]]:
    """
    Parse a Newick string into a tree or list of trees.

    Args:
        text: Newick text, one or more trees separated by ``;``
        force_list: always return a list even for a single tree

    Raises:
        NewickParseError: on the first syntax error, with its position
    """
    trees = _TreeReader(text, allow_markers=False).run().trees
    if not trees:
        raise NewickParseError("No tree found", text, 0)
    if len(trees) == 1 and not force_list:
        return trees[0]
    return trees


def get_linear_order(tree: Node) -> List[str]:
    """Leaf names of a tree from left to right."""
    return [leaf.name for leaf in tree.get_leaves() if leaf.name]
