"""Text formatting utilities for logging."""

from typing import Any, Callable, Iterable, Optional, Set

from splitarchitect.elements.split import Split


def format_set(s: Set[Any]) -> str:
    """Format set for consistent display."""
    if not s:
        return "∅"
    return "{" + ", ".join(str(x) for x in sorted(s)) + "}"


def format_partition(part: Any, label: Optional[Callable[[int], str]] = None) -> str:
    """Format a Partition (or any iterable of taxa) as '(a, b, ...)'."""
    try:
        values: Iterable[Any] = tuple(part)
    except TypeError:
        return str(part)
    if label is not None:
        return "(" + ", ".join(label(t) for t in values) + ")"
    return "(" + ", ".join(str(t) for t in values) + ")"


def format_split(
    split: Split,
    reference: int = 1,
    label: Optional[Callable[[int], str]] = None,
    with_weight: bool = True,
) -> str:
    """Format the side of ``split`` not containing ``reference``, with its weight."""
    text = format_partition(split.part_not_containing(reference), label)
    if with_weight:
        text += f": {split.weight:.8g}"
    return text
