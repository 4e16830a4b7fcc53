# split.py
from __future__ import annotations

from functools import total_ordering
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from splitarchitect.elements.partition import Partition
from splitarchitect.elements.taxa import TaxonId, lowest_taxon, popcount, taxa_mask
from splitarchitect.exceptions import InvalidSplitError

PartLike = Union[Partition, Iterable[int]]


def _as_partition(part: PartLike, encoding: Optional[Dict[str, int]]) -> Partition:
    if isinstance(part, Partition):
        return part
    try:
        return Partition(part, encoding)
    except (TypeError, ValueError) as e:
        raise InvalidSplitError(f"Invalid split part {part!r}: {e}") from e


@total_ordering
class Split:
    """
    A weighted bipartition ``A | B`` of the taxa ``1..ntax``.

    The two parts are interchangeable: equality, hashing and ordering only look at
    the canonical form, in which the part containing taxon 1 comes first. The parts
    never change after construction, weight and confidence may be updated.

    Args:
        a: one side of the split
        b: the other side; derived as the complement of ``a`` when omitted
        ntax: number of taxa; required when ``b`` is omitted
        weight: split weight
        confidence: optional confidence (e.g. bootstrap support)
        encoding: optional label-to-taxon mapping used for printing
    """

    __slots__ = ("_a", "_b", "_ntax", "weight", "confidence")

    def __init__(
        self,
        a: PartLike,
        b: Optional[PartLike] = None,
        ntax: Optional[int] = None,
        weight: float = 1.0,
        confidence: Optional[float] = None,
        encoding: Optional[Dict[str, int]] = None,
    ):
        part_a = _as_partition(a, encoding)
        if b is None:
            if ntax is None:
                raise InvalidSplitError("Either the second part or ntax is required")
            part_b = part_a.complement(ntax)
        else:
            part_b = _as_partition(b, encoding)

        if part_a.bitmask & part_b.bitmask:
            raise InvalidSplitError(
                f"Split parts overlap: {part_a} and {part_b} share "
                f"{part_a & part_b}"
            )
        if not part_a or not part_b:
            raise InvalidSplitError(f"Split has an empty part: {part_a} | {part_b}")
        union = part_a.bitmask | part_b.bitmask
        total = popcount(union)
        if ntax is not None and ntax != total:
            raise InvalidSplitError(
                f"Split {part_a} | {part_b} covers {total} taxa, expected {ntax}"
            )
        if union != taxa_mask(total):
            raise InvalidSplitError(
                f"Split {part_a} | {part_b} does not cover the taxon range 1..{total}"
            )

        self._a = part_a
        self._b = part_b
        self._ntax = total
        self.weight = float(weight)
        self.confidence = None if confidence is None else float(confidence)

    @classmethod
    def from_cluster(
        cls,
        cluster: PartLike,
        ntax: int,
        weight: float = 1.0,
        confidence: Optional[float] = None,
    ) -> "Split":
        return cls(cluster, None, ntax=ntax, weight=weight, confidence=confidence)

    @property
    def a(self) -> Partition:
        return self._a

    @property
    def b(self) -> Partition:
        return self._b

    @property
    def ntax(self) -> int:
        return self._ntax

    def all_taxa(self) -> Partition:
        return self._a | self._b

    def size(self) -> int:
        """Cardinality of the smaller part."""
        return min(len(self._a), len(self._b))

    def is_trivial(self) -> bool:
        return self.size() == 1

    def is_contained_in_a(self, taxon: int) -> bool:
        return taxon in self._a

    def separates(self, a: int, b: int) -> bool:
        return (a in self._a) != (b in self._a)

    def part_containing(self, taxon: int) -> Partition:
        return self._a if taxon in self._a else self._b

    def part_not_containing(self, taxon: int) -> Partition:
        return self._b if taxon in self._a else self._a

    def side(self, taxon: int) -> bool:
        """True if the taxon lies in part ``A``."""
        return taxon in self._a

    def canonical(self) -> Tuple[Partition, Partition]:
        """Return the parts with the one holding the lowest taxon first."""
        if lowest_taxon(self._a.bitmask) == 1:
            return self._a, self._b
        return self._b, self._a

    @property
    def key(self) -> int:
        """Bitmask of the part containing taxon 1, identifies the bipartition."""
        return self.canonical()[0].bitmask

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Split):
            return self._ntax == other._ntax and self.key == other.key
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._ntax, self.key))

    def __lt__(self, other: Any) -> bool:
        if isinstance(other, Split):
            first, second = self.canonical()
            other_first, other_second = other.canonical()
            return (first.indices, second.indices) < (
                other_first.indices,
                other_second.indices,
            )
        return NotImplemented

    def copy(self) -> "Split":
        return Split(self._a, self._b, weight=self.weight, confidence=self.confidence)

    def bipartition(self, label: Optional[Callable[[TaxonId], str]] = None) -> str:
        label = label or (lambda t: self._a.label(t) if t in self._a else self._b.label(t))
        first, second = self.canonical()
        return (
            f"{' '.join(label(t) for t in first)} | "
            f"{' '.join(label(t) for t in second)}"
        )

    def __str__(self) -> str:
        return self.bipartition()

    def __repr__(self) -> str:
        first, second = self.canonical()
        text = f"Split({list(first.indices)} | {list(second.indices)}, weight={self.weight:g}"
        if self.confidence is not None:
            text += f", confidence={self.confidence:g}"
        return text + ")"
