# partition.py
from typing import Tuple, FrozenSet, Dict, Iterator, List, Any, Optional, Iterable
from functools import total_ordering

from splitarchitect.elements.taxa import (
    TaxonId,
    check_taxon,
    iter_taxa,
    taxa_mask,
    popcount,
)


@total_ordering
class Partition:
    """
    Immutable set of taxa, one side of a split or a tree cluster.

    Taxa are 1-based integer ids. ``encoding`` optionally maps taxon labels to
    ids so that the partition can be printed with human readable names.
    """

    __slots__ = ("indices", "encoding", "bitmask", "_cached_reverse_encoding")

    def __init__(
        self, indices: Iterable[int], encoding: Optional[Dict[str, int]] = None
    ):
        unique = set(indices)
        bitmask = 0
        for idx in unique:
            bitmask |= 1 << check_taxon(idx)
        self.indices: Tuple[TaxonId, ...] = tuple(sorted(TaxonId(i) for i in unique))
        self.encoding: Dict[str, int] = encoding or {}
        self.bitmask: int = bitmask
        self._cached_reverse_encoding: Optional[Dict[int, str]] = None

    @classmethod
    def from_bitmask(
        cls, bitmask: int, encoding: Optional[Dict[str, int]] = None
    ) -> "Partition":
        if bitmask & 1:
            raise ValueError("Bit 0 does not correspond to a taxon")
        obj = object.__new__(cls)
        obj.indices = tuple(iter_taxa(bitmask))
        obj.encoding = encoding or {}
        obj.bitmask = bitmask
        obj._cached_reverse_encoding = None
        return obj

    def __iter__(self) -> Iterator[TaxonId]:
        return iter(self.indices)

    def __len__(self) -> int:
        return len(self.indices)

    def __bool__(self) -> bool:
        return self.bitmask != 0

    def __contains__(self, taxon: object) -> bool:
        if isinstance(taxon, int) and taxon > 0:
            return bool(self.bitmask >> taxon & 1)
        return False

    def __lt__(self, other: Any) -> bool:
        if isinstance(other, Partition):
            return self.indices < other.indices
        return NotImplemented

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Partition):
            return self.bitmask == other.bitmask
        if isinstance(other, (tuple, frozenset, set)):
            try:
                return self.bitmask == Partition(other).bitmask
            except (TypeError, ValueError):
                return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.bitmask)

    def __getitem__(self, index: int) -> TaxonId:
        return self.indices[index]

    @property
    def reverse_encoding(self) -> Dict[int, str]:
        """
        Return a reverse mapping from taxon id to label.
        Caches the result for performance.
        """
        if self._cached_reverse_encoding is None:
            self._cached_reverse_encoding = {v: k for k, v in self.encoding.items()}
        return self._cached_reverse_encoding

    @property
    def taxa(self) -> FrozenSet[str]:
        """
        Return the set of taxon labels of this partition.
        """
        return frozenset(self.reverse_encoding.get(i, str(i)) for i in self.indices)

    def label(self, taxon: int) -> str:
        return self.reverse_encoding.get(taxon, str(taxon))

    def complement(self, ntax: int) -> "Partition":
        return Partition.from_bitmask(taxa_mask(ntax) & ~self.bitmask, self.encoding)

    def complementary_indices(self, ntax: int) -> Tuple[TaxonId, ...]:
        return self.complement(ntax).indices

    def is_subset_of(self, other: "Partition") -> bool:
        return self.bitmask & other.bitmask == self.bitmask

    def intersects(self, other: "Partition") -> bool:
        return bool(self.bitmask & other.bitmask)

    def cardinality(self) -> int:
        return popcount(self.bitmask)

    def __and__(self, other: Any) -> "Partition":
        if isinstance(other, Partition):
            return Partition.from_bitmask(self.bitmask & other.bitmask, self.encoding)
        return NotImplemented

    def __or__(self, other: Any) -> "Partition":
        if isinstance(other, Partition):
            return Partition.from_bitmask(self.bitmask | other.bitmask, self.encoding)
        return NotImplemented

    def __sub__(self, other: Any) -> "Partition":
        if isinstance(other, Partition):
            return Partition.from_bitmask(self.bitmask & ~other.bitmask, self.encoding)
        return NotImplemented

    def bipartition(self, ntax: int) -> str:
        """
        Return a string representation of the bipartition (this | rest) using labels.
        """
        left: List[str] = [self.label(i) for i in self.indices]
        right: List[str] = [self.label(i) for i in self.complementary_indices(ntax)]
        return f"{', '.join(left)} | {', '.join(right)}"

    def __str__(self) -> str:
        return f"({', '.join(self.label(i) for i in self.indices)})"

    def __repr__(self) -> str:
        return f"Partition{self.indices}"

    def __json__(self) -> List[int]:
        return list(self.indices)

    def to_dict(self) -> Dict[str, Tuple[int, ...]]:
        return {"indices": self.indices}

    def copy(self) -> "Partition":
        return Partition.from_bitmask(self.bitmask, self.encoding)

    def is_compatible_with(self, other: "Partition", ntax: int) -> bool:
        """
        Check if this cluster is compatible with another cluster over ``1..ntax``.

        Two clusters A and B are compatible if at least one of the four intersections is empty:
        - A ∩ B
        - A ∩ B_complement
        - A_complement ∩ B
        - A_complement ∩ B_complement
        """
        full = taxa_mask(ntax)
        a = self.bitmask
        b = other.bitmask
        return (
            not (a & b)
            or not (a & (full & ~b))
            or not ((full & ~a) & b)
            or not ((full & ~a) & (full & ~b))
        )

    def check_compatibility_with_list(
        self, partitions: List["Partition"], ntax: int
    ) -> bool:
        """
        Check if this partition is compatible with all partitions in a list.
        """
        return all(self.is_compatible_with(p, ntax) for p in partitions)
