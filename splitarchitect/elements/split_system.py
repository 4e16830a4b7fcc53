from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Union,
    overload,
)
from collections.abc import Sequence as SequenceABC

from splitarchitect.elements.split import Split


class SplitSystem(SequenceABC):
    """
    An ordered sequence of splits over a common taxon range ``1..ntax``.

    Splits are kept in insertion order and addressed 0-based. Adding a split whose
    bipartition is already present does not create a second entry: the weights are
    summed onto the existing split and a confidence, if given, replaces the old one.

    Attributes:
        _splits: The splits in insertion order
        _index_by_key: Mapping from bipartition key to position
        ntax: Number of taxa, fixed by the first split added (or the constructor)
        name: Name of this split system
    """

    __slots__ = ("_splits", "_index_by_key", "ntax", "name")

    def __init__(
        self,
        splits: Optional[Iterable[Split]] = None,
        ntax: int = 0,
        name: str = "SplitSystem",
    ) -> None:
        self._splits: List[Split] = []
        self._index_by_key: Dict[int, int] = {}
        self.ntax = ntax
        self.name = name
        if splits:
            self.batch_add(splits)

    @classmethod
    def from_splits(cls, splits: Iterable[Split], ntax: int = 0) -> "SplitSystem":
        """Build a system from copies of the given splits, merging duplicates."""
        return cls((split.copy() for split in splits), ntax=ntax)

    def add(self, split: Split) -> Split:
        """Add ``split`` or merge it into an existing equal bipartition.

        Returns the split object held by this system.

        Raises:
            ValueError: if the split is over a different taxon range
        """
        if not self.ntax:
            self.ntax = split.ntax
        elif split.ntax != self.ntax:
            raise ValueError(
                f"Split over {split.ntax} taxa cannot join a system over {self.ntax} taxa"
            )
        position = self._index_by_key.get(split.key)
        if position is None:
            self._index_by_key[split.key] = len(self._splits)
            self._splits.append(split)
            return split
        existing = self._splits[position]
        existing.weight += split.weight
        if split.confidence is not None:
            existing.confidence = split.confidence
        return existing

    def batch_add(self, splits: Iterable[Split]) -> None:
        for split in splits:
            self.add(split)

    @overload
    def __getitem__(self, index: int) -> Split: ...

    @overload
    def __getitem__(self, index: slice) -> List[Split]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[Split, List[Split]]:
        return self._splits[index]

    def __len__(self) -> int:
        return len(self._splits)

    def __iter__(self) -> Iterator[Split]:
        return iter(self._splits)

    def __contains__(self, value: object) -> bool:
        if isinstance(value, Split):
            return value.ntax == self.ntax and value.key in self._index_by_key
        return False

    def index_of(self, split: Split) -> int:
        """0-based position of the bipartition of ``split``; -1 if absent."""
        if split.ntax != self.ntax:
            return -1
        return self._index_by_key.get(split.key, -1)

    def get(self, split: Split) -> Optional[Split]:
        position = self.index_of(split)
        return None if position < 0 else self._splits[position]

    def __eq__(self, other: object) -> bool:
        """Two systems are equal when they hold the same bipartitions (order ignored)."""
        if isinstance(other, SplitSystem):
            return self.ntax == other.ntax and set(self._index_by_key) == set(
                other._index_by_key
            )
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def trivial(self) -> List[Split]:
        return [s for s in self._splits if s.is_trivial()]

    def nontrivial(self) -> List[Split]:
        return [s for s in self._splits if not s.is_trivial()]

    def total_weight(self) -> float:
        return sum(s.weight for s in self._splits)

    def sorted(self, key: Optional[Callable[[Split], object]] = None) -> "SplitSystem":
        """Return a new system with the splits in deterministic order."""
        ordered: Sequence[Split] = sorted(self._splits, key=key) if key else sorted(self._splits)
        return SplitSystem((s.copy() for s in ordered), ntax=self.ntax, name=self.name)

    def filter(self, predicate: Callable[[Split], bool]) -> "SplitSystem":
        return SplitSystem(
            (s.copy() for s in self._splits if predicate(s)),
            ntax=self.ntax,
            name=self.name,
        )

    def copy(self) -> "SplitSystem":
        return SplitSystem((s.copy() for s in self._splits), ntax=self.ntax, name=self.name)

    def to_list(self) -> List[Split]:
        return list(self._splits)

    def __repr__(self) -> str:
        return f"SplitSystem({self.name!r}, ntax={self.ntax}, {self._splits!r})"
