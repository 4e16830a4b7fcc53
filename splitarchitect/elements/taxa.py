"""Taxon identifiers and the bitmask helpers built on them.

Taxa are positive integers ``1..ntax``. Sets of taxa are stored as Python
integers used as bitmasks where bit ``t`` stands for taxon ``t``; bit 0 is
never set. All conversions between 1-based taxa and 0-based containers go
through this module.
"""

from typing import Iterable, Iterator, List, NewType

TaxonId = NewType("TaxonId", int)


def check_taxon(taxon: int, ntax: int = 0) -> TaxonId:
    """Validate a taxon id, optionally against an upper bound ``ntax``."""
    if not isinstance(taxon, int) or isinstance(taxon, bool):
        raise TypeError(f"Taxon ids must be integers, got {taxon!r}")
    if taxon < 1:
        raise ValueError(f"Taxon ids are 1-based, got {taxon}")
    if ntax and taxon > ntax:
        raise ValueError(f"Taxon {taxon} is out of range 1..{ntax}")
    return TaxonId(taxon)


def taxon_range(ntax: int) -> range:
    return range(1, ntax + 1)


def taxa_mask(ntax: int) -> int:
    """Bitmask of the full taxon range ``1..ntax``."""
    return ((1 << ntax) - 1) << 1


def mask_of(taxa: Iterable[int]) -> int:
    mask = 0
    for t in taxa:
        mask |= 1 << check_taxon(t)
    return mask


def iter_taxa(mask: int) -> Iterator[TaxonId]:
    """Yield the taxa of a bitmask in increasing order."""
    while mask:
        low = mask & -mask
        yield TaxonId(low.bit_length() - 1)
        mask ^= low


def taxa_of(mask: int) -> List[TaxonId]:
    return list(iter_taxa(mask))


def lowest_taxon(mask: int) -> TaxonId:
    if not mask:
        raise ValueError("Empty taxon set has no lowest taxon")
    return TaxonId((mask & -mask).bit_length() - 1)


def popcount(mask: int) -> int:
    return bin(mask).count("1")
