"""
Access / Extent model

Per-statement data-access footprints. An Extent is how far an access reaches
in one dimension relative to the statement's position; Extents holds one
Extent per dimension (I, J, K); Accesses maps AccessIDs to Extents, once for
writes and once for reads.

Merging is the per-dimension union (min of minus, max of plus). It is total,
commutative and associative, so callers can fold accesses in any order.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple

from ..shared.errors import LookupFailureError
from ..utils.config import NUM_DIMENSIONS, WIRE_INT_MAX, WIRE_INT_MIN


@dataclass(frozen=True)
class Extent:
    minus: int = 0
    plus: int = 0

    def __post_init__(self):
        for bound in (self.minus, self.plus):
            if not WIRE_INT_MIN <= bound <= WIRE_INT_MAX:
                raise ValueError(f"extent bound {bound} is outside the int32 range")

    def merge(self, other: "Extent") -> "Extent":
        return Extent(min(self.minus, other.minus), max(self.plus, other.plus))

    def contains(self, other: "Extent") -> bool:
        return self.minus <= other.minus and other.plus <= self.plus

    def overlaps(self, other: "Extent") -> bool:
        return self.minus <= other.plus and other.minus <= self.plus

    def __str__(self) -> str:
        return f"<{self.minus},{self.plus}>"


_ZERO_EXTENT = Extent()


@dataclass(frozen=True)
class Extents:
    """One Extent per spatial dimension [I, J, K]"""
    extents: Tuple[Extent, Extent, Extent] = (_ZERO_EXTENT,) * NUM_DIMENSIONS

    def __post_init__(self):
        extents = tuple(self.extents)
        if len(extents) != NUM_DIMENSIONS:
            raise ValueError(f"Extents needs {NUM_DIMENSIONS} dimensions, got {len(extents)}")
        object.__setattr__(self, 'extents', extents)

    @classmethod
    def of(cls, *pairs: Tuple[int, int]) -> "Extents":
        """Extents.of((-1, 1), (0, 0), (0, 2))"""
        return cls(tuple(Extent(minus, plus) for minus, plus in pairs))

    @classmethod
    def from_offset(cls, offset: Sequence[int]) -> "Extents":
        """Footprint of a single access at `offset`: [o, o] in every dimension"""
        return cls(tuple(Extent(o, o) for o in offset))

    def __getitem__(self, dimension: int) -> Extent:
        return self.extents[dimension]

    def __iter__(self):
        return iter(self.extents)

    def merge(self, other: "Extents") -> "Extents":
        return Extents(tuple(a.merge(b) for a, b in zip(self.extents, other.extents)))

    def contains(self, other: "Extents") -> bool:
        return all(a.contains(b) for a, b in zip(self.extents, other.extents))

    def overlaps(self, other: "Extents") -> bool:
        return all(a.overlaps(b) for a, b in zip(self.extents, other.extents))

    def is_pointwise(self) -> bool:
        return all(e == _ZERO_EXTENT for e in self.extents)

    def __str__(self) -> str:
        return "[" + ", ".join(str(e) for e in self.extents) + "]"


def _merge_into(target: Dict[int, Extents], access_id: int, extents: Extents) -> None:
    current = target.get(access_id)
    target[access_id] = extents if current is None else current.merge(extents)


class Accesses:
    """
    Read and write footprints of one statement, keyed by AccessID.

    An AccessID appears at most once per mapping; adding it again merges the
    extents into the existing entry.
    """
    __slots__ = ('write_accesses', 'read_accesses')

    def __init__(self, write_accesses: Optional[Dict[int, Extents]] = None,
                 read_accesses: Optional[Dict[int, Extents]] = None):
        self.write_accesses: Dict[int, Extents] = dict(write_accesses) if write_accesses else {}
        self.read_accesses: Dict[int, Extents] = dict(read_accesses) if read_accesses else {}

    def add_write_extent(self, access_id: int, extents: Extents) -> None:
        _merge_into(self.write_accesses, access_id, extents)

    def add_read_extent(self, access_id: int, extents: Extents) -> None:
        _merge_into(self.read_accesses, access_id, extents)

    def has_write_access(self, access_id: int) -> bool:
        return access_id in self.write_accesses

    def has_read_access(self, access_id: int) -> bool:
        return access_id in self.read_accesses

    def has_access(self, access_id: int) -> bool:
        return self.has_read_access(access_id) or self.has_write_access(access_id)

    def get_write_access(self, access_id: int) -> Extents:
        try:
            return self.write_accesses[access_id]
        except KeyError:
            raise LookupFailureError(f"no write access to AccessID {access_id}", access_id) from None

    def get_read_access(self, access_id: int) -> Extents:
        try:
            return self.read_accesses[access_id]
        except KeyError:
            raise LookupFailureError(f"no read access to AccessID {access_id}", access_id) from None

    def access_ids(self) -> Iterable[int]:
        """All AccessIDs touched, writes first, each once"""
        seen = dict.fromkeys(self.write_accesses)
        seen.update(dict.fromkeys(self.read_accesses))
        return list(seen)

    def merge(self, other: "Accesses") -> "Accesses":
        return merge(self, other)

    def is_subset_of(self, other: "Accesses") -> bool:
        return is_subset_of(self, other)

    def overlaps(self, other: "Accesses") -> bool:
        return overlaps(self, other)

    def copy(self) -> "Accesses":
        return Accesses(self.write_accesses, self.read_accesses)

    def __eq__(self, other):
        if not isinstance(other, Accesses):
            return NotImplemented
        return self.write_accesses == other.write_accesses and self.read_accesses == other.read_accesses

    def __repr__(self) -> str:
        def fmt(mapping):
            return "{" + ", ".join(f"{k}: {v}" for k, v in sorted(mapping.items())) + "}"
        return f"Accesses(write={fmt(self.write_accesses)}, read={fmt(self.read_accesses)})"


def merge(a: Accesses, b: Accesses) -> Accesses:
    """Per-AccessID union of two footprints (new object, inputs unchanged)"""
    result = a.copy()
    for access_id, extents in b.write_accesses.items():
        result.add_write_extent(access_id, extents)
    for access_id, extents in b.read_accesses.items():
        result.add_read_extent(access_id, extents)
    return result


def _mapping_contained(small: Dict[int, Extents], big: Dict[int, Extents]) -> bool:
    return all(k in big and big[k].contains(v) for k, v in small.items())


def _mapping_overlaps(a: Dict[int, Extents], b: Dict[int, Extents]) -> bool:
    return any(k in b and b[k].overlaps(v) for k, v in a.items())


def is_subset_of(a: Accesses, b: Accesses) -> bool:
    """True if every access of `a` is present in `b` with a containing extent"""
    return (_mapping_contained(a.write_accesses, b.write_accesses)
            and _mapping_contained(a.read_accesses, b.read_accesses))


def overlaps(a: Accesses, b: Accesses) -> bool:
    """True if some AccessID is accessed the same way by both with intersecting extents"""
    return (_mapping_overlaps(a.write_accesses, b.write_accesses)
            or _mapping_overlaps(a.read_accesses, b.read_accesses))
