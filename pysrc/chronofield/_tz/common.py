from __future__ import annotations

from typing import Literal, NamedTuple, Optional, Union

Disambiguate = Literal["compatible", "earlier", "later", "raise"]


class ZoneRecord(NamedTuple):
    """One row of a zone's offset table.

    From ``start`` (UTC milliseconds) onwards, until the next record,
    ``total_offset`` applies, of which ``standard_offset`` is the part
    that isn't daylight saving.
    """

    start: int
    standard_offset: int
    total_offset: int
    name_key: Optional[str] = None


# In the ambiguity types below, offsets are in milliseconds.
# For a gap, ``before`` is the offset after the transition and ``after``
# the offset before it, i.e. the order in which they apply to local times
# just before and just after the gap.


class Unambiguous:
    __slots__ = ("offset",)
    offset: int

    def __init__(self, offset: int):
        self.offset = offset

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Unambiguous):
            return self.offset == other.offset
        return NotImplemented

    def __repr__(self) -> str:
        return f"Unambiguous({self.offset})"


class Gap:
    __slots__ = ("before", "after")
    before: int
    after: int

    def __init__(self, before: int, after: int):
        self.before = before
        self.after = after

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Gap):
            return self.before == other.before and self.after == other.after
        return NotImplemented

    def __repr__(self) -> str:
        return f"Gap({self.before}, {self.after})"


class Fold:
    __slots__ = ("before", "after")
    before: int
    after: int

    def __init__(self, before: int, after: int):
        self.before = before
        self.after = after

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Fold):
            return self.before == other.before and self.after == other.after
        return NotImplemented

    def __repr__(self) -> str:
        return f"Fold({self.before}, {self.after})"


Ambiguity = Union[Unambiguous, Gap, Fold]


def scale_ambiguity(a: Ambiguity, factor: int) -> Ambiguity:
    """Convert the offsets of an ambiguity, e.g. from seconds to millis"""
    if isinstance(a, Unambiguous):
        return Unambiguous(a.offset * factor)
    return type(a)(a.before * factor, a.after * factor)
