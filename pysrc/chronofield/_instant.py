from __future__ import annotations

from typing import Optional

from ._chronology import Chronology
from ._clock import current_time_millis
from ._common import (
    MILLIS_PER_HOUR,
    MILLIS_PER_MINUTE,
    MILLIS_PER_SECOND,
    _ImmutableBase,
    final,
)
from ._math import check_long, safe_add, safe_subtract
from ._tz.ambiguity import format_local
from ._types import DateTimeFieldType

__all__ = ["Instant"]


@final
class Instant(_ImmutableBase):
    """A moment on the UTC timeline, in milliseconds since 1970-01-01Z.

    Fields and chronologies work on plain ints; this class wraps such an
    int for when an ordered, hashable value is more convenient.

    >>> from chronofield import Instant
    >>> release = Instant.from_utc(2005, 7, 5, hour=14)
    >>> release
    Instant(2005-07-05T14:00:00.000Z)
    >>> release.add(hours=3).millis
    1120582800000
    """

    __slots__ = ("_millis",)

    def __init__(self, millis: int) -> None:
        self._millis = check_long(millis)

    @classmethod
    def from_millis(cls, millis: int, /) -> Instant:
        return cls(millis)

    @classmethod
    def now(cls) -> Instant:
        """The current time, from the active time source"""
        return cls(current_time_millis())

    @classmethod
    def from_utc(
        cls,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        *,
        millisecond: int = 0,
    ) -> Instant:
        """Create an Instant from an ISO date and time in UTC"""
        return cls(
            Chronology.of().instant_of(
                year, month, day, hour, minute, second, millisecond
            )
        )

    @property
    def millis(self) -> int:
        return self._millis

    def get(
        self,
        field_type: DateTimeFieldType,
        chronology: Optional[Chronology] = None,
    ) -> int:
        """The value of a field, in ISO/UTC unless a chronology is given"""
        if chronology is None:
            chronology = Chronology.of()
        return chronology.field(field_type).get(self._millis)

    def add(
        self,
        *,
        hours: int = 0,
        minutes: int = 0,
        seconds: int = 0,
        millis: int = 0,
    ) -> Instant:
        """Add an amount of elapsed time"""
        return Instant(
            safe_add(
                self._millis,
                hours * MILLIS_PER_HOUR
                + minutes * MILLIS_PER_MINUTE
                + seconds * MILLIS_PER_SECOND
                + millis,
            )
        )

    def subtract(
        self,
        *,
        hours: int = 0,
        minutes: int = 0,
        seconds: int = 0,
        millis: int = 0,
    ) -> Instant:
        """Subtract an amount of elapsed time"""
        return Instant(
            safe_subtract(
                self._millis,
                hours * MILLIS_PER_HOUR
                + minutes * MILLIS_PER_MINUTE
                + seconds * MILLIS_PER_SECOND
                + millis,
            )
        )

    def __sub__(self, other: Instant) -> int:
        """The difference in milliseconds"""
        if isinstance(other, Instant):
            return safe_subtract(self._millis, other._millis)
        return NotImplemented

    def __int__(self) -> int:
        return self._millis

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self._millis == other._millis

    def __lt__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self._millis < other._millis

    def __le__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self._millis <= other._millis

    def __gt__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self._millis > other._millis

    def __ge__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self._millis >= other._millis

    def __hash__(self) -> int:
        return hash((Instant, self._millis))

    def __repr__(self) -> str:
        return f"Instant({format_local(self._millis)}Z)"

    def __reduce__(self):
        return (Instant, (self._millis,))
