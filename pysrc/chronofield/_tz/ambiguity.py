"""Resolving local times that are skipped or repeated in a zone."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from .._common import MILLIS_PER_DAY
from .._math import check_long, civil_from_days
from .common import Disambiguate, Fold, Gap, Unambiguous

if TYPE_CHECKING:
    from .tzif import TimeZone


class RepeatedTime(ValueError):
    """A local time is repeated in a timezone, e.g. because of DST"""

    @classmethod
    def _for_tz(cls, local: int, tzid: Optional[str]) -> RepeatedTime:
        return cls(
            f"{format_local(local)} is repeated in {_tzid_display(tzid)}"
        )


class SkippedTime(ValueError):
    """A local time is skipped in a timezone, e.g. because of DST"""

    @classmethod
    def _for_tz(cls, local: int, tzid: Optional[str]) -> SkippedTime:
        return cls(
            f"{format_local(local)} is skipped in {_tzid_display(tzid)}"
        )


def _tzid_display(tzid: Optional[str]) -> str:
    if tzid is None:
        return "timezone with unknown ID"
    else:
        return f"timezone '{tzid}'"


def format_local(local: int) -> str:
    """Local millis in ISO 8601 form, for messages"""
    days, millis = divmod(local, MILLIS_PER_DAY)
    year, month, day = civil_from_days(days)
    secs, millis = divmod(millis, 1000)
    hrs, secs = divmod(secs, 3600)
    mins, secs = divmod(secs, 60)
    return (
        f"{year:04}-{month:02}-{day:02}T"
        f"{hrs:02}:{mins:02}:{secs:02}.{millis:03}"
    )


def resolve_ambiguity(
    tz: TimeZone, local: int, disambiguate: Disambiguate
) -> int:
    if disambiguate not in ("compatible", "earlier", "later", "raise"):
        raise ValueError(
            "disambiguate must be 'compatible', 'earlier', 'later', or 'raise'"
        )

    ambiguity = tz.ambiguity_for_local(local)
    if isinstance(ambiguity, Unambiguous):
        offset = ambiguity.offset
    elif isinstance(ambiguity, Fold):
        if disambiguate in ("compatible", "earlier"):
            offset = ambiguity.before
        elif disambiguate == "later":
            offset = ambiguity.after
        else:  # disambiguate == "raise"
            raise RepeatedTime._for_tz(local, tz.key)
    else:  # isinstance(ambiguity, Gap):
        # Shifting the local time out of the gap by the gap's length and
        # applying the other offset amounts to applying the offset from
        # the other side of the gap.
        if disambiguate in ("compatible", "later"):
            offset = ambiguity.after
        elif disambiguate == "earlier":
            offset = ambiguity.before
        else:  # disambiguate == "raise"
            raise SkippedTime._for_tz(local, tz.key)

    # This ensures we raise an exception if the instant is out of range,
    # even if the local time is valid.
    return check_long(local - offset)


def resolve_local(
    tz: TimeZone, local: int, *, prefer: Optional[int], forward: bool
) -> int:
    """Convert a local time back to an instant after field arithmetic.

    The offset ``prefer`` (that of the original instant) is kept if it is
    still valid. Otherwise, a gap is crossed by its length and an
    overlap resolves to the occurrence that comes first in the direction
    of travel.
    """
    ambiguity = tz.ambiguity_for_local(local)
    if isinstance(ambiguity, Unambiguous):
        offset = ambiguity.offset
    elif isinstance(ambiguity, Fold):
        if prefer in (ambiguity.before, ambiguity.after):
            offset = prefer
        else:
            offset = ambiguity.before if forward else ambiguity.after
    else:  # isinstance(ambiguity, Gap)
        offset = ambiguity.after if forward else ambiguity.before
    return check_long(local - offset)
