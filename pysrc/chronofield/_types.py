from __future__ import annotations

import enum
from typing import Optional

from ._common import (
    MILLIS_PER_DAY,
    MILLIS_PER_HALFDAY,
    MILLIS_PER_HOUR,
    MILLIS_PER_MINUTE,
    MILLIS_PER_SECOND,
    MILLIS_PER_WEEK,
)

# Average Gregorian year, used only for ordering imprecise units
_APPROX_MILLIS_PER_YEAR = 31_556_952_000


class DurationFieldType(enum.Enum):
    """Units of elapsed time, from the largest to the smallest.

    Units up to ``HOURS`` always have a fixed length. ``HALFDAYS``, ``DAYS``
    and ``WEEKS`` are fixed only in zones without transitions.
    The calendar units have no fixed length at all.
    """

    ERAS = "eras"
    CENTURIES = "centuries"
    WEEKYEARS = "weekyears"
    YEARS = "years"
    MONTHS = "months"
    WEEKS = "weeks"
    DAYS = "days"
    HALFDAYS = "halfdays"
    HOURS = "hours"
    MINUTES = "minutes"
    SECONDS = "seconds"
    MILLIS = "millis"

    @property
    def approx_millis(self) -> float:
        """Approximate length of one unit, for ordering units by size"""
        return _APPROX_MILLIS[self]

    def is_time_based(self) -> bool:
        """Whether the unit is shorter than 12 hours. Such units add
        elapsed time rather than local time in zones with transitions."""
        return self in _TIME_UNITS

    def __repr__(self) -> str:
        return f"DurationFieldType.{self.name}"


_APPROX_MILLIS: dict[DurationFieldType, float] = {
    DurationFieldType.ERAS: float("inf"),
    DurationFieldType.CENTURIES: _APPROX_MILLIS_PER_YEAR * 100,
    DurationFieldType.WEEKYEARS: _APPROX_MILLIS_PER_YEAR,
    DurationFieldType.YEARS: _APPROX_MILLIS_PER_YEAR,
    DurationFieldType.MONTHS: _APPROX_MILLIS_PER_YEAR // 12,
    DurationFieldType.WEEKS: MILLIS_PER_WEEK,
    DurationFieldType.DAYS: MILLIS_PER_DAY,
    DurationFieldType.HALFDAYS: MILLIS_PER_HALFDAY,
    DurationFieldType.HOURS: MILLIS_PER_HOUR,
    DurationFieldType.MINUTES: MILLIS_PER_MINUTE,
    DurationFieldType.SECONDS: MILLIS_PER_SECOND,
    DurationFieldType.MILLIS: 1,
}

_TIME_UNITS = frozenset(
    {
        DurationFieldType.HOURS,
        DurationFieldType.MINUTES,
        DurationFieldType.SECONDS,
        DurationFieldType.MILLIS,
    }
)

_D = DurationFieldType


class DateTimeFieldType(enum.Enum):
    """The calendrical units a chronology can read and write.

    The ``.value`` is the symbolic name (e.g. ``"monthOfYear"``).
    Each member knows the unit it counts (:attr:`duration_type`) and the
    unit it cycles within (:attr:`range_type`, ``None`` if unbounded).

    Example
    -------
    >>> DateTimeFieldType.DAY_OF_MONTH.duration_type
    DurationFieldType.DAYS
    >>> DateTimeFieldType.DAY_OF_MONTH.range_type
    DurationFieldType.MONTHS
    """

    duration_type: DurationFieldType
    range_type: Optional[DurationFieldType]

    def __new__(
        cls,
        symbol: str,
        duration_type: DurationFieldType,
        range_type: Optional[DurationFieldType],
    ) -> DateTimeFieldType:
        obj = object.__new__(cls)
        obj._value_ = symbol
        obj.duration_type = duration_type
        obj.range_type = range_type
        return obj

    ERA = ("era", _D.ERAS, None)
    YEAR_OF_ERA = ("yearOfEra", _D.YEARS, _D.ERAS)
    CENTURY_OF_ERA = ("centuryOfEra", _D.CENTURIES, _D.ERAS)
    YEAR_OF_CENTURY = ("yearOfCentury", _D.YEARS, _D.CENTURIES)
    YEAR = ("year", _D.YEARS, None)
    DAY_OF_YEAR = ("dayOfYear", _D.DAYS, _D.YEARS)
    MONTH_OF_YEAR = ("monthOfYear", _D.MONTHS, _D.YEARS)
    DAY_OF_MONTH = ("dayOfMonth", _D.DAYS, _D.MONTHS)
    WEEKYEAR_OF_CENTURY = ("weekyearOfCentury", _D.WEEKYEARS, _D.CENTURIES)
    WEEKYEAR = ("weekyear", _D.WEEKYEARS, None)
    WEEK_OF_WEEKYEAR = ("weekOfWeekyear", _D.WEEKS, _D.WEEKYEARS)
    DAY_OF_WEEK = ("dayOfWeek", _D.DAYS, _D.WEEKS)
    HALFDAY_OF_DAY = ("halfdayOfDay", _D.HALFDAYS, _D.DAYS)
    HOUR_OF_HALFDAY = ("hourOfHalfday", _D.HOURS, _D.HALFDAYS)
    CLOCKHOUR_OF_HALFDAY = ("clockhourOfHalfday", _D.HOURS, _D.HALFDAYS)
    CLOCKHOUR_OF_DAY = ("clockhourOfDay", _D.HOURS, _D.DAYS)
    HOUR_OF_DAY = ("hourOfDay", _D.HOURS, _D.DAYS)
    MINUTE_OF_DAY = ("minuteOfDay", _D.MINUTES, _D.DAYS)
    MINUTE_OF_HOUR = ("minuteOfHour", _D.MINUTES, _D.HOURS)
    SECOND_OF_DAY = ("secondOfDay", _D.SECONDS, _D.DAYS)
    SECOND_OF_MINUTE = ("secondOfMinute", _D.SECONDS, _D.MINUTES)
    MILLIS_OF_DAY = ("millisOfDay", _D.MILLIS, _D.DAYS)
    MILLIS_OF_SECOND = ("millisOfSecond", _D.MILLIS, _D.SECONDS)

    def sort_key(self) -> tuple[float, bool, float]:
        """Key ordering field types by size: larger units sort higher.

        For units of equal length, years rank above weekyears. Then the
        range decides, where an unbounded field ranks highest.
        Distinct types with equal keys can't appear in the same partial.
        """
        return (
            self.duration_type.approx_millis,
            self.duration_type is _D.YEARS,
            (
                float("inf")
                if self.range_type is None
                else self.range_type.approx_millis
            ),
        )

    def __repr__(self) -> str:
        return f"DateTimeFieldType.{self.name}"
