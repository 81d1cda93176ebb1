"""Calendar systems: the arithmetic that maps day counts to dates.

Every calendar works on an *internal* year number, which is continuous
(year zero exists). Calendars without a year zero, or with a shifted year
numbering, translate at the boundary with :meth:`CalendarSystem.external_year`
and :meth:`CalendarSystem.internal_year`.

Day counts are relative to 1970-01-01 in the local timeline.
"""

from __future__ import annotations

import enum
from typing import no_type_check

from ._common import (
    MAX_MILLIS,
    MILLIS_PER_DAY,
    MIN_MILLIS,
    FieldRangeError,
    _ImmutableBase,
    final,
)
from ._math import (
    civil_from_days,
    days_from_civil,
    days_from_julian,
    days_in_month,
    is_julian_leap,
    is_leap,
    iso_day_of_week,
    julian_days_in_month,
    julian_from_days,
    max_days_in_month,
)
from ._types import DateTimeFieldType

__all__ = [
    "CalendarSystem",
    "IslamicLeapYears",
    "ISO",
    "GREGORIAN",
    "JULIAN",
    "GJ",
    "BUDDHIST",
    "COPTIC",
    "ETHIOPIC",
    "ISLAMIC",
    "LEAP_YEAR_15_BASED",
    "LEAP_YEAR_16_BASED",
    "LEAP_YEAR_INDIAN",
    "LEAP_YEAR_HABASH_AL_HASIB",
    "islamic",
]

# The first week of a weekyear must contain at least this many days
_MIN_DAYS_IN_FIRST_WEEK = 4


class CalendarSystem(_ImmutableBase):
    """Base class for the supported calendar systems.

    Subclasses provide the day-count arithmetic. Week-based fields follow
    ISO-8601 rules in every calendar.
    """

    __slots__ = ("min_year", "max_year")

    name: str
    months_in_year: int = 12
    # The month that receives the extra day in leap years
    leap_month: int = 2
    max_days_in_year: int = 366
    has_year_zero: bool = True
    # Added to the internal year to obtain the displayed year
    year_offset: int = 0
    # Single-era calendars have one era (numbered 1) and no year-of-era logic
    single_era: bool = False
    # ISO derives century fields from the absolute year, zero-based
    zero_based_centuries: bool = False

    # Bounds of the internal year, so that whole years fit the timeline
    min_year: int
    max_year: int

    def __init__(self) -> None:
        self.min_year = self.ymd_from_days(MIN_MILLIS // MILLIS_PER_DAY)[0] + 1
        self.max_year = self.ymd_from_days(MAX_MILLIS // MILLIS_PER_DAY)[0] - 1

    def is_leap_year(self, year: int) -> bool:
        raise NotImplementedError()

    def days_in_month(self, year: int, month: int) -> int:
        raise NotImplementedError()

    def max_days_in_month(self, month: int) -> int:
        raise NotImplementedError()

    def days_from_ymd(self, year: int, month: int, day: int) -> int:
        raise NotImplementedError()

    def ymd_from_days(self, days: int) -> tuple[int, int, int]:
        raise NotImplementedError()

    def days_in_year(self, year: int) -> int:
        return self.max_days_in_year - 1 + self.is_leap_year(year)

    def year_start(self, year: int) -> int:
        return self.days_from_ymd(year, 1, 1)

    def is_leap_month(self, year: int, month: int) -> bool:
        return month == self.leap_month and self.is_leap_year(year)

    def is_skipped_date(self, year: int, month: int, day: int) -> bool:
        """Whether a date within the month bounds doesn't exist"""
        return False

    # --- year numbering ------------------------------------------------------

    def external_year(self, year: int) -> int:
        """Convert an internal year to the year as displayed"""
        if not self.has_year_zero and year <= 0:
            year -= 1
        return year + self.year_offset

    def internal_year(self, year: int) -> int:
        """Convert a displayed year to the internal year.
        The caller must reject year zero in calendars without one."""
        year -= self.year_offset
        if not self.has_year_zero and year < 0:
            year += 1
        return year

    def min_external_year(self) -> int:
        return self.external_year(self.min_year)

    def max_external_year(self) -> int:
        return self.external_year(self.max_year)

    # --- weeks ---------------------------------------------------------------

    def first_week_start(self, year: int) -> int:
        """Day on which week 1 of the given weekyear starts (a Monday)"""
        jan1 = self.year_start(year)
        dow = iso_day_of_week(jan1)
        if dow > 8 - _MIN_DAYS_IN_FIRST_WEEK:
            return jan1 + 8 - dow
        return jan1 - (dow - 1)

    def weeks_in_weekyear(self, year: int) -> int:
        start = self.first_week_start(year)
        return (self.first_week_start(year + 1) - start) // 7

    def week_date(self, days: int) -> tuple[int, int, int]:
        """The (internal weekyear, week of weekyear, day of week) of a day"""
        year = self.ymd_from_days(days)[0]
        start = self.first_week_start(year)
        if days < start:
            year -= 1
            start = self.first_week_start(year)
        else:
            next_start = self.first_week_start(year + 1)
            if days >= next_start:
                year += 1
                start = next_start
        return year, (days - start) // 7 + 1, iso_day_of_week(days)

    def days_from_week_date(self, weekyear: int, week: int, dow: int) -> int:
        return self.first_week_start(weekyear) + (week - 1) * 7 + dow - 1

    def __repr__(self) -> str:
        return f"CalendarSystem({self.name})"


class _GregorianArithmetic(CalendarSystem):
    __slots__ = ()

    def is_leap_year(self, year: int) -> bool:
        return is_leap(year)

    def days_in_month(self, year: int, month: int) -> int:
        return days_in_month(year, month)

    def max_days_in_month(self, month: int) -> int:
        return max_days_in_month(month)

    def days_from_ymd(self, year: int, month: int, day: int) -> int:
        return days_from_civil(year, month, day)

    def ymd_from_days(self, days: int) -> tuple[int, int, int]:
        return civil_from_days(days)


@final
class IsoCalendar(_GregorianArithmetic):
    """Proleptic Gregorian with astronomical year numbering.
    Century fields are computed from the absolute year and start at zero."""

    __slots__ = ()
    name = "ISO"
    zero_based_centuries = True


@final
class GregorianCalendar(_GregorianArithmetic):
    """Proleptic Gregorian. Century fields count from year-of-era"""

    __slots__ = ()
    name = "Gregorian"


@final
class JulianCalendar(CalendarSystem):
    """Proleptic Julian. There's no year zero: year -1 is 1 BC."""

    __slots__ = ()
    name = "Julian"
    has_year_zero = False

    def is_leap_year(self, year: int) -> bool:
        return is_julian_leap(year)

    def days_in_month(self, year: int, month: int) -> int:
        return julian_days_in_month(year, month)

    def max_days_in_month(self, month: int) -> int:
        return max_days_in_month(month)

    def days_from_ymd(self, year: int, month: int, day: int) -> int:
        return days_from_julian(year, month, day)

    def ymd_from_days(self, days: int) -> tuple[int, int, int]:
        return julian_from_days(days)


# The first day of the Gregorian calendar. The Julian dates
# 1582-10-05 through 1582-10-14 were skipped.
_CUTOVER_YMD = (1582, 10, 15)
_CUTOVER = days_from_civil(*_CUTOVER_YMD)


class _CutoverCalendar(CalendarSystem):
    """Julian before 1582-10-15, Gregorian from then on.

    The ten skipped days of October 1582 are not valid dates. Arithmetic
    landing on one reads it as a Julian date, ten days later.
    """

    __slots__ = ()

    def is_leap_year(self, year: int) -> bool:
        if year < _CUTOVER_YMD[0]:
            return is_julian_leap(year)
        return is_leap(year)

    def days_in_month(self, year: int, month: int) -> int:
        if year < _CUTOVER_YMD[0]:
            return julian_days_in_month(year, month)
        return days_in_month(year, month)

    def max_days_in_month(self, month: int) -> int:
        return max_days_in_month(month)

    def days_in_year(self, year: int) -> int:
        return self.year_start(year + 1) - self.year_start(year)

    def days_from_ymd(self, year: int, month: int, day: int) -> int:
        if (year, month, day) >= _CUTOVER_YMD:
            return days_from_civil(year, month, day)
        return days_from_julian(year, month, day)

    def ymd_from_days(self, days: int) -> tuple[int, int, int]:
        if days >= _CUTOVER:
            return civil_from_days(days)
        return julian_from_days(days)

    def is_skipped_date(self, year: int, month: int, day: int) -> bool:
        return (year, month) == _CUTOVER_YMD[:2] and 5 <= day <= 14


@final
class GJCalendar(_CutoverCalendar):
    """The historical Gregorian calendar, Julian before the cutover.
    There's no year zero: year -1 is 1 BC."""

    __slots__ = ()
    name = "GJ"
    has_year_zero = False


@final
class BuddhistCalendar(_CutoverCalendar):
    """The GJ calendar with years counted from 543 BC, in a single era.

    Dates before year 1 BE aren't supported.
    """

    __slots__ = ("_first_day",)
    name = "Buddhist"
    year_offset = 543
    single_era = True

    _first_day: int

    def __init__(self) -> None:
        self.min_year = self.internal_year(1)
        self._first_day = self.year_start(self.min_year)
        self.max_year = self.ymd_from_days(MAX_MILLIS // MILLIS_PER_DAY)[0] - 1

    def ymd_from_days(self, days: int) -> tuple[int, int, int]:
        ymd = super().ymd_from_days(days)
        if days < self._first_day:
            raise FieldRangeError(
                DateTimeFieldType.YEAR,
                self.external_year(ymd[0]),
                1,
                self.max_external_year(),
            )
        return ymd


class _FixedMonthCalendar(CalendarSystem):
    """Twelve months of 30 days, then a short 13th month of 5 or 6 days.
    Leap years are those where ``year % 4 == 3``."""

    __slots__ = ()
    months_in_year = 13
    leap_month = 13
    has_year_zero = False
    single_era = True
    # Day count of year 1, month 1, day 1
    _epoch: int

    def is_leap_year(self, year: int) -> bool:
        return year % 4 == 3

    def days_in_month(self, year: int, month: int) -> int:
        if month == 13:
            return 6 if self.is_leap_year(year) else 5
        return 30

    def max_days_in_month(self, month: int) -> int:
        return 6 if month == 13 else 30

    def days_from_ymd(self, year: int, month: int, day: int) -> int:
        return (
            self._epoch
            + 365 * (year - 1)
            + year // 4
            + 30 * (month - 1)
            + day
            - 1
        )

    def ymd_from_days(self, days: int) -> tuple[int, int, int]:
        year = (4 * (days - self._epoch) + 1463) // 1461
        doy = days - self.days_from_ymd(year, 1, 1)
        return year, doy // 30 + 1, doy % 30 + 1


@final
class CopticCalendar(_FixedMonthCalendar):
    """Coptic calendar, starting 284-08-29 (Julian), in the era AM"""

    __slots__ = ()
    name = "Coptic"
    _epoch = days_from_julian(284, 8, 29)


@final
class EthiopicCalendar(_FixedMonthCalendar):
    """Ethiopic calendar, starting 8-08-29 (Julian), in the era EE"""

    __slots__ = ()
    name = "Ethiopic"
    _epoch = days_from_julian(8, 8, 29)


class IslamicLeapYears(enum.Enum):
    """Which years of the 30-year cycle are leap years.

    The value is a bit set: year ``y`` is a leap year if bit ``y % 30`` is set.
    """

    LEAP_YEAR_15_BASED = 623_158_436
    LEAP_YEAR_16_BASED = 623_191_204
    LEAP_YEAR_INDIAN = 690_562_340
    LEAP_YEAR_HABASH_AL_HASIB = 153_692_453

    def __repr__(self) -> str:
        return f"IslamicLeapYears.{self.name}"


LEAP_YEAR_15_BASED = IslamicLeapYears.LEAP_YEAR_15_BASED
LEAP_YEAR_16_BASED = IslamicLeapYears.LEAP_YEAR_16_BASED
LEAP_YEAR_INDIAN = IslamicLeapYears.LEAP_YEAR_INDIAN
LEAP_YEAR_HABASH_AL_HASIB = IslamicLeapYears.LEAP_YEAR_HABASH_AL_HASIB

_ISLAMIC_EPOCH = days_from_julian(622, 7, 16)
_ISLAMIC_CYCLE_YEARS = 30


@final
class IslamicCalendar(CalendarSystem):
    """Tabular Islamic calendar, starting 622-07-16 (Julian), in the era AH.

    Months alternate between 30 and 29 days; the last month gains a day
    in leap years. Years before year 1 are proleptic, with a year zero.
    """

    __slots__ = ("leap_years", "_cycle_days")
    name = "Islamic"
    leap_month = 12
    max_days_in_year = 355
    single_era = True

    leap_years: IslamicLeapYears
    _cycle_days: int

    def __init__(self, leap_years: IslamicLeapYears) -> None:
        self.leap_years = leap_years
        self._cycle_days = _ISLAMIC_CYCLE_YEARS * 354 + bin(
            leap_years.value
        ).count("1")
        super().__init__()

    def is_leap_year(self, year: int) -> bool:
        return bool(self.leap_years.value & (1 << (year % 30)))

    def days_in_month(self, year: int, month: int) -> int:
        if month == 12 and self.is_leap_year(year):
            return 30
        return 30 if month % 2 else 29

    def max_days_in_month(self, month: int) -> int:
        return 30 if month % 2 or month == 12 else 29

    def _leap_years_before(self, year: int) -> int:
        cycles, rem = divmod(year - 1, _ISLAMIC_CYCLE_YEARS)
        # Bits 1 through rem of the pattern
        mask = (1 << (rem + 1)) - 2
        return (
            cycles * (self._cycle_days - _ISLAMIC_CYCLE_YEARS * 354)
            + bin(self.leap_years.value & mask).count("1")
        )

    def year_start(self, year: int) -> int:
        return (
            _ISLAMIC_EPOCH + (year - 1) * 354 + self._leap_years_before(year)
        )

    def days_from_ymd(self, year: int, month: int, day: int) -> int:
        return self.year_start(year) + 29 * (month - 1) + month // 2 + day - 1

    def ymd_from_days(self, days: int) -> tuple[int, int, int]:
        cycles = (days - _ISLAMIC_EPOCH) // self._cycle_days
        year = cycles * _ISLAMIC_CYCLE_YEARS + 1
        start = self.year_start(year)
        while True:
            length = 354 + self.is_leap_year(year)
            if days < start + length:
                break
            start += length
            year += 1
        doy = days - start
        month = min(12, 2 * doy // 59 + 1)
        return year, month, doy - (29 * (month - 1) + month // 2) + 1

    @no_type_check
    def __eq__(self, other: object) -> bool:
        if type(other) is IslamicCalendar:
            return self.leap_years is other.leap_years
        return NotImplemented

    def __hash__(self) -> int:
        return hash((IslamicCalendar, self.leap_years))

    def __repr__(self) -> str:
        return f"CalendarSystem(Islamic, {self.leap_years.name})"


ISO = IsoCalendar()
GREGORIAN = GregorianCalendar()
JULIAN = JulianCalendar()
GJ = GJCalendar()
BUDDHIST = BuddhistCalendar()
COPTIC = CopticCalendar()
ETHIOPIC = EthiopicCalendar()

_ISLAMIC_CALENDARS = {p: IslamicCalendar(p) for p in IslamicLeapYears}
ISLAMIC = _ISLAMIC_CALENDARS[LEAP_YEAR_16_BASED]


def islamic(
    leap_years: IslamicLeapYears = LEAP_YEAR_16_BASED,
) -> IslamicCalendar:
    """The tabular Islamic calendar with the given leap year pattern"""
    try:
        return _ISLAMIC_CALENDARS[leap_years]
    except KeyError:
        raise ValueError(
            f"Unknown leap year pattern: {leap_years!r}"
        ) from None
