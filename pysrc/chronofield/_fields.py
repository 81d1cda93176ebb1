"""Field and duration arithmetic bound to a chronology.

Every field type is described by a rule: a small object that reads and
writes one unit on *local* milliseconds for a given calendar. The
:class:`DateTimeField` and :class:`DurationField` classes share these rules
and take care of converting to and from the chronology's zone.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping, Optional

from ._calendars import CalendarSystem
from ._common import (
    MAX_MILLIS,
    MILLIS_PER_DAY,
    MILLIS_PER_HALFDAY,
    MILLIS_PER_HOUR,
    MILLIS_PER_MINUTE,
    MILLIS_PER_SECOND,
    MILLIS_PER_WEEK,
    MIN_MILLIS,
    FieldRangeError,
    UnsupportedFieldError,
    _ImmutableBase,
    final,
)
from ._math import (
    check_int,
    check_long,
    div_trunc,
    iso_day_of_week,
    safe_add,
    safe_multiply,
    safe_negate,
    safe_subtract,
    wrapped_value,
)
from ._types import DateTimeFieldType, DurationFieldType

if TYPE_CHECKING:
    from ._chronology import Chronology

__all__ = ["DateTimeField", "DurationField"]

_D = DurationFieldType
_F = DateTimeFieldType

# Units with the same length everywhere
_TIME_UNITS: dict[DurationFieldType, int] = {
    _D.MILLIS: 1,
    _D.SECONDS: MILLIS_PER_SECOND,
    _D.MINUTES: MILLIS_PER_MINUTE,
    _D.HOURS: MILLIS_PER_HOUR,
}
# Units with a fixed length on the local timeline only
_DAY_UNITS: dict[DurationFieldType, int] = {
    _D.HALFDAYS: MILLIS_PER_HALFDAY,
    _D.DAYS: MILLIS_PER_DAY,
    _D.WEEKS: MILLIS_PER_WEEK,
}

Context = Mapping[DateTimeFieldType, int]


# --- local calendar arithmetic ----------------------------------------------


def _split(cal: CalendarSystem, local: int) -> tuple[int, int, int, int]:
    days, millis = divmod(local, MILLIS_PER_DAY)
    year, month, day = cal.ymd_from_days(days)
    return year, month, day, millis


def _join(
    cal: CalendarSystem, year: int, month: int, day: int, millis: int = 0
) -> int:
    days = cal.days_from_ymd(year, month, day)
    return check_long(days * MILLIS_PER_DAY + millis)


def check_not_skipped(
    cal: CalendarSystem, year: int, month: int, day: int
) -> None:
    if cal.is_skipped_date(year, month, day):
        raise FieldRangeError(
            _F.DAY_OF_MONTH,
            day,
            reason="is invalid: skipped at the Gregorian cutover",
        )


def _year(cal: CalendarSystem, local: int) -> int:
    return cal.ymd_from_days(local // MILLIS_PER_DAY)[0]


def _year_start(cal: CalendarSystem, year: int) -> int:
    return check_long(cal.year_start(year) * MILLIS_PER_DAY)


def _check_year(
    cal: CalendarSystem, year: int, field_type: DateTimeFieldType = _F.YEAR
) -> None:
    if not cal.min_year <= year <= cal.max_year:
        raise FieldRangeError(
            field_type,
            cal.external_year(year),
            cal.min_external_year(),
            cal.max_external_year(),
        )


def _with_year(cal: CalendarSystem, local: int, year: int) -> int:
    _check_year(cal, year)
    _, month, day, millis = _split(cal, local)
    return _join(
        cal, year, month, min(day, cal.days_in_month(year, month)), millis
    )


def _with_weekyear(cal: CalendarSystem, local: int, weekyear: int) -> int:
    _check_year(cal, weekyear, _F.WEEKYEAR)
    days, millis = divmod(local, MILLIS_PER_DAY)
    _, week, dow = cal.week_date(days)
    week = min(week, cal.weeks_in_weekyear(weekyear))
    return check_long(
        cal.days_from_week_date(weekyear, week, dow) * MILLIS_PER_DAY + millis
    )


def add_months(cal: CalendarSystem, local: int, months: int) -> int:
    """Add months to local time, clamping the day to the end of the month"""
    year, month, day, millis = _split(cal, local)
    n = cal.months_in_year
    new_year, month0 = divmod(year * n + month - 1 + months, n)
    _check_year(cal, new_year)
    month = month0 + 1
    day = min(day, cal.days_in_month(new_year, month))
    return _join(cal, new_year, month, day, millis)


def add_years(cal: CalendarSystem, local: int, years: int) -> int:
    """Add years to local time, clamping the day to the end of the month"""
    return _with_year(cal, local, _year(cal, local) + years)


def add_weekyears(cal: CalendarSystem, local: int, weekyears: int) -> int:
    """Add weekyears to local time, keeping the week and the day of week"""
    weekyear = cal.week_date(local // MILLIS_PER_DAY)[0]
    return _with_weekyear(cal, local, weekyear + weekyears)


def _add_local(
    cal: CalendarSystem, unit: DurationFieldType, local: int, amount: int
) -> int:
    if unit in _DAY_UNITS:
        return safe_add(local, safe_multiply(amount, _DAY_UNITS[unit]))
    elif unit is _D.MONTHS:
        return add_months(cal, local, amount)
    elif unit is _D.YEARS:
        return add_years(cal, local, amount)
    elif unit is _D.CENTURIES:
        return add_years(cal, local, safe_multiply(amount, 100))
    elif unit is _D.WEEKYEARS:
        return add_weekyears(cal, local, amount)
    raise UnsupportedFieldError(f"{unit.value} can't be added")


def _calendar_difference(
    cal: CalendarSystem, unit: DurationFieldType, minuend: int, subtrahend: int
) -> int:
    """Whole calendar units between two local times"""
    if minuend < subtrahend:
        return -_calendar_difference(cal, unit, subtrahend, minuend)
    if unit is _D.WEEKYEARS:
        diff = (
            cal.week_date(minuend // MILLIS_PER_DAY)[0]
            - cal.week_date(subtrahend // MILLIS_PER_DAY)[0]
        )
    else:
        y1, m1, _, _ = _split(cal, minuend)
        y2, m2, _, _ = _split(cal, subtrahend)
        diff = y1 - y2
        if unit is _D.MONTHS:
            diff = diff * cal.months_in_year + m1 - m2
    # The estimate is either exact or one too many
    if diff > 0 and _add_local(cal, unit, subtrahend, diff) > minuend:
        diff -= 1
    return diff


# --- field rules -------------------------------------------------------------


class _Rule:
    # The unit of the extra value in a leap field (e.g. Feb 29th)
    leap_duration: Optional[DurationFieldType] = None

    def get(self, cal: CalendarSystem, local: int) -> int:
        raise NotImplementedError()

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        raise NotImplementedError()

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        raise NotImplementedError()

    def bounds(self, cal: CalendarSystem, local: int) -> tuple[int, int]:
        return self.overall(cal)

    def bounds_for(
        self, cal: CalendarSystem, context: Context
    ) -> tuple[int, int]:
        return self.overall(cal)

    def check(
        self,
        field_type: DateTimeFieldType,
        cal: CalendarSystem,
        value: int,
        lower: int,
        upper: int,
    ) -> None:
        if not lower <= value <= upper:
            raise FieldRangeError(field_type, value, lower, upper)

    # Local start of the unit containing the time. None means unbounded.
    def floor(self, cal: CalendarSystem, local: int) -> Optional[int]:
        raise NotImplementedError()

    # Local start of the following unit. None means unbounded.
    def ceiling(
        self, cal: CalendarSystem, local: int, floor: int
    ) -> Optional[int]:
        raise NotImplementedError()

    def is_leap(self, cal: CalendarSystem, local: int) -> bool:
        return False


class _TimeRule(_Rule):
    """A field counting fixed units within a fixed range"""

    def __init__(self, unit: int, range_: int, zero_is_max: bool = False):
        self.unit = unit
        self.range = range_
        self.count = range_ // unit
        # Clock hours show the zero value as the maximum (e.g. 24 or 12)
        self.zero_is_max = zero_is_max

    def _raw(self, local: int) -> int:
        return local % self.range // self.unit

    def get(self, cal: CalendarSystem, local: int) -> int:
        value = self._raw(local)
        if self.zero_is_max and value == 0:
            return self.count
        return value

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        if self.zero_is_max and value == self.count:
            value = 0
        return check_long(local + (value - self._raw(local)) * self.unit)

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        if self.zero_is_max:
            return 1, self.count
        return 0, self.count - 1

    def floor(self, cal: CalendarSystem, local: int) -> int:
        return local - local % self.unit

    def ceiling(self, cal: CalendarSystem, local: int, floor: int) -> int:
        return check_long(floor + self.unit)


class _DayUnitRule(_Rule):
    def floor(self, cal: CalendarSystem, local: int) -> int:
        return local - local % MILLIS_PER_DAY

    def ceiling(self, cal: CalendarSystem, local: int, floor: int) -> int:
        return check_long(floor + MILLIS_PER_DAY)


class _DayOfWeekRule(_DayUnitRule):
    def get(self, cal: CalendarSystem, local: int) -> int:
        return iso_day_of_week(local // MILLIS_PER_DAY)

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        return check_long(
            local + (value - self.get(cal, local)) * MILLIS_PER_DAY
        )

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        return 1, 7


class _DayOfMonthRule(_DayUnitRule):
    def get(self, cal: CalendarSystem, local: int) -> int:
        return _split(cal, local)[2]

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        year, month, _, millis = _split(cal, local)
        check_not_skipped(cal, year, month, value)
        return _join(cal, year, month, value, millis)

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        return 1, max(
            map(cal.max_days_in_month, range(1, cal.months_in_year + 1))
        )

    def bounds(self, cal: CalendarSystem, local: int) -> tuple[int, int]:
        year, month, _, _ = _split(cal, local)
        return 1, cal.days_in_month(year, month)

    def bounds_for(
        self, cal: CalendarSystem, context: Context
    ) -> tuple[int, int]:
        month = context.get(_F.MONTH_OF_YEAR)
        if month is None:
            return self.overall(cal)
        year = context.get(_F.YEAR)
        if year is None:
            return 1, cal.max_days_in_month(month)
        return 1, cal.days_in_month(cal.internal_year(year), month)


class _DayOfYearRule(_DayUnitRule):
    def get(self, cal: CalendarSystem, local: int) -> int:
        days = local // MILLIS_PER_DAY
        return days - cal.year_start(cal.ymd_from_days(days)[0]) + 1

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        return check_long(
            local + (value - self.get(cal, local)) * MILLIS_PER_DAY
        )

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        return 1, cal.max_days_in_year

    def bounds(self, cal: CalendarSystem, local: int) -> tuple[int, int]:
        return 1, cal.days_in_year(_year(cal, local))

    def bounds_for(
        self, cal: CalendarSystem, context: Context
    ) -> tuple[int, int]:
        year = context.get(_F.YEAR)
        if year is None:
            return self.overall(cal)
        return 1, cal.days_in_year(cal.internal_year(year))


class _MonthRule(_Rule):
    leap_duration = _D.DAYS

    def get(self, cal: CalendarSystem, local: int) -> int:
        return _split(cal, local)[1]

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        year, _, day, millis = _split(cal, local)
        return _join(
            cal, year, value, min(day, cal.days_in_month(year, value)), millis
        )

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        return 1, cal.months_in_year

    def floor(self, cal: CalendarSystem, local: int) -> int:
        year, month, _, _ = _split(cal, local)
        return _join(cal, year, month, 1)

    def ceiling(self, cal: CalendarSystem, local: int, floor: int) -> int:
        year, month, _, _ = _split(cal, local)
        if month == cal.months_in_year:
            return _year_start(cal, year + 1)
        return _join(cal, year, month + 1, 1)

    def is_leap(self, cal: CalendarSystem, local: int) -> bool:
        year, month, _, _ = _split(cal, local)
        return cal.is_leap_month(year, month)


class _YearUnitRule(_Rule):
    def floor(self, cal: CalendarSystem, local: int) -> int:
        return _year_start(cal, _year(cal, local))

    def ceiling(self, cal: CalendarSystem, local: int, floor: int) -> int:
        return _year_start(cal, _year(cal, local) + 1)


def _check_not_zero(
    field_type: DateTimeFieldType, cal: CalendarSystem, value: int
) -> None:
    if value == 0 and not cal.has_year_zero:
        raise FieldRangeError(
            field_type, value, reason="is invalid: the calendar has no year 0"
        )


class _YearRule(_YearUnitRule):
    leap_duration = _D.DAYS

    def get(self, cal: CalendarSystem, local: int) -> int:
        return cal.external_year(_year(cal, local))

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        return _with_year(cal, local, cal.internal_year(value))

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        return cal.min_external_year(), cal.max_external_year()

    def check(self, field_type, cal, value, lower, upper) -> None:
        super().check(field_type, cal, value, lower, upper)
        _check_not_zero(field_type, cal, value)

    def is_leap(self, cal: CalendarSystem, local: int) -> bool:
        return cal.is_leap_year(_year(cal, local))


def _year_of_era(cal: CalendarSystem, year: int) -> int:
    if cal.single_era:
        return cal.external_year(year)
    return 1 - year if year <= 0 else year


def _year_from_era(cal: CalendarSystem, year_of_era: int, ref: int) -> int:
    """Internal year for a year of era, in the era of the reference year"""
    if cal.single_era:
        return cal.internal_year(year_of_era)
    return 1 - year_of_era if ref <= 0 else year_of_era


class _YearOfEraRule(_YearUnitRule):
    # Single-era calendars number the years of their era like the year field
    _year_rule = _YearRule()

    def get(self, cal: CalendarSystem, local: int) -> int:
        return _year_of_era(cal, _year(cal, local))

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        return _with_year(
            cal, local, _year_from_era(cal, value, _year(cal, local))
        )

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        if cal.single_era:
            return self._year_rule.overall(cal)
        return 1, max(cal.max_year, 1 - cal.min_year)

    def bounds(self, cal: CalendarSystem, local: int) -> tuple[int, int]:
        if cal.single_era:
            return self.overall(cal)
        if _year(cal, local) <= 0:
            return 1, 1 - cal.min_year
        return 1, cal.max_year

    def check(self, field_type, cal, value, lower, upper) -> None:
        super().check(field_type, cal, value, lower, upper)
        if cal.single_era:
            _check_not_zero(field_type, cal, value)


class _EraRule(_Rule):
    def get(self, cal: CalendarSystem, local: int) -> int:
        if cal.single_era:
            return 1
        return 0 if _year(cal, local) <= 0 else 1

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        if value == self.get(cal, local):
            return local
        # The year of era is kept
        return _with_year(cal, local, 1 - _year(cal, local))

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        return (1, 1) if cal.single_era else (0, 1)

    def floor(self, cal: CalendarSystem, local: int) -> Optional[int]:
        if cal.single_era or _year(cal, local) <= 0:
            return None
        return _year_start(cal, 1)

    def ceiling(
        self, cal: CalendarSystem, local: int, floor: int
    ) -> Optional[int]:
        if cal.single_era or _year(cal, local) > 0:
            return None
        return _year_start(cal, 1)


def _split_century(cal: CalendarSystem, year: int) -> tuple[int, int]:
    """The (century, year of century) of an internal year"""
    if cal.zero_based_centuries:
        return divmod(abs(year), 100)
    century, rem = divmod(_year_of_era(cal, year) + 99, 100)
    return century, rem + 1


def _join_century(
    cal: CalendarSystem, ref: int, century: int, year_of_century: int
) -> int:
    """Internal year for a century and year of century, in the era of the
    reference year"""
    if cal.zero_based_centuries:
        year = century * 100 + year_of_century
        return -year if ref < 0 else year
    return _year_from_era(cal, century * 100 - 100 + year_of_century, ref)


def _century_span(cal: CalendarSystem, year: int) -> tuple[int, int]:
    """The first and last internal year of the century containing a year"""
    century = _split_century(cal, year)[0]
    if cal.zero_based_centuries:
        if year < 0:
            return -(century * 100 + 99), -max(century * 100, 1)
        return century * 100, century * 100 + 99
    a = _join_century(cal, year, century, 1)
    b = _join_century(cal, year, century, 100)
    return min(a, b), max(a, b)


class _CenturyOfEraRule(_Rule):
    _year_of_era_rule = _YearOfEraRule()

    def get(self, cal: CalendarSystem, local: int) -> int:
        return _split_century(cal, _year(cal, local))[0]

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        year = _year(cal, local)
        year_of_century = _split_century(cal, year)[1]
        return _with_year(
            cal, local, _join_century(cal, year, value, year_of_century)
        )

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        if cal.zero_based_centuries:
            return 0, max(cal.max_year, -cal.min_year) // 100
        lower, upper = self._year_of_era_rule.overall(cal)
        return (lower + 99) // 100, (upper + 99) // 100

    def floor(self, cal: CalendarSystem, local: int) -> int:
        return _year_start(cal, _century_span(cal, _year(cal, local))[0])

    def ceiling(self, cal: CalendarSystem, local: int, floor: int) -> int:
        return _year_start(cal, _century_span(cal, _year(cal, local))[1] + 1)


class _YearOfCenturyRule(_YearUnitRule):
    def get(self, cal: CalendarSystem, local: int) -> int:
        return _split_century(cal, _year(cal, local))[1]

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        year = _year(cal, local)
        century = _split_century(cal, year)[0]
        return _with_year(cal, local, _join_century(cal, year, century, value))

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        return (0, 99) if cal.zero_based_centuries else (1, 100)


def _weekyear(cal: CalendarSystem, local: int) -> int:
    return cal.week_date(local // MILLIS_PER_DAY)[0]


class _WeekyearUnitRule(_Rule):
    def floor(self, cal: CalendarSystem, local: int) -> int:
        return check_long(
            cal.first_week_start(_weekyear(cal, local)) * MILLIS_PER_DAY
        )

    def ceiling(self, cal: CalendarSystem, local: int, floor: int) -> int:
        return check_long(
            cal.first_week_start(_weekyear(cal, local) + 1) * MILLIS_PER_DAY
        )


class _WeekyearRule(_WeekyearUnitRule):
    leap_duration = _D.WEEKS

    def get(self, cal: CalendarSystem, local: int) -> int:
        return cal.external_year(_weekyear(cal, local))

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        return _with_weekyear(cal, local, cal.internal_year(value))

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        return cal.min_external_year(), cal.max_external_year()

    def check(self, field_type, cal, value, lower, upper) -> None:
        super().check(field_type, cal, value, lower, upper)
        _check_not_zero(field_type, cal, value)

    def is_leap(self, cal: CalendarSystem, local: int) -> bool:
        return cal.weeks_in_weekyear(_weekyear(cal, local)) > 52


class _WeekyearOfCenturyRule(_WeekyearUnitRule):
    def get(self, cal: CalendarSystem, local: int) -> int:
        weekyear = cal.external_year(_weekyear(cal, local))
        return weekyear % 100 + (not cal.zero_based_centuries)

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        weekyear = cal.external_year(_weekyear(cal, local))
        new = weekyear // 100 * 100 + value - (not cal.zero_based_centuries)
        if new == 0 and not cal.has_year_zero:
            raise FieldRangeError(
                _F.WEEKYEAR_OF_CENTURY,
                value,
                reason="is invalid: the calendar has no weekyear 0",
            )
        return _with_weekyear(cal, local, cal.internal_year(new))

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        return (0, 99) if cal.zero_based_centuries else (1, 100)


class _WeekOfWeekyearRule(_Rule):
    def get(self, cal: CalendarSystem, local: int) -> int:
        return cal.week_date(local // MILLIS_PER_DAY)[1]

    def set(self, cal: CalendarSystem, local: int, value: int) -> int:
        days, millis = divmod(local, MILLIS_PER_DAY)
        weekyear, _, dow = cal.week_date(days)
        return check_long(
            cal.days_from_week_date(weekyear, value, dow) * MILLIS_PER_DAY
            + millis
        )

    def overall(self, cal: CalendarSystem) -> tuple[int, int]:
        return 1, 53

    def bounds(self, cal: CalendarSystem, local: int) -> tuple[int, int]:
        return 1, cal.weeks_in_weekyear(_weekyear(cal, local))

    def bounds_for(
        self, cal: CalendarSystem, context: Context
    ) -> tuple[int, int]:
        weekyear = context.get(_F.WEEKYEAR)
        if weekyear is None:
            return self.overall(cal)
        return 1, cal.weeks_in_weekyear(cal.internal_year(weekyear))

    def floor(self, cal: CalendarSystem, local: int) -> int:
        days = local // MILLIS_PER_DAY
        return (days - iso_day_of_week(days) + 1) * MILLIS_PER_DAY

    def ceiling(self, cal: CalendarSystem, local: int, floor: int) -> int:
        return check_long(floor + MILLIS_PER_WEEK)


_RULES: dict[DateTimeFieldType, _Rule] = {
    _F.ERA: _EraRule(),
    _F.YEAR_OF_ERA: _YearOfEraRule(),
    _F.CENTURY_OF_ERA: _CenturyOfEraRule(),
    _F.YEAR_OF_CENTURY: _YearOfCenturyRule(),
    _F.YEAR: _YearRule(),
    _F.DAY_OF_YEAR: _DayOfYearRule(),
    _F.MONTH_OF_YEAR: _MonthRule(),
    _F.DAY_OF_MONTH: _DayOfMonthRule(),
    _F.WEEKYEAR_OF_CENTURY: _WeekyearOfCenturyRule(),
    _F.WEEKYEAR: _WeekyearRule(),
    _F.WEEK_OF_WEEKYEAR: _WeekOfWeekyearRule(),
    _F.DAY_OF_WEEK: _DayOfWeekRule(),
    _F.HALFDAY_OF_DAY: _TimeRule(MILLIS_PER_HALFDAY, MILLIS_PER_DAY),
    _F.HOUR_OF_HALFDAY: _TimeRule(MILLIS_PER_HOUR, MILLIS_PER_HALFDAY),
    _F.CLOCKHOUR_OF_HALFDAY: _TimeRule(
        MILLIS_PER_HOUR, MILLIS_PER_HALFDAY, zero_is_max=True
    ),
    _F.CLOCKHOUR_OF_DAY: _TimeRule(
        MILLIS_PER_HOUR, MILLIS_PER_DAY, zero_is_max=True
    ),
    _F.HOUR_OF_DAY: _TimeRule(MILLIS_PER_HOUR, MILLIS_PER_DAY),
    _F.MINUTE_OF_DAY: _TimeRule(MILLIS_PER_MINUTE, MILLIS_PER_DAY),
    _F.MINUTE_OF_HOUR: _TimeRule(MILLIS_PER_MINUTE, MILLIS_PER_HOUR),
    _F.SECOND_OF_DAY: _TimeRule(MILLIS_PER_SECOND, MILLIS_PER_DAY),
    _F.SECOND_OF_MINUTE: _TimeRule(MILLIS_PER_SECOND, MILLIS_PER_MINUTE),
    _F.MILLIS_OF_DAY: _TimeRule(1, MILLIS_PER_DAY),
    _F.MILLIS_OF_SECOND: _TimeRule(1, MILLIS_PER_SECOND),
}


# --- public classes ----------------------------------------------------------


@final
class DurationField(_ImmutableBase):
    """A unit of elapsed time, bound to a chronology.

    Precise units have a fixed length (see :meth:`unit_millis`). Imprecise
    units, such as months, are added on the calendar of the chronology,
    clamping the day of month where needed.

    >>> from chronofield import Chronology, DurationFieldType
    >>> months = Chronology.of().duration_field(DurationFieldType.MONTHS)
    >>> months.add(1_107_129_600_000, 1)  # 2005-01-31 -> 2005-02-28
    1109548800000
    """

    __slots__ = ("chronology", "type", "_unit")

    chronology: Chronology
    type: DurationFieldType
    # The length in millis, if fixed in this chronology
    _unit: Optional[int]

    def __init__(self, chronology: Chronology, type_: DurationFieldType):
        self.chronology = chronology
        self.type = type_
        unit = _TIME_UNITS.get(type_)
        if unit is None and chronology.zone.is_fixed():
            unit = _DAY_UNITS.get(type_)
        self._unit = unit

    @property
    def name(self) -> str:
        return self.type.value

    def is_supported(self) -> bool:
        return self.type is not _D.ERAS

    def is_precise(self) -> bool:
        return self._unit is not None

    def unit_millis(self) -> int:
        """The fixed length of the unit in milliseconds.
        Raises :class:`UnsupportedFieldError` for imprecise units."""
        if self._unit is None:
            raise UnsupportedFieldError(
                f"{self.name} has no fixed length in {self.chronology}"
            )
        return self._unit

    def _check_supported(self) -> None:
        if self.type is _D.ERAS:
            raise UnsupportedFieldError("eras is not supported")

    def add(self, instant: int, amount: int) -> int:
        self._check_supported()
        if self._unit is not None:
            return safe_add(instant, safe_multiply(amount, self._unit))
        chrono = self.chronology
        local = chrono.to_local(instant)
        new_local = _add_local(chrono.calendar, self.type, local, amount)
        return chrono.from_local(
            new_local, original=instant, forward=amount >= 0
        )

    def subtract(self, instant: int, amount: int) -> int:
        self._check_supported()
        return self.add(instant, safe_negate(amount))

    def get_difference(self, minuend: int, subtrahend: int) -> int:
        """Whole units between two instants, as a 32-bit value"""
        return check_int(self.get_difference_as_long(minuend, subtrahend))

    def get_difference_as_long(self, minuend: int, subtrahend: int) -> int:
        self._check_supported()
        if self._unit is not None:
            return div_trunc(safe_subtract(minuend, subtrahend), self._unit)
        chrono = self.chronology
        a = chrono.to_local(minuend)
        b = chrono.to_local(subtrahend)
        unit = self.type
        if unit in _DAY_UNITS:
            return div_trunc(a - b, _DAY_UNITS[unit])
        elif unit is _D.CENTURIES:
            return div_trunc(
                _calendar_difference(chrono.calendar, _D.YEARS, a, b), 100
            )
        return _calendar_difference(chrono.calendar, unit, a, b)

    def get_value(self, duration: int, instant: Optional[int] = None) -> int:
        return check_int(self.get_value_as_long(duration, instant))

    def get_value_as_long(
        self, duration: int, instant: Optional[int] = None
    ) -> int:
        """Whole units in a duration in milliseconds.

        Imprecise units are counted from the given instant, or by their
        average length if there is none.
        """
        self._check_supported()
        if self._unit is not None:
            return div_trunc(duration, self._unit)
        if instant is None:
            return div_trunc(duration, self.type.approx_millis)
        return self.get_difference_as_long(
            safe_add(instant, duration), instant
        )

    def get_millis(self, value: int, instant: Optional[int] = None) -> int:
        """The length in milliseconds of a number of units"""
        self._check_supported()
        if self._unit is not None:
            return safe_multiply(value, self._unit)
        if instant is None:
            return safe_multiply(value, self.type.approx_millis)
        return safe_subtract(self.add(instant, value), instant)

    def _size(self) -> float:
        return self._unit or self.type.approx_millis

    def __lt__(self, other: DurationField) -> bool:
        if not isinstance(other, DurationField):
            return NotImplemented
        return self._size() < other._size()

    def __le__(self, other: DurationField) -> bool:
        if not isinstance(other, DurationField):
            return NotImplemented
        return self._size() <= other._size()

    def __gt__(self, other: DurationField) -> bool:
        if not isinstance(other, DurationField):
            return NotImplemented
        return self._size() > other._size()

    def __ge__(self, other: DurationField) -> bool:
        if not isinstance(other, DurationField):
            return NotImplemented
        return self._size() >= other._size()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DurationField):
            return NotImplemented
        return (self.chronology, self.type) == (other.chronology, other.type)

    def __hash__(self) -> int:
        return hash((DurationField, self.chronology, self.type))

    def __repr__(self) -> str:
        return f"DurationField({self.name}, {self.chronology})"


@final
class DateTimeField(_ImmutableBase):
    """Reads and writes one calendrical unit of an instant.

    Values are computed on the local time of the chronology's zone.
    When a change lands on a local time that doesn't exist, the result is
    moved past the gap in the direction of the change. When it lands on a
    repeated local time, the original offset is kept if possible, and
    otherwise the occurrence first reached in the direction of the change.

    >>> from chronofield import Chronology, DateTimeFieldType
    >>> month = Chronology.of().field(DateTimeFieldType.MONTH_OF_YEAR)
    >>> month.get(1_107_129_600_000)  # 2005-01-31
    1
    >>> month.set(1_107_129_600_000, 2)  # 2005-02-28
    1109548800000
    """

    __slots__ = ("chronology", "type", "_rule")

    chronology: Chronology
    type: DateTimeFieldType

    def __init__(self, chronology: Chronology, type_: DateTimeFieldType):
        self.chronology = chronology
        self.type = type_
        self._rule = _RULES[type_]

    @property
    def name(self) -> str:
        return self.type.value

    def is_supported(self) -> bool:
        return True

    def duration_field(self) -> DurationField:
        return self.chronology.duration_field(self.type.duration_type)

    def range_duration_field(self) -> Optional[DurationField]:
        range_type = self.type.range_type
        if range_type is None:
            return None
        return self.chronology.duration_field(range_type)

    def leap_duration_field(self) -> Optional[DurationField]:
        leap_type = self._rule.leap_duration
        if leap_type is None:
            return None
        return self.chronology.duration_field(leap_type)

    # --- reading -------------------------------------------------------------

    def get(self, instant: int) -> int:
        chrono = self.chronology
        return self._rule.get(chrono.calendar, chrono.to_local(instant))

    def is_leap(self, instant: int) -> bool:
        chrono = self.chronology
        return self._rule.is_leap(chrono.calendar, chrono.to_local(instant))

    def leap_amount(self, instant: int) -> int:
        return 1 if self.is_leap(instant) else 0

    def minimum_value(self, instant: Optional[int] = None) -> int:
        return self._bounds(instant)[0]

    def maximum_value(self, instant: Optional[int] = None) -> int:
        return self._bounds(instant)[1]

    def _bounds(self, instant: Optional[int]) -> tuple[int, int]:
        chrono = self.chronology
        if instant is None:
            return self._rule.overall(chrono.calendar)
        return self._rule.bounds(chrono.calendar, chrono.to_local(instant))

    def minimum_value_for(self, context: Context) -> int:
        """The minimum value, given the values of other fields"""
        return self._rule.bounds_for(self.chronology.calendar, context)[0]

    def maximum_value_for(self, context: Context) -> int:
        """The maximum value, given the values of other fields.

        >>> from chronofield import Chronology, DateTimeFieldType as F
        >>> day = Chronology.of().field(F.DAY_OF_MONTH)
        >>> day.maximum_value_for({F.YEAR: 2004, F.MONTH_OF_YEAR: 2})
        29
        """
        return self._rule.bounds_for(self.chronology.calendar, context)[1]

    def check_value_for(self, context: Context, value: int) -> None:
        """Raise :class:`FieldRangeError` if the value is invalid,
        given the values of other fields"""
        cal = self.chronology.calendar
        lower, upper = self._rule.bounds_for(cal, context)
        self._rule.check(self.type, cal, value, lower, upper)

    # --- changing ------------------------------------------------------------

    def set(self, instant: int, value: int) -> int:
        """Set the value, keeping larger fields and clamping smaller ones"""
        chrono = self.chronology
        cal = chrono.calendar
        local = chrono.to_local(instant)
        lower, upper = self._rule.bounds(cal, local)
        self._rule.check(self.type, cal, value, lower, upper)
        new_local = self._rule.set(cal, local, value)
        return chrono.from_local(
            new_local, original=instant, forward=new_local >= local
        )

    def add(self, instant: int, amount: int) -> int:
        return self.duration_field().add(instant, amount)

    def add_wrap_field(self, instant: int, amount: int) -> int:
        """Add to this field only, wrapping within its bounds.
        Larger fields are never changed."""
        chrono = self.chronology
        local = chrono.to_local(instant)
        lower, upper = self._rule.bounds(chrono.calendar, local)
        if lower >= upper:
            return instant
        current = self._rule.get(chrono.calendar, local)
        return self.set(
            instant, wrapped_value(current, amount, lower, upper)
        )

    def get_difference(self, minuend: int, subtrahend: int) -> int:
        return self.duration_field().get_difference(minuend, subtrahend)

    def get_difference_as_long(self, minuend: int, subtrahend: int) -> int:
        return self.duration_field().get_difference_as_long(
            minuend, subtrahend
        )

    # --- rounding ------------------------------------------------------------

    def round_floor(self, instant: int) -> int:
        """The start of the unit containing the instant"""
        chrono = self.chronology
        floor = self._rule.floor(chrono.calendar, chrono.to_local(instant))
        if floor is None:
            return MIN_MILLIS
        return chrono.from_local(floor, original=instant, forward=True)

    def round_ceiling(self, instant: int) -> int:
        """The start of the next unit, unless the instant is on a boundary"""
        chrono = self.chronology
        cal = chrono.calendar
        local = chrono.to_local(instant)
        floor = self._rule.floor(cal, local)
        if floor == local:
            return instant
        ceiling = self._rule.ceiling(cal, local, floor)
        if ceiling is None:
            return MAX_MILLIS
        return chrono.from_local(ceiling, original=instant, forward=True)

    def round_half_floor(self, instant: int) -> int:
        floor = self.round_floor(instant)
        ceiling = self.round_ceiling(instant)
        if instant - floor <= ceiling - instant:
            return floor
        return ceiling

    def round_half_ceiling(self, instant: int) -> int:
        floor = self.round_floor(instant)
        ceiling = self.round_ceiling(instant)
        if ceiling - instant <= instant - floor:
            return ceiling
        return floor

    def round_half_even(self, instant: int) -> int:
        floor = self.round_floor(instant)
        ceiling = self.round_ceiling(instant)
        to_floor = instant - floor
        to_ceiling = ceiling - instant
        if to_floor < to_ceiling:
            return floor
        elif to_floor > to_ceiling:
            return ceiling
        # Halfway: round to the even value
        return ceiling if self.get(ceiling) % 2 == 0 else floor

    def remainder(self, instant: int) -> int:
        """The milliseconds since the start of the unit"""
        return safe_subtract(instant, self.round_floor(instant))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DateTimeField):
            return NotImplemented
        return (self.chronology, self.type) == (other.chronology, other.type)

    def __hash__(self) -> int:
        return hash((DateTimeField, self.chronology, self.type))

    def __repr__(self) -> str:
        return f"DateTimeField({self.name}, {self.chronology})"
