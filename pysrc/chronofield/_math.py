"""Checked integer arithmetic and calendar day-count helpers.

Python integers never overflow, so every operation that models the signed
64-bit millisecond timeline checks its result explicitly.
"""

from __future__ import annotations

from ._common import (
    MAX_INT,
    MAX_MILLIS,
    MIN_INT,
    MIN_MILLIS,
    ArithmeticOverflowError,
)


def check_long(value: int, /) -> int:
    if MIN_MILLIS <= value <= MAX_MILLIS:
        return value
    raise ArithmeticOverflowError(f"{value} is outside the 64-bit range")


def check_int(value: int, /) -> int:
    if MIN_INT <= value <= MAX_INT:
        return value
    raise ArithmeticOverflowError(f"{value} is outside the 32-bit range")


def safe_add(a: int, b: int, /) -> int:
    return check_long(a + b)


def safe_subtract(a: int, b: int, /) -> int:
    return check_long(a - b)


def safe_multiply(a: int, b: int, /) -> int:
    return check_long(a * b)


def safe_negate(a: int, /) -> int:
    if a == MIN_MILLIS:
        raise ArithmeticOverflowError(f"{a} cannot be negated")
    return -a


def div_trunc(a: int, b: int, /) -> int:
    """Integer division rounding toward zero"""
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def ceil_div(a: int, b: int, /) -> int:
    return -(-a // b)


def wrapped_value(value: int, amount: int, lower: int, upper: int) -> int:
    """Add ``amount`` to ``value``, wrapping around within [lower, upper]"""
    if lower >= upper:
        raise ValueError("Invalid wrap range")
    return (value + amount - lower) % (upper - lower + 1) + lower


# --- Gregorian ---------------------------------------------------------------
# Day counts are relative to 1970-01-01 and use astronomical year numbering
# (year 0 exists). The algorithms work on March-based years so that the leap
# day is the last day of the (shifted) year.

_CIVIL_SHIFT = 719_468
_DAYS_PER_400Y = 146_097


def is_leap(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


# 1-indexed days per month
_MONTHDAYS = [0, 31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]


def days_in_month(year: int, month: int) -> int:
    return _MONTHDAYS[month] + (month == 2 and is_leap(year))


def max_days_in_month(month: int) -> int:
    return _MONTHDAYS[month] + (month == 2)


def _day_of_march_year(month: int, day: int) -> int:
    mp = (month + 9) % 12
    return (153 * mp + 2) // 5 + day - 1


def _month_day_of_march_year(doy: int) -> tuple[int, int]:
    mp = (5 * doy + 2) // 153
    day = doy - (153 * mp + 2) // 5 + 1
    return (mp + 3 if mp < 10 else mp - 9), day


def days_from_civil(year: int, month: int, day: int) -> int:
    year -= month <= 2
    era = year // 400
    yoe = year - era * 400
    doe = yoe * 365 + yoe // 4 - yoe // 100 + _day_of_march_year(month, day)
    return era * _DAYS_PER_400Y + doe - _CIVIL_SHIFT


def civil_from_days(days: int) -> tuple[int, int, int]:
    days += _CIVIL_SHIFT
    era = days // _DAYS_PER_400Y
    doe = days - era * _DAYS_PER_400Y
    yoe = (doe - doe // 1460 + doe // 36524 - doe // 146096) // 365
    doy = doe - (365 * yoe + yoe // 4 - yoe // 100)
    month, day = _month_day_of_march_year(doy)
    return yoe + era * 400 + (month <= 2), month, day


# --- Julian ------------------------------------------------------------------
# Same approach with a 4-year cycle. Years use astronomical numbering here;
# calendars without a year zero translate at their boundary.

_JULIAN_SHIFT = 719_470
_DAYS_PER_4Y = 1_461


def is_julian_leap(year: int) -> bool:
    return year % 4 == 0


def julian_days_in_month(year: int, month: int) -> int:
    return _MONTHDAYS[month] + (month == 2 and is_julian_leap(year))


def days_from_julian(year: int, month: int, day: int) -> int:
    year -= month <= 2
    era = year // 4
    yoe = year - era * 4
    doe = yoe * 365 + _day_of_march_year(month, day)
    return era * _DAYS_PER_4Y + doe - _JULIAN_SHIFT


def julian_from_days(days: int) -> tuple[int, int, int]:
    days += _JULIAN_SHIFT
    era = days // _DAYS_PER_4Y
    doe = days - era * _DAYS_PER_4Y
    yoe = (doe - doe // 1460) // 365
    doy = doe - 365 * yoe
    month, day = _month_day_of_march_year(doy)
    return yoe + era * 4 + (month <= 2), month, day


def iso_day_of_week(days: int) -> int:
    """ISO day of week (Monday=1) of a day count since 1970-01-01"""
    # 1970-01-01 was a Thursday
    return (days + 3) % 7 + 1
