"""POSIX TZ strings: the recurring rule that extends a zone's table.

Times in this module are in seconds; the zone engine scales them to
milliseconds. Rules are evaluated with proleptic Gregorian day counts,
so any year is supported.
"""

from __future__ import annotations

from typing import Optional, Union

from .._math import (
    civil_from_days,
    days_from_civil,
    days_in_month,
    is_leap,
    iso_day_of_week,
)
from .common import Ambiguity, Fold, Gap, Unambiguous

DEFAULT_DST = 3600
DEFAULT_RULE_TIME = 2 * 3600
MAX_OFFSET = 24 * 3600
SECS_PER_DAY = 86_400
Weekday = int  # Different than usual! Sunday=0, Saturday=6


def year_for_epoch(ts: int) -> int:
    return civil_from_days(ts // SECS_PER_DAY)[0]


def _weekday(days: int) -> Weekday:
    return iso_day_of_week(days) % 7


class LastWeekday:
    month: int
    weekday: Weekday

    __slots__ = ("month", "weekday")

    def __init__(self, month: int, weekday: Weekday):
        self.month = month
        self.weekday = weekday

    def apply(self, year: int) -> int:
        month_days = days_in_month(year, self.month)
        last = days_from_civil(year, self.month, month_days)
        return last - (_weekday(last) - self.weekday) % 7

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LastWeekday):
            return NotImplemented
        return self.month == other.month and self.weekday == other.weekday

    def __hash__(self) -> int:
        return hash((LastWeekday, self.month, self.weekday))

    def __repr__(self) -> str:
        return f"LastWeekday({self.month}, {self.weekday})"


class NthWeekday:
    month: int
    nth: int
    weekday: Weekday

    __slots__ = ("month", "nth", "weekday")

    def __init__(self, month: int, nth: int, weekday: Weekday):
        self.month = month
        self.nth = nth
        self.weekday = weekday

    def apply(self, year: int) -> int:
        first = days_from_civil(year, self.month, 1)
        first_match = first + (self.weekday - _weekday(first)) % 7
        return first_match + 7 * (self.nth - 1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NthWeekday):
            return NotImplemented
        return (
            self.month == other.month
            and self.nth == other.nth
            and self.weekday == other.weekday
        )

    def __hash__(self) -> int:
        return hash((NthWeekday, self.month, self.nth, self.weekday))

    def __repr__(self) -> str:
        return f"NthWeekday({self.month}, {self.nth}, {self.weekday})"


class DayOfYear:
    nth: int  # 1-365, 366 for leap years

    __slots__ = ("nth",)

    def __init__(self, nth: int):
        self.nth = nth

    def apply(self, year: int) -> int:
        day = min(self.nth, 365 + is_leap(year))
        return days_from_civil(year, 1, 1) + day - 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DayOfYear):
            return NotImplemented
        return self.nth == other.nth

    def __hash__(self) -> int:
        return hash((DayOfYear, self.nth))

    def __repr__(self) -> str:
        return f"DayOfYear({self.nth})"


class JulianDayOfYear:
    nth: int  # 1-365, never counting February 29th

    __slots__ = ("nth",)

    def __init__(self, nth: int):
        self.nth = nth

    def apply(self, year: int) -> int:
        day = self.nth
        if is_leap(year) and day > 59:
            day += 1
        return days_from_civil(year, 1, 1) + day - 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JulianDayOfYear):
            return NotImplemented
        return self.nth == other.nth

    def __hash__(self) -> int:
        return hash((JulianDayOfYear, self.nth))

    def __repr__(self) -> str:
        return f"JulianDayOfYear({self.nth})"


Rule = Union[LastWeekday, NthWeekday, DayOfYear, JulianDayOfYear]


class Dst:
    name: str
    offset: int
    start: tuple[Rule, int]
    end: tuple[Rule, int]

    __slots__ = ("name", "offset", "start", "end")

    def __init__(
        self,
        offset: int,
        start: tuple[Rule, int],
        end: tuple[Rule, int],
        name: str = "",
    ):
        self.offset = offset
        self.start = start
        self.end = end
        self.name = name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dst):
            return NotImplemented
        return (
            self.offset == other.offset
            and self.start == other.start
            and self.end == other.end
            and self.name == other.name
        )

    def __hash__(self) -> int:
        return hash((self.offset, self.start, self.end, self.name))

    def __repr__(self) -> str:
        return (
            f"Dst({self.name!r}, offset={self.offset}, "
            f"start={self.start}, end={self.end})"
        )


class TzStr:
    std: int
    std_name: str
    dst: Optional[Dst]

    __slots__ = ("std", "dst", "std_name")

    def __init__(
        self, std: int, dst: Optional[Dst] = None, std_name: str = ""
    ):
        self.std = std
        self.dst = dst
        self.std_name = std_name

    def _transitions(self, year: int) -> tuple[int, int]:
        """The UTC epoch seconds at which DST starts and ends in a year"""
        assert self.dst is not None
        start_rule, start_time = self.dst.start
        end_rule, end_time = self.dst.end
        start = start_rule.apply(year) * SECS_PER_DAY + start_time - self.std
        end = end_rule.apply(year) * SECS_PER_DAY + end_time - self.dst.offset
        return start, end

    def is_dst(self, epoch: int) -> bool:
        if not self.dst:
            return False
        # Theoretically, the epoch year could be different from the
        # local year. However, in practice, we can assume that the year of
        # the transition isn't affected by the DST change.
        start, end = self._transitions(year_for_epoch(epoch + self.std))
        # Handle wraparound
        if start < end:
            return start <= epoch < end
        return not (end <= epoch < start)

    def offset_for_instant(self, epoch: int) -> int:
        if self.dst and self.is_dst(epoch):
            return self.dst.offset
        return self.std

    def name_for_instant(self, epoch: int) -> str:
        if self.dst and self.is_dst(epoch):
            return self.dst.name
        return self.std_name

    def _sorted_transitions_around(self, epoch: int) -> list[int]:
        year = year_for_epoch(epoch + self.std)
        return sorted(
            t for y in (year - 1, year, year + 1) for t in self._transitions(y)
        )

    def next_transition(self, epoch: int) -> Optional[int]:
        """The first transition strictly after the given time, if any"""
        if not self.dst:
            return None
        for t in self._sorted_transitions_around(epoch):
            if t > epoch:
                return t
        return None  # pragma: no cover

    def prev_transition(self, epoch: int) -> Optional[int]:
        """The last transition strictly before the given time, if any"""
        if not self.dst:
            return None
        for t in reversed(self._sorted_transitions_around(epoch)):
            if t < epoch:
                return t
        return None  # pragma: no cover

    # NOTE: `epoch` is the datetime in seconds since the LOCAL epoch.
    def ambiguity_for_local(self, epoch: int) -> Ambiguity:
        if not self.dst:
            return Unambiguous(self.std)
        year = year_for_epoch(epoch)

        start_rule, start_time = self.dst.start
        end_rule, end_time = self.dst.end
        dst_offset = self.dst.offset

        start = start_rule.apply(year) * SECS_PER_DAY + start_time
        end = end_rule.apply(year) * SECS_PER_DAY + end_time

        if start < end:
            t1, t2 = start, end
            off1, off2 = self.std, dst_offset
            shift = dst_offset - self.std
        else:
            t1, t2 = end, start
            off1, off2 = dst_offset, self.std
            shift = self.std - dst_offset

        if shift >= 0:
            if epoch < t1:
                return Unambiguous(off1)
            elif epoch < t1 + shift:
                return Gap(off2, off1)
            elif epoch < t2 - shift:
                return Unambiguous(off2)
            elif epoch < t2:
                return Fold(off2, off1)
            else:
                return Unambiguous(off1)
        else:
            if epoch < t1 + shift:
                return Unambiguous(off1)
            elif epoch < t1:
                return Fold(off1, off2)
            elif epoch < t2:
                return Unambiguous(off2)
            elif epoch < t2 - shift:
                return Gap(off1, off2)
            else:
                return Unambiguous(off1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TzStr):
            return NotImplemented
        return (
            self.std == other.std
            and self.dst == other.dst
            and self.std_name == other.std_name
        )

    def __hash__(self) -> int:
        return hash((self.std, self.dst, self.std_name))

    def __repr__(self) -> str:
        if not self.dst:
            return f"TzStr({self.std_name!r}, std={self.std})"
        else:
            return f"TzStr({self.std_name!r}, std={self.std}, dst={self.dst})"

    @classmethod
    def parse(cls, s: str) -> TzStr:
        if not s.isascii():
            raise ValueError(
                "Invalid POSIX TZ string: non-ASCII characters found"
            )

        std_name, s = parse_tzname(s)
        std, s = parse_offset(s)

        # If there's nothing else, it's a fixed offset without DST
        if not s:
            return cls(std, dst=None, std_name=std_name)

        dst_name, s = parse_tzname(s)

        if s[:1] == ",":
            # No offset given, the default is std + 1hr
            s = s[1:]
            dst = std + DEFAULT_DST
            if dst >= MAX_OFFSET:
                raise ValueError(
                    "Invalid POSIX TZ string: DST offset out of range"
                )
        else:
            dst, s = parse_offset(s)
            s = expect_char(s, ",")

        start, s = parse_rule(s)
        s = expect_char(s, ",")
        end, s = parse_rule(s)

        if s:
            raise ValueError(
                f"Invalid POSIX TZ string: unexpected trailing '{s}'"
            )
        else:
            return cls(std, Dst(dst, start, end, dst_name), std_name)


def parse_tzname(s: str) -> tuple[str, str]:
    """Split off the timezone name, returning it and the rest of the string."""
    if s[:1] == "<":  # bracketed format
        stop = s.find(">") + 1
        if stop < 3:  # not found or empty name
            raise ValueError("Invalid TZ string: missing or empty name")
        return s[1 : stop - 1], s[stop:]

    # unbracketed format only allows letters
    for stop, char in enumerate(s):
        if not char.isalpha():
            break
    else:
        raise ValueError("Invalid TZ string: missing or empty name")

    if stop == 0:
        raise ValueError("Invalid TZ string: invalid name")

    return s[:stop], s[stop:]


def expect_char(s: str, char: str) -> str:
    if s[:1] != char:
        raise ValueError(f"Invalid TZ string: expected '{char}'")
    return s[1:]


def parse_offset(s: str) -> tuple[int, str]:
    delta_s, s = parse_hms(s)
    if abs(delta_s) >= MAX_OFFSET:
        raise ValueError("Invalid POSIX TZ string: offset out of range")
    # POSIX TZ strings use negative offsets, so we negate the parsed value
    return -delta_s, s


# Parse a time string in the format h[hh[:mm[:ss]]]
def parse_hms(s: str) -> tuple[int, str]:
    sign = 1
    if s[:1] == "+":
        s = s[1:]
    elif s[:1] == "-":
        s = s[1:]
        sign = -1

    hour, s = parse_up_to_3_digits(s)
    total = hour * 3600
    if s[:1] == ":":
        minute, s = parse_00_to_59(s[1:])
        total += minute * 60
        if s[:1] == ":":
            second, s = parse_00_to_59(s[1:])
            total += second

    return sign * total, s


def parse_up_to_3_digits(s: str) -> tuple[int, str]:
    digits = len(s) - len(s.lstrip("0123456789"))
    if digits == 0:
        raise ValueError(f"Invalid TZ string: expected digits, got '{s}'")
    digits = min(digits, 3)
    return int(s[:digits]), s[digits:]


def parse_1_to_12(s: str) -> tuple[int, str]:
    digits = 2 if s[1:2].isdigit() else 1
    if not s[:1].isdigit():
        raise ValueError(f"Invalid TZ string: expected 1-12, got '{s[:2]}'")
    value = int(s[:digits])
    if value < 1 or value > 12:
        raise ValueError(f"Invalid TZ string: expected 1-12, got '{s[:2]}'")
    return value, s[digits:]


def parse_00_to_59(s: str) -> tuple[int, str]:
    if len(s) < 2 or not s[:2].isdigit():
        raise ValueError(f"Invalid TZ string: expected 2 digits, got '{s}'")
    value = int(s[:2])
    if value > 59:
        raise ValueError(f"Invalid TZ string: expected 00-59, got '{s[:2]}'")
    return value, s[2:]


def parse_digit(s: str) -> tuple[int, str]:
    if not s[:1].isdigit():
        raise ValueError(f"Invalid TZ string: expected a digit, got '{s}'")
    return int(s[:1]), s[1:]


def parse_rule(s: str) -> tuple[tuple[Rule, int], str]:

    rule: Rule
    if s[:1] == "M":  # Mm.n.d format
        m, s = parse_1_to_12(s[1:])
        s = expect_char(s, ".")
        n, s = parse_digit(s)
        s = expect_char(s, ".")
        d, s = parse_digit(s)

        if n < 1 or d > 6:
            raise ValueError("Invalid DST rule")

        if n < 5:
            rule = NthWeekday(m, n, d)
        elif n == 5:
            rule = LastWeekday(m, d)
        else:
            raise ValueError(f"Invalid week number: {n}")
    elif s[:1] == "J":  # Jnnn format
        nth, s = parse_up_to_3_digits(s[1:])
        if nth < 1 or nth > 365:
            raise ValueError(f"Invalid Julian day of year: {nth}")
        rule = JulianDayOfYear(nth)
    else:  # nnn format
        nth, s = parse_up_to_3_digits(s)
        if nth > 365:
            raise ValueError(f"Invalid day of year: {nth}")
        rule = DayOfYear(nth + 1)

    if s[:1] == "/":
        # Optional time
        time, s = parse_hms(s[1:])
    else:
        time = DEFAULT_RULE_TIME

    return (rule, time), s
