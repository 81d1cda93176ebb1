import pytest

from chronofield._tz.common import Fold, Gap, Unambiguous
from chronofield._tz.posix import (
    DEFAULT_RULE_TIME,
    DayOfYear,
    Dst,
    JulianDayOfYear,
    LastWeekday,
    NthWeekday,
    TzStr,
)

from .common import _days_from_civil, utc_millis


def epoch_secs(*args: int) -> int:
    return utc_millis(*args) // 1000


class TestParse:

    @pytest.mark.parametrize(
        "s",
        [
            "",
            # no offset
            "FOO",
            # invalid names
            "1T",
            "<FOO>",
            "<FOO>>-3",
            "<>3",
            # invalid components
            "FOO+01:",
            "FOO+01:9:03",
            "FOO+01:60:03",
            "FOO-01:59:60",
            "FOO-01:59:",
            "FOO-01:59:4",
            # offset too large
            "FOO24",
            "FOO+24",
            "FOO-27:00",
            "FOO+27:45:09",
            "STD+374",
            "STD+23DST+25,M3.2.0/2,M11.1.0/3",
            # invalid trailing data
            "FOO+01:30M",
            "FOO+01:30BAR,M3.2.1,M1.1.1,",
            "FOO+01:30BAR,M3.2.1,M1.1.1/0/1",
            # unfinished rule
            "FOO+01:30BAR,J",
            "FOO+01:30BAR,",
            "FOO+01:30BAR,M3.2.",
            "PST8PDT",
            "PST8PDT,M3.2.0/2",
            # invalid month rules
            "FOO+01:30BAR,M13.2.1,M1.1.1",
            "FOO+01:30BAR,M0.1.1,M1.1.1",
            "FOO+01:30BAR,M12.6.1,M1.1.1",
            "FOO+01:30BAR,M12.0.2,M1.1.1",
            "FOO+01:30BAR,M12.2.7,M1.1.1",
            # invalid day of year
            "FOO+01:30BAR,J366,M1.1.1",
            "FOO+01:30BAR,J0,M1.1.1",
            "FOO+01:30BAR,-1,M1.1.1",
            "FOO+01:30BAR,366,M1.1.1",
            "AAA4BBB,M3.2.0/2,0349309483959c",
            # std + 1 hr exceeds 24 hours
            "FOO-23:30BAR,M3.2.1,M1.1.1",
            # names must be alphabetic
            "+11",
            "GMT0+11,M3.2.0/2,M11.1.0/3",
            "GMT,M3.2.0/2,M11.1.0/3",
            # non-ascii
            "AAÄ8",
        ],
    )
    def test_invalid(self, s):
        with pytest.raises(ValueError):
            TzStr.parse(s)

    @pytest.mark.parametrize(
        "s, name, expected",
        [
            ("FOO1", "FOO", -3600),
            ("FOOS0", "FOOS", 0),
            ("FOO+01:30", "FOO", -3600 - 30 * 60),
            ("FOO+01:30:59", "FOO", -3600 - 30 * 60 - 59),
            ("FOOS-23:59:59", "FOOS", 86399),
            ("FOO-01", "FOO", 3600),
            ("FOO+23", "FOO", -23 * 3600),
            ("<FOO>-3", "FOO", 3 * 3600),
            ("<+0330>-3:30", "+0330", 3 * 3600 + 30 * 60),
        ],
    )
    def test_fixed_offset(self, s, name, expected):
        tz = TzStr.parse(s)
        assert tz == TzStr(expected, dst=None, std_name=name)
        assert tz.next_transition(0) is None
        assert tz.prev_transition(0) is None

    def test_implicit_dst_offset(self):
        assert TzStr.parse("FOO-1FOOS,M3.5.0,M10.4.0") == TzStr(
            std=3600,
            dst=Dst(
                offset=7200,
                start=(LastWeekday(3, 0), DEFAULT_RULE_TIME),
                end=(NthWeekday(10, 4, 0), DEFAULT_RULE_TIME),
                name="FOOS",
            ),
            std_name="FOO",
        )

    @pytest.mark.parametrize(
        "s, start, end",
        [
            (
                "FOO+1FOOS2:30,M3.5.0/8,M10.2.0",
                (LastWeekday(3, 0), 8 * 3600),
                (NthWeekday(10, 2, 0), DEFAULT_RULE_TIME),
            ),
            (
                "FOO+1FOOS2:30,J023/8:34:01,M10.2.0/03",
                (JulianDayOfYear(23), 8 * 3600 + 34 * 60 + 1),
                (NthWeekday(10, 2, 0), 3 * 3600),
            ),
            (
                "FOO+1FOOS2:30,023/8:34:01,J1/0",
                (DayOfYear(24), 8 * 3600 + 34 * 60 + 1),
                (JulianDayOfYear(1), 0),
            ),
            # 24:00 and beyond are valid rule times
            (
                "FOO+1FOOS2:30,M3.5.0/24,M10.2.0/-89:02",
                (LastWeekday(3, 0), 24 * 3600),
                (NthWeekday(10, 2, 0), -89 * 3600 - 2 * 60),
            ),
        ],
    )
    def test_explicit_rules(self, s, start, end):
        tz = TzStr.parse(s)
        assert tz.std == -3600
        assert tz.dst == Dst(-2 * 3600 - 30 * 60, start, end, "FOOS")


class TestApplyRule:

    @pytest.mark.parametrize(
        "year, nth, expected",
        [
            (1, 1, (1, 1, 1)),
            (2021, 1, (2021, 1, 1)),
            (2221, 59, (2221, 2, 28)),
            (1911, 60, (1911, 3, 1)),
            (2021, 365, (2021, 12, 31)),
            (2021, 366, (2021, 12, 31)),  # clamped
            (2228, 60, (2228, 2, 29)),
            (1920, 61, (1920, 3, 1)),
            (2020, 366, (2020, 12, 31)),
        ],
    )
    def test_day_of_year(self, year, nth, expected):
        assert DayOfYear(nth).apply(year) == _days_from_civil(*expected)

    @pytest.mark.parametrize(
        "year, nth, expected",
        [
            (9999, 365, (9999, 12, 31)),
            (2059, 40, (2059, 2, 9)),
            (1911, 60, (1911, 3, 1)),
            (1920, 60, (1920, 3, 1)),  # skips Feb 29
            (2020, 365, (2020, 12, 31)),
        ],
    )
    def test_julian_day_of_year(self, year, nth, expected):
        assert JulianDayOfYear(nth).apply(year) == _days_from_civil(
            *expected
        )

    @pytest.mark.parametrize(
        "year, month, weekday, expected",
        [
            (2024, 3, 0, (2024, 3, 31)),
            (2024, 3, 1, (2024, 3, 25)),
            (1915, 7, 6, (1915, 7, 31)),
            (1919, 7, 0, (1919, 7, 27)),
        ],
    )
    def test_last_weekday(self, year, month, weekday, expected):
        assert LastWeekday(month, weekday).apply(year) == _days_from_civil(
            *expected
        )

    @pytest.mark.parametrize(
        "year, month, nth, weekday, expected",
        [
            (1919, 7, 1, 0, (1919, 7, 6)),
            (2002, 12, 1, 0, (2002, 12, 1)),
            (2002, 12, 3, 6, (2002, 12, 21)),
            (1992, 2, 4, 6, (1992, 2, 22)),
        ],
    )
    def test_nth_weekday(self, year, month, nth, weekday, expected):
        assert NthWeekday(month, nth, weekday).apply(
            year
        ) == _days_from_civil(*expected)


# A zone with random-ish DST rules
TZ = TzStr(
    std=4800,
    dst=Dst(
        offset=9300,
        start=(LastWeekday(3, 0), 4 * 3600),
        end=(JulianDayOfYear(281), DEFAULT_RULE_TIME),
    ),
)

# DST offset smaller than the standard offset: gap and fold swap places
TZ_NEG = TzStr(
    std=4800,
    dst=Dst(
        offset=1200,
        start=(LastWeekday(3, 0), DEFAULT_RULE_TIME),
        end=(JulianDayOfYear(281), 4 * 3600),
    ),
)

# DST ends before it starts in the calendar year
TZ_INVERTED = TzStr(
    std=4800,
    dst=Dst(
        offset=7200,
        end=(LastWeekday(3, 0), DEFAULT_RULE_TIME),
        start=(JulianDayOfYear(281), 4 * 3600),
    ),
)


class TestAmbiguity:

    @pytest.mark.parametrize(
        "tz, ymd, hms, expected",
        [
            (TzStr(1234), (2020, 3, 19), (12, 34, 56), Unambiguous(1234)),
            (TZ, (1990, 1, 1), (0, 0, 0), Unambiguous(4800)),
            (TZ, (1990, 12, 31), (23, 59, 59), Unambiguous(4800)),
            # gap
            (TZ, (1990, 3, 25), (3, 59, 59), Unambiguous(4800)),
            (TZ, (1990, 3, 25), (4, 0, 0), Gap(9300, 4800)),
            (TZ, (1990, 3, 25), (5, 14, 59), Gap(9300, 4800)),
            (TZ, (1990, 3, 25), (5, 15, 0), Unambiguous(9300)),
            # fold
            (TZ, (1990, 10, 8), (0, 44, 59), Unambiguous(9300)),
            (TZ, (1990, 10, 8), (0, 45, 0), Fold(9300, 4800)),
            (TZ, (1990, 10, 8), (1, 59, 59), Fold(9300, 4800)),
            (TZ, (1990, 10, 8), (2, 0, 0), Unambiguous(4800)),
            # negative DST
            (TZ_NEG, (1990, 3, 25), (0, 59, 59), Unambiguous(4800)),
            (TZ_NEG, (1990, 3, 25), (1, 0, 0), Fold(4800, 1200)),
            (TZ_NEG, (1990, 3, 25), (2, 0, 0), Unambiguous(1200)),
            (TZ_NEG, (1990, 10, 8), (4, 0, 0), Gap(4800, 1200)),
            (TZ_NEG, (1990, 10, 8), (5, 0, 0), Unambiguous(4800)),
            # inverted DST
            (TZ_INVERTED, (1990, 2, 9), (15, 0, 0), Unambiguous(7200)),
            (TZ_INVERTED, (1990, 3, 25), (1, 20, 0), Fold(7200, 4800)),
            (TZ_INVERTED, (1990, 3, 25), (2, 0, 0), Unambiguous(4800)),
            (TZ_INVERTED, (1990, 10, 8), (4, 0, 0), Gap(7200, 4800)),
            (TZ_INVERTED, (1990, 10, 8), (4, 40, 0), Unambiguous(7200)),
        ],
    )
    def test_ambiguity_for_local(self, tz: TzStr, ymd, hms, expected):
        local = epoch_secs(*ymd, *hms)
        assert tz.ambiguity_for_local(local) == expected

        # the inverse operation agrees, except in gaps
        if isinstance(expected, Unambiguous):
            assert tz.offset_for_instant(local - expected.offset) == (
                expected.offset
            )
        elif isinstance(expected, Fold):
            for offset in (expected.before, expected.after):
                assert tz.offset_for_instant(local - offset) == offset


class TestTransitions:

    AMS = TzStr.parse("CET-1CEST,M3.5.0,M10.5.0/3")

    def test_next_and_previous(self):
        summer = epoch_secs(2023, 7, 1)
        assert self.AMS.next_transition(summer) == epoch_secs(2023, 10, 29, 1)
        assert self.AMS.prev_transition(summer) == epoch_secs(2023, 3, 26, 1)

    def test_strictly_after(self):
        t = epoch_secs(2023, 3, 26, 1)
        assert self.AMS.next_transition(t) == epoch_secs(2023, 10, 29, 1)
        assert self.AMS.prev_transition(t) == epoch_secs(2022, 10, 30, 1)

    def test_names(self):
        assert self.AMS.name_for_instant(epoch_secs(2023, 7, 1)) == "CEST"
        assert self.AMS.name_for_instant(epoch_secs(2023, 1, 1)) == "CET"
