import logging
import threading
from copy import copy, deepcopy

import pytest

from chronofield import (
    BUDDHIST,
    COPTIC,
    ISO,
    LEAP_YEAR_INDIAN,
    UTC,
    Chronology,
    DateTimeFieldType,
    DurationFieldType,
    FieldRangeError,
    MissingArgumentError,
    RepeatedTime,
    SkippedTime,
    TimeZone,
    islamic,
)

from .common import HOUR, utc_millis

F = DateTimeFieldType
D = DurationFieldType


class TestOf:

    def test_defaults(self):
        chrono = Chronology.of()
        assert chrono.calendar is ISO
        assert chrono.zone is UTC
        assert Chronology.of(ISO, UTC) is chrono

    def test_zone_by_key(self):
        chrono = Chronology.of(COPTIC, "Africa/Cairo")
        assert chrono is Chronology.of(COPTIC, TimeZone.of("Africa/Cairo"))
        assert chrono.zone.key == "Africa/Cairo"

    def test_equal_calendars_share_instance(self):
        assert Chronology.of(islamic(LEAP_YEAR_INDIAN)) is Chronology.of(
            islamic(LEAP_YEAR_INDIAN)
        )

    def test_missing(self):
        with pytest.raises(MissingArgumentError):
            Chronology.of(None)  # type: ignore[arg-type]
        with pytest.raises(MissingArgumentError):
            Chronology.of(ISO, None)  # type: ignore[arg-type]
        assert issubclass(MissingArgumentError, TypeError)

    def test_registration_logged(self, caplog):
        zone = TimeZone.fixed(7 * HOUR + 15 * 60_000)
        with caplog.at_level(logging.DEBUG, logger="chronofield"):
            Chronology.of(BUDDHIST, zone)
            Chronology.of(BUDDHIST, zone)
        assert [r.getMessage() for r in caplog.records] == [
            "Registered chronology Chronology(Buddhist, +07:15)"
        ]

    def test_concurrent_lookups(self):
        zone = TimeZone.fixed(-(9 * HOUR + 30 * 60_000))
        results = []

        def lookup():
            results.append(Chronology.of(COPTIC, zone))

        threads = [threading.Thread(target=lookup) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(results) == 20
        assert all(r is results[0] for r in results)

    def test_with_zone(self):
        coptic = Chronology.of(COPTIC)
        cairo = coptic.with_zone("Africa/Cairo")
        assert cairo is Chronology.of(COPTIC, "Africa/Cairo")
        assert cairo.with_utc() is coptic
        assert cairo.with_zone(UTC) is coptic


class TestFields:

    def test_field_lookup(self):
        chrono = Chronology.of()
        year = chrono.field(F.YEAR)
        assert year.type is F.YEAR
        assert year.chronology is chrono
        assert chrono.field(F.YEAR) is year
        assert chrono.duration_field(D.DAYS).type is D.DAYS

    def test_missing_type(self):
        chrono = Chronology.of()
        with pytest.raises(MissingArgumentError):
            chrono.field(None)  # type: ignore[arg-type]
        with pytest.raises(MissingArgumentError):
            chrono.duration_field(None)  # type: ignore[arg-type]

    def test_get(self):
        t = utc_millis(2005, 7, 5, 14)
        assert Chronology.of().get(t, F.HOUR_OF_DAY) == 14
        assert Chronology.of(ISO, "Asia/Kolkata").get(t, F.HOUR_OF_DAY) == 19


class TestInstantOf:

    def test_utc(self):
        chrono = Chronology.of()
        assert chrono.instant_of(2005, 7, 5) == 1120521600000
        assert chrono.instant_of(2005, 7, 5, 14, 30, 15, 123) == utc_millis(
            2005, 7, 5, 14, 30, 15, 123
        )
        assert chrono.instant_of_day(2005, 7, 5, 3 * HOUR) == utc_millis(
            2005, 7, 5, 3
        )

    def test_other_calendar(self):
        coptic = Chronology.of(COPTIC)
        assert coptic.instant_of(1720, 1, 1) == utc_millis(2003, 9, 12)

    def test_zone(self):
        ams = Chronology.of(ISO, "Europe/Amsterdam")
        assert ams.instant_of(2005, 7, 5, 12) == utc_millis(2005, 7, 5, 10)
        assert ams.instant_of(2005, 1, 5, 12) == utc_millis(2005, 1, 5, 11)

    def test_gap(self):
        ams = Chronology.of(ISO, "Europe/Amsterdam")
        args = (2023, 3, 26, 2, 30)
        assert ams.instant_of(*args) == utc_millis(2023, 3, 26, 1, 30)
        assert ams.instant_of(*args, disambiguate="later") == utc_millis(
            2023, 3, 26, 1, 30
        )
        assert ams.instant_of(*args, disambiguate="earlier") == utc_millis(
            2023, 3, 26, 0, 30
        )
        with pytest.raises(SkippedTime, match="2023-03-26T02:30"):
            ams.instant_of(*args, disambiguate="raise")

    def test_fold(self):
        ams = Chronology.of(ISO, "Europe/Amsterdam")
        args = (2023, 10, 29, 2, 30)
        assert ams.instant_of(*args) == utc_millis(2023, 10, 29, 0, 30)
        assert ams.instant_of(*args, disambiguate="later") == utc_millis(
            2023, 10, 29, 1, 30
        )
        with pytest.raises(RepeatedTime, match="Europe/Amsterdam"):
            ams.instant_of(*args, disambiguate="raise")

    @pytest.mark.parametrize(
        "args",
        [
            (2005, 13, 1),
            (2005, 2, 29),
            (2005, 7, 5, 24),
            (2005, 7, 5, 12, 60),
            (2005, 7, 5, 12, 0, 60),
            (2005, 7, 5, 12, 0, 0, 1000),
            (2005, 7, 5, -1),
        ],
    )
    def test_invalid(self, args):
        with pytest.raises(FieldRangeError):
            Chronology.of().instant_of(*args)

    def test_no_year_zero(self):
        with pytest.raises(FieldRangeError, match="no year 0"):
            Chronology.of(COPTIC).instant_of(0, 1, 1)


class TestLocal:

    def test_to_local(self):
        ams = Chronology.of(ISO, "Europe/Amsterdam")
        t = utc_millis(2005, 7, 5)
        assert ams.to_local(t) == t + 2 * HOUR
        fixed = Chronology.of(ISO, TimeZone.fixed(-3 * HOUR))
        assert fixed.to_local(t) == t - 3 * HOUR
        assert fixed.from_local(t - 3 * HOUR, forward=True) == t

    def test_from_local_keeps_offset(self):
        ams = Chronology.of(ISO, "Europe/Amsterdam")
        local = utc_millis(2023, 10, 29, 2, 30)
        later = utc_millis(2023, 10, 29, 1, 30)
        assert ams.from_local(local, forward=True) == later - HOUR
        assert ams.from_local(local, forward=False) == later
        assert ams.from_local(local, original=later, forward=True) == later


class TestProtocol:

    def test_equality(self):
        a = Chronology.of(COPTIC, "Africa/Cairo")
        assert a == Chronology.of(COPTIC, "Africa/Cairo")
        assert a != Chronology.of(COPTIC)
        assert a != Chronology.of(ISO, "Africa/Cairo")
        assert hash(a) == hash(Chronology.of(COPTIC, "Africa/Cairo"))

    def test_repr(self):
        assert (
            repr(Chronology.of(COPTIC, "Africa/Cairo"))
            == "Chronology(Coptic, Africa/Cairo)"
        )
        assert repr(Chronology.of()) == "Chronology(ISO, UTC)"

    def test_copy(self):
        chrono = Chronology.of(COPTIC)
        assert copy(chrono) is chrono
        assert deepcopy(chrono) is chrono

    def test_immutable(self):
        with pytest.raises(AttributeError):
            Chronology.of().foo = 1  # type: ignore[attr-defined]
