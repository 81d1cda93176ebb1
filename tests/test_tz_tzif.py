import struct
from importlib.resources import files

import pytest

from chronofield._common import MIN_MILLIS
from chronofield._tz.common import Fold, Gap, Unambiguous, ZoneRecord
from chronofield._tz.posix import TzStr
from chronofield._tz.tzif import EPOCH_SECS_MIN, UTC, TimeZone, bisect

HOUR = 3_600_000


def make_tzif(
    transitions=(),
    types=((0, False, 0),),
    indices=(),
    names=b"UTC\0",
    footer=b"",
    version=b"2",
) -> bytes:
    """Build TZif data, with the same content in the v1 and v2 blocks"""
    counts = struct.pack(
        ">6i", 0, 0, 0, len(transitions), len(types), len(names)
    )
    header = b"TZif" + version + bytes(15) + counts
    ttinfo = b"".join(struct.pack(">ibB", *t) for t in types)
    tail = bytes(indices) + ttinfo + names
    # v1 data is 32-bit, so we clamp it like zic does
    v1_times = [max(-(2**31), min(2**31 - 1, t)) for t in transitions]
    v1 = struct.pack(f">{len(transitions)}i", *v1_times) + tail
    if version == b"\0":
        return header + v1
    v2 = struct.pack(f">{len(transitions)}q", *transitions) + tail
    return header + v1 + header + v2 + b"\n" + footer + b"\n"


class TestBasicParsing:

    @pytest.mark.parametrize(
        "data", [b"", b"TZi", b"this-is-not-tzif-file", b"TZifX" + bytes(60)]
    )
    def test_no_magic_header(self, data):
        with pytest.raises(ValueError, match="Invalid header value"):
            TimeZone.parse_tzif(data)

    def test_truncated(self):
        data = make_tzif(
            transitions=[1_000_000_000],
            types=[(3600, False, 0), (7200, True, 4)],
            indices=[1],
            names=b"AAA\0BBB\0",
        )
        with pytest.raises(ValueError, match="end of TZif"):
            TimeZone.parse_tzif(data[:60])

    def test_invalid_type_index(self):
        data = make_tzif(transitions=[1_000_000_000], indices=[3])
        with pytest.raises(ValueError, match="type index"):
            TimeZone.parse_tzif(data)

    def test_offset_out_of_range(self):
        data = make_tzif(types=[(86_400, False, 0)])
        with pytest.raises(ValueError, match="Offset out of range"):
            TimeZone.parse_tzif(data)

    def test_binary_search(self):
        arr = [(4, 10), (9, 20), (12, 30), (16, 40), (24, 50)]

        # middle of the array
        assert bisect(arr, 10) == 2
        assert bisect(arr, 12) == 3
        assert bisect(arr, 15) == 3
        assert bisect(arr, 16) == 4

        # end of the array
        assert bisect(arr, 24) is None
        assert bisect(arr, 30) is None

        # start of the array
        assert bisect(arr, -99) == 0
        assert bisect(arr, 3) == 0
        assert bisect(arr, 4) == 1

        # empty case
        assert bisect([], 25) is None


class TestSyntheticFiles:

    T = 1_000_000_000  # seconds
    DATA = dict(
        transitions=[T],
        types=[(3600, False, 0), (7200, True, 4)],
        indices=[1],
        names=b"AAA\0BBB\0",
    )

    @pytest.mark.parametrize("version", [b"\0", b"2", b"3"])
    def test_records(self, version):
        tz = TimeZone.parse_tzif(make_tzif(**self.DATA, version=version))
        assert tz.records() == (
            ZoneRecord(MIN_MILLIS, HOUR, HOUR, "AAA"),
            ZoneRecord(self.T * 1000, HOUR, 2 * HOUR, "BBB"),
        )
        assert tz._end is None
        assert not tz.is_fixed()

    def test_offsets(self):
        tz = TimeZone.parse_tzif(make_tzif(**self.DATA))
        t = self.T * 1000
        assert tz.offset(t - 1) == HOUR
        assert tz.offset(t) == 2 * HOUR
        assert tz.standard_offset(t) == HOUR
        assert tz.is_standard_offset(t - 1)
        assert not tz.is_standard_offset(t)
        assert tz.name_key(t - 1) == "AAA"
        assert tz.name_key(t) == "BBB"
        # no rule: the last record applies indefinitely
        assert tz.offset(t * 4) == 2 * HOUR

    def test_transitions(self):
        tz = TimeZone.parse_tzif(make_tzif(**self.DATA))
        t = self.T * 1000
        assert tz.next_transition(0) == t
        assert tz.next_transition(t) == t
        assert tz.next_transition(t + 5) == t + 5
        assert tz.previous_transition(t + 1) == t
        assert tz.previous_transition(t) == t
        assert tz.previous_transition(0) == 0

    @pytest.mark.parametrize(
        "local, expected",
        [
            (-1, Unambiguous(HOUR)),
            (HOUR - 1, Unambiguous(HOUR)),
            (HOUR, Gap(2 * HOUR, HOUR)),
            (2 * HOUR - 1, Gap(2 * HOUR, HOUR)),
            (2 * HOUR, Unambiguous(2 * HOUR)),
        ],
    )
    def test_gap(self, local, expected):
        tz = TimeZone.parse_tzif(make_tzif(**self.DATA))
        assert tz.ambiguity_for_local(self.T * 1000 + local) == expected

    @pytest.mark.parametrize(
        "local, expected",
        [
            (HOUR - 1, Unambiguous(2 * HOUR)),
            (HOUR, Fold(2 * HOUR, HOUR)),
            (2 * HOUR - 1, Fold(2 * HOUR, HOUR)),
            (2 * HOUR, Unambiguous(HOUR)),
        ],
    )
    def test_fold(self, local, expected):
        data = make_tzif(
            transitions=[self.T],
            types=[(7200, True, 0), (3600, False, 4)],
            indices=[1],
            names=b"BBB\0AAA\0",
        )
        tz = TimeZone.parse_tzif(data)
        assert tz.ambiguity_for_local(self.T * 1000 + local) == expected

    def test_rule_only(self):
        tz = TimeZone.parse_tzif(
            make_tzif(footer=b"CET-1CEST,M3.5.0,M10.5.0/3"), key="X/Y"
        )
        assert tz.key == "X/Y"
        assert tz.records() == ()
        assert tz._end == TzStr.parse("CET-1CEST,M3.5.0,M10.5.0/3")
        # 2023-07-01T00:00Z and 2023-01-01T00:00Z
        assert tz.offset(1_688_169_600_000) == 2 * HOUR
        assert tz.offset(1_672_531_200_000) == HOUR
        assert tz.name_key(1_688_169_600_000) == "CEST"
        assert not tz.is_fixed()

    def test_fixed_rule(self):
        tz = TimeZone.parse_tzif(make_tzif(footer=b"<+13>-13"))
        assert tz.is_fixed()
        assert tz.offset(0) == 13 * HOUR
        assert tz.ambiguity_for_local(0) == Unambiguous(13 * HOUR)

    def test_clamped_transitions(self):
        data = make_tzif(
            transitions=[-(2**62), self.T],
            types=[(3600, False, 0), (7200, True, 4)],
            indices=[0, 1],
            names=b"AAA\0BBB\0",
        )
        tz = TimeZone.parse_tzif(data)
        assert tz.records()[1].start == EPOCH_SECS_MIN * 1000
        assert tz.offset(MIN_MILLIS) == HOUR


def _tzdata(key: str) -> bytes:
    return files("tzdata.zoneinfo").joinpath(key).read_bytes()


AMS = TimeZone.parse_tzif(_tzdata("Europe/Amsterdam"), "Europe/Amsterdam")


class TestAmsterdam:

    @pytest.mark.parametrize(
        "t, expected",
        [
            # fold
            (1698541199, 7200),
            (1698541200, 3600),
            # gap
            (1743296399, 3600),
            (1743296400, 7200),
            # far future, possibly from the recurring rule
            (2216249999, 3600),
            (2216250000, 7200),
            (2645053199, 7200),
            (2645053200, 3600),
        ],
    )
    def test_offset(self, t, expected):
        assert AMS.offset(t * 1000) == expected * 1000

    @pytest.mark.parametrize(
        "t, expected",
        [
            (700387500, Unambiguous(3600)),
            (701834700, Gap(7200, 3600)),
            (715302300, Unambiguous(7200)),
            (2216249999 + 3600, Unambiguous(3600)),
            (2216250000 + 3600, Gap(7200, 3600)),
            (2216250000 + 7200, Unambiguous(7200)),
            (2645056800, Fold(7200, 3600)),
            (2645056940, Fold(7200, 3600)),
            (2645056800 + 3600, Unambiguous(3600)),
        ],
    )
    def test_ambiguity_for_local(self, t, expected):
        actual = AMS.ambiguity_for_local(t * 1000)
        if isinstance(expected, Unambiguous):
            assert actual == Unambiguous(expected.offset * 1000)
        else:
            assert actual == type(expected)(
                expected.before * 1000, expected.after * 1000
            )


def test_smoke():
    """Every zone in the tzdata package parses"""
    zones = files("tzdata").joinpath("zones").read_text().split()
    assert len(zones) > 300
    for key in zones:
        assert TimeZone.parse_tzif(_tzdata(key), key).key == key


def test_utc_singleton():
    """The UTC zone is available once the module has been imported"""
    assert TimeZone.of("UTC") is UTC
    assert TimeZone.utc() is UTC
    assert TimeZone.fixed(0) is UTC
    assert UTC.key == "UTC"
    assert UTC.offset(MIN_MILLIS) == 0
    assert UTC.offset(0) == 0
