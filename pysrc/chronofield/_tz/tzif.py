"""The zone engine: offsets, transitions and local time resolution.

A zone is a table of :class:`ZoneRecord` sorted by start instant, optionally
followed by a POSIX TZ rule that applies after the last record.
Tables are read from TZif files (the format of the IANA database),
built from records, or left empty for zones defined by a rule alone.

All instants and offsets are in milliseconds.
"""

from __future__ import annotations

import re
import struct
from io import BytesIO
from typing import IO, Iterable, Optional, Sequence

from .._common import MAX_MILLIS, MAX_OFFSET_MILLIS, MIN_MILLIS, final
from .._math import ceil_div, check_long, safe_add
from .common import (
    Ambiguity,
    Disambiguate,
    Fold,
    Gap,
    Unambiguous,
    ZoneRecord,
    scale_ambiguity,
)
from .posix import TzStr

EpochSecs = int
Millis = int
Offset = int
OffsetDelta = int

# Transition times in TZif files are clamped so they fit the timeline
EPOCH_SECS_MIN = ceil_div(MIN_MILLIS, 1000)
EPOCH_SECS_MAX = MAX_MILLIS // 1000


@final
class TimeZone:
    """A time zone: the UTC offset in effect at every instant.

    Zones are immutable and compare equal by value, regardless of how
    they were loaded.

    >>> ams = TimeZone.of("Europe/Amsterdam")
    >>> ams.offset(1_593_561_600_000)  # 2020-07-01T00:00Z
    7200000
    >>> TimeZone.fixed(-3 * 3_600_000)
    TimeZone('-03:00')
    """

    __slots__ = (
        "__weakref__",
        "key",
        "_records",
        "_offsets_by_local",
        "_end",
        "_hash",
    )

    # The IANA tz ID (e.g. "Europe/Amsterdam") or the ID of a fixed offset.
    # None for anonymous zones, such as those parsed from a POSIX TZ string.
    key: Optional[str]

    # Read as "FROM instant X onwards, the offsets and name of the record
    # apply".
    # The first record applies to all instants before the second.
    _records: tuple[ZoneRecord, ...]

    # For local -> UTC, the transition may be ambiguous and therefore
    # requires extra information. Read Sequence[(X, (Y, Z))] as "UNTIL local
    # time X the offset is Y. At this point it shifts by Z".
    _offsets_by_local: tuple[tuple[Millis, tuple[Offset, OffsetDelta]], ...]

    # Invariant: if the rule isn't given, there is at least one record.
    _end: Optional[TzStr]

    def __init__(
        self,
        key: Optional[str],
        _records: tuple[ZoneRecord, ...],
        _end: Optional[TzStr] = None,
    ):
        self.key = key
        self._records = _records
        self._offsets_by_local = tuple(_local_transitions(_records))
        self._end = _end
        self._hash = hash((key, _records, _end))

    # --- factories -----------------------------------------------------------

    @classmethod
    def utc(cls) -> TimeZone:
        return UTC

    @classmethod
    def fixed(cls, offset: int, /) -> TimeZone:
        """A zone with a constant offset in milliseconds.
        Its key is the offset in ``±HH:MM`` form."""
        _check_offset(offset)
        if offset == 0:
            return UTC
        key = format_offset(offset)
        return cls(key, (ZoneRecord(MIN_MILLIS, offset, offset, key),))

    @classmethod
    def for_offset_hours(cls, hours: int, minutes: int = 0) -> TimeZone:
        """A fixed zone from an offset in hours and minutes.

        The minutes take the sign of the hours. They may only be negative
        if the hours are zero.
        """
        if not -23 <= hours <= 23:
            raise ValueError(f"Hours out of range: {hours}")
        if not -59 <= minutes <= 59:
            raise ValueError(f"Minutes out of range: {minutes}")
        if hours > 0 and minutes < 0:
            raise ValueError("Positive hours must not have negative minutes")
        total = hours * 60 + (-abs(minutes) if hours < 0 else minutes)
        return cls.fixed(total * 60_000)

    @classmethod
    def of(cls, key: str, /) -> TimeZone:
        """Look up a zone by its IANA ID, or a fixed offset such as ``+05:30``.

        Zones are loaded from ``TZPATH`` or the ``tzdata`` package and cached.
        Raises :class:`TimeZoneNotFoundError` for unknown IDs.
        """
        if key == "UTC":
            return UTC
        if key[:1] in "+-" and (offset := parse_offset_id(key)) is not None:
            return cls.fixed(offset)

        from .store import get_tz

        return get_tz(key)

    @classmethod
    def system(cls) -> TimeZone:
        """The zone of the system, as determined by ``TZ`` or the OS"""
        from .store import get_system_tz

        return get_system_tz()

    @classmethod
    def parse_posix(cls, s: str, /) -> TimeZone:
        """Create a TimeZone from a POSIX TZ string"""
        return cls(key=None, _records=(), _end=TzStr.parse(s))

    @classmethod
    def parse_tzif(cls, data: bytes, key: Optional[str] = None) -> TimeZone:
        """Create a TimeZone from TZif file data"""
        read = BytesIO(data)
        header = _parse_header(read)
        return _parse_content(header, read, key)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Sequence],
        *,
        key: Optional[str] = None,
        fixed: bool = False,
    ) -> TimeZone:
        """Create a TimeZone from a table of records.

        The records must start at strictly increasing instants. The first
        record applies to all instants before the second. A ``fixed`` zone
        consists of exactly one record.
        """
        table = tuple(ZoneRecord(*r) for r in records)
        if not table:
            raise ValueError("A zone needs at least one record")
        if fixed and len(table) != 1:
            raise ValueError("A fixed zone has exactly one record")
        for rec in table:
            check_long(rec.start)
            _check_offset(rec.total_offset)
            _check_offset(rec.standard_offset)
        for prev, rec in zip(table, table[1:]):
            if rec.start <= prev.start:
                raise ValueError(
                    "Records must start at strictly increasing instants"
                )
        return cls(key, (table[0]._replace(start=MIN_MILLIS), *table[1:]))

    # --- queries by instant --------------------------------------------------

    def _record_for(self, t: Millis) -> Optional[ZoneRecord]:
        """The record in effect, or None if the recurring rule applies"""
        idx = bisect(self._records, t)
        if idx is not None:
            return self._records[max(0, idx - 1)]
        # If the time is after the last transition, use the POSIX TZ string
        if self._end is not None:
            return None
        # If there's no POSIX TZ string, use the last offset.
        # There's not much else we can do.
        return self._records[-1]

    def offset(self, t: Millis, /) -> Offset:
        """The total UTC offset in effect at the given instant"""
        record = self._record_for(t)
        if record is None:
            assert self._end is not None
            return self._end.offset_for_instant(t // 1000) * 1000
        return record.total_offset

    def standard_offset(self, t: Millis, /) -> Offset:
        """The UTC offset at the given instant, ignoring daylight saving"""
        record = self._record_for(t)
        if record is None:
            assert self._end is not None
            return self._end.std * 1000
        return record.standard_offset

    def is_standard_offset(self, t: Millis, /) -> bool:
        return self.offset(t) == self.standard_offset(t)

    def name_key(self, t: Millis, /) -> Optional[str]:
        """The abbreviation in effect (e.g. ``"CEST"``), if known"""
        record = self._record_for(t)
        if record is None:
            assert self._end is not None
            return self._end.name_for_instant(t // 1000) or None
        return record.name_key

    def next_transition(self, t: Millis, /) -> Millis:
        """The first transition strictly after the given instant.
        Returns the instant itself if there is none."""
        idx = bisect(self._records, t)
        if idx is not None:
            return self._records[idx].start
        if self._end is not None:
            nxt = self._end.next_transition(t // 1000)
            if nxt is not None and nxt * 1000 <= MAX_MILLIS:
                return nxt * 1000
        return t

    def previous_transition(self, t: Millis, /) -> Millis:
        """The last transition strictly before the given instant.
        Returns the instant itself if there is none."""
        records = self._records
        if self._end is not None and (not records or t > records[-1].start):
            prev = self._end.prev_transition(ceil_div(t, 1000))
            if prev is not None:
                prev_ms = prev * 1000
                if prev_ms >= MIN_MILLIS and (
                    not records or prev_ms > records[-1].start
                ):
                    return prev_ms
        # The first record has no transition at its start
        idx = bisect(records, t - 1)
        idx = len(records) if idx is None else idx
        return records[idx - 1].start if idx > 1 else t

    def is_fixed(self) -> bool:
        """Whether the offset is the same at every instant"""
        if self._end is not None and self._end.dst is not None:
            return False
        return len(self._records) <= 1

    def records(self) -> tuple[ZoneRecord, ...]:
        """The table of this zone. For instants after the last record, a
        recurring rule may apply instead."""
        return self._records

    # --- queries by local time -----------------------------------------------

    def ambiguity_for_local(self, t: Millis, /) -> Ambiguity:
        """Whether the given local time (in local epoch millis) is
        unambiguous, skipped (a gap) or repeated (a fold)."""
        idx = bisect(self._offsets_by_local, t)
        if idx is not None:
            next_transition, (offset, change) = self._offsets_by_local[idx]
            # If we've landed in an ambiguous region, determine its size
            ambiguity = 0 if t < (next_transition - abs(change)) else change

            if ambiguity == 0:
                return Unambiguous(offset)
            elif ambiguity < 0:
                return Fold(offset, offset + ambiguity)
            else:  # ambiguity > 0
                return Gap(offset + ambiguity, offset)

        if self._end is not None:
            return scale_ambiguity(
                self._end.ambiguity_for_local(t // 1000), 1000
            )
        return Unambiguous(self._records[-1].total_offset)

    def is_local_gap(self, t: Millis, /) -> bool:
        """Whether the local time is skipped, e.g. when DST starts"""
        return isinstance(self.ambiguity_for_local(t), Gap)

    def offset_from_local(self, t: Millis, /) -> Offset:
        """The offset to subtract from a local time to obtain UTC.

        In an overlap, this gives the earlier instant. In a gap, it gives
        the offset after the transition.
        """
        ambiguity = self.ambiguity_for_local(t)
        if isinstance(ambiguity, Unambiguous):
            return ambiguity.offset
        return ambiguity.before

    def convert_utc_to_local(self, t: Millis, /) -> Millis:
        return safe_add(t, self.offset(t))

    def convert_local_to_utc(
        self, t: Millis, /, *, disambiguate: Disambiguate = "compatible"
    ) -> Millis:
        """Convert local millis to an instant.

        ``disambiguate`` decides what happens in gaps and overlaps, like
        the ``fold`` handling of the standard library: ``"compatible"``
        picks the earlier occurrence in an overlap and shifts forward out
        of a gap, ``"earlier"``/``"later"`` pick the respective instant and
        ``"raise"`` raises :class:`SkippedTime` or :class:`RepeatedTime`.
        """
        from .ambiguity import resolve_ambiguity

        return resolve_ambiguity(self, t, disambiguate)

    def adjust_offset(self, t: Millis, earlier_or_later: bool, /) -> Millis:
        """Within an overlap, move to the earlier (``False``) or the later
        (``True``) occurrence of the same local time."""
        local = self.convert_utc_to_local(t)
        ambiguity = self.ambiguity_for_local(local)
        if isinstance(ambiguity, Fold):
            if earlier_or_later:
                return local - ambiguity.after
            return local - ambiguity.before
        return t

    def millis_keep_local(self, new_zone: TimeZone, t: Millis, /) -> Millis:
        """The instant in ``new_zone`` with the local time of ``t`` here"""
        if new_zone == self:
            return t
        from .ambiguity import resolve_local

        return resolve_local(
            new_zone,
            self.convert_utc_to_local(t),
            prefer=self.offset(t),
            forward=True,
        )

    # NOTE: this equality check needs to be fast, since it's used in
    # some routines to check if the timezone is indeed changing.
    def __eq__(self, other: object) -> bool:
        # We first check for identity, as that's the cheapest check
        # and makes the common case fast.
        if self is other:
            return True
        # Identity inequality doesn't rule out equality, as two different
        # instances may represent the same timezone due to cache clearing.
        elif type(other) is TimeZone:
            return (
                # We compare the key first, as it's the cheapest to compare,
                # and most likely to differ
                self.key == other.key
                and self._records == other._records
                and self._offsets_by_local == other._offsets_by_local
                and self._end == other._end
            )
        return NotImplemented

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        return f"TimeZone({self.key!r})"

    def __str__(self) -> str:
        return self.key or "<anonymous>"


def _check_offset(offset: int) -> None:
    if abs(offset) > MAX_OFFSET_MILLIS:
        raise ValueError(f"Offset out of range: {offset}ms")


def format_offset(offset: Millis) -> str:
    """Format an offset as ``±HH:MM``, adding seconds and millis if needed"""
    sign = "-" if offset < 0 else "+"
    secs, millis = divmod(abs(offset), 1000)
    hrs, secs = divmod(secs, 3600)
    mins, secs = divmod(secs, 60)
    result = f"{sign}{hrs:02}:{mins:02}"
    if secs or millis:
        result += f":{secs:02}"
        if millis:
            result += f".{millis:03}"
    return result


_OFFSET_ID_RE = re.compile(
    r"([+-])(\d{2}):(\d{2})(?::(\d{2})(?:\.(\d{3}))?)?", re.ASCII
)


def parse_offset_id(s: str) -> Optional[Millis]:
    """Parse an offset in the form produced by :func:`format_offset`"""
    if (match := _OFFSET_ID_RE.fullmatch(s)) is None:
        return None
    sign, hrs, mins, secs, millis = match.groups()
    if int(mins) > 59 or int(secs or 0) > 59:
        return None
    total = (
        int(hrs) * 3_600_000
        + int(mins) * 60_000
        + int(secs or 0) * 1000
        + int(millis or 0)
    )
    if total > MAX_OFFSET_MILLIS:
        return None
    return -total if sign == "-" else total


def bisect(
    arr: Sequence[tuple[Millis, object]], x: Millis
) -> Optional[int]:
    """Bisect the array of (time, value) pairs to find the INDEX
    at the given time.
    Return None if after the last entry.
    """
    size = len(arr)
    left = 0
    right = size

    while left < right:
        mid = left + size // 2

        if x >= arr[mid][0]:
            left = mid + 1
        else:
            right = mid
        size = right - left

    return left if left != len(arr) else None


def clamp_epoch_secs(value: int) -> EpochSecs:
    """Clamp epoch seconds to valid range"""
    return max(EPOCH_SECS_MIN, min(EPOCH_SECS_MAX, value))


class Header:
    """TZif file header"""

    __slots__ = (
        "version",
        "isutcnt",
        "isstdcnt",
        "leapcnt",
        "timecnt",
        "typecnt",
        "charcnt",
    )

    version: int
    isutcnt: int
    isstdcnt: int
    leapcnt: int
    timecnt: int
    typecnt: int
    charcnt: int

    def __init__(
        self,
        version: int,
        isutcnt: int,
        isstdcnt: int,
        leapcnt: int,
        timecnt: int,
        typecnt: int,
        charcnt: int,
    ):
        self.version = version
        self.isutcnt = isutcnt
        self.isstdcnt = isstdcnt
        self.leapcnt = leapcnt
        self.timecnt = timecnt
        self.typecnt = typecnt
        self.charcnt = charcnt


class LocalTimeType:
    """A ``ttinfo`` entry: an offset, a DST flag and an abbreviation"""

    __slots__ = ("utoff", "isdst", "name")

    utoff: EpochSecs
    isdst: bool
    name: str

    def __init__(self, utoff: EpochSecs, isdst: bool, name: str):
        self.utoff = utoff
        self.isdst = isdst
        self.name = name


def _parse_header(data: IO[bytes]) -> Header:
    """Parse TZif header and return header with new offset"""
    # Check magic bytes
    if data.read(4) != b"TZif":
        raise ValueError("Invalid header value")

    # Parse version
    version_byte = data.read(1)
    if version_byte == b"\x00":
        version = 1
    elif version_byte.isdigit():
        version = int(version_byte)
    else:
        raise ValueError("Invalid header value")

    data.read(15)  # Skip reserved bytes

    counts = data.read(24)
    if len(counts) != 24:
        raise ValueError("Invalid header value")
    return Header(version, *struct.unpack(">6i", counts))


def _read_exact(data: IO[bytes], size: int) -> bytes:
    chunk = data.read(size)
    if len(chunk) != size:
        raise ValueError("Unexpected end of TZif data")
    return chunk


def _parse_content(
    header: Header, data: IO[bytes], key: Optional[str]
) -> TimeZone:
    """Parse the content section of a TZif file"""
    # Handle version 2+ files
    if header.version >= 2:
        # Skip v1 data section
        _read_exact(
            data,
            header.timecnt * 5
            + header.typecnt * 6
            + header.charcnt
            + header.leapcnt * 8
            + header.isstdcnt
            + header.isutcnt,
        )
        # Parse second header
        header = _parse_header(data)
        # Parse v2 transitions (64-bit)
        transition_times = _parse_v2_transitions(header, data)
    else:
        # Parse v1 transitions (32-bit)
        transition_times = _parse_v1_transitions(header, data)

    type_indices = list(_read_exact(data, header.timecnt))
    types = _parse_types(header, data)
    if any(idx >= len(types) for idx in type_indices):
        raise ValueError("Invalid local time type index")

    # Parse POSIX TZ string for v2+ files
    end = None
    if header.version >= 2:
        # Skip unused metadata and newline before tz string
        data.read(header.isutcnt + header.isstdcnt + header.leapcnt * 12 + 1)
        # Find the TZ string (until newline or end of data)
        tz_string, *_ = data.read().split(b"\n", 1)

        if tz_string:
            end = TzStr.parse(tz_string.decode("ascii"))

    if end is not None and not transition_times:
        records: tuple[ZoneRecord, ...] = ()
    else:
        records = _load_records(transition_times, types, type_indices)

    return TimeZone(key=key, _records=records, _end=end)


def _parse_v2_transitions(
    header: Header, data: IO[bytes]
) -> Sequence[EpochSecs]:
    return list(
        map(
            clamp_epoch_secs,
            struct.unpack(
                f">{header.timecnt}q", _read_exact(data, 8 * header.timecnt)
            ),
        )
    )


def _parse_v1_transitions(
    header: Header, data: IO[bytes]
) -> Sequence[EpochSecs]:
    return struct.unpack(
        f">{header.timecnt}i", _read_exact(data, 4 * header.timecnt)
    )


def _parse_types(header: Header, data: IO[bytes]) -> list[LocalTimeType]:
    if header.typecnt == 0:
        raise ValueError("No local time types in TZif data")
    raw = _read_exact(data, 6 * header.typecnt)
    abbrs = _read_exact(data, header.charcnt)
    result = []
    for utoff, isdst, abbrind in struct.iter_unpack(">ibB", raw):
        if abs(utoff) >= 86_400:
            raise ValueError(f"Offset out of range: {utoff}s")
        end = abbrs.find(b"\0", abbrind)
        name = abbrs[abbrind : end if end >= 0 else None]
        result.append(LocalTimeType(utoff, bool(isdst), name.decode("ascii")))
    return result


def _standard_offsets(sequence: Sequence[LocalTimeType]) -> list[Offset]:
    """The standard offset for each entry of a sequence of types.

    TZif files only flag DST, so the standard offset of a DST period is
    taken from the closest non-DST period, preferring the one before it.
    """
    result: list[Optional[Offset]] = [None] * len(sequence)
    last_std: Optional[Offset] = None
    for i, ttype in enumerate(sequence):
        if not ttype.isdst:
            last_std = ttype.utoff
        result[i] = last_std
    next_std: Optional[Offset] = None
    for i in range(len(sequence) - 1, -1, -1):
        ttype = sequence[i]
        if not ttype.isdst:
            next_std = ttype.utoff
        if result[i] is None:
            result[i] = next_std
    return [
        ttype.utoff - 3600 if std is None else std
        for std, ttype in zip(result, sequence)
    ]


def _load_records(
    transition_times: Sequence[EpochSecs],
    types: Sequence[LocalTimeType],
    indices: Sequence[int],
) -> tuple[ZoneRecord, ...]:
    """Load the table of records from parsed data"""
    # The first type applies before the first transition
    starts = [MIN_MILLIS, *(t * 1000 for t in transition_times)]
    sequence = [types[0], *(types[i] for i in indices)]
    records: list[ZoneRecord] = []
    for start, ttype, std in zip(
        starts, sequence, _standard_offsets(sequence)
    ):
        # Transitions clamped to the same instant: the last one wins
        if records and start <= records[-1].start:
            records.pop()
        records.append(
            ZoneRecord(start, std * 1000, ttype.utoff * 1000, ttype.name)
        )
    return tuple(records)


# See the TimeZone class definition for explanation of these data structures
def _local_transitions(
    records: Sequence[ZoneRecord],
) -> Sequence[tuple[Millis, tuple[Offset, OffsetDelta]]]:
    result: list[tuple[Millis, tuple[Offset, OffsetDelta]]] = []
    for prev, rec in zip(records, records[1:]):
        # NOTE: we don't check for "impossible" gaps or folds
        local_time = rec.start + max(prev.total_offset, rec.total_offset)
        local_time = max(MIN_MILLIS, min(MAX_MILLIS, local_time))
        result.append(
            (
                local_time,
                (prev.total_offset, rec.total_offset - prev.total_offset),
            )
        )
    return result


UTC = TimeZone("UTC", (ZoneRecord(MIN_MILLIS, 0, 0, "UTC"),))
