from __future__ import annotations

import logging
import threading
from typing import Optional, Union

from ._calendars import ISO, CalendarSystem
from ._common import (
    MILLIS_PER_DAY,
    MILLIS_PER_HOUR,
    MILLIS_PER_MINUTE,
    MILLIS_PER_SECOND,
    FieldRangeError,
    MissingArgumentError,
    UnsupportedFieldError,
    _ImmutableBase,
    final,
)
from ._fields import DateTimeField, DurationField, check_not_skipped
from ._math import check_long
from ._tz import UTC, Disambiguate, TimeZone
from ._tz.ambiguity import resolve_ambiguity, resolve_local
from ._types import DateTimeFieldType, DurationFieldType

__all__ = ["Chronology"]

_LOGGER = logging.getLogger(__name__)

_F = DateTimeFieldType

# Canonical chronologies. Lookups are lock-free, insertion is locked
# so that only one instance per key is ever handed out.
_registry: dict[tuple[CalendarSystem, TimeZone], Chronology] = {}
_registry_lock = threading.Lock()


@final
class Chronology(_ImmutableBase):
    """A calendar system bound to a time zone.

    Chronologies are the source of all fields and duration fields.
    Obtain them with :meth:`of`, which returns the same instance for equal
    calendars and zones.

    >>> from chronofield import COPTIC, ISO, UTC, Chronology
    >>> Chronology.of(COPTIC, "Africa/Cairo")
    Chronology(Coptic, Africa/Cairo)
    >>> Chronology.of() is Chronology.of(ISO, UTC)
    True
    """

    __slots__ = (
        "calendar",
        "zone",
        "_fixed_offset",
        "_fields",
        "_duration_fields",
    )

    calendar: CalendarSystem
    zone: TimeZone
    # The offset of the zone, if it never changes
    _fixed_offset: Optional[int]

    def __init__(self, calendar: CalendarSystem, zone: TimeZone):
        self.calendar = calendar
        self.zone = zone
        self._fixed_offset = zone.offset(0) if zone.is_fixed() else None
        self._duration_fields = {
            t: DurationField(self, t) for t in DurationFieldType
        }
        self._fields = {t: DateTimeField(self, t) for t in DateTimeFieldType}

    @classmethod
    def of(
        cls,
        calendar: CalendarSystem = ISO,
        zone: Union[TimeZone, str] = UTC,
    ) -> Chronology:
        """The canonical chronology for a calendar and a zone.
        The zone may be given by its ID."""
        if calendar is None or zone is None:
            raise MissingArgumentError("calendar and zone are required")
        if isinstance(zone, str):
            zone = TimeZone.of(zone)
        key = (calendar, zone)
        try:
            return _registry[key]
        except KeyError:
            pass
        with _registry_lock:
            chrono = _registry.get(key)
            if chrono is None:
                chrono = _registry[key] = cls(calendar, zone)
                _LOGGER.debug("Registered chronology %s", chrono)
        return chrono

    def with_zone(self, zone: Union[TimeZone, str]) -> Chronology:
        return Chronology.of(self.calendar, zone)

    def with_utc(self) -> Chronology:
        return Chronology.of(self.calendar, UTC)

    def field(self, field_type: DateTimeFieldType) -> DateTimeField:
        if field_type is None:
            raise MissingArgumentError("field type is required")
        try:
            return self._fields[field_type]
        except KeyError:
            raise UnsupportedFieldError(f"Unknown field type: {field_type!r}")

    def duration_field(
        self, duration_type: DurationFieldType
    ) -> DurationField:
        if duration_type is None:
            raise MissingArgumentError("duration type is required")
        try:
            return self._duration_fields[duration_type]
        except KeyError:
            raise UnsupportedFieldError(
                f"Unknown duration type: {duration_type!r}"
            )

    def get(self, instant: int, field_type: DateTimeFieldType) -> int:
        """The value of a field at the given instant"""
        return self.field(field_type).get(instant)

    # --- local time ----------------------------------------------------------

    def to_local(self, instant: int) -> int:
        """The local time of the instant in this chronology's zone"""
        if self._fixed_offset is not None:
            return check_long(instant + self._fixed_offset)
        return self.zone.convert_utc_to_local(instant)

    def from_local(
        self, local: int, *, original: Optional[int] = None, forward: bool
    ) -> int:
        """Convert a local time back to an instant after a change.

        The offset of the ``original`` instant is kept if still valid.
        Otherwise a skipped time moves past the gap, and a repeated time
        resolves to the occurrence first reached in the direction of
        travel.
        """
        if self._fixed_offset is not None:
            return check_long(local - self._fixed_offset)
        prefer = None if original is None else self.zone.offset(original)
        return resolve_local(self.zone, local, prefer=prefer, forward=forward)

    def instant_of(
        self,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        millis: int = 0,
        *,
        disambiguate: Disambiguate = "compatible",
    ) -> int:
        """The instant of a local date and time in this chronology.

        >>> Chronology.of().instant_of(2005, 7, 5)
        1120521600000
        """
        for field_type, value, upper in (
            (_F.HOUR_OF_DAY, hour, 23),
            (_F.MINUTE_OF_HOUR, minute, 59),
            (_F.SECOND_OF_MINUTE, second, 59),
            (_F.MILLIS_OF_SECOND, millis, 999),
        ):
            if not 0 <= value <= upper:
                raise FieldRangeError(field_type, value, 0, upper)
        return self.instant_of_day(
            year,
            month,
            day,
            hour * MILLIS_PER_HOUR
            + minute * MILLIS_PER_MINUTE
            + second * MILLIS_PER_SECOND
            + millis,
            disambiguate=disambiguate,
        )

    def instant_of_day(
        self,
        year: int,
        month: int,
        day: int,
        millis_of_day: int,
        *,
        disambiguate: Disambiguate = "compatible",
    ) -> int:
        """The instant of a local date and the millis into that day"""
        local = self._local_of(year, month, day, millis_of_day)
        if self._fixed_offset is not None:
            return check_long(local - self._fixed_offset)
        return resolve_ambiguity(self.zone, local, disambiguate)

    def _local_of(
        self, year: int, month: int, day: int, millis_of_day: int
    ) -> int:
        cal = self.calendar
        context = {_F.YEAR: year, _F.MONTH_OF_YEAR: month}
        self._fields[_F.YEAR].check_value_for(context, year)
        self._fields[_F.MONTH_OF_YEAR].check_value_for(context, month)
        self._fields[_F.DAY_OF_MONTH].check_value_for(context, day)
        self._fields[_F.MILLIS_OF_DAY].check_value_for(context, millis_of_day)
        internal = cal.internal_year(year)
        check_not_skipped(cal, internal, month, day)
        days = cal.days_from_ymd(internal, month, day)
        return check_long(days * MILLIS_PER_DAY + millis_of_day)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Chronology):
            return NotImplemented
        return self.calendar == other.calendar and self.zone == other.zone

    def __hash__(self) -> int:
        return hash((Chronology, self.calendar, self.zone))

    def __repr__(self) -> str:
        return f"Chronology({self.calendar.name}, {self.zone})"
