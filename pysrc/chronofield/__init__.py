from __future__ import annotations

import os as _os
import sysconfig as _sysconfig
from contextlib import contextmanager as _contextmanager
from dataclasses import dataclass as _dataclass
from importlib.resources import files as _resource_files
from pathlib import Path as _Path
from typing import Iterable as _Iterable, Iterator as _Iterator

from ._calendars import (
    BUDDHIST,
    COPTIC,
    ETHIOPIC,
    GJ,
    GREGORIAN,
    ISLAMIC,
    ISO,
    JULIAN,
    LEAP_YEAR_15_BASED,
    LEAP_YEAR_16_BASED,
    LEAP_YEAR_HABASH_AL_HASIB,
    LEAP_YEAR_INDIAN,
    CalendarSystem,
    IslamicLeapYears,
    islamic,
)
from ._chronology import Chronology
from ._clock import (
    SYSTEM_TIME_SOURCE,
    FixedTimeSource,
    InheritingThread,
    OffsetTimeSource,
    TimeSource,
    _patch_time_frozen,
    _patch_time_keep_ticking,
    _unpatch_time,
    current_time_millis,
    get_time_source,
    inherit_context,
    reset_task_time_source,
    set_current_millis_fixed,
    set_current_millis_offset,
    set_current_millis_system,
    set_task_time_source,
    set_time_source,
)
from ._common import (
    MAX_MILLIS,
    MIN_MILLIS,
    ArithmeticOverflowError,
    FieldRangeError,
    InvalidIndexError,
    MissingArgumentError,
    UnsupportedFieldError,
)
from ._fields import DateTimeField, DurationField
from ._instant import Instant
from ._partial import Partial
from ._tz import (
    UTC,
    Disambiguate,
    Fold,
    Gap,
    RepeatedTime,
    SkippedTime,
    TimeZone,
    TimeZoneNotFoundError,
    Unambiguous,
    ZoneRecord,
)
from ._tz.store import (
    clear_tz_cache as _clear_tz_cache,
    clear_tz_cache_by_keys as _clear_tz_cache_by_keys,
    reset_system_tz,
    set_tzpath as _set_tzpath,
)
from ._types import DateTimeFieldType, DurationFieldType

__version__ = "0.1.0"

__all__ = [
    # calendars
    "CalendarSystem",
    "ISO",
    "GREGORIAN",
    "JULIAN",
    "GJ",
    "BUDDHIST",
    "COPTIC",
    "ETHIOPIC",
    "ISLAMIC",
    "IslamicLeapYears",
    "LEAP_YEAR_15_BASED",
    "LEAP_YEAR_16_BASED",
    "LEAP_YEAR_INDIAN",
    "LEAP_YEAR_HABASH_AL_HASIB",
    "islamic",
    # core
    "Chronology",
    "DateTimeField",
    "DurationField",
    "DateTimeFieldType",
    "DurationFieldType",
    "Instant",
    "Partial",
    # zones
    "TimeZone",
    "UTC",
    "ZoneRecord",
    "Disambiguate",
    "Unambiguous",
    "Gap",
    "Fold",
    # time sources
    "TimeSource",
    "SYSTEM_TIME_SOURCE",
    "FixedTimeSource",
    "OffsetTimeSource",
    "InheritingThread",
    "inherit_context",
    "current_time_millis",
    "get_time_source",
    "set_time_source",
    "set_current_millis_fixed",
    "set_current_millis_offset",
    "set_current_millis_system",
    "set_task_time_source",
    "reset_task_time_source",
    "patch_current_time",
    # exceptions
    "FieldRangeError",
    "ArithmeticOverflowError",
    "InvalidIndexError",
    "MissingArgumentError",
    "UnsupportedFieldError",
    "TimeZoneNotFoundError",
    "RepeatedTime",
    "SkippedTime",
    # constants and configuration
    "MIN_MILLIS",
    "MAX_MILLIS",
    "TZPATH",
    "reset_tzpath",
    "clear_tzcache",
    "available_timezones",
    "reset_system_tz",
]


@_dataclass
class _TimePatch:
    _pin: Instant
    _keep_ticking: bool

    def shift(self, **kwargs) -> None:
        if self._keep_ticking:
            self._pin = new = Instant.now().add(**kwargs)
            _patch_time_keep_ticking(new.millis)
        else:
            self._pin = new = self._pin.add(**kwargs)
            _patch_time_frozen(new.millis)


@_contextmanager
def patch_current_time(
    instant: Instant | int,
    /,
    *,
    keep_ticking: bool,
) -> _Iterator[_TimePatch]:
    """Patch the current time to a fixed value (for testing purposes).
    Behaves as a context manager or decorator, with similar semantics to
    ``unittest.mock.patch``.

    Important
    ---------

    * This function should be used only for testing purposes. It is not
      thread-safe or part of the stable API.
    * It replaces the process-wide time source. Overrides set with
      :func:`set_task_time_source` still take precedence.
    * It only affects :func:`current_time_millis` and :meth:`Instant.now`.
      Use the ``time_machine`` package if you also want to patch other
      libraries.

    Example
    -------

    >>> from chronofield import Instant, patch_current_time
    >>> i = Instant.from_utc(1980, 3, 2, hour=2)
    >>> with patch_current_time(i, keep_ticking=False) as p:
    ...     assert Instant.now() == i
    ...     p.shift(hours=4)
    ...     assert Instant.now() == i.add(hours=4)
    ...
    >>> assert Instant.now() != i
    """
    pin = instant if isinstance(instant, Instant) else Instant(instant)
    if keep_ticking:
        previous = _patch_time_keep_ticking(pin.millis)
    else:
        previous = _patch_time_frozen(pin.millis)

    try:
        yield _TimePatch(pin, keep_ticking)
    finally:
        _unpatch_time(previous)


TZPATH: tuple[str, ...] = ()
"""The paths in which ``chronofield`` will search for timezone data.
By default, this determined the same way as :data:`zoneinfo.TZPATH`,
although you can override it using :func:`chronofield.reset_tzpath`.
"""


def reset_tzpath(
    target: _Iterable[str | _os.PathLike[str]] | None = None, /
) -> None:
    """Reset or set the paths in which ``chronofield`` will search for
    timezone data.

    It does not affect the :mod:`zoneinfo` module or other libraries.

    Note
    ----
    Due to caching, you may find that looking up a timezone after setting
    the tzpath doesn't load the timezone data from the new path. You may need
    to call :func:`clear_tzcache` to force loading from the new path.

    Behaves similarly to :func:`zoneinfo.reset_tzpath`
    """
    global TZPATH

    if target is not None:
        # This is such a common mistake, that we raise a descriptive error
        if isinstance(target, (str, bytes)):
            raise TypeError("tzpath must be an iterable of paths")

        if not all(map(_os.path.isabs, target)):
            raise ValueError("tzpaths must be absolute paths")
        TZPATH = tuple(str(_Path(p)) for p in target)
    else:
        TZPATH = _tzpath_from_env()
    _set_tzpath(TZPATH)


def _tzpath_from_env() -> tuple[str, ...]:
    try:
        env_var = _os.environ["PYTHONTZPATH"]
    except KeyError:
        env_var = _sysconfig.get_config_var("TZPATH")

    if not env_var:
        return ()

    raw_tzpath = env_var.split(_os.pathsep)
    # Invalid paths are silently ignored, like zoneinfo does
    return tuple(filter(_os.path.isabs, raw_tzpath))


def clear_tzcache(*, only_keys: _Iterable[str] | None = None) -> None:
    """Clear the timezone cache. If ``only_keys`` is provided, only the cache
    for those keys will be cleared.

    Chronologies keep the zones they were created with. Zones loaded after
    clearing are equal to the earlier ones if their data is unchanged.

    Behaves similarly to :meth:`zoneinfo.ZoneInfo.clear_cache`.
    """
    if only_keys is None:
        _clear_tz_cache()
    else:
        _clear_tz_cache_by_keys(tuple(only_keys))


def available_timezones() -> set[str]:
    """Gather the set of all available timezones.

    Each call to this function will recalculate the available timezone names
    depending on the currently configured ``TZPATH``, and the
    presence of the ``tzdata`` package.

    Warning
    -------
    This function may open a large number of files, since the first few bytes
    of timezone files must be read to determine if they are valid.

    Note
    ----
    This function behaves similarly to :func:`zoneinfo.available_timezones`,
    which means it ignores the "special" zones (e.g. posixrules, right/posix)
    """
    zones = set()
    # Get the zones from the tzdata package, if available
    try:
        with _resource_files("tzdata").joinpath("zones").open("r") as f:
            zones.update(map(str.strip, f))
    except (ImportError, FileNotFoundError):
        pass

    # Get the zones from the tzpath directories
    for base in TZPATH:
        zones.update(_find_all_tznames(_Path(base)))

    zones.discard("posixrules")  # a special file that shouldn't be included
    return zones


# Recursion is safe here since the file tree is trusted, and nesting doesn't
# even approach the recursion limit.
def _find_all_tznames(base: _Path) -> _Iterator[str]:
    if not base.is_dir():
        return
    for entry in base.iterdir():
        if entry.is_dir():
            if entry.name in ("right", "posix"):
                # These directories contain special files
                continue
            else:
                for p in _find_nested_tzfiles(entry):
                    yield p.relative_to(base).as_posix()
        elif _is_tzifile(entry):
            yield entry.name


def _find_nested_tzfiles(path: _Path) -> _Iterator[_Path]:
    assert path.is_dir()
    for entry in path.iterdir():
        if entry.is_dir():
            yield from _find_nested_tzfiles(entry)
        elif _is_tzifile(entry):
            yield entry


def _is_tzifile(p: _Path) -> bool:
    """Check if the file is a tzifile."""
    try:
        with p.open("rb") as f:
            return f.read(4) == b"TZif"
    except OSError:
        return False


reset_tzpath()  # populate the tzpath once at startup
