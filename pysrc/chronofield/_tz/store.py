"""Loading zones by ID, from TZPATH or the ``tzdata`` package.

Loaded zones are cached by ID. The cache holds weak references, plus
strong references to the most recently used zones, so repeated lookups
of a popular zone don't re-read its file.
"""

from __future__ import annotations

import logging
import os.path
import re
import threading
from collections import OrderedDict
from importlib.resources import files
from typing import Iterable, Optional
from weakref import WeakValueDictionary

from . import system
from .tzif import TimeZone

__all__ = [
    "TimeZoneNotFoundError",
    "get_tz",
    "get_system_tz",
    "clear_tz_cache",
    "clear_tz_cache_by_keys",
    "set_tzpath",
    "reset_system_tz",
]

_LOGGER = logging.getLogger(__name__)


class TimeZoneNotFoundError(ValueError):
    """A timezone with the given ID was not found"""

    @classmethod
    def for_key(cls, key: str) -> TimeZoneNotFoundError:
        return cls(f"No time zone found for key: {key!r}")


# Letters, digits and ``-_+.``, in ``/``-separated parts.
# A part may not start with ``.``, ``-`` or ``+``.
_TZID_PART = r"[A-Za-z0-9_][A-Za-z0-9_+.-]*"
_TZID_PATTERN = re.compile(rf"{_TZID_PART}(/{_TZID_PART})*")
_MAX_TZID_LENGTH = 99


def validate_tzid(key: str) -> str:
    """Reject IDs that could escape the search paths when joined to them"""
    if (
        len(key) <= _MAX_TZID_LENGTH
        and key.isascii()
        and _TZID_PATTERN.fullmatch(key)
        and ".." not in key
    ):
        return key
    raise TimeZoneNotFoundError.for_key(key)


def _read_from_tzpath(tzpath: Iterable[str], key: str) -> Optional[bytes]:
    for directory in tzpath:
        path = os.path.join(directory, key)
        if os.path.isfile(path):
            _LOGGER.debug("Loading zone %r from %s", key, path)
            with open(path, "rb") as f:
                return f.read()
    return None


def _read_from_tzdata(key: str) -> bytes:
    try:
        resource = files("tzdata.zoneinfo").joinpath(key)
        if resource.is_file():
            _LOGGER.debug("Loading zone %r from the tzdata package", key)
            return resource.read_bytes()
    except ImportError:
        _LOGGER.debug("The tzdata package isn't installed")
    raise TimeZoneNotFoundError.for_key(key)


class _ZoneCache:
    """Zones by ID, loaded on first use"""

    def __init__(self, strong_size: int) -> None:
        self.tzpath: tuple[str, ...] = ()
        self._strong_size = strong_size
        self._recent: OrderedDict[str, TimeZone] = OrderedDict()
        self._loaded: WeakValueDictionary[str, TimeZone] = (
            WeakValueDictionary()
        )
        self._lock = threading.Lock()

    def get(self, key: str) -> TimeZone:
        zone = self._loaded.get(key)
        if zone is None:
            # Zones are immutable, so concurrent loads of the same ID are
            # harmless. The first one stored is kept.
            zone = self._loaded.setdefault(key, self._load(validate_tzid(key)))
        with self._lock:
            self._recent.pop(key, None)
            self._recent[key] = zone
            while len(self._recent) > self._strong_size:
                self._recent.popitem(last=False)
        return zone

    def _load(self, key: str) -> TimeZone:
        data = _read_from_tzpath(self.tzpath, key) or _read_from_tzdata(key)
        if not data.startswith(b"TZif"):
            _LOGGER.debug("Ignoring %r: not a TZif file", key)
            raise TimeZoneNotFoundError.for_key(key)
        return TimeZone.parse_tzif(data, key)

    def clear(self, keys: Optional[Iterable[str]] = None) -> None:
        with self._lock:
            if keys is None:
                self._loaded.clear()
                self._recent.clear()
            else:
                for key in keys:
                    self._loaded.pop(key, None)
                    self._recent.pop(key, None)


_ZONES = _ZoneCache(strong_size=8)


def set_tzpath(to: tuple[str, ...]) -> None:
    _ZONES.tzpath = to


def get_tz(key: str) -> TimeZone:
    return _ZONES.get(key)


def clear_tz_cache() -> None:
    _ZONES.clear()


def clear_tz_cache_by_keys(keys: tuple[str, ...]) -> None:
    _ZONES.clear(keys)


_system_tz: Optional[TimeZone] = None


def get_system_tz() -> TimeZone:
    """The zone of the system, read once and then cached"""
    global _system_tz
    if _system_tz is None:
        _system_tz = _read_system_tz()
    return _system_tz


def reset_system_tz() -> None:
    """Read the system zone again, e.g. after ``TZ`` has changed"""
    global _system_tz
    _system_tz = _read_system_tz()


def _read_system_tz() -> TimeZone:
    source, value = system.get_tz()
    _LOGGER.debug("Reading system zone (%s): %s", source.name, value)
    if source is system.Source.KEY:
        return TimeZone.of(value)
    if source is system.Source.KEY_OR_POSIX:
        try:
            return TimeZone.of(value)
        except TimeZoneNotFoundError:
            return TimeZone.parse_posix(value)
    with open(value, "rb") as f:
        return TimeZone.parse_tzif(f.read())
