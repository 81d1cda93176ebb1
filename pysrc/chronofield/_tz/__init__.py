from .ambiguity import RepeatedTime, SkippedTime
from .common import Disambiguate, Fold, Gap, Unambiguous, ZoneRecord
from .store import TimeZoneNotFoundError
from .tzif import UTC, TimeZone

__all__ = [
    "TimeZone",
    "UTC",
    "ZoneRecord",
    "Disambiguate",
    "Unambiguous",
    "Gap",
    "Fold",
    "RepeatedTime",
    "SkippedTime",
    "TimeZoneNotFoundError",
]
