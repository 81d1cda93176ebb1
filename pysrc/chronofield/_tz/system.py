"""Determining the zone of the system"""

import enum
import os
import os.path
import platform
from typing import Optional

SYSTEM = platform.system()
LOCALTIME = "/etc/localtime"


class Source(enum.Enum):
    """How the system zone is described"""

    KEY = "key"  # an IANA zone ID
    FILE = "file"  # the path to a TZif file, ID unknown
    KEY_OR_POSIX = "key_or_posix"  # an IANA zone ID or a POSIX TZ string


# Getting the system timezone key and file depends on the platform.
# On unix-like systems it's relatively straightforward.
# On other platforms, we use the tzlocal package.
if SYSTEM in ("Linux", "Darwin"):  # pragma: no cover

    def _key_or_file() -> tuple[Source, str]:
        tzif_path = os.path.realpath(LOCALTIME)
        if tzif_path == LOCALTIME:
            # If the file is not a symlink, we can't determine the tzid
            return (Source.FILE, LOCALTIME)

        if (tzid := tzid_from_path(tzif_path)) is None:
            # If the file is not in a zoneinfo directory, we can't determine
            # the tzid
            return (Source.FILE, tzif_path)
        else:
            return (Source.KEY, tzid)

else:  # pragma: no cover
    import tzlocal

    def _key_or_file() -> tuple[Source, str]:
        return (Source.KEY, tzlocal.get_localzone_name())


def tzid_from_path(path: str) -> Optional[str]:
    """Find the IANA timezone ID from a path to a zoneinfo file.
    Returns None if the path is not in a zoneinfo directory.
    """
    # Find the path segment containing 'zoneinfo',
    # e.g. `zoneinfo/` or `zoneinfo.default/`
    if (index := path.find("/", path.rfind("zoneinfo"))) == -1:
        return None
    return path[index + 1 :]


def get_tz() -> tuple[Source, str]:
    """Get the system timezone, and how it is described"""
    try:
        tz_env = os.environ["TZ"]
    except KeyError:  # pragma: no cover
        return _key_or_file()

    if tz_env.startswith(":"):
        tz_env = tz_env[1:]  # strip leading colon

    # Unless it's an absolute path, there's no way to strictly determine
    # if this is a zoneinfo key or a posix TZ string.
    if os.path.isabs(tz_env):
        return (Source.FILE, tz_env)
    # If there's a digit, it may be a posix TZ string. Theoretically
    # a zoneinfo key could contain a digit too.
    elif any(c.isdigit() for c in tz_env):
        return (Source.KEY_OR_POSIX, tz_env)
    else:
        # no digit: it's certainly a zoneinfo key
        return (Source.KEY, tz_env)
