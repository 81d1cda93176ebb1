from __future__ import annotations

from typing import TYPE_CHECKING, Any, no_type_check

MILLIS_PER_SECOND = 1_000
MILLIS_PER_MINUTE = 60 * MILLIS_PER_SECOND
MILLIS_PER_HOUR = 60 * MILLIS_PER_MINUTE
MILLIS_PER_HALFDAY = 12 * MILLIS_PER_HOUR
MILLIS_PER_DAY = 24 * MILLIS_PER_HOUR
MILLIS_PER_WEEK = 7 * MILLIS_PER_DAY

# Signed 64-bit bounds of the millisecond timeline
MIN_MILLIS = -(1 << 63)
MAX_MILLIS = (1 << 63) - 1
# Signed 32-bit bounds for field values and 'int' differences
MIN_INT = -(1 << 31)
MAX_INT = (1 << 31) - 1

# Offsets must stay strictly within a day
MAX_OFFSET_MILLIS = MILLIS_PER_DAY - 1


class _ImmutableBase:
    __slots__ = ()

    # Immutable classes don't need to be copied
    @no_type_check
    def __copy__(self):
        return self

    @no_type_check
    def __deepcopy__(self, _):
        return self


if TYPE_CHECKING:
    from typing import final
else:

    def final(cls):

        def init_subclass_not_allowed(cls, **kwargs):  # pragma: no cover
            raise TypeError("Subclassing not allowed")

        cls.__init_subclass__ = init_subclass_not_allowed
        return cls


class FieldRangeError(ValueError):
    """A field value is outside its legal bounds"""

    field_type: Any
    value: int
    lower: int | None
    upper: int | None

    def __init__(
        self,
        field_type: Any,
        value: int,
        lower: int | None = None,
        upper: int | None = None,
        *,
        reason: str | None = None,
    ):
        self.field_type = field_type
        self.value = value
        self.lower = lower
        self.upper = upper
        name = getattr(field_type, "value", field_type)
        if reason is None:
            reason = f"must be in the range [{lower},{upper}]"
        super().__init__(f"Value {value} for {name} {reason}")


class ArithmeticOverflowError(OverflowError):
    """A 64-bit (or 32-bit, where noted) signed result would overflow"""


class InvalidIndexError(IndexError):
    """An index into a partial is out of range"""


class MissingArgumentError(TypeError):
    """A required argument is absent (None)"""


class UnsupportedFieldError(ValueError):
    """The field or unit isn't supported by this operation"""
