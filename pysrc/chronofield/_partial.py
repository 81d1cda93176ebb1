"""Incomplete dates and times: a set of field values without an instant."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ._chronology import Chronology
from ._common import (
    InvalidIndexError,
    MissingArgumentError,
    UnsupportedFieldError,
    final,
)
from ._fields import DateTimeField
from ._types import DateTimeFieldType, DurationFieldType

__all__ = ["Partial"]

_F = DateTimeFieldType


@final
class Partial:
    """An ordered set of field values, bound to a chronology.

    The field types are ordered from largest to smallest, and each value
    must be valid given the values of the larger fields.
    A partial can be matched against instants, e.g. to find recurring
    dates such as "every Tuesday in July 2005":

    >>> from chronofield import Chronology, DateTimeFieldType as F, Partial
    >>> tuesdays = Partial(
    ...     [F.YEAR, F.MONTH_OF_YEAR, F.DAY_OF_WEEK], [2005, 7, 2]
    ... )
    >>> tuesdays.is_match(Chronology.of().instant_of(2005, 7, 12))
    True

    Unlike the other types, a partial can be changed in place with
    :meth:`set_value`. For that reason, it isn't hashable.
    """

    __slots__ = ("_chronology", "_types", "_values")

    _chronology: Chronology
    _types: tuple[DateTimeFieldType, ...]
    _values: tuple[int, ...]

    def __init__(
        self,
        types: Sequence[DateTimeFieldType] = (),
        values: Sequence[int] = (),
        chronology: Optional[Chronology] = None,
    ):
        if types is None or values is None:
            raise MissingArgumentError("types and values are required")
        types = tuple(types)
        values = tuple(values)
        for t in types:
            if t is None:
                raise MissingArgumentError("Types must not contain None")
        if len(types) != len(values):
            raise ValueError("Types and values must have the same length")
        _check_order(types)
        if chronology is None:
            chronology = Chronology.of()
        context: dict[DateTimeFieldType, int] = {}
        for t, v in zip(types, values):
            chronology.field(t).check_value_for(context, v)
            context[t] = v
        self._chronology = chronology
        self._types = types
        self._values = values

    @classmethod
    def _unchecked(
        cls,
        chronology: Chronology,
        types: tuple[DateTimeFieldType, ...],
        values: tuple[int, ...],
    ) -> Partial:
        self = object.__new__(cls)
        self._chronology = chronology
        self._types = types
        self._values = values
        return self

    def _copy(self) -> Partial:
        return Partial._unchecked(self._chronology, self._types, self._values)

    @property
    def chronology(self) -> Chronology:
        return self._chronology

    def size(self) -> int:
        return len(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def field_type(self, index: int) -> DateTimeFieldType:
        self._check_index(index)
        return self._types[index]

    def value(self, index: int) -> int:
        self._check_index(index)
        return self._values[index]

    def field(self, index: int) -> DateTimeField:
        return self._chronology.field(self.field_type(index))

    def field_types(self) -> tuple[DateTimeFieldType, ...]:
        return self._types

    def values(self) -> tuple[int, ...]:
        return self._values

    def index_of(self, field_type: DateTimeFieldType) -> int:
        """The index of the field type, or -1 if absent"""
        try:
            return self._types.index(field_type)
        except ValueError:
            return -1

    def is_supported(self, field_type: DateTimeFieldType) -> bool:
        return field_type in self._types

    def get(self, field_type: DateTimeFieldType) -> int:
        index = self.index_of(field_type)
        if index == -1:
            raise UnsupportedFieldError(
                f"Field {_name(field_type)} is not in {self!r}"
            )
        return self._values[index]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._types):
            raise InvalidIndexError(
                f"Index {index} is out of range for a partial "
                f"of size {len(self._types)}"
            )

    # --- changing ------------------------------------------------------------

    def set_value(self, index: int, value: int) -> None:
        """Change a value in place.

        The value is checked against the other values held. Smaller
        fields that become invalid are clamped to their new bounds.
        """
        self._check_index(index)
        values = _set(
            self._chronology, self._types, list(self._values), index, value
        )
        self._values = tuple(values)

    def with_field(
        self, field_type: DateTimeFieldType, value: int
    ) -> Partial:
        """A copy with the field set, inserted in order if absent"""
        if field_type is None:
            raise MissingArgumentError("field type is required")
        index = self.index_of(field_type)
        if index == -1:
            pairs = sorted(
                [*zip(self._types, self._values), (field_type, value)],
                key=lambda p: p[0].sort_key(),
                reverse=True,
            )
            return Partial(
                [t for t, _ in pairs], [v for _, v in pairs], self._chronology
            )
        values = _set(
            self._chronology, self._types, list(self._values), index, value
        )
        return self._with_values(values)

    def without(self, field_type: DateTimeFieldType) -> Partial:
        """A copy without the field, if present"""
        index = self.index_of(field_type)
        if index == -1:
            return self._copy()
        return Partial(
            self._types[:index] + self._types[index + 1 :],
            self._values[:index] + self._values[index + 1 :],
            self._chronology,
        )

    def with_field_added(
        self, duration_type: DurationFieldType, amount: int
    ) -> Partial:
        """A copy with an amount added to the field of the given unit.

        Overflow carries into the larger fields of the partial. If there is
        no larger field to carry into, :class:`ValueError` is raised.
        """
        index = self._index_of_unit(duration_type)
        if amount == 0:
            return self._copy()
        values = _add(
            self._chronology,
            self._types,
            list(self._values),
            index,
            amount,
            wrap=False,
        )
        return self._with_values(values)

    def with_field_add_wrapped(
        self, duration_type: DurationFieldType, amount: int
    ) -> Partial:
        """Like :meth:`with_field_added`, but the largest field wraps
        around instead of overflowing"""
        index = self._index_of_unit(duration_type)
        if amount == 0:
            return self._copy()
        values = _add(
            self._chronology,
            self._types,
            list(self._values),
            index,
            amount,
            wrap=True,
        )
        return self._with_values(values)

    def _with_values(self, values: list[int]) -> Partial:
        return Partial._unchecked(self._chronology, self._types, tuple(values))

    def _index_of_unit(self, duration_type: DurationFieldType) -> int:
        for i, t in enumerate(self._types):
            if t.duration_type is duration_type:
                return i
        raise UnsupportedFieldError(
            f"No field in {self!r} has the unit {_name(duration_type)}"
        )

    def with_chronology_retain_fields(
        self, chronology: Chronology
    ) -> Partial:
        """A copy with the same values under another chronology.
        The values are checked against the new chronology."""
        if chronology is None:
            raise MissingArgumentError("chronology is required")
        if chronology == self._chronology:
            return self._copy()
        return Partial(self._types, self._values, chronology)

    # --- matching ------------------------------------------------------------

    def is_match(self, instant: int) -> bool:
        """Whether all fields have these values at the instant,
        in this partial's chronology"""
        chrono = self._chronology
        return all(
            chrono.field(t).get(instant) == v
            for t, v in zip(self._types, self._values)
        )

    def is_match_partial(self, other: Partial) -> bool:
        """Whether the other partial has the same values for all fields
        of this one"""
        if other is None:
            raise MissingArgumentError("The partial to match is required")
        return all(
            other.get(t) == v for t, v in zip(self._types, self._values)
        )

    def resolve(self, base_instant: int) -> int:
        """An instant with the fields of this partial, taking the other
        fields from the base instant"""
        for t, v in zip(self._types, self._values):
            base_instant = self._chronology.field(t).set(base_instant, v)
        return base_instant

    # --- comparison ----------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Partial):
            return NotImplemented
        return (
            self._types == other._types
            and self._values == other._values
            and self._chronology == other._chronology
        )

    __hash__ = None  # type: ignore[assignment]

    def _compare_key(self, other: Partial) -> tuple[int, ...]:
        if self._types != other._types:
            raise ValueError(
                "Only partials with the same field types can be compared"
            )
        return self._values

    def __lt__(self, other: Partial) -> bool:
        if not isinstance(other, Partial):
            return NotImplemented
        return self._compare_key(other) < other._values

    def __le__(self, other: Partial) -> bool:
        if not isinstance(other, Partial):
            return NotImplemented
        return self._compare_key(other) <= other._values

    def __gt__(self, other: Partial) -> bool:
        if not isinstance(other, Partial):
            return NotImplemented
        return self._compare_key(other) > other._values

    def __ge__(self, other: Partial) -> bool:
        if not isinstance(other, Partial):
            return NotImplemented
        return self._compare_key(other) >= other._values

    def __repr__(self) -> str:
        fields = ", ".join(
            f"{t.value}={v}" for t, v in zip(self._types, self._values)
        )
        if self._chronology == Chronology.of():
            return f"Partial({fields})"
        return f"Partial({fields}; {self._chronology})"


def _name(t: object) -> str:
    return getattr(t, "value", repr(t))


def _check_order(types: tuple[DateTimeFieldType, ...]) -> None:
    for larger, smaller in zip(types, types[1:]):
        larger_key = larger.sort_key()
        smaller_key = smaller.sort_key()
        if larger_key == smaller_key:
            raise ValueError(
                "Types must not contain duplicates: "
                f"{larger.value} and {smaller.value}"
            )
        elif larger_key < smaller_key:
            raise ValueError(
                "Types must be ordered largest to smallest: "
                f"{larger.value} < {smaller.value}"
            )


def _is_contiguous(types: Iterable[DateTimeFieldType]) -> bool:
    """Whether each field's range is the unit of the previous field"""
    last: Optional[DurationFieldType] = None
    for i, t in enumerate(types):
        if i > 0 and t.range_type is not last:
            return False
        last = t.duration_type
    return True


def _context(
    types: tuple[DateTimeFieldType, ...], values: list[int]
) -> dict[DateTimeFieldType, int]:
    return dict(zip(types, values))


def _set(
    chrono: Chronology,
    types: tuple[DateTimeFieldType, ...],
    values: list[int],
    index: int,
    value: int,
) -> list[int]:
    """Set a value, then clamp the smaller fields into their bounds"""
    chrono.field(types[index]).check_value_for(_context(types, values), value)
    values[index] = value
    for i in range(index + 1, len(types)):
        field = chrono.field(types[i])
        context = _context(types, values)
        values[i] = max(
            field.minimum_value_for(context),
            min(values[i], field.maximum_value_for(context)),
        )
    return values


def _add(
    chrono: Chronology,
    types: tuple[DateTimeFieldType, ...],
    values: list[int],
    index: int,
    amount: int,
    wrap: bool,
) -> list[int]:
    """Add to one value, carrying overflow into the next larger field"""
    if amount == 0:
        return values
    field_type = types[index]
    if not wrap and field_type is _F.MONTH_OF_YEAR:
        months_in_year = chrono.calendar.months_in_year
        if index == 0:
            # e.g. month-day: the month wraps
            new = (values[0] - 1 + amount) % months_in_year + 1
            return _set(chrono, types, values, 0, new)
        if _is_contiguous(types):
            # Add on the calendar, so that the day of month is clamped
            # only once (Feb 29th + 48 months is Feb 29th)
            utc = chrono.with_utc()
            instant = 0
            for t, v in zip(types, values):
                instant = utc.field(t).set(instant, v)
            instant = utc.field(field_type).add(instant, amount)
            return [utc.field(t).get(instant) for t in types]

    field = chrono.field(field_type)

    def bounds() -> tuple[int, int]:
        context = _context(types, values)
        return (
            field.minimum_value_for(context),
            field.maximum_value_for(context),
        )

    if index == 0:
        lower, upper = bounds()
        if wrap:
            new = (values[0] - lower + amount) % (upper - lower + 1) + lower
        elif not lower <= values[0] + amount <= upper:
            raise ValueError("Maximum value exceeded for add")
        else:
            new = values[0] + amount
        return _set(chrono, types, values, 0, new)

    def carry(step: int) -> list[int]:
        # Only a field cycling within the next larger unit can carry
        if field_type.range_type is not types[index - 1].duration_type:
            raise ValueError("Fields invalid for add")
        return _add(chrono, types, values, index - 1, step, wrap)

    while amount > 0:
        lower, upper = bounds()
        if values[index] + amount <= upper:
            values[index] += amount
            break
        amount -= upper + 1 - values[index]
        values = carry(1)
        values[index] = bounds()[0]
    while amount < 0:
        lower, upper = bounds()
        if values[index] + amount >= lower:
            values[index] += amount
            break
        amount -= lower - 1 - values[index]
        values = carry(-1)
        values[index] = bounds()[1]
    return _set(chrono, types, values, index, values[index])
