"""The source of the current time.

There is one process-wide source, which an execution context (a thread or
an asyncio task) may override. Overrides are stored in a
:class:`~contextvars.ContextVar`, so asyncio tasks inherit a copy natively.
Threads inherit a copy when started as an :class:`InheritingThread`,
or when their target is wrapped with :func:`inherit_context`.
"""

from __future__ import annotations

import contextvars
import threading
import time
from typing import Any, Callable, Optional, TypeVar

from ._common import MissingArgumentError, _ImmutableBase, final
from ._math import check_long

_T = TypeVar("_T")

__all__ = [
    "TimeSource",
    "SYSTEM_TIME_SOURCE",
    "FixedTimeSource",
    "OffsetTimeSource",
    "InheritingThread",
    "inherit_context",
    "current_time_millis",
    "set_time_source",
    "set_current_millis_fixed",
    "set_current_millis_offset",
    "set_current_millis_system",
    "get_time_source",
    "set_task_time_source",
    "reset_task_time_source",
]


class TimeSource(_ImmutableBase):
    """Provides the current time in milliseconds since the epoch"""

    __slots__ = ()

    def millis(self) -> int:
        raise NotImplementedError()


@final
class _SystemTimeSource(TimeSource):
    __slots__ = ()

    def millis(self) -> int:
        return time.time_ns() // 1_000_000

    def __repr__(self) -> str:
        return "SYSTEM_TIME_SOURCE"


SYSTEM_TIME_SOURCE: TimeSource = _SystemTimeSource()


@final
class FixedTimeSource(TimeSource):
    """Always returns the same time"""

    __slots__ = ("_millis",)

    def __init__(self, millis: int) -> None:
        self._millis = check_long(millis)

    def millis(self) -> int:
        return self._millis

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FixedTimeSource):
            return NotImplemented
        return self._millis == other._millis

    def __hash__(self) -> int:
        return hash((FixedTimeSource, self._millis))

    def __repr__(self) -> str:
        return f"FixedTimeSource({self._millis})"


@final
class OffsetTimeSource(TimeSource):
    """The system time, shifted by a fixed amount"""

    __slots__ = ("_offset",)

    def __init__(self, offset: int) -> None:
        self._offset = check_long(offset)

    def millis(self) -> int:
        return check_long(SYSTEM_TIME_SOURCE.millis() + self._offset)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OffsetTimeSource):
            return NotImplemented
        return self._offset == other._offset

    def __hash__(self) -> int:
        return hash((OffsetTimeSource, self._offset))

    def __repr__(self) -> str:
        return f"OffsetTimeSource({self._offset})"


_process_source: TimeSource = SYSTEM_TIME_SOURCE
_task_source: contextvars.ContextVar[Optional[TimeSource]] = (
    contextvars.ContextVar("chronofield_time_source", default=None)
)


def current_time_millis() -> int:
    """The current time, from the override of this context if set,
    otherwise from the process-wide source"""
    source = _task_source.get()
    if source is None:
        source = _process_source
    return source.millis()


def get_time_source() -> TimeSource:
    """The source used by :func:`current_time_millis` in this context"""
    source = _task_source.get()
    return _process_source if source is None else source


def set_time_source(source: TimeSource) -> None:
    """Set the process-wide source of the current time"""
    global _process_source
    if source is None:
        raise MissingArgumentError("The time source must not be None")
    _process_source = source


def set_current_millis_fixed(millis: int) -> None:
    """Fix the process-wide current time"""
    set_time_source(FixedTimeSource(millis))


def set_current_millis_offset(offset: int) -> None:
    """Shift the process-wide current time from the system time"""
    if offset == 0:
        set_time_source(SYSTEM_TIME_SOURCE)
    else:
        set_time_source(OffsetTimeSource(offset))


def set_current_millis_system() -> None:
    """Return the process-wide current time to the system time"""
    set_time_source(SYSTEM_TIME_SOURCE)


def set_task_time_source(source: TimeSource) -> contextvars.Token:
    """Override the current time for this context only.

    The override is visible immediately in this context, and is copied into
    asyncio tasks and :class:`InheritingThread` threads started afterwards.
    A plain :class:`threading.Thread` starts with an empty context, so it
    sees the process-wide source. Wrap its target with :func:`inherit_context`
    to pass the override on.
    Returns a token which can be passed to :meth:`ContextVar.reset`.
    """
    if source is None:
        raise MissingArgumentError("The time source must not be None")
    return _task_source.set(source)


def reset_task_time_source() -> None:
    """Use the process-wide source again in this context"""
    _task_source.set(None)


class InheritingThread(threading.Thread):
    """A thread that runs in a copy of the context that started it.

    The copy is taken at :meth:`start`. Changes made by the thread
    afterwards don't affect the parent, and vice versa.
    """

    _parent_context: Optional[contextvars.Context] = None

    def start(self) -> None:
        self._parent_context = contextvars.copy_context()
        super().start()

    def run(self) -> None:
        assert self._parent_context is not None
        self._parent_context.run(super().run)


def inherit_context(target: Callable[..., _T]) -> Callable[..., _T]:
    """Wrap a callable to run in a copy of the current context.

    The copy is taken now, so the returned callable may be passed as the
    target of a plain thread or an executor.
    """
    context = contextvars.copy_context()

    def run(*args: Any, **kwargs: Any) -> _T:
        return context.run(target, *args, **kwargs)

    return run


def _replace_process_source(source: TimeSource) -> TimeSource:
    global _process_source
    previous, _process_source = _process_source, source
    return previous


def _patch_time_frozen(millis: int) -> TimeSource:
    return _replace_process_source(FixedTimeSource(millis))


def _patch_time_keep_ticking(millis: int) -> TimeSource:
    return _replace_process_source(
        OffsetTimeSource(millis - SYSTEM_TIME_SOURCE.millis())
    )


def _unpatch_time(previous: TimeSource) -> None:
    _replace_process_source(previous)
