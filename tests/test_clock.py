import asyncio
import sys
import threading
import time

import pytest

from chronofield import (
    MAX_MILLIS,
    SYSTEM_TIME_SOURCE,
    ArithmeticOverflowError,
    FixedTimeSource,
    InheritingThread,
    Instant,
    MissingArgumentError,
    OffsetTimeSource,
    TimeSource,
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


@pytest.fixture(autouse=True)
def restore_sources():
    yield
    set_current_millis_system()
    reset_task_time_source()


def _system_millis() -> int:
    return time.time_ns() // 1_000_000


class TestProcessWide:

    def test_default_is_system(self):
        assert get_time_source() is SYSTEM_TIME_SOURCE
        before = _system_millis()
        now = current_time_millis()
        assert before <= now <= _system_millis()

    def test_fixed(self):
        set_current_millis_fixed(1_000)
        assert current_time_millis() == 1_000
        assert get_time_source() == FixedTimeSource(1_000)
        assert Instant.now() == Instant(1_000)

    def test_offset(self):
        set_current_millis_offset(-86_400_000)
        assert get_time_source() == OffsetTimeSource(-86_400_000)
        expected = _system_millis() - 86_400_000
        assert expected <= current_time_millis() <= expected + 1_000

    def test_zero_offset_is_system(self):
        set_current_millis_offset(0)
        assert get_time_source() is SYSTEM_TIME_SOURCE

    def test_back_to_system(self):
        set_current_millis_fixed(1_000)
        set_current_millis_system()
        assert current_time_millis() > 1_000
        assert get_time_source() is SYSTEM_TIME_SOURCE

    def test_custom_source(self):
        class Counter(TimeSource):
            __slots__ = ("count",)

            def __init__(self):
                self.count = 0

            def millis(self) -> int:
                self.count += 1
                return self.count

        set_time_source(Counter())
        assert current_time_millis() == 1
        assert current_time_millis() == 2

    def test_missing(self):
        with pytest.raises(MissingArgumentError):
            set_time_source(None)  # type: ignore[arg-type]
        with pytest.raises(MissingArgumentError):
            set_task_time_source(None)  # type: ignore[arg-type]

    def test_out_of_range(self):
        with pytest.raises(OverflowError):
            FixedTimeSource(2**63)
        with pytest.raises(OverflowError):
            OffsetTimeSource(-(2**64))

    def test_offset_overflow(self):
        source = OffsetTimeSource(MAX_MILLIS)
        with pytest.raises(ArithmeticOverflowError):
            source.millis()
        set_current_millis_offset(MAX_MILLIS)
        with pytest.raises(ArithmeticOverflowError):
            current_time_millis()


class TestTaskOverride:

    def test_precedence(self):
        set_current_millis_fixed(1_000)
        set_task_time_source(FixedTimeSource(5))
        assert current_time_millis() == 5
        assert get_time_source() == FixedTimeSource(5)
        # the process-wide source doesn't affect the override
        set_current_millis_fixed(2_000)
        assert current_time_millis() == 5
        reset_task_time_source()
        assert current_time_millis() == 2_000

    def test_token(self):
        token = set_task_time_source(FixedTimeSource(5))
        set_task_time_source(FixedTimeSource(6))
        assert current_time_millis() == 6
        token.var.reset(token)
        assert get_time_source() is SYSTEM_TIME_SOURCE

    def test_inheriting_thread(self):
        set_task_time_source(FixedTimeSource(7))
        seen = []

        def work():
            seen.append(current_time_millis())
            set_task_time_source(FixedTimeSource(8))
            seen.append(current_time_millis())

        thread = InheritingThread(target=work)
        # changes after start() are not visible to the thread
        thread.start()
        set_task_time_source(FixedTimeSource(9))
        thread.join()
        assert seen == [7, 8]
        assert current_time_millis() == 9

    def test_inheriting_thread_copy_taken_at_start(self):
        thread_result = []
        thread = InheritingThread(
            target=lambda: thread_result.append(current_time_millis())
        )
        set_task_time_source(FixedTimeSource(11))
        thread.start()
        thread.join()
        assert thread_result == [11]

    def test_process_source_shared_with_threads(self):
        set_current_millis_fixed(3_000)
        seen = []
        thread = InheritingThread(
            target=lambda: seen.append(current_time_millis())
        )
        thread.start()
        thread.join()
        assert seen == [3_000]

    def test_plain_thread_sees_process_source(self):
        set_current_millis_fixed(3_000)
        set_task_time_source(FixedTimeSource(5))
        seen = []
        thread = threading.Thread(
            target=lambda: seen.append(current_time_millis())
        )
        thread.start()
        thread.join()
        assert seen == [3_000]

    def test_inherit_context(self):
        set_task_time_source(FixedTimeSource(5))
        seen = []
        target = inherit_context(lambda n: seen.append(current_time_millis()))
        # the copy is taken when wrapping
        set_task_time_source(FixedTimeSource(6))
        thread = threading.Thread(target=target, args=(1,))
        thread.start()
        thread.join()
        assert seen == [5]
        assert inherit_context(current_time_millis)() == 6

    def test_asyncio_tasks(self):
        async def child(millis):
            before = current_time_millis()
            set_task_time_source(FixedTimeSource(millis))
            await asyncio.sleep(0)
            return before, current_time_millis()

        async def main():
            set_task_time_source(FixedTimeSource(1))
            results = await asyncio.gather(child(2), child(3))
            return results, current_time_millis()

        results, after = asyncio.run(main())
        assert results == [(1, 2), (1, 3)]
        assert after == 1


class TestSources:

    def test_equality(self):
        assert FixedTimeSource(1) == FixedTimeSource(1)
        assert FixedTimeSource(1) != FixedTimeSource(2)
        assert FixedTimeSource(1) != OffsetTimeSource(1)
        assert hash(OffsetTimeSource(5)) == hash(OffsetTimeSource(5))

    def test_repr(self):
        assert repr(FixedTimeSource(1)) == "FixedTimeSource(1)"
        assert repr(OffsetTimeSource(-5)) == "OffsetTimeSource(-5)"
        assert repr(SYSTEM_TIME_SOURCE) == "SYSTEM_TIME_SOURCE"

    def test_not_implemented(self):
        with pytest.raises(NotImplementedError):
            TimeSource().millis()


@pytest.mark.skipif(
    sys.implementation.name == "pypy",
    reason="time-machine doesn't support PyPy",
)
def test_time_machine():
    import time_machine

    with time_machine.travel(1_120_521_600, tick=False):
        assert current_time_millis() == 1_120_521_600_000
        set_current_millis_offset(1_000)
        assert current_time_millis() == 1_120_521_601_000
