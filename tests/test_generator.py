import threading

import pytest
from loguru import logger
from pydantic import ValidationError

from clockflake.core.exceptions import ClockUnavailableError, InvalidWorkerIDError
from clockflake.core.generator import GeneratorState, IdGenerator
from clockflake.core.layout import (
    EPOCH_START,
    MAX_SEQUENCE,
    MAX_TIMESTAMP,
    MAX_WORKER_ID,
    parse_id,
)
from clockflake.utils.time import current_millis

BASE = EPOCH_START + 1_000_000


def test_worker_id_bounds():
    """测试工作机器ID的取值范围"""
    assert IdGenerator(0).worker_id == 0
    assert IdGenerator(255).worker_id == 255

    for invalid in (256, 1000, -1):
        with pytest.raises(InvalidWorkerIDError) as exc_info:
            IdGenerator(invalid)
        assert exc_info.value.code == "INVALID_WORKER_ID"
        assert exc_info.value.details["max_worker_id"] == 255


def test_worker_id_must_be_int():
    """测试非整数的工作机器ID"""
    for invalid in ("1", 1.0, True, None):
        with pytest.raises(InvalidWorkerIDError):
            IdGenerator(invalid)


def test_initial_state(fake_clock):
    """测试初始状态"""
    state = IdGenerator(3, clock=fake_clock).snapshot()
    assert state.worker_id == 3
    assert state.sequence == 0
    assert state.last_timestamp == -1
    assert state.clock_offset == 0
    assert state.rollback_count == 0
    # 构造时不读取时钟
    assert fake_clock.calls == 0


def test_bit_layout(fake_clock):
    """测试ID的位布局"""
    generator = IdGenerator(7, clock=fake_clock)
    value = generator.next_id()

    assert value == ((BASE - EPOCH_START) << 20) | (7 << 12) | 0
    assert value & 0xFFF == 0
    assert (value >> 12) & 0xFF == 7
    assert (value >> 20) + EPOCH_START == BASE
    assert value < 2**63


def test_sequence_increments_within_millisecond(fake_clock):
    """测试同一毫秒内序列号递增，进入新毫秒后重置"""
    generator = IdGenerator(1, clock=fake_clock)
    sequences = [parse_id(generator.next_id()).sequence for _ in range(5)]
    assert sequences == [0, 1, 2, 3, 4]

    fake_clock.set(BASE + 1)
    parts = parse_id(generator.next_id())
    assert parts.sequence == 0
    assert parts.timestamp == BASE + 1


def test_sequence_exhaustion_waits_for_next_millisecond(fake_clock):
    """测试序列号用尽且没有偏移量时，等待下一毫秒"""
    generator = IdGenerator(1, clock=fake_clock)
    first = [parse_id(generator.next_id()) for _ in range(MAX_SEQUENCE + 1)]
    assert {p.timestamp for p in first} == {BASE}
    assert first[-1].sequence == MAX_SEQUENCE

    # 第4097次调用：首次读数仍在同一毫秒，忙等待两次后时钟前进
    fake_clock.queue(BASE, BASE, BASE)
    fake_clock.set(BASE + 1)
    calls_before = fake_clock.calls

    parts = parse_id(generator.next_id())
    assert parts.timestamp == BASE + 1
    assert parts.sequence == 0
    assert generator.clock_offset == 0
    assert fake_clock.calls - calls_before == 4


def test_rollback_recovery(fake_clock):
    """测试时钟回拨后的偏移与补偿"""
    generator = IdGenerator(1, clock=fake_clock)
    fake_clock.set(BASE + 1000)
    assert parse_id(generator.next_id()).timestamp == BASE + 1000

    # 回拨10ms，虚拟时间戳保持在1000
    fake_clock.set(BASE + 990)
    parts = parse_id(generator.next_id())
    assert generator.clock_offset == 10
    assert generator.rollback_count == 1
    assert parts.timestamp == BASE + 1000
    assert parts.sequence == 1

    # 真实时间追赶，偏移量逐步偿还
    fake_clock.set(BASE + 995)
    parts = parse_id(generator.next_id())
    assert generator.clock_offset == 5
    assert parts.timestamp == BASE + 1000
    assert parts.sequence == 2

    fake_clock.set(BASE + 998)
    generator.next_id()
    assert generator.clock_offset == 2

    fake_clock.set(BASE + 1000)
    parts = parse_id(generator.next_id())
    assert generator.clock_offset == 0
    assert parts.timestamp == BASE + 1000
    assert parts.sequence == 4

    fake_clock.set(BASE + 1001)
    parts = parse_id(generator.next_id())
    assert parts.timestamp == BASE + 1001
    assert parts.sequence == 0
    assert generator.rollback_count == 1


def test_offset_held_while_clock_stays_behind(fake_clock):
    """测试真实时间停滞时偏移量保持不变"""
    generator = IdGenerator(1, clock=fake_clock)
    fake_clock.set(BASE + 1000)
    generator.next_id()
    fake_clock.set(BASE + 990)

    for expected_sequence in range(1, 6):
        parts = parse_id(generator.next_id())
        assert parts.timestamp == BASE + 1000
        assert parts.sequence == expected_sequence
        assert generator.clock_offset == 10


def test_rollback_replaces_offset(fake_clock):
    """测试再次回拨时偏移量被替换为最新的回拨幅度"""
    generator = IdGenerator(1, clock=fake_clock)
    fake_clock.set(BASE + 1000)
    generator.next_id()

    fake_clock.set(BASE + 990)
    generator.next_id()
    fake_clock.set(BASE + 995)
    generator.next_id()
    assert generator.clock_offset == 5

    # 虚拟时间998 < 1000，新的回拨幅度为7，而不是5 + 7
    fake_clock.set(BASE + 993)
    parts = parse_id(generator.next_id())
    assert generator.clock_offset == 7
    assert generator.rollback_count == 2
    assert parts.timestamp == BASE + 1000

    # 回拨加深
    fake_clock.set(BASE + 980)
    generator.next_id()
    assert generator.clock_offset == 20


def test_sequence_exhaustion_with_offset_advances_virtual_time(fake_clock):
    """测试存在偏移量时序列号用尽，直接推进虚拟时间而不等待"""
    generator = IdGenerator(1, clock=fake_clock)
    fake_clock.set(BASE + 1000)
    generator.next_id()
    fake_clock.set(BASE + 990)

    # 序列号0已用，再生成4095个ID后用尽
    for _ in range(MAX_SEQUENCE):
        generator.next_id()
    assert generator.sequence == MAX_SEQUENCE

    calls_before = fake_clock.calls
    parts = parse_id(generator.next_id())
    assert parts.timestamp == BASE + 1001
    assert parts.sequence == 0
    assert generator.clock_offset == 11
    # 只读取一次时钟，没有忙等待
    assert fake_clock.calls - calls_before == 1

    fake_clock.set(BASE + 1002)
    parts = parse_id(generator.next_id())
    assert generator.clock_offset == 0
    assert parts.timestamp == BASE + 1002


def test_rollback_is_logged(fake_clock):
    """测试时钟回拨会记录警告日志"""
    messages = []
    handler_id = logger.add(messages.append, level="WARNING", format="{message}")
    try:
        generator = IdGenerator(1, clock=fake_clock)
        fake_clock.set(BASE + 1000)
        generator.next_id()
        fake_clock.set(BASE + 900)
        generator.next_id()
    finally:
        logger.remove(handler_id)

    assert len(messages) == 1
    assert "时钟回拨" in messages[0]
    assert "100ms" in messages[0]


def test_clock_failure_leaves_state_untouched(fake_clock):
    """测试时钟读取失败"""
    generator = IdGenerator(1, clock=fake_clock)
    generator.next_id()
    before = generator.snapshot()

    def broken_clock():
        raise OSError("clock source gone")

    generator._clock = broken_clock
    with pytest.raises(ClockUnavailableError) as exc_info:
        generator.next_id()
    assert isinstance(exc_info.value.__cause__, OSError)
    assert generator.snapshot() == before


def test_clock_before_epoch():
    """测试时钟读数早于纪元起点"""
    generator = IdGenerator(1, clock=lambda: EPOCH_START - 1)
    with pytest.raises(ClockUnavailableError) as exc_info:
        generator.next_id()
    assert exc_info.value.code == "CLOCK_UNAVAILABLE"


def test_next_ids(fake_clock):
    """测试批量生成"""
    generator = IdGenerator(1, clock=fake_clock)
    assert generator.next_ids(0) == []
    ids = generator.next_ids(10)
    assert len(set(ids)) == 10
    assert ids == sorted(ids)

    with pytest.raises(ValueError):
        generator.next_ids(-1)


def test_uniqueness_and_order_with_real_clock():
    """测试使用系统时钟时ID唯一且递增"""
    generator = IdGenerator(9)
    ids = generator.next_ids(20000)
    assert len(set(ids)) == len(ids)
    assert all(a < b for a, b in zip(ids, ids[1:]))


def test_timestamp_close_to_wall_clock():
    """测试ID中的时间戳与系统时间一致"""
    generator = IdGenerator(42)
    before = current_millis()
    parts = parse_id(generator.next_id())
    after = current_millis()

    assert parts.worker_id == 42
    assert before <= parts.timestamp <= after


def test_concurrent_callers():
    """测试多线程并发生成ID"""
    generator = IdGenerator(2)
    results = {}

    def worker(index: int) -> None:
        results[index] = generator.next_ids(3000)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    all_ids = [value for ids in results.values() for value in ids]
    assert len(all_ids) == 8 * 3000
    assert len(set(all_ids)) == len(all_ids)
    # 每个线程看到的ID按锁的顺序递增
    for ids in results.values():
        assert all(a < b for a, b in zip(ids, ids[1:]))


def test_same_worker_id_may_collide(fake_clock):
    """
    相同工作机器ID的两个生成器各自运行时可能生成相同的ID

    唯一性只在单个实例内保证，工作机器ID需要由外部统一分配。
    """
    first = IdGenerator(4, clock=fake_clock)
    second = IdGenerator(4, clock=fake_clock)
    assert first.next_id() == second.next_id()


def test_clock_failure_while_waiting_leaves_state_untouched(fake_clock):
    """测试忙等待期间时钟读取失败时状态保持不变"""
    generator = IdGenerator(1, clock=fake_clock)
    generator.next_ids(MAX_SEQUENCE + 1)
    before = generator.snapshot()
    assert before.sequence == MAX_SEQUENCE

    readings = iter([BASE])

    def failing_clock():
        reading = next(readings, None)
        if reading is None:
            raise OSError("clock source gone")
        return reading

    generator._clock = failing_clock
    with pytest.raises(ClockUnavailableError):
        generator.next_id()

    after = generator.snapshot()
    assert after == before
    assert after.sequence <= MAX_SEQUENCE


def test_timestamp_beyond_layout_range():
    """测试时间戳超出43位范围时报错"""
    generator = IdGenerator(1, clock=lambda: EPOCH_START + MAX_TIMESTAMP + 1)
    with pytest.raises(ClockUnavailableError) as exc_info:
        generator.next_id()
    assert exc_info.value.details["max_timestamp"] == EPOCH_START + MAX_TIMESTAMP
    assert generator.last_timestamp == -1

    # 最后一个可表示的毫秒仍然可用
    generator = IdGenerator(1, clock=lambda: EPOCH_START + MAX_TIMESTAMP)
    assert parse_id(generator.next_id()).timestamp == EPOCH_START + MAX_TIMESTAMP


def test_offset_overflow_beyond_layout_range(fake_clock):
    """测试偏移量推进虚拟时间超出范围时报错且不修改状态"""
    last = EPOCH_START + MAX_TIMESTAMP
    generator = IdGenerator(1, clock=fake_clock)
    fake_clock.set(last)
    generator.next_id()
    fake_clock.set(last - 10)
    generator.next_ids(MAX_SEQUENCE)
    before = generator.snapshot()
    assert before.clock_offset == 10

    with pytest.raises(ClockUnavailableError):
        generator.next_id()
    assert generator.snapshot() == before


def test_state_snapshot_bounds():
    """测试状态快照的取值范围"""
    GeneratorState(worker_id=0, sequence=MAX_SEQUENCE, last_timestamp=-1, clock_offset=0, rollback_count=0)

    invalid_fields = [
        {"worker_id": MAX_WORKER_ID + 1},
        {"sequence": MAX_SEQUENCE + 1},
        {"sequence": -1},
        {"last_timestamp": -2},
        {"clock_offset": -1},
        {"rollback_count": -1},
    ]
    for overrides in invalid_fields:
        fields = dict(worker_id=0, sequence=0, last_timestamp=-1, clock_offset=0, rollback_count=0)
        fields.update(overrides)
        with pytest.raises(ValidationError):
            GeneratorState(**fields)
