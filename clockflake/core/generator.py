"""
ID生成器模块

提供能够自动修复时钟回拨问题的分布式唯一ID生成器，基于Snowflake算法。

生成器维护一个时钟偏移量，通常情况下偏移量为0。
当检测到系统时钟回拨时，生成器记录回拨的幅度作为偏移量，用“真实时间 + 偏移量”
得到的虚拟时间戳继续生成ID，保证时间戳不回退。此后每次生成ID时，只要真实时间
追上来，就逐步偿还偏移量，直至其回到0。

回拨后的一段时间内，ID中的时间戳会略大于服务器的真实时间。
"""

import threading
from typing import Callable, List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from clockflake.core.exceptions import ClockUnavailableError, InvalidWorkerIDError
from clockflake.core.layout import (
    EPOCH_START,
    MAX_SEQUENCE,
    MAX_TIMESTAMP,
    MAX_WORKER_ID,
    compose_id,
)
from clockflake.utils.time import current_millis


class GeneratorState(BaseModel):
    """生成器状态快照（只读副本）"""

    worker_id: int = Field(ge=0, le=MAX_WORKER_ID, description="工作机器ID")
    sequence: int = Field(ge=0, le=MAX_SEQUENCE, description="当前虚拟毫秒内的序列号")
    last_timestamp: int = Field(ge=-1, description="上一个ID使用的虚拟时间戳，初始为-1")
    clock_offset: int = Field(ge=0, description="未偿还的时钟偏移量（毫秒）")
    rollback_count: int = Field(ge=0, description="检测到的时钟回拨次数")


class IdGenerator:
    """
    Snowflake ID生成器

    生成的ID是64位整数，布局见 :mod:`clockflake.core.layout`。
    每个实例独占自己的状态，同一个工作机器ID只能对应一个实例：
    两个使用相同worker_id的实例各自运行时，生成的ID可能重复。

    next_id是线程安全的，整个读-改-写过程在实例锁内完成。

    示例：
    ::

        generator = IdGenerator(worker_id=1)
        new_id = generator.next_id()
    """

    def __init__(self, worker_id: int, clock: Optional[Callable[[], int]] = None):
        """
        初始化ID生成器

        Args:
            worker_id: 工作机器ID (0-255)
            clock: 返回Unix毫秒时间戳的时钟函数，默认读取系统时钟

        Raises:
            InvalidWorkerIDError: 如果worker_id不是0到255之间的整数
        """
        if (
            isinstance(worker_id, bool)
            or not isinstance(worker_id, int)
            or worker_id < 0
            or worker_id > MAX_WORKER_ID
        ):
            raise InvalidWorkerIDError(worker_id, MAX_WORKER_ID)

        self._worker_id = worker_id
        self._clock = clock or current_millis
        self._sequence = 0
        self._last_timestamp = -1
        self._clock_offset = 0
        self._rollback_count = 0
        self._lock = threading.Lock()

    @property
    def worker_id(self) -> int:
        return self._worker_id

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def last_timestamp(self) -> int:
        return self._last_timestamp

    @property
    def clock_offset(self) -> int:
        return self._clock_offset

    @property
    def rollback_count(self) -> int:
        return self._rollback_count

    def snapshot(self) -> GeneratorState:
        """
        获取当前状态的快照

        Returns:
            GeneratorState: 状态副本，修改它不会影响生成器
        """
        with self._lock:
            return GeneratorState(
                worker_id=self._worker_id,
                sequence=self._sequence,
                last_timestamp=self._last_timestamp,
                clock_offset=self._clock_offset,
                rollback_count=self._rollback_count,
            )

    def next_id(self) -> int:
        """
        生成下一个ID

        Returns:
            int: 生成的唯一ID

        Raises:
            ClockUnavailableError: 如果时钟读取失败，或时间戳超出ID可表示的范围
        """
        with self._lock:
            # 新状态先在局部变量中计算，全部成功后再一并写回
            now = self._now()
            offset = self._clock_offset
            rolled_back = False

            if now + offset < self._last_timestamp:
                offset = self._do_offset(now, offset)
                rolled_back = offset != self._clock_offset
            elif offset > 0:
                offset = self._correct_offset(now, offset)
            virtual = now + offset

            sequence = self._sequence + 1 if virtual == self._last_timestamp else 0

            if sequence > MAX_SEQUENCE:
                if offset > 0:
                    # 真实时间落后于虚拟时间，直接推进一个虚拟毫秒而不是等待
                    virtual += 1
                    offset += 1
                    logger.debug(f"序列号用尽，虚拟时间戳推进至 {virtual}，偏移量: {offset}ms")
                else:
                    # 不存在偏移量时，虚拟时间戳即真实时间戳，等待下一毫秒
                    virtual = self._wait_next_millis()
                sequence = 0

            if virtual - EPOCH_START > MAX_TIMESTAMP:
                raise ClockUnavailableError(
                    f"时间戳超出ID可表示的范围: {virtual}",
                    details={"timestamp": virtual, "max_timestamp": EPOCH_START + MAX_TIMESTAMP},
                )

            if rolled_back:
                self._rollback_count += 1
                logger.warning(
                    f"检测到时钟回拨，上次时间戳: {self._last_timestamp}，当前时间戳: {now}，"
                    f"偏移量调整为 {offset}ms"
                )
            elif self._clock_offset > 0 and offset == 0:
                logger.info(f"时钟偏移量已全部偿还，工作机器ID: {self._worker_id}")

            self._clock_offset = offset
            self._sequence = sequence
            self._last_timestamp = virtual
            return compose_id(virtual, self._worker_id, sequence)

    def next_ids(self, count: int) -> List[int]:
        """
        批量生成ID

        每个ID单独加锁生成，其他调用方可以穿插执行。

        Args:
            count: 生成数量

        Returns:
            List[int]: 按生成顺序排列的ID列表
        """
        if count < 0:
            raise ValueError(f"count不能小于0: {count}")
        return [self.next_id() for _ in range(count)]

    def _now(self) -> int:
        try:
            now = self._clock()
        except Exception as e:
            raise ClockUnavailableError(f"读取系统时钟失败: {e}") from e

        if now < EPOCH_START:
            raise ClockUnavailableError(
                f"时钟读数早于纪元起点: {now} < {EPOCH_START}",
                details={"now": now, "epoch_start": EPOCH_START},
            )
        return now

    def _wait_next_millis(self) -> int:
        """
        忙等待直到真实时间超过上一个时间戳

        Returns:
            int: 下一毫秒的时间戳
        """
        millis = self._now()
        while millis <= self._last_timestamp:
            millis = self._now()
        return millis

    def _do_offset(self, now: int, offset: int) -> int:
        """
        根据新观察到的时钟回拨计算偏移量

        偏移量被替换为最新的回拨幅度，而不是在原偏移量上累加。

        Args:
            now: 当前真实时间戳
            offset: 当前偏移量

        Returns:
            int: 新的偏移量
        """
        drop = self._last_timestamp - now
        return drop if drop > 0 else offset

    def _correct_offset(self, now: int, offset: int) -> int:
        """
        补偿时钟偏移量

        在不让虚拟时间戳小于上一个时间戳的前提下，尽可能多地偿还偏移量。

        Args:
            now: 当前真实时间戳
            offset: 当前偏移量

        Returns:
            int: 偿还后的偏移量
        """
        recoverable = min(now - self._last_timestamp + offset, offset)
        if recoverable > 0:
            return offset - recoverable
        return offset
