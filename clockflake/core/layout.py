"""
ID位布局模块

定义64位ID的位布局常量，并提供组装与拆解ID的函数。
从高位到低位依次为：
- 1位符号位，始终为0
- 43位时间戳（相对EPOCH_START的毫秒数）
- 8位工作机器ID
- 12位序列号

位布局是对外的数据格式，所有常量在模块加载后不可修改。
"""

import datetime

from pydantic import BaseModel, Field, computed_field

from clockflake.core.exceptions import InvalidIdError, InvalidWorkerIDError
from clockflake.utils.time import millis_to_datetime

# 纪元起点: 2020-01-01 00:00:00 (UTC+8)
EPOCH_START = 1577808000000

WORKER_ID_BITS = 8
SEQUENCE_BITS = 12
TIMESTAMP_BITS = 63 - WORKER_ID_BITS - SEQUENCE_BITS

MAX_WORKER_ID = -1 ^ (-1 << WORKER_ID_BITS)
MAX_SEQUENCE = -1 ^ (-1 << SEQUENCE_BITS)
MAX_TIMESTAMP = -1 ^ (-1 << TIMESTAMP_BITS)

WORKER_ID_OFFSET = SEQUENCE_BITS
TIMESTAMP_OFFSET = WORKER_ID_OFFSET + WORKER_ID_BITS

MAX_ID = (1 << 63) - 1


class IdComponents(BaseModel):
    """ID拆解结果"""

    id: int = Field(description="原始ID")
    timestamp: int = Field(description="生成ID时使用的虚拟时间戳（Unix毫秒）")
    worker_id: int = Field(description="工作机器ID")
    sequence: int = Field(description="毫秒内序列号")

    @computed_field  # type: ignore[misc]
    @property
    def generated_at(self) -> datetime.datetime:
        """ID对应的UTC时间"""
        return millis_to_datetime(self.timestamp)


def compose_id(timestamp: int, worker_id: int, sequence: int) -> int:
    """
    按位布局组装ID

    Args:
        timestamp: 虚拟时间戳（Unix毫秒），范围为[EPOCH_START, EPOCH_START + MAX_TIMESTAMP]
        worker_id: 工作机器ID (0-255)
        sequence: 序列号 (0-4095)

    Returns:
        int: 64位ID

    Raises:
        InvalidWorkerIDError: 如果worker_id超出范围
        ValueError: 如果时间戳或序列号超出范围
    """
    # 任一字段越界都会侵占相邻字段，导致ID重复
    if not 0 <= worker_id <= MAX_WORKER_ID:
        raise InvalidWorkerIDError(worker_id, MAX_WORKER_ID)
    if not 0 <= sequence <= MAX_SEQUENCE:
        raise ValueError(f"序列号必须在0到{MAX_SEQUENCE}之间，实际为: {sequence}")
    if not 0 <= timestamp - EPOCH_START <= MAX_TIMESTAMP:
        raise ValueError(
            f"时间戳必须在{EPOCH_START}到{EPOCH_START + MAX_TIMESTAMP}之间，实际为: {timestamp}"
        )

    return (
        ((timestamp - EPOCH_START) << TIMESTAMP_OFFSET)
        | (worker_id << WORKER_ID_OFFSET)
        | sequence
    )


def parse_id(value: int) -> IdComponents:
    """
    拆解ID

    Args:
        value: 64位ID

    Returns:
        IdComponents: 拆解后的各字段

    Raises:
        InvalidIdError: 如果value不是[0, 2^63)范围内的整数
    """
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_ID:
        raise InvalidIdError(value)

    return IdComponents(
        id=value,
        timestamp=(value >> TIMESTAMP_OFFSET) + EPOCH_START,
        worker_id=(value >> WORKER_ID_OFFSET) & MAX_WORKER_ID,
        sequence=value & MAX_SEQUENCE,
    )
