"""
核心模块

提供ID生成器、位布局、配置、日志和异常定义。
"""

from clockflake.core.config import Settings, load_settings
from clockflake.core.exceptions import (
    ClockflakeError,
    ClockUnavailableError,
    InvalidIdError,
    InvalidWorkerIDError,
)
from clockflake.core.generator import GeneratorState, IdGenerator
from clockflake.core.layout import (
    EPOCH_START,
    MAX_SEQUENCE,
    MAX_WORKER_ID,
    IdComponents,
    compose_id,
    parse_id,
)
from clockflake.core.logging import setup_logging

__all__ = [
    "Settings",
    "load_settings",
    "ClockflakeError",
    "ClockUnavailableError",
    "InvalidIdError",
    "InvalidWorkerIDError",
    "GeneratorState",
    "IdGenerator",
    "EPOCH_START",
    "MAX_SEQUENCE",
    "MAX_WORKER_ID",
    "IdComponents",
    "compose_id",
    "parse_id",
    "setup_logging",
]
