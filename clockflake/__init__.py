"""
clockflake - 可自动修复时钟回拨的Snowflake ID生成器

生成64位、按时间有序、全局唯一的ID。发生系统时钟回拨时，生成器改用
“真实时间 + 偏移量”的虚拟时间戳继续生成ID，并在真实时间追上后逐步偿还偏移量。

主要功能：
----------
* ID生成：线程安全的IdGenerator
* ID解析：按位布局拆解时间戳、工作机器ID和序列号
* HTTP服务：基于FastAPI的ID发号服务，附带Prometheus指标
* 命令行：生成、解析ID以及启动服务
* 配置管理：多源配置加载（YAML/JSON、环境变量、.env）
* 统一日志：基于loguru的日志管理

使用方法：
----------
::

    from clockflake import IdGenerator, parse_id

    generator = IdGenerator(worker_id=1)
    new_id = generator.next_id()
    print(parse_id(new_id))
"""

import importlib.util

# 使用importlib.util.find_spec检查_version模块是否存在
if importlib.util.find_spec("clockflake._version") is not None:
    from ._version import __version__  # type: ignore
else:
    # 如果_version.py不存在（例如在开发环境中初次克隆后），使用默认版本
    __version__ = "0.0.0.dev0"

from clockflake.core import (
    ClockflakeError,
    ClockUnavailableError,
    GeneratorState,
    IdComponents,
    IdGenerator,
    InvalidIdError,
    InvalidWorkerIDError,
    compose_id,
    parse_id,
)

__all__ = [
    "__version__",
    "ClockflakeError",
    "ClockUnavailableError",
    "GeneratorState",
    "IdComponents",
    "IdGenerator",
    "InvalidIdError",
    "InvalidWorkerIDError",
    "compose_id",
    "parse_id",
]
