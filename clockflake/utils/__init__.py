"""
工具模块

提供时间读取、时间格式化等实用函数。
"""

from clockflake.utils.time import (
    JSONTimeEncoder,
    current_millis,
    format_datetime,
    json_dumps,
    millis_to_datetime,
)

__all__ = [
    "JSONTimeEncoder",
    "current_millis",
    "format_datetime",
    "json_dumps",
    "millis_to_datetime",
]
