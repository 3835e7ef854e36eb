"""
时间处理模块

提供毫秒级时钟读取、毫秒时间戳与datetime之间的转换，以及JSON时间编码器。
"""

import datetime
import json
import time
from typing import Any, Optional, Union


def current_millis() -> int:
    """
    获取当前时间戳（毫秒）

    Returns:
        int: 自Unix纪元起的毫秒数
    """
    return time.time_ns() // 1_000_000


def millis_to_datetime(millis: int) -> datetime.datetime:
    """
    将毫秒时间戳转换为UTC时区的datetime

    Args:
        millis: 自Unix纪元起的毫秒数

    Returns:
        datetime.datetime: 带UTC时区信息的日期时间对象
    """
    seconds, remainder = divmod(millis, 1000)
    return datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc).replace(
        microsecond=remainder * 1000
    )


class JSONTimeEncoder(json.JSONEncoder):
    """
    JSON时间编码器

    扩展JSON编码器，支持datetime和date类型的序列化。
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime.datetime, datetime.date)):
            return format_datetime(obj)
        return super().default(obj)


def format_datetime(
    dt: Union[datetime.datetime, datetime.date],
    format_str: Optional[str] = None,
) -> str:
    """
    格式化日期时间

    Args:
        dt: 日期时间对象
        format_str: 格式化字符串，默认为ISO 8601格式

    Returns:
        str: 格式化后的字符串
    """
    if format_str:
        return dt.strftime(format_str)

    if isinstance(dt, datetime.datetime):
        # 保留毫秒精度，与ID中的时间戳精度一致
        return dt.isoformat(timespec="milliseconds")
    elif isinstance(dt, datetime.date):
        return dt.isoformat()
    else:
        raise TypeError(f"不支持的类型: {type(dt)}")


def json_dumps(obj: Any, **kwargs: Any) -> str:
    """
    使用时间编码器将对象序列化为JSON字符串

    Args:
        obj: 要序列化的对象
        **kwargs: 传递给json.dumps的其他参数

    Returns:
        str: JSON字符串
    """
    return json.dumps(obj, cls=JSONTimeEncoder, **kwargs)
