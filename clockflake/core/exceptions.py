"""
异常定义模块

定义ID生成器使用的自定义异常类。每个异常携带错误代码、错误消息和错误详情，
便于在HTTP服务和命令行中统一输出。
"""

from typing import Any, Dict, Optional


class ClockflakeError(Exception):
    """基础异常类"""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        初始化异常

        Args:
            code: 错误代码
            message: 错误消息
            details: 错误详情
        """
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidWorkerIDError(ClockflakeError):
    """工作机器ID超出范围异常"""

    def __init__(self, worker_id: Any, max_worker_id: int):
        super().__init__(
            code="INVALID_WORKER_ID",
            message=f"工作机器ID必须是0到{max_worker_id}之间的整数，实际为: {worker_id!r}",
            details={"worker_id": worker_id, "max_worker_id": max_worker_id},
        )


class ClockUnavailableError(ClockflakeError):
    """时钟不可用异常

    时钟读取失败，或读数早于纪元起点时抛出。不会在内部重试。
    """

    def __init__(self, message: str = "无法读取系统时钟", details: Optional[Dict[str, Any]] = None):
        super().__init__(code="CLOCK_UNAVAILABLE", message=message, details=details)


class InvalidIdError(ClockflakeError):
    """ID无法解析异常"""

    def __init__(self, value: Any):
        super().__init__(
            code="INVALID_ID",
            message=f"不是有效的64位ID: {value!r}",
            details={"value": str(value)},
        )
