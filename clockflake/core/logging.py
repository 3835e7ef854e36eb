"""
日志管理模块

基于loguru输出日志。uvicorn、fastapi等使用标准库logging的日志器被转发到loguru，
每条日志都带有当前进程的工作机器ID，便于在集群日志中区分发号实例。
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from clockflake.core.config import LogConfig

# 转发到loguru的标准库日志器
INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")


class InterceptHandler(logging.Handler):
    """将标准库logging的记录转交给loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # 跳过logging模块自身的栈帧，使loguru显示真实的调用位置
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _build_sinks(config: LogConfig) -> List[Dict[str, Any]]:
    sinks: List[Dict[str, Any]] = [
        {"sink": sys.stderr, "level": config.level.value, "format": config.format}
    ]

    if config.file_path:
        log_file_path = Path(config.file_path)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        sinks.append(
            {
                "sink": log_file_path,
                "level": config.level.value,
                "format": config.format,
                "rotation": config.rotation,
                "retention": config.retention,
                "compression": config.compression,
                "serialize": config.serialize,
            }
        )
    return sinks


def setup_logging(config: Optional[LogConfig] = None, worker_id: Optional[int] = None) -> List[int]:
    """
    设置日志系统

    替换loguru已有的全部输出，并接管标准库logging的日志。

    Args:
        config: 日志配置，默认使用LogConfig的默认值
        worker_id: 工作机器ID，写入每条日志的extra中

    Returns:
        List[int]: loguru输出处理器的ID列表
    """
    config = config or LogConfig()

    handler_ids = logger.configure(
        handlers=_build_sinks(config),
        extra={"worker_id": "-" if worker_id is None else worker_id},
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    logger.info(f"日志系统已初始化，级别: {config.level.value}，工作机器ID: {worker_id}")
    return handler_ids
