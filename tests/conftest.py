import logging
import os
import sys
from collections import deque
from typing import Deque

import pytest
from loguru import logger

from clockflake.core.layout import EPOCH_START
from clockflake.core.logging import INTERCEPTED_LOGGERS

# 测试使用的基准时间，保证时钟读数晚于纪元起点
BASE = EPOCH_START + 1_000_000


class FakeClock:
    """
    可控时钟

    优先按顺序返回预设的读数，预设读数用完后返回current。
    """

    def __init__(self, current: int = BASE):
        self.current = current
        self.script: Deque[int] = deque()
        self.calls = 0

    def set(self, millis: int) -> None:
        self.current = millis

    def queue(self, *readings: int) -> None:
        self.script.extend(readings)

    def __call__(self) -> int:
        self.calls += 1
        if self.script:
            return self.script.popleft()
        return self.current


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def clean_env():
    """测试结束后恢复环境变量（load_dotenv会直接写入os.environ）"""
    saved = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def restore_logging():
    """测试结束后恢复标准库logging与loguru的输出配置"""
    root_handlers = logging.root.handlers[:]
    root_level = logging.root.level
    intercepted = {
        name: (logging.getLogger(name).handlers[:], logging.getLogger(name).propagate)
        for name in INTERCEPTED_LOGGERS
    }
    yield
    logging.root.handlers = root_handlers
    logging.root.setLevel(root_level)
    for name, (handlers, propagate) in intercepted.items():
        logging.getLogger(name).handlers = handlers
        logging.getLogger(name).propagate = propagate
    logger.configure(handlers=[{"sink": sys.stderr}], extra={})
