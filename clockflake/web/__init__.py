"""
Web模块

提供基于FastAPI的ID发号服务、异常处理和Prometheus指标。
"""

from clockflake.web.app import GeneratorModule, create_app
from clockflake.web.exception_handlers import setup_exception_handlers
from clockflake.web.metrics import GeneratorCollector, GeneratorMetrics
from clockflake.web.models import ApiResponse, IdBatchResponse, IdResponse

__all__ = [
    "GeneratorModule",
    "create_app",
    "setup_exception_handlers",
    "GeneratorCollector",
    "GeneratorMetrics",
    "ApiResponse",
    "IdBatchResponse",
    "IdResponse",
]
