"""
异常处理器模块

将生成器的异常转换为标准的API响应格式。
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from clockflake.core.exceptions import ClockflakeError, ClockUnavailableError
from clockflake.web.models import ApiResponse


def get_status_code(exc: ClockflakeError) -> int:
    """
    获取异常对应的HTTP状态码

    Args:
        exc: 异常对象

    Returns:
        int: HTTP状态码
    """
    if isinstance(exc, ClockUnavailableError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_400_BAD_REQUEST


def setup_exception_handlers(app: FastAPI) -> None:
    """
    设置异常处理器

    Args:
        app: FastAPI应用实例
    """

    @app.exception_handler(ClockflakeError)
    async def clockflake_exception_handler(
        request: Request, exc: ClockflakeError
    ) -> JSONResponse:
        status_code = get_status_code(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(f"{request.method} {request.url.path} 失败: [{exc.code}] {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} 请求无效: [{exc.code}] {exc.message}")

        return JSONResponse(
            status_code=status_code,
            content=ApiResponse.error_response(
                code=exc.code, message=exc.message, details=exc.details
            ).model_dump(),
        )
