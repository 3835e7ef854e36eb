"""
HTTP服务模块

基于FastAPI的ID发号服务。生成器通过Injector以单例方式绑定，
所有请求共享同一个生成器实例，由生成器内部的锁保证串行化。

路由：
- GET /ids/next          生成一个ID
- GET /ids?count=N       批量生成ID
- GET /ids/{id}/parse    解析ID
- GET /state             生成器状态
- GET /health            健康检查
- GET /metrics           Prometheus指标
"""

from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from injector import Binder, Injector, Module, provider, singleton
from loguru import logger

from clockflake import __version__
from clockflake.core.config import Settings
from clockflake.core.exceptions import ClockflakeError
from clockflake.core.generator import GeneratorState, IdGenerator
from clockflake.core.layout import IdComponents, parse_id
from clockflake.web.exception_handlers import setup_exception_handlers
from clockflake.web.metrics import GeneratorMetrics
from clockflake.web.models import ApiResponse, IdBatchResponse, IdResponse


class GeneratorModule(Module):
    """
    依赖注入模块

    绑定配置对象、ID生成器和指标对象，均为单例。
    """

    def __init__(self, settings: Settings, generator: Optional[IdGenerator] = None):
        self._settings = settings
        self._generator = generator

    def configure(self, binder: Binder) -> None:
        binder.bind(Settings, to=self._settings, scope=singleton)

    @singleton
    @provider
    def provide_generator(self) -> IdGenerator:
        if self._generator is not None:
            return self._generator
        return IdGenerator(self._settings.generator.worker_id)

    @singleton
    @provider
    def provide_metrics(self, generator: IdGenerator) -> GeneratorMetrics:
        return GeneratorMetrics(generator)


def get_injector(request: Request) -> Injector:
    return request.app.state.injector


def get_settings(injector: Injector = Depends(get_injector)) -> Settings:
    return injector.get(Settings)


def get_generator(injector: Injector = Depends(get_injector)) -> IdGenerator:
    return injector.get(IdGenerator)


def get_metrics(injector: Injector = Depends(get_injector)) -> GeneratorMetrics:
    return injector.get(GeneratorMetrics)


def create_app(
    settings: Optional[Settings] = None,
    generator: Optional[IdGenerator] = None,
) -> FastAPI:
    """
    创建FastAPI应用

    Args:
        settings: 应用设置，默认使用Settings()
        generator: 外部提供的ID生成器，默认根据settings.generator.worker_id创建

    Returns:
        FastAPI: 应用实例

    Raises:
        InvalidWorkerIDError: 如果配置的工作机器ID超出范围
    """
    settings = settings or Settings()
    injector = Injector([GeneratorModule(settings, generator)])

    # 立即创建生成器，使无效的工作机器ID在启动时暴露
    worker_id = injector.get(IdGenerator).worker_id

    app = FastAPI(
        title="clockflake",
        description="可自动修复时钟回拨的Snowflake ID发号服务",
        version=__version__,
    )
    app.state.injector = injector
    setup_exception_handlers(app)

    # 同步路由在线程池中执行，忙等待不会阻塞事件循环
    @app.get("/ids/next", response_model=ApiResponse[IdResponse], tags=["ids"])
    def next_id(
        generator: IdGenerator = Depends(get_generator),
        metrics: GeneratorMetrics = Depends(get_metrics),
    ):
        """生成一个ID"""
        value = generator.next_id()
        metrics.ids_generated.inc()
        return ApiResponse.success_response(IdResponse.from_id(value))

    @app.get("/ids", response_model=ApiResponse[IdBatchResponse], tags=["ids"])
    def next_ids(
        count: int = Query(1, ge=1),
        generator: IdGenerator = Depends(get_generator),
        metrics: GeneratorMetrics = Depends(get_metrics),
        settings: Settings = Depends(get_settings),
    ):
        """批量生成ID"""
        max_batch_size = settings.server.max_batch_size
        if count > max_batch_size:
            raise ClockflakeError(
                code="INVALID_BATCH_SIZE",
                message=f"单次最多生成{max_batch_size}个ID，请求数量: {count}",
                details={"count": count, "max_batch_size": max_batch_size},
            )

        ids = generator.next_ids(count)
        metrics.ids_generated.inc(len(ids))
        return ApiResponse.success_response(
            IdBatchResponse(count=len(ids), ids=[str(value) for value in ids])
        )

    @app.get("/ids/{value}/parse", response_model=ApiResponse[IdComponents], tags=["ids"])
    def parse(value: int):
        """解析ID"""
        return ApiResponse.success_response(parse_id(value))

    @app.get("/state", response_model=ApiResponse[GeneratorState], tags=["generator"])
    def state(generator: IdGenerator = Depends(get_generator)):
        """获取生成器状态"""
        return ApiResponse.success_response(generator.snapshot())

    @app.get("/health", tags=["generator"])
    def health(generator: IdGenerator = Depends(get_generator)):
        """健康检查"""
        return {"status": "ok", "worker_id": generator.worker_id}

    @app.get("/metrics", include_in_schema=False)
    def metrics_endpoint(metrics: GeneratorMetrics = Depends(get_metrics)):
        content, content_type = metrics.render()
        return Response(content=content, media_type=content_type)

    logger.info(f"ID发号服务已创建，工作机器ID: {worker_id}")
    return app
