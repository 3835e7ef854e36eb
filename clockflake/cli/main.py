"""
命令行工具主入口模块

提供生成ID、解析ID和启动HTTP服务的命令。
"""

import sys
from typing import Optional

import click
from pydantic import ValidationError

from clockflake import __version__
from clockflake.core.config import Settings, load_settings
from clockflake.core.exceptions import ClockflakeError
from clockflake.core.generator import IdGenerator
from clockflake.core.layout import parse_id
from clockflake.utils.time import format_datetime, json_dumps


def _load(config: Optional[str], worker_id: Optional[int]) -> Settings:
    try:
        settings = load_settings(Settings, config_path=config)
    except ValidationError as e:
        click.echo(f"错误: 配置无效\n{e}", err=True)
        sys.exit(1)
    if worker_id is not None:
        settings.generator.worker_id = worker_id
    return settings


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """clockflake ID生成器命令行工具"""
    pass


@main.command()
@click.option("--worker-id", "-w", type=int, default=None, help="工作机器ID (0-255)，默认读取配置")
@click.option("--count", "-n", type=click.IntRange(min=1), default=1, help="生成数量")
@click.option("--config", default=None, help="配置文件路径")
def generate(worker_id: Optional[int], count: int, config: Optional[str]) -> None:
    """生成ID，每行输出一个"""
    settings = _load(config, worker_id)
    try:
        generator = IdGenerator(settings.generator.worker_id)
        for value in generator.next_ids(count):
            click.echo(value)
    except ClockflakeError as e:
        click.echo(f"错误: {e.message}", err=True)
        sys.exit(1)


@main.command()
@click.argument("value", type=int)
@click.option("--json", "as_json", is_flag=True, help="以JSON格式输出")
def parse(value: int, as_json: bool) -> None:
    """
    解析ID

    VALUE: 要解析的ID
    """
    try:
        components = parse_id(value)
    except ClockflakeError as e:
        click.echo(f"错误: {e.message}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json_dumps(components.model_dump()))
        return

    click.echo(f"id:           {components.id}")
    click.echo(f"timestamp:    {components.timestamp}")
    click.echo(f"generated_at: {format_datetime(components.generated_at)}")
    click.echo(f"worker_id:    {components.worker_id}")
    click.echo(f"sequence:     {components.sequence}")


@main.command()
@click.option("--host", default=None, help="监听地址，默认读取配置")
@click.option("--port", type=int, default=None, help="监听端口，默认读取配置")
@click.option("--worker-id", "-w", type=int, default=None, help="工作机器ID (0-255)，默认读取配置")
@click.option("--config", default=None, help="配置文件路径")
def serve(
    host: Optional[str], port: Optional[int], worker_id: Optional[int], config: Optional[str]
) -> None:
    """启动ID发号服务"""
    import uvicorn

    from clockflake.core.logging import setup_logging
    from clockflake.web.app import create_app

    settings = _load(config, worker_id)
    setup_logging(settings.log, worker_id=settings.generator.worker_id)

    try:
        app = create_app(settings)
    except ClockflakeError as e:
        click.echo(f"错误: {e.message}", err=True)
        sys.exit(1)

    # 日志已由loguru接管，不使用uvicorn自带的日志配置
    uvicorn.run(
        app,
        host=host if host is not None else settings.server.host,
        port=port if port is not None else settings.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
