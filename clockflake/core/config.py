"""
配置管理模块

提供从多种来源加载配置的功能，支持配置文件（YAML/JSON）、环境变量和.env文件，
并按照优先级加载配置：配置文件 > 环境变量 > .env文件 > 默认值。
"""

import json
import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="BaseSettings")


def locate_config_file(
    file_name: str, explicit_path: Optional[str] = None
) -> Optional[Path]:
    """
    按照优先级定位配置文件路径

    Args:
        file_name: 配置文件名
        explicit_path: 显式指定的配置文件路径

    Returns:
        Optional[Path]: 配置文件路径，如果未找到则返回None
    """
    paths_to_check = []

    # 1. 显式指定的路径
    if explicit_path:
        paths_to_check.append(Path(explicit_path))

    # 2. 当前工作目录
    paths_to_check.append(Path.cwd() / file_name)

    # 3. 应用程序运行目录
    app_dir = Path(sys.argv[0]).parent.absolute()
    paths_to_check.append(app_dir / file_name)

    # 4. 用户主目录下的.clockflake目录
    paths_to_check.append(Path.home() / ".clockflake" / file_name)

    for path in paths_to_check:
        if path.exists() and path.is_file():
            return path

    return None


def load_yaml_config(file_path: Path) -> Dict[str, Any]:
    """
    加载YAML配置文件

    Args:
        file_path: 配置文件路径

    Returns:
        Dict[str, Any]: 配置字典
    """
    with open(file_path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"解析YAML配置文件失败: {e}")
            return {}


def load_json_config(file_path: Path) -> Dict[str, Any]:
    """
    加载JSON配置文件

    Args:
        file_path: 配置文件路径

    Returns:
        Dict[str, Any]: 配置字典
    """
    with open(file_path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"解析JSON配置文件失败: {e}")
            return {}


def load_config_from_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    从配置文件加载配置

    显式指定的路径按扩展名选择解析方式；未指定时依次查找config.yaml和config.json。

    Args:
        config_path: 配置文件路径，如果未指定则按优先级自动查找

    Returns:
        Dict[str, Any]: 配置字典
    """
    if config_path and Path(config_path).suffix.lower() == ".json":
        candidates = [("config.json", load_json_config)]
    else:
        candidates = [("config.yaml", load_yaml_config), ("config.json", load_json_config)]

    for file_name, loader in candidates:
        path = locate_config_file(file_name, config_path)
        if path:
            logger.info(f"已从 {path} 加载配置")
            return loader(path)

    logger.warning("未找到配置文件，将使用环境变量和默认值")
    return {}


def load_settings(
    settings_class: Type[T],
    config_path: Optional[str] = None,
    env_file: Optional[str] = None,
) -> T:
    """
    加载应用设置，按照优先级从配置文件、环境变量和.env文件加载

    Args:
        settings_class: 设置类型，必须继承自BaseSettings
        config_path: 配置文件路径，如果未指定则按优先级自动查找
        env_file: .env文件路径，如果未指定则按优先级自动查找

    Returns:
        T: 设置实例
    """
    env_path = Path(env_file) if env_file else locate_config_file(".env")
    if env_path and env_path.exists():
        # 不覆盖已存在的环境变量，保证环境变量优先于.env文件
        load_dotenv(env_path, override=False)
        logger.info(f"已加载环境变量文件: {env_path}")

    config_dict = load_config_from_file(config_path)

    # 初始化参数优先级最高，配置文件中的值会覆盖环境变量
    return settings_class(**config_dict)


class LogLevel(str, Enum):
    """日志级别枚举"""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogConfig(BaseModel):
    """日志配置"""

    level: LogLevel = LogLevel.INFO
    format: str = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | worker {extra[worker_id]} | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    file_path: Optional[str] = None
    rotation: str = "20 MB"
    retention: str = "1 week"
    compression: str = "zip"
    serialize: bool = False


class GeneratorConfig(BaseModel):
    """ID生成器配置"""

    # 取值范围由IdGenerator校验
    worker_id: int = 0


class ServerConfig(BaseModel):
    """HTTP服务配置"""

    host: str = "127.0.0.1"
    port: int = 8000
    max_batch_size: int = 1000


class Settings(BaseSettings):
    """应用设置"""

    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log: LogConfig = Field(default_factory=LogConfig)

    model_config = SettingsConfigDict(
        env_prefix="CLOCKFLAKE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )
