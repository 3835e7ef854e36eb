"""
命令行工具模块
"""

from clockflake.cli.main import main

__all__ = ["main"]
