"""
日志模块

控制台输出沿用 loguru，可选再写一份滚动日志文件，
方便在同步失败后附上完整记录。
"""

import os
import sys
from typing import Optional

from loguru import logger


CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {message}"


def resolve_level(level: Optional[str] = None) -> str:
    """显式级别优先，其次 PACKSYNC_DEBUG=1 开启 DEBUG，默认 INFO"""
    if level:
        return level.upper()
    return "DEBUG" if os.environ.get("PACKSYNC_DEBUG", "0") == "1" else "INFO"


def setup_logger(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    rotation: str = "10 MB",
    retention: int = 3,
    sink=sys.stdout,
    colorize: bool = True,
) -> None:
    """
    配置 PackSync 日志

    Args:
        level: 日志级别，为空时读取 PACKSYNC_DEBUG
        log_file: 额外写入的日志文件，文件中始终记录 DEBUG 级别
        rotation: 日志文件滚动条件（loguru 语法，如 "10 MB"、"1 day"）
        retention: 保留的旧日志文件个数
        sink: 控制台输出目标
        colorize: 控制台是否着色
    """
    level = resolve_level(level)
    debug = level == "DEBUG"

    logger.remove()
    logger.add(
        sink=sink,
        format=CONSOLE_FORMAT,
        enqueue=True,
        level=level,
        colorize=colorize,
        backtrace=debug,
        diagnose=debug,
    )

    if log_file:
        directory = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(directory, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level="DEBUG",
            encoding="utf-8",
            rotation=rotation,
            retention=retention,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
        logger.debug(f"日志文件: {log_file}")

    if debug:
        logger.debug("DEBUG 模式已启用")


__all__ = ["logger", "setup_logger", "resolve_level"]
