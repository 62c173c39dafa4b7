from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from levelog.config.options import LoggerConfig


class LogLevel(str, Enum):
    """日志级别。"""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"
    SUCCESS = "SUCCESS"


class LogMode(str, Enum):
    """输出模式。silent 关闭一切输出，normal 屏蔽 TRACE。"""

    SILENT = "silent"
    NORMAL = "normal"
    VERBOSE = "verbose"
    DEBUG = "debug"


# SUCCESS 与 INFO 同级
LEVEL_RANKS: dict[LogLevel, int] = {
    LogLevel.TRACE: 0,
    LogLevel.DEBUG: 1,
    LogLevel.INFO: 2,
    LogLevel.WARN: 3,
    LogLevel.ERROR: 4,
    LogLevel.FATAL: 5,
    LogLevel.SUCCESS: 2,
}

ALL_LEVELS: tuple[LogLevel, ...] = tuple(LogLevel)

_ALIASES = {"WARNING": LogLevel.WARN, "CRITICAL": LogLevel.FATAL}


def parse_level(value: Any) -> Optional[LogLevel]:
    """把字符串或 LogLevel 转换为 LogLevel，无法识别时返回 None。"""
    if isinstance(value, LogLevel):
        return value
    if not isinstance(value, str):
        return None
    name = value.strip().upper()
    if name in _ALIASES:
        return _ALIASES[name]
    try:
        return LogLevel(name)
    except ValueError:
        return None


class LevelGate:
    """根据当前配置决定某个级别是否输出。无副作用。"""

    def __init__(self, config: "LoggerConfig") -> None:
        self.config = config

    def should_emit(self, level: LogLevel) -> bool:
        config = self.config
        if config.mode == LogMode.SILENT:
            return False
        if level not in config.levels:
            return False
        if level == LogLevel.TRACE:
            # normal 模式下 TRACE 永远不输出；verbose/debug 下无视 min_level
            return config.mode != LogMode.NORMAL
        return LEVEL_RANKS[level] >= LEVEL_RANKS[config.min_level]


__all__ = [
    "LogLevel",
    "LogMode",
    "LEVEL_RANKS",
    "ALL_LEVELS",
    "parse_level",
    "LevelGate",
]
