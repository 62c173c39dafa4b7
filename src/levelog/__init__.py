"""levelog：带级别过滤、控制台输出与可轮转文件的 logger。

    >>> from levelog import get_logger
    >>> log = get_logger("api")
    >>> log.info("request handled", status=200)
"""

from levelog.config.options import LoggerConfig
from levelog.core.entry import DateFormat, LogEntry, LogFormat
from levelog.core.levels import LogLevel, LogMode
from levelog.core.logger import LifecycleState, Logger
from levelog.core.timing import ProfileHandle, TimerHandle
from levelog.errors import ConfigError, FileIOError, LevelogError, SerializationError
from levelog.factory import (
    create_environment_logger,
    create_logger,
    create_structured_logger,
    get_default_logger,
    get_logger,
)

__all__ = [
    "ConfigError",
    "DateFormat",
    "FileIOError",
    "LevelogError",
    "LifecycleState",
    "LogEntry",
    "LogFormat",
    "LogLevel",
    "LogMode",
    "Logger",
    "LoggerConfig",
    "ProfileHandle",
    "SerializationError",
    "TimerHandle",
    "create_environment_logger",
    "create_logger",
    "create_structured_logger",
    "get_default_logger",
    "get_logger",
]
