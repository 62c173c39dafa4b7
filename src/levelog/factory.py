"""Logger 工厂与进程级默认 logger。

默认 logger 在第一次调用 `get_default_logger()` 时按 Settings 构造，只构造一次，
并在解释器退出时关闭。除非设置了 LEVELOG_LOG_FILE，默认 logger 不写文件。
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union
import atexit
import threading

from levelog.config.log import apply_logging_from_settings, config_from_settings
from levelog.config.options import LoggerConfig
from levelog.config.settings import get_settings
from levelog.core.entry import LogEntry
from levelog.core.formatter import entry_record, safe_stringify
from levelog.core.logger import Logger

_DEFAULT: Optional[Logger] = None
_DEFAULT_LOCK = threading.Lock()


def _close_default() -> None:
    if _DEFAULT is not None:
        _DEFAULT.close()


atexit.register(_close_default)


def get_default_logger(force_reload: bool = False) -> Logger:
    """返回进程级默认 logger（惰性构造，线程安全）。

    force_reload=True 时关闭旧实例并按当前环境重新构造。
    """
    global _DEFAULT
    with _DEFAULT_LOCK:
        if _DEFAULT is not None and not force_reload:
            return _DEFAULT
        if _DEFAULT is not None:
            _DEFAULT.close()

        settings = get_settings(force_reload=force_reload)
        apply_logging_from_settings(settings)
        config = config_from_settings(settings)
        _DEFAULT = Logger(config, disable_file_logging=not config.log_file)
        return _DEFAULT


def get_logger(name: Optional[str] = None) -> Logger:
    """返回默认 logger，或其指定命名空间的子 logger。"""
    logger = get_default_logger()
    if name:
        return logger.child(name)
    return logger


def create_logger(
    config: Union[LoggerConfig, Mapping[str, Any], None] = None, **options: Any
) -> Logger:
    """按给定配置创建独立的 logger。"""
    return Logger(config, **options)


def create_environment_logger(environment: Optional[str] = None, **options: Any) -> Logger:
    """按运行环境预设创建 logger。

    production 使用 JSON 文件格式、INFO 级别、无颜色；development 使用 debug 模式。
    """
    env = environment or get_settings().environment
    production = env == "production"
    preset: dict[str, Any] = {
        "environment": env,
        "timestamps": True,
        "colorize": not production,
        "log_format": "json" if production else "text",
        "mode": "debug" if env == "development" else "normal",
        "min_level": "INFO" if production else "DEBUG",
    }
    preset.update(options)
    return Logger(preset)


def create_structured_logger(service_name: str, version: str, **options: Any) -> Logger:
    """为微服务创建结构化 logger，每条 JSON 记录都带上 service 与 version。"""
    preset: dict[str, Any] = {
        "log_format": "json",
        "timestamps": True,
        "environment": get_settings().environment,
    }
    preset.update(options)
    logger = Logger(preset, namespace=service_name)

    def _with_service(entry: LogEntry) -> str:
        record = entry_record(entry)
        record.update({"service": service_name, "version": version})
        return safe_stringify(record, pretty=False) + "\n"

    logger.set_formatter(_with_service)
    return logger


__all__ = [
    "get_default_logger",
    "get_logger",
    "create_logger",
    "create_environment_logger",
    "create_structured_logger",
]
