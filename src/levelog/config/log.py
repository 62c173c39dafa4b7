"""Settings 到 logger 配置的适配器。

本模块负责把 `Settings` 中的字段映射为 `LoggerConfig` 可接受的配置项，以及
`levelog.utils.log.configure_diagnostics` 的参数，并提供
`apply_logging_from_settings` 做一次性或幂等的诊断通道配置。
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from levelog.config.options import LoggerConfig, merge_config
from levelog.config.settings import Settings, get_settings


def map_settings_to_config_kwargs(settings: Settings) -> Dict[str, Any]:
    """把 Settings 映射为 LoggerConfig 的配置项字典。"""
    return {
        "environment": settings.environment,
        "min_level": settings.min_level,
        "mode": settings.mode,
        "timestamps": settings.timestamps,
        "colorize": settings.colorize,
        "pretty_print": settings.pretty_print,
        "date_format": settings.date_format,
        "log_file": settings.log_file,
        "log_format": settings.log_format,
        "max_file_size": settings.max_file_size,
        "max_files": settings.max_files,
        "buffered": settings.buffered,
        "buffer_size": settings.buffer_size,
        "flush_interval": settings.flush_interval,
    }


def map_settings_to_diagnostics_kwargs(settings: Settings) -> Dict[str, Any]:
    """把 Settings 映射为传给 configure_diagnostics 的关键字参数字典。"""
    return {"level": settings.diagnostics_level}


def config_from_settings(settings: Optional[Settings] = None) -> LoggerConfig:
    """从 settings 构造 LoggerConfig，非法的环境变量值回退到默认值。"""
    if settings is None:
        settings = get_settings()
    config, _ = merge_config(LoggerConfig(), map_settings_to_config_kwargs(settings))
    return config


def apply_logging_from_settings(settings: Optional[Settings] = None) -> None:
    """从 settings 加载并应用诊断通道配置。

    如果未传入 settings，会使用 `get_settings()` 获取单例。
    """
    if settings is None:
        settings = get_settings()

    kwargs = map_settings_to_diagnostics_kwargs(settings)

    # 延迟导入，测试中可以 patch levelog.utils.log.configure_diagnostics
    from levelog.utils.log import configure_diagnostics

    configure_diagnostics(**kwargs)


__all__ = [
    "map_settings_to_config_kwargs",
    "map_settings_to_diagnostics_kwargs",
    "config_from_settings",
    "apply_logging_from_settings",
]
