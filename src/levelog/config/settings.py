"""运行时默认配置（基于 pydantic-settings）。

环境变量优先，用于构造默认 logger 以及诊断通道。
"""

from __future__ import annotations

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """levelog 默认配置模型（可通过环境变量注入）。

    环境变量前缀：LEVELOG_
    例如 LEVELOG_MIN_LEVEL=WARN
    """

    environment: str = "development"

    # 级别与输出
    min_level: str = "DEBUG"
    mode: str = "normal"
    timestamps: bool = False
    colorize: bool = True
    pretty_print: bool = True
    date_format: str = "iso"

    # 文件日志
    log_file: Optional[str] = None
    log_format: str = "text"
    max_file_size: int = 10 * 1024 * 1024
    max_files: int = 5

    # 缓冲写入
    buffered: bool = False
    buffer_size: int = 100
    flush_interval: float = 1.0

    # 诊断通道
    diagnostics_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="LEVELOG_")


# module-level cached settings
_SETTINGS: Optional[Settings] = None


def get_settings(force_reload: bool = False) -> Settings:
    """返回全局 Settings 单例（按需从环境加载）。

    如果 force_reload=True，会从环境/来源重新创建实例。
    """

    global _SETTINGS
    if _SETTINGS is None or force_reload:
        _SETTINGS = Settings()
    return _SETTINGS


__all__ = ["Settings", "get_settings"]
