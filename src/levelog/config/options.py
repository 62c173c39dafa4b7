"""Logger 配置模型。

`LoggerConfig` 是不可变的配置快照：子 logger 拿到的是父 logger 当时的对象，
父 logger 之后的 `set_config` 只会生成新对象，不会影响已创建的子 logger。

`merge_config` 逐项校验合并，非法项回退到原值而不抛出异常。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from levelog.core.entry import DateFormat, LogFormat
from levelog.core.levels import ALL_LEVELS, LogLevel, LogMode, parse_level
from levelog.errors import ConfigError
from levelog.utils.log import get_diagnostics

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class LoggerConfig(BaseModel):
    """单个 Logger 的配置。

    Examples:
        >>> config = LoggerConfig(min_level="WARN", log_file="logs/app.log")
        >>> config.min_level
        <LogLevel.WARN: 'WARN'>
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # 级别过滤
    levels: tuple[LogLevel, ...] = Field(default=ALL_LEVELS, description="允许输出的级别集合")
    min_level: LogLevel = Field(default=LogLevel.DEBUG, description="最低输出级别")
    mode: LogMode = Field(default=LogMode.NORMAL, description="输出模式")

    # 控制台
    timestamps: bool = Field(default=False, description="控制台是否输出时间戳")
    colorize: bool = Field(default=True, description="控制台是否使用 ANSI 颜色")
    pretty_print: bool = Field(default=True, description="结构化参数是否缩进输出")
    date_format: DateFormat = Field(default=DateFormat.ISO)
    environment: str = Field(default="development")

    # 文件
    log_file: Optional[str] = Field(default=None, description="日志文件路径，留空则不写文件")
    disable_file_logging: bool = False
    log_format: LogFormat = Field(default=LogFormat.TEXT)
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0, description="轮转阈值（字节）")
    max_files: int = Field(default=5, gt=0, description="保留的归档文件数")

    # 缓冲写入
    buffered: bool = Field(default=False, description="是否启用异步缓冲写入")
    buffer_size: int = Field(default=100, gt=0)
    flush_interval: float = Field(default=1.0, gt=0, description="缓冲刷新间隔（秒）")
    flush_timeout: float = Field(default=1.0, gt=0)
    close_timeout: float = Field(default=2.0, gt=0)

    @field_validator("min_level", mode="before")
    @classmethod
    def validate_min_level(cls, v: Any) -> LogLevel:
        level = parse_level(v)
        if level is None:
            raise ValueError(f"unknown level: {v!r}")
        return level

    @field_validator("levels", mode="before")
    @classmethod
    def validate_levels(cls, v: Any) -> tuple[LogLevel, ...]:
        if isinstance(v, (str, LogLevel)):
            v = [v]
        parsed = []
        for item in v:
            level = parse_level(item)
            if level is None:
                raise ValueError(f"unknown level: {item!r}")
            parsed.append(level)
        return tuple(parsed)

    @field_validator("mode", "log_format", "date_format", mode="before")
    @classmethod
    def normalize_choice(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("log_file", mode="before")
    @classmethod
    def normalize_log_file(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v) if isinstance(v, Path) else v
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def file_enabled(self) -> bool:
        return bool(self.log_file) and not self.disable_file_logging


# 变化后需要重建文件通道的配置项
FILE_OPTIONS = ("log_file", "disable_file_logging", "buffered", "buffer_size", "flush_interval")


def merge_config(
    current: LoggerConfig, updates: Mapping[str, Any]
) -> tuple[LoggerConfig, list[str]]:
    """把 updates 逐项合并到 current 上。

    每一项单独校验；未知或非法的项被跳过并保留原值。

    Returns:
        (新配置, 被拒绝的配置项名称列表)
    """
    data = current.model_dump()
    rejected: list[str] = []
    for key, value in updates.items():
        if key not in LoggerConfig.model_fields:
            rejected.append(key)
            continue
        try:
            validated = LoggerConfig.model_validate({**data, key: value})
        except ValidationError:
            rejected.append(key)
            continue
        data = validated.model_dump()

    if rejected:
        get_diagnostics().debug(f"ignored invalid config options: {', '.join(rejected)}")
    return LoggerConfig.model_validate(data), rejected


def validate_config(updates: Mapping[str, Any], base: Optional[LoggerConfig] = None) -> LoggerConfig:
    """严格模式：任一配置项非法时抛出 ConfigError。"""
    merged, rejected = merge_config(base or LoggerConfig(), updates)
    if rejected:
        raise ConfigError(f"invalid config options: {', '.join(rejected)}")
    return merged


__all__ = [
    "DEFAULT_MAX_FILE_SIZE",
    "FILE_OPTIONS",
    "LoggerConfig",
    "merge_config",
    "validate_config",
]
