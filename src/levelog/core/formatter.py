"""日志条目渲染。

控制台与文件两条路径共用一个 Formatter；设置了自定义 formatter 后两条路径都使用它。
文件编码支持 text / json / structured 三种。
"""

from __future__ import annotations

from datetime import datetime, timezone
import dataclasses
import json
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel

from levelog.config.options import LoggerConfig
from levelog.errors import SerializationError
from levelog.utils.log import get_diagnostics

from .entry import LogEntry, LogFormat, Primitive, classify, iso_timestamp
from .levels import ALL_LEVELS, LogLevel

CustomFormatter = Callable[[LogEntry], str]

CIRCULAR = "[Circular]"

# ANSI 颜色码（前景色）
_COLORS: dict[LogLevel, str] = {
    LogLevel.TRACE: "35",
    LogLevel.DEBUG: "33",
    LogLevel.INFO: "36",
    LogLevel.WARN: "93",
    LogLevel.ERROR: "91",
    LogLevel.FATAL: "31",
    LogLevel.SUCCESS: "92",
}
_RESET = "\x1b[0m"
_BADGE_WIDTH = max(len(level.value) for level in ALL_LEVELS) + 2


def _to_jsonable(value: Any, ancestors: set[int]) -> Any:
    """把任意对象转换为可 JSON 序列化的结构，祖先链上重复出现的容器替换为 [Circular]。"""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, BaseModel):
        value = dict(value)
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}

    if isinstance(value, (dict, list, tuple, set, frozenset)):
        marker = id(value)
        if marker in ancestors:
            return CIRCULAR
        ancestors.add(marker)
        try:
            if isinstance(value, dict):
                return {str(k): _to_jsonable(v, ancestors) for k, v in value.items()}
            return [_to_jsonable(item, ancestors) for item in value]
        finally:
            ancestors.discard(marker)

    if isinstance(value, datetime):
        return value.isoformat()
    try:
        return str(value)
    except Exception as exc:
        raise SerializationError(f"cannot serialize {type(value).__name__}: {exc}") from exc


def safe_stringify(value: Any, pretty: bool = False) -> str:
    """安全地把对象序列化为字符串，永不抛出异常。"""
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    try:
        return _dumps(_to_jsonable(value, set()), pretty)
    except (SerializationError, TypeError, ValueError, RecursionError) as exc:
        return f"[Serialization Error: {exc}]"


def _dumps(value: Any, pretty: bool = False) -> str:
    if pretty:
        return json.dumps(value, indent=2, ensure_ascii=False)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def format_args(args: Iterable[Any], pretty: bool = False) -> str:
    """把可变参数拼接为一条消息。"""
    parts = []
    for arg in args:
        classified = classify(arg)
        if isinstance(classified, Primitive):
            parts.append(classified.text)
        else:
            parts.append(safe_stringify(classified.value, pretty))
    return " ".join(parts)


def entry_record(entry: LogEntry) -> dict[str, Any]:
    """LogEntry 转为 JSON 记录，省略为 None 的字段。"""
    record: dict[str, Any] = {
        "timestamp": entry.timestamp,
        "level": entry.level.value,
        "namespace": entry.namespace,
        "message": entry.message,
        "metadata": entry.metadata,
        "environment": entry.environment,
        "pid": entry.pid,
        "hostname": entry.hostname,
    }
    return {key: value for key, value in record.items() if value is not None}


class Formatter:
    """把 LogEntry 渲染为控制台文本与文件行。"""

    def __init__(self, config: LoggerConfig, custom: Optional[CustomFormatter] = None) -> None:
        self.config = config
        self.custom = custom

    def _apply_custom(self, entry: LogEntry) -> Optional[str]:
        # 自定义 formatter 出错时回退到内置格式
        try:
            return str(self.custom(entry))  # type: ignore[misc]
        except Exception as exc:
            get_diagnostics().warning(f"custom formatter failed: {exc!r}")
            return None

    def to_console(self, entry: LogEntry) -> str:
        if self.custom is not None:
            line = self._apply_custom(entry)
            if line is not None:
                return line.rstrip("\n")

        colorize = self.config.colorize
        timestamp = ""
        if self.config.timestamps:
            timestamp = f"[{entry.timestamp}]"
            timestamp = (f"\x1b[90m{timestamp}{_RESET}" if colorize else timestamp) + " "

        namespace = ""
        if entry.namespace:
            namespace = f"[{entry.namespace}]"
            namespace = (f"\x1b[36m{namespace}{_RESET}" if colorize else namespace) + " "

        if colorize:
            code = _COLORS[entry.level]
            badge = f"\x1b[1;30;{int(code) + 10}m{entry.level.value.center(_BADGE_WIDTH)}{_RESET}"
            message = f"\x1b[{code}m{entry.message}{_RESET}"
        else:
            badge = f"[{entry.level.value}]"
            message = entry.message

        return f"{timestamp}{badge}: {namespace}{message}"

    def to_file(self, entry: LogEntry, fmt: Optional[LogFormat] = None) -> str:
        if self.custom is not None:
            line = self._apply_custom(entry)
            if line is not None:
                return line if line.endswith("\n") else line + "\n"

        fmt = fmt or self.config.log_format
        if fmt == LogFormat.JSON:
            return safe_stringify(entry_record(entry), pretty=False) + "\n"

        if fmt == LogFormat.STRUCTURED:
            fields = [str(entry.timestamp), f"[{entry.level.value}]"]
            if entry.namespace:
                fields.append(f"[{entry.namespace}]")
            fields.append(entry.message)
            if entry.metadata:
                fields.append(safe_stringify(entry.metadata, pretty=False))
            return " ".join(fields) + "\n"

        timestamp = entry.timestamp
        if isinstance(timestamp, int):
            timestamp = iso_timestamp(datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc))
        namespace = f"[{entry.namespace}]" if entry.namespace else ""
        return f"[{timestamp}] [{entry.level.value}]{namespace}: {entry.message}\n"


__all__ = [
    "CIRCULAR",
    "CustomFormatter",
    "Formatter",
    "entry_record",
    "format_args",
    "safe_stringify",
]
