from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

from .levels import LogLevel


class LogFormat(str, Enum):
    """文件日志编码。"""

    TEXT = "text"
    JSON = "json"
    STRUCTURED = "structured"


class DateFormat(str, Enum):
    """时间戳格式。"""

    ISO = "iso"
    LOCALE = "locale"
    UNIX = "unix"
    SHORT = "short"


class LogEntry(BaseModel):
    """一次日志调用的内存表示。

    每次调用创建一个，只交给 Formatter 渲染，本身从不持久化。
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    timestamp: Union[str, int]
    level: LogLevel
    message: str
    namespace: Optional[str] = None
    metadata: Any = None
    environment: Optional[str] = None
    pid: Optional[int] = None
    hostname: Optional[str] = None


@dataclass(frozen=True)
class Primitive:
    """标量参数，直接以 str() 渲染。"""

    text: str


@dataclass(frozen=True)
class Structured:
    """结构化参数，通过安全 JSON 序列化渲染。"""

    value: Any


Argument = Union[Primitive, Structured]

_PRIMITIVE_TYPES = (str, int, float, bool, type(None))


def classify(arg: Any) -> Argument:
    """把一个调用参数分类为 Primitive 或 Structured。"""
    if isinstance(arg, _PRIMITIVE_TYPES):
        return Primitive(str(arg))
    return Structured(arg)


def iso_timestamp(moment: datetime) -> str:
    """UTC ISO 时间戳，毫秒精度，以 Z 结尾。"""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_timestamp(fmt: DateFormat, now: Optional[datetime] = None) -> Union[str, int]:
    """按 DateFormat 生成时间戳；unix 返回毫秒整数。"""
    moment = now or datetime.now(timezone.utc)
    if fmt == DateFormat.LOCALE:
        return moment.astimezone().strftime("%x %X")
    if fmt == DateFormat.UNIX:
        return int(moment.timestamp() * 1000)
    if fmt == DateFormat.SHORT:
        return moment.astimezone().strftime("%H:%M:%S")
    return iso_timestamp(moment)


__all__ = [
    "LogFormat",
    "DateFormat",
    "LogEntry",
    "Primitive",
    "Structured",
    "Argument",
    "classify",
    "iso_timestamp",
    "make_timestamp",
]
