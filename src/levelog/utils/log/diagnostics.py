"""基于 loguru 的诊断通道。

levelog 自身的文件 I/O 失败、轮转通知、被拒绝的配置项都写到这里，而不是写回
levelog 的 Logger，从而避免“记录日志失败 -> 再记录日志”的递归。

设计目标：
- 单行输出到 stderr，与业务日志分离
- 通过 `channel` 绑定字段过滤，只处理本库的记录
- 首次使用时惰性配置，重复配置幂等
- 不移除宿主程序已有的 loguru 处理器
"""

from __future__ import annotations

from typing import Any, Optional
import sys
import threading

from loguru import logger as _logger

from levelog.errors import FileIOError

CHANNEL = "levelog.diagnostics"
DEFAULT_FORMAT = "levelog | {level} | {message}"

# 绑定了 channel 的 loguru logger，所有诊断记录都从这里发出
diagnostics = _logger.bind(channel=CHANNEL)

_SINK_ID: Optional[int] = None
_LOCK = threading.Lock()


def _only_diagnostics(record: dict) -> bool:
    return record["extra"].get("channel") == CHANNEL


def configure_diagnostics(
    *,
    level: str = "INFO",
    sink: Any = None,
    format: str = DEFAULT_FORMAT,
) -> Any:
    """配置诊断通道的 sink 并返回绑定好的 logger。

    重复调用会替换之前安装的 sink。sink 为空时写到 sys.stderr。
    只增删本通道自己的 sink，宿主程序的 loguru 处理器（包括默认处理器）保持不变，
    因此诊断记录也会出现在宿主的处理器中。
    """

    global _SINK_ID
    with _LOCK:
        if _SINK_ID is not None:
            try:
                _logger.remove(_SINK_ID)
            except ValueError:
                # sink 已被外部移除
                pass

        _SINK_ID = _logger.add(
            sink if sink is not None else sys.stderr,
            level=level,
            format=format,
            filter=_only_diagnostics,
            colorize=False,
            backtrace=False,
            diagnose=False,
        )
    return diagnostics


def get_diagnostics() -> Any:
    """返回诊断 logger，未配置时使用默认参数配置一次。"""
    if _SINK_ID is None:
        configure_diagnostics()
    return diagnostics


def report_io_error(error: FileIOError) -> None:
    """把文件 I/O 失败写成一行警告。"""
    get_diagnostics().warning(str(error))


def reset_diagnostics() -> None:
    """移除已安装的诊断 sink（主要用于测试）。"""
    global _SINK_ID
    with _LOCK:
        if _SINK_ID is not None:
            try:
                _logger.remove(_SINK_ID)
            except ValueError:
                pass
            _SINK_ID = None


__all__ = [
    "CHANNEL",
    "diagnostics",
    "configure_diagnostics",
    "get_diagnostics",
    "report_io_error",
    "reset_diagnostics",
]
