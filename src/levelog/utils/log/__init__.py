"""levelog 的诊断日志工具模块。

提供基于 loguru 的旁路诊断通道，特性包括：
- 单行 stderr 输出，与业务日志分离
- 按 channel 过滤，不干扰宿主程序的 loguru sink
- 惰性配置，可重复配置
"""

from .diagnostics import (
    CHANNEL,
    configure_diagnostics,
    diagnostics,
    get_diagnostics,
    report_io_error,
    reset_diagnostics,
)

__all__ = [
    "CHANNEL",
    "configure_diagnostics",
    "diagnostics",
    "get_diagnostics",
    "report_io_error",
    "reset_diagnostics",
]
