"""按命名空间划分的 Logger。

一次日志调用的数据流：
    LevelGate.should_emit -> 构造 LogEntry -> 控制台同步输出
    -> 文件格式化 -> RotationManager.check_and_rotate -> BufferedWriter.add

生命周期：Created -> Active -> Closing -> Closed。只有 Active 状态接受日志调用，
其余状态下的调用被静默丢弃，保证关闭流程不会因日志而失败。
"""

from __future__ import annotations

from enum import Enum
from typing import IO, Any, Callable, Mapping, Optional, Union
import os
import socket
import sys
import threading
import time

from levelog.config.options import FILE_OPTIONS, LoggerConfig, merge_config
from levelog.errors import FileIOError
from levelog.utils.log import get_diagnostics, report_io_error

from .channel import FileChannel
from .entry import LogEntry, make_timestamp
from .formatter import CustomFormatter, Formatter, format_args, safe_stringify
from .levels import LevelGate, LogLevel, LogMode, parse_level
from .rotation import RotationManager
from .sink import byte_length
from .timing import ProfileHandle, TimerHandle
from .writer import Scheduler

ConsoleSink = Callable[[str], Any]
ExitHook = Callable[[int], Any]
LevelLike = Union[LogLevel, str]

_HOSTNAME = socket.gethostname()


class LifecycleState(str, Enum):
    CREATED = "created"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class Logger:
    """带级别过滤、控制台输出与可选轮转文件的 logger。

    Args:
        config: `LoggerConfig` 快照或配置项字典；非法项回退到默认值。
        namespace: 命名空间，子 logger 以 `parent:child` 形式拼接。
        console: 控制台输出函数，默认 `print`。
        exit_hook: `fatal()` 使用的进程退出函数，默认 `sys.exit`。
        scheduler: 缓冲刷新定时器的调度器，默认按运行环境自动选择。
        **options: 额外的配置项，覆盖 config 中的同名项。

    Examples:
        >>> log = Logger(min_level="WARN", colorize=False)
        >>> log.warn("disk almost full", {"free": "2GB"})
        >>> db = log.child("db")
    """

    def __init__(
        self,
        config: Union[LoggerConfig, Mapping[str, Any], None] = None,
        namespace: Optional[str] = None,
        *,
        console: Optional[ConsoleSink] = None,
        exit_hook: Optional[ExitHook] = None,
        scheduler: Optional[Scheduler] = None,
        **options: Any,
    ) -> None:
        self.state = LifecycleState.CREATED

        base = config if isinstance(config, LoggerConfig) else LoggerConfig()
        updates: dict[str, Any] = dict(config) if isinstance(config, Mapping) else {}
        updates.update(options)
        self._config = merge_config(base, updates)[0] if updates else base

        self.namespace = namespace or None
        self._console = console or print
        self._exit_hook = exit_hook or sys.exit
        self._scheduler = scheduler
        self._custom_formatter: Optional[CustomFormatter] = None
        self._timers: dict[str, float] = {}
        self._lock = threading.RLock()
        self._channel: Optional[FileChannel] = None

        self._gate = LevelGate(self._config)
        self._formatter = Formatter(self._config)
        self._rotation = RotationManager(self._config.max_file_size, self._config.max_files)

        self._setup_file_logging()
        self.state = LifecycleState.ACTIVE

    def __repr__(self) -> str:
        return f"Logger(namespace={self.namespace!r}, state={self.state.value})"

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # 日志方法
    # ------------------------------------------------------------------

    def log(self, level: LevelLike, *args: Any, **metadata: Any) -> None:
        """记录一条日志。关键字参数作为该条目的 metadata。"""
        parsed = parse_level(level)
        if parsed is None:
            get_diagnostics().warning(f"unknown log level: {level!r}")
            return
        if self.state != LifecycleState.ACTIVE or not self._gate.should_emit(parsed):
            return

        entry = self._create_entry(parsed, format_args(args, self._config.pretty_print), metadata)
        with self._lock:
            self._print(self._formatter.to_console(entry))
            if self._channel is not None:
                self._write_file(self._formatter.to_file(entry))

    def trace(self, *args: Any, **metadata: Any) -> None:
        self.log(LogLevel.TRACE, *args, **metadata)

    def debug(self, *args: Any, **metadata: Any) -> None:
        self.log(LogLevel.DEBUG, *args, **metadata)

    def info(self, *args: Any, **metadata: Any) -> None:
        self.log(LogLevel.INFO, *args, **metadata)

    def warn(self, *args: Any, **metadata: Any) -> None:
        self.log(LogLevel.WARN, *args, **metadata)

    def error(self, *args: Any, **metadata: Any) -> None:
        self.log(LogLevel.ERROR, *args, **metadata)

    def success(self, *args: Any, **metadata: Any) -> None:
        self.log(LogLevel.SUCCESS, *args, **metadata)

    def fatal(self, *args: Any, **metadata: Any) -> None:
        """记录 FATAL，刷新文件后以状态码 1 结束进程。"""
        self.log(LogLevel.FATAL, *args, **metadata)
        self.flush()
        self._exit_hook(1)

    def json(self, data: Any, level: LevelLike = LogLevel.INFO) -> None:
        self.log(level, safe_stringify(data, self._config.pretty_print))

    def assert_(self, condition: Any, message: str) -> None:
        if not condition:
            self.error(f"Assertion failed: {message}")

    def write_to_stream(self, message: str, stream: Optional[IO[str]] = None) -> None:
        """绕过格式化，直接把一行写到给定流（默认 stdout）。"""
        if self._config.mode == LogMode.SILENT:
            return
        (stream or sys.stdout).write(message + "\n")

    # ------------------------------------------------------------------
    # 计时
    # ------------------------------------------------------------------

    def time(self, label: str) -> None:
        self._timers[label] = time.perf_counter()
        self.info(f"Timer '{label}' started")

    def time_end(self, label: str) -> Optional[float]:
        start = self._timers.pop(label, None)
        if start is None:
            self.warn(f"Timer '{label}' does not exist")
            return None
        elapsed = (time.perf_counter() - start) * 1000
        self.info(f"Timer '{label}': {elapsed:.2f}ms")
        return elapsed

    def start_timer(self, label: str) -> TimerHandle:
        self.debug(f"Timer '{label}' started")
        return TimerHandle(self, label)

    def profile(self, label: str) -> ProfileHandle:
        return ProfileHandle(self, label)

    # ------------------------------------------------------------------
    # 配置
    # ------------------------------------------------------------------

    def child(self, namespace: str) -> "Logger":
        """创建子 logger。

        子 logger 拿到父 logger 当前配置的快照，父 logger 之后的 `set_config`
        不会影响已创建的子 logger。自定义 formatter 不继承。
        """
        full = f"{self.namespace}:{namespace}" if self.namespace else namespace
        return Logger(
            self._config,
            full,
            console=self._console,
            exit_hook=self._exit_hook,
            scheduler=self._scheduler,
        )

    def set_config(self, partial: Optional[Mapping[str, Any]] = None, **options: Any) -> LoggerConfig:
        """合并配置。非法项保留原值；文件相关配置变化时重建文件通道。"""
        updates = {**(partial or {}), **options}
        with self._lock:
            previous = self._config
            config, _ = merge_config(previous, updates)
            self._config = config
            self._gate.config = config
            self._formatter.config = config
            self._rotation = RotationManager(config.max_file_size, config.max_files)

            if self.state in (LifecycleState.CLOSING, LifecycleState.CLOSED):
                # 关闭后只更新配置，不再打开文件
                return config
            if any(getattr(previous, name) != getattr(config, name) for name in FILE_OPTIONS):
                self._teardown_file_logging()
                self._setup_file_logging()
            elif self._channel is not None:
                self._channel.close_timeout = config.close_timeout
        return config

    def get_config(self) -> LoggerConfig:
        return self._config

    def set_level(self, level: LevelLike) -> None:
        self.set_config(min_level=level)

    def is_level_enabled(self, level: LevelLike) -> bool:
        parsed = parse_level(level)
        return parsed is not None and self._gate.should_emit(parsed)

    def set_formatter(self, formatter: Optional[CustomFormatter]) -> None:
        """设置自定义 formatter，同时作用于控制台与文件输出；传入 None 恢复默认。"""
        self._custom_formatter = formatter
        self._formatter.custom = formatter

    # ------------------------------------------------------------------
    # 文件操作与生命周期
    # ------------------------------------------------------------------

    def flush(self) -> bool:
        """把缓冲区写入文件，最多等待 flush_timeout 秒。"""
        with self._lock:
            channel = self._channel
        if channel is None:
            return True
        return channel.flush(self._config.flush_timeout)

    def close(self) -> bool:
        """刷新并关闭文件流。关闭后的日志调用被静默丢弃。

        Returns:
            文件流在 close_timeout 内正常关闭时返回 True。
        """
        if self.state in (LifecycleState.CLOSING, LifecycleState.CLOSED):
            return True
        self.state = LifecycleState.CLOSING
        try:
            with self._lock:
                return self._teardown_file_logging()
        finally:
            self.state = LifecycleState.CLOSED

    def get_log_file_size(self) -> int:
        """磁盘上当前日志文件的大小（不含尚未刷新的缓冲）。"""
        path = self._config.log_file
        if not path:
            return 0
        try:
            return os.path.getsize(path)
        except FileNotFoundError:
            return 0
        except OSError as exc:
            report_io_error(FileIOError("stat", path, exc))
            return 0

    def clear_log_file(self) -> None:
        path = self._config.log_file
        if not path or not os.path.exists(path):
            return
        with self._lock:
            if self._channel is not None:
                self._channel.flush_pending()
            try:
                with open(path, "w", encoding="utf-8"):
                    pass
            except OSError as exc:
                report_io_error(FileIOError("truncate", path, exc))
                return
        self.info("Log file cleared")

    def rotate_log_file(self) -> bool:
        with self._lock:
            if self._channel is None:
                return False
            return self._rotation.rotate(self._channel)

    # ------------------------------------------------------------------
    # 内部实现
    # ------------------------------------------------------------------

    def _create_entry(self, level: LogLevel, message: str, metadata: Mapping[str, Any]) -> LogEntry:
        config = self._config
        return LogEntry(
            timestamp=make_timestamp(config.date_format),
            level=level,
            message=message,
            namespace=self.namespace,
            metadata=dict(metadata) if metadata else None,
            environment=config.environment,
            pid=os.getpid(),
            hostname=_HOSTNAME,
        )

    def _print(self, line: str) -> None:
        try:
            self._console(line)
        except (OSError, ValueError) as exc:
            get_diagnostics().warning(f"console output failed: {exc!r}")

    def _write_file(self, line: str) -> None:
        channel = self._channel
        if channel is None:
            return
        try:
            self._rotation.check_and_rotate(channel, byte_length(line))
            channel.write(line)
        except ValueError as exc:
            # 编码错误（UnicodeError）或写入已关闭的流
            report_io_error(FileIOError("write", channel.path, exc))

    def _setup_file_logging(self) -> None:
        if not self._config.file_enabled:
            return
        channel = FileChannel.from_config(self._config, self._scheduler)
        # 打开失败时通道降级为逐行追加
        channel.open()
        self._channel = channel

    def _teardown_file_logging(self) -> bool:
        channel = self._channel
        self._channel = None
        if channel is None:
            return True
        return channel.release()


__all__ = ["Logger", "LifecycleState", "ConsoleSink", "ExitHook"]
