"""缓冲写入器。

状态机：Idle（队列为空）-> Pending（已排队，刷新定时器已启动）-> Flushing -> Idle；
`close()` 之后进入终态 Closed。

- 队列长度达到 buffer_size 时立即同步刷新
- 否则在 Idle 状态下启动 flush_interval 定时器
- 队列严格先进先出，每次刷新作为一个批次写入
- 关闭后的 `add()` 被忽略
- 关闭缓冲（buffered=False）时 `add()` 直接同步写入，不经过队列和定时器
"""

from __future__ import annotations

from enum import Enum
from functools import partial
from typing import Any, Callable, Optional, Protocol
import asyncio
import threading

from levelog.errors import FileIOError
from levelog.utils.log import get_diagnostics, report_io_error

from .sink import Stream, byte_length, run_bounded


class TimerHandle(Protocol):
    def cancel(self) -> Any: ...


class Scheduler(Protocol):
    """可取消的延迟回调。"""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ThreadingScheduler:
    """基于守护线程 `threading.Timer` 的调度器，用于没有事件循环的场景。"""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class AsyncioScheduler:
    """在给定事件循环上调度回调。"""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)


def default_scheduler() -> Scheduler:
    """有正在运行的事件循环时使用它，否则退回到线程定时器。"""
    try:
        return AsyncioScheduler(asyncio.get_running_loop())
    except RuntimeError:
        return ThreadingScheduler()


class WriterState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    FLUSHING = "flushing"
    CLOSED = "closed"


class BufferedWriter:
    """把格式化好的日志行批量写入一个流。

    一个流只绑定一个 BufferedWriter。所有队列操作都在同一把可重入锁下进行，
    线程定时器触发的刷新不会与 `add()` 交错。
    """

    def __init__(
        self,
        stream: Stream,
        *,
        buffered: bool = True,
        buffer_size: int = 100,
        flush_interval: float = 1.0,
        scheduler: Optional[Scheduler] = None,
        path: Optional[str] = None,
    ) -> None:
        self.stream = stream
        self.buffered = buffered
        self.buffer_size = buffer_size
        self.flush_interval = flush_interval
        self.path = path or getattr(stream, "path", "<stream>")
        self._scheduler = scheduler
        self._queue: list[str] = []
        self._pending_bytes = 0
        self._timer: Optional[TimerHandle] = None
        self._generation = 0
        self._state = WriterState.IDLE
        self._lock = threading.RLock()

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def pending_bytes(self) -> int:
        return self._pending_bytes

    def add(self, line: str) -> None:
        with self._lock:
            if self._state == WriterState.CLOSED:
                return
            if not self.buffered:
                self._write(line)
                return

            self._queue.append(line)
            self._pending_bytes += byte_length(line)
            if len(self._queue) >= self.buffer_size:
                self.flush()
            elif self._state == WriterState.IDLE:
                self._arm_timer()

    def flush(self) -> None:
        with self._lock:
            self._cancel_timer()
            if not self._queue:
                if self._state != WriterState.CLOSED:
                    self._state = WriterState.IDLE
                return

            self._state = WriterState.FLUSHING
            batch = "".join(self._queue)
            self._queue.clear()
            self._pending_bytes = 0
            try:
                self._write(batch)
            finally:
                self._state = WriterState.IDLE

    def close(self, timeout: float = 1.0) -> bool:
        """刷新并关闭底层流。

        Returns:
            流在 timeout 秒内完成关闭时返回 True；超时则强制销毁流并返回 False。
        """
        with self._lock:
            if self._state == WriterState.CLOSED:
                return True
            self.flush()
            self._state = WriterState.CLOSED

        if self.stream.closed:
            return True
        try:
            completed = run_bounded(self.stream.close, timeout)
        except OSError as exc:
            report_io_error(FileIOError("close", self.path, exc))
            return False
        if not completed:
            self.stream.destroy()
            get_diagnostics().warning(
                f"closing {self.path} timed out after {timeout}s, stream destroyed"
            )
        return completed

    def _write(self, text: str) -> None:
        if self.stream.closed:
            return
        try:
            self.stream.write(text)
            self.stream.flush()
        except OSError as exc:
            report_io_error(FileIOError("write", self.path, exc))

    def _arm_timer(self) -> None:
        self._generation += 1
        scheduler = self._scheduler or default_scheduler()
        self._timer = scheduler.call_later(
            self.flush_interval, partial(self._on_timer, self._generation)
        )
        self._state = WriterState.PENDING

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        # 让已经触发但尚未拿到锁的旧回调失效
        self._generation += 1

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._state != WriterState.PENDING:
                return
            self._timer = None
            self.flush()


__all__ = [
    "Scheduler",
    "TimerHandle",
    "ThreadingScheduler",
    "AsyncioScheduler",
    "default_scheduler",
    "WriterState",
    "BufferedWriter",
]
