from __future__ import annotations

from typing import Optional

from levelog.config.options import LoggerConfig
from levelog.errors import ConfigError, FileIOError
from levelog.utils.log import report_io_error

from .sink import ENCODING, ENCODING_ERRORS, FileStream, open_stream, run_bounded
from .writer import BufferedWriter, Scheduler


class FileChannel:
    """一个日志文件的写入通道：打开的文件流加上唯一绑定的 BufferedWriter。

    通道由一个 Logger 独占。打开失败时降级为逐行追加（尽力而为），
    控制台输出不受影响。
    """

    def __init__(
        self,
        path: str,
        *,
        buffered: bool = False,
        buffer_size: int = 100,
        flush_interval: float = 1.0,
        close_timeout: float = 2.0,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.path = path
        self.buffered = buffered
        self.buffer_size = buffer_size
        self.flush_interval = flush_interval
        self.close_timeout = close_timeout
        self.scheduler = scheduler
        self._stream: Optional[FileStream] = None
        self._writer: Optional[BufferedWriter] = None

    @classmethod
    def from_config(cls, config: LoggerConfig, scheduler: Optional[Scheduler] = None) -> "FileChannel":
        if config.log_file is None:
            raise ConfigError("log_file is not set")
        return cls(
            config.log_file,
            buffered=config.buffered,
            buffer_size=config.buffer_size,
            flush_interval=config.flush_interval,
            close_timeout=config.close_timeout,
            scheduler=scheduler,
        )

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    @property
    def writer(self) -> Optional[BufferedWriter]:
        return self._writer

    @property
    def pending_bytes(self) -> int:
        return self._writer.pending_bytes if self._writer is not None else 0

    def open(self) -> bool:
        """打开文件流并绑定新的 writer。失败时报告到诊断通道并返回 False。"""
        try:
            self._stream = open_stream(self.path)
        except FileIOError as exc:
            report_io_error(exc)
            self._stream = None
            self._writer = None
            return False
        self._writer = BufferedWriter(
            self._stream,
            buffered=self.buffered,
            buffer_size=self.buffer_size,
            flush_interval=self.flush_interval,
            scheduler=self.scheduler,
            path=self.path,
        )
        return True

    def write(self, line: str) -> None:
        if self._writer is not None:
            self._writer.add(line)
            return
        # 没有可用的流时直接追加
        try:
            with open(
                self.path, "a", encoding=ENCODING, errors=ENCODING_ERRORS, newline=""
            ) as handle:
                handle.write(line)
        except OSError as exc:
            report_io_error(FileIOError("append", self.path, exc))

    def flush_pending(self) -> None:
        """把缓冲区同步写入流。"""
        if self._writer is not None:
            self._writer.flush()

    def flush(self, timeout: float = 1.0) -> bool:
        """刷新缓冲区并等待流落盘，最多等待 timeout 秒。"""
        self.flush_pending()
        stream = self._stream
        if stream is None or stream.closed:
            return True
        try:
            return run_bounded(stream.flush, timeout)
        except (OSError, ValueError) as exc:
            report_io_error(FileIOError("flush", self.path, exc))
            return False

    def release(self, timeout: Optional[float] = None) -> bool:
        """刷新并关闭当前流，之后可以重新 `open()`。"""
        writer = self._writer
        self._writer = None
        self._stream = None
        if writer is None:
            return True
        return writer.close(self.close_timeout if timeout is None else timeout)


__all__ = ["FileChannel"]
