"""文件字节流。

`FileStream` 是 BufferedWriter 写入的目标；`run_bounded` 为可能卡住的
flush/close 提供有上限的等待。
"""

from __future__ import annotations

from typing import Callable, Protocol
import os
import threading

from levelog.errors import FileIOError

# 孤立代理字符（例如 surrogateescape 解码的文件名）以 \udcff 形式写出
ENCODING = "utf-8"
ENCODING_ERRORS = "backslashreplace"


def byte_length(text: str) -> int:
    """text 写入日志文件后占用的字节数。"""
    return len(text.encode(ENCODING, ENCODING_ERRORS))


class Stream(Protocol):
    """BufferedWriter 需要的最小流接口。"""

    @property
    def closed(self) -> bool: ...

    def write(self, text: str) -> object: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...

    def destroy(self) -> None: ...


class FileStream:
    """以追加模式打开的 UTF-8 日志文件。"""

    def __init__(self, path: str) -> None:
        self.path = path
        self._destroyed = False
        try:
            self._handle = open(path, "a", encoding=ENCODING, errors=ENCODING_ERRORS, newline="")
        except OSError as exc:
            raise FileIOError("open", path, exc) from exc

    @property
    def closed(self) -> bool:
        return self._destroyed or self._handle.closed

    def write(self, text: str) -> int:
        return self._handle.write(text)

    def flush(self) -> None:
        self._handle.flush()

    def close(self) -> None:
        self._handle.close()

    def destroy(self) -> None:
        """强制释放文件描述符，不再等待缓冲区落盘。"""
        self._destroyed = True
        try:
            os.close(self._handle.fileno())
        except (OSError, ValueError):
            # 描述符已关闭
            pass


def ensure_parent_dir(path: str) -> None:
    """创建日志文件的父目录。"""
    parent = os.path.dirname(os.path.abspath(path))
    if parent and not os.path.isdir(parent):
        try:
            os.makedirs(parent, exist_ok=True)
        except OSError as exc:
            raise FileIOError("create directory", parent, exc) from exc


def open_stream(path: str) -> FileStream:
    """确保目录存在并打开文件流。失败时抛出 FileIOError。"""
    ensure_parent_dir(path)
    return FileStream(path)


def run_bounded(func: Callable[[], object], timeout: float) -> bool:
    """在后台线程执行 func，最多等待 timeout 秒。

    Returns:
        func 在超时前完成时返回 True，否则返回 False（线程继续在后台运行）。

    Raises:
        func 在超时前抛出的异常会在调用方线程重新抛出。
    """
    done = threading.Event()
    errors: list[BaseException] = []

    def _target() -> None:
        try:
            func()
        except BaseException as exc:  # noqa: BLE001 - 转交给调用方线程
            errors.append(exc)
        finally:
            done.set()

    worker = threading.Thread(target=_target, name="levelog-bounded", daemon=True)
    worker.start()
    if not done.wait(timeout):
        return False
    if errors:
        raise errors[0]
    return True


__all__ = [
    "ENCODING",
    "ENCODING_ERRORS",
    "byte_length",
    "Stream", "FileStream", "ensure_parent_dir", "open_stream", "run_bounded"]
