"""按大小轮转日志文件并清理旧归档。

轮转在每次写文件前同步检查，因此不会有其他定时器或线程与同一个 Logger 的
轮转并发。轮转前总是先刷新缓冲区，正在排队的日志行不会丢失。

归档命名：`<base>.<ISO 时间戳，':' 与 '.' 替换为 '-'>.<ext>`；同一毫秒内
重复轮转时在时间戳后追加 `-<n>`。
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import os
import re

from levelog.errors import FileIOError
from levelog.utils.log import get_diagnostics, report_io_error

from .channel import FileChannel
from .entry import iso_timestamp

_SEQUENCE = re.compile(r"^(?P<stamp>.*?)(?:-(?P<seq>\d+))?$")


def split_log_name(path: str | Path) -> tuple[Path, str, str]:
    """拆分为 (目录, 基础名, 扩展名)，扩展名包含前导点。"""
    path = Path(path)
    return path.parent, path.stem if path.suffix else path.name, path.suffix


def archive_name(base: str, ext: str, now: Optional[datetime] = None) -> str:
    stamp = iso_timestamp(now or datetime.now(timezone.utc))
    stamp = stamp.replace(":", "-").replace(".", "-")
    return f"{base}.{stamp}{ext}"


def _archive_order(name: str, prefix: str, ext: str) -> tuple[str, int]:
    # 同一 mtime 下按文件名中的时间戳与序号排序
    middle = name[len(prefix):len(name) - len(ext)] if ext else name[len(prefix):]
    match = _SEQUENCE.match(middle)
    if match is None:
        return middle, 0
    return match.group("stamp"), int(match.group("seq") or 0)


class RotationManager:
    """在写入前检查文件大小，超过阈值时归档并重新打开，再按数量清理旧归档。"""

    def __init__(self, max_size: int, max_files: int) -> None:
        self.max_size = max_size
        self.max_files = max_files

    def check_and_rotate(self, channel: FileChannel, incoming: int = 0) -> bool:
        """写入 incoming 字节前检查是否需要轮转。

        当前文件大小（含尚未刷新的缓冲）加上即将写入的字节数达到 max_size 时轮转。
        空文件永不轮转。
        """
        try:
            size = os.path.getsize(channel.path)
        except FileNotFoundError:
            size = 0
        except OSError as exc:
            report_io_error(FileIOError("stat", channel.path, exc))
            return False

        current = size + channel.pending_bytes
        if current > 0 and current + incoming >= self.max_size:
            return self.rotate(channel)
        return False

    def rotate(self, channel: FileChannel) -> bool:
        """刷新、关闭、重命名、重新打开，然后清理旧归档。

        Returns:
            成功生成归档文件时返回 True。
        """
        live = Path(channel.path)
        directory, base, ext = split_log_name(live)

        channel.flush_pending()
        channel.release()

        archive: Optional[Path] = None
        try:
            if live.exists():
                archive = self._unique_archive(directory, base, ext)
                os.rename(live, archive)
        except OSError as exc:
            report_io_error(FileIOError("rename", str(live), exc))
            archive = None
        finally:
            # 无论重命名是否成功都重新打开，保证后续写入有去处
            channel.open()

        if archive is None:
            return False
        get_diagnostics().info(f"log file rotated: {archive}")
        self.cleanup(directory, base, ext)
        return True

    def cleanup(
        self, directory: str | Path, base: str, ext: str, max_files: Optional[int] = None
    ) -> list[Path]:
        """只保留最近修改的 max_files 个归档，返回被删除的文件。"""
        keep = self.max_files if max_files is None else max_files
        directory = Path(directory)
        live_name = f"{base}{ext}"
        prefix = f"{base}."

        try:
            names = os.listdir(directory)
        except OSError as exc:
            report_io_error(FileIOError("list", str(directory), exc))
            return []

        archives: list[tuple[int, tuple[str, int], Path]] = []
        for name in names:
            if name == live_name or not name.startswith(prefix) or not name.endswith(ext):
                continue
            candidate = directory / name
            try:
                if not candidate.is_file():
                    continue
                mtime = candidate.stat().st_mtime_ns
            except OSError as exc:
                report_io_error(FileIOError("stat", str(candidate), exc))
                continue
            archives.append((mtime, _archive_order(name, prefix, ext), candidate))

        archives.sort(key=lambda item: (item[0], item[1]), reverse=True)

        removed: list[Path] = []
        for _, _, stale in archives[keep:]:
            try:
                stale.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                report_io_error(FileIOError("delete", str(stale), exc))
                continue
            removed.append(stale)
        return removed

    @staticmethod
    def _unique_archive(directory: Path, base: str, ext: str) -> Path:
        name = archive_name(base, ext)
        candidate = directory / name
        stem = name[: len(name) - len(ext)] if ext else name
        counter = 1
        while candidate.exists():
            candidate = directory / f"{stem}-{counter}{ext}"
            counter += 1
        return candidate


__all__ = ["RotationManager", "archive_name", "split_log_name"]
