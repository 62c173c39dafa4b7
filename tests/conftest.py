"""测试公共 fixture：诊断通道捕获、假调度器、可记录的内存流。"""

from __future__ import annotations

import threading

import pytest
from loguru import logger

from levelog.utils.log import CHANNEL


class FakeTimer:
    """记录延迟与回调的假定时器。"""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """手动触发的调度器，用于确定性地测试刷新定时器。"""

    def __init__(self):
        self.timers: list[FakeTimer] = []

    def call_later(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def fire(self) -> None:
        for timer in self.active:
            timer.callback()


class RecordingStream:
    """记录写入内容的内存流；block_close=True 时 close() 会一直阻塞。"""

    path = "<memory>"

    def __init__(self, block_close=False, fail_writes=False):
        self.writes: list[str] = []
        self.flushes = 0
        self.destroyed = False
        self.block_close = block_close
        self.fail_writes = fail_writes
        self.unblock = threading.Event()
        self._closed = False

    @property
    def closed(self):
        return self._closed or self.destroyed

    def write(self, text):
        if self.fail_writes:
            raise OSError("disk full")
        self.writes.append(text)
        return len(text)

    def flush(self):
        self.flushes += 1

    def close(self):
        if self.block_close:
            self.unblock.wait(5)
        self._closed = True

    def destroy(self):
        self.destroyed = True


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()


@pytest.fixture
def recording_stream():
    """返回创建 RecordingStream 的工厂，测试结束时释放阻塞的 close()。"""
    created: list[RecordingStream] = []

    def _make(**kwargs):
        stream = RecordingStream(**kwargs)
        created.append(stream)
        return stream

    yield _make

    for stream in created:
        stream.unblock.set()


@pytest.fixture
def diagnostics_messages():
    """捕获诊断通道上的记录（loguru record 字典）。"""
    records: list[dict] = []
    sink_id = logger.add(
        lambda message: records.append(message.record),
        level="DEBUG",
        filter=lambda record: record["extra"].get("channel") == CHANNEL,
        format="{message}",
    )
    yield records
    logger.remove(sink_id)


@pytest.fixture
def console_lines():
    """传给 Logger(console=...) 的输出收集列表。"""
    return []
