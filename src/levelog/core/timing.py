from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional
import time
import tracemalloc

if TYPE_CHECKING:
    from .logger import Logger


class TimerHandle:
    """`Logger.start_timer` 返回的计时句柄。

    `stop()` 只在第一次调用时记录日志；之后的调用直接返回同一个耗时。
    也可以作为上下文管理器使用。
    """

    def __init__(self, logger: "Logger", label: str) -> None:
        self.label = label
        self._logger = logger
        self._start = time.perf_counter()
        self._elapsed_ms: Optional[float] = None

    @property
    def stopped(self) -> bool:
        return self._elapsed_ms is not None

    def stop(self) -> float:
        """停止计时并返回耗时（毫秒）。"""
        if self._elapsed_ms is None:
            self._elapsed_ms = (time.perf_counter() - self._start) * 1000
            self._logger.info(f"Timer '{self.label}': {self._elapsed_ms:.2f}ms")
        return self._elapsed_ms

    def __enter__(self) -> "TimerHandle":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()


class ProfileHandle:
    """`Logger.profile` 返回的性能分析句柄。

    内存差值只在 tracemalloc 正在跟踪时才会记录。
    """

    def __init__(self, logger: "Logger", label: str) -> None:
        self.label = label
        self._logger = logger
        self._start = time.perf_counter()
        self._start_memory = tracemalloc.get_traced_memory() if tracemalloc.is_tracing() else None
        self._result: Optional[dict[str, Any]] = None

    def stop(self) -> dict[str, Any]:
        if self._result is not None:
            return self._result

        duration = (time.perf_counter() - self._start) * 1000
        result: dict[str, Any] = {"duration": round(duration, 3)}
        if self._start_memory is not None and tracemalloc.is_tracing():
            current, peak = tracemalloc.get_traced_memory()
            result["memory"] = {
                "current": current - self._start_memory[0],
                "peak": peak - self._start_memory[1],
            }
        self._result = result
        self._logger.info(f"Profile '{self.label}': {duration:.2f}ms", result)
        return result

    def __enter__(self) -> "ProfileHandle":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()


__all__ = ["TimerHandle", "ProfileHandle"]
