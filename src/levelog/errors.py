from __future__ import annotations


class LevelogError(Exception):
    """levelog 通用错误类型。"""


class ConfigError(LevelogError):
    """配置项非法。

    `Logger.set_config` 从不抛出该异常，而是回退到原值；只有严格校验
    (`validate_config`) 才会抛出。
    """


class SerializationError(LevelogError):
    """元数据无法序列化（例如循环引用）。日志流程中只会被替换为占位符。"""


class FileIOError(LevelogError):
    """文件日志的 I/O 失败（建目录、打开、写入、重命名、删除、stat）。

    包装原始 `OSError`，并记录失败的动作和路径，供诊断通道输出。
    """

    def __init__(self, action: str, path: str, cause: BaseException | None = None) -> None:
        self.action = action
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{action} failed for {path}{detail}")


__all__ = ["LevelogError", "ConfigError", "SerializationError", "FileIOError"]
