"""
levelog.utils 包

内部工具集合，目前只有诊断通道。
"""

# 便捷导出
from .log import diagnostics as diagnostics

__all__ = ["diagnostics"]
