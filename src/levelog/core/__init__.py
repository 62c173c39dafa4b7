"""levelog 的核心日志引擎：级别过滤、格式化、缓冲写入与文件轮转。"""
