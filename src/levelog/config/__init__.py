"""levelog 配置：环境变量默认值（Settings）与 Logger 配置快照（LoggerConfig）。"""
