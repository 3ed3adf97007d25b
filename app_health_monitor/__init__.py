"""应用健康监控：数据库、外部API、错误日志与定时任务存活检查"""

__version__ = "1.0.0"
