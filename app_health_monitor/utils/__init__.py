"""工具模块"""

from .exceptions import (
    ErrorCode, HealthMonitorError, ConfigError, AlertError,
    AlertConfigError, AlertSendError, JobExecutionError
)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'ErrorCode', 'HealthMonitorError', 'ConfigError', 'AlertError',
    'AlertConfigError', 'AlertSendError', 'JobExecutionError',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
