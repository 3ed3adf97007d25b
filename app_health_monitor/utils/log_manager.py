"""
日志管理器模块

统一管理健康监控组件的日志输出：控制台输出、可选的轮转文件输出，
以及全局日志级别。所有日志记录器都挂在 ``app_health_monitor`` 命名空间下。
"""

import logging
import logging.handlers
import sys
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any

ROOT_LOGGER_NAME = 'app_health_monitor'


class LogLevel(Enum):
    """日志级别枚举"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogManager:
    """
    日志管理器（单例）

    处理器只挂在命名空间根记录器上，子记录器通过传播输出，
    因此重新配置时只需要重建一组处理器。
    """

    _instance: Optional['LogManager'] = None
    _initialized: bool = False

    def __new__(cls) -> 'LogManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._file_format = (
            '%(asctime)s - %(name)s - %(levelname)s - '
            '[%(filename)s:%(lineno)d] - %(message)s'
        )
        self._console_format = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'
        self._date_format = '%Y-%m-%d %H:%M:%S'

        self._log_level = LogLevel.INFO
        self._log_file: Optional[str] = None
        self._max_file_size = 10 * 1024 * 1024  # 10MB
        self._backup_count = 5
        self._enable_console = True

        self._root = logging.getLogger(ROOT_LOGGER_NAME)
        self._root.propagate = False
        self._apply()

        self._initialized = True

    def configure(self, config: Dict[str, Any]) -> None:
        """
        配置日志管理器

        Args:
            config: 日志配置字典，可选键：
                - log_level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                - log_file: 日志文件路径，提供时启用轮转文件输出
                - max_file_size: 单个日志文件最大字节数
                - backup_count: 轮转备份数量
                - enable_console: 是否输出到控制台

        Raises:
            ValueError: 日志级别无效
        """
        if 'log_level' in config:
            level_name = str(config['log_level']).upper()
            if level_name not in LogLevel.__members__:
                raise ValueError(f"无效的日志级别: {level_name}")
            self._log_level = LogLevel[level_name]

        for key in ('log_file', 'max_file_size', 'backup_count', 'enable_console'):
            if key in config:
                setattr(self, f'_{key}', config[key])

        self._apply()

    def _apply(self) -> None:
        """按当前配置重建根记录器的处理器"""
        for handler in list(self._root.handlers):
            self._root.removeHandler(handler)
            handler.close()

        self._root.setLevel(self._log_level.value)

        if self._enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self._log_level.value)
            console_handler.setFormatter(
                logging.Formatter(self._console_format, datefmt=self._date_format)
            )
            self._root.addHandler(console_handler)

        if self._log_file:
            Path(self._log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self._log_file,
                maxBytes=self._max_file_size,
                backupCount=self._backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(self._log_level.value)
            file_handler.setFormatter(
                logging.Formatter(self._file_format, datefmt=self._date_format)
            )
            self._root.addHandler(file_handler)

    def get_logger(self, name: str) -> logging.Logger:
        """
        获取命名空间下的日志记录器

        Args:
            name: 日志记录器名称，例如 ``probe.db``

        Returns:
            日志记录器实例
        """
        if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + '.'):
            return logging.getLogger(name)
        return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')

    def set_level(self, level: LogLevel) -> None:
        """设置全局日志级别"""
        self._log_level = level
        self._root.setLevel(level.value)
        for handler in self._root.handlers:
            handler.setLevel(level.value)

    def get_level(self) -> LogLevel:
        """获取当前日志级别"""
        return self._log_level

    def cleanup(self) -> None:
        """关闭所有处理器"""
        for handler in list(self._root.handlers):
            self._root.removeHandler(handler)
            handler.close()


# 全局日志管理器实例
log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """获取日志记录器的便捷函数"""
    return log_manager.get_logger(name)


def configure_logging(config: Dict[str, Any]) -> None:
    """配置日志系统的便捷函数"""
    log_manager.configure(config)
