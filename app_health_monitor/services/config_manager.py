"""配置管理器"""

import copy
import os
from typing import Dict, Any, Optional

import yaml

from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.config_validator import ConfigValidator
from ..utils.log_manager import get_logger

DEFAULT_CONFIG: Dict[str, Any] = {
    'global': {
        'log_level': 'INFO',
        'log_file': None,
        'application': 'health-monitor',
        'instance_id': 'default',
        'check_interval': 30,
    },
    'server': {
        'host': '0.0.0.0',
        'port': 8080,
    },
    'health_monitor': {
        'enabled': True,
        'database': {
            'enabled': False,
            'status_endpoint_enabled': False,
            'expose_connection_info': False,
            'timeout': 2,
            'host': 'localhost',
            'port': 3306,
            'username': 'root',
            'password': '',
            'database': '',
            'pool_minsize': 1,
            'pool_maxsize': 5,
            'non_critical': False,
        },
        'external': {
            'enabled': False,
            'url': '',
            'timeout': 3000,
            'non_critical': False,
        },
        'logs': {
            'enabled': True,
            'recent_errors_threshold': 5,
            'lookback_seconds': 0,
            'webhook': {
                'enabled': False,
                'url': '',
                'timeout': 5000,
                'retry_delay': 1.0,
            },
            'email': {
                'enabled': False,
                'to': 'ops@company.com',
                'from': 'health-monitor@company.com',
                'subject': 'Health Monitor Alert',
                'smtp_server': '',
                'smtp_port': 587,
                'timeout': 5000,
            },
        },
    },
    'scheduler_monitor': {
        'enabled': True,
        'jobs_enabled': True,
        'max_task_duration_ms': 15000,
        'max_idle_duration_ms': 180000,
        'min_executions_before_idle_check': 1,
    },
}


def merge_config(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    递归合并配置，overrides 中的值优先

    Args:
        defaults: 默认配置
        overrides: 用户配置

    Returns:
        Dict[str, Any]: 新的合并结果
    """
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if value is None and isinstance(merged.get(key), dict):
            # 空配置段保留默认值
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigManager:
    """配置管理器，负责YAML配置文件的加载、解析和验证"""

    def __init__(self, config_path: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径，为None时只使用默认配置
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = merge_config(DEFAULT_CONFIG, {})
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载YAML配置文件并与默认值合并

        Returns:
            Dict[str, Any]: 配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        if self.config_path is None:
            self.logger.info("未指定配置文件，使用默认配置")
            return self.config

        self.logger.info(f"开始加载配置文件: {self.config_path}")

        if not os.path.exists(self.config_path):
            self.logger.error(f"配置文件不存在: {self.config_path}")
            raise ConfigError(f"配置文件不存在: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=self.config_path)

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                raw_config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            self.logger.error(f"YAML格式错误: {e}")
            raise ConfigError(f"YAML格式错误: {e}", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=self.config_path, cause=e)
        except PermissionError as e:
            self.logger.error(f"没有权限读取配置文件: {self.config_path}")
            raise ConfigError(f"没有权限读取配置文件: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=self.config_path, cause=e)

        if raw_config is None:
            self.logger.error("配置文件为空")
            raise ConfigError("配置文件为空", config_path=self.config_path)

        self.logger.debug("开始验证配置文件内容")
        self._validate_config(raw_config)

        self.config = merge_config(DEFAULT_CONFIG, raw_config)

        enabled = [name for name in ('database', 'external', 'logs')
                   if self.get_section('health_monitor')[name].get('enabled')]
        self.logger.info(f"配置验证成功，启用的健康组件: {', '.join(enabled) or '无'}")
        return self.config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        验证配置文件内容

        Args:
            config: 配置字典

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError("配置文件根节点必须是字典类型", config_path=self.config_path)

        if 'global' in config:
            ConfigValidator.validate_global_config(config['global'])
        if 'server' in config:
            ConfigValidator.validate_server_config(config['server'])
        if 'health_monitor' in config:
            ConfigValidator.validate_health_monitor_config(config['health_monitor'])
        if 'scheduler_monitor' in config:
            ConfigValidator.validate_scheduler_config(config['scheduler_monitor'])

    def get_section(self, name: str) -> Dict[str, Any]:
        """
        获取配置段，缺失时返回默认值

        Args:
            name: 配置段名称

        Returns:
            Dict[str, Any]: 配置段
        """
        return self.config.get(name) or copy.deepcopy(DEFAULT_CONFIG.get(name, {}))

    def get_global_config(self) -> Dict[str, Any]:
        return self.get_section('global')

    def get_server_config(self) -> Dict[str, Any]:
        return self.get_section('server')

    def get_health_monitor_config(self) -> Dict[str, Any]:
        return self.get_section('health_monitor')

    def get_scheduler_config(self) -> Dict[str, Any]:
        return self.get_section('scheduler_monitor')
