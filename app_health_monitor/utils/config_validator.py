"""配置验证工具"""

from typing import Dict, Any, Optional

from .exceptions import ConfigError


class ConfigValidator:
    """配置验证器"""

    VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

    @staticmethod
    def _require_dict(value: Any, name: str) -> None:
        if not isinstance(value, dict):
            raise ConfigError(f"{name} 配置必须是字典类型")

    @staticmethod
    def _check_bool(config: Dict[str, Any], key: str, section: str) -> None:
        value = config.get(key)
        if value is not None and not isinstance(value, bool):
            raise ConfigError(f"{section}.{key} 必须是布尔值")

    @staticmethod
    def _check_positive(config: Dict[str, Any], key: str, section: str,
                        allow_zero: bool = False) -> None:
        value = config.get(key)
        if value is None:
            return
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{section}.{key} 必须是数字")
        if value < 0 or (value == 0 and not allow_zero):
            raise ConfigError(f"{section}.{key} 必须是{'非负数' if allow_zero else '正数'}")

    @staticmethod
    def _check_url(url: Optional[str], section: str) -> None:
        if not url or not isinstance(url, str):
            raise ConfigError(f"{section}.url 不能为空")
        if not url.startswith(('http://', 'https://')):
            raise ConfigError(f"{section}.url 必须以http://或https://开头")

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Args:
            global_config: 全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        ConfigValidator._require_dict(global_config, 'global')

        check_interval = global_config.get('check_interval')
        if check_interval is not None:
            if not isinstance(check_interval, int) or isinstance(check_interval, bool) \
                    or check_interval <= 0:
                raise ConfigError("check_interval 必须是正整数")

        log_level = global_config.get('log_level')
        if log_level is not None and log_level not in ConfigValidator.VALID_LOG_LEVELS:
            raise ConfigError(f"log_level 必须是以下值之一: {ConfigValidator.VALID_LOG_LEVELS}")

    @staticmethod
    def validate_server_config(server_config: Dict[str, Any]) -> None:
        ConfigValidator._require_dict(server_config, 'server')
        port = server_config.get('port')
        if port is not None:
            if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
                raise ConfigError("server.port 必须是0-65535之间的整数")

    @staticmethod
    def validate_health_monitor_config(config: Dict[str, Any]) -> None:
        """
        验证 health_monitor 配置（数据库、外部API、错误日志及告警）

        Args:
            config: health_monitor 配置

        Raises:
            ConfigError: 配置验证失败
        """
        ConfigValidator._require_dict(config, 'health_monitor')
        ConfigValidator._check_bool(config, 'enabled', 'health_monitor')

        database = config.get('database')
        if database is not None:
            section = 'health_monitor.database'
            ConfigValidator._require_dict(database, section)
            for key in ('enabled', 'status_endpoint_enabled', 'expose_connection_info', 'non_critical'):
                ConfigValidator._check_bool(database, key, section)
            ConfigValidator._check_positive(database, 'timeout', section)
            ConfigValidator._check_positive(database, 'pool_minsize', section, allow_zero=True)
            ConfigValidator._check_positive(database, 'pool_maxsize', section)

        external = config.get('external')
        if external is not None:
            section = 'health_monitor.external'
            ConfigValidator._require_dict(external, section)
            ConfigValidator._check_bool(external, 'enabled', section)
            ConfigValidator._check_bool(external, 'non_critical', section)
            ConfigValidator._check_positive(external, 'timeout', section)
            if external.get('enabled', False):
                ConfigValidator._check_url(external.get('url'), section)

        logs = config.get('logs')
        if logs is not None:
            ConfigValidator.validate_logs_config(logs)

    @staticmethod
    def validate_logs_config(logs: Dict[str, Any]) -> None:
        section = 'health_monitor.logs'
        ConfigValidator._require_dict(logs, section)
        ConfigValidator._check_bool(logs, 'enabled', section)
        ConfigValidator._check_positive(logs, 'recent_errors_threshold', section)
        ConfigValidator._check_positive(logs, 'lookback_seconds', section, allow_zero=True)

        webhook = logs.get('webhook')
        if webhook is not None:
            ConfigValidator._require_dict(webhook, f'{section}.webhook')
            ConfigValidator._check_bool(webhook, 'enabled', f'{section}.webhook')
            ConfigValidator._check_positive(webhook, 'timeout', f'{section}.webhook')
            ConfigValidator._check_positive(webhook, 'retry_delay', f'{section}.webhook', allow_zero=True)
            if webhook.get('enabled', False):
                ConfigValidator._check_url(webhook.get('url'), f'{section}.webhook')

        email = logs.get('email')
        if email is not None:
            ConfigValidator._require_dict(email, f'{section}.email')
            ConfigValidator._check_bool(email, 'enabled', f'{section}.email')
            ConfigValidator._check_positive(email, 'timeout', f'{section}.email')
            if email.get('enabled', False):
                for field in ('to', 'smtp_server'):
                    if not email.get(field):
                        raise ConfigError(f"{section}.email 缺少必需的配置项: {field}")

    @staticmethod
    def validate_scheduler_config(config: Dict[str, Any]) -> None:
        """
        验证 scheduler_monitor 配置

        Raises:
            ConfigError: 配置验证失败
        """
        section = 'scheduler_monitor'
        ConfigValidator._require_dict(config, section)
        ConfigValidator._check_bool(config, 'enabled', section)
        ConfigValidator._check_bool(config, 'jobs_enabled', section)
        ConfigValidator._check_positive(config, 'max_task_duration_ms', section)
        ConfigValidator._check_positive(config, 'max_idle_duration_ms', section)

        min_executions = config.get('min_executions_before_idle_check')
        if min_executions is not None:
            if not isinstance(min_executions, int) or isinstance(min_executions, bool) \
                    or min_executions < 0:
                raise ConfigError(f"{section}.min_executions_before_idle_check 必须是非负整数")
