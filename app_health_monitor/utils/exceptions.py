"""自定义异常类和错误代码

探针不抛出异常（失败体现为DOWN结果），这里只覆盖配置、告警发送和定时任务三类错误。
"""

import traceback
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """错误代码"""
    UNKNOWN_ERROR = 1000

    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002

    ALERT_CONFIG_ERROR = 4000
    ALERT_SEND_ERROR = 4001

    JOB_EXECUTION_ERROR = 5001


class HealthMonitorError(Exception):
    """健康监控异常基类

    子类通过 default_code 指定默认错误代码，通过 context_key 声明一个
    额外的上下文参数（例如 config_path），非空时写入 details。
    """

    default_code = ErrorCode.UNKNOWN_ERROR
    default_recoverable = True
    context_key: Optional[str] = None

    def __init__(self, message: str,
                 error_code: Optional[ErrorCode] = None,
                 details: Optional[Dict[str, Any]] = None,
                 cause: Optional[BaseException] = None,
                 recoverable: Optional[bool] = None,
                 **context):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = dict(details or {})
        self.cause = cause
        self.recoverable = self.default_recoverable if recoverable is None else recoverable
        self.timestamp = datetime.now()

        unexpected = set(context) - {self.context_key}
        if unexpected:
            raise TypeError(f"{type(self).__name__} 不支持的参数: {', '.join(sorted(unexpected))}")
        if self.context_key and context.get(self.context_key):
            self.details[self.context_key] = context[self.context_key]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'cause': None,
            'traceback': None,
        }
        if self.cause is not None:
            data['cause'] = str(self.cause)
            data['traceback'] = ''.join(traceback.format_exception(
                type(self.cause), self.cause, self.cause.__traceback__
            ))
        return data

    def format_error(self) -> str:
        """单行错误描述: [代码] 消息 (详情) (原因)"""
        parts = [f"[{self.error_code.name}] {self.message}"]
        if self.details:
            parts.append("(详情: " + ", ".join(f"{k}={v}" for k, v in self.details.items()) + ")")
        if self.cause is not None:
            parts.append(f"(原因: {self.cause})")
        return " ".join(parts)


class ConfigError(HealthMonitorError):
    """配置文件缺失、无法解析或验证失败"""
    default_code = ErrorCode.CONFIG_VALIDATION_ERROR
    default_recoverable = False
    context_key = 'config_path'


class AlertError(HealthMonitorError):
    """告警相关异常"""
    default_code = ErrorCode.ALERT_SEND_ERROR
    context_key = 'alert_name'


class AlertConfigError(AlertError):
    """告警器配置无效，告警器无法创建"""
    default_code = ErrorCode.ALERT_CONFIG_ERROR
    default_recoverable = False


class AlertSendError(AlertError):
    """告警发送失败（含重试之后）"""
    default_code = ErrorCode.ALERT_SEND_ERROR


class JobExecutionError(HealthMonitorError):
    """定时任务执行或注册失败"""
    default_code = ErrorCode.JOB_EXECUTION_ERROR
    context_key = 'task_name'
