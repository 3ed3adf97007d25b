"""健康检查相关的数据模型"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional


def now_millis() -> int:
    """当前时间的毫秒时间戳"""
    return int(time.time() * 1000)


class HealthStatus(Enum):
    """组件健康状态"""
    UP = 'UP'
    DOWN = 'DOWN'
    UNKNOWN = 'UNKNOWN'


@dataclass
class ProbeResult:
    """单次探针检查结果

    critical 为 False 时，DOWN 在汇总时按 UNKNOWN 处理。
    """
    status: HealthStatus
    detail: Dict[str, Any] = field(default_factory=dict)
    critical: bool = True
    measured_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def up(cls, detail: Optional[Dict[str, Any]] = None, **kwargs) -> 'ProbeResult':
        return cls(HealthStatus.UP, dict(detail or {}), **kwargs)

    @classmethod
    def down(cls, detail: Optional[Dict[str, Any]] = None, **kwargs) -> 'ProbeResult':
        return cls(HealthStatus.DOWN, dict(detail or {}), **kwargs)

    @classmethod
    def unknown(cls, detail: Optional[Dict[str, Any]] = None, **kwargs) -> 'ProbeResult':
        return cls(HealthStatus.UNKNOWN, dict(detail or {}), **kwargs)

    @classmethod
    def disabled(cls) -> 'ProbeResult':
        """功能关闭时的固定结果"""
        return cls.unknown({'status': 'DISABLED'})

    @property
    def is_up(self) -> bool:
        return self.status is HealthStatus.UP

    @property
    def is_down(self) -> bool:
        return self.status is HealthStatus.DOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'details': dict(self.detail)
        }


@dataclass(frozen=True)
class ErrorEvent:
    """最近错误日志条目，创建后不可修改"""
    timestamp: datetime
    message: str
    cause: Optional[BaseException] = None


@dataclass
class CompositeHealth:
    """汇总健康状态，每次读取时重新计算"""
    overall_status: HealthStatus
    components: Dict[str, ProbeResult] = field(default_factory=dict)
    timestamp: int = field(default_factory=now_millis)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.overall_status.value,
            'timestamp': self.timestamp,
            'components': {
                name: result.to_dict() for name, result in self.components.items()
            }
        }


@dataclass
class AlertMessage:
    """告警消息模型"""
    alert_type: str  # "HEALTH_STATUS_CHANGE", "ERROR", "STARTUP_FAILURE"
    message: str
    application: str
    timestamp: int = field(default_factory=now_millis)
    component: Optional[str] = None
    status: Optional[str] = None
    instance_id: Optional[str] = None
    exception: Optional[str] = None
    exception_message: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, alert_type: str, message: str, application: str,
                       error: Optional[BaseException] = None, **kwargs) -> 'AlertMessage':
        """根据异常创建告警消息，记录异常的完整类名和消息"""
        exception = None
        exception_message = None
        if error is not None:
            error_type = type(error)
            exception = f"{error_type.__module__}.{error_type.__qualname__}"
            exception_message = str(error)
        return cls(
            alert_type=alert_type,
            message=message,
            application=application,
            exception=exception,
            exception_message=exception_message,
            **kwargs
        )
