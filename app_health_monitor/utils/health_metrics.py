"""Prometheus 健康指标"""

from typing import Optional

from prometheus_client import CollectorRegistry, Gauge, generate_latest, CONTENT_TYPE_LATEST

from ..models.health_check import CompositeHealth, HealthStatus
from .log_manager import get_logger

METRICS_CONTENT_TYPE = CONTENT_TYPE_LATEST


class HealthMetrics:
    """把每次健康汇总结果导出为 Prometheus 指标

    使用独立的 CollectorRegistry，同一进程内可以创建多个实例（测试中常见）。
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self.logger = get_logger('health_metrics')

        self.component_status = Gauge(
            'health_monitor_component_status',
            'Component health status (1=UP, 0=otherwise)',
            ['component'],
            registry=self.registry
        )
        self.overall_status = Gauge(
            'health_monitor_overall_status',
            'Composite health status (1=UP, 0=otherwise)',
            registry=self.registry
        )
        self.logs_errors = Gauge(
            'health_monitor_logs_errors',
            'Number of recent error logs',
            registry=self.registry
        )

    def update(self, health: CompositeHealth) -> None:
        """
        根据汇总结果更新指标

        Args:
            health: 汇总健康状态
        """
        self.overall_status.set(1.0 if health.overall_status is HealthStatus.UP else 0.0)
        for name, result in health.components.items():
            self.component_status.labels(component=name).set(1.0 if result.is_up else 0.0)

        logs = health.components.get('logs')
        if logs is not None:
            self.logs_errors.set(logs.detail.get('recentErrorsCount', 0))

        self.logger.debug(f"已更新健康指标: {health.overall_status.value}")

    def render(self) -> bytes:
        """Prometheus 文本格式输出"""
        return generate_latest(self.registry)
