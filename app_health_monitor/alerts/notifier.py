"""状态变化通知器

只在组件进入DOWN时告警（边沿触发），重复的DOWN观察不会再次告警。
"""

import asyncio
from typing import Any, Dict, List, Optional, Set, Union

from .base import BaseAlerter
from .email_alerter import EmailAlerter
from .webhook_alerter import WebhookAlerter
from ..models.health_check import AlertMessage, HealthStatus
from ..probes.log_volume_probe import LogVolumeProbe
from ..services.state_manager import TransitionStateStore
from ..utils.log_manager import get_logger

ALERT_HEALTH_STATUS_CHANGE = 'HEALTH_STATUS_CHANGE'
ALERT_ERROR = 'ERROR'
ALERT_STARTUP_FAILURE = 'STARTUP_FAILURE'

DEFAULT_APPLICATION = 'health-monitor'


def create_alerters(logs_config: Dict[str, Any]) -> List[BaseAlerter]:
    """
    根据 health_monitor.logs 配置创建已启用的告警器

    Args:
        logs_config: 日志监控配置，包含 webhook 和 email 子配置

    Returns:
        List[BaseAlerter]: 告警器列表

    Raises:
        AlertConfigError: 已启用的告警器配置无效
    """
    alerters: List[BaseAlerter] = []

    webhook_config = logs_config.get('webhook') or {}
    if webhook_config.get('enabled', False):
        alerters.append(WebhookAlerter('webhook', webhook_config))

    email_config = logs_config.get('email') or {}
    if email_config.get('enabled', False):
        alerters.append(EmailAlerter('email', email_config))

    return alerters


class TransitionNotifier:
    """检测组件状态变化并分发告警"""

    def __init__(self,
                 application: str = DEFAULT_APPLICATION,
                 instance_id: str = 'default',
                 alerters: Optional[List[BaseAlerter]] = None,
                 state_store: Optional[TransitionStateStore] = None,
                 log_probe: Optional[LogVolumeProbe] = None):
        """
        初始化通知器

        Args:
            application: 告警中的应用名称
            instance_id: 本实例标识
            alerters: 告警器列表
            state_store: 状态记录，未提供时新建
            log_probe: 错误日志探针，notify_error 时记录错误
        """
        self.application = application
        self.instance_id = instance_id
        self.alerters: List[BaseAlerter] = list(alerters or [])
        self.state_store = state_store or TransitionStateStore()
        self.log_probe = log_probe
        self.logger = get_logger('notifier')

        self._background_tasks: Set[asyncio.Task] = set()

    def get_enabled_alerters(self) -> List[BaseAlerter]:
        return [alerter for alerter in self.alerters if alerter.is_enabled()]

    async def on_observation(self, instance_id: str, component: str,
                             new_status: Union[HealthStatus, str],
                             detail: Optional[Dict[str, Any]] = None) -> bool:
        """
        处理一次组件状态观察

        状态记录总是更新；只有从非DOWN（或首次）进入DOWN时才分发告警。

        Args:
            instance_id: 实例标识
            component: 组件名称
            new_status: 新状态
            detail: 组件检查详情

        Returns:
            bool: 是否分发了告警
        """
        status = new_status.value if isinstance(new_status, HealthStatus) else str(new_status)
        previous = self.state_store.swap(instance_id, component, status)

        if status != HealthStatus.DOWN.value or previous == HealthStatus.DOWN.value:
            return False

        reason = self._describe(detail)
        message = AlertMessage(
            alert_type=ALERT_HEALTH_STATUS_CHANGE,
            message=f"Health status changed for {component}: {status}"
                    + (f" - {reason}" if reason else ""),
            application=self.application,
            component=component,
            status=status,
            instance_id=instance_id,
            detail=dict(detail or {})
        )
        self.logger.warning(f"组件 {instance_id}/{component} 进入DOWN，发送告警 (之前: {previous})")
        await self._dispatch(message)
        return True

    async def notify_health_status_change(self, component: str, status: str,
                                          reason: Optional[str] = None) -> None:
        """无条件发送一次状态变化告警"""
        text = f"Health status changed for {component}: {status}"
        if reason:
            text += f" - {reason}"
        await self._dispatch(AlertMessage(
            alert_type=ALERT_HEALTH_STATUS_CHANGE,
            message=text,
            application=self.application,
            component=component,
            status=status,
            instance_id=self.instance_id
        ))

    async def notify_error(self, message: str, error: Optional[BaseException] = None) -> None:
        """
        记录并通知一个应用错误

        Args:
            message: 错误描述
            error: 相关异常
        """
        if self.log_probe is not None:
            self.log_probe.record_error(message, error)

        await self._dispatch(AlertMessage.from_exception(
            ALERT_ERROR,
            message,
            self.application,
            error,
            instance_id=self.instance_id
        ))

    async def on_startup_failure(self, error: BaseException) -> None:
        """应用启动失败时记录错误并发送告警"""
        text = f"Application startup failed: {error}"
        self.logger.error(f"应用启动失败: {error}")
        if self.log_probe is not None:
            self.log_probe.record_error(text, error)

        await self._dispatch(AlertMessage.from_exception(
            ALERT_STARTUP_FAILURE,
            text,
            self.application,
            error,
            instance_id=self.instance_id
        ))

    async def _dispatch(self, message: AlertMessage) -> None:
        """
        分发告警到所有已启用的告警器

        阻塞型告警器并发发送并等待结果；非阻塞型在后台发送。
        发送失败只记录日志，不向调用方抛出。
        """
        alerters = self.get_enabled_alerters()
        if not alerters:
            self.logger.debug(f"没有启用的告警器，跳过告警: {message.alert_type}")
            return

        blocking = [alerter for alerter in alerters if alerter.blocking]
        for alerter in alerters:
            if not alerter.blocking:
                task = asyncio.create_task(self._send_to_alerter(alerter, message))
                self._background_tasks.add(task)
                task.add_done_callback(self._background_tasks.discard)

        if blocking:
            results = await asyncio.gather(
                *(self._send_to_alerter(alerter, message) for alerter in blocking),
                return_exceptions=True
            )
            self._log_send_results(results, message)

    async def _send_to_alerter(self, alerter: BaseAlerter, message: AlertMessage) -> Dict[str, Any]:
        try:
            success = await alerter.send_alert(message)
            return {'alerter': alerter.name, 'success': success, 'error': None}
        except Exception as e:
            self.logger.error(f"告警器 {alerter.name} 发送失败: {e}")
            return {'alerter': alerter.name, 'success': False, 'error': str(e)}

    def _log_send_results(self, results: List[Any], message: AlertMessage) -> None:
        success_count = 0
        for result in results:
            if isinstance(result, BaseException):
                self.logger.error(f"告警发送异常: {result}")
            elif result.get('success'):
                success_count += 1
        self.logger.info(
            f"告警 {message.alert_type} 发送完成: 成功 {success_count}/{len(results)}"
        )

    @staticmethod
    def _describe(detail: Optional[Dict[str, Any]]) -> Optional[str]:
        if not detail:
            return None
        for key in ('reason', 'error', 'status'):
            if detail.get(key):
                return str(detail[key])
        return None

    def pending_count(self) -> int:
        return len(self._background_tasks)

    async def close(self) -> None:
        """等待后台发送任务结束"""
        pending = self.pending_count()
        if pending:
            self.logger.debug(f"等待 {pending} 个后台告警任务完成")
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
