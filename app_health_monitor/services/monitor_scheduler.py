"""健康轮询器模块

按固定间隔执行所有健康探针，把每个组件的结果交给通知器并更新指标。
"""

import asyncio
from typing import Optional

from .aggregator import HealthAggregator
from ..alerts.notifier import TransitionNotifier
from ..models.health_check import CompositeHealth
from ..utils.health_metrics import HealthMetrics
from ..utils.log_manager import get_logger


class HealthPoller:
    """健康轮询器

    HTTP 接口直接调用汇总器；只有轮询器把结果送往通知器，避免重复告警。
    """

    def __init__(self, aggregator: HealthAggregator,
                 notifier: Optional[TransitionNotifier] = None,
                 metrics: Optional[HealthMetrics] = None,
                 check_interval: float = 30,
                 instance_id: str = 'default'):
        """初始化健康轮询器

        Args:
            aggregator: 健康汇总器
            notifier: 状态变化通知器
            metrics: Prometheus 指标
            check_interval: 轮询间隔（秒）
            instance_id: 本实例标识
        """
        if check_interval <= 0:
            raise ValueError("检查间隔必须是正数")

        self.aggregator = aggregator
        self.notifier = notifier
        self.metrics = metrics
        self.check_interval = check_interval
        self.instance_id = instance_id
        self.is_running = False
        self.last_result: Optional[CompositeHealth] = None
        self._task: Optional[asyncio.Task] = None
        self.logger = get_logger('health_poller')

    async def check_now(self) -> CompositeHealth:
        """立即执行一轮检查

        Returns:
            汇总健康状态
        """
        health = await self.aggregator.evaluate()
        self.last_result = health

        if self.metrics is not None:
            self.metrics.update(health)

        if self.notifier is not None:
            for name, result in health.components.items():
                await self.notifier.on_observation(
                    self.instance_id, name, result.status, result.detail
                )

        self.logger.info(
            f"健康检查完成: {health.overall_status.value} ("
            + ", ".join(f"{name}={result.status.value}" for name, result in health.components.items())
            + ")"
        )
        return health

    async def start(self) -> None:
        """启动轮询循环（后台任务）"""
        if self.is_running:
            self.logger.warning("健康轮询器已经在运行")
            return

        self.is_running = True
        self._task = asyncio.create_task(self._poll_loop())
        self.logger.info(f"启动健康轮询器，检查间隔: {self.check_interval}秒")

    async def stop(self) -> None:
        """停止轮询循环"""
        if not self.is_running:
            return

        self.is_running = False
        self.logger.info("正在停止健康轮询器...")
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self.logger.info("健康轮询器已停止")

    async def _poll_loop(self) -> None:
        """轮询循环"""
        while self.is_running:
            try:
                await self.check_now()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error(f"健康轮询异常: {e}", exc_info=True)
            await asyncio.sleep(self.check_interval)
