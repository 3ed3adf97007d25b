"""健康状态汇总器"""

import asyncio
from typing import Dict, Iterable, List, Optional

from ..models.health_check import CompositeHealth, HealthStatus, ProbeResult
from ..probes.base import BaseProbe
from ..utils.log_manager import get_logger


def effective_status(result: ProbeResult) -> HealthStatus:
    """非关键组件的DOWN按UNKNOWN计算"""
    if result.status is HealthStatus.DOWN and not result.critical:
        return HealthStatus.UNKNOWN
    return result.status


def aggregate(results: Iterable[ProbeResult]) -> HealthStatus:
    """
    汇总多个探针结果

    任一关键组件DOWN则DOWN；否则至少一个UP则UP；其余情况（包括没有结果）为UNKNOWN。

    Args:
        results: 探针结果集合

    Returns:
        HealthStatus: 汇总状态
    """
    statuses = [effective_status(result) for result in results]
    if HealthStatus.DOWN in statuses:
        return HealthStatus.DOWN
    if HealthStatus.UP in statuses:
        return HealthStatus.UP
    return HealthStatus.UNKNOWN


class HealthAggregator:
    """管理命名组件的探针并计算汇总状态"""

    def __init__(self, probes: Optional[Dict[str, BaseProbe]] = None):
        """
        Args:
            probes: 组件名称到探针的映射
        """
        self.probes: Dict[str, BaseProbe] = dict(probes or {})
        self.logger = get_logger('aggregator')

    def register(self, name: str, probe: BaseProbe) -> None:
        self.probes[name] = probe
        self.logger.info(f"已注册健康组件: {name} ({probe.probe_type})")

    def unregister(self, name: str) -> bool:
        return self.probes.pop(name, None) is not None

    def get_component_names(self) -> List[str]:
        return list(self.probes.keys())

    async def evaluate_component(self, name: str) -> Optional[ProbeResult]:
        """
        检查单个组件

        Args:
            name: 组件名称

        Returns:
            检查结果，组件不存在时返回None
        """
        probe = self.probes.get(name)
        if probe is None:
            return None
        return await self._run_probe(name, probe)

    async def evaluate(self) -> CompositeHealth:
        """
        并发执行所有探针并汇总，每个探针使用自己的超时

        Returns:
            CompositeHealth: 汇总健康状态
        """
        names = list(self.probes.keys())
        results = await asyncio.gather(
            *(self._run_probe(name, self.probes[name]) for name in names)
        )
        components = dict(zip(names, results))
        overall = aggregate(components.values())
        self.logger.debug(f"汇总健康状态: {overall.value}")
        return CompositeHealth(overall_status=overall, components=components)

    async def _run_probe(self, name: str, probe: BaseProbe) -> ProbeResult:
        try:
            return await probe.check_health()
        except Exception as e:
            self.logger.error(f"组件 {name} 检查时发生未处理的异常: {e}", exc_info=True)
            return ProbeResult.down({
                'error': str(e),
                'errorType': type(e).__name__
            }, critical=probe.is_critical())
