"""健康探针基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from ..models.health_check import ProbeResult
from ..utils.log_manager import get_logger


class BaseProbe(ABC):
    """健康探针抽象基类

    每个探针只负责一个依赖，持有自己的配置和超时设置。
    """

    def __init__(self, name: str, config: Optional[Dict[str, Any]] = None):
        """
        初始化健康探针

        Args:
            name: 组件名称，例如 db、external、logs、scheduler
            config: 探针配置参数
        """
        self.name = name
        self.config = config or {}
        self.probe_type = self.__class__.__name__.replace('Probe', '').lower()
        self.logger = get_logger(f'probe.{self.name}')

    @abstractmethod
    async def check_health(self) -> ProbeResult:
        """
        执行健康检查并返回结果，实现不得向外抛出异常

        Returns:
            ProbeResult: 健康检查结果
        """

    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        return True

    def is_enabled(self) -> bool:
        """探针是否启用"""
        return bool(self.config.get('enabled', True))

    def is_critical(self) -> bool:
        """DOWN 是否计入汇总状态"""
        return not self.config.get('non_critical', False)

    def get_timeout(self) -> float:
        """
        获取超时时间配置

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 10)
