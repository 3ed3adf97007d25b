"""状态管理器模块

记录每个 (实例, 组件) 最近一次观察到的状态，用于检测状态变化。
"""

import threading
from typing import Dict, Optional, Tuple

from ..utils.log_manager import get_logger

StateKey = Tuple[str, str]


class TransitionStateStore:
    """组件状态记录

    条目数量由实例数 × 组件数自然限定，不做淘汰。
    """

    def __init__(self):
        self._states: Dict[StateKey, str] = {}
        self._lock = threading.Lock()
        self.logger = get_logger('state_manager')

    def swap(self, instance_id: str, component: str, status: str) -> Optional[str]:
        """原子地写入新状态并返回旧状态

        Args:
            instance_id: 实例标识
            component: 组件名称
            status: 新状态

        Returns:
            之前记录的状态，首次观察时为None
        """
        key = (instance_id, component)
        with self._lock:
            previous = self._states.get(key)
            self._states[key] = status

        if previous is None:
            self.logger.info(f"组件 {instance_id}/{component} 初始状态: {status}")
        elif previous != status:
            self.logger.warning(f"组件 {instance_id}/{component} 状态变化: {previous} -> {status}")
        return previous

    def get_current_state(self, instance_id: str, component: str) -> Optional[str]:
        """获取组件当前记录的状态，未知时返回None"""
        with self._lock:
            return self._states.get((instance_id, component))

    def get_all_states(self) -> Dict[StateKey, str]:
        """获取所有组件状态的副本"""
        with self._lock:
            return dict(self._states)
