"""最近错误日志探针"""

import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Deque, Dict, Any, List, Optional

from .base import BaseProbe
from ..models.health_check import ErrorEvent, ProbeResult

MAX_ERRORS_TO_TRACK = 100


class LogVolumeProbe(BaseProbe):
    """监控进程内最近的错误日志

    错误通过 record_error 显式记录，缓冲区最多保留100条，超出时淘汰最旧的条目。
    """

    def __init__(self, name: str, config: Optional[Dict[str, Any]] = None):
        super().__init__(name, config)
        self._errors: Deque[ErrorEvent] = deque(maxlen=MAX_ERRORS_TO_TRACK)
        self._lock = threading.Lock()

    def validate_config(self) -> bool:
        threshold = self.config.get('recent_errors_threshold', 5)
        if not isinstance(threshold, int) or threshold <= 0:
            self.logger.error(f"错误数量阈值必须是正整数: {threshold}")
            return False

        lookback = self.config.get('lookback_seconds', 0)
        if not isinstance(lookback, (int, float)) or lookback < 0:
            self.logger.error(f"回看时间窗口无效: {lookback}")
            return False

        return True

    def get_threshold(self) -> int:
        return self.config.get('recent_errors_threshold', 5)

    def record_error(self, message: str, cause: Optional[BaseException] = None) -> None:
        """
        记录一条错误日志

        Args:
            message: 错误信息
            cause: 关联异常
        """
        if not self.is_enabled():
            return

        event = ErrorEvent(timestamp=datetime.now(), message=message, cause=cause)
        with self._lock:
            self._errors.append(event)

    def buffer_size(self) -> int:
        with self._lock:
            return len(self._errors)

    def recent_errors(self, max_count: int) -> List[ErrorEvent]:
        """
        获取最近的错误，最新的在前

        Args:
            max_count: 最多返回条数
        """
        with self._lock:
            snapshot = list(self._errors)
        snapshot.reverse()
        return snapshot[:max_count]

    async def check_health(self) -> ProbeResult:
        """
        错误数量达到阈值时返回DOWN

        Returns:
            ProbeResult: 健康检查结果
        """
        if not self.is_enabled():
            return ProbeResult.disabled()

        threshold = self.get_threshold()
        recent = self._within_lookback(self.recent_errors(threshold * 2))

        detail: Dict[str, Any] = {
            'recentErrorsCount': len(recent),
            'threshold': threshold
        }

        if len(recent) >= threshold:
            detail['status'] = 'ERROR_THRESHOLD_EXCEEDED'
            detail['recentErrors'] = [event.message for event in recent[:threshold]]
            self.logger.warning(f"最近错误数量 {len(recent)} 达到阈值 {threshold}")
            return ProbeResult.down(detail, critical=self.is_critical())

        return ProbeResult.up(detail, critical=self.is_critical())

    def _within_lookback(self, events: List[ErrorEvent]) -> List[ErrorEvent]:
        lookback = self.config.get('lookback_seconds', 0)
        if not lookback:
            return events
        cutoff = datetime.now() - timedelta(seconds=lookback)
        return [event for event in events if event.timestamp >= cutoff]
