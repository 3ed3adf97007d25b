"""定时任务执行状态模型"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional


class JobStatus(Enum):
    """最近一次执行的状态"""
    NOT_STARTED = 'NOT_STARTED'
    RUNNING = 'RUNNING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'


class JobLiveness(Enum):
    """任务存活分类，按优先级从高到低排列"""
    FAILED = 'FAILED'
    HUNG = 'HUNG'
    STALE = 'STALE'
    HEALTHY = 'HEALTHY'


@dataclass(frozen=True)
class JobExecutionState:
    """任务执行状态快照

    时间字段为毫秒时间戳，0 表示从未发生。
    """
    is_running: bool = False
    total_executions: int = 0
    success_count: int = 0
    failure_count: int = 0
    last_execution_start: int = 0
    last_completion_time: int = 0
    last_status: JobStatus = JobStatus.NOT_STARTED
    last_error: Optional[str] = None
    hang_simulation_enabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """接口使用的JSON字段"""
        return {
            'isRunning': self.is_running,
            'totalExecutions': self.total_executions,
            'successCount': self.success_count,
            'failureCount': self.failure_count,
            'lastExecutionTime': self.last_execution_start,
            'lastCompletionTime': self.last_completion_time,
            'lastStatus': self.last_status.value,
            'lastError': self.last_error,
            'hangSimulationEnabled': self.hang_simulation_enabled,
        }


@dataclass(frozen=True)
class LivenessVerdict:
    """存活判定结果"""
    liveness: JobLiveness
    reason: Optional[str] = None
    duration_ms: Optional[int] = None

    @property
    def is_healthy(self) -> bool:
        return self.liveness is JobLiveness.HEALTHY
