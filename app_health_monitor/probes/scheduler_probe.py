"""定时任务健康探针"""

from typing import Dict, Any, Optional

from .base import BaseProbe
from ..jobs.liveness_tracker import JobLivenessTracker
from ..models.health_check import ProbeResult
from ..models.job_state import JobLiveness


class SchedulerProbe(BaseProbe):
    """任务失败、卡死或长时间未完成时返回DOWN"""

    def __init__(self, name: str, tracker: JobLivenessTracker,
                 config: Optional[Dict[str, Any]] = None):
        super().__init__(name, config)
        self.tracker = tracker

    async def check_health(self) -> ProbeResult:
        if not self.is_enabled():
            return ProbeResult.disabled()

        state = self.tracker.snapshot()
        detail: Dict[str, Any] = {
            'lastStatus': state.last_status.value,
            'isRunning': state.is_running,
            'totalExecutions': state.total_executions,
            'successCount': state.success_count,
            'failureCount': state.failure_count,
            'lastExecutionTime': state.last_execution_start,
            'lastCompletionTime': state.last_completion_time,
            'hangSimulationEnabled': state.hang_simulation_enabled,
        }
        if state.last_error is not None:
            detail['lastError'] = state.last_error

        verdict = self.tracker.classify(state=state)
        if verdict.is_healthy:
            return ProbeResult.up(detail, critical=self.is_critical())

        detail['reason'] = verdict.reason
        if verdict.liveness is JobLiveness.HUNG:
            detail['runningDurationMs'] = verdict.duration_ms
            self.logger.warning(f"定时任务疑似卡死，已运行 {verdict.duration_ms}ms")
        elif verdict.liveness is JobLiveness.STALE:
            detail['idleDurationMs'] = verdict.duration_ms
            self.logger.warning(f"定时任务 {verdict.duration_ms}ms 内没有完成")
        else:
            self.logger.warning(f"定时任务最近一次执行失败: {state.last_error}")

        return ProbeResult.down(detail, critical=self.is_critical())
