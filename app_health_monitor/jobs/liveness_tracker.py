"""定时任务存活跟踪器

记录定时任务的执行历史（次数、时间戳、最近状态），并在读取时按阈值判定
任务是否失败、卡死或长时间没有完成。
"""

import asyncio
import threading
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Optional

from ..models.health_check import now_millis
from ..models.job_state import JobExecutionState, JobLiveness, JobStatus, LivenessVerdict
from ..utils.log_manager import get_logger

DEFAULT_MAX_TASK_DURATION_MS = 15_000
DEFAULT_MAX_IDLE_DURATION_MS = 180_000
DEFAULT_MIN_EXECUTIONS_BEFORE_IDLE_CHECK = 1


class JobLivenessTracker:
    """任务执行状态的唯一持有者

    状态只由任务自身的 begin/complete 回调修改，锁只在内存更新期间持有。
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 clock: Callable[[], int] = now_millis,
                 hang_poll_interval: float = 1.0):
        """
        初始化跟踪器

        Args:
            config: scheduler_monitor 配置
            clock: 返回毫秒时间戳的时钟，测试时可替换
            hang_poll_interval: 模拟卡死期间检查开关的间隔（秒）
        """
        self.config = config or {}
        self.clock = clock
        self.hang_poll_interval = hang_poll_interval
        self.logger = get_logger('jobs.liveness')

        self._lock = threading.Lock()
        self._state = JobExecutionState()
        self._hang_event = threading.Event()

    @property
    def max_task_duration_ms(self) -> int:
        return self.config.get('max_task_duration_ms', DEFAULT_MAX_TASK_DURATION_MS)

    @property
    def max_idle_duration_ms(self) -> int:
        return self.config.get('max_idle_duration_ms', DEFAULT_MAX_IDLE_DURATION_MS)

    @property
    def min_executions_before_idle_check(self) -> int:
        return self.config.get('min_executions_before_idle_check',
                               DEFAULT_MIN_EXECUTIONS_BEFORE_IDLE_CHECK)

    def begin_execution(self) -> None:
        """任务开始执行"""
        with self._lock:
            self._state = replace(
                self._state,
                is_running=True,
                last_execution_start=self.clock(),
                last_status=JobStatus.RUNNING,
                total_executions=self._state.total_executions + 1
            )

    def complete_success(self) -> None:
        """任务正常完成，只有这里推进 last_completion_time"""
        with self._lock:
            self._state = replace(
                self._state,
                success_count=self._state.success_count + 1,
                last_status=JobStatus.COMPLETED,
                last_error=None,
                last_completion_time=self.clock(),
                is_running=False
            )

    def complete_failure(self, error: Optional[str]) -> None:
        """
        任务执行失败

        Args:
            error: 错误信息
        """
        with self._lock:
            self._state = replace(
                self._state,
                failure_count=self._state.failure_count + 1,
                last_status=JobStatus.FAILED,
                last_error=error,
                is_running=False
            )

    def snapshot(self) -> JobExecutionState:
        """获取当前状态快照"""
        with self._lock:
            state = self._state
        return replace(state, hang_simulation_enabled=self._hang_event.is_set())

    def classify(self, now: Optional[int] = None,
                 state: Optional[JobExecutionState] = None) -> LivenessVerdict:
        """
        判定任务存活状态，优先级 FAILED > HUNG > STALE > HEALTHY

        Args:
            now: 当前毫秒时间戳，默认取时钟
            state: 已取得的状态快照，默认重新获取

        Returns:
            LivenessVerdict: 判定结果
        """
        if state is None:
            state = self.snapshot()
        if now is None:
            now = self.clock()

        if state.last_status is JobStatus.FAILED:
            return LivenessVerdict(JobLiveness.FAILED, 'LAST_EXECUTION_FAILED')

        if state.is_running and state.last_execution_start > 0:
            running_duration = now - state.last_execution_start
            if running_duration > self.max_task_duration_ms:
                return LivenessVerdict(JobLiveness.HUNG, 'TASK_HUNG', running_duration)

        if (state.total_executions >= self.min_executions_before_idle_check
                and state.last_completion_time > 0):
            idle_duration = now - state.last_completion_time
            if idle_duration > self.max_idle_duration_ms:
                return LivenessVerdict(JobLiveness.STALE, 'NO_RECENT_COMPLETION', idle_duration)

        return LivenessVerdict(JobLiveness.HEALTHY)

    def enable_hang_simulation(self) -> None:
        self._hang_event.set()
        self.logger.warning("已启用卡死模拟，下一次任务执行将阻塞直到关闭模拟")

    def disable_hang_simulation(self) -> None:
        self._hang_event.clear()
        self.logger.warning("已关闭卡死模拟，被阻塞的任务将继续执行")

    def is_hang_simulation_enabled(self) -> bool:
        return self._hang_event.is_set()

    async def hang_point(self, task_name: str) -> None:
        """
        卡死模拟点：开关打开期间一直等待，只挂起当前任务协程

        Args:
            task_name: 任务名称
        """
        if not self._hang_event.is_set():
            return

        self.logger.warning(f"模拟任务 {task_name} 卡死，关闭模拟前任务保持RUNNING状态")
        while self._hang_event.is_set():
            await asyncio.sleep(self.hang_poll_interval)
        self.logger.info(f"任务 {task_name} 的卡死模拟已解除，继续执行")

    async def run(self, task_name: str, job: Callable[[], Awaitable[Any]]) -> Any:
        """
        执行一次被监控的任务

        异常记录为失败后吞掉；取消信号记录为失败后重新抛出。

        Args:
            task_name: 任务名称
            job: 无参数的异步任务函数

        Returns:
            任务返回值，失败时返回None
        """
        self.begin_execution()
        start = self.clock()
        self.logger.info(f"开始执行定时任务: {task_name} (第 {self.snapshot().total_executions} 次)")

        try:
            result = await job()
            await self.hang_point(task_name)
        except asyncio.CancelledError:
            self.complete_failure(f"任务 {task_name} 被取消")
            self.logger.error(f"定时任务 {task_name} 被中断，用时 {self.clock() - start}ms")
            raise
        except Exception as e:
            self.complete_failure(str(e))
            self.logger.error(f"定时任务 {task_name} 执行失败，用时 {self.clock() - start}ms: {e}",
                              exc_info=True)
            return None

        self.complete_success()
        state = self.snapshot()
        self.logger.info(
            f"定时任务 {task_name} 执行成功，用时 {self.clock() - start}ms "
            f"(总数: {state.total_executions}, 成功: {state.success_count}, 失败: {state.failure_count})"
        )
        return result
