"""定时任务调度器

以固定频率运行后台任务，每次执行都经过 JobLivenessTracker 记录。
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Set

from ..jobs.liveness_tracker import JobLivenessTracker
from ..utils.exceptions import JobExecutionError
from ..utils.log_manager import get_logger

JobFunc = Callable[[], Awaitable[Any]]


@dataclass
class ScheduledJob:
    name: str
    func: JobFunc
    interval_seconds: float
    initial_delay: float = 0.0


class JobScheduler:
    """固定频率任务调度器

    上一次执行未结束时不会启动下一次执行；卡死的任务只阻塞它自己的循环。
    """

    def __init__(self, tracker: JobLivenessTracker):
        self.tracker = tracker
        self.jobs: Dict[str, ScheduledJob] = {}
        self.is_running = False
        self._tasks: Set[asyncio.Task] = set()
        self.logger = get_logger('job_scheduler')

    def add_job(self, name: str, func: JobFunc, interval_seconds: float,
                initial_delay: float = 0.0) -> None:
        """
        注册定时任务

        Args:
            name: 任务名称
            func: 无参数异步函数
            interval_seconds: 执行间隔（秒），从上次开始时间计算
            initial_delay: 首次执行前的延迟（秒）

        Raises:
            JobExecutionError: 参数无效或任务已存在
        """
        if interval_seconds <= 0:
            raise JobExecutionError("任务执行间隔必须是正数", task_name=name)
        if initial_delay < 0:
            raise JobExecutionError("任务初始延迟不能为负数", task_name=name)
        if name in self.jobs:
            raise JobExecutionError(f"任务已存在: {name}", task_name=name)

        self.jobs[name] = ScheduledJob(name, func, interval_seconds, initial_delay)
        self.logger.info(f"注册定时任务 {name}: 间隔={interval_seconds}秒, 初始延迟={initial_delay}秒")
        if self.is_running:
            self._spawn(self.jobs[name])

    async def start(self) -> None:
        if self.is_running:
            self.logger.warning("任务调度器已经在运行")
            return

        self.is_running = True
        for job in self.jobs.values():
            self._spawn(job)
        self.logger.info(f"启动任务调度器，任务数: {len(self.jobs)}")

    async def stop(self) -> None:
        """取消所有任务循环并等待结束"""
        if not self.is_running:
            return

        self.is_running = False
        self.logger.info("正在停止任务调度器...")
        for task in self._tasks:
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self.logger.info("任务调度器已停止")

    def _spawn(self, job: ScheduledJob) -> None:
        task = asyncio.create_task(self._job_loop(job), name=f"job-{job.name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _job_loop(self, job: ScheduledJob) -> None:
        loop = asyncio.get_running_loop()
        await asyncio.sleep(job.initial_delay)
        while self.is_running:
            started = loop.time()
            await self.tracker.run(job.name, job.func)
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, job.interval_seconds - elapsed))

    def get_scheduler_stats(self) -> Dict[str, Any]:
        return {
            'is_running': self.is_running,
            'jobs': {
                name: {'interval_seconds': job.interval_seconds, 'initial_delay': job.initial_delay}
                for name, job in self.jobs.items()
            },
            'running_loops': len(self._tasks)
        }
