"""示例后台任务

模拟一个数据处理任务、一个快速任务和一个长时间任务，用来演示任务存活监控。
"""

import asyncio
from typing import Optional

from ..utils.exceptions import JobExecutionError
from ..utils.log_manager import get_logger

# (任务名, 执行间隔秒, 初始延迟秒)
SAMPLE_JOB_SCHEDULE = [
    ('processDataTask', 30, 5),
    ('quickTask', 60, 10),
    ('longRunningTask', 120, 15),
]


class SampleTasks:
    """示例任务集合

    processDataTask 每执行第5次失败一次，用于演示 FAILED 状态。
    """

    def __init__(self, work_seconds: Optional[dict] = None, failure_every: int = 5):
        self.work_seconds = {
            'processDataTask': 5.0,
            'quickTask': 1.0,
            'longRunningTask': 10.0,
        }
        self.work_seconds.update(work_seconds or {})
        self.failure_every = failure_every
        self.process_data_runs = 0
        self.logger = get_logger('jobs.sample')

    async def process_data_task(self) -> None:
        self.process_data_runs += 1
        await asyncio.sleep(self.work_seconds['processDataTask'])
        if self.failure_every and self.process_data_runs % self.failure_every == 0:
            raise JobExecutionError(
                f"Simulated failure in scheduled task execution #{self.process_data_runs}",
                task_name='processDataTask'
            )

    async def quick_task(self) -> None:
        await asyncio.sleep(self.work_seconds['quickTask'])

    async def long_running_task(self) -> None:
        await asyncio.sleep(self.work_seconds['longRunningTask'])

    def get_task(self, name: str):
        return {
            'processDataTask': self.process_data_task,
            'quickTask': self.quick_task,
            'longRunningTask': self.long_running_task,
        }[name]
