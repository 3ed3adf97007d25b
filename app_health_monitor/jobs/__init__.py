"""定时任务监控模块"""

from .liveness_tracker import JobLivenessTracker
from .sample_tasks import SampleTasks, SAMPLE_JOB_SCHEDULE

__all__ = ['JobLivenessTracker', 'SampleTasks', 'SAMPLE_JOB_SCHEDULE']
