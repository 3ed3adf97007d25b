"""数据模型模块"""

from .health_check import (
    HealthStatus, ProbeResult, ErrorEvent, CompositeHealth, AlertMessage, now_millis
)
from .job_state import JobStatus, JobExecutionState, JobLiveness, LivenessVerdict

__all__ = ['HealthStatus', 'ProbeResult', 'ErrorEvent', 'CompositeHealth',
           'AlertMessage', 'now_millis', 'JobStatus', 'JobExecutionState',
           'JobLiveness', 'LivenessVerdict']
