"""任务存活跟踪器测试"""

import asyncio

import pytest

from app_health_monitor.jobs.liveness_tracker import JobLivenessTracker
from app_health_monitor.models.job_state import JobExecutionState, JobLiveness, JobStatus


class TestStateTransitions:
    """状态转换测试"""

    def test_begin_execution(self, fake_clock):
        """测试开始执行"""
        tracker = JobLivenessTracker(clock=fake_clock)
        tracker.begin_execution()
        state = tracker.snapshot()

        assert state.is_running is True
        assert state.last_status is JobStatus.RUNNING
        assert state.total_executions == 1
        assert state.last_execution_start == fake_clock.now

    def test_complete_success(self, fake_clock):
        """测试成功完成推进完成时间"""
        tracker = JobLivenessTracker(clock=fake_clock)
        tracker.begin_execution()
        tracker.complete_failure("boom")
        tracker.begin_execution()
        fake_clock.advance(500)
        tracker.complete_success()
        state = tracker.snapshot()

        assert state.is_running is False
        assert state.last_status is JobStatus.COMPLETED
        assert state.success_count == 1
        assert state.last_error is None
        assert state.last_completion_time == fake_clock.now

    def test_failure_does_not_advance_completion(self, fake_clock):
        """测试失败不推进完成时间"""
        tracker = JobLivenessTracker(clock=fake_clock)
        tracker.begin_execution()
        tracker.complete_success()
        completed_at = tracker.snapshot().last_completion_time

        fake_clock.advance(1000)
        tracker.begin_execution()
        tracker.complete_failure("boom")
        state = tracker.snapshot()

        assert state.last_status is JobStatus.FAILED
        assert state.last_error == "boom"
        assert state.failure_count == 1
        assert state.last_completion_time == completed_at
        assert state.is_running is False


class TestClassification:
    """存活判定测试"""

    def setup_method(self):
        """测试前准备"""
        self.config = {
            'max_task_duration_ms': 15000,
            'max_idle_duration_ms': 180000,
            'min_executions_before_idle_check': 1,
        }

    def test_not_started_is_healthy(self, fake_clock):
        """测试从未执行时健康"""
        tracker = JobLivenessTracker(self.config, clock=fake_clock)
        assert tracker.classify().liveness is JobLiveness.HEALTHY

    def test_hung(self, fake_clock):
        """测试运行超过最大时长判定为卡死"""
        tracker = JobLivenessTracker(self.config, clock=fake_clock)
        tracker.begin_execution()
        fake_clock.advance(15001)

        verdict = tracker.classify()
        assert verdict.liveness is JobLiveness.HUNG
        assert verdict.reason == 'TASK_HUNG'
        assert verdict.duration_ms == 15001

    def test_running_within_limit_is_healthy(self, fake_clock):
        """测试运行未超时"""
        tracker = JobLivenessTracker(self.config, clock=fake_clock)
        tracker.begin_execution()
        fake_clock.advance(15000)
        assert tracker.classify().is_healthy

    def test_stale(self, fake_clock):
        """测试长时间没有完成判定为过期"""
        tracker = JobLivenessTracker(self.config, clock=fake_clock)
        tracker.begin_execution()
        tracker.complete_success()
        fake_clock.advance(180001)

        verdict = tracker.classify()
        assert verdict.liveness is JobLiveness.STALE
        assert verdict.reason == 'NO_RECENT_COMPLETION'
        assert verdict.duration_ms == 180001

    def test_failed_takes_precedence_over_hung(self, fake_clock):
        """测试失败优先于卡死"""
        tracker = JobLivenessTracker(self.config, clock=fake_clock)
        tracker._state = JobExecutionState(
            is_running=True,
            total_executions=2,
            failure_count=1,
            last_execution_start=fake_clock.now,
            last_status=JobStatus.FAILED,
            last_error='boom'
        )
        fake_clock.advance(60000)

        verdict = tracker.classify()
        assert verdict.liveness is JobLiveness.FAILED
        assert verdict.reason == 'LAST_EXECUTION_FAILED'

    def test_failed_takes_precedence_over_stale(self, fake_clock):
        """测试失败优先于过期"""
        tracker = JobLivenessTracker(self.config, clock=fake_clock)
        tracker.begin_execution()
        tracker.complete_success()
        tracker.begin_execution()
        tracker.complete_failure("boom")
        fake_clock.advance(200000)

        assert tracker.classify().liveness is JobLiveness.FAILED

    def test_classify_given_snapshot(self, fake_clock):
        """测试按传入的快照判定"""
        tracker = JobLivenessTracker(self.config, clock=fake_clock)
        tracker.begin_execution()
        state = tracker.snapshot()
        tracker.complete_failure("boom")
        fake_clock.advance(15001)

        verdict = tracker.classify(state=state)
        assert verdict.liveness is JobLiveness.HUNG
        assert verdict.duration_ms == 15001
        assert tracker.classify().liveness is JobLiveness.FAILED

    def test_grace_count_prevents_stale(self, fake_clock):
        """测试执行次数不足时不判定过期"""
        config = dict(self.config, min_executions_before_idle_check=3)
        tracker = JobLivenessTracker(config, clock=fake_clock)
        tracker.begin_execution()
        tracker.complete_success()
        fake_clock.advance(10_000_000)

        assert tracker.classify().is_healthy

    def test_zero_completions_below_grace_is_never_stale(self, fake_clock):
        """测试没有完成记录且执行次数不足时不判定过期"""
        config = dict(self.config, min_executions_before_idle_check=2)
        tracker = JobLivenessTracker(config, clock=fake_clock)
        tracker._state = JobExecutionState(total_executions=1, last_status=JobStatus.COMPLETED)
        fake_clock.advance(10_000_000)

        assert tracker.classify().is_healthy

    def test_default_thresholds(self):
        """测试默认阈值"""
        tracker = JobLivenessTracker()
        assert tracker.max_task_duration_ms == 15000
        assert tracker.max_idle_duration_ms == 180000
        assert tracker.min_executions_before_idle_check == 1


class TestRun:
    """任务执行包装测试"""

    @pytest.mark.asyncio
    async def test_success(self):
        """测试成功执行"""
        tracker = JobLivenessTracker()

        async def job():
            return 42

        assert await tracker.run('job', job) == 42
        state = tracker.snapshot()
        assert state.last_status is JobStatus.COMPLETED
        assert state.success_count == 1

    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self):
        """测试异常被记录而不是抛出"""
        tracker = JobLivenessTracker()

        async def job():
            raise RuntimeError("job exploded")

        assert await tracker.run('job', job) is None
        state = tracker.snapshot()
        assert state.last_status is JobStatus.FAILED
        assert state.last_error == "job exploded"

    @pytest.mark.asyncio
    async def test_cancellation_is_recorded_and_reraised(self):
        """测试取消信号被记录并重新抛出"""
        tracker = JobLivenessTracker()

        async def job():
            await asyncio.sleep(10)

        task = asyncio.create_task(tracker.run('job', job))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        state = tracker.snapshot()
        assert state.last_status is JobStatus.FAILED
        assert state.is_running is False
        assert 'job' in state.last_error

    @pytest.mark.asyncio
    async def test_hang_simulation_blocks_until_disabled(self):
        """测试卡死模拟期间任务保持RUNNING"""
        tracker = JobLivenessTracker(hang_poll_interval=0.01)
        tracker.enable_hang_simulation()

        async def job():
            return 'done'

        task = asyncio.create_task(tracker.run('job', job))
        await asyncio.sleep(0.05)

        state = tracker.snapshot()
        assert state.is_running is True
        assert state.hang_simulation_enabled is True
        assert not task.done()

        tracker.disable_hang_simulation()
        assert await asyncio.wait_for(task, 1) == 'done'
        assert tracker.snapshot().last_status is JobStatus.COMPLETED
        assert tracker.is_hang_simulation_enabled() is False
