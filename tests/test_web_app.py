"""HTTP 状态接口测试"""

import pytest
from aiohttp.test_utils import TestClient, TestServer

from app_health_monitor.alerts.notifier import TransitionNotifier
from app_health_monitor.jobs.liveness_tracker import JobLivenessTracker
from app_health_monitor.models.health_check import ProbeResult
from app_health_monitor.probes.database_probe import DatabaseProbe
from app_health_monitor.probes.log_volume_probe import LogVolumeProbe
from app_health_monitor.services.aggregator import HealthAggregator
from app_health_monitor.utils.health_metrics import HealthMetrics
from app_health_monitor.web.app import create_app
from app_health_monitor.web.error_middleware import is_static_resource_error

from conftest import FakePool, RecordingAlerter, StaticProbe


async def make_client(app) -> TestClient:
    client = TestClient(TestServer(app))
    await client.start_server()
    return client


class TestActuatorHealth:
    """组件汇总接口测试"""

    @pytest.mark.asyncio
    async def test_composite_up(self):
        """测试汇总UP返回200"""
        aggregator = HealthAggregator({
            'db': StaticProbe('db', ProbeResult.up({'heartbeat': 1})),
            'logs': StaticProbe('logs', ProbeResult.up({'recentErrorsCount': 0, 'threshold': 5})),
        })
        client = await make_client(create_app(aggregator))
        try:
            response = await client.get('/actuator/health')
            body = await response.json()
        finally:
            await client.close()

        assert response.status == 200
        assert body['status'] == 'UP'
        assert body['components']['db'] == {'status': 'UP', 'details': {'heartbeat': 1}}
        assert isinstance(body['timestamp'], int)

    @pytest.mark.asyncio
    async def test_composite_down_is_503(self):
        """测试汇总DOWN返回503"""
        aggregator = HealthAggregator({
            'db': StaticProbe('db', ProbeResult.up()),
            'external': StaticProbe('external', ProbeResult.down({'reason': 'Non-2xx response'})),
        })
        client = await make_client(create_app(aggregator))
        try:
            response = await client.get('/actuator/health')
            body = await response.json()
        finally:
            await client.close()

        assert response.status == 503
        assert body['status'] == 'DOWN'
        assert body['components']['external']['details']['reason'] == 'Non-2xx response'

    @pytest.mark.asyncio
    async def test_single_component(self):
        """测试单个组件接口"""
        aggregator = HealthAggregator({
            'db': StaticProbe('db', ProbeResult.down({'error': 'refused'})),
            'external': StaticProbe('external', ProbeResult.unknown({'reason': 'Timeout after 3000ms'},
                                                                    critical=False)),
        })
        client = await make_client(create_app(aggregator))
        try:
            db = await client.get('/actuator/health/db')
            db_body = await db.json()
            external = await client.get('/actuator/health/external')
            missing = await client.get('/actuator/health/cache')
            missing_body = await missing.json()
        finally:
            await client.close()

        assert db.status == 503
        assert db_body['status'] == 'DOWN'
        assert external.status == 200
        assert missing.status == 404
        assert missing_body['status'] == 'NOT_FOUND'
        assert missing_body['errorType'] == 'UnknownComponent'


class TestDbStatus:
    """数据库状态接口测试"""

    @pytest.mark.asyncio
    async def test_connected(self):
        """测试连接正常"""
        probe = DatabaseProbe('db', {'enabled': True}, pool=FakePool())
        client = await make_client(create_app(HealthAggregator({'db': probe}), db_probe=probe))
        try:
            response = await client.get('/api/health/db-status')
            body = await response.json()
        finally:
            await client.close()

        assert response.status == 200
        assert body['status'] == 'CONNECTED'
        assert isinstance(body['heartbeat'], int)

    @pytest.mark.asyncio
    async def test_not_registered_without_probe(self):
        """测试没有数据库探针时不注册接口"""
        client = await make_client(create_app(HealthAggregator()))
        try:
            response = await client.get('/api/health/db-status')
        finally:
            await client.close()
        assert response.status == 404


class TestJobEndpoints:
    """任务状态接口测试"""

    def setup_method(self):
        """测试前准备"""
        self.tracker = JobLivenessTracker()
        self.aggregator = HealthAggregator()

    @pytest.mark.asyncio
    async def test_job_status(self):
        """测试任务状态"""
        self.tracker.begin_execution()
        self.tracker.complete_failure("boom")
        client = await make_client(create_app(self.aggregator, tracker=self.tracker))
        try:
            status_body = await (await client.get('/api/jobs/status')).json()
            health_body = await (await client.get('/api/jobs/health')).json()
        finally:
            await client.close()

        assert status_body['status'] == 'FAILED'
        assert status_body['lastStatus'] == 'FAILED'
        assert status_body['totalExecutions'] == 1
        assert status_body['failureCount'] == 1
        assert status_body['lastError'] == 'boom'
        assert status_body['hangSimulationEnabled'] is False
        assert health_body['status'] == 'FAILED'
        assert health_body['lastError'] == 'boom'

    @pytest.mark.asyncio
    async def test_hang_toggle(self):
        """测试卡死模拟开关"""
        client = await make_client(create_app(self.aggregator, tracker=self.tracker))
        try:
            enabled = await client.post('/api/jobs/hang/enable')
            enabled_body = await enabled.json()
            status_body = await (await client.get('/api/jobs/hang/status')).json()
            disabled = await client.post('/api/jobs/hang/disable')
            disabled_body = await disabled.json()
        finally:
            await client.close()

        assert enabled.status == 202
        assert enabled_body['status'] == 'ACCEPTED'
        assert enabled_body['hangSimulationEnabled'] is True
        assert status_body['hangSimulationEnabled'] is True
        assert disabled.status == 200
        assert disabled_body['hangSimulationEnabled'] is False
        assert self.tracker.is_hang_simulation_enabled() is False


class TestErrorHandling:
    """全局异常处理测试"""

    def setup_method(self):
        """测试前准备"""
        self.alerter = RecordingAlerter()
        self.log_probe = LogVolumeProbe('logs', {'enabled': True})
        self.notifier = TransitionNotifier(application='orders', alerters=[self.alerter],
                                           log_probe=self.log_probe)
        self.app = create_app(HealthAggregator(), tracker=JobLivenessTracker(),
                              notifier=self.notifier)

    @pytest.mark.asyncio
    async def test_uncaught_exception(self):
        """测试未捕获异常返回500并告警"""
        client = await make_client(self.app)
        try:
            response = await client.get('/api/jobs/test-error')
            body = await response.json()
        finally:
            await client.close()

        assert response.status == 500
        assert body['status'] == 500
        assert body['errorType'] == 'RuntimeError'
        assert body['message'] == 'Test exception for health monitoring'
        assert body['path'] == '/api/jobs/test-error'

        assert self.log_probe.buffer_size() == 1
        assert len(self.alerter.messages) == 1
        message = self.alerter.messages[0]
        assert message.alert_type == 'ERROR'
        assert message.exception == 'builtins.RuntimeError'

    @pytest.mark.asyncio
    async def test_static_resource_not_alerted(self):
        """测试静态资源缺失只返回404"""
        client = await make_client(self.app)
        try:
            response = await client.get('/favicon.ico')
            body = await response.json()
        finally:
            await client.close()

        assert response.status == 404
        assert body['status'] == 404
        assert body['path'] == '/favicon.ico'
        assert self.alerter.messages == []
        assert self.log_probe.buffer_size() == 0

    @pytest.mark.asyncio
    async def test_method_not_allowed_returns_json(self):
        """测试405返回JSON错误体且不告警"""
        client = await make_client(self.app)
        try:
            response = await client.get('/api/jobs/hang/enable')
            body = await response.json()
        finally:
            await client.close()

        assert response.status == 405
        assert response.content_type == 'application/json'
        assert 'POST' in response.headers['Allow']
        assert body['status'] == 405
        assert body['error'] == 'Method Not Allowed'
        assert body['errorType'] == 'HTTPMethodNotAllowed'
        assert body['path'] == '/api/jobs/hang/enable'
        assert self.alerter.messages == []
        assert self.log_probe.buffer_size() == 0

    def test_is_static_resource_error(self):
        """测试静态资源异常判定"""
        assert is_static_resource_error(None, '/favicon.ico')
        assert is_static_resource_error(RuntimeError('x'), '/static/app.js')
        assert is_static_resource_error(RuntimeError('No static resource x'), '/api/x')
        assert not is_static_resource_error(RuntimeError('boom'), '/api/jobs/test-error')
        assert not is_static_resource_error(RuntimeError('boom'), None)


class TestMetricsEndpoint:
    """Prometheus 接口测试"""

    @pytest.mark.asyncio
    async def test_metrics(self):
        """测试指标输出"""
        aggregator = HealthAggregator({
            'db': StaticProbe('db', ProbeResult.up()),
            'logs': StaticProbe('logs', ProbeResult.up({'recentErrorsCount': 3, 'threshold': 5})),
        })
        client = await make_client(create_app(aggregator, metrics=HealthMetrics()))
        try:
            await client.get('/actuator/health')
            response = await client.get('/metrics')
            text = await response.text()
        finally:
            await client.close()

        assert response.status == 200
        assert 'health_monitor_component_status{component="db"} 1.0' in text
        assert 'health_monitor_overall_status 1.0' in text
        assert 'health_monitor_logs_errors 3.0' in text
