"""HTTP 状态接口"""

from typing import Optional

from aiohttp import web

from .error_middleware import create_error_middleware
from ..alerts.notifier import TransitionNotifier
from ..jobs.liveness_tracker import JobLivenessTracker
from ..models.health_check import HealthStatus, now_millis
from ..probes.database_probe import DatabaseProbe
from ..services.aggregator import HealthAggregator
from ..utils.health_metrics import HealthMetrics, METRICS_CONTENT_TYPE
from ..utils.log_manager import get_logger


class HealthApi:
    """状态接口处理器

    所有接口直接读取汇总器或任务跟踪器，不经过通知器。
    """

    def __init__(self, aggregator: HealthAggregator,
                 tracker: Optional[JobLivenessTracker] = None,
                 db_probe: Optional[DatabaseProbe] = None,
                 metrics: Optional[HealthMetrics] = None):
        self.aggregator = aggregator
        self.tracker = tracker
        self.db_probe = db_probe
        self.metrics = metrics
        self.logger = get_logger('web.api')

    async def db_status(self, request: web.Request) -> web.Response:
        """GET /api/health/db-status"""
        return web.json_response(await self.db_probe.connection_status())

    async def job_status(self, request: web.Request) -> web.Response:
        """GET /api/jobs/status"""
        state = self.tracker.snapshot()
        body = state.to_dict()
        body['status'] = state.last_status.value
        body['timestamp'] = now_millis()
        return web.json_response(body)

    async def job_health(self, request: web.Request) -> web.Response:
        """GET /api/jobs/health"""
        state = self.tracker.snapshot()
        body = {
            'status': state.last_status.value,
            'isRunning': state.is_running,
            'totalExecutions': state.total_executions,
            'successCount': state.success_count,
            'failureCount': state.failure_count,
            'lastExecutionTime': state.last_execution_start,
            'lastCompletionTime': state.last_completion_time,
            'timestamp': now_millis()
        }
        if state.last_error is not None:
            body['lastError'] = state.last_error
        return web.json_response(body)

    async def enable_hang(self, request: web.Request) -> web.Response:
        """POST /api/jobs/hang/enable"""
        self.tracker.enable_hang_simulation()
        return web.json_response({
            'status': 'ACCEPTED',
            'hangSimulationEnabled': True,
            'message': 'Hang simulation enabled. Next running job will appear hung.',
            'timestamp': now_millis()
        }, status=202)

    async def disable_hang(self, request: web.Request) -> web.Response:
        """POST /api/jobs/hang/disable"""
        self.tracker.disable_hang_simulation()
        return web.json_response({
            'status': 'OK',
            'hangSimulationEnabled': False,
            'message': 'Hang simulation disabled. Jobs will resume.',
            'timestamp': now_millis()
        })

    async def hang_status(self, request: web.Request) -> web.Response:
        """GET /api/jobs/hang/status"""
        return web.json_response({
            'status': 'OK',
            'hangSimulationEnabled': self.tracker.is_hang_simulation_enabled(),
            'timestamp': now_millis()
        })

    async def test_error(self, request: web.Request) -> web.Response:
        """GET /api/jobs/test-error，由异常中间件处理"""
        raise RuntimeError("Test exception for health monitoring")

    async def composite_health(self, request: web.Request) -> web.Response:
        """GET /actuator/health，DOWN 时返回503"""
        health = await self.aggregator.evaluate()
        if self.metrics is not None:
            self.metrics.update(health)
        status = 503 if health.overall_status is HealthStatus.DOWN else 200
        return web.json_response(health.to_dict(), status=status)

    async def component_health(self, request: web.Request) -> web.Response:
        """GET /actuator/health/{component}"""
        name = request.match_info['component']
        result = await self.aggregator.evaluate_component(name)
        if result is None:
            return web.json_response({
                'status': 'NOT_FOUND',
                'error': f"未知的健康组件: {name}",
                'errorType': 'UnknownComponent',
                'timestamp': now_millis()
            }, status=404)

        body = result.to_dict()
        body['timestamp'] = now_millis()
        status = 503 if result.is_down and result.critical else 200
        return web.json_response(body, status=status)

    async def prometheus_metrics(self, request: web.Request) -> web.Response:
        """GET /metrics"""
        response = web.Response(body=self.metrics.render())
        response.headers['Content-Type'] = METRICS_CONTENT_TYPE
        return response


def create_app(aggregator: HealthAggregator,
               tracker: Optional[JobLivenessTracker] = None,
               db_probe: Optional[DatabaseProbe] = None,
               metrics: Optional[HealthMetrics] = None,
               notifier: Optional[TransitionNotifier] = None) -> web.Application:
    """
    创建 aiohttp 应用并注册路由

    Args:
        aggregator: 健康汇总器（/actuator/health）
        tracker: 任务跟踪器，为None时不注册 /api/jobs 接口
        db_probe: 数据库探针，为None时不注册 db-status 接口
        metrics: Prometheus 指标，为None时不注册 /metrics
        notifier: 通知器，未捕获的请求异常会通知到这里

    Returns:
        web.Application: 应用实例
    """
    api = HealthApi(aggregator, tracker, db_probe, metrics)
    app = web.Application(middlewares=[create_error_middleware(notifier)])

    app.router.add_get('/actuator/health', api.composite_health)
    app.router.add_get('/actuator/health/{component}', api.component_health)

    if db_probe is not None:
        app.router.add_get('/api/health/db-status', api.db_status)

    if tracker is not None:
        app.router.add_get('/api/jobs/status', api.job_status)
        app.router.add_get('/api/jobs/health', api.job_health)
        app.router.add_post('/api/jobs/hang/enable', api.enable_hang)
        app.router.add_post('/api/jobs/hang/disable', api.disable_hang)
        app.router.add_get('/api/jobs/hang/status', api.hang_status)
        app.router.add_get('/api/jobs/test-error', api.test_error)

    if metrics is not None:
        app.router.add_get('/metrics', api.prometheus_metrics)

    api.logger.info(f"已注册 {len(app.router.routes())} 个HTTP路由")
    return app
