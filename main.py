#!/usr/bin/env python3
"""
健康监控系统主应用程序入口

组装探针、汇总器、通知器、轮询器、任务调度器和HTTP接口，
处理信号并在启动失败时发送告警。
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Optional, Dict, Any

from aiohttp import web

from app_health_monitor.alerts.notifier import TransitionNotifier, create_alerters
from app_health_monitor.jobs.liveness_tracker import JobLivenessTracker
from app_health_monitor.jobs.sample_tasks import SampleTasks, SAMPLE_JOB_SCHEDULE
from app_health_monitor.models.health_check import HealthStatus
from app_health_monitor.probes import (
    DatabaseProbe, ExternalApiProbe, LogVolumeProbe, SchedulerProbe, create_pool
)
from app_health_monitor.services.aggregator import HealthAggregator
from app_health_monitor.services.config_manager import ConfigManager
from app_health_monitor.services.job_scheduler import JobScheduler
from app_health_monitor.services.monitor_scheduler import HealthPoller
from app_health_monitor.services.state_manager import TransitionStateStore
from app_health_monitor.utils.exceptions import HealthMonitorError, ConfigError
from app_health_monitor.utils.health_metrics import HealthMetrics
from app_health_monitor.utils.log_manager import log_manager, get_logger
from app_health_monitor.web.app import create_app

# 版本信息
__version__ = "1.0.0"


class HealthMonitorApp:
    """健康监控系统主应用程序类"""

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        """初始化应用程序

        Args:
            config_path: 配置文件路径
            log_level: 命令行指定的日志级别，覆盖配置文件
        """
        self.config_path = config_path
        self.log_level = log_level
        self.logger: Optional[logging.Logger] = None
        self.is_running = False
        self.shutdown_event = asyncio.Event()

        # 核心组件
        self.config_manager: Optional[ConfigManager] = None
        self.notifier: Optional[TransitionNotifier] = None
        self.aggregator: Optional[HealthAggregator] = None
        self.tracker: Optional[JobLivenessTracker] = None
        self.log_probe: Optional[LogVolumeProbe] = None
        self.db_probe: Optional[DatabaseProbe] = None
        self.metrics: Optional[HealthMetrics] = None
        self.poller: Optional[HealthPoller] = None
        self.job_scheduler: Optional[JobScheduler] = None
        self.runner: Optional[web.AppRunner] = None
        self.db_pool = None

    async def initialize(self):
        """初始化应用程序组件"""
        self.config_manager = ConfigManager(self.config_path)
        self.config_manager.load_config()

        global_config = self.config_manager.get_global_config()
        self._configure_logging(global_config)
        self.logger = get_logger('main')
        self.logger.info("开始初始化健康监控系统")

        monitor_config = self.config_manager.get_health_monitor_config()
        monitor_enabled = monitor_config.get('enabled', True)
        application = global_config.get('application', 'health-monitor')
        instance_id = global_config.get('instance_id', 'default')

        logs_config = self._component_config(monitor_config, 'logs', monitor_enabled)
        self.log_probe = LogVolumeProbe('logs', logs_config)

        self.notifier = TransitionNotifier(
            application=application,
            instance_id=instance_id,
            alerters=create_alerters(logs_config),
            state_store=TransitionStateStore(),
            log_probe=self.log_probe
        )

        self.aggregator = HealthAggregator()

        db_config = self._component_config(monitor_config, 'database', monitor_enabled)
        if db_config.get('enabled'):
            self.db_pool = await self._create_db_pool(db_config)
        self.db_probe = DatabaseProbe('db', db_config, self.db_pool)
        self.aggregator.register('db', self.db_probe)

        external_config = self._component_config(monitor_config, 'external', monitor_enabled)
        external_probe = ExternalApiProbe('external', external_config)
        if external_config.get('enabled') and not external_probe.validate_config():
            raise ConfigError("外部API探针配置无效")
        self.aggregator.register('external', external_probe)

        if not self.log_probe.validate_config():
            raise ConfigError("错误日志探针配置无效")
        self.aggregator.register('logs', self.log_probe)

        scheduler_config = self.config_manager.get_scheduler_config()
        self.tracker = JobLivenessTracker(scheduler_config)
        self.aggregator.register('scheduler', SchedulerProbe('scheduler', self.tracker, scheduler_config))

        self.metrics = HealthMetrics()
        self.poller = HealthPoller(
            self.aggregator,
            notifier=self.notifier,
            metrics=self.metrics,
            check_interval=global_config.get('check_interval', 30),
            instance_id=instance_id
        )

        self.job_scheduler = JobScheduler(self.tracker)
        if scheduler_config.get('enabled', True) and scheduler_config.get('jobs_enabled', True):
            tasks = SampleTasks()
            for name, interval, delay in SAMPLE_JOB_SCHEDULE:
                self.job_scheduler.add_job(name, tasks.get_task(name), interval, delay)

        self.logger.info(f"应用程序组件初始化完成，健康组件: {', '.join(self.aggregator.get_component_names())}")

    def create_web_app(self) -> web.Application:
        """创建HTTP应用，数据库状态接口默认关闭"""
        db_config = self.config_manager.get_health_monitor_config().get('database') or {}
        status_enabled = db_config.get('status_endpoint_enabled', False)
        return create_app(
            self.aggregator,
            tracker=self.tracker,
            db_probe=self.db_probe if status_enabled else None,
            metrics=self.metrics,
            notifier=self.notifier
        )

    @staticmethod
    def _component_config(monitor_config: Dict[str, Any], name: str,
                          monitor_enabled: bool) -> Dict[str, Any]:
        """总开关关闭时所有健康组件视为禁用"""
        config = dict(monitor_config.get(name) or {})
        config['enabled'] = bool(config.get('enabled', False)) and monitor_enabled
        return config

    async def _create_db_pool(self, db_config: Dict[str, Any]):
        """连接池创建失败时探针以无数据源状态运行"""
        try:
            pool = await create_pool(db_config)
            self.logger.info(f"数据库连接池已创建: {db_config.get('host')}:{db_config.get('port')}")
            return pool
        except Exception as e:
            self.logger.error(f"创建数据库连接池失败: {e}")
            return None

    def _configure_logging(self, global_config: Dict[str, Any]):
        """配置日志系统

        Args:
            global_config: 全局配置
        """
        log_config = {
            'log_level': self.log_level or global_config.get('log_level', 'INFO'),
            'enable_console': True,
        }
        if global_config.get('log_file'):
            log_config['log_file'] = global_config['log_file']
            log_config['max_file_size'] = global_config.get('max_log_size', 10 * 1024 * 1024)
            log_config['backup_count'] = global_config.get('log_backup_count', 5)

        log_manager.configure(log_config)

    async def start(self):
        """启动后台任务和HTTP服务，等待关闭信号"""
        if self.is_running:
            self.logger.warning("应用程序已经在运行")
            return

        self.is_running = True
        self.logger.info("启动健康监控系统")

        server_config = self.config_manager.get_server_config()
        self.runner = web.AppRunner(self.create_web_app())
        await self.runner.setup()
        site = web.TCPSite(self.runner, server_config.get('host', '0.0.0.0'),
                           server_config.get('port', 8080))
        await site.start()
        self.logger.info(f"HTTP服务已启动: {server_config.get('host')}:{server_config.get('port')}")

        await self.poller.start()
        await self.job_scheduler.start()

        self.logger.info("健康监控系统启动完成")
        await self.shutdown_event.wait()

    async def run(self):
        """初始化并运行，启动失败时发送告警后重新抛出"""
        try:
            await self.initialize()
            await self.start()
        except Exception as e:
            if self.logger:
                self.logger.error(f"应用程序启动失败: {e}", exc_info=True)
            if self.notifier is not None:
                await self.notifier.on_startup_failure(e)
            raise
        finally:
            await self.stop()

    async def stop(self):
        """停止应用程序"""
        if self.logger:
            self.logger.info("正在停止健康监控系统...")
        self.is_running = False

        if self.job_scheduler:
            await self.job_scheduler.stop()
        if self.poller:
            await self.poller.stop()
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
        if self.notifier:
            await self.notifier.close()
        if self.db_pool is not None:
            self.db_pool.close()
            await self.db_pool.wait_closed()
            self.db_pool = None

        if self.logger:
            self.logger.info("健康监控系统已停止")
        log_manager.cleanup()

    def shutdown(self):
        """触发应用程序关闭"""
        if self.logger:
            self.logger.info("收到关闭信号")
        self.shutdown_event.set()

    def get_status(self) -> Dict[str, Any]:
        """获取应用程序状态"""
        status: Dict[str, Any] = {
            'is_running': self.is_running,
            'config_path': self.config_path,
        }
        if self.aggregator:
            status['components'] = self.aggregator.get_component_names()
        if self.job_scheduler:
            status['scheduler_stats'] = self.job_scheduler.get_scheduler_stats()
        if self.notifier:
            status['current_states'] = {
                f"{instance}/{component}": value
                for (instance, component), value in self.notifier.state_store.get_all_states().items()
            }
        if self.poller and self.poller.last_result:
            status['last_health'] = self.poller.last_result.to_dict()
        return status


# 全局应用程序实例
app: Optional[HealthMonitorApp] = None


def signal_handler(signum, frame):
    """信号处理器"""
    signal_name = signal.Signals(signum).name
    print(f"\n收到信号 {signal_name} ({signum})")

    if app:
        app.shutdown()
    else:
        print("应用程序未初始化，直接退出")
        sys.exit(0)


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='app-health-monitor',
        description='应用健康监控 - 检查数据库、外部API、错误日志和定时任务并发送告警',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s config.yaml                    # 使用指定配置文件启动监控
  %(prog)s --validate config.yaml        # 验证配置文件格式
  %(prog)s --check-once config.yaml      # 执行一次健康检查后退出
  %(prog)s --version                      # 显示版本信息

配置文件格式请参考 config/example.yaml
        """
    )

    parser.add_argument(
        'config_file',
        nargs='?',
        help='YAML配置文件路径'
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--validate',
        action='store_true',
        help='验证配置文件格式并退出'
    )

    parser.add_argument(
        '--check-once',
        action='store_true',
        help='执行一次健康检查后退出'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='设置日志级别（覆盖配置文件设置）'
    )

    return parser


def validate_config_file(config_path: str) -> bool:
    """验证配置文件

    Args:
        config_path: 配置文件路径

    Returns:
        验证是否成功
    """
    print(f"正在验证配置文件: {config_path}")
    try:
        config_manager = ConfigManager(config_path)
        config_manager.load_config()
    except ConfigError as e:
        print(f"❌ 配置文件验证失败: {e}")
        return False

    monitor_config = config_manager.get_health_monitor_config()
    print("✅ 配置文件验证成功!")
    for name in ('database', 'external', 'logs'):
        section = monitor_config.get(name, {})
        state = '启用' if section.get('enabled') else '禁用'
        critical = '非关键' if section.get('non_critical') else '关键'
        print(f"   - {name}: {state} ({critical})")

    logs_config = monitor_config.get('logs', {})
    for sink in ('webhook', 'email'):
        state = '启用' if (logs_config.get(sink) or {}).get('enabled') else '禁用'
        print(f"   - {sink} 告警: {state}")

    scheduler_config = config_manager.get_scheduler_config()
    print(f"   - scheduler: {'启用' if scheduler_config.get('enabled') else '禁用'}")
    return True


async def check_once(config_path: Optional[str], log_level: Optional[str] = None) -> bool:
    """执行一次健康检查

    Args:
        config_path: 配置文件路径
        log_level: 日志级别

    Returns:
        汇总状态不是DOWN时返回True
    """
    print(f"正在执行健康检查: {config_path}")
    check_app = HealthMonitorApp(config_path, log_level)
    try:
        await check_app.initialize()
        health = await check_app.poller.check_now()
    finally:
        await check_app.stop()

    print(f"汇总状态: {health.overall_status.value}")
    for name, result in health.components.items():
        mark = '✅' if result.is_up else ('❌' if result.is_down else '❔')
        print(f"   {mark} {name}: {result.status.value} {result.detail}")

    return health.overall_status is not HealthStatus.DOWN


async def main():
    """主函数"""
    global app

    parser = create_argument_parser()
    args = parser.parse_args()

    config_path = args.config_file
    if config_path and not os.path.exists(config_path):
        print(f"配置文件不存在: {config_path}", file=sys.stderr)
        sys.exit(1)

    if args.validate:
        if not config_path:
            parser.print_help()
            sys.exit(1)
        sys.exit(0 if validate_config_file(config_path) else 1)

    try:
        if args.check_once:
            sys.exit(0 if await check_once(config_path, args.log_level) else 1)

        app = HealthMonitorApp(config_path, args.log_level)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        print(f"健康监控系统 v{__version__} 启动中")
        print(f"配置文件: {config_path or '(默认配置)'}")
        print("按 Ctrl+C 停止程序")

        await app.run()

    except KeyboardInterrupt:
        print("\n用户中断程序")
    except ConfigError as e:
        print(f"配置错误: {e}", file=sys.stderr)
        sys.exit(1)
    except HealthMonitorError as e:
        print(f"健康监控系统错误: {e}", file=sys.stderr)
        sys.exit(1)


def cli():
    """命令行入口"""
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

    asyncio.run(main())


if __name__ == "__main__":
    cli()
