"""测试共用的替身对象"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import pytest

from app_health_monitor.alerts.base import BaseAlerter
from app_health_monitor.models.health_check import AlertMessage, ProbeResult
from app_health_monitor.probes.base import BaseProbe

DEFAULT_QUERY_RESULTS = {
    "SELECT 1": 1,
    "SELECT @@read_only": 0,
    "SELECT DATABASE()": 'app',
    "SELECT @@max_connections": 151,
    "SELECT @@transaction_isolation": 'REPEATABLE-READ',
}


class FakeCursor:
    """模拟 aiomysql 游标"""

    def __init__(self, connection: 'FakeConnection'):
        self.connection = connection
        self._row = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def execute(self, sql: str):
        self.connection.executed.append(sql)
        if sql in self.connection.failing_queries:
            raise self.connection.failing_queries[sql]
        self._row = (self.connection.results[sql],)

    async def fetchone(self):
        return self._row


class FakeConnection:
    """模拟 aiomysql 连接"""

    def __init__(self, ping_error: Optional[Exception] = None,
                 ping_delay: float = 0,
                 failing_queries: Optional[Dict[str, Exception]] = None):
        self.host = 'db.internal'
        self.port = 3306
        self.db = 'app'
        self.user = 'monitor'
        self.ping_error = ping_error
        self.ping_delay = ping_delay
        self.failing_queries = failing_queries or {}
        self.results = dict(DEFAULT_QUERY_RESULTS)
        self.executed: List[str] = []

    async def ping(self, reconnect: bool = True):
        if self.ping_delay:
            await asyncio.sleep(self.ping_delay)
        if self.ping_error is not None:
            raise self.ping_error

    def cursor(self):
        return FakeCursor(self)

    def get_server_info(self):
        return '8.0.36'

    def get_autocommit(self):
        return True


class FakePool:
    """模拟 aiomysql 连接池，记录借出和归还次数"""

    def __init__(self, connection: Optional[FakeConnection] = None,
                 acquire_error: Optional[Exception] = None):
        self.connection = connection or FakeConnection()
        self.acquire_error = acquire_error
        self.acquired = 0
        self.released = 0

    @asynccontextmanager
    async def acquire(self):
        if self.acquire_error is not None:
            raise self.acquire_error
        self.acquired += 1
        try:
            yield self.connection
        finally:
            self.released += 1


class RecordingAlerter(BaseAlerter):
    """记录收到的告警消息"""

    def __init__(self, name: str = 'recorder', config: Optional[Dict[str, Any]] = None,
                 error: Optional[Exception] = None, blocking: bool = True):
        super().__init__(name, config if config is not None else {'enabled': True})
        self.messages: List[AlertMessage] = []
        self.error = error
        self.blocking = blocking

    def validate_config(self) -> bool:
        return True

    async def send_alert(self, message: AlertMessage) -> bool:
        self.messages.append(message)
        if self.error is not None:
            raise self.error
        return True


class StaticProbe(BaseProbe):
    """返回预设结果的探针，可以在测试中修改"""

    def __init__(self, name: str, result: ProbeResult, config: Optional[Dict[str, Any]] = None):
        super().__init__(name, config)
        self.result = result
        self.calls = 0

    async def check_health(self) -> ProbeResult:
        self.calls += 1
        return self.result


class FakeClock:
    """可手动推进的毫秒时钟"""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


@pytest.fixture
def fake_pool():
    return FakePool()


@pytest.fixture
def recording_alerter():
    return RecordingAlerter()


@pytest.fixture
def fake_clock():
    return FakeClock()
