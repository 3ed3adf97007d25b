"""数据库健康探针"""

import asyncio
import time
from typing import Dict, Any, Optional

import aiomysql

from .base import BaseProbe
from ..models.health_check import ProbeResult, now_millis

# 可选元数据查询：部分数据库或代理不支持，失败时直接省略
METADATA_QUERIES = {
    'readOnly': "SELECT @@read_only",
    'catalog': "SELECT DATABASE()",
    'maxConnections': "SELECT @@max_connections",
    'defaultTransactionIsolation': "SELECT @@transaction_isolation",
}


class DatabaseProbe(BaseProbe):
    """数据库连接健康探针

    连接来自外部连接池，每次检查通过 ``async with pool.acquire()`` 借用并归还。
    """

    def __init__(self, name: str, config: Optional[Dict[str, Any]] = None,
                 pool: Optional[aiomysql.Pool] = None):
        """
        初始化数据库探针

        Args:
            name: 组件名称
            config: 数据库探针配置
            pool: 外部连接池，为None时探针返回UNKNOWN
        """
        super().__init__(name, config)
        self.pool = pool

    def validate_config(self) -> bool:
        """
        验证数据库探针配置

        Returns:
            bool: 配置是否有效
        """
        timeout = self.config.get('timeout', 2)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            self.logger.error(f"数据库探针超时时间无效: {timeout}")
            return False
        return True

    def get_timeout(self) -> float:
        return self.config.get('timeout', 2)

    def expose_connection_info(self) -> bool:
        return bool(self.config.get('expose_connection_info', False))

    async def check_health(self, timeout_seconds: Optional[float] = None) -> ProbeResult:
        """
        执行数据库健康检查

        Args:
            timeout_seconds: 本次检查超时时间（秒），默认取配置

        Returns:
            ProbeResult: 健康检查结果
        """
        if not self.is_enabled():
            return ProbeResult.disabled()

        if self.pool is None:
            self.logger.debug("未配置数据库连接池，跳过检查")
            return ProbeResult.unknown({'status': 'NO_DATASOURCE'})

        timeout = timeout_seconds if timeout_seconds is not None else self.get_timeout()
        start_time = time.monotonic()

        try:
            detail = await asyncio.wait_for(self._run_check(start_time), timeout)
            self.logger.debug(f"数据库健康检查成功，用时: {detail['responseTime']}ms")
            return ProbeResult.up(detail, critical=self.is_critical())

        except asyncio.TimeoutError:
            error_message = f"数据库检查超时 ({timeout}s)"
            error_type = 'TimeoutError'
        except aiomysql.Error as e:
            error_message = str(e)
            error_type = type(e).__name__
        except Exception as e:
            error_message = str(e)
            error_type = type(e).__name__

        response_time = _elapsed_ms(start_time)
        self.logger.warning(f"数据库健康检查失败: {error_message}")
        return ProbeResult.down({
            'error': error_message,
            'errorType': error_type,
            'responseTime': response_time
        }, critical=self.is_critical())

    async def _run_check(self, start_time: float) -> Dict[str, Any]:
        """借用连接，验证存活、执行查询并收集元数据"""
        async with self.pool.acquire() as connection:
            heartbeat_start = time.monotonic()
            await connection.ping(reconnect=False)
            heartbeat = _elapsed_ms(heartbeat_start)

            async with connection.cursor() as cursor:
                await cursor.execute("SELECT 1")
                await cursor.fetchone()

            detail = self._connection_metadata(connection)
            detail['heartbeat'] = heartbeat
            detail['responseTime'] = _elapsed_ms(start_time)
            detail.update(await self._optional_metadata(connection))
            return detail

    def _connection_metadata(self, connection) -> Dict[str, Any]:
        """驱动与产品信息"""
        detail = {
            'database': 'MySQL',
            'databaseVersion': connection.get_server_info(),
            'driverName': 'aiomysql',
            'driverVersion': aiomysql.__version__,
            'autoCommit': connection.get_autocommit(),
        }
        if self.expose_connection_info():
            detail['url'] = f"mysql://{connection.host}:{connection.port}/{connection.db or ''}"
            detail['username'] = connection.user
        return detail

    async def _optional_metadata(self, connection) -> Dict[str, Any]:
        """逐项查询可选元数据，单项失败只省略该项"""
        metadata: Dict[str, Any] = {}
        for key, sql in METADATA_QUERIES.items():
            try:
                async with connection.cursor() as cursor:
                    await cursor.execute(sql)
                    row = await cursor.fetchone()
            except Exception as e:
                self.logger.debug(f"无法获取数据库元数据 {key}: {e}")
                continue
            if row is not None:
                metadata[key] = row[0]

        if connection.db:
            metadata['schema'] = connection.db
        if 'readOnly' in metadata:
            metadata['readOnly'] = bool(metadata['readOnly'])
        return metadata

    async def connection_status(self) -> Dict[str, Any]:
        """
        数据库连接状态与心跳，供状态接口使用

        Returns:
            Dict[str, Any]: status 为 CONNECTED / DISCONNECTED / ERROR / DISABLED
        """
        if not self.is_enabled():
            return {
                'status': 'DISABLED',
                'message': 'Database monitoring is disabled',
                'timestamp': now_millis()
            }

        if self.pool is None:
            return {
                'status': 'ERROR',
                'error': '未配置数据库连接池',
                'errorType': 'NoDataSource',
                'timestamp': now_millis()
            }

        try:
            response = await asyncio.wait_for(self._status_snapshot(), self.get_timeout())
        except asyncio.TimeoutError:
            self.logger.error("获取数据库状态超时")
            response = {
                'status': 'ERROR',
                'error': f"数据库检查超时 ({self.get_timeout()}s)",
                'errorType': 'TimeoutError'
            }
        except Exception as e:
            self.logger.error(f"获取数据库状态失败: {e}", exc_info=True)
            response = {
                'status': 'ERROR',
                'error': str(e),
                'errorType': type(e).__name__
            }

        response['timestamp'] = now_millis()
        return response

    async def _status_snapshot(self) -> Dict[str, Any]:
        async with self.pool.acquire() as connection:
            heartbeat_start = time.monotonic()
            try:
                await connection.ping(reconnect=False)
                is_valid = True
                error = None
            except Exception as e:
                is_valid = False
                error = e
            heartbeat = _elapsed_ms(heartbeat_start)

            response = {
                'status': 'CONNECTED' if is_valid else 'DISCONNECTED',
                'heartbeat': heartbeat,
            }
            if error is not None:
                response['error'] = str(error)
                response['errorType'] = type(error).__name__
                return response

            response.update(self._connection_metadata(connection))
            database_info = await self._optional_metadata(connection)
            if 'readOnly' in database_info:
                response['readOnly'] = database_info.pop('readOnly')
            response['databaseInfo'] = database_info
            return response


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


async def create_pool(config: Dict[str, Any]) -> aiomysql.Pool:
    """
    根据配置创建 aiomysql 连接池

    Args:
        config: 数据库配置

    Returns:
        aiomysql.Pool: 连接池
    """
    return await aiomysql.create_pool(
        host=config.get('host', 'localhost'),
        port=config.get('port', 3306),
        user=config.get('username', 'root'),
        password=config.get('password', ''),
        db=config.get('database', ''),
        minsize=config.get('pool_minsize', 1),
        maxsize=config.get('pool_maxsize', 5),
        connect_timeout=config.get('timeout', 2),
        autocommit=True
    )
