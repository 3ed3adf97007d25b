"""外部API健康探针"""

import asyncio
from typing import Dict, Any, Optional

import aiohttp

from .base import BaseProbe
from ..models.health_check import ProbeResult


class ExternalApiProbe(BaseProbe):
    """外部API可用性探针

    配置 non_critical 为 True 时，失败返回 UNKNOWN，不影响汇总状态。
    """

    def validate_config(self) -> bool:
        """
        验证外部API配置

        Returns:
            bool: 配置是否有效
        """
        if not self.is_enabled():
            return True

        url = self.config.get('url')
        if not isinstance(url, str) or not url.startswith(('http://', 'https://')):
            self.logger.error(f"外部API地址无效: {url}")
            return False

        timeout = self.config.get('timeout', 3000)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            self.logger.error(f"外部API超时时间无效: {timeout}")
            return False

        return True

    def get_timeout_ms(self) -> int:
        return self.config.get('timeout', 3000)

    def get_timeout(self) -> float:
        return self.get_timeout_ms() / 1000

    async def check_health(self) -> ProbeResult:
        """
        执行一次有超时限制的GET请求

        Returns:
            ProbeResult: 健康检查结果
        """
        if not self.is_enabled():
            return ProbeResult.disabled()

        url = self.config.get('url', '')
        timeout_ms = self.get_timeout_ms()

        try:
            timeout = aiohttp.ClientTimeout(total=self.get_timeout())
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    status_code = response.status

            if 200 <= status_code < 300:
                return ProbeResult.up({
                    'url': url,
                    'status': status_code,
                    'responseTime': f"< {timeout_ms}ms"
                }, critical=self.is_critical())

            self.logger.warning(f"外部API返回非2xx状态码 {url}: {status_code}")
            return self._failure(url, status=str(status_code), reason='Non-2xx response')

        except asyncio.TimeoutError:
            self.logger.warning(f"外部API请求超时 {url}: {timeout_ms}ms")
            return self._failure(url, reason=f"Timeout after {timeout_ms}ms",
                                 error='Request timeout')
        except aiohttp.ClientConnectionError as e:
            self.logger.warning(f"外部API连接错误 {url}: {e}")
            return self._failure(url, reason='Connection error - check network connectivity',
                                 error=str(e))
        except Exception as e:
            self.logger.warning(f"外部API健康检查异常 {url}: {e}")
            return self._failure(url, reason='Unexpected error during health check',
                                 error=str(e))

    def _failure(self, url: str, status: Optional[str] = None,
                 reason: Optional[str] = None, error: Optional[str] = None) -> ProbeResult:
        """
        构造失败结果，非关键依赖返回UNKNOWN而不是DOWN

        Args:
            url: 请求地址
            status: HTTP状态码
            reason: 失败原因分类
            error: 原始错误信息
        """
        critical = self.is_critical()
        detail: Dict[str, Any] = {'url': url, 'critical': critical}
        if status is not None:
            detail['status'] = status
        if reason is not None:
            detail['reason'] = reason
        if error is not None:
            detail['error'] = error

        if critical:
            return ProbeResult.down(detail, critical=True)
        return ProbeResult.unknown(detail, critical=False)
