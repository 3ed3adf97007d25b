"""Webhook告警器实现"""

import asyncio
from typing import Dict, Any
from urllib.parse import urlparse

import aiohttp

from .base import BaseAlerter
from ..models.health_check import AlertMessage
from ..utils.exceptions import AlertConfigError, AlertSendError
from ..utils.log_manager import get_logger


class WebhookAlerter(BaseAlerter):
    """通过HTTP POST发送JSON告警，失败后固定延迟重试一次"""

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化Webhook告警器

        Args:
            name: 告警器名称
            config: webhook配置 (url, timeout毫秒, retry_delay秒)
        """
        super().__init__(name, config)
        self.logger = get_logger(f'alerter.webhook.{self.name}')

        self.url = config.get('url', '')
        self.headers = config.get('headers', {})
        self.max_retries = 1
        self.retry_delay = config.get('retry_delay', 1.0)  # 秒

        if not self.validate_config():
            raise AlertConfigError(f"Webhook告警器配置无效: {name}", alert_name=name)

    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        if not self.url:
            self.logger.error(f"Webhook告警器 {self.name} 缺少URL配置")
            return False

        parsed_url = urlparse(self.url)
        if parsed_url.scheme not in ('http', 'https') or not parsed_url.netloc:
            self.logger.error(f"Webhook告警器 {self.name} URL格式无效: {self.url}")
            return False

        timeout = self.config.get('timeout', 5000)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            self.logger.error(f"Webhook告警器 {self.name} 超时时间无效: {timeout}")
            return False

        if self.retry_delay < 0:
            self.logger.error(f"Webhook告警器 {self.name} 重试延迟不能为负数")
            return False

        return True

    async def send_alert(self, message: AlertMessage) -> bool:
        """
        发送告警消息

        Args:
            message: 告警消息对象

        Returns:
            bool: 发送是否成功

        Raises:
            AlertSendError: 重试后仍然失败
        """
        payload = self.create_payload(message)
        self.logger.debug(f"发送webhook告警: {payload}")

        for attempt in range(self.max_retries + 1):
            try:
                await self._post(payload)
                if attempt > 0:
                    self.logger.info(f"Webhook告警器 {self.name} 重试后发送成功")
                else:
                    self.logger.debug(f"Webhook告警器 {self.name} 发送成功")
                return True
            except AlertSendError as e:
                self.logger.warning(
                    f"Webhook告警器 {self.name} 发送失败 "
                    f"(尝试 {attempt + 1}/{self.max_retries + 1}): {e}"
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay)
                else:
                    raise

        return False

    async def _post(self, payload: Dict[str, Any]) -> None:
        """
        发送一次HTTP请求

        Raises:
            AlertSendError: 网络错误、超时或非2xx响应
        """
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, json=payload, headers=self.headers) as response:
                    if not 200 <= response.status < 300:
                        body = await response.text()
                        raise AlertSendError(
                            f"webhook返回错误状态码 {response.status}: {body[:200]}",
                            alert_name=self.name
                        )
        except asyncio.TimeoutError:
            raise AlertSendError("webhook请求超时", alert_name=self.name)
        except aiohttp.ClientError as e:
            raise AlertSendError(f"webhook请求失败: {e}", alert_name=self.name, cause=e)

    @staticmethod
    def create_payload(message: AlertMessage) -> Dict[str, Any]:
        """
        创建JSON负载，异常字段只在有异常时出现

        Args:
            message: 告警消息

        Returns:
            Dict[str, Any]: JSON负载
        """
        payload: Dict[str, Any] = {
            'alertType': message.alert_type,
            'message': message.message,
            'timestamp': message.timestamp,
            'application': message.application,
        }
        if message.exception is not None:
            payload['exception'] = message.exception
            payload['exceptionMessage'] = message.exception_message
        return payload
