"""邮件告警器实现"""

import re
from email.mime.text import MIMEText
from typing import Dict, Any, List

import aiosmtplib

from .base import BaseAlerter
from ..models.health_check import AlertMessage
from ..utils.exceptions import AlertConfigError, AlertSendError
from ..utils.log_manager import get_logger

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


class EmailAlerter(BaseAlerter):
    """通过SMTP发送纯文本告警邮件，由通知器在后台发送"""

    blocking = False

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化邮件告警器

        Args:
            name: 告警器名称
            config: 邮件配置 (to, from, subject, smtp_server, smtp_port, ...)
        """
        super().__init__(name, config)
        self.logger = get_logger(f'alerter.email.{self.name}')

        self.smtp_server = config.get('smtp_server', '')
        self.smtp_port = config.get('smtp_port', 587)
        self.username = config.get('username')
        self.password = config.get('password')
        self.use_tls = config.get('use_tls', False)
        self.start_tls = config.get('start_tls', True)

        self.from_email = config.get('from', 'health-monitor@company.com')
        to = config.get('to', 'ops@company.com')
        self.to_emails: List[str] = [to] if isinstance(to, str) else list(to)
        self.subject = config.get('subject', 'Health Monitor Alert')

        if not self.validate_config():
            raise AlertConfigError(f"邮件告警器配置无效: {name}", alert_name=name)

    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        if not self.smtp_server:
            self.logger.error(f"邮件告警器 {self.name} 缺少SMTP服务器配置")
            return False

        if not self.to_emails:
            self.logger.error(f"邮件告警器 {self.name} 缺少收件人配置")
            return False

        for email in self.to_emails + [self.from_email]:
            if not EMAIL_PATTERN.match(email):
                self.logger.error(f"邮件告警器 {self.name} 邮箱格式无效: {email}")
                return False

        if not isinstance(self.smtp_port, int) or self.smtp_port <= 0:
            self.logger.error(f"邮件告警器 {self.name} SMTP端口无效: {self.smtp_port}")
            return False

        if self.use_tls and self.start_tls:
            self.logger.error(f"邮件告警器 {self.name} 不能同时启用use_tls和start_tls")
            return False

        return True

    async def send_alert(self, message: AlertMessage) -> bool:
        """
        发送告警邮件

        Args:
            message: 告警消息对象

        Returns:
            bool: 发送是否成功

        Raises:
            AlertSendError: SMTP发送失败
        """
        email_msg = self.create_email_message(message)
        try:
            await aiosmtplib.send(
                email_msg,
                hostname=self.smtp_server,
                port=self.smtp_port,
                username=self.username,
                password=self.password,
                use_tls=self.use_tls,
                start_tls=self.start_tls,
                timeout=self.get_timeout()
            )
        except Exception as e:
            raise AlertSendError(f"SMTP发送失败: {e}", alert_name=self.name, cause=e)

        self.logger.info(f"邮件告警发送成功: {self.from_email} -> {', '.join(self.to_emails)}")
        return True

    def create_email_message(self, message: AlertMessage) -> MIMEText:
        email_msg = MIMEText(self.render_body(message), 'plain', 'utf-8')
        email_msg['From'] = self.from_email
        email_msg['To'] = ', '.join(self.to_emails)
        email_msg['Subject'] = self.subject
        return email_msg

    @staticmethod
    def render_body(message: AlertMessage) -> str:
        """
        渲染邮件正文：服务、组件、状态以及详情字段

        Args:
            message: 告警消息

        Returns:
            str: 纯文本正文
        """
        lines = [
            f"Service: {message.application}",
            f"Alert type: {message.alert_type}",
        ]
        if message.instance_id:
            lines.append(f"Instance: {message.instance_id}")
        if message.component:
            lines.append(f"Component: {message.component}")
        if message.status:
            lines.append(f"Status: {message.status}")
        lines.append(f"Message: {message.message}")
        lines.append(f"Timestamp: {message.timestamp}")
        if message.exception:
            lines.append(f"Exception: {message.exception}: {message.exception_message}")

        if message.detail:
            lines.append("")
            lines.append("Details:")
            for key, value in message.detail.items():
                lines.append(f"  {key}: {value}")

        return "\n".join(lines) + "\n"
