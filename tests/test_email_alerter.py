"""邮件告警器测试"""

from unittest.mock import AsyncMock, patch

import pytest

from app_health_monitor.alerts.email_alerter import EmailAlerter
from app_health_monitor.alerts.notifier import TransitionNotifier
from app_health_monitor.models.health_check import AlertMessage, HealthStatus
from app_health_monitor.utils.exceptions import AlertConfigError, AlertSendError


def make_config(**overrides):
    config = {
        'enabled': True,
        'smtp_server': 'smtp.example.com',
        'smtp_port': 587,
        'username': 'monitor@example.com',
        'password': 'secret',
        'from': 'monitor@example.com',
        'to': ['ops@example.com', 'dba@example.com'],
        'subject': 'Health alert',
    }
    config.update(overrides)
    return config


class TestEmailAlerterConfig:
    """邮件告警器配置测试"""

    def test_init_valid_config(self):
        """测试有效配置的初始化"""
        alerter = EmailAlerter('email', make_config())

        assert alerter.smtp_server == 'smtp.example.com'
        assert alerter.to_emails == ['ops@example.com', 'dba@example.com']
        assert alerter.start_tls is True
        assert alerter.use_tls is False
        assert alerter.blocking is False

    def test_single_recipient_string(self):
        """测试收件人为字符串"""
        alerter = EmailAlerter('email', make_config(to='ops@example.com'))
        assert alerter.to_emails == ['ops@example.com']

    def test_missing_smtp_server(self):
        """测试缺少SMTP服务器配置"""
        with pytest.raises(AlertConfigError):
            EmailAlerter('email', make_config(smtp_server=''))

    def test_invalid_email(self):
        """测试无效邮箱格式"""
        with pytest.raises(AlertConfigError):
            EmailAlerter('email', make_config(to=['not-an-address']))

    def test_invalid_port(self):
        """测试无效端口配置"""
        with pytest.raises(AlertConfigError):
            EmailAlerter('email', make_config(smtp_port=-1))

    def test_tls_and_starttls(self):
        """测试同时启用use_tls和start_tls"""
        with pytest.raises(AlertConfigError):
            EmailAlerter('email', make_config(use_tls=True, start_tls=True))


class TestEmailBody:
    """邮件正文测试"""

    def test_render_body(self):
        """测试正文包含服务、组件、状态和详情"""
        message = AlertMessage(
            alert_type='HEALTH_STATUS_CHANGE',
            message='Health status changed for db: DOWN - Connection refused',
            application='orders',
            timestamp=1700000000000,
            component='db',
            status='DOWN',
            instance_id='app-1',
            detail={'error': 'Connection refused', 'database': 'MySQL'}
        )
        body = EmailAlerter.render_body(message)

        assert 'Service: orders' in body
        assert 'Component: db' in body
        assert 'Status: DOWN' in body
        assert 'Instance: app-1' in body
        assert 'Details:' in body
        assert '  error: Connection refused' in body
        assert '  database: MySQL' in body

    def test_render_body_with_exception(self):
        """测试正文包含异常信息"""
        message = AlertMessage.from_exception('ERROR', 'Uncaught exception', 'orders',
                                              RuntimeError('boom'))
        body = EmailAlerter.render_body(message)
        assert 'Exception: builtins.RuntimeError: boom' in body
        assert 'Details:' not in body

    def test_create_email_message(self):
        """测试邮件头"""
        alerter = EmailAlerter('email', make_config())
        message = AlertMessage(alert_type='ERROR', message='boom', application='orders')
        email_msg = alerter.create_email_message(message)

        assert email_msg['From'] == 'monitor@example.com'
        assert email_msg['To'] == 'ops@example.com, dba@example.com'
        assert email_msg['Subject'] == 'Health alert'


class TestEmailSend:
    """邮件发送测试"""

    @pytest.mark.asyncio
    async def test_send_success(self):
        """测试发送成功"""
        alerter = EmailAlerter('email', make_config())
        message = AlertMessage(alert_type='ERROR', message='boom', application='orders')

        with patch('aiosmtplib.send', new_callable=AsyncMock) as mock_send:
            assert await alerter.send_alert(message) is True

        mock_send.assert_awaited_once()
        kwargs = mock_send.call_args.kwargs
        assert kwargs['hostname'] == 'smtp.example.com'
        assert kwargs['port'] == 587
        assert kwargs['start_tls'] is True
        assert kwargs['timeout'] == 5.0

    @pytest.mark.asyncio
    async def test_send_failure(self):
        """测试SMTP失败时抛出发送异常"""
        alerter = EmailAlerter('email', make_config())
        message = AlertMessage(alert_type='ERROR', message='boom', application='orders')

        with patch('aiosmtplib.send', new_callable=AsyncMock,
                   side_effect=ConnectionRefusedError('refused')):
            with pytest.raises(AlertSendError):
                await alerter.send_alert(message)

    @pytest.mark.asyncio
    async def test_sent_in_background_by_notifier(self):
        """测试通知器在后台发送邮件，关闭时等待完成"""
        alerter = EmailAlerter('email', make_config())
        notifier = TransitionNotifier(application='orders', alerters=[alerter])

        with patch('aiosmtplib.send', new_callable=AsyncMock) as mock_send:
            await notifier.on_observation('app-1', 'db', HealthStatus.DOWN,
                                          {'error': 'Connection refused'})
            await notifier.close()

        mock_send.assert_awaited_once()
        email_msg = mock_send.call_args.args[0]
        assert 'Component: db' in email_msg.get_payload(decode=True).decode('utf-8')
