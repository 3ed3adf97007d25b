"""告警模块"""

from .base import BaseAlerter
from .webhook_alerter import WebhookAlerter
from .email_alerter import EmailAlerter
from .notifier import (
    TransitionNotifier,
    create_alerters,
    ALERT_HEALTH_STATUS_CHANGE,
    ALERT_ERROR,
    ALERT_STARTUP_FAILURE,
)

__all__ = [
    'BaseAlerter',
    'WebhookAlerter',
    'EmailAlerter',
    'TransitionNotifier',
    'create_alerters',
    'ALERT_HEALTH_STATUS_CHANGE',
    'ALERT_ERROR',
    'ALERT_STARTUP_FAILURE',
]
