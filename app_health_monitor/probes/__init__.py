"""健康探针模块"""

from .base import BaseProbe
from .database_probe import DatabaseProbe, create_pool
from .external_api_probe import ExternalApiProbe
from .log_volume_probe import LogVolumeProbe, MAX_ERRORS_TO_TRACK
from .scheduler_probe import SchedulerProbe

__all__ = ['BaseProbe', 'DatabaseProbe', 'create_pool', 'ExternalApiProbe',
           'LogVolumeProbe', 'MAX_ERRORS_TO_TRACK', 'SchedulerProbe']
