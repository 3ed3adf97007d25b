"""HTTP 接口模块"""

from .app import HealthApi, create_app
from .error_middleware import create_error_middleware, is_static_resource_error

__all__ = ['HealthApi', 'create_app', 'create_error_middleware', 'is_static_resource_error']
