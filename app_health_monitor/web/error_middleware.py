"""全局请求异常处理

未捕获的请求异常转换为500 JSON响应并通知；静态资源查找失败只返回404，不告警。
其他HTTP错误（如405）同样返回JSON错误体。
"""

from typing import Any, Dict, Optional

from aiohttp import web

from ..alerts.notifier import TransitionNotifier
from ..models.health_check import now_millis
from ..utils.log_manager import get_logger

STATIC_RESOURCE_PATTERNS = (
    '/favicon.ico',
    '/robots.txt',
    '/.well-known/',
    '/static/',
    '/public/',
    '/assets/',
)

STATIC_MESSAGE_MARKERS = (
    'favicon.ico',
    'No static resource',
    'Static resource',
    'NoResourceFoundException',
)

logger = get_logger('web.errors')


def is_static_resource_error(error: Optional[BaseException], path: Optional[str]) -> bool:
    """
    判断异常是否来自静态资源查找

    Args:
        error: 请求处理中抛出的异常
        path: 请求路径

    Returns:
        bool: 是否应当忽略（不计入错误、不告警）
    """
    if path is None:
        return False

    lower_path = path.lower()
    if 'favicon.ico' in lower_path:
        return True

    message = str(error) if error is not None else ''
    if any(marker in message for marker in STATIC_MESSAGE_MARKERS):
        return True
    if 'No handler found' in message and '/favicon' in lower_path:
        return True

    return any(pattern in lower_path for pattern in STATIC_RESOURCE_PATTERNS)


def not_found_body(path: str) -> Dict[str, Any]:
    return {
        'status': 404,
        'error': 'Not Found',
        'errorType': 'NotFound',
        'message': 'Static resource not found',
        'path': path,
        'timestamp': now_millis()
    }


def http_error_body(error: web.HTTPException, path: str) -> Dict[str, Any]:
    return {
        'status': error.status,
        'error': error.reason,
        'errorType': type(error).__name__,
        'message': error.text,
        'path': path,
        'timestamp': now_millis()
    }


def error_body(error: BaseException, path: str) -> Dict[str, Any]:
    return {
        'status': 500,
        'error': type(error).__name__,
        'errorType': type(error).__name__,
        'message': str(error),
        'path': path,
        'timestamp': now_millis()
    }


def create_error_middleware(notifier: Optional[TransitionNotifier] = None):
    """
    创建异常处理中间件

    Args:
        notifier: 通知器，为None时只记录日志

    Returns:
        aiohttp 中间件
    """

    @web.middleware
    async def error_middleware(request: web.Request, handler):
        path = request.path
        try:
            return await handler(request)
        except web.HTTPNotFound:
            logger.debug(f"资源不存在: {path}")
            return web.json_response(not_found_body(path), status=404)
        except web.HTTPException as e:
            if e.status < 400:
                raise
            logger.debug(f"请求 {request.method} {path} 返回 {e.status}")
            headers = {'Allow': e.headers['Allow']} if 'Allow' in e.headers else None
            return web.json_response(http_error_body(e, path), status=e.status, headers=headers)
        except Exception as e:
            if is_static_resource_error(e, path):
                logger.debug(f"忽略静态资源异常: {path}")
                return web.json_response(not_found_body(path), status=404)

            logger.error(f"请求 {request.method} {path} 处理异常: {e}", exc_info=True)
            if notifier is not None:
                await notifier.notify_error(f"Uncaught exception: {e}", e)
            return web.json_response(error_body(e, path), status=500)

    return error_middleware
