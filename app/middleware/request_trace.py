"""
请求追踪中间件

- 接收或生成 X-Request-ID，写入日志上下文
- 响应头返回 X-Request-ID 与 X-Response-Time
- 按状态码分级记录访问日志
"""

import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.infra.logging import RequestTimer, get_logger, set_request_id

logger = get_logger(__name__)

# 健康检查等高频请求不记成功日志
QUIET_PATHS = ("/healthz", "/favicon.ico")


class RequestTraceMiddleware(BaseHTTPMiddleware):
    """4xx 记 warning，5xx 与未捕获异常记 error"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        set_request_id(request_id)
        timer = RequestTimer()
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"{request.method} {path} - 未捕获异常 - {timer.elapsed_ms():.0f}ms",
                extra={"method": request.method, "path": path, "status_code": 500},
            )
            raise

        duration = timer.elapsed_ms()
        status_code = response.status_code
        extra = {"method": request.method, "path": path, "status_code": status_code, "duration_ms": duration}
        message = f"{request.method} {path} - {status_code} - {duration:.0f}ms"

        if status_code >= 500:
            logger.error(message, extra=extra)
        elif status_code >= 400:
            logger.warning(message, extra=extra)
        elif path not in QUIET_PATHS:
            logger.info(message, extra=extra)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.0f}ms"
        return response
