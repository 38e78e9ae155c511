"""
API 中间件

包含上传请求校验、请求日志追踪和安全响应头的中间件。
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from services.error_handler import create_error_response, get_client_ip
from services.logging import (
    clear_request_context, get_logger, performance_monitor,
    request_tracker, set_request_context
)

logger = logging.getLogger(__name__)

# 接收图像上传的端点
UPLOAD_ENDPOINTS = {"/edit"}


class FileValidationMiddleware(BaseHTTPMiddleware):
    """上传请求校验中间件

    在读取请求体之前拒绝过大或非 multipart 的上传请求，
    单个文件的类型和大小由 RequestProcessor 进一步校验。
    """

    def __init__(self, app: ASGIApp, max_request_size: int = 20 * 1024 * 1024):
        super().__init__(app)
        self.max_request_size = max_request_size

    async def dispatch(self, request: Request, call_next):
        if request.method != "POST" or request.url.path not in UPLOAD_ENDPOINTS:
            return await call_next(request)

        content_length = request.headers.get("content-length", "")
        if content_length.isdigit() and int(content_length) > self.max_request_size:
            logger.warning(f"Upload too large: {content_length} bytes")
            return create_error_response(
                "FILE_TOO_LARGE",
                f"请求大小超过限制 ({self.max_request_size} bytes)",
                status_code=413,
                details={"max_size": self.max_request_size, "received_size": int(content_length)}
            )

        content_type = request.headers.get("content-type", "")
        if not content_type.startswith("multipart/form-data"):
            logger.warning(f"Unsupported content type: {content_type}")
            return create_error_response(
                "UNSUPPORTED_MEDIA_TYPE",
                "图像编辑请求必须使用 multipart/form-data 上传",
                status_code=415,
                details={"received_type": content_type}
            )

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """请求日志和追踪中间件

    沿用调用方提供的 X-Request-ID，没有时生成新的请求 ID。
    """

    async def dispatch(self, request: Request, call_next):
        request_id = set_request_context(request.headers.get("x-request-id"))
        path = request.url.path
        request_logger = get_logger("request")

        request_tracker.start_request(
            request_id=request_id,
            endpoint=path,
            method=request.method,
            client_ip=get_client_ip(request)
        )
        request_logger.info(
            "Request started",
            method=request.method,
            path=path,
            content_length=request.headers.get("content-length", "0")
        )

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            request_tracker.end_request(request_id, 500, str(e))
            performance_monitor.record_request(path, duration, 500, type(e).__name__)
            request_logger.error("Request failed", error=str(e), error_type=type(e).__name__, duration=duration)
            raise
        finally:
            clear_request_context()

        duration = time.time() - start_time
        request_tracker.end_request(request_id, response.status_code)
        error_type = f"HTTP_{response.status_code}" if response.status_code >= 400 else None
        performance_monitor.record_request(path, duration, response.status_code, error_type)
        request_logger.info(
            "Request completed",
            request_id=request_id,
            status_code=response.status_code,
            duration=duration
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """安全头中间件"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # 编辑结果不缓存
        if request.url.path in UPLOAD_ENDPOINTS:
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"

        return response
