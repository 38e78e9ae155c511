"""
统一错误处理系统

把图像编辑过程中的异常映射为统一格式的 JSON 错误响应。
映射表按顺序匹配（第一个 isinstance 命中者生效），子类必须排在父类之前。
"""

import math
import traceback
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Type, Union

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError

from models.responses import ErrorResponse
from services.logging import get_logger
from services.exceptions import (
    ClientNotConfiguredError, GenericServiceError, ImageRefusedError,
    NoImageReturnedError, QuotaExceededError, ServiceError
)

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """错误分类"""
    CLIENT_ERROR = "client_error"
    VALIDATION_ERROR = "validation_error"
    RATE_LIMIT_ERROR = "rate_limit_error"
    GENERATION_ERROR = "generation_error"
    UPSTREAM_ERROR = "upstream_error"
    CONFIGURATION_ERROR = "configuration_error"
    UNKNOWN_ERROR = "unknown_error"


class ErrorCode(Enum):
    """标准错误代码"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    IMAGE_REFUSED = "IMAGE_REFUSED"
    NO_IMAGE_RETURNED = "NO_IMAGE_RETURNED"
    GENERATION_FAILED = "GENERATION_FAILED"
    CLIENT_NOT_CONFIGURED = "CLIENT_NOT_CONFIGURED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


# 固定值或根据异常计算的值
Resolvable = Union[Any, Callable[[Exception], Any]]


def _resolve(value: Resolvable, exc: Exception) -> Any:
    return value(exc) if callable(value) else value


def _service_message(exc: Exception) -> str:
    return exc.message


@dataclass(frozen=True)
class ErrorMapping:
    """异常类型到错误响应的映射"""
    exc_type: Type[Exception]
    category: ErrorCategory
    code: Resolvable
    status_code: Resolvable
    message: Resolvable = _service_message


ERROR_MAPPINGS: Tuple[ErrorMapping, ...] = (
    ErrorMapping(QuotaExceededError, ErrorCategory.RATE_LIMIT_ERROR,
                 ErrorCode.QUOTA_EXCEEDED.value, 429),
    ErrorMapping(ImageRefusedError, ErrorCategory.GENERATION_ERROR,
                 ErrorCode.IMAGE_REFUSED.value, 422),
    ErrorMapping(NoImageReturnedError, ErrorCategory.UPSTREAM_ERROR,
                 ErrorCode.NO_IMAGE_RETURNED.value, 502),
    ErrorMapping(GenericServiceError, ErrorCategory.UPSTREAM_ERROR,
                 ErrorCode.GENERATION_FAILED.value, 502),
    ErrorMapping(ServiceError, ErrorCategory.UPSTREAM_ERROR,
                 ErrorCode.GENERATION_FAILED.value, 502),
    ErrorMapping(ClientNotConfiguredError, ErrorCategory.CONFIGURATION_ERROR,
                 ErrorCode.CLIENT_NOT_CONFIGURED.value, 503),
    # FastAPI 的 HTTPException 继承自 Starlette 的 HTTPException
    ErrorMapping(StarletteHTTPException, ErrorCategory.CLIENT_ERROR,
                 lambda e: f"HTTP_{e.status_code}", lambda e: e.status_code, lambda e: e.detail),
    ErrorMapping(RequestValidationError, ErrorCategory.VALIDATION_ERROR,
                 ErrorCode.VALIDATION_ERROR.value, 422, "请求参数验证失败"),
    ErrorMapping(ValidationError, ErrorCategory.VALIDATION_ERROR,
                 ErrorCode.VALIDATION_ERROR.value, 422, "数据验证失败"),
)

UNKNOWN_ERROR = ErrorMapping(Exception, ErrorCategory.UNKNOWN_ERROR,
                             ErrorCode.INTERNAL_SERVER_ERROR.value, 500, "服务器内部错误")


def get_client_ip(request: Request) -> str:
    """获取客户端 IP 地址，优先使用代理转发头"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


class ErrorHandler:
    """统一错误处理器"""

    def __init__(self, mappings: Tuple[ErrorMapping, ...] = ERROR_MAPPINGS):
        self.error_mappings = mappings

    def find_mapping(self, exc: Exception) -> ErrorMapping:
        return next((m for m in self.error_mappings if isinstance(exc, m.exc_type)), UNKNOWN_ERROR)

    def handle_exception(
        self,
        request: Request,
        exc: Exception,
        include_traceback: bool = False
    ) -> JSONResponse:
        """处理异常并返回统一格式的响应"""
        mapping = self.find_mapping(exc)
        code = _resolve(mapping.code, exc)
        message = _resolve(mapping.message, exc)
        status_code = _resolve(mapping.status_code, exc)

        self._log_error(request, exc, code, message, status_code, mapping.category)

        details: Dict[str, Any] = {
            "path": str(request.url.path),
            "method": request.method,
            "timestamp": datetime.now().isoformat()
        }

        if isinstance(exc, (RequestValidationError, ValidationError)):
            details["validation_errors"] = [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                for err in exc.errors()
            ]
        elif isinstance(exc, ServiceError):
            details.update(exc.details)

        if include_traceback:
            details["traceback"] = traceback.format_exc()

        response = create_error_response(code, message, status_code, details, mapping.category)

        # 远程服务给出了重试提示时透传给调用方，服务端本身不做重试
        if isinstance(exc, QuotaExceededError) and exc.retry_after_seconds is not None:
            response.headers["Retry-After"] = str(math.ceil(exc.retry_after_seconds))

        return response

    def _log_error(self, request: Request, exc: Exception, code: str, message: str,
                   status_code: int, category: ErrorCategory):
        """5xx 记为 error，4xx 记为 warning"""
        log_method = logger.error if status_code >= 500 else logger.warning
        log_method(
            f"Request failed: {message}",
            error_code=code,
            error_category=category.value,
            status_code=status_code,
            path=str(request.url.path),
            method=request.method,
            client_ip=get_client_ip(request),
            exception_type=type(exc).__name__,
            exception_message=str(exc),
            # 已分类的远程错误不需要堆栈
            exc_info=status_code >= 500 and not isinstance(exc, ServiceError)
        )


# 全局错误处理器实例
error_handler = ErrorHandler()


def create_error_response(
    code: str,
    message: str,
    status_code: int = 500,
    details: Dict[str, Any] = None,
    category: Optional[ErrorCategory] = None
) -> JSONResponse:
    """创建标准错误响应"""
    error: Dict[str, Any] = {"code": code, "message": message}
    if category is not None:
        error["category"] = category.value
    error["details"] = details or {}

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error).model_dump()
    )
