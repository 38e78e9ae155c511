"""
图像编辑服务异常类定义
"""

from enum import Enum
from typing import Any, Dict, Optional


class ServiceErrorKind(str, Enum):
    """远程调用失败的分类"""
    IMAGE_REFUSED = "ImageRefused"
    NO_IMAGE_RETURNED = "NoImageReturned"
    QUOTA_EXCEEDED = "QuotaExceeded"
    GENERIC = "Generic"


class ImageEditError(Exception):
    """图像编辑基础异常类"""
    pass


class ClientNotConfiguredError(ImageEditError):
    """远程服务客户端未配置（缺少 API 密钥）"""
    def __init__(self, message: str = "Gemini API key is not configured. Set GEMINI_API_KEY or API_KEY."):
        super().__init__(message)
        self.message = message


class ServiceError(ImageEditError):
    """已分类的远程服务失败，message 始终为可直接展示给用户的文本"""

    kind: ServiceErrorKind = ServiceErrorKind.GENERIC

    def __init__(self, message: str, retry_after_seconds: Optional[float] = None):
        super().__init__(message)
        self.message = message
        self.retry_after_seconds = retry_after_seconds

    @property
    def details(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "retry_after_seconds": self.retry_after_seconds
        }


class ImageRefusedError(ServiceError):
    """模型拒绝生成图像，并以文本说明原因"""
    kind = ServiceErrorKind.IMAGE_REFUSED


class NoImageReturnedError(ServiceError):
    """响应中既没有图像也没有文本"""
    kind = ServiceErrorKind.NO_IMAGE_RETURNED


class QuotaExceededError(ServiceError):
    """配额耗尽 / 速率限制"""
    kind = ServiceErrorKind.QUOTA_EXCEEDED


class GenericServiceError(ServiceError):
    """其他远程或传输层错误"""
    kind = ServiceErrorKind.GENERIC


_ERRORS_BY_KIND = {
    ServiceErrorKind.IMAGE_REFUSED: ImageRefusedError,
    ServiceErrorKind.NO_IMAGE_RETURNED: NoImageReturnedError,
    ServiceErrorKind.QUOTA_EXCEEDED: QuotaExceededError,
    ServiceErrorKind.GENERIC: GenericServiceError,
}


def service_error_for(kind: ServiceErrorKind, message: str,
                      retry_after_seconds: Optional[float] = None) -> ServiceError:
    """根据分类构造对应的异常实例"""
    return _ERRORS_BY_KIND[kind](message, retry_after_seconds=retry_after_seconds)
