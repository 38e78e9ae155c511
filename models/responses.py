"""
API 响应模型定义

包含图像编辑、健康检查和服务信息的响应数据模型。
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class EditResponse(BaseModel):
    """图像编辑响应模型"""

    success: bool = Field(description="请求是否成功")
    image: Optional[str] = Field(None, description="data:image/png;base64 形式的图像 URL")
    metadata: Optional[Dict[str, Any]] = Field(None, description="编辑元数据")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "success": True,
            "image": "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8/5+hHgAHggJ/PchI7wAAAABJRU5ErkJggg==",
            "metadata": {
                "model": "gemini-2.5-flash-image",
                "elapsed": 6.2,
                "has_reference": False,
                "timestamp": "2024-01-01T12:00:00Z"
            }
        }
    })


class HealthResponse(BaseModel):
    """健康检查响应模型"""

    status: str = Field(description="服务状态")
    client_configured: bool = Field(description="远程服务客户端是否已配置")
    uptime: float = Field(description="服务运行时间（秒）")
    timestamp: datetime = Field(default_factory=datetime.now, description="检查时间")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "status": "healthy",
            "client_configured": True,
            "uptime": 3600.5,
            "timestamp": "2024-01-01T12:00:00Z"
        }
    })


class InfoResponse(BaseModel):
    """服务信息响应模型"""

    service_name: str = Field(description="服务名称")
    version: str = Field(description="服务版本")
    remote_model: Dict[str, Any] = Field(description="远程模型信息")
    supported_formats: List[str] = Field(description="支持的上传图像类型")
    api_endpoints: List[str] = Field(description="可用的 API 端点")


class SuggestionsResponse(BaseModel):
    """编辑指令建议响应模型"""

    suggestions: List[str] = Field(description="预置的编辑指令")


class ErrorResponse(BaseModel):
    """错误响应模型"""

    success: bool = Field(False, description="请求是否成功")
    error: Dict[str, Any] = Field(description="错误详情")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "success": False,
            "error": {
                "code": "QUOTA_EXCEEDED",
                "message": "API quota exceeded. Please wait 45 seconds before trying again, "
                           "or upgrade your plan at https://ai.google.dev/pricing",
                "category": "rate_limit_error",
                "details": {
                    "kind": "QuotaExceeded",
                    "retry_after_seconds": 45.0
                }
            }
        }
    })
