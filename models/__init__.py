"""
数据模型包

包含编辑请求、请求片段以及 API 响应的数据模型定义。
"""

from .requests import EditRequest, ImagePart, TextPart, RequestPart
from .responses import EditResponse, HealthResponse, InfoResponse, SuggestionsResponse, ErrorResponse

__all__ = [
    "EditRequest",
    "ImagePart",
    "TextPart",
    "RequestPart",
    "EditResponse",
    "HealthResponse",
    "InfoResponse",
    "SuggestionsResponse",
    "ErrorResponse"
]
