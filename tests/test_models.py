"""
数据模型单元测试

测试 API 响应模型的验证功能。
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from models.requests import ImagePart, TextPart
from models.responses import (
    EditResponse, ErrorResponse, HealthResponse, InfoResponse, SuggestionsResponse
)


class TestRequestParts:
    """请求片段模型测试"""

    def test_image_part_kind(self):
        part = ImagePart(data=b"abc", mime_type="image/png")

        assert part.kind == "image"

    def test_text_part_kind(self):
        assert TextPart(value="hello").kind == "text"

    def test_kind_cannot_be_changed(self):
        with pytest.raises(ValidationError):
            TextPart(kind="image", value="hello")


class TestEditResponse:
    """编辑响应模型测试"""

    def test_success_response(self):
        response = EditResponse(
            success=True,
            image="data:image/png;base64,AAAA",
            metadata={"model": "gemini-2.5-flash-image"}
        )

        assert response.success is True
        assert set(response.model_dump()) == {"success", "image", "metadata"}
        assert response.model_dump()["image"].startswith("data:image/png;base64,")

    def test_success_is_required(self):
        with pytest.raises(ValidationError):
            EditResponse(image="data:image/png;base64,AAAA")


class TestHealthResponse:
    """健康检查响应模型测试"""

    def test_default_timestamp(self):
        response = HealthResponse(status="healthy", client_configured=True, uptime=1.0)

        assert isinstance(response.timestamp, datetime)

    def test_missing_fields(self):
        with pytest.raises(ValidationError):
            HealthResponse(status="healthy")


class TestInfoResponse:
    """服务信息响应模型测试"""

    def test_valid_info(self):
        info = InfoResponse(
            service_name="banana-edit-api",
            version="1.0.0",
            remote_model={"name": "gemini-2.5-flash-image"},
            supported_formats=["image/png"],
            api_endpoints=["/edit"]
        )

        assert info.remote_model["name"] == "gemini-2.5-flash-image"


class TestSuggestionsResponse:

    def test_suggestions(self):
        assert SuggestionsResponse(suggestions=["Remove the background"]).suggestions == ["Remove the background"]


class TestErrorResponse:
    """错误响应模型测试"""

    def test_defaults_to_failure(self):
        response = ErrorResponse(error={"code": "QUOTA_EXCEEDED", "message": "slow down"})

        assert response.success is False
        assert response.error["code"] == "QUOTA_EXCEEDED"
