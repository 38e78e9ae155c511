"""
请求处理器单元测试

测试 RequestProcessor 类的上传校验和指令校验功能。
"""

import io

import pytest
from unittest.mock import Mock
from PIL import Image
from fastapi import UploadFile, HTTPException

from services.request_processor import RequestProcessor
from models.responses import EditResponse


def image_bytes(fmt="PNG", size=(8, 8)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color="red").save(buffer, format=fmt)
    return buffer.getvalue()


def mock_upload(content, content_type="image/png", filename="test.png"):
    upload = Mock(spec=UploadFile)
    upload.file = io.BytesIO(content)
    upload.content_type = content_type
    upload.filename = filename
    return upload


class TestRequestProcessor:
    """请求处理器测试类"""

    def setup_method(self):
        """测试前的设置"""
        self.processor = RequestProcessor()

    def test_init_default_settings(self):
        """测试默认初始化设置"""
        processor = RequestProcessor()
        assert processor.max_file_size == 10 * 1024 * 1024  # 10MB
        assert "image/png" in processor.allowed_mime_types
        assert "image/jpeg" in processor.allowed_mime_types

    def test_init_custom_settings(self):
        """测试自定义初始化设置"""
        processor = RequestProcessor(max_file_size=1024, allowed_mime_types=["image/png"])
        assert processor.get_max_file_size() == 1024
        assert processor.get_supported_formats() == ["image/png"]

    def test_validate_instruction_success(self):
        """测试指令校验成功，原样返回"""
        instruction = "  Add sunglasses to the cat "
        assert self.processor.validate_instruction(instruction) == instruction

    @pytest.mark.parametrize("instruction", ["", "   ", "\n\t", None])
    def test_validate_instruction_blank(self, instruction):
        """测试空白指令校验失败"""
        with pytest.raises(HTTPException) as exc_info:
            self.processor.validate_instruction(instruction)

        assert exc_info.value.status_code == 400
        assert "编辑指令不能为空" in exc_info.value.detail

    def test_process_png_upload(self):
        """测试 PNG 上传"""
        content = image_bytes("PNG")

        data, mime_type = self.processor.process_image_upload(mock_upload(content))

        assert data == content
        assert mime_type == "image/png"

    def test_process_jpeg_upload(self):
        """测试 JPEG 上传"""
        content = image_bytes("JPEG")

        data, mime_type = self.processor.process_image_upload(
            mock_upload(content, "image/jpeg", "photo.jpg")
        )

        assert data == content
        assert mime_type == "image/jpeg"

    def test_sniffed_type_wins_over_declared(self):
        """测试以实际内容识别出的类型为准"""
        content = image_bytes("JPEG")

        _, mime_type = self.processor.process_image_upload(mock_upload(content, "image/png"))

        assert mime_type == "image/jpeg"

    def test_non_image_content_type(self):
        """测试非图像 Content-Type"""
        with pytest.raises(HTTPException) as exc_info:
            self.processor.process_image_upload(mock_upload(b"hello", "text/plain", "a.txt"))

        assert exc_info.value.status_code == 415

    def test_empty_file(self):
        """测试空文件"""
        with pytest.raises(HTTPException) as exc_info:
            self.processor.process_image_upload(mock_upload(b""))

        assert exc_info.value.status_code == 400
        assert "为空" in exc_info.value.detail

    def test_file_too_large(self):
        """测试文件过大"""
        processor = RequestProcessor(max_file_size=100)
        content = image_bytes("PNG", size=(64, 64))
        assert len(content) > 100

        with pytest.raises(HTTPException) as exc_info:
            processor.process_image_upload(mock_upload(content))

        assert exc_info.value.status_code == 413

    def test_unsupported_image_format(self):
        """测试不支持的图像格式"""
        content = image_bytes("BMP")

        with pytest.raises(HTTPException) as exc_info:
            self.processor.process_image_upload(mock_upload(content, "image/bmp", "a.bmp"))

        assert exc_info.value.status_code == 415
        assert "image/bmp" in exc_info.value.detail

    def test_unreadable_bytes_fall_back_to_declared_type(self):
        """测试无法识别内容时使用声明的类型"""
        data, mime_type = self.processor.process_image_upload(
            mock_upload(b"not really an image", "image/heic", "a.heic")
        )

        assert data == b"not really an image"
        assert mime_type == "image/heic"

    def test_file_pointer_is_rewound(self):
        """测试读取后文件指针复位"""
        upload = mock_upload(image_bytes("PNG"))

        self.processor.process_image_upload(upload)

        assert upload.file.tell() == 0

    def test_format_edit_response(self):
        """测试格式化编辑结果"""
        response = self.processor.format_edit_response(
            "data:image/png;base64,AAAA", {"model": "gemini-2.5-flash-image"}
        )

        assert isinstance(response, EditResponse)
        assert response.success is True
        assert response.image == "data:image/png;base64,AAAA"
        assert response.metadata["model"] == "gemini-2.5-flash-image"
