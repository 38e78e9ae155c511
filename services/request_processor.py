"""
请求处理器

负责校验上传的图像文件和编辑指令，并格式化编辑结果。
只读取图像头部以确认真实类型，不对像素做任何处理。
"""

import io
from typing import Optional, Dict, Any, List, Tuple

from PIL import Image, UnidentifiedImageError
from fastapi import UploadFile, HTTPException
import logging

from models.responses import EditResponse
from .interfaces import RequestProcessorInterface

logger = logging.getLogger(__name__)


class RequestProcessor(RequestProcessorInterface):
    """请求处理器类"""

    # 支持的上传类型
    SUPPORTED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}

    # 最大文件大小 (10MB)
    MAX_FILE_SIZE = 10 * 1024 * 1024

    def __init__(self, max_file_size: Optional[int] = None, allowed_mime_types: Optional[List[str]] = None):
        """
        初始化请求处理器

        Args:
            max_file_size: 最大文件大小限制（字节）
            allowed_mime_types: 允许上传的 MIME 类型
        """
        self.max_file_size = max_file_size or self.MAX_FILE_SIZE
        self.allowed_mime_types = set(allowed_mime_types or self.SUPPORTED_MIME_TYPES)
        logger.info(f"RequestProcessor initialized with max_file_size={self.max_file_size}")

    def validate_instruction(self, instruction: str) -> str:
        """
        校验编辑指令

        指令去除首尾空白后不能为空；通过校验后原样返回，不做修改。

        Raises:
            HTTPException: 指令为空
        """
        if instruction is None or not instruction.strip():
            raise HTTPException(
                status_code=400,
                detail="编辑指令不能为空或仅包含空白字符"
            )

        logger.info(f"Instruction validation passed: length={len(instruction)}")
        return instruction

    def _sniff_mime_type(self, content: bytes) -> Optional[str]:
        """通过 Pillow 读取图像头部，识别真实 MIME 类型"""
        try:
            with Image.open(io.BytesIO(content)) as image:
                return Image.MIME.get(image.format)
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Unable to identify uploaded image: {e}")
            return None

    def process_image_upload(self, file: UploadFile) -> Tuple[bytes, str]:
        """
        读取上传的图像文件

        Args:
            file: 上传的文件对象

        Returns:
            Tuple[bytes, str]: 原始字节和 MIME 类型

        Raises:
            HTTPException: 文件为空、过大或类型不受支持
        """
        declared_type = (file.content_type or "").lower()
        if declared_type and not declared_type.startswith("image/"):
            raise HTTPException(
                status_code=415,
                detail=f"请上传图像文件，收到的类型: {declared_type}"
            )

        try:
            content = file.file.read()
        finally:
            if hasattr(file.file, 'seek'):
                file.file.seek(0)

        if not content:
            raise HTTPException(status_code=400, detail="上传的图像文件为空")

        if len(content) > self.max_file_size:
            raise HTTPException(
                status_code=413,
                detail=f"文件大小超过限制 ({self.max_file_size / 1024 / 1024:.1f}MB)"
            )

        mime_type = self._sniff_mime_type(content) or declared_type
        if mime_type not in self.allowed_mime_types:
            raise HTTPException(
                status_code=415,
                detail=f"不支持的图像格式: {mime_type or 'unknown'}。"
                       f"支持的格式: {', '.join(sorted(self.allowed_mime_types))}"
            )

        logger.info(f"Image upload accepted: size={len(content)}, mime_type={mime_type}")
        return content, mime_type

    def format_edit_response(
        self,
        data_url: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> EditResponse:
        """
        格式化编辑结果

        Args:
            data_url: data:image/png;base64,... 形式的图像
            metadata: 额外的元数据

        Returns:
            EditResponse: 格式化的响应对象
        """
        return EditResponse(
            success=True,
            image=data_url,
            metadata=metadata or {}
        )

    def get_supported_formats(self) -> List[str]:
        """获取支持的上传类型列表"""
        return sorted(self.allowed_mime_types)

    def get_max_file_size(self) -> int:
        """获取最大文件大小限制（字节）"""
        return self.max_file_size
