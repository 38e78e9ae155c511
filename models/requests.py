"""
请求数据模型定义

包含图像编辑请求以及发往远程服务的多段请求片段（图像 / 文本）。
"""

from pydantic import BaseModel, Field
from typing import Literal, Optional, Union


class EditRequest(BaseModel):
    """图像编辑请求模型

    主图和编辑指令必填；参考图与其 MIME 类型须同时提供才会生效，
    只提供其中一项时参考图被忽略。
    """

    primary_image: bytes = Field(..., min_length=1, description="主图原始字节")
    primary_mime_type: str = Field(..., min_length=1, description="主图 MIME 类型")
    instruction: str = Field(
        ...,
        min_length=1,
        description="自然语言编辑指令"
    )
    reference_image: Optional[bytes] = Field(None, description="参考图原始字节")
    reference_mime_type: Optional[str] = Field(None, description="参考图 MIME 类型")

    @property
    def has_reference(self) -> bool:
        """参考图是否完整（字节与 MIME 类型同时存在）"""
        return bool(self.reference_image) and bool(self.reference_mime_type)


class ImagePart(BaseModel):
    """内联图像片段"""

    kind: Literal["image"] = "image"
    data: bytes
    mime_type: str


class TextPart(BaseModel):
    """文本片段"""

    kind: Literal["text"] = "text"
    value: str


RequestPart = Union[ImagePart, TextPart]
