"""
请求构建器

把编辑请求转换为有序的多段请求：主图、参考图（可选）、编辑指令。
指令放在最后，使模型将其理解为作用于前面图像的操作。
"""

from typing import List

from models.requests import EditRequest, ImagePart, RequestPart, TextPart


def build_parts(request: EditRequest) -> List[RequestPart]:
    """
    构建多段请求

    Args:
        request: 编辑请求

    Returns:
        List[RequestPart]: 主图片段、参考图片段（仅当参考图完整时）、指令文本片段
    """
    parts: List[RequestPart] = [
        ImagePart(data=request.primary_image, mime_type=request.primary_mime_type)
    ]

    # 参考图字节与类型缺一即视为没有参考图
    if request.has_reference:
        parts.append(
            ImagePart(data=request.reference_image, mime_type=request.reference_mime_type)
        )

    parts.append(TextPart(value=request.instruction))
    return parts
