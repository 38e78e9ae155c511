"""
Gemini 图像编辑客户端

负责把编辑请求发送到远程多模态模型，并把响应或错误交给解释器处理。
每次调用只有一次网络往返，调用之间不共享可变状态。
"""

import logging
import time
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from config.models import GeminiConfig
from models.requests import EditRequest, ImagePart, RequestPart
from .exceptions import ClientNotConfiguredError
from .interfaces import ImageEditorInterface
from .logging import log_performance, performance_monitor
from .request_builder import build_parts
from .response_interpreter import interpret_error, interpret_response

logger = logging.getLogger(__name__)


def to_contents(parts: List[RequestPart]) -> types.Content:
    """把请求片段转换为 google-genai 的 Content"""
    sdk_parts = []
    for part in parts:
        if isinstance(part, ImagePart):
            sdk_parts.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))
        else:
            sdk_parts.append(types.Part.from_text(text=part.value))
    return types.Content(role="user", parts=sdk_parts)


class ImageEditor(ImageEditorInterface):
    """基于 Gemini 的图像编辑器"""

    def __init__(self, config: GeminiConfig, client: Optional[Any] = None):
        """
        初始化图像编辑器

        Args:
            config: 远程服务配置
            client: 预先构造的 genai.Client，主要用于测试注入
        """
        self.config = config
        self._client = client

        logger.info(f"ImageEditor initialized with model: {self.config.model_name}")

    def _get_client(self):
        """获取（必要时创建）SDK 客户端"""
        if self._client is not None:
            return self._client

        if not self.config.api_key:
            raise ClientNotConfiguredError()

        self._client = genai.Client(
            api_key=self.config.api_key,
            http_options=types.HttpOptions(timeout=self.config.request_timeout * 1000)
        )
        return self._client

    def is_configured(self) -> bool:
        """是否具备发起远程调用的条件"""
        return self._client is not None or bool(self.config.api_key)

    @log_performance("image_editor")
    async def edit_image(self, request: EditRequest) -> str:
        """
        编辑图像

        Args:
            request: 编辑请求

        Returns:
            str: data:image/png;base64,... 形式的结果图像

        Raises:
            ClientNotConfiguredError: 未配置 API 密钥
            ServiceError: 远程调用失败或响应中没有图像
        """
        client = self._get_client()
        contents = to_contents(build_parts(request))

        logger.info(
            f"Sending edit request: model={self.config.model_name}, "
            f"parts={len(contents.parts)}, instruction_length={len(request.instruction)}"
        )

        start_time = time.time()
        try:
            response = await client.aio.models.generate_content(
                model=self.config.model_name,
                contents=contents
            )
            data_url = interpret_response(response)
        except Exception as exc:
            error = interpret_error(exc)
            performance_monitor.record_remote_call(time.time() - start_time, error.kind.value)
            if error is exc:
                raise
            raise error from exc

        performance_monitor.record_remote_call(time.time() - start_time)
        return data_url

    def get_client_info(self) -> Dict[str, Any]:
        """获取远程模型信息"""
        return {
            "name": self.config.model_name,
            "configured": self.is_configured(),
            "request_timeout": self.config.request_timeout,
            "output_mime_type": "image/png"
        }

    def cleanup(self) -> None:
        """释放 SDK 客户端"""
        if self._client is not None:
            logger.info("Releasing Gemini client")
            self._client = None
