"""
API 路由定义

包含所有 API 端点的路由处理函数。
"""

import logging
import time
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, UploadFile, File, Form, Depends

from models.requests import EditRequest
from models.responses import EditResponse, HealthResponse, InfoResponse, SuggestionsResponse
from services.exceptions import ImageEditError
from .app import image_edit_api, SERVICE_NAME, SERVICE_VERSION

logger = logging.getLogger(__name__)

router = APIRouter()

INSTRUCTION_SUGGESTIONS = [
    "Change outfit to a business suit",
    "Try on the outfit from the reference image",
    "Remove the background",
    "Make it look like a sketch",
    "Add fireworks in the sky",
]


def get_image_editor():
    """依赖注入：获取图像编辑器"""
    return image_edit_api.get_image_editor()


def get_request_processor():
    """依赖注入：获取请求处理器"""
    return image_edit_api.get_request_processor()


@router.post("/edit", response_model=EditResponse)
async def edit_image(
    image: UploadFile = File(..., description="待编辑的主图"),
    instruction: str = Form(..., description="编辑指令"),
    reference_image: Optional[UploadFile] = File(None, description="可选的参考图"),
    image_editor=Depends(get_image_editor),
    request_processor=Depends(get_request_processor)
):
    """
    图像编辑 API 端点

    根据编辑指令（以及可选的参考图）编辑主图，返回 data URL 形式的结果
    """
    start_time = time.time()

    try:
        instruction = request_processor.validate_instruction(instruction)
        logger.info(f"Edit request: instruction='{instruction[:50]}...'")

        primary_bytes, primary_mime = request_processor.process_image_upload(image)

        reference_bytes = reference_mime = None
        if reference_image is not None:
            reference_bytes, reference_mime = request_processor.process_image_upload(reference_image)

        edit_request = EditRequest(
            primary_image=primary_bytes,
            primary_mime_type=primary_mime,
            instruction=instruction,
            reference_image=reference_bytes,
            reference_mime_type=reference_mime
        )

        data_url = await image_editor.edit_image(edit_request)

        elapsed = time.time() - start_time
        metadata = {
            "model": image_editor.get_client_info().get("name"),
            "elapsed": round(elapsed, 3),
            "has_reference": edit_request.has_reference,
            "input_mime_type": primary_mime,
            "timestamp": datetime.now().isoformat()
        }

        logger.info(f"Edit completed in {elapsed:.3f}s")
        return request_processor.format_edit_response(data_url, metadata)

    except (ImageEditError, HTTPException):
        # 已分类的错误交给全局错误处理器格式化
        raise
    except Exception as e:
        logger.error(f"Unexpected error in edit: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="服务器内部错误"
        )


@router.get("/suggestions", response_model=SuggestionsResponse)
async def suggestions():
    """预置的编辑指令建议"""
    return SuggestionsResponse(suggestions=INSTRUCTION_SUGGESTIONS)


@router.get("/health", response_model=HealthResponse)
async def health_check(
    image_editor=Depends(get_image_editor)
):
    """
    健康检查端点

    客户端已配置时为 healthy，否则为 degraded
    """
    configured = image_editor.is_configured()
    status = "healthy" if configured else "degraded"

    logger.debug(f"Health check: status={status}")
    return HealthResponse(
        status=status,
        client_configured=configured,
        uptime=image_edit_api.get_uptime(),
        timestamp=datetime.now()
    )


@router.get("/info", response_model=InfoResponse)
async def service_info(
    image_editor=Depends(get_image_editor),
    request_processor=Depends(get_request_processor)
):
    """服务信息端点"""
    return InfoResponse(
        service_name=SERVICE_NAME,
        version=SERVICE_VERSION,
        remote_model=image_editor.get_client_info(),
        supported_formats=request_processor.get_supported_formats(),
        api_endpoints=[
            "/edit",
            "/suggestions",
            "/health",
            "/info",
            "/metrics"
        ]
    )


@router.get("/metrics")
async def get_metrics():
    """
    性能指标端点

    返回接口请求统计和远程模型调用统计
    """
    from services.logging import performance_monitor, request_tracker

    metrics = performance_monitor.get_metrics()
    active_requests = request_tracker.get_active_requests()
    metrics["active_requests"] = {
        "count": len(active_requests),
        "requests": list(active_requests.values())
    }

    logger.debug("Metrics requested")
    return metrics


@router.get("/")
async def root():
    """根路径，返回 API 基本信息"""
    return {
        "message": "Banana Edit API",
        "version": SERVICE_VERSION,
        "docs": "/docs",
        "edit": "/edit",
        "health": "/health",
        "info": "/info",
        "metrics": "/metrics"
    }
