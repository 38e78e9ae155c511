"""
FastAPI 应用程序

主要的 FastAPI 应用实例，包含中间件、异常处理器和服务组件的生命周期管理。
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.manager import get_config_manager
from services.error_handler import error_handler
from services.exceptions import ImageEditError
from services.gemini_client import ImageEditor
from services.logging import configure_logging, get_logger
from services.request_processor import RequestProcessor
from .middleware import (
    FileValidationMiddleware,
    SecurityHeadersMiddleware,
    RequestLoggingMiddleware
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "banana-edit-api"
SERVICE_VERSION = "1.0.0"

# 预期内的错误，响应中不附带堆栈
HANDLED_ERRORS = (ImageEditError, HTTPException, StarletteHTTPException, RequestValidationError)


class ImageEditAPI:
    """图像编辑 API 应用类"""

    def __init__(self):
        self.config_manager = get_config_manager()
        self.image_editor: ImageEditor = None
        self.request_processor: RequestProcessor = None
        self.app_start_time = None

    def _get_config(self):
        """获取配置，尚未加载时加载默认配置（含环境变量覆盖）"""
        if not self.config_manager.is_loaded():
            return self.config_manager.load_config()
        return self.config_manager.get_config()

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        """应用生命周期管理"""
        self.app_start_time = time.time()
        startup_logger = get_logger("startup")

        try:
            config = self._get_config()

            configure_logging(
                log_level=config.log.level,
                log_file=config.log.file_path,
                json_format=config.log.json_format
            )

            startup_logger.info("Starting image edit API service...")
            startup_logger.info(
                "Configuration loaded",
                server_host=config.server.host,
                server_port=config.server.port,
                log_level=config.log.level,
                model_name=config.gemini.model_name,
                file_validation_enabled=config.security.enable_file_validation
            )

            self.request_processor = RequestProcessor(
                max_file_size=config.server.max_file_size,
                allowed_mime_types=config.security.allowed_file_types
            )
            startup_logger.info("Request processor initialized")

            self.image_editor = ImageEditor(config=config.gemini)
            if self.config_manager.validate_config():
                startup_logger.info("Image editor ready", model_name=config.gemini.model_name)
            else:
                # 配置不完整时仍然启动，缺少密钥的编辑请求返回 503
                startup_logger.warning(
                    "Configuration incomplete", client_configured=self.image_editor.is_configured()
                )

            startup_logger.info("Image edit API service started successfully")

        except Exception as e:
            startup_logger.error("Failed to start service", error=str(e))
            raise

        yield

        shutdown_logger = get_logger("shutdown")
        shutdown_logger.info("Shutting down image edit API service...")

        if self.image_editor:
            self.image_editor.cleanup()

        shutdown_logger.info("Image edit API service shut down")

    def create_app(self) -> FastAPI:
        """创建 FastAPI 应用实例"""

        app = FastAPI(
            title="Banana Edit API",
            description="基于 Gemini 多模态模型的图像编辑 API 服务",
            version=SERVICE_VERSION,
            lifespan=self.lifespan
        )

        config = self._get_config()

        # 后添加的中间件位于外层：CORS -> 上传校验 -> 安全头 -> 请求日志
        app.add_middleware(RequestLoggingMiddleware)

        app.add_middleware(SecurityHeadersMiddleware)

        if config.security.enable_file_validation:
            # multipart 请求体包含两张图和表单字段，上限按两倍单文件大小计算
            app.add_middleware(
                FileValidationMiddleware,
                max_request_size=config.server.max_file_size * 2 + 64 * 1024
            )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        include_traceback = config.log.level.upper() == "DEBUG"

        async def handle_error(request: Request, exc: Exception):
            """所有异常统一交给 ErrorHandler 格式化"""
            return error_handler.handle_exception(
                request, exc, include_traceback=include_traceback and not isinstance(exc, HANDLED_ERRORS)
            )

        for exc_type in HANDLED_ERRORS + (Exception,):
            app.add_exception_handler(exc_type, handle_error)

        return app

    def get_image_editor(self) -> ImageEditor:
        """获取图像编辑器实例"""
        if self.image_editor is None:
            raise RuntimeError("Image editor not initialized")
        return self.image_editor

    def get_request_processor(self) -> RequestProcessor:
        """获取请求处理器实例"""
        if self.request_processor is None:
            raise RuntimeError("Request processor not initialized")
        return self.request_processor

    def get_uptime(self) -> float:
        """获取服务运行时间（秒）"""
        if self.app_start_time is None:
            return 0.0
        return time.time() - self.app_start_time


# 全局应用实例
image_edit_api = ImageEditAPI()
