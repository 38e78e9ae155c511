"""
配置数据模型和验证

基于 Pydantic 的配置模型，提供数据验证和类型检查功能。
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Any


DEFAULT_MODEL_NAME = "gemini-2.5-flash-image"


class GeminiConfig(BaseModel):
    """远程图像生成服务配置"""
    api_key: Optional[str] = Field(None, description="Gemini API 密钥")
    model_name: str = Field(DEFAULT_MODEL_NAME, description="图像编辑模型名称")
    request_timeout: int = Field(120, ge=5, le=600, description="远程调用超时时间 (秒)")

    @field_validator('model_name')
    @classmethod
    def validate_model_name(cls, v):
        if not v or not v.strip():
            raise ValueError("模型名称不能为空")
        return v.strip()


class SecurityConfig(BaseModel):
    """安全配置"""
    enable_file_validation: bool = Field(True, description="启用文件验证")
    allowed_file_types: list = Field(
        default=["image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"],
        description="允许的文件类型"
    )

    @field_validator('allowed_file_types')
    @classmethod
    def validate_allowed_file_types(cls, v):
        invalid = [t for t in v if not str(t).startswith("image/")]
        if invalid:
            raise ValueError(f"只允许图像类型: {invalid}")
        return v


class ServerConfig(BaseModel):
    """服务器配置"""
    host: str = Field("0.0.0.0", description="服务器主机地址")
    port: int = Field(8000, ge=1, le=65535, description="服务器端口")
    max_file_size: int = Field(10 * 1024 * 1024, ge=1024, description="最大文件大小 (字节)")

    @field_validator('host')
    @classmethod
    def validate_host(cls, v):
        if not v:
            raise ValueError("主机地址不能为空")
        return v


class LogConfig(BaseModel):
    """日志配置"""
    level: str = Field("INFO", description="日志级别")
    json_format: bool = Field(True, description="是否输出 JSON 格式日志")
    file_path: Optional[str] = Field(None, description="日志文件路径")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"日志级别必须是 {valid_levels} 中的一个")
        return v.upper()


class AppConfig(BaseModel):
    """应用程序完整配置"""
    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    gemini: GeminiConfig = GeminiConfig()
    server: ServerConfig = ServerConfig()
    security: SecurityConfig = SecurityConfig()
    log: LogConfig = LogConfig()


def validate_config_dict(config_dict: Dict[str, Any]) -> AppConfig:
    """
    验证配置字典并返回 AppConfig 实例

    Args:
        config_dict: 配置字典

    Returns:
        AppConfig: 验证后的配置对象

    Raises:
        ValueError: 配置验证失败
    """
    try:
        return AppConfig(**config_dict)
    except Exception as e:
        raise ValueError(f"配置验证失败: {str(e)}")


def get_default_config() -> Dict[str, Any]:
    """获取默认配置字典"""
    return {
        "gemini": {
            "api_key": None,
            "model_name": DEFAULT_MODEL_NAME,
            "request_timeout": 120
        },
        "server": {
            "host": "0.0.0.0",
            "port": 8000,
            "max_file_size": 10 * 1024 * 1024
        },
        "security": {
            "enable_file_validation": True,
            "allowed_file_types": ["image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"]
        },
        "log": {
            "level": "INFO",
            "json_format": True,
            "file_path": None
        }
    }
