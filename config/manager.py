"""
配置管理器

加载顺序：内置默认值 <- 配置文件 (YAML / JSON) <- 环境变量。
API 密钥一般只通过环境变量（或 .env 文件）提供。
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TextIO

import yaml

from .models import AppConfig, validate_config_dict, get_default_config

logger = logging.getLogger(__name__)

# 环境变量 -> (配置段, 配置项)，同一配置项按顺序取第一个非空值
ENV_OVERRIDES = (
    ("GEMINI_API_KEY", "gemini", "api_key"),
    ("API_KEY", "gemini", "api_key"),
    ("GEMINI_MODEL", "gemini", "model_name"),
)


def _read_yaml(stream: TextIO) -> Dict[str, Any]:
    try:
        return yaml.safe_load(stream) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"YAML 格式错误: {e}")


def _read_json(stream: TextIO) -> Dict[str, Any]:
    try:
        return json.load(stream)
    except json.JSONDecodeError as e:
        raise ValueError(f"JSON 格式错误: {e}")


# 文件后缀 -> 读取函数
READERS: Dict[str, Callable[[TextIO], Dict[str, Any]]] = {
    ".yaml": _read_yaml,
    ".yml": _read_yaml,
    ".json": _read_json,
}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """递归合并两个配置字典，返回新字典，不修改入参"""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def env_overrides(environ=None) -> Dict[str, Any]:
    """收集环境变量提供的配置项"""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Dict[str, Any]] = {}

    for env_name, section, key in ENV_OVERRIDES:
        value = environ.get(env_name)
        if not value or key in overrides.get(section, {}):
            continue
        overrides.setdefault(section, {})[key] = value
        logger.debug(f"配置项 {section}.{key} 由环境变量 {env_name} 提供")

    return overrides


class ConfigManager:
    """配置管理器类"""

    def __init__(self, config_path: Optional[str] = None):
        """
        Args:
            config_path: 配置文件路径，为 None 时只使用默认值和环境变量
        """
        self._config: Optional[AppConfig] = None
        self._config_path = config_path

    def load_config(self, config_path: Optional[str] = None) -> AppConfig:
        """
        加载配置

        Args:
            config_path: 配置文件路径，为 None 时沿用之前的路径

        Returns:
            AppConfig: 验证后的配置对象

        Raises:
            FileNotFoundError: 配置文件不存在
            ValueError: 配置文件格式错误或验证失败
        """
        if config_path:
            self._config_path = config_path

        file_config: Dict[str, Any] = {}
        if self._config_path:
            file_config = self._read_config_file(Path(self._config_path))
        else:
            logger.info("未指定配置文件，使用默认配置")

        merged = deep_merge(deep_merge(get_default_config(), file_config), env_overrides())
        self._config = validate_config_dict(merged)

        if self._config_path:
            logger.info(f"成功加载配置文件: {self._config_path}")
        return self._config

    def _read_config_file(self, config_file: Path) -> Dict[str, Any]:
        if not config_file.exists():
            raise FileNotFoundError(f"配置文件不存在: {config_file}")

        reader = READERS.get(config_file.suffix.lower())
        if reader is None:
            raise ValueError(f"不支持的配置文件格式: {config_file.suffix}")

        with open(config_file, 'r', encoding='utf-8') as f:
            return reader(f)

    def is_loaded(self) -> bool:
        return self._config is not None

    def get_config(self) -> AppConfig:
        """
        获取当前配置

        Raises:
            RuntimeError: 配置未加载
        """
        if self._config is None:
            raise RuntimeError("配置未加载，请先调用 load_config()")
        return self._config

    def validate_config(self) -> bool:
        """检查当前配置能否用于处理编辑请求"""
        if self._config is None:
            logger.error("配置验证失败: 配置未加载")
            return False

        if not self._config.gemini.api_key:
            logger.warning("未配置 Gemini API 密钥 (GEMINI_API_KEY / API_KEY)")
            return False

        log_dir = os.path.dirname(self._config.log.file_path or "")
        if log_dir and not os.path.isdir(log_dir):
            logger.warning(f"日志目录不存在: {log_dir}")
            return False

        return True


# 全局配置管理器实例
_global_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """获取全局配置管理器实例"""
    global _global_config_manager
    if _global_config_manager is None:
        _global_config_manager = ConfigManager()
    return _global_config_manager


def init_config(config_path: Optional[str] = None) -> AppConfig:
    """加载全局配置"""
    return get_config_manager().load_config(config_path)


def get_current_config() -> AppConfig:
    """获取当前全局配置"""
    return get_config_manager().get_config()
