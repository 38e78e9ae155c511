"""
配置管理器单元测试
"""

import json
import os
import tempfile

import pytest
import yaml

from config import manager as config_manager_module
from config.manager import (
    ConfigManager, deep_merge, env_overrides, get_config_manager, init_config, get_current_config
)
from config.models import AppConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """隔离 API 密钥相关环境变量"""
    for name in ("GEMINI_API_KEY", "API_KEY", "GEMINI_MODEL"):
        monkeypatch.delenv(name, raising=False)


def write_temp(suffix, content):
    handle = tempfile.NamedTemporaryFile("w", suffix=suffix, delete=False, encoding="utf-8")
    with handle:
        handle.write(content)
    return handle.name


class TestConfigManager:
    """ConfigManager 测试类"""

    def setup_method(self):
        """每个测试方法前的设置"""
        self.manager = ConfigManager()
        self._temp_files = []

    def teardown_method(self):
        for path in self._temp_files:
            if os.path.exists(path):
                os.unlink(path)

    def _temp(self, suffix, content):
        path = write_temp(suffix, content)
        self._temp_files.append(path)
        return path

    def test_init_without_config_path(self):
        """测试不指定配置文件路径的初始化"""
        manager = ConfigManager()
        assert manager._config_path is None
        assert not manager.is_loaded()

    def test_load_config_without_file(self):
        """测试不指定文件时加载默认配置"""
        config = self.manager.load_config()

        assert isinstance(config, AppConfig)
        assert config.server.port == 8000
        assert config.gemini.model_name == "gemini-2.5-flash-image"
        assert config.gemini.api_key is None
        assert self.manager.is_loaded()

    def test_load_config_file_not_found(self):
        """测试配置文件不存在"""
        with pytest.raises(FileNotFoundError) as exc_info:
            self.manager.load_config("/nonexistent/config.yaml")
        assert "配置文件不存在" in str(exc_info.value)

    def test_load_yaml_config_success(self):
        """测试成功加载 YAML 配置文件"""
        path = self._temp(".yaml", yaml.dump({
            "gemini": {"model_name": "gemini-custom", "request_timeout": 60},
            "server": {"port": 9000},
            "log": {"level": "DEBUG"}
        }))

        config = self.manager.load_config(path)

        assert config.gemini.model_name == "gemini-custom"
        assert config.gemini.request_timeout == 60
        assert config.server.port == 9000
        assert config.server.host == "0.0.0.0"
        assert config.log.level == "DEBUG"

    def test_load_json_config_success(self):
        """测试成功加载 JSON 配置文件"""
        path = self._temp(".json", json.dumps({"server": {"host": "127.0.0.1"}}))

        config = self.manager.load_config(path)

        assert config.server.host == "127.0.0.1"
        assert config.server.port == 8000

    def test_load_config_unsupported_format(self):
        """测试不支持的配置文件格式"""
        path = self._temp(".txt", "port=8000")

        with pytest.raises(ValueError) as exc_info:
            self.manager.load_config(path)
        assert "不支持的配置文件格式" in str(exc_info.value)

    def test_load_config_invalid_yaml(self):
        """测试无效的 YAML"""
        path = self._temp(".yaml", "server: [unclosed")

        with pytest.raises(ValueError) as exc_info:
            self.manager.load_config(path)
        assert "YAML 格式错误" in str(exc_info.value)

    def test_load_config_invalid_json(self):
        """测试无效的 JSON"""
        path = self._temp(".json", "{not json")

        with pytest.raises(ValueError) as exc_info:
            self.manager.load_config(path)
        assert "JSON 格式错误" in str(exc_info.value)

    def test_merge_configs(self):
        """测试配置合并"""
        default = {"a": {"x": 1, "y": 2}, "b": 3}
        merged = deep_merge(default, {"a": {"y": 20}, "c": 4})

        assert merged == {"a": {"x": 1, "y": 20}, "b": 3, "c": 4}
        assert default["a"]["y"] == 2

    def test_env_gemini_api_key(self, monkeypatch):
        """测试 GEMINI_API_KEY 环境变量"""
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")

        config = self.manager.load_config()

        assert config.gemini.api_key == "from-env"

    def test_env_api_key_fallback(self, monkeypatch):
        """测试 API_KEY 作为备选"""
        monkeypatch.setenv("API_KEY", "fallback")

        assert self.manager.load_config().gemini.api_key == "fallback"

    def test_env_precedence(self, monkeypatch):
        """测试 GEMINI_API_KEY 优先于 API_KEY"""
        monkeypatch.setenv("API_KEY", "fallback")
        monkeypatch.setenv("GEMINI_API_KEY", "primary")

        assert self.manager.load_config().gemini.api_key == "primary"

    def test_env_overrides_file(self, monkeypatch):
        """测试环境变量覆盖配置文件"""
        monkeypatch.setenv("GEMINI_MODEL", "gemini-env-model")
        path = self._temp(".yaml", yaml.dump({"gemini": {"model_name": "gemini-file-model", "api_key": "file-key"}}))

        config = self.manager.load_config(path)

        assert config.gemini.model_name == "gemini-env-model"
        assert config.gemini.api_key == "file-key"

    def test_get_config_before_load(self):
        """测试加载前获取配置"""
        with pytest.raises(RuntimeError):
            self.manager.get_config()

    def test_validate_config_requires_api_key(self, monkeypatch):
        """测试缺少 API 密钥时配置不可用"""
        self.manager.load_config()
        assert self.manager.validate_config() is False

        monkeypatch.setenv("GEMINI_API_KEY", "k")
        self.manager.load_config()
        assert self.manager.validate_config() is True

    def test_validate_config_missing_log_dir(self, monkeypatch):
        """测试日志目录不存在"""
        monkeypatch.setenv("GEMINI_API_KEY", "k")
        path = self._temp(".json", json.dumps({"log": {"file_path": "/nonexistent-dir/app.log"}}))
        self.manager.load_config(path)

        assert self.manager.validate_config() is False

    def test_validate_config_before_load(self):
        assert self.manager.validate_config() is False


class TestGlobalConfigFunctions:
    """全局配置函数测试"""

    def setup_method(self):
        config_manager_module._global_config_manager = None

    def teardown_method(self):
        config_manager_module._global_config_manager = None

    def test_get_config_manager_singleton(self):
        assert get_config_manager() is get_config_manager()

    def test_init_config(self):
        config = init_config()

        assert isinstance(config, AppConfig)
        assert get_current_config() is config


class TestEnvOverrides:
    """环境变量覆盖测试"""

    def test_first_set_variable_wins(self):
        overrides = env_overrides({"API_KEY": "b", "GEMINI_API_KEY": "a"})

        assert overrides == {"gemini": {"api_key": "a"}}

    def test_empty_values_ignored(self):
        assert env_overrides({"GEMINI_API_KEY": "", "API_KEY": "b"}) == {"gemini": {"api_key": "b"}}

    def test_no_variables(self):
        assert env_overrides({}) == {}
