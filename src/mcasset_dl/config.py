"""配置管理模块

支持从环境变量（MCASSET_DL_*）和 .env 文件加载配置
"""

import os
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .models import DEFAULT_MANIFEST_URL, DEFAULT_RESOURCES_URL, Config

ENV_PREFIX = "MCASSET_DL_"


class Settings(BaseSettings):
    """应用设置类，继承自 Pydantic BaseSettings"""

    # 上游地址
    manifest_url: str = DEFAULT_MANIFEST_URL
    resources_url: str = DEFAULT_RESOURCES_URL

    # 网络配置
    timeout: int = 60
    connection_timeout: int = 15
    read_timeout: int = 30
    max_retries: int = 3
    retry_base_delay: float = 1.0
    chunk_size: int = 65536
    user_agent: str = "mcasset-dl/1.0"

    # 并发设置
    max_concurrent_downloads: int = 16

    # 同步行为
    verify_hashes: bool = True
    incremental: bool = False
    show_progress: bool = False
    debug_mode: bool = False

    def to_config(self) -> Config:
        """转换为 Config 模型"""
        return Config(**self.model_dump())

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class ConfigManager:
    """配置管理器"""

    def __init__(self):
        self._config: Optional[Config] = None

    def get_config(self) -> Config:
        """获取配置，优先环境变量，然后使用默认值"""
        if self._config is not None:
            return self._config

        try:
            self._config = Settings().to_config()
            return self._config
        except PydanticValidationError as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}")

    def reset(self) -> None:
        """丢弃缓存的配置，下次读取时重新加载环境变量"""
        self._config = None


# 全局配置管理器实例
config_manager = ConfigManager()


def get_config() -> Config:
    """获取全局配置"""
    return config_manager.get_config()


def override_config(config: Config, **overrides: Any) -> Config:
    """基于已有配置覆盖部分字段，值为 None 的字段保持不变"""
    config_dict = config.model_dump()
    config_dict.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Config(**config_dict)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration override: {e}")


def check_environment() -> Dict[str, Any]:
    """列出当前生效的 MCASSET_DL_* 环境变量"""
    return {key: value for key, value in os.environ.items() if key.startswith(ENV_PREFIX)}
