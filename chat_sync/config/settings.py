"""配置管理模块。

支持从初始化参数、环境变量、.env 以及 config.yaml 加载配置。
优先级从高到低依次为：init > env > .env > config.yaml。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("CHAT_SYNC_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
        Path(__file__).resolve().parents[1] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """同步客户端配置。"""

    # ---- 服务端连接 ----
    base_url: str = Field(
        default="http://127.0.0.1:8080",
        description="聊天服务根地址，不带末尾斜杠",
    )
    http_timeout: float = Field(default=10.0, gt=0, description="HTTP 超时时间（秒）")
    # 不同部署使用自定义头或标准 Bearer 方案，因此两者都可配置
    token_header: str = Field(default="Authorization-Token", description="携带 token 的请求头名称")
    token_scheme: str = Field(
        default="",
        description="token 前缀方案，例如 Bearer；为空时直接发送原始 token",
    )

    # ---- 同步节奏 ----
    history_limit: int = Field(default=100, ge=1, le=1000, description="首次加载的历史消息条数")
    message_poll_interval: float = Field(default=1.5, gt=0, description="消息轮询间隔（秒）")
    presence_poll_interval: float = Field(default=5.0, gt=0, description="在线列表与统计轮询间隔（秒）")

    # ---- 本地存储与日志 ----
    storage_root: str = Field(default=".storage", description="本地 token 存储目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

    @field_validator("token_header")
    @classmethod
    def validate_token_header(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("token_header must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v!r}")
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
