"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。

Settings 对象构造后不可变（frozen），Gateway 与 ProviderRegistry
在构造时显式接收它，而不是在调用时读取进程级全局状态，
方便测试中注入假的凭证。
"""

import logging
import os
import warnings
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_log = logging.getLogger("legal_skill.config")

ProviderName = Literal["anthropic", "ollama", "openai", "glm", "openrouter"]


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("LEGAL_SKILL_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
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
    """应用配置（使用 Pydantic）。"""

    # ---- 当前选用的 Provider ----
    ai_provider: ProviderName = Field(
        default="ollama",
        description="默认 Provider：anthropic / ollama / openai / glm / openrouter",
    )
    ai_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ai_base_url", "ollama_base_url"),
        description="默认 Provider 的基础 URL，留空时使用该 Provider 的内置地址",
    )
    ai_api_key: str = Field(default="ollama", description="默认 Provider 的 API 密钥")
    ai_model: str = Field(
        default="gemma3:4b",
        validation_alias=AliasChoices("ai_model", "ollama_model"),
        description="默认模型名",
    )

    # ---- 各 Provider 的独立覆盖项（按模型名路由时使用） ----
    anthropic_api_key: Optional[str] = None
    anthropic_base_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    glm_api_key: Optional[str] = None
    glm_base_url: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: Optional[str] = None
    openrouter_referer: str = Field(
        default="https://github.com/legal-skill/legal-skill",
        description="OpenRouter 归属头 HTTP-Referer",
    )
    openrouter_title: str = Field(default="Legal Skill", description="OpenRouter 归属头 X-Title")

    # ---- 路由与调用 ----
    strict_model_routing: bool = Field(
        default=False,
        description="模型名无法匹配任何 Provider 时是否直接报错（默认回退到 ai_provider 并告警）",
    )
    http_timeout: float = Field(default=300.0, ge=1.0, description="HTTP 超时时间（秒），本地大模型推理较慢")
    max_tokens: int = Field(default=8192, ge=1, description="单次调用最大输出 token")
    max_iterations: int = Field(default=10, ge=1, le=50, description="Agent 循环最大轮数")

    # ---- 工具 / 文档 ----
    workspace_root: Optional[str] = Field(
        default=None,
        description="工具可访问的根目录；为空表示不限制",
    )
    playbook_path: Optional[str] = Field(default=None, description="谈判手册（playbook）文件路径")

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator(
        "ai_base_url",
        "anthropic_base_url",
        "openai_base_url",
        "glm_base_url",
        "openrouter_base_url",
    )
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().rstrip("/")
        return v or None

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


def load_settings(**overrides: Any) -> Settings:
    """构造一份新的 Settings，overrides 优先级最高。"""

    return Settings(**overrides)


def load_playbook(cfg: Settings) -> Optional[str]:
    """读取谈判手册（playbook）；未配置、不存在或读取失败时返回 None。"""

    if not cfg.playbook_path:
        return None
    path = Path(cfg.playbook_path).expanduser().resolve()
    if not path.exists():
        _log.warning("Playbook not found", extra={"extra": {"path": str(path)}})
        return None
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        _log.warning("Failed to read playbook", extra={"extra": {"path": str(path), "error": str(exc)}})
        return None


settings = load_settings()
