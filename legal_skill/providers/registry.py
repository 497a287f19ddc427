"""Provider 与路由配置。

本模块负责两件事：

- 维护 Provider 名称 → 连接信息（base_url / api_key / default_model）的映射。
- 根据请求的模型名推断应该路由到哪个 Provider。

Provider 分为两个家族（family）：

- "native": 直接接受 canonical wire 格式（anthropic、ollama）。
- "openai": 需要结构化转换的 OpenAI 风格接口（openai、glm、openrouter）。

注册表在构造后只读，可以被多个并发的 Agent 运行共享。
"""

from dataclasses import dataclass, field
from typing import Dict, Literal, Mapping, Optional

from legal_skill.config.settings import Settings
from legal_skill.domain.exceptions import MalformedRequestError
from legal_skill.infrastructure.logging.logger import logger


ProviderFamily = Literal["native", "openai"]


@dataclass(frozen=True)
class ProviderConfig:
    """某个 Provider 的连接配置。

    - path_prefix: 部分 Provider 需要在 URL 中注入的固定路径段（如 GLM 的 /api/paas/v4）。
    - extra_headers: 该 Provider 必需的附加请求头（如 OpenRouter 的归属头）。
    """

    name: str
    family: ProviderFamily
    base_url: str
    api_key: str
    default_model: str
    path_prefix: Optional[str] = None
    extra_headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_native(self) -> bool:
        return self.family == "native"


@dataclass(frozen=True)
class _ProviderDefaults:
    family: ProviderFamily
    base_url: str
    default_model: str
    path_prefix: Optional[str] = None


PROVIDER_DEFAULTS: Mapping[str, _ProviderDefaults] = {
    "anthropic": _ProviderDefaults("native", "https://api.anthropic.com", "claude-sonnet-4-5"),
    "ollama": _ProviderDefaults("native", "http://localhost:11434", "gemma3:4b"),
    "openai": _ProviderDefaults("openai", "https://api.openai.com/v1", "gpt-4o-mini"),
    "glm": _ProviderDefaults("openai", "https://open.bigmodel.cn/api", "glm-4.6", path_prefix="/api/paas/v4"),
    "openrouter": _ProviderDefaults("openai", "https://openrouter.ai/api/v1", "openrouter/auto"),
}

GLM_MODEL_PREFIX = "glm-"
CLAUDE_MODEL_PREFIX = "claude-"
OPENAI_MODEL_PREFIXES = ("gpt-", "o1", "o3", "o4")


def match_model_pattern(model: Optional[str]) -> Optional[str]:
    """按模型名推断 Provider；无法推断时返回 None。

    规则（按顺序）：
    1. glm- 前缀 → glm
    2. claude- 前缀 → anthropic
    3. 名称中含 "/" → openrouter（vendor/model 形式）
    4. gpt- / o1 / o3 / o4 前缀 → openai
    """

    if not model:
        return None
    name = model.strip().lower()
    if name.startswith(GLM_MODEL_PREFIX):
        return "glm"
    if name.startswith(CLAUDE_MODEL_PREFIX):
        return "anthropic"
    if "/" in name:
        return "openrouter"
    if name.startswith(OPENAI_MODEL_PREFIXES):
        return "openai"
    return None


class ProviderRegistry:
    """由 Settings 构造的只读 Provider 注册表。"""

    def __init__(self, cfg: Settings):
        self._settings = cfg
        self._providers: Dict[str, ProviderConfig] = {
            name: self._build(name) for name in PROVIDER_DEFAULTS
        }

    @property
    def default_provider(self) -> str:
        return self._settings.ai_provider

    def get(self, name: str) -> ProviderConfig:
        """根据名称获取 ProviderConfig，名称不区分大小写。"""

        key = name.lower()
        try:
            return self._providers[key]
        except KeyError:
            raise MalformedRequestError(code="UNKNOWN_PROVIDER", message=f"Unknown provider: {name!r}") from None

    def resolve(self, provider_hint: Optional[str] = None, model: Optional[str] = None) -> ProviderConfig:
        """确定一次请求使用的 Provider。

        顺序：配置的默认模型 → 模型名匹配 → 显式 provider_hint → 配置的默认 Provider。
        非严格模式下总能返回一个 Provider；回退到默认值且模型名无法识别时记录告警。
        """

        # 默认模型属于配置的 Provider（如 ollama 上的 gpt-oss:20b），不参与名称匹配
        if model and model == self._settings.ai_model and not provider_hint:
            return self._providers[self.default_provider]

        matched = match_model_pattern(model)
        if matched:
            logger.info(
                "Provider resolved by model name",
                extra={"extra": {"provider": matched, "model": model}},
            )
            return self._providers[matched]

        if provider_hint:
            return self.get(provider_hint)

        default = self._providers[self.default_provider]
        if model and model != self._settings.ai_model:
            if self._settings.strict_model_routing:
                raise MalformedRequestError(
                    code="UNROUTABLE_MODEL",
                    message=f"Model {model!r} does not match any known provider",
                    model=model,
                )
            logger.warning(
                "Model name matched no provider, falling back to default",
                extra={"extra": {"provider": default.name, "model": model}},
            )
        return default

    def _build(self, name: str) -> ProviderConfig:
        defaults = PROVIDER_DEFAULTS[name]
        cfg = self._settings
        specific_key: Optional[str] = getattr(cfg, f"{name}_api_key", None)
        specific_url: Optional[str] = getattr(cfg, f"{name}_base_url", None)

        if name == cfg.ai_provider:
            base_url = specific_url or cfg.ai_base_url or defaults.base_url
            api_key = specific_key or cfg.ai_api_key
            default_model = cfg.ai_model
        else:
            base_url = specific_url or defaults.base_url
            api_key = specific_key or ("ollama" if name == "ollama" else "")
            default_model = defaults.default_model

        extra_headers: Dict[str, str] = {}
        if name == "openrouter":
            extra_headers = {
                "HTTP-Referer": cfg.openrouter_referer,
                "X-Title": cfg.openrouter_title,
            }

        return ProviderConfig(
            name=name,
            family=defaults.family,
            base_url=base_url.rstrip("/"),
            api_key=api_key,
            default_model=default_model,
            path_prefix=defaults.path_prefix,
            extra_headers=extra_headers,
        )
