import pytest

from legal_skill.config.settings import load_settings
from legal_skill.domain.exceptions import MalformedRequestError
from legal_skill.providers.registry import ProviderRegistry, match_model_pattern


def make_settings(**kw):
    base = dict(ai_provider="ollama", ai_base_url="http://ollama.local:11434/", ai_api_key="ollama", ai_model="gemma3:4b")
    base.update(kw)
    return load_settings(**base)


def test_model_patterns():
    assert match_model_pattern("glm-4.6") == "glm"
    assert match_model_pattern("claude-sonnet-4-5") == "anthropic"
    assert match_model_pattern("meta-llama/llama-3-70b") == "openrouter"
    assert match_model_pattern("gpt-4o") == "openai"
    assert match_model_pattern("o3-mini") == "openai"
    assert match_model_pattern("gemma3:4b") is None
    assert match_model_pattern(None) is None


def test_slash_name_routes_to_openrouter_unless_glm_prefix():
    reg = ProviderRegistry(make_settings(openrouter_api_key="or-key"))
    cfg = reg.resolve(None, "anthropic/claude-3.5-sonnet")
    assert cfg.name == "openrouter"
    assert cfg.family == "openai"
    assert cfg.api_key == "or-key"
    assert cfg.extra_headers["X-Title"] == "Legal Skill"
    assert reg.resolve(None, "glm-4/flash").name == "glm"


def test_claude_prefix_routes_to_native_provider():
    reg = ProviderRegistry(make_settings(anthropic_api_key="sk-ant"))
    cfg = reg.resolve(None, "claude-sonnet-4-5")
    assert cfg.name == "anthropic"
    assert cfg.is_native
    assert cfg.base_url == "https://api.anthropic.com"


def test_default_provider_uses_configured_url_and_key():
    reg = ProviderRegistry(make_settings())
    cfg = reg.resolve(None, "gemma3:4b")
    assert cfg.name == "ollama"
    assert cfg.base_url == "http://ollama.local:11434"
    assert cfg.default_model == "gemma3:4b"


def test_unknown_model_falls_back_with_warning(caplog):
    reg = ProviderRegistry(make_settings())
    with caplog.at_level("WARNING", logger="legal_skill"):
        cfg = reg.resolve(None, "mistral-large")
    assert cfg.name == "ollama"
    assert any("falling back" in r.getMessage() for r in caplog.records)


def test_unknown_model_rejected_in_strict_mode():
    reg = ProviderRegistry(make_settings(strict_model_routing=True))
    with pytest.raises(MalformedRequestError) as exc:
        reg.resolve(None, "mistral-large")
    assert exc.value.code == "UNROUTABLE_MODEL"
    # 配置的默认模型不受严格模式影响
    assert reg.resolve(None, "gemma3:4b").name == "ollama"


def test_provider_hint_and_unknown_provider():
    reg = ProviderRegistry(make_settings(openai_api_key="sk-openai"))
    assert reg.resolve("openai", "my-finetune").name == "openai"
    with pytest.raises(MalformedRequestError):
        reg.get("nope")


def test_glm_provider_has_path_prefix():
    reg = ProviderRegistry(make_settings(ai_provider="glm", ai_api_key="g", ai_model="glm-4.6", ai_base_url=None))
    cfg = reg.default_provider
    assert cfg == "glm"
    glm = reg.get("glm")
    assert glm.path_prefix == "/api/paas/v4"
    assert glm.api_key == "g"


def test_configured_default_model_stays_on_configured_provider():
    reg = ProviderRegistry(make_settings(ai_model="gpt-oss:20b"))
    cfg = reg.resolve(None, "gpt-oss:20b")
    assert cfg.name == "ollama"
    assert cfg.base_url == "http://ollama.local:11434"
    assert reg.resolve(None, "gpt-4o").name == "openai"
    assert reg.resolve("openai", "gpt-oss:20b").name == "openai"


def test_anthropic_env_override_does_not_leak_into_defaults(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_BASE_URL", "http://proxy.example")
    reg = ProviderRegistry(make_settings())
    assert reg.get("anthropic").base_url == "http://proxy.example"
    monkeypatch.delenv("ANTHROPIC_BASE_URL")
    assert ProviderRegistry(make_settings()).get("anthropic").base_url == "https://api.anthropic.com"
