import pytest

from legal_skill.config.settings import Settings

# 旧版 ollama_* 变量名同样会被 Settings 读取
_EXTRA_ENV = ("LEGAL_SKILL_CONFIG_FILE", "OLLAMA_MODEL", "OLLAMA_BASE_URL")


@pytest.fixture(autouse=True)
def isolated_settings_env(tmp_path, monkeypatch):
    """清除会影响 Settings 的环境变量，并在空目录中运行（不读取 .env / config.yaml）。"""

    for name in list(Settings.model_fields) + list(_EXTRA_ENV):
        monkeypatch.delenv(name.upper(), raising=False)
        monkeypatch.delenv(name.lower(), raising=False)
    # 空配置文件排在候选首位，仓库根目录下的 config.yaml 不会被读到
    empty = tmp_path / "empty-config.yaml"
    empty.write_text("", encoding="utf-8")
    monkeypatch.setenv("LEGAL_SKILL_CONFIG_FILE", str(empty))
    monkeypatch.chdir(tmp_path)
