"""系统提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取各技能的 system prompt 文本。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent

PROMPT_FILES = {
    "contract-review": "contract_review.md",
    "nda-triage": "nda_triage.md",
    "legal-brief": "legal_brief.md",
}


def load_system_prompt(skill: str, locale: str = "en") -> str:
    """根据技能名和语言加载系统提示词文本。

    Raises:
        KeyError: 未知的技能名。
    """

    fname = PROMPTS_DIR / locale / PROMPT_FILES[skill]
    return fname.read_text(encoding="utf-8").strip()
