"""法务技能：合同审查、NDA 分诊、法律简报。

每个技能只负责拼装 system prompt 与首条用户指令，然后交给
run_agent_loop；文档由模型通过 read_document 工具自行读取。
"""

from typing import Iterable, Literal, Optional

from legal_skill.config.settings import Settings, load_playbook, settings
from legal_skill.domain.exceptions import ValidationError
from legal_skill.flows.graph import TextCallback
from legal_skill.flows.runner import run_agent_loop
from legal_skill.prompts import load_system_prompt
from legal_skill.providers.base import ChatClient

Side = Literal["vendor", "customer"]
BriefKind = Literal["topic", "incident"]

ORIGINAL_LANGUAGE_INSTRUCTION = (
    "Write your entire answer in the same language as the document, "
    "including headings and classifications."
)


def _with_playbook(system_prompt: str, playbook: Optional[str], heading: str, fallback: str) -> str:
    if playbook:
        return f"{system_prompt}\n\n## {heading}\n{playbook}"
    return f"{system_prompt}\n\n## Note\n{fallback}"


def _join(parts: Iterable[str]) -> str:
    return "\n\n".join(p for p in parts if p)


def review_contract(
    document_path: str,
    *,
    side: Optional[Side] = None,
    focus_areas: Optional[Iterable[str]] = None,
    model: Optional[str] = None,
    reply_in_original_language: bool = False,
    cfg: Optional[Settings] = None,
    gateway: Optional[ChatClient] = None,
    executor=None,
    on_text: Optional[TextCallback] = None,
) -> str:
    """按 playbook 审查合同，输出逐条款的 GREEN / YELLOW / RED 分级与修改建议。"""

    cfg = cfg or settings
    if side is not None and side not in ("vendor", "customer"):
        raise ValidationError(code="INVALID_SIDE", message=f"side must be 'vendor' or 'customer', got {side!r}")
    system_prompt = _with_playbook(
        load_system_prompt("contract-review"),
        load_playbook(cfg),
        "Organization Playbook",
        "No playbook configured. Using general commercial standards as baseline.",
    )
    focus = [f.strip() for f in (focus_areas or []) if f and f.strip()]
    user_message = _join([
        "I need you to review a contract.",
        f"**Step 1**: Use the 'read_document' tool with the EXACT path: \"{document_path}\"",
        f"We are the {side} in this agreement." if side else "",
        f"Focus areas: {', '.join(focus)}" if focus else "",
        "After reading the file, provide a clause-by-clause analysis with GREEN/YELLOW/RED "
        "classifications and specific redline suggestions for any issues.",
        ORIGINAL_LANGUAGE_INSTRUCTION if reply_in_original_language else "",
    ])
    return run_agent_loop(
        system_prompt,
        user_message,
        max_iterations=cfg.max_iterations,
        model=model,
        reply_in_original_language=reply_in_original_language,
        gateway=gateway,
        executor=executor,
        on_text=on_text,
        cfg=cfg,
    )


def triage_nda(
    document_path: str,
    *,
    model: Optional[str] = None,
    reply_in_original_language: bool = False,
    cfg: Optional[Settings] = None,
    gateway: Optional[ChatClient] = None,
    executor=None,
    on_text: Optional[TextCallback] = None,
) -> str:
    cfg = cfg or settings
    system_prompt = _with_playbook(
        load_system_prompt("nda-triage"),
        load_playbook(cfg),
        "Organization NDA Standards",
        "Using general NDA standards as baseline.",
    )
    user_message = _join([
        f"Please triage the NDA at: {document_path}",
        "Provide:\n"
        "1. Overall classification (GREEN/YELLOW/RED)\n"
        "2. Key findings for each evaluation criterion\n"
        "3. Specific issues requiring attention (if any)\n"
        "4. Recommended next steps",
        ORIGINAL_LANGUAGE_INSTRUCTION if reply_in_original_language else "",
    ])
    return run_agent_loop(
        system_prompt,
        user_message,
        max_iterations=cfg.max_iterations,
        model=model,
        reply_in_original_language=reply_in_original_language,
        gateway=gateway,
        executor=executor,
        on_text=on_text,
        cfg=cfg,
    )


def generate_brief(
    kind: BriefKind,
    query: str,
    *,
    model: Optional[str] = None,
    reply_in_original_language: bool = False,
    cfg: Optional[Settings] = None,
    gateway: Optional[ChatClient] = None,
    executor=None,
    on_text: Optional[TextCallback] = None,
) -> str:
    """生成主题研究简报（topic）或事件简报（incident）。"""

    cfg = cfg or settings
    if kind not in ("topic", "incident"):
        raise ValidationError(code="INVALID_BRIEF_TYPE", message=f"brief type must be 'topic' or 'incident', got {kind!r}")
    if not query or not query.strip():
        raise ValidationError(code="EMPTY_QUERY", message="brief query must not be empty")
    if kind == "topic":
        user_message = f"Generate a research brief on the following legal topic: {query.strip()}"
    else:
        user_message = f"Generate an incident brief for the following situation: {query.strip()}"
    if reply_in_original_language:
        user_message = _join([user_message, "Write your answer in the same language as the request above."])
    return run_agent_loop(
        load_system_prompt("legal-brief"),
        user_message,
        max_iterations=cfg.max_iterations,
        model=model,
        reply_in_original_language=reply_in_original_language,
        gateway=gateway,
        executor=executor,
        on_text=on_text,
        cfg=cfg,
    )
