"""对外 API 服务模块。

提供简化的函数接口供上层应用（CLI、HTTP 服务等）调用。
"""

from typing import Any, Dict, Iterable, Literal, Optional

from legal_skill.agents.legal_skills import generate_brief, review_contract, triage_nda
from legal_skill.config.settings import Settings, settings
from legal_skill.domain.exceptions import ValidationError
from legal_skill.flows.graph import TextCallback
from legal_skill.infrastructure.logging.logger import logger
from legal_skill.providers.registry import ProviderRegistry

Task = Literal["review", "triage", "brief"]


def run_task(
    task: Task,
    *,
    document_path: Optional[str] = None,
    query: Optional[str] = None,
    brief_type: str = "topic",
    side: Optional[str] = None,
    focus_areas: Optional[Iterable[str]] = None,
    model: Optional[str] = None,
    reply_in_original_language: bool = False,
    on_text: Optional[TextCallback] = None,
) -> Dict[str, Any]:
    """运行一个法务任务。

    Args:
        task: review / triage / brief
        document_path: 合同或 NDA 的路径（review / triage 必填）
        query: 简报主题或事件描述（brief 必填）
        brief_type: topic 或 incident
        side: 我方立场 vendor / customer（仅 review）
        focus_areas: 重点关注条款（仅 review）
        model: 覆盖默认模型
        reply_in_original_language: 要求以文档原语言作答
        on_text: 模型文本的进度回调

    Returns:
        {"success": True, "analysis": markdown 文本}

    Raises:
        ValidationError: 参数缺失或取值非法。
        各种 domain.exceptions 中定义的网关异常。
    """
    try:
        if task in ("review", "triage") and not document_path:
            raise ValidationError(code="MISSING_DOCUMENT", message=f"{task} requires a document path")
        if task == "review":
            analysis = review_contract(
                document_path,
                side=side,
                focus_areas=focus_areas,
                model=model,
                reply_in_original_language=reply_in_original_language,
                on_text=on_text,
            )
        elif task == "triage":
            analysis = triage_nda(
                document_path,
                model=model,
                reply_in_original_language=reply_in_original_language,
                on_text=on_text,
            )
        elif task == "brief":
            analysis = generate_brief(
                brief_type,
                query or "",
                model=model,
                reply_in_original_language=reply_in_original_language,
                on_text=on_text,
            )
        else:
            raise ValidationError(code="UNKNOWN_TASK", message=f"Unknown task: {task}")
        return {"success": True, "analysis": analysis}
    except Exception as e:
        logger.error(f"Task failed: {e}", extra={"extra": {
            "task": task,
            "document_path": document_path,
            "error": str(e),
        }})
        raise


def describe_config(cfg: Optional[Settings] = None) -> Dict[str, Any]:
    """返回当前生效的 Provider 配置摘要（不包含密钥）。"""

    cfg = cfg or settings
    registry = ProviderRegistry(cfg)
    provider = registry.get(registry.default_provider)
    return {
        "provider": provider.name,
        "family": provider.family,
        "base_url": provider.base_url,
        "model": cfg.ai_model,
        "api_key_configured": bool(provider.api_key),
        "playbook_path": cfg.playbook_path,
        "max_iterations": cfg.max_iterations,
    }
