"""High-level entry point for the document agent loop."""

from __future__ import annotations

from typing import Optional

from legal_skill.config.settings import Settings, settings
from legal_skill.domain.exceptions import ValidationError
from legal_skill.domain.models import Message
from legal_skill.flows.graph import TextCallback, build_graph
from legal_skill.flows.state import AgentRunState
from legal_skill.infrastructure.logging.logger import logger
from legal_skill.providers import create_gateway
from legal_skill.providers.base import ChatClient
from legal_skill.tools.executor import DocumentToolExecutor, document_tool_specs


def run_agent_loop(
    system_prompt: str,
    user_message: str,
    *,
    max_iterations: int = 10,
    model: Optional[str] = None,
    reply_in_original_language: bool = False,
    gateway: Optional[ChatClient] = None,
    executor=None,
    on_text: Optional[TextCallback] = None,
    cfg: Optional[Settings] = None,
) -> str:
    """执行一次多轮工具调用对话并返回最终文本。

    Args:
        system_prompt: 系统提示词
        user_message: 首条用户指令（文档路径嵌在文本中，由模型自行调用 read_document）
        max_iterations: 工具调用轮数上限，达到后返回固定提示
        model: 模型名，默认使用网关的默认模型
        reply_in_original_language: 是否在结束前校验回答语言与文档一致（最多纠正一次）
        gateway: Chat 客户端，默认按全局配置创建
        executor: 工具执行器，需提供 execute(name, input) -> JSON 字符串
        on_text: 每次收到模型文本时立即回调
        cfg: 本次运行使用的配置（网关、模型、工作区、max_tokens），默认使用全局 settings

    Raises:
        ValidationError: max_iterations 小于 1。
        BusinessError: 网关调用失败，本次运行直接终止。
    """

    if max_iterations < 1:
        raise ValidationError(code="INVALID_MAX_ITERATIONS", message="max_iterations must be at least 1")
    cfg = cfg or settings
    gateway = gateway or create_gateway(cfg)
    executor = executor or DocumentToolExecutor(cfg.workspace_root)
    model_name = model or getattr(gateway, "default_model", None) or cfg.ai_model

    graph = build_graph(
        gateway,
        executor,
        document_tool_specs(),
        max_tokens=cfg.max_tokens,
        on_text=on_text,
    )
    state: AgentRunState = {
        "model": model_name,
        "system_prompt": system_prompt,
        "history": [Message(role="user", content=user_message)],
        "iteration_count": 0,
        "max_iterations": max_iterations,
        "reply_in_original_language": reply_in_original_language,
        "language_check_attempted": False,
        "last_tool_document_text": None,
        "last_response": None,
        "final_text": None,
    }
    logger.info(
        "run_agent_loop.start",
        extra={"extra": {"model": model_name, "max_iterations": max_iterations}},
    )
    # 每轮最多经过 model / tools / language_check 三个节点
    result = graph.invoke(state, config={"recursion_limit": max_iterations * 3 + 10})
    logger.info(
        "run_agent_loop.end",
        extra={"extra": {"iterations": result.get("iteration_count", 0)}},
    )
    return result.get("final_text") or ""
