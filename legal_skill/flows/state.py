"""State definition for the document agent loop."""

from __future__ import annotations

from typing import List, Optional, TypedDict

from legal_skill.domain.models import ChatResponse, Message


class AgentRunState(TypedDict, total=False):
    """一次 Agent 运行的状态，每次调用新建，运行结束即丢弃。"""

    model: str
    system_prompt: str
    history: List[Message]
    iteration_count: int
    max_iterations: int
    reply_in_original_language: bool
    language_check_attempted: bool
    last_tool_document_text: Optional[str]
    last_response: Optional[ChatResponse]
    final_text: Optional[str]
