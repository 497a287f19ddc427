"""基于 LangGraph 的文档 Agent 循环。"""

from legal_skill.flows.graph import MAX_ITERATIONS_MESSAGE
from legal_skill.flows.runner import run_agent_loop

__all__ = ["MAX_ITERATIONS_MESSAGE", "run_agent_loop"]
