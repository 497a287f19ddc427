"""Legal Skill 顶层包。

该包提供法务文档 Agent 的核心实现，
包括配置加载、canonical 协议模型、多 Provider 网关与适配、
文档工具、基于 LangGraph 的 Agent 循环以及合同审查等技能。
"""

from legal_skill.agents.legal_skills import generate_brief, review_contract, triage_nda
from legal_skill.flows.runner import run_agent_loop

__all__ = ["generate_brief", "review_contract", "run_agent_loop", "triage_nda"]
