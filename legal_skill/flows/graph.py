"""LangGraph construction and node implementations.

model ──(有工具调用)──> tools ──(未到上限)──> model
  │                       └──(到达上限)──> END
  ├──(需要语言校验)──> language_check ──(NO)──> model
  │                         └──(其它)──> END
  └──(其它)──> END
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from legal_skill.domain.exceptions import BusinessError
from legal_skill.domain.models import ChatRequest, Message, ToolResultBlock, ToolSpec
from legal_skill.flows.state import AgentRunState
from legal_skill.infrastructure.logging.logger import logger
from legal_skill.providers.base import ChatClient
from legal_skill.tools.definitions import ToolOutcome
from legal_skill.tools.executor import READ_DOCUMENT

MAX_ITERATIONS_MESSAGE = "Maximum iterations reached. Please try again with a simpler request."

LANGUAGE_SAMPLE_CHARS = 1000
LANGUAGE_CHECK_MIN_CHARS = 50
LANGUAGE_CHECK_MAX_TOKENS = 10

LANGUAGE_CHECK_PROMPT = """Are the following two texts written in the same language?
Answer with a single word: YES or NO.

Text A:
{document}

Text B:
{answer}"""

TRANSLATE_INSTRUCTION = (
    "Your previous answer is not written in the same language as the source document. "
    "Translate your entire previous answer into the language of the source document. "
    "Keep the structure, headings and classifications unchanged and do not shorten it."
)

TextCallback = Callable[[str], None]


def model_node(
    state: AgentRunState,
    gateway: ChatClient,
    tools: Sequence[ToolSpec],
    max_tokens: int,
    on_text: Optional[TextCallback],
) -> AgentRunState:
    iteration = state["iteration_count"] + 1
    logger.info(
        "model_node.start",
        extra={"extra": {"iteration": iteration, "model": state["model"], "messages": len(state["history"])}},
    )
    req = ChatRequest(
        model=state["model"],
        messages=tuple(state["history"]),
        system_prompt=state["system_prompt"],
        tools=tuple(tools),
        max_tokens=max_tokens,
    )
    response = gateway.send(req)
    text = response.text
    if text:
        if on_text is not None:
            on_text(text)
        else:
            logger.info("model_node.text", extra={"extra": {"iteration": iteration, "text": text[:200]}})
    state["last_response"] = response
    if not response.has_tool_use:
        state["final_text"] = text
    return state


def tool_node(state: AgentRunState, executor) -> AgentRunState:
    response = state["last_response"]
    results = []
    for call in response.tool_uses:
        logger.info("tool_node.call", extra={"extra": {"tool_name": call.name, "arguments": call.input}})
        content = executor.execute(call.name, call.input)
        outcome = ToolOutcome.from_json(content)
        logger.info(
            "tool_node.result",
            extra={"extra": {"tool_name": call.name, "success": outcome.success, "preview": content[:100]}},
        )
        if call.name == READ_DOCUMENT and outcome.success and outcome.text:
            state["last_tool_document_text"] = outcome.text
        results.append(ToolResultBlock(tool_use_id=call.id, content=content))

    state["history"].append(Message(role="assistant", content=response.content))
    state["history"].append(Message(role="user", content=tuple(results)))
    state["iteration_count"] += 1
    if state["iteration_count"] >= state["max_iterations"]:
        logger.warning("tool_node.max_iterations", extra={"extra": {"iterations": state["iteration_count"]}})
        state["final_text"] = MAX_ITERATIONS_MESSAGE
    return state


def language_check_node(state: AgentRunState, gateway: ChatClient) -> AgentRunState:
    candidate = state.get("final_text") or ""
    document = state.get("last_tool_document_text") or ""
    state["language_check_attempted"] = True
    prompt = LANGUAGE_CHECK_PROMPT.format(
        document=document[:LANGUAGE_SAMPLE_CHARS],
        answer=candidate[:LANGUAGE_SAMPLE_CHARS],
    )
    req = ChatRequest(
        model=state["model"],
        messages=(Message(role="user", content=prompt),),
        max_tokens=LANGUAGE_CHECK_MAX_TOKENS,
    )
    try:
        verdict = gateway.send(req).text
    except BusinessError as exc:
        logger.warning("language_check.failed", extra={"extra": {"code": exc.code, "error": exc.message}})
        return state

    mismatch = "NO" in verdict.upper()
    logger.info("language_check.verdict", extra={"extra": {"verdict": verdict.strip(), "mismatch": mismatch}})
    if mismatch:
        state["history"].append(Message(role="assistant", content=candidate))
        state["history"].append(Message(role="user", content=TRANSLATE_INSTRUCTION))
        state["final_text"] = None
    return state


def needs_language_check(state: AgentRunState) -> bool:
    return bool(
        state.get("reply_in_original_language")
        and not state.get("language_check_attempted")
        and state.get("last_tool_document_text")
        and len(state.get("final_text") or "") > LANGUAGE_CHECK_MIN_CHARS
    )


def model_router(state: AgentRunState) -> str:
    response = state["last_response"]
    if response is not None and response.has_tool_use:
        return "tools"
    if needs_language_check(state):
        return "language_check"
    return "done"


def done_router(state: AgentRunState) -> str:
    return "done" if state.get("final_text") is not None else "model"


def build_graph(
    gateway: ChatClient,
    executor,
    tools: Sequence[ToolSpec],
    *,
    max_tokens: int = 8192,
    on_text: Optional[TextCallback] = None,
) -> CompiledStateGraph:
    graph = StateGraph(AgentRunState)
    graph.add_node("model", lambda s: model_node(s, gateway, tools, max_tokens, on_text))
    graph.add_node("tools", lambda s: tool_node(s, executor))
    graph.add_node("language_check", lambda s: language_check_node(s, gateway))
    graph.set_entry_point("model")
    graph.add_conditional_edges(
        "model",
        model_router,
        {"tools": "tools", "language_check": "language_check", "done": END},
    )
    graph.add_conditional_edges("tools", done_router, {"model": "model", "done": END})
    graph.add_conditional_edges("language_check", done_router, {"model": "model", "done": END})
    return graph.compile()
