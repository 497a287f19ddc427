"""请求 / 响应适配层。

Gateway 只使用 canonical 协议；本模块把 ChatRequest 转成目标 Provider
期望的传输请求（URL / headers / body），并把上游原始响应转回 canonical 形态。

- native 家族：请求体原样透传（即 ChatRequest.to_wire() 的序列化结果），
  只替换目标地址并注入凭证头；响应也原样透传。
- openai 家族：做结构化转换：
  - system_prompt → 首条 system 消息；
  - Text 块 → 带角色的文本消息；ToolResult 块 → role="tool" 消息；
    ToolUse 块 → 仅含一个 tool_call 的 assistant 消息；
  - ToolSpec → {"type": "function", "function": {...}}，并设置 tool_choice="auto"；
  - /v1/messages 路径替换为 /chat/completions（GLM 额外注入 /api/paas/v4）。
"""

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

import httpx

from legal_skill.domain.exceptions import ApiError, MalformedRequestError, RateLimitError, UpstreamFormatError
from legal_skill.domain.models import (
    ChatRequest,
    ChatResponse,
    Message,
    OtherBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from legal_skill.infrastructure.logging.logger import logger
from legal_skill.providers.registry import ProviderConfig


MESSAGES_PATH = "/v1/messages"
CHAT_COMPLETIONS_PATH = "/chat/completions"
NATIVE_API_VERSION = "2023-06-01"

# 转发到 OpenAI 风格 Provider 时需要丢弃的请求头（小写比较）
STRIPPED_HEADERS = frozenset({
    "x-api-key",
    "content-type",
    "accept",
    "authorization",
    "connection",
    "host",
    "content-length",
    "transfer-encoding",
    "user-agent",
})

FINISH_REASONS = {
    "stop": "end_turn",
    "tool_calls": "tool_use",
    "function_call": "tool_use",
    "length": "max_tokens",
}


@dataclass(frozen=True)
class TransportRequest:
    method: str
    url: str
    headers: Dict[str, str]
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


def _dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def canonical_body(request: ChatRequest) -> bytes:
    """canonical 请求体的字节序列化。"""

    return _dumps(request.to_wire()).encode("utf-8")


# ---- 请求适配 ----


def adapt_request(
    request: ChatRequest,
    provider: ProviderConfig,
    headers: Optional[Mapping[str, str]] = None,
) -> TransportRequest:
    """把 canonical 请求转换为目标 Provider 的传输请求。"""

    if not request.model:
        raise MalformedRequestError(code="MALFORMED_REQUEST", message="Request is missing 'model'")
    if not request.messages:
        raise MalformedRequestError(code="MALFORMED_REQUEST", message="Request needs at least one message")

    url = provider.base_url + MESSAGES_PATH
    if provider.is_native:
        return TransportRequest(
            method="POST",
            url=url,
            headers=_native_headers(provider, headers),
            body=canonical_body(request),
        )

    body = _dumps(to_openai_body(request))
    logger.info(
        "Payload transformed",
        extra={"extra": {"provider": provider.name, "model": request.model}},
    )
    return TransportRequest(
        method="POST",
        url=rewrite_url(url, provider),
        headers=_openai_headers(provider, headers),
        body=body.encode("utf-8"),
    )


def _native_headers(provider: ProviderConfig, headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    final: Dict[str, str] = {}
    version = NATIVE_API_VERSION
    for key, value in (headers or {}).items():
        low = key.lower()
        if low == "anthropic-version":
            version = value or version
        elif low not in ("x-api-key", "authorization", "host", "content-length", "content-type", "accept"):
            final[key] = value
    final.update({
        "x-api-key": provider.api_key,
        "anthropic-version": version,
        "Content-Type": "application/json",
        "Accept": "application/json",
    })
    final.update(provider.extra_headers)
    return final


def _openai_headers(provider: ProviderConfig, headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    api_key = provider.api_key
    for key, value in (headers or {}).items():
        if key.lower() == "x-api-key" and value:
            api_key = value

    final: Dict[str, str] = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    for key, value in (headers or {}).items():
        low = key.lower()
        if low.startswith("anthropic") or low in STRIPPED_HEADERS:
            continue
        final[key] = value
    final.update(provider.extra_headers)
    return final


def rewrite_url(url: str, provider: ProviderConfig) -> str:
    """把 canonical messages 路径替换为 chat/completions，并按需注入固定路径段。"""

    parsed = httpx.URL(url)
    path = parsed.path
    if not (path.endswith(MESSAGES_PATH) or path.endswith("/messages")):
        return url
    path = re.sub(r"/v1/messages$", CHAT_COMPLETIONS_PATH, path)
    path = re.sub(r"/messages$", CHAT_COMPLETIONS_PATH, path)
    if provider.path_prefix:
        path = _inject_path_prefix(path, provider.path_prefix)
    return str(parsed.copy_with(path=path))


def _inject_path_prefix(path: str, prefix: str) -> str:
    # prefix 形如 /api/paas/v4：首段作为锚点，其余部分插入到锚点之后
    if prefix + "/" in path:
        return path
    anchor = "/" + prefix.strip("/").split("/", 1)[0] + "/"
    if anchor in path:
        return path.replace(anchor, prefix.rstrip("/") + "/", 1)
    return prefix.rstrip("/") + (path if path.startswith("/") else "/" + path)


def to_openai_body(request: ChatRequest) -> Dict[str, Any]:
    """canonical 请求 → OpenAI 风格请求体。"""

    body: Dict[str, Any] = {
        "model": request.model,
        "messages": [],
        "max_tokens": request.max_tokens,
        "stream": request.stream,
        "temperature": request.temperature if request.temperature is not None else 1.0,
    }
    if request.system_prompt:
        body["messages"].append({"role": "system", "content": request.system_prompt})
    for message in request.messages:
        body["messages"].extend(_flatten_message(message))

    if request.tools:
        body["tools"] = [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.input_schema,
                },
            }
            for tool in request.tools
        ]
        body["tool_choice"] = "auto"
    return body


def _flatten_message(message: Message) -> List[Dict[str, Any]]:
    if isinstance(message.content, str):
        return [{"role": message.role, "content": message.content}]

    result: List[Dict[str, Any]] = []
    for block in message.content:
        if isinstance(block, TextBlock):
            result.append({"role": message.role, "content": block.text})
        elif isinstance(block, ToolResultBlock):
            content = block.content if isinstance(block.content, str) else _dumps(block.content)
            result.append({"role": "tool", "tool_call_id": block.tool_use_id, "content": content})
        elif isinstance(block, ToolUseBlock):
            result.append({
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": block.id,
                    "type": "function",
                    "function": {"name": block.name, "arguments": _dumps(block.input)},
                }],
            })
        elif isinstance(block, OtherBlock):
            logger.info(
                "Dropping block with no OpenAI-style equivalent",
                extra={"extra": {"block_type": block.data.get("type")}},
            )
    return result


# ---- 响应适配 ----


def translate_response(raw: TransportResponse, provider: ProviderConfig) -> TransportResponse:
    """把上游原始响应转换为 native wire 形态的响应。

    - native Provider 与非 2xx 响应原样返回；
    - 缺少 choices 结构时返回 400 错误响应，携带上游错误信息；
    - 其余情况合成 canonical 形态的 message。
    """

    if provider.is_native or not raw.ok:
        return raw

    try:
        data = raw.json()
    except ValueError as exc:
        raise UpstreamFormatError(
            code="UNEXPECTED_RESPONSE",
            message=f"Upstream response is not JSON: {exc}",
            provider=provider.name,
        ) from exc

    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        logger.warning(
            "Unexpected response structure",
            extra={"extra": {"provider": provider.name, "body": raw.text[:500]}},
        )
        error = {"type": "api_error", "message": _upstream_error_message(data)}
        return TransportResponse(
            status_code=400,
            body=_dumps({"type": "error", "error": error}).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )

    choice = choices[0]
    message = choice.get("message")
    if not isinstance(message, dict):
        message = {}
    content: List[Dict[str, Any]] = []
    text = _message_text(message.get("content"))
    if text:
        content.append({"type": "text", "text": text})
    for idx, call in enumerate(message.get("tool_calls") or []):
        func = call.get("function") or {}
        content.append({
            "type": "tool_use",
            "id": call.get("id") or f"toolu_{idx}_{uuid4().hex[:8]}",
            "name": func.get("name") or "",
            "input": _parse_arguments(func.get("arguments"), func.get("name")),
        })

    usage = data.get("usage") or {}
    synthesized: Dict[str, Any] = {
        "id": data.get("id") or f"msg_{int(time.time() * 1000)}",
        "type": "message",
        "role": "assistant",
        "model": data.get("model") or provider.default_model,
        "content": content,
        "usage": {
            "input_tokens": usage.get("prompt_tokens") or 0,
            "output_tokens": usage.get("completion_tokens") or 0,
        },
    }
    finish_reason = choice.get("finish_reason")
    if finish_reason:
        synthesized["stop_reason"] = FINISH_REASONS.get(finish_reason, finish_reason)
    return TransportResponse(
        status_code=200,
        body=_dumps(synthesized).encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )


def _message_text(raw: Any) -> str:
    # 部分 Provider 以内容片段列表返回 content
    if raw is None:
        return ""
    if isinstance(raw, list):
        parts = []
        for part in raw:
            if isinstance(part, dict):
                parts.append(str(part.get("text") or ""))
            elif isinstance(part, str):
                parts.append(part)
        return "".join(parts)
    return raw if isinstance(raw, str) else str(raw)


def _upstream_error_message(data: Any) -> str:
    if not isinstance(data, dict):
        return "Upstream response has no choices"
    error = data.get("error")
    if isinstance(error, dict):
        error_msg = error.get("message") or error.get("msg")
    else:
        error_msg = error if isinstance(error, str) else None
    error_msg = data.get("msg") or data.get("message") or error_msg
    if error_msg:
        return str(error_msg)
    if data.get("code") is not None:
        return f"API Error {data['code']}"
    return "Upstream response has no choices"


def _parse_arguments(raw: Any, tool_name: Optional[str]) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise UpstreamFormatError(
            code="BAD_TOOL_ARGUMENTS",
            message=f"Tool call arguments for {tool_name!r} are not valid JSON: {exc}",
            raw_arguments=raw,
        ) from exc
    if not isinstance(parsed, dict):
        raise UpstreamFormatError(
            code="BAD_TOOL_ARGUMENTS",
            message=f"Tool call arguments for {tool_name!r} must be a JSON object",
            raw_arguments=raw,
        )
    return parsed


def raise_for_status(raw: TransportResponse, provider: ProviderConfig) -> None:
    """非 2xx 响应转为异常，原样携带上游状态码与响应体。"""

    if raw.ok:
        return
    message = raw.text
    try:
        data = raw.json()
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            message = data["error"].get("message") or message
    except ValueError:
        pass
    if raw.status_code == 429:
        raise RateLimitError(
            code="RATE_LIMIT",
            message=f"{provider.name} rate limit: {message}",
            http_status=429,
            body=raw.text,
            provider=provider.name,
        )
    raise ApiError(
        code="API_ERROR",
        message=message,
        http_status=raw.status_code,
        body=raw.text,
        provider=provider.name,
    )


def adapt_response(raw: TransportResponse, provider: ProviderConfig) -> ChatResponse:
    """上游原始响应 → ChatResponse；非 2xx 时抛出 ApiError。"""

    translated = translate_response(raw, provider)
    raise_for_status(translated, provider)
    try:
        payload = translated.json()
    except ValueError as exc:
        raise UpstreamFormatError(
            code="UNEXPECTED_RESPONSE",
            message=f"Upstream response is not JSON: {exc}",
            provider=provider.name,
        ) from exc
    return ChatResponse.from_wire(payload)
