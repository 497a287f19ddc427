"""统一的对话与结果数据模型（canonical protocol）。

本模块定义了 Agent 循环与 Chat Gateway 唯一使用的标准数据结构：

- ContentBlock: TextBlock / ToolUseBlock / ToolResultBlock 三种内容块。
- Message: 一条对话消息，content 为纯文本或内容块序列。
- ToolSpec: 工具声明（name / description / input_schema）。
- ChatRequest: 发给 Gateway 的完整请求，构造后不可变。
- ChatResponse: 从上游解析后的统一响应结果，构造后不可变。

这些结构的 wire 形态即 native-compatible Provider 直接接受的 JSON，
to_wire / from_wire 负责两者之间的转换；OpenAI 风格 Provider 的
转换由 providers.adapter 负责。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from legal_skill.domain.exceptions import UpstreamFormatError


# 消息角色（与 native wire 格式的 role 字段对应）
Role = Literal["user", "assistant", "system", "tool"]


@dataclass(frozen=True)
class TextBlock:
    """纯文本内容块。"""

    text: str

    def to_wire(self) -> Dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolUseBlock:
    """模型提出的一次工具调用。"""

    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


@dataclass(frozen=True)
class ToolResultBlock:
    """调用方回传的工具结果，通过 tool_use_id 与 ToolUseBlock 关联。

    content 通常是字符串；也可以是结构化对象（适配到 OpenAI 风格时会被 JSON 序列化）。
    """

    tool_use_id: str
    content: Any
    is_error: bool = False

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": self.content,
        }
        if self.is_error:
            payload["is_error"] = True
        return payload


@dataclass(frozen=True)
class OtherBlock:
    """上游返回的其它类型内容块（如 thinking），原样保留。"""

    data: Dict[str, Any]

    def to_wire(self) -> Dict[str, Any]:
        return dict(self.data)


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock, OtherBlock]


def block_from_wire(payload: Dict[str, Any]) -> ContentBlock:
    """把 native wire 格式的内容块解析为 ContentBlock。"""

    if not isinstance(payload, dict):
        raise UpstreamFormatError(code="BAD_CONTENT_BLOCK", message=f"Content block is not an object: {payload!r}")
    kind = payload.get("type")
    if kind == "text":
        return TextBlock(text=payload.get("text") or "")
    if kind == "tool_use":
        return ToolUseBlock(
            id=str(payload.get("id") or ""),
            name=str(payload.get("name") or ""),
            input=payload.get("input") or {},
        )
    if kind == "tool_result":
        return ToolResultBlock(
            tool_use_id=str(payload.get("tool_use_id") or ""),
            content=payload.get("content", ""),
            is_error=bool(payload.get("is_error", False)),
        )
    return OtherBlock(data=dict(payload))


@dataclass(frozen=True)
class Message:
    """一条对话消息。

    - role: user / assistant / system / tool。
    - content: 纯文本，或内容块序列（列表会被转换为 tuple 以保持不可变）。
    """

    role: Role
    content: Union[str, Tuple[ContentBlock, ...]]

    def __post_init__(self) -> None:
        if isinstance(self.content, list):
            object.__setattr__(self, "content", tuple(self.content))

    @property
    def blocks(self) -> Tuple[ContentBlock, ...]:
        if isinstance(self.content, str):
            return (TextBlock(text=self.content),)
        return self.content

    def to_wire(self) -> Dict[str, Any]:
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        return {"role": self.role, "content": [b.to_wire() for b in self.content]}

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> "Message":
        content = payload.get("content", "")
        if isinstance(content, list):
            content = tuple(block_from_wire(b) for b in content)
        return cls(role=payload.get("role", "user"), content=content)


@dataclass(frozen=True)
class ToolSpec:
    """可供模型调用的工具声明，input_schema 为 JSON Schema 对象。"""

    name: str
    description: str
    input_schema: Dict[str, Any]

    def to_wire(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "input_schema": self.input_schema}


@dataclass(frozen=True)
class ChatRequest:
    """一次完整的聊天请求，一个请求对应一次传输调用。"""

    model: str
    messages: Tuple[Message, ...]
    system_prompt: Optional[str] = None
    tools: Tuple[ToolSpec, ...] = ()
    max_tokens: int = 8192
    temperature: Optional[float] = None
    stream: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "messages", tuple(self.messages or ()))
        object.__setattr__(self, "tools", tuple(self.tools or ()))

    def to_wire(self) -> Dict[str, Any]:
        """生成 native wire 格式的请求体。"""

        body: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [m.to_wire() for m in self.messages],
        }
        if self.system_prompt:
            body["system"] = self.system_prompt
        if self.tools:
            body["tools"] = [t.to_wire() for t in self.tools]
        if self.temperature is not None:
            body["temperature"] = self.temperature
        if self.stream:
            body["stream"] = True
        return body


@dataclass(frozen=True)
class Usage:
    """token 统计信息。"""

    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class ChatResponse:
    """一次对话调用的统一结果。

    - id / model: 上游返回的标识（缺失时由适配层补齐）。
    - content: 内容块序列（文本与工具调用）。
    - usage: token 使用统计。
    - stop_reason: 上游给出的结束原因（可能为空）。
    """

    id: str
    model: str
    content: Tuple[ContentBlock, ...]
    usage: Usage = field(default_factory=Usage)
    role: Literal["assistant"] = "assistant"
    stop_reason: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "content", tuple(self.content))

    @property
    def text(self) -> str:
        """所有文本块按换行拼接。"""

        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_uses(self) -> List[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    @property
    def has_tool_use(self) -> bool:
        return any(isinstance(b, ToolUseBlock) for b in self.content)

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "type": "message",
            "role": self.role,
            "model": self.model,
            "content": [b.to_wire() for b in self.content],
            "usage": {
                "input_tokens": self.usage.input_tokens,
                "output_tokens": self.usage.output_tokens,
            },
        }
        if self.stop_reason is not None:
            payload["stop_reason"] = self.stop_reason
        return payload

    @classmethod
    def from_wire(cls, payload: Any) -> "ChatResponse":
        if not isinstance(payload, dict) or not isinstance(payload.get("content"), list):
            raise UpstreamFormatError(
                code="UNEXPECTED_RESPONSE",
                message="Response body has no content list",
                body=payload,
            )
        usage_raw = payload.get("usage") or {}
        return cls(
            id=str(payload.get("id") or ""),
            model=str(payload.get("model") or ""),
            content=tuple(block_from_wire(b) for b in payload["content"]),
            usage=Usage(
                input_tokens=int(usage_raw.get("input_tokens") or 0),
                output_tokens=int(usage_raw.get("output_tokens") or 0),
            ),
            stop_reason=payload.get("stop_reason"),
        )
