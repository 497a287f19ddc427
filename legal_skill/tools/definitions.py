"""工具数据结构定义。

这些 dataclass 描述了“工具调用”的 schema，既用于：
- 将可用工具列表暴露给 LLM（ToolDef / ToolParam → ToolSpec）。
- 在 Agent 循环中传递工具执行结果（ToolOutcome）。

ToolOutcome 是工具结果的显式信封：执行器只在边界处编码 / 解码一次，
Agent 循环拿到的是类型化对象，回传给模型的是它的 JSON 字符串。
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from legal_skill.domain.models import ToolSpec


@dataclass
class ToolParam:
    """单个工具参数的定义。"""

    name: str
    description: str
    required: bool
    schema: Dict[str, Any]


@dataclass
class ToolDef:
    """一个可供 LLM 调用的工具定义。"""

    name: str
    description: str
    params: Dict[str, ToolParam]

    def to_spec(self) -> ToolSpec:
        properties: Dict[str, Any] = {}
        required: List[str] = []
        for name, param in self.params.items():
            schema = param.schema or {"type": "string"}
            if param.description:
                schema = {**schema, "description": param.description}
            properties[name] = schema
            if param.required:
                required.append(name)
        return ToolSpec(
            name=self.name,
            description=self.description,
            input_schema={"type": "object", "properties": properties, "required": required},
        )


@dataclass
class ToolOutcome:
    """工具执行结果信封。

    - success: 是否成功。
    - text / page_count: read_document 的文档文本与页数。
    - error: 失败原因（success=False 时）。
    - data: 其它工具的结构化字段（如 list_documents 的 documents）。
    """

    success: bool
    text: Optional[str] = None
    page_count: Optional[int] = None
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str) -> "ToolOutcome":
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error or "Unknown error"}
        payload: Dict[str, Any] = {"success": True}
        if self.text is not None:
            payload["text"] = self.text
        if self.page_count is not None:
            payload["pageCount"] = self.page_count
        payload.update(self.data)
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "ToolOutcome":
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            return cls.failure(f"Tool returned invalid JSON: {exc}")
        if not isinstance(payload, dict):
            return cls.failure("Tool returned a non-object result")
        data = {k: v for k, v in payload.items() if k not in ("success", "text", "pageCount", "error")}
        return cls(
            success=bool(payload.get("success")),
            text=payload.get("text"),
            page_count=payload.get("pageCount"),
            error=payload.get("error"),
            data=data,
        )
