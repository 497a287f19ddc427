"""Chat 客户端抽象接口。

上层 Agent 循环不直接依赖具体 Provider 或 HTTP 细节，而是依赖此协议：

- send(req): 一次非流式调用，返回统一的 ChatResponse。
- stream(req): 流式调用，逐个产出上游原始事件（仅 native Provider 支持）。

ChatGateway 是唯一的生产实现；测试中可以用脚本化的假客户端替换。
"""

from typing import Any, Dict, Iterator, Mapping, Optional, Protocol

from legal_skill.domain.models import ChatRequest, ChatResponse


class ChatClient(Protocol):
    def send(
        self,
        req: ChatRequest,
        *,
        provider: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ChatResponse:
        ...

    def stream(
        self,
        req: ChatRequest,
        *,
        provider: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Iterator[Dict[str, Any]]:
        ...
