"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Chat 客户端抽象接口 (base)。
- 维护 Provider 连接配置与按模型名路由 (registry)。
- canonical 协议与各家 wire 格式之间的转换 (adapter)。
- 编排一次完整的请求 / 响应周期 (gateway)。
"""

from typing import Optional

from legal_skill.config.settings import Settings, settings
from legal_skill.providers.base import ChatClient
from legal_skill.providers.gateway import ChatGateway
from legal_skill.providers.registry import ProviderConfig, ProviderRegistry


def create_gateway(cfg: Optional[Settings] = None) -> ChatGateway:
    """根据配置创建 ChatGateway，默认使用模块级 settings。"""

    return ChatGateway(cfg or settings)


__all__ = ["ChatClient", "ChatGateway", "ProviderConfig", "ProviderRegistry", "create_gateway"]
