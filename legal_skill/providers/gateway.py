"""Chat Gateway：一次请求 / 响应周期的编排。

send():   解析 Provider → 适配请求 → httpx 传输 → 适配响应 → ChatResponse
stream(): 仅支持 native Provider，上游 SSE 事件原样逐个产出；
          对 OpenAI 风格 Provider 直接拒绝（STREAM_UNSUPPORTED）。

传输超时使用 Settings.http_timeout（默认 300 秒，本地大模型推理较慢）。
"""

import json
import threading
import time
from dataclasses import replace
from typing import Any, Dict, Iterator, Mapping, Optional

import httpx

from legal_skill.config.settings import Settings
from legal_skill.domain.exceptions import MalformedRequestError, NetworkError
from legal_skill.domain.models import ChatRequest, ChatResponse
from legal_skill.infrastructure.logging.logger import logger
from legal_skill.providers.adapter import (
    TransportRequest,
    TransportResponse,
    adapt_request,
    adapt_response,
    raise_for_status,
)
from legal_skill.providers.registry import ProviderConfig, ProviderRegistry


class ChatGateway:
    """provider 无关的 Chat 网关。"""

    def __init__(self, cfg: Settings, registry: Optional[ProviderRegistry] = None):
        self._settings = cfg
        self._registry = registry or ProviderRegistry(cfg)

    @property
    def default_model(self) -> str:
        return self._settings.ai_model

    def resolve(self, model: Optional[str] = None, provider: Optional[str] = None) -> ProviderConfig:
        return self._registry.resolve(provider, model)

    # ---- 非流式 ----

    def send(
        self,
        req: ChatRequest,
        *,
        provider: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ChatResponse:
        provider_cfg = self.resolve(req.model, provider)
        if req.stream:
            req = replace(req, stream=False)
        treq = adapt_request(req, provider_cfg, headers)

        logger.info(
            "Calling model",
            extra={"extra": {"provider": provider_cfg.name, "model": req.model, "url": treq.url}},
        )
        start = time.time()
        raw = self._post(treq, provider_cfg)
        elapsed = round(time.time() - start, 1)
        logger.info(
            "Response received",
            extra={"extra": {
                "provider": provider_cfg.name,
                "status": raw.status_code,
                "elapsed_seconds": elapsed,
            }},
        )
        if not raw.ok:
            logger.error(
                "Upstream error",
                extra={"extra": {"provider": provider_cfg.name, "status": raw.status_code, "body": raw.text[:500]}},
            )
        return adapt_response(raw, provider_cfg)

    # ---- 流式 ----

    def stream(
        self,
        req: ChatRequest,
        *,
        provider: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Iterator[Dict[str, Any]]:
        """逐个产出上游原始流事件；cancel 被置位时中止读取并关闭连接。"""

        provider_cfg = self.resolve(req.model, provider)
        if not provider_cfg.is_native:
            raise MalformedRequestError(
                code="STREAM_UNSUPPORTED",
                message=f"Streaming is only supported for native-compatible providers, not {provider_cfg.name!r}",
                provider=provider_cfg.name,
            )
        treq = adapt_request(replace(req, stream=True), provider_cfg, headers)
        treq = replace(treq, headers={**treq.headers, "Accept": "text/event-stream"})

        logger.info(
            "Calling model (stream)",
            extra={"extra": {"provider": provider_cfg.name, "model": req.model, "url": treq.url}},
        )
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                with client.stream(treq.method, treq.url, content=treq.body, headers=treq.headers) as resp:
                    if resp.status_code >= 400:
                        resp.read()
                        raise_for_status(_to_transport(resp), provider_cfg)
                    for line in resp.iter_lines():
                        if cancel is not None and cancel.is_set():
                            logger.info("Stream cancelled", extra={"extra": {"provider": provider_cfg.name}})
                            return
                        event = _parse_sse_line(line)
                        if event is not None:
                            yield event
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e), provider=provider_cfg.name) from e

    # ---- 辅助方法 ----

    def _post(self, treq: TransportRequest, provider_cfg: ProviderConfig) -> TransportResponse:
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(treq.url, content=treq.body, headers=treq.headers)
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e), provider=provider_cfg.name) from e
        return _to_transport(resp)


def _to_transport(resp: Any) -> TransportResponse:
    return TransportResponse(
        status_code=resp.status_code,
        body=resp.content,
        headers=dict(getattr(resp, "headers", None) or {}),
    )


def _parse_sse_line(line: str) -> Optional[Dict[str, Any]]:
    # 只关心 data: 行；event: 行与事件体中的 type 字段冗余
    if not line or not line.startswith("data:"):
        return None
    data_str = line[5:].strip()
    if not data_str or data_str == "[DONE]":
        return None
    try:
        return json.loads(data_str)
    except json.JSONDecodeError:
        logger.warning("Skipping malformed stream event", extra={"extra": {"line": line[:200]}})
        return None
