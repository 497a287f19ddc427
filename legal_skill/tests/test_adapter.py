import json

import pytest

from legal_skill.domain.exceptions import ApiError, MalformedRequestError, RateLimitError, UpstreamFormatError
from legal_skill.domain.models import (
    ChatRequest,
    Message,
    TextBlock,
    ToolResultBlock,
    ToolSpec,
    ToolUseBlock,
)
from legal_skill.providers.adapter import (
    TransportResponse,
    adapt_request,
    adapt_response,
    canonical_body,
    rewrite_url,
    translate_response,
)
from legal_skill.providers.registry import ProviderConfig


NATIVE = ProviderConfig(name="anthropic", family="native", base_url="https://api.anthropic.com",
                        api_key="sk-ant", default_model="claude-sonnet-4-5")
OPENAI = ProviderConfig(name="openai", family="openai", base_url="https://api.openai.com/v1",
                        api_key="sk-openai", default_model="gpt-4o-mini")
GLM = ProviderConfig(name="glm", family="openai", base_url="https://open.bigmodel.cn/api",
                     api_key="g", default_model="glm-4.6", path_prefix="/api/paas/v4")
OPENROUTER = ProviderConfig(name="openrouter", family="openai", base_url="https://openrouter.ai/api/v1",
                            api_key="or", default_model="openrouter/auto",
                            extra_headers={"HTTP-Referer": "https://example.com", "X-Title": "Legal Skill"})

READ_TOOL = ToolSpec(
    name="read_document",
    description="Read a document",
    input_schema={"type": "object", "properties": {"path": {"type": "string"}}, "required": ["path"]},
)


def _tool_request():
    return ChatRequest(
        model="gpt-4o",
        system_prompt="You are a reviewer.",
        messages=(
            Message(role="user", content="Review /tmp/a.pdf"),
            Message(role="assistant", content=(
                TextBlock(text="Reading the file."),
                ToolUseBlock(id="call_1", name="read_document", input={"path": "/tmp/a.pdf"}),
            )),
            Message(role="user", content=(
                ToolResultBlock(tool_use_id="call_1", content='{"success":true,"text":"hello"}'),
            )),
        ),
        tools=(READ_TOOL,),
    )


def _json_response(payload, status=200):
    return TransportResponse(status_code=status, body=json.dumps(payload).encode("utf-8"))


def test_native_body_is_byte_identical():
    req = _tool_request()
    treq = adapt_request(req, NATIVE)
    assert treq.body == canonical_body(req)
    assert treq.url == "https://api.anthropic.com/v1/messages"
    assert treq.headers["x-api-key"] == "sk-ant"
    assert treq.headers["anthropic-version"] == "2023-06-01"
    assert "Authorization" not in treq.headers


def test_native_request_overrides_caller_credentials():
    treq = adapt_request(_tool_request(), NATIVE, {"x-api-key": "caller", "X-Trace": "t1"})
    assert treq.headers["x-api-key"] == "sk-ant"
    assert treq.headers["X-Trace"] == "t1"


def test_openai_translation_of_history():
    body = adapt_request(_tool_request(), OPENAI).json()
    msgs = body["messages"]
    assert msgs[0] == {"role": "system", "content": "You are a reviewer."}
    assert msgs[1] == {"role": "user", "content": "Review /tmp/a.pdf"}
    assert msgs[2] == {"role": "assistant", "content": "Reading the file."}
    call = msgs[3]
    assert call["role"] == "assistant" and call["content"] is None
    assert call["tool_calls"][0]["id"] == "call_1"
    assert call["tool_calls"][0]["function"]["name"] == "read_document"
    assert json.loads(call["tool_calls"][0]["function"]["arguments"]) == {"path": "/tmp/a.pdf"}
    assert msgs[4] == {"role": "tool", "tool_call_id": "call_1", "content": '{"success":true,"text":"hello"}'}
    assert body["tools"][0]["type"] == "function"
    assert body["tools"][0]["function"]["parameters"] == READ_TOOL.input_schema
    assert body["tool_choice"] == "auto"
    assert body["stream"] is False


def test_structured_tool_result_is_stringified():
    req = ChatRequest(
        model="gpt-4o",
        messages=(Message(role="user", content=(ToolResultBlock(tool_use_id="x", content={"success": False}),)),),
    )
    msg = adapt_request(req, OPENAI).json()["messages"][0]
    assert msg["role"] == "tool"
    assert msg["tool_call_id"] == "x"
    assert json.loads(msg["content"]) == {"success": False}


def test_no_tools_means_no_tool_choice():
    req = ChatRequest(model="gpt-4o", messages=(Message(role="user", content="hi"),))
    body = adapt_request(req, OPENAI).json()
    assert "tools" not in body and "tool_choice" not in body


def test_openai_headers_strip_native_headers():
    treq = adapt_request(
        _tool_request(),
        OPENROUTER,
        {"anthropic-version": "2023-06-01", "anthropic-beta": "x", "X-Trace": "t1"},
    )
    assert treq.headers["Authorization"] == "Bearer or"
    assert treq.headers["HTTP-Referer"] == "https://example.com"
    assert treq.headers["X-Trace"] == "t1"
    assert not any(k.lower().startswith("anthropic") for k in treq.headers)
    assert treq.url == "https://openrouter.ai/api/v1/chat/completions"


def test_caller_api_key_becomes_bearer():
    treq = adapt_request(_tool_request(), OPENAI, {"x-api-key": "from-caller"})
    assert treq.headers["Authorization"] == "Bearer from-caller"
    assert "x-api-key" not in treq.headers


def test_url_rewrite_injects_glm_prefix():
    assert adapt_request(_tool_request(), GLM).url == "https://open.bigmodel.cn/api/paas/v4/chat/completions"
    assert rewrite_url("https://api.openai.com/v1/messages", OPENAI) == "https://api.openai.com/chat/completions"
    assert adapt_request(_tool_request(), OPENAI).url == "https://api.openai.com/v1/chat/completions"


def test_missing_model_or_messages_fails_fast():
    with pytest.raises(MalformedRequestError):
        adapt_request(ChatRequest(model="", messages=(Message(role="user", content="hi"),)), OPENAI)
    with pytest.raises(MalformedRequestError):
        adapt_request(ChatRequest(model="gpt-4o", messages=()), NATIVE)


def test_tool_calls_become_tool_use_blocks():
    raw = _json_response({
        "id": "chatcmpl-1",
        "model": "gpt-4o",
        "choices": [{
            "message": {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {"id": "c1", "type": "function", "function": {"name": "read_document", "arguments": '{"path": "a.pdf"}'}},
                    {"id": "c2", "type": "function", "function": {"name": "get_document_info", "arguments": '{"path": "b.md"}'}},
                ],
            },
            "finish_reason": "tool_calls",
        }],
        "usage": {"prompt_tokens": 12, "completion_tokens": 7},
    })
    resp = adapt_response(raw, OPENAI)
    assert [b.id for b in resp.tool_uses] == ["c1", "c2"]
    assert resp.tool_uses[0].input == {"path": "a.pdf"}
    assert resp.tool_uses[1].input == {"path": "b.md"}
    assert resp.usage.input_tokens == 12 and resp.usage.output_tokens == 7
    assert resp.stop_reason == "tool_use"
    assert resp.text == ""


def test_text_round_trip():
    req = ChatRequest(model="gpt-4o", messages=(Message(role="user", content="Say hi"),))
    assert adapt_request(req, OPENAI).json()["messages"] == [{"role": "user", "content": "Say hi"}]
    raw = _json_response({"choices": [{"message": {"role": "assistant", "content": "hi there"}}]})
    resp = adapt_response(raw, OPENAI)
    assert resp.content == (TextBlock(text="hi there"),)
    assert resp.id.startswith("msg_")
    assert resp.model == "gpt-4o-mini"
    assert resp.usage.input_tokens == 0


def test_bad_tool_arguments_raise():
    raw = _json_response({"choices": [{"message": {"tool_calls": [
        {"id": "c1", "function": {"name": "read_document", "arguments": "{not json"}},
    ]}}]})
    with pytest.raises(UpstreamFormatError) as exc:
        adapt_response(raw, OPENAI)
    assert exc.value.code == "BAD_TOOL_ARGUMENTS"


def test_missing_choices_becomes_400_with_upstream_message():
    raw = _json_response({"code": 1214, "msg": "model not found"})
    translated = translate_response(raw, GLM)
    assert translated.status_code == 400
    assert translated.json() == {"type": "error", "error": {"type": "api_error", "message": "model not found"}}
    with pytest.raises(ApiError) as exc:
        adapt_response(raw, GLM)
    assert exc.value.http_status == 400


def test_missing_choices_uses_code_based_message():
    translated = translate_response(_json_response({"code": 500}), OPENAI)
    assert translated.json()["error"]["message"] == "API Error 500"


def test_error_responses_pass_through_untranslated():
    raw = TransportResponse(status_code=503, body=b'{"error":{"message":"overloaded"}}')
    assert translate_response(raw, OPENAI) is raw
    with pytest.raises(ApiError) as exc:
        adapt_response(raw, OPENAI)
    assert exc.value.http_status == 503
    assert exc.value.body == '{"error":{"message":"overloaded"}}'
    assert exc.value.message == "overloaded"


def test_rate_limit_error():
    raw = TransportResponse(status_code=429, body=b"slow down")
    with pytest.raises(RateLimitError):
        adapt_response(raw, NATIVE)


def test_native_response_passes_through():
    payload = {
        "id": "msg_1",
        "type": "message",
        "role": "assistant",
        "model": "claude-sonnet-4-5",
        "content": [{"type": "text", "text": "ok"}],
        "usage": {"input_tokens": 3, "output_tokens": 1},
        "stop_reason": "end_turn",
    }
    raw = _json_response(payload)
    assert translate_response(raw, NATIVE) is raw
    resp = adapt_response(raw, NATIVE)
    assert resp.to_wire() == payload


def test_non_list_choices_becomes_400():
    translated = translate_response(_json_response({"choices": {"0": {"message": {}}}}), OPENAI)
    assert translated.status_code == 400
    assert translated.json()["type"] == "error"
    with pytest.raises(ApiError):
        adapt_response(_json_response({"choices": ["oops"]}), OPENAI)


def test_content_parts_are_joined_into_text():
    raw = _json_response({"choices": [{"message": {"role": "assistant", "content": [
        {"type": "text", "text": "Clause 4 "},
        {"type": "text", "text": "is RED."},
    ]}}]})
    resp = adapt_response(raw, OPENAI)
    assert resp.text == "Clause 4 is RED."
    assert resp.content == (TextBlock(text="Clause 4 is RED."),)


def test_native_version_header_is_case_insensitive():
    treq = adapt_request(_tool_request(), NATIVE, {"Anthropic-Version": "2024-01-01", "X-API-KEY": "caller"})
    version_keys = [k for k in treq.headers if k.lower() == "anthropic-version"]
    assert version_keys == ["anthropic-version"]
    assert treq.headers["anthropic-version"] == "2024-01-01"
    assert [k for k in treq.headers if k.lower() == "x-api-key"] == ["x-api-key"]
