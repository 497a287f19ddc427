import pytest

from legal_skill.domain.exceptions import UpstreamFormatError
from legal_skill.domain.models import (
    ChatRequest,
    ChatResponse,
    Message,
    OtherBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)


def test_message_lists_become_tuples():
    msg = Message(role="assistant", content=[TextBlock(text="a"), ToolUseBlock(id="1", name="read_document")])
    assert isinstance(msg.content, tuple)
    assert Message(role="user", content="hi").blocks == (TextBlock(text="hi"),)


def test_request_wire_omits_unset_fields():
    wire = ChatRequest(model="m", messages=[Message(role="user", content="hi")]).to_wire()
    assert wire == {"model": "m", "max_tokens": 8192, "messages": [{"role": "user", "content": "hi"}]}


def test_message_from_wire_keeps_unknown_blocks():
    msg = Message.from_wire({"role": "assistant", "content": [
        {"type": "thinking", "thinking": "hmm"},
        {"type": "tool_result", "tool_use_id": "t", "content": "x", "is_error": True},
    ]})
    assert isinstance(msg.content[0], OtherBlock)
    assert msg.content[1] == ToolResultBlock(tool_use_id="t", content="x", is_error=True)
    assert msg.to_wire()["content"][0] == {"type": "thinking", "thinking": "hmm"}


def test_response_helpers():
    resp = ChatResponse(id="r", model="m", content=(
        TextBlock(text="one"),
        ToolUseBlock(id="t1", name="read_document", input={"path": "a"}),
        TextBlock(text="two"),
    ))
    assert resp.text == "one\ntwo"
    assert resp.has_tool_use
    assert [t.id for t in resp.tool_uses] == ["t1"]


def test_response_without_content_is_rejected():
    with pytest.raises(UpstreamFormatError):
        ChatResponse.from_wire({"type": "error", "error": {"message": "x"}})
