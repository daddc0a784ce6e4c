"""Tests for the OpenAI-compatible streaming backend and its factory."""

import json

import pytest
import respx
from httpx import Response

from tradeassist.config.schema import TradeAssistConfig
from tradeassist.errors import GenerationStreamError
from tradeassist.llm.client import FunctionCall, Message
from tradeassist.llm.factory import create_backend
from tradeassist.llm.openai_compat import OpenAICompatibleBackend

BASE_URL = "http://gpu:8000/v1"
COMPLETIONS_URL = f"{BASE_URL}/chat/completions"

# -- Helpers -----------------------------------------------------------------


def _chunk(delta: dict, finish_reason: str | None = None) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 1677652288,
        "model": "test-model",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


def _sse(*chunks: dict) -> Response:
    body = "".join(f"data: {json.dumps(c)}\n\n" for c in chunks) + "data: [DONE]\n\n"
    return Response(200, content=body, headers={"content-type": "text/event-stream"})


async def _collect(backend, messages, tools=None, system=""):
    return [event async for event in backend.stream(messages, tools, system)]


@pytest.fixture
def backend() -> OpenAICompatibleBackend:
    return OpenAICompatibleBackend(model="test-model", base_url=BASE_URL, max_tokens=256)


# -- Streaming ---------------------------------------------------------------


@pytest.mark.asyncio
@respx.mock
async def test_text_deltas_stream_in_order(backend):
    route = respx.post(COMPLETIONS_URL).mock(
        return_value=_sse(
            _chunk({"role": "assistant", "content": "Hel"}),
            _chunk({"content": "lo"}),
            _chunk({}, "stop"),
        )
    )

    events = await _collect(backend, [Message(role="user", content="hi")], system="Be brief")

    assert [e.text for e in events if e.text] == ["Hel", "lo"]
    assert events[-1].finish_reason == "stop"
    assert events[-1].function_calls is None

    payload = json.loads(route.calls.last.request.content)
    assert payload["stream"] is True
    assert payload["max_tokens"] == 256
    assert payload["messages"][0] == {"role": "system", "content": "Be brief"}
    assert "tools" not in payload


@pytest.mark.asyncio
@respx.mock
async def test_tool_call_deltas_are_assembled(backend):
    route = respx.post(COMPLETIONS_URL).mock(
        return_value=_sse(
            _chunk(
                {
                    "tool_calls": [
                        {
                            "index": 0,
                            "id": "call_1",
                            "type": "function",
                            "function": {"name": "check_stock", "arguments": '{"product_ids":'},
                        }
                    ]
                }
            ),
            _chunk({"tool_calls": [{"index": 0, "function": {"arguments": ' ["PP-25"]}'}}]}),
            _chunk(
                {
                    "tool_calls": [
                        {
                            "index": 1,
                            "id": "call_2",
                            "type": "function",
                            "function": {"name": "get_cart_items", "arguments": ""},
                        }
                    ]
                }
            ),
            _chunk({}, "tool_calls"),
        )
    )
    tools = [{"type": "function", "function": {"name": "check_stock", "parameters": {}}}]

    events = await _collect(backend, [Message(role="user", content="stock?")], tools=tools)

    assert events[-1].finish_reason == "tool_calls"
    assert events[-1].function_calls == [
        FunctionCall(id="call_1", name="check_stock", arguments={"product_ids": ["PP-25"]}),
        FunctionCall(id="call_2", name="get_cart_items", arguments={}),
    ]

    payload = json.loads(route.calls.last.request.content)
    assert payload["tools"] == tools
    assert payload["tool_choice"] == "auto"


@pytest.mark.asyncio
@respx.mock
async def test_malformed_arguments_become_empty(backend):
    respx.post(COMPLETIONS_URL).mock(
        return_value=_sse(
            _chunk(
                {
                    "tool_calls": [
                        {
                            "index": 0,
                            "id": "call_1",
                            "type": "function",
                            "function": {"name": "search_products", "arguments": "{not json"},
                        }
                    ]
                }
            ),
            _chunk({}, "tool_calls"),
        )
    )

    events = await _collect(backend, [Message(role="user", content="x")])

    assert events[-1].function_calls == [
        FunctionCall(id="call_1", name="search_products", arguments={})
    ]


@pytest.mark.asyncio
@respx.mock
async def test_rejected_request_raises_stream_error(backend):
    respx.post(COMPLETIONS_URL).mock(
        return_value=Response(400, json={"error": {"message": "bad request"}})
    )

    with pytest.raises(GenerationStreamError) as exc_info:
        await _collect(backend, [Message(role="user", content="x")])

    assert exc_info.value.status_code == 502


# -- Message conversion --------------------------------------------------------


def test_convert_messages_maps_function_results(backend):
    call = FunctionCall(id="c1", name="check_stock", arguments={"product_ids": ["PP-25"]})
    messages = [
        Message(role="user", content="stock?"),
        Message(role="assistant", content="", function_calls=[call]),
        Message(role="function", content='{"success": true}', call_id="c1", name="check_stock"),
        Message(role="function", content="orphan", call_id="c9", name="check_stock"),
    ]

    converted = backend._convert_messages(messages, "")

    assert [m["role"] for m in converted] == ["user", "assistant", "tool"]
    assert converted[1]["tool_calls"][0]["function"] == {
        "name": "check_stock",
        "arguments": '{"product_ids": ["PP-25"]}',
    }
    assert converted[2] == {"role": "tool", "tool_call_id": "c1", "content": '{"success": true}'}


def test_convert_messages_drops_unanswered_tool_calls(backend):
    lost = FunctionCall(id="c1", name="search_products", arguments={"query": "HDPE"})
    partial = [
        FunctionCall(id="c2", name="check_stock", arguments={"product_ids": ["PP-25"]}),
        FunctionCall(id="c3", name="get_product_details", arguments={"product_id": "PP-25"}),
    ]
    messages = [
        Message(role="user", content="HDPE?"),
        Message(role="assistant", content="", function_calls=[lost]),
        Message(role="assistant", content="Checking", function_calls=partial),
        Message(role="function", content='{"stock": 4}', call_id="c2", name="check_stock"),
        Message(role="user", content="and PP?"),
    ]

    converted = backend._convert_messages(messages, "")

    assert converted == [
        {"role": "user", "content": "HDPE?"},
        {"role": "assistant", "content": "Checking"},
        {"role": "user", "content": "and PP?"},
    ]


# -- Factory -------------------------------------------------------------------


def test_create_backend_for_ollama():
    config = TradeAssistConfig()

    backend = create_backend(config)

    assert isinstance(backend, OpenAICompatibleBackend)
    assert backend.model == "qwen2.5:7b"
    assert str(backend.client.base_url).rstrip("/") == "http://localhost:11434/v1"


def test_create_backend_for_vllm():
    config = TradeAssistConfig()
    config.inference.backend = "vllm"
    config.inference.base_url = "http://gpu:8000/"

    backend = create_backend(config)

    assert str(backend.client.base_url).rstrip("/") == "http://gpu:8000/v1"


def test_create_backend_openai_requires_key():
    config = TradeAssistConfig()
    config.inference.backend = "openai"
    config.inference.base_url = "https://api.openai.com/v1"

    with pytest.raises(ValueError, match="api_key"):
        create_backend(config)

    config.inference.api_key = "sk-test"
    backend = create_backend(config)
    assert str(backend.client.base_url).rstrip("/") == "https://api.openai.com/v1"
