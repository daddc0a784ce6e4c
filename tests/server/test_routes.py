"""Tests for the tradeassist HTTP API."""

import json

import pytest
from fastapi.testclient import TestClient

from tradeassist.llm.client import FunctionCall
from tradeassist.ratelimit.limiter import RateLimitPolicy
from tradeassist.server.app import create_app


def _frames(response) -> list:
    """Decode the ``data:`` lines of an SSE response body."""
    frames = []
    for line in response.text.splitlines():
        if not line.startswith("data:"):
            continue
        data = line[len("data:") :].strip()
        frames.append(data if data == "[DONE]" else json.loads(data))
    return frames


@pytest.fixture
def make_client(test_config, make_orchestrator):
    def _make(backend, **kwargs) -> TestClient:
        app = create_app(test_config, orchestrator=make_orchestrator(backend, **kwargs))
        return TestClient(app)

    return _make


def test_health(make_client, stub):
    with make_client(stub()) as client:
        response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["model"] == "qwen2.5:7b"
    assert "version" in data


def test_chat_streams_frames(make_client, stub):
    call = FunctionCall(id="c1", name="search_products", arguments={"query": "HDPE"})
    backend = stub([stub.calls(call), stub.text("Two grades", " are available.")])

    with make_client(backend) as client:
        response = client.post(
            "/chat", json={"message": "HDPE?", "sessionId": "s-web", "locale": "en"}
        )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["x-session-id"] == "s-web"

    frames = _frames(response)
    assert frames[0]["type"] == "visual"
    assert frames[1:] == [{"text": "Two grades"}, {"text": " are available."}, "[DONE]"]


def test_chat_generates_session_id(make_client, stub):
    with make_client(stub([stub.text("Hi")])) as client:
        response = client.post("/chat", json={"message": "hello"})

    assert response.headers["x-session-id"].startswith("session_")
    assert _frames(response) == [{"text": "Hi"}, "[DONE]"]


def test_chat_error_frame_ends_stream(make_client, stub):
    backend = stub([[RuntimeError("model crashed")]])

    with make_client(backend) as client:
        response = client.post("/chat", json={"message": "hello", "locale": "ar"})

    assert response.status_code == 200
    assert _frames(response) == [{"error": "حدث خطأ أثناء معالجة الرسالة"}]


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"message": ""},
        {"message": "x" * 4001},
        {"message": "hi", "locale": "fr"},
        {"message": "hi", "cartItems": [{"quantity": 0}]},
    ],
)
def test_chat_rejects_invalid_body(make_client, stub, body):
    backend = stub()
    with make_client(backend) as client:
        response = client.post("/chat", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"
    assert response.json()["code"] == "invalid_request"
    assert response.json()["details"]
    assert backend.requests == []


def test_chat_rate_limited(make_client, stub):
    policies = [RateLimitPolicy(name="chat-minute", limit=1, window_ms=60_000)]
    backend = stub([stub.text("first")])

    with make_client(backend, policies=policies) as client:
        first = client.post("/chat", json={"message": "one", "locale": "en"})
        second = client.post("/chat", json={"message": "two", "locale": "en"})
        other = client.post(
            "/chat", json={"message": "three"}, headers={"X-Forwarded-For": "198.51.100.2"}
        )

    assert first.status_code == 200
    assert second.status_code == 429
    assert second.headers["retry-after"] == "60"
    body = second.json()
    assert body["code"] == "quota_exceeded"
    assert body["limiter"] == "chat-minute"
    assert body["error"] == "Too many messages. Please try again later"
    assert other.status_code == 200


def test_conversation_history(make_client, stub):
    with make_client(stub([stub.text("Hello there")])) as client:
        client.post("/chat", json={"message": "hi", "sessionId": "s-hist", "locale": "en"})
        response = client.get("/conversations/s-hist")

    assert response.status_code == 200
    data = response.json()
    assert data["sessionId"] == "s-hist"
    assert data["status"] == "active"
    assert data["title"] == "hi"
    assert [(m["role"], m["content"]) for m in data["messages"]] == [
        ("user", "hi"),
        ("assistant", "Hello there"),
    ]


def test_conversation_history_limit(make_client, stub):
    backend = stub([stub.text("one"), stub.text("two")])
    with make_client(backend) as client:
        client.post("/chat", json={"message": "a", "sessionId": "s-lim"})
        client.post("/chat", json={"message": "b", "sessionId": "s-lim"})
        response = client.get("/conversations/s-lim", params={"limit": 2})

    assert [m["content"] for m in response.json()["messages"]] == ["b", "two"]


def test_function_messages_in_history(make_client, stub):
    call = FunctionCall(id="c1", name="get_shipping_info", arguments={"governorate": "Giza"})
    backend = stub([stub.calls(call), stub.text("Delivery takes 1-2 days.")])

    with make_client(backend) as client:
        client.post("/chat", json={"message": "ship?", "sessionId": "s-fn", "locale": "en"})
        messages = client.get("/conversations/s-fn").json()["messages"]

    assert [m["role"] for m in messages] == ["user", "assistant", "function", "assistant"]
    assert messages[1]["functionCalls"] == [
        {"id": "c1", "name": "get_shipping_info", "arguments": {"governorate": "Giza"}}
    ]
    assert messages[2]["name"] == "get_shipping_info"
    assert messages[2]["callId"] == "c1"


def test_unknown_conversation_is_404(make_client, stub):
    with make_client(stub()) as client:
        history = client.get("/conversations/nope")
        archive = client.post("/conversations/nope/archive")

    assert history.status_code == 404
    assert history.json()["code"] == "not_found"
    assert archive.status_code == 404


def test_archive_and_customer_listing(make_client, stub):
    backend = stub([stub.text("a"), stub.text("b")])
    with make_client(backend) as client:
        client.post("/chat", json={"message": "first", "sessionId": "s-a", "customerId": "cust-9"})
        client.post("/chat", json={"message": "second", "sessionId": "s-b", "customerId": "cust-9"})

        listed = client.get("/customers/cust-9/conversations").json()
        archived = client.post("/conversations/s-a/archive").json()
        after = client.get("/customers/cust-9/conversations").json()

    assert listed["customerId"] == "cust-9"
    assert {c["sessionId"] for c in listed["conversations"]} == {"s-a", "s-b"}
    assert archived["status"] == "archived"
    assert archived["sessionId"] == "s-a"
    assert [c["sessionId"] for c in after["conversations"]] == ["s-b"]
