import json

import pytest
from conftest import (
    SAMPLE_ORDER,
    SAMPLE_PRODUCT,
    FakeCommerceStore,
    ScriptedInferenceProvider,
    build_assistant,
)
from fastapi.testclient import TestClient

from shop_assistant.obs.tracing import TraceStore
from shop_assistant.orchestration.router import ROUTER_SYSTEM_PROMPT


@pytest.fixture
def api_module(tmp_path, monkeypatch):
    monkeypatch.setenv("SHOP_DB_PATH", str(tmp_path / "shop.db"))
    from shop_assistant.api import main

    return main


def _routing_responder(system_prompt: str, user_message: str) -> str:
    if system_prompt == ROUTER_SYSTEM_PROMPT:
        if "đơn hàng" in user_message:
            return json.dumps({"needsOrderInfo": True})
        return json.dumps({"needsProductInfo": True})
    return f"Trả lời: {user_message}"


def test_chat_traces_metrics(api_module, gateway, embedder, vector_store) -> None:
    assistant, trace_store = build_assistant(
        gateway=gateway,
        embedder=embedder,
        vector_store=vector_store,
        provider=ScriptedInferenceProvider(responder=_routing_responder),
        commerce=FakeCommerceStore(orders={42: [SAMPLE_ORDER]}, products=[SAMPLE_PRODUCT]),
    )
    client = TestClient(api_module.create_app(assistant, trace_store))

    chat_resp = client.post(
        "/api/chat",
        json={"question": "đơn hàng của tôi đã giao chưa"},
        headers={"Authorization": "Bearer user-42"},
    )
    assert chat_resp.status_code == 200
    payload = chat_resp.json()
    assert "1001" in payload["answer"]

    offer_resp = client.post(
        "/api/chat",
        json={"question": "laptop Dell XPS 13"},
        headers={"Authorization": "Bearer user-42"},
    )
    assert offer_resp.status_code == 200
    offer = offer_resp.json()["answer"]
    assert offer["isProductDisplay"] is True
    assert offer["productId"] == 7
    assert offer["awaitingCartConfirmation"] is True

    trace_resp = client.get(f"/traces/{payload['trace_id']}")
    assert trace_resp.status_code == 200
    assert trace_resp.json()["agent_traces"][0]["name"] == "order"

    assert client.get("/traces/missing").status_code == 404
    assert len(client.get("/traces").json()["items"]) == 2

    metrics_resp = client.get("/metrics")
    assert metrics_resp.status_code == 200
    assert metrics_resp.json()["total_requests"] == 2


def test_chat_rejects_empty_question(api_module, gateway, embedder, vector_store) -> None:
    assistant, trace_store = build_assistant(
        gateway=gateway,
        embedder=embedder,
        vector_store=vector_store,
        provider=ScriptedInferenceProvider(),
        commerce=FakeCommerceStore(),
    )
    client = TestClient(api_module.create_app(assistant, trace_store))

    assert client.post("/api/chat", json={"question": ""}).status_code == 422


def test_unexpected_failure_returns_generic_error(api_module) -> None:
    class _BrokenAssistant:
        async def answer(self, question, token=None, previous_context=None):
            raise RuntimeError("database credentials leaked in message")

    client = TestClient(api_module.create_app(_BrokenAssistant(), TraceStore()))

    resp = client.post("/api/chat", json={"question": "xin chào"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Lỗi hệ thống"}


def test_bearer_token_parsing(api_module) -> None:
    assert api_module.bearer_token("Bearer abc") == "abc"
    assert api_module.bearer_token("bearer  abc ") == "abc"
    assert api_module.bearer_token("Basic abc") is None
    assert api_module.bearer_token(None) is None


def test_default_app_health(api_module) -> None:
    client = TestClient(api_module.app)

    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_openai_clients_leave_retries_to_gateway(api_module, monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    llm = api_module._create_llm("gpt-4o-mini")
    embeddings = api_module._create_embeddings()

    assert llm.max_retries == 0
    assert llm.root_async_client.max_retries == 0
    assert embeddings.max_retries == 0


def test_shutdown_closes_graph_store(api_module, gateway, embedder, vector_store) -> None:
    class _ClosableGraphStore:
        def __init__(self) -> None:
            self.closed = 0

        async def run(self, query: str) -> list:
            return []

        async def close(self) -> None:
            self.closed += 1

    graph = _ClosableGraphStore()
    assistant, trace_store = build_assistant(
        gateway=gateway,
        embedder=embedder,
        vector_store=vector_store,
        provider=ScriptedInferenceProvider(),
        commerce=FakeCommerceStore(),
        graph=graph,
    )

    with TestClient(api_module.create_app(assistant, trace_store, graph_store=graph)) as client:
        assert client.get("/health").status_code == 200
        assert graph.closed == 0

    assert graph.closed == 1
