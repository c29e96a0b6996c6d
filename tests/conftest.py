from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from shop_assistant.agents import AgentRegistry, register_builtin_agents
from shop_assistant.config import AssistantConfig, GatewayConfig
from shop_assistant.errors import IdentityError
from shop_assistant.gateway import EmbeddingClient, InferenceClient, ThrottledGateway
from shop_assistant.gateway.providers import HashingEmbedder, LangChainEmbeddingProvider
from shop_assistant.obs.tracing import TraceStore
from shop_assistant.orchestration import (
    CartConfirmationHandler,
    ConversationStore,
    FanOutExecutor,
    QueryRouter,
    ResponseSynthesizer,
    ShoppingAssistant,
)
from shop_assistant.retrieval import InMemoryVectorStore, SemanticResultCache
from shop_assistant.types import Identity, KnowledgeDocument


class VirtualClock:
    """Monotonic clock that only moves when `sleep` is awaited."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class ScriptedInferenceProvider:
    """Returns scripted replies in order; an Exception item is raised instead.

    A callable `responder(system_prompt, user_message)` takes over once the
    script is exhausted.
    """

    def __init__(
        self,
        script: list[Any] | None = None,
        responder: Callable[[str, str], str] | None = None,
    ) -> None:
        self.script = list(script or [])
        self.responder = responder
        self.calls: list[dict[str, Any]] = []

    async def invoke(
        self,
        model_id: str,
        system_prompt: str,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
    ) -> str:
        user_message = messages[-1]["content"]
        self.calls.append(
            {
                "model_id": model_id,
                "system_prompt": system_prompt,
                "user_message": user_message,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        if self.responder is not None:
            return self.responder(system_prompt, user_message)
        raise AssertionError("unexpected inference call")


class FakeCommerceStore:
    def __init__(
        self,
        *,
        orders: dict[int, list[dict[str, Any]]] | None = None,
        promotions: list[dict[str, Any]] | None = None,
        products: list[dict[str, Any]] | None = None,
        cart_ok: bool = True,
    ) -> None:
        self.orders = orders or {}
        self.promotions = promotions or []
        self.products = products or []
        self.cart_ok = cart_ok
        self.order_requests: list[int] = []
        self.searches: list[str] = []
        self.cart_adds: list[tuple[int, int, int]] = []

    async def list_recent_orders(self, user_id: int, limit: int) -> list[dict[str, Any]]:
        self.order_requests.append(user_id)
        return self.orders.get(user_id, [])[:limit]

    async def list_active(self) -> list[dict[str, Any]]:
        return list(self.promotions)

    async def search(self, text: str, limit: int) -> list[dict[str, Any]]:
        self.searches.append(text)
        needle = text.lower()
        return [p for p in self.products if needle in str(p.get("name", "")).lower()][:limit]

    async def add_item(self, user_id: int, product_id: int, quantity: int) -> bool:
        self.cart_adds.append((user_id, product_id, quantity))
        return self.cart_ok


class FakeGraphStore:
    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        self.rows = rows or []
        self.queries: list[str] = []

    async def run(self, query: str) -> list[dict[str, Any]]:
        self.queries.append(query)
        return list(self.rows)


class FakeWebSearch:
    def __init__(self, response: dict[str, Any] | None = None) -> None:
        self.response = response or {"answer": None, "results": []}
        self.searches: list[str] = []

    async def search(self, text: str) -> dict[str, Any]:
        self.searches.append(text)
        return self.response


class FakeVerifier:
    """Accepts tokens of the form ``user-<id>``."""

    def verify(self, token: str) -> Identity:
        prefix, _, raw_id = token.partition("-")
        if prefix != "user" or not raw_id.isdigit():
            raise IdentityError("bad token")
        return Identity(user_id=int(raw_id), role="customer")


SAMPLE_PRODUCT = {
    "id": 7,
    "name": "Dell XPS 13",
    "brand": "Dell",
    "processor_name": "Intel Core i7-1360P",
    "processor_brand": "Intel",
    "ram": "16GB",
    "ssd": "512GB",
    "hdd": None,
    "display_inches": 13.4,
    "price": 32990000,
}

SAMPLE_ORDER = {
    "id": 1001,
    "customer_id": 42,
    "total_amount": 15990000,
    "order_status": "shipped",
    "payment_status": "paid",
    "created_at": "2024-05-01T10:30:00",
}


def run(coro: Any) -> Any:
    return asyncio.run(coro)


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def gateway(clock: VirtualClock) -> ThrottledGateway:
    return ThrottledGateway(
        GatewayConfig(), clock=clock, sleep=clock.sleep, jitter=lambda low, high: 0.0
    )


@pytest.fixture
def embedder(gateway: ThrottledGateway) -> EmbeddingClient:
    return EmbeddingClient(LangChainEmbeddingProvider(HashingEmbedder()), gateway)


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    store = InMemoryVectorStore()
    embeddings = HashingEmbedder()
    documents = [
        KnowledgeDocument(
            doc_id="policy-0001",
            text="Chính sách đổi trả: đổi trả miễn phí trong 15 ngày kể từ khi nhận hàng.",
        ),
        KnowledgeDocument(
            doc_id="policy-0002",
            text="SSD là ổ lưu trữ thể rắn, tốc độ đọc ghi nhanh hơn HDD.",
        ),
    ]
    store.upsert(documents, embeddings.embed_documents([doc.text for doc in documents]))
    return store


def build_assistant(
    *,
    gateway: ThrottledGateway,
    embedder: EmbeddingClient,
    vector_store: InMemoryVectorStore,
    provider: ScriptedInferenceProvider,
    commerce: FakeCommerceStore,
    web: FakeWebSearch | None = None,
    graph: FakeGraphStore | None = None,
    config: AssistantConfig | None = None,
) -> tuple[ShoppingAssistant, TraceStore]:
    config = config or AssistantConfig()
    inference = InferenceClient(provider, gateway)
    registry = AgentRegistry()
    register_builtin_agents(
        registry,
        inference=inference,
        embedder=embedder,
        cache=SemanticResultCache(),
        order_store=commerce,
        promotion_store=commerce,
        catalog_store=commerce,
        vector_index=vector_store,
        graph_store=graph,
        web_search=web,
        config=config,
    )
    trace_store = TraceStore()
    assistant = ShoppingAssistant(
        router=QueryRouter(inference, config),
        executor=FanOutExecutor(registry, config),
        synthesizer=ResponseSynthesizer(inference, config),
        confirmations=CartConfirmationHandler(commerce, ConversationStore()),
        trace_store=trace_store,
        identity_verifier=FakeVerifier(),
    )
    return assistant, trace_store
