"""FastAPI entrypoint for chat, trace and metrics endpoints."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from shop_assistant.agents import AgentRegistry, register_builtin_agents
from shop_assistant.config import AssistantConfig, CacheConfig, GatewayConfig
from shop_assistant.gateway import EmbeddingClient, InferenceClient, ThrottledGateway
from shop_assistant.gateway.providers import (
    HashingEmbedder,
    LangChainEmbeddingProvider,
    LangChainInferenceProvider,
    OfflineInferenceProvider,
)
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
from shop_assistant.stores.graph import Neo4jGraphStore
from shop_assistant.stores.identity import JwtIdentityVerifier
from shop_assistant.stores.sqlite import SqliteCommerceStore
from shop_assistant.stores.web_search import TavilySearchProvider
from shop_assistant.types import KnowledgeDocument

logger = logging.getLogger(__name__)

SYSTEM_ERROR = "Lỗi hệ thống"


class ChatRequest(BaseModel):
    question: str = Field(min_length=1)
    previous_context: str | None = None


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def create_app(
    assistant: ShoppingAssistant,
    trace_store: TraceStore,
    *,
    graph_store: Neo4jGraphStore | None = None,
) -> FastAPI:
    app = FastAPI(title="Shop Assistant", version="0.1.0")

    @app.on_event("shutdown")
    async def close_graph_store() -> None:
        if graph_store is not None:
            await graph_store.close()
            logger.info("[api] graph store closed")

    @app.get("/health")
    def health() -> dict[str, Any]:
        offline = isinstance(
            getattr(assistant.router.inference, "provider", None), OfflineInferenceProvider
        )
        return {
            "status": "ok",
            "llm_configured": not offline,
            "identity_configured": assistant.identity_verifier is not None,
            "trace_count": len(trace_store),
        }

    @app.post("/api/chat")
    async def chat(
        request: ChatRequest,
        authorization: str | None = Header(default=None),
    ) -> Any:
        try:
            reply = await assistant.answer(
                request.question,
                token=bearer_token(authorization),
                previous_context=request.previous_context,
            )
        except Exception:
            logger.exception("[api] chat request failed")
            return JSONResponse(status_code=500, content={"error": SYSTEM_ERROR})
        return {"answer": reply.answer_payload(), "trace_id": reply.trace_id}

    @app.get("/traces")
    def traces(limit: int = 20) -> dict[str, Any]:
        records = [asdict(record) for record in trace_store.list_recent(limit=limit)]
        return {"items": records}

    @app.get("/traces/{trace_id}")
    def trace_detail(trace_id: str) -> dict[str, Any]:
        try:
            record = trace_store.get(trace_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return asdict(record)

    @app.get("/metrics")
    def metrics() -> dict[str, Any]:
        return trace_store.summary()

    return app


def _create_llm(model: str) -> Any:
    from langchain_openai import ChatOpenAI

    # Retries belong to ThrottledGateway; the SDK must not retry inside a lane.
    return ChatOpenAI(model=model, temperature=0, max_retries=0)


def _create_embeddings() -> Any:
    if not os.getenv("OPENAI_API_KEY"):
        return HashingEmbedder()

    from langchain_openai import OpenAIEmbeddings

    return OpenAIEmbeddings(
        model=os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"),
        max_retries=0,
    )


def _create_graph_store() -> Neo4jGraphStore | None:
    neo4j_uri = os.getenv("NEO4J_URI")
    if not neo4j_uri:
        return None
    return Neo4jGraphStore(neo4j_uri, os.getenv("NEO4J_USER", "neo4j"), os.getenv("NEO4J_PASSWORD", ""))


def load_knowledge_documents(directory: str | Path) -> list[KnowledgeDocument]:
    """Split every ``.md``/``.txt`` file under `directory` into paragraph passages."""
    documents: list[KnowledgeDocument] = []
    for path in sorted(Path(directory).rglob("*")):
        if path.suffix.lower() not in {".md", ".txt"}:
            continue
        paragraphs = [part.strip() for part in path.read_text(encoding="utf-8").split("\n\n")]
        for index, paragraph in enumerate(p for p in paragraphs if p):
            documents.append(
                KnowledgeDocument(
                    doc_id=f"{path.stem}-{index:04d}",
                    text=paragraph,
                    metadata={"source": str(path)},
                )
            )
    return documents


def build_assistant(
    trace_store: TraceStore, graph_store: Neo4jGraphStore | None = None
) -> ShoppingAssistant:
    """Wire the assistant from environment variables."""
    gateway_config = GatewayConfig(
        primary_model=os.getenv("OPENAI_MODEL", "gpt-4o"),
        fallback_model=os.getenv("OPENAI_FALLBACK_MODEL", "gpt-4o-mini"),
    )
    assistant_config = AssistantConfig()
    gateway = ThrottledGateway(gateway_config)

    inference_provider = (
        LangChainInferenceProvider(_create_llm)
        if os.getenv("OPENAI_API_KEY")
        else OfflineInferenceProvider()
    )
    inference = InferenceClient(inference_provider, gateway)
    embeddings = _create_embeddings()
    embedder = EmbeddingClient(LangChainEmbeddingProvider(embeddings), gateway)

    vector_store = InMemoryVectorStore()
    knowledge_dir = os.getenv("KNOWLEDGE_BASE_DIR")
    if knowledge_dir:
        documents = load_knowledge_documents(knowledge_dir)
        if documents:
            vector_store.upsert(
                documents, embeddings.embed_documents([doc.text for doc in documents])
            )
        logger.info("[api] loaded %d knowledge passages from %s", len(documents), knowledge_dir)

    commerce = SqliteCommerceStore(os.getenv("SHOP_DB_PATH", "shop_assistant.db"))
    tavily_key = os.getenv("TAVILY_API_KEY")
    jwt_secret = os.getenv("JWT_SECRET")

    registry = AgentRegistry()
    register_builtin_agents(
        registry,
        inference=inference,
        embedder=embedder,
        cache=SemanticResultCache(CacheConfig()),
        order_store=commerce,
        promotion_store=commerce,
        catalog_store=commerce,
        vector_index=vector_store,
        graph_store=graph_store,
        web_search=TavilySearchProvider(tavily_key) if tavily_key else None,
        config=assistant_config,
    )

    return ShoppingAssistant(
        router=QueryRouter(inference, assistant_config),
        executor=FanOutExecutor(registry, assistant_config),
        synthesizer=ResponseSynthesizer(inference, assistant_config),
        confirmations=CartConfirmationHandler(commerce, ConversationStore()),
        trace_store=trace_store,
        identity_verifier=JwtIdentityVerifier(jwt_secret) if jwt_secret else None,
    )


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

_trace_store = TraceStore()
_graph_store = _create_graph_store()
app = create_app(build_assistant(_trace_store, _graph_store), _trace_store, graph_store=_graph_store)
