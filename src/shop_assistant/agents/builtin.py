"""Default agent set used by the assistant."""

from __future__ import annotations

from shop_assistant.agents.graph_query import GraphQueryAgent
from shop_assistant.agents.knowledge_base import KnowledgeBaseAgent
from shop_assistant.agents.order import OrderHistoryAgent
from shop_assistant.agents.product import ProductCatalogAgent
from shop_assistant.agents.promotion import PromotionAgent
from shop_assistant.agents.registry import AgentRegistry
from shop_assistant.agents.web_search import WebSearchAgent
from shop_assistant.config import AssistantConfig
from shop_assistant.gateway import EmbeddingClient, InferenceClient
from shop_assistant.retrieval.cache import SemanticResultCache
from shop_assistant.stores.base import (
    CatalogStore,
    GraphStore,
    OrderStore,
    PromotionStore,
    VectorIndex,
    WebSearchProvider,
)


def register_builtin_agents(
    registry: AgentRegistry,
    *,
    inference: InferenceClient,
    embedder: EmbeddingClient,
    cache: SemanticResultCache,
    order_store: OrderStore,
    promotion_store: PromotionStore,
    catalog_store: CatalogStore,
    vector_index: VectorIndex,
    graph_store: GraphStore | None = None,
    web_search: WebSearchProvider | None = None,
    config: AssistantConfig | None = None,
) -> None:
    """Register the six retrieval agents.

    Agents:
    - `order`: the caller's recent orders, identity required.
    - `promotion`: active discount codes.
    - `product`: catalog lookup, offers a cart add for a single match.
    - `graph_query`: generated Cypher over the recommendation graph.
    - `knowledge_base`: cached vector search over store policies.
    - `web_search`: general knowledge and comparisons.
    """

    config = config or AssistantConfig()
    registry.register(OrderHistoryAgent(order_store, limit=config.order_limit))
    registry.register(PromotionAgent(promotion_store))
    registry.register(ProductCatalogAgent(catalog_store, limit=config.catalog_limit))
    registry.register(GraphQueryAgent(inference, graph_store, max_tokens=config.graph_max_tokens))
    registry.register(
        KnowledgeBaseAgent(cache, embedder, vector_index, top_k=config.knowledge_base_top_k)
    )
    registry.register(WebSearchAgent(web_search))
