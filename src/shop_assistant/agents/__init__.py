from .base import RetrievalAgent
from .builtin import register_builtin_agents
from .graph_query import GraphQueryAgent
from .knowledge_base import KnowledgeBaseAgent
from .order import OrderHistoryAgent
from .product import ProductCatalogAgent
from .promotion import PromotionAgent
from .registry import AgentRegistry
from .web_search import WebSearchAgent

__all__ = [
    "AgentRegistry",
    "GraphQueryAgent",
    "KnowledgeBaseAgent",
    "OrderHistoryAgent",
    "ProductCatalogAgent",
    "PromotionAgent",
    "RetrievalAgent",
    "WebSearchAgent",
    "register_builtin_agents",
]
