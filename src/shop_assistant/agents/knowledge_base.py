"""Knowledge-base agent: cached vector search over store policy passages."""

from __future__ import annotations

import logging

from shop_assistant.agents.base import RetrievalAgent, contains_any
from shop_assistant.errors import ProviderOverloadError
from shop_assistant.gateway import EmbeddingClient
from shop_assistant.retrieval.cache import SemanticResultCache
from shop_assistant.stores.base import VectorIndex
from shop_assistant.types import AgentName, AgentResult, Query

logger = logging.getLogger(__name__)

KNOWLEDGE_KEYWORDS = (
    "chính sách",
    "bảo hành",
    "đổi trả",
    "hoàn tiền",
    "giao hàng",
    "vận chuyển",
    "thanh toán",
    "cửa hàng",
    "liên hệ",
    "hướng dẫn",
    "policy",
    "warranty",
)

NOT_FOUND = "Không tìm thấy thông tin về câu hỏi này."
BUSY = "Hệ thống đang bận, vui lòng thử lại sau ít phút."


class KnowledgeBaseAgent(RetrievalAgent):
    name = AgentName.KNOWLEDGE_BASE
    failure_message = "Không thể tìm kiếm thông tin do hệ thống đang bận. Vui lòng thử lại sau."

    def __init__(
        self,
        cache: SemanticResultCache,
        embedder: EmbeddingClient,
        vector_index: VectorIndex,
        *,
        top_k: int = 4,
    ) -> None:
        self.cache = cache
        self.embedder = embedder
        self.vector_index = vector_index
        self.top_k = top_k

    def is_relevant(self, query: Query) -> bool:
        return contains_any(query.text, KNOWLEDGE_KEYWORDS)

    async def get_context(self, query: Query) -> AgentResult:
        hit = await self.cache.get(query.text)
        if hit is not None:
            return self.result(hit.result)

        try:
            vector = await self.embedder.embed(query.text)
        except ProviderOverloadError:
            stale = await self.cache.get(query.text, degraded=True)
            if stale is not None:
                return self.result(stale.result)
            raise

        documents = await self.vector_index.nearest_neighbors(vector, self.top_k)
        logger.info("[knowledge_base] retrieved=%d", len(documents))
        if not documents:
            return self.result(NOT_FOUND)

        text = "\n\n".join(scored.document.text for scored in documents)
        await self.cache.put(query.text, text)
        return self.result(text)
