"""Query router: one inference call decides which agents to dispatch."""

from __future__ import annotations

import json
import logging

from shop_assistant.config import AssistantConfig
from shop_assistant.errors import InferenceError
from shop_assistant.gateway import InferenceClient, ModelTier
from shop_assistant.orchestration.json_utils import parse_json_payload
from shop_assistant.types import AgentName, Query, RoutingDecision

logger = logging.getLogger(__name__)

ROUTER_SYSTEM_PROMPT = """
Bạn là trợ lý phân tích câu hỏi. Nhiệm vụ của bạn là phân tích câu hỏi của người dùng và xác định cần sử dụng những agent nào để trả lời.

Các agent có sẵn:
1. OrderAgent - CHỈ dùng khi cần truy vấn thông tin về đơn hàng CỤ THỂ của người dùng, như trạng thái đơn hàng, lịch sử đơn hàng. KHÔNG dùng cho các câu hỏi chung về chính sách, quy trình đặt hàng, hoặc trả hàng.
2. PromotionAgent - Truy vấn thông tin về khuyến mãi, mã giảm giá.
3. ProductInfoAgent - Tìm kiếm thông tin chi tiết về một sản phẩm cụ thể (laptop) hoặc khi người dùng muốn tham khảo sản phẩm.
4. InternetSearchAgent - Tìm kiếm trên internet cho câu hỏi kiến thức chung, định nghĩa, so sánh, giải thích khái niệm công nghệ không liên quan trực tiếp đến cửa hàng.
5. VectorAgent - Tìm kiếm trong cơ sở tri thức của cửa hàng: chính sách, quy trình, hướng dẫn và câu hỏi chung về cửa hàng.
6. Neo4jAgent - Tìm sản phẩm theo nhiều tiêu chí, khoảng giá hoặc quan hệ gợi ý bằng truy vấn Cypher.

Lưu ý quan trọng:
- Câu hỏi về "chính sách trả hàng", "chính sách bảo hành", "hướng dẫn mua hàng" là câu hỏi chung, chỉ dùng VectorAgent.
- Chỉ dùng OrderAgent khi câu hỏi có từ ngữ sở hữu ngôi thứ nhất (tôi, của tôi, mình) đi kèm từ khóa về đơn hàng, ví dụ: "đơn hàng của tôi đã giao chưa?", "tôi đã đặt những sản phẩm nào?".
- Dùng ProductInfoAgent cho câu hỏi đơn giản về một sản phẩm, ví dụ: "cho tôi biết thông tin về laptop Dell XPS".
- Dùng Neo4jAgent cho câu hỏi lọc phức tạp, ví dụ: "laptop nào có RAM trên 16GB và giá dưới 30 triệu?".
- Dùng InternetSearchAgent cho kiến thức chung, ví dụ: "SSD là gì?", "so sánh Intel và AMD".

Chỉ trả về JSON với cấu trúc:
{
  "needsOrderInfo": boolean,
  "needsPromotionInfo": boolean,
  "needsProductInfo": boolean,
  "needsNeo4jQuery": boolean,
  "needsInternetSearch": boolean,
  "needsVectorSearch": boolean,
  "reasoning": "Giải thích ngắn gọn lý do"
}
""".strip()

ROUTING_KEYS: dict[str, AgentName] = {
    "needsOrderInfo": AgentName.ORDER,
    "needsPromotionInfo": AgentName.PROMOTION,
    "needsProductInfo": AgentName.PRODUCT,
    "needsNeo4jQuery": AgentName.GRAPH_QUERY,
    "needsInternetSearch": AgentName.WEB_SEARCH,
    "needsVectorSearch": AgentName.KNOWLEDGE_BASE,
}


def build_router_message(query: Query) -> str:
    message = f'Phân tích câu hỏi sau: "{query.text}"'
    if query.previous_context:
        message = f"Ngữ cảnh trước đó: {query.previous_context}\n\n{message}"
    return message


def decision_from_payload(payload: object) -> RoutingDecision:
    """Map a parsed router payload to flags; missing keys count as False."""
    if not isinstance(payload, dict):
        return RoutingDecision.enable_all("Router output was not a JSON object.")
    flags = {name: payload.get(key) is True for key, name in ROUTING_KEYS.items()}
    return RoutingDecision(flags=flags, reasoning=str(payload.get("reasoning", "")))


class QueryRouter:
    """Classifies a query into agent flags, failing open on any error."""

    def __init__(self, inference: InferenceClient, config: AssistantConfig | None = None) -> None:
        self.inference = inference
        self.config = config or AssistantConfig()

    async def route(self, query: Query) -> RoutingDecision:
        try:
            raw = await self.inference.complete(
                ROUTER_SYSTEM_PROMPT,
                build_router_message(query),
                tier=ModelTier.FALLBACK,
                max_tokens=self.config.router_max_tokens,
                temperature=self.config.router_temperature,
            )
        except InferenceError as exc:
            logger.warning("[router] classification failed, enabling all agents: %s", exc)
            return RoutingDecision.enable_all(f"Classification failed: {exc}")

        try:
            payload = parse_json_payload(raw)
        except json.JSONDecodeError:
            logger.warning("[router] unparsable output, enabling all agents: %r", raw[:200])
            return RoutingDecision.enable_all("Router output was not valid JSON.")

        decision = decision_from_payload(payload)
        logger.info(
            "[router] selected=%s fallback=%s",
            [name.value for name in decision.selected()],
            decision.fallback,
        )
        return decision
