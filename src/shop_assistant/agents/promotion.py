"""Promotion agent: currently active discount codes."""

from __future__ import annotations

from shop_assistant.agents.base import RetrievalAgent, contains_any
from shop_assistant.agents.formatting import format_vnd, to_number
from shop_assistant.stores.base import PromotionStore, Row
from shop_assistant.types import AgentName, AgentResult, Query

PROMOTION_KEYWORDS = (
    "mã giảm giá",
    "khuyến mãi",
    "promo",
    "promotion",
    "mã khuyến mãi",
    "giảm bao nhiêu",
    "được giảm",
    "discount",
    "voucher",
    "ưu đãi",
)

NO_PROMOTIONS = "Hiện không có khuyến mãi nào đang hoạt động."


class PromotionAgent(RetrievalAgent):
    name = AgentName.PROMOTION
    failure_message = "Không thể truy vấn thông tin khuyến mãi."

    def __init__(self, promotion_store: PromotionStore) -> None:
        self.promotion_store = promotion_store

    def is_relevant(self, query: Query) -> bool:
        return contains_any(query.text, PROMOTION_KEYWORDS)

    async def get_context(self, query: Query) -> AgentResult:
        rows = await self.promotion_store.list_active()
        if not rows:
            return self.result(NO_PROMOTIONS)
        lines = "\n".join(format_promotion(row) for row in rows)
        return self.result(f"Các khuyến mãi đang có:\n{lines}")


def format_discount(row: Row) -> str:
    value = row.get("discount_value")
    if row.get("discount_type") == "percentage":
        number = to_number(value)
        if isinstance(number, float) and number.is_integer():
            number = int(number)
        return f"{number if number is not None else value}%"
    return format_vnd(value)


def format_promotion(row: Row) -> str:
    return f"• Mã `{row.get('code')}`: {row.get('description') or ''} (Giảm {format_discount(row)})"
