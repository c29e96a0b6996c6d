"""Order-history agent: the caller's own recent orders."""

from __future__ import annotations

import logging

from shop_assistant.agents.base import RetrievalAgent, contains_any
from shop_assistant.agents.formatting import format_datetime, format_vnd
from shop_assistant.stores.base import OrderStore, Row
from shop_assistant.types import AgentName, AgentResult, Query

logger = logging.getLogger(__name__)

ORDER_KEYWORDS = (
    "đơn hàng của tôi",
    "đơn của tôi",
    "mã đơn của tôi",
    "my order",
    "tôi đã đặt",
    "tôi mua",
    "tôi đã mua",
    "tracking đơn hàng",
    "vận chuyển đơn hàng của tôi",
    "giao hàng của tôi",
    "tình trạng đơn hàng",
    "shipping của tôi",
    "tôi đã thanh toán",
    "hóa đơn của tôi",
)
_ORDER_WORDS = ("đơn hàng", "order", "mua", "thanh toán")
_PERSONAL_WORDS = ("tôi", "của mình", "mình", "của em")

LOGIN_REQUIRED = "Bạn cần đăng nhập để xem thông tin đơn hàng của mình."
NO_ORDERS = "Bạn chưa có đơn hàng nào."


class OrderHistoryAgent(RetrievalAgent):
    name = AgentName.ORDER
    failure_message = "Không thể truy vấn thông tin đơn hàng."

    def __init__(self, order_store: OrderStore, *, limit: int = 3) -> None:
        self.order_store = order_store
        self.limit = limit

    def is_relevant(self, query: Query) -> bool:
        if contains_any(query.text, ORDER_KEYWORDS):
            return True
        # Personal order questions need both an order word and first-person context.
        return contains_any(query.text, _ORDER_WORDS) and contains_any(query.text, _PERSONAL_WORDS)

    async def get_context(self, query: Query) -> AgentResult:
        if query.identity is None:
            return self.result(LOGIN_REQUIRED)

        rows = await self.order_store.list_recent_orders(query.identity.user_id, self.limit)
        logger.info("[order] user_id=%s orders=%d", query.identity.user_id, len(rows))
        if not rows:
            return self.result(NO_ORDERS)
        return self.result(f"Đơn hàng của bạn:\n{format_orders(rows)}")


def format_orders(rows: list[Row]) -> str:
    blocks = []
    for order in rows:
        paid = "Đã thanh toán" if order.get("payment_status") == "paid" else "Chưa thanh toán"
        blocks.append(
            f"• Đơn #{order.get('id')} – {format_vnd(order.get('total_amount'))}\n"
            f"  • Trạng thái: {order.get('order_status')}\n"
            f"  • Thanh toán: {paid}\n"
            f"  • Tạo lúc: {format_datetime(order.get('created_at'))}"
        )
    return "\n\n".join(blocks)
