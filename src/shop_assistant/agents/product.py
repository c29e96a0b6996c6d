"""Product-catalog agent: name extraction, catalog search and cart offers."""

from __future__ import annotations

import logging
import re

from shop_assistant.agents.base import RetrievalAgent, contains_any
from shop_assistant.agents.formatting import MISSING, format_vnd, or_missing, to_number
from shop_assistant.stores.base import CatalogStore, Row
from shop_assistant.types import AgentName, AgentResult, ProductOffer, Query

logger = logging.getLogger(__name__)

PRODUCT_KEYWORDS = (
    "sản phẩm",
    "laptop",
    "máy tính",
    "thiết bị",
    "model",
    "tham khảo",
    "thông số",
    "cấu hình",
    "giá",
    "mua",
    "đặc điểm",
    "chi tiết",
    "specs",
)
DETAIL_KEYWORDS = ("thông số", "cấu hình", "chi tiết", "đặc điểm", "specs")
BRANDS = ("Dell", "HP", "Lenovo", "Asus", "Acer", "MSI", "Apple", "MacBook")

# Tried in order; the first non-empty capture wins.
NAME_PATTERNS = (
    re.compile(r"(?:sản phẩm|laptop|máy tính|thiết bị|model)\s+([A-Za-z0-9\s]+)", re.IGNORECASE),
    re.compile(r"(?:tham khảo|thông số|cấu hình|giá|mua)\s+([A-Za-z0-9\s]+)", re.IGNORECASE),
    re.compile(r"(?:về|thông tin về)\s+([A-Za-z0-9\s]+)", re.IGNORECASE),
)

NAME_NOT_FOUND = (
    "Không thể xác định sản phẩm cần tìm. Vui lòng cung cấp tên hoặc mã sản phẩm cụ thể."
)
PRODUCT_NOT_FOUND = "Không tìm thấy thông tin về sản phẩm này."
CONFIRM_PROMPT = 'Bạn có muốn thêm sản phẩm này vào giỏ hàng không? (trả lời "có" để xác nhận)'
LOGIN_TO_ADD = "Vui lòng đăng nhập nếu bạn muốn thêm sản phẩm này vào giỏ hàng."


def extract_product_name(text: str) -> str | None:
    """Pull a candidate product name out of a free-text question."""
    for pattern in NAME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        candidate = match.group(1)
        end = match.end(1)
        if end < len(text) and not text[end].isspace():
            # The character class stopped inside a word (e.g. "gi" of "giá").
            candidate = candidate.rsplit(None, 1)[0] if " " in candidate.strip() else ""
        candidate = candidate.strip()
        if candidate:
            return candidate

    words = text.split()
    for i, word in enumerate(words):
        lowered = word.lower()
        for brand in BRANDS:
            if brand.lower() in lowered:
                return " ".join(words[i : i + 3]).strip()
    return None


class ProductCatalogAgent(RetrievalAgent):
    name = AgentName.PRODUCT
    failure_message = "Không thể truy vấn thông tin sản phẩm."

    def __init__(self, catalog_store: CatalogStore, *, limit: int = 3) -> None:
        self.catalog_store = catalog_store
        self.limit = limit

    def is_relevant(self, query: Query) -> bool:
        return contains_any(query.text, PRODUCT_KEYWORDS)

    async def get_context(self, query: Query) -> AgentResult:
        product_name = extract_product_name(query.text)
        if not product_name:
            return self.result(NAME_NOT_FOUND)

        products = await self.catalog_store.search(product_name, self.limit)
        logger.info("[product] name=%r matches=%d", product_name, len(products))
        if not products:
            return self.result(PRODUCT_NOT_FOUND)

        if contains_any(query.text, DETAIL_KEYWORDS):
            return self.result("\n\n".join(format_product(product) for product in products))

        top = products[0]
        follow_up = CONFIRM_PROMPT if query.is_authenticated else LOGIN_TO_ADD
        return self.result(
            ProductOffer(
                text=f"{format_product(top)}\n\n{follow_up}",
                product_id=int(top["id"]),
                product=_offer_fields(top),
                quantity=1,
                awaiting_confirmation=query.is_authenticated,
            )
        )


def format_product(product: Row) -> str:
    display = product.get("display_inches")
    screen = f'{display}"' if display not in (None, "") else MISSING
    return "\n".join(
        [
            f"• {product.get('name')}",
            f"  • Thương hiệu: {or_missing(product.get('brand'))}",
            f"  • CPU: {or_missing(product.get('processor_name'))}",
            f"  • Chip: {or_missing(product.get('processor_brand'))}",
            f"  • RAM: {or_missing(product.get('ram'))}",
            "  • Ổ cứng:",
            f"      - SSD: {or_missing(product.get('ssd'))}",
            f"      - HDD: {or_missing(product.get('hdd'))}",
            f"  • Màn hình: {screen}",
            f"  • Giá: {format_vnd(product.get('price'))}",
        ]
    )


def _offer_fields(product: Row) -> dict[str, object]:
    return {
        "id": int(product["id"]),
        "name": product.get("name"),
        "brand": product.get("brand"),
        "price": to_number(product.get("price")),
        "processor_name": product.get("processor_name"),
        "ram": product.get("ram"),
        "ssd": product.get("ssd"),
        "display_inches": to_number(product.get("display_inches")),
    }
