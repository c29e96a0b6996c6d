"""Web-search agent for general and comparison questions."""

from __future__ import annotations

import logging
import re
from typing import Any

from shop_assistant.agents.base import RetrievalAgent, contains_any
from shop_assistant.stores.base import WebSearchProvider
from shop_assistant.types import AgentName, AgentResult, Query

logger = logging.getLogger(__name__)

GENERAL_KNOWLEDGE_KEYWORDS = (
    "là gì",
    "định nghĩa",
    "giải thích",
    "so sánh",
    "khác nhau",
    "cách thức",
    "hoạt động",
    "tại sao",
    "tác dụng",
    "ưu điểm",
    "nhược điểm",
    "what is",
    "how to",
    "compare",
    "difference",
    "explain",
)

_COMPARISON = re.compile(r"(so sánh|khác nhau|so với|so sánh giữa)", re.IGNORECASE)
_COMPARISON_SUBJECTS = re.compile(r"so sánh (.*?) và (.*)", re.IGNORECASE)
_FILLER = re.compile(r"bạn có thể|hãy|vui lòng|cho tôi biết|tôi muốn biết|tôi muốn hỏi", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

COMPARISON_CRITERIA = ("hiệu năng", "bộ nhớ đệm", "tiêu thụ điện năng")

COMPARISON_FOOTER = (
    "Để có số liệu chính xác, vui lòng tham khảo thông số chi tiết từ nhà sản xuất "
    "hoặc hỏi về từng sản phẩm cụ thể."
)
COMPARISON_UNPARSABLE = "Không thể xử lý câu hỏi so sánh."
NO_RESULTS = "Không tìm thấy thông tin liên quan trên internet."
UNAVAILABLE = "Không thể tìm thấy thông tin liên quan trên internet."
SNIPPET_LENGTH = 200


def is_comparison(text: str) -> bool:
    return bool(_COMPARISON.search(text))


def strip_filler(text: str) -> str:
    return _WHITESPACE.sub(" ", _FILLER.sub("", text)).strip()


def comparison_subjects(text: str) -> tuple[str, str] | None:
    match = _COMPARISON_SUBJECTS.search(strip_filler(text))
    if not match:
        return None
    first = match.group(1).strip(" ?.!")
    second = match.group(2).strip(" ?.!")
    if not first or not second:
        return None
    return first, second


def format_comparison(first: str, second: str) -> str:
    """Templated side-by-side outline; carries no figures of its own."""
    blocks = [f"So sánh {first} và {second}:"]
    for subject in (first, second):
        criteria = "\n".join(f"  - {criterion.capitalize()}" for criterion in COMPARISON_CRITERIA)
        blocks.append(f"• {subject}\n{criteria}")
    blocks.append(COMPARISON_FOOTER)
    return "\n\n".join(blocks)


def format_search_response(response: dict[str, Any]) -> str:
    results = response.get("results") or []
    answer = response.get("answer")
    if answer:
        sources = ", ".join(item.get("url", "") for item in results[:2] if item.get("url"))
        return f"{answer}\n\nNguồn: {sources}" if sources else str(answer)
    if not results:
        return NO_RESULTS
    blocks = []
    for item in results:
        content = (item.get("content") or "")[:SNIPPET_LENGTH]
        blocks.append(f"• {item.get('title', '')}\n  {content}...\n  Nguồn: {item.get('url', '')}")
    return "Thông tin từ internet:\n\n" + "\n\n".join(blocks)


class WebSearchAgent(RetrievalAgent):
    """Dispatched on its own heuristic even when the router declines it."""

    name = AgentName.WEB_SEARCH
    failure_message = "Không thể tìm kiếm thông tin trên internet."
    overrides_router = True

    def __init__(self, provider: WebSearchProvider | None) -> None:
        self.provider = provider

    def is_relevant(self, query: Query) -> bool:
        return contains_any(query.text, GENERAL_KNOWLEDGE_KEYWORDS)

    async def get_context(self, query: Query) -> AgentResult:
        if is_comparison(query.text):
            subjects = comparison_subjects(query.text)
            if subjects is None:
                return self.result(COMPARISON_UNPARSABLE)
            return self.result(format_comparison(*subjects))

        if self.provider is None:
            return self.result(UNAVAILABLE)
        search_text = strip_filler(query.text) or query.text
        response = await self.provider.search(search_text)
        logger.info("[web_search] results=%d", len(response.get("results") or []))
        return self.result(format_search_response(response))
