"""Merge agent results into one grounded answer."""

from __future__ import annotations

import logging

from shop_assistant.config import AssistantConfig
from shop_assistant.errors import InferenceError
from shop_assistant.gateway import InferenceClient, ModelTier
from shop_assistant.types import AgentResult, ProductOffer, Query

logger = logging.getLogger(__name__)

SYNTHESIS_SYSTEM_PROMPT = """
Bạn là trợ lý TMĐT, trả lời ngắn gọn, thân thiện, tiếng Việt.
Nhiệm vụ của bạn là tổng hợp thông tin từ các agent khác nhau để tạo câu trả lời hoàn chỉnh.
Chỉ sử dụng thông tin được cung cấp, không tự thêm thông tin không có trong dữ liệu.
Nếu thiếu thông tin, hãy yêu cầu người dùng cung cấp thêm chi tiết.
""".strip()

FALLBACK_PREFIX = "Tôi đã tìm được thông tin sau:\n\n"
OVERLOAD_APOLOGY = "Xin lỗi, hiện tại hệ thống đang quá tải. Vui lòng thử lại sau ít phút."


def build_synthesis_message(question: str, results: list[AgentResult]) -> str:
    lines = "\n".join(f"- {result.agent.value}: {result.text or 'Không có thông tin'}" for result in results)
    return (
        f"Câu hỏi: {question}\n\n"
        f"Thông tin từ các agent:\n{lines}\n\n"
        "Hãy tổng hợp thành câu trả lời hoàn chỉnh."
    )


def concatenate_results(results: list[AgentResult]) -> str:
    texts = [result.text for result in results if result.text]
    if not texts:
        return OVERLOAD_APOLOGY
    return FALLBACK_PREFIX + "\n\n".join(texts)


class ResponseSynthesizer:
    def __init__(self, inference: InferenceClient, config: AssistantConfig | None = None) -> None:
        self.inference = inference
        self.config = config or AssistantConfig()

    async def synthesize(self, query: Query, results: list[AgentResult]) -> str | ProductOffer:
        """Return a lone product offer unchanged, otherwise one merged answer.

        `results` must already exclude failed agents.
        """
        offers = [result for result in results if result.is_structured]
        others = [result for result in results if not result.is_structured and result.text]
        if len(offers) == 1 and not others:
            logger.info("[synthesis] returning product offer directly")
            return offers[0].payload

        try:
            return await self.inference.complete(
                SYNTHESIS_SYSTEM_PROMPT,
                build_synthesis_message(query.text, results),
                tier=ModelTier.FALLBACK,
                max_tokens=self.config.synthesis_max_tokens,
                temperature=self.config.synthesis_temperature,
            )
        except InferenceError as exc:
            logger.warning("[synthesis] inference failed, concatenating results: %s", exc)
            return concatenate_results(results)
